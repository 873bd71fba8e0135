"""
Mapping from scheduling errors to HTTP responses.
Only the user-facing message and error code leave the service.
"""

from fastapi import HTTPException, status

from app.core.errors import (
    InputError,
    NotFoundError,
    ProviderError,
    SchedulingError,
    TransientError,
    user_message_for,
)

_STATUS_BY_ERROR: list[tuple[type[SchedulingError], int]] = [
    (InputError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
    (TransientError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def to_http_exception(error: SchedulingError) -> HTTPException:
    status_code = next(
        (code for error_type, code in _STATUS_BY_ERROR if isinstance(error, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return HTTPException(
        status_code=status_code,
        detail={"error_code": error.error_code, "message": user_message_for(error)},
    )
