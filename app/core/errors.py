"""
Typed errors shared by the scheduling core.

Every whole-call failure leaves a component as one of these. Routes and the
orchestrator map them to user-facing text with `user_message_for`; the
`details` mapping is for logs only and never reaches the end user.
"""

ACTIONABLE_MESSAGE = (
    "We couldn't put that meeting together. "
    "Please try different preferences or participants."
)
RETRY_LATER_MESSAGE = "Something went wrong on our side. Please try again later."


class SchedulingError(Exception):
    """Base class for scheduling core errors."""

    error_code = "scheduling_error"

    def __init__(self, message: str, error_code: str | None = None, details: dict | None = None):
        super().__init__(message)
        if error_code:
            self.error_code = error_code
        self.details = details or {}


class InputError(SchedulingError):
    """Caller supplied nothing resolvable."""

    error_code = "invalid_input"


class ProviderError(SchedulingError):
    """An external collaborator failed or answered with an unexpected status."""

    error_code = "provider_error"

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
        error_code: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, error_code=error_code, details=details)
        self.provider = provider
        self.status_code = status_code


class NotFoundError(SchedulingError):
    """A well-formed request legitimately has no answer."""

    error_code = "not_found"


class TransientError(SchedulingError):
    """Cache or rate-limited failure; the caller may retry the whole request."""

    error_code = "transient_error"


class DeadlineExceededError(TransientError):
    """The request-scoped deadline ran out during a stage."""

    error_code = "deadline_exceeded"


def user_message_for(error: Exception) -> str:
    """Map an error to the text shown to the end user."""
    if isinstance(error, (InputError, NotFoundError)):
        return ACTIONABLE_MESSAGE
    return RETRY_LATER_MESSAGE
