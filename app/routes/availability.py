"""
Availability API Routes
Find slots when every participant is free.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.verify import auth_dependency
from app.core.deadline import Deadline
from app.core.errors import SchedulingError
from app.infrastructure.observability.logging import get_logger
from app.models.api.scheduling_request import AvailabilityRequest
from app.models.api.scheduling_response import AvailabilityResponse, TimeSlotResponse
from app.models.domain.scheduling_domain import ParticipantRef
from app.routes.dependencies import get_availability_engine, get_deadline
from app.routes.errors import to_http_exception
from app.services.availability.engine import AvailabilityEngine

logger = get_logger(__name__)

router = APIRouter(prefix="/availability", tags=["availability"])


@router.post("/slots", response_model=AvailabilityResponse)
async def find_slots(
    request: AvailabilityRequest,
    claims: dict = Depends(auth_dependency),
    engine: AvailabilityEngine = Depends(get_availability_engine),
    deadline: Deadline = Depends(get_deadline),
):
    """Find up to five mutually free slots."""
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    working_hours = {
        email: hours.to_domain() for email, hours in (request.working_hours or {}).items()
    }

    try:
        result = await engine.compute_availability(
            [ParticipantRef(email=email) for email in request.participants],
            window_start=request.window_start,
            window_end=request.window_end,
            duration_minutes=request.duration_minutes,
            time_of_day=request.time_of_day,
            working_hours=working_hours,
            deadline=deadline,
        )
    except SchedulingError as e:
        logger.error("Availability lookup failed", user_id=user_id, error_code=e.error_code, error=str(e))
        raise to_http_exception(e) from e

    return AvailabilityResponse(
        slots=[TimeSlotResponse.from_domain(s) for s in result.slots],
        failed_participants=result.failed_participants,
    )
