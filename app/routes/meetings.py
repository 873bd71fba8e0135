"""
Meetings API Routes
End-to-end meeting proposals: participants, free slots and venues in one call.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.verify import auth_dependency
from app.core.errors import SchedulingError
from app.infrastructure.observability.logging import get_logger
from app.models.api.scheduling_request import MeetingProposalRequest
from app.models.api.scheduling_response import MeetingProposalResponse
from app.routes.dependencies import (
    get_availability_engine,
    get_contact_resolver,
    get_meeting_sink,
    get_venue_ranker,
)
from app.routes.errors import to_http_exception
from app.services.availability.engine import AvailabilityEngine
from app.services.contacts.resolver import ContactResolver
from app.services.providers import MeetingSink
from app.services.scheduling.collaborators import InMemoryProfileProvider
from app.services.scheduling.orchestrator import SchedulingOrchestrator
from app.services.venues.ranker import VenueRanker

logger = get_logger(__name__)

router = APIRouter(prefix="/meetings", tags=["meetings"])


@router.post("/propose", response_model=MeetingProposalResponse)
async def propose_meeting(
    request: MeetingProposalRequest,
    claims: dict = Depends(auth_dependency),
    resolver: ContactResolver = Depends(get_contact_resolver),
    engine: AvailabilityEngine = Depends(get_availability_engine),
    ranker: VenueRanker = Depends(get_venue_ranker),
    sink: MeetingSink = Depends(get_meeting_sink),
):
    """Turn a meeting request into a ready proposal."""
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    orchestrator = SchedulingOrchestrator(
        resolver,
        engine,
        ranker,
        profiles=InMemoryProfileProvider([p.to_domain() for p in request.participant_profiles]),
        sink=sink,
    )

    try:
        meeting = await orchestrator.propose_meeting(
            user_id,
            user_email=claims.get("email"),
            text=request.text,
            parsed=request.structured.to_domain() if request.structured else None,
        )
    except SchedulingError as e:
        raise to_http_exception(e) from e

    return MeetingProposalResponse.from_domain(meeting)
