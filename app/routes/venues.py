"""
Venues API Routes
Rank meeting places around the participants.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.verify import auth_dependency
from app.core.deadline import Deadline
from app.core.errors import SchedulingError
from app.infrastructure.observability.logging import get_logger
from app.models.api.scheduling_request import VenueRankRequest
from app.models.api.scheduling_response import VenueResponse, VenuesResponse
from app.routes.dependencies import get_deadline, get_venue_ranker
from app.routes.errors import to_http_exception
from app.services.venues.ranker import VenueRanker

logger = get_logger(__name__)

router = APIRouter(prefix="/venues", tags=["venues"])


@router.post("/rank", response_model=VenuesResponse)
async def rank_venues(
    request: VenueRankRequest,
    claims: dict = Depends(auth_dependency),
    ranker: VenueRanker = Depends(get_venue_ranker),
    deadline: Deadline = Depends(get_deadline),
):
    """Rank up to five venues near the participants' centre point."""
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        venues = await ranker.rank_venues(
            [c.to_domain() for c in request.participant_coordinates],
            request.location_type,
            max_distance_meters=request.max_distance_meters,
            preferences=[p.to_domain() for p in request.preferences],
            deadline=deadline,
        )
    except SchedulingError as e:
        logger.error("Venue ranking failed", user_id=user_id, error_code=e.error_code, error=str(e))
        raise to_http_exception(e) from e

    return VenuesResponse(
        venues=[VenueResponse.from_domain(v) for v in venues],
        total_count=len(venues),
    )
