"""
Contacts API Routes
Resolve name fragments to contacts from the user's mail history.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.verify import auth_dependency
from app.core.deadline import Deadline
from app.core.errors import SchedulingError
from app.infrastructure.observability.logging import get_logger
from app.models.api.scheduling_request import ResolveContactsRequest
from app.models.api.scheduling_response import ContactResponse, ContactsResponse
from app.routes.dependencies import get_contact_resolver, get_deadline
from app.routes.errors import to_http_exception
from app.services.contacts.resolver import ContactResolver

logger = get_logger(__name__)

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.post("/resolve", response_model=ContactsResponse)
async def resolve_contacts(
    request: ResolveContactsRequest,
    claims: dict = Depends(auth_dependency),
    resolver: ContactResolver = Depends(get_contact_resolver),
    deadline: Deadline = Depends(get_deadline),
):
    """Resolve names or partial names to at most three contacts."""
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        contacts = await resolver.resolve_contacts(
            user_id, request.fragments, user_email=claims.get("email"), deadline=deadline
        )
    except SchedulingError as e:
        logger.error("Contact resolution failed", user_id=user_id, error_code=e.error_code, error=str(e))
        raise to_http_exception(e) from e

    return ContactsResponse(
        contacts=[ContactResponse.from_domain(c) for c in contacts],
        total_count=len(contacts),
    )
