"""
Google People API client used as the directory provider.
Looks up a canonical display name for an email address in the user's contacts.
"""

from pydantic import BaseModel, Field

from app.infrastructure.observability.logging import get_logger
from app.models.domain.contact_domain import DirectoryEntry, normalize_email
from app.services.infrastructure.google_http import GoogleApiClient

logger = get_logger(__name__)

PEOPLE_API_BASE_URL = "https://people.googleapis.com/v1"
READ_MASK = "names,emailAddresses"


class _Name(BaseModel):
    displayName: str | None = None


class _EmailAddress(BaseModel):
    value: str | None = None


class _Person(BaseModel):
    names: list[_Name] = Field(default_factory=list)
    emailAddresses: list[_EmailAddress] = Field(default_factory=list)


class _SearchResult(BaseModel):
    person: _Person


class _SearchPayload(BaseModel):
    results: list[_SearchResult] = Field(default_factory=list)


class GooglePeopleService(GoogleApiClient):
    provider = "people"
    error_messages = {
        "403": "Contacts access denied. Please check permissions.",
        "401": "Contacts authorization expired. Please reconnect.",
    }

    async def lookup(self, email: str) -> DirectoryEntry | None:
        """Return the contact whose address matches exactly, if any."""
        target = normalize_email(email)
        data = await self._call(
            "GET",
            f"{PEOPLE_API_BASE_URL}/people:searchContacts",
            "search_contacts",
            params={"query": target, "readMask": READ_MASK, "pageSize": 5},
        )
        payload = _SearchPayload.model_validate(data)

        for result in payload.results:
            person = result.person
            addresses = {normalize_email(a.value) for a in person.emailAddresses if a.value}
            display_name = next((n.displayName for n in person.names if n.displayName), None)
            if target in addresses and display_name:
                return DirectoryEntry(email=email, display_name=display_name)

        logger.debug("No directory entry for address")
        return None
