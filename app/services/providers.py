"""
Collaborator interfaces consumed by the scheduling core.

Concrete Google and Redis bindings live under app/services; tests substitute
in-memory fakes. Every method is async and may raise ProviderError.
"""

from datetime import datetime
from typing import Protocol

from app.models.domain.contact_domain import DirectoryEntry, MessageHeaders
from app.models.domain.meeting_domain import MeetingRequest, ParticipantProfile
from app.models.domain.scheduling_domain import BusyInterval, ParticipantRef
from app.models.domain.venue_domain import Coordinates, PlaceDetail, PlaceSummary


class CommunicationHistoryProvider(Protocol):
    async def search(self, user_id: str, query: str, max_results: int) -> list[MessageHeaders]: ...


class DirectoryProvider(Protocol):
    async def lookup(self, email: str) -> DirectoryEntry | None: ...


class CalendarProvider(Protocol):
    async def get_busy_intervals(
        self, participant: ParticipantRef, window_start: datetime, window_end: datetime
    ) -> list[BusyInterval]: ...


class PlacesProvider(Protocol):
    async def search_nearby(
        self,
        center: Coordinates,
        radius_meters: float,
        place_type: str,
        price_range: frozenset[int],
        keywords: list[str],
    ) -> list[PlaceSummary]: ...

    async def get_details(self, place_id: str, fields: list[str]) -> PlaceDetail: ...


class CacheStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_s: int) -> None: ...


class ParticipantProfileProvider(Protocol):
    async def get_profiles(self, emails: list[str]) -> list[ParticipantProfile]: ...


class MeetingSink(Protocol):
    """Persistence/notification handoff; must tolerate a repeated request_id."""

    async def submit(self, meeting: MeetingRequest) -> None: ...
