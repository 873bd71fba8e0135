"""
Default bindings for the persistence-side collaborators of the orchestrator.

Profiles come from an in-memory mapping and finished meetings are logged. A
deployment with a real store swaps these for its own implementations of
ParticipantProfileProvider and MeetingSink.
"""

from app.infrastructure.observability.logging import get_logger
from app.models.domain.contact_domain import normalize_email
from app.models.domain.meeting_domain import MeetingRequest, ParticipantProfile

logger = get_logger(__name__)


class InMemoryProfileProvider:
    """Participant profiles keyed by normalized email."""

    def __init__(self, profiles: list[ParticipantProfile] | None = None):
        self._profiles = {normalize_email(p.email): p for p in profiles or []}

    async def get_profiles(self, emails: list[str]) -> list[ParticipantProfile]:
        found = []
        for email in emails:
            profile = self._profiles.get(normalize_email(email))
            if profile is not None:
                found.append(profile)
        return found


class LoggingMeetingSink:
    """
    Logs each ready meeting once per request id.

    A repeated submission of the same request id is ignored, which keeps the
    handoff idempotent if a caller replays it.
    """

    def __init__(self):
        self.submitted: dict[str, MeetingRequest] = {}

    async def submit(self, meeting: MeetingRequest) -> None:
        if meeting.request_id in self.submitted:
            logger.info("Meeting already handed off", request_id=meeting.request_id)
            return

        self.submitted[meeting.request_id] = meeting
        logger.info(
            "Meeting proposal ready",
            request_id=meeting.request_id,
            organizer_id=meeting.organizer_id,
            participants=len(meeting.participants),
            slots=len(meeting.slots),
            venues=len(meeting.venues),
            location_type=meeting.location_type.value,
        )
