# app/models/domain/meeting_domain.py
"""
Meeting Domain Models
The orchestrator-level request that flows through parse -> resolve -> schedule -> place.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from app.models.domain.contact_domain import Contact
from app.models.domain.scheduling_domain import SchedulingPreferences, TimeSlot, WorkingHours
from app.models.domain.venue_domain import Coordinates, LocationPreference, LocationType, VenueCandidate


class MeetingStage(StrEnum):
    PARSING = "parsing"
    RESOLVING_PARTICIPANTS = "resolving_participants"
    COMPUTING_AVAILABILITY = "computing_availability"
    RANKING_VENUES = "ranking_venues"
    READY = "ready"
    FAILED = "failed"


STAGE_ORDER = [
    MeetingStage.PARSING,
    MeetingStage.RESOLVING_PARTICIPANTS,
    MeetingStage.COMPUTING_AVAILABILITY,
    MeetingStage.RANKING_VENUES,
    MeetingStage.READY,
]


@dataclass(slots=True)
class ParsedMeetingRequest:
    """What the parser (or a structured caller) extracted from the request."""

    title: str
    name_fragments: list[str] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)
    preferences: SchedulingPreferences = field(default_factory=SchedulingPreferences)
    location_type: LocationType = LocationType.VIRTUAL
    window_start: datetime | None = None
    window_end: datetime | None = None
    max_distance_meters: float | None = None

    @property
    def fragments(self) -> list[str]:
        return [*self.name_fragments, *self.emails]


@dataclass(slots=True)
class ParticipantProfile:
    """Stored profile data for a participant, owned by the persistence layer."""

    email: str
    coordinates: Coordinates | None = None
    location_preference: LocationPreference | None = None
    working_hours: WorkingHours | None = None


@dataclass(slots=True)
class MeetingRequest:
    organizer_id: str
    organizer_email: str | None
    title: str = ""
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    stage: MeetingStage = MeetingStage.PARSING
    location_type: LocationType = LocationType.VIRTUAL
    participants: list[Contact] = field(default_factory=list)
    preferences: SchedulingPreferences = field(default_factory=SchedulingPreferences)
    slots: list[TimeSlot] = field(default_factory=list)
    venues: list[VenueCandidate] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error_code: str | None = None

    def advance(self, stage: MeetingStage) -> None:
        """Move strictly forward through the pipeline."""
        if self.stage in (MeetingStage.READY, MeetingStage.FAILED):
            raise RuntimeError(f"Meeting request already finished in stage {self.stage}")
        if STAGE_ORDER.index(stage) <= STAGE_ORDER.index(self.stage):
            raise RuntimeError(f"Cannot move from {self.stage} back to {stage}")
        self.stage = stage

    def fail(self, error_code: str) -> None:
        self.stage = MeetingStage.FAILED
        self.error_code = error_code

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "title": self.title,
            "stage": self.stage.value,
            "location_type": self.location_type.value,
            "participants": [c.to_dict() for c in self.participants],
            "time_of_day": self.preferences.time_of_day.value,
            "duration_minutes": self.preferences.duration_minutes,
            "slots": [s.to_dict() for s in self.slots],
            "venues": [v.to_dict() for v in self.venues],
            "warnings": list(self.warnings),
        }
