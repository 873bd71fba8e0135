# app/models/domain/scheduling_domain.py
"""
Scheduling Domain Models
Domain models for availability computation.
Used by the availability engine and calendar providers for internal processing.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from zoneinfo import ZoneInfo


class TimeOfDay(StrEnum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    ANY = "any"

    @property
    def hour_range(self) -> tuple[int, int]:
        """Half-open [start, end) hour range for slot start times."""
        return TIME_OF_DAY_HOURS.get(self, TIME_OF_DAY_HOURS[TimeOfDay.ANY])


TIME_OF_DAY_HOURS: dict[TimeOfDay, tuple[int, int]] = {
    TimeOfDay.MORNING: (9, 12),
    TimeOfDay.AFTERNOON: (12, 17),
    TimeOfDay.EVENING: (17, 20),
    TimeOfDay.ANY: (9, 20),
}


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(slots=True, frozen=True)
class TimeSlot:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError("TimeSlot end must be after start")

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(slots=True, frozen=True)
class BusyInterval:
    """Half-open [start, end) range during which a participant is committed."""

    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start


@dataclass(slots=True)
class WorkingHours:
    """A participant's own scheduling window."""

    start_hour: int = 9
    end_hour: int = 17
    work_days: frozenset[int] | None = None  # ISO weekdays, Monday=1 .. Sunday=7
    timezone: str | None = None

    def __post_init__(self):
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError("working hours must satisfy 0 <= start_hour < end_hour <= 24")

    def contains(self, moment: datetime) -> bool:
        local = moment.astimezone(ZoneInfo(self.timezone)) if self.timezone else moment
        if self.work_days and local.isoweekday() not in self.work_days:
            return False
        return self.start_hour <= local.hour < self.end_hour


@dataclass(slots=True, frozen=True)
class ParticipantRef:
    """Who to fetch busy intervals for."""

    email: str
    calendar_id: str | None = None

    @property
    def lookup_id(self) -> str:
        return self.calendar_id or self.email


@dataclass(slots=True)
class ParticipantBusyResult:
    """Outcome of one participant's calendar fetch; exactly one of the fields is meaningful."""

    participant: ParticipantRef
    intervals: list[BusyInterval] = field(default_factory=list)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class AvailabilityResult:
    slots: list[TimeSlot]
    failed_participants: list[str] = field(default_factory=list)


@dataclass(slots=True)
class SchedulingPreferences:
    time_of_day: TimeOfDay = TimeOfDay.ANY
    duration_minutes: int = 60
    working_hours: dict[str, WorkingHours] = field(default_factory=dict)
