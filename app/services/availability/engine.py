"""
Availability engine - intersects participants' calendars to find free slots.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from app.config import settings
from app.core.deadline import Deadline
from app.core.errors import InputError, ProviderError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.contact_domain import normalize_email
from app.models.domain.scheduling_domain import (
    AvailabilityResult,
    BusyInterval,
    ParticipantBusyResult,
    ParticipantRef,
    TimeOfDay,
    TimeSlot,
    WorkingHours,
    ensure_aware,
)
from app.services.providers import CalendarProvider

logger = get_logger(__name__)

FAILURE_POLICIES = {"busy", "skip", "abort"}


def default_window(now: datetime | None = None, step_minutes: int = 30, days: int = 14):
    """Now, rounded up to the next step boundary, through `days` days later."""
    now = ensure_aware(now or datetime.now(UTC)).replace(second=0, microsecond=0)
    remainder = now.minute % step_minutes
    if remainder:
        now += timedelta(minutes=step_minutes - remainder)
    return now, now + timedelta(days=days)


def scan_slots(
    window_start: datetime,
    window_end: datetime,
    duration: timedelta,
    time_of_day: TimeOfDay,
    busy: list[BusyInterval],
    working_hours: list[WorkingHours] | None = None,
    step: timedelta = timedelta(minutes=30),
    max_slots: int = 5,
) -> list[TimeSlot]:
    """
    Step a cursor through the window and collect free slots.

    Pure and deterministic: slots come out in cursor order. A slot is kept when
    its start hour is inside the time-of-day range and every participant's own
    working hours, it ends inside the window, and it overlaps no busy interval.
    """
    start_hour, end_hour = time_of_day.hour_range
    working_hours = working_hours or []
    slots: list[TimeSlot] = []

    cursor = window_start
    while cursor < window_end and len(slots) < max_slots:
        slot_end = cursor + duration
        if slot_end > window_end:
            break

        if (
            start_hour <= cursor.hour < end_hour
            and all(hours.contains(cursor) for hours in working_hours)
            and not any(interval.overlaps(cursor, slot_end) for interval in busy)
        ):
            slots.append(TimeSlot(start=cursor, end=slot_end))

        cursor += step

    return slots


class AvailabilityEngine:
    """
    Find mutually free slots for a participant set.

    Calendar fetches fan out concurrently; the scan itself runs once all
    results are in. How a participant whose calendar cannot be read is treated
    depends on `failure_policy`:

    - "busy": the participant blocks the whole window (conservative)
    - "skip": the participant is left out of the intersection
    - "abort": the first failure fails the call

    Under "busy" and "skip" the call still fails when every participant fails.
    """

    def __init__(
        self,
        calendar: CalendarProvider,
        failure_policy: str | None = None,
        step_minutes: int | None = None,
        max_slots: int | None = None,
        window_days: int | None = None,
    ):
        policy = (failure_policy or settings.AVAILABILITY_FAILURE_POLICY).lower()
        if policy not in FAILURE_POLICIES:
            raise ValueError(
                f"Unknown availability failure policy '{policy}'. "
                f"Expected one of: {', '.join(sorted(FAILURE_POLICIES))}"
            )
        self.calendar = calendar
        self.failure_policy = policy
        step_minutes = step_minutes if step_minutes is not None else settings.SLOT_STEP_MINUTES
        if step_minutes <= 0:
            raise ValueError("Slot step must be a positive number of minutes")
        self.step = timedelta(minutes=step_minutes)
        self.max_slots = max_slots if max_slots is not None else settings.SLOT_MAX_RESULTS
        self.window_days = window_days if window_days is not None else settings.AVAILABILITY_WINDOW_DAYS

    async def find_available_slots(
        self,
        participants: list[ParticipantRef],
        window_start: datetime | None = None,
        window_end: datetime | None = None,
        duration_minutes: int = 60,
        time_of_day: TimeOfDay | str = TimeOfDay.ANY,
        working_hours: dict[str, WorkingHours] | None = None,
        deadline: Deadline | None = None,
    ) -> list[TimeSlot]:
        """Free slots only; see `compute_availability` for participant failures."""
        result = await self.compute_availability(
            participants,
            window_start=window_start,
            window_end=window_end,
            duration_minutes=duration_minutes,
            time_of_day=time_of_day,
            working_hours=working_hours,
            deadline=deadline,
        )
        return result.slots

    async def compute_availability(
        self,
        participants: list[ParticipantRef],
        window_start: datetime | None = None,
        window_end: datetime | None = None,
        duration_minutes: int = 60,
        time_of_day: TimeOfDay | str = TimeOfDay.ANY,
        working_hours: dict[str, WorkingHours] | None = None,
        deadline: Deadline | None = None,
    ) -> AvailabilityResult:
        """
        Compute free slots and report which participants could not be read.

        Args:
            participants: Whose calendars to intersect
            window_start: Search window start (default: now, rounded up to the step)
            window_end: Search window end (default: start + 14 days)
            duration_minutes: Meeting length
            time_of_day: morning, afternoon, evening or any
            working_hours: Optional per-participant windows keyed by email
            deadline: Request-scoped deadline for calendar calls

        Raises:
            InputError: Empty participant list, bad duration or window
            ProviderError: Calendar failures the policy does not absorb
        """
        if not participants:
            raise InputError("At least one participant is required")
        if duration_minutes <= 0:
            raise InputError("Meeting duration must be positive")

        start, end = self._resolve_window(window_start, window_end)
        tod = _parse_time_of_day(time_of_day)
        deadline = deadline or Deadline.unbounded()

        fetched = await self._fetch_all(participants, start, end, deadline)
        busy, failed = self._apply_failure_policy(fetched, start, end)

        by_email = {normalize_email(k): v for k, v in (working_hours or {}).items()}
        keys = [normalize_email(p.email) for p in participants]
        hours = [by_email[key] for key in keys if key in by_email]
        slots = scan_slots(
            start,
            end,
            timedelta(minutes=duration_minutes),
            tod,
            busy,
            working_hours=hours,
            step=self.step,
            max_slots=self.max_slots,
        )

        logger.info(
            "Availability computed",
            participants=len(participants),
            failed=len(failed),
            busy_intervals=len(busy),
            time_of_day=tod.value,
            duration_minutes=duration_minutes,
            slots=len(slots),
        )
        return AvailabilityResult(slots=slots, failed_participants=failed)

    def _resolve_window(
        self, window_start: datetime | None, window_end: datetime | None
    ) -> tuple[datetime, datetime]:
        if window_start is None:
            default_start, default_end = default_window(
                step_minutes=int(self.step.total_seconds() // 60), days=self.window_days
            )
            start = default_start
            end = ensure_aware(window_end) if window_end else default_end
        else:
            start = ensure_aware(window_start)
            end = ensure_aware(window_end) if window_end else start + timedelta(days=self.window_days)

        if end <= start:
            raise InputError("Search window end must be after its start")
        return start, end

    async def _fetch_all(
        self,
        participants: list[ParticipantRef],
        start: datetime,
        end: datetime,
        deadline: Deadline,
    ) -> list[ParticipantBusyResult]:
        results = await deadline.gather(
            *(self.calendar.get_busy_intervals(p, start, end) for p in participants),
            stage="calendar_fetch",
        )

        fetched = []
        for participant, result in zip(participants, results, strict=True):
            if isinstance(result, Exception):
                fetched.append(ParticipantBusyResult(participant=participant, error=result))
            elif isinstance(result, BaseException):
                raise result
            else:
                fetched.append(ParticipantBusyResult(participant=participant, intervals=result))
        return fetched

    def _apply_failure_policy(
        self, fetched: list[ParticipantBusyResult], start: datetime, end: datetime
    ) -> tuple[list[BusyInterval], list[str]]:
        busy: list[BusyInterval] = []
        failed: list[str] = []

        for result in fetched:
            if result.ok:
                busy.extend(result.intervals)
                continue

            email = result.participant.email
            if self.failure_policy == "abort":
                logger.error("Calendar fetch failed, aborting", participant=email, error=str(result.error))
                raise ProviderError(
                    f"Calendar unavailable for {email}", provider="calendar"
                ) from result.error

            failed.append(email)
            logger.warning(
                "Calendar fetch failed for participant",
                participant=email,
                policy=self.failure_policy,
                error=str(result.error),
            )
            if self.failure_policy == "busy":
                busy.append(BusyInterval(start=start, end=end))

        if fetched and len(failed) == len(fetched):
            raise ProviderError(
                "No participant calendar could be read",
                provider="calendar",
                details={"participants": failed},
            )

        busy.sort(key=lambda interval: interval.start)
        return busy, failed


def _parse_time_of_day(value: TimeOfDay | str | None) -> TimeOfDay:
    if isinstance(value, TimeOfDay):
        return value
    try:
        return TimeOfDay((value or "any").lower())
    except ValueError:
        return TimeOfDay.ANY
