"""
Google Calendar API client used as the calendar provider.
Fetches busy intervals for one participant at a time through the freeBusy endpoint.
"""

from datetime import datetime

from pydantic import BaseModel, Field, ValidationError

from app.infrastructure.observability.logging import get_logger
from app.models.domain.scheduling_domain import BusyInterval, ParticipantRef, ensure_aware
from app.services.infrastructure.google_http import GoogleApiClient, GoogleApiError

logger = get_logger(__name__)

CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"


class _Period(BaseModel):
    start: datetime
    end: datetime


class _CalendarError(BaseModel):
    domain: str | None = None
    reason: str | None = None


class _CalendarBusy(BaseModel):
    busy: list[_Period] = Field(default_factory=list)
    errors: list[_CalendarError] = Field(default_factory=list)


class _FreeBusyPayload(BaseModel):
    calendars: dict[str, _CalendarBusy] = Field(default_factory=dict)


class GoogleCalendarService(GoogleApiClient):
    """
    Service for Google Calendar free/busy lookups.

    One request per participant so the availability engine can isolate a
    failing calendar from the others.
    """

    provider = "calendar"
    error_messages = {
        "403": "Calendar access denied. Please check permissions.",
        "404": "Calendar not found.",
        "400": "Invalid calendar request format.",
        "401": "Calendar authorization expired. Please reconnect.",
        "500": "Google Calendar service temporarily unavailable.",
    }

    async def get_busy_intervals(
        self, participant: ParticipantRef, window_start: datetime, window_end: datetime
    ) -> list[BusyInterval]:
        """
        Get busy intervals for a participant.

        Args:
            participant: Participant whose calendar is queried
            window_start: Start of the search window
            window_end: End of the search window

        Returns:
            list[BusyInterval]: Busy periods sorted by start

        Raises:
            GoogleApiError: If the calendar is unreadable or the payload is malformed
        """
        calendar_id = participant.lookup_id
        body = {
            "timeMin": ensure_aware(window_start).isoformat(),
            "timeMax": ensure_aware(window_end).isoformat(),
            "items": [{"id": calendar_id}],
        }

        data = await self._call("POST", f"{CALENDAR_API_BASE_URL}/freeBusy", "free_busy", json=body)
        try:
            payload = _FreeBusyPayload.model_validate(data)
        except ValidationError as e:
            logger.error("Unexpected freeBusy payload", calendar_id=calendar_id, error=str(e))
            raise GoogleApiError(
                f"Invalid freeBusy payload: {e}", provider=self.provider
            ) from e

        calendar = payload.calendars.get(calendar_id)
        if calendar is None:
            raise GoogleApiError(
                "Calendar missing from freeBusy response", provider=self.provider
            )
        if calendar.errors:
            reasons = ", ".join(err.reason or "unknown" for err in calendar.errors)
            raise GoogleApiError(
                f"Calendar not readable: {reasons}",
                provider=self.provider,
                error_code=calendar.errors[0].reason,
            )

        periods = [(ensure_aware(p.start), ensure_aware(p.end)) for p in calendar.busy]
        intervals = [BusyInterval(start=s, end=e) for s, e in periods if e > s]
        intervals.sort(key=lambda interval: interval.start)

        logger.debug("Busy intervals fetched", calendar_id=calendar_id, busy_count=len(intervals))
        return intervals
