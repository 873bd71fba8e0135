"""
Scheduling orchestrator - runs one meeting request through the pipeline.

parse -> resolve participants -> compute availability -> rank venues -> ready

Stages only move forward. Any typed failure marks the request failed and
propagates; a ready request is handed to the meeting sink once.
"""

import asyncio
import time

from app.config import settings
from app.core.deadline import Deadline
from app.core.errors import InputError, NotFoundError, SchedulingError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.contact_domain import Contact, ContactSource, normalize_email
from app.models.domain.meeting_domain import (
    MeetingRequest,
    MeetingStage,
    ParsedMeetingRequest,
    ParticipantProfile,
)
from app.models.domain.scheduling_domain import ParticipantRef, WorkingHours
from app.services.availability.engine import AvailabilityEngine
from app.services.contacts.resolver import ContactResolver
from app.services.providers import MeetingSink, ParticipantProfileProvider
from app.services.scheduling.parser import EMAIL_PATTERN, parse_meeting_request
from app.services.venues.ranker import VenueRanker

logger = get_logger(__name__)


class SchedulingOrchestrator:
    """Holds the cross-cutting policy for a meeting proposal."""

    def __init__(
        self,
        resolver: ContactResolver,
        engine: AvailabilityEngine,
        ranker: VenueRanker,
        profiles: ParticipantProfileProvider | None = None,
        sink: MeetingSink | None = None,
        deadline_s: float | None = None,
    ):
        self.resolver = resolver
        self.engine = engine
        self.ranker = ranker
        self.profiles = profiles
        self.sink = sink
        self.deadline_s = deadline_s if deadline_s is not None else settings.REQUEST_DEADLINE_S

    async def propose_meeting(
        self,
        user_id: str,
        user_email: str | None = None,
        text: str | None = None,
        parsed: ParsedMeetingRequest | None = None,
    ) -> MeetingRequest:
        """
        Build a meeting proposal from free text or a structured request.

        Args:
            user_id: Organizer
            user_email: Organizer's address, included in the availability check
            text: Natural-language request (ignored when `parsed` is given)
            parsed: Structured request that bypasses the parser

        Returns:
            MeetingRequest: In the READY stage

        Raises:
            InputError: Nothing to parse or nobody named
            NotFoundError: No participant, slot or venue could be found
            ProviderError / TransientError: A collaborator failed
        """
        meeting = MeetingRequest(organizer_id=user_id, organizer_email=user_email)
        deadline = Deadline(self.deadline_s)
        started = time.monotonic()

        try:
            await self._run(meeting, deadline, text, parsed)
        except SchedulingError as e:
            meeting.fail(e.error_code)
            e.details.setdefault("request_id", meeting.request_id)
            logger.warning(
                "Meeting proposal failed",
                request_id=meeting.request_id,
                user_id=user_id,
                error_code=e.error_code,
                error=str(e),
                duration_ms=round((time.monotonic() - started) * 1000, 1),
            )
            raise
        except Exception:
            meeting.fail("internal_error")
            logger.exception("Meeting proposal crashed", request_id=meeting.request_id, user_id=user_id)
            raise

        logger.info(
            "Meeting proposal completed",
            request_id=meeting.request_id,
            user_id=user_id,
            participants=len(meeting.participants),
            slots=len(meeting.slots),
            venues=len(meeting.venues),
            warnings=len(meeting.warnings),
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return meeting

    async def _run(
        self,
        meeting: MeetingRequest,
        deadline: Deadline,
        text: str | None,
        parsed: ParsedMeetingRequest | None,
    ) -> None:
        # Parsing
        if parsed is None:
            if not text or not text.strip():
                raise InputError("Meeting request is empty")
            parsed = parse_meeting_request(text)
        if not parsed.fragments:
            raise InputError("No participants named in the meeting request")

        meeting.title = parsed.title
        meeting.location_type = parsed.location_type
        meeting.preferences = parsed.preferences

        meeting.advance(MeetingStage.RESOLVING_PARTICIPANTS)
        meeting.participants = await self._resolve_participants(meeting, parsed.fragments, deadline)
        if not meeting.participants:
            raise NotFoundError("No participants could be resolved")

        profiles = await self._load_profiles(meeting, deadline)

        meeting.advance(MeetingStage.COMPUTING_AVAILABILITY)
        working_hours = self._working_hours(parsed, profiles)
        result = await self.engine.compute_availability(
            self._participant_refs(meeting),
            window_start=parsed.window_start,
            window_end=parsed.window_end,
            duration_minutes=parsed.preferences.duration_minutes,
            time_of_day=parsed.preferences.time_of_day,
            working_hours=working_hours,
            deadline=deadline,
        )
        for email in result.failed_participants:
            meeting.warnings.append(f"Calendar unavailable for {email}")
        meeting.slots = result.slots
        if not meeting.slots:
            raise NotFoundError("No common free time found")

        if meeting.location_type.is_physical:
            meeting.advance(MeetingStage.RANKING_VENUES)
            located = [p for p in profiles.values() if p.coordinates is not None]
            meeting.venues = await self.ranker.rank_venues(
                [p.coordinates for p in located],
                meeting.location_type,
                max_distance_meters=parsed.max_distance_meters,
                preferences=[p.location_preference for p in located if p.location_preference],
                deadline=deadline,
            )
            if not meeting.venues:
                raise NotFoundError("No suitable venues found")

        meeting.advance(MeetingStage.READY)
        if self.sink is not None:
            await deadline.run(self.sink.submit(meeting), stage="meeting_handoff")

    async def _resolve_participants(
        self, meeting: MeetingRequest, fragments: list[str], deadline: Deadline
    ) -> list[Contact]:
        """
        Resolve each fragment separately and keep its best match.

        A fragment that is itself an email address with no history match is
        still invited, under its local part.
        """
        results = await deadline.run(
            asyncio.gather(
                *(
                    self.resolver.resolve_contacts(
                        meeting.organizer_id,
                        [fragment],
                        user_email=meeting.organizer_email,
                        deadline=deadline,
                    )
                    for fragment in fragments
                )
            ),
            stage="resolve_participants",
        )

        participants: list[Contact] = []
        seen: set[str] = set()
        for fragment, contacts in zip(fragments, results, strict=True):
            if not contacts and _is_invitable_email(fragment, meeting.organizer_email):
                contacts = [_explicit_contact(fragment)]
            if not contacts:
                meeting.warnings.append(f"No contact found for '{fragment}'")
                continue
            best = contacts[0]
            if best.key not in seen:
                seen.add(best.key)
                participants.append(best)
        return participants

    async def _load_profiles(
        self, meeting: MeetingRequest, deadline: Deadline
    ) -> dict[str, ParticipantProfile]:
        if self.profiles is None:
            return {}
        emails = [c.email for c in meeting.participants]
        if meeting.organizer_email:
            emails.insert(0, meeting.organizer_email)

        profiles = await deadline.run(self.profiles.get_profiles(emails), stage="load_profiles")
        return {normalize_email(p.email): p for p in profiles}

    def _participant_refs(self, meeting: MeetingRequest) -> list[ParticipantRef]:
        refs = [ParticipantRef(email=c.email) for c in meeting.participants]
        if meeting.organizer_email:
            own = normalize_email(meeting.organizer_email)
            if own not in {normalize_email(r.email) for r in refs}:
                refs.insert(0, ParticipantRef(email=meeting.organizer_email))
        return refs

    def _working_hours(
        self, parsed: ParsedMeetingRequest, profiles: dict[str, ParticipantProfile]
    ) -> dict[str, WorkingHours]:
        # Explicit request values win over stored profile hours.
        hours = {
            profile.email: profile.working_hours
            for profile in profiles.values()
            if profile.working_hours is not None
        }
        hours.update(parsed.preferences.working_hours)
        return hours


def _is_invitable_email(fragment: str, organizer_email: str | None) -> bool:
    if not EMAIL_PATTERN.fullmatch(fragment.strip()):
        return False
    return not organizer_email or normalize_email(fragment) != normalize_email(organizer_email)


def _explicit_contact(address: str) -> Contact:
    email = normalize_email(address)
    return Contact(
        name=email.split("@")[0],
        email=email,
        confidence=1.0,
        source=ContactSource.EXPLICIT,
    )
