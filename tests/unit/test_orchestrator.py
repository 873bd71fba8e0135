from datetime import UTC, datetime, timedelta

import pytest

from app.core.errors import InputError, NotFoundError
from app.models.domain.contact_domain import ContactSource
from app.models.domain.meeting_domain import MeetingStage, ParsedMeetingRequest, ParticipantProfile
from app.models.domain.scheduling_domain import BusyInterval, SchedulingPreferences, WorkingHours
from app.models.domain.venue_domain import Coordinates, LocationPreference, LocationType, PlaceSummary
from app.services.availability.engine import AvailabilityEngine
from app.services.contacts.resolver import ContactResolver
from app.services.scheduling.collaborators import InMemoryProfileProvider
from app.services.scheduling.orchestrator import SchedulingOrchestrator
from app.services.venues.ranker import VenueRanker
from tests.fakes import (
    FakeCalendarProvider,
    FakeHistoryProvider,
    FakePlacesProvider,
    RecordingSink,
    make_message,
)

MONDAY = datetime(2025, 1, 6, tzinfo=UTC)
CENTER = Coordinates(40.7128, -74.0060)


def at(hour: int, minute: int = 0) -> datetime:
    return MONDAY + timedelta(hours=hour, minutes=minute)


def history():
    return FakeHistoryProvider(
        [
            make_message("m1", "Jane Doe <jane@x.com>", "me@example.com"),
            make_message("m2", "Bob Stone <bob@x.com>", "me@example.com"),
        ]
    )


def structured(fragments, location_type=LocationType.VIRTUAL, **kwargs):
    return ParsedMeetingRequest(
        title="Planning",
        name_fragments=fragments,
        location_type=location_type,
        window_start=at(9),
        window_end=at(12),
        **kwargs,
    )


def build(calendar=None, places=None, profiles=None, sink=None, policy="busy"):
    return SchedulingOrchestrator(
        resolver=ContactResolver(history()),
        engine=AvailabilityEngine(calendar or FakeCalendarProvider(), failure_policy=policy),
        ranker=VenueRanker(places or FakePlacesProvider()),
        profiles=profiles,
        sink=sink,
        deadline_s=5,
    )


@pytest.mark.asyncio
async def test_virtual_request_from_text_is_ready():
    calendar = FakeCalendarProvider()
    places = FakePlacesProvider()
    sink = RecordingSink()
    orchestrator = build(calendar=calendar, places=places, sink=sink)

    meeting = await orchestrator.propose_meeting(
        "user-1", user_email="me@example.com", text="Call with Jane tomorrow"
    )

    assert meeting.stage == MeetingStage.READY
    assert meeting.location_type == LocationType.VIRTUAL
    assert [c.email for c in meeting.participants] == ["jane@x.com"]
    assert meeting.slots
    assert meeting.venues == []
    assert places.searches == []
    assert calendar.calls == ["me@example.com", "jane@x.com"]
    assert sink.submitted == [meeting]


@pytest.mark.asyncio
async def test_structured_request_bypasses_parser():
    orchestrator = build()

    meeting = await orchestrator.propose_meeting(
        "user-1",
        parsed=structured(["Bob"], preferences=SchedulingPreferences(duration_minutes=30)),
    )

    assert meeting.title == "Planning"
    assert [c.email for c in meeting.participants] == ["bob@x.com"]
    assert meeting.slots[0].start == at(9)
    assert meeting.slots[0].end == at(9, 30)


@pytest.mark.asyncio
async def test_in_person_request_ranks_venues_from_profiles():
    places = FakePlacesProvider(
        places=[
            PlaceSummary(
                place_id="p1",
                name="Corner Cafe",
                address="1 Main St",
                coordinates=CENTER,
                rating=4.6,
            )
        ]
    )
    profiles = InMemoryProfileProvider(
        [
            ParticipantProfile(
                email="Jane@x.com",
                coordinates=CENTER,
                location_preference=LocationPreference(min_rating=4.5),
            )
        ]
    )
    orchestrator = build(places=places, profiles=profiles)

    meeting = await orchestrator.propose_meeting(
        "user-1",
        user_email="me@example.com",
        parsed=structured(["Jane"], LocationType.COFFEE, max_distance_meters=2000),
    )

    assert meeting.stage == MeetingStage.READY
    assert [v.name for v in meeting.venues] == ["Corner Cafe"]
    [search] = places.searches
    assert search["center"] == CENTER
    assert search["place_type"] == "cafe"
    assert search["radius_meters"] == 2000


@pytest.mark.asyncio
async def test_unresolved_fragments_and_failed_calendars_become_warnings():
    calendar = FakeCalendarProvider(fail_for={"bob@x.com"})
    orchestrator = build(calendar=calendar, policy="skip")

    meeting = await orchestrator.propose_meeting("user-1", parsed=structured(["Jane", "Bob", "Zed"]))

    assert meeting.stage == MeetingStage.READY
    assert [c.email for c in meeting.participants] == ["jane@x.com", "bob@x.com"]
    assert meeting.warnings == [
        "No contact found for 'Zed'",
        "Calendar unavailable for bob@x.com",
    ]


@pytest.mark.asyncio
async def test_request_profile_hours_are_overridden_by_request():
    profiles = InMemoryProfileProvider(
        [ParticipantProfile(email="jane@x.com", working_hours=WorkingHours(start_hour=9, end_hour=10))]
    )
    orchestrator = build(profiles=profiles)
    parsed = structured(
        ["Jane"],
        preferences=SchedulingPreferences(
            duration_minutes=30,
            working_hours={"jane@x.com": WorkingHours(start_hour=11, end_hour=12)},
        ),
    )

    meeting = await orchestrator.propose_meeting("user-1", parsed=parsed)

    assert [s.start for s in meeting.slots] == [at(11), at(11, 30)]


@pytest.mark.asyncio
async def test_duplicate_fragments_yield_one_participant():
    orchestrator = build()

    meeting = await orchestrator.propose_meeting(
        "user-1",
        parsed=ParsedMeetingRequest(
            title="Sync",
            name_fragments=["Jane"],
            emails=["jane@x.com"],
            window_start=at(9),
            window_end=at(12),
        ),
    )

    assert [c.email for c in meeting.participants] == ["jane@x.com"]


@pytest.mark.asyncio
async def test_unknown_email_is_invited_directly():
    orchestrator = build()

    meeting = await orchestrator.propose_meeting(
        "user-1",
        user_email="me@example.com",
        parsed=ParsedMeetingRequest(
            title="Sync",
            emails=["NewPerson@corp.com", "me@example.com"],
            window_start=at(9),
            window_end=at(12),
        ),
    )

    [participant] = meeting.participants
    assert participant.email == "newperson@corp.com"
    assert participant.name == "newperson"
    assert participant.confidence == 1.0
    assert participant.source == ContactSource.EXPLICIT
    assert meeting.stage == MeetingStage.READY
    assert meeting.warnings == ["No contact found for 'me@example.com'"]


@pytest.mark.asyncio
async def test_empty_text_raises_input_error():
    orchestrator = build()

    with pytest.raises(InputError):
        await orchestrator.propose_meeting("user-1", text="   ")
    with pytest.raises(InputError):
        await orchestrator.propose_meeting("user-1", text="let's meet")


@pytest.mark.asyncio
async def test_no_resolved_participants_fails_without_handoff():
    sink = RecordingSink()
    orchestrator = build(sink=sink)

    with pytest.raises(NotFoundError) as exc_info:
        await orchestrator.propose_meeting("user-1", parsed=structured(["Zed"]))

    assert exc_info.value.details["request_id"]
    assert sink.submitted == []


@pytest.mark.asyncio
async def test_no_common_slot_raises_not_found():
    calendar = FakeCalendarProvider(busy={"jane@x.com": [BusyInterval(at(0), at(23))]})
    sink = RecordingSink()
    orchestrator = build(calendar=calendar, sink=sink)

    with pytest.raises(NotFoundError, match="No common free time"):
        await orchestrator.propose_meeting("user-1", parsed=structured(["Jane"]))
    assert sink.submitted == []


@pytest.mark.asyncio
async def test_in_person_without_venues_raises_not_found():
    profiles = InMemoryProfileProvider([ParticipantProfile(email="jane@x.com", coordinates=CENTER)])
    orchestrator = build(profiles=profiles)

    with pytest.raises(NotFoundError, match="No suitable venues"):
        await orchestrator.propose_meeting(
            "user-1", parsed=structured(["Jane"], LocationType.RESTAURANT)
        )


@pytest.mark.asyncio
async def test_in_person_without_locations_raises_input_error():
    orchestrator = build()

    with pytest.raises(InputError, match="no participant locations found"):
        await orchestrator.propose_meeting("user-1", parsed=structured(["Jane"], LocationType.COFFEE))
