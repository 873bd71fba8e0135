from datetime import UTC, datetime

import pytest

from app.models.domain.scheduling_domain import TimeOfDay
from app.models.domain.venue_domain import LocationType
from app.services.scheduling.parser import (
    extract_duration,
    extract_emails,
    extract_location_type,
    extract_names,
    extract_time_of_day,
    extract_window,
    parse_meeting_request,
)


def test_extract_names_full_names_and_single_names():
    assert extract_names("Schedule coffee with Jane Doe and Bob tomorrow morning") == ["Jane Doe", "Bob"]


def test_extract_names_honorific_prefix():
    assert extract_names("Set up a call with Dr. Smith") == ["Smith"]


def test_extract_names_lowercase_after_with():
    assert extract_names("lunch with jane next week") == ["jane"]


def test_extract_names_skips_common_words_and_emails():
    assert extract_names("Meeting on Monday with alice@example.com") == []


def test_extract_names_skips_pronouns():
    assert extract_names("talk to him tomorrow") == []
    assert extract_names("Lunch with them and Jane") == ["Jane"]
    assert extract_names("Set up a call with everyone") == []


def test_extract_names_dedupes():
    assert extract_names("Coffee with Sam, then Sam again") == ["Sam"]


def test_extract_emails():
    assert extract_emails("Invite Alice@Example.com and bob@x.org.") == ["alice@example.com", "bob@x.org"]


@pytest.mark.parametrize(
    "text,minutes",
    [
        ("a 30 min chat", 30),
        ("45 minutes with Bob", 45),
        ("meet for 2 hours", 120),
        ("1.5 hours review", 90),
        ("half an hour sync", 30),
        ("an hour with Jane", 60),
        ("coffee with Jane", 60),
    ],
)
def test_extract_duration(text, minutes):
    assert extract_duration(text) == minutes


@pytest.mark.parametrize(
    "text,expected",
    [
        ("breakfast with Ana", TimeOfDay.MORNING),
        ("Tuesday afternoon", TimeOfDay.AFTERNOON),
        ("dinner with the team", TimeOfDay.EVENING),
        ("sometime next week", TimeOfDay.ANY),
    ],
)
def test_extract_time_of_day(text, expected):
    assert extract_time_of_day(text) == expected


@pytest.mark.parametrize(
    "text,expected",
    [
        ("coffee with Jane", LocationType.COFFEE),
        ("lunch with Bob", LocationType.RESTAURANT),
        ("meet at the office", LocationType.OFFICE),
        ("virtual coffee with Jane", LocationType.VIRTUAL),
        ("Zoom with Jane", LocationType.VIRTUAL),
        ("talk to Jane", LocationType.VIRTUAL),
    ],
)
def test_extract_location_type(text, expected):
    assert extract_location_type(text) == expected


def test_extract_window():
    now = datetime(2025, 1, 8, 15, 0, tzinfo=UTC)  # Wednesday

    assert extract_window("tomorrow", now) == (
        datetime(2025, 1, 9, tzinfo=UTC),
        datetime(2025, 1, 10, tzinfo=UTC),
    )
    assert extract_window("next week", now) == (
        datetime(2025, 1, 13, tzinfo=UTC),
        datetime(2025, 1, 20, tzinfo=UTC),
    )
    assert extract_window("today", now) == (None, datetime(2025, 1, 9, tzinfo=UTC))
    assert extract_window("whenever", now) == (None, None)


def test_parse_meeting_request():
    parsed = parse_meeting_request("Coffee with Jane Doe and bob@x.com tomorrow morning for 30 minutes")

    assert parsed.name_fragments == ["Jane Doe"]
    assert parsed.emails == ["bob@x.com"]
    assert parsed.fragments == ["Jane Doe", "bob@x.com"]
    assert parsed.location_type == LocationType.COFFEE
    assert parsed.preferences.time_of_day == TimeOfDay.MORNING
    assert parsed.preferences.duration_minutes == 30
    assert parsed.title == "Coffee with Jane Doe"
    assert parsed.window_start is not None


def test_parse_empty_text():
    parsed = parse_meeting_request("")

    assert parsed.fragments == []
    assert parsed.location_type == LocationType.VIRTUAL
