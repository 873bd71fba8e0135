"""
Meeting request parser - pulls participants, timing and place out of free text.

Pattern matching only: capitalised word runs become name fragments, explicit
addresses are kept as-is, and keyword tables decide time of day, duration and
location type. Structured callers skip this module entirely.
"""

import re
from datetime import UTC, datetime, timedelta

from app.infrastructure.observability.logging import get_logger
from app.models.domain.meeting_domain import ParsedMeetingRequest
from app.models.domain.scheduling_domain import SchedulingPreferences, TimeOfDay
from app.models.domain.venue_domain import LocationType

logger = get_logger(__name__)

DEFAULT_DURATION_MINUTES = 60
MAX_NAME_WORDS = 3

EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
MINUTES_PATTERN = re.compile(r"\b(\d{1,3})\s*(?:m|min|mins|minute|minutes)\b", re.IGNORECASE)
HOURS_PATTERN = re.compile(r"\b(\d{1,2}(?:\.\d+)?)\s*(?:h|hr|hrs|hour|hours)\b", re.IGNORECASE)
WORD_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+|[A-Za-zÀ-ÖØ-öø-ÿ'-]+")

COMMON_WORDS = {
    "meeting", "schedule", "set", "up", "with", "and", "the", "for", "about",
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    "tomorrow", "next", "week", "morning", "afternoon", "evening", "today", "tonight",
    "call", "chat", "sync", "review", "discussion", "catch", "catchup",
    "please", "would", "like", "want", "need", "should", "must", "can", "could",
    "zoom", "teams", "team", "meet", "google", "calendar", "email", "phone", "video",
    "minutes", "minute", "hour", "hours", "am", "pm", "an", "a", "at", "on", "in",
    "coffee", "lunch", "dinner", "breakfast", "drinks", "office", "restaurant", "cafe",
    "virtual", "online", "book", "arrange", "organize", "plan", "quick", "i", "me",
    "my", "we", "us", "our", "let's", "lets", "to", "or", "of", "half",
    "you", "your", "he", "him", "his", "she", "her", "they", "them", "their", "it",
    "everyone", "everybody", "someone", "somebody", "anyone", "anybody", "all", "both",
}
NAME_PREFIXES = {"mr", "mrs", "ms", "dr", "prof"}
NAME_CONTEXT_WORDS = {"with", "and", "to"}

WORD_DURATIONS = [
    (re.compile(r"\bhalf (?:an )?hour\b", re.IGNORECASE), 30),
    (re.compile(r"\b(?:two|2) hours\b", re.IGNORECASE), 120),
    (re.compile(r"\b(?:an|one|1) hour\b", re.IGNORECASE), 60),
]

TIME_OF_DAY_KEYWORDS = [
    (TimeOfDay.MORNING, ("morning", "breakfast")),
    (TimeOfDay.AFTERNOON, ("afternoon", "lunch")),
    (TimeOfDay.EVENING, ("evening", "tonight", "dinner", "drinks")),
]

# Checked in order; virtual first so "virtual coffee" stays virtual.
LOCATION_KEYWORDS = [
    (LocationType.VIRTUAL, ("zoom", "teams", "video", "virtual", "online", "call", "google meet")),
    (LocationType.COFFEE, ("coffee", "cafe", "café", "tea")),
    (LocationType.RESTAURANT, ("lunch", "dinner", "breakfast", "brunch", "restaurant", "drinks")),
    (LocationType.OFFICE, ("office", "in person", "in-person")),
]

TITLES = {
    LocationType.COFFEE: "Coffee",
    LocationType.RESTAURANT: "Meal",
    LocationType.OFFICE: "Office meeting",
    LocationType.VIRTUAL: "Call",
}


def _clean(word: str) -> str:
    return word.strip(".,!?;:'\"").lower()


def _is_capitalised(word: str) -> bool:
    return word[:1].isupper() and not word.isupper()


def extract_emails(text: str) -> list[str]:
    seen: list[str] = []
    for match in EMAIL_PATTERN.findall(text):
        address = match.rstrip(".").lower()
        if address not in seen:
            seen.append(address)
    return seen


def extract_names(text: str) -> list[str]:
    """
    Candidate person names, in order of appearance.

    A name is a run of up to three capitalised words that are not common
    words. An honorific prefix is dropped and forces the next word in. A
    lower-case word directly after "with", "and" or "to" is accepted as a
    single-word name.
    """
    words = WORD_PATTERN.findall(text)
    names: list[str] = []
    i = 0
    while i < len(words):
        word = words[i]
        clean = _clean(word)
        prev = _clean(words[i - 1]) if i > 0 else ""

        if "@" in word or len(clean) < 2 or clean in COMMON_WORDS:
            i += 1
            continue

        if clean.rstrip(".") in NAME_PREFIXES and i + 1 < len(words):
            i += 1
            word = words[i]
            clean = _clean(word)
            if "@" in word or clean in COMMON_WORDS:
                continue
        elif not _is_capitalised(word) and prev not in NAME_CONTEXT_WORDS:
            i += 1
            continue

        run = [word.strip(".,!?;:'\"")]
        j = i + 1
        while j < len(words) and len(run) < MAX_NAME_WORDS:
            nxt = words[j]
            if "@" in nxt or not _is_capitalised(nxt) or _clean(nxt) in COMMON_WORDS:
                break
            run.append(nxt.strip(".,!?;:'\""))
            j += 1

        name = " ".join(run)
        if name.lower() not in (n.lower() for n in names):
            names.append(name)
        i = j

    return names


def extract_duration(text: str) -> int:
    match = MINUTES_PATTERN.search(text)
    if match and int(match.group(1)) > 0:
        return int(match.group(1))

    match = HOURS_PATTERN.search(text)
    if match and float(match.group(1)) > 0:
        return int(round(float(match.group(1)) * 60))

    for pattern, minutes in WORD_DURATIONS:
        if pattern.search(text):
            return minutes
    return DEFAULT_DURATION_MINUTES


def extract_time_of_day(text: str) -> TimeOfDay:
    lowered = text.lower()
    for time_of_day, keywords in TIME_OF_DAY_KEYWORDS:
        if any(re.search(rf"\b{re.escape(k)}\b", lowered) for k in keywords):
            return time_of_day
    return TimeOfDay.ANY


def extract_location_type(text: str) -> LocationType:
    lowered = text.lower()
    for location_type, keywords in LOCATION_KEYWORDS:
        if any(re.search(rf"\b{re.escape(k)}\b", lowered) for k in keywords):
            return location_type
    return LocationType.VIRTUAL


def extract_window(text: str, now: datetime | None = None) -> tuple[datetime | None, datetime | None]:
    """Day-level window for "today", "tomorrow" and "next week"; otherwise unbounded."""
    now = now or datetime.now(UTC)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    lowered = text.lower()

    if re.search(r"\btomorrow\b", lowered):
        start = midnight + timedelta(days=1)
        return start, start + timedelta(days=1)
    if re.search(r"\bnext week\b", lowered):
        start = midnight + timedelta(days=7 - midnight.weekday())
        return start, start + timedelta(days=7)
    if re.search(r"\b(?:today|tonight)\b", lowered):
        return None, midnight + timedelta(days=1)
    return None, None


def build_title(location_type: LocationType, names: list[str]) -> str:
    kind = TITLES.get(location_type, "Meeting")
    if not names:
        return kind
    return f"{kind} with {', '.join(names)}"


def parse_meeting_request(text: str, now: datetime | None = None) -> ParsedMeetingRequest:
    """Parse a free-text meeting request."""
    text = (text or "").strip()
    names = extract_names(text)
    emails = extract_emails(text)
    location_type = extract_location_type(text)
    window_start, window_end = extract_window(text, now)

    parsed = ParsedMeetingRequest(
        title=build_title(location_type, names or emails),
        name_fragments=names,
        emails=emails,
        preferences=SchedulingPreferences(
            time_of_day=extract_time_of_day(text),
            duration_minutes=extract_duration(text),
        ),
        location_type=location_type,
        window_start=window_start,
        window_end=window_end,
    )
    logger.debug(
        "Meeting request parsed",
        names=len(names),
        emails=len(emails),
        location_type=location_type.value,
        time_of_day=parsed.preferences.time_of_day.value,
        duration_minutes=parsed.preferences.duration_minutes,
    )
    return parsed
