import json

import pytest

from app.core.deadline import Deadline
from app.core.errors import DeadlineExceededError, ProviderError
from app.models.domain.contact_domain import ContactSource
from app.services.contacts.resolver import (
    ContactResolver,
    build_search_query,
    normalize_fragments,
    score_candidate,
    score_fragment,
)
from tests.fakes import FakeCacheStore, FakeDirectoryProvider, FakeHistoryProvider, make_message


def _jane_history(count: int = 5):
    return [
        make_message(f"m{i}", "Jane Doe <jane@x.com>", "me@example.com", "Mon, 6 Jan 2025 10:00:00 +0000")
        for i in range(count)
    ]


def test_normalize_fragments():
    assert normalize_fragments(["  Jane   Doe ", "bob", "", "BOB", "   "]) == ["bob", "jane doe"]


def test_build_search_query():
    query = build_search_query(["bob", "jane doe"])
    assert query == '("bob" OR from:bob OR to:bob) OR "jane doe"'


def test_score_fragment_bands():
    assert score_fragment("jane doe", "Jane Doe", "jane@x.com") == 1.0
    assert score_fragment("jane@x.com", "Jane Doe", "jane@x.com") == 1.0
    assert score_fragment("jane", "Jane Doe", "jane@x.com") == 0.9
    assert score_fragment("doe jane", "Jane Doe", "jane@x.com") == 0.85
    assert score_fragment("zzzz", "Jane Doe", "jane@x.com") is None


def test_score_fragment_partial_band():
    # similarity("janet", "jane") == 0.8
    assert score_fragment("janet", "Jane", "j@x.com") == pytest.approx(0.76)


def test_score_candidate_frequency_boost_is_capped():
    assert score_candidate(["jane"], "Jane Doe", "jane@x.com", 5) == pytest.approx(1.0)
    assert score_candidate(["jane"], "Jane Doe", "jane@x.com", 0) == pytest.approx(0.9)
    assert score_candidate(["doe jane"], "Jane Doe", "jane@x.com", 50) == pytest.approx(0.95)


@pytest.mark.asyncio
async def test_resolve_exact_example():
    resolver = ContactResolver(FakeHistoryProvider(_jane_history(5)), cache=FakeCacheStore())

    contacts = await resolver.resolve_contacts("user-1", ["Jane"], user_email="me@example.com")

    assert len(contacts) == 1
    assert contacts[0].email == "jane@x.com"
    assert contacts[0].name == "Jane Doe"
    assert contacts[0].confidence == 1.0
    assert contacts[0].frequency == 5
    assert contacts[0].source == ContactSource.HISTORY
    assert contacts[0].last_contact_at is not None


@pytest.mark.asyncio
async def test_resolve_empty_fragments_skips_providers():
    history = FakeHistoryProvider(_jane_history())
    resolver = ContactResolver(history)

    assert await resolver.resolve_contacts("user-1", ["", "   "]) == []
    assert history.calls == []


@pytest.mark.asyncio
async def test_resolve_excludes_own_address():
    messages = [make_message("m1", "Me <me@example.com>", "Jane Doe <jane@x.com>")]
    resolver = ContactResolver(FakeHistoryProvider(messages))

    contacts = await resolver.resolve_contacts("user-1", ["me"], user_email="ME@example.com")

    assert all(c.email != "me@example.com" for c in contacts)


@pytest.mark.asyncio
async def test_resolve_returns_top_three_sorted():
    messages = []
    for i, (name, email) in enumerate(
        [
            ("Sam Lee", "sam.lee@x.com"),
            ("Sam Park", "sam.park@x.com"),
            ("Sam Ortiz", "sam.ortiz@x.com"),
            ("Sam Chen", "sam.chen@x.com"),
        ]
    ):
        for j in range(i + 1):
            messages.append(make_message(f"m{i}-{j}", f"{name} <{email}>", "me@example.com"))

    resolver = ContactResolver(FakeHistoryProvider(messages))
    contacts = await resolver.resolve_contacts("user-1", ["sam"], user_email="me@example.com")

    assert len(contacts) == 3
    assert [c.email for c in contacts] == ["sam.chen@x.com", "sam.ortiz@x.com", "sam.park@x.com"]
    confidences = [c.confidence for c in contacts]
    assert confidences == sorted(confidences, reverse=True)
    assert all(c.confidence >= 0.7 for c in contacts)


@pytest.mark.asyncio
async def test_resolve_drops_low_confidence_matches():
    messages = [make_message("m1", "Quentin Blake <qb@x.com>", "me@example.com")]
    resolver = ContactResolver(FakeHistoryProvider(messages))

    assert await resolver.resolve_contacts("user-1", ["jane"]) == []


@pytest.mark.asyncio
async def test_cache_hit_skips_history():
    cache = FakeCacheStore()
    history = FakeHistoryProvider(_jane_history())
    resolver = ContactResolver(history, cache=cache)

    first = await resolver.resolve_contacts("user-1", ["Jane"])
    second = await resolver.resolve_contacts("user-1", ["  jane "])

    assert len(history.calls) == 1
    assert first == second
    [key] = cache.store
    assert key.startswith("contacts:user-1:")
    assert cache.ttls[key] == 300
    assert json.loads(cache.store[key])[0]["email"] == "jane@x.com"


@pytest.mark.asyncio
async def test_cache_errors_are_treated_as_miss():
    history = FakeHistoryProvider(_jane_history())
    resolver = ContactResolver(history, cache=FakeCacheStore(fail=True))

    contacts = await resolver.resolve_contacts("user-1", ["Jane"])

    assert len(contacts) == 1
    assert len(history.calls) == 1


@pytest.mark.asyncio
async def test_directory_name_wins_and_failures_fall_back():
    messages = [
        make_message("m1", "jane@x.com", "me@example.com"),
        make_message("m2", "Jan Smith <jan@y.com>", "me@example.com"),
    ]
    directory = FakeDirectoryProvider(names={"jane@x.com": "Jane Doe"}, fail_for={"jan@y.com"})
    resolver = ContactResolver(FakeHistoryProvider(messages), directory=directory)

    contacts = await resolver.resolve_contacts("user-1", ["jan"])
    by_email = {c.email: c for c in contacts}

    assert by_email["jane@x.com"].name == "Jane Doe"
    assert by_email["jane@x.com"].source == ContactSource.DIRECTORY
    assert by_email["jan@y.com"].name == "Jan Smith"
    assert by_email["jan@y.com"].source == ContactSource.HISTORY


@pytest.mark.asyncio
async def test_header_without_display_name_uses_local_part():
    messages = [make_message("m1", "bob@x.com", "me@example.com")]
    resolver = ContactResolver(FakeHistoryProvider(messages))

    contacts = await resolver.resolve_contacts("user-1", ["bob"])

    assert contacts[0].name == "bob"
    assert contacts[0].confidence == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_history_failure_raises_provider_error():
    resolver = ContactResolver(FakeHistoryProvider(error=RuntimeError("boom")))

    with pytest.raises(ProviderError):
        await resolver.resolve_contacts("user-1", ["jane"])


@pytest.mark.asyncio
async def test_expired_deadline_raises():
    resolver = ContactResolver(FakeHistoryProvider(_jane_history()))

    with pytest.raises(DeadlineExceededError):
        await resolver.resolve_contacts("user-1", ["jane"], deadline=Deadline(0))


@pytest.mark.asyncio
async def test_slow_cache_is_bounded_by_deadline():
    history = FakeHistoryProvider(_jane_history())
    resolver = ContactResolver(history, cache=FakeCacheStore(delay=5))

    with pytest.raises(DeadlineExceededError):
        await resolver.resolve_contacts("user-1", ["jane"], deadline=Deadline(0.05))

    assert history.calls == []


@pytest.mark.asyncio
async def test_zero_max_results_returns_nothing():
    resolver = ContactResolver(FakeHistoryProvider(_jane_history()), max_results=0)

    assert await resolver.resolve_contacts("user-1", ["jane"]) == []


@pytest.mark.asyncio
async def test_zero_ttl_disables_cache_writes():
    cache = FakeCacheStore()
    resolver = ContactResolver(FakeHistoryProvider(_jane_history()), cache=cache, cache_ttl_s=0)

    contacts = await resolver.resolve_contacts("user-1", ["jane"])

    assert len(contacts) == 1
    assert cache.store == {}
