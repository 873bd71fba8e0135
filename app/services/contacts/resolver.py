"""
Contact resolution - turns name fragments into confidence-scored identities
drawn from the user's communication history.
"""

from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass
from datetime import datetime

from app.config import settings
from app.core.deadline import Deadline
from app.core.errors import ProviderError, SchedulingError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.contact_domain import (
    Contact,
    ContactSource,
    DirectoryEntry,
    MessageHeaders,
    normalize_email,
)
from app.services.matching.similarity import similarity
from app.services.providers import CacheStore, CommunicationHistoryProvider, DirectoryProvider

logger = get_logger(__name__)

EXACT_MATCH = 1.0
CONTAINS_MATCH = 0.9
ALL_TOKENS_MATCH = 0.85
PARTIAL_FLOOR = 0.7
PARTIAL_BAND = 0.2
SIMILARITY_THRESHOLD = 0.5
MAX_FREQUENCY_BOOST = 0.10

_WHITESPACE = re.compile(r"\s+")


@dataclass(slots=True)
class _Candidate:
    email: str
    header_name: str
    frequency: int = 0
    last_contact_at: datetime | None = None


def normalize_fragments(fragments: list[str]) -> list[str]:
    """Strip, collapse whitespace, lower-case, drop empties, dedupe and sort."""
    cleaned = {_WHITESPACE.sub(" ", f).strip().lower() for f in fragments if f}
    return sorted(f for f in cleaned if f)


def build_search_query(fragments: list[str]) -> str:
    """
    Disjunctive history search over fragments.

    Multi-word fragments are matched as phrases; single words also match the
    From/To fields directly.
    """
    parts = []
    for fragment in fragments:
        phrase = f'"{fragment}"'
        if " " in fragment:
            parts.append(phrase)
        else:
            parts.append(f"({phrase} OR from:{fragment} OR to:{fragment})")
    return " OR ".join(parts)


def score_fragment(fragment: str, name: str, email: str) -> float | None:
    """Base confidence of one fragment against one identity, or None for no match."""
    frag = fragment.lower()
    lname = name.lower()
    lemail = email.lower()

    if frag == lname or frag == lemail:
        return EXACT_MATCH
    if frag in lname:
        return CONTAINS_MATCH

    tokens = frag.split()
    if tokens and all(token in lname or token in lemail for token in tokens):
        return ALL_TOKENS_MATCH

    best = max(similarity(frag, lname), similarity(frag, lemail))
    if best > SIMILARITY_THRESHOLD:
        return PARTIAL_FLOOR + (best - SIMILARITY_THRESHOLD) * PARTIAL_BAND
    return None


def score_candidate(fragments: list[str], name: str, email: str, frequency: int) -> float | None:
    """Best fragment score plus the frequency boost, capped at 1.0."""
    scores = [s for s in (score_fragment(f, name, email) for f in fragments) if s is not None]
    if not scores:
        return None
    boost = min(frequency / 10, MAX_FREQUENCY_BOOST)
    return min(1.0, max(scores) + boost)


class ContactResolver:
    """
    Resolve query fragments to at most three contacts.

    The cache store is injected so every request reads and writes the same
    external key-value store; nothing is cached in-process.
    """

    def __init__(
        self,
        history: CommunicationHistoryProvider,
        cache: CacheStore | None = None,
        directory: DirectoryProvider | None = None,
        cache_ttl_s: int | None = None,
        max_messages: int | None = None,
        min_confidence: float | None = None,
        max_results: int | None = None,
    ):
        self.history = history
        self.cache = cache
        self.directory = directory
        self.cache_ttl_s = cache_ttl_s if cache_ttl_s is not None else settings.CONTACT_CACHE_TTL_S
        self.max_messages = (
            max_messages if max_messages is not None else settings.CONTACT_SEARCH_MAX_RESULTS
        )
        self.min_confidence = (
            min_confidence if min_confidence is not None else settings.CONTACT_MIN_CONFIDENCE
        )
        self.max_results = max_results if max_results is not None else settings.CONTACT_MAX_RESULTS

    async def resolve_contacts(
        self,
        user_id: str,
        query_fragments: list[str],
        user_email: str | None = None,
        deadline: Deadline | None = None,
    ) -> list[Contact]:
        """
        Resolve fragments against the user's communication history.

        Args:
            user_id: Resolving user
            query_fragments: Names or partial names extracted from the request
            user_email: The resolving user's own address, never returned
            deadline: Request-scoped deadline for provider calls

        Returns:
            Up to three contacts with confidence >= 0.7, highest first

        Raises:
            ProviderError: If the communication history cannot be searched
        """
        fragments = normalize_fragments(query_fragments)
        if not fragments:
            return []

        deadline = deadline or Deadline.unbounded()
        cache_key = self._cache_key(user_id, fragments)

        cached = await self._read_cache(cache_key, deadline)
        if cached is not None:
            logger.info("Returning cached contacts", user_id=user_id, returned=len(cached))
            return cached

        try:
            messages = await deadline.run(
                self.history.search(user_id, build_search_query(fragments), self.max_messages),
                stage="history_search",
            )
        except SchedulingError:
            raise
        except Exception as e:
            logger.error("Communication history search failed", user_id=user_id, error=str(e))
            raise ProviderError(
                f"Communication history search failed: {e}", provider="history"
            ) from e

        candidates = self._build_frequency_map(messages, user_email)
        directory_entries = await self._lookup_directory(list(candidates), deadline)

        contacts = []
        for key, candidate in candidates.items():
            contact = self._score(fragments, candidate, directory_entries.get(key))
            if contact is not None:
                contacts.append(contact)

        contacts.sort(key=lambda c: (-c.confidence, -c.frequency, c.key))
        top = contacts[: self.max_results]

        logger.info(
            "Contacts resolved",
            user_id=user_id,
            fragments=len(fragments),
            messages=len(messages),
            candidates=len(candidates),
            returned=len(top),
        )

        await self._write_cache(cache_key, top, deadline)
        return top

    def _cache_key(self, user_id: str, fragments: list[str]) -> str:
        digest = hashlib.sha256("\n".join(fragments).encode("utf-8")).hexdigest()[:32]
        return f"contacts:{user_id}:{digest}"

    async def _read_cache(self, key: str, deadline: Deadline) -> list[Contact] | None:
        if self.cache is None:
            return None
        try:
            raw = await deadline.run(self.cache.get(key), stage="cache_read")
            if raw is None:
                return None
            return [Contact.from_dict(item) for item in json.loads(raw)]
        except Exception as e:
            logger.warning("Contact cache read failed, treating as miss", key=key[:40], error=str(e))
            return None

    async def _write_cache(self, key: str, contacts: list[Contact], deadline: Deadline) -> None:
        if self.cache is None or self.cache_ttl_s <= 0:
            return
        try:
            payload = json.dumps([c.to_dict() for c in contacts])
            await deadline.run(self.cache.set(key, payload, self.cache_ttl_s), stage="cache_write")
        except Exception as e:
            logger.warning("Contact cache write failed", key=key[:40], error=str(e))

    def _build_frequency_map(
        self, messages: list[MessageHeaders], user_email: str | None
    ) -> dict[str, _Candidate]:
        own = normalize_email(user_email) if user_email else None
        candidates: dict[str, _Candidate] = {}

        for message in messages:
            for address in message.participants():
                key = normalize_email(address.email)
                if not key or key == own:
                    continue

                candidate = candidates.get(key)
                if candidate is None:
                    candidate = _Candidate(email=address.email.strip(), header_name=address.name)
                    candidates[key] = candidate
                elif not candidate.header_name and address.name:
                    candidate.header_name = address.name

                candidate.frequency += 1
                if message.sent_at and (
                    candidate.last_contact_at is None or message.sent_at > candidate.last_contact_at
                ):
                    candidate.last_contact_at = message.sent_at

        return candidates

    async def _lookup_directory(
        self, keys: list[str], deadline: Deadline
    ) -> dict[str, DirectoryEntry]:
        if self.directory is None or not keys:
            return {}

        results = await deadline.gather(
            *(self.directory.lookup(key) for key in keys), stage="directory_lookup"
        )

        entries = {}
        for key, result in zip(keys, results, strict=True):
            if isinstance(result, Exception):
                logger.warning("Directory lookup failed, using history name", error=str(result))
                continue
            if isinstance(result, BaseException):
                raise result
            if result is not None and result.display_name:
                entries[key] = result
        return entries

    def _score(
        self, fragments: list[str], candidate: _Candidate, entry: DirectoryEntry | None
    ) -> Contact | None:
        if entry is not None:
            name, source = entry.display_name, ContactSource.DIRECTORY
        else:
            name = candidate.header_name or candidate.email.split("@")[0]
            source = ContactSource.HISTORY

        confidence = score_candidate(fragments, name, candidate.email, candidate.frequency)
        if confidence is None or confidence < self.min_confidence:
            return None

        return Contact(
            name=name,
            email=candidate.email,
            confidence=round(confidence, 6),
            frequency=candidate.frequency,
            last_contact_at=candidate.last_contact_at,
            source=source,
        )
