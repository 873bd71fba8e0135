"""
FastAPI dependencies that wire the scheduling components to their providers.

Google services are built per request around the caller's Google access token
and share one pooled HTTP client that is closed when the request finishes.
Tests replace these through `app.dependency_overrides`.
"""

from collections.abc import AsyncIterator

import httpx
from fastapi import Depends, Header, HTTPException, status

from app.config import settings
from app.core.deadline import Deadline
from app.services.availability.engine import AvailabilityEngine
from app.services.calendar.google_client import GoogleCalendarService
from app.services.contacts.resolver import ContactResolver
from app.services.gmail.google_client import GoogleGmailService
from app.services.infrastructure.google_http import create_http_client
from app.services.infrastructure.redis_client import cache_store
from app.services.people.google_client import GooglePeopleService
from app.services.providers import CacheStore, MeetingSink
from app.services.scheduling.collaborators import LoggingMeetingSink
from app.services.venues.google_places import GooglePlacesService
from app.services.venues.ranker import VenueRanker

_meeting_sink = LoggingMeetingSink()


def google_access_token(x_google_access_token: str | None = Header(default=None)) -> str:
    if not x_google_access_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google access token required (X-Google-Access-Token header)",
        )
    return x_google_access_token


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    client = create_http_client()
    try:
        yield client
    finally:
        await client.aclose()


def get_deadline() -> Deadline:
    return Deadline(settings.REQUEST_DEADLINE_S)


def get_cache_store() -> CacheStore:
    return cache_store


def get_meeting_sink() -> MeetingSink:
    return _meeting_sink


def get_contact_resolver(
    token: str = Depends(google_access_token),
    client: httpx.AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store),
) -> ContactResolver:
    return ContactResolver(
        history=GoogleGmailService(token, client=client),
        directory=GooglePeopleService(token, client=client),
        cache=cache,
    )


def get_availability_engine(
    token: str = Depends(google_access_token),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> AvailabilityEngine:
    return AvailabilityEngine(GoogleCalendarService(token, client=client))


def get_venue_ranker(client: httpx.AsyncClient = Depends(get_http_client)) -> VenueRanker:
    return VenueRanker(GooglePlacesService(client=client))
