# app/models/api/scheduling_response.py
"""
Scheduling API response models.
Used by routes for output formatting.
"""

from datetime import datetime

from pydantic import BaseModel

from app.models.domain.contact_domain import Contact
from app.models.domain.meeting_domain import MeetingRequest
from app.models.domain.scheduling_domain import TimeSlot
from app.models.domain.venue_domain import VenueCandidate


class ContactResponse(BaseModel):
    name: str
    email: str
    confidence: float
    frequency: int
    last_contact_at: datetime | None = None
    source: str

    @classmethod
    def from_domain(cls, contact: Contact) -> "ContactResponse":
        return cls(
            name=contact.name,
            email=contact.email,
            confidence=contact.confidence,
            frequency=contact.frequency,
            last_contact_at=contact.last_contact_at,
            source=contact.source.value,
        )


class ContactsResponse(BaseModel):
    contacts: list[ContactResponse]
    total_count: int


class TimeSlotResponse(BaseModel):
    start: datetime
    end: datetime

    @classmethod
    def from_domain(cls, slot: TimeSlot) -> "TimeSlotResponse":
        return cls(start=slot.start, end=slot.end)


class AvailabilityResponse(BaseModel):
    slots: list[TimeSlotResponse]
    failed_participants: list[str]


class VenueResponse(BaseModel):
    name: str
    address: str
    latitude: float
    longitude: float
    rating: float | None = None
    price_level: int | None = None
    distance_meters: float
    score: float
    matched_preferences: list[str]

    @classmethod
    def from_domain(cls, venue: VenueCandidate) -> "VenueResponse":
        return cls(
            name=venue.name,
            address=venue.address,
            latitude=venue.coordinates.latitude,
            longitude=venue.coordinates.longitude,
            rating=venue.rating,
            price_level=venue.price_level,
            distance_meters=round(venue.distance_meters, 1),
            score=round(venue.score, 3),
            matched_preferences=list(venue.matched_preferences),
        )


class VenuesResponse(BaseModel):
    venues: list[VenueResponse]
    total_count: int


class MeetingProposalResponse(BaseModel):
    request_id: str
    title: str
    stage: str
    location_type: str
    time_of_day: str
    duration_minutes: int
    participants: list[ContactResponse]
    slots: list[TimeSlotResponse]
    venues: list[VenueResponse]
    warnings: list[str]

    @classmethod
    def from_domain(cls, meeting: MeetingRequest) -> "MeetingProposalResponse":
        return cls(
            request_id=meeting.request_id,
            title=meeting.title,
            stage=meeting.stage.value,
            location_type=meeting.location_type.value,
            time_of_day=meeting.preferences.time_of_day.value,
            duration_minutes=meeting.preferences.duration_minutes,
            participants=[ContactResponse.from_domain(c) for c in meeting.participants],
            slots=[TimeSlotResponse.from_domain(s) for s in meeting.slots],
            venues=[VenueResponse.from_domain(v) for v in meeting.venues],
            warnings=list(meeting.warnings),
        )


class ErrorResponse(BaseModel):
    error_code: str
    message: str
