# app/models/api/scheduling_request.py
"""
Scheduling API request models.
Used by routes for input validation.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from app.models.domain.meeting_domain import ParsedMeetingRequest, ParticipantProfile
from app.models.domain.scheduling_domain import SchedulingPreferences, TimeOfDay, WorkingHours
from app.models.domain.venue_domain import Coordinates, LocationPreference, LocationType

TimeOfDayLiteral = Literal["morning", "afternoon", "evening", "any"]
LocationTypeLiteral = Literal["coffee", "restaurant", "office", "virtual", "other"]


class ResolveContactsRequest(BaseModel):
    """Request for resolving name fragments to contacts."""

    fragments: list[str] = Field(..., description="Names or partial names to resolve")


class WorkingHoursModel(BaseModel):
    start_hour: int = Field(default=9, ge=0, le=23)
    end_hour: int = Field(default=17, ge=1, le=24)
    work_days: list[int] | None = Field(
        default=None, description="ISO weekdays (Monday=1 .. Sunday=7)"
    )
    timezone: str | None = Field(default=None, description="IANA timezone, e.g. Europe/Berlin")

    @model_validator(mode="after")
    def check_range(self):
        if self.end_hour <= self.start_hour:
            raise ValueError("end_hour must be after start_hour")
        if self.work_days and any(day < 1 or day > 7 for day in self.work_days):
            raise ValueError("work_days must be ISO weekdays between 1 and 7")
        return self

    def to_domain(self) -> WorkingHours:
        return WorkingHours(
            start_hour=self.start_hour,
            end_hour=self.end_hour,
            work_days=frozenset(self.work_days) if self.work_days else None,
            timezone=self.timezone,
        )


class AvailabilityRequest(BaseModel):
    """Request for finding mutually free slots."""

    participants: list[str] = Field(..., min_length=1, description="Participant email addresses")
    window_start: datetime | None = Field(default=None, description="Search window start")
    window_end: datetime | None = Field(default=None, description="Search window end")
    duration_minutes: int = Field(default=60, ge=1, le=24 * 60)
    time_of_day: TimeOfDayLiteral = "any"
    working_hours: dict[str, WorkingHoursModel] | None = Field(
        default=None, description="Per-participant working hours keyed by email"
    )


class CoordinatesModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> Coordinates:
        return Coordinates(latitude=self.latitude, longitude=self.longitude)


class LocationPreferenceModel(BaseModel):
    min_rating: float | None = Field(default=None, ge=0, le=5)
    max_distance_meters: float | None = Field(default=None, gt=0)
    price_range: list[int] | None = Field(default=None, description="Google price levels 0-4")
    cuisine_types: list[str] = Field(default_factory=list)
    amenities: list[str] = Field(default_factory=list)
    accessibility: bool = False
    parking: bool = False

    def to_domain(self) -> LocationPreference:
        return LocationPreference(
            min_rating=self.min_rating,
            max_distance_meters=self.max_distance_meters,
            price_range=set(self.price_range) if self.price_range else None,
            cuisine_types=set(self.cuisine_types),
            amenities=set(self.amenities),
            accessibility=self.accessibility,
            parking=self.parking,
        )


class VenueRankRequest(BaseModel):
    """Request for ranking venues around participant locations."""

    participant_coordinates: list[CoordinatesModel] = Field(default_factory=list)
    location_type: LocationTypeLiteral = "coffee"
    max_distance_meters: float | None = Field(default=None, gt=0)
    preferences: list[LocationPreferenceModel] = Field(default_factory=list)


class ParticipantProfileModel(BaseModel):
    """Stored participant data supplied alongside a proposal."""

    email: str
    coordinates: CoordinatesModel | None = None
    location_preference: LocationPreferenceModel | None = None
    working_hours: WorkingHoursModel | None = None

    def to_domain(self) -> ParticipantProfile:
        return ParticipantProfile(
            email=self.email,
            coordinates=self.coordinates.to_domain() if self.coordinates else None,
            location_preference=(
                self.location_preference.to_domain() if self.location_preference else None
            ),
            working_hours=self.working_hours.to_domain() if self.working_hours else None,
        )


class StructuredMeetingModel(BaseModel):
    """A meeting request that skips natural-language parsing."""

    title: str = Field(default="Meeting", max_length=200)
    participants: list[str] = Field(..., min_length=1, description="Names or email addresses")
    duration_minutes: int = Field(default=60, ge=1, le=24 * 60)
    time_of_day: TimeOfDayLiteral = "any"
    location_type: LocationTypeLiteral = "virtual"
    window_start: datetime | None = None
    window_end: datetime | None = None
    max_distance_meters: float | None = Field(default=None, gt=0)
    working_hours: dict[str, WorkingHoursModel] | None = None

    def to_domain(self) -> ParsedMeetingRequest:
        names = [p for p in self.participants if "@" not in p]
        emails = [p for p in self.participants if "@" in p]
        return ParsedMeetingRequest(
            title=self.title,
            name_fragments=names,
            emails=emails,
            preferences=SchedulingPreferences(
                time_of_day=TimeOfDay(self.time_of_day),
                duration_minutes=self.duration_minutes,
                working_hours={
                    email: hours.to_domain() for email, hours in (self.working_hours or {}).items()
                },
            ),
            location_type=LocationType(self.location_type),
            window_start=self.window_start,
            window_end=self.window_end,
            max_distance_meters=self.max_distance_meters,
        )


class MeetingProposalRequest(BaseModel):
    """Request for a full meeting proposal, from text or structured input."""

    text: str | None = Field(default=None, max_length=2000, description="Natural-language request")
    structured: StructuredMeetingModel | None = None
    participant_profiles: list[ParticipantProfileModel] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_source(self):
        if not self.structured and not (self.text and self.text.strip()):
            raise ValueError("Either text or structured must be provided")
        return self
