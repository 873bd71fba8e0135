# app/models/domain/venue_domain.py
"""
Venue Domain Models
Domain models for venue ranking and location preference aggregation.
"""

import math
from dataclasses import dataclass, field
from enum import StrEnum

EARTH_RADIUS_M = 6371e3

DEFAULT_MIN_RATING = 4.0
DEFAULT_MAX_DISTANCE_M = 5000.0
DEFAULT_PRICE_RANGE = frozenset({1, 2, 3})

DETAIL_FIELDS = [
    "wheelchair_accessible_entrance",
    "parking",
    "opening_hours",
    "price_level",
    "rating",
    "user_ratings_total",
]


class LocationType(StrEnum):
    COFFEE = "coffee"
    RESTAURANT = "restaurant"
    OFFICE = "office"
    VIRTUAL = "virtual"
    OTHER = "other"

    @property
    def place_type(self) -> str:
        return PLACE_TYPES.get(self, "establishment")

    @property
    def is_physical(self) -> bool:
        return self is not LocationType.VIRTUAL

    @classmethod
    def parse(cls, value: "str | LocationType | None") -> "LocationType":
        if value is None:
            return cls.OTHER
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.OTHER


PLACE_TYPES = {
    LocationType.COFFEE: "cafe",
    LocationType.RESTAURANT: "restaurant",
    LocationType.OFFICE: "office",
}


@dataclass(slots=True, frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def distance_to(self, other: "Coordinates") -> float:
        """Great-circle distance in meters."""
        phi1 = math.radians(self.latitude)
        phi2 = math.radians(other.latitude)
        d_phi = math.radians(other.latitude - self.latitude)
        d_lambda = math.radians(other.longitude - self.longitude)

        a = (
            math.sin(d_phi / 2) ** 2
            + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
        )
        return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


def centroid(points: list[Coordinates]) -> Coordinates:
    """Arithmetic mean of latitude and longitude."""
    return Coordinates(
        latitude=sum(p.latitude for p in points) / len(points),
        longitude=sum(p.longitude for p in points) / len(points),
    )


@dataclass(slots=True)
class LocationPreference:
    """One participant's stored location preferences; unset fields fall back to defaults."""

    min_rating: float | None = None
    max_distance_meters: float | None = None
    price_range: set[int] | None = None
    cuisine_types: set[str] = field(default_factory=set)
    amenities: set[str] = field(default_factory=set)
    accessibility: bool = False
    parking: bool = False


@dataclass(slots=True)
class LocationPreferenceAggregate:
    min_rating: float = DEFAULT_MIN_RATING
    max_distance_meters: float = DEFAULT_MAX_DISTANCE_M
    price_range: frozenset[int] = DEFAULT_PRICE_RANGE
    cuisine_types: frozenset[str] = frozenset()
    amenities: frozenset[str] = frozenset()
    require_accessibility: bool = False
    require_parking: bool = False


@dataclass(slots=True)
class PlaceSummary:
    place_id: str | None
    name: str
    address: str
    coordinates: Coordinates | None
    rating: float | None = None
    price_level: int | None = None
    rating_count: int | None = None


@dataclass(slots=True)
class PlaceDetail:
    wheelchair_accessible: bool = False
    parking: bool = False
    rating_count: int | None = None


@dataclass(slots=True)
class VenueCandidate:
    name: str
    address: str
    coordinates: Coordinates
    distance_meters: float
    score: float
    rating: float | None = None
    price_level: int | None = None
    matched_preferences: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "coordinates": self.coordinates.to_dict(),
            "rating": self.rating,
            "price_level": self.price_level,
            "distance_meters": round(self.distance_meters, 1),
            "score": round(self.score, 3),
            "matched_preferences": list(self.matched_preferences),
        }
