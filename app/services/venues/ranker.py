"""
Venue ranking - picks meeting places around the participants' centroid.

Preferences from every participant are folded into one aggregate, nearby
places are searched once, details are fetched concurrently and each place is
scored on rating, distance, price, accessibility, parking and popularity.
"""

from app.config import settings
from app.core.deadline import Deadline
from app.core.errors import InputError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.venue_domain import (
    DEFAULT_MAX_DISTANCE_M,
    DEFAULT_MIN_RATING,
    DEFAULT_PRICE_RANGE,
    DETAIL_FIELDS,
    Coordinates,
    LocationPreference,
    LocationPreferenceAggregate,
    LocationType,
    PlaceDetail,
    PlaceSummary,
    VenueCandidate,
    centroid,
)
from app.services.providers import PlacesProvider

logger = get_logger(__name__)

DISTANCE_WEIGHT = 3.0
PRICE_MATCH_POINTS = 2.0
ACCESSIBILITY_POINTS = 2.0
PARKING_POINTS = 2.0
POPULARITY_POINTS = 1.0
POPULARITY_MIN_RATINGS = 100

TAG_MIN_RATING = "Minimum rating met"
TAG_DISTANCE = "Within preferred distance"
TAG_PRICE = "Matches price preference"
TAG_ACCESSIBLE = "Wheelchair accessible"
TAG_PARKING = "Parking available"
TAG_POPULAR = "Popular location"


def aggregate_preferences(preferences: list[LocationPreference]) -> LocationPreferenceAggregate:
    """
    Fold participant preferences into one group preference.

    Minimum of ratings and distances, union of price levels, cuisines and
    amenities, OR of the accessibility and parking flags. Unset values take
    the defaults, so an empty list yields the defaults.
    """
    if not preferences:
        return LocationPreferenceAggregate()

    price_range: set[int] = set()
    cuisines: set[str] = set()
    amenities: set[str] = set()
    for pref in preferences:
        price_range |= pref.price_range or DEFAULT_PRICE_RANGE
        cuisines |= {c.strip().lower() for c in pref.cuisine_types if c.strip()}
        amenities |= {a.strip().lower() for a in pref.amenities if a.strip()}

    return LocationPreferenceAggregate(
        min_rating=min(p.min_rating if p.min_rating is not None else DEFAULT_MIN_RATING for p in preferences),
        max_distance_meters=min(p.max_distance_meters or DEFAULT_MAX_DISTANCE_M for p in preferences),
        price_range=frozenset(price_range),
        cuisine_types=frozenset(cuisines),
        amenities=frozenset(amenities),
        require_accessibility=any(p.accessibility for p in preferences),
        require_parking=any(p.parking for p in preferences),
    )


def build_keywords(location_type: LocationType, aggregate: LocationPreferenceAggregate) -> list[str]:
    keywords: list[str] = []
    if location_type is LocationType.RESTAURANT:
        keywords.extend(sorted(aggregate.cuisine_types))
    keywords.extend(sorted(aggregate.amenities))
    if aggregate.require_accessibility:
        keywords.append("wheelchair accessible")
    if aggregate.require_parking:
        keywords.append("parking")
    return keywords


def score_place(
    place: PlaceSummary,
    detail: PlaceDetail | None,
    center: Coordinates,
    aggregate: LocationPreferenceAggregate,
    max_distance_meters: float,
) -> VenueCandidate:
    """Score one place. `detail` is None when the detail fetch failed."""
    tags: list[str] = []
    score = 0.0

    if place.rating is not None:
        score += place.rating
        if place.rating >= aggregate.min_rating:
            tags.append(TAG_MIN_RATING)

    distance = center.distance_to(place.coordinates)
    score += max(0.0, DISTANCE_WEIGHT * (1 - distance / max_distance_meters))
    if distance <= aggregate.max_distance_meters:
        tags.append(TAG_DISTANCE)

    if place.price_level is not None and place.price_level in aggregate.price_range:
        score += PRICE_MATCH_POINTS
        tags.append(TAG_PRICE)

    if detail is not None:
        if aggregate.require_accessibility and detail.wheelchair_accessible:
            score += ACCESSIBILITY_POINTS
            tags.append(TAG_ACCESSIBLE)
        if aggregate.require_parking and detail.parking:
            score += PARKING_POINTS
            tags.append(TAG_PARKING)

    rating_count = place.rating_count
    if rating_count is None and detail is not None:
        rating_count = detail.rating_count
    if rating_count is not None and rating_count > POPULARITY_MIN_RATINGS:
        score += POPULARITY_POINTS
        tags.append(TAG_POPULAR)

    return VenueCandidate(
        name=place.name,
        address=place.address,
        coordinates=place.coordinates,
        distance_meters=distance,
        score=score,
        rating=place.rating,
        price_level=place.price_level,
        matched_preferences=tags,
    )


class VenueRanker:
    """Rank venues for an in-person meeting."""

    def __init__(self, places: PlacesProvider, max_results: int | None = None):
        self.places = places
        self.max_results = max_results if max_results is not None else settings.VENUE_MAX_RESULTS

    aggregate_preferences = staticmethod(aggregate_preferences)

    async def rank_venues(
        self,
        participant_coordinates: list[Coordinates],
        location_type: LocationType | str,
        max_distance_meters: float | None = None,
        preferences: list[LocationPreference] | None = None,
        deadline: Deadline | None = None,
    ) -> list[VenueCandidate]:
        """
        Rank venues around the participants' centroid.

        Args:
            participant_coordinates: Known participant locations
            location_type: coffee, restaurant, office or anything else
            max_distance_meters: Search radius and hard distance cut-off
            preferences: Per-participant location preferences
            deadline: Request-scoped deadline for places calls

        Returns:
            list[VenueCandidate]: At most `max_results`, best first

        Raises:
            InputError: No participant coordinates
            ProviderError: Nearby search failed
        """
        if not participant_coordinates:
            raise InputError("no participant locations found")

        max_distance = (
            max_distance_meters
            if max_distance_meters is not None
            else settings.VENUE_DEFAULT_MAX_DISTANCE_M
        )
        if max_distance <= 0:
            raise InputError("Maximum venue distance must be positive")

        kind = LocationType.parse(location_type)
        deadline = deadline or Deadline.unbounded()
        center = centroid(participant_coordinates)
        aggregate = aggregate_preferences(preferences or [])

        places = await deadline.run(
            self.places.search_nearby(
                center,
                max_distance,
                kind.place_type,
                aggregate.price_range,
                build_keywords(kind, aggregate),
            ),
            stage="places_search",
        )
        places = [p for p in places if p.coordinates is not None]
        if not places:
            logger.info("No venues found", location_type=kind.value)
            return []

        details = await self._fetch_details(places, deadline)

        candidates = [
            score_place(place, detail, center, aggregate, max_distance)
            for place, detail in zip(places, details, strict=True)
        ]
        candidates = [c for c in candidates if c.distance_meters <= max_distance]
        candidates.sort(key=lambda c: (-c.score, c.distance_meters, c.name))
        ranked = candidates[: self.max_results]

        logger.info(
            "Venues ranked",
            location_type=kind.value,
            searched=len(places),
            within_distance=len(candidates),
            returned=len(ranked),
        )
        return ranked

    async def _fetch_details(
        self, places: list[PlaceSummary], deadline: Deadline
    ) -> list[PlaceDetail | None]:
        with_ids = [p for p in places if p.place_id]
        results = await deadline.gather(
            *(self.places.get_details(p.place_id, DETAIL_FIELDS) for p in with_ids),
            stage="place_details",
        )

        by_id: dict[str, PlaceDetail | None] = {}
        for place, result in zip(with_ids, results, strict=True):
            if isinstance(result, Exception):
                logger.warning(
                    "Place details unavailable, scoring without them",
                    place_id=place.place_id,
                    error=str(result),
                )
                by_id[place.place_id] = None
            elif isinstance(result, BaseException):
                raise result
            else:
                by_id[place.place_id] = result

        return [by_id.get(p.place_id) if p.place_id else None for p in places]
