"""
Google Places web service client used as the places provider.
Nearby search plus per-place details, authenticated by API key rather than user token.
"""

import httpx
from pydantic import BaseModel, Field, ValidationError

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.venue_domain import DETAIL_FIELDS, Coordinates, PlaceDetail, PlaceSummary
from app.services.infrastructure.google_http import (
    GoogleApiClient,
    GoogleApiError,
    GoogleRateLimitError,
)

logger = get_logger(__name__)

PLACES_API_BASE_URL = "https://maps.googleapis.com/maps/api/place"

STATUS_OK = "OK"
STATUS_ZERO_RESULTS = "ZERO_RESULTS"
STATUS_OVER_QUERY_LIMIT = "OVER_QUERY_LIMIT"


class _LatLng(BaseModel):
    lat: float
    lng: float


class _Geometry(BaseModel):
    location: _LatLng | None = None


class _NearbyResult(BaseModel):
    place_id: str | None = None
    name: str = ""
    vicinity: str = ""
    geometry: _Geometry | None = None
    rating: float | None = None
    price_level: int | None = None
    user_ratings_total: int | None = None


class _NearbyPayload(BaseModel):
    status: str
    results: list[_NearbyResult] = Field(default_factory=list)
    error_message: str | None = None


class _DetailResult(BaseModel):
    wheelchair_accessible_entrance: bool | None = None
    parking: bool | None = None
    user_ratings_total: int | None = None


class _DetailPayload(BaseModel):
    status: str
    result: _DetailResult = Field(default_factory=_DetailResult)
    error_message: str | None = None


class GooglePlacesService(GoogleApiClient):
    """
    Places nearby search and details.

    The Places web service reports failures in a `status` field of a 200
    response, so both operations check it on top of the HTTP-level mapping.
    """

    provider = "places"
    error_messages = {
        "403": "Places access denied. Please check the API key.",
        "400": "Invalid places request format.",
        "500": "Google Places service temporarily unavailable.",
    }

    def __init__(self, api_key: str | None = None, client: httpx.AsyncClient | None = None):
        super().__init__(access_token=None, client=client)
        self.api_key = api_key or settings.GOOGLE_MAPS_API_KEY

    async def search_nearby(
        self,
        center: Coordinates,
        radius_meters: float,
        place_type: str,
        price_range: frozenset[int],
        keywords: list[str],
    ) -> list[PlaceSummary]:
        """
        Search places around a point.

        Returns:
            list[PlaceSummary]: Places in API order; empty on ZERO_RESULTS

        Raises:
            GoogleApiError: Any status other than OK or ZERO_RESULTS
            GoogleRateLimitError: Quota exhausted
        """
        params: dict = {
            "location": f"{center.latitude},{center.longitude}",
            "radius": int(radius_meters),
            "type": place_type,
            "key": self.api_key,
        }
        if price_range:
            params["minprice"] = min(price_range)
            params["maxprice"] = max(price_range)
        if keywords:
            params["keyword"] = " ".join(keywords)

        data = await self._call(
            "GET", f"{PLACES_API_BASE_URL}/nearbysearch/json", "nearby_search", params=params
        )
        try:
            payload = _NearbyPayload.model_validate(data)
        except ValidationError as e:
            raise GoogleApiError(f"Invalid nearby search payload: {e}", provider=self.provider) from e

        if payload.status == STATUS_ZERO_RESULTS:
            logger.info("Places search returned no results", place_type=place_type)
            return []
        self._check_status(payload.status, payload.error_message, "nearby_search")

        places = []
        for result in payload.results:
            location = result.geometry.location if result.geometry else None
            places.append(
                PlaceSummary(
                    place_id=result.place_id,
                    name=result.name,
                    address=result.vicinity,
                    coordinates=Coordinates(location.lat, location.lng) if location else None,
                    rating=result.rating,
                    price_level=result.price_level,
                    rating_count=result.user_ratings_total,
                )
            )
        logger.debug("Places search completed", place_type=place_type, results=len(places))
        return places

    async def get_details(self, place_id: str, fields: list[str] | None = None) -> PlaceDetail:
        params = {
            "place_id": place_id,
            "fields": ",".join(fields or DETAIL_FIELDS),
            "key": self.api_key,
        }
        data = await self._call(
            "GET", f"{PLACES_API_BASE_URL}/details/json", "place_details", params=params
        )
        try:
            payload = _DetailPayload.model_validate(data)
        except ValidationError as e:
            raise GoogleApiError(f"Invalid place details payload: {e}", provider=self.provider) from e
        self._check_status(payload.status, payload.error_message, "place_details")

        result = payload.result
        return PlaceDetail(
            wheelchair_accessible=bool(result.wheelchair_accessible_entrance),
            parking=bool(result.parking),
            rating_count=result.user_ratings_total,
        )

    def _check_status(self, status: str, error_message: str | None, operation: str) -> None:
        if status == STATUS_OK:
            return
        logger.error(
            f"{self.provider} {operation} failed",
            status=status,
            error_message=error_message,
        )
        if status == STATUS_OVER_QUERY_LIMIT:
            raise GoogleRateLimitError(
                f"{self.provider} quota exceeded", details={"operation": operation}
            )
        raise GoogleApiError(
            f"Places API error: {status}",
            provider=self.provider,
            error_code=status,
        )
