import logging

import httpx

from eywa.exceptions.custom import GooglePlacesError, NotConfiguredError, RateLimitError
from eywa.mappers.similarity import normalize
from eywa.schemas.google_places import GooglePlace, PlaceVerification, TextSearchResponse

logger = logging.getLogger(__name__)

SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"
DETAILS_URL = "https://places.googleapis.com/v1/places"

FIELD_MASK = (
    "places.id,"
    "places.displayName,"
    "places.formattedAddress,"
    "places.rating,"
    "places.userRatingCount"
)

DETAILS_FIELD_MASK = (
    "id,"
    "displayName,"
    "formattedAddress,"
    "rating,"
    "userRatingCount,"
    "reviews,"
    "googleMapsUri,"
    "websiteUri"
)

# Statuses meaning the place id no longer resolves to a listing
_NOT_FOUND_STATUSES = (400, 404)


def build_search_query(
    name: str | None,
    city: str | None = None,
    country: str | None = None,
) -> str:
    parts = [p for p in (name, city, country) if p]
    return ", ".join(parts)


class GooglePlacesService:
    def __init__(self, client: httpx.AsyncClient, api_key: str):
        self._client = client
        self._api_key = api_key

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _check_configured(self) -> None:
        if not self._api_key:
            raise NotConfiguredError("Google Places")

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code == 429:
            raise RateLimitError("Google Places")
        if resp.status_code >= 400:
            raise GooglePlacesError(resp.text, status_code=resp.status_code)

    async def search_hotel(self, name: str, city: str | None = None, country: str | None = None) -> list[GooglePlace]:
        """Text-search lodging listings. Returns an empty list when nothing matches."""
        self._check_configured()
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self._api_key,
            "X-Goog-FieldMask": FIELD_MASK,
        }
        query = build_search_query(name, city, country)
        payload = {"textQuery": query, "includedType": "lodging"}

        resp = await self._client.post(SEARCH_URL, json=payload, headers=headers)
        self._raise_for_status(resp)

        data = TextSearchResponse(**resp.json())
        if not data.places:
            logger.info("No results for query: %s", query)
        return data.places

    async def get_place_details(self, place_id: str) -> GooglePlace | None:
        """Fetch rating, review count and latest reviews. None if the place is gone."""
        self._check_configured()
        headers = {
            "X-Goog-Api-Key": self._api_key,
            "X-Goog-FieldMask": DETAILS_FIELD_MASK,
        }

        resp = await self._client.get(
            f"{DETAILS_URL}/{place_id}", headers=headers
        )

        if resp.status_code in _NOT_FOUND_STATUSES:
            logger.info("Place %s not found (status=%s)", place_id, resp.status_code)
            return None
        self._raise_for_status(resp)

        return GooglePlace(**resp.json())

    async def verify_place_id(self, place_id: str, expected_name: str) -> PlaceVerification:
        """Check a place id still exists and roughly carries the expected name. Never raises."""
        try:
            place = await self.get_place_details(place_id)
        except Exception:
            logger.exception("Error verifying place_id %s", place_id)
            return PlaceVerification(valid=False, match_score=0.0)

        if place is None:
            return PlaceVerification(valid=False, match_score=0.0)

        actual_name = place.displayName.text if place.displayName else None
        expected, actual = normalize(expected_name), normalize(actual_name or "")
        if expected and expected == actual:
            score = 1.0
        elif expected and actual and (expected in actual or actual in expected):
            score = 0.7
        else:
            score = 0.3

        return PlaceVerification(valid=True, match_score=score, actual_name=actual_name)
