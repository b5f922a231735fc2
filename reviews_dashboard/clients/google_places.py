import logging
from typing import Any

import httpx

from reviews_dashboard.clients.errors import UpstreamError
from reviews_dashboard.config import Settings

LOGGER = logging.getLogger(__name__)

PLACE_FIELDS = "name,reviews,rating,user_ratings_total"


class GooglePlacesClient:
    def __init__(
        self,
        *,
        api_key: str = "",
        details_url: str = "https://maps.googleapis.com/maps/api/place/details/json",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key.strip()
        self._details_url = details_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "GooglePlacesClient":
        options: dict[str, Any] = {
            "api_key": settings.google_places_api_key,
            "details_url": settings.google_places_url,
            "timeout_seconds": settings.http_timeout_seconds,
        }
        options.update(overrides)
        return cls(**options)

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def fetch_place(self, place_id: str) -> dict[str, Any]:
        place_id_value = (place_id or "").strip()
        if not place_id_value:
            raise ValueError("placeId parameter is required.")
        if not self.enabled:
            raise UpstreamError("Google Places API key not configured.")

        params = {"place_id": place_id_value, "fields": PLACE_FIELDS, "key": self._api_key}
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = await client.get(self._details_url, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(f"Google Places API error: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Google Places API request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError("Google Places API returned invalid JSON") from exc

        if not isinstance(payload, dict):
            raise UpstreamError("Google Places API returned an unexpected payload")
        if payload.get("status") != "OK":
            raise UpstreamError(f"Google Places API status: {payload.get('status')}")

        result = payload.get("result")
        reviews = result.get("reviews") if isinstance(result, dict) else None
        LOGGER.info(
            "Fetched %s Google reviews for place %s",
            len(reviews) if isinstance(reviews, list) else 0,
            place_id_value,
        )
        return payload
