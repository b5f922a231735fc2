import json
import logging
from pathlib import Path
from typing import Any

import httpx

from reviews_dashboard.clients.errors import UpstreamError
from reviews_dashboard.config import Settings

LOGGER = logging.getLogger(__name__)

EMPTY_PAYLOAD: dict[str, Any] = {"status": "success", "result": []}


class HostawayClient:
    def __init__(
        self,
        *,
        account_id: str = "",
        access_token: str = "",
        base_url: str = "https://api.hostaway.com",
        page_limit: int = 100,
        timeout_seconds: float = 10.0,
        mock_path: str | Path | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._account_id = account_id.strip()
        self._access_token = access_token.strip()
        self._base_url = base_url.rstrip("/")
        self._page_limit = max(1, int(page_limit))
        self._timeout_seconds = timeout_seconds
        self._mock_path = Path(mock_path) if mock_path else None
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "HostawayClient":
        options: dict[str, Any] = {
            "account_id": settings.hostaway_account_id,
            "access_token": settings.hostaway_access_token,
            "base_url": settings.hostaway_base_url,
            "page_limit": settings.hostaway_page_limit,
            "timeout_seconds": settings.http_timeout_seconds,
            "mock_path": settings.hostaway_mock_path,
        }
        options.update(overrides)
        return cls(**options)

    @property
    def has_credentials(self) -> bool:
        return bool(self._account_id and self._access_token)

    async def fetch_raw(self) -> tuple[dict[str, Any], str | None]:
        """Return the raw reviews payload and, when mock data was used, why."""
        if not self.has_credentials:
            LOGGER.info("Using mock Hostaway data (no API credentials)")
            return self.load_mock(), "Hostaway credentials not configured, using mock data"

        try:
            payload = await self._request_reviews()
        except UpstreamError as exc:
            LOGGER.exception("Failed to fetch from Hostaway API, falling back to mock data")
            return self.load_mock(), f"{exc}; using mock data"

        records = payload.get("result")
        if not isinstance(records, list) or not records:
            LOGGER.info("Hostaway API returned no results, falling back to mock data")
            return self.load_mock(), "Hostaway API returned no results, using mock data"

        LOGGER.info("Fetched %s reviews from Hostaway API", len(records))
        return payload, None

    def load_mock(self) -> dict[str, Any]:
        if self._mock_path is None:
            return dict(EMPTY_PAYLOAD)
        try:
            payload = json.loads(self._mock_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            LOGGER.exception("Failed to load mock Hostaway data from %s", self._mock_path)
            return dict(EMPTY_PAYLOAD)
        return payload if isinstance(payload, dict) else dict(EMPTY_PAYLOAD)

    async def _request_reviews(self) -> dict[str, Any]:
        url = f"{self._base_url}/v1/reviews"
        params = {"accountId": self._account_id, "limit": self._page_limit}
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
            "Cache-control": "no-cache",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(f"Hostaway API error: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Hostaway API request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError("Hostaway API returned invalid JSON") from exc

        if not isinstance(payload, dict):
            raise UpstreamError("Hostaway API returned an unexpected payload")
        if payload.get("status") == "fail":
            raise UpstreamError(f"Hostaway API error: {payload.get('message', 'unknown error')}")
        return payload
