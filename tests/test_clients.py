import asyncio
import json
from pathlib import Path

import httpx
import pytest

from reviews_dashboard.clients.errors import UpstreamError
from reviews_dashboard.clients.google_places import GooglePlacesClient
from reviews_dashboard.clients.hostaway import EMPTY_PAYLOAD, HostawayClient

LIVE_PAYLOAD = {
    "status": "success",
    "result": [{"id": 99, "rating": 9, "listingName": "Cozy Loft", "submittedAt": "2024-05-01 10:00:00"}],
}


def _mock_file(tmp_path: Path) -> Path:
    path = tmp_path / "mock.json"
    path.write_text(json.dumps({"status": "success", "result": [{"id": 1}]}), encoding="utf-8")
    return path


def test_hostaway_without_credentials_uses_mock_data(tmp_path: Path) -> None:
    client = HostawayClient(mock_path=_mock_file(tmp_path))

    payload, reason = asyncio.run(client.fetch_raw())

    assert payload["result"] == [{"id": 1}]
    assert "credentials" in reason


def test_hostaway_live_request_sends_bearer_token(tmp_path: Path) -> None:
    seen: dict[str, httpx.Request] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=LIVE_PAYLOAD)

    client = HostawayClient(
        account_id="61148",
        access_token="secret-token",
        base_url="https://api.example.test/",
        page_limit=50,
        mock_path=_mock_file(tmp_path),
        transport=httpx.MockTransport(handler),
    )

    payload, reason = asyncio.run(client.fetch_raw())

    assert payload == LIVE_PAYLOAD
    assert reason is None
    request = seen["request"]
    assert request.url.path == "/v1/reviews"
    assert request.url.params["accountId"] == "61148"
    assert request.url.params["limit"] == "50"
    assert request.headers["Authorization"] == "Bearer secret-token"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"status": "fail"}),
        httpx.Response(200, json={"status": "fail", "message": "Unauthorized"}),
        httpx.Response(200, json={"status": "success", "result": []}),
        httpx.Response(200, text="<html>maintenance</html>"),
    ],
)
def test_hostaway_falls_back_to_mock_data(tmp_path: Path, response: httpx.Response) -> None:
    client = HostawayClient(
        account_id="61148",
        access_token="secret-token",
        mock_path=_mock_file(tmp_path),
        transport=httpx.MockTransport(lambda request: response),
    )

    payload, reason = asyncio.run(client.fetch_raw())

    assert payload["result"] == [{"id": 1}]
    assert reason.endswith("using mock data")


def test_hostaway_unreadable_mock_gives_empty_payload(tmp_path: Path) -> None:
    client = HostawayClient(mock_path=tmp_path / "missing.json")

    assert client.load_mock() == EMPTY_PAYLOAD


def test_google_client_disabled_without_key() -> None:
    client = GooglePlacesClient()

    assert client.enabled is False
    with pytest.raises(UpstreamError):
        asyncio.run(client.fetch_place("place-1"))


def test_google_client_requires_place_id() -> None:
    client = GooglePlacesClient(api_key="key")

    with pytest.raises(ValueError):
        asyncio.run(client.fetch_place("  "))


def test_google_client_requests_place_details() -> None:
    seen: dict[str, httpx.Request] = {}
    body = {"status": "OK", "result": {"name": "Cozy Loft", "reviews": []}}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=body)

    client = GooglePlacesClient(
        api_key="key",
        details_url="https://places.example.test/details/json",
        transport=httpx.MockTransport(handler),
    )

    assert asyncio.run(client.fetch_place("place-1")) == body
    params = seen["request"].url.params
    assert params["place_id"] == "place-1"
    assert params["fields"] == "name,reviews,rating,user_ratings_total"
    assert params["key"] == "key"


def test_google_client_raises_on_error_status() -> None:
    client = GooglePlacesClient(
        api_key="key",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"status": "INVALID_REQUEST"})),
    )

    with pytest.raises(UpstreamError, match="INVALID_REQUEST"):
        asyncio.run(client.fetch_place("place-1"))
