from __future__ import annotations

import httpx
import pytest

from courtside.api.errors import HttpError, MalformedResponseError, NetworkError, RateLimitError
from courtside.api.http import BaseHttpClient


def _client(handler) -> BaseHttpClient:
    return BaseHttpClient(
        base_url="https://stats.example.test", transport=httpx.MockTransport(handler)
    )


@pytest.mark.asyncio
async def test_get_drops_none_params_and_unwraps_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "data": [1, 2]})

    async with _client(handler) as http:
        data = await http.get("/api/v1/nba/news", params={"page": 2, "refresh": True, "q": None})

    assert data == [1, 2]
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/api/v1/nba/news"
    assert dict(seen[0].url.params) == {"page": "2", "refresh": "true"}


@pytest.mark.asyncio
async def test_get_envelope_returns_meta() -> None:
    body = {"success": True, "data": {}, "meta": {"pagination": {"page": 1, "pages": 1}}}

    async with _client(lambda request: httpx.Response(200, json=body)) as http:
        assert await http.get_envelope("/x") == body


@pytest.mark.asyncio
async def test_status_errors_are_mapped() -> None:
    async with _client(lambda request: httpx.Response(429)) as http:
        with pytest.raises(RateLimitError):
            await http.get("/x")

    async with _client(lambda request: httpx.Response(404, text="<html>")) as http:
        with pytest.raises(HttpError) as excinfo:
            await http.get("/x")
    assert excinfo.value.status == 404
    assert excinfo.value.status_text == "Not Found"


@pytest.mark.asyncio
async def test_transport_failure_is_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as http:
        with pytest.raises(NetworkError) as excinfo:
            await http.get("/x")
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_invalid_json_is_malformed() -> None:
    async with _client(lambda request: httpx.Response(200, text="not json")) as http:
        with pytest.raises(MalformedResponseError):
            await http.get("/x")
