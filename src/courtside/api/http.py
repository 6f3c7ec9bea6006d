from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from .envelope import normalize_envelope, normalize_response
from .errors import MalformedResponseError, NetworkError

logger = logging.getLogger(__name__)

Json = dict[str, Any]


def _query_params(params: Mapping[str, Any] | None) -> dict[str, str]:
    out: dict[str, str] = {}
    for k, v in (params or {}).items():
        if v is None:
            continue
        if isinstance(v, bool):
            out[k] = "true" if v else "false"
        else:
            out[k] = str(v)
    return out


@dataclass
class BaseHttpClient:
    """
    Async HTTP client wrapper for the stats API.

    - Uses a single underlying httpx.AsyncClient for connection pooling.
    - Maps transport failures and non-2xx responses onto the stats error taxonomy.
    - Every response body goes through the envelope normalizer.
    """

    base_url: str
    timeout_s: float = 30.0
    connect_timeout_s: float = 10.0
    headers: Mapping[str, str] = field(default_factory=dict)

    transport: httpx.AsyncBaseTransport | None = None

    def __post_init__(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.base_url.rstrip("/") + "/",
            timeout=httpx.Timeout(self.timeout_s, connect=self.connect_timeout_s),
            headers={"Content-Type": "application/json", **dict(self.headers)},
            transport=self.transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> BaseHttpClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _send(
        self, path: str, params: Mapping[str, Any] | None
    ) -> tuple[httpx.Response, Any]:
        try:
            resp = await self._client.get(path.lstrip("/"), params=_query_params(params))
        except httpx.TransportError as e:
            raise NetworkError(f"GET {path} failed: {e}") from e

        logger.debug("GET %s -> %s", resp.request.url, resp.status_code)

        if not resp.is_success:
            # Error bodies are not interpreted; status alone decides the error kind.
            return resp, None

        try:
            body = resp.json()
        except ValueError as e:
            raise MalformedResponseError("Response was not valid JSON.") from e
        return resp, body

    async def get(self, path: str, *, params: Mapping[str, Any] | None = None) -> Any:
        """GET and return the unwrapped payload."""
        resp, body = await self._send(path, params)
        return normalize_response(resp.status_code, resp.reason_phrase, body)

    async def get_envelope(self, path: str, *, params: Mapping[str, Any] | None = None) -> Json:
        """GET and return the full validated envelope (payload plus `meta`)."""
        resp, body = await self._send(path, params)
        return normalize_envelope(resp.status_code, resp.reason_phrase, body)
