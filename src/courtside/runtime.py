from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from courtside.api.http import BaseHttpClient
from courtside.api.stats import StatsApiClient
from courtside.core.config import Settings, settings
from courtside.sync.cache import QueryCache
from courtside.sync.events import AppStateMonitor, ConnectivityMonitor, EventBus

logger = logging.getLogger(__name__)


@dataclass
class SyncRuntime:
    """
    The process-wide sync service: one HTTP client, one event bus, one cache.

    Use as an async context manager; leaving it cancels in-flight fetches and
    closes the connection pool.
    """

    http: BaseHttpClient
    api: StatsApiClient
    events: EventBus
    connectivity: ConnectivityMonitor
    app_state: AppStateMonitor
    cache: QueryCache

    @classmethod
    def from_settings(
        cls,
        cfg: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> SyncRuntime:
        cfg = cfg or settings
        http = BaseHttpClient(
            base_url=cfg.api_base_url,
            timeout_s=cfg.http_timeout_s,
            connect_timeout_s=cfg.http_connect_timeout_s,
            transport=transport,
        )
        events = EventBus()
        connectivity = ConnectivityMonitor(events)
        cache = QueryCache(
            stale_time_s=cfg.stale_time_s,
            gc_time_s=cfg.gc_time_s,
            retry=cfg.retry_policy(),
            events=events,
            connectivity=connectivity,
        )
        return cls(
            http=http,
            api=StatsApiClient(http=http),
            events=events,
            connectivity=connectivity,
            app_state=AppStateMonitor(events),
            cache=cache,
        )

    def set_app_active(self, active: bool) -> None:
        self.app_state.set_active(active)

    def set_online(self, online: bool) -> None:
        self.connectivity.set_online(online)

    async def aclose(self) -> None:
        await self.cache.aclose()
        await self.http.aclose()
        logger.debug("sync runtime closed")

    async def __aenter__(self) -> SyncRuntime:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
