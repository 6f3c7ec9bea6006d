from __future__ import annotations

from collections import Counter
from datetime import date

import httpx
import pytest

from courtside.api.http import BaseHttpClient
from courtside.api.schemas import GameDetail
from courtside.api.stats import StatsApiClient
from courtside.queries import (
    close_screen,
    games_key,
    load_games,
    load_news,
    news_key,
    open_game_screen,
    open_player_screen,
    open_team_screen,
)
from courtside.sync.cache import QueryCache
from courtside.sync.keys import query_key
from courtside.sync.retry import NO_RETRY

PREFIX = "/api/v1/nba"


async def _no_sleep(seconds: float) -> None:
    return None


def _ok(data: object, **extra: object) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "data": data, **extra})


def _setup(routes: dict[str, httpx.Response]) -> tuple[QueryCache, StatsApiClient, Counter[str]]:
    hits: Counter[str] = Counter()

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix(PREFIX)
        hits[path] += 1
        if path not in routes:
            return httpx.Response(404)
        return routes[path]

    http = BaseHttpClient(
        base_url="https://stats.example.test", transport=httpx.MockTransport(handler)
    )
    return QueryCache(retry=NO_RETRY, sleep=_no_sleep), StatsApiClient(http=http), hits


@pytest.mark.asyncio
async def test_player_screen_loads_dependents_after_details() -> None:
    cache, api, hits = _setup(
        {
            "/players/1966": _ok({"id": "1966", "name": "LeBron James"}),
            "/players/1966/bio": _ok({"college": None}),
            "/players/1966/stats/current": _ok({"pts": 24.1}),
            "/players/1966/stats": _ok({"seasons": []}),
            "/players/1966/gamelog": _ok({"events": []}),
        }
    )

    screen = await open_player_screen(cache, api, "1966")
    for key in screen.dependents:
        assert (await cache.wait(key)).is_success, key

    assert screen.primary == query_key("playerDetails", "1966")
    assert cache.peek(query_key("playerCurrentStats", "1966")).data == {"pts": 24.1}
    assert all(count == 1 for count in hits.values())
    await api.http.aclose()


@pytest.mark.asyncio
async def test_missing_player_never_requests_secondary_resources() -> None:
    cache, api, hits = _setup({})

    screen = await open_player_screen(cache, api, "404")

    assert cache.peek(screen.primary).is_error
    assert all(cache.peek(k).is_idle for k in screen.dependents)
    assert list(hits) == ["/players/404"]
    await api.http.aclose()


@pytest.mark.asyncio
async def test_game_summary_only_for_final_games() -> None:
    cache, api, hits = _setup(
        {
            "/games/live": _ok({"gameId": "live", "gameStatus": 2}),
            "/games/done": _ok({"gameId": "done", "gameStatus": 3}),
            "/games/done/summary": _ok({"summary": "Celtics close it out."}),
        }
    )

    live = await open_game_screen(cache, api, "live")
    assert isinstance(cache.peek(live.primary).data, GameDetail)
    assert cache.peek(query_key("gameSummary", "live")).is_idle

    done = await open_game_screen(cache, api, "done")
    summary = await cache.wait(query_key("gameSummary", "done"))
    assert summary.data == {"summary": "Celtics close it out."}
    assert "/games/live/summary" not in hits

    close_screen(cache, live)
    close_screen(cache, done)
    assert cache.dependencies.edges_for(live.primary) == []
    await api.http.aclose()


@pytest.mark.asyncio
async def test_team_screen_paginates_schedule() -> None:
    schedule_pages = {
        1: {"events": [{"id": 1}, {"id": 2}]},
        2: {"events": [{"id": 3}]},
    }
    hits: Counter[str] = Counter()

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix(PREFIX)
        hits[path] += 1
        if path == "/teams/LAL":
            return _ok({"team": "Lakers"})
        if path == "/teams/LAL/schedule":
            page = int(request.url.params["page"])
            return _ok(schedule_pages[page], meta={"pagination": {"page": page, "pages": 2}})
        if path == "/teams/LAL/recent-games":
            assert request.url.params["limit"] == "5"
        return _ok({})

    http = BaseHttpClient(
        base_url="https://stats.example.test", transport=httpx.MockTransport(handler)
    )
    api = StatsApiClient(http=http)
    cache = QueryCache(retry=NO_RETRY, sleep=_no_sleep)

    await open_team_screen(cache, api, "LAL")
    schedule_key = query_key("teamSchedule", "LAL")
    first = await cache.wait(schedule_key)
    assert [e["id"] for e in first.data.items] == [1, 2]

    full = await cache.fetch_next_page(schedule_key)
    assert [e["id"] for e in full.data.items] == [1, 2, 3]
    assert full.data.has_more is False
    await cache.wait(query_key("teamLeaders", "LAL"))
    await cache.wait(query_key("teamRecentGames", "LAL"))
    assert hits["/teams/LAL/schedule"] == 2
    assert hits["/teams/LAL/leaders"] == 1
    assert hits["/teams/LAL/recent-games"] == 1
    await http.aclose()


@pytest.mark.asyncio
async def test_games_and_news_keys() -> None:
    cache, api, _ = _setup(
        {
            "/games/today": _ok({"games": [{"gameId": "g"}]}),
            "/news": _ok({"tweets": [{"id": "t"}]}, meta={"pagination": {"hasMore": False}}),
        }
    )

    games = await load_games(cache, api, date(2026, 1, 15))
    assert games.key == games_key(date(2026, 1, 15)) == ("games", "20260114")

    news = await load_news(cache, api)
    assert news.key == news_key()
    assert [t.id for t in news.data.items] == ["t"]
    await api.http.aclose()
