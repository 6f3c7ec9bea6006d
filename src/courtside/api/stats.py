from __future__ import annotations

from datetime import date
from typing import Any

from courtside.core.dates import current_china_date, format_date_for_api
from courtside.sync.pagination import Page

from .envelope import parse_payload
from .http import BaseHttpClient, Json
from .schemas import (
    GameDetail,
    HasMorePagination,
    NewsPayload,
    PageCountPagination,
    TeamSchedulePayload,
    WireModel,
)

API_PREFIX = "/api/v1/nba"

DEFAULT_LEADERBOARD_SEASON = "2026|2"
DEFAULT_LEADERBOARD_SORT = "offensive.avgPoints:desc"
REGULAR_SEASON = 2


def _envelope_data(envelope: Json) -> Any:
    # Legacy bodies carry the payload at the top level.
    return envelope["data"] if "data" in envelope else envelope


def _pagination(envelope: Json, model: type[WireModel]) -> tuple[bool, int | None]:
    meta = envelope.get("meta")
    pagination = meta.get("pagination") if isinstance(meta, dict) else None
    if pagination is None:
        return False, None
    info = parse_payload(model, pagination)
    return info.page_info()  # type: ignore[attr-defined]


class StatsApiClient:
    """One method per resource family of the NBA stats API."""

    def __init__(self, *, http: BaseHttpClient) -> None:
        self.http = http

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.http.get(f"{API_PREFIX}{path}", params=params)

    async def _get_envelope(self, path: str, params: dict[str, Any] | None = None) -> Json:
        return await self.http.get_envelope(f"{API_PREFIX}{path}", params=params)

    # games

    async def fetch_games(self, day: date | None = None) -> Any:
        """Games for a calendar day (China date); defaults to today."""
        token = format_date_for_api(day if day is not None else current_china_date())
        return await self._get("/games/today", {"date": token})

    async def fetch_game_detail(self, game_id: str) -> GameDetail:
        return parse_payload(GameDetail, await self._get(f"/games/{game_id}"))

    async def fetch_game_summary(self, game_id: str) -> Any:
        """AI-written recap; only produced for finished games."""
        return await self._get(f"/games/{game_id}/summary")

    async def fetch_standings(self) -> Any:
        return await self._get("/standings")

    # teams

    async def fetch_team_overview(self, team: str) -> Any:
        return await self._get(f"/teams/{team}")

    async def fetch_team_leaders(self, team: str) -> Any:
        return await self._get(f"/teams/{team}/leaders")

    async def fetch_team_recent_games(
        self, team: str, *, seasontype: int = REGULAR_SEASON, page: int = 1, limit: int = 20
    ) -> Any:
        return await self._get(
            f"/teams/{team}/recent-games",
            {"seasontype": seasontype, "page": page, "limit": limit},
        )

    async def fetch_team_schedule(
        self, team: str, *, seasontype: int = REGULAR_SEASON, page: int = 1, limit: int = 20
    ) -> Page:
        """
        One page of a team's schedule.

        Pagination meta: `{page, pages}`; next token is `page + 1` while `page < pages`.
        """
        envelope = await self._get_envelope(
            f"/teams/{team}/schedule",
            {"seasontype": seasontype, "page": page, "limit": limit},
        )
        payload = parse_payload(TeamSchedulePayload, _envelope_data(envelope))
        has_more, next_page = _pagination(envelope, PageCountPagination)
        return Page.of(payload.events, has_more=has_more, next_token=next_page)

    # players

    async def fetch_player_details(self, player_id: str) -> Any:
        return await self._get(f"/players/{player_id}")

    async def fetch_player_bio(self, player_id: str) -> Any:
        return await self._get(f"/players/{player_id}/bio")

    async def fetch_player_current_stats(self, player_id: str) -> Any:
        return await self._get(f"/players/{player_id}/stats/current")

    async def fetch_player_regular_stats(self, player_id: str) -> Any:
        return await self._get(f"/players/{player_id}/stats")

    async def fetch_player_advanced_stats(self, player_id: str) -> Any:
        return await self._get(f"/players/{player_id}/stats/advanced")

    async def fetch_player_game_log(self, player_id: str) -> Any:
        return await self._get(f"/players/{player_id}/gamelog")

    async def fetch_player_leaderboard(
        self,
        *,
        season: str = DEFAULT_LEADERBOARD_SEASON,
        position: str = "all-positions",
        conference: str = "0",
        page: int = 1,
        limit: int = 100,
        sort: str = DEFAULT_LEADERBOARD_SORT,
    ) -> Any:
        """Players ranked by a stat; `season` is `<year>|<seasontype>`."""
        return await self._get(
            "/stats/players",
            {
                "season": season,
                "position": position,
                "conference": conference,
                "page": page,
                "limit": limit,
                "sort": sort,
            },
        )

    # news

    async def fetch_news(self, *, page: int = 1, limit: int = 20, refresh: bool = False) -> Page:
        """
        One page of the news feed.

        Pagination meta: `{hasMore, nextPage}`. `refresh=true` asks the server to
        bypass its own cache and is only sent when set.
        """
        params: dict[str, Any] = {"page": page, "limit": limit}
        if refresh:
            params["refresh"] = True
        envelope = await self._get_envelope("/news", params)

        payload = parse_payload(NewsPayload, _envelope_data(envelope))
        has_more, next_page = _pagination(envelope, HasMorePagination)
        return Page.of(payload.tweets, has_more=has_more, next_token=next_page)
