"""
Query keys, fetchers and dependency edges for each screen of the stats app.

Detail screens fetch one primary resource and gate their secondary resources on
it, so nothing secondary is requested for a subject that does not exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from courtside.api.schemas import GameDetail
from courtside.api.stats import DEFAULT_LEADERBOARD_SEASON, StatsApiClient
from courtside.core.dates import current_china_date, format_date_for_api
from courtside.sync.cache import QueryCache
from courtside.sync.dependencies import Dependency
from courtside.sync.entry import QueryEntry
from courtside.sync.keys import QueryKey, query_key

NEWS_PAGE_SIZE = 20
RECENT_GAMES_LIMIT = 5


def games_key(day: date) -> QueryKey:
    return query_key("games", format_date_for_api(day))


def standings_key() -> QueryKey:
    return query_key("standings")


def leaderboard_key(season: str, position: str) -> QueryKey:
    return query_key("playerStats", season, position)


def news_key() -> QueryKey:
    return query_key("news")


@dataclass(frozen=True)
class ScreenQueries:
    primary: QueryKey
    edges: tuple[Dependency, ...] = ()

    @property
    def dependents(self) -> tuple[QueryKey, ...]:
        return tuple(e.child for e in self.edges)

    @property
    def keys(self) -> tuple[QueryKey, ...]:
        return (self.primary, *self.dependents)


def close_screen(cache: QueryCache, screen: ScreenQueries) -> None:
    """Drop the screen's dependency edges; cached entries stay until collected."""
    for edge in screen.edges:
        cache.remove_dependency(edge)


async def _open(
    cache: QueryCache, primary: QueryKey, fetcher: Any, edges: list[Dependency]
) -> ScreenQueries:
    for edge in edges:
        cache.add_dependency(edge)
    await cache.fetch(primary, fetcher)
    return ScreenQueries(primary=primary, edges=tuple(edges))


# list screens


async def load_games(cache: QueryCache, api: StatsApiClient, day: date | None = None) -> QueryEntry:
    day = day if day is not None else current_china_date()
    return await cache.fetch(games_key(day), lambda: api.fetch_games(day))


async def load_standings(cache: QueryCache, api: StatsApiClient) -> QueryEntry:
    return await cache.fetch(standings_key(), api.fetch_standings)


async def load_leaderboard(
    cache: QueryCache,
    api: StatsApiClient,
    *,
    season: str = DEFAULT_LEADERBOARD_SEASON,
    position: str = "all-positions",
) -> QueryEntry:
    return await cache.fetch(
        leaderboard_key(season, position),
        lambda: api.fetch_player_leaderboard(season=season, position=position),
    )


async def load_news(cache: QueryCache, api: StatsApiClient) -> QueryEntry:
    return await cache.fetch_infinite(
        news_key(),
        lambda page: api.fetch_news(page=page, limit=NEWS_PAGE_SIZE),
        initial_token=1,
    )


# detail screens


def _is_final_game(game: Any) -> bool:
    return isinstance(game, GameDetail) and game.is_final


async def open_game_screen(cache: QueryCache, api: StatsApiClient, game_id: str) -> ScreenQueries:
    """Game detail; the AI summary only exists once the game is final."""
    detail = query_key("gameDetail", game_id)
    edges = [
        Dependency(
            parent=detail,
            child=query_key("gameSummary", game_id),
            fetcher=lambda: api.fetch_game_summary(game_id),
            when=_is_final_game,
        )
    ]
    return await _open(cache, detail, lambda: api.fetch_game_detail(game_id), edges)


async def open_player_screen(
    cache: QueryCache, api: StatsApiClient, player_id: str
) -> ScreenQueries:
    details = query_key("playerDetails", player_id)
    edges = [
        Dependency(
            details,
            query_key("playerBio", player_id),
            fetcher=lambda: api.fetch_player_bio(player_id),
        ),
        Dependency(
            details,
            query_key("playerCurrentStats", player_id),
            fetcher=lambda: api.fetch_player_current_stats(player_id),
        ),
        Dependency(
            details,
            query_key("playerRegularStats", player_id),
            fetcher=lambda: api.fetch_player_regular_stats(player_id),
        ),
        Dependency(
            details,
            query_key("playerGameLog", player_id),
            fetcher=lambda: api.fetch_player_game_log(player_id),
        ),
    ]
    return await _open(cache, details, lambda: api.fetch_player_details(player_id), edges)


async def open_team_screen(cache: QueryCache, api: StatsApiClient, team: str) -> ScreenQueries:
    overview = query_key("teamOverview", team)
    edges = [
        Dependency(
            overview,
            query_key("teamLeaders", team),
            fetcher=lambda: api.fetch_team_leaders(team),
        ),
        Dependency(
            overview,
            query_key("teamRecentGames", team),
            fetcher=lambda: api.fetch_team_recent_games(team, limit=RECENT_GAMES_LIMIT),
        ),
        Dependency(
            overview,
            query_key("teamSchedule", team),
            fetch_page=lambda page: api.fetch_team_schedule(team, page=page),
            initial_token=1,
        ),
    ]
    return await _open(cache, overview, lambda: api.fetch_team_overview(team), edges)
