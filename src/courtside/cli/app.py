from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, TypeVar

import typer
from pydantic import BaseModel

from courtside.core.config import settings
from courtside.core.dates import current_china_date, format_date_for_api, parse_date_token
from courtside.core.logging import configure_logging
from courtside.queries import (
    ScreenQueries,
    load_games,
    load_leaderboard,
    load_news,
    load_standings,
    news_key,
    open_game_screen,
    open_player_screen,
    open_team_screen,
)
from courtside.runtime import SyncRuntime
from courtside.sync.entry import QueryEntry
from courtside.sync.pagination import PageSequence

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="Query the NBA stats API through the sync layer.")


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level."),
) -> None:
    configure_logging(log_level)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, PageSequence):
        return [_jsonable(i) for i in value.items]
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


def _echo_entry(entry: QueryEntry) -> None:
    if entry.is_error:
        typer.echo(f"{entry.key}: {type(entry.error).__name__}: {entry.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(_jsonable(entry.data), ensure_ascii=False, indent=2))


def _run(fn: Callable[[SyncRuntime], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with SyncRuntime.from_settings() as runtime:
            return await fn(runtime)

    return asyncio.run(runner())


async def _settle_screen(runtime: SyncRuntime, screen: ScreenQueries) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in screen.keys:
        entry = await runtime.cache.wait(key)
        name = str(key[0])
        if entry.is_success:
            out[name] = _jsonable(entry.data)
        elif entry.is_error:
            out[name] = {"error": f"{type(entry.error).__name__}: {entry.error}"}
        else:
            out[name] = None
    return out


def _parse_day(value: str | None) -> date:
    if value is None:
        return current_china_date()
    try:
        return parse_date_token(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


@app.command("date-token")
def date_token_cmd(
    day: str | None = typer.Argument(
        None, help="Calendar date (YYYY-MM-DD); defaults to today in China."
    ),
) -> None:
    """Print the games-by-date token for a calendar date."""
    typer.echo(format_date_for_api(_parse_day(day)))


@app.command("games")
def games_cmd(
    day: str | None = typer.Option(None, "--date", help="Calendar date (YYYY-MM-DD)."),
) -> None:
    """Games for a calendar day."""
    parsed = _parse_day(day)
    _echo_entry(_run(lambda rt: load_games(rt.cache, rt.api, parsed)))


@app.command("standings")
def standings_cmd() -> None:
    """Conference standings."""
    _echo_entry(_run(lambda rt: load_standings(rt.cache, rt.api)))


@app.command("leaders")
def leaders_cmd(
    season: str = typer.Option("2026|2", "--season", help="Season as <year>|<seasontype>."),
    position: str = typer.Option("all-positions", "--position", help="Position filter."),
) -> None:
    """Player leaderboard."""
    _echo_entry(
        _run(lambda rt: load_leaderboard(rt.cache, rt.api, season=season, position=position))
    )


@app.command("news")
def news_cmd(
    pages: int = typer.Option(1, "--pages", min=1, help="Number of pages to load."),
) -> None:
    """News feed, following pagination for --pages pages."""

    async def load(rt: SyncRuntime) -> QueryEntry:
        entry = await load_news(rt.cache, rt.api)
        while entry.is_success and entry.data.page_count < pages and entry.data.has_more:
            entry = await rt.cache.fetch_next_page(news_key())
            if entry.data.next_page_error is not None:
                break
        return entry

    entry = _run(load)
    _echo_entry(entry)
    if isinstance(entry.data, PageSequence) and entry.data.next_page_error is not None:
        typer.echo(f"next page failed: {entry.data.next_page_error}", err=True)


def _screen_cmd(opener: Callable[[SyncRuntime], Awaitable[ScreenQueries]]) -> None:
    async def load(rt: SyncRuntime) -> dict[str, Any]:
        return await _settle_screen(rt, await opener(rt))

    typer.echo(json.dumps(_run(load), ensure_ascii=False, indent=2))


@app.command("game")
def game_cmd(game_id: str = typer.Argument(..., help="Game id.")) -> None:
    """Game detail plus its AI summary when the game is final."""
    _screen_cmd(lambda rt: open_game_screen(rt.cache, rt.api, game_id))


@app.command("player")
def player_cmd(player_id: str = typer.Argument(..., help="Player id.")) -> None:
    """Player details, bio, stats and game log."""
    _screen_cmd(lambda rt: open_player_screen(rt.cache, rt.api, player_id))


@app.command("team")
def team_cmd(team: str = typer.Argument(..., help="Team abbreviation (e.g. LAL).")) -> None:
    """Team overview, leaders, recent games and first schedule page."""
    _screen_cmd(lambda rt: open_team_screen(rt.cache, rt.api, team))
