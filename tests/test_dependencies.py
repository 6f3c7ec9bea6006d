from __future__ import annotations

import asyncio
from typing import Any

import pytest

from courtside.api.errors import HttpError
from courtside.sync.cache import QueryCache
from courtside.sync.dependencies import Dependency
from courtside.sync.entry import QueryStatus
from courtside.sync.keys import query_key
from courtside.sync.retry import NO_RETRY

DETAILS = query_key("playerDetails", "1966")
BIO = query_key("playerBio", "1966")


async def _no_sleep(seconds: float) -> None:
    return None


def _make_cache() -> QueryCache:
    return QueryCache(retry=NO_RETRY, sleep=_no_sleep)


class Gate:
    """Fetcher that blocks until released and counts its calls."""

    def __init__(self, result: Any) -> None:
        self.result = result
        self.calls = 0
        self.release = asyncio.Event()

    async def __call__(self) -> Any:
        self.calls += 1
        await self.release.wait()
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


def test_dependency_requires_exactly_one_fetcher() -> None:
    async def fetch() -> None:
        return None

    async def fetch_page(token: Any) -> None:
        return None

    with pytest.raises(ValueError):
        Dependency(DETAILS, BIO)
    with pytest.raises(ValueError):
        Dependency(DETAILS, BIO, fetcher=fetch, fetch_page=fetch_page)
    with pytest.raises(ValueError):
        Dependency(DETAILS, DETAILS, fetcher=fetch)


@pytest.mark.asyncio
async def test_child_stays_idle_while_parent_loads_then_starts_on_success() -> None:
    cache = _make_cache()
    parent, child = Gate({"id": "1966"}), Gate({"born": "1984"})
    cache.add_dependency(Dependency(DETAILS, BIO, fetcher=child))
    child_statuses: list[QueryStatus] = []
    cache.subscribe(BIO, lambda e: child_statuses.append(e.status))

    loading = asyncio.create_task(cache.fetch(DETAILS, parent))
    await asyncio.sleep(0)
    assert cache.peek(DETAILS).is_loading
    assert cache.peek(BIO).is_idle
    assert BIO not in cache

    # Direct requests for a gated key do nothing either.
    assert (await cache.fetch(BIO, child)).is_idle
    assert child.calls == 0

    parent.release.set()
    await loading

    assert cache.peek(BIO).is_loading
    assert child_statuses == [QueryStatus.LOADING]

    child.release.set()
    assert (await cache.wait(BIO)).data == {"born": "1984"}
    assert child.calls == 1


@pytest.mark.asyncio
async def test_parent_error_keeps_children_idle() -> None:
    cache = _make_cache()
    parent = Gate(HttpError(404, "Not Found"))
    parent.release.set()
    child = Gate({})
    cache.add_dependency(Dependency(DETAILS, BIO, fetcher=child))

    entry = await cache.fetch(DETAILS, parent)
    await asyncio.sleep(0)

    assert entry.is_error
    assert cache.peek(BIO).is_idle
    assert not cache.peek(BIO).is_error
    assert child.calls == 0
    assert cache.revalidate() == []


@pytest.mark.asyncio
async def test_when_predicate_gates_on_parent_data() -> None:
    cache = _make_cache()
    game, summary = query_key("gameDetail", "g1"), query_key("gameSummary", "g1")
    status = {"gameStatus": 2}

    async def fetch_game() -> dict[str, int]:
        return dict(status)

    async def fetch_summary() -> dict[str, str]:
        return {"summary": "Lakers win"}

    cache.add_dependency(
        Dependency(game, summary, fetcher=fetch_summary, when=lambda g: g["gameStatus"] == 3)
    )

    await cache.fetch(game, fetch_game)
    assert cache.peek(summary).is_idle

    status["gameStatus"] = 3
    await cache.refetch(game)
    assert (await cache.wait(summary)).data == {"summary": "Lakers win"}


@pytest.mark.asyncio
async def test_edge_declared_after_parent_success_starts_child_immediately() -> None:
    cache = _make_cache()

    async def fetch_details() -> dict[str, str]:
        return {"id": "1966"}

    child = Gate({"born": "1984"})
    await cache.fetch(DETAILS, fetch_details)

    cache.add_dependency(Dependency(DETAILS, BIO, fetcher=child))
    assert cache.peek(BIO).is_loading

    child.release.set()
    assert (await cache.wait(BIO)).is_success


@pytest.mark.asyncio
async def test_removed_edge_no_longer_gates() -> None:
    cache = _make_cache()

    async def fetch_bio() -> str:
        return "bio"

    edge = Dependency(DETAILS, BIO, fetcher=fetch_bio)
    cache.add_dependency(edge)
    assert (await cache.fetch(BIO, fetch_bio)).is_idle

    cache.remove_dependency(edge)
    assert cache.dependencies.edges_for(DETAILS) == []
    assert (await cache.fetch(BIO, fetch_bio)).data == "bio"
