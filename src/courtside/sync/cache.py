from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from .dependencies import Dependency, DependencySequencer, Fetcher
from .entry import QueryEntry, QueryStatus
from .events import ConnectivityMonitor, EventBus, LifecycleEvent
from .keys import QueryKey, has_prefix
from .pagination import PageFetcher, PageSequence, PaginationAccumulator
from .retry import RetryPolicy, Sleep, run_with_retry

logger = logging.getLogger(__name__)

Observer = Callable[[QueryEntry], None]


@dataclass(eq=False)
class _KeyState:
    entry: QueryEntry
    fetcher: Fetcher | None = None
    stale_time: float | None = None
    observers: list[Observer] = field(default_factory=list)
    task: asyncio.Task[QueryEntry] | None = None
    accumulator: PaginationAccumulator | None = None
    touched_at: float = 0.0


class QueryCache:
    """
    Process-wide cache of keyed remote queries.

    - At most one fetch per key is in flight; concurrent callers share its task.
    - Fresh entries (younger than their stale time, not invalidated) are served
      without calling the fetcher.
    - Failures are retried with exponential backoff, then stored on the entry.
    - Every transition is published synchronously to the key's observers.
    - Dependency edges are evaluated here whenever a parent key settles.

    All mutation happens on one event loop, which serializes it.
    """

    def __init__(
        self,
        *,
        stale_time_s: float = 5.0,
        gc_time_s: float = 300.0,
        retry: RetryPolicy | None = None,
        events: EventBus | None = None,
        connectivity: ConnectivityMonitor | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.stale_time_s = stale_time_s
        self.gc_time_s = gc_time_s
        self.retry = retry or RetryPolicy()
        self.dependencies = DependencySequencer()
        self.connectivity = connectivity
        self._clock = clock
        self._sleep = sleep
        self._states: dict[QueryKey, _KeyState] = {}
        self._unsubscribe_events = events.subscribe(self._on_event) if events is not None else None

    # -----------------------------
    # Reads
    # -----------------------------

    # Observers may hold an idle placeholder for a key; it only counts as an entry
    # once it has been requested.

    def __contains__(self, key: object) -> bool:
        state = self._states.get(key)  # type: ignore[arg-type]
        return state is not None and not state.entry.is_idle

    def __len__(self) -> int:
        return len(self.keys())

    def keys(self) -> list[QueryKey]:
        return [k for k, s in self._states.items() if not s.entry.is_idle]

    def peek(self, key: QueryKey) -> QueryEntry:
        """Current entry for `key`; an unstored idle entry if there is none."""
        state = self._states.get(key)
        return state.entry if state is not None else QueryEntry(key=key)

    def is_fresh(self, key: QueryKey) -> bool:
        state = self._states.get(key)
        return state is not None and self._is_fresh(state)

    # -----------------------------
    # Fetching
    # -----------------------------

    async def fetch(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        *,
        stale_time: float | None = None,
        enabled: bool = True,
    ) -> QueryEntry:
        """Return the cached entry for `key`, fetching it when missing or stale."""
        if not enabled or self.dependencies.is_blocked(key, self.peek):
            return self.peek(key)

        state = self._ensure_state(key)
        state.fetcher = fetcher
        if stale_time is not None:
            state.stale_time = stale_time
        return await self._fetch_state(state, force=False)

    async def fetch_infinite(
        self,
        key: QueryKey,
        fetch_page: PageFetcher,
        *,
        initial_token: Any = 1,
        stale_time: float | None = None,
        enabled: bool = True,
    ) -> QueryEntry:
        """
        Load the first page of a paginated key, or return its resident pages.

        The entry's data is a PageSequence. Resident pages are never re-fetched
        here; only refetch, invalidation and lifecycle revalidation reload them.
        """
        if not enabled or self.dependencies.is_blocked(key, self.peek):
            return self.peek(key)

        state = self._ensure_infinite_state(key, fetch_page, initial_token)
        if stale_time is not None:
            state.stale_time = stale_time

        if state.task is not None:
            return await asyncio.shield(state.task)
        if isinstance(state.entry.data, PageSequence) and not state.entry.is_invalidated:
            logger.debug("resident pages for %s (%d)", key, state.entry.data.page_count)
            return state.entry
        return await self._start(state)

    async def fetch_next_page(self, key: QueryKey) -> QueryEntry:
        """
        Fetch and append the next page of a paginated key.

        No-op before the first page has loaded (the key may still be gated), while
        a refetch is running, while another next-page fetch is in flight, or when
        the last page reports no more items.
        """
        state = self._states.get(key)
        if state is None or state.accumulator is None:
            return self.peek(key)
        if state.task is not None:
            return state.entry

        return await state.accumulator.fetch_next_page(
            lambda: state.entry,
            lambda entry: self._commit(state, entry),
            retry=self.retry,
            sleep=self._sleep,
        )

    async def refetch(self, key: QueryKey) -> QueryEntry:
        """Fetch `key` again regardless of staleness, joining any fetch in flight."""
        state = self._states.get(key)
        if state is None or state.fetcher is None:
            raise KeyError(f"{key} has never been fetched")
        return await self._fetch_state(state, force=True)

    async def wait(self, key: QueryKey) -> QueryEntry:
        """Wait for the fetch in flight for `key`, if any, and return the entry."""
        state = self._states.get(key)
        if state is None:
            return self.peek(key)
        if state.task is not None:
            return await asyncio.shield(state.task)
        return state.entry

    def prefetch(self, key: QueryKey, fetcher: Fetcher, *, stale_time: float | None = None) -> None:
        """Start fetching `key` without waiting; the entry is loading on return."""
        state = self._ensure_state(key)
        state.fetcher = fetcher
        if stale_time is not None:
            state.stale_time = stale_time
        if state.task is None and not self._is_fresh(state):
            self._spawn(state)

    def prefetch_infinite(
        self,
        key: QueryKey,
        fetch_page: PageFetcher,
        *,
        initial_token: Any = 1,
        stale_time: float | None = None,
    ) -> None:
        state = self._ensure_infinite_state(key, fetch_page, initial_token)
        if stale_time is not None:
            state.stale_time = stale_time
        resident = isinstance(state.entry.data, PageSequence) and not state.entry.is_invalidated
        if state.task is None and not resident:
            self._spawn(state)

    def invalidate(self, prefix: QueryKey = ()) -> list[QueryKey]:
        """
        Mark every entry whose key starts with `prefix` as stale.

        Observed entries are refetched in the background; the rest refetch on
        their next request.
        """
        matched: list[QueryKey] = []
        for key, state in list(self._states.items()):
            if not has_prefix(key, prefix) or state.entry.is_idle:
                continue
            matched.append(key)
            state.entry = replace(state.entry, is_invalidated=True)
            if state.observers and state.fetcher is not None and state.task is None:
                self._spawn(state)
        logger.debug("invalidated %d entries under %s", len(matched), prefix)
        return matched

    # -----------------------------
    # Observers
    # -----------------------------

    def subscribe(self, key: QueryKey, observer: Observer) -> Callable[[], None]:
        """Register `observer` for every new entry of `key`; returns an unsubscribe callable."""
        state = self._ensure_state(key)
        state.observers.append(observer)

        def unsubscribe() -> None:
            current = self._states.get(key)
            if current is not None and observer in current.observers:
                current.observers.remove(observer)
                current.touched_at = self._clock()

        return unsubscribe

    def observer_count(self, key: QueryKey) -> int:
        state = self._states.get(key)
        return len(state.observers) if state is not None else 0

    # -----------------------------
    # Dependencies
    # -----------------------------

    def add_dependency(self, dep: Dependency) -> None:
        """Declare `dep`; starts the child right away if its parent already qualifies."""
        self.dependencies.add(dep)
        if dep.is_satisfied(self.peek(dep.parent)):
            self._start_dependent(dep)

    def remove_dependency(self, dep: Dependency) -> None:
        self.dependencies.remove(dep)

    def _start_dependent(self, dep: Dependency) -> None:
        if self.dependencies.is_blocked(dep.child, self.peek):
            return
        logger.debug("starting %s after %s", dep.child, dep.parent)
        if dep.fetch_page is not None:
            self.prefetch_infinite(
                dep.child,
                dep.fetch_page,
                initial_token=dep.initial_token,
                stale_time=dep.stale_time,
            )
        elif dep.fetcher is not None:
            self.prefetch(dep.child, dep.fetcher, stale_time=dep.stale_time)

    # -----------------------------
    # Lifecycle
    # -----------------------------

    def _on_event(self, event: LifecycleEvent) -> None:
        if event is LifecycleEvent.FOREGROUND:
            self.collect_garbage()
            if self.connectivity is not None and not self.connectivity.is_online:
                logger.debug("skipping foreground revalidation while offline")
                return
        self.revalidate()

    def revalidate(self) -> list[QueryKey]:
        """Background-refetch every observed entry that is stale."""
        started: list[QueryKey] = []
        for key, state in list(self._states.items()):
            if not state.observers or state.fetcher is None or state.task is not None:
                continue
            if state.entry.is_idle or self._is_fresh(state):
                continue
            self._spawn(state)
            started.append(key)
        if started:
            logger.debug("revalidating %d stale entries", len(started))
        return started

    def collect_garbage(self) -> list[QueryKey]:
        """
        Evict entries that have been unobserved and idle for longer than gc_time.

        Runs on every foreground event; hosts without an app lifecycle call it directly.
        """
        now = self._clock()
        evicted: list[QueryKey] = []
        for key, state in list(self._states.items()):
            if state.observers or state.task is not None:
                continue
            if now - state.touched_at >= self.gc_time_s:
                del self._states[key]
                evicted.append(key)
        if evicted:
            logger.debug("evicted %d cache entries", len(evicted))
        return evicted

    async def aclose(self) -> None:
        """Cancel in-flight fetches and drop every entry."""
        tasks = [s.task for s in self._states.values() if s.task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._states.clear()
        if self._unsubscribe_events is not None:
            self._unsubscribe_events()
            self._unsubscribe_events = None

    # -----------------------------
    # Internals
    # -----------------------------

    def _ensure_state(self, key: QueryKey) -> _KeyState:
        state = self._states.get(key)
        if state is None:
            state = _KeyState(entry=QueryEntry(key=key), touched_at=self._clock())
            self._states[key] = state
        return state

    def _ensure_infinite_state(
        self, key: QueryKey, fetch_page: PageFetcher, initial_token: Any
    ) -> _KeyState:
        state = self._ensure_state(key)
        if state.accumulator is None:
            state.accumulator = PaginationAccumulator(fetch_page, initial_token=initial_token)
        else:
            state.accumulator.fetch_page = fetch_page
        accumulator = state.accumulator

        async def reload() -> PageSequence:
            previous = state.entry.data if isinstance(state.entry.data, PageSequence) else None
            return await accumulator.load(previous)

        state.fetcher = reload
        return state

    def _is_fresh(self, state: _KeyState) -> bool:
        entry = state.entry
        if not entry.is_success or entry.is_invalidated or entry.last_fetched_at is None:
            return False
        stale_time = self.stale_time_s if state.stale_time is None else state.stale_time
        return self._clock() - entry.last_fetched_at < stale_time

    async def _fetch_state(self, state: _KeyState, *, force: bool) -> QueryEntry:
        if state.task is not None:
            logger.debug("joining in-flight fetch for %s", state.entry.key)
            return await asyncio.shield(state.task)
        if not force and self._is_fresh(state):
            logger.debug("cache hit for %s", state.entry.key)
            return state.entry
        return await self._start(state)

    async def _start(self, state: _KeyState) -> QueryEntry:
        return await asyncio.shield(self._spawn(state))

    def _spawn(self, state: _KeyState) -> asyncio.Task[QueryEntry]:
        task = asyncio.get_running_loop().create_task(self._run(state))
        state.task = task
        self._commit(state, replace(state.entry, status=QueryStatus.LOADING, retry_count=0))
        return task

    async def _run(self, state: _KeyState) -> QueryEntry:
        key = state.entry.key
        fetcher = state.fetcher
        assert fetcher is not None

        def on_failure(failures: int, exc: BaseException, delay: float) -> None:
            logger.warning(
                "fetch %s failed (%s: %s); retry %d/%d in %.1fs",
                key,
                type(exc).__name__,
                exc,
                failures,
                self.retry.retries,
                delay,
            )
            self._commit(state, replace(state.entry, retry_count=failures, error=exc))

        try:
            data = await run_with_retry(
                fetcher, self.retry, sleep=self._sleep, on_failure=on_failure
            )
        except Exception as exc:
            logger.warning("fetch %s failed after %d retries: %s", key, self.retry.retries, exc)
            state.task = None
            state.touched_at = self._clock()
            failed = replace(
                state.entry,
                status=QueryStatus.ERROR,
                error=exc,
                retry_count=self.retry.retries,
            )
            self._commit(state, failed)
            return failed
        except asyncio.CancelledError:
            state.task = None
            raise

        now = self._clock()
        state.task = None
        state.touched_at = now
        entry = QueryEntry(
            key=key,
            status=QueryStatus.SUCCESS,
            data=data,
            last_fetched_at=now,
            retry_count=state.entry.retry_count,
        )
        self._commit(state, entry)
        return entry

    def _commit(self, state: _KeyState, entry: QueryEntry) -> None:
        previous = state.entry
        state.entry = entry
        for observer in list(state.observers):
            observer(entry)
        if entry.is_success and not previous.is_success:
            for dep in self.dependencies.ready(entry):
                self._start_dependent(dep)
