from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from .entry import QueryEntry
from .retry import RetryPolicy, Sleep, run_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Page:
    """One fetched slice of a list resource, in server order."""

    items: tuple[Any, ...]
    has_more: bool = False
    next_token: Any = None

    @classmethod
    def of(cls, items: Iterable[Any], *, has_more: bool, next_token: Any = None) -> Page:
        items = tuple(items)
        if not has_more:
            next_token = None
        return cls(items=items, has_more=has_more and next_token is not None, next_token=next_token)


class PageStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


@dataclass(frozen=True)
class PageSequence:
    """
    Accumulated list: all fetched pages of one key, in fetch order.

    `next_page_status`/`next_page_error` describe only the page in flight; a failed
    next page never touches the pages already here.
    """

    pages: tuple[Page, ...] = ()
    next_page_status: PageStatus = PageStatus.IDLE
    next_page_error: BaseException | None = field(default=None, compare=False)

    @property
    def items(self) -> list[Any]:
        out: list[Any] = []
        for page in self.pages:
            out.extend(page.items)
        return out

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def has_more(self) -> bool:
        return bool(self.pages) and self.pages[-1].has_more

    @property
    def next_token(self) -> Any:
        return self.pages[-1].next_token if self.has_more else None

    @property
    def is_fetching_next_page(self) -> bool:
        return self.next_page_status is PageStatus.LOADING

    def append(self, page: Page) -> PageSequence:
        return PageSequence(pages=(*self.pages, page))

    def with_next_page_status(
        self, status: PageStatus, error: BaseException | None = None
    ) -> PageSequence:
        return replace(self, next_page_status=status, next_page_error=error)


PageFetcher = Callable[[Any], Awaitable[Page]]


class PaginationAccumulator:
    """
    Load-more orchestration for one paginated key.

    Page tokens are opaque: the accumulator only asks the last page whether more
    exist and hands its token back to `fetch_page`.
    """

    def __init__(self, fetch_page: PageFetcher, *, initial_token: Any = 1) -> None:
        self.fetch_page = fetch_page
        self.initial_token = initial_token
        self._next_in_flight = False

    @property
    def is_fetching_next_page(self) -> bool:
        return self._next_in_flight

    async def load(self, previous: PageSequence | None = None) -> PageSequence:
        """
        Fetch the first page, or re-fetch as many pages as `previous` held.

        Refetched pages follow the fresh tokens and stop early when the server
        reports no more pages.
        """
        want = max(1, previous.page_count if previous is not None else 1)
        pages: list[Page] = []
        token = self.initial_token
        while len(pages) < want:
            page = await self.fetch_page(token)
            pages.append(page)
            if not page.has_more:
                break
            token = page.next_token
        return PageSequence(pages=tuple(pages))

    def can_fetch_next(self, entry: QueryEntry) -> bool:
        seq = entry.data
        if not isinstance(seq, PageSequence) or not seq.pages:
            return False
        return seq.has_more and not self._next_in_flight

    async def fetch_next_page(
        self,
        read: Callable[[], QueryEntry],
        publish: Callable[[QueryEntry], None],
        *,
        retry: RetryPolicy,
        sleep: Sleep,
    ) -> QueryEntry:
        """
        Fetch the page after the last resident one and merge it.

        `read` returns the key's current entry and `publish` replaces it. If the
        sequence was replaced by a refetch while the page was in flight, the stale
        page is dropped.
        """
        entry = read()
        if not self.can_fetch_next(entry):
            return entry

        base: PageSequence = entry.data
        token = base.next_token
        self._next_in_flight = True
        publish(replace(entry, data=base.with_next_page_status(PageStatus.LOADING)))
        try:
            page = await run_with_retry(lambda: self.fetch_page(token), retry, sleep=sleep)
        except Exception as exc:
            logger.warning("next page (token=%r) failed for %s: %s", token, entry.key, exc)
            current = read()
            if _same_pages(current.data, base.pages):
                publish(
                    replace(current, data=current.data.with_next_page_status(PageStatus.ERROR, exc))
                )
            return read()
        except asyncio.CancelledError:
            current = read()
            if _same_pages(current.data, base.pages):
                publish(replace(current, data=current.data.with_next_page_status(PageStatus.IDLE)))
            raise
        finally:
            self._next_in_flight = False

        current = read()
        if not _same_pages(current.data, base.pages):
            logger.debug("dropping page token=%r for %s: sequence was refetched", token, entry.key)
            return current

        merged = current.data.append(page)
        logger.info(
            "merged page %d into %s (%d items, has_more=%s)",
            merged.page_count,
            entry.key,
            len(merged.items),
            merged.has_more,
        )
        publish(replace(current, data=merged))
        return read()


def _same_pages(data: Any, pages: Sequence[Page]) -> bool:
    return isinstance(data, PageSequence) and data.pages is pages
