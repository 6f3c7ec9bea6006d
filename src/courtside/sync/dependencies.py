from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .entry import QueryEntry
from .keys import QueryKey
from .pagination import PageFetcher

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


@dataclass(frozen=True, eq=False)
class Dependency:
    """
    Edge: `child` must stay idle until `parent` is in success state.

    `when` can narrow the precondition on the parent's data (e.g. only for a
    finished game). Exactly one of `fetcher` or `fetch_page` is set; the latter
    makes the child a paginated key.
    """

    parent: QueryKey
    child: QueryKey
    fetcher: Fetcher | None = None
    fetch_page: PageFetcher | None = None
    initial_token: Any = 1
    when: Callable[[Any], bool] | None = None
    stale_time: float | None = None

    def __post_init__(self) -> None:
        if (self.fetcher is None) == (self.fetch_page is None):
            raise ValueError("Dependency needs exactly one of fetcher or fetch_page")
        if self.parent == self.child:
            raise ValueError(f"Dependency cannot gate {self.child} on itself")

    def is_satisfied(self, parent_entry: QueryEntry) -> bool:
        if not parent_entry.is_success:
            return False
        return self.when is None or bool(self.when(parent_entry.data))


class DependencySequencer:
    """Registry of dependency edges, indexed by parent and by child."""

    def __init__(self) -> None:
        self._by_parent: dict[QueryKey, list[Dependency]] = {}
        self._by_child: dict[QueryKey, list[Dependency]] = {}

    def add(self, dep: Dependency) -> None:
        self._by_parent.setdefault(dep.parent, []).append(dep)
        self._by_child.setdefault(dep.child, []).append(dep)

    def remove(self, dep: Dependency) -> None:
        for index, key in ((self._by_parent, dep.parent), (self._by_child, dep.child)):
            edges = index.get(key, [])
            if dep in edges:
                edges.remove(dep)
            if not edges:
                index.pop(key, None)

    def edges_for(self, parent: QueryKey) -> list[Dependency]:
        return list(self._by_parent.get(parent, []))

    def gates_for(self, child: QueryKey) -> list[Dependency]:
        return list(self._by_child.get(child, []))

    def ready(self, parent_entry: QueryEntry) -> list[Dependency]:
        """Edges on this parent whose precondition now holds."""
        return [d for d in self.edges_for(parent_entry.key) if d.is_satisfied(parent_entry)]

    def is_blocked(self, child: QueryKey, peek: Callable[[QueryKey], QueryEntry]) -> bool:
        """True while any gate on `child` is unmet."""
        for dep in self._by_child.get(child, []):
            if not dep.is_satisfied(peek(dep.parent)):
                logger.debug("%s gated on %s (%s)", child, dep.parent, peek(dep.parent).status)
                return True
        return False
