from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from .keys import QueryKey


class QueryStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class QueryEntry:
    """
    Snapshot of one cached query.

    Entries are replaced on every transition, never mutated, so a snapshot handed
    to an observer stays valid. `data` survives a failed refetch.
    """

    key: QueryKey
    status: QueryStatus = QueryStatus.IDLE
    data: Any = None
    error: BaseException | None = None
    last_fetched_at: float | None = None
    retry_count: int = 0
    is_invalidated: bool = False

    @property
    def is_idle(self) -> bool:
        return self.status is QueryStatus.IDLE

    @property
    def is_loading(self) -> bool:
        return self.status is QueryStatus.LOADING

    @property
    def is_success(self) -> bool:
        return self.status is QueryStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status is QueryStatus.ERROR

    @property
    def has_data(self) -> bool:
        return self.last_fetched_at is not None
