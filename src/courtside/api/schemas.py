"""
Response schemas for stats API payloads with a known structure.

Models allow unknown fields so new server fields never break validation; only the
fields the sync layer depends on are declared.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# gameStatus values used by the stats API
GAME_STATUS_SCHEDULED = 1
GAME_STATUS_LIVE = 2
GAME_STATUS_FINAL = 3


class WireModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class HasMorePagination(WireModel):
    """News-style pagination: `{hasMore, nextPage}`."""

    has_more: bool = Field(default=False, alias="hasMore")
    next_page: int | None = Field(default=None, alias="nextPage")

    def page_info(self) -> tuple[bool, int | None]:
        if self.has_more and self.next_page is not None:
            return True, self.next_page
        return False, None


class PageCountPagination(WireModel):
    """Schedule-style pagination: `{page, pages}`."""

    page: int
    pages: int

    def page_info(self) -> tuple[bool, int | None]:
        if self.page < self.pages:
            return True, self.page + 1
        return False, None


class GameDetail(WireModel):
    game_id: str | None = Field(default=None, alias="gameId")
    game_status: int | None = Field(default=None, alias="gameStatus")
    game_status_text: str | None = Field(default=None, alias="gameStatusText")

    @property
    def is_final(self) -> bool:
        return self.game_status == GAME_STATUS_FINAL


class TweetTimestamp(WireModel):
    iso: str | None = None
    display: str | None = None
    relative: str | None = None
    timestamp: int | None = None


class Tweet(WireModel):
    id: str | int
    author: str | None = None
    author_handle: str | None = Field(default=None, alias="authorHandle")
    avatar: str | None = None
    text: str = ""
    images: list[str] = Field(default_factory=list)
    image_links: list[str] = Field(default_factory=list, alias="imageLinks")
    link: str | None = None
    timestamp: str | None = None
    timestamp_formatted: TweetTimestamp | None = Field(default=None, alias="timestampFormatted")


class NewsPayload(WireModel):
    tweets: list[Tweet] = Field(default_factory=list)
    source: str | None = None
    authors: list[str] = Field(default_factory=list)
    cached: bool = False


class TeamSchedulePayload(WireModel):
    events: list[dict[str, Any]] = Field(default_factory=list)
