"""Interfaces for the media server collaborators used by the row engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, Sequence


DEFAULT_ITEM_TYPES: tuple[str, ...] = ("Movie", "Series")


class SortOrder(str, Enum):
    """Orderings the library query layer must support."""

    RECENT_FIRST = "recent_first"
    OLDEST_FIRST = "oldest_first"
    RANDOM = "random"


@dataclass(frozen=True, slots=True)
class LibraryUser:
    """A resolved media server user."""

    id: str
    name: str = ""


@dataclass(frozen=True, slots=True)
class ItemFilter:
    """Predicate over the media catalog. ``None`` means "don't care"."""

    is_favorite: bool | None = None
    is_played: bool | None = None
    genres: tuple[str, ...] = ()
    min_date_added: datetime | None = None
    max_date_added: datetime | None = None
    item_types: tuple[str, ...] = DEFAULT_ITEM_TYPES

    @property
    def has_date_bounds(self) -> bool:
        return self.min_date_added is not None or self.max_date_added is not None


@dataclass(frozen=True, slots=True)
class LibraryQuery:
    """A bounded, sorted page request against the library."""

    filter: ItemFilter
    sort: SortOrder
    limit: int
    offset: int = 0
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise ValueError("limit must not be negative")
        if self.offset < 0:
            raise ValueError("offset must not be negative")


@dataclass(slots=True)
class QueryResult:
    """A page of raw library records and the total number of matches."""

    items: list[Any] = field(default_factory=list)
    total: int = 0


class UserDirectory(Protocol):
    async def resolve(self, user_id: str) -> LibraryUser | None:
        """Return the user for ``user_id`` or ``None`` when it is unknown."""


class LibraryQueryService(Protocol):
    async def query(self, query: LibraryQuery, user: LibraryUser) -> QueryResult:
        """Run ``query`` in the context of ``user``.

        When ``query.sort`` is random and ``query.seed`` is set, the order must
        be stable for that seed so consecutive offsets never overlap.
        """

    async def genre_counts(
        self, user: LibraryUser, item_types: Sequence[str] = DEFAULT_ITEM_TYPES
    ) -> dict[str, int]:
        """Return the number of visible items per genre."""


class ItemPresenter(Protocol):
    def to_client_item(self, raw: Any, user: LibraryUser) -> dict[str, Any]:
        """Convert a raw library record into its client representation."""
