"""Row kind definitions in their fixed display order."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .services.library import SortOrder
from .utils import derive_seed


GENRE_ID_SEPARATOR_RE = re.compile(r"[\W_]+")


class RowKind(str, Enum):
    MY_LIST = "MyList"
    RECENTLY_ADDED = "RecentlyAdded"
    RANDOM_PICKS = "RandomPicks"
    GENRE = "Genre"
    LONG_NOT_WATCHED = "LongNotWatched"

    @classmethod
    def parse(cls, value: str | None) -> "RowKind | None":
        """Resolve a row type name case-insensitively, ``None`` when unknown."""

        if not value:
            return None
        key = value.strip().replace("-", "").replace("_", "").lower()
        if key == "genres":
            key = "genre"
        for kind in cls:
            if kind.value.lower() == key:
                return kind
        return None

    @property
    def is_random(self) -> bool:
        return self in (RowKind.RANDOM_PICKS, RowKind.GENRE)


@dataclass(frozen=True)
class RowDefinition:
    """Describes one row kind shown on the home screen."""

    kind: RowKind
    row_id: str
    title: str
    sort: SortOrder
    toggle: str


ROW_DEFINITIONS: tuple[RowDefinition, ...] = (
    RowDefinition(
        kind=RowKind.MY_LIST,
        row_id="mylist",
        title="My List",
        sort=SortOrder.RECENT_FIRST,
        toggle="enable_my_list",
    ),
    RowDefinition(
        kind=RowKind.RECENTLY_ADDED,
        row_id="recentlyadded",
        title="Recently Added",
        sort=SortOrder.RECENT_FIRST,
        toggle="enable_recently_added",
    ),
    RowDefinition(
        kind=RowKind.RANDOM_PICKS,
        row_id="randompicks",
        title="Random Picks",
        sort=SortOrder.RANDOM,
        toggle="enable_random_picks",
    ),
    RowDefinition(
        kind=RowKind.GENRE,
        row_id="genre",
        title="Genres",
        sort=SortOrder.RANDOM,
        toggle="enable_genres",
    ),
    RowDefinition(
        kind=RowKind.LONG_NOT_WATCHED,
        row_id="longnotwatched",
        title="Long Not Watched",
        sort=SortOrder.OLDEST_FIRST,
        toggle="enable_long_not_watched",
    ),
)


ROW_DEFINITION_MAP: dict[RowKind, RowDefinition] = {
    definition.kind: definition for definition in ROW_DEFINITIONS
}


def genre_row_id(genre: str) -> str:
    """Return the row id for ``genre``, keeping non-Latin names distinct."""

    key = GENRE_ID_SEPARATOR_RE.sub("-", genre.strip().casefold()).strip("-")
    if not key:
        key = f"{derive_seed(genre):08x}"
    return f"genre-{key}"
