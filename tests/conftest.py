"""Pytest configuration and test helpers."""

from __future__ import annotations

import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Sequence

import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.services.library import (  # noqa: E402
    DEFAULT_ITEM_TYPES,
    LibraryQuery,
    LibraryUser,
    QueryResult,
    SortOrder,
)


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeLibrary:
    """In-memory user directory, library and presenter for engine tests."""

    def __init__(self, users: Sequence[str] = ("alice",)) -> None:
        self.users = {user_id: LibraryUser(id=user_id, name=user_id.title()) for user_id in users}
        self.items: list[dict[str, Any]] = []
        self.queries: list[LibraryQuery] = []
        self.fail_genres: set[str] = set()
        self.fail_all = False
        self._rng = random.Random(7)

    def add(
        self,
        count: int = 1,
        *,
        genres: Sequence[str] = (),
        age_days: float = 400,
        favorite: bool = False,
        played: bool = False,
        item_type: str = "Movie",
        broken: bool = False,
    ) -> list[dict[str, Any]]:
        created: list[dict[str, Any]] = []
        for _ in range(count):
            index = len(self.items)
            item = {
                "Id": f"item-{index:04d}",
                "Name": f"Title {index}",
                "Type": item_type,
                "Genres": list(genres),
                "DateCreated": NOW - timedelta(days=age_days, minutes=index),
                "IsFavorite": favorite,
                "Played": played,
                "broken": broken,
            }
            self.items.append(item)
            created.append(item)
        return created

    async def resolve(self, user_id: str) -> LibraryUser | None:
        return self.users.get(user_id)

    async def query(self, query: LibraryQuery, user: LibraryUser) -> QueryResult:
        self.queries.append(query)
        flt = query.filter
        if self.fail_all:
            raise RuntimeError("library unavailable")
        if any(genre in self.fail_genres for genre in flt.genres):
            raise RuntimeError(f"query failed for {flt.genres}")

        matched = [item for item in self.items if item["Type"] in flt.item_types]
        if flt.is_favorite is not None:
            matched = [item for item in matched if item["IsFavorite"] is flt.is_favorite]
        if flt.is_played is not None:
            matched = [item for item in matched if item["Played"] is flt.is_played]
        if flt.genres:
            wanted = {genre.casefold() for genre in flt.genres}
            matched = [
                item
                for item in matched
                if wanted & {genre.casefold() for genre in item["Genres"]}
            ]
        if flt.min_date_added is not None:
            matched = [item for item in matched if item["DateCreated"] >= flt.min_date_added]
        if flt.max_date_added is not None:
            matched = [item for item in matched if item["DateCreated"] <= flt.max_date_added]

        if query.sort is SortOrder.RECENT_FIRST:
            matched.sort(key=lambda item: item["DateCreated"], reverse=True)
        elif query.sort is SortOrder.OLDEST_FIRST:
            matched.sort(key=lambda item: item["DateCreated"])
        elif query.seed is not None:
            matched.sort(key=lambda item: item["Id"])
            random.Random(query.seed).shuffle(matched)
        else:
            self._rng.shuffle(matched)

        page = matched[query.offset : query.offset + query.limit]
        return QueryResult(items=page, total=len(matched))

    async def genre_counts(
        self, user: LibraryUser, item_types: Sequence[str] = DEFAULT_ITEM_TYPES
    ) -> dict[str, int]:
        if self.fail_all:
            raise RuntimeError("library unavailable")
        counts: dict[str, int] = {}
        for item in self.items:
            if item["Type"] not in item_types:
                continue
            for genre in item["Genres"]:
                counts[genre] = counts.get(genre, 0) + 1
        return counts

    def to_client_item(self, raw: Any, user: LibraryUser) -> dict[str, Any]:
        if raw.get("broken"):
            raise ValueError(f"cannot present {raw['Id']}")
        return {"id": raw["Id"], "name": raw["Name"]}


@pytest.fixture
def library() -> FakeLibrary:
    return FakeLibrary()
