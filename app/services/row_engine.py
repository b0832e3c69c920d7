"""Row selection and pagination for the Netflix-style home screen."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from ..models import PREVIEW_ITEM_COUNT, Row, RowConfiguration, RowItemsPage
from ..rows import ROW_DEFINITION_MAP, ROW_DEFINITIONS, RowDefinition, RowKind, genre_row_id
from ..utils import daily_seed, subtract_days, subtract_months
from .library import (
    ItemFilter,
    ItemPresenter,
    LibraryQuery,
    LibraryQueryService,
    LibraryUser,
    QueryResult,
    UserDirectory,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RowEngine:
    """Decides which rows a user sees and serves paginated row contents.

    Every public operation degrades to an empty result instead of raising:
    unknown users, unknown row kinds and failing library queries all produce
    fewer rows or an empty page.
    """

    def __init__(
        self,
        library: LibraryQueryService,
        users: UserDirectory,
        presenter: ItemPresenter,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
        preview_size: int = PREVIEW_ITEM_COUNT,
    ) -> None:
        self._library = library
        self._users = users
        self._presenter = presenter
        self._rng = rng or random.Random()
        self._clock = clock
        self._preview_size = preview_size

    async def list_rows(self, user_id: str, config: RowConfiguration) -> list[Row]:
        """Return the ordered row summaries for the landing page."""

        user = await self._resolve_user(user_id)
        if user is None:
            return []

        now = self._clock()
        rows: list[Row] = []
        seen_ids: set[str] = set()

        for definition in ROW_DEFINITIONS:
            if not config.random_row_order and len(rows) >= config.max_rows:
                break
            if not config.is_enabled(definition.kind):
                continue
            if definition.kind is RowKind.GENRE:
                for genre in config.enabled_genres:
                    if not config.random_row_order and len(rows) >= config.max_rows:
                        break
                    row_id = genre_row_id(genre)
                    if row_id in seen_ids or config.is_blacklisted(genre):
                        continue
                    row = await self._build_genre_row(user, config, genre, row_id)
                    if row is not None:
                        seen_ids.add(row.id)
                        rows.append(row)
                continue
            row = await self._build_row(definition, user, config, now)
            if row is not None:
                seen_ids.add(row.id)
                rows.append(row)

        if config.random_row_order:
            self._rng.shuffle(rows)
        return rows[: config.max_rows]

    async def get_row_items(
        self,
        user_id: str,
        row_kind: str | RowKind,
        config: RowConfiguration,
        *,
        genre: str | None = None,
        start_index: int = 0,
        limit: int | None = None,
        seed: int | None = None,
    ) -> RowItemsPage:
        """Return one page of a single row."""

        start_index = max(start_index, 0)
        user = await self._resolve_user(user_id)
        if user is None:
            return RowItemsPage.empty(start_index)

        kind = row_kind if isinstance(row_kind, RowKind) else RowKind.parse(row_kind)
        if kind is None:
            logger.info("Unknown row kind %r requested by user %s", row_kind, user_id)
            return RowItemsPage.empty(start_index)

        genre = (genre or "").strip() or None
        if kind is RowKind.GENRE:
            if genre is None:
                logger.info("Genre row requested without a genre by user %s", user_id)
                return RowItemsPage.empty(start_index)
            if config.is_blacklisted(genre):
                return RowItemsPage.empty(start_index)

        requested = config.min_items_per_row if limit is None else max(limit, 0)
        effective_limit = min(requested, config.page_cap(kind))
        if kind.is_random and seed is None:
            seed = daily_seed(user.id, self._clock().date())

        definition = ROW_DEFINITION_MAP[kind]
        query = LibraryQuery(
            filter=self._filter_for(kind, config, self._clock(), genre),
            sort=definition.sort,
            limit=effective_limit,
            offset=start_index,
            seed=seed if kind.is_random else None,
        )
        try:
            result = await self._library.query(query, user)
        except Exception as exc:
            logger.warning(
                "Failed to load %s items for user %s: %s", kind.value, user_id, exc
            )
            return RowItemsPage.empty(start_index)
        if kind is RowKind.GENRE and result.total < config.min_genre_items:
            return RowItemsPage.empty(start_index)

        items = self._present(result.items[:effective_limit], user)
        return RowItemsPage(
            items=items, total_count=result.total, start_index=start_index
        )

    async def list_genres(
        self, user_id: str, config: RowConfiguration
    ) -> list[str]:
        """Return genres eligible for a row, sorted by name."""

        user = await self._resolve_user(user_id)
        if user is None:
            return []
        try:
            counts = await self._library.genre_counts(user)
        except Exception as exc:
            logger.warning("Failed to load genres for user %s: %s", user_id, exc)
            return []
        eligible = [
            genre
            for genre, count in counts.items()
            if count > 0
            and count >= config.min_genre_items
            and not config.is_blacklisted(genre)
        ]
        return sorted(eligible, key=str.casefold)

    async def _resolve_user(self, user_id: str) -> LibraryUser | None:
        if not user_id or not user_id.strip():
            return None
        try:
            user = await self._users.resolve(user_id.strip())
        except Exception as exc:
            logger.warning("Failed to resolve user %s: %s", user_id, exc)
            return None
        if user is None:
            logger.info("Unknown user %s, returning no rows", user_id)
        return user

    async def _build_row(
        self,
        definition: RowDefinition,
        user: LibraryUser,
        config: RowConfiguration,
        now: datetime,
    ) -> Row | None:
        query = LibraryQuery(
            filter=self._filter_for(definition.kind, config, now),
            sort=definition.sort,
            limit=self._preview_size,
        )
        result = await self._run_preview_query(definition.kind.value, query, user)
        if result is None or result.total <= 0:
            return None
        return Row(
            id=definition.row_id,
            title=definition.title,
            kind=definition.kind,
            total_item_count=result.total,
            preview_items=self._preview(result, user, shuffle=definition.kind.is_random),
        )

    async def _build_genre_row(
        self,
        user: LibraryUser,
        config: RowConfiguration,
        genre: str,
        row_id: str,
    ) -> Row | None:
        definition = ROW_DEFINITION_MAP[RowKind.GENRE]
        query = LibraryQuery(
            filter=ItemFilter(genres=(genre,)),
            sort=definition.sort,
            limit=self._preview_size,
        )
        result = await self._run_preview_query(f"genre {genre!r}", query, user)
        if result is None or result.total <= 0:
            return None
        if result.total < config.min_genre_items:
            logger.debug(
                "Skipping genre %s with %s items (minimum %s)",
                genre,
                result.total,
                config.min_genre_items,
            )
            return None
        return Row(
            id=row_id,
            title=config.genre_title(genre),
            kind=RowKind.GENRE,
            genre=genre,
            total_item_count=result.total,
            preview_items=self._preview(result, user, shuffle=True),
        )

    async def _run_preview_query(
        self, label: str, query: LibraryQuery, user: LibraryUser
    ) -> QueryResult | None:
        try:
            return await self._library.query(query, user)
        except Exception as exc:
            logger.warning("Skipping %s row for user %s: %s", label, user.id, exc)
            return None

    def _preview(
        self, result: QueryResult, user: LibraryUser, *, shuffle: bool
    ) -> list[dict[str, Any]]:
        raw_items = list(result.items[: self._preview_size])
        if shuffle:
            self._rng.shuffle(raw_items)
        return self._present(raw_items, user)

    def _present(
        self, raw_items: Sequence[Any], user: LibraryUser
    ) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        for raw in raw_items:
            try:
                items.append(self._presenter.to_client_item(raw, user))
            except Exception as exc:
                logger.debug("Dropping item that failed to convert: %s", exc)
        return items

    @staticmethod
    def _filter_for(
        kind: RowKind,
        config: RowConfiguration,
        now: datetime,
        genre: str | None = None,
    ) -> ItemFilter:
        if kind is RowKind.MY_LIST:
            return ItemFilter(is_favorite=True)
        if kind is RowKind.RECENTLY_ADDED:
            return ItemFilter(
                min_date_added=subtract_days(now, config.recently_added_days)
            )
        if kind is RowKind.LONG_NOT_WATCHED:
            return ItemFilter(
                is_played=False,
                max_date_added=subtract_months(now, config.long_not_watched_months),
            )
        if kind is RowKind.GENRE:
            return ItemFilter(genres=(genre,) if genre else ())
        return ItemFilter()
