"""Jellyfin-backed implementations of the library collaborators."""

from __future__ import annotations

import logging
import random
from contextlib import aclosing
from typing import Any, Sequence
from urllib.parse import quote

import httpx

from ..config import Settings
from ..models import LibraryItem
from ..utils import parse_timestamp
from .library import (
    DEFAULT_ITEM_TYPES,
    ItemFilter,
    LibraryQuery,
    LibraryUser,
    QueryResult,
    SortOrder,
)

logger = logging.getLogger(__name__)


class JellyfinClient:
    """Thin wrapper around the Jellyfin HTTP API.

    Acts as user directory, library query service and item presenter for the
    row engine. Jellyfin has no date-added filter and its random sort cannot
    be seeded, so those queries scan lightweight id pages and order them
    locally before fetching the requested slice.
    """

    _ITEM_FIELDS = "DateCreated,Genres,PrimaryImageAspectRatio"
    _IDS_PER_REQUEST = 100
    _SORT_PARAMS: dict[SortOrder, dict[str, str]] = {
        SortOrder.RECENT_FIRST: {"SortBy": "DateCreated,SortName", "SortOrder": "Descending"},
        SortOrder.OLDEST_FIRST: {"SortBy": "DateCreated,SortName", "SortOrder": "Ascending"},
        SortOrder.RANDOM: {"SortBy": "Random"},
    }

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._batch_size = settings.jellyfin_scan_batch_size

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": f"{self._settings.app_name} (netflixrows)",
        }
        if self._settings.jellyfin_api_key:
            headers["X-Emby-Token"] = self._settings.jellyfin_api_key
        return headers

    async def resolve(self, user_id: str) -> LibraryUser | None:
        """Look up a Jellyfin user by id."""

        response = await self._client.get(
            f"/Users/{quote(user_id, safe='')}", headers=self._headers()
        )
        if response.status_code in (400, 404):
            return None
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            return None
        return LibraryUser(
            id=str(payload.get("Id") or user_id),
            name=str(payload.get("Name") or ""),
        )

    async def query(self, query: LibraryQuery, user: LibraryUser) -> QueryResult:
        """Run a bounded item query for ``user``."""

        seeded_random = query.sort is SortOrder.RANDOM and query.seed is not None
        if query.filter.has_date_bounds or seeded_random:
            return await self._scan_query(query, user)

        params = self._filter_params(query.filter, user)
        params.update(self._SORT_PARAMS[query.sort])
        params.update(
            {
                "StartIndex": str(query.offset),
                "Limit": str(query.limit),
                "Fields": self._ITEM_FIELDS,
                "EnableTotalRecordCount": "true",
            }
        )
        payload = await self._get_items(params)
        items = payload.get("Items") or []
        total = payload.get("TotalRecordCount") or 0
        return QueryResult(items=list(items), total=int(total))

    async def genre_counts(
        self, user: LibraryUser, item_types: Sequence[str] = DEFAULT_ITEM_TYPES
    ) -> dict[str, int]:
        """Count visible items per genre, merging case variants."""

        params = self._filter_params(ItemFilter(item_types=tuple(item_types)), user)
        params.update(
            {
                "SortBy": "SortName",
                "Fields": "Genres",
                "EnableImages": "false",
                "EnableUserData": "false",
            }
        )
        counts: dict[str, int] = {}
        spellings: dict[str, str] = {}
        async for item in self._iterate_items(params):
            for genre in item.get("Genres") or []:
                name = str(genre).strip()
                if not name:
                    continue
                key = name.casefold()
                spelling = spellings.setdefault(key, name)
                counts[spelling] = counts.get(spelling, 0) + 1
        return counts

    def to_client_item(self, raw: Any, user: LibraryUser) -> dict[str, Any]:
        return LibraryItem.model_validate(raw).to_client_payload()

    async def _scan_query(self, query: LibraryQuery, user: LibraryUser) -> QueryResult:
        ordered_ids = await self._scan_ids(query, user)
        total = len(ordered_ids)
        window = ordered_ids[query.offset : query.offset + query.limit]
        if not window:
            return QueryResult(items=[], total=total)
        items = await self._fetch_by_ids(window, user)
        return QueryResult(items=items, total=total)

    async def _scan_ids(self, query: LibraryQuery, user: LibraryUser) -> list[str]:
        flt = query.filter
        params = self._filter_params(flt, user)
        if query.sort is SortOrder.RANDOM:
            params.update(self._SORT_PARAMS[SortOrder.OLDEST_FIRST])
        else:
            params.update(self._SORT_PARAMS[query.sort])
        params.update(
            {
                "Fields": "DateCreated",
                "EnableImages": "false",
                "EnableUserData": "false",
            }
        )

        matched: list[str] = []
        async with aclosing(self._iterate_items(params)) as items:
            async for item in items:
                item_id = item.get("Id")
                if not item_id:
                    continue
                if flt.has_date_bounds:
                    added = parse_timestamp(item.get("DateCreated"))
                    if added is None:
                        continue
                    # Date-sorted scans can stop at the first item past the cutoff.
                    if flt.min_date_added is not None and added < flt.min_date_added:
                        if query.sort is SortOrder.RECENT_FIRST:
                            break
                        continue
                    if flt.max_date_added is not None and added > flt.max_date_added:
                        if query.sort is SortOrder.OLDEST_FIRST:
                            break
                        continue
                matched.append(str(item_id))

        if query.sort is SortOrder.RANDOM:
            matched.sort()
            random.Random(query.seed).shuffle(matched)
        return matched

    async def _iterate_items(self, params: dict[str, str]):
        start = 0
        while True:
            page_params = {
                **params,
                "StartIndex": str(start),
                "Limit": str(self._batch_size),
                "EnableTotalRecordCount": "true",
            }
            payload = await self._get_items(page_params)
            items = payload.get("Items") or []
            for item in items:
                if isinstance(item, dict):
                    yield item
            total = int(payload.get("TotalRecordCount") or 0)
            start += len(items)
            if len(items) < self._batch_size or start >= total:
                break

    async def _fetch_by_ids(
        self, item_ids: Sequence[str], user: LibraryUser
    ) -> list[dict[str, Any]]:
        by_id: dict[str, dict[str, Any]] = {}
        for start in range(0, len(item_ids), self._IDS_PER_REQUEST):
            chunk = item_ids[start : start + self._IDS_PER_REQUEST]
            params = {
                "userId": user.id,
                "Ids": ",".join(chunk),
                "Fields": self._ITEM_FIELDS,
            }
            payload = await self._get_items(params)
            for item in payload.get("Items") or []:
                if isinstance(item, dict) and item.get("Id"):
                    by_id[str(item["Id"])] = item
        missing = [item_id for item_id in item_ids if item_id not in by_id]
        if missing:
            logger.debug("Jellyfin did not return %s requested items", len(missing))
        return [by_id[item_id] for item_id in item_ids if item_id in by_id]

    async def _get_items(self, params: dict[str, str]) -> dict[str, Any]:
        response = await self._client.get("/Items", params=params, headers=self._headers())
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError("Unexpected Jellyfin items payload")
        return payload

    @staticmethod
    def _filter_params(flt: ItemFilter, user: LibraryUser) -> dict[str, str]:
        params = {
            "userId": user.id,
            "Recursive": "true",
            "IncludeItemTypes": ",".join(flt.item_types),
            "IsVirtualItem": "false",
        }
        if flt.is_favorite is not None:
            params["IsFavorite"] = "true" if flt.is_favorite else "false"
        if flt.is_played is not None:
            params["IsPlayed"] = "true" if flt.is_played else "false"
        if flt.genres:
            params["Genres"] = "|".join(flt.genres)
        return params
