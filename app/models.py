"""Pydantic models describing row configuration and row payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .rows import ROW_DEFINITION_MAP, RowKind
from .utils import parse_timestamp


DEFAULT_ENABLED_GENRES: tuple[str, ...] = ("Action", "Anime", "Comedy")
PREVIEW_ITEM_COUNT = 6


def _clean_genres(value: object, *, field_name: str) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        raw_values = [part.strip() for part in value.split(",")]
    elif isinstance(value, Iterable):
        raw_values = [str(part).strip() for part in value]
    else:
        raise TypeError(f"{field_name} must be a string or iterable of strings")

    cleaned: list[str] = []
    seen: set[str] = set()
    for entry in raw_values:
        if not entry:
            continue
        key = entry.casefold()
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(entry)
    return cleaned


class RowConfiguration(BaseModel):
    """Admin-editable settings controlling which rows are built and how."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_rows: int = Field(default=8, ge=1, le=100)
    min_items_per_row: int = Field(default=10, ge=1, le=500)
    max_items_per_row: int = Field(default=25, ge=1, le=500)

    enable_my_list: bool = True
    enable_recently_added: bool = True
    enable_random_picks: bool = True
    enable_genres: bool = True
    enable_long_not_watched: bool = True

    enabled_genres: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ENABLED_GENRES)
    )
    blacklisted_genres: list[str] = Field(default_factory=list)
    genre_display_names: dict[str, str] = Field(default_factory=dict)

    recently_added_days: int = Field(default=30, ge=0, le=3_650)
    long_not_watched_months: int = Field(default=6, ge=0, le=600)
    min_genre_items: int = Field(default=5, ge=0)
    my_list_limit: int = Field(default=50, ge=1, le=1_000)
    random_row_order: bool = False

    @field_validator("enabled_genres", mode="before")
    @classmethod
    def _parse_enabled_genres(cls, value: object) -> list[str]:
        return _clean_genres(value, field_name="enabledGenres")

    @field_validator("blacklisted_genres", mode="before")
    @classmethod
    def _parse_blacklisted_genres(cls, value: object) -> list[str]:
        return _clean_genres(value, field_name="blacklistedGenres")

    @field_validator("genre_display_names", mode="before")
    @classmethod
    def _strip_display_names(cls, value: object) -> object:
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        return {
            str(genre).strip(): str(title).strip()
            for genre, title in value.items()
            if str(genre).strip() and str(title).strip()
        }

    @model_validator(mode="after")
    def _check_item_bounds(self) -> "RowConfiguration":
        if self.min_items_per_row > self.max_items_per_row:
            raise ValueError("minItemsPerRow must not exceed maxItemsPerRow")
        return self

    def is_enabled(self, kind: RowKind) -> bool:
        return bool(getattr(self, ROW_DEFINITION_MAP[kind].toggle))

    def is_blacklisted(self, genre: str) -> bool:
        key = genre.strip().casefold()
        return any(entry.casefold() == key for entry in self.blacklisted_genres)

    def genre_title(self, genre: str) -> str:
        """Return the display name override for ``genre`` or the genre itself."""

        if genre in self.genre_display_names:
            return self.genre_display_names[genre]
        key = genre.casefold()
        for name, title in self.genre_display_names.items():
            if name.casefold() == key:
                return title
        return genre

    def page_cap(self, kind: RowKind) -> int:
        if kind is RowKind.MY_LIST:
            return self.my_list_limit
        return self.max_items_per_row

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Row(BaseModel):
    """A named shelf of items shown on the home screen."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    kind: RowKind
    genre: str | None = None
    total_item_count: int = Field(ge=0)
    preview_items: list[dict[str, Any]] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class RowItemsPage(BaseModel):
    """One page of items for a single row."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: list[dict[str, Any]] = Field(default_factory=list)
    total_count: int = 0
    start_index: int = 0

    @classmethod
    def empty(cls, start_index: int = 0) -> "RowItemsPage":
        return cls(items=[], total_count=0, start_index=start_index)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class LibraryItem(BaseModel):
    """Client-facing representation of a Jellyfin movie or series."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("Id", "id"),
        serialization_alias="id",
    )
    name: str = Field(
        default="",
        validation_alias=AliasChoices("Name", "name"),
        serialization_alias="name",
    )
    type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("Type", "type"),
        serialization_alias="type",
    )
    year: int | None = Field(
        default=None,
        validation_alias=AliasChoices("ProductionYear", "year"),
        serialization_alias="year",
    )
    genres: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("Genres", "genres"),
        serialization_alias="genres",
    )
    date_added: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("DateCreated", "dateAdded"),
        serialization_alias="dateAdded",
    )
    image_tags: dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("ImageTags", "imageTags"),
        serialization_alias="imageTags",
    )
    primary_image_aspect_ratio: float | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "PrimaryImageAspectRatio", "primaryImageAspectRatio"
        ),
        serialization_alias="primaryImageAspectRatio",
    )
    is_favorite: bool = Field(
        default=False,
        validation_alias=AliasChoices("IsFavorite", "isFavorite"),
        serialization_alias="isFavorite",
    )
    played: bool = Field(
        default=False,
        validation_alias=AliasChoices("Played", "played"),
        serialization_alias="played",
    )
    play_count: int = Field(
        default=0,
        validation_alias=AliasChoices("PlayCount", "playCount"),
        serialization_alias="playCount",
    )

    @model_validator(mode="before")
    @classmethod
    def _flatten_user_data(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        user_data = data.get("UserData")
        if not isinstance(user_data, dict):
            return data
        merged = {key: value for key, value in data.items() if key != "UserData"}
        for key in ("IsFavorite", "Played", "PlayCount"):
            if key in user_data and user_data[key] is not None:
                merged.setdefault(key, user_data[key])
        return merged

    @field_validator("genres", mode="before")
    @classmethod
    def _none_as_empty_list(cls, value: object) -> object:
        return value or []

    @field_validator("image_tags", mode="before")
    @classmethod
    def _none_as_empty_dict(cls, value: object) -> object:
        return value or {}

    @field_validator("date_added", mode="before")
    @classmethod
    def _parse_date_added(cls, value: object) -> object:
        if value is None or isinstance(value, datetime):
            return value
        parsed = parse_timestamp(value)
        if parsed is None:
            raise ValueError("DateCreated must be an ISO timestamp")
        return parsed

    def to_client_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
