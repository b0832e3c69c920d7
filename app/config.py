"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import AliasChoices, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .models import DEFAULT_ENABLED_GENRES, RowConfiguration


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Netflix Rows", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    jellyfin_url: HttpUrl = Field(
        default="http://localhost:8096",
        alias="JELLYFIN_URL",
        validation_alias=AliasChoices("JELLYFIN_URL", "JELLYFIN_SERVER_URL"),
    )
    jellyfin_api_key: str | None = Field(default=None, alias="JELLYFIN_API_KEY")
    jellyfin_timeout_seconds: float = Field(
        default=15.0, alias="JELLYFIN_TIMEOUT", gt=0, le=300
    )
    jellyfin_scan_batch_size: int = Field(
        default=500, alias="JELLYFIN_SCAN_BATCH_SIZE", ge=10, le=5_000
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./netflixrows.db", alias="DATABASE_URL"
    )

    max_rows: int = Field(default=8, alias="MAX_ROWS", ge=1, le=100)
    enabled_genres: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_ENABLED_GENRES, alias="ENABLED_GENRES"
    )
    blacklisted_genres: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(), alias="BLACKLISTED_GENRES"
    )
    recently_added_days: int = Field(
        default=30, alias="RECENTLY_ADDED_DAYS", ge=0, le=3_650
    )
    long_not_watched_months: int = Field(
        default=6, alias="LONG_NOT_WATCHED_MONTHS", ge=0, le=600
    )
    min_genre_items: int = Field(default=5, alias="MIN_GENRE_ITEMS", ge=0)
    my_list_limit: int = Field(default=50, alias="MY_LIST_LIMIT", ge=1, le=1_000)
    random_row_order: bool = Field(default=False, alias="RANDOM_ROW_ORDER")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("enabled_genres", "blacklisted_genres", mode="before")
    @classmethod
    def _parse_genre_list(cls, value: object) -> tuple[str, ...]:
        """Normalise comma separated genre lists from environment values."""

        if value is None:
            return ()
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("Genre lists must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            if entry and entry.casefold() not in {item.casefold() for item in cleaned}:
                cleaned.append(entry)
        return tuple(cleaned)

    def default_row_configuration(self) -> RowConfiguration:
        """Return the row configuration used until an admin saves one."""

        return RowConfiguration(
            max_rows=self.max_rows,
            enabled_genres=list(self.enabled_genres),
            blacklisted_genres=list(self.blacklisted_genres),
            recently_added_days=self.recently_added_days,
            long_not_watched_months=self.long_not_watched_months,
            min_genre_items=self.min_genre_items,
            my_list_limit=self.my_list_limit,
            random_row_order=self.random_row_order,
        )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
