"""Persistence for the admin-editable row configuration."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from ..database import Database
from ..db_models import ConfigurationRecord
from ..models import RowConfiguration

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = "default"


class ConfigurationStore:
    """Loads and saves :class:`RowConfiguration` snapshots.

    Each request loads a fresh snapshot and hands it to the row engine, so a
    saved change applies to the next request without any shared state.
    """

    def __init__(
        self,
        database: Database,
        defaults: RowConfiguration,
        *,
        scope: str = DEFAULT_SCOPE,
    ) -> None:
        self._database = database
        self._defaults = defaults
        self._scope = scope

    @property
    def defaults(self) -> RowConfiguration:
        return self._defaults.model_copy(deep=True)

    async def load(self) -> RowConfiguration:
        """Return the stored configuration, falling back to defaults."""

        async with self._database.session() as session:
            record = await session.get(ConfigurationRecord, self._scope)
        if record is None:
            return self.defaults
        try:
            return RowConfiguration.model_validate(record.payload)
        except ValidationError as exc:
            logger.warning(
                "Stored row configuration %s is invalid, using defaults: %s",
                self._scope,
                exc,
            )
            return self.defaults

    async def save(self, config: RowConfiguration) -> RowConfiguration:
        """Persist ``config`` and return it."""

        payload = config.to_payload()
        async with self._database.session() as session:
            record = await session.get(ConfigurationRecord, self._scope)
            if record is None:
                session.add(ConfigurationRecord(id=self._scope, payload=payload))
            else:
                record.payload = payload
            await session.commit()
        logger.info("Saved row configuration %s", self._scope)
        return config
