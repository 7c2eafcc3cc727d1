"""
League settings service.

Channel routing, role references and the transaction window flag are kept in
the settings table as JSON values. This service loads them into a typed
LeagueSettings snapshot, validating every row at that boundary, and writes
changes through to the database before refreshing the cache.
"""

import json
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from league_bot.data_models.roster import Actor
from league_bot.database.repository import LeagueRepository
from league_bot.operations.eligibility import require_admin
from league_bot.services.base import BaseService
from league_bot.utils.league_exceptions import DenialReason, InvalidInputError

logger = logging.getLogger(__name__)


class SettingKey(Enum):
    FIXTURES_CHANNEL = "fixtures_channel"
    MATCH_CHANNEL = "match_channel"
    LOG_CHANNEL = "log_channel"
    TRANSACTIONS_CHANNEL = "transactions_channel"
    MANAGER_ROLE = "manager_role"
    ASSISTANT_MANAGER_ROLE = "assistant_manager_role"
    REFEREE_ROLE = "referee_role"
    TRANSACTION_WINDOW_OPEN = "transaction_window_open"

    @property
    def is_channel(self) -> bool:
        return self.value.endswith("_channel")

    @property
    def is_role(self) -> bool:
        return self.value.endswith("_role")


@dataclass(frozen=True)
class LeagueSettings:
    """Typed view of every persisted league setting."""
    fixtures_channel: Optional[int] = None
    match_channel: Optional[int] = None
    log_channel: Optional[int] = None
    transactions_channel: Optional[int] = None
    manager_role: Optional[int] = None
    assistant_manager_role: Optional[int] = None
    referee_role: Optional[int] = None
    transaction_window_open: bool = False


def _coerce_id(value: Any) -> int:
    # Older rows stored snowflakes as strings
    if isinstance(value, bool):
        raise ValueError("boolean is not an id")
    snowflake = int(value)
    if snowflake <= 0:
        raise ValueError(f"id must be positive, got {snowflake}")
    return snowflake


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValueError(f"expected a boolean, got {value!r}")


def coerce_setting(key: SettingKey, value: Any) -> Any:
    """Validate a decoded setting value, raising ValueError when it does not fit the key."""
    if key is SettingKey.TRANSACTION_WINDOW_OPEN:
        return _coerce_flag(value)
    return _coerce_id(value)


class LeagueSettingsService(BaseService):
    """Manages persisted league settings with a validated in-memory cache."""

    def __init__(self, database):
        """
        Initialize the settings service.

        Args:
            database: Database instance; writes go through its transaction()
        """
        super().__init__(database)
        self._settings = LeagueSettings()

    @property
    def current(self) -> LeagueSettings:
        return self._settings

    async def load(self) -> LeagueSettings:
        """Load every settings row, skipping rows that fail validation."""
        values: Dict[str, Any] = {}
        async with self.get_session() as session:
            rows = await LeagueRepository(session).all_settings()

        for row in rows:
            try:
                key = SettingKey(row.key)
            except ValueError:
                logger.warning(f"Unknown setting key '{row.key}', skipping")
                continue
            try:
                values[key.value] = coerce_setting(key, json.loads(row.value))
            except (json.JSONDecodeError, TypeError, ValueError) as e:
                logger.warning(f"Invalid value for setting '{row.key}': {e}; skipping")
                continue

        self._settings = replace(LeagueSettings(), **values)
        logger.info(f"Loaded {len(values)} league settings")
        return self._settings

    def get(self, key: SettingKey) -> Any:
        return getattr(self._settings, key.value)

    async def _write(self, key: SettingKey, value: Any):
        async with self.transaction() as session:
            await LeagueRepository(session).upsert_setting(key.value, json.dumps(value))
        # Reload so the cache only ever reflects committed rows
        await self.load()

    async def set_channel(self, actor: Actor, key: SettingKey, channel_id: int) -> LeagueSettings:
        require_admin(actor, "change league channels").raise_if_denied()
        if not key.is_channel:
            raise InvalidInputError(f"{key.value} is not a channel setting", reason=DenialReason.INVALID_FIELD)
        await self._write(key, self._validated_id(key, channel_id))
        logger.info(f"{actor.discord_id} set {key.value} to {channel_id}")
        return self._settings

    async def set_role(self, actor: Actor, key: SettingKey, role_id: int) -> LeagueSettings:
        require_admin(actor, "change league roles").raise_if_denied()
        if not key.is_role:
            raise InvalidInputError(f"{key.value} is not a role setting", reason=DenialReason.INVALID_FIELD)
        await self._write(key, self._validated_id(key, role_id))
        logger.info(f"{actor.discord_id} set {key.value} to {role_id}")
        return self._settings

    async def set_transaction_window(self, is_open: bool) -> LeagueSettings:
        await self._write(SettingKey.TRANSACTION_WINDOW_OPEN, bool(is_open))
        return self._settings

    @staticmethod
    def _validated_id(key: SettingKey, value: Any) -> int:
        try:
            return _coerce_id(value)
        except (TypeError, ValueError):
            raise InvalidInputError(
                f"Invalid id {value!r} for {key.value}",
                f"{value} is not a valid id for {key.value.replace('_', ' ')}.",
                reason=DenialReason.INVALID_ID,
            )
