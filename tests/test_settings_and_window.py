"""
Tests for persisted league settings, the transaction window and process config.
"""

import json

import pytest

from league_bot.config import Config
from league_bot.database.repository import LeagueRepository
from league_bot.services.settings import LeagueSettings, LeagueSettingsService, SettingKey, coerce_setting
from league_bot.utils.league_exceptions import DenialReason, InvalidInputError, UnauthorizedError
from league_bot.utils.logger import setup_logger

from conftest import make_user


async def store_raw(db, key, value):
    async with db.transaction() as session:
        await LeagueRepository(session).upsert_setting(key, value)


async def test_defaults_when_nothing_stored(settings):
    assert settings.current == LeagueSettings()
    assert settings.current.transaction_window_open is False


async def test_channel_and_role_writes_persist(db, settings, admin):
    await settings.set_channel(admin, SettingKey.FIXTURES_CHANNEL, 701)
    await settings.set_role(admin, SettingKey.REFEREE_ROLE, 902)
    assert settings.get(SettingKey.FIXTURES_CHANNEL) == 701

    reloaded = await LeagueSettingsService(db).load()
    assert reloaded.fixtures_channel == 701
    assert reloaded.referee_role == 902

    await settings.set_channel(admin, SettingKey.FIXTURES_CHANNEL, 801)
    assert (await LeagueSettingsService(db).load()).fixtures_channel == 801


async def test_writes_require_admin(settings):
    with pytest.raises(UnauthorizedError) as exc_info:
        await settings.set_channel(make_user(5), SettingKey.LOG_CHANNEL, 703)
    assert exc_info.value.reason is DenialReason.NOT_ADMIN
    assert settings.current.log_channel is None


async def test_write_rejects_wrong_key_kind_and_bad_ids(settings, admin):
    with pytest.raises(InvalidInputError) as exc_info:
        await settings.set_channel(admin, SettingKey.MANAGER_ROLE, 900)
    assert exc_info.value.reason is DenialReason.INVALID_FIELD

    with pytest.raises(InvalidInputError) as exc_info:
        await settings.set_role(admin, SettingKey.LOG_CHANNEL, 703)
    assert exc_info.value.reason is DenialReason.INVALID_FIELD

    for bad in (0, -4):
        with pytest.raises(InvalidInputError) as exc_info:
            await settings.set_role(admin, SettingKey.MANAGER_ROLE, bad)
        assert exc_info.value.reason is DenialReason.INVALID_ID


async def test_load_skips_invalid_rows(db, settings):
    await store_raw(db, "log_channel", json.dumps("not-a-number"))
    await store_raw(db, "match_channel", "{broken json")
    await store_raw(db, "mystery_key", json.dumps(5))
    await store_raw(db, "manager_role", json.dumps("900"))
    await store_raw(db, "transaction_window_open", json.dumps("true"))

    loaded = await settings.load()

    assert loaded.log_channel is None
    assert loaded.match_channel is None
    assert loaded.manager_role == 900
    assert loaded.transaction_window_open is True


def test_coerce_setting():
    assert coerce_setting(SettingKey.REFEREE_ROLE, 12) == 12
    assert coerce_setting(SettingKey.TRANSACTION_WINDOW_OPEN, False) is False
    with pytest.raises(ValueError):
        coerce_setting(SettingKey.REFEREE_ROLE, True)
    with pytest.raises(ValueError):
        coerce_setting(SettingKey.TRANSACTION_WINDOW_OPEN, 1)


def test_setting_key_kinds():
    assert SettingKey.TRANSACTIONS_CHANNEL.is_channel
    assert SettingKey.ASSISTANT_MANAGER_ROLE.is_role
    assert not SettingKey.TRANSACTION_WINDOW_OPEN.is_channel
    assert not SettingKey.TRANSACTION_WINDOW_OPEN.is_role


# =============================================================================
# Transaction window
# =============================================================================


async def test_window_open_close_persists(db, window, admin):
    assert window.is_open is False

    assert await window.open(admin) is True
    assert (await LeagueSettingsService(db).load()).transaction_window_open is True

    assert await window.close(admin) is False
    assert (await LeagueSettingsService(db).load()).transaction_window_open is False


async def test_window_requires_admin(window):
    with pytest.raises(UnauthorizedError):
        await window.open(make_user(5))
    assert window.is_open is False


# =============================================================================
# Process configuration
# =============================================================================


def test_guild_ids_from_list(monkeypatch):
    monkeypatch.setattr(Config, "DISCORD_GUILD_IDS", "11, 22,")
    assert Config.get_guild_ids() == [11, 22]


def test_guild_ids_fall_back_to_single_guild(monkeypatch):
    monkeypatch.setattr(Config, "DISCORD_GUILD_IDS", "")
    monkeypatch.setattr(Config, "DISCORD_GUILD_ID", 33)
    assert Config.get_guild_ids() == [33]


def test_guild_ids_reject_garbage(monkeypatch):
    monkeypatch.setattr(Config, "DISCORD_GUILD_IDS", "11,abc")
    with pytest.raises(ValueError):
        Config.get_guild_ids()


def test_validate_requires_owner(monkeypatch):
    monkeypatch.setattr(Config, "DISCORD_TOKEN", "token")
    monkeypatch.setattr(Config, "DISCORD_GUILD_ID", 33)
    monkeypatch.setattr(Config, "OWNER_DISCORD_ID", 0)
    with pytest.raises(ValueError, match="OWNER_DISCORD_ID"):
        Config.validate()

    monkeypatch.setattr(Config, "OWNER_DISCORD_ID", 1)
    Config.validate()


def test_setup_logger_writes_daily_file(monkeypatch, tmp_path):
    monkeypatch.setattr(Config, "LOG_DIR", str(tmp_path / "logs"))
    logger = setup_logger("league_bot.tests.daily_file")
    try:
        logger.info("fixtures posted")
        files = list((tmp_path / "logs").glob("league_bot_*.log"))
        assert len(files) == 1
        assert "fixtures posted" in files[0].read_text(encoding="utf-8")
        assert setup_logger("league_bot.tests.daily_file") is logger
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


async def test_operations_log_under_their_own_module(roster_ops, fixture_ops):
    assert roster_ops.logger.name == "league_bot.operations.roster_operations.RosterOperations"
    assert fixture_ops.logger.name == "league_bot.operations.fixture_operations.FixtureOperations"
