"""Shared pytest fixtures for league bot tests."""

from typing import Optional

import pytest

from league_bot.data_models.fixtures import FixtureListing, MatchAnnouncement
from league_bot.data_models.roster import Actor, OfferPrompt, StatChange, TransactionLogEntry
from league_bot.database.database import Database
from league_bot.operations.admin_operations import AdminOperations
from league_bot.operations.fixture_operations import FixtureOperations
from league_bot.operations.player_operations import PlayerOperations
from league_bot.operations.referee_operations import RefereeOperations
from league_bot.operations.roster_operations import RosterOperations
from league_bot.operations.stats_operations import StatsOperations
from league_bot.operations.team_operations import TeamOperations
from league_bot.operations.transaction_window import TransactionWindow
from league_bot.services.gateway import LeagueGateway
from league_bot.services.settings import LeagueSettingsService, SettingKey
from league_bot.utils.league_exceptions import ExternalSideEffectFailed


ADMIN_ID = 1
MANAGER_ROLE = 900
ASSISTANT_ROLE = 901
REFEREE_ROLE = 902
TEAM_A_ROLE = 101
TEAM_B_ROLE = 102


class RecordingGateway(LeagueGateway):
    """Records every side effect instead of talking to Discord."""

    def __init__(self):
        self.calls = []
        self.failing = set()
        self._next_message_id = 5000

    def fail_on(self, *names: str):
        self.failing.update(names)

    def called(self, name: str):
        return [call[1:] for call in self.calls if call[0] == name]

    async def _record(self, name: str, *args):
        self.calls.append((name,) + args)
        if name in self.failing:
            raise ExternalSideEffectFailed(name, "simulated failure")

    def _message_id(self) -> int:
        self._next_message_id += 1
        return self._next_message_id

    async def grant_role(self, discord_id: int, role_id: int, reason: str = None):
        await self._record("grant_role", discord_id, role_id)

    async def revoke_role(self, discord_id: int, role_id: int, reason: str = None):
        await self._record("revoke_role", discord_id, role_id)

    async def deliver_offer(self, prompt: OfferPrompt) -> Optional[int]:
        await self._record("deliver_offer", prompt)
        return self._message_id()

    async def log_transaction(self, channel_id: int, entry: TransactionLogEntry):
        await self._record("log_transaction", channel_id, entry)

    async def publish_fixtures(self, channel_id: int, listing: FixtureListing) -> Optional[int]:
        await self._record("publish_fixtures", channel_id, listing)
        return self._message_id()

    async def archive_fixture_listing(self, channel_id: int, message_id: int):
        await self._record("archive_fixture_listing", channel_id, message_id)

    async def delete_fixture_listing(self, channel_id: int, message_id: int):
        await self._record("delete_fixture_listing", channel_id, message_id)

    async def announce_match(self, channel_id: int, announcement: MatchAnnouncement):
        await self._record("announce_match", channel_id, announcement)

    async def log_stat_change(self, channel_id: int, change: StatChange):
        await self._record("log_stat_change", channel_id, change)


def make_user(discord_id: int, *role_ids: int, is_admin: bool = False, is_bot: bool = False) -> Actor:
    return Actor(discord_id=discord_id, display_name=f"user{discord_id}", is_admin=is_admin,
                 is_bot=is_bot, role_ids=frozenset(role_ids))


# =============================================================================
# Storage and settings
# =============================================================================


@pytest.fixture
async def db(tmp_path):
    """Fresh file-backed SQLite database per test."""
    database = Database(f"sqlite:///{tmp_path / 'league.db'}")
    await database.initialize()
    try:
        yield database
    finally:
        await database.close()


@pytest.fixture
async def settings(db):
    service = LeagueSettingsService(db)
    await service.load()
    return service


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def window(settings):
    return TransactionWindow(settings)


# =============================================================================
# Operations
# =============================================================================


@pytest.fixture
def roster_ops(db, settings, gateway, window):
    return RosterOperations(db, settings, gateway, window)


@pytest.fixture
def fixture_ops(db, settings, gateway):
    return FixtureOperations(db, settings, gateway)


@pytest.fixture
def team_ops(db, settings, gateway):
    return TeamOperations(db, settings, gateway)


@pytest.fixture
def referee_ops(db, settings, gateway):
    return RefereeOperations(db, settings, gateway)


@pytest.fixture
def stats_ops(db, settings, gateway):
    return StatsOperations(db, settings, gateway)


@pytest.fixture
def player_ops(db, settings, gateway):
    return PlayerOperations(db, settings, gateway)


@pytest.fixture
def admin_ops(db, settings, gateway):
    return AdminOperations(db, settings, gateway)


# =============================================================================
# League fixtures
# =============================================================================


@pytest.fixture
def admin():
    """Administrator holding Team A's role, so Team A is their acting team."""
    return make_user(ADMIN_ID, TEAM_A_ROLE, is_admin=True)


@pytest.fixture
async def configured(settings, admin):
    """Manager, assistant and referee roles plus the league channels."""
    await settings.set_role(admin, SettingKey.MANAGER_ROLE, MANAGER_ROLE)
    await settings.set_role(admin, SettingKey.ASSISTANT_MANAGER_ROLE, ASSISTANT_ROLE)
    await settings.set_role(admin, SettingKey.REFEREE_ROLE, REFEREE_ROLE)
    await settings.set_channel(admin, SettingKey.TRANSACTIONS_CHANNEL, 700)
    await settings.set_channel(admin, SettingKey.FIXTURES_CHANNEL, 701)
    await settings.set_channel(admin, SettingKey.MATCH_CHANNEL, 702)
    await settings.set_channel(admin, SettingKey.LOG_CHANNEL, 703)
    return settings


@pytest.fixture
async def teams(team_ops, admin):
    """Team A and Team B, returned as (team_a, team_b)."""
    team_a = (await team_ops.create_team(admin, "Team A", "TA", TEAM_A_ROLE)).team
    team_b = (await team_ops.create_team(admin, "Team B", "TB", TEAM_B_ROLE)).team
    return team_a, team_b
