"""
Tests for the eligibility rules: pure predicates over user and team snapshots.
"""

import pytest

from league_bot.data_models.roster import TeamStanding, UserStanding
from league_bot.operations.eligibility import (
    can_act_for_team, can_adjust_stat, can_archive_fixtures, can_become_assistant_manager,
    can_become_manager, can_become_referee, can_demand, can_receive_offer, can_remove_fixtures,
    require_admin, resolve_acting_team,
)
from league_bot.utils.league_exceptions import (
    ConflictError, DenialReason, InvalidInputError, NotFoundError, UnauthorizedError,
)

from conftest import make_user

MANAGER_ROLE = 900


def team(team_id=1, role_id=101, manager=None, assistants=()):
    return TeamStanding(team_id=team_id, name=f"Team {team_id}", role_id=role_id,
                        manager_discord_id=manager, assistant_discord_ids=tuple(assistants))


class FakePosting:
    def __init__(self, is_archived=False):
        self.is_archived = is_archived


def test_require_admin():
    assert require_admin(make_user(1, is_admin=True))
    denied = require_admin(make_user(2))
    assert not denied
    assert denied.reason is DenialReason.NOT_ADMIN
    assert denied.error is UnauthorizedError


def test_raise_if_denied_raises_recorded_error():
    with pytest.raises(UnauthorizedError) as exc_info:
        require_admin(make_user(2), "create teams").raise_if_denied()
    assert exc_info.value.reason is DenialReason.NOT_ADMIN
    assert "create teams" in exc_info.value.user_message


def test_stat_increment_allowed_for_referee_decrement_admin_only():
    referee = make_user(5)
    assert can_adjust_stat(referee, actor_is_referee=True, delta=1)
    denied = can_adjust_stat(referee, actor_is_referee=True, delta=-1)
    assert denied.reason is DenialReason.NOT_ADMIN
    assert can_adjust_stat(make_user(1, is_admin=True), actor_is_referee=False, delta=-1)
    assert can_adjust_stat(make_user(6), actor_is_referee=False, delta=1).reason \
        is DenialReason.NOT_REFEREE_OR_ADMIN


# --- Acting for a team ---

def test_admin_needs_team_role_to_act():
    admin = make_user(1, 101, is_admin=True)
    assert can_act_for_team(admin, team(role_id=101), MANAGER_ROLE)
    denied = can_act_for_team(admin, team(role_id=102), MANAGER_ROLE)
    assert denied.reason is DenialReason.MISSING_TEAM_ROLE


def test_manager_checks_in_order():
    standing = team(role_id=101, manager=10)
    assert can_act_for_team(make_user(10, 101), standing, None).reason \
        is DenialReason.MANAGER_ROLE_NOT_CONFIGURED
    assert can_act_for_team(make_user(10, 101), standing, MANAGER_ROLE).reason \
        is DenialReason.MISSING_MANAGER_ROLE
    assert can_act_for_team(make_user(11, 101, MANAGER_ROLE), standing, MANAGER_ROLE).reason \
        is DenialReason.NOT_TEAM_MANAGER
    assert can_act_for_team(make_user(10, MANAGER_ROLE), standing, MANAGER_ROLE).reason \
        is DenialReason.MISSING_TEAM_ROLE
    assert can_act_for_team(make_user(10, 101, MANAGER_ROLE), standing, MANAGER_ROLE)


def test_resolve_acting_team_picks_single_candidate():
    teams = [team(2, 102, manager=10), team(1, 101, manager=99)]
    resolved = resolve_acting_team(make_user(10, 101, 102, MANAGER_ROLE), teams, MANAGER_ROLE)
    assert resolved.team_id == 2


def test_resolve_acting_team_ambiguous_for_admin_with_two_roles():
    teams = [team(1, 101), team(2, 102)]
    with pytest.raises(InvalidInputError) as exc_info:
        resolve_acting_team(make_user(1, 101, 102, is_admin=True), teams, MANAGER_ROLE)
    assert exc_info.value.reason is DenialReason.AMBIGUOUS_TEAM


def test_resolve_acting_team_without_candidates():
    with pytest.raises(UnauthorizedError) as exc_info:
        resolve_acting_team(make_user(1, is_admin=True), [], MANAGER_ROLE)
    assert exc_info.value.reason is DenialReason.NO_TEAM_AFFILIATION


def test_resolve_acting_team_reports_missing_manager_role_first():
    with pytest.raises(UnauthorizedError) as exc_info:
        resolve_acting_team(make_user(10, 101), [team(1, 101, manager=10)], MANAGER_ROLE)
    assert exc_info.value.reason is DenialReason.MISSING_MANAGER_ROLE


# --- Roster transitions ---

@pytest.mark.parametrize("standing, reason, error", [
    (UserStanding(1, is_bot=True), DenialReason.BOT_TARGET, InvalidInputError),
    (UserStanding(1, is_referee=True), DenialReason.IS_REFEREE, ConflictError),
    (UserStanding(1, managed_team_id=3), DenialReason.TARGET_IS_MANAGER, ConflictError),
    (UserStanding(1, assistant_team_ids=(3,)), DenialReason.TARGET_IS_ASSISTANT_MANAGER, ConflictError),
    (UserStanding(1, player_team_ids=(3,)), DenialReason.ALREADY_SIGNED, ConflictError),
])
def test_can_receive_offer_denials(standing, reason, error):
    result = can_receive_offer(standing)
    assert result.reason is reason
    assert result.error is error


def test_can_receive_offer_rejects_self():
    assert can_receive_offer(UserStanding(7), sender_id=7).reason is DenialReason.SELF_TARGET
    assert can_receive_offer(UserStanding(7), sender_id=8)


def test_can_become_referee():
    assert can_become_referee(UserStanding(1))
    assert can_become_referee(UserStanding(1, is_referee=True)).reason is DenialReason.ALREADY_REFEREE
    assert can_become_referee(UserStanding(1, player_team_ids=(2,))).reason is DenialReason.ALREADY_SIGNED
    assert can_become_referee(UserStanding(1, is_bot=True)).reason is DenialReason.BOT_TARGET


def test_can_become_manager():
    assert can_become_manager(UserStanding(1), team())
    assert can_become_manager(UserStanding(1), team(manager=5)).reason is DenialReason.TEAM_HAS_MANAGER
    assert can_become_manager(UserStanding(1, managed_team_id=2), team()).reason \
        is DenialReason.ALREADY_MANAGES_TEAM
    assert can_become_manager(UserStanding(1, player_team_ids=(1,)), team()).reason \
        is DenialReason.ALREADY_SIGNED
    assert can_become_manager(UserStanding(1, is_referee=True), team()).reason is DenialReason.IS_REFEREE


def test_can_become_assistant_manager():
    assert can_become_assistant_manager(UserStanding(1, player_team_ids=(1,)), team(1))
    assert can_become_assistant_manager(UserStanding(1), team(1, assistants=(8, 9))).reason \
        is DenialReason.ASSISTANT_CAPACITY_REACHED
    assert can_become_assistant_manager(UserStanding(1, assistant_team_ids=(1,)), team(1)).reason \
        is DenialReason.ALREADY_ASSISTANT
    assert can_become_assistant_manager(UserStanding(1, assistant_team_ids=(2,)), team(1)).reason \
        is DenialReason.ASSISTANT_OF_OTHER_TEAM
    assert can_become_assistant_manager(UserStanding(1, player_team_ids=(2,)), team(1)).reason \
        is DenialReason.PLAYER_ON_OTHER_TEAM


def test_can_demand():
    signed = UserStanding(1, player_team_ids=(1,), demand_uses=1)
    assert can_demand(signed, window_open=False)
    exhausted = UserStanding(1, player_team_ids=(1,), demand_uses=2)
    assert can_demand(exhausted, window_open=False).reason is DenialReason.DEMAND_LIMIT_REACHED
    assert can_demand(exhausted, window_open=True)
    assert can_demand(UserStanding(1), window_open=True).reason is DenialReason.NOT_ON_TEAM
    staff = UserStanding(1, managed_team_id=1, player_team_ids=(1,))
    assert can_demand(staff, window_open=True).reason is DenialReason.STAFF_CANNOT_DEMAND


def test_fixture_posting_checks():
    assert can_archive_fixtures(None).error is NotFoundError
    assert can_archive_fixtures(FakePosting())
    assert can_remove_fixtures(None).reason is DenialReason.NO_FIXTURES_POSTED
    assert can_remove_fixtures(FakePosting(is_archived=True)).reason is DenialReason.FIXTURES_PROTECTED
    assert can_remove_fixtures(FakePosting())
