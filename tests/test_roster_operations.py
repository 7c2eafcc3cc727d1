"""
Tests for roster transitions: offers, direct edits, staff appointments,
releases and the two-step demand.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from league_bot.database.models import Team
from league_bot.database.repository import LeagueRepository
from league_bot.utils.league_exceptions import (
    ConflictError, DenialReason, ExpiredError, InvalidInputError, NotFoundError, UnauthorizedError,
)

from conftest import ADMIN_ID, ASSISTANT_ROLE, MANAGER_ROLE, TEAM_A_ROLE, TEAM_B_ROLE, make_user

PLAYER = make_user(20)
MANAGER = make_user(10, TEAM_A_ROLE, MANAGER_ROLE)


async def roster_ids(team_ops, role_id):
    roster = await team_ops.get_roster(role_id)
    return [p.discord_id for p in roster.players]


# =============================================================================
# Offers
# =============================================================================


async def test_offer_accept_signs_player(roster_ops, team_ops, gateway, configured, teams, admin):
    team_a, _ = teams
    sent = await roster_ops.create_offer(admin, PLAYER, "5M", "2 seasons", position="ST")

    assert sent.team_id == team_a.id
    prompt = gateway.called("deliver_offer")[0][0]
    assert prompt.token == sent.token
    assert prompt.team_name == "Team A"

    accepted = await roster_ops.resolve_offer(sent.token, "accept", responder=PLAYER)

    assert accepted.action == "offer_accepted"
    assert not accepted.warnings
    assert await roster_ids(team_ops, TEAM_A_ROLE) == [PLAYER.discord_id]
    assert (PLAYER.discord_id, TEAM_A_ROLE) in gateway.called("grant_role")
    channel_id, entry = gateway.called("log_transaction")[0]
    assert channel_id == 700
    assert entry.kind == "signed"
    assert entry.salary == "5M"
    assert entry.position == "ST"


async def test_offer_is_consumed_exactly_once(roster_ops, team_ops, teams, admin):
    sent = await roster_ops.create_offer(admin, PLAYER, "5M", "1 season")
    await roster_ops.resolve_offer(sent.token, "accept", responder=PLAYER)

    with pytest.raises(ExpiredError) as exc_info:
        await roster_ops.resolve_offer(sent.token, "accept", responder=PLAYER)
    assert exc_info.value.reason is DenialReason.OFFER_EXPIRED
    assert await roster_ids(team_ops, TEAM_A_ROLE) == [PLAYER.discord_id]


async def test_decline_removes_offer_without_signing(roster_ops, team_ops, gateway, teams, admin):
    sent = await roster_ops.create_offer(admin, PLAYER, "5M", "1 season")
    declined = await roster_ops.resolve_offer(sent.token, "decline", responder=PLAYER)

    assert declined.action == "offer_declined"
    assert await roster_ids(team_ops, TEAM_A_ROLE) == []
    assert gateway.called("grant_role") == []
    with pytest.raises(ExpiredError):
        await roster_ops.resolve_offer(sent.token, "accept", responder=PLAYER)


async def test_only_recipient_may_answer(roster_ops, teams, admin):
    sent = await roster_ops.create_offer(admin, PLAYER, "5M", "1 season")
    with pytest.raises(UnauthorizedError) as exc_info:
        await roster_ops.resolve_offer(sent.token, "accept", responder=make_user(21))
    assert exc_info.value.reason is DenialReason.NOT_RECIPIENT


async def test_second_sign_on_is_a_conflict(roster_ops, teams):
    admin_a = make_user(ADMIN_ID, TEAM_A_ROLE, is_admin=True)
    admin_b = make_user(ADMIN_ID, TEAM_B_ROLE, is_admin=True)
    offer_a = await roster_ops.create_offer(admin_a, PLAYER, "5M", "1 season")
    offer_b = await roster_ops.create_offer(admin_b, PLAYER, "6M", "1 season")

    await roster_ops.resolve_offer(offer_a.token, "accept", responder=PLAYER)
    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.resolve_offer(offer_b.token, "accept", responder=PLAYER)
    assert exc_info.value.reason is DenialReason.ALREADY_SIGNED

    with pytest.raises(ConflictError):
        await roster_ops.create_offer(admin_b, PLAYER, "6M", "1 season")


async def test_offer_input_validation(roster_ops, teams, admin):
    with pytest.raises(InvalidInputError) as exc_info:
        await roster_ops.create_offer(admin, PLAYER, " ", "1 season")
    assert exc_info.value.reason is DenialReason.MISSING_VALUE

    with pytest.raises(InvalidInputError) as exc_info:
        await roster_ops.create_offer(admin, make_user(ADMIN_ID), "5M", "1 season")
    assert exc_info.value.reason is DenialReason.SELF_TARGET

    with pytest.raises(InvalidInputError) as exc_info:
        await roster_ops.create_offer(admin, make_user(30, is_bot=True), "5M", "1 season")
    assert exc_info.value.reason is DenialReason.BOT_TARGET

    sent = await roster_ops.create_offer(admin, PLAYER, "5M", "1 season")
    with pytest.raises(InvalidInputError) as exc_info:
        await roster_ops.resolve_offer(sent.token, "maybe")
    assert exc_info.value.reason is DenialReason.INVALID_DECISION


async def test_admin_without_team_role_cannot_offer(roster_ops, teams):
    with pytest.raises(UnauthorizedError) as exc_info:
        await roster_ops.create_offer(make_user(ADMIN_ID, is_admin=True), PLAYER, "5M", "1 season")
    assert exc_info.value.reason is DenialReason.NO_TEAM_AFFILIATION


async def test_admin_with_two_team_roles_must_choose(roster_ops, teams):
    _, team_b = teams
    both = make_user(ADMIN_ID, TEAM_A_ROLE, TEAM_B_ROLE, is_admin=True)
    with pytest.raises(InvalidInputError) as exc_info:
        await roster_ops.create_offer(both, PLAYER, "5M", "1 season")
    assert exc_info.value.reason is DenialReason.AMBIGUOUS_TEAM

    sent = await roster_ops.create_offer(both, PLAYER, "5M", "1 season", team_id=team_b.id)
    assert sent.team_name == "Team B"


async def test_manager_offers_for_their_team(roster_ops, configured, teams, admin):
    team_a, _ = teams
    await roster_ops.assign_manager(admin, MANAGER, team_a.id)

    sent = await roster_ops.create_offer(MANAGER, PLAYER, "1M", "1 season")
    assert sent.team_id == team_a.id

    without_role = make_user(10, TEAM_A_ROLE)
    with pytest.raises(UnauthorizedError) as exc_info:
        await roster_ops.create_offer(without_role, make_user(21), "1M", "1 season")
    assert exc_info.value.reason is DenialReason.MISSING_MANAGER_ROLE


async def test_manager_role_must_be_configured(roster_ops, teams):
    with pytest.raises(UnauthorizedError) as exc_info:
        await roster_ops.create_offer(MANAGER, PLAYER, "1M", "1 season")
    assert exc_info.value.reason is DenialReason.MANAGER_ROLE_NOT_CONFIGURED


async def test_failed_delivery_keeps_offer_as_warning(roster_ops, gateway, teams, admin):
    gateway.fail_on("deliver_offer")
    sent = await roster_ops.create_offer(admin, PLAYER, "5M", "1 season")

    assert sent.warnings
    assert await roster_ops.delivered_offers() == []
    # Still resolvable by token
    accepted = await roster_ops.resolve_offer(sent.token, "accept", responder=PLAYER)
    assert accepted.team_name == "Team A"


async def test_delivered_offers_lists_message_ids(roster_ops, teams, admin):
    first = await roster_ops.create_offer(admin, PLAYER, "5M", "1 season")
    second = await roster_ops.create_offer(admin, make_user(21), "5M", "1 season")

    delivered = await roster_ops.delivered_offers()
    assert [token for token, _ in delivered] == [first.token, second.token]
    assert all(message_id is not None for _, message_id in delivered)


async def test_role_grant_failure_does_not_undo_signing(roster_ops, team_ops, gateway, teams, admin):
    sent = await roster_ops.create_offer(admin, PLAYER, "5M", "1 season")
    gateway.fail_on("grant_role")

    accepted = await roster_ops.resolve_offer(sent.token, "accept", responder=PLAYER)

    assert accepted.has_warnings
    assert "simulated failure" in accepted.warnings[0]
    assert await roster_ids(team_ops, TEAM_A_ROLE) == [PLAYER.discord_id]


async def test_deleting_team_invalidates_its_offers(roster_ops, team_ops, teams, admin):
    sent = await roster_ops.create_offer(admin, PLAYER, "5M", "1 season")
    await team_ops.delete_team(admin, TEAM_A_ROLE)

    with pytest.raises(ExpiredError):
        await roster_ops.resolve_offer(sent.token, "accept", responder=PLAYER)


# =============================================================================
# Direct edits and releases
# =============================================================================


async def test_direct_add_and_remove(roster_ops, team_ops, gateway, configured, teams, admin):
    team_a, _ = teams
    added = await roster_ops.direct_add(admin, PLAYER, team_a.id)
    assert added.action == "player_added"
    assert await roster_ids(team_ops, TEAM_A_ROLE) == [PLAYER.discord_id]

    removed = await roster_ops.direct_remove(admin, PLAYER.discord_id, team_a.id)
    assert removed.action == "player_removed"
    assert await roster_ids(team_ops, TEAM_A_ROLE) == []
    assert (PLAYER.discord_id, TEAM_A_ROLE) in gateway.called("revoke_role")
    assert [entry.kind for _, entry in gateway.called("log_transaction")] == ["added", "removed"]


async def test_direct_edits_require_admin_and_membership(roster_ops, teams, admin):
    team_a, team_b = teams
    with pytest.raises(UnauthorizedError):
        await roster_ops.direct_add(make_user(5), PLAYER, team_a.id)

    with pytest.raises(NotFoundError) as exc_info:
        await roster_ops.direct_remove(admin, PLAYER.discord_id, team_a.id)
    assert exc_info.value.reason is DenialReason.PLAYER_NOT_FOUND

    await roster_ops.direct_add(admin, PLAYER, team_a.id)
    with pytest.raises(NotFoundError) as exc_info:
        await roster_ops.direct_remove(admin, PLAYER.discord_id, team_b.id)
    assert exc_info.value.reason is DenialReason.MEMBERSHIP_NOT_FOUND

    with pytest.raises(NotFoundError) as exc_info:
        await roster_ops.direct_add(admin, make_user(21), 999)
    assert exc_info.value.reason is DenialReason.TEAM_NOT_FOUND


async def test_manager_releases_player(roster_ops, team_ops, gateway, configured, teams, admin):
    team_a, _ = teams
    await roster_ops.assign_manager(admin, MANAGER, team_a.id)
    await roster_ops.direct_add(admin, PLAYER, team_a.id)

    released = await roster_ops.release(MANAGER, PLAYER.discord_id)

    assert released.team_id == team_a.id
    assert await roster_ids(team_ops, TEAM_A_ROLE) == []
    _, entry = gateway.called("log_transaction")[-1]
    assert entry.kind == "released"
    assert entry.actor_discord_id == MANAGER.discord_id


async def test_release_denials(roster_ops, configured, teams, admin):
    team_a, team_b = teams
    await roster_ops.assign_manager(admin, MANAGER, team_a.id)
    await roster_ops.direct_add(admin, PLAYER, team_b.id)

    with pytest.raises(InvalidInputError) as exc_info:
        await roster_ops.release(MANAGER, MANAGER.discord_id)
    assert exc_info.value.reason is DenialReason.SELF_TARGET

    with pytest.raises(NotFoundError) as exc_info:
        await roster_ops.release(MANAGER, PLAYER.discord_id)
    assert exc_info.value.reason is DenialReason.MEMBERSHIP_NOT_FOUND

    outsider = make_user(11, TEAM_A_ROLE, MANAGER_ROLE)
    with pytest.raises(UnauthorizedError) as exc_info:
        await roster_ops.release(outsider, PLAYER.discord_id)
    assert exc_info.value.reason is DenialReason.NO_TEAM_AFFILIATION


# =============================================================================
# Managers and assistant managers
# =============================================================================


async def test_assign_and_clear_manager(roster_ops, team_ops, gateway, configured, teams, admin):
    team_a, _ = teams
    assigned = await roster_ops.assign_manager(admin, MANAGER, team_a.id)

    assert not assigned.warnings
    assert (MANAGER.discord_id, TEAM_A_ROLE) in gateway.called("grant_role")
    assert (MANAGER.discord_id, MANAGER_ROLE) in gateway.called("grant_role")
    assert (await team_ops.get_roster(TEAM_A_ROLE)).manager_discord_id == MANAGER.discord_id

    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.assign_manager(admin, make_user(11), team_a.id)
    assert exc_info.value.reason is DenialReason.TEAM_HAS_MANAGER

    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.create_offer(admin, MANAGER, "1M", "1 season")
    assert exc_info.value.reason is DenialReason.TARGET_IS_MANAGER

    cleared = await roster_ops.clear_manager(admin, team_a.id)
    assert cleared.player_discord_id == MANAGER.discord_id
    assert (MANAGER.discord_id, MANAGER_ROLE) in gateway.called("revoke_role")

    with pytest.raises(NotFoundError) as exc_info:
        await roster_ops.clear_manager(admin, team_a.id)
    assert exc_info.value.reason is DenialReason.NO_MANAGER


async def test_manager_of_one_team_only(roster_ops, configured, teams, admin):
    team_a, team_b = teams
    await roster_ops.assign_manager(admin, MANAGER, team_a.id)
    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.assign_manager(admin, MANAGER, team_b.id)
    assert exc_info.value.reason is DenialReason.ALREADY_MANAGES_TEAM


async def test_missing_manager_role_setting_becomes_warning(roster_ops, teams, admin):
    team_a, _ = teams
    assigned = await roster_ops.assign_manager(admin, MANAGER, team_a.id)
    assert assigned.warnings == ["grant manager role: role is not configured"]


async def test_assistant_manager_capacity(roster_ops, team_ops, configured, teams, admin):
    team_a, _ = teams
    await roster_ops.assign_assistant_manager(admin, make_user(31), team_a.id)
    await roster_ops.assign_assistant_manager(admin, make_user(32), team_a.id)

    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.assign_assistant_manager(admin, make_user(33), team_a.id)
    assert exc_info.value.reason is DenialReason.ASSISTANT_CAPACITY_REACHED
    assert (await team_ops.get_roster(TEAM_A_ROLE)).assistant_discord_ids == (31, 32)


async def test_legacy_assistant_slot_counts_toward_capacity(db, roster_ops, team_ops, configured, teams, admin):
    team_a, team_b = teams
    async with db.transaction() as session:
        (await session.get(Team, team_a.id)).legacy_assistant_manager_id = 35

    await roster_ops.assign_assistant_manager(admin, make_user(31), team_a.id)
    assert (await team_ops.get_roster(TEAM_A_ROLE)).assistant_discord_ids == (31, 35)

    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.assign_assistant_manager(admin, make_user(33), team_a.id)
    assert exc_info.value.reason is DenialReason.ASSISTANT_CAPACITY_REACHED

    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.assign_assistant_manager(admin, make_user(35), team_b.id)
    assert exc_info.value.reason is DenialReason.ASSISTANT_OF_OTHER_TEAM


async def test_assistant_may_play_for_same_team(roster_ops, gateway, configured, teams, admin):
    team_a, team_b = teams
    await roster_ops.direct_add(admin, PLAYER, team_a.id)
    await roster_ops.assign_assistant_manager(admin, PLAYER, team_a.id)
    assert (PLAYER.discord_id, ASSISTANT_ROLE) in gateway.called("grant_role")

    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.assign_assistant_manager(admin, PLAYER, team_b.id)
    assert exc_info.value.reason is DenialReason.ASSISTANT_OF_OTHER_TEAM

    # Still on the team, so only the assistant role goes
    await roster_ops.clear_assistant_manager(admin, team_a.id)
    assert gateway.called("revoke_role") == [(PLAYER.discord_id, ASSISTANT_ROLE)]


async def test_clear_assistant_requires_choice_when_several(roster_ops, team_ops, configured, teams, admin):
    team_a, _ = teams
    with pytest.raises(NotFoundError) as exc_info:
        await roster_ops.clear_assistant_manager(admin, team_a.id)
    assert exc_info.value.reason is DenialReason.NO_ASSISTANT_MANAGERS

    await roster_ops.assign_assistant_manager(admin, make_user(31), team_a.id)
    await roster_ops.assign_assistant_manager(admin, make_user(32), team_a.id)

    with pytest.raises(InvalidInputError) as exc_info:
        await roster_ops.clear_assistant_manager(admin, team_a.id)
    assert exc_info.value.reason is DenialReason.AMBIGUOUS_ASSISTANT

    with pytest.raises(NotFoundError) as exc_info:
        await roster_ops.clear_assistant_manager(admin, team_a.id, 99)
    assert exc_info.value.reason is DenialReason.NOT_ASSISTANT_MANAGER

    await roster_ops.clear_assistant_manager(admin, team_a.id, 31)
    assert (await team_ops.get_roster(TEAM_A_ROLE)).assistant_discord_ids == (32,)


# =============================================================================
# Demands
# =============================================================================


async def demand(roster_ops, player=PLAYER):
    requested = await roster_ops.request_demand(player)
    return await roster_ops.confirm_demand(requested.token, player.discord_id)


async def test_demand_limit_with_window_closed(roster_ops, team_ops, gateway, configured, teams, admin):
    team_a, _ = teams
    for expected_uses in (1, 2):
        await roster_ops.direct_add(admin, PLAYER, team_a.id)
        confirmed = await demand(roster_ops)
        assert confirmed.demand_uses == expected_uses
        assert await roster_ids(team_ops, TEAM_A_ROLE) == []

    assert gateway.called("log_transaction")[-1][1].kind == "demanded"

    await roster_ops.direct_add(admin, PLAYER, team_a.id)
    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.request_demand(PLAYER)
    assert exc_info.value.reason is DenialReason.DEMAND_LIMIT_REACHED


async def test_limit_is_rechecked_at_confirmation(roster_ops, window, teams, admin):
    team_a, _ = teams
    for _ in range(2):
        await roster_ops.direct_add(admin, PLAYER, team_a.id)
        await demand(roster_ops)
    await roster_ops.direct_add(admin, PLAYER, team_a.id)

    await window.open(admin)
    requested = await roster_ops.request_demand(PLAYER)
    await window.close(admin)

    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.confirm_demand(requested.token, PLAYER.discord_id)
    assert exc_info.value.reason is DenialReason.DEMAND_LIMIT_REACHED


async def test_open_window_suspends_limit(roster_ops, window, teams, admin):
    team_a, _ = teams
    await window.open(admin)
    for expected_uses in (1, 2, 3):
        await roster_ops.direct_add(admin, PLAYER, team_a.id)
        confirmed = await demand(roster_ops)
        assert confirmed.demand_uses == expected_uses


async def test_demand_confirmation_expires(db, roster_ops, teams, admin):
    team_a, _ = teams
    await roster_ops.direct_add(admin, PLAYER, team_a.id)
    requested = await roster_ops.request_demand(PLAYER)
    assert requested.expires_at > datetime.now(timezone.utc)

    async with db.transaction() as session:
        confirmation = await LeagueRepository(session).get_demand_confirmation(requested.token)
        confirmation.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)

    with pytest.raises(ExpiredError) as exc_info:
        await roster_ops.confirm_demand(requested.token, PLAYER.discord_id)
    assert exc_info.value.reason is DenialReason.DEMAND_EXPIRED


async def test_demand_confirmation_belongs_to_requester(roster_ops, team_ops, teams, admin):
    team_a, _ = teams
    await roster_ops.direct_add(admin, PLAYER, team_a.id)
    requested = await roster_ops.request_demand(PLAYER)

    with pytest.raises(UnauthorizedError) as exc_info:
        await roster_ops.confirm_demand(requested.token, 21)
    assert exc_info.value.reason is DenialReason.NOT_RECIPIENT

    await roster_ops.cancel_demand(requested.token, PLAYER.discord_id)
    with pytest.raises(ExpiredError):
        await roster_ops.confirm_demand(requested.token, PLAYER.discord_id)
    assert await roster_ids(team_ops, TEAM_A_ROLE) == [PLAYER.discord_id]

    # Unknown tokens are ignored
    cancelled = await roster_ops.cancel_demand("missing", PLAYER.discord_id)
    assert cancelled.action == "demand_cancelled"


async def test_confirmation_only_releases_from_requested_team(db, roster_ops, team_ops, teams, admin):
    team_a, team_b = teams
    await roster_ops.direct_add(admin, PLAYER, team_a.id)
    requested = await roster_ops.request_demand(PLAYER)
    assert requested.team_name == "Team A"

    await roster_ops.direct_remove(admin, PLAYER.discord_id, team_a.id)
    await roster_ops.direct_add(admin, PLAYER, team_b.id)

    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.confirm_demand(requested.token, PLAYER.discord_id)
    assert exc_info.value.reason is DenialReason.NOT_ON_TEAM
    assert await roster_ids(team_ops, TEAM_B_ROLE) == [PLAYER.discord_id]
    async with db.get_session() as session:
        assert (await LeagueRepository(session).get_player(PLAYER.discord_id)).demand_uses == 0


async def test_demand_denials(roster_ops, configured, teams, admin):
    team_a, _ = teams
    with pytest.raises(NotFoundError) as exc_info:
        await roster_ops.request_demand(PLAYER)
    assert exc_info.value.reason is DenialReason.PLAYER_NOT_FOUND

    await roster_ops.assign_manager(admin, MANAGER, team_a.id)
    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.request_demand(MANAGER)
    assert exc_info.value.reason is DenialReason.STAFF_CANNOT_DEMAND

    await roster_ops.direct_add(admin, PLAYER, team_a.id)
    await roster_ops.direct_remove(admin, PLAYER.discord_id, team_a.id)
    with pytest.raises(ConflictError) as exc_info:
        await roster_ops.request_demand(PLAYER)
    assert exc_info.value.reason is DenialReason.NOT_ON_TEAM


# =============================================================================
# Concurrent transitions
# =============================================================================


async def test_concurrent_accepts_sign_player_once(roster_ops, team_ops, teams):
    admin_a = make_user(ADMIN_ID, TEAM_A_ROLE, is_admin=True)
    admin_b = make_user(ADMIN_ID, TEAM_B_ROLE, is_admin=True)
    offer_a = await roster_ops.create_offer(admin_a, PLAYER, "5M", "1 season")
    offer_b = await roster_ops.create_offer(admin_b, PLAYER, "6M", "1 season")

    results = await asyncio.gather(
        roster_ops.resolve_offer(offer_a.token, "accept", responder=PLAYER),
        roster_ops.resolve_offer(offer_b.token, "accept", responder=PLAYER),
        return_exceptions=True,
    )

    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], ConflictError)
    assert errors[0].reason is DenialReason.ALREADY_SIGNED
    signed = await roster_ids(team_ops, TEAM_A_ROLE) + await roster_ids(team_ops, TEAM_B_ROLE)
    assert signed == [PLAYER.discord_id]


async def test_concurrent_demand_confirmations_release_once(db, roster_ops, team_ops, teams, admin):
    team_a, _ = teams
    await roster_ops.direct_add(admin, PLAYER, team_a.id)
    requested = await roster_ops.request_demand(PLAYER)

    results = await asyncio.gather(
        roster_ops.confirm_demand(requested.token, PLAYER.discord_id),
        roster_ops.confirm_demand(requested.token, PLAYER.discord_id),
        return_exceptions=True,
    )

    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], ExpiredError)
    assert await roster_ids(team_ops, TEAM_A_ROLE) == []
    async with db.get_session() as session:
        assert (await LeagueRepository(session).get_player(PLAYER.discord_id)).demand_uses == 1
