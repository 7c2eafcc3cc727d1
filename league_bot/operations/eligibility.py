"""
Eligibility rules for the league.

Pure functions over UserStanding / TeamStanding snapshots. Each check returns
an Eligibility that is either allowed or carries the specific DenialReason and
the exception class that reports it. Nothing here touches the database, so
every rule can be exercised directly in tests.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Type

from league_bot.constants import LeagueConstants
from league_bot.data_models.roster import Actor, TeamStanding, UserStanding
from league_bot.utils.league_exceptions import (
    DenialReason, LeagueOperationError, UnauthorizedError, NotFoundError,
    ConflictError, InvalidInputError
)


@dataclass(frozen=True)
class Eligibility:
    """Outcome of an eligibility check"""
    allowed: bool
    reason: Optional[DenialReason] = None
    message: str = ""
    error: Optional[Type[LeagueOperationError]] = None

    def __bool__(self) -> bool:
        return self.allowed

    def raise_if_denied(self):
        if not self.allowed:
            raise self.error(self.message, reason=self.reason)


ALLOWED = Eligibility(allowed=True)


def _deny(error: Type[LeagueOperationError], reason: DenialReason, message: str) -> Eligibility:
    return Eligibility(allowed=False, reason=reason, message=message, error=error)


def _mention(discord_id: int) -> str:
    return f"<@{discord_id}>"


# --- Caller authority ---

def require_admin(actor: Actor, action: str = "do that") -> Eligibility:
    if actor.is_admin:
        return ALLOWED
    return _deny(UnauthorizedError, DenialReason.NOT_ADMIN, f"Only administrators can {action}.")


def require_referee_or_admin(actor: Actor, actor_is_referee: bool, action: str = "do that") -> Eligibility:
    if actor.is_admin or actor_is_referee:
        return ALLOWED
    return _deny(UnauthorizedError, DenialReason.NOT_REFEREE_OR_ADMIN,
                 f"Only referees or administrators can {action}.")


def can_adjust_stat(actor: Actor, actor_is_referee: bool, delta: int) -> Eligibility:
    """Referees may add to a counter; only admins may take away."""
    if delta < 0:
        return require_admin(actor, "remove stats")
    return require_referee_or_admin(actor, actor_is_referee, "modify stats")


def can_act_for_team(actor: Actor, team: TeamStanding, manager_role_id: Optional[int]) -> Eligibility:
    """Whether the caller may send offers or release players on behalf of a team.

    Admins only need the team's role. Everyone else needs the configured
    manager role, must manage the team, and must hold the team's role.
    """
    if actor.is_admin:
        if actor.has_role(team.role_id):
            return ALLOWED
        return _deny(UnauthorizedError, DenialReason.MISSING_TEAM_ROLE,
                     f"Admins must hold the {team.name} role to act for that team.")

    if manager_role_id is None:
        return _deny(UnauthorizedError, DenialReason.MANAGER_ROLE_NOT_CONFIGURED,
                     "The manager role has not been set. An admin must configure it first.")
    if not actor.has_role(manager_role_id):
        return _deny(UnauthorizedError, DenialReason.MISSING_MANAGER_ROLE,
                     "You must have the Manager role to do that.")
    if team.manager_discord_id != actor.discord_id:
        return _deny(UnauthorizedError, DenialReason.NOT_TEAM_MANAGER,
                     f"You are not the manager of {team.name}.")
    if not actor.has_role(team.role_id):
        return _deny(UnauthorizedError, DenialReason.MISSING_TEAM_ROLE,
                     f"You must have the {team.name} role to act for that team.")
    return ALLOWED


def resolve_acting_team(actor: Actor, teams: Sequence[TeamStanding],
                        manager_role_id: Optional[int]) -> TeamStanding:
    """Find the single team the caller can act for.

    Teams are examined lowest id first. Raises UnauthorizedError when there is
    no candidate and InvalidInputError when more than one team qualifies, in
    which case the caller has to name the team explicitly.
    """
    if not actor.is_admin:
        # Report missing global prerequisites before scanning teams
        if manager_role_id is None:
            raise UnauthorizedError("The manager role has not been set. An admin must configure it first.",
                                    reason=DenialReason.MANAGER_ROLE_NOT_CONFIGURED)
        if not actor.has_role(manager_role_id):
            raise UnauthorizedError("You must have the Manager role to do that.",
                                    reason=DenialReason.MISSING_MANAGER_ROLE)

    candidates = [
        team for team in sorted(teams, key=lambda t: t.team_id)
        if can_act_for_team(actor, team, manager_role_id).allowed
    ]
    if not candidates:
        raise UnauthorizedError(
            "You are not associated with any team you can act for.",
            reason=DenialReason.NO_TEAM_AFFILIATION,
        )
    if len(candidates) > 1:
        names = ", ".join(team.name for team in candidates)
        raise InvalidInputError(
            f"You can act for several teams ({names}). Please choose one explicitly.",
            reason=DenialReason.AMBIGUOUS_TEAM,
        )
    return candidates[0]


# --- Roster transitions ---

def can_become_referee(user: UserStanding) -> Eligibility:
    if user.is_bot:
        return _deny(InvalidInputError, DenialReason.BOT_TARGET, "Bots cannot be referees.")
    if user.is_referee:
        return _deny(ConflictError, DenialReason.ALREADY_REFEREE,
                     f"{_mention(user.discord_id)} is already a referee.")
    if user.is_manager:
        return _deny(ConflictError, DenialReason.TARGET_IS_MANAGER,
                     f"{_mention(user.discord_id)} is a manager and cannot be a referee.")
    if user.is_assistant_manager:
        return _deny(ConflictError, DenialReason.TARGET_IS_ASSISTANT_MANAGER,
                     f"{_mention(user.discord_id)} is an assistant manager and cannot be a referee.")
    if user.is_signed:
        return _deny(ConflictError, DenialReason.ALREADY_SIGNED,
                     f"{_mention(user.discord_id)} is signed to a team and cannot be a referee.")
    return ALLOWED


def can_receive_offer(target: UserStanding, sender_id: Optional[int] = None) -> Eligibility:
    """Whether a user can be offered a playing contract (or be added directly)."""
    if target.is_bot:
        return _deny(InvalidInputError, DenialReason.BOT_TARGET, "Bots cannot be signed to teams.")
    if sender_id is not None and target.discord_id == sender_id:
        return _deny(InvalidInputError, DenialReason.SELF_TARGET,
                     "You cannot send a contract offer to yourself.")
    if target.is_referee:
        return _deny(ConflictError, DenialReason.IS_REFEREE,
                     f"{_mention(target.discord_id)} is a referee and cannot be signed.")
    if target.is_manager:
        return _deny(ConflictError, DenialReason.TARGET_IS_MANAGER,
                     f"{_mention(target.discord_id)} is a manager and cannot receive contract offers.")
    if target.is_assistant_manager:
        return _deny(ConflictError, DenialReason.TARGET_IS_ASSISTANT_MANAGER,
                     f"{_mention(target.discord_id)} is an assistant manager and cannot receive contract offers.")
    if target.is_signed:
        return _deny(ConflictError, DenialReason.ALREADY_SIGNED,
                     f"{_mention(target.discord_id)} is already signed to a team.")
    return ALLOWED


def can_become_manager(user: UserStanding, team: TeamStanding) -> Eligibility:
    if user.is_bot:
        return _deny(InvalidInputError, DenialReason.BOT_TARGET, "Bots cannot manage teams.")
    if user.is_referee:
        return _deny(ConflictError, DenialReason.IS_REFEREE,
                     f"{_mention(user.discord_id)} is a referee and cannot manage a team.")
    if team.manager_discord_id is not None:
        return _deny(ConflictError, DenialReason.TEAM_HAS_MANAGER,
                     f"{team.name} already has a manager ({_mention(team.manager_discord_id)}).")
    if user.is_manager:
        return _deny(ConflictError, DenialReason.ALREADY_MANAGES_TEAM,
                     f"{_mention(user.discord_id)} already manages another team. A user can only manage one team.")
    if user.is_signed:
        return _deny(ConflictError, DenialReason.ALREADY_SIGNED,
                     f"{_mention(user.discord_id)} is a player. A user cannot be both a player and a manager.")
    return ALLOWED


def can_become_assistant_manager(user: UserStanding, team: TeamStanding) -> Eligibility:
    if user.is_bot:
        return _deny(InvalidInputError, DenialReason.BOT_TARGET, "Bots cannot be assistant managers.")
    if user.is_referee:
        return _deny(ConflictError, DenialReason.IS_REFEREE,
                     f"{_mention(user.discord_id)} is a referee and cannot be an assistant manager.")
    if team.team_id in user.assistant_team_ids:
        return _deny(ConflictError, DenialReason.ALREADY_ASSISTANT,
                     f"{_mention(user.discord_id)} is already an assistant manager of {team.name}.")
    if team.assistant_count >= LeagueConstants.MAX_ASSISTANT_MANAGERS:
        return _deny(ConflictError, DenialReason.ASSISTANT_CAPACITY_REACHED,
                     f"{team.name} already has {LeagueConstants.MAX_ASSISTANT_MANAGERS} assistant managers.")
    if any(team_id != team.team_id for team_id in user.assistant_team_ids):
        return _deny(ConflictError, DenialReason.ASSISTANT_OF_OTHER_TEAM,
                     f"{_mention(user.discord_id)} is already an assistant manager of another team.")
    if any(team_id != team.team_id for team_id in user.player_team_ids):
        return _deny(ConflictError, DenialReason.PLAYER_ON_OTHER_TEAM,
                     f"{_mention(user.discord_id)} plays for another team. "
                     "Assistant managers can only be players on the same team.")
    return ALLOWED


def can_demand(player: UserStanding, window_open: bool) -> Eligibility:
    """Whether a player may release themselves from their team."""
    if player.is_staff:
        return _deny(ConflictError, DenialReason.STAFF_CANNOT_DEMAND,
                     "Managers and assistant managers cannot use the demand command.")
    if not player.is_signed:
        return _deny(ConflictError, DenialReason.NOT_ON_TEAM, "You are not part of any team.")
    if not window_open and player.demand_uses >= LeagueConstants.DEMAND_LIMIT:
        return _deny(ConflictError, DenialReason.DEMAND_LIMIT_REACHED,
                     f"You have already used your {LeagueConstants.DEMAND_LIMIT} allowed demands. "
                     "Contact an admin if you need further assistance.")
    return ALLOWED


# --- Fixture postings ---

def can_archive_fixtures(posting) -> Eligibility:
    if posting is None:
        return _deny(NotFoundError, DenialReason.NO_FIXTURES_POSTED, "No fixtures have been posted.")
    return ALLOWED


def can_remove_fixtures(posting) -> Eligibility:
    if posting is None:
        return _deny(NotFoundError, DenialReason.NO_FIXTURES_POSTED, "No fixtures have been posted.")
    if posting.is_archived:
        return _deny(ConflictError, DenialReason.FIXTURES_PROTECTED,
                     "These fixtures have been archived and can no longer be removed.")
    return ALLOWED
