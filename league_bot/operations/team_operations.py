"""
Team Operations

Creating and deleting teams and reading their rosters.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.data_models.roster import Actor, RosterPlayer, TeamRoster
from league_bot.database.models import Team
from league_bot.database.repository import LeagueRepository
from league_bot.operations.base import LifecycleOperations, OperationOutcome
from league_bot.operations.eligibility import require_admin
from league_bot.utils.league_exceptions import DenialReason, ConflictError, InvalidInputError, NotFoundError


@dataclass
class TeamOutcome(OperationOutcome):
    team: Optional[Team] = None


class TeamOperations(LifecycleOperations):

    async def create_team(self, admin: Actor, name: str, short: str, role_id: int,
                          session: Optional[AsyncSession] = None) -> TeamOutcome:
        """
        Register a team bound to a chat role.

        Raises:
            UnauthorizedError: Caller is not an admin
            ConflictError: Name or role already belongs to a team
        """
        require_admin(admin, "create teams").raise_if_denied()
        name = (name or "").strip()
        short = (short or "").strip()
        if not name or not short:
            raise InvalidInputError("Team name and short code are required", reason=DenialReason.MISSING_VALUE)

        async def _create(session: AsyncSession) -> Team:
            repo = LeagueRepository(session)
            if await repo.get_team_by_role(role_id) is not None:
                raise ConflictError(f"Role {role_id} already bound to a team",
                                    "A team with this role already exists.",
                                    reason=DenialReason.TEAM_ROLE_TAKEN)
            if await repo.get_team_by_name(name) is not None:
                raise ConflictError(f"Team name {name!r} taken",
                                    f'A team with the name "{name}" already exists.',
                                    reason=DenialReason.TEAM_NAME_TAKEN)
            try:
                team = await repo.create_team(name, short, role_id)
            except IntegrityError as e:
                raise ConflictError(f"Team {name!r} conflicts with an existing team: {e}",
                                    "A team with this name or role already exists.",
                                    reason=DenialReason.TEAM_NAME_TAKEN) from e
            self.logger.info(f"Team {team.name} [{team.short}] created by {admin.discord_id} with role {role_id}")
            return team

        return TeamOutcome(team=await self._in_transaction(_create, session))

    async def delete_team(self, admin: Actor, role_id: int,
                          session: Optional[AsyncSession] = None) -> TeamOutcome:
        """Delete a team and every membership, appointment, offer and match that references it."""
        require_admin(admin, "delete teams").raise_if_denied()

        async def _delete(session: AsyncSession) -> Team:
            repo = LeagueRepository(session)
            team = await self._team_for_role(repo, role_id)
            await repo.delete_team(team)
            self.logger.info(f"Team {team.name} deleted by {admin.discord_id}")
            return team

        return TeamOutcome(team=await self._in_transaction(_delete, session))

    async def get_team_by_role(self, role_id: int, session: Optional[AsyncSession] = None) -> Team:
        async with self._get_session_context(session) as s:
            return await self._team_for_role(LeagueRepository(s), role_id)

    async def get_roster(self, role_id: int, session: Optional[AsyncSession] = None) -> TeamRoster:
        async with self._get_session_context(session) as s:
            repo = LeagueRepository(s)
            team = await self._team_for_role(repo, role_id)
            assistants = await repo.team_assistant_discord_ids(team)
            players = [
                RosterPlayer(discord_id=player.discord_id, name=player.name, position=membership.position,
                             salary=membership.salary, duration=membership.duration)
                for membership, player in await repo.team_players(team.id)
            ]
            return TeamRoster(team_id=team.id, name=team.name, short=team.short, role_id=team.role_id,
                              manager_discord_id=team.manager_discord_id,
                              assistant_discord_ids=tuple(assistants), players=tuple(players))

    async def _team_for_role(self, repo: LeagueRepository, role_id: int) -> Team:
        team = await repo.get_team_by_role(role_id)
        if team is None:
            raise NotFoundError(f"No team for role {role_id}", "No team found with this role.",
                                reason=DenialReason.TEAM_NOT_FOUND)
        return team
