"""
Referee Operations

Referees may record stats and manage played matches. Being a referee excludes
every playing or staff position in the league.
"""

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.data_models.roster import Actor
from league_bot.database.repository import LeagueRepository
from league_bot.operations.base import LifecycleOperations, OperationOutcome
from league_bot.operations.eligibility import require_admin, can_become_referee
from league_bot.utils.league_exceptions import DenialReason, NotFoundError


@dataclass
class RefereeOutcome(OperationOutcome):
    discord_id: Optional[int] = None


class RefereeOperations(LifecycleOperations):

    async def add_referee(self, admin: Actor, user: Actor,
                          session: Optional[AsyncSession] = None) -> RefereeOutcome:
        """
        Appoint a referee and grant the referee role.

        Raises:
            UnauthorizedError: Caller is not an admin
            NotFoundError: The referee role has not been configured
            ConflictError: User is already a referee, staff, or a signed player
        """
        require_admin(admin, "set referees").raise_if_denied()
        role_id = self.settings.current.referee_role

        async def _add(session: AsyncSession):
            repo = LeagueRepository(session)
            standing = await repo.user_standing(user.discord_id, is_bot=user.is_bot)
            can_become_referee(standing).raise_if_denied()
            if role_id is None:
                raise NotFoundError("Referee role not configured",
                                    "The referee role has not been set. An admin must configure it first.",
                                    reason=DenialReason.ROLE_NOT_CONFIGURED)
            await repo.add_referee(user.discord_id)
            self.logger.info(f"{user.discord_id} appointed referee by {admin.discord_id}")

        await self._in_transaction(_add, session)
        outcome = RefereeOutcome(discord_id=user.discord_id)
        await self._grant_role(outcome, user.discord_id, role_id, "grant referee role")
        return outcome

    async def remove_referee(self, admin: Actor, discord_id: int,
                             session: Optional[AsyncSession] = None) -> RefereeOutcome:
        require_admin(admin, "remove referees").raise_if_denied()

        async def _remove(session: AsyncSession):
            repo = LeagueRepository(session)
            referee = await repo.get_referee(discord_id)
            if referee is None:
                raise NotFoundError(f"{discord_id} is not a referee", "This user is not a referee.",
                                    reason=DenialReason.REFEREE_NOT_FOUND)
            await repo.delete_referee(referee)
            self.logger.info(f"{discord_id} removed as referee by {admin.discord_id}")

        await self._in_transaction(_remove, session)
        outcome = RefereeOutcome(discord_id=discord_id)
        await self._revoke_role(outcome, discord_id, self.settings.current.referee_role, "revoke referee role")
        return outcome

    async def list_referees(self, session: Optional[AsyncSession] = None) -> List[int]:
        async with self._get_session_context(session) as s:
            return [referee.discord_id for referee in await LeagueRepository(s).list_referees()]

    async def is_referee(self, discord_id: int, session: Optional[AsyncSession] = None) -> bool:
        async with self._get_session_context(session) as s:
            return await LeagueRepository(s).get_referee(discord_id) is not None
