"""
Player Operations

Lazy player registration and profile lookups.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.data_models.roster import Actor, PlayerProfile
from league_bot.database.models import MembershipRole, Player
from league_bot.database.repository import LeagueRepository
from league_bot.operations.base import LifecycleOperations
from league_bot.utils.league_exceptions import DenialReason, InvalidInputError


class PlayerOperations(LifecycleOperations):

    async def get_or_create_player(self, user: Actor, session: Optional[AsyncSession] = None) -> Player:
        """
        Get an existing player or register them on first interaction.

        Raises:
            InvalidInputError: The user is a bot
        """
        if user.is_bot:
            raise InvalidInputError("Bots cannot be registered as players", reason=DenialReason.BOT_TARGET)

        async def _get_or_create(session: AsyncSession) -> Player:
            return await LeagueRepository(session).get_or_create_player(user.discord_id, user.display_name)

        return await self._in_transaction(_get_or_create, session)

    async def player_profile(self, user: Actor, session: Optional[AsyncSession] = None) -> PlayerProfile:
        """Counters, demand uses and current team of a player, registering them if needed."""
        player = await self.get_or_create_player(user, session=session)

        async with self._get_session_context(session) as s:
            repo = LeagueRepository(s)
            memberships = await repo.player_memberships(player.id, MembershipRole.PLAYER)
            team = await repo.get_team(memberships[0].team_id) if memberships else None
            return PlayerProfile(
                discord_id=player.discord_id,
                name=player.name,
                goals=player.goals,
                assists=player.assists,
                mentions=player.mentions,
                motm=player.motm,
                demand_uses=player.demand_uses,
                team_name=team.name if team else None,
                position=memberships[0].position if memberships else None,
            )
