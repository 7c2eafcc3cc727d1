"""
Administrative Operations

Owner-only destructive maintenance. Clearing the database wipes every league
table in one transaction and reloads the settings cache so no stale channel
or role ids survive the purge.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.config import Config
from league_bot.constants import LeagueConstants
from league_bot.data_models.roster import Actor
from league_bot.operations.base import LifecycleOperations, OperationOutcome
from league_bot.utils.league_exceptions import DenialReason, InvalidInputError, UnauthorizedError


@dataclass
class ClearDatabaseOutcome(OperationOutcome):
    cleared: bool = False


class AdminOperations(LifecycleOperations):

    async def clear_database(self, actor: Actor, confirmations: Sequence[bool],
                             session: Optional[AsyncSession] = None) -> ClearDatabaseOutcome:
        """
        Delete every league record.

        Args:
            actor: Must be the configured bot owner
            confirmations: One answer per confirmation prompt; all must be yes

        Raises:
            UnauthorizedError: Caller is not the bot owner
            InvalidInputError: A confirmation was declined or missing
        """
        if not Config.OWNER_DISCORD_ID or actor.discord_id != Config.OWNER_DISCORD_ID:
            raise UnauthorizedError(
                f"{actor.discord_id} attempted to clear the database",
                "Only the bot owner can clear the database.",
                reason=DenialReason.NOT_OWNER,
            )

        answers = list(confirmations)
        if len(answers) != LeagueConstants.RESET_CONFIRMATIONS_REQUIRED or not all(a is True for a in answers):
            raise InvalidInputError(
                "Database clear not fully confirmed",
                "Database reset cancelled.",
                reason=DenialReason.CONFIRMATION_INCOMPLETE,
            )

        async def _purge(session: AsyncSession):
            await self.db.purge_all(session)

        await self._in_transaction(_purge, session)
        self.logger.warning(f"League database cleared by owner {actor.discord_id}")

        outcome = ClearDatabaseOutcome(cleared=True)
        if session is None:
            await self.settings.load()
        return outcome
