"""
Shared plumbing for the lifecycle operations classes.

Every state transition runs inside one Database.transaction(); side effects
on the chat platform run only after that transaction has committed, and a
failing side effect is recorded as a warning on the outcome instead of
unwinding the change.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.database.database import Database
from league_bot.database.models import Team
from league_bot.database.repository import LeagueRepository
from league_bot.services.gateway import LeagueGateway
from league_bot.services.settings import LeagueSettingsService
from league_bot.utils.league_exceptions import DenialReason, ExternalSideEffectFailed, NotFoundError
from league_bot.utils.logger import setup_logger

T = TypeVar("T")


@dataclass
class OperationOutcome:
    """Committed result of an operation plus any side-effect warnings"""
    warnings: List[str] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


class LifecycleOperations:

    def __init__(self, database: Database, settings: LeagueSettingsService, gateway: LeagueGateway):
        self.db = database
        self.settings = settings
        self.gateway = gateway
        self.logger = setup_logger(f"{type(self).__module__}.{type(self).__name__}")

    @asynccontextmanager
    async def _get_session_context(self, session: Optional[AsyncSession] = None):
        """
        Provides a read session. Uses the provided session if available,
        otherwise creates and manages a new one.
        """
        if session:
            yield session
        else:
            async with self.db.get_session() as new_session:
                yield new_session

    async def _in_transaction(self, op: Callable[[AsyncSession], Awaitable[T]],
                              session: Optional[AsyncSession] = None) -> T:
        # Use provided session or open a new serialised transaction
        if session:
            return await op(session)
        async with self.db.transaction() as txn_session:
            return await op(txn_session)

    async def _require_team(self, repo: LeagueRepository, team_id: int) -> Team:
        team = await repo.get_team(team_id)
        if team is None:
            raise NotFoundError(f"Team {team_id} not found", "No team found with this role.",
                                reason=DenialReason.TEAM_NOT_FOUND)
        return team

    async def _attempt_side_effect(self, outcome: OperationOutcome, description: str,
                                   side_effect: Awaitable[Any]) -> Any:
        """Await a gateway call, turning any failure into a warning on the outcome."""
        try:
            return await side_effect
        except ExternalSideEffectFailed as e:
            warning = e.user_message
        except Exception as e:
            warning = f"{description} could not be completed: {e}"
        self.logger.warning(f"Side effect failed ({description}): {warning}")
        outcome.warnings.append(warning)
        return None

    async def _grant_role(self, outcome: OperationOutcome, discord_id: int,
                          role_id: Optional[int], description: str):
        if role_id is None:
            outcome.warnings.append(f"{description}: role is not configured")
            self.logger.warning(f"Skipped role grant for {discord_id} ({description}): role not configured")
            return
        await self._attempt_side_effect(outcome, description,
                                        self.gateway.grant_role(discord_id, role_id, description))

    async def _revoke_role(self, outcome: OperationOutcome, discord_id: int,
                           role_id: Optional[int], description: str):
        if role_id is None:
            self.logger.debug(f"Skipped role revoke for {discord_id} ({description}): role not configured")
            return
        await self._attempt_side_effect(outcome, description,
                                        self.gateway.revoke_role(discord_id, role_id, description))
