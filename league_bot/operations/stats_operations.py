"""
Stats Operations

Per-player counters: goals, assists, mentions and man-of-the-match awards.
Referees and admins can add to a counter, only admins can take away, and
counters never drop below zero. Every change is posted to the log channel.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.constants import LeagueConstants
from league_bot.data_models.roster import Actor, StatChange
from league_bot.database.models import Player
from league_bot.database.repository import LeagueRepository
from league_bot.operations.base import LifecycleOperations, OperationOutcome
from league_bot.operations.eligibility import can_adjust_stat
from league_bot.utils.league_exceptions import DenialReason, InvalidInputError, NotFoundError

STATS = ("goals", "assists", "mentions", "motm")


@dataclass
class StatsOutcome(OperationOutcome):
    changes: List[StatChange] = field(default_factory=list)


class StatsOperations(LifecycleOperations):

    async def adjust_stat(self, actor: Actor, player: Actor, stat: str, delta: int,
                          session: Optional[AsyncSession] = None) -> StatsOutcome:
        """
        Add to or subtract from one counter of one player.

        Args:
            actor: Referee or admin for increments, admin for decrements
            player: The player whose counter changes; created on first use
            stat: One of goals, assists, mentions, motm
            delta: Non-zero amount to apply

        Raises:
            UnauthorizedError: Caller may not make this change
            InvalidInputError: Unknown stat, zero delta or bot target
            NotFoundError: Decrement for a player that was never recorded
        """
        return await self.adjust_stats(actor, [player], stat, delta, session=session)

    async def adjust_stats(self, actor: Actor, players: Sequence[Actor], stat: str, delta: int,
                           session: Optional[AsyncSession] = None) -> StatsOutcome:
        if stat not in STATS:
            raise InvalidInputError(f"Unknown stat {stat!r}", reason=DenialReason.INVALID_FIELD)
        if delta == 0:
            raise InvalidInputError("Stat change must be non-zero", reason=DenialReason.MISSING_VALUE)
        if not players:
            raise InvalidInputError("At least one player is required", reason=DenialReason.MISSING_VALUE)
        if any(p.is_bot for p in players):
            raise InvalidInputError("Stats cannot be recorded for bots", "Cannot add stats to bots.",
                                    reason=DenialReason.BOT_TARGET)

        async def _adjust(session: AsyncSession) -> List[StatChange]:
            repo = LeagueRepository(session)
            is_referee = await repo.get_referee(actor.discord_id) is not None
            can_adjust_stat(actor, is_referee, delta).raise_if_denied()

            changes = []
            for target in players:
                if delta > 0:
                    row = await repo.get_or_create_player(target.discord_id, target.display_name)
                else:
                    row = await repo.get_player(target.discord_id)
                    if row is None:
                        raise NotFoundError(f"Player {target.discord_id} not found", "Player not found.",
                                            reason=DenialReason.PLAYER_NOT_FOUND)
                new_value = max(0, (getattr(row, stat) or 0) + delta)
                setattr(row, stat, new_value)
                changes.append(StatChange(player_discord_id=row.discord_id, stat=stat, delta=delta,
                                          new_value=new_value, actor_discord_id=actor.discord_id))
            await session.flush()
            self.logger.info(
                f"{actor.discord_id} changed {stat} by {delta} for {[c.player_discord_id for c in changes]}"
            )
            return changes

        changes = await self._in_transaction(_adjust, session)
        outcome = StatsOutcome(changes=changes)
        channel_id = self.settings.current.log_channel
        if channel_id is not None:
            for change in changes:
                await self._attempt_side_effect(outcome, "stat change log",
                                                self.gateway.log_stat_change(channel_id, change))
        return outcome

    async def add_mentions(self, actor: Actor, players: Sequence[Actor],
                           session: Optional[AsyncSession] = None) -> StatsOutcome:
        """Add one mention to each of up to five distinct players."""
        unique = list({p.discord_id: p for p in players}.values())
        if len(unique) > LeagueConstants.MAX_MENTIONS_PER_COMMAND:
            raise InvalidInputError(
                f"Too many players for one mention command: {len(unique)}",
                f"You can add mentions to at most {LeagueConstants.MAX_MENTIONS_PER_COMMAND} players at once.",
                reason=DenialReason.INVALID_TARGET,
            )
        return await self.adjust_stats(actor, unique, "mentions", 1, session=session)

    async def top_scorers(self, session: Optional[AsyncSession] = None) -> List[Player]:
        async with self._get_session_context(session) as s:
            return await LeagueRepository(s).top_players(Player.goals, LeagueConstants.TOP_PLAYERS_LIMIT)

    async def top_playmakers(self, session: Optional[AsyncSession] = None) -> List[Player]:
        async with self._get_session_context(session) as s:
            return await LeagueRepository(s).top_players(Player.assists, LeagueConstants.TOP_PLAYERS_LIMIT)
