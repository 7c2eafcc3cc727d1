"""
Roster Operations

Owns every transition between a user and a team: contract offers and their
resolution, direct adds and removals, manager and assistant manager
appointments, releases, and the two-step self-release ("demand").

Each transition validates against the eligibility rules and mutates the store
inside one serialised transaction. Role changes and log posts follow the
commit; when they fail the committed change stands and the outcome carries a
warning.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.constants import LeagueConstants
from league_bot.data_models.roster import Actor, OfferPrompt, TransactionLogEntry
from league_bot.database.database import Database
from league_bot.database.models import MembershipRole, Team
from league_bot.database.repository import LeagueRepository
from league_bot.operations.base import LifecycleOperations, OperationOutcome
from league_bot.operations.eligibility import (
    require_admin, can_act_for_team, resolve_acting_team, can_receive_offer,
    can_become_manager, can_become_assistant_manager, can_demand
)
from league_bot.operations.transaction_window import TransactionWindow
from league_bot.services.gateway import LeagueGateway
from league_bot.services.settings import LeagueSettingsService
from league_bot.utils.league_exceptions import (
    ConflictError, DenialReason, NotFoundError, InvalidInputError,
    ExpiredError, UnauthorizedError
)

OFFER_DECISIONS = ("accept", "decline")


@dataclass
class RosterOutcome(OperationOutcome):
    """Result of a roster transition"""
    action: str = ""
    player_discord_id: Optional[int] = None
    team_id: Optional[int] = None
    team_name: Optional[str] = None
    token: Optional[str] = None
    demand_uses: Optional[int] = None
    expires_at: Optional[datetime] = None


class RosterOperations(LifecycleOperations):
    """
    Service class for roster transitions.

    Handles offers, direct roster edits, staff appointments, releases and
    demands for every team in the league.
    """

    def __init__(self, database: Database, settings: LeagueSettingsService,
                 gateway: LeagueGateway, transaction_window: TransactionWindow):
        super().__init__(database, settings, gateway)
        self.transaction_window = transaction_window

    # --- Helpers ---

    async def _acting_team(self, repo: LeagueRepository, actor: Actor, team_id: Optional[int]) -> Team:
        """The team the caller is acting for, named explicitly or inferred from their roles."""
        manager_role = self.settings.current.manager_role
        if team_id is not None:
            team = await self._require_team(repo, team_id)
            can_act_for_team(actor, await repo.team_standing(team), manager_role).raise_if_denied()
            return team

        candidates = [await repo.team_standing(team) for team in await repo.teams_with_roles(actor.role_ids)]
        standing = resolve_acting_team(actor, candidates, manager_role)
        return await repo.get_team(standing.team_id)

    async def _log_transaction(self, outcome: OperationOutcome, entry: TransactionLogEntry):
        channel_id = self.settings.current.transactions_channel
        if channel_id is None:
            self.logger.debug(f"No transactions channel configured, skipping {entry.kind} log")
            return
        await self._attempt_side_effect(outcome, "transaction log",
                                        self.gateway.log_transaction(channel_id, entry))

    # --- Offers ---

    async def create_offer(
        self,
        sender: Actor,
        target: Actor,
        salary: str,
        duration: str,
        position: Optional[str] = None,
        team_id: Optional[int] = None,
        session: Optional[AsyncSession] = None
    ) -> RosterOutcome:
        """
        Create a contract offer and deliver the accept/decline prompt.

        Args:
            sender: Admin holding a team role, or the manager of the team
            target: User receiving the offer
            salary: Free-form salary text
            duration: Free-form contract length text
            position: Optional playing position
            team_id: Team to offer for; inferred from the sender's roles when omitted

        Returns:
            RosterOutcome with the offer token

        Raises:
            UnauthorizedError: Sender cannot act for the team
            InvalidInputError: Self-target, bot target or missing terms
            ConflictError: Target is staff, a referee, or already signed
        """
        salary = (salary or "").strip()
        duration = (duration or "").strip()
        if not salary or not duration:
            raise InvalidInputError("Salary and duration are required", reason=DenialReason.MISSING_VALUE)

        async def _create(session: AsyncSession):
            repo = LeagueRepository(session)
            team = await self._acting_team(repo, sender, team_id)

            standing = await repo.user_standing(target.discord_id, is_bot=target.is_bot)
            can_receive_offer(standing, sender.discord_id).raise_if_denied()

            token = uuid.uuid4().hex
            await repo.add_offer(
                token=token,
                player_discord_id=target.discord_id,
                team_id=team.id,
                sender_discord_id=sender.discord_id,
                salary=salary,
                duration=duration,
                position=position,
            )
            self.logger.info(
                f"Offer {token} created by {sender.discord_id} for {target.discord_id} to join {team.name}"
            )
            prompt = OfferPrompt(token=token, player_discord_id=target.discord_id,
                                 sender_discord_id=sender.discord_id, team_name=team.name,
                                 team_role_id=team.role_id, salary=salary, duration=duration,
                                 position=position)
            return prompt, team.id

        prompt, offer_team_id = await self._in_transaction(_create, session)
        outcome = RosterOutcome(action="offer_sent", player_discord_id=target.discord_id,
                                team_id=offer_team_id, team_name=prompt.team_name, token=prompt.token)

        message_id = await self._attempt_side_effect(outcome, "deliver contract offer",
                                                     self.gateway.deliver_offer(prompt))
        if message_id is not None:
            async def _attach(session: AsyncSession):
                offer = await LeagueRepository(session).get_offer(prompt.token)
                if offer is not None:
                    offer.message_id = message_id

            await self._in_transaction(_attach, session)
        return outcome

    async def resolve_offer(
        self,
        token: str,
        decision: str,
        responder: Optional[Actor] = None,
        session: Optional[AsyncSession] = None
    ) -> RosterOutcome:
        """
        Accept or decline a pending offer. Each offer is consumed exactly once.

        Raises:
            ExpiredError: The offer no longer exists (already resolved or team deleted)
            UnauthorizedError: Responder is not the offer's recipient
            ConflictError: Recipient became ineligible since the offer was sent
        """
        decision = (decision or "").strip().lower()
        if decision not in OFFER_DECISIONS:
            raise InvalidInputError(f"Unknown offer decision {decision!r}", reason=DenialReason.INVALID_DECISION)

        async def _resolve(session: AsyncSession):
            repo = LeagueRepository(session)
            offer = await repo.get_offer(token)
            if offer is None:
                raise ExpiredError(f"Offer {token} not found",
                                   "This offer has expired or was already processed.",
                                   reason=DenialReason.OFFER_EXPIRED)
            if responder is not None and responder.discord_id != offer.player_discord_id:
                raise UnauthorizedError("Responder is not the offer recipient", "This offer is not for you.",
                                        reason=DenialReason.NOT_RECIPIENT)

            team = await repo.get_team(offer.team_id)
            terms = dict(salary=offer.salary, duration=offer.duration, position=offer.position)
            player_discord_id = offer.player_discord_id

            if decision == "decline":
                await repo.delete_offer(offer)
                self.logger.info(f"Offer {token} declined by {player_discord_id}")
                return team, player_discord_id, terms, offer.sender_discord_id

            standing = await repo.user_standing(player_discord_id)
            can_receive_offer(standing).raise_if_denied()

            name = responder.display_name if responder else None
            player = await repo.get_or_create_player(player_discord_id, name)
            await repo.add_membership(player.id, team.id, MembershipRole.PLAYER, **terms)
            await repo.delete_offer(offer)
            self.logger.info(f"Offer {token} accepted: {player_discord_id} signed with {team.name}")
            return team, player_discord_id, terms, offer.sender_discord_id

        team, player_discord_id, terms, sender_id = await self._in_transaction(_resolve, session)
        action = "offer_accepted" if decision == "accept" else "offer_declined"
        outcome = RosterOutcome(action=action,
                                player_discord_id=player_discord_id, team_id=team.id,
                                team_name=team.name, token=token)
        if decision == "accept":
            await self._grant_role(outcome, player_discord_id, team.role_id, "grant team role")
            await self._log_transaction(outcome, TransactionLogEntry(
                kind="signed", player_discord_id=player_discord_id, team_name=team.name,
                actor_discord_id=team.manager_discord_id or sender_id, **terms))
        return outcome

    async def delivered_offers(self, session: Optional[AsyncSession] = None) -> List[Tuple[str, int]]:
        """(token, message id) of every outstanding offer whose prompt was delivered."""
        async with self._get_session_context(session) as s:
            return [(offer.token, offer.message_id) for offer in await LeagueRepository(s).delivered_offers()]

    # --- Direct roster edits ---

    async def direct_add(self, admin: Actor, player: Actor, team_id: int,
                         session: Optional[AsyncSession] = None) -> RosterOutcome:
        """Sign a player to a team without an offer (admin only)."""
        require_admin(admin, "add players to teams").raise_if_denied()

        async def _add(session: AsyncSession) -> Team:
            repo = LeagueRepository(session)
            team = await self._require_team(repo, team_id)
            standing = await repo.user_standing(player.discord_id, is_bot=player.is_bot)
            can_receive_offer(standing).raise_if_denied()

            row = await repo.get_or_create_player(player.discord_id, player.display_name)
            await repo.add_membership(row.id, team.id, MembershipRole.PLAYER)
            self.logger.info(f"{admin.discord_id} added {player.discord_id} to {team.name}")
            return team

        team = await self._in_transaction(_add, session)
        outcome = RosterOutcome(action="player_added", player_discord_id=player.discord_id,
                                team_id=team.id, team_name=team.name)
        await self._grant_role(outcome, player.discord_id, team.role_id, "grant team role")
        await self._log_transaction(outcome, TransactionLogEntry(
            kind="added", player_discord_id=player.discord_id, team_name=team.name,
            actor_discord_id=admin.discord_id))
        return outcome

    async def direct_remove(self, admin: Actor, player_discord_id: int, team_id: int,
                            session: Optional[AsyncSession] = None) -> RosterOutcome:
        """Remove a signed player from a team (admin only)."""
        require_admin(admin, "remove players from teams").raise_if_denied()

        async def _remove(session: AsyncSession) -> Team:
            repo = LeagueRepository(session)
            team = await self._require_team(repo, team_id)
            await self._delete_player_membership(repo, player_discord_id, team,
                                                 f"<@{player_discord_id}> is not part of {team.name}.")
            self.logger.info(f"{admin.discord_id} removed {player_discord_id} from {team.name}")
            return team

        team = await self._in_transaction(_remove, session)
        outcome = RosterOutcome(action="player_removed", player_discord_id=player_discord_id,
                                team_id=team.id, team_name=team.name)
        await self._revoke_role(outcome, player_discord_id, team.role_id, "revoke team role")
        await self._log_transaction(outcome, TransactionLogEntry(
            kind="removed", player_discord_id=player_discord_id, team_name=team.name,
            actor_discord_id=admin.discord_id))
        return outcome

    async def _delete_player_membership(self, repo: LeagueRepository, player_discord_id: int,
                                        team: Team, missing_message: str):
        player = await repo.get_player(player_discord_id)
        if player is None:
            raise NotFoundError(f"Player {player_discord_id} not found", "Player not found in database.",
                                reason=DenialReason.PLAYER_NOT_FOUND)
        membership = await repo.get_membership(player.id, team.id)
        if membership is None or membership.role != MembershipRole.PLAYER:
            raise NotFoundError(f"{player_discord_id} holds no player membership on team {team.id}",
                                missing_message, reason=DenialReason.MEMBERSHIP_NOT_FOUND)
        await repo.delete_membership(membership)

    async def release(self, actor: Actor, player_discord_id: int, team_id: Optional[int] = None,
                      session: Optional[AsyncSession] = None) -> RosterOutcome:
        """
        Release a player from the caller's team.

        Raises:
            UnauthorizedError: Caller cannot act for the team
            InvalidInputError: Caller tried to release themselves
            NotFoundError: Player is not on the team
        """
        if player_discord_id == actor.discord_id:
            raise InvalidInputError("Self release attempted", "You cannot release yourself from a team.",
                                    reason=DenialReason.SELF_TARGET)

        async def _release(session: AsyncSession) -> Team:
            repo = LeagueRepository(session)
            team = await self._acting_team(repo, actor, team_id)
            await self._delete_player_membership(repo, player_discord_id, team, "This player is not on your team.")
            self.logger.info(f"{actor.discord_id} released {player_discord_id} from {team.name}")
            return team

        team = await self._in_transaction(_release, session)
        outcome = RosterOutcome(action="player_released", player_discord_id=player_discord_id,
                                team_id=team.id, team_name=team.name)
        await self._revoke_role(outcome, player_discord_id, team.role_id, "revoke team role")
        await self._log_transaction(outcome, TransactionLogEntry(
            kind="released", player_discord_id=player_discord_id, team_name=team.name,
            actor_discord_id=team.manager_discord_id or actor.discord_id))
        return outcome

    # --- Managers ---

    async def assign_manager(self, admin: Actor, user: Actor, team_id: int,
                             session: Optional[AsyncSession] = None) -> RosterOutcome:
        require_admin(admin, "set team managers").raise_if_denied()

        async def _assign(session: AsyncSession) -> Team:
            repo = LeagueRepository(session)
            team = await self._require_team(repo, team_id)
            standing = await repo.user_standing(user.discord_id, is_bot=user.is_bot)
            can_become_manager(standing, await repo.team_standing(team)).raise_if_denied()

            player = await repo.get_or_create_player(user.discord_id, user.display_name)
            await repo.set_manager(team, player)
            self.logger.info(f"{user.discord_id} appointed manager of {team.name} by {admin.discord_id}")
            return team

        team = await self._in_transaction(_assign, session)
        outcome = RosterOutcome(action="manager_assigned", player_discord_id=user.discord_id,
                                team_id=team.id, team_name=team.name)
        await self._grant_role(outcome, user.discord_id, team.role_id, "grant team role")
        await self._grant_role(outcome, user.discord_id, self.settings.current.manager_role, "grant manager role")
        return outcome

    async def clear_manager(self, admin: Actor, team_id: int,
                            session: Optional[AsyncSession] = None) -> RosterOutcome:
        require_admin(admin, "remove managers").raise_if_denied()

        async def _clear(session: AsyncSession):
            repo = LeagueRepository(session)
            team = await self._require_team(repo, team_id)
            manager_id = team.manager_discord_id
            if manager_id is None:
                raise NotFoundError(f"Team {team.name} has no manager", "This team does not have a manager.",
                                    reason=DenialReason.NO_MANAGER)
            await repo.clear_manager(team)
            self.logger.info(f"{manager_id} removed as manager of {team.name} by {admin.discord_id}")
            return team, manager_id

        team, manager_id = await self._in_transaction(_clear, session)
        outcome = RosterOutcome(action="manager_cleared", player_discord_id=manager_id,
                                team_id=team.id, team_name=team.name)
        await self._revoke_role(outcome, manager_id, team.role_id, "revoke team role")
        await self._revoke_role(outcome, manager_id, self.settings.current.manager_role, "revoke manager role")
        return outcome

    # --- Assistant managers ---

    def _assistant_role(self) -> Optional[int]:
        current = self.settings.current
        return current.assistant_manager_role or current.manager_role

    async def assign_assistant_manager(self, admin: Actor, user: Actor, team_id: int,
                                       session: Optional[AsyncSession] = None) -> RosterOutcome:
        require_admin(admin, "set assistant managers").raise_if_denied()

        async def _assign(session: AsyncSession) -> Team:
            repo = LeagueRepository(session)
            team = await self._require_team(repo, team_id)
            standing = await repo.user_standing(user.discord_id, is_bot=user.is_bot)
            can_become_assistant_manager(standing, await repo.team_standing(team)).raise_if_denied()

            player = await repo.get_or_create_player(user.discord_id, user.display_name)
            await repo.add_assistant_manager(player, team)
            self.logger.info(f"{user.discord_id} appointed assistant manager of {team.name} by {admin.discord_id}")
            return team

        team = await self._in_transaction(_assign, session)
        outcome = RosterOutcome(action="assistant_assigned", player_discord_id=user.discord_id,
                                team_id=team.id, team_name=team.name)
        await self._grant_role(outcome, user.discord_id, team.role_id, "grant team role")
        await self._grant_role(outcome, user.discord_id, self._assistant_role(), "grant assistant manager role")
        return outcome

    async def clear_assistant_manager(self, admin: Actor, team_id: int, user_discord_id: Optional[int] = None,
                                      session: Optional[AsyncSession] = None) -> RosterOutcome:
        """
        Remove an assistant manager. Without a user the team's only assistant is
        removed; a team with several assistants needs the user named.
        """
        require_admin(admin, "remove assistant managers").raise_if_denied()

        async def _clear(session: AsyncSession):
            repo = LeagueRepository(session)
            team = await self._require_team(repo, team_id)
            assistants = await repo.team_assistant_discord_ids(team)
            if not assistants:
                raise NotFoundError(f"Team {team.name} has no assistant managers",
                                    "This team does not have any assistant managers.",
                                    reason=DenialReason.NO_ASSISTANT_MANAGERS)
            if user_discord_id is None:
                if len(assistants) > 1:
                    raise InvalidInputError(
                        f"Team {team.name} has {len(assistants)} assistant managers",
                        "This team has more than one assistant manager. Please choose which one to remove.",
                        reason=DenialReason.AMBIGUOUS_ASSISTANT,
                    )
                target = assistants[0]
            elif user_discord_id in assistants:
                target = user_discord_id
            else:
                raise NotFoundError(f"{user_discord_id} is not an assistant manager of {team.name}",
                                    f"<@{user_discord_id}> is not an assistant manager of {team.name}.",
                                    reason=DenialReason.NOT_ASSISTANT_MANAGER)

            await repo.remove_assistant_manager(target, team)
            # An assistant who also plays for the team keeps the team role
            player = await repo.get_player(target)
            membership = await repo.get_membership(player.id, team.id) if player else None
            self.logger.info(f"{target} removed as assistant manager of {team.name} by {admin.discord_id}")
            return team, target, membership is not None

        team, target, still_on_team = await self._in_transaction(_clear, session)
        outcome = RosterOutcome(action="assistant_cleared", player_discord_id=target,
                                team_id=team.id, team_name=team.name)
        if not still_on_team:
            await self._revoke_role(outcome, target, team.role_id, "revoke team role")
        await self._revoke_role(outcome, target, self._assistant_role(), "revoke assistant manager role")
        return outcome

    # --- Demands ---

    async def request_demand(self, player: Actor, session: Optional[AsyncSession] = None) -> RosterOutcome:
        """
        First step of a self-release: validate and issue a confirmation token.

        Raises:
            NotFoundError: The user has never been registered as a player
            ConflictError: Staff member, not on a team, or demand limit reached
        """
        async def _request(session: AsyncSession):
            repo = LeagueRepository(session)
            row = await repo.get_player(player.discord_id)
            if row is None:
                raise NotFoundError(f"Player {player.discord_id} not found",
                                    "You are not in the player database.",
                                    reason=DenialReason.PLAYER_NOT_FOUND)

            standing = await repo.user_standing(player.discord_id)
            can_demand(standing, self.transaction_window.is_open).raise_if_denied()

            team = await repo.get_team(standing.player_team_ids[0])
            now = datetime.now(timezone.utc)
            expires_at = now + timedelta(minutes=LeagueConstants.DEMAND_CONFIRMATION_TTL_MINUTES)
            token = uuid.uuid4().hex
            await repo.add_demand_confirmation(token, row, team.id, now, expires_at)
            self.logger.info(f"Demand {token} requested by {player.discord_id} from {team.name}")
            return team, token, expires_at, standing.demand_uses

        team, token, expires_at, uses = await self._in_transaction(_request, session)
        return RosterOutcome(action="demand_requested", player_discord_id=player.discord_id,
                             team_id=team.id, team_name=team.name, token=token,
                             demand_uses=uses, expires_at=expires_at)

    async def confirm_demand(self, token: str, requester_discord_id: int,
                             session: Optional[AsyncSession] = None) -> RosterOutcome:
        """
        Second step of a self-release. Eligibility is checked again because
        the roster may have changed since the request.

        Raises:
            ExpiredError: Unknown token, or the confirmation window has passed
            UnauthorizedError: Someone other than the requester confirmed
            ConflictError: The player is no longer eligible to demand, or has
                left the team the demand was requested from
        """
        async def _confirm(session: AsyncSession):
            repo = LeagueRepository(session)
            confirmation = await repo.get_demand_confirmation(token)
            if confirmation is None:
                raise ExpiredError(f"Demand confirmation {token} not found",
                                   "This demand confirmation is no longer valid.",
                                   reason=DenialReason.DEMAND_EXPIRED)

            player = await repo.get_player_by_id(confirmation.player_id)
            if player.discord_id != requester_discord_id:
                raise UnauthorizedError("Demand confirmed by someone else", "This confirmation is not for you.",
                                        reason=DenialReason.NOT_RECIPIENT)

            standing = await repo.user_standing(player.discord_id)
            can_demand(standing, self.transaction_window.is_open).raise_if_denied()

            if confirmation.is_expired():
                raise ExpiredError(f"Demand confirmation {token} expired",
                                   "This demand confirmation has expired. Use the demand command again.",
                                   reason=DenialReason.DEMAND_EXPIRED)

            # Only the team named in the prompt may be left
            membership = await repo.get_membership(player.id, confirmation.team_id)
            if membership is None or membership.role != MembershipRole.PLAYER:
                raise ConflictError(
                    f"Player {player.discord_id} no longer on team {confirmation.team_id}",
                    "You are no longer on the team this demand was for. Use the demand command again.",
                    reason=DenialReason.NOT_ON_TEAM)
            team = await repo.get_team(membership.team_id)
            await repo.delete_membership(membership)
            player.demand_uses = (player.demand_uses or 0) + 1
            await repo.delete_demand_confirmation(confirmation)
            self.logger.info(
                f"Demand {token} confirmed: {player.discord_id} left {team.name} "
                f"({player.demand_uses} demands used)"
            )
            return team, player.demand_uses

        team, uses = await self._in_transaction(_confirm, session)
        outcome = RosterOutcome(action="demand_confirmed", player_discord_id=requester_discord_id,
                                team_id=team.id, team_name=team.name, token=token, demand_uses=uses)
        await self._revoke_role(outcome, requester_discord_id, team.role_id, "revoke team role")
        await self._log_transaction(outcome, TransactionLogEntry(
            kind="demanded", player_discord_id=requester_discord_id, team_name=team.name,
            actor_discord_id=requester_discord_id))
        return outcome

    async def cancel_demand(self, token: str, requester_discord_id: int,
                            session: Optional[AsyncSession] = None) -> RosterOutcome:
        """Abandon a pending demand. Unknown tokens are ignored."""
        async def _cancel(session: AsyncSession) -> bool:
            repo = LeagueRepository(session)
            confirmation = await repo.get_demand_confirmation(token)
            if confirmation is None:
                return False
            player = await repo.get_player_by_id(confirmation.player_id)
            if player.discord_id != requester_discord_id:
                raise UnauthorizedError("Demand cancelled by someone else", "This confirmation is not for you.",
                                        reason=DenialReason.NOT_RECIPIENT)
            await repo.delete_demand_confirmation(confirmation)
            self.logger.info(f"Demand {token} cancelled by {requester_discord_id}")
            return True

        await self._in_transaction(_cancel, session)
        return RosterOutcome(action="demand_cancelled", player_discord_id=requester_discord_id, token=token)
