"""
League repository.

Pure data access over an open AsyncSession. No business rules live here; the
operations layer decides what is allowed and calls into this class to read
and write rows inside a single transaction.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.data_models.roster import TeamStanding, UserStanding
from league_bot.database.models import (
    Team, Player, Membership, MembershipRole, AssistantManager, Referee,
    Setting, PendingOffer, Match, MatchStatus, FixturePosting, DemandConfirmation
)


class LeagueRepository:
    """Async data access for every league table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # --- Teams ---

    async def get_team(self, team_id: int) -> Optional[Team]:
        return await self.session.get(Team, team_id)

    async def get_team_by_role(self, role_id: int) -> Optional[Team]:
        result = await self.session.execute(select(Team).where(Team.role_id == role_id))
        return result.scalar_one_or_none()

    async def get_team_by_name(self, name: str) -> Optional[Team]:
        """Case-insensitive lookup by display name."""
        result = await self.session.execute(
            select(Team).where(func.lower(Team.name) == name.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_team_by_manager(self, discord_id: int) -> Optional[Team]:
        result = await self.session.execute(
            select(Team).where(Team.manager_discord_id == discord_id).order_by(Team.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def list_teams(self) -> List[Team]:
        result = await self.session.execute(select(Team).order_by(Team.id))
        return list(result.scalars().all())

    async def teams_with_roles(self, role_ids: Iterable[int]) -> List[Team]:
        """Teams whose role is among the given ids, lowest team id first."""
        role_ids = list(role_ids)
        if not role_ids:
            return []
        result = await self.session.execute(
            select(Team).where(Team.role_id.in_(role_ids)).order_by(Team.id)
        )
        return list(result.scalars().all())

    async def create_team(self, name: str, short: str, role_id: int) -> Team:
        team = Team(name=name, short=short, role_id=role_id)
        self.session.add(team)
        await self.session.flush()
        return team

    async def delete_team(self, team: Team):
        """Delete a team together with every row that references it."""
        team_id = team.id
        await self.session.execute(delete(DemandConfirmation).where(DemandConfirmation.team_id == team_id))
        await self.session.execute(delete(PendingOffer).where(PendingOffer.team_id == team_id))
        await self.session.execute(delete(AssistantManager).where(AssistantManager.team_id == team_id))
        await self.session.execute(delete(Membership).where(Membership.team_id == team_id))
        await self.session.execute(
            delete(Match).where((Match.home_team_id == team_id) | (Match.away_team_id == team_id))
        )
        await self.session.delete(team)
        await self.session.flush()

    # --- Players ---

    async def get_player(self, discord_id: int) -> Optional[Player]:
        result = await self.session.execute(select(Player).where(Player.discord_id == discord_id))
        return result.scalar_one_or_none()

    async def get_player_by_id(self, player_id: int) -> Optional[Player]:
        return await self.session.get(Player, player_id)

    async def get_or_create_player(self, discord_id: int, name: str = None) -> Player:
        """Fetch a player, creating the row on first interaction and refreshing the name."""
        player = await self.get_player(discord_id)
        if player is None:
            player = Player(discord_id=discord_id, name=name or str(discord_id),
                            goals=0, assists=0, mentions=0, motm=0, demand_uses=0)
            self.session.add(player)
            await self.session.flush()
        elif name and player.name != name:
            player.name = name
        return player

    async def top_players(self, column, limit: int) -> List[Player]:
        result = await self.session.execute(
            select(Player).where(column > 0).order_by(column.desc(), Player.id).limit(limit)
        )
        return list(result.scalars().all())

    # --- Memberships ---

    async def get_membership(self, player_id: int, team_id: int) -> Optional[Membership]:
        result = await self.session.execute(
            select(Membership).where(Membership.player_id == player_id, Membership.team_id == team_id)
        )
        return result.scalar_one_or_none()

    async def player_memberships(self, player_id: int, role: Optional[MembershipRole] = None) -> List[Membership]:
        stmt = select(Membership).where(Membership.player_id == player_id)
        if role is not None:
            stmt = stmt.where(Membership.role == role)
        result = await self.session.execute(stmt.order_by(Membership.team_id))
        return list(result.scalars().all())

    async def team_players(self, team_id: int) -> List[Tuple[Membership, Player]]:
        result = await self.session.execute(
            select(Membership, Player)
            .join(Player, Player.id == Membership.player_id)
            .where(Membership.team_id == team_id, Membership.role == MembershipRole.PLAYER)
            .order_by(Membership.joined_at, Membership.id)
        )
        return [(row.Membership, row.Player) for row in result]

    async def add_membership(
        self,
        player_id: int,
        team_id: int,
        role: MembershipRole,
        salary: Optional[str] = None,
        duration: Optional[str] = None,
        position: Optional[str] = None,
    ) -> Membership:
        membership = Membership(player_id=player_id, team_id=team_id, role=role,
                                salary=salary, duration=duration, position=position)
        self.session.add(membership)
        await self.session.flush()
        return membership

    async def delete_membership(self, membership: Membership):
        await self.session.delete(membership)
        await self.session.flush()

    # --- Managers ---

    async def set_manager(self, team: Team, player: Player):
        team.manager_discord_id = player.discord_id
        await self.add_membership(player.id, team.id, MembershipRole.MANAGER)

    async def clear_manager(self, team: Team):
        manager = await self.get_player(team.manager_discord_id) if team.manager_discord_id else None
        if manager is not None:
            await self.session.execute(
                delete(Membership).where(
                    Membership.player_id == manager.id,
                    Membership.team_id == team.id,
                    Membership.role == MembershipRole.MANAGER,
                )
            )
        team.manager_discord_id = None
        await self.session.flush()

    # --- Assistant managers ---

    async def team_assistant_discord_ids(self, team: Team) -> List[int]:
        """Assistant managers of a team in appointment order, legacy slot included."""
        result = await self.session.execute(
            select(Player.discord_id)
            .join(AssistantManager, AssistantManager.player_id == Player.id)
            .where(AssistantManager.team_id == team.id)
            .order_by(AssistantManager.id)
        )
        discord_ids = list(result.scalars().all())
        legacy = team.legacy_assistant_manager_id
        if legacy is not None and legacy not in discord_ids:
            discord_ids.append(legacy)
        return discord_ids

    async def assistant_team_ids(self, discord_id: int) -> List[int]:
        result = await self.session.execute(
            select(AssistantManager.team_id)
            .join(Player, Player.id == AssistantManager.player_id)
            .where(Player.discord_id == discord_id)
        )
        team_ids = set(result.scalars().all())
        legacy = await self.session.execute(
            select(Team.id).where(Team.legacy_assistant_manager_id == discord_id)
        )
        team_ids.update(legacy.scalars().all())
        return sorted(team_ids)

    async def add_assistant_manager(self, player: Player, team: Team) -> AssistantManager:
        row = AssistantManager(player_id=player.id, team_id=team.id)
        self.session.add(row)
        await self.session.flush()
        return row

    async def remove_assistant_manager(self, discord_id: int, team: Team) -> bool:
        """Remove an assistant appointment; returns False when there was none."""
        removed = False
        player = await self.get_player(discord_id)
        if player is not None:
            result = await self.session.execute(
                delete(AssistantManager).where(
                    AssistantManager.player_id == player.id, AssistantManager.team_id == team.id
                )
            )
            removed = result.rowcount > 0
        if team.legacy_assistant_manager_id == discord_id:
            team.legacy_assistant_manager_id = None
            removed = True
        await self.session.flush()
        return removed

    # --- Referees ---

    async def get_referee(self, discord_id: int) -> Optional[Referee]:
        result = await self.session.execute(select(Referee).where(Referee.discord_id == discord_id))
        return result.scalar_one_or_none()

    async def add_referee(self, discord_id: int) -> Referee:
        referee = Referee(discord_id=discord_id)
        self.session.add(referee)
        await self.session.flush()
        return referee

    async def delete_referee(self, referee: Referee):
        await self.session.delete(referee)
        await self.session.flush()

    async def list_referees(self) -> List[Referee]:
        result = await self.session.execute(select(Referee).order_by(Referee.created_at, Referee.id))
        return list(result.scalars().all())

    # --- Offers ---

    async def add_offer(self, **fields) -> PendingOffer:
        offer = PendingOffer(**fields)
        self.session.add(offer)
        await self.session.flush()
        return offer

    async def get_offer(self, token: str) -> Optional[PendingOffer]:
        result = await self.session.execute(select(PendingOffer).where(PendingOffer.token == token))
        return result.scalar_one_or_none()

    async def delivered_offers(self) -> List[PendingOffer]:
        """Outstanding offers whose prompt message was delivered."""
        result = await self.session.execute(
            select(PendingOffer).where(PendingOffer.message_id.is_not(None)).order_by(PendingOffer.id)
        )
        return list(result.scalars().all())

    async def delete_offer(self, offer: PendingOffer):
        await self.session.delete(offer)
        await self.session.flush()

    # --- Matches ---

    async def add_match(self, home_team_id: int, away_team_id: int, stadium: str, match_timestamp: int) -> Match:
        match = Match(home_team_id=home_team_id, away_team_id=away_team_id, stadium=stadium,
                      match_timestamp=match_timestamp, status=MatchStatus.SCHEDULED)
        self.session.add(match)
        await self.session.flush()
        return match

    async def get_match(self, match_id: int) -> Optional[Match]:
        return await self.session.get(Match, match_id)

    async def scheduled_matches(self) -> List[Match]:
        """Scheduled matches by kickoff, ties broken by id."""
        result = await self.session.execute(
            select(Match)
            .where(Match.status == MatchStatus.SCHEDULED)
            .order_by(Match.match_timestamp, Match.id)
        )
        return list(result.scalars().all())

    async def delete_match(self, match: Match):
        await self.session.delete(match)
        await self.session.flush()

    async def purge_matches(self) -> int:
        result = await self.session.execute(delete(Match))
        return result.rowcount

    # --- Fixture posting ---

    async def get_posting(self) -> Optional[FixturePosting]:
        return await self.session.get(FixturePosting, FixturePosting.SINGLETON_ID)

    async def replace_posting(self, token: str, anchor_match_id: int, match_count: int,
                              channel_id: Optional[int] = None) -> FixturePosting:
        """Drop any outstanding marker and install a new one."""
        await self.clear_posting()
        posting = FixturePosting(id=FixturePosting.SINGLETON_ID, token=token, channel_id=channel_id,
                                 anchor_match_id=anchor_match_id, match_count=match_count,
                                 is_archived=False)
        self.session.add(posting)
        await self.session.flush()
        return posting

    async def clear_posting(self):
        await self.session.execute(delete(FixturePosting))
        await self.session.flush()

    # --- Demand confirmations ---

    async def add_demand_confirmation(self, token: str, player: Player, team_id: int,
                                      created_at: datetime, expires_at: datetime) -> DemandConfirmation:
        confirmation = DemandConfirmation(token=token, player_id=player.id, team_id=team_id,
                                          created_at=created_at, expires_at=expires_at)
        self.session.add(confirmation)
        await self.session.flush()
        return confirmation

    async def get_demand_confirmation(self, token: str) -> Optional[DemandConfirmation]:
        result = await self.session.execute(
            select(DemandConfirmation).where(DemandConfirmation.token == token)
        )
        return result.scalar_one_or_none()

    async def delete_demand_confirmation(self, confirmation: DemandConfirmation):
        await self.session.delete(confirmation)
        await self.session.flush()

    # --- Settings ---

    async def all_settings(self) -> List[Setting]:
        result = await self.session.execute(select(Setting))
        return list(result.scalars().all())

    async def upsert_setting(self, key: str, value: str) -> Setting:
        setting = await self.session.get(Setting, key)
        if setting is None:
            setting = Setting(key=key, value=value)
            self.session.add(setting)
        else:
            setting.value = value
        await self.session.flush()
        return setting

    # --- Snapshots ---

    async def user_standing(self, discord_id: int, is_bot: bool = False) -> UserStanding:
        """Build the eligibility snapshot for one user, whether or not they have a player row."""
        managed = await self.get_team_by_manager(discord_id)
        assistant_team_ids = await self.assistant_team_ids(discord_id)
        referee = await self.get_referee(discord_id)

        player = await self.get_player(discord_id)
        player_team_ids: Tuple[int, ...] = ()
        demand_uses = 0
        if player is not None:
            memberships = await self.player_memberships(player.id, MembershipRole.PLAYER)
            player_team_ids = tuple(m.team_id for m in memberships)
            demand_uses = player.demand_uses or 0

        return UserStanding(
            discord_id=discord_id,
            is_bot=is_bot,
            is_referee=referee is not None,
            managed_team_id=managed.id if managed else None,
            assistant_team_ids=tuple(assistant_team_ids),
            player_team_ids=player_team_ids,
            demand_uses=demand_uses,
        )

    async def team_standing(self, team: Team) -> TeamStanding:
        return TeamStanding(
            team_id=team.id,
            name=team.name,
            role_id=team.role_id,
            manager_discord_id=team.manager_discord_id,
            assistant_discord_ids=tuple(await self.team_assistant_discord_ids(team)),
        )
