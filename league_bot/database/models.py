from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Text,
    ForeignKey, BigInteger, Enum as SQLEnum, UniqueConstraint, CheckConstraint, Index
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func, text
from datetime import datetime, timezone
from enum import Enum

Base = declarative_base()

class MembershipRole(Enum):
    PLAYER = "player"
    MANAGER = "manager"

class MatchStatus(Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"

class Team(Base):
    __tablename__ = 'teams'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    short = Column(String(20), nullable=False)
    role_id = Column(BigInteger, nullable=False, unique=True, index=True)
    manager_discord_id = Column(BigInteger, nullable=True, index=True)

    # Superseded by the assistant_managers table, still honoured when present
    legacy_assistant_manager_id = Column(BigInteger, nullable=True)

    created_at = Column(DateTime, default=func.now())

    def __repr__(self):
        return f"<Team(name='{self.name}', short='{self.short}', role_id={self.role_id})>"

class Player(Base):
    __tablename__ = 'players'

    id = Column(Integer, primary_key=True)
    discord_id = Column(BigInteger, unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)

    # Cumulative stats
    goals = Column(Integer, default=0, nullable=False)
    assists = Column(Integer, default=0, nullable=False)
    mentions = Column(Integer, default=0, nullable=False)
    motm = Column(Integer, default=0, nullable=False)

    demand_uses = Column(Integer, default=0, nullable=False)

    registered_at = Column(DateTime, default=func.now())

    __table_args__ = (
        CheckConstraint('goals >= 0 AND assists >= 0 AND mentions >= 0 AND motm >= 0',
                        name='ck_player_stats_non_negative'),
        CheckConstraint('demand_uses >= 0', name='ck_player_demand_uses_non_negative'),
    )

    def __repr__(self):
        return f"<Player(discord_id={self.discord_id}, name='{self.name}')>"

class Membership(Base):
    __tablename__ = 'memberships'

    id = Column(Integer, primary_key=True)
    player_id = Column(Integer, ForeignKey('players.id', ondelete='CASCADE'), nullable=False)
    team_id = Column(Integer, ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    role = Column(SQLEnum(MembershipRole), nullable=False)

    # Contract metadata, only set for signed players
    salary = Column(String(100))
    duration = Column(String(100))
    position = Column(String(50))

    joined_at = Column(DateTime, default=func.now())

    __table_args__ = (
        UniqueConstraint('player_id', 'team_id', name='uq_membership_player_team'),
        # One playing contract per player across the whole league
        Index('uq_membership_single_player_contract', 'player_id', unique=True,
              sqlite_where=text("role = 'PLAYER'")),
    )

    def __repr__(self):
        return f"<Membership(player_id={self.player_id}, team_id={self.team_id}, role={self.role.value})>"

class AssistantManager(Base):
    __tablename__ = 'assistant_managers'

    id = Column(Integer, primary_key=True)
    player_id = Column(Integer, ForeignKey('players.id', ondelete='CASCADE'), nullable=False)
    team_id = Column(Integer, ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (UniqueConstraint('player_id', 'team_id', name='uq_assistant_player_team'),)

    def __repr__(self):
        return f"<AssistantManager(player_id={self.player_id}, team_id={self.team_id})>"

class Referee(Base):
    __tablename__ = 'referees'

    id = Column(Integer, primary_key=True)
    discord_id = Column(BigInteger, unique=True, nullable=False)
    created_at = Column(DateTime, default=func.now())

class Setting(Base):
    __tablename__ = 'settings'

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)  # JSON-encoded
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

class PendingOffer(Base):
    __tablename__ = 'pending_offers'

    id = Column(Integer, primary_key=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    player_discord_id = Column(BigInteger, nullable=False, index=True)
    team_id = Column(Integer, ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    sender_discord_id = Column(BigInteger, nullable=False)
    salary = Column(String(100), nullable=False)
    duration = Column(String(100), nullable=False)
    position = Column(String(50))

    # DM message carrying the accept/decline buttons, when delivery succeeded
    message_id = Column(BigInteger, nullable=True)
    created_at = Column(DateTime, default=func.now())

    def __repr__(self):
        return f"<PendingOffer(token='{self.token}', player={self.player_discord_id}, team_id={self.team_id})>"

class Match(Base):
    __tablename__ = 'matches'

    id = Column(Integer, primary_key=True)
    home_team_id = Column(Integer, ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    away_team_id = Column(Integer, ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    stadium = Column(String(200), nullable=False)
    match_timestamp = Column(BigInteger, nullable=False, index=True)  # UTC unix seconds
    status = Column(SQLEnum(MatchStatus), default=MatchStatus.SCHEDULED, nullable=False)
    cancel_reason = Column(Text)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (CheckConstraint('home_team_id != away_team_id', name='ck_match_distinct_teams'),)

    @property
    def kickoff(self) -> datetime:
        return datetime.fromtimestamp(self.match_timestamp, tz=timezone.utc)

    @property
    def is_cancelled(self) -> bool:
        return self.status == MatchStatus.CANCELLED

    def __repr__(self):
        return f"<Match(id={self.id}, home={self.home_team_id}, away={self.away_team_id}, status={self.status.value})>"

class FixturePosting(Base):
    """The single outstanding posted-fixtures marker."""
    __tablename__ = 'fixture_postings'

    SINGLETON_ID = 1

    id = Column(Integer, primary_key=True)
    token = Column(String(64), nullable=False)
    channel_id = Column(BigInteger, nullable=True)
    message_id = Column(BigInteger, nullable=True)
    anchor_match_id = Column(Integer, nullable=True)
    match_count = Column(Integer, default=0, nullable=False)
    is_archived = Column(Boolean, default=False, nullable=False)
    posted_at = Column(DateTime, default=func.now())

    __table_args__ = (CheckConstraint('id = 1', name='ck_fixture_posting_singleton'),)

class DemandConfirmation(Base):
    __tablename__ = 'demand_confirmations'

    id = Column(Integer, primary_key=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    player_id = Column(Integer, ForeignKey('players.id', ondelete='CASCADE'), nullable=False)
    team_id = Column(Integer, ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    def is_expired(self, now: datetime = None) -> bool:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            # SQLite hands back naive datetimes
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at
