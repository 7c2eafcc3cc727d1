"""
Roster data models.

Immutable snapshots of who a user is in the league, consumed by the
eligibility predicates, plus the payloads handed to the side-effect gateway.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class Actor:
    """The caller of an operation as seen by the chat platform."""
    discord_id: int
    display_name: str = ""
    is_admin: bool = False
    is_bot: bool = False
    role_ids: FrozenSet[int] = field(default_factory=frozenset)

    def has_role(self, role_id: Optional[int]) -> bool:
        return role_id is not None and role_id in self.role_ids


@dataclass(frozen=True)
class UserStanding:
    """Everything the eligibility rules need to know about one user."""
    discord_id: int
    is_bot: bool = False
    is_referee: bool = False
    managed_team_id: Optional[int] = None
    assistant_team_ids: Tuple[int, ...] = ()
    player_team_ids: Tuple[int, ...] = ()
    demand_uses: int = 0

    @property
    def is_manager(self) -> bool:
        return self.managed_team_id is not None

    @property
    def is_assistant_manager(self) -> bool:
        return bool(self.assistant_team_ids)

    @property
    def is_staff(self) -> bool:
        return self.is_manager or self.is_assistant_manager

    @property
    def is_signed(self) -> bool:
        return bool(self.player_team_ids)


@dataclass(frozen=True)
class TeamStanding:
    team_id: int
    name: str
    role_id: int
    manager_discord_id: Optional[int] = None
    assistant_discord_ids: Tuple[int, ...] = ()

    @property
    def assistant_count(self) -> int:
        return len(self.assistant_discord_ids)


@dataclass(frozen=True)
class RosterPlayer:
    discord_id: int
    name: str
    position: Optional[str] = None
    salary: Optional[str] = None
    duration: Optional[str] = None


@dataclass(frozen=True)
class TeamRoster:
    """A team's staff and signed players, for the roster listing."""
    team_id: int
    name: str
    short: str
    role_id: int
    manager_discord_id: Optional[int]
    assistant_discord_ids: Tuple[int, ...]
    players: Tuple[RosterPlayer, ...]


@dataclass(frozen=True)
class PlayerProfile:
    discord_id: int
    name: str
    goals: int
    assists: int
    mentions: int
    motm: int
    demand_uses: int
    team_name: Optional[str] = None
    position: Optional[str] = None


# Side-effect payloads

@dataclass(frozen=True)
class OfferPrompt:
    """An interactive accept/decline proposal to deliver to a player."""
    token: str
    player_discord_id: int
    sender_discord_id: int
    team_name: str
    team_role_id: int
    salary: str
    duration: str
    position: Optional[str] = None


@dataclass(frozen=True)
class TransactionLogEntry:
    kind: str  # 'signed', 'added', 'removed', 'released', 'demanded'
    player_discord_id: int
    team_name: str
    actor_discord_id: Optional[int] = None
    salary: Optional[str] = None
    duration: Optional[str] = None
    position: Optional[str] = None


@dataclass(frozen=True)
class StatChange:
    player_discord_id: int
    stat: str
    delta: int
    new_value: int
    actor_discord_id: int
