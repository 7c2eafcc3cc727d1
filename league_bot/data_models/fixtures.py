"""
Fixture data models.

A posted fixture listing is a set of scheduled matches grouped by their UTC
calendar date. These objects carry plain values only; rendering is left to
the gateway.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple


@dataclass(frozen=True)
class FixtureEntry:
    match_id: int
    home_team: str
    away_team: str
    stadium: str
    match_timestamp: int
    home_role_id: Optional[int] = None
    away_role_id: Optional[int] = None

    @property
    def kickoff(self) -> datetime:
        return datetime.fromtimestamp(self.match_timestamp, tz=timezone.utc)


@dataclass(frozen=True)
class FixtureDay:
    date_key: str  # YYYY-MM-DD, UTC
    entries: Tuple[FixtureEntry, ...]


@dataclass(frozen=True)
class FixtureListing:
    """The grouped listing delivered (or re-rendered) for a posting cycle."""
    token: str
    days: Tuple[FixtureDay, ...]
    archived: bool = False
    message_id: Optional[int] = None

    @property
    def match_count(self) -> int:
        return sum(len(day.entries) for day in self.days)

    @property
    def date_keys(self) -> Tuple[str, ...]:
        return tuple(day.date_key for day in self.days)


@dataclass(frozen=True)
class MatchAnnouncement:
    match_id: int
    home_team: str
    away_team: str
    stadium: str
    match_timestamp: int
    home_role_id: Optional[int] = None
    away_role_id: Optional[int] = None
    link: Optional[str] = None
