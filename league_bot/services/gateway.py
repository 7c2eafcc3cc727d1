"""
Side-effect gateway interface.

Operations commit their state change first and then ask a gateway to mirror
it on the chat platform: role grants and revokes, offer prompts, channel
posts and message edits. Implementations raise ExternalSideEffectFailed when
the platform refuses; the operations layer turns that into a warning.
"""

from abc import ABC, abstractmethod
from typing import Optional

from league_bot.data_models.fixtures import FixtureListing, MatchAnnouncement
from league_bot.data_models.roster import OfferPrompt, StatChange, TransactionLogEntry


class LeagueGateway(ABC):

    @abstractmethod
    async def grant_role(self, discord_id: int, role_id: int, reason: str = None):
        ...

    @abstractmethod
    async def revoke_role(self, discord_id: int, role_id: int, reason: str = None):
        ...

    @abstractmethod
    async def deliver_offer(self, prompt: OfferPrompt) -> Optional[int]:
        """Send the accept/decline prompt; returns the prompt's message id."""

    @abstractmethod
    async def log_transaction(self, channel_id: int, entry: TransactionLogEntry):
        ...

    @abstractmethod
    async def publish_fixtures(self, channel_id: int, listing: FixtureListing) -> Optional[int]:
        """Post a grouped fixture listing; returns the posted message id."""

    @abstractmethod
    async def archive_fixture_listing(self, channel_id: int, message_id: int):
        """Re-render a posted listing as completed."""

    @abstractmethod
    async def delete_fixture_listing(self, channel_id: int, message_id: int):
        ...

    @abstractmethod
    async def announce_match(self, channel_id: int, announcement: MatchAnnouncement):
        ...

    @abstractmethod
    async def log_stat_change(self, channel_id: int, change: StatChange):
        ...
