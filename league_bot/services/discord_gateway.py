"""
Discord implementation of the league side-effect gateway.

Role changes go through the league guild; offers are delivered by DM with an
OfferResponseView attached; fixtures, announcements and logs are posted to
the configured channels. Every Discord failure is re-raised as
ExternalSideEffectFailed so the operations layer can record it as a warning.
"""

from typing import Optional

import discord

from league_bot.config import Config
from league_bot.data_models.fixtures import FixtureListing, MatchAnnouncement
from league_bot.data_models.roster import OfferPrompt, StatChange, TransactionLogEntry
from league_bot.services.gateway import LeagueGateway
from league_bot.utils.embeds import (
    build_announcement_embed, build_fixtures_done_embed, build_fixtures_embed,
    build_offer_embed, build_stat_change_embed, build_transaction_embed
)
from league_bot.utils.league_exceptions import ExternalSideEffectFailed
from league_bot.utils.logger import setup_logger


class DiscordLeagueGateway(LeagueGateway):

    def __init__(self, bot):
        """
        Args:
            bot: The running LeagueBot; its roster_ops backs the offer buttons
        """
        self.bot = bot
        self.logger = setup_logger(f"{__name__}.DiscordLeagueGateway")

    # --- Lookups ---

    def _guild(self) -> discord.Guild:
        guild_ids = Config.get_guild_ids()
        guild = self.bot.get_guild(guild_ids[0]) if guild_ids else None
        if guild is None and self.bot.guilds:
            guild = self.bot.guilds[0]
        if guild is None:
            raise ExternalSideEffectFailed("Guild lookup", "the bot is not connected to the league server")
        return guild

    async def _member(self, guild: discord.Guild, discord_id: int) -> discord.Member:
        member = guild.get_member(discord_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(discord_id)
        except discord.NotFound:
            raise ExternalSideEffectFailed("Member lookup", f"<@{discord_id}> is not in the server")
        except discord.HTTPException as e:
            raise ExternalSideEffectFailed("Member lookup", str(e))

    def _role(self, guild: discord.Guild, role_id: int) -> discord.Role:
        role = guild.get_role(role_id)
        if role is None:
            raise ExternalSideEffectFailed("Role lookup", f"role {role_id} no longer exists")
        return role

    async def _channel(self, channel_id: int) -> discord.abc.Messageable:
        channel = self.bot.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self.bot.fetch_channel(channel_id)
        except discord.HTTPException as e:
            raise ExternalSideEffectFailed("Channel lookup", f"channel {channel_id} is unavailable: {e}")

    # --- Roles ---

    async def grant_role(self, discord_id: int, role_id: int, reason: str = None):
        guild = self._guild()
        member = await self._member(guild, discord_id)
        role = self._role(guild, role_id)
        try:
            await member.add_roles(role, reason=reason)
        except discord.Forbidden:
            raise ExternalSideEffectFailed("Role grant", f"missing permission to give {role.name}")
        except discord.HTTPException as e:
            raise ExternalSideEffectFailed("Role grant", str(e))
        self.logger.debug(f"Granted role {role_id} to {discord_id} ({reason})")

    async def revoke_role(self, discord_id: int, role_id: int, reason: str = None):
        guild = self._guild()
        member = await self._member(guild, discord_id)
        role = self._role(guild, role_id)
        try:
            await member.remove_roles(role, reason=reason)
        except discord.Forbidden:
            raise ExternalSideEffectFailed("Role removal", f"missing permission to remove {role.name}")
        except discord.HTTPException as e:
            raise ExternalSideEffectFailed("Role removal", str(e))
        self.logger.debug(f"Revoked role {role_id} from {discord_id} ({reason})")

    # --- Offers ---

    async def deliver_offer(self, prompt: OfferPrompt) -> Optional[int]:
        # Imported here: the view depends on the operations layer, which depends on this interface
        from league_bot.ui.views import OfferResponseView

        try:
            user = self.bot.get_user(prompt.player_discord_id) or await self.bot.fetch_user(prompt.player_discord_id)
            view = OfferResponseView(prompt.token, self.bot.roster_ops)
            message = await user.send(embed=build_offer_embed(prompt), view=view)
        except discord.Forbidden:
            raise ExternalSideEffectFailed("Contract offer delivery",
                                           f"<@{prompt.player_discord_id}> does not accept direct messages")
        except discord.HTTPException as e:
            raise ExternalSideEffectFailed("Contract offer delivery", str(e))
        return message.id

    # --- Channel posts ---

    async def _send(self, channel_id: int, action: str, embed: discord.Embed,
                    content: Optional[str] = None) -> discord.Message:
        channel = await self._channel(channel_id)
        try:
            return await channel.send(content=content, embed=embed)
        except discord.Forbidden:
            raise ExternalSideEffectFailed(action, f"missing permission to post in <#{channel_id}>")
        except discord.HTTPException as e:
            raise ExternalSideEffectFailed(action, str(e))

    async def log_transaction(self, channel_id: int, entry: TransactionLogEntry):
        await self._send(channel_id, "Transaction log", build_transaction_embed(entry))

    async def publish_fixtures(self, channel_id: int, listing: FixtureListing) -> Optional[int]:
        message = await self._send(channel_id, "Fixture posting", build_fixtures_embed(listing))
        return message.id

    async def _fetch_message(self, channel_id: int, message_id: int, action: str) -> discord.Message:
        channel = await self._channel(channel_id)
        try:
            return await channel.fetch_message(message_id)
        except discord.NotFound:
            raise ExternalSideEffectFailed(action, "the fixtures message no longer exists")
        except discord.HTTPException as e:
            raise ExternalSideEffectFailed(action, str(e))

    async def archive_fixture_listing(self, channel_id: int, message_id: int):
        message = await self._fetch_message(channel_id, message_id, "Fixture archive")
        try:
            await message.edit(embed=build_fixtures_done_embed())
        except discord.HTTPException as e:
            raise ExternalSideEffectFailed("Fixture archive", str(e))

    async def delete_fixture_listing(self, channel_id: int, message_id: int):
        message = await self._fetch_message(channel_id, message_id, "Fixture removal")
        try:
            await message.delete()
        except discord.HTTPException as e:
            raise ExternalSideEffectFailed("Fixture removal", str(e))

    async def announce_match(self, channel_id: int, announcement: MatchAnnouncement):
        mentions = " ".join(
            f"<@&{role_id}>" for role_id in (announcement.home_role_id, announcement.away_role_id) if role_id
        )
        await self._send(channel_id, "Match announcement", build_announcement_embed(announcement),
                         content=mentions or None)

    async def log_stat_change(self, channel_id: int, change: StatChange):
        await self._send(channel_id, "Stat change log", build_stat_change_embed(change))
