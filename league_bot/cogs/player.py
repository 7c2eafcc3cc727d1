"""Player commands"""

from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from league_bot.utils.embeds import build_profile_embed
from league_bot.utils.permissions import actor_from_user


@app_commands.guild_only()
class PlayerCog(commands.GroupCog, group_name="player", group_description="Player commands"):
    """Player profile lookups."""

    def __init__(self, bot):
        self.bot = bot

    @app_commands.command(name="info", description="View a player's profile")
    @app_commands.describe(member="The player whose profile you want to view (defaults to you)")
    @app_commands.checks.cooldown(rate=1, per=5.0, key=lambda i: i.user.id)
    async def info(self, interaction: discord.Interaction, member: Optional[discord.Member] = None):
        target = member or interaction.user
        profile = await self.bot.player_ops.player_profile(actor_from_user(target))
        await interaction.response.send_message(embed=build_profile_embed(profile, target))


async def setup(bot):
    await bot.add_cog(PlayerCog(bot))
