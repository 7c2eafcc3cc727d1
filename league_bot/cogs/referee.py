"""Referee commands"""

import discord
from discord import app_commands
from discord.ext import commands

from league_bot.utils.embeds import build_referees_embed, success_embed
from league_bot.utils.permissions import actor_from_interaction, actor_from_user


@app_commands.guild_only()
class RefereeCog(commands.GroupCog, group_name="referee", group_description="Referee management commands"):

    def __init__(self, bot):
        self.bot = bot

    @app_commands.command(name="set", description="Make a user a referee (Admin only)")
    @app_commands.describe(user="User to appoint")
    async def set_referee(self, interaction: discord.Interaction, user: discord.Member):
        await interaction.response.defer()
        outcome = await self.bot.referee_ops.add_referee(actor_from_interaction(interaction), actor_from_user(user))
        await interaction.followup.send(embed=success_embed(
            "Referee Added", f"{user.mention} is now a referee.", outcome.warnings
        ))

    @app_commands.command(name="remove", description="Remove a referee (Admin only)")
    @app_commands.describe(user="Referee to remove")
    async def remove(self, interaction: discord.Interaction, user: discord.Member):
        await interaction.response.defer()
        outcome = await self.bot.referee_ops.remove_referee(actor_from_interaction(interaction), user.id)
        await interaction.followup.send(embed=success_embed(
            "Referee Removed", f"{user.mention} is no longer a referee.", outcome.warnings
        ))

    @app_commands.command(name="list", description="List all referees")
    async def list_referees(self, interaction: discord.Interaction):
        referee_ids = await self.bot.referee_ops.list_referees()
        await interaction.response.send_message(embed=build_referees_embed(referee_ids))


async def setup(bot):
    await bot.add_cog(RefereeCog(bot))
