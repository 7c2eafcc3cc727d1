"""
Fixture posting commands

One grouped fixture listing is outstanding at a time. Posting again
replaces it; marking it done archives the listing and clears the schedule.
"""

import discord
from discord import app_commands
from discord.ext import commands

from league_bot.services.settings import SettingKey
from league_bot.utils.embeds import success_embed
from league_bot.utils.permissions import actor_from_interaction


@app_commands.guild_only()
class FixturesCog(commands.GroupCog, group_name="fixtures", group_description="Fixture posting commands"):

    def __init__(self, bot):
        self.bot = bot

    @app_commands.command(name="setchannel", description="Set the channel for posting fixtures (Admin only)")
    @app_commands.describe(channel="Channel for fixtures")
    async def setchannel(self, interaction: discord.Interaction, channel: discord.TextChannel):
        await self.bot.settings.set_channel(actor_from_interaction(interaction),
                                            SettingKey.FIXTURES_CHANNEL, channel.id)
        await interaction.response.send_message(embed=success_embed(
            "Fixtures Channel Set", f"Fixtures will now be posted in {channel.mention}."), ephemeral=True)

    @app_commands.command(name="post", description="Post an embed of all upcoming matches grouped by date")
    async def post(self, interaction: discord.Interaction):
        await interaction.response.defer()
        outcome = await self.bot.fixture_ops.post_fixtures(actor_from_interaction(interaction))
        channel_id = self.bot.settings.current.fixtures_channel
        where = f" in <#{channel_id}>" if channel_id else ""
        await interaction.followup.send(embed=success_embed(
            "Fixtures Posted", f"Posted {outcome.listing.match_count} upcoming match(es){where}.",
            outcome.warnings
        ))

    @app_commands.command(name="done", description="Mark fixtures as done, archive them, and remove old matches")
    async def done(self, interaction: discord.Interaction):
        await interaction.response.defer()
        outcome = await self.bot.fixture_ops.archive_fixtures(actor_from_interaction(interaction))
        await interaction.followup.send(embed=success_embed(
            "Fixtures Archived",
            f"Current fixtures have been archived and marked as done. "
            f"{outcome.purged_matches} match(es) were removed. You can now post new fixtures.",
            outcome.warnings
        ))

    @app_commands.command(name="remove", description="Delete the posted fixtures embed")
    async def remove(self, interaction: discord.Interaction):
        await interaction.response.defer()
        outcome = await self.bot.fixture_ops.remove_fixtures(actor_from_interaction(interaction))
        await interaction.followup.send(embed=success_embed(
            "Fixtures Removed", "The fixtures embed has been deleted.", outcome.warnings
        ))


async def setup(bot):
    await bot.add_cog(FixturesCog(bot))
