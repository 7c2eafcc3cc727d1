"""
Match commands

Scheduling, editing, cancelling and announcing individual matches. Dates
are YYYY-MM-DD and times HH:MM, both UTC.
"""

from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from league_bot.operations.fixture_operations import EDITABLE_FIELDS
from league_bot.services.settings import SettingKey
from league_bot.utils.embeds import build_match_list_embed, success_embed
from league_bot.utils.permissions import actor_from_interaction
from league_bot.utils.timestamps import unix_to_discord_timestamp


@app_commands.guild_only()
class MatchCog(commands.GroupCog, group_name="match", group_description="Match management commands"):

    def __init__(self, bot):
        self.bot = bot

    @app_commands.command(name="create", description="Create a match (Admin only)")
    @app_commands.describe(
        home="Home team role",
        away="Away team role",
        stadium="Stadium name",
        date="Match date (YYYY-MM-DD, UTC)",
        time="Kickoff time (HH:MM, UTC)"
    )
    async def create(self, interaction: discord.Interaction, home: discord.Role, away: discord.Role,
                     stadium: str, date: str, time: str):
        home_team = await self.bot.team_ops.get_team_by_role(home.id)
        away_team = await self.bot.team_ops.get_team_by_role(away.id)
        outcome = await self.bot.fixture_ops.create_match(
            actor_from_interaction(interaction), home_team.id, away_team.id, stadium, date, time
        )
        match = outcome.match
        await interaction.response.send_message(embed=success_embed(
            "Match Created",
            f"**Match #{match.id}**: {home_team.name} vs {away_team.name}\n"
            f"🏟️ {match.stadium}\n🕐 {unix_to_discord_timestamp(match.match_timestamp)}"
        ))

    @app_commands.command(name="edit", description="Edit one field of a match (Admin only)")
    @app_commands.describe(matchid="Match ID", field="Field to change", value="New value")
    @app_commands.choices(field=[app_commands.Choice(name=f, value=f) for f in EDITABLE_FIELDS])
    async def edit(self, interaction: discord.Interaction, matchid: int, field: app_commands.Choice[str],
                   value: str):
        outcome = await self.bot.fixture_ops.edit_match(actor_from_interaction(interaction), matchid,
                                                        field.value, value)
        await interaction.response.send_message(embed=success_embed(
            "Match Updated", f"Match #{outcome.match.id}: **{field.value}** set to {value}."
        ))

    @app_commands.command(name="cancel", description="Cancel a match (Admin only)")
    @app_commands.describe(matchid="Match ID", reason="Reason for cancellation")
    async def cancel(self, interaction: discord.Interaction, matchid: int, reason: str):
        outcome = await self.bot.fixture_ops.cancel_match(actor_from_interaction(interaction), matchid, reason)
        await interaction.response.send_message(embed=success_embed(
            "Match Cancelled", f"Match #{outcome.match.id} has been cancelled.\n**Reason:** {reason}"
        ))

    @app_commands.command(name="reschedule", description="Reschedule a match (Admin only)")
    @app_commands.describe(matchid="Match ID", date="New date (YYYY-MM-DD, UTC)", time="New time (HH:MM, UTC)")
    async def reschedule(self, interaction: discord.Interaction, matchid: int, date: str, time: str):
        outcome = await self.bot.fixture_ops.reschedule_match(actor_from_interaction(interaction),
                                                              matchid, date, time)
        await interaction.response.send_message(embed=success_embed(
            "Match Rescheduled",
            f"Match #{outcome.match.id} now kicks off {unix_to_discord_timestamp(outcome.match.match_timestamp)}."
        ))

    @app_commands.command(name="setmatchchannel", description="Set the channel for match announcements (Admin only)")
    @app_commands.describe(channel="Channel for match shouts")
    async def setmatchchannel(self, interaction: discord.Interaction, channel: discord.TextChannel):
        await self.bot.settings.set_channel(actor_from_interaction(interaction), SettingKey.MATCH_CHANNEL, channel.id)
        await interaction.response.send_message(embed=success_embed(
            "Match Channel Set", f"Match announcements will now be posted in {channel.mention}."), ephemeral=True)

    @app_commands.command(name="shout", description="Announce a match in the match channel")
    @app_commands.describe(matchid="Match ID to announce", link="Link to the match (stream, ticket, etc)")
    async def shout(self, interaction: discord.Interaction, matchid: int, link: Optional[str] = None):
        await interaction.response.defer(ephemeral=True)
        outcome = await self.bot.fixture_ops.announce_match(actor_from_interaction(interaction), matchid, link)
        channel_id = self.bot.settings.current.match_channel
        await interaction.followup.send(embed=success_embed(
            "Match Announced", f"Match #{matchid} has been announced in <#{channel_id}>.", outcome.warnings
        ), ephemeral=True)

    @app_commands.command(name="list", description="List all unplayed matches (Admin & Referee only)")
    async def list_matches(self, interaction: discord.Interaction):
        entries = await self.bot.fixture_ops.list_scheduled_matches(actor_from_interaction(interaction))
        await interaction.response.send_message(embed=build_match_list_embed(entries), ephemeral=True)

    @app_commands.command(name="done", description="Mark a match as done and delete it (Admin & Referee only)")
    @app_commands.describe(matchid="Match ID to mark as done")
    async def done(self, interaction: discord.Interaction, matchid: int):
        await self.bot.fixture_ops.mark_match_done(actor_from_interaction(interaction), matchid)
        await interaction.response.send_message(embed=success_embed(
            "Match Done", f"Match #{matchid} has been marked as done and removed."
        ))


async def setup(bot):
    await bot.add_cog(MatchCog(bot))
