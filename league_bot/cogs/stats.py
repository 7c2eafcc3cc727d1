"""
Statistics commands

Referees and admins record goals, assists, mentions and man-of-the-match
awards; only admins can take them away. Each change is logged to the stats
log channel by the operations layer.
"""

from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from league_bot.services.settings import SettingKey
from league_bot.utils.embeds import build_leaderboard_embed, build_profile_embed, success_embed
from league_bot.utils.permissions import actor_from_interaction, actor_from_user

_LABELS = {"goals": ("Goal", "goal"), "assists": ("Assist", "assist"),
           "mentions": ("Mention", "mention"), "motm": ("MOTM", "MOTM")}


@app_commands.guild_only()
class StatsCog(commands.GroupCog, group_name="stats", group_description="Statistics management commands"):

    def __init__(self, bot):
        self.bot = bot

    async def _adjust(self, interaction: discord.Interaction, player: discord.Member, stat: str, delta: int):
        await interaction.response.defer()
        outcome = await self.bot.stats_ops.adjust_stat(
            actor_from_interaction(interaction), actor_from_user(player), stat, delta
        )
        change = outcome.changes[0]
        verb = "Added" if delta > 0 else "Removed"
        preposition = "to" if delta > 0 else "from"
        await interaction.followup.send(embed=success_embed(
            f"{_LABELS[stat][0]} {verb}",
            f"{verb} a {_LABELS[stat][1]} {preposition} {player.mention}. New total: **{change.new_value}**",
            outcome.warnings
        ))

    @app_commands.command(name="logchannel", description="Set the log channel for stat changes (Admin only)")
    @app_commands.describe(channel="Channel to log stat changes")
    async def logchannel(self, interaction: discord.Interaction, channel: discord.TextChannel):
        await self.bot.settings.set_channel(actor_from_interaction(interaction), SettingKey.LOG_CHANNEL, channel.id)
        await interaction.response.send_message(embed=success_embed(
            "Log Channel Set", f"Stat changes will now be logged in {channel.mention}."), ephemeral=True)

    @app_commands.command(name="addgoal", description="Add a goal to a player")
    @app_commands.describe(player="Player to add goal to")
    async def addgoal(self, interaction: discord.Interaction, player: discord.Member):
        await self._adjust(interaction, player, "goals", 1)

    @app_commands.command(name="removegoal", description="Remove a goal from a player (Admin only)")
    @app_commands.describe(player="Player to remove goal from")
    async def removegoal(self, interaction: discord.Interaction, player: discord.Member):
        await self._adjust(interaction, player, "goals", -1)

    @app_commands.command(name="addassist", description="Add an assist to a player")
    @app_commands.describe(player="Player to add assist to")
    async def addassist(self, interaction: discord.Interaction, player: discord.Member):
        await self._adjust(interaction, player, "assists", 1)

    @app_commands.command(name="removeassist", description="Remove an assist from a player (Admin only)")
    @app_commands.describe(player="Player to remove assist from")
    async def removeassist(self, interaction: discord.Interaction, player: discord.Member):
        await self._adjust(interaction, player, "assists", -1)

    @app_commands.command(name="addmention", description="Add a mention to players")
    @app_commands.describe(player1="First player", player2="Second player", player3="Third player",
                           player4="Fourth player", player5="Fifth player")
    async def addmention(self, interaction: discord.Interaction, player1: discord.Member,
                         player2: Optional[discord.Member] = None, player3: Optional[discord.Member] = None,
                         player4: Optional[discord.Member] = None, player5: Optional[discord.Member] = None):
        await interaction.response.defer()
        members = [m for m in (player1, player2, player3, player4, player5) if m is not None]
        outcome = await self.bot.stats_ops.add_mentions(actor_from_interaction(interaction),
                                                        [actor_from_user(m) for m in members])
        lines = [f"<@{c.player_discord_id}>: **{c.new_value}**" for c in outcome.changes]
        await interaction.followup.send(embed=success_embed(
            "Mentions Added", "Added a mention to:\n" + "\n".join(lines), outcome.warnings
        ))

    @app_commands.command(name="removemention", description="Remove a mention from a player (Admin only)")
    @app_commands.describe(player="Player to remove mention from")
    async def removemention(self, interaction: discord.Interaction, player: discord.Member):
        await self._adjust(interaction, player, "mentions", -1)

    @app_commands.command(name="addmotm", description="Add MOTM to a player")
    @app_commands.describe(player="Player to award MOTM")
    async def addmotm(self, interaction: discord.Interaction, player: discord.Member):
        await self._adjust(interaction, player, "motm", 1)

    @app_commands.command(name="removemotm", description="Remove MOTM from a player (Admin only)")
    @app_commands.describe(player="Player to remove MOTM from")
    async def removemotm(self, interaction: discord.Interaction, player: discord.Member):
        await self._adjust(interaction, player, "motm", -1)

    @app_commands.command(name="playerstats", description="View a player's stats")
    @app_commands.describe(player="Player to view (defaults to you)")
    async def playerstats(self, interaction: discord.Interaction, player: Optional[discord.Member] = None):
        target = player or interaction.user
        profile = await self.bot.player_ops.player_profile(actor_from_user(target))
        await interaction.response.send_message(embed=build_profile_embed(profile, target))

    @app_commands.command(name="topscorers", description="Show the top goal scorers")
    async def topscorers(self, interaction: discord.Interaction):
        players = await self.bot.stats_ops.top_scorers()
        await interaction.response.send_message(embed=build_leaderboard_embed(
            "Top Scorers", players, "goals", "No players with goals yet."))

    @app_commands.command(name="topplaymakers", description="Show the top assist providers")
    async def topplaymakers(self, interaction: discord.Interaction):
        players = await self.bot.stats_ops.top_playmakers()
        await interaction.response.send_message(embed=build_leaderboard_embed(
            "Top Playmakers", players, "assists", "No players with assists yet."))


async def setup(bot):
    await bot.add_cog(StatsCog(bot))
