"""
Team commands

Team administration, contracts, releases, staff appointments, demands and
the owner-only database reset. Handlers are thin: they build Actors, call
the operations layer and render the outcome. Denials raise
LeagueOperationError and are rendered by the bot's global error handler.
"""

from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from league_bot.constants import LeagueConstants
from league_bot.services.settings import SettingKey
from league_bot.ui.views import DemandConfirmationView
from league_bot.utils.embeds import build_roster_embed, success_embed
from league_bot.utils.logger import setup_logger
from league_bot.utils.permissions import actor_from_interaction, actor_from_user

logger = setup_logger(__name__)


@app_commands.guild_only()
class TeamCog(commands.GroupCog, group_name="team", group_description="Team management commands"):
    """Team, roster and staff management."""

    def __init__(self, bot):
        self.bot = bot

    async def _team_id(self, role: discord.Role) -> int:
        team = await self.bot.team_ops.get_team_by_role(role.id)
        return team.id

    # --- Teams ---

    @app_commands.command(name="create", description="Create a new team (Admin only)")
    @app_commands.describe(name="Team name", short="Short team code", role="Role for the team")
    async def create(self, interaction: discord.Interaction, name: str, short: str, role: discord.Role):
        outcome = await self.bot.team_ops.create_team(actor_from_interaction(interaction), name, short, role.id)
        await interaction.response.send_message(embed=success_embed(
            "Team Created", f"**{outcome.team.name}** [{outcome.team.short}] has been created with role {role.mention}."
        ))

    @app_commands.command(name="delete", description="Delete a team (Admin only)")
    @app_commands.describe(role="Team role")
    async def delete(self, interaction: discord.Interaction, role: discord.Role):
        outcome = await self.bot.team_ops.delete_team(actor_from_interaction(interaction), role.id)
        await interaction.response.send_message(embed=success_embed(
            "Team Deleted", f"**{outcome.team.name}** has been deleted."
        ))

    @app_commands.command(name="roster", description="View a team's roster")
    @app_commands.describe(role="Team role")
    async def roster(self, interaction: discord.Interaction, role: discord.Role):
        roster = await self.bot.team_ops.get_roster(role.id)
        await interaction.response.send_message(embed=build_roster_embed(roster))

    # --- Contracts ---

    @app_commands.command(name="contract", description="Offer a contract to a player")
    @app_commands.describe(
        player="Player to offer a contract to",
        salary="Contract salary",
        duration="Contract duration",
        position="Playing position",
        team="Team role to sign for (needed only if you hold several team roles)"
    )
    async def contract(self, interaction: discord.Interaction, player: discord.Member, salary: str,
                       duration: str, position: Optional[str] = None, team: Optional[discord.Role] = None):
        await interaction.response.defer(ephemeral=True)
        team_id = await self._team_id(team) if team else None
        outcome = await self.bot.roster_ops.create_offer(
            actor_from_interaction(interaction), actor_from_user(player),
            salary, duration, position=position, team_id=team_id
        )
        await interaction.followup.send(embed=success_embed(
            "Contract Offered",
            f"A contract offer from **{outcome.team_name}** has been sent to {player.mention}.",
            outcome.warnings
        ), ephemeral=True)

    @app_commands.command(name="release", description="Release a player from your team")
    @app_commands.describe(player="Player to release", team="Team role (needed only if you hold several)")
    async def release(self, interaction: discord.Interaction, player: discord.Member,
                      team: Optional[discord.Role] = None):
        await interaction.response.defer()
        team_id = await self._team_id(team) if team else None
        outcome = await self.bot.roster_ops.release(actor_from_interaction(interaction), player.id, team_id=team_id)
        await interaction.followup.send(embed=success_embed(
            "Player Released", f"{player.mention} has been released from **{outcome.team_name}**.",
            outcome.warnings
        ))

    @app_commands.command(name="addplayer", description="Add a player to a team directly (Admin only)")
    @app_commands.describe(player="Player to add", team="Team role")
    async def addplayer(self, interaction: discord.Interaction, player: discord.Member, team: discord.Role):
        await interaction.response.defer()
        outcome = await self.bot.roster_ops.direct_add(
            actor_from_interaction(interaction), actor_from_user(player), await self._team_id(team)
        )
        await interaction.followup.send(embed=success_embed(
            "Player Added", f"{player.mention} has been added to **{outcome.team_name}**.", outcome.warnings
        ))

    @app_commands.command(name="removeplayer", description="Remove a player from a team directly (Admin only)")
    @app_commands.describe(player="Player to remove", team="Team role")
    async def removeplayer(self, interaction: discord.Interaction, player: discord.Member, team: discord.Role):
        await interaction.response.defer()
        outcome = await self.bot.roster_ops.direct_remove(
            actor_from_interaction(interaction), player.id, await self._team_id(team)
        )
        await interaction.followup.send(embed=success_embed(
            "Player Removed", f"{player.mention} has been removed from **{outcome.team_name}**.", outcome.warnings
        ))

    # --- Staff ---

    @app_commands.command(name="setmanager", description="Set the manager of a team (Admin only)")
    @app_commands.describe(manager="New manager", role="Team role")
    async def setmanager(self, interaction: discord.Interaction, manager: discord.Member, role: discord.Role):
        await interaction.response.defer()
        outcome = await self.bot.roster_ops.assign_manager(
            actor_from_interaction(interaction), actor_from_user(manager), await self._team_id(role)
        )
        await interaction.followup.send(embed=success_embed(
            "Manager Set", f"{manager.mention} is now the manager of **{outcome.team_name}**.", outcome.warnings
        ))

    @app_commands.command(name="removemanager", description="Remove the manager of a team (Admin only)")
    @app_commands.describe(role="Team role")
    async def removemanager(self, interaction: discord.Interaction, role: discord.Role):
        await interaction.response.defer()
        outcome = await self.bot.roster_ops.clear_manager(actor_from_interaction(interaction),
                                                          await self._team_id(role))
        await interaction.followup.send(embed=success_embed(
            "Manager Removed",
            f"<@{outcome.player_discord_id}> is no longer the manager of **{outcome.team_name}**.",
            outcome.warnings
        ))

    @app_commands.command(name="setassistantmanager", description="Add an assistant manager to a team (Admin only)")
    @app_commands.describe(assistantmanager="New assistant manager", role="Team role")
    async def setassistantmanager(self, interaction: discord.Interaction, assistantmanager: discord.Member,
                                  role: discord.Role):
        await interaction.response.defer()
        outcome = await self.bot.roster_ops.assign_assistant_manager(
            actor_from_interaction(interaction), actor_from_user(assistantmanager), await self._team_id(role)
        )
        await interaction.followup.send(embed=success_embed(
            "Assistant Manager Set",
            f"{assistantmanager.mention} is now an assistant manager of **{outcome.team_name}**.",
            outcome.warnings
        ))

    @app_commands.command(name="removeassistantmanager", description="Remove an assistant manager (Admin only)")
    @app_commands.describe(role="Team role", assistantmanager="Assistant manager to remove (if the team has several)")
    async def removeassistantmanager(self, interaction: discord.Interaction, role: discord.Role,
                                     assistantmanager: Optional[discord.Member] = None):
        await interaction.response.defer()
        outcome = await self.bot.roster_ops.clear_assistant_manager(
            actor_from_interaction(interaction), await self._team_id(role),
            user_discord_id=assistantmanager.id if assistantmanager else None
        )
        await interaction.followup.send(embed=success_embed(
            "Assistant Manager Removed",
            f"<@{outcome.player_discord_id}> is no longer an assistant manager of **{outcome.team_name}**.",
            outcome.warnings
        ))

    # --- League roles and channels ---

    @app_commands.command(name="setmanagerrole", description="Set the manager role (Admin only)")
    @app_commands.describe(role="Manager role")
    async def setmanagerrole(self, interaction: discord.Interaction, role: discord.Role):
        await self.bot.settings.set_role(actor_from_interaction(interaction), SettingKey.MANAGER_ROLE, role.id)
        await interaction.response.send_message(embed=success_embed(
            "Manager Role Set", f"{role.mention} is now the manager role."), ephemeral=True)

    @app_commands.command(name="setassistantmanagerrole", description="Set the assistant manager role (Admin only)")
    @app_commands.describe(role="Assistant manager role")
    async def setassistantmanagerrole(self, interaction: discord.Interaction, role: discord.Role):
        await self.bot.settings.set_role(actor_from_interaction(interaction),
                                         SettingKey.ASSISTANT_MANAGER_ROLE, role.id)
        await interaction.response.send_message(embed=success_embed(
            "Assistant Manager Role Set", f"{role.mention} is now the assistant manager role."), ephemeral=True)

    @app_commands.command(name="setrefereerole", description="Set the referee role (Admin only)")
    @app_commands.describe(role="Referee role")
    async def setrefereerole(self, interaction: discord.Interaction, role: discord.Role):
        await self.bot.settings.set_role(actor_from_interaction(interaction), SettingKey.REFEREE_ROLE, role.id)
        await interaction.response.send_message(embed=success_embed(
            "Referee Role Set", f"{role.mention} is now the referee role."), ephemeral=True)

    @app_commands.command(name="transactionschannel", description="Set the transactions log channel (Admin only)")
    @app_commands.describe(channel="Channel for transaction logs")
    async def transactionschannel(self, interaction: discord.Interaction, channel: discord.TextChannel):
        await self.bot.settings.set_channel(actor_from_interaction(interaction),
                                            SettingKey.TRANSACTIONS_CHANNEL, channel.id)
        await interaction.response.send_message(embed=success_embed(
            "Transactions Channel Set", f"Transactions will now be logged in {channel.mention}."), ephemeral=True)

    # --- Demands ---

    @app_commands.command(name="demand", description="Demand a release from your team")
    async def demand(self, interaction: discord.Interaction):
        outcome = await self.bot.roster_ops.request_demand(actor_from_interaction(interaction))
        if self.bot.transaction_window.is_open:
            limit_note = "The transaction window is open, so this demand does not count against your limit."
        else:
            remaining = LeagueConstants.DEMAND_LIMIT - (outcome.demand_uses or 0)
            limit_note = f"You have {remaining} demand(s) left. Confirming uses one."
        embed = discord.Embed(
            title="Confirm Demand",
            description=(
                f"Are you sure you want to leave **{outcome.team_name}**?\n\n{limit_note}\n"
                f"This prompt expires in {LeagueConstants.DEMAND_CONFIRMATION_TTL_MINUTES} minutes."
            ),
            color=discord.Color.orange()
        )
        view = DemandConfirmationView(outcome.token, interaction.user.id, self.bot.roster_ops)
        await interaction.response.send_message(embed=embed, view=view, ephemeral=True)

    # --- Maintenance ---

    @app_commands.command(name="cleardatabase", description="Delete ALL league data (Bot owner only)")
    @app_commands.describe(
        confirm1="Are you sure?",
        confirm2="This deletes every team, player, match and setting. Continue?",
        confirm3="This cannot be undone. Continue?",
        confirm4="Final confirmation: wipe the database?"
    )
    async def cleardatabase(self, interaction: discord.Interaction, confirm1: bool, confirm2: bool,
                            confirm3: bool, confirm4: bool):
        await interaction.response.defer(ephemeral=True)
        await self.bot.admin_ops.clear_database(actor_from_interaction(interaction),
                                                [confirm1, confirm2, confirm3, confirm4])
        logger.warning(f"Database cleared by {interaction.user.id} ({interaction.user.name})")
        await interaction.followup.send(embed=success_embed(
            "Database Cleared", "All league data has been deleted."), ephemeral=True)


async def setup(bot):
    await bot.add_cog(TeamCog(bot))
