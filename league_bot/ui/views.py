"""
Discord UI Views for the league bot

Interactive prompts that hand a button press straight to the operations layer.

Components:
- OfferResponseView: Accept/Decline on a contract offer delivered by DM
- DemandConfirmationView: Confirm/Cancel on a player's release demand
"""

import discord

from league_bot.constants import LeagueConstants
from league_bot.operations.roster_operations import RosterOperations
from league_bot.utils.embeds import success_embed
from league_bot.utils.error_embeds import ErrorEmbeds
from league_bot.utils.league_exceptions import DenialReason, LeagueOperationError
from league_bot.utils.logger import setup_logger
from league_bot.utils.permissions import actor_from_user


class OfferResponseView(discord.ui.View):
    """
    Accept/decline buttons for one pending offer.

    The view never times out: the offer stays open until the player answers
    or the offer is invalidated. Button custom ids embed the offer token, so
    the bot re-attaches a view to each delivered prompt after a restart.
    """

    def __init__(self, token: str, roster_ops: RosterOperations):
        super().__init__(timeout=None)
        self.token = token
        self.roster_ops = roster_ops
        self.logger = setup_logger(f"{__name__}.OfferResponseView")

        accept = discord.ui.Button(label="Accept", style=discord.ButtonStyle.green,
                                   custom_id=f"offer_accept:{token}")
        decline = discord.ui.Button(label="Decline", style=discord.ButtonStyle.red,
                                    custom_id=f"offer_decline:{token}")
        accept.callback = self._accept
        decline.callback = self._decline
        self.add_item(accept)
        self.add_item(decline)

    async def _accept(self, interaction: discord.Interaction):
        await self._respond(interaction, "accept")

    async def _decline(self, interaction: discord.Interaction):
        await self._respond(interaction, "decline")

    async def _respond(self, interaction: discord.Interaction, decision: str):
        await interaction.response.defer()
        responder = actor_from_user(interaction.user)

        try:
            outcome = await self.roster_ops.resolve_offer(self.token, decision, responder=responder)
        except LeagueOperationError as e:
            self.logger.info(f"Offer {self.token} {decision} by {responder.discord_id} denied: {e}")
            await interaction.followup.send(embed=ErrorEmbeds.from_exception(e))
            if e.reason is DenialReason.OFFER_EXPIRED:
                await self._disable(interaction)
            return

        if decision == "accept":
            embed = success_embed("Contract Accepted",
                                  f"You have joined **{outcome.team_name}**!", outcome.warnings)
        else:
            embed = success_embed("Contract Declined",
                                  f"You have declined the offer from **{outcome.team_name}**.")
        await self._disable(interaction)
        await interaction.followup.send(embed=embed)
        self.stop()

    async def _disable(self, interaction: discord.Interaction):
        for item in self.children:
            item.disabled = True
        try:
            await interaction.edit_original_response(view=self)
        except discord.HTTPException as e:
            self.logger.warning(f"Could not disable offer buttons for {self.token}: {e}")


class DemandConfirmationView(discord.ui.View):
    """Confirm/cancel prompt shown to a player who asked to leave their team."""

    def __init__(self, token: str, requester_id: int, roster_ops: RosterOperations):
        super().__init__(timeout=LeagueConstants.DEMAND_CONFIRMATION_TTL_MINUTES * 60)
        self.token = token
        self.requester_id = requester_id
        self.roster_ops = roster_ops
        self.logger = setup_logger(f"{__name__}.DemandConfirmationView")

    @discord.ui.button(label="Confirm Demand", style=discord.ButtonStyle.danger)
    async def confirm_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        """Handle confirmation button click"""
        await interaction.response.defer(ephemeral=True)
        try:
            outcome = await self.roster_ops.confirm_demand(self.token, interaction.user.id)
        except LeagueOperationError as e:
            self.logger.info(f"Demand {self.token} confirm by {interaction.user.id} denied: {e}")
            await interaction.followup.send(embed=ErrorEmbeds.from_exception(e), ephemeral=True)
            return

        remaining = max(0, LeagueConstants.DEMAND_LIMIT - (outcome.demand_uses or 0))
        embed = success_embed(
            "Demand Confirmed",
            f"You have left **{outcome.team_name}**. Demands remaining: {remaining}.",
            outcome.warnings
        )
        await self._finish(interaction, embed)

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.gray)
    async def cancel_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        """Handle cancel button click"""
        await interaction.response.defer(ephemeral=True)
        try:
            await self.roster_ops.cancel_demand(self.token, interaction.user.id)
        except LeagueOperationError as e:
            await interaction.followup.send(embed=ErrorEmbeds.from_exception(e), ephemeral=True)
            return
        embed = discord.Embed(title="✅ Demand Cancelled", description="You remain on your team.",
                              color=discord.Color.blue())
        await self._finish(interaction, embed)

    async def _finish(self, interaction: discord.Interaction, embed: discord.Embed):
        for item in self.children:
            item.disabled = True
        await interaction.edit_original_response(view=self)
        await interaction.followup.send(embed=embed, ephemeral=True)
        self.stop()

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.requester_id:
            await interaction.response.send_message("❌ This confirmation is not for you.", ephemeral=True)
            return False
        return True
