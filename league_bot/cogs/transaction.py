"""Transaction window commands"""

import discord
from discord import app_commands
from discord.ext import commands

from league_bot.utils.embeds import success_embed
from league_bot.utils.permissions import actor_from_interaction


@app_commands.guild_only()
class TransactionCog(commands.GroupCog, group_name="transaction",
                     group_description="Transaction window commands"):

    def __init__(self, bot):
        self.bot = bot

    @app_commands.command(name="open", description="Open the transaction window (Admin only)")
    async def open_window(self, interaction: discord.Interaction):
        await self.bot.transaction_window.open(actor_from_interaction(interaction))
        await interaction.response.send_message(embed=success_embed(
            "Transaction Window Open",
            "The transaction window is now open. Demands do not count against the limit."
        ))

    @app_commands.command(name="close", description="Close the transaction window (Admin only)")
    async def close_window(self, interaction: discord.Interaction):
        await self.bot.transaction_window.close(actor_from_interaction(interaction))
        await interaction.response.send_message(embed=success_embed(
            "Transaction Window Closed", "The transaction window is now closed. The demand limit applies again."
        ))


async def setup(bot):
    await bot.add_cog(TransactionCog(bot))
