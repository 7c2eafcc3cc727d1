import asyncio
import logging
import traceback
from typing import Optional

import discord
from discord.ext import commands
from discord import app_commands

from league_bot.config import Config
from league_bot.database.database import Database
from league_bot.operations.admin_operations import AdminOperations
from league_bot.operations.fixture_operations import FixtureOperations
from league_bot.operations.player_operations import PlayerOperations
from league_bot.operations.referee_operations import RefereeOperations
from league_bot.operations.roster_operations import RosterOperations
from league_bot.operations.stats_operations import StatsOperations
from league_bot.operations.team_operations import TeamOperations
from league_bot.operations.transaction_window import TransactionWindow
from league_bot.services.discord_gateway import DiscordLeagueGateway
from league_bot.services.settings import LeagueSettingsService
from league_bot.ui.views import OfferResponseView
from league_bot.utils.error_embeds import ErrorEmbeds
from league_bot.utils.league_exceptions import LeagueOperationError
from league_bot.utils.logger import quiet_library_loggers, setup_logger


class LeagueBot(commands.Bot):
    def __init__(self):
        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = True

        super().__init__(
            command_prefix=Config.COMMAND_PREFIX,
            intents=intents,
            help_command=None
        )

        # Attach app command error handler
        self.tree.on_error = self.on_app_command_error

        self.db: Optional[Database] = None
        self.settings: Optional[LeagueSettingsService] = None
        self.gateway = DiscordLeagueGateway(self)
        self.logger = setup_logger(__name__)

    async def setup_hook(self):
        """Called when the bot is starting up"""
        self.logger.info("Setting up League Bot...")

        # Initialize database
        self.db = Database()
        await self.db.initialize()

        # Initialize league settings and load them
        self.settings = LeagueSettingsService(self.db)
        await self.settings.execute_with_retry(self.settings.load)
        self.logger.info("League settings loaded")

        self._build_operations()
        await self._restore_offer_views()

        # Load cogs
        await self.load_cogs()

        # Sync slash commands
        await self._sync_commands()

        self.logger.info("League Bot setup complete!")

    def _build_operations(self):
        self.transaction_window = TransactionWindow(self.settings)
        self.roster_ops = RosterOperations(self.db, self.settings, self.gateway, self.transaction_window)
        self.fixture_ops = FixtureOperations(self.db, self.settings, self.gateway)
        self.team_ops = TeamOperations(self.db, self.settings, self.gateway)
        self.referee_ops = RefereeOperations(self.db, self.settings, self.gateway)
        self.stats_ops = StatsOperations(self.db, self.settings, self.gateway)
        self.player_ops = PlayerOperations(self.db, self.settings, self.gateway)
        self.admin_ops = AdminOperations(self.db, self.settings, self.gateway)

    async def _restore_offer_views(self):
        """Re-attach accept/decline buttons to offers delivered before a restart"""
        offers = await self.roster_ops.delivered_offers()
        for token, message_id in offers:
            self.add_view(OfferResponseView(token, self.roster_ops), message_id=message_id)
        if offers:
            self.logger.info(f"Restored {len(offers)} pending offer prompt(s)")

    async def load_cogs(self):
        """Load all cogs"""
        cogs_to_load = [
            'league_bot.cogs.team',
            'league_bot.cogs.match',
            'league_bot.cogs.fixtures',
            'league_bot.cogs.referee',
            'league_bot.cogs.stats',
            'league_bot.cogs.transaction',
            'league_bot.cogs.player',
        ]

        for cog in cogs_to_load:
            try:
                await self.load_extension(cog)
                self.logger.info(f"Loaded cog: {cog}")
            except Exception as e:
                self.logger.error(f"Failed to load cog {cog}: {e}", exc_info=True)

    async def _sync_commands(self):
        """Publish the slash commands, per league guild when guild ids are configured"""
        if not self.tree.get_commands():
            self.logger.warning("No slash commands registered; did every cog load?")
            return

        guild_ids = Config.get_guild_ids()
        if not guild_ids:
            # Global commands can take up to an hour to appear
            try:
                synced = await self.tree.sync()
            except discord.HTTPException as e:
                self.logger.error(f"Global command sync failed: {e}", exc_info=True)
                return
            self.logger.info(f"Synced {len(synced)} global command(s)")
            return

        for guild_id in guild_ids:
            await self._sync_guild(guild_id)

    async def _sync_guild(self, guild_id: int):
        guild = discord.Object(id=guild_id)
        self.tree.copy_global_to(guild=guild)
        try:
            synced = await self.tree.sync(guild=guild)
        except discord.Forbidden:
            self.logger.error(f"Missing applications.commands scope in guild {guild_id}; commands not synced")
            return
        except discord.HTTPException as e:
            self.logger.error(f"Command sync for guild {guild_id} failed ({e.status}): {e.text}")
            return
        self.logger.info(f"Synced {len(synced)} command(s) to guild {guild_id}")

    async def on_ready(self):
        self.logger.info(f"Logged in as {self.user} ({len(self.guilds)} guild(s))")
        await self.change_presence(activity=discord.Game(name="Soccer League | /team roster"))

    async def on_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        """Global error handler for slash commands"""
        command_name = interaction.command.name if interaction.command else 'Unknown'
        original = error.original if isinstance(error, app_commands.CommandInvokeError) else error

        if isinstance(original, LeagueOperationError):
            # Expected denials: log without traceback
            reason = original.reason.value if original.reason else type(original).__name__
            self.logger.info(f"Command '{command_name}' by {interaction.user.id} denied ({reason}): {original}")
            embed = ErrorEmbeds.from_exception(original)
        elif isinstance(original, app_commands.CommandOnCooldown):
            embed = ErrorEmbeds.command_error(f"Command is on cooldown. Try again in {original.retry_after:.2f} seconds.")
        elif isinstance(original, app_commands.NoPrivateMessage):
            embed = ErrorEmbeds.guild_only()
        elif isinstance(original, app_commands.CheckFailure):
            self.logger.info(f"Permission denied for command '{command_name}' by user {interaction.user}")
            embed = discord.Embed(
                title="❌ Permission Denied",
                description="You don't have the required permissions to use this command.",
                color=discord.Color.red()
            )
        else:
            self.logger.error(f"Error in app command '{command_name}': {original}", exc_info=original)
            embed = ErrorEmbeds.unexpected_error()

        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            self.logger.error(f"Failed to send error response: {e}")

    async def close(self):
        """Cleanup when bot is shutting down"""
        self.logger.info("Shutting down League Bot...")

        if self.db:
            await self.db.close()

        await super().close()


async def main():
    """Main entry point"""
    Config.validate()
    quiet_library_loggers()

    bot = LeagueBot()

    try:
        await bot.start(Config.DISCORD_TOKEN)
    except KeyboardInterrupt:
        await bot.close()
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        traceback.print_exc()
    finally:
        await bot.close()


def run():
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
