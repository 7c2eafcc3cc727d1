"""
Centralized error embeds for consistent error handling across the league bot.

Every LeagueOperationError raised by the operations layer is rendered here,
so cogs never format their own denial messages.
"""

import discord

from league_bot.utils.league_exceptions import (
    LeagueOperationError, UnauthorizedError, NotFoundError, ConflictError,
    InvalidInputError, ExpiredError
)

_TITLES = {
    UnauthorizedError: "Permission Denied",
    NotFoundError: "Not Found",
    ConflictError: "Not Allowed",
    InvalidInputError: "Invalid Input",
    ExpiredError: "Expired",
}


class ErrorEmbeds:
    """Centralized error embed factory for consistent error handling."""

    @staticmethod
    def from_exception(error: LeagueOperationError) -> discord.Embed:
        """Create embed for a denied league operation."""
        title = next((t for cls, t in _TITLES.items() if isinstance(error, cls)), "Error")
        return discord.Embed(
            title=f"❌ {title}",
            description=error.user_message,
            color=discord.Color.red()
        )

    @staticmethod
    def command_error(error: str) -> discord.Embed:
        """Create embed for general command errors."""
        return discord.Embed(
            title="Command Error",
            description=f"An error occurred: {error}\n\nPlease try again or contact an administrator.",
            color=discord.Color.red()
        )

    @staticmethod
    def unexpected_error() -> discord.Embed:
        return discord.Embed(
            title="❌ An error occurred",
            description="An unexpected error occurred while processing your command. The developers have been notified.",
            color=discord.Color.red()
        )

    @staticmethod
    def guild_only() -> discord.Embed:
        return discord.Embed(
            title="Server Only",
            description="This command can only be used inside the league server.",
            color=discord.Color.orange()
        )
