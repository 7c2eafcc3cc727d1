"""
League-wide constants for the Soccer League Discord Bot.

Rule limits and UI values live here so operations and cogs agree on them.
"""

class LeagueConstants:
    """Business rule limits enforced by the operations layer."""
    
    # Assistant managers a single team may hold at once
    MAX_ASSISTANT_MANAGERS = 2
    
    # Demands a player may use while the transaction window is closed
    DEMAND_LIMIT = 2
    
    # Lifetime of a demand confirmation prompt
    DEMAND_CONFIRMATION_TTL_MINUTES = 15
    
    # Independent boolean confirmations required to wipe the database
    RESET_CONFIRMATIONS_REQUIRED = 4
    
    # Leaderboard length for top scorers / playmakers
    TOP_PLAYERS_LIMIT = 10
    
    # Players accepted by a single /stats addmention call
    MAX_MENTIONS_PER_COMMAND = 5

class UIConstants:
    """Constants for Discord UI elements."""
    
    # Embed colors
    DEFAULT_EMBED_COLOR = 0x0099FF  # Blue
    SUCCESS_COLOR = 0x2ECC71       # Green
    ERROR_COLOR = 0xE74C3C         # Red
    WARNING_COLOR = 0xF39C12       # Orange
    GOLD_COLOR = 0xFFD700          # Offers and leaderboards
    FIXTURES_COLOR = 0xFF6B00      # Posted fixtures
    FIXTURES_DONE_COLOR = 0x00FF00 # Archived fixtures
    RELEASE_COLOR = 0xFF0000       # Transaction log: player left a team
    
    # Emoji for UI elements
    BALL_EMOJI = "⚽"
    STADIUM_EMOJI = "🏟️"
    CLOCK_EMOJI = "🕐"
    CALENDAR_EMOJI = "📅"
    WARNING_EMOJI = "⚠️"
