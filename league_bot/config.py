import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Process settings read from the environment (and a local .env file)"""

    # Discord
    DISCORD_TOKEN = os.getenv('DISCORD_TOKEN')
    DISCORD_GUILD_ID = int(os.getenv('DISCORD_GUILD_ID', 0))
    DISCORD_GUILD_IDS = os.getenv('DISCORD_GUILD_IDS', '')  # e.g. "123,456" to serve several servers
    OWNER_DISCORD_ID = int(os.getenv('OWNER_DISCORD_ID', 0))  # Only identity allowed to wipe the database

    # Storage
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///league.db')

    # Runtime
    COMMAND_PREFIX = os.getenv('COMMAND_PREFIX', '!')
    DEBUG = os.getenv('DEBUG', 'false').strip().lower() in ('1', 'true', 'yes')

    # Logging
    LOG_DIR = os.getenv('LOG_DIR', 'logs')
    LOG_FILE_PREFIX = os.getenv('LOG_FILE_PREFIX', 'league_bot')

    @classmethod
    def get_guild_ids(cls):
        """League guild ids to sync slash commands to; empty means a global sync"""
        raw_ids = [part.strip() for part in cls.DISCORD_GUILD_IDS.split(',') if part.strip()]
        if raw_ids:
            try:
                return [int(part) for part in raw_ids]
            except ValueError:
                raise ValueError(f"DISCORD_GUILD_IDS must be comma-separated integers, got {cls.DISCORD_GUILD_IDS!r}")
        return [cls.DISCORD_GUILD_ID] if cls.DISCORD_GUILD_ID else []

    @classmethod
    def validate(cls):
        """Fail fast at startup when a required setting is missing"""
        missing = []
        if not cls.DISCORD_TOKEN:
            missing.append("DISCORD_TOKEN")
        if not cls.get_guild_ids():
            missing.append("DISCORD_GUILD_ID or DISCORD_GUILD_IDS")
        if not cls.OWNER_DISCORD_ID:
            missing.append("OWNER_DISCORD_ID")
        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")
