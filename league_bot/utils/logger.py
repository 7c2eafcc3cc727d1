import logging
import sys
from datetime import datetime
from pathlib import Path

from league_bot.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Chatty third-party loggers kept at WARNING unless debugging
QUIET_LIBRARIES = ('discord.gateway', 'discord.http', 'sqlalchemy.engine', 'aiosqlite')


def _log_file() -> Path:
    log_dir = Path(Config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / f'{Config.LOG_FILE_PREFIX}_{datetime.now().strftime("%Y%m%d")}.log'


def setup_logger(name: str) -> logging.Logger:
    """Setup a logger with consistent formatting"""

    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    log_level = logging.DEBUG if Config.DEBUG else logging.INFO
    logger.setLevel(log_level)
    # Handlers are attached per module logger, so don't double-print via root
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler, one file per day
    file_handler = logging.FileHandler(_log_file(), encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


def quiet_library_loggers():
    """Raise discord.py and SQLAlchemy loggers to WARNING outside debug mode."""
    if Config.DEBUG:
        return
    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
