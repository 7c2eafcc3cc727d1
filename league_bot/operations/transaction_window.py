"""
Transaction window controller.

While the window is open the demand limit does not apply. The flag lives in
the persisted league settings so it survives restarts.
"""

from league_bot.data_models.roster import Actor
from league_bot.operations.eligibility import require_admin
from league_bot.services.settings import LeagueSettingsService
from league_bot.utils.logger import setup_logger


class TransactionWindow:

    def __init__(self, settings: LeagueSettingsService):
        self.settings = settings
        self.logger = setup_logger(f"{__name__}.TransactionWindow")

    @property
    def is_open(self) -> bool:
        return self.settings.current.transaction_window_open

    async def open(self, actor: Actor) -> bool:
        require_admin(actor, "open the transaction window").raise_if_denied()
        await self.settings.set_transaction_window(True)
        self.logger.info(f"Transaction window opened by {actor.discord_id}")
        return self.is_open

    async def close(self, actor: Actor) -> bool:
        require_admin(actor, "close the transaction window").raise_if_denied()
        await self.settings.set_transaction_window(False)
        self.logger.info(f"Transaction window closed by {actor.discord_id}")
        return self.is_open
