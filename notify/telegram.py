"""
Telegram Notifier
Sends launch progress and results to a Telegram chat
"""

import logging
from typing import Optional
from telegram import Bot
from telegram.error import TelegramError

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Best-effort launch notifications; a no-op when not configured"""

    def __init__(self, token: str = "", chat_id: str = "", bot: Optional[Bot] = None):
        self.chat_id = chat_id
        self.bot = bot
        if self.bot is None and token and chat_id:
            self.bot = Bot(token=token)

    @property
    def enabled(self) -> bool:
        return self.bot is not None and bool(self.chat_id)

    async def send(self, text: str) -> bool:
        """Send a message, returning whether it was delivered"""
        if not self.enabled:
            return False

        try:
            await self.bot.send_message(chat_id=self.chat_id, text=text)
            return True
        except TelegramError as e:
            logger.error(f"Error sending Telegram notification: {e}")
            return False
