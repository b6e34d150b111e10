"""
Telegram broadcast sink.

Sends a short list of notification targets to a fixed set of chats.
"""

from __future__ import annotations

import structlog
from telegram import Bot
from telegram.error import TelegramError

from ..monitor.errors import SinkError
from ..monitor.snapshot import NotificationEvent
from .formatters import format_targets, split_message

logger = structlog.get_logger(__name__)


class TelegramSink:
    """Broadcast targets to every configured chat. No-op without targets."""

    name = "telegram"

    def __init__(self, bot: Bot, chat_ids: list[int]):
        """
        Args:
            bot: python-telegram-bot Bot instance
            chat_ids: Chats receiving the broadcast
        """
        self.bot = bot
        self.chat_ids = chat_ids

    def render(self, event: NotificationEvent) -> str | None:
        if not self.chat_ids:
            return None
        return format_targets(event)

    async def notify(self, event: NotificationEvent) -> None:
        text = self.render(event)
        if text is None:
            logger.debug("telegram_broadcast_skipped", chat_count=len(self.chat_ids))
            return

        failed: dict[int, str] = {}
        async with self.bot:
            for chat_id in self.chat_ids:
                try:
                    for chunk in split_message(text):
                        await self.bot.send_message(chat_id=chat_id, text=chunk)
                except TelegramError as e:
                    logger.error(
                        "send_message_error",
                        chat_id=chat_id,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    failed[chat_id] = str(e)

        if failed:
            raise SinkError(
                code="telegram_send_failed",
                message=f"Telegram broadcast failed for {len(failed)} of {len(self.chat_ids)} chats",
                details={"failed": failed},
                retryable=True,
            )

        logger.info("telegram_broadcast_sent", chat_count=len(self.chat_ids), target_count=len(event.targets))
