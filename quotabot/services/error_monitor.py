"""Report unhandled update errors to the bot administrator."""

from __future__ import annotations

import traceback

from aiogram import Bot
from aiogram.dispatcher.event.bases import UNHANDLED
from aiogram.types import ErrorEvent, Update

from quotabot.bot.transport import to_incoming
from quotabot.bot.utils.telegram import bot_send_with_retry
from quotabot.config import BotSettings
from quotabot.logging import logger

# Telegram caps messages at 4096 characters.
REPORT_CHAR_LIMIT = 3900
TRACEBACK_CHAR_LIMIT = 1800
TEXT_PREVIEW_LIMIT = 200
TRUNCATED = "\n...[truncated]"


def _clip(value: str, limit: int) -> str:
    value = value.strip()
    if len(value) <= limit:
        return value
    return value[: limit - len(TRUNCATED)].rstrip() + TRUNCATED


class ErrorMonitor:
    """aiogram error observer.

    Dispatch failures never get here (``CommandDispatcher.dispatch`` turns
    them into results); only errors raised by middlewares and transport glue
    do. The report names the chat and sender with the same addresses the
    store uses, so the admin can look the records up directly.
    """

    def __init__(self, settings: BotSettings) -> None:
        self._settings = settings

    async def __call__(self, event: ErrorEvent, bot: Bot):
        return await self.handle_error(event, bot)

    async def handle_error(self, event: ErrorEvent, bot: Bot):
        update_id = getattr(event.update, "update_id", None)
        logger.error(
            "bot_error_captured",
            exception_type=type(event.exception).__name__,
            exception=str(event.exception),
            update_id=update_id,
        )

        admin_id = self._settings.admin_telegram_id
        if admin_id is None:
            return UNHANDLED

        try:
            await bot_send_with_retry(bot, chat_id=admin_id, text=self.build_report(event), parse_mode=None)
        except Exception:
            logger.exception("error_monitor_notification_failed", update_id=update_id)
        return UNHANDLED

    def build_report(self, event: ErrorEvent) -> str:
        exception = event.exception
        lines = [
            "BOT ERROR DETECTED",
            f"Environment: {self._settings.environment}",
            f"Exception: {type(exception).__name__}: {exception}",
            f"Update ID: {getattr(event.update, 'update_id', 'unknown')}",
            *self._describe_message(event.update),
        ]
        trace = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
        if trace.strip():
            lines += ["", "Traceback:", _clip(trace, TRACEBACK_CHAR_LIMIT)]
        return _clip("\n".join(lines), REPORT_CHAR_LIMIT)

    def _describe_message(self, update: Update | None) -> list[str]:
        message = getattr(update, "message", None)
        if message is None:
            return ["Chat: unknown"]

        chat = message.chat
        title = chat.title or chat.username or chat.first_name or chat.type
        lines = [f"Chat: {chat.id} ({title})"]
        try:
            incoming = to_incoming(message, self._settings)
        except Exception:
            logger.exception("error_monitor_message_unreadable")
            incoming = None
        if incoming is not None:
            lines.append(f"Address: {incoming.chat_id}")
            lines.append(f"Sender: {incoming.participant or incoming.chat_id}")
            if incoming.text:
                lines.append(f"Text: {_clip(incoming.text, TEXT_PREVIEW_LIMIT)}")
        return lines


__all__ = ["ErrorMonitor"]
