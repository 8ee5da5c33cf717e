"""Translate aiogram messages into transport-neutral ``IncomingMessage``s."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import Message, TelegramObject

from quotabot.bot.transport import to_incoming
from quotabot.config import BotSettings, get_settings


class IncomingMessageMiddleware(BaseMiddleware):
    def __init__(self, settings: BotSettings | None = None) -> None:
        self.settings = settings or get_settings()

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        if not isinstance(event, Message):
            return await handler(event, data)

        incoming = to_incoming(event, self.settings)
        if incoming is None or incoming.key.from_me:
            return None

        data["incoming"] = incoming
        return await handler(event, data)


__all__ = ["IncomingMessageMiddleware"]
