"""Short-circuit non-owner traffic while maintenance mode is on."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import Message, TelegramObject

from quotabot.bot.transport import IncomingMessage
from quotabot.bot.utils.telegram import answer_with_retry
from quotabot.config import BotSettings, get_settings
from quotabot.db.store import Store
from quotabot.i18n import I18nService
from quotabot.logging import logger
from quotabot.utils.jid import canonical_user_id


class MaintenanceMiddleware(BaseMiddleware):
    def __init__(self, store: Store, settings: BotSettings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.i18n = I18nService(default_locale=self.settings.default_language)

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        incoming: IncomingMessage | None = data.get("incoming")
        if incoming is None or not self.store.get_setting("maintenance", False):
            return await handler(event, data)

        if self._is_owner(incoming):
            return await handler(event, data)

        logger.info("maintenance_rejected", chat_id=incoming.chat_id)
        if isinstance(event, Message):
            await answer_with_retry(event, self.i18n.gettext("maintenance.notice"), parse_mode=None)
        return None

    def _is_owner(self, incoming: IncomingMessage) -> bool:
        sender = incoming.participant or incoming.chat_id
        return canonical_user_id(sender, self.settings.user_domain) in self.settings.owner_ids


__all__ = ["MaintenanceMiddleware"]
