"""Application entrypoint."""

from __future__ import annotations

import asyncio
import contextlib

from aiogram import Bot, Dispatcher
from aiogram.client.session.aiohttp import AiohttpSession

from quotabot.bot.dispatcher import CommandDispatcher
from quotabot.bot.middlewares import IncomingMessageMiddleware, MaintenanceMiddleware
from quotabot.bot.routers import setup_routers
from quotabot.bot.transport import AiogramTransport
from quotabot.config import get_settings
from quotabot.db.reset import QuotaResetScheduler
from quotabot.db.store import Store
from quotabot.logging import configure_logging, logger
from quotabot.plugins.registry import PluginRegistry
from quotabot.services.error_monitor import ErrorMonitor


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.log_json)

    store = Store(settings=settings)
    if settings.store.backup_on_start:
        store.backup()
    scheduler = QuotaResetScheduler(store, check_interval=settings.store.reset_check_interval_seconds)
    scheduler.start()

    registry = PluginRegistry(settings.plugins.directory)
    registry.load()
    stop_watch = asyncio.Event()
    watch_task = (
        asyncio.create_task(registry.watch(stop_event=stop_watch), name="plugin-watch")
        if settings.plugins.watch
        else None
    )

    session = (
        AiohttpSession(proxy=settings.telegram_proxy) if settings.telegram_proxy else None
    )
    bot = Bot(token=settings.telegram_token.get_secret_value(), session=session)
    dp = Dispatcher()
    dp.include_router(setup_routers())
    dp.errors.register(ErrorMonitor(settings=settings))

    dp.message.middleware(IncomingMessageMiddleware(settings))
    dp.message.middleware(MaintenanceMiddleware(store, settings))

    command_dispatcher = CommandDispatcher(
        transport=AiogramTransport(bot, settings),
        store=store,
        registry=registry,
        settings=settings,
    )

    logger.info(
        "bot_starting",
        environment=settings.environment,
        commands=len(registry.commands()),
        aliases=len(registry.index),
    )
    try:
        await dp.start_polling(bot, command_dispatcher=command_dispatcher, store=store)
    finally:
        stop_watch.set()
        if watch_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await watch_task
        await scheduler.stop()
        logger.info("bot_stopped")


if __name__ == "__main__":
    asyncio.run(main())
