"""Tests for logging configuration and async main bootstrap."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
import structlog

from conftest import write_plugin
from quotabot import main as main_module
from quotabot.bot.dispatcher import CommandDispatcher
from quotabot.bot.middlewares import IncomingMessageMiddleware, MaintenanceMiddleware
from quotabot.db.store import Store
from quotabot.logging import configure_logging


def test_configure_logging_outputs_json(capsys):
    configure_logging()
    logger = structlog.get_logger()
    with structlog.contextvars.bound_contextvars(chat_id="628111@s.whatsapp.net"):
        logger.info("unit-test", foo="bar")
    out = capsys.readouterr().out
    assert '"event": "unit-test"' in out
    assert '"foo": "bar"' in out
    assert '"chat_id": "628111@s.whatsapp.net"' in out


def test_configure_logging_filters_by_level_name(capsys):
    configure_logging("warning")
    logger = structlog.get_logger()
    logger.info("hidden-event")
    logger.warning("shown-event")
    out = capsys.readouterr().out
    assert "hidden-event" not in out
    assert "shown-event" in out
    configure_logging()


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        configure_logging("chatty")


class DummyDispatcher:
    def __init__(self) -> None:
        self.included = []
        self.message_middlewares = []
        self.started = False
        self.message = SimpleNamespace(middleware=self.message_middlewares.append)
        self.registered_error_handlers = []
        self.errors = SimpleNamespace(register=self.register_error)

    def include_router(self, router):
        self.included.append(router)

    def register_error(self, handler):
        self.registered_error_handlers.append(handler)

    async def start_polling(self, bot, **kwargs):
        self.started = True
        self.bot = bot
        self.start_kwargs = kwargs


@pytest.fixture
def bootstrap(monkeypatch, settings):
    dummy_dispatcher = DummyDispatcher()
    dummy_bot = SimpleNamespace()
    dummy_monitor = object()
    bot_kwargs = {}

    def fake_bot(*args, **kwargs):
        bot_kwargs.update(kwargs)
        return dummy_bot

    monkeypatch.setattr(main_module, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(main_module, "get_settings", lambda: settings)
    monkeypatch.setattr(main_module, "Bot", fake_bot)
    monkeypatch.setattr(main_module, "Dispatcher", lambda: dummy_dispatcher)
    monkeypatch.setattr(main_module, "ErrorMonitor", lambda settings: dummy_monitor)
    monkeypatch.setattr(main_module, "setup_routers", lambda: "router")
    return SimpleNamespace(
        dispatcher=dummy_dispatcher,
        bot=dummy_bot,
        bot_kwargs=bot_kwargs,
        monitor=dummy_monitor,
    )


@pytest.mark.asyncio
async def test_main_bootstrap(bootstrap, settings, plugin_dir):
    write_plugin(plugin_dir, "echo.py")

    await main_module.main()

    dispatcher = bootstrap.dispatcher
    assert dispatcher.started is True
    assert dispatcher.bot is bootstrap.bot
    assert bootstrap.bot_kwargs["token"] == "test-token"
    assert bootstrap.bot_kwargs["session"] is None
    assert dispatcher.included == ["router"]
    assert dispatcher.registered_error_handlers == [bootstrap.monitor]
    assert [type(m) for m in dispatcher.message_middlewares] == [
        IncomingMessageMiddleware,
        MaintenanceMiddleware,
    ]

    command_dispatcher = dispatcher.start_kwargs["command_dispatcher"]
    assert isinstance(command_dispatcher, CommandDispatcher)
    assert isinstance(dispatcher.start_kwargs["store"], Store)
    assert command_dispatcher.registry.resolve("echo") is not None
    assert settings.store.path.exists()
    assert len(list(settings.store.backup_dir.glob("backup-*.json"))) == 1


@pytest.mark.asyncio
async def test_main_stops_plugin_watch_on_shutdown(bootstrap, settings, monkeypatch):
    import quotabot.plugins.registry as registry_module

    settings.plugins.watch = True
    settings.store.backup_on_start = False
    watch_state = {}

    async def fake_awatch(root, watch_filter=None, stop_event=None):
        watch_state["started"] = True
        await stop_event.wait()
        watch_state["stopped"] = True
        return
        yield

    monkeypatch.setattr(registry_module, "awatch", fake_awatch)

    await main_module.main()

    assert watch_state == {"started": True, "stopped": True}
    assert not settings.store.backup_dir.exists()
