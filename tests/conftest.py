"""Shared pytest fixtures: settings, a file-backed store and fake transport."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from quotabot.bot.transport import (
    GroupMetadata,
    IncomingMessage,
    MessageContent,
    MessageKey,
    OutgoingMessage,
)
from quotabot.config import BotSettings, PluginSettings, QuotaSettings, StoreSettings
from quotabot.db.store import Store

OWNER = "628000@s.whatsapp.net"
GROUP = "120363@g.us"


class FakeTransport:
    def __init__(self, metadata: GroupMetadata | None = None, *, fail_metadata: bool = False) -> None:
        self.sent: list[tuple[str, OutgoingMessage, IncomingMessage | None]] = []
        self.metadata = metadata
        self.fail_metadata = fail_metadata
        self.metadata_calls = 0
        self._next_id = 100

    async def send_message(self, chat_id, content, *, quoted=None):
        self.sent.append((chat_id, content, quoted))
        self._next_id += 1
        return MessageKey(chat_id=chat_id, message_id=str(self._next_id), from_me=True)

    async def group_metadata(self, chat_id):
        self.metadata_calls += 1
        if self.fail_metadata or self.metadata is None:
            raise RuntimeError("metadata unavailable")
        return self.metadata

    @property
    def texts(self) -> list[str]:
        return [content.text for _, content, _ in self.sent if content.text]


def make_message(text: str, chat_id: str = "628111@s.whatsapp.net", participant: str | None = None) -> IncomingMessage:
    return IncomingMessage(
        key=MessageKey(chat_id=chat_id, message_id="1"),
        participant=participant,
        push_name="Tester",
        content=MessageContent(conversation=text),
    )


def write_plugin(
    root: Path,
    relative: str,
    *,
    title: str = "Echo",
    aliases: tuple[str, ...] = ("echo",),
    config: str = "",
    body: str = 'await ctx.transport.send_message(message.chat_id, OutgoingMessage(text=f"{TITLE}:{ctx.text}"))',
) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    source = textwrap.dedent(
        """\
        from quotabot.bot.transport import OutgoingMessage
        from quotabot.plugins import Command, CommandConfig

        TITLE = {title!r}


        async def run(message, ctx):
            {body}


        command = Command(
            title=TITLE,
            description="test plugin",
            aliases={aliases!r},
            config=CommandConfig({config}),
            run=run,
        )
        """
    ).format(title=title, aliases=list(aliases), config=config, body=body)
    path.write_text(source, encoding="utf-8")
    return path


@pytest.fixture
def plugin_dir(tmp_path: Path) -> Path:
    root = tmp_path / "plugins"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path: Path, plugin_dir: Path) -> BotSettings:
    return BotSettings(
        _env_file=None,
        telegram_token="test-token",
        owners=["628000"],
        store=StoreSettings(path=tmp_path / "data" / "database.json", backup_dir=tmp_path / "backups"),
        quota=QuotaSettings(max_limit=50, reset_interval_seconds=86_400),
        plugins=PluginSettings(directory=plugin_dir, watch=False),
    )


@pytest.fixture
def store(settings: BotSettings) -> Store:
    return Store(settings=settings)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
