"""Bundled command plugins exercised through the dispatcher."""

from __future__ import annotations

import pytest

from conftest import OWNER, make_message
from quotabot.bot.dispatcher import CommandDispatcher, DispatchState
from quotabot.config import BUNDLED_COMMANDS_DIR
from quotabot.plugins import PluginRegistry

USER = "628111@s.whatsapp.net"


@pytest.fixture(scope="module")
def bundled_registry():
    registry = PluginRegistry(BUNDLED_COMMANDS_DIR)
    registry.load()
    return registry


@pytest.fixture
def dispatcher(transport, store, bundled_registry, settings):
    return CommandDispatcher(transport=transport, store=store, registry=bundled_registry, settings=settings)


@pytest.mark.asyncio
async def test_ping(dispatcher, transport, store):
    result = await dispatcher.dispatch(make_message(".ping"))

    assert result.state is DispatchState.EXECUTED
    assert transport.texts == ["Bot is up!"]
    assert store.get_user(USER).limit == 49


@pytest.mark.asyncio
async def test_profile_shows_quota_after_charge(dispatcher, transport, store):
    store.update_user(USER, premium=True)

    await dispatcher.dispatch(make_message("/me"))

    card = transport.texts[0]
    assert "*Name:* Tester" in card
    assert "*ID:* 628111" in card
    assert "*Quota:* 50/50" in card
    assert "*Status:* Premium" in card
    assert "BANNED" not in card


@pytest.mark.asyncio
async def test_addlimit_grants_quota_for_owner(dispatcher, transport, store):
    store.update_user(USER, limit=2)

    result = await dispatcher.dispatch(make_message(".addlimit @628111 10", chat_id=OWNER))

    assert result.state is DispatchState.EXECUTED
    assert store.get_user(USER).limit == 12
    assert transport.texts == [f"Added 10 quota to {USER}. Quota is now 12/50."]


@pytest.mark.asyncio
async def test_addlimit_usage(dispatcher, transport):
    await dispatcher.dispatch(make_message("!addlimit someone", chat_id=OWNER))

    assert transport.texts == ["Usage: !addlimit <user> <amount>"]


@pytest.mark.asyncio
async def test_addlimit_refused_for_regular_user(dispatcher, transport, store):
    result = await dispatcher.dispatch(make_message(".addlimit 628111 10"))

    assert result.state is DispatchState.REJECTED
    assert store.get_user(USER).limit == 50


@pytest.mark.asyncio
async def test_exec_inspect_for_owner(dispatcher, transport):
    result = await dispatcher.dispatch(make_message("~> 1 + 2", chat_id=OWNER))

    assert result.state is DispatchState.EXECUTED
    notice, output, deletion = transport.sent
    assert notice[1].text == "Executing..."
    assert output[1].text == "```3```"
    assert deletion[1].delete.message_id == "101"


@pytest.mark.asyncio
async def test_exec_await_supports_top_level_await(dispatcher, transport):
    await dispatcher.dispatch(make_message("> await asyncio.sleep(0, result=7)", chat_id=OWNER))

    assert "```Error: NameError" in transport.texts[1]

    transport.sent.clear()
    await dispatcher.dispatch(make_message("> store.max_limit", chat_id=OWNER))

    assert transport.texts[1] == "```50```"


@pytest.mark.asyncio
async def test_exec_shell(dispatcher, transport):
    await dispatcher.dispatch(make_message("$ echo quota", chat_id=OWNER))

    assert transport.texts[1] == "```quota```"


@pytest.mark.asyncio
async def test_exec_without_code(dispatcher, transport):
    await dispatcher.dispatch(make_message("$", chat_id=OWNER))

    assert transport.texts == ["Enter a shell command."]


@pytest.mark.asyncio
async def test_exec_refused_for_non_owner(dispatcher, transport):
    result = await dispatcher.dispatch(make_message("~> store"))

    assert result.state is DispatchState.REJECTED
    assert transport.texts == ["This command is only for the owner."]
