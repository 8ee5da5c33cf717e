"""Forward every inbound message into the command dispatcher."""

from __future__ import annotations

from aiogram import Router
from aiogram.types import Message

from quotabot.bot.dispatcher import CommandDispatcher, DispatchResult
from quotabot.bot.transport import IncomingMessage

router = Router()


@router.message()
async def handle_message(
    message: Message,
    command_dispatcher: CommandDispatcher,
    incoming: IncomingMessage | None = None,
) -> DispatchResult | None:
    if incoming is None:
        return None
    return await command_dispatcher.dispatch(incoming)
