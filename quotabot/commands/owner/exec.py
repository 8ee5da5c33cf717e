"""Owner-only evaluation of Python expressions and shell commands.

``~> expr`` evaluates and pretty-prints, ``> expr`` additionally awaits the
result (top-level ``await`` allowed), ``$ cmd`` runs a shell command.
"""

from __future__ import annotations

import ast
import asyncio
import inspect
import pprint
from typing import Any

from quotabot.bot.transport import IncomingMessage, OutgoingMessage
from quotabot.plugins import Command, CommandConfig, CommandContext

INSPECT_ALIAS = "~>"
AWAIT_ALIAS = ">"
SHELL_ALIAS = "$"


def _namespace(message: IncomingMessage, ctx: CommandContext) -> dict[str, Any]:
    return {"message": message, "ctx": ctx, "store": ctx.store, "transport": ctx.transport}


def _inspect(text: str, namespace: dict[str, Any]) -> str:
    try:
        return pprint.pformat(eval(text, namespace), depth=5, sort_dicts=True)
    except Exception as exc:
        return f"Error: {exc!r}"


async def _await(text: str, namespace: dict[str, Any]) -> str:
    try:
        code = compile(text, "<exec>", "eval", flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT)
        result = eval(code, namespace)
        if inspect.isawaitable(result):
            result = await result
        return pprint.pformat(result, depth=5)
    except Exception as exc:
        return f"Error: {exc!r}"


async def _shell(text: str) -> str:
    try:
        process = await asyncio.create_subprocess_shell(
            text.strip(),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
    except OSError as exc:
        return f"Error: {exc}"
    return (stdout or stderr).decode(errors="replace").strip()


async def run(message: IncomingMessage, ctx: CommandContext) -> None:
    transport = ctx.transport
    chat_id = message.chat_id
    if not ctx.text:
        key = "exec.missing_shell" if ctx.command == SHELL_ALIAS else "exec.missing_code"
        await transport.send_message(chat_id, OutgoingMessage(text=ctx.i18n.gettext(key)), quoted=message)
        return

    notice = await transport.send_message(
        chat_id, OutgoingMessage(text=ctx.i18n.gettext("exec.running")), quoted=message
    )
    try:
        if ctx.command == SHELL_ALIAS:
            result = await _shell(ctx.text)
        elif ctx.command == AWAIT_ALIAS:
            result = await _await(ctx.text, _namespace(message, ctx))
        else:
            result = _inspect(ctx.text, _namespace(message, ctx))

        text = f"```{result}```" if result else ctx.i18n.gettext("exec.no_output")
        await transport.send_message(chat_id, OutgoingMessage(text=text), quoted=message)
    finally:
        if notice is not None:
            await transport.send_message(chat_id, OutgoingMessage(delete=notice))


command = Command(
    title="Evaluate",
    description="Evaluate Python code or run shell commands",
    aliases=[INSPECT_ALIAS, AWAIT_ALIAS, SHELL_ALIAS],
    example="~> store.max_limit",
    config=CommandConfig(require_owner=True, no_prefix=True),
    run=run,
)
