"""Liveness check."""

from quotabot.bot.transport import IncomingMessage, OutgoingMessage
from quotabot.plugins import Command, CommandContext


async def run(message: IncomingMessage, ctx: CommandContext) -> None:
    await ctx.transport.send_message(
        message.chat_id,
        OutgoingMessage(text=ctx.i18n.gettext("ping.alive")),
        quoted=message,
    )


command = Command(
    title="Ping",
    description="Check whether the bot responds",
    aliases=["ping", "test"],
    example="{prefix}ping",
    run=run,
)
