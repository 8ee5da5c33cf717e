"""Grant extra quota to a user."""

from quotabot.bot.transport import IncomingMessage, OutgoingMessage
from quotabot.plugins import Command, CommandConfig, CommandContext


async def run(message: IncomingMessage, ctx: CommandContext) -> None:
    if len(ctx.args) != 2 or not ctx.args[1].isdigit():
        usage = ctx.i18n.gettext("limit.usage", prefix=ctx.prefix, command=ctx.command)
        await ctx.transport.send_message(message.chat_id, OutgoingMessage(text=usage), quoted=message)
        return

    target, amount = ctx.args[0].lstrip("@"), int(ctx.args[1])
    user = ctx.store.increment_limit(target, amount)
    reply = ctx.i18n.gettext(
        "limit.granted",
        amount=amount,
        user=user.id,
        limit=user.limit,
        maximum=ctx.store.get_setting("max_limit", 50),
    )
    await ctx.transport.send_message(message.chat_id, OutgoingMessage(text=reply), quoted=message)


command = Command(
    title="Add limit",
    description="Give a user additional quota",
    aliases=["addlimit"],
    example="{prefix}addlimit 628123456789 10",
    config=CommandConfig(require_owner=True, limit=0),
    run=run,
)
