"""Show the caller's stored profile and remaining quota."""

from quotabot.bot.transport import IncomingMessage, OutgoingMessage
from quotabot.plugins import Command, CommandConfig, CommandContext
from quotabot.utils.jid import local_part


async def run(message: IncomingMessage, ctx: CommandContext) -> None:
    user = ctx.store.get_user(message.participant or message.chat_id)
    i18n = ctx.i18n
    profile = i18n.gettext(
        "profile.card",
        name=user.name,
        id=local_part(user.id),
        limit=user.limit,
        maximum=ctx.store.get_setting("max_limit", 50),
        status=i18n.gettext("profile.premium" if user.premium else "profile.regular"),
        banned=i18n.gettext("profile.banned") if user.banned else "",
        last_seen=user.last_interaction.strftime("%Y-%m-%d %H:%M UTC"),
    )
    await ctx.transport.send_message(message.chat_id, OutgoingMessage(text=profile), quoted=message)


command = Command(
    title="Profile",
    description="Show your profile",
    aliases=["profile", "me", "myprofile"],
    example="{prefix}profile",
    config=CommandConfig(limit=1),
    run=run,
)
