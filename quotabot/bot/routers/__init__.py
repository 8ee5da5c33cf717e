from aiogram import Router

from quotabot.bot.routers import chat


def setup_routers() -> Router:
    """Root router; ``chat`` catches every message, so include it last."""

    router = Router(name="quotabot")
    router.include_router(chat.router)
    return router


__all__ = ["setup_routers"]
