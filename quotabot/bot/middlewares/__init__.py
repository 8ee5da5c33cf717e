from quotabot.bot.middlewares.incoming import IncomingMessageMiddleware
from quotabot.bot.middlewares.maintenance import MaintenanceMiddleware

__all__ = [
    "IncomingMessageMiddleware",
    "MaintenanceMiddleware",
]
