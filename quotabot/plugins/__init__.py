from quotabot.plugins.contract import Command, CommandConfig, CommandContext
from quotabot.plugins.registry import CommandIndex, PluginRegistry

__all__ = [
    "Command",
    "CommandConfig",
    "CommandContext",
    "CommandIndex",
    "PluginRegistry",
]
