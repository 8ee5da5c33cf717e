"""Discover command plugins on disk and index them by alias."""

from __future__ import annotations

import asyncio
import importlib.machinery
import importlib.util
import sys
import threading
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType, ModuleType

from pydantic import ValidationError
from watchfiles import Change, PythonFilter, awatch

from quotabot.logging import logger
from quotabot.plugins.contract import Command
from quotabot.services.exceptions import PluginLoadError

PLUGIN_NAMESPACE = "quotabot_plugins"
PLUGIN_ATTRIBUTE = "command"

_CHANGE_EVENTS = {
    Change.added: "plugin_file_added",
    Change.modified: "plugin_file_changed",
    Change.deleted: "plugin_file_deleted",
}


class PluginSourceLoader(importlib.machinery.SourceFileLoader):
    """Source loader that never reads or writes ``__pycache__``.

    ``SourceLoader.get_code`` only consults bytecode when ``path_stats``
    succeeds, so every load compiles the current file contents.
    """

    def path_stats(self, path: str) -> dict:
        raise OSError("plugin bytecode cache disabled")


class CommandIndex(Mapping[str, Command]):
    """Read-only alias -> command table in registration order."""

    def __init__(self, entries: dict[str, Command] | None = None) -> None:
        self._entries = MappingProxyType(dict(entries or {}))

    def __getitem__(self, alias: str) -> Command:
        return self._entries[alias]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class PluginRegistry:
    """Authoritative alias index built from a plugin source tree.

    ``load`` walks the tree depth-first with directory entries sorted by
    name, so when two plugins declare the same alias the one whose path
    sorts last wins. A new index is built completely before it replaces the
    old one; readers only ever see a whole index.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._index = CommandIndex()
        self._load_lock = threading.Lock()

    @property
    def index(self) -> CommandIndex:
        return self._index

    def load(self) -> CommandIndex:
        with self._load_lock:
            entries: dict[str, Command] = {}
            loaded_modules: set[str] = set()
            if not self.root.is_dir():
                logger.warning("plugin_root_missing", root=str(self.root))
            else:
                for path in self._iter_plugin_files(self.root):
                    try:
                        module_name, command = self._load_file(path)
                    except PluginLoadError as exc:
                        logger.warning("plugin_skipped", path=str(path), error=str(exc))
                        continue
                    loaded_modules.add(module_name)
                    for alias in command.aliases:
                        entries[alias.lower()] = command
                    logger.info("plugin_loaded", title=command.title, aliases=command.aliases)

            self._purge_modules(keep=loaded_modules)
            self._index = CommandIndex(entries)
            logger.info("plugins_indexed", aliases=len(entries))
            return self._index

    def resolve(self, alias: str) -> Command | None:
        if not alias:
            return None
        return self._index.get(alias.lower())

    def no_prefix_commands(self) -> list[tuple[str, Command]]:
        return [(alias, command) for alias, command in self._index.items() if command.config.no_prefix]

    def commands(self) -> list[Command]:
        seen: list[Command] = []
        for command in self._index.values():
            if not any(existing is command for existing in seen):
                seen.append(command)
        return seen

    async def reload(self) -> CommandIndex:
        """Run ``load`` off the event loop so dispatches keep flowing."""

        return await asyncio.to_thread(self.load)

    async def watch(self, stop_event: asyncio.Event | None = None) -> None:
        """Reload the whole index on every add/change/remove under ``root``."""

        logger.info("plugin_watch_started", root=str(self.root))
        async for changes in awatch(self.root, watch_filter=PythonFilter(), stop_event=stop_event):
            for change, path in sorted(changes, key=lambda item: item[1]):
                logger.info(_CHANGE_EVENTS.get(change, "plugin_file_event"), path=path)
            try:
                await self.reload()
            except Exception:
                logger.exception("plugin_reload_failed", root=str(self.root))
        logger.info("plugin_watch_stopped", root=str(self.root))

    def _iter_plugin_files(self, directory: Path) -> Iterator[Path]:
        try:
            entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
        except OSError as exc:
            logger.error("plugin_dir_unreadable", path=str(directory), error=str(exc))
            return
        for entry in entries:
            if entry.name.startswith((".", "__")):
                continue
            if entry.is_dir():
                yield from self._iter_plugin_files(entry)
            elif entry.is_file() and entry.suffix == ".py" and not entry.name.startswith("_"):
                yield entry

    def _module_name(self, path: Path) -> str:
        relative = path.relative_to(self.root).with_suffix("")
        return ".".join((PLUGIN_NAMESPACE, *relative.parts))

    def _load_file(self, path: Path) -> tuple[str, Command]:
        module_name = self._module_name(path)
        loader = PluginSourceLoader(module_name, str(path))
        spec = importlib.util.spec_from_file_location(module_name, path, loader=loader)
        if spec is None:
            raise PluginLoadError("not an importable python file")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            raise PluginLoadError(f"import failed: {exc!r}") from exc

        try:
            return module_name, self._extract_command(module)
        except PluginLoadError:
            sys.modules.pop(module_name, None)
            raise

    @staticmethod
    def _extract_command(module: ModuleType) -> Command:
        candidate = getattr(module, PLUGIN_ATTRIBUTE, None)
        if candidate is None:
            raise PluginLoadError(f"missing module attribute {PLUGIN_ATTRIBUTE!r}")
        if isinstance(candidate, Command):
            return candidate
        if isinstance(candidate, dict):
            try:
                return Command.model_validate(candidate)
            except ValidationError as exc:
                raise PluginLoadError(f"invalid command definition: {exc}") from exc
        raise PluginLoadError(f"{PLUGIN_ATTRIBUTE!r} is {type(candidate).__name__}, expected Command")

    @staticmethod
    def _purge_modules(keep: set[str]) -> None:
        prefix = f"{PLUGIN_NAMESPACE}."
        for name in [name for name in sys.modules if name.startswith(prefix)]:
            if name not in keep:
                del sys.modules[name]


__all__ = ["CommandIndex", "PluginRegistry"]
