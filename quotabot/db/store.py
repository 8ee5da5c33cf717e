"""JSON document store for users, groups and settings."""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from quotabot.config import BotSettings, get_settings
from quotabot.domain.models import Group, Settings, StoreDocument, User
from quotabot.logging import logger
from quotabot.services.exceptions import StoreError
from quotabot.utils.datetime import ensure_utc, file_timestamp, utc_now
from quotabot.utils.jid import canonical_user_id, local_part


class Store:
    """Lazily populated records persisted as one JSON document.

    Every mutation runs inside ``_mutation``: it holds ``self._lock``,
    rewrites the whole file and restores the previous in-memory document if
    the write fails, so memory never holds state the file could not take.
    Records handed out are copies; change them through
    ``update_user``/``update_group``.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        backup_dir: str | Path | None = None,
        settings: BotSettings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.path = Path(path or self.settings.store.path)
        self.backup_dir = Path(backup_dir or self.settings.store.backup_dir)
        self._lock = threading.RLock()
        self._data = self._load()
        logger.info("store_initialized", path=str(self.path), users=len(self._data.users))

    # -- persistence -------------------------------------------------------

    def _default_document(self) -> StoreDocument:
        quota = self.settings.quota
        return StoreDocument(
            settings=Settings(
                max_limit=quota.max_limit,
                reset_limit_interval=timedelta(seconds=quota.reset_interval_seconds),
            )
        )

    def _load(self) -> StoreDocument:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            document = self._default_document()
            self._write(document)
            logger.info("store_file_created", path=str(self.path))
            return document

        try:
            raw = self.path.read_text(encoding="utf-8")
            return StoreDocument.model_validate_json(raw)
        except (OSError, ValueError) as exc:
            # ValidationError is a ValueError; covers broken JSON and bad shapes.
            aside = self.path.with_name(f"{self.path.name}.corrupt-{file_timestamp()}")
            logger.error("store_file_unreadable", path=str(self.path), moved_to=str(aside), error=str(exc))
            try:
                os.replace(self.path, aside)
            except OSError:
                logger.exception("store_corrupt_move_failed", path=str(self.path))
            document = self._default_document()
            self._write(document)
            return document

    def _write(self, document: StoreDocument) -> None:
        try:
            payload = document.model_dump_json(indent=2)
        except ValueError as exc:
            raise StoreError(f"document is not serializable: {exc}") from exc
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, self.path)

    @contextmanager
    def _mutation(self) -> Iterator[StoreDocument]:
        with self._lock:
            previous = self._data.model_copy(deep=True)
            try:
                yield self._data
                self._write(self._data)
            except Exception:
                self._data = previous
                logger.warning("store_mutation_rolled_back", path=str(self.path))
                raise

    # -- users -------------------------------------------------------------

    def normalize_user_id(self, user_id: str) -> str:
        return canonical_user_id(user_id, self.settings.user_domain)

    def upsert_user(self, user_id: str, name: str | None = None) -> tuple[User, bool]:
        """Fetch or create a user; the flag tells whether it was created."""

        clean_id = self.normalize_user_id(user_id)
        with self._mutation() as data:
            user = data.users.get(clean_id)
            created = user is None
            if created:
                user = User(
                    id=clean_id,
                    name=name or local_part(clean_id),
                    limit=data.settings.max_limit,
                )
                data.users[clean_id] = user
            else:
                user.last_interaction = utc_now()
                if name:
                    user.name = name
        if created:
            logger.info("user_created", user_id=clean_id)
        return user.model_copy(deep=True), created

    def get_user(self, user_id: str, name: str | None = None) -> User:
        return self.upsert_user(user_id, name)[0]

    def update_user(self, user_id: str, **updates: Any) -> User:
        with self._lock:
            current, _ = self.upsert_user(user_id)
            updates.pop("id", None)
            user = self._merge(User, current, updates)
            with self._mutation() as data:
                data.users[user.id] = user
            return user.model_copy(deep=True)

    def decrement_limit(self, user_id: str, amount: int = 1) -> bool:
        if amount < 0:
            raise ValueError("amount must not be negative")
        with self._lock:
            current, _ = self.upsert_user(user_id)
            if current.premium:
                return True
            if current.limit < amount:
                return False
            with self._mutation() as data:
                data.users[current.id].limit -= amount
            return True

    def increment_limit(self, user_id: str, amount: int = 1) -> User:
        if amount < 0:
            raise ValueError("amount must not be negative")
        with self._lock:
            current, _ = self.upsert_user(user_id)
            with self._mutation() as data:
                user = data.users[current.id]
                user.limit += amount
            return user.model_copy(deep=True)

    def all_users(self) -> list[User]:
        with self._lock:
            return [user.model_copy(deep=True) for user in self._data.users.values()]

    def delete_user(self, user_id: str) -> bool:
        clean_id = self.normalize_user_id(user_id)
        with self._lock:
            if clean_id not in self._data.users:
                return False
            with self._mutation() as data:
                del data.users[clean_id]
        logger.info("user_deleted", user_id=clean_id)
        return True

    # -- groups ------------------------------------------------------------

    def upsert_group(self, group_id: str, name: str | None = None) -> tuple[Group, bool]:
        if not group_id:
            raise ValueError("group id must not be empty")
        with self._lock:
            group = self._data.groups.get(group_id)
            created = group is None
            if created:
                with self._mutation() as data:
                    group = data.groups[group_id] = Group(id=group_id, name=name or group_id)
                logger.info("group_created", group_id=group_id)
            elif name and name != group.name:
                with self._mutation() as data:
                    group = data.groups[group_id]
                    group.name = name
            return group.model_copy(deep=True), created

    def get_group(self, group_id: str, name: str | None = None) -> Group:
        return self.upsert_group(group_id, name)[0]

    def update_group(self, group_id: str, **updates: Any) -> Group:
        with self._lock:
            current, _ = self.upsert_group(group_id)
            updates.pop("id", None)
            group = self._merge(Group, current, updates)
            with self._mutation() as data:
                data.groups[group.id] = group
            return group.model_copy(deep=True)

    def all_groups(self) -> list[Group]:
        with self._lock:
            return [group.model_copy(deep=True) for group in self._data.groups.values()]

    def delete_group(self, group_id: str) -> bool:
        with self._lock:
            if group_id not in self._data.groups:
                return False
            with self._mutation() as data:
                del data.groups[group_id]
        logger.info("group_deleted", group_id=group_id)
        return True

    # -- settings ----------------------------------------------------------

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._lock:
            settings = self._data.settings
            if key in Settings.model_fields:
                return getattr(settings, key)
            return settings.custom_settings.get(key, default)

    def set_setting(self, key: str, value: Any) -> None:
        with self._mutation() as data:
            if key not in Settings.model_fields:
                data.settings.custom_settings[key] = value
                return
            try:
                setattr(data.settings, key, value)
            except ValidationError as exc:
                raise StoreError(f"invalid value for setting {key!r}: {exc}") from exc

    @property
    def max_limit(self) -> int:
        return self._data.settings.max_limit

    def reset_limits(self, now: datetime | None = None) -> bool:
        """Restore every user's quota when the reset interval has elapsed."""

        now = ensure_utc(now or utc_now())
        with self._lock:
            settings = self._data.settings
            if now - settings.last_reset < settings.reset_limit_interval:
                return False
            with self._mutation() as data:
                for user in data.users.values():
                    user.limit = data.settings.max_limit
                data.settings.last_reset = now
            logger.info("limits_reset", users=len(self._data.users), at=now.isoformat())
        return True

    # -- snapshots ---------------------------------------------------------

    def backup(self) -> Path:
        with self._lock:
            payload = self._data.model_dump_json(indent=2)
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        backup_path = self.backup_dir / f"backup-{file_timestamp()}.json"
        backup_path.write_text(payload, encoding="utf-8")
        logger.info("store_backup_created", path=str(backup_path))
        return backup_path

    @staticmethod
    def _merge(model: type[User] | type[Group], current, updates: dict[str, Any]):
        try:
            return model.model_validate({**current.model_dump(), **updates})
        except ValidationError as exc:
            raise StoreError(f"invalid {model.__name__.lower()} update: {exc}") from exc


__all__ = ["Store"]
