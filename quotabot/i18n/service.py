"""Localized reply texts loaded from ``locales/<code>.json``."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

LOCALES_DIR = Path(__file__).with_name("locales")


class I18nService:
    """Look up reply texts by key, falling back to the default locale.

    Missing keys render as the key itself so a forgotten translation is
    visible in chat instead of failing the command.
    """

    def __init__(self, *, locales_path: str | Path | None = None, default_locale: str = "en") -> None:
        self.locales_path = Path(locales_path or LOCALES_DIR)
        self.default_locale = default_locale.lower()
        self._tables: dict[str, dict[str, str]] = {}

    def gettext(self, key: str, *, locale: str | None = None, **kwargs: Any) -> str:
        template = key
        for candidate in dict.fromkeys(((locale or self.default_locale).lower(), self.default_locale)):
            found = self._table(candidate).get(key)
            if found is not None:
                template = found
                break
        return template.format(**kwargs) if kwargs else template

    def available_locales(self) -> list[str]:
        if not self.locales_path.is_dir():
            return []
        return sorted(path.stem for path in self.locales_path.glob("*.json"))

    def _table(self, locale: str) -> dict[str, str]:
        table = self._tables.get(locale)
        if table is None:
            path = self.locales_path / f"{locale}.json"
            table = json.loads(path.read_text(encoding="utf-8")) if path.is_file() else {}
            self._tables[locale] = table
        return table


__all__ = ["I18nService"]
