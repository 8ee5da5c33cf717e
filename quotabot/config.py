"""Runtime configuration based on environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from quotabot.utils.jid import canonical_user_id

BUNDLED_COMMANDS_DIR = Path(__file__).with_name("commands")


class StoreSettings(BaseModel):
    path: Path = Field(
        default=Path("data/database.json"),
        description="JSON document holding users, groups and settings.",
    )
    backup_dir: Path = Path("data/backups")
    backup_on_start: bool = True
    reset_check_interval_seconds: int = Field(default=3600, ge=1)


class QuotaSettings(BaseModel):
    """Defaults written into a freshly created store document."""

    max_limit: int = Field(default=50, ge=0)
    reset_interval_seconds: int = Field(default=86_400, ge=1)


class PluginSettings(BaseModel):
    directory: Path = BUNDLED_COMMANDS_DIR
    watch: bool = True


class BotSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__"
    )

    environment: Literal["dev", "staging", "prod"] = "dev"
    telegram_token: SecretStr
    telegram_proxy: str | None = None
    default_language: str = "en"
    admin_telegram_id: int | None = None
    log_level: str = "INFO"
    log_json: bool = True

    prefix: str = "."
    fallback_prefixes: list[str] = Field(default_factory=lambda: ["/", "!", "#"])
    owners: list[str] = Field(default_factory=list)
    user_domain: str = "s.whatsapp.net"
    group_domain: str = "g.us"

    store: StoreSettings = Field(default_factory=StoreSettings)
    quota: QuotaSettings = Field(default_factory=QuotaSettings)
    plugins: PluginSettings = Field(default_factory=PluginSettings)

    @field_validator("user_domain", "group_domain", mode="before")
    @classmethod
    def _strip_at(cls, value):
        if isinstance(value, str):
            return value.strip().lstrip("@")
        return value

    @property
    def owner_ids(self) -> frozenset[str]:
        return frozenset(canonical_user_id(owner, self.user_domain) for owner in self.owners if owner.strip())

    @property
    def command_prefixes(self) -> list[str]:
        """Primary prefix first, then the fallbacks; blanks and repeats dropped."""

        prefixes: list[str] = []
        for prefix in [self.prefix, *self.fallback_prefixes]:
            if prefix and prefix not in prefixes:
                prefixes.append(prefix)
        return prefixes


@lru_cache
def get_settings() -> BotSettings:
    """Return cached settings instance."""

    return BotSettings()  # type: ignore[call-arg]


__all__ = [
    "BotSettings",
    "PluginSettings",
    "QuotaSettings",
    "StoreSettings",
    "get_settings",
]
