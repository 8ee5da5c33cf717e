"""Pydantic models persisted in the store document."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from quotabot.utils.datetime import ensure_utc, utc_now

# Naive values (hand-edited documents, plugin writes) are read as UTC.
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class User(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str
    name: str
    limit: int = Field(ge=0)
    premium: bool = False
    banned: bool = False
    last_interaction: UtcDatetime = Field(default_factory=utc_now)
    custom_data: dict[str, Any] = Field(default_factory=dict)


class Group(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str
    name: str
    welcome: bool = False
    anti_link: bool = False
    bot_admin: bool = False
    custom_data: dict[str, Any] = Field(default_factory=dict)


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    maintenance: bool = False
    max_limit: int = Field(default=50, ge=0)
    reset_limit_interval: timedelta = timedelta(days=1)
    last_reset: UtcDatetime = Field(default_factory=utc_now)
    custom_settings: dict[str, Any] = Field(default_factory=dict)


class StoreDocument(BaseModel):
    users: dict[str, User] = Field(default_factory=dict)
    groups: dict[str, Group] = Field(default_factory=dict)
    settings: Settings = Field(default_factory=Settings)


__all__ = ["Group", "Settings", "StoreDocument", "User", "UtcDatetime"]
