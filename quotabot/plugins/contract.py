"""The contract every command plugin implements."""

from __future__ import annotations

import inspect
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CommandConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    no_prefix: bool = False
    require_owner: bool = False
    require_admin: bool = False
    limit: int = Field(default=1, ge=0, description="Quota cost; 0 makes the command free.")


class CommandContext(BaseModel):
    """Everything a plugin receives next to the raw message."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    transport: Any
    text: str = ""
    args: list[str] = Field(default_factory=list)
    prefix: str = ""
    store: Any
    command: str
    settings: Any = None
    i18n: Any = None


class Command(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    aliases: list[str] = Field(min_length=1)
    example: str = ""
    config: CommandConfig = Field(default_factory=CommandConfig)
    run: Callable[..., Any]

    @field_validator("aliases")
    @classmethod
    def _aliases_not_blank(cls, value: list[str]) -> list[str]:
        aliases = [alias.strip() for alias in value]
        if any(not alias for alias in aliases):
            raise ValueError("aliases must not be blank")
        return aliases

    @field_validator("run")
    @classmethod
    def _run_is_async(cls, value: Callable[..., Any]) -> Callable[..., Any]:
        if not inspect.iscoroutinefunction(value):
            raise ValueError("run must be an async function")
        return value


__all__ = ["Command", "CommandConfig", "CommandContext"]
