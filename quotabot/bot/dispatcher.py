"""Resolve inbound messages to command plugins and enforce the policy chain."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from quotabot.bot.transport import GroupMetadata, IncomingMessage, OutgoingMessage, Transport
from quotabot.config import BotSettings, get_settings
from quotabot.db.store import Store
from quotabot.domain.models import User
from quotabot.i18n import I18nService
from quotabot.logging import logger
from quotabot.plugins.contract import Command, CommandContext
from quotabot.plugins.registry import PluginRegistry
from quotabot.utils.jid import is_group_chat


class DispatchState(str, Enum):
    DROPPED = "dropped"
    REJECTED = "rejected"
    EXECUTED = "executed"
    ERRORED = "errored"


@dataclass(frozen=True)
class DispatchResult:
    state: DispatchState
    command: Command | None = None
    alias: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class ParsedInvocation:
    command: Command
    alias: str
    prefix: str
    text: str
    args: list[str]


def _dropped(reason: str) -> DispatchResult:
    return DispatchResult(DispatchState.DROPPED, reason=reason)


class CommandDispatcher:
    """Run one inbound message through resolution, policy and execution.

    The policy chain is owner -> group admin -> quota. Quota is reserved
    before the plugin runs and is not refunded when the plugin fails.
    """

    def __init__(
        self,
        transport: Transport,
        store: Store,
        registry: PluginRegistry,
        settings: BotSettings | None = None,
        i18n: I18nService | None = None,
    ) -> None:
        self.transport = transport
        self.store = store
        self.registry = registry
        self.settings = settings or get_settings()
        self.i18n = i18n or I18nService(default_locale=self.settings.default_language)

    def is_owner(self, sender: str) -> bool:
        return self.store.normalize_user_id(sender) in self.settings.owner_ids

    async def dispatch(self, message: IncomingMessage) -> DispatchResult:
        with structlog.contextvars.bound_contextvars(chat_id=message.chat_id):
            try:
                return await self._dispatch(message)
            except Exception:
                logger.exception("dispatch_failed")
                return DispatchResult(DispatchState.ERRORED, reason="internal")

    async def _dispatch(self, message: IncomingMessage) -> DispatchResult:
        body = message.text
        if not body:
            return _dropped("no_text")

        chat_id = message.chat_id
        is_group = is_group_chat(chat_id, self.settings.group_domain)
        sender = message.participant if is_group else chat_id
        if not sender:
            return _dropped("no_sender")

        logger.info("message_received", sender=sender, body=body)
        user = self.store.get_user(sender, message.push_name)

        metadata: GroupMetadata | None = None
        if is_group:
            metadata = await self._group_metadata(chat_id)
            self.store.get_group(chat_id, metadata.subject if metadata is not None else None)

        if user.banned:
            logger.info("banned_user_ignored", sender=user.id)
            return _dropped("banned")

        is_admin = False
        if is_group and metadata is not None:
            is_admin = metadata.is_admin(sender) or metadata.is_admin(user.id)

        invocation = self.resolve(body)
        if invocation is None:
            return _dropped("no_command")

        command = invocation.command
        is_owner = self.is_owner(user.id)

        if command.config.require_owner and not is_owner:
            return await self._reject(message, invocation, "owner_required", "policy.owner_only")

        if command.config.require_admin and is_group and not is_admin:
            return await self._reject(message, invocation, "admin_required", "policy.admin_only")

        if not is_owner and not user.premium:
            rejected = await self._reserve_quota(message, invocation, user)
            if rejected is not None:
                return rejected

        logger.info(
            "command_executing",
            title=command.title,
            alias=invocation.alias,
            sender=user.id,
        )
        context = CommandContext(
            transport=self.transport,
            text=invocation.text,
            args=invocation.args,
            prefix=invocation.prefix,
            store=self.store,
            command=invocation.alias,
            settings=self.settings,
            i18n=self.i18n,
        )
        try:
            await command.run(message, context)
        except Exception as exc:
            logger.exception("command_failed", alias=invocation.alias, error=str(exc))
            await self._reply(message, self.i18n.gettext("command.failed"))
            return DispatchResult(DispatchState.ERRORED, command, invocation.alias, reason="plugin_error")

        return DispatchResult(DispatchState.EXECUTED, command, invocation.alias)

    def resolve(self, body: str) -> ParsedInvocation | None:
        """Prefixed lookup first, then the no-prefix literal scan."""

        for prefix in self.settings.command_prefixes:
            if not body.startswith(prefix):
                continue
            parts = body[len(prefix):].strip().split(maxsplit=1)
            if parts:
                alias = parts[0].lower()
                command = self.registry.resolve(alias)
                if command is not None:
                    text = parts[1].strip() if len(parts) > 1 else ""
                    return ParsedInvocation(command, alias, prefix, text, text.split())
            break

        lowered = body.lower()
        for alias, command in self.registry.no_prefix_commands():
            if lowered.startswith(alias):
                text = body[len(alias):].strip()
                return ParsedInvocation(command, alias, "", text, text.split())
        return None

    async def _reserve_quota(
        self,
        message: IncomingMessage,
        invocation: ParsedInvocation,
        user: User,
    ) -> DispatchResult | None:
        cost = invocation.command.config.limit
        if cost <= 0:
            return None
        if user.limit >= cost and self.store.decrement_limit(user.id, cost):
            return None
        remaining = self.store.get_user(user.id).limit
        logger.info("quota_insufficient", sender=user.id, cost=cost, remaining=remaining)
        return await self._reject(
            message,
            invocation,
            "quota_exhausted",
            "policy.limit_exceeded",
            remaining=remaining,
            maximum=self.store.max_limit,
        )

    async def _reject(
        self,
        message: IncomingMessage,
        invocation: ParsedInvocation,
        reason: str,
        text_key: str,
        **kwargs,
    ) -> DispatchResult:
        logger.info("command_rejected", alias=invocation.alias, reason=reason)
        await self._reply(message, self.i18n.gettext(text_key, **kwargs))
        return DispatchResult(DispatchState.REJECTED, invocation.command, invocation.alias, reason=reason)

    async def _group_metadata(self, chat_id: str) -> GroupMetadata | None:
        try:
            return await self.transport.group_metadata(chat_id)
        except Exception as exc:
            logger.error("group_metadata_failed", error=str(exc))
            return None

    async def _reply(self, message: IncomingMessage, text: str) -> None:
        try:
            await self.transport.send_message(message.chat_id, OutgoingMessage(text=text), quoted=message)
        except Exception:
            logger.exception("reply_failed")


__all__ = ["CommandDispatcher", "DispatchResult", "DispatchState", "ParsedInvocation"]
