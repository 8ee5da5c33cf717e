"""Transport-neutral message models and the aiogram adapter."""

from __future__ import annotations

from typing import Any, Protocol

from aiogram import Bot
from aiogram.types import Message
from pydantic import BaseModel, ConfigDict, Field

from quotabot.bot.utils.telegram import bot_send_with_retry
from quotabot.config import BotSettings, get_settings
from quotabot.logging import logger
from quotabot.utils.jid import local_part


class MessageKey(BaseModel):
    chat_id: str
    message_id: str | None = None
    from_me: bool = False


class MessageContent(BaseModel):
    conversation: str | None = None
    image_caption: str | None = None
    video_caption: str | None = None
    extended_text: str | None = None
    button_response_id: str | None = None
    list_response_id: str | None = None
    template_reply_id: str | None = None

    def extract_text(self) -> str:
        return (
            self.conversation
            or self.image_caption
            or self.video_caption
            or self.extended_text
            or self.button_response_id
            or self.list_response_id
            or self.template_reply_id
            or ""
        )


class IncomingMessage(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: MessageKey
    participant: str | None = None
    push_name: str | None = None
    content: MessageContent | None = None
    raw: Any = Field(default=None, exclude=True)

    @property
    def chat_id(self) -> str:
        return self.key.chat_id

    @property
    def text(self) -> str:
        return self.content.extract_text() if self.content else ""


class OutgoingMessage(BaseModel):
    text: str | None = None
    delete: MessageKey | None = None


class GroupParticipant(BaseModel):
    id: str
    admin: bool = False


class GroupMetadata(BaseModel):
    id: str
    subject: str | None = None
    participants: list[GroupParticipant] = Field(default_factory=list)

    def is_admin(self, participant_id: str) -> bool:
        return any(p.id == participant_id and p.admin for p in self.participants)


class Transport(Protocol):
    async def send_message(
        self,
        chat_id: str,
        content: OutgoingMessage,
        *,
        quoted: IncomingMessage | None = None,
    ) -> MessageKey | None: ...

    async def group_metadata(self, chat_id: str) -> GroupMetadata: ...


def telegram_chat_id(address: str) -> int:
    return int(local_part(address))


def to_incoming(message: Message, settings: BotSettings | None = None) -> IncomingMessage | None:
    """Convert an aiogram message into an ``IncomingMessage``."""

    settings = settings or get_settings()
    from_user = getattr(message, "from_user", None)
    if from_user is None:
        return None

    sender = f"{from_user.id}@{settings.user_domain}"
    chat = message.chat
    is_group = chat.type in ("group", "supergroup")
    chat_id = f"{chat.id}@{settings.group_domain}" if is_group else sender

    content = MessageContent(
        conversation=message.text,
        image_caption=message.caption if message.photo else None,
        video_caption=message.caption if message.video else None,
        extended_text=message.caption if not (message.photo or message.video) else None,
    )
    return IncomingMessage(
        key=MessageKey(
            chat_id=chat_id,
            message_id=str(message.message_id),
            from_me=bool(getattr(from_user, "is_bot", False)),
        ),
        participant=sender if is_group else None,
        push_name=getattr(from_user, "full_name", None),
        content=content,
        raw=message,
    )


class AiogramTransport:
    """``Transport`` backed by a Telegram bot."""

    def __init__(self, bot: Bot, settings: BotSettings | None = None) -> None:
        self.bot = bot
        self.settings = settings or get_settings()

    async def send_message(
        self,
        chat_id: str,
        content: OutgoingMessage,
        *,
        quoted: IncomingMessage | None = None,
    ) -> MessageKey | None:
        target = telegram_chat_id(chat_id)
        if content.delete is not None:
            if content.delete.message_id is None:
                return None
            await self.bot.delete_message(chat_id=target, message_id=int(content.delete.message_id))
            return None
        if not content.text:
            return None

        kwargs: dict[str, Any] = {"parse_mode": None}
        if quoted is not None and quoted.key.message_id is not None:
            kwargs["reply_to_message_id"] = int(quoted.key.message_id)
        sent = await bot_send_with_retry(self.bot, chat_id=target, text=content.text, **kwargs)
        message_id = getattr(sent, "message_id", None)
        return MessageKey(
            chat_id=chat_id,
            message_id=str(message_id) if message_id is not None else None,
            from_me=True,
        )

    async def group_metadata(self, chat_id: str) -> GroupMetadata:
        target = telegram_chat_id(chat_id)
        chat = await self.bot.get_chat(target)
        admins = await self.bot.get_chat_administrators(target)
        participants = [
            GroupParticipant(id=f"{member.user.id}@{self.settings.user_domain}", admin=True)
            for member in admins
        ]
        logger.debug("group_metadata_fetched", chat_id=chat_id, admins=len(participants))
        return GroupMetadata(id=chat_id, subject=chat.title, participants=participants)


__all__ = [
    "AiogramTransport",
    "GroupMetadata",
    "GroupParticipant",
    "IncomingMessage",
    "MessageContent",
    "MessageKey",
    "OutgoingMessage",
    "Transport",
    "telegram_chat_id",
    "to_incoming",
]
