"""Telegram calls wrapped in retry/backoff for transient API failures."""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from aiogram import Bot
from aiogram.exceptions import TelegramNetworkError, TelegramRetryAfter, TelegramServerError
from aiogram.types import Message

from quotabot.logging import logger
from quotabot.utils.retry import retry_async

TELEGRAM_SEND_MAX_ATTEMPTS = 3
TELEGRAM_SEND_BASE_DELAY = 0.3
TRANSIENT_ERRORS = (TelegramNetworkError, TelegramRetryAfter, TelegramServerError)


def telegram_backoff(exc: BaseException, attempt: int) -> float:
    """Honour flood-control waits; otherwise back off linearly."""

    if isinstance(exc, TelegramRetryAfter):
        return float(exc.retry_after)
    return TELEGRAM_SEND_BASE_DELAY * attempt


async def _with_retry(call: Callable[[], Awaitable[Any]], operation_name: str) -> Any:
    return await retry_async(
        call,
        max_attempts=TELEGRAM_SEND_MAX_ATTEMPTS,
        retry_on=TRANSIENT_ERRORS,
        backoff=telegram_backoff,
        logger=logger,
        operation_name=operation_name,
    )


async def answer_with_retry(message: Message, text: str, **kwargs: Any) -> Any:
    return await _with_retry(lambda: message.answer(text, **kwargs), "telegram_answer")


async def bot_send_with_retry(bot: Bot, *, chat_id: int, text: str, **kwargs: Any) -> Any:
    return await _with_retry(
        lambda: bot.send_message(chat_id=chat_id, text=text, **kwargs),
        "telegram_send_message",
    )


__all__ = ["TRANSIENT_ERRORS", "answer_with_retry", "bot_send_with_retry", "telegram_backoff"]
