"""Inbound events and the per-invocation handler context.

Transport adapters turn telegrinder updates into ``CallbackEvent`` /
``TextEvent``; the engine builds a fresh ``HandlerContext`` from each
event. The context is never stored; ``raw`` keeps the original
platform object for anything the typed fields don't cover.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from kungfu import Some

if TYPE_CHECKING:
    from telegrinder.bot.cute_types.callback_query import CallbackQueryCute
    from telegrinder.bot.cute_types.message import MessageCute


@dataclass(frozen=True, slots=True)
class UserInfo:
    """Identity of the user who produced an event."""

    id: int
    first_name: str = ""
    username: str | None = None
    last_name: str | None = None
    language_code: str | None = None


@dataclass(frozen=True, slots=True)
class CallbackEvent:
    """Button press: ``data`` is the callback token."""

    chat_id: int
    user: UserInfo
    data: str
    raw: object = None
    message_id: int | None = None
    callback_query_id: str | None = None


@dataclass(frozen=True, slots=True)
class TextEvent:
    """Free-text message."""

    chat_id: int
    user: UserInfo
    text: str
    raw: object = None
    message_id: int | None = None


type InboundEvent = CallbackEvent | TextEvent


@dataclass(frozen=True, slots=True)
class HandlerContext:
    """Read-only view of one event, passed to every handler.

        @screen.on_callback("whoami")
        async def whoami(data: str, ctx: HandlerContext) -> bool:
            print(ctx.chat_id, ctx.username or ctx.first_name)
            return True
    """

    chat_id: int
    user_id: int
    first_name: str
    username: str | None = None
    last_name: str | None = None
    language_code: str | None = None
    message_id: int | None = None
    raw: object = None

    @property
    def display_name(self) -> str:
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name

    @classmethod
    def from_event(cls, event: InboundEvent) -> HandlerContext:
        user = event.user
        return cls(
            chat_id=event.chat_id,
            user_id=user.id,
            first_name=user.first_name,
            username=user.username,
            last_name=user.last_name,
            language_code=user.language_code,
            message_id=event.message_id,
            raw=event.raw,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# telegrinder adapters
# ═══════════════════════════════════════════════════════════════════════════════


def _opt[T](value: object) -> T | None:
    """Unwrap a kungfu Option: Some(v) -> v, Nothing -> None."""
    match value:
        case Some(v):
            return v
        case _:
            return None


def user_info_from(user: object) -> UserInfo:
    """Build UserInfo from a telegrinder ``User``."""
    return UserInfo(
        id=getattr(user, "id"),
        first_name=getattr(user, "first_name", "") or "",
        username=_opt(getattr(user, "username", None)),
        last_name=_opt(getattr(user, "last_name", None)),
        language_code=_opt(getattr(user, "language_code", None)),
    )


def text_event_from(message: MessageCute) -> TextEvent | None:
    """TextEvent from a message, or None when it carries no text."""
    text = _opt(message.text)
    if text is None:
        return None
    chat_id: int = message.chat.id
    match message.from_:
        case Some(u):
            user = user_info_from(u)
        case _:
            # channel posts / anonymous admins: fall back to the chat
            user = UserInfo(id=chat_id)
    return TextEvent(
        chat_id=chat_id,
        user=user,
        text=str(text),
        raw=message,
        message_id=message.message_id,
    )


def callback_event_from(cb: CallbackQueryCute) -> CallbackEvent | None:
    """CallbackEvent from a callback query, or None when it has no data."""
    data = _opt(cb.data)
    if data is None:
        return None
    user = user_info_from(cb.from_user)
    chat_id = user.id
    match cb.message:
        case Some(msg):
            chat_id = msg.v.chat.id
        case _:
            pass
    return CallbackEvent(
        chat_id=chat_id,
        user=user,
        data=str(data),
        raw=cb,
        message_id=_opt(cb.message_id),
        callback_query_id=cb.id,
    )


__all__ = (
    "CallbackEvent",
    "HandlerContext",
    "InboundEvent",
    "TextEvent",
    "UserInfo",
    "callback_event_from",
    "text_event_from",
    "user_info_from",
)
