"""Transport boundary: what the navigation controller needs from the platform.

    Transport.send_message(chat_id, rendered)          -> message id
    Transport.edit_message(chat_id, message_id, rendered) -> bool
    Transport.delete_message(chat_id, message_id)      -> bool

``send_message`` raises TransportError on failure. Edit and delete report
failure as False so the caller can fall back to sending.

TelegrinderTransport implements this over ``telegrinder.API``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol as TypingProtocol

from kungfu import Error, Ok

from telenav.errors import TransportError
from telenav.screen import Button
from telenav.uilib.keyboard import build_screen_keyboard

if TYPE_CHECKING:
    from telegrinder import API

logger = logging.getLogger(__name__)

# Telegram answers 400 to an edit that changes nothing; content is already shown.
_NOT_MODIFIED = "message is not modified"


@dataclass(frozen=True, slots=True)
class RenderedScreen:
    """Final text + keyboard rows for one screen render."""

    screen_id: str
    text: str
    rows: tuple[tuple[Button, ...], ...] = ()
    parse_mode: str | None = None

    @property
    def buttons(self) -> list[Button]:
        return [b for row in self.rows for b in row]


class Transport(TypingProtocol):
    """Protocol for the chat platform client."""

    async def send_message(self, chat_id: int, rendered: RenderedScreen) -> int: ...

    async def edit_message(
        self, chat_id: int, message_id: int, rendered: RenderedScreen,
    ) -> bool: ...

    async def delete_message(self, chat_id: int, message_id: int) -> bool: ...


class TelegrinderTransport:
    """Transport over a telegrinder ``API`` instance.

        api = API(Token(os.environ["BOT_TOKEN"]))
        app = ScreenApp(TelegrinderTransport(api))
    """

    def __init__(self, api: API) -> None:
        self.api = api

    @staticmethod
    def _message_kwargs(rendered: RenderedScreen) -> dict[str, object]:
        kwargs: dict[str, object] = {}
        kb = build_screen_keyboard(rendered.rows)
        if kb is not None:
            kwargs["reply_markup"] = kb.get_markup()
        if rendered.parse_mode is not None:
            kwargs["parse_mode"] = rendered.parse_mode
        return kwargs

    async def send_message(self, chat_id: int, rendered: RenderedScreen) -> int:
        try:
            result = await self.api.send_message(
                chat_id=chat_id, text=rendered.text, **self._message_kwargs(rendered),
            )
        except Exception as exc:
            raise TransportError(chat_id, exc) from exc
        match result:
            case Ok(sent):
                return sent.message_id
            case Error(err):
                raise TransportError(chat_id, err)
            case _:
                raise TransportError(chat_id, result)

    async def edit_message(
        self, chat_id: int, message_id: int, rendered: RenderedScreen,
    ) -> bool:
        try:
            result = await self.api.edit_message_text(
                chat_id=chat_id,
                message_id=message_id,
                text=rendered.text,
                **self._message_kwargs(rendered),
            )
        except Exception:
            logger.warning(
                "edit_message_text raised for chat %s message %s", chat_id, message_id,
                exc_info=True,
            )
            return False
        match result:
            case Ok(_):
                return True
            case Error(err) if _NOT_MODIFIED in str(err).lower():
                return True
            case Error(err):
                logger.info("Cannot edit message %s in chat %s: %s", message_id, chat_id, err)
                return False
            case _:
                return False

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        try:
            result = await self.api.delete_message(chat_id=chat_id, message_id=message_id)
        except Exception:
            logger.warning(
                "delete_message raised for chat %s message %s", chat_id, message_id,
                exc_info=True,
            )
            return False
        match result:
            case Ok(_):
                return True
            case Error(err):
                logger.info("Cannot delete message %s in chat %s: %s", message_id, chat_id, err)
                return False
            case _:
                return False


__all__ = (
    "RenderedScreen",
    "TelegrinderTransport",
    "Transport",
)
