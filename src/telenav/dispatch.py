"""Callback and text-input dispatch tables.

Handler maps live on the Screen instances; the tables resolve a handler
for (screen, token) or (active screen, awaited tag), invoke it, and turn
whatever happened into a DispatchResult:

- Handled(): handler consumed the event.
- Unhandled(reason, error): nothing ran, or the handler declined.
  Resolution errors travel in ``error`` and are never raised.
- Failed(reason, error): the handler (or the transport under it) raised.

Exactly one handler runs per dispatch. Tokens are screen-scoped: the
same token on two screens maps to two independent handlers.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass

from telenav.context import HandlerContext
from telenav.errors import (
    ScreenNotFoundError,
    UnknownCallbackError,
    UnknownInputHandlerError,
)
from telenav.registry import ScreenRegistry
from telenav.screen import CallbackHandler, HandlerReturn, Screen, TextHandler
from telenav.state import StateStorage

logger = logging.getLogger(__name__)

# value-bag key holding the last free-text message routed to a handler
LAST_INPUT_KEY = "last_input"


# ═══════════════════════════════════════════════════════════════════════════════
# Result algebra
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Handled:
    """Handler consumed the event."""

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Unhandled:
    """No handler consumed the event. Recoverable, silent to the user."""

    reason: str
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Failed:
    """Handler or transport raised. The chat's lane stays usable."""

    reason: str
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return False


type DispatchResult = Handled | Unhandled | Failed

HANDLED = Handled()


def as_result(value: HandlerReturn) -> DispatchResult:
    """Normalize a handler return value to a DispatchResult."""
    match value:
        case Handled() | Unhandled() | Failed():
            return value
        case True:
            return HANDLED
        case False:
            return Unhandled("handler declined")
        case None:
            return Unhandled("handler returned nothing")
        case _:
            raise TypeError(
                f"Handler must return bool, None or a DispatchResult, got {type(value).__name__}"
            )


async def invoke_handler(
    handler: CallbackHandler | TextHandler,
    payload: str,
    ctx: HandlerContext,
) -> DispatchResult:
    """Run a sync or async handler; exceptions become Failed.

    CancelledError is re-raised so lane cancellation keeps working.
    """
    try:
        value = handler(payload, ctx)
        if inspect.isawaitable(value):
            value = await value
        return as_result(value)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        logger.exception(
            "Handler %s failed for chat %s", getattr(handler, "__name__", handler), ctx.chat_id,
        )
        return Failed(f"{type(exc).__name__}: {exc}", exc)


# ═══════════════════════════════════════════════════════════════════════════════
# Callback table
# ═══════════════════════════════════════════════════════════════════════════════


class CallbackTable:
    """(screen, callback token) -> handler."""

    def register(self, screen: Screen, token: str, handler: CallbackHandler) -> None:
        screen.on_callback(token, handler)

    def resolve(self, screen: Screen, token: str) -> CallbackHandler:
        """Handler for ``token`` on ``screen``. Raises UnknownCallbackError."""
        handler = screen.callbacks.get(token)
        if handler is None:
            raise UnknownCallbackError(screen.id, token)
        return handler

    async def dispatch(
        self,
        screen: Screen,
        token: str,
        data: str,
        ctx: HandlerContext,
    ) -> DispatchResult:
        try:
            handler = self.resolve(screen, token)
        except UnknownCallbackError as exc:
            logger.warning("%s (chat %s)", exc, ctx.chat_id)
            return Unhandled("unknown callback", exc)
        result = await invoke_handler(handler, data, ctx)
        logger.debug("callback %r on %s for chat %s: %s", token, screen.id, ctx.chat_id, result)
        return result


# ═══════════════════════════════════════════════════════════════════════════════
# Text-input table
# ═══════════════════════════════════════════════════════════════════════════════


class TextInputTable:
    """(active screen, awaited-input tag) -> handler.

    The awaited tag is never cleared here. A handler that should only
    run once must clear or replace the tag itself. The routed text is
    stored under ``LAST_INPUT_KEY`` before the handler runs.
    """

    def __init__(self, registry: ScreenRegistry, store: StateStorage) -> None:
        self._registry = registry
        self._store = store

    def register(self, screen: Screen, tag: str, handler: TextHandler) -> None:
        screen.on_text_input(tag, handler)

    def resolve(self, chat_id: int, tag: str) -> tuple[Screen, TextHandler]:
        """Active screen and its handler for ``tag``. Raises UnknownInputHandlerError."""
        screen_id = self._store.get_active_screen(chat_id)
        if screen_id is None:
            raise UnknownInputHandlerError(None, tag)
        try:
            screen = self._registry.resolve(screen_id)
        except ScreenNotFoundError:
            raise UnknownInputHandlerError(screen_id, tag) from None
        handler = screen.text_inputs.get(tag)
        if handler is None:
            raise UnknownInputHandlerError(screen.id, tag)
        return screen, handler

    async def dispatch_text(
        self, chat_id: int, text: str, ctx: HandlerContext,
    ) -> DispatchResult:
        tag = self._store.get_awaited_input(chat_id)
        if tag is None:
            logger.debug("text for chat %s ignored: no awaited input", chat_id)
            return Unhandled("no awaited input")
        try:
            screen, handler = self.resolve(chat_id, tag)
        except UnknownInputHandlerError as exc:
            logger.warning("%s (chat %s)", exc, chat_id)
            return Unhandled("unknown input handler", exc)
        self._store.set_value(chat_id, LAST_INPUT_KEY, text)
        result = await invoke_handler(handler, text, ctx)
        logger.debug("text input %r on %s for chat %s: %s", tag, screen.id, chat_id, result)
        return result


__all__ = (
    "CallbackTable",
    "DispatchResult",
    "Failed",
    "HANDLED",
    "Handled",
    "LAST_INPUT_KEY",
    "TextInputTable",
    "Unhandled",
    "as_result",
    "invoke_handler",
)
