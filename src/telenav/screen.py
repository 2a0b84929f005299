"""Screen, Message and Button value objects.

A screen is a named view: one content message (text + buttons) plus the
callback and text-input handlers that are active while it is shown.

    main = Screen("Main menu", Message("Pick one:"), id="main")
    main.add_button("Help", "go_help")

    @main.on_callback("go_help")
    async def go_help(data: str, ctx: HandlerContext) -> bool:
        await app.navigate_to(ctx.chat_id, "help")
        return True

Screens are declared once at setup time. After registration only
``content`` is expected to change (e.g. counters shown in the text).
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, overload

if TYPE_CHECKING:
    from telenav.context import HandlerContext
    from telenav.dispatch import DispatchResult

# Telegram Bot API limit for callback_data
MAX_CALLBACK_DATA_BYTES = 64


type HandlerReturn = bool | DispatchResult | None

type CallbackHandler = Callable[
    [str, HandlerContext], HandlerReturn | Awaitable[HandlerReturn]
]
"""(callback_data, ctx) -> handled?"""

type TextHandler = Callable[
    [str, HandlerContext], HandlerReturn | Awaitable[HandlerReturn]
]
"""(text, ctx) -> handled?"""


def _short_id() -> str:
    return uuid.uuid4().hex[:8]


@dataclass(frozen=True, slots=True)
class Button:
    """Inline button. Either a callback token or a URL."""

    text: str
    callback_data: str = ""
    url: str | None = None

    def __post_init__(self) -> None:
        if self.url is None and not self.callback_data:
            raise ValueError(f"Button {self.text!r} needs callback_data or url")
        if len(self.callback_data.encode()) > MAX_CALLBACK_DATA_BYTES:
            raise ValueError(
                f"callback_data {self.callback_data!r} exceeds "
                f"{MAX_CALLBACK_DATA_BYTES} bytes"
            )


@dataclass(slots=True)
class Message:
    """Screen content: text plus ordered buttons laid out ``buttons_per_row`` wide."""

    text: str = ""
    buttons: list[Button] = field(default_factory=lambda: list[Button]())
    buttons_per_row: int = 1
    parse_mode: str | None = None

    def __post_init__(self) -> None:
        if self.buttons_per_row < 1:
            raise ValueError(f"buttons_per_row must be >= 1, got {self.buttons_per_row}")


@dataclass(eq=False)
class Screen:
    """A navigable view with its own callback and text-input handlers.

    Attributes:
        title: Shown above the content text (empty = no header).
        content: Text + buttons payload. Mutable between renders.
        id: Stable identity used for navigation (random short id by default).
        parent_id: Back-navigation target. An edge in the navigation tree,
            not ownership; set before registration or via
            ``ScreenRegistry.set_parent``.
        allow_back: Render a back button when a parent exists.
        back_label: Overrides the theme back label for this screen.
    """

    title: str = ""
    content: Message = field(default_factory=Message)
    id: str = field(default_factory=_short_id)
    parent_id: str | None = None
    allow_back: bool = True
    back_label: str | None = None
    callbacks: dict[str, CallbackHandler] = field(
        default_factory=lambda: dict[str, CallbackHandler](), repr=False,
    )
    text_inputs: dict[str, TextHandler] = field(
        default_factory=lambda: dict[str, TextHandler](), repr=False,
    )

    # --- content ---

    def with_content(self, message: Message) -> Screen:
        self.content = message
        return self

    def with_text(self, text: str) -> Screen:
        self.content.text = text
        return self

    def add_button(
        self, text: str, callback_data: str = "", *, url: str | None = None,
    ) -> Screen:
        self.content.buttons.append(Button(text, callback_data, url))
        return self

    def with_parent(self, parent: Screen | str) -> Screen:
        """Declare the back-navigation parent before registration."""
        self.parent_id = parent if isinstance(parent, str) else parent.id
        return self

    def allow_back_navigation(self, allow: bool = True, *, label: str | None = None) -> Screen:
        self.allow_back = allow
        if label is not None:
            self.back_label = label
        return self

    # --- handlers ---

    @overload
    def on_callback(
        self, token: str,
    ) -> Callable[[CallbackHandler], CallbackHandler]: ...

    @overload
    def on_callback(self, token: str, handler: CallbackHandler) -> Screen: ...

    def on_callback(
        self, token: str, handler: CallbackHandler | None = None,
    ) -> Screen | Callable[[CallbackHandler], CallbackHandler]:
        """Register a button handler for ``token`` on this screen.

        Direct form returns the screen (chaining); without ``handler``
        returns a decorator.
        """
        if handler is not None:
            self.callbacks[token] = handler
            return self

        def decorator(fn: CallbackHandler) -> CallbackHandler:
            self.callbacks[token] = fn
            return fn

        return decorator

    @overload
    def on_text_input(self, tag: str) -> Callable[[TextHandler], TextHandler]: ...

    @overload
    def on_text_input(self, tag: str, handler: TextHandler) -> Screen: ...

    def on_text_input(
        self, tag: str, handler: TextHandler | None = None,
    ) -> Screen | Callable[[TextHandler], TextHandler]:
        """Register a free-text handler, active while the chat awaits ``tag``."""
        if handler is not None:
            self.text_inputs[tag] = handler
            return self

        def decorator(fn: TextHandler) -> TextHandler:
            self.text_inputs[tag] = fn
            return fn

        return decorator


__all__ = (
    "Button",
    "CallbackHandler",
    "HandlerReturn",
    "MAX_CALLBACK_DATA_BYTES",
    "Message",
    "Screen",
    "TextHandler",
)
