"""ScreenApp — the navigation engine coordinator.

One ScreenApp owns the screen registry, conversation state, dispatch
tables, navigation controller and chat lanes, and exposes the surface an
application works with.

    app = ScreenApp(TelegrinderTransport(api))

    main = app.add_screen("Main menu", "Pick one:", id="main", is_default=True)
    main.add_button("Help", "go_help")
    help_ = app.add_screen("Help", "Ask away.", id="help", parent=main)

    @app.on_callback(main, "go_help")
    async def go_help(data: str, ctx: HandlerContext) -> bool:
        await app.navigate_to(ctx.chat_id, help_)
        return True

    app.bind(bot)  # telegrinder.Telegrinder

Every inbound event runs on its chat's lane: events of one chat are
handled one at a time in arrival order, different chats in parallel.
Unknown tokens, missing handlers and failing handlers come back as
Unhandled / Failed results, never as exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, overload

from telegrinder.bot.cute_types.callback_query import CallbackQueryCute
from telegrinder.bot.cute_types.message import MessageCute
from telegrinder.bot.rules.command import Command

from telenav.context import (
    CallbackEvent,
    HandlerContext,
    InboundEvent,
    TextEvent,
    callback_event_from,
    text_event_from,
)
from telenav.dispatch import (
    HANDLED,
    CallbackTable,
    DispatchResult,
    Failed,
    Handled,
    TextInputTable,
    Unhandled,
)
from telenav.errors import (
    DispatchCancelled,
    ResolutionError,
    ScreenNotFoundError,
    TransportError,
)
from telenav.i18n import Localizer
from telenav.lanes import CancelToken, ChatLanes
from telenav.navigation import NavigationController, NavigationSettings, ShowMode
from telenav.registry import ScreenRegistry
from telenav.screen import Button, CallbackHandler, Message, Screen, TextHandler
from telenav.state import MemoryStateStore, StateStorage
from telenav.transport import Transport
from telenav.uilib.theme import DEFAULT_THEME, LayoutUI, NavUI, UITheme

if TYPE_CHECKING:
    from telegrinder import Telegrinder

logger = logging.getLogger(__name__)


@dataclass
class ScreenApp:
    """The coordinator.

    Attributes:
        transport: Platform client used for every render.
        theme: UITheme for rendered screens.
        settings: NavigationSettings (show mode, built-in tokens, refresh policy).
        store: Conversation state backend (in-memory by default).
        registry: Registered screens and navigation tree.
        localizer: Injected string tables for handlers to use.
        lanes: Per-chat serialized execution.
    """

    transport: Transport
    theme: UITheme = field(default_factory=lambda: DEFAULT_THEME)
    settings: NavigationSettings = field(default_factory=NavigationSettings)
    store: StateStorage = field(default_factory=MemoryStateStore)
    registry: ScreenRegistry = field(default_factory=ScreenRegistry)
    localizer: Localizer = field(default_factory=Localizer)
    lanes: ChatLanes = field(default_factory=ChatLanes)
    callbacks: CallbackTable = field(init=False, default_factory=CallbackTable)
    text_inputs: TextInputTable = field(init=False, repr=False)
    navigator: NavigationController = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.text_inputs = TextInputTable(self.registry, self.store)
        self.navigator = NavigationController(
            registry=self.registry,
            store=self.store,
            transport=self.transport,
            theme=self.theme,
            settings=self.settings,
        )

    # ───────────────────────────────────────────────────────────────────────
    # Declaration
    # ───────────────────────────────────────────────────────────────────────

    def register_screen(self, screen: Screen, is_default: bool = False) -> Screen:
        return self.registry.register(screen, is_default)

    def add_screen(
        self,
        title: str,
        text: str = "",
        *,
        id: str | None = None,
        parent: Screen | str | None = None,
        buttons: list[Button] | None = None,
        buttons_per_row: int = 1,
        parse_mode: str | None = None,
        is_default: bool = False,
    ) -> Screen:
        """Create and register a screen in one call."""
        content = Message(text, list(buttons or ()), buttons_per_row, parse_mode)
        screen = Screen(title, content) if id is None else Screen(title, content, id)
        if parent is not None:
            screen.with_parent(parent)
        return self.registry.register(screen, is_default)

    def set_default(self, screen: Screen) -> None:
        self.registry.set_default(screen)

    def set_parent(self, child: Screen | str, parent: Screen | str) -> None:
        self.registry.set_parent(child, parent)

    @overload
    def on_callback(
        self, screen: Screen | str, token: str,
    ) -> Callable[[CallbackHandler], CallbackHandler]: ...

    @overload
    def on_callback(
        self, screen: Screen | str, token: str, handler: CallbackHandler,
    ) -> CallbackHandler: ...

    def on_callback(
        self,
        screen: Screen | str,
        token: str,
        handler: CallbackHandler | None = None,
    ) -> CallbackHandler | Callable[[CallbackHandler], CallbackHandler]:
        """Register a button handler on ``screen``; decorator when ``handler`` is omitted."""
        target = self._screen(screen)
        if handler is not None:
            self.callbacks.register(target, token, handler)
            return handler

        def decorator(fn: CallbackHandler) -> CallbackHandler:
            self.callbacks.register(target, token, fn)
            return fn

        return decorator

    @overload
    def on_text_input(
        self, screen: Screen | str, tag: str,
    ) -> Callable[[TextHandler], TextHandler]: ...

    @overload
    def on_text_input(
        self, screen: Screen | str, tag: str, handler: TextHandler,
    ) -> TextHandler: ...

    def on_text_input(
        self,
        screen: Screen | str,
        tag: str,
        handler: TextHandler | None = None,
    ) -> TextHandler | Callable[[TextHandler], TextHandler]:
        """Register a free-text handler active while the chat awaits ``tag``."""
        target = self._screen(screen)
        if handler is not None:
            self.text_inputs.register(target, tag, handler)
            return handler

        def decorator(fn: TextHandler) -> TextHandler:
            self.text_inputs.register(target, tag, fn)
            return fn

        return decorator

    def _screen(self, screen: Screen | str) -> Screen:
        return screen if isinstance(screen, Screen) else self.registry.resolve(screen)

    # ───────────────────────────────────────────────────────────────────────
    # Navigation (serialized per chat)
    # ───────────────────────────────────────────────────────────────────────

    async def navigate_to(self, chat_id: int, screen: Screen | str) -> int:
        screen_id = screen if isinstance(screen, str) else screen.id
        return await self.lanes.run(
            chat_id, lambda: self.navigator.navigate_to(chat_id, screen_id),
        )

    def navigate_later(self, chat_id: int, screen: Screen | str) -> asyncio.Future[int]:
        """Queue a navigation on the chat's lane without waiting for it.

        Use this from a handler to move another chat: awaiting
        ``navigate_to`` there holds the handler's own lane until the
        other chat's lane is free.
        """
        screen_id = screen if isinstance(screen, str) else screen.id
        return self.lanes.submit(
            chat_id, lambda: self.navigator.navigate_to(chat_id, screen_id),
        )

    async def refresh(self, chat_id: int, screen: Screen | str, *, resend: bool = False) -> int:
        screen_id = screen if isinstance(screen, str) else screen.id
        return await self.lanes.run(
            chat_id, lambda: self.navigator.refresh(chat_id, screen_id, resend=resend),
        )

    async def go_back(self, chat_id: int) -> int:
        return await self.lanes.run(chat_id, lambda: self.navigator.go_back(chat_id))

    async def navigate_to_default(self, chat_id: int) -> int:
        return await self.lanes.run(chat_id, lambda: self.navigator.navigate_to_default(chat_id))

    async def start(self, chat_id: int) -> int:
        """Reset the chat's input state and show the default screen as a new message."""

        async def job() -> int:
            self.store.reset(chat_id)
            self.navigator.forget(chat_id)
            return await self.navigator.navigate_to_default(chat_id)

        return await self.lanes.run(chat_id, job)

    def active_screen(self, chat_id: int) -> Screen | None:
        screen_id = self.store.get_active_screen(chat_id)
        if screen_id is None:
            return None
        return self.registry.resolve(screen_id)

    # ───────────────────────────────────────────────────────────────────────
    # Conversation state
    # ───────────────────────────────────────────────────────────────────────

    def set_current_state(self, chat_id: int, tag: str) -> None:
        """Route the chat's next free-text messages to the ``tag`` handler."""
        self.store.set_awaited_input(chat_id, tag)

    def clear_current_state(self, chat_id: int) -> None:
        self.store.clear_awaited_input(chat_id)

    def get_current_state(self, chat_id: int) -> str | None:
        return self.store.get_awaited_input(chat_id)

    def set_state(self, chat_id: int, key: str, value: object) -> None:
        self.store.set_value(chat_id, key, value)

    def get_state(self, chat_id: int, key: str, default: object = None) -> object:
        return self.store.get_value(chat_id, key, default)

    # ───────────────────────────────────────────────────────────────────────
    # Inbound events
    # ───────────────────────────────────────────────────────────────────────

    async def handle_callback(
        self, event: CallbackEvent, cancel: CancelToken | None = None,
    ) -> DispatchResult:
        return await self._on_lane(event.chat_id, lambda: self._dispatch_callback(event), cancel)

    async def handle_text(
        self, event: TextEvent, cancel: CancelToken | None = None,
    ) -> DispatchResult:
        return await self._on_lane(event.chat_id, lambda: self._dispatch_text(event), cancel)

    async def feed(
        self, event: InboundEvent, cancel: CancelToken | None = None,
    ) -> DispatchResult:
        """Dispatch any inbound event."""
        match event:
            case CallbackEvent():
                return await self.handle_callback(event, cancel)
            case TextEvent():
                return await self.handle_text(event, cancel)
            case _:
                raise TypeError(f"Unsupported event: {event!r}")

    async def serve(self, events: AsyncIterable[InboundEvent]) -> None:
        """Consume an event stream without waiting on dispatches between events.

        Returns once the stream ends and every dispatched event finished.
        """
        pending: set[asyncio.Task[DispatchResult]] = set()
        async for event in events:
            task = asyncio.ensure_future(self.feed(event))
            pending.add(task)
            task.add_done_callback(pending.discard)
        if pending:
            await asyncio.gather(*pending)

    async def _on_lane(
        self,
        chat_id: int,
        job: Callable[[], Awaitable[DispatchResult]],
        cancel: CancelToken | None,
    ) -> DispatchResult:
        try:
            return await self.lanes.run(chat_id, job, cancel)
        except DispatchCancelled as exc:
            logger.warning("%s", exc)
            return Failed("cancelled", exc)

    async def _dispatch_callback(self, event: CallbackEvent) -> DispatchResult:
        chat_id = event.chat_id
        token = event.data
        ctx = HandlerContext.from_event(event)
        try:
            if token == self.settings.back_token:
                await self.navigator.go_back(chat_id)
                return HANDLED
            if self.settings.screen_prefix and token.startswith(self.settings.screen_prefix):
                await self.navigator.navigate_to(chat_id, token[len(self.settings.screen_prefix):])
                return HANDLED
            active_id = self.store.get_active_screen(chat_id)
            if active_id is None:
                raise ScreenNotFoundError(None)
            screen = self.registry.resolve(active_id)
        except ResolutionError as exc:
            logger.warning("callback %r for chat %s unresolved: %s", token, chat_id, exc)
            return Unhandled(str(exc), exc)
        except TransportError as exc:
            logger.error("%s", exc)
            return Failed(str(exc), exc)

        result = await self.callbacks.dispatch(screen, token, event.data, ctx)
        if (
            isinstance(result, Handled)
            and self.settings.refresh_after_callback
            and self.store.get_active_screen(chat_id) == screen.id
        ):
            return await self._rerender(chat_id, screen.id, result, resend=False)
        return result

    async def _dispatch_text(self, event: TextEvent) -> DispatchResult:
        chat_id = event.chat_id
        ctx = HandlerContext.from_event(event)
        before = self.store.get_active_screen(chat_id)
        result = await self.text_inputs.dispatch_text(chat_id, event.text, ctx)
        if (
            isinstance(result, Handled)
            and self.settings.resend_after_text
            and before is not None
            and self.store.get_active_screen(chat_id) == before
        ):
            return await self._rerender(chat_id, before, result, resend=True)
        return result

    async def _rerender(
        self, chat_id: int, screen_id: str, result: DispatchResult, *, resend: bool,
    ) -> DispatchResult:
        try:
            await self.navigator.refresh(chat_id, screen_id, resend=resend)
        except TransportError as exc:
            logger.error("%s", exc)
            return Failed(str(exc), exc)
        return result

    # ───────────────────────────────────────────────────────────────────────
    # telegrinder wiring
    # ───────────────────────────────────────────────────────────────────────

    def bind(self, bot: Telegrinder) -> None:
        """Attach /start, text and callback query handlers to a telegrinder bot."""
        @bot.on.message(Command(self.settings.start_command))
        async def start_handler(message: MessageCute) -> None:
            try:
                await self.start(message.chat.id)
            except (ResolutionError, TransportError) as exc:
                logger.error("/%s failed for chat %s: %s", self.settings.start_command, message.chat.id, exc)

        @bot.on.message()
        async def text_handler(message: MessageCute) -> None:
            event = text_event_from(message)
            if event is not None:
                await self.handle_text(event)

        @bot.on.callback_query()
        async def callback_handler(cb: CallbackQueryCute) -> None:
            try:
                event = callback_event_from(cb)
                if event is not None:
                    await self.handle_callback(event)
            finally:
                await cb.answer()


__all__ = (
    "ScreenApp",
    # re-exported for single-import convenience
    "Button",
    "CancelToken",
    "DEFAULT_THEME",
    "HandlerContext",
    "LayoutUI",
    "Message",
    "NavUI",
    "NavigationSettings",
    "Screen",
    "ShowMode",
    "UITheme",
)
