"""Navigation controller — screen transitions and rendering.

Per chat the controller tracks the message that currently shows a
screen. Navigating either edits that message in place or sends a new
one (see ShowMode). Ordering guarantee: the render is issued first and
the chat's active screen is committed only after it succeeded, so a
failed send leaves the previous screen recorded.

State machine per chat: states are screen ids plus an implicit "none"
before the first navigation; only ``navigate_to`` / ``go_back`` (and
``navigate_to_default``) move between them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from telenav.errors import (
    NoParentError,
    ScreenMismatchError,
    ScreenNotFoundError,
)
from telenav.registry import ScreenRegistry
from telenav.screen import Button, Screen
from telenav.state import StateStorage
from telenav.transport import RenderedScreen, Transport
from telenav.uilib.keyboard import layout_rows
from telenav.uilib.theme import DEFAULT_THEME, UITheme

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════════════


class ShowMode(Enum):
    """Controls how a screen replaces the previous one.

    EDIT (default): edit the previous screen message in place; falls back
        to sending when the edit fails (message too old, deleted, ...).
    SEND: always send a new message.
    DELETE_AND_SEND: delete the old message, then send a new one.
    """

    EDIT = "edit"
    SEND = "send"
    DELETE_AND_SEND = "delete_and_send"


@dataclass(frozen=True, slots=True)
class NavigationSettings:
    """Engine behaviour switches.

    Attributes:
        show_mode: Update-vs-send policy for screen transitions.
        back_token: Callback token of the automatic back button.
        screen_prefix: ``<prefix><screen id>`` callbacks navigate directly.
        refresh_after_callback: Re-render the screen in place after a handled
            callback that did not navigate away.
        resend_after_text: Re-send the screen as a new message after a
            handled text input (the user's message now sits below it).
        start_command: Command that resets the chat and opens the default screen.
    """

    show_mode: ShowMode = ShowMode.EDIT
    back_token: str = "back"
    screen_prefix: str = "screen:"
    refresh_after_callback: bool = True
    resend_after_text: bool = True
    start_command: str = "start"


DEFAULT_SETTINGS = NavigationSettings()


# ═══════════════════════════════════════════════════════════════════════════════
# Rendering
# ═══════════════════════════════════════════════════════════════════════════════


def render_screen(
    screen: Screen,
    theme: UITheme = DEFAULT_THEME,
    back_token: str = DEFAULT_SETTINGS.back_token,
) -> RenderedScreen:
    """Render a screen's current content into text + keyboard rows.

    The back button gets its own last row when the screen has a parent
    and allows back navigation.
    """
    content = screen.content
    text = content.text
    if screen.title:
        text = theme.layout.title_format.format(title=screen.title, text=content.text)
    if not text.strip():
        text = theme.layout.empty_text

    rows = layout_rows(content.buttons, content.buttons_per_row)
    if screen.parent_id is not None and screen.allow_back:
        rows.append([Button(screen.back_label or theme.nav.back, back_token)])

    return RenderedScreen(
        screen_id=screen.id,
        text=text,
        rows=tuple(tuple(row) for row in rows),
        parse_mode=content.parse_mode,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Controller
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class NavigationController:
    """Drives screen transitions for every chat.

    Owns the "last rendered message per chat" association used for the
    edit-vs-send decision.
    """

    registry: ScreenRegistry
    store: StateStorage
    transport: Transport
    theme: UITheme = field(default_factory=UITheme)
    settings: NavigationSettings = field(default_factory=NavigationSettings)
    _last_message: dict[int, int] = field(default_factory=lambda: dict[int, int]())

    def render(self, screen: Screen) -> RenderedScreen:
        return render_screen(screen, self.theme, self.settings.back_token)

    async def navigate_to(self, chat_id: int, screen_id: str) -> int:
        """Show ``screen_id`` in the chat and make it the active screen.

        Returns the id of the message now showing the screen.
        Raises ScreenNotFoundError, TransportError.
        """
        screen = self.registry.resolve(screen_id)
        rendered = self.render(screen)
        message_id = await self._present(chat_id, rendered)
        self._last_message[chat_id] = message_id
        previous = self.store.get_active_screen(chat_id)
        self.store.set_active_screen(chat_id, screen.id)
        logger.info("chat %s: %s -> %s", chat_id, previous, screen.id)
        return message_id

    async def refresh(self, chat_id: int, screen_id: str, *, resend: bool = False) -> int:
        """Re-render the active screen's (possibly mutated) content.

        Navigation state is untouched. Raises ScreenMismatchError when
        ``screen_id`` is not the chat's active screen.
        """
        active = self.store.get_active_screen(chat_id)
        if active != screen_id:
            raise ScreenMismatchError(chat_id, screen_id, active)
        screen = self.registry.resolve(screen_id)
        message_id = await self._present(chat_id, self.render(screen), resend=resend)
        self._last_message[chat_id] = message_id
        return message_id

    async def go_back(self, chat_id: int) -> int:
        """Navigate to the active screen's parent. Raises NoParentError."""
        active = self.store.get_active_screen(chat_id)
        if active is None:
            raise NoParentError(chat_id, None)
        screen = self.registry.resolve(active)
        if screen.parent_id is None:
            raise NoParentError(chat_id, screen.id)
        return await self.navigate_to(chat_id, screen.parent_id)

    async def navigate_to_default(self, chat_id: int) -> int:
        default = self.registry.default
        if default is None:
            raise ScreenNotFoundError(None)
        return await self.navigate_to(chat_id, default.id)

    def last_message_id(self, chat_id: int) -> int | None:
        return self._last_message.get(chat_id)

    def forget(self, chat_id: int) -> None:
        """Stop tracking the chat's screen message; the next render sends anew."""
        self._last_message.pop(chat_id, None)

    async def _present(
        self, chat_id: int, rendered: RenderedScreen, *, resend: bool = False,
    ) -> int:
        last = self._last_message.get(chat_id)
        mode = self.settings.show_mode
        if last is not None:
            if mode is ShowMode.EDIT and not resend:
                if await self.transport.edit_message(chat_id, last, rendered):
                    return last
                logger.warning(
                    "chat %s: editing message %s failed, sending %s as new message",
                    chat_id, last, rendered.screen_id,
                )
            elif mode is ShowMode.DELETE_AND_SEND:
                await self.transport.delete_message(chat_id, last)
        return await self.transport.send_message(chat_id, rendered)


__all__ = (
    "DEFAULT_SETTINGS",
    "NavigationController",
    "NavigationSettings",
    "ShowMode",
    "render_screen",
)
