"""Tests for rendering and the NavigationController."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeTransport
from telenav.errors import (
    NoParentError,
    ScreenMismatchError,
    ScreenNotFoundError,
    TransportError,
)
from telenav.navigation import (
    NavigationController,
    NavigationSettings,
    ShowMode,
    render_screen,
)
from telenav.registry import ScreenRegistry
from telenav.screen import Button, Message, Screen
from telenav.state import MemoryStateStore
from telenav.uilib.theme import LayoutUI, NavUI, UITheme


def _controller(
    transport: FakeTransport,
    settings: NavigationSettings | None = None,
) -> NavigationController:
    registry = ScreenRegistry()
    main = registry.register(
        Screen("Main menu", Message("Pick one:", [Button("Help", "go_help")]), id="main"),
        is_default=True,
    )
    registry.register(Screen("Help", Message("Ask away."), id="help", parent_id=main.id))
    return NavigationController(
        registry=registry,
        store=MemoryStateStore(),
        transport=transport,
        settings=settings or NavigationSettings(),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# render_screen
# ═══════════════════════════════════════════════════════════════════════════════


class TestRenderScreen:
    def test_title_and_text(self) -> None:
        r = render_screen(Screen("Main", Message("Body"), id="main"))
        assert r.text == "Main\n\nBody"
        assert r.screen_id == "main"

    def test_no_title(self) -> None:
        assert render_screen(Screen("", Message("Body"))).text == "Body"

    def test_empty_text_placeholder(self) -> None:
        assert render_screen(Screen("", Message(""))).text == "…"

    def test_rows(self) -> None:
        buttons = [Button(str(i), f"b{i}") for i in range(5)]
        r = render_screen(Screen("", Message("x", buttons, buttons_per_row=2)))
        assert [len(row) for row in r.rows] == [2, 2, 1]
        assert [b.text for b in r.buttons] == ["0", "1", "2", "3", "4"]

    def test_back_button_for_child(self) -> None:
        r = render_screen(Screen("Help", Message("x", [Button("A", "a")]), parent_id="main"))
        assert r.rows[-1] == (Button("⬅️ Back", "back"),)
        assert len(r.rows) == 2

    def test_no_back_button_for_root(self) -> None:
        r = render_screen(Screen("Main", Message("x", [Button("A", "a")])))
        assert all(b.callback_data != "back" for b in r.buttons)

    def test_back_disabled(self) -> None:
        s = Screen("Help", Message("x"), parent_id="main").allow_back_navigation(False)
        assert render_screen(s).rows == ()

    def test_back_label_and_token(self) -> None:
        s = Screen("Help", Message("x"), parent_id="main", back_label="Return")
        r = render_screen(s, back_token="nav:back")
        assert r.buttons == [Button("Return", "nav:back")]

    def test_theme(self) -> None:
        theme = UITheme(nav=NavUI(back="Назад"), layout=LayoutUI(title_format="<b>{title}</b>\n{text}"))
        r = render_screen(Screen("T", Message("x"), parent_id="p"), theme)
        assert r.text == "<b>T</b>\nx"
        assert r.buttons[0].text == "Назад"

    def test_parse_mode(self) -> None:
        r = render_screen(Screen("T", Message("x", parse_mode="HTML")))
        assert r.parse_mode == "HTML"


# ═══════════════════════════════════════════════════════════════════════════════
# NavigationController
# ═══════════════════════════════════════════════════════════════════════════════


class TestNavigateTo:
    def test_first_navigation_sends(self, transport: FakeTransport) -> None:
        nav = _controller(transport)
        message_id = asyncio.run(nav.navigate_to(1, "main"))
        assert transport.kinds == ["send"]
        assert nav.store.get_active_screen(1) == "main"
        assert nav.last_message_id(1) == message_id

    def test_second_navigation_edits(self, transport: FakeTransport) -> None:
        nav = _controller(transport)

        async def main() -> None:
            first = await nav.navigate_to(1, "main")
            second = await nav.navigate_to(1, "help")
            assert first == second

        asyncio.run(main())
        assert transport.kinds == ["send", "edit"]
        assert transport.last.screen_id == "help"
        assert nav.store.get_active_screen(1) == "help"

    def test_edit_failure_falls_back_to_send(self, transport: FakeTransport) -> None:
        nav = _controller(transport)
        asyncio.run(nav.navigate_to(1, "main"))
        transport.fail_edit = True
        asyncio.run(nav.navigate_to(1, "help"))
        assert transport.kinds == ["send", "edit", "send"]
        assert nav.store.get_active_screen(1) == "help"

    def test_send_mode(self, transport: FakeTransport) -> None:
        nav = _controller(transport, NavigationSettings(show_mode=ShowMode.SEND))
        asyncio.run(nav.navigate_to(1, "main"))
        asyncio.run(nav.navigate_to(1, "help"))
        assert transport.kinds == ["send", "send"]

    def test_delete_and_send_mode(self, transport: FakeTransport) -> None:
        nav = _controller(transport, NavigationSettings(show_mode=ShowMode.DELETE_AND_SEND))
        first = asyncio.run(nav.navigate_to(1, "main"))
        asyncio.run(nav.navigate_to(1, "help"))
        assert transport.kinds == ["send", "delete", "send"]
        assert transport.calls[1][2] == first

    def test_unknown_screen(self, transport: FakeTransport) -> None:
        nav = _controller(transport)
        with pytest.raises(ScreenNotFoundError):
            asyncio.run(nav.navigate_to(1, "ghost"))
        assert transport.calls == []
        assert nav.store.get_active_screen(1) is None

    def test_send_failure_keeps_previous_state(self, transport: FakeTransport) -> None:
        nav = _controller(transport, NavigationSettings(show_mode=ShowMode.SEND))
        asyncio.run(nav.navigate_to(1, "main"))
        transport.fail_send = True
        with pytest.raises(TransportError):
            asyncio.run(nav.navigate_to(1, "help"))
        assert nav.store.get_active_screen(1) == "main"

    def test_forget_sends_new_message(self, transport: FakeTransport) -> None:
        nav = _controller(transport)
        asyncio.run(nav.navigate_to(1, "main"))
        nav.forget(1)
        asyncio.run(nav.navigate_to(1, "main"))
        assert transport.kinds == ["send", "send"]

    def test_navigate_to_default(self, transport: FakeTransport) -> None:
        nav = _controller(transport)
        asyncio.run(nav.navigate_to_default(1))
        assert nav.store.get_active_screen(1) == "main"

    def test_navigate_to_default_without_default(self, transport: FakeTransport) -> None:
        nav = NavigationController(ScreenRegistry(), MemoryStateStore(), transport)
        with pytest.raises(ScreenNotFoundError):
            asyncio.run(nav.navigate_to_default(1))


class TestGoBack:
    def test_back_to_parent(self, transport: FakeTransport) -> None:
        nav = _controller(transport)

        async def main() -> None:
            await nav.navigate_to(1, "main")
            await nav.navigate_to(1, "help")
            await nav.go_back(1)

        asyncio.run(main())
        assert nav.store.get_active_screen(1) == "main"
        assert transport.last.screen_id == "main"

    def test_root_has_no_parent(self, transport: FakeTransport) -> None:
        nav = _controller(transport)
        asyncio.run(nav.navigate_to(1, "main"))
        with pytest.raises(NoParentError, match="no parent"):
            asyncio.run(nav.go_back(1))
        assert nav.store.get_active_screen(1) == "main"

    def test_no_active_screen(self, transport: FakeTransport) -> None:
        nav = _controller(transport)
        with pytest.raises(NoParentError):
            asyncio.run(nav.go_back(1))


class TestRefresh:
    def test_refresh_shows_mutated_content(self, transport: FakeTransport) -> None:
        nav = _controller(transport)
        asyncio.run(nav.navigate_to(1, "main"))
        nav.registry.resolve("main").with_text("Counter: 1")
        asyncio.run(nav.refresh(1, "main"))
        assert transport.kinds == ["send", "edit"]
        assert "Counter: 1" in transport.last.text
        assert nav.store.get_active_screen(1) == "main"

    def test_refresh_resend(self, transport: FakeTransport) -> None:
        nav = _controller(transport)
        asyncio.run(nav.navigate_to(1, "main"))
        asyncio.run(nav.refresh(1, "main", resend=True))
        assert transport.kinds == ["send", "send"]

    def test_refresh_non_active_screen(self, transport: FakeTransport) -> None:
        nav = _controller(transport)
        asyncio.run(nav.navigate_to(1, "main"))
        with pytest.raises(ScreenMismatchError):
            asyncio.run(nav.refresh(1, "help"))
        assert transport.kinds == ["send"]
