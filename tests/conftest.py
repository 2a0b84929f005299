"""Shared fixtures: a recording in-memory transport and a ready ScreenApp."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from telenav.app import ScreenApp
from telenav.errors import TransportError
from telenav.transport import RenderedScreen


@dataclass
class FakeTransport:
    """Records every call; message ids count up from 100."""

    fail_send: bool = False
    fail_edit: bool = False
    calls: list[tuple[str, int, int | None, RenderedScreen | None]] = field(default_factory=list)
    _next_id: int = 100

    async def send_message(self, chat_id: int, rendered: RenderedScreen) -> int:
        if self.fail_send:
            raise TransportError(chat_id, "chat not found")
        self._next_id += 1
        self.calls.append(("send", chat_id, self._next_id, rendered))
        return self._next_id

    async def edit_message(
        self, chat_id: int, message_id: int, rendered: RenderedScreen,
    ) -> bool:
        self.calls.append(("edit", chat_id, message_id, rendered))
        return not self.fail_edit

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        self.calls.append(("delete", chat_id, message_id, None))
        return True

    @property
    def kinds(self) -> list[str]:
        return [c[0] for c in self.calls]

    @property
    def last(self) -> RenderedScreen:
        for call in reversed(self.calls):
            if call[3] is not None:
                return call[3]
        raise AssertionError("nothing rendered")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def app(transport: FakeTransport) -> ScreenApp:
    return ScreenApp(transport)
