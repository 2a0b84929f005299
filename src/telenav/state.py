"""Per-chat conversation state: active screen, awaited input, value bag.

    store = MemoryStateStore()                  # in-memory default
    ScreenApp(transport, store=my_redis_store)  # custom backend

The store itself is not locked; ScreenApp runs every operation for a
chat on that chat's lane (see lanes.py), which serializes access.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol as TypingProtocol


@dataclass(slots=True)
class ConversationState:
    """State record for a single chat.

    At most one active screen and one awaited-input tag at any time;
    setting either overwrites the previous value.
    """

    active_screen: str | None = None
    awaited_input: str | None = None
    values: dict[str, object] = field(default_factory=lambda: dict[str, object]())


class StateStorage(TypingProtocol):
    """Protocol for conversation state backends.

    Keys are chat ids. Values stored with ``set_value`` are opaque to
    the engine.
    """

    def get_active_screen(self, chat_id: int) -> str | None: ...
    def set_active_screen(self, chat_id: int, screen_id: str) -> None: ...
    def get_awaited_input(self, chat_id: int) -> str | None: ...
    def set_awaited_input(self, chat_id: int, tag: str) -> None: ...
    def clear_awaited_input(self, chat_id: int) -> None: ...
    def get_value(self, chat_id: int, key: str, default: object = None) -> object: ...
    def set_value(self, chat_id: int, key: str, value: object) -> None: ...
    def remove_value(self, chat_id: int, key: str) -> bool: ...
    def values(self, chat_id: int) -> dict[str, object]: ...
    def reset(self, chat_id: int) -> None: ...
    def forget(self, chat_id: int) -> None: ...


class MemoryStateStore:
    """In-memory StateStorage (default). Lives for the process lifetime.

    Records are created lazily on first write; reads never create one.
    """

    def __init__(self) -> None:
        self._data: dict[int, ConversationState] = {}

    def _record(self, chat_id: int) -> ConversationState:
        state = self._data.get(chat_id)
        if state is None:
            state = self._data[chat_id] = ConversationState()
        return state

    def get(self, chat_id: int) -> ConversationState | None:
        """Raw record for ``chat_id`` (None before the first write)."""
        return self._data.get(chat_id)

    # --- active screen ---

    def get_active_screen(self, chat_id: int) -> str | None:
        state = self._data.get(chat_id)
        return state.active_screen if state is not None else None

    def set_active_screen(self, chat_id: int, screen_id: str) -> None:
        self._record(chat_id).active_screen = screen_id

    # --- awaited input ---

    def get_awaited_input(self, chat_id: int) -> str | None:
        state = self._data.get(chat_id)
        return state.awaited_input if state is not None else None

    def set_awaited_input(self, chat_id: int, tag: str) -> None:
        self._record(chat_id).awaited_input = tag

    def clear_awaited_input(self, chat_id: int) -> None:
        state = self._data.get(chat_id)
        if state is not None:
            state.awaited_input = None

    def is_awaiting(self, chat_id: int, tag: str) -> bool:
        return self.get_awaited_input(chat_id) == tag

    # --- value bag ---

    def get_value(self, chat_id: int, key: str, default: object = None) -> object:
        state = self._data.get(chat_id)
        if state is None:
            return default
        return state.values.get(key, default)

    def set_value(self, chat_id: int, key: str, value: object) -> None:
        self._record(chat_id).values[key] = value

    def remove_value(self, chat_id: int, key: str) -> bool:
        state = self._data.get(chat_id)
        if state is None or key not in state.values:
            return False
        del state.values[key]
        return True

    def values(self, chat_id: int) -> dict[str, object]:
        """Copy of the chat's value bag."""
        state = self._data.get(chat_id)
        return dict(state.values) if state is not None else {}

    # --- lifecycle ---

    def reset(self, chat_id: int) -> None:
        """Clear awaited input and values; keep the active screen."""
        state = self._data.get(chat_id)
        if state is not None:
            state.awaited_input = None
            state.values.clear()

    def forget(self, chat_id: int) -> None:
        """Drop the chat's record entirely."""
        self._data.pop(chat_id, None)

    def __contains__(self, chat_id: object) -> bool:
        return chat_id in self._data

    def __len__(self) -> int:
        return len(self._data)


__all__ = (
    "ConversationState",
    "MemoryStateStore",
    "StateStorage",
)
