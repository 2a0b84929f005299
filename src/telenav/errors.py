"""Error taxonomy for the navigation engine.

Three families:

- ConfigurationError: raised eagerly at registration (duplicate ids,
  cyclic parent links, a second default screen). Also a ValueError.
- ResolutionError: unknown screen / callback / input handler, no parent
  to go back to. Also a LookupError. ScreenApp turns these into
  ``Unhandled`` results instead of letting them escape event handling.
- TransportError: the platform refused to send a message.
"""

from __future__ import annotations


class NavigationError(Exception):
    """Base class for every error raised by telenav."""


# ═══════════════════════════════════════════════════════════════════════════════
# Configuration
# ═══════════════════════════════════════════════════════════════════════════════


class ConfigurationError(NavigationError, ValueError):
    """Screen tree was declared inconsistently."""


class DuplicateScreenError(ConfigurationError):
    """Raised when a screen id is registered twice."""

    def __init__(self, screen_id: str) -> None:
        super().__init__(f"Screen '{screen_id}' already registered")
        self.screen_id = screen_id


class MultipleDefaultsError(ConfigurationError):
    """Raised when a second screen is registered as default."""

    def __init__(self, existing: str, candidate: str) -> None:
        super().__init__(
            f"Default screen already set to '{existing}', "
            f"refusing to register '{candidate}' as default"
        )
        self.existing = existing
        self.candidate = candidate


class CyclicNavigationError(ConfigurationError):
    """Raised when a parent link would make a screen its own ancestor."""

    def __init__(self, child: str, parent: str) -> None:
        super().__init__(
            f"Setting '{parent}' as parent of '{child}' creates a navigation cycle"
        )
        self.child = child
        self.parent = parent


# ═══════════════════════════════════════════════════════════════════════════════
# Resolution
# ═══════════════════════════════════════════════════════════════════════════════


class ResolutionError(NavigationError, LookupError):
    """Something referenced at dispatch time is not registered."""


class ScreenNotFoundError(ResolutionError):
    def __init__(self, screen_id: str | None) -> None:
        if screen_id is None:
            super().__init__("No screen to resolve")
        else:
            super().__init__(f"Screen not found: '{screen_id}'")
        self.screen_id = screen_id


class UnknownCallbackError(ResolutionError):
    def __init__(self, screen_id: str, token: str) -> None:
        super().__init__(f"No callback '{token}' registered on screen '{screen_id}'")
        self.screen_id = screen_id
        self.token = token


class UnknownInputHandlerError(ResolutionError):
    def __init__(self, screen_id: str | None, tag: str) -> None:
        where = f"screen '{screen_id}'" if screen_id is not None else "no active screen"
        super().__init__(f"No text handler for '{tag}' ({where})")
        self.screen_id = screen_id
        self.tag = tag


class NoParentError(ResolutionError):
    def __init__(self, chat_id: int, screen_id: str | None) -> None:
        if screen_id is None:
            super().__init__(f"Chat {chat_id} has no active screen to go back from")
        else:
            super().__init__(f"Screen '{screen_id}' has no parent")
        self.chat_id = chat_id
        self.screen_id = screen_id


class ScreenMismatchError(ResolutionError):
    def __init__(self, chat_id: int, expected: str, active: str | None) -> None:
        super().__init__(
            f"Cannot refresh '{expected}' for chat {chat_id}: active screen is {active!r}"
        )
        self.chat_id = chat_id
        self.expected = expected
        self.active = active


# ═══════════════════════════════════════════════════════════════════════════════
# Transport
# ═══════════════════════════════════════════════════════════════════════════════


class TransportError(NavigationError):
    """Platform rejected a send request."""

    def __init__(self, chat_id: int, detail: object) -> None:
        super().__init__(f"Failed to send message to chat {chat_id}: {detail}")
        self.chat_id = chat_id
        self.detail = detail


# ═══════════════════════════════════════════════════════════════════════════════
# Lanes
# ═══════════════════════════════════════════════════════════════════════════════


class DispatchCancelled(NavigationError):
    """A lane job was cancelled through its CancelToken (or its caller went away)."""

    def __init__(self, chat_id: int) -> None:
        super().__init__(f"Dispatch for chat {chat_id} was cancelled")
        self.chat_id = chat_id


__all__ = (
    "ConfigurationError",
    "CyclicNavigationError",
    "DispatchCancelled",
    "DuplicateScreenError",
    "MultipleDefaultsError",
    "NavigationError",
    "NoParentError",
    "ResolutionError",
    "ScreenMismatchError",
    "ScreenNotFoundError",
    "TransportError",
    "UnknownCallbackError",
    "UnknownInputHandlerError",
)
