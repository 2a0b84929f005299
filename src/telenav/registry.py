"""Screen registry: screens by id plus the parent/child navigation tree.

Append-only. Validates eagerly: a duplicate id, a second default or a
cyclic parent link is an immediate error at registration time.
Read-only once dispatching starts, so no locking.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Sequence

from telenav.errors import (
    CyclicNavigationError,
    DuplicateScreenError,
    MultipleDefaultsError,
    ScreenNotFoundError,
)
from telenav.screen import Screen


@dataclass
class ScreenRegistry:
    """Registered screens, keyed by id, and the default entry screen.

    Default policy: ``register(..., is_default=True)`` twice raises
    MultipleDefaultsError. Replacing the default must go through
    ``set_default`` explicitly.
    """

    _screens: dict[str, Screen] = field(default_factory=lambda: dict[str, Screen]())
    _default_id: str | None = None

    def register(self, screen: Screen, is_default: bool = False) -> Screen:
        """Register a screen. Raises DuplicateScreenError / MultipleDefaultsError."""
        if screen.id in self._screens:
            raise DuplicateScreenError(screen.id)
        if is_default and self._default_id is not None:
            raise MultipleDefaultsError(self._default_id, screen.id)
        if screen.parent_id is not None:
            self._check_cycle(screen.id, screen.parent_id)
            if screen.parent_id not in self._screens:
                warnings.warn(
                    f"Screen '{screen.id}' declares parent '{screen.parent_id}' "
                    "which is not registered yet. Back navigation fails until it is.",
                    stacklevel=2,
                )
        self._screens[screen.id] = screen
        if is_default:
            self._default_id = screen.id
        return screen

    def set_default(self, screen: Screen) -> None:
        """Make ``screen`` the entry point, registering it if needed."""
        if screen.id not in self._screens:
            self.register(screen)
        elif self._screens[screen.id] is not screen:
            raise DuplicateScreenError(screen.id)
        self._default_id = screen.id

    def resolve(self, screen_id: str) -> Screen:
        """Screen registered under ``screen_id``. Raises ScreenNotFoundError."""
        try:
            return self._screens[screen_id]
        except KeyError:
            raise ScreenNotFoundError(screen_id) from None

    def set_parent(self, child: Screen | str, parent: Screen | str) -> None:
        """Link ``child`` -> ``parent``. Raises CyclicNavigationError.

        The tree is left unchanged when the link is rejected.
        """
        child_screen = self.resolve(_id_of(child))
        parent_screen = self.resolve(_id_of(parent))
        self._check_cycle(child_screen.id, parent_screen.id)
        child_screen.parent_id = parent_screen.id

    def parent_of(self, screen: Screen | str) -> Screen | None:
        """Registered parent of ``screen``, or None for a root."""
        s = screen if isinstance(screen, Screen) else self.resolve(screen)
        if s.parent_id is None:
            return None
        return self.resolve(s.parent_id)

    def ancestors(self, screen: Screen | str) -> list[Screen]:
        """Parent chain from the direct parent up to the root."""
        chain: list[Screen] = []
        current = self.parent_of(screen)
        while current is not None:
            chain.append(current)
            current = self.parent_of(current)
        return chain

    def _check_cycle(self, child_id: str, parent_id: str) -> None:
        # Walk ancestors of the proposed parent; bounded by registry size
        # so a corrupted chain cannot loop forever.
        current: str | None = parent_id
        for _ in range(len(self._screens) + 2):
            if current is None:
                return
            if current == child_id:
                raise CyclicNavigationError(child_id, parent_id)
            screen = self._screens.get(current)
            current = screen.parent_id if screen is not None else None
        raise CyclicNavigationError(child_id, parent_id)

    @property
    def default(self) -> Screen | None:
        if self._default_id is None:
            return None
        return self._screens[self._default_id]

    @property
    def screens(self) -> Sequence[Screen]:
        """All registered screens, in registration order."""
        return list(self._screens.values())

    def __contains__(self, screen_id: object) -> bool:
        return screen_id in self._screens

    def __len__(self) -> int:
        return len(self._screens)


def _id_of(screen: Screen | str) -> str:
    return screen if isinstance(screen, str) else screen.id


__all__ = ("ScreenRegistry",)
