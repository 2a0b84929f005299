"""UITheme — configurable UI strings for rendered screens.

Labels and the title layout live in frozen dataclasses with sensible
defaults. Override just what you need:

    from telenav.uilib import UITheme, NavUI

    theme = UITheme(nav=NavUI(back="⬅️ Назад"))
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class NavUI:
    """Navigation labels."""

    back: str = "⬅️ Back"


@dataclass(frozen=True, slots=True)
class LayoutUI:
    """How a screen's title and text are joined.

    ``title_format`` receives ``title`` and ``text``; it is only used when
    the screen has a non-empty title.
    """

    title_format: str = "{title}\n\n{text}"
    empty_text: str = "…"


@dataclass(frozen=True, slots=True)
class UITheme:
    """Top-level theme container.

        theme = UITheme(layout=LayoutUI(title_format="<b>{title}</b>\\n{text}"))
    """

    nav: NavUI = field(default_factory=NavUI)
    layout: LayoutUI = field(default_factory=LayoutUI)


DEFAULT_THEME = UITheme()


__all__ = (
    "DEFAULT_THEME",
    "LayoutUI",
    "NavUI",
    "UITheme",
)
