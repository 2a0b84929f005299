"""uilib — configurable UI strings and keyboard builders for screens."""

from .theme import (
    NavUI,
    LayoutUI,
    UITheme,
    DEFAULT_THEME,
)

from .keyboard import (
    build_column_grid,
    build_screen_keyboard,
    layout_rows,
)

__all__ = (
    "NavUI",
    "LayoutUI",
    "UITheme",
    "DEFAULT_THEME",
    "build_column_grid",
    "build_screen_keyboard",
    "layout_rows",
)
