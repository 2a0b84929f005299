"""Keyboard helpers: button grid layout and telegrinder inline keyboards."""

from __future__ import annotations

from collections.abc import Sequence

from telegrinder.tools.keyboard import InlineButton, InlineKeyboard

from telenav.screen import Button


def layout_rows(
    buttons: Sequence[Button],
    per_row: int,
) -> list[list[Button]]:
    """Split buttons into rows of ``per_row``, keeping insertion order.

    Args:
        buttons: Buttons in display order.
        per_row: Buttons per row before wrapping (>= 1).
    """
    if per_row < 1:
        raise ValueError(f"per_row must be >= 1, got {per_row}")
    return [list(buttons[i:i + per_row]) for i in range(0, len(buttons), per_row)]


def build_column_grid(
    kb: InlineKeyboard,
    rows: Sequence[Sequence[Button]],
) -> None:
    """Add pre-laid-out rows to keyboard, one keyboard row each."""
    for row in rows:
        if not row:
            continue
        for button in row:
            if button.url is not None:
                kb.add(InlineButton(text=button.text, url=button.url))
            else:
                kb.add(InlineButton(text=button.text, callback_data=button.callback_data))
        kb.row()


def build_screen_keyboard(rows: Sequence[Sequence[Button]]) -> InlineKeyboard | None:
    """Inline keyboard for rendered rows, or None when there are no buttons."""
    if not any(rows):
        return None
    kb = InlineKeyboard()
    build_column_grid(kb, rows)
    return kb


__all__ = (
    "build_column_grid",
    "build_screen_keyboard",
    "layout_rows",
)
