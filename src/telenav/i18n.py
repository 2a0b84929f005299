"""Localizer — key -> string tables per locale.

Constructed explicitly and handed to ScreenApp; there is no global
instance.

    i18n = Localizer({"en": {"hello": "Hi, {}!"}, "de": {"hello": "Hallo, {}!"}})
    i18n.get("hello", ctx.first_name, locale=ctx.language_code)

Lookup order: exact locale ("pt-br"), its base language ("pt"), the
default locale, then the key itself.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Localizer:
    tables: dict[str, dict[str, str]] = field(default_factory=lambda: dict[str, dict[str, str]]())
    default_locale: str = "en"

    def __post_init__(self) -> None:
        self.tables = {_norm(loc): dict(t) for loc, t in self.tables.items()}
        self.default_locale = _norm(self.default_locale)

    def add(self, locale: str, table: Mapping[str, str]) -> Localizer:
        """Merge ``table`` into ``locale`` (later keys win)."""
        self.tables.setdefault(_norm(locale), {}).update(table)
        return self

    @property
    def locales(self) -> list[str]:
        return sorted(self.tables)

    def lookup(self, key: str, locale: str | None = None) -> str | None:
        """Raw template for ``key``, or None when no table has it."""
        for candidate in self._chain(locale):
            table = self.tables.get(candidate)
            if table is not None and key in table:
                return table[key]
        return None

    def get(self, key: str, *args: object, locale: str | None = None) -> str:
        """Localized string for ``key``; the key itself when missing."""
        template = self.lookup(key, locale)
        if template is None:
            return key
        if not args:
            return template
        try:
            return template.format(*args)
        except (IndexError, KeyError, ValueError):
            logger.warning("Bad format arguments for %r (%s): %r", key, locale, args)
            return template

    def _chain(self, locale: str | None) -> list[str]:
        chain: list[str] = []
        if locale:
            loc = _norm(locale)
            chain.append(loc)
            base = loc.split("-", 1)[0]
            if base != loc:
                chain.append(base)
        if self.default_locale not in chain:
            chain.append(self.default_locale)
        return chain


def _norm(locale: str) -> str:
    return locale.replace("_", "-").lower()


__all__ = ("Localizer",)
