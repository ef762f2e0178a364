"""Small text helpers shared by the renderer and the bot messages."""
from __future__ import annotations


def plural_ru(n: int, zero: str, one: str, two: str) -> str:
    """Pick the Russian numeral form agreeing with ``n``.

    ``zero`` is the genitive plural (5 задач), ``one`` the nominative singular
    (1 задача), ``two`` the genitive singular (2 задачи).
    """
    if 11 <= n % 100 <= 20:
        return zero
    last = n % 10
    if last == 1:
        return one
    if 2 <= last <= 4:
        return two
    return zero


def escape_markup(text: str, symbols: str) -> str:
    """Prefix every character of ``symbols`` found in ``text`` with a backslash."""
    reserved = set(symbols)
    return "".join("\\" + c if c in reserved else c for c in text)
