"""Natural ordering for process numbers and other dotted identifiers.

"OE-4.2" sorts before "OE-4.10" because digit runs compare by value.

Usage
-----
    from app.utils.natural_sort import natural_compare, natural_sorted

    natural_compare("OE-4.2", "OE-4.10")        # -> negative
    natural_sorted(processes, key=lambda p: p["process_number"])
"""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")

_TOKEN_RE = re.compile(r"\d+|\D+")


def tokenize(value: str | None) -> list[str]:
    """Split *value* into alternating digit / non-digit runs."""
    return _TOKEN_RE.findall(value or "")


def _is_numeric(token: str) -> bool:
    return token.isascii() and token.isdigit()


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def natural_compare(a: str | None, b: str | None) -> int:
    """Compare two identifiers token by token.

    Returns a negative, zero or positive int.  Missing trailing tokens are
    the empty string, which sorts before any other token, so "OE-4" comes
    before "OE-4.1".  Case is significant.  When every token pair is equal
    by value ("a01" vs "a1") the raw strings decide.
    """
    a = a or ""
    b = b or ""
    tokens_a = tokenize(a)
    tokens_b = tokenize(b)

    for i in range(max(len(tokens_a), len(tokens_b))):
        ta = tokens_a[i] if i < len(tokens_a) else ""
        tb = tokens_b[i] if i < len(tokens_b) else ""
        if _is_numeric(ta) and _is_numeric(tb):
            result = _cmp(int(ta), int(tb))
        else:
            result = _cmp(ta, tb)
        if result:
            return result

    return _cmp(a, b)


natural_sort_key = cmp_to_key(natural_compare)


def natural_sorted(items: Iterable[T], key: Callable[[T], str | None] | None = None) -> list[T]:
    """Return a new list ordered naturally by *key* (stable)."""
    if key is None:
        return sorted(items, key=natural_sort_key)
    return sorted(items, key=lambda item: natural_sort_key(key(item)))
