"""Parsing of duration strings such as ``"1m30s"`` or ``"250ms"``."""

from __future__ import annotations

import re
from datetime import timedelta

_UNITS: dict[str, int] = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,  # micro sign
    "\u03bcs": 1_000,  # Greek mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_NUMBER = re.compile(r"([0-9]*)(?:\.([0-9]*))?")
_UNIT = re.compile(r"[^0-9.]*")
_MAX_NANOSECONDS = (1 << 63) - 1


def _parse_nanoseconds(value: str) -> int:
    """Return the number of nanoseconds that *value* describes."""
    text = value
    negative = False
    if text and text[0] in "+-":
        negative = text[0] == "-"
        text = text[1:]

    if text == "0":
        return 0
    if not text:
        raise ValueError(f'invalid duration "{value}"')

    limit = _MAX_NANOSECONDS + 1 if negative else _MAX_NANOSECONDS
    total = 0
    while text:
        if not (text[0] == "." or text[0].isascii() and text[0].isdigit()):
            raise ValueError(f'invalid duration "{value}"')

        number = _NUMBER.match(text)
        whole, fraction = number.group(1), number.group(2) or ""
        if not whole and not fraction:
            raise ValueError(f'invalid duration "{value}"')
        text = text[number.end():]

        unit = _UNIT.match(text).group()
        if not unit:
            raise ValueError(f'missing unit in duration "{value}"')
        text = text[len(unit):]
        scale = _UNITS.get(unit)
        if scale is None:
            raise ValueError(f'unknown unit "{unit}" in duration "{value}"')

        amount = int(whole or "0") * scale
        if fraction:
            amount += int(fraction) * scale // 10 ** len(fraction)
        total += amount
        if total > limit:
            raise ValueError(f'invalid duration "{value}"')

    return -total if negative else total


def parse_duration(value: str) -> timedelta:
    """Parse a duration made of decimal numbers with unit suffixes.

    Valid units are ``ns``, ``us`` (or ``µs``), ``ms``, ``s``, ``m`` and ``h``.
    A leading sign is allowed. Raises ``ValueError`` on malformed input.
    """
    nanoseconds = _parse_nanoseconds(value)
    sign = -1 if nanoseconds < 0 else 1
    return timedelta(microseconds=sign * (abs(nanoseconds) // 1000))