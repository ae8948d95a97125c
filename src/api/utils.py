from __future__ import annotations

import re
from typing import Optional

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_HEX_COLOR = re.compile(r"^(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


# PUBLIC_INTERFACE
def clamp(value: int, low: int, high: int) -> int:
    """Clamp value into the inclusive range [low, high]."""
    return min(max(value, low), high)


# PUBLIC_INTERFACE
def to_int(value: Optional[object], default: int = 0) -> int:
    """
    Parse the leading integer of a query value.

    Mirrors how browsers and email tooling tend to build query strings:
    '12px' -> 12, ' 7' -> 7, 'abc' -> default, None -> default.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    m = _LEADING_INT.match(str(value))
    if not m:
        return default
    return int(m.group(1))


# PUBLIC_INTERFACE
def normalize_hex_color(value: Optional[str], default: str) -> str:
    """
    Normalize a hex color given without '#' (a leading '#' is tolerated) into
    '#RRGGBB' form. Returns the default for anything that isn't 3, 6 or 8 hex digits.
    """
    if value is None:
        return default
    s = str(value).strip().lstrip("#")
    if not _HEX_COLOR.match(s):
        return default
    return f"#{s.upper()}"
