from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union


@dataclass(frozen=True)
class AbsoluteEnd:
    """Explicit end instant (?end=), always an aware UTC datetime."""

    end: datetime


@dataclass(frozen=True)
class LocalEnd:
    """
    Wall-clock end (?end_local=) paired with an IANA zone (?tz=).

    `local` is naive; it only denotes an instant once interpreted in `zone`.
    """

    local: datetime
    zone: str


@dataclass(frozen=True)
class StartPlusTTL:
    """Start instant (?start=) plus non-negative ttl_* offsets."""

    start: datetime
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0


@dataclass(frozen=True)
class DefaultEnd:
    """No recognized input: evergreen countdown ending 24h after the request."""


# PUBLIC_INTERFACE
TimeSpec = Union[AbsoluteEnd, LocalEnd, StartPlusTTL, DefaultEnd]


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class ResolvedCountdown:
    """
    Outcome of resolving a TimeSpec against the current instant.

    Fields:
    - now_utc: instant the request was evaluated at
    - end_utc: resolved end instant
    - remaining_ms: max(0, end_utc - now_utc) in whole milliseconds
    """

    now_utc: datetime
    end_utc: datetime
    remaining_ms: int

    @property
    def expired(self) -> bool:
        return self.remaining_ms == 0


class TokenKind(str, Enum):
    NUMBER = "number"
    DELIMITER = "delimiter"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Token:
    """A unit of renderable text: a digit group or a delimiter."""

    kind: TokenKind
    text: str

    @property
    def is_number(self) -> bool:
        return self.kind is TokenKind.NUMBER
