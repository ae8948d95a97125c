"""
Pure layout for countdown images.

Nothing here touches Pillow: text width comes from a `measure(text, size)`
callable supplied by the renderer, so the tokenization and the font-fit
search can be exercised with a fake oracle.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .models import ResolvedCountdown, Token, TokenKind
from .schemas import RenderConfig

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR

UNIT_LABELS = ("DAYS", "HOURS", "MINUTES", "SECONDS")

MIN_FONT_SIZE = 12
MAX_FONT_FILL = 0.9  # of the content band height
MAX_WIDTH_FILL = 0.92  # of the canvas width
NUMBER_MARGIN = 0.25
DELIMITER_MARGIN = 0.10
TOP_PAD = 0.18
BOTTOM_PAD = 0.18
BOTTOM_PAD_WITH_LABELS = 0.28
LABEL_SIZE_RATIO = 0.26
MIN_LABEL_SIZE = 12

MeasureFn = Callable[[str, int], float]


@dataclass(frozen=True)
class Bands:
    """Vertical layout of the canvas."""

    top: int
    bottom: int
    content: int

    @property
    def mid_y(self) -> float:
        return self.top + self.content / 2


# PUBLIC_INTERFACE
def duration_groups(remaining_ms: int, pad_days: int) -> List[str]:
    """Split a duration into zero-padded [days, hours, minutes, seconds] strings."""
    days, rest = divmod(remaining_ms, MS_PER_DAY)
    hours, rest = divmod(rest, MS_PER_HOUR)
    minutes, rest = divmod(rest, MS_PER_MINUTE)
    seconds = rest // MS_PER_SECOND
    return [
        str(days).zfill(pad_days),
        f"{hours:02d}",
        f"{minutes:02d}",
        f"{seconds:02d}",
    ]


# PUBLIC_INTERFACE
def display_groups(remaining_ms: int, config: RenderConfig) -> List[str]:
    """
    Text groups to render: the duration components, or the expired text split
    on the delimiter once nothing remains.
    """
    if remaining_ms <= 0:
        return config.expired_text.split(config.delimiter)
    return duration_groups(remaining_ms, config.pad_days)


# PUBLIC_INTERFACE
def build_tokens(remaining_ms: int, config: RenderConfig) -> List[Token]:
    """
    Build the display sequence: NUMBER tokens with DELIMITER tokens between
    consecutive numbers, never leading or trailing.
    """
    tokens: List[Token] = []
    groups = display_groups(remaining_ms, config)
    for i, group in enumerate(groups):
        if i:
            tokens.append(Token(TokenKind.DELIMITER, config.delimiter))
        tokens.append(Token(TokenKind.NUMBER, group))
    return tokens


# PUBLIC_INTERFACE
def canvas_size(config: RenderConfig) -> Tuple[int, int]:
    """Canvas size in device pixels."""
    return config.width * config.scale, config.height * config.scale


# PUBLIC_INTERFACE
def unit_labels_shown(resolved: ResolvedCountdown, config: RenderConfig) -> bool:
    return config.show_labels and not resolved.expired


# PUBLIC_INTERFACE
def compute_bands(canvas_height: int, show_labels: bool) -> Bands:
    top = math.floor(TOP_PAD * canvas_height)
    bottom = math.floor((BOTTOM_PAD_WITH_LABELS if show_labels else BOTTOM_PAD) * canvas_height)
    return Bands(top=top, bottom=bottom, content=canvas_height - top - bottom)


def token_margin(token: Token, size: int) -> float:
    return size * (NUMBER_MARGIN if token.is_number else DELIMITER_MARGIN)


# PUBLIC_INTERFACE
def total_width(tokens: Sequence[Token], size: int, measure: MeasureFn) -> float:
    """Width of the whole token block at the given font size, margins included."""
    return sum(measure(t.text, size) + token_margin(t, size) for t in tokens)


# PUBLIC_INTERFACE
def largest_satisfying(low: int, high: int, predicate: Callable[[int], bool]) -> Optional[int]:
    """
    Largest integer in [low, high] for which a monotonic predicate holds
    (true for small values, false past some threshold). None if it never holds.
    """
    best: Optional[int] = None
    while low <= high:
        mid = (low + high) // 2
        if predicate(mid):
            best = mid
            low = mid + 1
        else:
            high = mid - 1
    return best


# PUBLIC_INTERFACE
def fit_font_size(
    tokens: Sequence[Token],
    canvas_width: int,
    content_height: int,
    measure: MeasureFn,
) -> int:
    """
    Largest font size in [12, floor(0.9 * content_height)] whose token block
    fits in 92% of the canvas width. Falls back to 12 when nothing fits.
    """
    max_width = math.floor(canvas_width * MAX_WIDTH_FILL)
    high = math.floor(content_height * MAX_FONT_FILL)
    best = largest_satisfying(
        MIN_FONT_SIZE,
        high,
        lambda size: total_width(tokens, size, measure) <= max_width,
    )
    return best if best is not None else MIN_FONT_SIZE


# PUBLIC_INTERFACE
def label_font_size(digit_size: int, scale: int) -> int:
    return max(MIN_LABEL_SIZE * scale, math.floor(digit_size * LABEL_SIZE_RATIO))


# PUBLIC_INTERFACE
def token_positions(
    tokens: Sequence[Token], size: int, canvas_width: int, measure: MeasureFn
) -> List[Tuple[Token, float, float]]:
    """
    Left-to-right placement of the horizontally centered token block.

    Returns (token, left x, measured glyph width) for every token.
    """
    x = (canvas_width - total_width(tokens, size, measure)) / 2
    placed = []
    for token in tokens:
        w = measure(token.text, size)
        placed.append((token, x, w))
        x += w + token_margin(token, size)
    return placed
