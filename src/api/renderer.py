"""
Countdown rasterization with Pillow.

Turns a ResolvedCountdown and a RenderConfig into PNG bytes: background,
auto-fitted digit groups (optionally boxed), unit labels, and an optional
debug overlay. Layout math lives in `layout`; this module only resolves fonts
and draws.
"""
from __future__ import annotations

import logging
import math
import time
from io import BytesIO
from typing import Any, Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from .layout import (
    UNIT_LABELS,
    build_tokens,
    canvas_size,
    compute_bands,
    fit_font_size,
    label_font_size,
    token_positions,
    unit_labels_shown,
)
from .models import ResolvedCountdown, Token
from .resolver import isoformat_utc
from .schemas import RenderConfig

logger = logging.getLogger(__name__)

# Box insets and corner radius, relative to the digit font size / box size
BOX_PAD_X = 0.22
BOX_PAD_Y = 0.30
BOX_RADIUS = 0.12

LABEL_ANCHOR = 0.9  # label center sits this many label heights above the bottom edge

OVERLAY_COLOR = "#FF00FF"

# Semi-bold where a family ships one, bold otherwise
_SANS_FILES = (
    "DejaVuSans-Bold.ttf",
    "LiberationSans-Bold.ttf",
    "Roboto-Medium.ttf",
    "arialbd.ttf",
    "Arial Bold.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "DejaVuSans.ttf",
)

FAMILY_FONT_FILES: Dict[str, Tuple[str, ...]] = {
    "system-ui": _SANS_FILES,
    "-apple-system": ("/System/Library/Fonts/SFNS.ttf",) + _SANS_FILES,
    "blinkmacsystemfont": ("/System/Library/Fonts/SFNS.ttf",) + _SANS_FILES,
    "sans-serif": _SANS_FILES,
    "segoe ui": ("seguisb.ttf", "segoeuib.ttf", "segoeui.ttf"),
    "arial": ("arialbd.ttf", "Arial Bold.ttf", "LiberationSans-Bold.ttf", "Arial.ttf"),
    "helvetica": ("/System/Library/Fonts/Helvetica.ttc", "LiberationSans-Bold.ttf"),
    "helvetica neue": ("/System/Library/Fonts/HelveticaNeue.ttc", "LiberationSans-Bold.ttf"),
    "roboto": ("Roboto-Medium.ttf", "Roboto-Bold.ttf", "Roboto-Regular.ttf"),
    "inter": ("Inter-SemiBold.ttf", "Inter-Bold.ttf", "Inter-Regular.ttf"),
    "dejavu sans": ("DejaVuSans-Bold.ttf", "DejaVuSans.ttf"),
    "liberation sans": ("LiberationSans-Bold.ttf", "LiberationSans-Regular.ttf"),
    "serif": ("DejaVuSerif-Bold.ttf", "LiberationSerif-Bold.ttf", "Georgia Bold.ttf"),
    "georgia": ("georgiab.ttf", "Georgia Bold.ttf", "DejaVuSerif-Bold.ttf"),
    "monospace": ("DejaVuSansMono-Bold.ttf", "LiberationMono-Bold.ttf", "courbd.ttf"),
    "courier new": ("courbd.ttf", "Courier New Bold.ttf", "LiberationMono-Bold.ttf"),
}


def _family_names(font_family: str) -> List[str]:
    return [f.strip().strip("'\"") for f in font_family.split(",") if f.strip().strip("'\"")]


def font_candidates(font_family: str, font_path: Optional[str] = None) -> List[str]:
    """
    Font files to try, in order, for a CSS-like font stack.

    Known families map to semi-bold/bold files; unknown names are tried as
    font files directly and with common weight suffixes. Generic sans files
    close the list, like a browser falling back to its default face.
    """
    candidates: List[str] = [font_path] if font_path else []
    for name in _family_names(font_family):
        key = name.lower()
        if key.endswith((".ttf", ".otf", ".ttc")):
            candidates.append(name)
        elif key in FAMILY_FONT_FILES:
            candidates.extend(FAMILY_FONT_FILES[key])
        else:
            stem = name.replace(" ", "")
            candidates.extend([f"{stem}-SemiBold.ttf", f"{stem}-Bold.ttf", f"{stem}.ttf"])
    candidates.extend(_SANS_FILES)
    # dict.fromkeys keeps order while dropping duplicates
    return list(dict.fromkeys(candidates))


class FontFace:
    """
    A font resolved for one request, loadable at any pixel size.

    Falls back to Pillow's built-in font when none of the candidates load.
    """

    def __init__(self, path: Optional[str]) -> None:
        self.path = path
        self._sizes: Dict[int, Any] = {}

    @classmethod
    def from_family(cls, font_family: str, font_path: Optional[str] = None) -> "FontFace":
        for candidate in font_candidates(font_family, font_path):
            try:
                ImageFont.truetype(candidate, 12)
            except (OSError, IOError):
                continue
            logger.debug(f"Loaded font: {candidate}")
            return cls(candidate)
        logger.warning(f"No TrueType font found for {font_family!r}, using default font")
        return cls(None)

    def get(self, size: int):
        font = self._sizes.get(size)
        if font is None:
            if self.path is None:
                font = ImageFont.load_default(size=size)
            else:
                font = ImageFont.truetype(self.path, size)
            self._sizes[size] = font
        return font


def _draw_box(draw: ImageDraw.ImageDraw, x: float, width: float, size: int, mid_y: float, fill: str) -> None:
    pad_x = math.floor(size * BOX_PAD_X)
    pad_y = math.floor(size * BOX_PAD_Y)
    box_x = x - pad_x / 2
    box_y = mid_y - size / 2 - pad_y / 2
    box_w = width + pad_x
    box_h = size + pad_y
    radius = min(box_w, box_h) * BOX_RADIUS
    draw.rounded_rectangle((box_x, box_y, box_x + box_w, box_y + box_h), radius=radius, fill=fill)


def _draw_labels(
    draw: ImageDraw.ImageDraw,
    placed: Sequence[Tuple[Token, float, float]],
    face: FontFace,
    digit_size: int,
    config: RenderConfig,
    canvas_height: int,
) -> None:
    size = label_font_size(digit_size, config.scale)
    font = face.get(size)
    y = canvas_height - math.floor(size * LABEL_ANCHOR)
    numbers = [(x, w) for token, x, w in placed if token.is_number]
    for (x, w), text in zip(numbers, UNIT_LABELS):
        draw.text((x + w / 2, y), text, fill=config.label, font=font, anchor="mm")


def _draw_overlay(
    draw: ImageDraw.ImageDraw,
    resolved: ResolvedCountdown,
    face: FontFace,
    config: RenderConfig,
    canvas: Tuple[int, int],
) -> None:
    width, height = canvas
    font = face.get(max(10 * config.scale, math.floor(height * 0.08)))
    lines = [
        f"now={isoformat_utc(resolved.now_utc)}",
        f"end={isoformat_utc(resolved.end_utc)}",
        f"ms={resolved.remaining_ms}",
    ]
    x = math.floor(width * 0.04)
    y = math.floor(height * 0.04)
    for line in lines:
        draw.text((x, y), line, fill=OVERLAY_COLOR, font=font, anchor="lt")
        y += math.floor(height * 0.1)


# PUBLIC_INTERFACE
def encode_png(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


# PUBLIC_INTERFACE
def fallback_png() -> bytes:
    """A 1x1 fully transparent PNG, served when rendering cannot proceed."""
    return encode_png(Image.new("RGBA", (1, 1), (0, 0, 0, 0)))


# PUBLIC_INTERFACE
def render_countdown(
    resolved: ResolvedCountdown,
    config: RenderConfig,
    overlay: bool = False,
    font_path: Optional[str] = None,
) -> bytes:
    """
    Render a countdown image.

    Args:
        resolved: Resolved countdown; only remaining_ms (and the instants for the overlay) are used.
        config: Display options.
        overlay: Draw now/end/ms debug lines in the top-left corner.
        font_path: Optional TrueType file tried before config.font_family.

    Returns:
        PNG bytes of size (config.width * config.scale, config.height * config.scale).
    """
    started = time.perf_counter()
    tokens = build_tokens(resolved.remaining_ms, config)
    width, height = canvas_size(config)

    image = Image.new("RGB", (width, height), config.bg)
    draw = ImageDraw.Draw(image)

    show_labels = unit_labels_shown(resolved, config)
    bands = compute_bands(height, show_labels)
    face = FontFace.from_family(config.font_family, font_path)

    def measure(text: str, size: int) -> float:
        return draw.textlength(text, font=face.get(size))

    size = fit_font_size(tokens, width, bands.content, measure)
    digit_font = face.get(size)
    placed = token_positions(tokens, size, width, measure)

    boxed = config.style == "boxed" and not resolved.expired
    for token, x, w in placed:
        if boxed and token.is_number:
            _draw_box(draw, x, w, size, bands.mid_y, config.box)
        draw.text((x + w / 2, bands.mid_y), token.text, fill=config.fg, font=digit_font, anchor="mm")

    if show_labels:
        _draw_labels(draw, placed, face, size, config, height)

    if overlay:
        _draw_overlay(draw, resolved, face, config, (width, height))

    png = encode_png(image)
    logger.debug(
        f"Rendered {width}x{height} countdown: {len(tokens)} tokens, font {size}px, "
        f"{len(png)} bytes in {(time.perf_counter() - started) * 1000:.1f}ms"
    )
    return png
