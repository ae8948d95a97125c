from __future__ import annotations

from typing import Any, Dict, List, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .utils import clamp, normalize_hex_color, to_int

DEFAULT_FONT_FAMILY = "system-ui, -apple-system, Segoe UI, Arial, Helvetica, sans-serif"
DEFAULT_DELIMITER = ":"
DEFAULT_EXPIRED_TEXT = "00:00:00:00"

MAX_DELIMITER_LENGTH = 3
MAX_EXPIRED_TEXT_LENGTH = 32

# (min, max) for the integer knobs; out-of-range values are clamped, never rejected
_INT_RANGES: Dict[str, tuple] = {
    "width": (200, 1600),
    "height": (80, 400),
    "scale": (1, 2),
    "pad_days": (1, 4),
}


# PUBLIC_INTERFACE
class RenderConfig(BaseModel):
    """
    Immutable bundle of display options for one countdown render.

    Built from the raw query mapping via `RenderConfig.from_query`, where the
    public query names (w, h, delim, expiredText, fontFamily, padDays, ...)
    are field aliases. Every field has a default and every value is coerced:
    integers are clamped into range, bad colors fall back to the default,
    strings are truncated. Construction never fails on user input.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "w": 600,
                "h": 140,
                "scale": 2,
                "bg": "0B0B0B",
                "fg": "FFFFFF",
                "style": "boxed",
                "delim": ":",
                "padDays": 2,
            }
        },
    )

    width: int = Field(default=600, alias="w", description="Canvas width in CSS pixels (200..1600)")
    height: int = Field(default=140, alias="h", description="Canvas height in CSS pixels (80..400)")
    scale: int = Field(default=1, description="Device scale factor (1 or 2)")

    bg: str = Field(default="#0B0B0B", description="Background color")
    fg: str = Field(default="#FFFFFF", description="Digit and delimiter color")
    box: str = Field(default="#1F1F1F", description="Digit box fill for the boxed style")
    label: str = Field(default="#BBBBBB", description="Unit label color")

    style: Literal["plain", "boxed"] = Field(default="plain", description="plain or boxed")
    show_labels: bool = Field(default=True, description="Draw DAYS/HOURS/MINUTES/SECONDS under the digits")
    delimiter: str = Field(default=DEFAULT_DELIMITER, alias="delim", description="Delimiter, max 3 chars")
    expired_text: str = Field(
        default=DEFAULT_EXPIRED_TEXT, alias="expiredText", description="Text shown once expired, max 32 chars"
    )
    font_family: str = Field(default=DEFAULT_FONT_FAMILY, alias="fontFamily", description="CSS-like font stack")
    pad_days: int = Field(default=2, alias="padDays", description="Minimum digits for the days group (1..4)")

    @field_validator("width", "height", "scale", "pad_days", mode="before")
    @classmethod
    def clamp_ints(cls, v: Any, info: ValidationInfo) -> int:
        """
        Parse the leading integer and clamp it into the documented range.
        """
        low, high = _INT_RANGES[info.field_name]
        default = cls.model_fields[info.field_name].default
        return clamp(to_int(v, default), low, high)

    @field_validator("bg", "fg", "box", "label", mode="before")
    @classmethod
    def parse_color(cls, v: Any, info: ValidationInfo) -> str:
        """
        Accept hex without '#' and normalize to '#RRGGBB'; invalid -> field default.
        """
        default = cls.model_fields[info.field_name].default
        return normalize_hex_color(v if v is None else str(v), default)

    @field_validator("style", mode="before")
    @classmethod
    def parse_style(cls, v: Any) -> str:
        s = str(v or "plain").strip().lower()
        return s if s in {"plain", "boxed"} else "plain"

    @field_validator("show_labels", mode="before")
    @classmethod
    def parse_show_labels(cls, v: Any) -> bool:
        """
        Labels are on unless explicitly switched off with 'false'.
        """
        if isinstance(v, bool):
            return v
        return str(v or "true").strip().lower() != "false"

    @field_validator("delimiter", mode="before")
    @classmethod
    def parse_delimiter(cls, v: Any) -> str:
        s = str(v) if v else DEFAULT_DELIMITER
        return s[:MAX_DELIMITER_LENGTH]

    @field_validator("expired_text", mode="before")
    @classmethod
    def parse_expired_text(cls, v: Any) -> str:
        s = str(v) if v else DEFAULT_EXPIRED_TEXT
        return s[:MAX_EXPIRED_TEXT_LENGTH]

    @field_validator("font_family", mode="before")
    @classmethod
    def parse_font_family(cls, v: Any) -> str:
        s = str(v).strip() if v else ""
        return s or DEFAULT_FONT_FAMILY

    # PUBLIC_INTERFACE
    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "RenderConfig":
        """Build a RenderConfig from a flat query mapping; unknown keys are ignored."""
        return cls.model_validate(dict(params))


# PUBLIC_INTERFACE
class DebugOut(BaseModel):
    """
    Schema returned by the timer endpoint when called with ?debug=1.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "ok": True,
                "query": {"end": "2099-01-01T00:00:00Z"},
                "nowUtc": "2098-12-30T00:00:00.000Z",
                "endUtc": "2099-01-01T00:00:00.000Z",
                "diffMs": 172800000,
                "groups": ["02", "00", "00", "00"],
            }
        },
    )

    ok: bool = Field(default=True, description="Always true; resolution failures return 400 instead")
    query: Dict[str, str] = Field(..., description="Query parameters as received")
    now_utc: str = Field(..., alias="nowUtc", description="Evaluation instant (ISO8601, UTC)")
    end_utc: str = Field(..., alias="endUtc", description="Resolved end instant (ISO8601, UTC)")
    diff_ms: int = Field(..., alias="diffMs", description="Remaining milliseconds, clamped at zero")
    groups: List[str] = Field(..., description="Digit groups that would be rendered")
