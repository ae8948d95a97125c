from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: logging level name (DEBUG, INFO, WARNING, ...). Default 'INFO'
    - ENABLE_DEBUG_PARAMS: 'true' (default) to honour ?debug=1 and ?overlay=1 on the timer endpoint
    - FONT_PATH: optional path to a TrueType font tried before the requested font family
    """

    cors_allow_origins: List[str]
    log_level: str
    enable_debug_params: bool
    font_path: Optional[str]


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        # Star will be handled in main via allow_origins=["*"]
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _parse_log_level(value: str) -> str:
    level = value.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        return "INFO"
    return level


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    cors_raw = _get_env("CORS_ALLOW_ORIGINS", "*")
    origins = _parse_origins(cors_raw)

    log_level = _parse_log_level(_get_env("LOG_LEVEL", "INFO"))
    enable_debug = _parse_bool(_get_env("ENABLE_DEBUG_PARAMS", "true"), True)

    font_path = os.getenv("FONT_PATH") or None
    if font_path is not None:
        font_path = font_path.strip() or None

    return Settings(
        cors_allow_origins=origins,
        log_level=log_level,
        enable_debug_params=enable_debug,
        font_path=font_path,
    )
