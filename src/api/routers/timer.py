from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ..layout import display_groups
from ..renderer import fallback_png, render_countdown
from ..resolver import InvalidEndTime, isoformat_utc, resolve
from ..schemas import DebugOut, RenderConfig
from ..settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["timer"],
)

NO_CACHE_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-cache, no-store, must-revalidate, private",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _png_response(content: bytes) -> Response:
    return Response(
        content=content,
        media_type="image/png",
        status_code=status.HTTP_200_OK,
        headers=NO_CACHE_HEADERS,
    )


# PUBLIC_INTERFACE
@router.get(
    "/timer",
    summary="Countdown Image",
    description=(
        "Render a PNG countdown to a target time, for embedding in email.\n\n"
        "End time (first match wins):\n"
        "- end: ISO8601 UTC instant, e.g. 2025-09-01T00:00:00Z\n"
        "- end_local + tz: wall-clock end ('2025-09-01 00:00' or '2025-09-01T00:00') in an IANA zone\n"
        "- start + ttl_days/ttl_hours/ttl_minutes/ttl_seconds: start instant plus offsets\n"
        "- otherwise: 24 hours from the request (evergreen)\n\n"
        "Display: w, h (600x140), scale (1|2), bg/fg/box/label hex colors without '#', "
        "style (plain|boxed), show_labels (true|false), delim (max 3 chars), "
        "expiredText (max 32 chars), fontFamily, padDays (1..4).\n\n"
        "Diagnostics: debug=1 returns the resolved times as JSON, overlay=1 prints them on the image."
    ),
    response_class=Response,
    responses={
        200: {"content": {"image/png": {}}, "description": "Countdown image (or a 1x1 transparent fallback)"},
        400: {"content": {"text/plain": {}}, "description": "End time could not be resolved"},
    },
)
def countdown_timer(request: Request) -> Response:
    """
    Resolve the end time from the query and render the countdown image.

    Only an unresolvable end time is reported as an error (400, plain text).
    Any other failure still answers 200 with a transparent pixel so email
    clients never show a broken image.
    """
    params = dict(request.query_params)
    settings = get_settings()

    try:
        resolved = resolve(params)
    except InvalidEndTime as end_err:
        logger.warning(f"Invalid end time: {end_err}")
        return PlainTextResponse("Invalid end time", status_code=status.HTTP_400_BAD_REQUEST)
    except Exception as exc:
        logger.error(f"Error resolving countdown: {exc}", exc_info=True)
        return _png_response(fallback_png())

    try:
        config = RenderConfig.from_query(params)

        if settings.enable_debug_params and params.get("debug") == "1":
            out = DebugOut(
                query=params,
                now_utc=isoformat_utc(resolved.now_utc),
                end_utc=isoformat_utc(resolved.end_utc),
                diff_ms=resolved.remaining_ms,
                groups=display_groups(resolved.remaining_ms, config),
            )
            return JSONResponse(out.model_dump(by_alias=True), headers=NO_CACHE_HEADERS)

        overlay = settings.enable_debug_params and params.get("overlay") == "1"
        png = render_countdown(resolved, config, overlay=overlay, font_path=settings.font_path)
    except Exception as exc:
        logger.error(f"Error generating countdown timer: {exc}", exc_info=True)
        return _png_response(fallback_png())

    return _png_response(png)
