"""
Time resolution for the countdown endpoint.

Resolution happens in two steps: `parse_time_spec` applies the fixed input
precedence and parses the selected mode into a TimeSpec, and `resolve_end`
evaluates that TimeSpec against the current instant. `resolve` combines both
and produces the ResolvedCountdown handed to the renderer.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Mapping, Optional

import pytz

from .models import AbsoluteEnd, DefaultEnd, LocalEnd, ResolvedCountdown, StartPlusTTL, TimeSpec
from .utils import to_int

logger = logging.getLogger(__name__)

EVERGREEN_TTL = timedelta(hours=24)
TTL_FIELDS = ("ttl_days", "ttl_hours", "ttl_minutes", "ttl_seconds")
LOCAL_FORMATS = ("%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M")


class InvalidEndTime(ValueError):
    """The request's end time cannot be resolved to a valid instant."""


# PUBLIC_INTERFACE
def utcnow() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(pytz.utc)


# PUBLIC_INTERFACE
def isoformat_utc(value: datetime) -> str:
    """Format an instant as ISO8601 UTC with millisecond precision, e.g. 2025-01-01T00:00:00.000Z."""
    value = value.astimezone(pytz.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _param(params: Mapping[str, str], name: str) -> Optional[str]:
    """Raw value of a query parameter; absent or empty means not supplied."""
    value = params.get(name)
    if value is None or value == "":
        return None
    return str(value)


def _parse_instant(value: str, name: str) -> datetime:
    """
    Parse an ISO8601 instant. 'Z' and explicit offsets are honoured; a value
    without offset (including a bare date) is taken as UTC.
    """
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00").replace("z", "+00:00"))
    except ValueError as parse_err:
        logger.debug(f"Rejecting {name}={value!r}: {parse_err}")
        raise InvalidEndTime(f"Invalid {name}: {value!r}") from parse_err
    try:
        if parsed.tzinfo is None:
            return pytz.utc.localize(parsed)
        return parsed.astimezone(pytz.utc)
    except OverflowError as range_err:
        raise InvalidEndTime(f"{name} out of range: {value!r}") from range_err


def _parse_wall_clock(value: str) -> datetime:
    """
    Parse a wall-clock string with no zone information.

    Accepted: 'YYYY-MM-DD HH:mm' and 'YYYY-MM-DDTHH:mm', then any ISO8601 local
    date or date-time without an offset ('2025-09-01', '2025-09-01T18:30:15').
    Strings carrying an offset are rejected since the zone comes from ?tz=.
    """
    value = value.strip()
    for fmt in LOCAL_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(value if "T" in value else value.replace(" ", "T", 1))
    except ValueError as parse_err:
        raise InvalidEndTime(f"Invalid end_local: {value!r}") from parse_err
    if parsed.tzinfo is not None:
        raise InvalidEndTime(f"end_local must not carry an offset: {value!r}")
    return parsed


# PUBLIC_INTERFACE
def parse_time_spec(params: Mapping[str, str]) -> TimeSpec:
    """
    Select and parse the end-time input mode. First match wins:

    1. end                          -> AbsoluteEnd
    2. end_local + tz               -> LocalEnd (end_local without tz falls through)
    3. start + any of ttl_*         -> StartPlusTTL
    4. nothing recognized           -> DefaultEnd

    Raises:
        InvalidEndTime: if the selected mode's values cannot be parsed.
    """
    end = _param(params, "end")
    if end is not None:
        return AbsoluteEnd(end=_parse_instant(end, "end"))

    end_local = _param(params, "end_local")
    tz = _param(params, "tz")
    if end_local is not None and tz is not None:
        tz = tz.strip()
        try:
            pytz.timezone(tz)
        except pytz.UnknownTimeZoneError as tz_err:
            raise InvalidEndTime(f"Unknown timezone: {tz!r}") from tz_err
        return LocalEnd(local=_parse_wall_clock(end_local), zone=tz)

    start = _param(params, "start")
    if start is not None and any(_param(params, f) is not None for f in TTL_FIELDS):
        days, hours, minutes, seconds = (max(0, to_int(_param(params, f), 0)) for f in TTL_FIELDS)
        return StartPlusTTL(
            start=_parse_instant(start, "start"),
            days=days,
            hours=hours,
            minutes=minutes,
            seconds=seconds,
        )

    return DefaultEnd()


# PUBLIC_INTERFACE
def resolve_end(spec: TimeSpec, now: datetime) -> datetime:
    """
    Evaluate a TimeSpec to an absolute UTC end instant.

    Raises:
        InvalidEndTime: if the result is not a representable calendar instant.
    """
    try:
        if isinstance(spec, AbsoluteEnd):
            return spec.end
        if isinstance(spec, LocalEnd):
            # Keep the wall-clock digits; only decide which instant they denote in the zone
            zone = pytz.timezone(spec.zone)
            return zone.localize(spec.local).astimezone(pytz.utc)
        if isinstance(spec, StartPlusTTL):
            end = spec.start
            end = end + timedelta(days=spec.days)
            end = end + timedelta(hours=spec.hours)
            end = end + timedelta(minutes=spec.minutes)
            end = end + timedelta(seconds=spec.seconds)
            return end
        return now + EVERGREEN_TTL
    except (OverflowError, ValueError) as calc_err:
        raise InvalidEndTime(f"End time out of range: {calc_err}") from calc_err


# PUBLIC_INTERFACE
def remaining_ms(end: datetime, now: datetime) -> int:
    """Whole milliseconds from now until end, clamped at zero."""
    return max(0, (end - now) // timedelta(milliseconds=1))


# PUBLIC_INTERFACE
def resolve(params: Mapping[str, str], now: Optional[datetime] = None) -> ResolvedCountdown:
    """
    Resolve request parameters into a ResolvedCountdown.

    Args:
        params: Flat mapping of query parameter names to string values.
        now: Evaluation instant; defaults to the current UTC time.

    Returns:
        ResolvedCountdown with remaining_ms clamped at zero.

    Raises:
        InvalidEndTime: if the end time cannot be resolved.
    """
    now = now if now is not None else utcnow()
    spec = parse_time_spec(params)
    end = resolve_end(spec, now)
    resolved = ResolvedCountdown(now_utc=now, end_utc=end, remaining_ms=remaining_ms(end, now))

    logger.info(
        json.dumps(
            {
                "q": dict(params),
                "mode": type(spec).__name__,
                "nowUtc": isoformat_utc(resolved.now_utc),
                "endUtc": isoformat_utc(resolved.end_utc),
                "diffMs": resolved.remaining_ms,
            }
        )
    )
    return resolved
