"""
core/time_utils.py -- Timestamp formats for audit-log keys and display.

Two representations are used and they must not be mixed:

  Storage: UTC, fixed width, zero padded, microsecond precision
      (2026-10-18T19:13:07.004211Z). Audit-log keys embed this string, so
      plain string order has to equal chronological order.

  Display: local time with an explicit offset (2026-10-18 21:13:07 +02:00).
      Only the log viewer and the CLI render it; it never reaches a key.

Range bounds accept the sentinels "begin" (epoch) and "now" (current UTC
instant) in addition to ISO8601 timestamps.

Layer rule: no imports from api/, web/, auth/, audit/, or kv/.
"""

from __future__ import annotations

from datetime import datetime, timezone

BEGIN = "begin"
NOW = "now"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


class InvalidTimeBound(ValueError):
    """A range bound that is neither a sentinel nor a parseable timestamp."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_storage(value: datetime) -> str:
    """Render a datetime as the sortable UTC string used inside keys.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    # Built field by field: strftime("%Y") does not pad years below 1000.
    v = value.astimezone(timezone.utc)
    return (
        f"{v.year:04d}-{v.month:02d}-{v.day:02d}T"
        f"{v.hour:02d}:{v.minute:02d}:{v.second:02d}.{v.microsecond:06d}Z"
    )


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO8601 timestamp, keeping its zone. No offset means UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidTimeBound(f"Invalid timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_utc(value: str) -> datetime:
    try:
        return parse_timestamp(value).astimezone(timezone.utc)
    except OverflowError as exc:
        raise InvalidTimeBound(f"Timestamp out of range: {value!r}") from exc


def resolve_since(value: str) -> datetime:
    """Lower range bound: "begin" is the epoch."""
    if value == BEGIN:
        return EPOCH
    return _to_utc(value)


def resolve_till(value: str) -> datetime:
    """Upper range bound: "now" is the current UTC instant at call time."""
    if value == NOW:
        return utc_now()
    return _to_utc(value)


def format_display(stored: str) -> str:
    """Re-render a stored timestamp in local time as YYYY-MM-DD HH:mm:ss +HH:MM."""
    local = parse_timestamp(stored).astimezone()
    offset = local.utcoffset()
    total_minutes = int(offset.total_seconds() // 60) if offset is not None else 0
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{local.strftime(_DISPLAY_FORMAT)} {sign}{hours:02d}:{minutes:02d}"
