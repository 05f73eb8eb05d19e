"""Unit tests for core/time_utils.py.

Covers:
- Storage format is fixed width and sorts chronologically as a string
- Sentinels "begin"/"now"
- Zoned, Z-suffixed and offset-less timestamps
- Display format with explicit offset
"""

import re
from datetime import datetime, timedelta, timezone

import pytest

from core.time_utils import (
    EPOCH,
    InvalidTimeBound,
    format_display,
    format_storage,
    parse_timestamp,
    resolve_since,
    resolve_till,
)


def test_storage_format_is_fixed_width_utc():
    value = datetime(2026, 1, 2, 3, 4, 5, 6, tzinfo=timezone(timedelta(hours=2)))
    assert format_storage(value) == "2026-01-02T01:04:05.000006Z"


def test_storage_format_treats_naive_as_utc():
    assert format_storage(datetime(2026, 1, 2, 3, 4, 5)) == "2026-01-02T03:04:05.000000Z"


def test_storage_strings_sort_chronologically():
    base = datetime(2026, 10, 18, 9, 59, 59, 999999, tzinfo=timezone.utc)
    moments = [base + timedelta(microseconds=n) for n in (0, 1, 10, 3600 * 10**6)]
    rendered = [format_storage(m) for m in moments]
    assert rendered == sorted(rendered)


def test_begin_is_epoch():
    assert resolve_since("begin") == EPOCH


def test_now_is_current_utc():
    before = datetime.now(timezone.utc)
    value = resolve_till("now")
    assert before <= value <= datetime.now(timezone.utc)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("2026-10-18T12:00:00Z", datetime(2026, 10, 18, 12, tzinfo=timezone.utc)),
        ("2026-10-18T14:00:00+02:00", datetime(2026, 10, 18, 12, tzinfo=timezone.utc)),
        ("2026-10-18T12:00:00", datetime(2026, 10, 18, 12, tzinfo=timezone.utc)),
    ],
)
def test_parse_timestamp(text, expected):
    assert parse_timestamp(text) == expected


def test_parse_keeps_zone():
    assert parse_timestamp("2026-10-18T14:00:00+02:00").utcoffset() == timedelta(hours=2)


def test_invalid_timestamp():
    with pytest.raises(InvalidTimeBound):
        resolve_since("not-a-time")


def test_display_format():
    assert re.fullmatch(
        r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} [+-]\d{2}:\d{2}",
        format_display("2026-10-18T12:00:00.000000Z"),
    )


def test_storage_format_pads_early_years():
    assert format_storage(datetime(999, 1, 1, tzinfo=timezone.utc)) == "0999-01-01T00:00:00.000000Z"
    assert format_storage(datetime(999, 1, 1, tzinfo=timezone.utc)) < format_storage(datetime(2024, 1, 1))


def test_bound_outside_datetime_range_is_invalid():
    with pytest.raises(InvalidTimeBound):
        resolve_since("0001-01-01T00:00:00+01:00")
