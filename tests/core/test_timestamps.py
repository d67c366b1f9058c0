from __future__ import annotations

from datetime import UTC, datetime

import pytest

from log_triage_report.core.timestamps import (
    bucket_key,
    bucket_sort_key,
    parse_timestamp,
    split_leading_timestamp,
)


def test_split_leading_timestamp_space_separated() -> None:
    ts, rest = split_leading_timestamp("2025-12-30 08:00:00 [INFO] start")
    assert ts == datetime(2025, 12, 30, 8, 0, 0, tzinfo=UTC)
    assert rest == "[INFO] start"


def test_split_leading_timestamp_iso_z() -> None:
    ts, rest = split_leading_timestamp("2025-12-30T08:12:01Z [INFO] service started")
    assert ts == datetime(2025, 12, 30, 8, 12, 1, tzinfo=UTC)
    assert rest == "[INFO] service started"


def test_split_leading_timestamp_converts_offset_to_utc() -> None:
    ts, _ = split_leading_timestamp("2025-12-30T10:00:00+02:00 boot")
    assert ts == datetime(2025, 12, 30, 8, 0, 0, tzinfo=UTC)


def test_split_leading_timestamp_missing() -> None:
    ts, rest = split_leading_timestamp("[ERROR] db fail")
    assert ts is None
    assert rest == "[ERROR] db fail"


def test_split_leading_timestamp_custom_format() -> None:
    ts, rest = split_leading_timestamp(
        "30/12/2025 08:12 host sshd: failed login",
        formats=("%d/%m/%Y %H:%M",),
    )
    assert ts == datetime(2025, 12, 30, 8, 12, 0, tzinfo=UTC)
    assert rest == "host sshd: failed login"


def test_parse_timestamp_rejects_short_tokens() -> None:
    assert parse_timestamp("12G") is None
    assert parse_timestamp("") is None


def test_bucket_keys() -> None:
    ts = datetime(2025, 12, 30, 8, 5, 0, tzinfo=UTC)
    assert bucket_key(ts, "hour") == "08"
    assert bucket_key(ts, "date") == "2025-12-30"
    assert bucket_key(ts, "datetime_hour") == "2025-12-30T08"
    assert bucket_key(ts, "month") == "2025-12"
    assert bucket_key(ts, "weekday") == "Tue"
    # ISO week of 2025-12-30 belongs to 2026.
    assert bucket_key(ts, "week") == "2026-W01"


def test_bucket_key_unknown_for_missing_timestamp() -> None:
    assert bucket_key(None, "hour") == "unknown"


def test_bucket_key_invalid_selector() -> None:
    with pytest.raises(ValueError):
        bucket_key(datetime(2025, 1, 1, tzinfo=UTC), "minute")


def test_bucket_sort_key_puts_unknown_last() -> None:
    assert sorted(["unknown", "10", "08"], key=lambda k: bucket_sort_key("hour", k)) == [
        "08",
        "10",
        "unknown",
    ]
    assert sorted(["Sun", "Mon", "unknown", "Wed"], key=lambda k: bucket_sort_key("weekday", k)) == [
        "Mon",
        "Wed",
        "Sun",
        "unknown",
    ]
