"""Timestamp recognition and bucket-key helpers.

Finds a leading timestamp on a log line and maps it onto a histogram bucket.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Literal

from .models import UNKNOWN_BUCKET

BucketBy = Literal["hour", "date", "datetime_hour", "week", "month", "weekday"]
BUCKET_SELECTORS: tuple[str, ...] = ("hour", "date", "datetime_hour", "week", "month", "weekday")

DEFAULT_TIMESTAMP_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S,%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y/%m/%d %H:%M:%S",
    "%d-%m-%Y %H:%M:%S",
    "%d/%b/%Y:%H:%M:%S %z",
)

_TOKEN_RE = re.compile(r"\S+")
_MAX_TIMESTAMP_TOKENS = 3
_MIN_TIMESTAMP_LEN = 8
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def parse_iso_timestamp(value: str) -> datetime | None:
    """Parse an ISO8601 timestamp string; naive values are assumed UTC."""
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return _to_utc(ts)


def _to_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def parse_timestamp(value: str, formats: Sequence[str] = DEFAULT_TIMESTAMP_FORMATS) -> datetime | None:
    """Parse a timestamp candidate: ISO8601 first, then the strptime formats."""
    value = value.strip().strip("[]")
    if len(value) < _MIN_TIMESTAMP_LEN:
        return None

    ts = parse_iso_timestamp(value)
    if ts is not None:
        return ts

    for fmt in formats:
        try:
            return _to_utc(datetime.strptime(value, fmt))
        except ValueError:
            continue
    return None


def split_leading_timestamp(
    line: str,
    formats: Sequence[str] = DEFAULT_TIMESTAMP_FORMATS,
) -> tuple[datetime | None, str]:
    """Return (timestamp, rest-of-line) for a line that starts with a timestamp.

    Tries the first three whitespace-separated tokens, then two, then one, so
    ``2025-12-30 08:00:00`` wins over the bare date. When nothing parses the
    timestamp is None and the rest is the whole line.
    """
    tokens = []
    for m in _TOKEN_RE.finditer(line):
        tokens.append(m)
        if len(tokens) == _MAX_TIMESTAMP_TOKENS:
            break

    for n in range(len(tokens), 0, -1):
        end = tokens[n - 1].end()
        ts = parse_timestamp(" ".join(t.group() for t in tokens[:n]), formats)
        if ts is not None:
            return ts, line[end:].lstrip()
    return None, line


def bucket_key(ts: datetime | None, bucket_by: str) -> str:
    """Map a timestamp onto its histogram bucket ("unknown" when missing)."""
    if ts is None:
        return UNKNOWN_BUCKET
    if bucket_by == "hour":
        return f"{ts.hour:02d}"
    if bucket_by == "date":
        return ts.date().isoformat()
    if bucket_by == "datetime_hour":
        return ts.strftime("%Y-%m-%dT%H")
    if bucket_by == "week":
        year, week, _ = ts.isocalendar()
        return f"{year}-W{week:02d}"
    if bucket_by == "month":
        return ts.strftime("%Y-%m")
    if bucket_by == "weekday":
        return _WEEKDAYS[ts.weekday()]
    raise ValueError(f"Unknown bucket selector '{bucket_by}'. Valid: {', '.join(BUCKET_SELECTORS)}")


def bucket_sort_key(bucket_by: str, key: str) -> tuple[int, int | str]:
    """Sort order for bucket keys: natural order, "unknown" last."""
    if key == UNKNOWN_BUCKET:
        return (1, "")
    if bucket_by == "weekday" and key in _WEEKDAYS:
        return (0, _WEEKDAYS.index(key))
    return (0, key)
