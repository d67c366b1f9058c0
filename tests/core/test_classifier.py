from __future__ import annotations

from datetime import UTC, datetime

import pytest

from log_triage_report.core.classifier import LineClassifier, classify_lines, parse_severity
from log_triage_report.core.config import parse_config
from log_triage_report.core.models import Severity, Tag


def _classifier(**data) -> LineClassifier:
    return LineClassifier(parse_config(data))


def test_classify_bracketed_severity_and_category() -> None:
    clf = _classifier(categories=[{"name": "db", "pattern": "db"}])
    line = clf.classify(1, "[ERROR] db fail")
    assert line.severity == Severity.ERROR
    assert line.message == "db fail"
    assert line.timestamp is None
    assert line.tags == (Tag("severity", "ERROR"), Tag("content", "db"))


def test_classify_with_timestamp() -> None:
    clf = _classifier()
    line = clf.classify(3, "2025-12-30 08:12:04 [WARNING] slow query")
    assert line.line_no == 3
    assert line.timestamp == datetime(2025, 12, 30, 8, 12, 4, tzinfo=UTC)
    assert line.severity == Severity.WARNING
    assert line.message == "slow query"
    assert line.raw == "2025-12-30 08:12:04 [WARNING] slow query"


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("WARN", Severity.WARNING),
        ("fatal", Severity.ERROR),
        ("Critical", Severity.ERROR),
        ("info", Severity.INFO),
        ("DEBUG", Severity.UNKNOWN),
        ("", Severity.UNKNOWN),
    ],
)
def test_parse_severity_aliases(token: str, expected: Severity) -> None:
    assert parse_severity(token) == expected


def test_non_severity_brackets_are_skipped() -> None:
    line = _classifier().classify(1, "2025-12-30 08:00:00 [worker-1] [ERROR] boom")
    assert line.severity == Severity.ERROR
    assert line.message == "boom"


def test_unranked_level_token_is_not_overridden_by_keywords() -> None:
    line = _classifier().classify(1, "[DEBUG] retrying after ERROR from upstream")
    assert line.severity == Severity.UNKNOWN
    assert line.message == "retrying after ERROR from upstream"


def test_non_level_bracket_still_allows_keyword_fallback() -> None:
    line = _classifier().classify(1, "[main] request ERROR")
    assert line.severity == Severity.ERROR


def test_no_severity_is_unknown_not_dropped() -> None:
    line = _classifier().classify(1, "just some text")
    assert line.severity == Severity.UNKNOWN
    assert line.tags == (Tag("severity", "UNKNOWN"),)


def test_keyword_fallback() -> None:
    assert _classifier().classify(1, "request ERROR code=500").severity == Severity.ERROR
    assert (
        _classifier(keyword_fallback=False).classify(1, "request ERROR code=500").severity
        == Severity.UNKNOWN
    )


def test_custom_severity_field() -> None:
    clf = _classifier(severityField=r"level=(\w+)")
    line = clf.classify(1, "2025-12-30T08:00:00Z level=warning msg=disk nearly full")
    assert line.severity == Severity.WARNING
    assert line.message == "msg=disk nearly full"


def test_first_match_wins_within_dimension_and_dimensions_are_independent() -> None:
    clf = _classifier(
        categories=[
            {"name": "db", "pattern": "db"},
            {"name": "pool", "pattern": "pool"},
            {"name": "api", "dimension": "component", "pattern": "api"},
        ]
    )
    line = clf.classify(1, "[ERROR] api db pool drained")
    assert line.category("content") == "db"
    assert line.category("component") == "api"
    assert not line.has_tag(Tag("content", "pool"))


def test_alternation_across_patterns() -> None:
    clf = _classifier(categories=[{"name": "db", "patterns": ["Database", "connection pool"]}])
    assert clf.classify(1, "[WARNING] connection pool exhausted").category("content") == "db"
    assert clf.classify(2, "[ERROR] Database timeout").category("content") == "db"
    assert clf.classify(3, "[INFO] cache warm").category("content") is None


def test_regex_category_for_size_listing() -> None:
    clf = _classifier(categories=[{"name": "gigabytes", "pattern": r"^\d+(\.\d+)?G\b", "regex": True}])
    assert clf.classify(1, "12G\t/var/log").category("content") == "gigabytes"
    assert clf.classify(2, "1.5G\t/home").category("content") == "gigabytes"
    assert clf.classify(3, "512M\t/tmp").category("content") is None


def test_ignore_case_substring() -> None:
    clf = _classifier(categories=[{"name": "db", "pattern": "DATABASE", "ignore_case": True}])
    assert clf.classify(1, "database down").category("content") == "db"


def test_classify_lines_numbers_from_one() -> None:
    lines = classify_lines(parse_config(None), ["[INFO] a", "[ERROR] b"])
    assert [(ln.line_no, ln.severity) for ln in lines] == [(1, Severity.INFO), (2, Severity.ERROR)]
