"""Report rendering.

Pure formatting of a Report: plain text, key=value lines, JSON, or a
``string.Template`` body. No counting happens here.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from string import Template

from .errors import ConfigError
from .models import Report

BUILTIN_TEMPLATES: tuple[str, ...] = ("text", "kv", "json")
TEMPLATE_FIELDS: tuple[str, ...] = (
    "bucket_by",
    "total_lines",
    "window_start",
    "window_end",
    "severity_counts",
    "category_counts",
    "bucket_counts",
    "extracted",
    "correlations",
    "degraded",
)


def _fmt_ts(ts: datetime | None) -> str:
    return ts.isoformat() if ts is not None else "-"


def _rows(counts: dict[str, int], indent: str = "  ") -> list[str]:
    if not counts:
        return [f"{indent}(none)"]
    width = max(len(k) for k in counts)
    return [f"{indent}{k.ljust(width)}  {v}" for k, v in counts.items()]


def _category_block(report: Report) -> list[str]:
    if not report.category_counts:
        return ["  (none)"]
    out: list[str] = []
    for dimension, counts in report.category_counts.items():
        out.append(f"  [{dimension}]")
        out.extend(_rows(counts, indent="    "))
    return out


def _extracted_block(report: Report) -> list[str]:
    if not report.extracted:
        return ["  (none)"]
    out: list[str] = []
    for category, values in report.extracted.items():
        out.append(f"  {category}: {len(values)} value(s)")
        out.extend(f"    {i}. {v}" for i, v in enumerate(values, start=1))
    return out


def _sections(report: Report) -> dict[str, str]:
    return {
        "bucket_by": report.bucket_by,
        "total_lines": str(report.total_lines),
        "window_start": _fmt_ts(report.window.start),
        "window_end": _fmt_ts(report.window.end),
        "severity_counts": "\n".join(_rows(report.severity_counts)),
        "category_counts": "\n".join(_category_block(report)),
        "bucket_counts": "\n".join(_rows(report.bucket_counts)),
        "extracted": "\n".join(_extracted_block(report)),
        "correlations": "\n".join(_rows(report.correlations)),
        "degraded": "\n".join(_rows(report.degraded)),
    }


_TEXT_TEMPLATE = """\
Log triage report
=================
Lines analyzed: $total_lines
Window: $window_start .. $window_end

Severity
$severity_counts

Categories
$category_counts

Buckets ($bucket_by)
$bucket_counts

Extracted values
$extracted

Correlations
$correlations

Degraded lines
$degraded
"""


def render_text(report: Report) -> str:
    return Template(_TEXT_TEMPLATE).substitute(_sections(report))


def render_kv(report: Report) -> str:
    """One ``key=value`` per line, grep/cut friendly."""
    lines = [
        f"total_lines={report.total_lines}",
        f"bucket_by={report.bucket_by}",
        f"window.start={_fmt_ts(report.window.start)}",
        f"window.end={_fmt_ts(report.window.end)}",
    ]
    lines += [f"severity.{k}={v}" for k, v in report.severity_counts.items()]
    for dimension, counts in report.category_counts.items():
        lines += [f"category.{dimension}.{k}={v}" for k, v in counts.items()]
    lines += [f"bucket.{k}={v}" for k, v in report.bucket_counts.items()]
    for category, values in report.extracted.items():
        lines += [f"extracted.{category}.{i}={v}" for i, v in enumerate(values, start=1)]
    lines += [f"correlation.{k}={v}" for k, v in report.correlations.items()]
    lines += [f"degraded.{k}={v}" for k, v in report.degraded.items()]
    return "\n".join(lines) + "\n"


def render_json(report: Report) -> str:
    return json.dumps(report.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"


def render(report: Report, template: str = "text") -> str:
    """Render a Report with a built-in template name or a custom template body.

    Custom bodies use ``$name`` placeholders from TEMPLATE_FIELDS.
    """
    if template == "text":
        return render_text(report)
    if template == "kv":
        return render_kv(report)
    if template == "json":
        return render_json(report)

    try:
        return Template(template).substitute(_sections(report))
    except KeyError as e:
        valid = ", ".join(TEMPLATE_FIELDS)
        raise ConfigError(f"Unknown template placeholder {e}. Valid: {valid}") from e
    except ValueError as e:
        raise ConfigError(f"Invalid template: {e}") from e


def write_report(text: str, path: str | Path) -> Path:
    """Write rendered output to a file (only when the caller asks for it)."""
    p = Path(path)
    p.write_text(text, encoding="utf-8")
    return p
