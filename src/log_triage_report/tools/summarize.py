"""MCP tool implementations.

This module contains the *implementation* behind the exposed MCP tools.
Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from log_triage_report.core.config import load_config, with_overrides
from log_triage_report.core.errors import ConfigError
from log_triage_report.core.log_service import STDIN, analyze
from log_triage_report.core.render import BUILTIN_TEMPLATES, render

DEFAULT_OUTPUT = "json"


def _normalize_categories(
    categories: Mapping[str, str | Sequence[str]] | None,
) -> dict[str, list[str]] | None:
    """Accept {"db": "database"} or {"db": ["database", "connection pool"]}."""
    if not categories:
        return None
    out: dict[str, list[str]] = {}
    for name, patterns in categories.items():
        if isinstance(patterns, str):
            patterns = [patterns]
        out[name] = [p for p in patterns if p]
        if not out[name]:
            raise ConfigError(f"Category '{name}' needs at least one non-empty pattern.")
    return out


async def summarize_log_impl(
    *,
    log_path: str,
    config_path: str | None = None,
    categories: Mapping[str, str | Sequence[str]] | None = None,
    bucket_by: str | None = None,
    output: str = DEFAULT_OUTPUT,
    max_workers: int | None = None,
) -> dict[str, Any]:
    """Implementation for the `summarize_log` MCP tool.

    Notes
    -----
    - categories passed inline are appended after those from config_path
    - output="json" returns only the structured report; "text"/"kv" also
      return the rendered text
    - log_path "-" is rejected: stdin carries the MCP transport
    """
    if log_path.strip() == STDIN:
        raise ConfigError("log_path must be a file path; stdin is not available to the MCP tool.")
    if output not in BUILTIN_TEMPLATES:
        raise ConfigError(f"output must be one of: {', '.join(BUILTIN_TEMPLATES)}")

    base = load_config(config_path) if config_path else None
    config = with_overrides(base, categories=_normalize_categories(categories), bucket_by=bucket_by)

    report = await analyze(log_path, config, max_workers=max_workers)

    result: dict[str, Any] = {"report": report.model_dump(mode="json")}
    if output != "json":
        result["text"] = render(report, output)
    return result
