"""MCP server entrypoint (stdio transport).

Exposes the log summary as an MCP tool so clients can request a report for a
local log file.

Run locally (stdio):
    python -m log_triage_report.server.log_server
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from log_triage_report.core.settings import configure_logging
from log_triage_report.tools.summarize import summarize_log_impl

LOGGER = logging.getLogger(__name__)

mcp = FastMCP("log-triage-report", json_response=True)


@mcp.tool()
async def summarize_log(
    log_path: str,
    config_path: str | None = None,
    categories: dict[str, list[str]] | None = None,
    bucket_by: str | None = None,
    output: str = "json",
) -> dict[str, Any]:
    """Return per-category counts, a time histogram and extracted values for a log file.

    Parameters
    ----------
    log_path:
        Path to a local log file. Supports plain text and .gz.
    config_path:
        Optional .json/.toml triage configuration (categories, severityField,
        bucketBy, extract, correlations).
    categories:
        Extra substring categories, e.g. {"db": ["Database", "connection pool"]}.
        Patterns of one category are OR-ed; first matching category wins.
    bucket_by:
        Histogram selector: hour, date, datetime_hour, week, month, weekday.
    output:
        "json" (structured only), "text" or "kv" (structured + rendered text).

    Returns
    -------
    dict:
        {"report": {...}} and, for text/kv output, {"text": str}
    """
    return await summarize_log_impl(
        log_path=log_path,
        config_path=config_path,
        categories=categories,
        bucket_by=bucket_by,
        output=output,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
