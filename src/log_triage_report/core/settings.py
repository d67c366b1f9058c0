"""Environment-driven settings shared by the CLI and the MCP server."""

from __future__ import annotations

import logging
import os

from .errors import ConfigError

LOG_LEVEL_ENV = "LOG_TRIAGE_LOG_LEVEL"
MAX_WORKERS_ENV = "LOG_TRIAGE_MAX_WORKERS"


def configure_logging(level_name: str | None = None) -> None:
    """Configure stderr logging so stdout only carries the report."""
    name = (level_name or os.getenv(LOG_LEVEL_ENV, "WARNING")).upper()
    level = getattr(logging, name, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def resolve_max_workers(max_workers: int | None) -> int:
    """Worker count: explicit value, then LOG_TRIAGE_MAX_WORKERS, then 1 (serial)."""
    if max_workers is not None:
        if max_workers < 1:
            raise ConfigError("max_workers must be >= 1")
        return max_workers

    env = os.getenv(MAX_WORKERS_ENV)
    if env:
        try:
            value = int(env)
        except ValueError as exc:
            raise ConfigError(f"{MAX_WORKERS_ENV} must be an integer") from exc
        if value < 1:
            raise ConfigError(f"{MAX_WORKERS_ENV} must be >= 1")
        return value

    return 1
