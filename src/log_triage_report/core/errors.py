"""Fatal error types.

Per-line problems are never raised; see ``models.Degradation``.
"""

from __future__ import annotations


class LogTriageError(Exception):
    """Base class for fatal log-triage errors."""


class ConfigError(LogTriageError, ValueError):
    """Malformed category, pattern, bucket, extraction or template configuration."""


class InputError(LogTriageError, OSError):
    """Input source missing or unreadable."""
