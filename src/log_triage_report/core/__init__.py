"""Classifier, aggregator and report emitter.

Re-exports the pieces most callers need.
"""

from __future__ import annotations

from .aggregator import Aggregator
from .classifier import LineClassifier
from .config import TriageConfig, load_config, parse_config
from .errors import ConfigError, InputError, LogTriageError
from .log_service import analyze, analyze_lines
from .models import LogLine, Report, Severity, Tag
from .render import render

__all__ = [
    "Aggregator",
    "ConfigError",
    "InputError",
    "LineClassifier",
    "LogLine",
    "LogTriageError",
    "Report",
    "Severity",
    "Tag",
    "TriageConfig",
    "analyze",
    "analyze_lines",
    "load_config",
    "parse_config",
    "render",
]
