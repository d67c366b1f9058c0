"""Log triage reports: classify lines, aggregate counts, render summaries."""

__version__ = "0.1.0"
