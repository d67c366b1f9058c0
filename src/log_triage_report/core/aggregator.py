"""Aggregation of classified lines into counts, histograms and extracted values.

The Aggregator is the only owner of mutable state in a run. Parallel runs give
each shard its own Aggregator and merge them in shard order.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from .config import CorrelationRule, ExtractRule, TriageConfig
from .models import (
    SEVERITY_DIMENSION,
    UNKNOWN_BUCKET,
    Degradation,
    LogLine,
    Report,
    Severity,
    Tag,
    TimeWindow,
)
from .timestamps import bucket_key, bucket_sort_key

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AggregateState:
    total_lines: int = 0
    severity_counts: Counter[str] = field(default_factory=Counter)
    category_counts: dict[str, Counter[str]] = field(default_factory=dict)
    bucket_counts: Counter[str] = field(default_factory=Counter)
    # bucket -> tag key -> count (feeds bucket-scope correlations)
    bucket_tags: dict[str, Counter[str]] = field(default_factory=dict)
    extracted: dict[str, list[str]] = field(default_factory=dict)
    line_correlations: Counter[str] = field(default_factory=Counter)
    degraded: Counter[str] = field(default_factory=Counter)
    earliest: datetime | None = None
    latest: datetime | None = None


def extract_value(rule: ExtractRule, line: LogLine) -> str | None:
    """Pull the delimited field described by ``rule`` out of a line's message.

    Returns None when the pattern does not match, the delimiter is absent, the
    field index is out of range or the field is empty.
    """
    text = line.message
    if rule.pattern is not None:
        m = re.search(rule.pattern, text)
        if not m:
            return None
        text = m.group(1) if m.re.groups else m.group(0)
        if text is None:
            return None

    if rule.delimiter not in text:
        return None
    parts = text.split(rule.delimiter)
    if rule.field_index >= len(parts):
        return None
    value = parts[rule.field_index].strip()
    return value or None


class Aggregator:
    """Fold LogLines into an AggregateState and produce Report snapshots."""

    def __init__(self, config: TriageConfig) -> None:
        self.config = config
        self.state = AggregateState()

        for sev in Severity:
            self.state.severity_counts[sev.value] = 0
        for dimension in config.dimensions():
            self.state.category_counts[dimension] = Counter()
        for rule in config.categories:
            self.state.category_counts[rule.dimension][rule.name] = 0
        for name in config.extract:
            self.state.extracted[name] = []
        for degradation in Degradation:
            self.state.degraded[degradation.value] = 0

        self._correlations: list[tuple[CorrelationRule, Tag, Tag]] = [
            (c, config.resolve_tag(c.left), config.resolve_tag(c.right)) for c in config.correlations
        ]

    def observe(self, line: LogLine) -> None:
        """Update every count, histogram and value list for one line."""
        st = self.state
        st.total_lines += 1
        st.severity_counts[line.severity.value] += 1

        for tag in line.tags:
            if tag.dimension == SEVERITY_DIMENSION:
                continue
            st.category_counts[tag.dimension][tag.category] += 1
            rule = self.config.extract.get(tag.category)
            if rule is not None:
                self.extract(tag.category, rule, line)

        bucket = bucket_key(line.timestamp, self.config.bucket_by)
        st.bucket_counts[bucket] += 1
        st.bucket_tags.setdefault(bucket, Counter()).update(t.key for t in line.tags)

        if line.timestamp is None:
            st.degraded[Degradation.TIMESTAMP.value] += 1
        else:
            if st.earliest is None or line.timestamp < st.earliest:
                st.earliest = line.timestamp
            if st.latest is None or line.timestamp > st.latest:
                st.latest = line.timestamp

        for corr, left, right in self._correlations:
            if corr.scope == "line" and line.has_tag(left) and line.has_tag(right):
                st.line_correlations[corr.name] += 1

    def extract(self, category: str, rule: ExtractRule, line: LogLine) -> str | None:
        """Append the extracted value for ``category`` (input order is kept)."""
        value = extract_value(rule, line)
        if value is None:
            self.state.degraded[Degradation.EXTRACTION.value] += 1
            logger.debug("line %s: no value extracted for category %s", line.line_no, category)
            return None
        self.state.extracted.setdefault(category, []).append(value)
        return value

    def merge(self, other: Aggregator) -> None:
        """Fold another aggregator's state into this one (self comes first)."""
        st, ot = self.state, other.state
        st.total_lines += ot.total_lines
        st.severity_counts.update(ot.severity_counts)
        for dimension, counts in ot.category_counts.items():
            st.category_counts.setdefault(dimension, Counter()).update(counts)
        st.bucket_counts.update(ot.bucket_counts)
        for bucket, tags in ot.bucket_tags.items():
            st.bucket_tags.setdefault(bucket, Counter()).update(tags)
        for category, values in ot.extracted.items():
            st.extracted.setdefault(category, []).extend(values)
        st.line_correlations.update(ot.line_correlations)
        st.degraded.update(ot.degraded)

        if ot.earliest is not None and (st.earliest is None or ot.earliest < st.earliest):
            st.earliest = ot.earliest
        if ot.latest is not None and (st.latest is None or ot.latest > st.latest):
            st.latest = ot.latest

    def _correlation_counts(self) -> dict[str, int]:
        out: dict[str, int] = {}
        for corr, left, right in self._correlations:
            if corr.scope == "line":
                out[corr.name] = self.state.line_correlations[corr.name]
                continue
            total = 0
            for bucket, tags in self.state.bucket_tags.items():
                if bucket != UNKNOWN_BUCKET and tags[right.key] > 0:
                    total += tags[left.key]
            out[corr.name] = total
        return out

    def snapshot(self) -> Report:
        """Return an immutable Report; later observations do not affect it."""
        st = self.state
        bucket_by = self.config.bucket_by
        buckets = sorted(st.bucket_counts, key=lambda k: bucket_sort_key(bucket_by, k))
        return Report(
            bucket_by=bucket_by,
            total_lines=st.total_lines,
            severity_counts={sev.value: st.severity_counts[sev.value] for sev in Severity},
            category_counts={dim: dict(counts) for dim, counts in st.category_counts.items()},
            bucket_counts={k: st.bucket_counts[k] for k in buckets},
            extracted={k: tuple(v) for k, v in st.extracted.items()},
            window=TimeWindow(start=st.earliest, end=st.latest),
            correlations=self._correlation_counts(),
            degraded=dict(st.degraded),
        )
