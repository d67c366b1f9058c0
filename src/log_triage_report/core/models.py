"""Core data models for log triage reports."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

SEVERITY_DIMENSION = "severity"
CONTENT_DIMENSION = "content"
UNKNOWN_BUCKET = "unknown"


class Severity(str, Enum):
    """Normalized severity levels (fixed set)."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"


class Degradation(str, Enum):
    """Non-fatal fallbacks applied to a single line."""

    TIMESTAMP = "timestamp"  # no recognizable leading timestamp -> "unknown" bucket
    EXTRACTION = "extraction"  # category matched but no value could be pulled


@dataclass(frozen=True, slots=True)
class Tag:
    """One classification result: a category within a dimension."""

    dimension: str
    category: str

    @property
    def key(self) -> str:
        return f"{self.dimension}:{self.category}"


@dataclass(frozen=True, slots=True)
class LogLine:
    """Classified log line produced by the classifier."""

    line_no: int
    raw: str
    timestamp: datetime | None  # None when the leading timestamp is missing/unparseable
    severity: Severity
    message: str
    tags: tuple[Tag, ...] = ()

    def category(self, dimension: str) -> str | None:
        """Return the category this line carries for a dimension, if any."""
        for tag in self.tags:
            if tag.dimension == dimension:
                return tag.category
        return None

    def has_tag(self, tag: Tag) -> bool:
        return tag in self.tags


class TimeWindow(BaseModel):
    """Earliest and latest timestamp seen."""

    model_config = ConfigDict(frozen=True)

    start: datetime | None = None
    end: datetime | None = None


class Report(BaseModel):
    """Read-only snapshot of aggregate state.

    Every container is copied out of the aggregator when the snapshot is taken,
    so later observations never show up here.
    Mappings are exposed read-only; `model_dump` returns plain dicts.
    """

    model_config = ConfigDict(frozen=True, validate_default=True)

    bucket_by: str
    total_lines: int = 0
    severity_counts: dict[str, int] = Field(default_factory=dict)
    # dimension -> category -> count, categories in configuration order
    category_counts: dict[str, dict[str, int]] = Field(default_factory=dict)
    # bucket key -> count, sorted with "unknown" last
    bucket_counts: dict[str, int] = Field(default_factory=dict)
    extracted: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    window: TimeWindow = Field(default_factory=TimeWindow)
    correlations: dict[str, int] = Field(default_factory=dict)
    degraded: dict[str, int] = Field(default_factory=dict)

    @field_validator("severity_counts", "bucket_counts", "extracted", "correlations", "degraded", mode="after")
    @classmethod
    def _freeze_mapping(cls, v: dict[str, Any]) -> MappingProxyType:
        return MappingProxyType(v)

    @field_validator("category_counts", mode="after")
    @classmethod
    def _freeze_nested(cls, v: dict[str, dict[str, int]]) -> MappingProxyType:
        return MappingProxyType({dim: MappingProxyType(counts) for dim, counts in v.items()})

    @field_serializer("severity_counts", "bucket_counts", "extracted", "correlations", "degraded")
    def _dump_mapping(self, v: MappingProxyType) -> dict[str, Any]:
        return dict(v)

    @field_serializer("category_counts")
    def _dump_nested(self, v: MappingProxyType) -> dict[str, dict[str, int]]:
        return {dim: dict(counts) for dim, counts in v.items()}

    def count(self, category: str, dimension: str | None = None) -> int:
        """Return the count for a severity or category name (0 when absent)."""
        if dimension in (None, SEVERITY_DIMENSION) and category in self.severity_counts:
            return self.severity_counts[category]
        if dimension is not None:
            return self.category_counts.get(dimension, {}).get(category, 0)
        for counts in self.category_counts.values():
            if category in counts:
                return counts[category]
        return 0
