"""Triage configuration: categories, severity field, buckets and extraction rules.

Configuration is validated with pydantic and accepts both camelCase
(``bucketBy``, ``fieldIndex``) and snake_case keys. Every problem is surfaced
as a ``ConfigError`` before any input is read.
"""

from __future__ import annotations

import json
import re
import tomllib
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .errors import ConfigError
from .models import CONTENT_DIMENSION, SEVERITY_DIMENSION, Severity, Tag
from .timestamps import DEFAULT_TIMESTAMP_FORMATS, BucketBy

_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="forbid",
    frozen=True,
)


def _check_regex(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"invalid regular expression {pattern!r}: {e}") from e
    return pattern


class CategoryRule(BaseModel):
    """Named classification rule; patterns are OR-ed together."""

    model_config = _MODEL_CONFIG

    name: str = Field(min_length=1)
    dimension: str = Field(default=CONTENT_DIMENSION, min_length=1)
    patterns: tuple[str, ...] = Field(min_length=1)
    regex: bool = False
    ignore_case: bool = False

    @model_validator(mode="before")
    @classmethod
    def _single_pattern(cls, data: Any) -> Any:
        """Accept ``pattern`` (str or list) as shorthand for ``patterns``."""
        if isinstance(data, Mapping) and "pattern" in data:
            data = dict(data)
            pattern = data.pop("pattern")
            if "patterns" in data:
                raise ValueError("use either 'pattern' or 'patterns', not both")
            data["patterns"] = [pattern] if isinstance(pattern, str) else pattern
        return data

    @field_validator("dimension")
    @classmethod
    def _not_severity(cls, v: str) -> str:
        if v == SEVERITY_DIMENSION:
            raise ValueError("the 'severity' dimension is reserved")
        return v

    @field_validator("patterns")
    @classmethod
    def _non_empty_patterns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if any(not p for p in v):
            raise ValueError("patterns must be non-empty strings")
        return v

    @model_validator(mode="after")
    def _compile_regexes(self) -> CategoryRule:
        if self.regex:
            for p in self.patterns:
                _check_regex(p)
        return self


class ExtractRule(BaseModel):
    """Secondary value extraction: split on ``delimiter`` and take ``field_index``.

    When ``pattern`` is set, the split runs on the pattern's match (first group
    if it has one) instead of the whole message.
    """

    model_config = _MODEL_CONFIG

    delimiter: str = Field(min_length=1)
    field_index: int = Field(default=1, ge=0)
    pattern: str | None = None

    @field_validator("pattern")
    @classmethod
    def _valid_pattern(cls, v: str | None) -> str | None:
        return None if v is None else _check_regex(v)


class CorrelationRule(BaseModel):
    """Count overlap between two tags, per line or per bucket."""

    model_config = _MODEL_CONFIG

    name: str = Field(min_length=1)
    left: str = Field(min_length=1)
    right: str = Field(min_length=1)
    scope: Literal["line", "bucket"] = "line"


class TriageConfig(BaseModel):
    """Full triage configuration (fixed before processing starts)."""

    model_config = _MODEL_CONFIG

    categories: tuple[CategoryRule, ...] = ()
    severity_field: str | None = None
    keyword_fallback: bool = True
    bucket_by: BucketBy = "hour"
    timestamp_formats: tuple[str, ...] = DEFAULT_TIMESTAMP_FORMATS
    extract: dict[str, ExtractRule] = Field(default_factory=dict)
    correlations: tuple[CorrelationRule, ...] = ()

    @field_validator("severity_field")
    @classmethod
    def _valid_severity_field(cls, v: str | None) -> str | None:
        return None if v is None else _check_regex(v)

    @model_validator(mode="after")
    def _check_references(self) -> TriageConfig:
        names = [c.name for c in self.categories]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"duplicate category names: {', '.join(dupes)}")

        unknown = sorted(set(self.extract) - set(names))
        if unknown:
            raise ValueError(f"extract rules reference unknown categories: {', '.join(unknown)}")

        corr_names = [c.name for c in self.correlations]
        if len(set(corr_names)) != len(corr_names):
            raise ValueError("correlation names must be unique")
        for corr in self.correlations:
            self.resolve_tag(corr.left)
            self.resolve_tag(corr.right)
        return self

    def dimensions(self) -> list[str]:
        """Content dimensions in first-appearance order."""
        out: list[str] = []
        for c in self.categories:
            if c.dimension not in out:
                out.append(c.dimension)
        return out

    def resolve_tag(self, ref: str) -> Tag:
        """Resolve ``dimension:category`` or a bare category/severity name to a Tag."""
        if ":" in ref:
            dimension, _, category = ref.partition(":")
            if dimension == SEVERITY_DIMENSION:
                if category.upper() not in Severity.__members__:
                    raise ValueError(f"unknown severity '{category}' in '{ref}'")
                return Tag(SEVERITY_DIMENSION, category.upper())
            for c in self.categories:
                if c.dimension == dimension and c.name == category:
                    return Tag(dimension, category)
            raise ValueError(f"unknown category reference '{ref}'")

        for c in self.categories:
            if c.name == ref:
                return Tag(c.dimension, c.name)
        if ref.upper() in Severity.__members__:
            return Tag(SEVERITY_DIMENSION, ref.upper())
        raise ValueError(f"unknown category reference '{ref}'")


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def parse_config(data: Mapping[str, Any] | None) -> TriageConfig:
    """Validate a configuration mapping into a TriageConfig."""
    try:
        return TriageConfig.model_validate(dict(data or {}))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {_format_validation_error(e)}") from e


def load_config(path: str | Path) -> TriageConfig:
    """Load configuration from a .json or .toml file."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {p}: {e}") from e

    try:
        if p.suffix.lower() == ".toml":
            data = tomllib.loads(text)
        else:
            data = json.loads(text)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot parse config file {p}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {p} must contain an object at the top level")
    return parse_config(data)


def with_overrides(
    base: TriageConfig | None,
    *,
    categories: Mapping[str, Sequence[str]] | None = None,
    bucket_by: str | None = None,
) -> TriageConfig:
    """Return a config with extra substring categories appended and/or a new bucket selector."""
    data = (base or TriageConfig()).model_dump()
    if categories:
        data["categories"] = [
            *data["categories"],
            *({"name": name, "patterns": list(patterns)} for name, patterns in categories.items()),
        ]
    if bucket_by is not None:
        data["bucket_by"] = bucket_by
    return parse_config(data)
