"""Line classifier: raw text -> LogLine with per-dimension tags.

Pure per line; safe to call from several threads at once.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from .config import CategoryRule, TriageConfig
from .models import SEVERITY_DIMENSION, LogLine, Severity, Tag
from .timestamps import split_leading_timestamp

logger = logging.getLogger(__name__)

DEFAULT_SEVERITY_FIELD = r"\[\s*(?P<level>[A-Za-z]+)\s*\]"

_SEVERITY_ALIASES = {
    "WARN": "WARNING",
    "ERR": "ERROR",
    "CRITICAL": "ERROR",
    "CRIT": "ERROR",
    "FATAL": "ERROR",
    "SEVERE": "ERROR",
    "PANIC": "ERROR",
}

# Level names with no rank in Severity; a token naming one still settles the severity.
_UNRANKED_LEVELS = frozenset({"DEBUG", "TRACE", "NOTICE"})

# Fallback when no severity token is found: bare upper-case level words.
_KEYWORD_RE = re.compile(r"\b(?P<level>ERROR|CRITICAL|FATAL|WARNING|WARN|INFO)\b")


def parse_severity(value: str) -> Severity:
    """Parse a level token into a Severity (UNKNOWN when unrecognized)."""
    name = value.strip().upper()
    name = _SEVERITY_ALIASES.get(name, name)
    try:
        return Severity[name]
    except KeyError:
        return Severity.UNKNOWN


def _level_text(m: re.Match[str]) -> str:
    if "level" in m.re.groupindex:
        return m.group("level") or ""
    if m.re.groups:
        return m.group(1) or ""
    return m.group(0)


@dataclass(frozen=True, slots=True)
class CategoryMatcher:
    """Compiled form of a CategoryRule (alternation over its patterns)."""

    rule: CategoryRule
    regex: re.Pattern[str] | None
    needles: tuple[str, ...]

    @classmethod
    def compile(cls, rule: CategoryRule) -> CategoryMatcher:
        if rule.regex:
            flags = re.IGNORECASE if rule.ignore_case else 0
            joined = "|".join(f"(?:{p})" for p in rule.patterns)
            return cls(rule=rule, regex=re.compile(joined, flags), needles=())
        needles = tuple(p.casefold() for p in rule.patterns) if rule.ignore_case else rule.patterns
        return cls(rule=rule, regex=None, needles=needles)

    def matches(self, text: str) -> bool:
        if self.regex is not None:
            return self.regex.search(text) is not None
        hay = text.casefold() if self.rule.ignore_case else text
        return any(n in hay for n in self.needles)


class LineClassifier:
    """Tag lines with a severity and at most one category per content dimension.

    Within a dimension, rules are tried in configuration order and the first
    match wins. Dimensions are evaluated independently of each other.
    """

    def __init__(self, config: TriageConfig) -> None:
        self.config = config
        self._severity_re = re.compile(config.severity_field or DEFAULT_SEVERITY_FIELD)
        self._keyword_fallback = config.keyword_fallback
        self._timestamp_formats = config.timestamp_formats

        self._dimensions: dict[str, list[CategoryMatcher]] = {}
        for rule in config.categories:
            self._dimensions.setdefault(rule.dimension, []).append(CategoryMatcher.compile(rule))

    def _severity(self, text: str) -> tuple[Severity, str]:
        """Return (severity, message) from the text after the timestamp."""
        for m in self._severity_re.finditer(text):
            token = _level_text(m).strip().upper()
            sev = parse_severity(token)
            if sev is not Severity.UNKNOWN or token in _UNRANKED_LEVELS:
                return sev, text[m.end():].strip()

        if self._keyword_fallback:
            m = _KEYWORD_RE.search(text)
            if m:
                return parse_severity(m.group("level")), text.strip()

        return Severity.UNKNOWN, text.strip()

    def classify(self, line_no: int, raw: str) -> LogLine:
        """Classify one line. Never raises for odd input."""
        ts, rest = split_leading_timestamp(raw, self._timestamp_formats)
        if ts is None:
            logger.debug("line %s: no recognizable timestamp", line_no)

        severity, message = self._severity(rest)

        tags = [Tag(SEVERITY_DIMENSION, severity.value)]
        for dimension, matchers in self._dimensions.items():
            for matcher in matchers:
                if matcher.matches(raw):
                    tags.append(Tag(dimension, matcher.rule.name))
                    break

        return LogLine(
            line_no=line_no,
            raw=raw,
            timestamp=ts,
            severity=severity,
            message=message,
            tags=tuple(tags),
        )

    def classify_many(self, lines: Iterable[tuple[int, str]]) -> Iterator[LogLine]:
        for line_no, raw in lines:
            yield self.classify(line_no, raw)


def classify_lines(config: TriageConfig, lines: Sequence[str]) -> list[LogLine]:
    """Classify an in-memory list of lines (numbered from 1)."""
    classifier = LineClassifier(config)
    return list(classifier.classify_many(enumerate(lines, start=1)))
