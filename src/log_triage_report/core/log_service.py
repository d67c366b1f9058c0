"""Log reading and the classify -> aggregate fold.

This module is the main integration point: it reads a log (file, .gz or
stdin), runs every line through the classifier and folds the result into an
Aggregator, either serially or as shards merged in order.
"""

from __future__ import annotations

import asyncio
import codecs
import gzip
import io
import logging
import os
import sys
from collections import deque
from collections.abc import AsyncIterator, Iterable
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from pathlib import Path

import aiofiles
from aiofiles.threadpool import wrap

from .aggregator import Aggregator
from .classifier import LineClassifier
from .config import TriageConfig
from .errors import ConfigError, InputError
from .models import Report
from .settings import resolve_max_workers

logger = logging.getLogger(__name__)

STDIN = "-"
DEFAULT_SHARD_SIZE = 5000


def resolve_input(source: str | Path) -> Path | None:
    """Validate the input source; None means standard input."""
    if str(source) == STDIN:
        return None
    path = Path(source)
    if not path.exists():
        raise InputError(f"Log file not found: {path}")
    if not path.is_file():
        raise InputError(f"Not a regular file: {path}")
    if not os.access(path, os.R_OK):
        raise InputError(f"Permission denied: {path}")
    return path


@asynccontextmanager
async def _open_text(path: Path | None, *, encoding: str, decode_errors: str):
    """Open a log for async text reading (plain, gzip or stdin)."""
    if path is None:
        f = io.TextIOWrapper(sys.stdin.buffer, encoding=encoding, errors=decode_errors)
        try:
            yield wrap(f)
        finally:
            # leave the process's stdin open
            f.detach()
    elif path.suffix.lower() == ".gz":
        f = gzip.open(path, mode="rt", encoding=encoding, errors=decode_errors)
        af = wrap(f)
        try:
            yield af
        finally:
            await af.close()
    else:
        async with aiofiles.open(path, encoding=encoding, errors=decode_errors) as f:
            yield f


async def iter_lines(
    source: str | Path,
    *,
    encoding: str = "utf-8",
    decode_errors: str = "replace",
) -> AsyncIterator[tuple[int, str]]:
    """Yield (line_no, text) for every line of the source, blank lines included."""
    path = resolve_input(source)
    try:
        async with _open_text(path, encoding=encoding, decode_errors=decode_errors) as f:
            async for line_no, line in _enumerate_async(f, start=1):
                yield line_no, line.rstrip("\r\n")
    except (OSError, EOFError) as e:
        raise InputError(f"Cannot read {source}: {e}") from e


async def _iter_shards(
    lines: AsyncIterator[tuple[int, str]],
    shard_size: int,
) -> AsyncIterator[list[tuple[int, str]]]:
    shard: list[tuple[int, str]] = []
    async for item in lines:
        shard.append(item)
        if len(shard) >= shard_size:
            yield shard
            shard = []
    if shard:
        yield shard


def _fold(classifier: LineClassifier, config: TriageConfig, lines: Iterable[tuple[int, str]]) -> Aggregator:
    agg = Aggregator(config)
    for line in classifier.classify_many(lines):
        agg.observe(line)
    return agg


async def _fold_sharded(
    lines: AsyncIterator[tuple[int, str]],
    *,
    classifier: LineClassifier,
    config: TriageConfig,
    worker_count: int,
    shard_size: int,
) -> Aggregator:
    """Fold shards on a thread pool, merging results strictly in shard order."""
    loop = asyncio.get_running_loop()
    merged = Aggregator(config)
    pending: deque[asyncio.Future[Aggregator]] = deque()
    max_pending = worker_count * 2

    executor = ThreadPoolExecutor(max_workers=worker_count)
    try:
        async for shard in _iter_shards(lines, shard_size):
            pending.append(loop.run_in_executor(executor, _fold, classifier, config, shard))
            if len(pending) >= max_pending:
                merged.merge(await pending.popleft())
        while pending:
            merged.merge(await pending.popleft())
    except BaseException:
        for fut in pending:
            fut.cancel()
        # running shards are discarded; do not block the loop on them
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown(wait=True)
    return merged


async def analyze(
    source: str | Path,
    config: TriageConfig | None = None,
    *,
    max_workers: int | None = None,
    shard_size: int = DEFAULT_SHARD_SIZE,
    encoding: str = "utf-8",
    decode_errors: str = "replace",
) -> Report:
    """Classify and aggregate a whole log, returning the final Report.

    Configuration and input problems raise before any line is processed.
    """
    config = config or TriageConfig()
    classifier = LineClassifier(config)
    worker_count = resolve_max_workers(max_workers)
    if shard_size < 1:
        raise ConfigError("shard_size must be >= 1")
    try:
        codecs.lookup(encoding)
    except LookupError as e:
        raise ConfigError(f"Unknown encoding: {encoding}") from e
    resolve_input(source)

    logger.info("Analyzing %s (workers=%s, bucket_by=%s)", source, worker_count, config.bucket_by)
    lines = iter_lines(source, encoding=encoding, decode_errors=decode_errors)

    if worker_count == 1:
        agg = Aggregator(config)
        async for line_no, raw in lines:
            agg.observe(classifier.classify(line_no, raw))
    else:
        agg = await _fold_sharded(
            lines,
            classifier=classifier,
            config=config,
            worker_count=worker_count,
            shard_size=shard_size,
        )

    report = agg.snapshot()
    logger.info(
        "Processed %s lines (%s without timestamp)",
        report.total_lines,
        report.degraded.get("timestamp", 0),
    )
    return report


def analyze_lines(lines: Iterable[str], config: TriageConfig | None = None) -> Report:
    """Fold an in-memory sequence of lines (numbered from 1) into a Report."""
    config = config or TriageConfig()
    numbered = ((i, s.rstrip("\r\n")) for i, s in enumerate(lines, start=1))
    return _fold(LineClassifier(config), config, numbered).snapshot()


async def _enumerate_async(iterable, start: int = 0):
    """Async enumerate helper for async iterators."""
    index = start
    async for item in iterable:
        yield index, item
        index += 1
