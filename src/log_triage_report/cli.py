from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from log_triage_report.core.config import load_config, with_overrides
from log_triage_report.core.errors import ConfigError, InputError
from log_triage_report.core.log_service import DEFAULT_SHARD_SIZE, analyze
from log_triage_report.core.render import render, write_report
from log_triage_report.core.settings import configure_logging
from log_triage_report.core.timestamps import BUCKET_SELECTORS

logger = logging.getLogger(__name__)


def _parse_category(s: str) -> tuple[str, str]:
    name, sep, pattern = s.partition("=")
    name = name.strip()
    if not sep or not name or not pattern:
        raise argparse.ArgumentTypeError("category must look like NAME=PATTERN (e.g., db=Database)")
    return name, pattern


def _collect_categories(pairs: Sequence[tuple[str, str]]) -> dict[str, list[str]]:
    # Repeating a name adds another OR-ed pattern to the same category.
    out: dict[str, list[str]] = {}
    for name, pattern in pairs:
        out.setdefault(name, []).append(pattern)
    return out


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="log-triage-report",
        description="Classify log lines, count them per category and time bucket, and print a report.",
    )
    p.add_argument("log_path", help="Log file (plain or .gz), or '-' for stdin")
    p.add_argument("--config", default=None, help="Triage config file (.json or .toml)")
    p.add_argument(
        "--category",
        dest="categories",
        action="append",
        type=_parse_category,
        default=[],
        metavar="NAME=PATTERN",
        help="Extra substring category; repeat a NAME to OR several patterns",
    )
    p.add_argument("--bucket-by", choices=BUCKET_SELECTORS, default=None, help="Histogram selector (default: hour)")
    p.add_argument("--format", dest="output_format", choices=["text", "kv", "json"], default="text")
    p.add_argument("--template-file", default=None, help="string.Template body with $placeholders")
    p.add_argument("--output", default=None, help="Write the report to this file instead of stdout")
    p.add_argument("--workers", type=int, default=None, help="Parallel shard workers (default: LOG_TRIAGE_MAX_WORKERS or 1)")
    p.add_argument("--shard-size", type=int, default=DEFAULT_SHARD_SIZE, help="Lines per shard in parallel mode")
    p.add_argument("--encoding", default="utf-8")
    p.add_argument("--log-level", default=None, help="Diagnostics level on stderr (default: LOG_TRIAGE_LOG_LEVEL or WARNING)")
    return p


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        base = load_config(args.config) if args.config else None
        config = with_overrides(
            base,
            categories=_collect_categories(args.categories),
            bucket_by=args.bucket_by,
        )

        template = args.output_format
        if args.template_file:
            try:
                template = Path(args.template_file).read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigError(f"Cannot read template file {args.template_file}: {e}") from e

        report = asyncio.run(
            analyze(
                args.log_path,
                config,
                max_workers=args.workers,
                shard_size=args.shard_size,
                encoding=args.encoding,
            )
        )
        text = render(report, template)
    except InputError as e:
        print(f"Input error: {e}", file=sys.stderr)
        return 2
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    if args.output:
        path = write_report(text, args.output)
        logger.info("Report written to %s", path)
    else:
        sys.stdout.write(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
