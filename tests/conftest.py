from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

TRIAGE_LINES = [
    "2025-12-30 08:00:01 [INFO] service started",
    "2025-12-30 08:05:10 [ERROR] Payment failed for customer_id=1001",
    "2025-12-30 08:05:12 [WARNING] connection pool exhausted (active=50)",
    "2025-12-30 09:10:00 [ERROR] Database timeout on orders query",
    "2025-12-30 09:15:30 [ERROR] Payment failed for customer_id=1002",
    "2025-12-30 10:00:00 [INFO] health check ok",
    "Payment failed, customer unknown",
]


@pytest.fixture
def triage_lines() -> list[str]:
    return list(TRIAGE_LINES)


@pytest.fixture
def triage_config_data() -> dict[str, Any]:
    return {
        "categories": [
            {"name": "payment", "pattern": "Payment failed"},
            {"name": "db", "patterns": ["Database", "connection pool"]},
        ],
        "bucketBy": "hour",
        "extract": {"payment": {"delimiter": "=", "fieldIndex": 1}},
        "correlations": [
            {"name": "errors_near_db", "left": "severity:ERROR", "right": "db", "scope": "bucket"},
            {"name": "db_errors", "left": "ERROR", "right": "db"},
        ],
    }


@pytest.fixture
def write_triage_log() -> Callable[[Path], None]:
    def _write(path: Path) -> None:
        path.write_text("\n".join(TRIAGE_LINES) + "\n", encoding="utf-8")

    return _write


@pytest.fixture
def write_bytes() -> Callable[[Path, list[bytes]], None]:
    def _write(path: Path, lines: list[bytes]) -> None:
        path.write_bytes(b"".join(line + b"\n" for line in lines))

    return _write
