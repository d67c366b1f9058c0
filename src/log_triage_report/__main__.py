"""Module entrypoint.

Allows:
    python -m log_triage_report app.log --format json
"""

from __future__ import annotations

from log_triage_report.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
