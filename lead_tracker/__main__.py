"""``python -m lead_tracker`` runs the lead spreadsheet CLI."""
from __future__ import annotations

import sys

from .cli import main as run_cli

MODULE_PROG = "python -m lead_tracker"


def main(argv: list[str] | None = None) -> int:
    return run_cli(argv, prog=MODULE_PROG)


if __name__ == "__main__":  # pragma: no cover - module entry point
    sys.exit(main())
