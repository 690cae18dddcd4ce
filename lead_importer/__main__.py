"""Package entry point for ``python -m lead_importer``.

Runs the lead import CLI: ``init-db`` creates the CRM tables, ``import``
loads a spreadsheet, ``history`` lists past imports, ``download`` fetches a
stored upload and ``export`` writes leads to CSV or Excel.
"""
from __future__ import annotations

import sys

from . import cli


def main(argv: list[str] | None = None) -> int:
    """Run a CLI subcommand, or print usage and return 2 when none is given."""

    if argv is None:
        argv = sys.argv[1:]

    if not argv:
        parser = cli.build_parser(prog="python -m lead_importer")
        parser.print_help()
        return 2

    return cli.main(argv)


if __name__ == "__main__":  # pragma: no cover - module entry point
    sys.exit(main())
