"""Command line interface for running bulk lead imports."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import ConfigurationError, ImportSettings, load_configuration, settings_from_config
from .ingestion.exporters import export_leads
from .ingestion.loaders import ValidationError
from .orchestrator import ImportOrchestrator
from .storage import ImportPersistenceError, LeadRepository, UploadStore, create_db_engine, create_tables

LOGGER = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///lead_importer.db"
DEFAULT_UPLOAD_DIR = "uploads"


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description="Bulk import CRM leads from spreadsheets and CSV files")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to an optional configuration file (YAML or JSON)",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help=f"SQLAlchemy database URL (default: {DEFAULT_DATABASE_URL})",
    )
    parser.add_argument(
        "--upload-dir",
        default=None,
        help=f"Directory where raw uploads are kept (default: {DEFAULT_UPLOAD_DIR})",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the lead, comment, user and import history tables")

    import_parser = subparsers.add_parser("import", help="Import leads from a spreadsheet or CSV file")
    import_parser.add_argument("file", help="Path to the file to import (XLSX, XLS, CSV, TSV or TXT)")
    import_parser.add_argument("--user-id", type=int, default=None, help="Id of the user running the import")

    history_parser = subparsers.add_parser("history", help="List recent imports")
    history_parser.add_argument("--limit", type=int, default=50, help="Maximum number of entries to show")

    download_parser = subparsers.add_parser("download", help="Copy the raw file of an earlier import")
    download_parser.add_argument("history_id", type=int, help="Import history id")
    download_parser.add_argument("output", help="Where the stored upload should be written")

    export_parser = subparsers.add_parser("export", help="Export stored leads to CSV or Excel")
    export_parser.add_argument("output", help="Destination file (.csv, .tsv or .xlsx)")
    export_parser.add_argument("--status", default=None, help="Only export leads with this status")
    export_parser.add_argument(
        "--include-row-data",
        action="store_true",
        help="Add the original spreadsheet cells of each lead as extra columns",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        config: Dict[str, Any] = load_configuration(args.config) if args.config else {}
        settings = settings_from_config(config)
        database_url = args.database_url or config.get("database_url") or DEFAULT_DATABASE_URL
        upload_dir = args.upload_dir or config.get("upload_dir") or DEFAULT_UPLOAD_DIR
        engine = create_db_engine(database_url)
        repository = LeadRepository(engine, batch_size=settings.batch_size, default_source=settings.default_source)
        uploads = UploadStore(upload_dir)
        return _run_command(args, repository, uploads, settings)
    except (ConfigurationError, ValidationError, ImportPersistenceError, SQLAlchemyError) as exc:
        LOGGER.error("%s", exc)
        return 1


def _run_command(
    args: argparse.Namespace,
    repository: LeadRepository,
    uploads: UploadStore,
    settings: ImportSettings,
) -> int:
    if args.command == "init-db":
        create_tables(repository.engine)
        LOGGER.info("Database tables are ready")
        return 0

    if args.command == "import":
        return _import(args.file, args.user_id, repository, uploads, settings)

    if args.command == "history":
        for entry in repository.list_import_history(args.limit):
            print(
                f"{entry.id}\t{entry.created_at:%Y-%m-%d %H:%M}\t{entry.original_filename}\t"
                f"total={entry.total_rows} created={entry.successful_rows} "
                f"skipped={entry.skipped_rows} errors={entry.error_rows}"
            )
        return 0

    if args.command == "download":
        return _download(args.history_id, Path(args.output), repository, uploads)

    if args.command == "export":
        leads = repository.list_leads(status=args.status)
        destination = export_leads(leads, args.output, include_row_data=args.include_row_data)
        LOGGER.info("Exported %s leads to %s", len(leads), destination.resolve())
        return 0

    raise ValueError(f"Unknown command {args.command}")  # pragma: no cover - argparse guards this


def _import(
    file: str,
    user_id: Optional[int],
    repository: LeadRepository,
    uploads: UploadStore,
    settings: ImportSettings,
) -> int:
    path = Path(file)
    if not path.is_file():
        LOGGER.error("Input file %s does not exist", path)
        return 1

    orchestrator = ImportOrchestrator(repository, uploads, settings=settings)
    result = orchestrator.import_file(path.read_bytes(), path.name, user_id=user_id)
    print(json.dumps(result.as_dict(), indent=2))
    LOGGER.info("Imported %s of %s rows from %s", result.created, result.total, path)
    return 0


def _download(history_id: int, output: Path, repository: LeadRepository, uploads: UploadStore) -> int:
    entry = repository.get_import_history(history_id)
    if entry is None:
        LOGGER.error("Import history entry %s was not found", history_id)
        return 1
    try:
        data = uploads.read(entry.filename)
    except FileNotFoundError:
        LOGGER.error("Stored upload %s is missing", entry.filename)
        return 1
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(data)
    LOGGER.info("Wrote %s (%s bytes) to %s", entry.original_filename, len(data), output.resolve())
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
