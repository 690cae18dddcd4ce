"""Import orchestrator that runs an upload through every pipeline stage."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Sequence, Tuple

from ..config import ImportSettings
from ..dedupe import DuplicateIndex
from ..ingestion.headers import infer_columns
from ..ingestion.loaders import NoDataFoundError, ValidationError, read_sheets
from ..ingestion.models import ColumnMapping, SheetData
from ..models import HistoryRecord, ImportResult, NormalizedLead, StaffMember
from ..normalize import RowNormalizer

LOGGER = logging.getLogger(__name__)


class LeadStoreProtocol(Protocol):
    """Collaborator providing snapshots and transactional persistence."""

    def fetch_staff_directory(self) -> List[StaffMember]:  # pragma: no cover - runtime protocol
        """Return the current user directory."""

    def fetch_duplicate_sources(self) -> Tuple[List[str], List[str]]:  # pragma: no cover - runtime protocol
        """Return all stored lead phones and emails."""

    def persist_import(
        self, leads: Sequence[NormalizedLead], history: HistoryRecord
    ) -> Tuple[int, Optional[int]]:  # pragma: no cover - runtime protocol
        """Insert leads and comments atomically, then record history."""


class UploadStoreProtocol(Protocol):
    def save(self, data: bytes, original_filename: str) -> str:  # pragma: no cover - runtime protocol
        """Persist the raw upload and return its stored name."""


class ImportOrchestrator:
    """Runs ingestion, header inference, normalization and persistence."""

    def __init__(
        self,
        store: LeadStoreProtocol,
        uploads: UploadStoreProtocol,
        *,
        settings: Optional[ImportSettings] = None,
    ) -> None:
        self._store = store
        self._uploads = uploads
        self._settings = settings or ImportSettings()

    @property
    def settings(self) -> ImportSettings:
        return self._settings

    def import_file(self, data: bytes, original_filename: str, *, user_id: Optional[int] = None) -> ImportResult:
        """Import ``data`` and return the aggregate :class:`ImportResult`.

        Raises :class:`ValidationError` when there is nothing importable and
        :class:`~lead_importer.storage.repository.ImportPersistenceError` when
        the write transaction fails; in both cases no lead is stored.
        """

        if not data:
            raise ValidationError("No file provided")
        if len(data) > self._settings.max_upload_bytes:
            raise ValidationError(
                f"File is {len(data)} bytes; the upload limit is {self._settings.max_upload_bytes} bytes"
            )

        stored_name = self._uploads.save(data, original_filename)
        sheets = read_sheets(data, original_filename, self._settings)

        directory = self._store.fetch_staff_directory()
        phones, emails = self._store.fetch_duplicate_sources()
        duplicates = DuplicateIndex.from_existing(phones, emails)
        LOGGER.info(
            "Importing %s: %s sheet(s), %s staff, %s known phone keys, %s known emails",
            original_filename,
            len(sheets),
            len(directory),
            duplicates.phone_count,
            duplicates.email_count,
        )

        started = datetime.now(timezone.utc)
        normalizer = RowNormalizer(
            directory,
            duplicates,
            settings=self._settings,
            created_by=user_id,
            now=started,
        )
        result = ImportResult(filename=stored_name, max_detail_rows=self._settings.max_detail_rows)
        accepted: List[NormalizedLead] = []
        data_sheets = 0

        for sheet in sheets:
            mapping = infer_columns(sheet.rows, self._settings.header_scan_rows)
            if mapping.data_start >= len(sheet.rows):
                LOGGER.info("Sheet %s has no rows below its header", sheet.name)
                continue
            data_sheets += 1
            accepted.extend(self._process_sheet(sheet, mapping, normalizer, result))

        if not data_sheets:
            raise NoDataFoundError(f"No data found in '{original_filename}'")

        created, history_id = self._store.persist_import(
            accepted,
            HistoryRecord(
                filename=stored_name,
                original_filename=original_filename,
                total_rows=result.total,
                successful_rows=len(accepted),
                skipped_rows=result.skipped,
                error_rows=result.errors,
                created_by=user_id,
                created_at=started,
            ),
        )
        result.created = created
        result.history_id = history_id
        LOGGER.info(
            "Import of %s finished: total=%s created=%s skipped=%s errors=%s",
            original_filename,
            result.total,
            result.created,
            result.skipped,
            result.errors,
        )
        return result

    def _process_sheet(
        self,
        sheet: SheetData,
        mapping: ColumnMapping,
        normalizer: RowNormalizer,
        result: ImportResult,
    ) -> List[NormalizedLead]:
        accepted: List[NormalizedLead] = []
        for index in range(mapping.data_start, len(sheet.rows)):
            row = sheet.rows[index]
            if not any(cell.strip() for cell in row):
                continue
            row_number = index + 1
            result.total += 1
            try:
                outcome = normalizer.normalize(row, mapping, row_number)
            except Exception as exc:  # noqa: BLE001 - recorded as an error row
                LOGGER.exception("Failed to normalise row %s of sheet %s", row_number, sheet.name)
                result.record_error(row_number, sheet.name, str(exc) or exc.__class__.__name__)
                continue
            if outcome.lead is None:
                result.record_skip(row_number, sheet.name, outcome.skip_reason or "Skipped")
                continue
            accepted.append(outcome.lead)
        return accepted
