"""Database access used by the import pipeline."""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import HistoryRecord, NormalizedLead, StaffMember
from .schema import Comment, ImportHistory, Lead, User

LOGGER = logging.getLogger(__name__)

DEFAULT_COMMENTS = {"", "-", "n/a", "na", "none", "null", "no comment", "nil"}


class ImportPersistenceError(RuntimeError):
    """Raised when the import transaction fails and is rolled back."""


def companion_comment(lead: NormalizedLead, default_source: str = "Bulk Import") -> str:
    """Comment stored alongside an imported lead."""

    text = (lead.comment or "").strip()
    if text.lower() not in DEFAULT_COMMENTS:
        return text
    source = lead.source or default_source
    return f"System: Lead imported from {source}. Initial Status: {lead.status}."


def _chunks(items: Sequence[NormalizedLead], size: int) -> Iterator[Sequence[NormalizedLead]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _lead_row(lead: NormalizedLead) -> Lead:
    record = lead.as_record()
    if record["follow_up_date"]:
        record["follow_up_date"] = date.fromisoformat(record["follow_up_date"])
    return Lead(**{key: value for key, value in record.items() if value is not None})


class LeadRepository:
    """Reads collaborator snapshots and writes imports in one transaction."""

    def __init__(self, engine: Engine, *, batch_size: int = 1000, default_source: str = "Bulk Import") -> None:
        self._engine = engine
        self._batch_size = batch_size
        self._default_source = default_source

    @property
    def engine(self) -> Engine:
        return self._engine

    def fetch_staff_directory(self) -> List[StaffMember]:
        with Session(self._engine) as session:
            users = session.execute(select(User.id, User.name, User.email, User.role).order_by(User.id)).all()
        return [StaffMember(id=row.id, name=row.name, email=row.email, role=row.role) for row in users]

    def fetch_duplicate_sources(self) -> Tuple[List[str], List[str]]:
        """Return every stored lead phone (with calling code) and email."""

        phones: List[str] = []
        emails: List[str] = []
        query = select(Lead.phone_number, Lead.phone_country_code, Lead.secondary_phone_number, Lead.email)
        with Session(self._engine) as session:
            for phone, country_code, secondary, email in session.execute(query):
                if phone:
                    phones.append(_with_country_code(phone, country_code))
                if secondary:
                    phones.append(secondary)
                if email:
                    emails.append(email)
        return phones, emails

    def count_leads(self) -> int:
        with Session(self._engine) as session:
            return session.scalar(select(func.count()).select_from(Lead)) or 0

    def list_leads(self, *, status: Optional[str] = None) -> List[Lead]:
        query = select(Lead).order_by(Lead.id)
        if status:
            query = query.where(Lead.status == status)
        with Session(self._engine, expire_on_commit=False) as session:
            return list(session.scalars(query))

    def persist_import(self, leads: Sequence[NormalizedLead], history: HistoryRecord) -> Tuple[int, Optional[int]]:
        """Insert ``leads`` with their comments, then the history entry.

        All lead and comment batches share one transaction; any failure rolls
        the whole import back and raises :class:`ImportPersistenceError`. The
        history row is written afterwards on the same connection and a
        failure there is only logged. Returns ``(created, history_id)``.
        """

        with self._engine.connect() as connection:
            with Session(bind=connection, expire_on_commit=False) as session:
                try:
                    with session.begin():
                        for number, batch in enumerate(_chunks(leads, self._batch_size), start=1):
                            self._insert_batch(session, batch)
                            LOGGER.debug("Inserted batch %s (%s leads)", number, len(batch))
                except SQLAlchemyError as exc:
                    LOGGER.error("Import transaction rolled back: %s", exc)
                    raise ImportPersistenceError(f"Import failed and was rolled back: {exc}") from exc

                created = len(leads)
                LOGGER.info("Committed %s imported leads", created)
                history_id = self._write_history(session, history)
        return created, history_id

    def _insert_batch(self, session: Session, batch: Sequence[NormalizedLead]) -> None:
        rows = [_lead_row(lead) for lead in batch]
        session.add_all(rows)
        session.flush()
        session.add_all(
            [
                Comment(
                    lead_id=row.id,
                    user_id=lead.created_by,
                    comment=companion_comment(lead, self._default_source),
                    created_at=lead.created_at or datetime.now(timezone.utc),
                )
                for row, lead in zip(rows, batch)
            ]
        )
        session.flush()

    def _write_history(self, session: Session, history: HistoryRecord) -> Optional[int]:
        entry = ImportHistory(
            filename=history.filename,
            original_filename=history.original_filename,
            total_rows=history.total_rows,
            successful_rows=history.successful_rows,
            skipped_rows=history.skipped_rows,
            error_rows=history.error_rows,
            created_by=history.created_by,
            created_at=history.created_at or datetime.now(timezone.utc),
        )
        try:
            with session.begin():
                session.add(entry)
        except SQLAlchemyError:
            LOGGER.exception("Failed to record import history for %s", history.filename)
            return None
        return entry.id

    def list_import_history(self, limit: int = 50) -> List[ImportHistory]:
        query = select(ImportHistory).order_by(ImportHistory.created_at.desc(), ImportHistory.id.desc()).limit(limit)
        with Session(self._engine, expire_on_commit=False) as session:
            return list(session.scalars(query))

    def get_import_history(self, history_id: int) -> Optional[ImportHistory]:
        with Session(self._engine, expire_on_commit=False) as session:
            return session.get(ImportHistory, history_id)


def _with_country_code(phone: str, country_code: Optional[str]) -> str:
    if not country_code or phone.startswith("+"):
        return phone
    return f"{country_code}{phone}"


__all__ = [
    "DEFAULT_COMMENTS",
    "ImportPersistenceError",
    "LeadRepository",
    "companion_comment",
]
