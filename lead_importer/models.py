"""Data models shared by the import pipeline, the store, and the CLI."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


class LeadStatus(str, enum.Enum):
    """Lifecycle states a lead can be imported with."""

    NEW = "New"
    UNASSIGNED = "Unassigned"
    ASSIGNED = "Assigned"
    FOLLOW_UP = "Follow-up"
    PROSPECT = "Prospect"
    NOT_ELIGIBLE = "Not Eligible"
    NOT_INTERESTED = "Not Interested"
    REGISTRATION_COMPLETED = "Registration Completed"


# --- Collaborator Snapshots ---

@dataclass(slots=True, frozen=True)
class StaffMember:
    """Entry of the user directory used to resolve assigned staff."""

    id: int
    name: str
    email: str
    role: Optional[str] = None


# --- Pipeline Records ---

@dataclass(slots=True)
class NormalizedLead:
    """Candidate lead produced by row normalization."""

    name: str
    phone_number: Optional[str] = None
    phone_country_code: Optional[str] = None
    whatsapp_number: Optional[str] = None
    email: Optional[str] = None
    country: Optional[str] = None
    program: Optional[str] = None
    occupation: Optional[str] = None
    status: str = LeadStatus.UNASSIGNED.value
    priority: Optional[str] = None
    comment: Optional[str] = None
    follow_up_date: Optional[str] = None
    follow_up_status: str = "Pending"
    assigned_staff_id: Optional[int] = None
    source: Optional[str] = None
    ielts_score: Optional[str] = None
    secondary_phone_number: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    excel_row_data: Dict[str, Any] = field(default_factory=dict)

    def as_record(self) -> Dict[str, Any]:
        """Return the column values used when inserting the lead."""

        return {
            "name": self.name,
            "phone_number": self.phone_number,
            "phone_country_code": self.phone_country_code,
            "whatsapp_number": self.whatsapp_number,
            "email": self.email,
            "country": self.country,
            "program": self.program,
            "occupation": self.occupation,
            "status": self.status,
            "priority": self.priority,
            "comment": self.comment,
            "follow_up_date": self.follow_up_date,
            "follow_up_status": self.follow_up_status,
            "assigned_staff_id": self.assigned_staff_id,
            "source": self.source,
            "ielts_score": self.ielts_score,
            "secondary_phone_number": self.secondary_phone_number,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "excel_row_data": dict(self.excel_row_data) or None,
        }


@dataclass(slots=True, frozen=True)
class RowIssue:
    """Diagnostic entry describing a skipped or failed row."""

    row: int
    sheet: str
    message: str

    def as_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "sheet": self.sheet, "message": self.message}


@dataclass
class ImportResult:
    """Aggregate outcome of one import call.

    Counters stay exact; the ``error_rows`` and ``skipped_rows`` samples stop
    growing once ``max_detail_rows`` entries have been recorded.
    """

    total: int = 0
    created: int = 0
    skipped: int = 0
    errors: int = 0
    error_rows: List[RowIssue] = field(default_factory=list)
    skipped_rows: List[RowIssue] = field(default_factory=list)
    filename: Optional[str] = None
    history_id: Optional[int] = None
    max_detail_rows: int = 100

    def record_skip(self, row: int, sheet: str, message: str) -> None:
        self.skipped += 1
        if len(self.skipped_rows) < self.max_detail_rows:
            self.skipped_rows.append(RowIssue(row=row, sheet=sheet, message=message))

    def record_error(self, row: int, sheet: str, message: str) -> None:
        self.errors += 1
        if len(self.error_rows) < self.max_detail_rows:
            self.error_rows.append(RowIssue(row=row, sheet=sheet, message=message))

    def as_dict(self) -> Dict[str, Any]:
        """Return the JSON-ready summary handed back to callers."""

        return {
            "success": True,
            "total": self.total,
            "created": self.created,
            "skipped": self.skipped,
            "errors": self.errors,
            "errorRows": [issue.as_dict() for issue in self.error_rows],
            "skippedRows": [issue.as_dict() for issue in self.skipped_rows],
            "filename": self.filename,
        }


@dataclass(frozen=True)
class HistoryRecord:
    """Values written to ``import_history`` after a successful import."""

    filename: str
    original_filename: str
    total_rows: int
    successful_rows: int
    skipped_rows: int
    error_rows: int
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
