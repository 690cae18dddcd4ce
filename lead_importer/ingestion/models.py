"""Data models used by lead ingestion utilities."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

RawRow = List[str]

CANONICAL_FIELDS = (
    "name",
    "first_name",
    "last_name",
    "phone_number",
    "phone_country_code",
    "whatsapp_number",
    "email",
    "country",
    "program",
    "occupation",
    "source",
    "assigned_staff",
    "comment",
    "status",
    "priority",
    "follow_up_date",
    "follow_up_status",
    "ielts_score",
    "secondary_phone_number",
    "meta_campaign_name",
    "meta_ad_name",
    "meta_form_name",
    "meta_lead_id",
    "meta_created_time",
)


@dataclass(slots=True)
class SheetData:
    """Rows of raw cell values read from one sheet (or one delimited file)."""

    name: str
    rows: List[RawRow] = field(default_factory=list)


@dataclass(slots=True)
class ColumnMapping:
    """Canonical field to column index resolution for one sheet."""

    header_row: Optional[int]
    headers: List[str]
    columns: Dict[str, int] = field(default_factory=dict)

    @property
    def header_found(self) -> bool:
        return self.header_row is not None

    @property
    def data_start(self) -> int:
        """Index of the first data row following the header."""

        return (self.header_row or 0) + 1

    def index_of(self, field_name: str) -> Optional[int]:
        return self.columns.get(field_name)

    def value(self, row: RawRow, field_name: str) -> str:
        """Return the stripped cell of ``row`` mapped to ``field_name``."""

        index = self.columns.get(field_name)
        if index is None or index >= len(row):
            return ""
        return (row[index] or "").strip()


__all__ = ["CANONICAL_FIELDS", "ColumnMapping", "RawRow", "SheetData"]
