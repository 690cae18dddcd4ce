"""Per-row normalization of raw spreadsheet rows into candidate leads."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .config import ImportSettings
from .dedupe import DuplicateIndex, normalise_email
from .ingestion.models import ColumnMapping, RawRow
from .models import LeadStatus, NormalizedLead, StaffMember
from .phones import (
    MIN_PHONE_DIGITS,
    clean_phone,
    digits_only,
    infer_country_code,
    scan_phone_candidates,
    split_phone_cell,
)

LOGGER = logging.getLogger(__name__)

EMAIL_DUPLICATE_REASON = "Email already in CRM"

_NAME_STRIP_CHARS = " \t\r\n_-@*+\"'`()[]{}<>"
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_STATUS_KEYWORDS = (
    ("follow", LeadStatus.FOLLOW_UP),
    ("prospect", LeadStatus.PROSPECT),
    ("eligible", LeadStatus.NOT_ELIGIBLE),
    ("interested", LeadStatus.NOT_INTERESTED),
    ("completed", LeadStatus.REGISTRATION_COMPLETED),
)
VALID_PRIORITIES = ("hot", "warm", "cold", "not interested", "not eligible")

META_ADS_NAME_FIELDS = (
    ("meta_campaign_name", "Campaign"),
    ("meta_ad_name", "Ad"),
    ("meta_form_name", "Form"),
)

# Spreadsheet serial dates count days from 1899-12-30; 25569 is 1970-01-01.
_SERIAL_EPOCH_OFFSET = 25569
_SERIAL_MIN = 10000
_SERIAL_MAX = 90000


@dataclass(slots=True)
class RowOutcome:
    """Either an accepted lead or the reason the row was skipped."""

    lead: Optional[NormalizedLead] = None
    skip_reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.lead is not None


def clean_name(value: Optional[str]) -> str:
    """Strip decoration such as ``_``, ``@``, quotes and brackets from a name."""

    return (value or "").strip(_NAME_STRIP_CHARS)


def _usable_name(value: str) -> bool:
    return bool(value) and not value.replace(" ", "").isdigit()


def resolve_name(row: RawRow, mapping: ColumnMapping, row_number: int) -> str:
    raw = mapping.value(row, "name")
    if not raw:
        first = mapping.value(row, "first_name")
        last = mapping.value(row, "last_name")
        raw = f"{first} {last}".strip()

    cleaned = clean_name(raw)
    if _usable_name(cleaned):
        return cleaned
    first_cell = clean_name(row[0]) if row else ""
    if _usable_name(first_cell):
        return first_cell
    if _usable_name(raw.strip()):
        return raw.strip()
    return f"Row {row_number}"


def match_staff(value: str, directory: Sequence[StaffMember]) -> Optional[StaffMember]:
    """Find the staff member named by ``value``; first match wins."""

    wanted = value.strip().lower()
    if not wanted:
        return None
    for member in directory:
        name = (member.name or "").lower()
        email = (member.email or "").lower()
        if wanted == name or wanted == email:
            return member
        if len(wanted) > 3 and wanted in name:
            return member
    return None


def derive_status(raw_status: str, staff: Optional[StaffMember]) -> str:
    lowered = raw_status.strip().lower()
    if staff is not None and lowered in {"", "unassigned"}:
        return LeadStatus.ASSIGNED.value
    for status in LeadStatus:
        if lowered == status.value.lower():
            return status.value
    for keyword, status in _STATUS_KEYWORDS:
        if keyword in lowered:
            return status.value
    return LeadStatus.ASSIGNED.value if staff is not None else LeadStatus.UNASSIGNED.value


def normalise_priority(value: str) -> Optional[str]:
    lowered = value.strip().lower()
    return lowered if lowered in VALID_PRIORITIES else None


def parse_date(value: str) -> Optional[str]:
    """Parse a serial day number or free-text date into an ISO date."""

    text = (value or "").strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        number = None
    if number is not None:
        if not _SERIAL_MIN <= number <= _SERIAL_MAX:
            return None
        moment = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(days=number - _SERIAL_EPOCH_OFFSET)
        return moment.date().isoformat()

    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date().isoformat()


def _clean_email(value: str) -> Optional[str]:
    email = normalise_email(value)
    if not email or not _EMAIL_PATTERN.match(email):
        return None
    return email


def _optional(value: str) -> Optional[str]:
    return value or None


def _meta_names(row: RawRow, mapping: ColumnMapping) -> List[str]:
    labelled = ((label, mapping.value(row, field_name)) for field_name, label in META_ADS_NAME_FIELDS)
    return [f"{label}: {value}" for label, value in labelled if value]


def meta_ads_source(row: RawRow, mapping: ColumnMapping) -> Optional[str]:
    """Build ``Campaign: ... | Ad: ... | Form: ...`` from Meta Ads columns."""

    return " | ".join(_meta_names(row, mapping)) or None


def meta_ads_comment(row: RawRow, mapping: ColumnMapping) -> Optional[str]:
    """Summarise the Meta Ads lead id, creation time and ad names of a row.

    Only sheets with a campaign, ad or form column count as Meta Ads
    exports, so a generic ``ID`` column does not produce a comment.
    """

    if not any(field_name in mapping.columns for field_name, _ in META_ADS_NAME_FIELDS):
        return None
    details: List[str] = []
    lead_id = mapping.value(row, "meta_lead_id")
    if lead_id:
        details.append(f"Lead ID: {lead_id}")
    created = mapping.value(row, "meta_created_time")
    if created:
        details.append(f"Created: {created}")
    details.extend(_meta_names(row, mapping))
    if not details:
        return None
    return "Meta Ads: " + ", ".join(details)


def _join_comments(*comments: Optional[str]) -> Optional[str]:
    return " | ".join(comment for comment in comments if comment) or None


class RowNormalizer:
    """Turns raw rows into :class:`NormalizedLead` candidates.

    The user directory and duplicate index are snapshots shared by every
    row of one import run; accepted rows are added to the index at once.
    """

    def __init__(
        self,
        directory: Sequence[StaffMember],
        duplicates: DuplicateIndex,
        *,
        settings: Optional[ImportSettings] = None,
        created_by: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self._directory = list(directory)
        self._duplicates = duplicates
        self._settings = settings or ImportSettings()
        self._created_by = created_by
        self._now = now or datetime.now(timezone.utc)

    @property
    def duplicates(self) -> DuplicateIndex:
        return self._duplicates

    def normalize(self, row: RawRow, mapping: ColumnMapping, row_number: int) -> RowOutcome:
        email = _clean_email(mapping.value(row, "email"))
        if email and self._duplicates.has_email(email):
            return RowOutcome(skip_reason=EMAIL_DUPLICATE_REASON)

        candidates = scan_phone_candidates(row)
        duplicates = self._duplicates.known_phones(candidates)

        mapped_phones = split_phone_cell(mapping.value(row, "phone_number"))
        mapped_phone = mapped_phones[0] if mapped_phones else ""
        phone = self._select_phone(mapped_phone, candidates, duplicates)
        if not phone and duplicates:
            return RowOutcome(skip_reason=f"Phone already in CRM: {', '.join(duplicates)}")

        secondary_options = split_phone_cell(mapping.value(row, "secondary_phone_number")) + mapped_phones[1:]
        mapped_secondary = secondary_options[0] if secondary_options else ""
        secondary = self._select_secondary(mapped_secondary, candidates, phone)

        country = mapping.value(row, "country")
        country_code, local_phone = infer_country_code(
            phone,
            explicit=mapping.value(row, "phone_country_code"),
            country=country,
            default=self._settings.default_country_code,
        )
        if not phone:
            country_code, local_phone = None, ""

        staff = match_staff(mapping.value(row, "assigned_staff"), self._directory)
        status = derive_status(mapping.value(row, "status"), staff)

        lead = NormalizedLead(
            name=resolve_name(row, mapping, row_number),
            phone_number=local_phone or None,
            phone_country_code=country_code,
            whatsapp_number=_optional(clean_phone(mapping.value(row, "whatsapp_number"))),
            email=email,
            country=_optional(country),
            program=_optional(mapping.value(row, "program")),
            occupation=_optional(mapping.value(row, "occupation")),
            status=status,
            priority=normalise_priority(mapping.value(row, "priority")),
            comment=_join_comments(mapping.value(row, "comment"), meta_ads_comment(row, mapping)),
            follow_up_date=parse_date(mapping.value(row, "follow_up_date"))
            or parse_date(mapping.value(row, "meta_created_time")),
            follow_up_status=mapping.value(row, "follow_up_status") or "Pending",
            assigned_staff_id=staff.id if staff else None,
            source=_optional(mapping.value(row, "source")) or meta_ads_source(row, mapping),
            ielts_score=_optional(mapping.value(row, "ielts_score")),
            secondary_phone_number=secondary or None,
            created_by=self._created_by,
            created_at=self._now,
            updated_at=self._now,
            excel_row_data=self._row_data(row, mapping),
        )

        self._duplicates.add_lead_contacts(
            phones=[phone, f"{country_code}{local_phone}" if country_code and local_phone else None, secondary],
            email=email,
        )
        return RowOutcome(lead=lead)

    def _is_usable(self, phone: str) -> bool:
        return len(digits_only(phone)) >= MIN_PHONE_DIGITS and not self._duplicates.has_phone(phone)

    def _select_phone(self, mapped: str, candidates: List[str], duplicates: List[str]) -> str:
        if self._is_usable(mapped):
            return mapped
        if mapped and len(digits_only(mapped)) >= MIN_PHONE_DIGITS and mapped not in duplicates:
            duplicates.append(mapped)
        for candidate in candidates:
            if candidate not in duplicates:
                return candidate
        return ""

    def _select_secondary(self, mapped: str, candidates: List[str], primary: str) -> str:
        primary_digits = digits_only(primary)
        if self._is_usable(mapped) and digits_only(mapped) != primary_digits:
            return mapped
        for candidate in candidates:
            if digits_only(candidate) != primary_digits and self._is_usable(candidate):
                return candidate
        return ""

    @staticmethod
    def _row_data(row: RawRow, mapping: ColumnMapping) -> Dict[str, str]:
        data: Dict[str, str] = {}
        for index, value in enumerate(row):
            if not value:
                continue
            label = mapping.headers[index] if index < len(mapping.headers) and mapping.headers[index] else f"Column {index + 1}"
            data[label] = value
        return data


__all__ = [
    "EMAIL_DUPLICATE_REASON",
    "RowNormalizer",
    "RowOutcome",
    "clean_name",
    "derive_status",
    "match_staff",
    "meta_ads_comment",
    "meta_ads_source",
    "parse_date",
    "resolve_name",
]
