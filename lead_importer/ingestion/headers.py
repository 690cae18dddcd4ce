"""Header row detection and canonical column resolution."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .models import CANONICAL_FIELDS, ColumnMapping, RawRow

LOGGER = logging.getLogger(__name__)

HEADER_KEYWORDS: Tuple[str, ...] = ("name", "phone", "mobile", "contact", "email", "source", "status")

PRIORITY_FIELDS: Tuple[str, ...] = (
    "name",
    "phone_number",
    "phone_country_code",
    "secondary_phone_number",
    "email",
    "assigned_staff",
    "source",
    "status",
    "priority",
)

_NAME_EXCLUSIONS = (
    "phone",
    "mobile",
    "contact",
    "whatsapp",
    "source",
    "assigned",
    "staff",
    "id",
    "no",
    "remark",
    "comment",
    "details",
    "description",
    "message",
    "info",
    "age",
    "qualification",
    "score",
    "date",
    "ad",
    "adset",
    "campaign",
    "form",
)
_SECONDARY_PHONE_EXCLUSIONS = ("age", "qualification", "score", "date", "source", "status")

# Keywords this short only count when they form a whole header token.
_TOKEN_KEYWORD_LENGTH = 3
# A header must be at least this long to match as a fragment of a synonym.
_MIN_REVERSE_MATCH = 3


@dataclass(frozen=True)
class FieldRule:
    """Synonyms and exclusion keywords for one canonical field."""

    field: str
    synonyms: Tuple[str, ...]
    exclusions: Tuple[str, ...] = ()
    fuzzy: bool = True

    def rejects(self, header: str) -> bool:
        return any(_mentions(header, keyword) for keyword in self.exclusions)


FIELD_RULES: Tuple[FieldRule, ...] = (
    FieldRule("name", ("name", "full_name", "fullname", "full name", "student_name", "lead_name"), _NAME_EXCLUSIONS),
    FieldRule("first_name", ("first_name", "firstname", "fname", "first name")),
    FieldRule("last_name", ("last_name", "lastname", "lname", "surname", "last name")),
    FieldRule(
        "phone_number",
        (
            "phone_number",
            "phone",
            "phone_no",
            "mobile",
            "mobile_number",
            "mobile_no",
            "contact_number",
            "contact_no",
            "phone number",
            "phonenumber",
            "contact",
        ),
    ),
    FieldRule("phone_country_code", ("phone_country_code", "country_code", "phone_code", "country code", "phone code", "isd_code")),
    FieldRule("whatsapp_number", ("whatsapp_number", "whatsapp", "whatsapp_no", "whatsapp number")),
    FieldRule("email", ("email", "email_address", "e_mail", "email address", "email_id", "mail")),
    FieldRule("country", ("country", "country_of_interest", "current_country", "country of interest", "preferred_country")),
    FieldRule("program", ("program", "programme", "course", "course_program")),
    FieldRule("occupation", ("occupation", "job", "profession")),
    FieldRule("source", ("source", "lead_source", "lead source")),
    FieldRule("assigned_staff", ("assigned_staff", "assigned_to", "staff", "assigned_staff_id", "counsellor", "counselor")),
    FieldRule("comment", ("comment", "comments", "notes", "note", "remarks", "remark")),
    FieldRule("status", ("status", "lead_status", "leadstatus", "lead status")),
    FieldRule("priority", ("priority",)),
    FieldRule("follow_up_date", ("follow_up_date", "followup_date", "follow_up", "next_followup")),
    FieldRule("follow_up_status", ("follow_up_status", "followup_status")),
    FieldRule("ielts_score", ("ielts_score", "ielts", "ielts_band", "ielts score")),
    FieldRule(
        "secondary_phone_number",
        (
            "secondary_phone_number",
            "secondary_phone",
            "secondary_number",
            "alternate_phone",
            "alternate_number",
            "alternate_mobile",
            "alternative_number",
            "alt_phone",
            "other_phone",
            "second_phone",
            "phone_2",
            "phone2",
            "mobile_2",
            "mobile2",
        ),
        _SECONDARY_PHONE_EXCLUSIONS,
    ),
    FieldRule("meta_campaign_name", ("campaign_name", "campaign name", "campaignname")),
    FieldRule("meta_ad_name", ("ad_name", "ad name", "adname")),
    FieldRule("meta_form_name", ("form_name", "form name", "formname")),
    # Exact headers only; a bare "id" is a fragment of many unrelated headers.
    FieldRule("meta_lead_id", ("lead_id", "lead id", "leadid", "id"), fuzzy=False),
    FieldRule("meta_created_time", ("created_time", "created time", "created_date", "created date", "timestamp")),
)

RULES_BY_FIELD: Mapping[str, FieldRule] = {rule.field: rule for rule in FIELD_RULES}

Matcher = Callable[[str, str], bool]


def normalize_header(value: str) -> str:
    """Lower-case a header label, strip quotes, and replace spaces with ``_``."""

    text = str(value or "").strip().lower()
    text = re.sub(r"^[\"']+|[\"']+$", "", text)
    text = re.sub(r"\s+", "_", text)
    return re.sub(r"[^\w-]", "", text)


def _compact(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", str(value or "").lower())


def _tokens(header: str) -> List[str]:
    return [token for token in re.split(r"[_\-]+", header) if token]


def _mentions(header: str, keyword: str) -> bool:
    if len(keyword) <= _TOKEN_KEYWORD_LENGTH:
        return keyword in _tokens(header)
    return keyword in header


def exact_match(header: str, synonym: str) -> bool:
    return header == normalize_header(synonym)


def fuzzy_match(header: str, synonym: str) -> bool:
    compact_header = header.replace("_", "").replace("-", "")
    compact_synonym = _compact(synonym)
    if not compact_header or not compact_synonym:
        return False
    if compact_synonym in compact_header:
        return True
    return len(compact_header) >= _MIN_REVERSE_MATCH and compact_header in compact_synonym


def find_header_row(rows: Sequence[RawRow], scan_limit: int = 30) -> Optional[int]:
    """Return the index of the first row naming at least two header keywords."""

    for index, row in enumerate(rows[:scan_limit]):
        found = set()
        for cell in row:
            compact = _compact(cell)
            if not compact:
                continue
            found.update(keyword for keyword in HEADER_KEYWORDS if keyword in compact)
        if len(found) >= 2:
            return index
    return None


def resolve_pass(
    headers: Sequence[str],
    claims: Mapping[str, int],
    fields: Sequence[str],
    matcher: Matcher,
) -> Dict[str, int]:
    """Claim unclaimed columns for unresolved ``fields``; returns new claims.

    Synonyms are tried in their listed order and, for each synonym, headers
    left to right; the first acceptable unclaimed header wins.
    """

    resolved = dict(claims)
    taken = set(resolved.values())
    for field_name in fields:
        if field_name in resolved:
            continue
        rule = RULES_BY_FIELD[field_name]
        if not rule.fuzzy and matcher is not exact_match:
            continue
        index = _first_match(headers, taken, rule, matcher)
        if index is not None:
            resolved[field_name] = index
            taken.add(index)
    return resolved


def _first_match(headers: Sequence[str], taken: set, rule: FieldRule, matcher: Matcher) -> Optional[int]:
    for synonym in rule.synonyms:
        for index, header in enumerate(headers):
            if index in taken or not header:
                continue
            if matcher(header, synonym) and not rule.rejects(header):
                return index
    return None


def resolve_columns(headers: Sequence[str]) -> Dict[str, int]:
    """Run the exact-priority, exact-all and fuzzy passes over ``headers``."""

    normalised = [normalize_header(header) for header in headers]
    claims: Dict[str, int] = {}
    passes = (
        (PRIORITY_FIELDS, exact_match),
        (CANONICAL_FIELDS, exact_match),
        (CANONICAL_FIELDS, fuzzy_match),
    )
    for fields, matcher in passes:
        claims = resolve_pass(normalised, claims, fields, matcher)
    return claims


def infer_columns(rows: Sequence[RawRow], scan_limit: int = 30) -> ColumnMapping:
    """Locate the header row of a sheet and map its columns to lead fields."""

    header_row = find_header_row(rows, scan_limit)
    if header_row is None:
        first = list(rows[0]) if rows else []
        headers = [cell.strip() or f"Column {index + 1}" for index, cell in enumerate(first)]
        LOGGER.info("No header row detected; treating the first row as headers")
        columns = resolve_columns(headers)
        columns["name"] = 0
        return ColumnMapping(header_row=None, headers=headers, columns=columns)

    headers = [cell.strip() for cell in rows[header_row]]
    columns = resolve_columns(headers)
    if "name" not in columns and "first_name" not in columns:
        LOGGER.info("No name column resolved; falling back to the first column")
        columns["name"] = 0
    LOGGER.debug("Resolved columns %s from header row %s", columns, header_row)
    return ColumnMapping(header_row=header_row, headers=headers, columns=columns)


__all__ = [
    "FIELD_RULES",
    "FieldRule",
    "HEADER_KEYWORDS",
    "PRIORITY_FIELDS",
    "exact_match",
    "find_header_row",
    "fuzzy_match",
    "infer_columns",
    "normalize_header",
    "resolve_columns",
    "resolve_pass",
]
