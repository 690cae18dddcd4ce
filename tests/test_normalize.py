import io
from datetime import datetime, timezone

import pandas as pd
import pytest

from lead_importer.dedupe import DuplicateIndex
from lead_importer.ingestion.headers import infer_columns
from lead_importer.ingestion.loaders import read_sheets
from lead_importer.models import LeadStatus, StaffMember
from lead_importer.normalize import (
    EMAIL_DUPLICATE_REASON,
    RowNormalizer,
    clean_name,
    derive_status,
    match_staff,
    normalise_priority,
    parse_date,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
STAFF = [
    StaffMember(id=1, name="Priya Sharma", email="priya@crm.test", role="STAFF"),
    StaffMember(id=2, name="Arjun Menon", email="arjun@crm.test", role="SALES_TEAM"),
]


def _normalize(rows, *, duplicates=None, directory=STAFF, created_by=7):
    mapping = infer_columns(rows)
    normalizer = RowNormalizer(directory, duplicates or DuplicateIndex(), created_by=created_by, now=NOW)
    return [normalizer.normalize(row, mapping, index + 1) for index, row in enumerate(rows) if index >= mapping.data_start]


def test_clean_name_strips_decoration():
    assert clean_name("+_ROHIT_+") == "ROHIT"
    assert clean_name(" 'Jane Doe' ") == "Jane Doe"
    assert clean_name(None) == ""


def test_blank_name_column_falls_back_to_first_cell():
    [outcome] = _normalize([["Serial", "Name", "Phone"], ["+_ROHIT_+", "", "9876543210"]])

    assert outcome.lead.name == "ROHIT"


def test_numeric_or_missing_names_get_row_placeholders():
    outcomes = _normalize([["Name", "Phone"], ["12345", "9876543210"], ["", "9123456789"]])

    assert [outcome.lead.name for outcome in outcomes] == ["Row 2", "Row 3"]


def test_first_and_last_name_are_combined():
    [outcome] = _normalize([["First Name", "Last Name", "Phone"], ["Jane", "Doe", "9876543210"]])

    assert outcome.lead.name == "Jane Doe"


def test_accepted_lead_fields():
    [outcome] = _normalize(
        [
            ["Name", "Phone", "Email", "Priority", "Follow Up Date", "Comment"],
            ["Jane Doe", "98765 43210", " Jane@X.com ", "Hot", "2024-06-01", "Call after 5pm"],
        ]
    )

    lead = outcome.lead
    assert outcome.accepted
    assert lead.phone_number == "9876543210"
    assert lead.phone_country_code == "+91"
    assert lead.email == "jane@x.com"
    assert lead.priority == "hot"
    assert lead.follow_up_date == "2024-06-01"
    assert lead.follow_up_status == "Pending"
    assert lead.comment == "Call after 5pm"
    assert lead.status == LeadStatus.UNASSIGNED.value
    assert lead.created_by == 7
    assert lead.created_at == NOW
    assert lead.excel_row_data["Name"] == "Jane Doe"


def test_plus_prefixed_phone_splits_country_code():
    [outcome] = _normalize([["Name", "Phone"], ["Ali", "+971501234567"]])

    assert outcome.lead.phone_number == "501234567"
    assert outcome.lead.phone_country_code == "+971"


def test_explicit_country_code_column_is_used():
    [outcome] = _normalize([["Name", "Phone", "Country Code"], ["Tom", "7712345678", "44"]])

    assert outcome.lead.phone_country_code == "+44"
    assert outcome.lead.phone_number == "7712345678"


def test_invalid_email_is_dropped():
    [outcome] = _normalize([["Name", "Phone", "Email"], ["Jane", "9876543210", "not-an-email"]])

    assert outcome.lead.email is None


def test_email_duplicate_skips_row_even_with_new_phone():
    duplicates = DuplicateIndex.from_existing([], ["jane@x.com"])

    [outcome] = _normalize([["Name", "Phone", "Email"], ["Jane", "9123456789", "JANE@x.com"]], duplicates=duplicates)

    assert not outcome.accepted
    assert outcome.skip_reason == EMAIL_DUPLICATE_REASON


def test_row_with_only_known_phones_is_skipped():
    duplicates = DuplicateIndex.from_existing(["+919876543210"], [])

    [outcome] = _normalize([["Name", "Phone"], ["Jane", "9876543210"]], duplicates=duplicates)

    assert outcome.lead is None
    assert outcome.skip_reason == "Phone already in CRM: 9876543210"


def test_known_primary_phone_falls_back_to_fresh_candidate():
    duplicates = DuplicateIndex.from_existing(["9876543210"], [])

    [outcome] = _normalize(
        [["Name", "Phone", "Alternate Number"], ["Jane", "9876543210", "9123456789"]],
        duplicates=duplicates,
    )

    assert outcome.lead.phone_number == "9123456789"
    assert outcome.lead.secondary_phone_number is None


def test_secondary_phone_is_kept_when_distinct():
    [outcome] = _normalize([["Name", "Phone", "Alternate Number"], ["Jane", "9876543210", "9123456789"]])

    assert outcome.lead.phone_number == "9876543210"
    assert outcome.lead.secondary_phone_number == "9123456789"


def test_repeated_phone_within_file_is_skipped():
    outcomes = _normalize([["Name", "Phone"], ["Jane", "9876543210"], ["Jane again", "+91 98765 43210"]])

    assert outcomes[0].accepted
    assert not outcomes[1].accepted
    assert outcomes[1].skip_reason.startswith("Phone already in CRM")


def test_row_without_any_phone_is_accepted():
    [outcome] = _normalize([["Name", "Phone", "Email"], ["Jane", "", "jane@x.com"]])

    assert outcome.accepted
    assert outcome.lead.phone_number is None
    assert outcome.lead.phone_country_code is None


def test_staff_assignment_sets_assigned_status():
    [outcome] = _normalize([["Name", "Phone", "Assigned To", "Status"], ["Jane", "9876543210", "priya", ""]])

    assert outcome.lead.assigned_staff_id == 1
    assert outcome.lead.status == LeadStatus.ASSIGNED.value


def test_match_staff_by_email_and_name():
    assert match_staff("ARJUN@crm.test", STAFF).id == 2
    assert match_staff("Priya Sharma", STAFF).id == 1
    assert match_staff("pri", STAFF) is None
    assert match_staff("", STAFF) is None


@pytest.mark.parametrize(
    "raw, staff, expected",
    [
        ("Follow up next week", None, LeadStatus.FOLLOW_UP.value),
        ("hot prospect", None, LeadStatus.PROSPECT.value),
        ("Not eligible - age", None, LeadStatus.NOT_ELIGIBLE.value),
        ("not interested", None, LeadStatus.NOT_INTERESTED.value),
        ("REGISTRATION COMPLETED", None, LeadStatus.REGISTRATION_COMPLETED.value),
        ("new", None, LeadStatus.NEW.value),
        ("", None, LeadStatus.UNASSIGNED.value),
        ("called twice", None, LeadStatus.UNASSIGNED.value),
        ("", STAFF[0], LeadStatus.ASSIGNED.value),
        ("Unassigned", STAFF[0], LeadStatus.ASSIGNED.value),
        ("Prospect", STAFF[0], LeadStatus.PROSPECT.value),
    ],
)
def test_derive_status(raw, staff, expected):
    assert derive_status(raw, staff) == expected


def test_normalise_priority():
    assert normalise_priority(" Warm ") == "warm"
    assert normalise_priority("Not Interested") == "not interested"
    assert normalise_priority("urgent") is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("45000", "2023-03-15"),
        ("45000.5", "2023-03-15"),
        ("2024-05-01", "2024-05-01"),
        ("5", None),
        ("", None),
        ("not a date", None),
    ],
)
def test_parse_date(value, expected):
    assert parse_date(value) == expected


def _workbook_rows(rows):
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Leads", index=False, header=False)
    return read_sheets(buffer.getvalue(), "leads.xlsx")[0].rows


def test_workbook_datetime_cell_is_not_a_phone():
    rows = _workbook_rows([["Name", "Phone", "Created Time"], ["Jane", "9876543210", datetime(2024, 5, 1, 10, 30)]])

    [fresh] = _normalize(rows)
    [known] = _normalize(rows, duplicates=DuplicateIndex.from_existing(["+919876543210"], []))

    assert fresh.lead.phone_number == "9876543210"
    assert fresh.lead.secondary_phone_number is None
    assert fresh.lead.follow_up_date == "2024-05-01"
    assert not known.accepted
    assert known.skip_reason == "Phone already in CRM: 9876543210"


@pytest.mark.parametrize("timestamp", ["2024-05-01 10:30:00", "01/05/2024 10:30"])
def test_csv_timestamp_cell_is_not_a_phone(timestamp):
    rows = [["Name", "Phone", "Created Time"], ["Jane", "9876543210", timestamp]]

    [fresh] = _normalize(rows)
    [known] = _normalize(rows, duplicates=DuplicateIndex.from_existing(["+919876543210"], []))

    assert fresh.lead.secondary_phone_number is None
    assert not known.accepted


def test_phone_cell_with_two_numbers_is_split():
    [outcome] = _normalize([["Name", "Phone"], ["Jane", "9876543210 / 9123456789"]])

    assert outcome.lead.phone_number == "9876543210"
    assert outcome.lead.secondary_phone_number == "9123456789"


def test_phone_cell_with_known_first_number_uses_the_second():
    duplicates = DuplicateIndex.from_existing(["9876543210"], [])

    [outcome] = _normalize([["Name", "Phone"], ["Jane", "9876543210 / 9123456789"]], duplicates=duplicates)

    assert outcome.accepted
    assert (outcome.lead.phone_country_code, outcome.lead.phone_number) == ("+91", "9123456789")
    assert outcome.lead.secondary_phone_number is None


def test_number_pasted_twice_collapses_to_one():
    [outcome] = _normalize([["Name", "Phone"], ["Jane", "9876543210 9876543210"]])

    assert outcome.lead.phone_number == "9876543210"
    assert outcome.lead.secondary_phone_number is None


META_HEADER = ["id", "created_time", "ad_name", "campaign_name", "form_name", "full_name", "phone_number", "email"]


def test_meta_ads_export_builds_source_and_comment():
    [outcome] = _normalize(
        [
            META_HEADER,
            ["l:123", "2024-04-28T09:15:00+0530", "Study UK", "Spring Intake", "UK Form", "Jane Doe", "9876543210", "jane@x.com"],
        ]
    )

    lead = outcome.lead
    assert lead.name == "Jane Doe"
    assert lead.phone_number == "9876543210"
    assert lead.source == "Campaign: Spring Intake | Ad: Study UK | Form: UK Form"
    assert lead.comment == (
        "Meta Ads: Lead ID: l:123, Created: 2024-04-28T09:15:00+0530, "
        "Campaign: Spring Intake, Ad: Study UK, Form: UK Form"
    )
    assert lead.follow_up_date == "2024-04-28"
    assert lead.secondary_phone_number is None


def test_meta_ads_details_extend_explicit_source_and_comment():
    [outcome] = _normalize(
        [
            ["Name", "Phone", "Lead Source", "Comment", "Ad Name", "Follow Up Date", "Created Time"],
            ["Jane", "9876543210", "Facebook", "Call after 5pm", "Study UK", "2024-06-01", "2024-04-28"],
        ]
    )

    lead = outcome.lead
    assert lead.source == "Facebook"
    assert lead.comment == "Call after 5pm | Meta Ads: Created: 2024-04-28, Ad: Study UK"
    assert lead.follow_up_date == "2024-06-01"


def test_plain_id_column_does_not_add_meta_ads_comment():
    [outcome] = _normalize([["ID", "Name", "Phone"], ["17", "Jane", "9876543210"]])

    assert outcome.lead.comment is None
    assert outcome.lead.source is None
