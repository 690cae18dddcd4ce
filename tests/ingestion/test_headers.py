import pytest

from lead_importer.ingestion.headers import (
    RULES_BY_FIELD,
    exact_match,
    find_header_row,
    fuzzy_match,
    infer_columns,
    normalize_header,
    resolve_columns,
    resolve_pass,
)

STANDARD_HEADERS = ["Full Name", "Mobile Number", "Email", "Lead Source", "Status", "Assigned To"]


def test_normalize_header():
    assert normalize_header('  "Lead Source" ') == "lead_source"
    assert normalize_header("E-mail Address!") == "e-mail_address"


def test_header_row_is_found_below_a_preamble():
    rows = [
        ["Monthly leads export", "", ""],
        ["", "", ""],
        ["Full Name", "Mobile Number", "Email"],
        ["Jane Doe", "9876543210", "jane@x.com"],
    ]

    assert find_header_row(rows) == 2
    mapping = infer_columns(rows)
    assert mapping.header_found
    assert mapping.data_start == 3
    assert mapping.value(rows[3], "email") == "jane@x.com"


def test_header_scan_is_limited():
    rows = [["note"]] * 5 + [["Name", "Phone"]]

    assert find_header_row(rows, scan_limit=5) is None
    assert find_header_row(rows, scan_limit=6) == 5


def test_standard_headers_resolve_to_distinct_columns():
    columns = resolve_columns(STANDARD_HEADERS)

    assert columns == {
        "name": 0,
        "phone_number": 1,
        "email": 2,
        "source": 3,
        "status": 4,
        "assigned_staff": 5,
    }
    assert len(set(columns.values())) == len(columns)


@pytest.mark.parametrize("order", [[5, 4, 3, 2, 1, 0], [2, 0, 5, 1, 3, 4]])
def test_resolution_is_stable_under_column_reordering(order):
    baseline = {field: STANDARD_HEADERS[index] for field, index in resolve_columns(STANDARD_HEADERS).items()}
    permuted = [STANDARD_HEADERS[index] for index in order]

    resolved = {field: permuted[index] for field, index in resolve_columns(permuted).items()}

    assert resolved == baseline


def test_name_fuzzy_match_skips_excluded_headers():
    rows = [["Contact Name", "Applicant Name", "Phone"], ["Ravi", "Jane", "9876543210"]]

    mapping = infer_columns(rows)

    assert mapping.index_of("name") == 1
    assert mapping.index_of("phone_number") == 2
    assert 0 not in mapping.columns.values()


def test_short_exclusion_keywords_match_whole_tokens_only():
    rule = RULES_BY_FIELD["name"]

    assert rule.rejects("student_id")
    assert rule.rejects("contact_name")
    assert not rule.rejects("nominee_name")


def test_first_and_last_name_columns_suppress_the_name_fallback():
    mapping = infer_columns([["First Name", "Last Name", "Phone"], ["Jane", "Doe", "9876543210"]])

    assert mapping.index_of("first_name") == 0
    assert mapping.index_of("last_name") == 1
    assert mapping.index_of("name") is None


def test_name_falls_back_to_first_column_when_unresolved():
    mapping = infer_columns([["ID", "Phone", "Email"], ["17", "9876543210", "jane@x.com"]])

    assert mapping.index_of("name") == 0
    assert mapping.index_of("phone_number") == 1
    assert mapping.index_of("email") == 2


def test_missing_header_uses_first_row_with_placeholders():
    rows = [["Jane Doe", "9876543210", ""], ["John", "9123456789", "x"]]

    mapping = infer_columns(rows)

    assert not mapping.header_found
    assert mapping.headers == ["Jane Doe", "9876543210", "Column 3"]
    assert mapping.index_of("name") == 0
    assert mapping.data_start == 1


def test_resolve_pass_does_not_reclaim_taken_columns():
    headers = ["phone", "mobile"]

    claims = resolve_pass(headers, {"secondary_phone_number": 0}, ["phone_number"], exact_match)

    assert claims == {"secondary_phone_number": 0, "phone_number": 1}


def test_fuzzy_match_rules():
    assert fuzzy_match("primary_mobile_number", "mobile")
    assert fuzzy_match("mob", "mobile")
    assert not fuzzy_match("no", "phone_no")
    assert not fuzzy_match("", "name")


def test_secondary_phone_rule_rejects_excluded_headers():
    rule = RULES_BY_FIELD["secondary_phone_number"]

    assert rule.rejects("alternate_phone_date")
    assert rule.rejects("second_phone_status")
    assert not rule.rejects("alternate_phone")


def test_secondary_phone_status_header_is_left_unmapped():
    mapping = infer_columns([["Name", "Phone", "Status", "Second Phone Status"], ["Jane", "9876543210", "", "Busy"]])

    assert mapping.index_of("secondary_phone_number") is None
    assert 3 not in mapping.columns.values()


def test_meta_ads_export_headers():
    headers = ["id", "created_time", "ad_id", "ad_name", "adset_name", "campaign_name", "form_name", "full_name", "phone_number"]

    columns = resolve_columns(headers)

    assert columns["name"] == 7
    assert columns["phone_number"] == 8
    assert columns["meta_lead_id"] == 0
    assert columns["meta_created_time"] == 1
    assert columns["meta_ad_name"] == 3
    assert columns["meta_campaign_name"] == 5
    assert columns["meta_form_name"] == 6
    assert "source" not in columns


def test_lead_id_is_matched_exactly_only():
    columns = resolve_columns(["Name", "Phone", "Candidate Ref", "Ad ID"])

    assert "meta_lead_id" not in columns
