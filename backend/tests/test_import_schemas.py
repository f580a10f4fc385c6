import pytest

from uidops.services.import_schemas import (
    SCHEMAS,
    canonical_key,
    resolve_aliases,
    to_quantity,
)


@pytest.mark.parametrize("spelling", ["po_number", "PO_Number", "PO", "PO#", "PO Number", "  po-number "])
def test_po_spellings_resolve_to_one_field(spelling):
    assert resolve_aliases({spelling: "PO1"}) == {"po_number": "PO1"}


def test_canonical_key_collapses_separators():
    assert canonical_key("SKU__Code") == "sku code"
    assert canonical_key("Mobile Bin (BOX)") == "mobile bin (box)"


def test_unknown_keys_are_dropped_and_first_non_blank_wins():
    resolved = resolve_aliases({"PO": "", "po_number": "PO9", "colour": "red"})
    assert resolved == {"po_number": "PO9"}


def test_export_headers_round_trip_into_record_fields():
    row = SCHEMAS["RECORDS"].normalize_row({
        "Date": "2025-06-03",
        "Mobile Bin (BOX)": "B7",
        "SSCC Label (BOX)": "0034",
        "PO_Number": "PO1",
        "SKU_Code": "SKU1",
        "UID": "U1",
        "Status": "COMPLETE",
        "Completed At": "2025-06-03T14:00:00Z",
    })
    assert row["mobile_bin"] == "B7"
    assert row["sscc_label"] == "0034"
    assert row["status"] == "complete"
    assert row["completed_at"].isoformat() == "2025-06-03T14:00:00"


def test_record_row_validation_names_missing_key_fields():
    schema = SCHEMAS["RECORDS"]
    errors = schema.validate_row(schema.normalize_row({"po_number": "P1"}))
    assert errors == ["sku_code is required", "uid is required"]


@pytest.mark.parametrize("raw, expected", [
    ("10", 10),
    (" 2.5 ", 2.5),
    (7, 7),
    (None, 0),
    ("", 0),
    ("abc", 0),
    ("-4", 0),
    ("nan", 0),
    ("inf", 0),
])
def test_to_quantity(raw, expected):
    assert to_quantity(raw) == expected


def test_plan_row_defaults_and_optional_annotations():
    row = SCHEMAS["PLAN"].normalize_row(
        {"PO": " P1 ", "sku": "S1", "due": "2025-06-06", "qty": "x", "priority": " ", "notes": " rush "},
        "2025-06-02",
    )
    assert row == {
        "po_number": "P1",
        "sku_code": "S1",
        "start_date": "2025-06-02",
        "due_date": "2025-06-06",
        "target_qty": 0,
        "notes": "rush",
    }


def test_plan_dates_are_normalized_and_bad_due_dates_fail_validation():
    schema = SCHEMAS["PLAN"]
    row = schema.normalize_row(
        {"po": "P1", "sku": "S1", "due_date": "2025-06-06T00:00:00Z", "start_date": "someday"},
        "2025-06-02",
    )
    assert row["due_date"] == "2025-06-06"
    assert row["start_date"] == "2025-06-02"

    bad = schema.normalize_row({"po": "P1", "sku": "S1", "due_date": "6/6/2025"}, "2025-06-02")
    assert bad["due_date"] == ""
    assert schema.validate_row(bad) == ["due_date is required"]
