# ohms/tests/test_emergency_records.py
# Pytest tests for the Emergency Responses page data preparation.

from datetime import date

from pages.emergency_components.emergency_records import (
    EMERGENCY_TABLE_COLUMNS,
    build_emergency_payload,
    emergency_employee_label,
    prepare_emergency_form_defaults,
    prepare_emergency_table,
    summarize_emergency_types,
    validate_emergency_form,
)


def test_prepare_emergency_table(sample_emergency_responses):
    table_df = prepare_emergency_table(sample_emergency_responses)
    assert list(table_df.columns) == EMERGENCY_TABLE_COLUMNS
    assert table_df.iloc[0].to_dict() == {
        "Date": "14 May 2024", "Employee": "Ayesha Patel", "Type": "Injury",
        "Complaint": "Laceration to left hand", "Diagnosis": "Superficial wound", "Location": "Warehouse B",
    }
    second_row = table_df.iloc[1]
    assert second_row["Date"] == "N/A"
    assert second_row["Employee"] == "Sipho"
    assert second_row["Diagnosis"] == "N/A"

def test_emergency_employee_label_unknown():
    assert emergency_employee_label({"employee_name": None, "employee_surname": " "}) == "Unknown"

def test_summarize_emergency_types(sample_emergency_responses):
    counts = summarize_emergency_types(sample_emergency_responses + [{"id": "ER004", "emergency_type": None}])
    assert dict(zip(counts["emergency_type"], counts["count"])) == {"Medical": 2, "Injury": 1, "Unknown": 1}
    assert list(summarize_emergency_types([]).columns) == ["emergency_type", "count"]

def test_prepare_emergency_form_defaults(sample_emergency_responses):
    assert prepare_emergency_form_defaults(sample_emergency_responses[0])["injury_date"] == "2024-05-14"
    assert prepare_emergency_form_defaults(sample_emergency_responses[1])["injury_date"] == ""
    new_defaults = prepare_emergency_form_defaults(None)
    assert new_defaults["employee_id"] is None and new_defaults["injury_date"] == ""

def test_validate_emergency_form():
    assert validate_emergency_form({"employee_id": "EMP001", "emergency_type": "Injury"}) == {}
    assert validate_emergency_form({"employee_id": " ", "emergency_type": None}) == {
        "employee_id": "Employee ID is required",
        "emergency_type": "Emergency type is required",
    }

def test_build_emergency_payload():
    payload = build_emergency_payload({
        "employee_id": "EMP001", "emergency_type": "Injury", "injury_date": date(2024, 5, 14),
        "diagnosis": "  ", "outcome": " Sent home ", "not_a_field": 1,
    })
    assert payload == {
        "employee_id": "EMP001", "emergency_type": "Injury", "injury_date": "2024-05-14",
        "diagnosis": None, "outcome": "Sent home",
    }
