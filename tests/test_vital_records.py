# ohms/tests/test_vital_records.py
# Pytest tests for the Vitals page data preparation.

import pytest

from pages.vitals_components.vital_records import (
    build_vital_payload,
    format_blood_pressure,
    format_weight_height,
    plan_employee_filter_action,
    prepare_vital_form_defaults,
    prepare_vitals_table,
    summarize_vitals_page,
)


def test_prepare_vitals_table(sample_vitals):
    table_df = prepare_vitals_table(sample_vitals)
    assert list(table_df.columns) == ["Employee", "Date", "Weight/Height", "BMI", "Blood Pressure", "Pulse"]

    modern_row = table_df.iloc[0]
    assert modern_row["Employee"] == "Thandi Mokoena (A100)"
    assert modern_row["Weight/Height"] == "72.5 kg / 168 cm"
    assert modern_row["BMI"] == "25.7 (Overweight)"
    assert modern_row["Blood Pressure"] == "142/91"
    assert modern_row["Pulse"] == "78 bpm"

    legacy_row = table_df.iloc[1]
    assert legacy_row["Weight/Height"] == "101 kg / 180 cm"
    assert legacy_row["BMI"] == "31.2 (Class I Obesity)"
    assert legacy_row["Pulse"] == "N/A"

    empty_row = table_df.iloc[2]
    assert empty_row["Weight/Height"] == "N/A"
    assert empty_row["BMI"] == "N/A"
    assert empty_row["Blood Pressure"] == "N/A"

def test_format_helpers_partial_values():
    assert format_weight_height({"weight_kg": 80}) == "80 kg / - cm"
    assert format_blood_pressure({"systolic_bp": 120}) == "N/A"

def test_summarize_vitals_page(sample_vitals):
    summary = summarize_vitals_page(sample_vitals, total_records=120)
    assert summary == {"total_records": 120, "unique_employees": 2, "high_bp_cases": 1, "obesity_cases": 1}

def test_plan_employee_filter_action(sample_vitals):
    assert plan_employee_filter_action(sample_vitals, None) == (None, None)
    assert plan_employee_filter_action(sample_vitals[:1], "EMP001") == ("select", sample_vitals[0])
    assert plan_employee_filter_action([], "EMP009") == ("create", None)

def test_prepare_vital_form_defaults_folds_legacy_columns(sample_vitals):
    defaults = prepare_vital_form_defaults(sample_vitals[1])
    assert defaults["employee_id"] == "EMP002"
    assert defaults["weight_kg"] == "101"
    assert defaults["bmi_status"] == "Class I Obesity"
    assert defaults["blood_pressure_status"] == "Normal"

def test_prepare_vital_form_defaults_for_new_record():
    defaults = prepare_vital_form_defaults(None, employee_id="EMP009")
    assert defaults["employee_id"] == "EMP009"
    assert defaults["glucose_level"] is None

def test_build_vital_payload():
    payload = build_vital_payload({
        "employee_id": "EMP001", "weight_kg": "72.5", "height_cm": 168, "pulse_rate": "fast",
        "bmi_status": " Normal ", "notes_text": "", "unexpected": "dropped",
    })
    assert payload == {
        "employee_id": "EMP001", "weight_kg": 72.5, "height_cm": 168.0, "pulse_rate": None,
        "bmi_status": "Normal", "notes_text": None,
    }
