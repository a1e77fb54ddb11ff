# ohms/tests/test_core_data_processing.py
# Pytest tests for utils.core_data_processing: list plumbing, formatting and record helpers.

import pytest
import pandas as pd
import numpy as np
from datetime import date, time

from utils.core_data_processing import (
    _clean_column_names,
    _convert_to_numeric,
    build_employee_options,
    build_pagination_info,
    display_value,
    employee_full_name,
    filter_records_by_search,
    find_first_record_for_employee,
    find_record_by_id,
    find_record_position,
    format_date_for_input,
    format_display_date,
    format_display_datetime,
    format_display_time,
    is_blank,
    merge_section_update,
    normalize_pagination,
    paginate_records,
    parse_input_date,
    parse_input_time,
    records_to_dataframe,
    resolve_field_with_fallback,
)


# --- Tests for Helper Functions ---

def test_clean_column_names():
    df = pd.DataFrame(columns=['Test Column', 'Another-Col', 'allgood'])
    cleaned_df = _clean_column_names(df.copy())
    assert list(cleaned_df.columns) == ['test_column', 'another_col', 'allgood']
    assert list(_clean_column_names(pd.DataFrame()).columns) == []

def test_convert_to_numeric():
    series = pd.Series(['1', '2.5', 'abc', '4', None])
    converted = _convert_to_numeric(series.copy())
    expected = pd.Series([1.0, 2.5, np.nan, 4.0, np.nan])
    pd.testing.assert_series_equal(converted, expected, check_dtype=False)

    converted_with_default = _convert_to_numeric(series.copy(), default_value=0)
    pd.testing.assert_series_equal(converted_with_default, pd.Series([1.0, 2.5, 0.0, 4.0, 0.0]), check_dtype=False)

@pytest.mark.parametrize("value, expected", [
    (None, True), ("", True), ("   ", True), (np.nan, True), (pd.NaT, True),
    ("x", False), (0, False), (False, False), ([1], False), ({}, False),
])
def test_is_blank(value, expected):
    assert is_blank(value) is expected


# --- Pagination ---

def test_build_pagination_info_boundaries():
    assert build_pagination_info(1, 50, 0) == {
        "page": 1, "limit": 50, "total": 0, "totalPages": 0, "hasNextPage": False, "hasPreviousPage": False
    }
    middle_page = build_pagination_info(2, 29, 70)
    assert middle_page["totalPages"] == 3
    assert middle_page["hasNextPage"] and middle_page["hasPreviousPage"]
    last_page = build_pagination_info(3, 29, 70)
    assert not last_page["hasNextPage"]

def test_normalize_pagination_recomputes_flags():
    normalized = normalize_pagination({"page": "2", "limit": "10", "total": "25"}, page=1, limit=50, fallback_total=0)
    assert normalized["page"] == 2
    assert normalized["totalPages"] == 3
    assert normalized["hasNextPage"] is True

def test_normalize_pagination_without_block_uses_request_and_rows():
    normalized = normalize_pagination(None, page=1, limit=50, fallback_total=7)
    assert normalized["total"] == 7
    assert normalized["totalPages"] == 1

def test_normalize_pagination_malformed_values_fall_back():
    normalized = normalize_pagination({"total": "lots"}, page=3, limit=10, fallback_total=4)
    assert normalized["page"] == 3
    assert normalized["total"] == 4

def test_paginate_records_slices_and_clamps_page(sample_appointments):
    page_two, pagination = paginate_records(sample_appointments, 2, 29)
    assert [r["id"] for r in page_two] == [f"APT{i:03d}" for i in range(30, 36)]
    assert pagination["totalPages"] == 2
    first_page, first_pagination = paginate_records(sample_appointments, 0, 29)
    assert first_page[0]["id"] == "APT001"
    assert first_pagination["page"] == 1


# --- Search ---

def test_filter_records_by_search_fields_and_full_name(sample_appointments):
    fields = ["type", "notes", "employee_email"]
    by_notes = filter_records_by_search(sample_appointments, "FASTING", fields)
    assert [r["id"] for r in by_notes] == ["APT008"]

    by_full_name = filter_records_by_search(sample_appointments, "johan van", fields, full_name_fields=("employee_name", "employee_surname"))
    assert by_full_name and all(r["employee_id"] == "EMP002" for r in by_full_name)

    assert filter_records_by_search(sample_appointments, "   ", fields) is sample_appointments
    assert filter_records_by_search(sample_appointments, "no-such-term", fields) == []


# --- Record lookup & merges ---

def test_find_record_by_id_compares_as_strings():
    records = [{"id": 1}, {"id": "2"}]
    assert find_record_by_id(records, "1") == {"id": 1}
    assert find_record_by_id(records, 2) == {"id": "2"}
    assert find_record_by_id(records, None) is None

def test_find_record_position():
    records = [{"id": "V1"}, {"id": 2}]
    assert find_record_position(records, {"id": "2"}) == 1
    assert find_record_position(records, {"id": "V9"}) is None
    assert find_record_position(records, None) is None

def test_find_first_record_for_employee(sample_vitals):
    assert find_first_record_for_employee(sample_vitals, "EMP001")["id"] == "VIT001"
    assert find_first_record_for_employee(sample_vitals, "EMP999") is None
    assert find_first_record_for_employee(sample_vitals, "") is None

def test_merge_section_update_only_touches_section_fields():
    record = {"id": "A1", "type": "Old", "notes": "keep me", "start_date": "2024-01-01"}
    sections = {"appointment": ["type", "start_date"], "notes": ["notes"]}
    merged = merge_section_update(record, {"type": "New", "notes": "ignored"}, "appointment", sections)
    assert merged == {"id": "A1", "type": "New", "notes": "keep me", "start_date": "2024-01-01"}
    assert record["type"] == "Old" # Input untouched

def test_merge_section_update_unknown_section():
    with pytest.raises(ValueError):
        merge_section_update({}, {}, "billing", {"notes": ["notes"]})


# --- Formatting ---

def test_date_and_time_formatting():
    assert format_display_date("2024-03-05") == "05 Mar 2024"
    assert format_display_date(None) == "N/A"
    assert format_display_date("garbage") == "N/A"
    assert format_display_time("9:05:00") == "09:05"
    assert format_display_time("2024-03-05T14:30:00") == "14:30"
    assert format_display_time("") == "N/A"
    assert format_display_datetime("2024-03-05T14:30:00") == "05 Mar 2024 14:30"

def test_format_date_for_input():
    assert format_date_for_input("2024-05-14T00:00:00.000Z") == "2024-05-14"
    assert format_date_for_input("not-a-date") == ""
    assert format_date_for_input(None) == ""

def test_parse_input_helpers():
    assert parse_input_date("2024-05-14") == date(2024, 5, 14)
    assert parse_input_date(None) is None
    assert parse_input_time("10:45") == time(10, 45)
    assert parse_input_time("10:45:30") == time(10, 45)
    assert parse_input_time("xx:yy") is None
    assert parse_input_time(None) is None

def test_display_value():
    assert display_value(None) == "N/A"
    assert display_value(72, "kg") == "72 kg"
    assert display_value("Warehouse") == "Warehouse"

def test_employee_full_name_requires_both_parts():
    assert employee_full_name({"employee_name": "Thandi", "employee_surname": "Mokoena"}) == "Thandi Mokoena"
    assert employee_full_name({"employee_name": "Thandi", "employee_surname": ""}) == "Unknown Employee"
    assert employee_full_name(None, default="-") == "-"

def test_build_employee_options_sorted_by_label():
    options = build_employee_options([
        {"id": "E2", "name": "Zanele", "surname": "Nkosi", "employee_number": "Z9"},
        {"id": "E1", "name": "Anele", "surname": "Moyo"},
        {"id": None, "name": "Skipped", "surname": "Row"},
    ])
    assert list(options.items()) == [("E1", "Anele Moyo"), ("E2", "Zanele Nkosi (Z9)")]

def test_resolve_field_with_fallback(sample_vitals):
    legacy_row = sample_vitals[1]
    assert resolve_field_with_fallback(legacy_row, "weight_kg") == "101"
    assert resolve_field_with_fallback(legacy_row, "blood_pressure_status") == "Normal"
    assert resolve_field_with_fallback(sample_vitals[0], "weight_kg") == 72.5
    assert resolve_field_with_fallback(legacy_row, "glucose_level") is None


# --- DataFrame conversion ---

def test_records_to_dataframe_adds_missing_columns_and_coerces(sample_vitals):
    df = records_to_dataframe(sample_vitals, columns=["id", "glucose_level"], date_cols=["date_created"], numeric_cols=["bmi"])
    assert "glucose_level" in df.columns
    assert pd.api.types.is_datetime64_any_dtype(df["date_created"])
    assert pd.api.types.is_numeric_dtype(df["bmi"])

def test_records_to_dataframe_empty():
    df = records_to_dataframe([], columns=["id"])
    assert df.empty and list(df.columns) == ["id"]
