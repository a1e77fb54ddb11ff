# ohms/pages/emergency_components/emergency_records.py
# Table rows, form defaults, validation and payloads for the Emergency Responses page.

import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from utils.core_data_processing import (
    display_value,
    format_date_for_input,
    format_display_date,
    is_blank,
)

logger = logging.getLogger(__name__)

EMERGENCY_TABLE_COLUMNS = ["Date", "Employee", "Type", "Complaint", "Diagnosis", "Location"]

# (field, label) groups, in form order
EMERGENCY_INCIDENT_FIELDS: List[Tuple[str, str]] = [
    ("injury_date", "Injury Date"),
    ("injury_time", "Injury Time"),
    ("arrival_time", "Arrival Time"),
    ("place", "Place"),
]
EMERGENCY_CLINICAL_FIELDS: List[Tuple[str, str]] = [
    ("main_complaint", "Main Complaint"),
    ("diagnosis", "Diagnosis"),
    ("findings", "Findings"),
    ("patient_history", "Patient History"),
    ("intervention", "Intervention"),
    ("plan", "Treatment Plan"),
    ("outcome", "Outcome"),
]
EMERGENCY_REFERENCE_FIELDS: List[Tuple[str, str]] = [
    ("report_id", "Report ID"),
    ("location_id", "Location ID"),
    ("reference", "Reference"),
    ("manager", "Manager"),
    ("injury", "Injury"),
    ("sendemail", "Send Email To"),
]

EMERGENCY_FORM_FIELDS = (
    ["employee_id", "emergency_type"]
    + [f for f, _ in EMERGENCY_INCIDENT_FIELDS]
    + [f for f, _ in EMERGENCY_CLINICAL_FIELDS]
    + [f for f, _ in EMERGENCY_REFERENCE_FIELDS]
)


def emergency_employee_label(record: Dict[str, Any]) -> str:
    full_name = f"{record.get('employee_name') or ''} {record.get('employee_surname') or ''}".strip()
    return full_name or "Unknown"


def prepare_emergency_table(page_records: List[Dict[str, Any]]) -> pd.DataFrame:
    table_rows = []
    for record in page_records:
        table_rows.append({
            "Date": format_display_date(record.get("injury_date")),
            "Employee": emergency_employee_label(record),
            "Type": record.get("emergency_type") or "Unknown",
            "Complaint": display_value(record.get("main_complaint")),
            "Diagnosis": display_value(record.get("diagnosis")),
            "Location": display_value(record.get("place")),
        })
    return pd.DataFrame(table_rows, columns=EMERGENCY_TABLE_COLUMNS)


def summarize_emergency_types(page_records: List[Dict[str, Any]]) -> pd.DataFrame:
    """Counts per emergency type for the loaded rows (blank types grouped as 'Unknown')."""
    if not page_records:
        return pd.DataFrame(columns=["emergency_type", "count"])
    type_series = pd.Series([r.get("emergency_type") or "Unknown" for r in page_records], name="emergency_type")
    counts_df = type_series.value_counts().rename_axis("emergency_type").reset_index(name="count")
    return counts_df


def prepare_emergency_form_defaults(record: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Edit pre-fill. `injury_date` becomes YYYY-MM-DD, or '' when it cannot be parsed."""
    source_record = record or {}
    form_defaults = {field: source_record.get(field) for field in EMERGENCY_FORM_FIELDS}
    form_defaults["injury_date"] = format_date_for_input(source_record.get("injury_date"))
    return form_defaults


def validate_emergency_form(form_values: Dict[str, Any]) -> Dict[str, str]:
    errors = {}
    if is_blank(form_values.get("employee_id")):
        errors["employee_id"] = "Employee ID is required"
    if is_blank(form_values.get("emergency_type")):
        errors["emergency_type"] = "Emergency type is required"
    return errors


def build_emergency_payload(form_values: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for field in EMERGENCY_FORM_FIELDS:
        if field not in form_values:
            continue
        value = form_values[field]
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        if isinstance(value, str):
            value = value.strip() or None
        payload[field] = value
    return payload
