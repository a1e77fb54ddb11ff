# ohms/pages/vitals_components/vital_records.py
# Data preparation for the Vitals page: table rows, summary counts, form defaults
# and request payloads. Category values (BMI status, BP status, ...) are entered by
# clinicians or computed by the backend; this module only displays and forwards them.

import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from utils.core_data_processing import (
    is_blank,
    format_display_date,
    resolve_field_with_fallback,
)

logger = logging.getLogger(__name__)

# Numeric measurements: (field, label, units)
VITAL_NUMERIC_FIELDS: List[Tuple[str, str, str]] = [
    ("weight_kg", "Weight", "kg"),
    ("height_cm", "Height", "cm"),
    ("waist", "Waist Circumference", "cm"),
    ("chest_measurement_inspiration", "Chest (Inspiration)", "cm"),
    ("chest_measurement_expiration", "Chest (Expiration)", "cm"),
    ("whtr", "Waist-to-Height Ratio", ""),
    ("pulse_rate", "Pulse Rate", "bpm"),
    ("systolic_bp", "Systolic BP", "mmHg"),
    ("diastolic_bp", "Diastolic BP", "mmHg"),
    ("glucose_level", "Glucose Level", "mmol/L"),
]

# Clinician-selected categories
VITAL_STATUS_OPTIONS: Dict[str, List[str]] = {
    "bmi_status": ["Underweight", "Normal", "Overweight", "Class I Obesity", "Class II Obesity", "Class III Obesity"],
    "whtr_status": ["Low Risk", "Moderate Risk", "High Risk", "Very High Risk"],
    "pulse_status": ["Normal", "Bradycardia", "Tachycardia", "Irregular", "Weak", "Strong"],
    "pulse_rythm": ["Regular", "Irregular", "Regularly Irregular", "Irregularly Irregular"],
    "blood_pressure_status": ["Normal", "High", "Low", "Elevated"],
    "glucose_status": ["Normal", "High", "Low", "Pre-diabetic", "Diabetic"],
}
VITAL_STATUS_LABELS = {
    "bmi_status": "BMI Status",
    "whtr_status": "WHtR Status",
    "pulse_status": "Pulse Status",
    "pulse_rythm": "Pulse Rhythm",
    "blood_pressure_status": "BP Status",
    "glucose_status": "Glucose Status",
}

VITAL_TEXT_FIELDS: List[Tuple[str, str]] = [
    ("systolic_warning", "Systolic Warning"),
    ("diastolic_warning", "Diastolic Warning"),
]
VITAL_NOTE_FIELDS: List[Tuple[str, str]] = [
    ("notes_text", "Clinical Notes"),
    ("additional_notes", "Additional Notes"),
]

VITAL_EDIT_FIELDS = (
    [f for f, _, _ in VITAL_NUMERIC_FIELDS]
    + list(VITAL_STATUS_OPTIONS.keys())
    + [f for f, _ in VITAL_TEXT_FIELDS]
    + [f for f, _ in VITAL_NOTE_FIELDS]
)


def vital_value(record: Dict[str, Any], field: str) -> Any:
    """Field value with the legacy column fallback applied."""
    return resolve_field_with_fallback(record, field)


def _fmt_number(value: Any, decimals: int = 1) -> Optional[str]:
    if is_blank(value):
        return None
    try:
        numeric_value = float(value)
    except (TypeError, ValueError):
        return str(value)
    if numeric_value.is_integer():
        return str(int(numeric_value))
    return f"{numeric_value:.{decimals}f}"


def format_weight_height(record: Dict[str, Any]) -> str:
    weight = _fmt_number(vital_value(record, "weight_kg"))
    height = _fmt_number(vital_value(record, "height_cm"))
    if weight is None and height is None:
        return "N/A"
    return f"{weight or '-'} kg / {height or '-'} cm"


def format_blood_pressure(record: Dict[str, Any]) -> str:
    systolic = _fmt_number(vital_value(record, "systolic_bp"), 0)
    diastolic = _fmt_number(vital_value(record, "diastolic_bp"), 0)
    if systolic is None or diastolic is None:
        return "N/A"
    return f"{systolic}/{diastolic}"


def prepare_vitals_table(page_records: List[Dict[str, Any]]) -> pd.DataFrame:
    """Rows for the vitals list, in the same order as `page_records`."""
    table_rows = []
    for record in page_records:
        employee_label = f"{record.get('employee_name') or ''} {record.get('employee_surname') or ''}".strip() or "Unknown"
        if record.get("employee_number"):
            employee_label = f"{employee_label} ({record['employee_number']})"
        bmi_value = _fmt_number(record.get("bmi"))
        bmi_status = vital_value(record, "bmi_status")
        pulse_value = _fmt_number(record.get("pulse_rate"), 0)
        table_rows.append({
            "Employee": employee_label,
            "Date": format_display_date(record.get("date_created")),
            "Weight/Height": format_weight_height(record),
            "BMI": f"{bmi_value} ({bmi_status})" if bmi_value and bmi_status else (bmi_value or bmi_status or "N/A"),
            "Blood Pressure": format_blood_pressure(record),
            "Pulse": f"{pulse_value} bpm" if pulse_value else "N/A",
        })
    return pd.DataFrame(table_rows, columns=["Employee", "Date", "Weight/Height", "BMI", "Blood Pressure", "Pulse"])


def summarize_vitals_page(page_records: List[Dict[str, Any]], total_records: int) -> Dict[str, int]:
    """
    Header counts. `total_records` is the server total; the other figures describe
    the rows currently loaded.
    """
    return {
        "total_records": int(total_records),
        "unique_employees": len({r.get("employee_id") for r in page_records if r.get("employee_id")}),
        "high_bp_cases": sum(1 for r in page_records if str(vital_value(r, "blood_pressure_status") or "") == "High"),
        "obesity_cases": sum(1 for r in page_records if "Obesity" in str(vital_value(r, "bmi_status") or "")),
    }


def plan_employee_filter_action(page_records: List[Dict[str, Any]], employee_filter: Optional[str]) -> Tuple[Optional[str], Optional[Dict[str, Any]]]:
    """
    What to do when the page is opened for one employee:
      ("select", first_record) when vitals exist,
      ("create", None) when none exist (open the create dialog pre-filled),
      (None, None) without an employee filter.
    """
    if not employee_filter:
        return None, None
    if page_records:
        return "select", page_records[0]
    return "create", None


def prepare_vital_form_defaults(record: Optional[Dict[str, Any]], employee_id: Optional[str] = None) -> Dict[str, Any]:
    """Initial form values; legacy column names are folded into the current ones."""
    source_record = record or {}
    form_defaults: Dict[str, Any] = {"employee_id": source_record.get("employee_id") or employee_id}
    for field in VITAL_EDIT_FIELDS:
        form_defaults[field] = vital_value(source_record, field)
    return form_defaults


def build_vital_payload(form_values: Dict[str, Any]) -> Dict[str, Any]:
    """Request body: numbers as floats, blank strings as None, unknown keys dropped."""
    numeric_fields = {f for f, _, _ in VITAL_NUMERIC_FIELDS}
    payload: Dict[str, Any] = {}
    for field in ["employee_id"] + VITAL_EDIT_FIELDS:
        if field not in form_values:
            continue
        value = form_values[field]
        if is_blank(value):
            payload[field] = None
        elif field in numeric_fields:
            try:
                payload[field] = float(value)
            except (TypeError, ValueError):
                logger.warning(f"Discarding non-numeric value '{value}' for vital field '{field}'.")
                payload[field] = None
        else:
            payload[field] = str(value).strip()
    return payload
