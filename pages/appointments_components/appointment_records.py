# ohms/pages/appointments_components/appointment_records.py
# Data preparation for the Appointments page.
# The page loads the complete appointment list once; everything here works on
# that in-memory list: search, table rows, status labels, section edits and
# validation of new appointments.

import logging
from typing import Any, Dict, List, Tuple

import pandas as pd

from config import app_config
from utils.core_data_processing import (
    employee_full_name,
    filter_records_by_search,
    format_display_date,
    format_display_time,
    merge_section_update,
    paginate_records,
)

logger = logging.getLogger(__name__)

APPOINTMENT_SEARCH_FIELDS = ["type", "notes", "employee_email"]
APPOINTMENT_NAME_FIELDS = ("employee_name", "employee_surname")

# Fields edited (and sent back) per detail section.
APPOINTMENT_SECTION_FIELDS: Dict[str, List[str]] = {
    "employee": ["employee_name", "employee_surname", "employee_email"],
    "appointment": ["type", "start_date", "end_date", "start_time", "end_time", "start_datetime", "end_datetime"],
    "report": ["report_id"],
    "calendar": ["calander_id", "calander_link"],
    "notes": ["notes"],
}
APPOINTMENT_SECTION_TITLES = {
    "employee": "Employee",
    "appointment": "Appointment",
    "report": "Report",
    "calendar": "Calendar",
    "notes": "Notes",
}


def appointment_status_label(record: Dict[str, Any]) -> str:
    return "With Report" if record.get("report_id") else "Scheduled"


def select_appointments_page(all_records: List[Dict[str, Any]], search_term: str,
                             url_page: int) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]], Dict[str, Any]]:
    """
    Applies the client-side search, then paginates at the URL page.
    Submitting a new search rewrites the URL to page 1 before this runs.

    Returns:
        (filtered_records, page_records, pagination)
    """
    filtered_records = filter_records_by_search(
        all_records, search_term, APPOINTMENT_SEARCH_FIELDS, full_name_fields=APPOINTMENT_NAME_FIELDS
    )
    page_records, pagination = paginate_records(filtered_records, url_page, app_config.APPOINTMENTS_PAGE_SIZE)
    # A stale URL page beyond the end falls back to the last page with rows.
    if not page_records and filtered_records and pagination["totalPages"] > 0:
        page_records, pagination = paginate_records(filtered_records, pagination["totalPages"], app_config.APPOINTMENTS_PAGE_SIZE)
    return filtered_records, page_records, pagination


def prepare_appointments_table(page_records: List[Dict[str, Any]]) -> pd.DataFrame:
    """Display rows (same order as `page_records`) for the appointments table."""
    table_rows = []
    for record in page_records:
        table_rows.append({
            "Employee": employee_full_name(record, default="N/A"),
            "Email": record.get("employee_email") or "",
            "Type": record.get("type") or "N/A",
            "Date": format_display_date(record.get("start_date")),
            "Time": f"{format_display_time(record.get('start_time'))} - {format_display_time(record.get('end_time'))}",
            "Status": appointment_status_label(record),
        })
    return pd.DataFrame(table_rows, columns=["Employee", "Email", "Type", "Date", "Time", "Status"])


def build_section_update(record: Dict[str, Any], form_data: Dict[str, Any], section: str) -> Dict[str, Any]:
    """Full record for the PUT, with only `section`'s fields replaced."""
    return merge_section_update(record, form_data, section, APPOINTMENT_SECTION_FIELDS)


def section_success_message(section: str) -> str:
    title = APPOINTMENT_SECTION_TITLES.get(section, section.title())
    return f"{title} section updated successfully!"


def validate_new_appointment(data: Dict[str, Any]) -> Dict[str, str]:
    """Per-field errors; empty dict when the appointment can be submitted."""
    errors = {}
    if not str(data.get("employee_id") or "").strip():
        errors["employee_id"] = "Employee is required"
    if not str(data.get("type") or "").strip():
        errors["type"] = "Appointment type is required"
    if data.get("start_date") and data.get("end_date") and str(data["end_date"]) < str(data["start_date"]):
        errors["end_date"] = "End date cannot be before start date"
    return errors


def build_new_appointment_payload(form_values: Dict[str, Any]) -> Dict[str, Any]:
    """Normalises dialog values (dates/times to ISO strings, blanks to None)."""
    payload = {}
    for field, value in form_values.items():
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        if isinstance(value, str):
            value = value.strip() or None
        payload[field] = value
    if payload.get("start_date") and payload.get("start_time"):
        payload["start_datetime"] = f"{payload['start_date']}T{payload['start_time']}"
    if payload.get("end_date") and payload.get("end_time"):
        payload["end_datetime"] = f"{payload['end_date']}T{payload['end_time']}"
    return payload
