# ohms/pages/dashboard_components/staff_dashboard.py
# Shapes the per-doctor / per-nurse dashboard payload for display:
# staff lists, display names, KPI values, chart frames and the reports table.

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from config import app_config
from utils.core_data_processing import employee_full_name, format_display_date, is_blank, records_to_dataframe

logger = logging.getLogger(__name__)

ALL_REPORTS_TABLE_COLUMNS = ["Report ID", "Employee", "Date Created", "Status", "Workplace", "Email"]

_STATS_DEFAULTS = {
    "totalReports": 0,
    "totalEmployees": 0,
    "signedReports": 0,
    "pendingReports": 0,
    "signoffRate": 0,
}


# --- I. Staff ---
def split_staff_by_type(users: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """{"Doctor": [...], "Nurse": [...]} in API order; other user types are ignored."""
    staff_by_type: Dict[str, List[Dict[str, Any]]] = {staff_type: [] for staff_type in app_config.STAFF_TYPES}
    for user in users or []:
        if user.get("type") in staff_by_type:
            staff_by_type[user["type"]].append(user)
    return staff_by_type


def resolve_selected_staff_id(staff_members: List[Dict[str, Any]], current_id: Optional[str]) -> Optional[str]:
    """Keeps `current_id` when it is still listed, otherwise falls back to the first staff member."""
    staff_ids = [str(member.get("id")) for member in staff_members if member.get("id")]
    if current_id and str(current_id) in staff_ids:
        return str(current_id)
    return staff_ids[0] if staff_ids else None


def staff_display_name(staff: Optional[Dict[str, Any]], staff_type: str) -> str:
    if not staff:
        return "Unknown"
    full_name = f"{staff.get('name') or ''} {staff.get('surname') or ''}".strip() or "Unknown"
    return f"Dr. {full_name}" if staff_type == "Doctor" else full_name


def staff_initials(staff: Optional[Dict[str, Any]]) -> str:
    if not staff:
        return "?"
    initials = f"{str(staff.get('name') or '')[:1]}{str(staff.get('surname') or '')[:1]}".upper()
    return initials or "?"


# --- II. Reports ---
def report_employee_name(report: Dict[str, Any]) -> str:
    return employee_full_name(report, default="Unknown Employee")


def report_doctor_name(report: Dict[str, Any]) -> str:
    """
    "Unassigned" when the report has neither doctor name nor surname,
    "Dr. Name Surname" when it has both, "Unknown Doctor" when only one part is present.
    """
    doctor_name, doctor_surname = report.get("doctor_name"), report.get("doctor_surname")
    if is_blank(doctor_name) and is_blank(doctor_surname):
        return "Unassigned"
    if not is_blank(doctor_name) and not is_blank(doctor_surname):
        return f"Dr. {doctor_name} {doctor_surname}"
    return "Unknown Doctor"


def can_download_pdf(report: Optional[Dict[str, Any]]) -> bool:
    return bool(report) and report.get("doctor_signoff") == app_config.REPORT_SIGNED_MARKER


def report_pdf_filename(report_id: str) -> str:
    return app_config.REPORT_PDF_FILENAME_TEMPLATE.format(report_id=report_id)


def report_signoff_label(report: Dict[str, Any]) -> str:
    return "Signed" if report.get("doctor_signoff") == app_config.REPORT_SIGNED_MARKER else "Pending"


def prepare_all_reports_table(reports: List[Dict[str, Any]]) -> pd.DataFrame:
    table_rows = []
    for report in reports or []:
        report_id = str(report.get("id") or "")
        table_rows.append({
            "Report ID": f"{report_id[:8]}..." if len(report_id) > 8 else report_id,
            "Employee": report_employee_name(report),
            "Date Created": format_display_date(report.get("date_created")),
            "Status": report_signoff_label(report),
            "Workplace": report.get("workplace_name") or report.get("workplace") or "N/A",
            "Email": report.get("employee_work_email") or "N/A",
        })
    return pd.DataFrame(table_rows, columns=ALL_REPORTS_TABLE_COLUMNS)


# --- III. Stats & Charts ---
def dashboard_stats(payload: Dict[str, Any]) -> Dict[str, Any]:
    stats = dict(_STATS_DEFAULTS)
    stats.update({k: v for k, v in ((payload or {}).get("stats") or {}).items() if v is not None})
    return stats


def reports_over_time_series(rows: List[Dict[str, Any]]) -> pd.Series:
    """Monthly report counts indexed by month start, sorted; unparseable months are dropped."""
    df_months = records_to_dataframe(rows or [], date_cols=["month"], numeric_cols=["report_count"],
                                     source_context="MyDashboard")
    if "month" not in df_months.columns or "report_count" not in df_months.columns:
        if rows:
            logger.warning("reportsOverTime rows lack 'month'/'report_count'; chart will be empty.")
        return pd.Series(dtype=float, name="report_count")
    df_months["report_count"] = df_months["report_count"].fillna(0)
    df_months = df_months.dropna(subset=["month"]).sort_values("month")
    monthly_series = df_months.set_index("month")["report_count"]
    monthly_series.index.name = "Month"
    return monthly_series


def payload_frame(payload: Dict[str, Any], key: str, columns: List[str],
                  numeric_cols: Optional[List[str]] = None) -> pd.DataFrame:
    """DataFrame for a list-valued payload key, with `columns` guaranteed to exist."""
    df_rows = records_to_dataframe((payload or {}).get(key) or [], columns=columns,
                                   numeric_cols=numeric_cols, source_context=f"MyDashboard/{key}")
    return df_rows[columns]
