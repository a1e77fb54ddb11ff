# ohms/pages/6_my_dashboard.py
# My Dashboard: workload and report sign-off view for one doctor or nurse.
# Report selection opens the employee and report form data in the right-hand pane.

import streamlit as st
import logging
from typing import Any, Dict, List, Optional, Tuple

from config import app_config
from utils.api_client import OHMSApiError, get_api_client
from utils.core_data_processing import find_record_by_id, find_record_position, format_display_date, format_display_datetime, today_local
from utils.route_state import get_route_state, set_route_state
from utils.ui_visualization_helpers import (
    load_web_css,
    plot_annotated_line_chart_web,
    plot_bar_chart_web,
    render_detail_field,
    render_panel_width_slider,
    render_selectable_table,
    render_split_panes,
    render_status_badge,
    render_web_kpi_card,
)
from pages.dashboard_components.staff_dashboard import (
    can_download_pdf,
    dashboard_stats,
    payload_frame,
    prepare_all_reports_table,
    report_doctor_name,
    report_employee_name,
    report_pdf_filename,
    report_signoff_label,
    reports_over_time_series,
    resolve_selected_staff_id,
    split_staff_by_type,
    staff_display_name,
    staff_initials,
)

st.set_page_config(
    page_title=f"My Dashboard - {app_config.APP_NAME}",
    layout="wide",
    initial_sidebar_state="expanded"
)

logger = logging.getLogger(__name__)
load_web_css()

PAGE_KEY = "my_dashboard"
ROUTE_PATH = "/my-dashboard"
STAFF_TYPE_STATE_KEY = "my_dashboard_staff_type"
PDF_BYTES_STATE_KEY = "my_dashboard_pdf_bytes"
FLASH_STATE_KEY = "my_dashboard_flash_message"


# --- Data Loading ---
@st.cache_resource
def get_cached_api_client():
    return get_api_client()

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LOOKUPS, show_spinner="Loading staff...")
def load_staff_users() -> Tuple[List[Dict[str, Any]], Optional[str]]:
    try:
        return get_cached_api_client().fetch_staff_users(), None
    except OHMSApiError as e_users:
        logger.error(f"(MyDashboard) Failed to load users: {e_users}")
        return [], str(e_users)

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LISTS, show_spinner="Loading dashboard...")
def load_staff_dashboard(staff_id: str, staff_type: str) -> Tuple[Dict[str, Any], Optional[str]]:
    try:
        return get_cached_api_client().fetch_staff_dashboard(staff_id, staff_type), None
    except OHMSApiError as e_dash:
        logger.error(f"(MyDashboard) Failed to load dashboard for {staff_type} {staff_id}: {e_dash}")
        return {}, str(e_dash)

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LISTS, show_spinner=False)
def load_report_context(report_id: str, employee_id: Optional[str]) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
    """(employee, form_data); either is None when its request fails."""
    api_client = get_cached_api_client()
    employee_record, form_data = None, None
    if employee_id:
        try:
            employee_record = api_client.get_employee(employee_id)
        except OHMSApiError as e_emp:
            logger.warning(f"(MyDashboard) Employee {employee_id} unavailable for report {report_id}: {e_emp}")
    try:
        form_data = api_client.fetch_report_form_data(report_id)
    except OHMSApiError as e_form:
        logger.warning(f"(MyDashboard) Form data unavailable for report {report_id}: {e_form}")
    return employee_record, form_data


def _reset_report_selection():
    set_route_state(ROUTE_PATH, "selectedReportId", None)
    st.session_state.pop(PDF_BYTES_STATE_KEY, None)


@st.dialog("Delete Medical Report")
def confirm_delete_report_dialog(report: Dict[str, Any]):
    st.warning(f"Are you sure you want to delete the medical report for **{report_employee_name(report)}**? This action cannot be undone.")
    confirm_cols = st.columns(2)
    if confirm_cols[0].button("Delete", type="primary", use_container_width=True, key="report_delete_confirm"):
        try:
            get_cached_api_client().delete_report(report["id"])
        except OHMSApiError as e_delete:
            st.error(f"Failed to delete report: {e_delete}")
            return
        logger.info(f"(MyDashboard) Deleted report {report['id']}")
        _reset_report_selection()
        load_staff_dashboard.clear()
        st.session_state[FLASH_STATE_KEY] = "Report deleted successfully"
        st.rerun()
    if confirm_cols[1].button("Cancel", use_container_width=True, key="report_delete_cancel"):
        st.rerun()


def render_pdf_controls(report: Dict[str, Any]):
    if not can_download_pdf(report):
        st.button("📄 Generate PDF", disabled=True, key="report_pdf_disabled", use_container_width=True,
                  help="Available once the doctor has signed off the report.")
        return
    cached_pdf = st.session_state.get(PDF_BYTES_STATE_KEY)
    if cached_pdf and cached_pdf[0] == report["id"]:
        st.download_button("⬇️ Download PDF", data=cached_pdf[1], file_name=report_pdf_filename(report["id"]),
                           mime="application/pdf", key="report_pdf_download", use_container_width=True)
        return
    if st.button("📄 Generate PDF", key="report_pdf_generate", use_container_width=True):
        try:
            with st.spinner("Generating PDF..."):
                pdf_bytes = get_cached_api_client().download_report_pdf(report["id"])
        except OHMSApiError as e_pdf:
            st.error(f"Failed to generate PDF: {e_pdf}")
            return
        st.session_state[PDF_BYTES_STATE_KEY] = (report["id"], pdf_bytes)
        st.rerun()


def render_report_detail(report: Dict[str, Any]):
    header_cols = st.columns([3, 1, 1])
    with header_cols[0]:
        st.subheader(report_employee_name(report))
        st.caption(f"{report.get('type') or 'Medical Report'}  ·  {report_doctor_name(report)}")
    with header_cols[1]:
        render_pdf_controls(report)
    if header_cols[2].button("🗑️ Delete", key="report_delete_btn", use_container_width=True):
        confirm_delete_report_dialog(report)

    render_status_badge(report_signoff_label(report), app_config.REPORT_SIGNOFF_BADGES, caption="Doctor Sign-off")
    st.caption(f"Last updated {format_display_datetime(report.get('date_updated'))}")

    employee_record, form_data = load_report_context(str(report["id"]), report.get("employee_id"))
    with st.container(border=True):
        st.markdown("**Employee**")
        if employee_record:
            render_detail_field("Name", f"{employee_record.get('name') or ''} {employee_record.get('surname') or ''}".strip())
            render_detail_field("Employee Number", employee_record.get("employee_number"))
            render_detail_field("Work Email", employee_record.get("work_email"))
            render_detail_field("Mobile", employee_record.get("mobile_number"))
            render_detail_field("Organisation", employee_record.get("organisation_name"))
            render_detail_field("Workplace", employee_record.get("workplace_name"))
            render_detail_field("Job", employee_record.get("job"))
        else:
            st.info("Unable to load employee data for this report.")
    with st.container(border=True):
        st.markdown("**Report**")
        render_detail_field("Work Status", report.get("report_work_status"))
        render_detail_field("Nurse", f"{report.get('nurse_name') or ''} {report.get('nurse_surname') or ''}".strip() or None)
        render_detail_field("Workplace", report.get("workplace_name") or report.get("workplace"))
        st.markdown(f"*Recommendation:* {report.get('recommendation_text') or 'N/A'}")
        st.markdown(f"*Notes:* {report.get('notes_text') or 'N/A'}")
    with st.expander("Report Form Data", expanded=False):
        if form_data:
            st.json(form_data, expanded=False)
        else:
            st.info("No form data available for this report.")


# --- Page Title & Staff Selection ---
flash_message = st.session_state.pop(FLASH_STATE_KEY, None)
if flash_message:
    st.toast(flash_message, icon="✅")

staff_users, users_error = load_staff_users()
if users_error:
    st.error(f"Could not load staff: {users_error}")
staff_by_type = split_staff_by_type(staff_users)

st.sidebar.header("My Dashboard")
chosen_staff_type = st.sidebar.radio("Staff type", options=app_config.STAFF_TYPES, horizontal=True, key="my_dashboard_staff_type_radio")
if st.session_state.get(STAFF_TYPE_STATE_KEY) != chosen_staff_type:
    # Type switch: clear staff, report, employee and form selections
    st.session_state[STAFF_TYPE_STATE_KEY] = chosen_staff_type
    set_route_state(ROUTE_PATH, "selectedStaffId", None)
    _reset_report_selection()

staff_members = staff_by_type.get(chosen_staff_type, [])
staff_lookup = {str(member["id"]): member for member in staff_members if member.get("id")}
selected_staff_id = resolve_selected_staff_id(staff_members, get_route_state(ROUTE_PATH, "selectedStaffId"))
if staff_lookup:
    staff_ids = list(staff_lookup.keys())
    chosen_staff_id = st.sidebar.selectbox(
        chosen_staff_type, options=staff_ids, index=staff_ids.index(selected_staff_id),
        format_func=lambda staff_id: staff_display_name(staff_lookup[staff_id], chosen_staff_type),
        key=f"my_dashboard_staff_select_{chosen_staff_type}"
    )
    if chosen_staff_id != get_route_state(ROUTE_PATH, "selectedStaffId"):
        if get_route_state(ROUTE_PATH, "selectedStaffId") is not None:
            _reset_report_selection()
        set_route_state(ROUTE_PATH, "selectedStaffId", chosen_staff_id)
    selected_staff_id = chosen_staff_id
left_width_pct = render_panel_width_slider(PAGE_KEY, ROUTE_PATH)

if not selected_staff_id:
    st.title("📋 My Dashboard")
    st.info(f"No {chosen_staff_type.lower()}s found.")
    st.stop()

dashboard_payload, dashboard_error = load_staff_dashboard(selected_staff_id, chosen_staff_type)
if dashboard_error:
    st.title("📋 My Dashboard")
    st.error(f"Could not load dashboard: {dashboard_error}")
    if st.button("Retry", key="my_dashboard_retry"):
        load_staff_dashboard.clear()
        st.rerun()
    st.stop()

# --- I. Header ---
staff_profile = dashboard_payload.get("doctor") or staff_lookup.get(selected_staff_id)
header_cols = st.columns([1, 8])
with header_cols[0]:
    st.markdown(f"<div class='staff-avatar'>{staff_initials(staff_profile)}</div>", unsafe_allow_html=True)
with header_cols[1]:
    st.title(staff_display_name(staff_profile, chosen_staff_type))
    contact_parts = [part for part in [(staff_profile or {}).get("email"), (staff_profile or {}).get("mobile")] if part]
    st.caption(f"{'  ·  '.join(contact_parts)}  ·  {today_local().strftime('%A, %d %B %Y')}")

# --- II. KPIs ---
stats = dashboard_stats(dashboard_payload)
kpi_cols = st.columns(5)
with kpi_cols[0]:
    render_web_kpi_card("Total Reports", str(stats["totalReports"]), icon="📋", status_level="info")
with kpi_cols[1]:
    render_web_kpi_card("Employees", str(stats["totalEmployees"]), icon="👥", status_level="info")
with kpi_cols[2]:
    render_web_kpi_card("Signed", str(stats["signedReports"]), icon="✍️", status_level="good")
with kpi_cols[3]:
    render_web_kpi_card("Pending", str(stats["pendingReports"]), icon="⏳",
                        status_level="moderate" if stats["pendingReports"] else "good")
with kpi_cols[4]:
    render_web_kpi_card("Sign-off Rate", f"{float(stats['signoffRate']):.0f}", units="%", icon="📈",
                        status_level="good" if float(stats["signoffRate"]) >= 80 else "moderate")

# --- III. Reports & Detail ---
all_reports = dashboard_payload.get("allReports") or []
selected_report = find_record_by_id(all_reports, get_route_state(ROUTE_PATH, "selectedReportId"))
if get_route_state(ROUTE_PATH, "selectedReportId") and selected_report is None:
    _reset_report_selection()

list_pane, detail_pane = render_split_panes(left_width_pct, has_selection=selected_report is not None)
with list_pane:
    st.subheader(f"All Reports ({len(all_reports)})")
    if not all_reports:
        st.info("No reports found for this staff member.")
    else:
        clicked_row = render_selectable_table(prepare_all_reports_table(all_reports),
                                              key=f"my_dashboard_reports_{chosen_staff_type}_{selected_staff_id}",
                                              selected_position=find_record_position(all_reports, selected_report))
        if clicked_row is not None:
            st.session_state.pop(PDF_BYTES_STATE_KEY, None)
            set_route_state(ROUTE_PATH, "selectedReportId", all_reports[clicked_row].get("id"))
            st.rerun()
if detail_pane is not None and selected_report is not None:
    with detail_pane:
        render_report_detail(selected_report)

st.divider()

# --- IV. Charts & Lists ---
chart_cols = st.columns(2)
with chart_cols[0]:
    st.plotly_chart(plot_annotated_line_chart_web(
        reports_over_time_series(dashboard_payload.get("reportsOverTime")), "Reports Over Time",
        y_axis_label="Reports", y_axis_is_count=True
    ), use_container_width=True)
with chart_cols[1]:
    st.plotly_chart(plot_bar_chart_web(
        payload_frame(dashboard_payload, "sites", ["site_name", "employee_count"], numeric_cols=["employee_count"]), "site_name", "employee_count",
        "Employees by Site", x_axis_label="Site", y_axis_label="Employees", orientation="h", y_axis_is_count=True
    ), use_container_width=True)

list_cols = st.columns(3)
with list_cols[0]:
    st.markdown("##### Team")
    team_members = dashboard_payload.get("team") or []
    if not team_members:
        st.caption("No team members.")
    for member in team_members:
        st.markdown(f"- {member.get('name') or ''} {member.get('surname') or ''}  \n  <small>{member.get('email') or ''}</small>",
                    unsafe_allow_html=True)
with list_cols[1]:
    st.markdown("##### Recent Reports")
    recent_reports = dashboard_payload.get("recentReports") or []
    if not recent_reports:
        st.caption("No recent reports.")
    for report in recent_reports:
        st.markdown(f"- **{report_employee_name(report)}** · {format_display_date(report.get('date_created'))} · {report_signoff_label(report)}")
with list_cols[2]:
    st.markdown("##### Top Workplaces")
    st.plotly_chart(plot_bar_chart_web(
        payload_frame(dashboard_payload, "topWorkplaces", ["workplace", "employee_count"], numeric_cols=["employee_count"]), "workplace", "employee_count",
        "", x_axis_label="Workplace", y_axis_label="Employees", orientation="h", y_axis_is_count=True,
        chart_height=app_config.WEB_PLOT_COMPACT_HEIGHT
    ), use_container_width=True)

repeat_employees_df = payload_frame(dashboard_payload, "repeatEmployees", ["employee_id", "report_count"])
if not repeat_employees_df.empty:
    with st.expander(f"Repeat Employees ({len(repeat_employees_df)})"):
        st.dataframe(repeat_employees_df.rename(columns={"employee_id": "Employee ID", "report_count": "Reports"}),
                     hide_index=True, use_container_width=True)
