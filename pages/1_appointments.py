# ohms/pages/1_appointments.py
# Appointments console: the full appointment list is loaded once, searched and paginated
# in the browser session, and edited one detail section at a time.
# URL state: ?page=&search=&employee=  (employee auto-selects that employee's first appointment)

import streamlit as st
import logging
from typing import Any, Dict, List, Optional, Tuple

from config import app_config
from utils.api_client import OHMSApiError, get_api_client
from utils.core_data_processing import (
    build_employee_options,
    employee_full_name,
    find_first_record_for_employee,
    find_record_by_id,
    find_record_position,
    format_display_date,
    format_display_datetime,
    format_display_time,
    parse_input_date,
    parse_input_time,
)
from utils.route_state import (
    build_list_query_params,
    get_route_state,
    read_int_query_param,
    read_str_query_param,
    set_route_state,
    sync_query_params,
)
from utils.ui_visualization_helpers import (
    load_web_css,
    render_detail_field,
    render_pagination_controls,
    render_panel_width_slider,
    render_search_bar,
    render_selectable_table,
    render_split_panes,
    render_web_kpi_card,
)
from pages.appointments_components.appointment_records import (
    APPOINTMENT_SECTION_TITLES,
    appointment_status_label,
    build_new_appointment_payload,
    build_section_update,
    prepare_appointments_table,
    section_success_message,
    select_appointments_page,
    validate_new_appointment,
)

st.set_page_config(
    page_title=f"Appointments - {app_config.APP_NAME}",
    layout="wide",
    initial_sidebar_state="expanded"
)

logger = logging.getLogger(__name__)
load_web_css()

PAGE_KEY = "appointments"
ROUTE_PATH = "/appointments"
EDITING_STATE_KEY = "appointments_editing_sections"
FLASH_STATE_KEY = "appointments_flash_message"


# --- Data Loading ---
@st.cache_resource
def get_cached_api_client():
    return get_api_client()

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LISTS, show_spinner="Loading appointments...")
def load_all_appointments() -> Tuple[List[Dict[str, Any]], Optional[str]]:
    try:
        return get_cached_api_client().fetch_all_appointments(), None
    except OHMSApiError as e_load:
        logger.error(f"(Appointments) Failed to load appointments: {e_load}")
        return [], str(e_load)

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LOOKUPS, show_spinner=False)
def load_employee_options() -> Dict[str, str]:
    try:
        return build_employee_options(get_cached_api_client().fetch_employees())
    except OHMSApiError as e_emp:
        logger.warning(f"(Appointments) Employee lookup unavailable: {e_emp}")
        return {}


def _select_appointment(appointment: Optional[Dict[str, Any]], url_page: int, url_search: str):
    """Stores the selection and mirrors its employee into the URL."""
    set_route_state(ROUTE_PATH, "selectedAppointmentId", appointment.get("id") if appointment else None)
    st.session_state[EDITING_STATE_KEY] = {}
    employee_param = appointment.get("employee_id") if appointment else None
    sync_query_params(build_list_query_params(url_page, url_search, employee_param))


# --- Create Dialog ---
@st.dialog("New Appointment", width="large")
def new_appointment_dialog(preselected_employee_id: Optional[str]):
    employee_options = load_employee_options()
    employee_ids = list(employee_options.keys())
    default_idx = employee_ids.index(preselected_employee_id) if preselected_employee_id in employee_ids else None

    with st.form("new_appointment_form"):
        employee_id = st.selectbox("Employee *", options=employee_ids, index=default_idx,
                                   format_func=lambda emp_id: employee_options.get(emp_id, emp_id),
                                   placeholder="Select an employee")
        appointment_type = st.text_input("Appointment Type *", value=app_config.APPOINTMENT_DEFAULT_TYPE)
        date_cols = st.columns(2)
        start_date = date_cols[0].date_input("Start Date", value=None)
        end_date = date_cols[1].date_input("End Date", value=None)
        time_cols = st.columns(2)
        start_time = time_cols[0].time_input("Start Time", value=None)
        end_time = time_cols[1].time_input("End Time", value=None)
        report_id = st.text_input("Linked Report ID (optional)")
        notes = st.text_area("Notes")
        submitted = st.form_submit_button("Schedule Appointment", type="primary")

    if not submitted:
        return
    form_values = {
        "employee_id": employee_id, "type": appointment_type,
        "start_date": start_date, "end_date": end_date,
        "start_time": start_time, "end_time": end_time,
        "report_id": report_id, "notes": notes,
    }
    validation_errors = validate_new_appointment(form_values)
    if validation_errors:
        for error_msg in validation_errors.values():
            st.error(error_msg)
        return
    try:
        created = get_cached_api_client().create_appointment(build_new_appointment_payload(form_values))
    except OHMSApiError as e_create:
        st.error(f"Failed to create appointment: {e_create}")
        return
    logger.info(f"(Appointments) Created appointment {created.get('id') if isinstance(created, dict) else ''}")
    load_all_appointments.clear()
    if isinstance(created, dict) and created.get("id"):
        set_route_state(ROUTE_PATH, "selectedAppointmentId", created["id"])
    st.session_state[FLASH_STATE_KEY] = "Appointment scheduled successfully!"
    st.rerun()


# --- Detail Section Rendering ---
def _render_section_form(section: str, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Edit form for one section; returns the submitted values, or None."""
    form_key = f"appointment_{section}_form_{record.get('id')}"
    with st.form(form_key):
        form_values: Dict[str, Any] = {}
        if section == "employee":
            form_values["employee_name"] = st.text_input("Name", value=record.get("employee_name") or "")
            form_values["employee_surname"] = st.text_input("Surname", value=record.get("employee_surname") or "")
            form_values["employee_email"] = st.text_input("Email", value=record.get("employee_email") or "")
        elif section == "appointment":
            form_values["type"] = st.text_input("Type", value=record.get("type") or "")
            date_cols = st.columns(2)
            start_date = date_cols[0].date_input("Start Date", value=parse_input_date(record.get("start_date")))
            end_date = date_cols[1].date_input("End Date", value=parse_input_date(record.get("end_date")))
            time_cols = st.columns(2)
            start_time = time_cols[0].time_input("Start Time", value=parse_input_time(record.get("start_time")))
            end_time = time_cols[1].time_input("End Time", value=parse_input_time(record.get("end_time")))
            form_values["start_date"] = start_date.isoformat() if start_date else None
            form_values["end_date"] = end_date.isoformat() if end_date else None
            form_values["start_time"] = start_time.strftime("%H:%M") if start_time else None
            form_values["end_time"] = end_time.strftime("%H:%M") if end_time else None
            form_values["start_datetime"] = f"{form_values['start_date']}T{form_values['start_time']}" if start_date and start_time else record.get("start_datetime")
            form_values["end_datetime"] = f"{form_values['end_date']}T{form_values['end_time']}" if end_date and end_time else record.get("end_datetime")
        elif section == "report":
            form_values["report_id"] = st.text_input("Report ID", value=record.get("report_id") or "").strip() or None
        elif section == "calendar":
            form_values["calander_id"] = st.text_input("Calendar ID", value=record.get("calander_id") or "")
            form_values["calander_link"] = st.text_input("Calendar Link", value=record.get("calander_link") or "")
        elif section == "notes":
            form_values["notes"] = st.text_area("Notes", value=record.get("notes") or "", height=150)

        button_cols = st.columns(2)
        save_clicked = button_cols[0].form_submit_button("Save", type="primary", use_container_width=True)
        cancel_clicked = button_cols[1].form_submit_button("Cancel", use_container_width=True)

    if cancel_clicked:
        st.session_state[EDITING_STATE_KEY][section] = False
        st.rerun()
    return form_values if save_clicked else None


def _render_section_view(section: str, record: Dict[str, Any]):
    if section == "employee":
        render_detail_field("Name", employee_full_name(record, default="N/A"))
        render_detail_field("Email", record.get("employee_email"))
        render_detail_field("Employee ID", record.get("employee_id"))
    elif section == "appointment":
        render_detail_field("Type", record.get("type"))
        render_detail_field("Start Date", format_display_date(record.get("start_date")))
        render_detail_field("End Date", format_display_date(record.get("end_date")))
        render_detail_field("Time", f"{format_display_time(record.get('start_time'))} - {format_display_time(record.get('end_time'))}")
        render_detail_field("Starts", format_display_datetime(record.get("start_datetime")))
        render_detail_field("Ends", format_display_datetime(record.get("end_datetime")))
    elif section == "report":
        render_detail_field("Status", appointment_status_label(record))
        render_detail_field("Report ID", record.get("report_id"))
    elif section == "calendar":
        render_detail_field("Calendar ID", record.get("calander_id"))
        if record.get("calander_link"):
            st.link_button("Open calendar entry", record["calander_link"])
        else:
            render_detail_field("Calendar Link", None)
    elif section == "notes":
        st.markdown(record.get("notes") or "_No notes recorded._")


def render_appointment_detail(record: Dict[str, Any], url_page: int, url_search: str):
    editing_sections = st.session_state.setdefault(EDITING_STATE_KEY, {})

    header_cols = st.columns([4, 1])
    with header_cols[0]:
        st.subheader(employee_full_name(record, default="Appointment"))
        st.caption(f"Appointment {record.get('id')}  ·  Created {format_display_datetime(record.get('date_created'))}")
    with header_cols[1]:
        if st.button("✕ Close", key="appointments_close_detail", use_container_width=True):
            _select_appointment(None, url_page, url_search)
            st.rerun()

    for section, section_title in APPOINTMENT_SECTION_TITLES.items():
        with st.container(border=True):
            title_cols = st.columns([4, 1])
            title_cols[0].markdown(f"**{section_title}**")
            is_editing = editing_sections.get(section, False)
            if not is_editing and title_cols[1].button("Edit", key=f"edit_{section}_{record.get('id')}", use_container_width=True):
                editing_sections[section] = True
                st.rerun()

            if not is_editing:
                _render_section_view(section, record)
                continue

            submitted_values = _render_section_form(section, record)
            if submitted_values is None:
                continue
            updated_record = build_section_update(record, submitted_values, section)
            try:
                saved_record = get_cached_api_client().update_appointment(updated_record)
            except OHMSApiError as e_save:
                logger.error(f"(Appointments) Saving section '{section}' for {record.get('id')} failed: {e_save}")
                st.error(f"Failed to update {section_title.lower()} section: {e_save}")
                continue
            logger.info(f"(Appointments) Section '{section}' saved for appointment {record.get('id')}")
            load_all_appointments.clear()
            saved_id = saved_record.get("id") if isinstance(saved_record, dict) and saved_record.get("id") else record.get("id")
            set_route_state(ROUTE_PATH, "selectedAppointmentId", saved_id)
            editing_sections[section] = False
            st.session_state[FLASH_STATE_KEY] = section_success_message(section)
            st.rerun()


# --- Page Title & Filters ---
st.title("📅 Appointments")
st.markdown("**Executive medical appointments, scheduling and report linkage**")

flash_message = st.session_state.pop(FLASH_STATE_KEY, None)
if flash_message:
    st.toast(flash_message, icon="✅")

url_page = read_int_query_param(st.query_params, "page", 1)
url_search = read_str_query_param(st.query_params, "search")
url_employee = read_str_query_param(st.query_params, "employee")

st.sidebar.header("Appointments")
left_width_pct = render_panel_width_slider(PAGE_KEY, ROUTE_PATH)
if st.sidebar.button("➕ New Appointment", type="primary", use_container_width=True):
    new_appointment_dialog(url_employee or None)
if st.sidebar.button("🔄 Refresh", use_container_width=True):
    load_all_appointments.clear()
    st.rerun()

all_appointments, load_error = load_all_appointments()
if load_error:
    st.error(f"Could not load appointments: {load_error}")
    if st.button("Retry", key="appointments_retry"):
        load_all_appointments.clear()
        st.rerun()
    st.stop()

new_search_term = render_search_bar(PAGE_KEY, initial_value=url_search,
                                    placeholder="Search by employee name, email, type or notes...")
if new_search_term is not None and new_search_term != url_search:
    sync_query_params(build_list_query_params(1, new_search_term, url_employee))
    st.rerun()

filtered_appointments, page_appointments, pagination = select_appointments_page(all_appointments, url_search, url_page)

# --- KPI Strip ---
kpi_cols = st.columns(3)
with kpi_cols[0]:
    render_web_kpi_card("Total Appointments", str(len(all_appointments)), icon="📅", status_level="info")
with kpi_cols[1]:
    render_web_kpi_card("Matching Search", str(len(filtered_appointments)), icon="🔍", status_level="neutral")
with kpi_cols[2]:
    with_report_count = sum(1 for a in all_appointments if a.get("report_id"))
    render_web_kpi_card("With Report", str(with_report_count), icon="📄", status_level="good")

# --- Selection (restore, then employee auto-select) ---
selected_id = get_route_state(ROUTE_PATH, "selectedAppointmentId")
selected_appointment = find_record_by_id(all_appointments, selected_id)
if selected_id and selected_appointment is None:
    set_route_state(ROUTE_PATH, "selectedAppointmentId", None) # Deleted or no longer visible
if selected_appointment is None and url_employee:
    selected_appointment = (find_first_record_for_employee(filtered_appointments, url_employee)
                            or find_first_record_for_employee(all_appointments, url_employee))
    if selected_appointment:
        logger.info(f"(Appointments) Auto-selected appointment {selected_appointment.get('id')} for employee {url_employee}")
        set_route_state(ROUTE_PATH, "selectedAppointmentId", selected_appointment.get("id"))

list_pane, detail_pane = render_split_panes(left_width_pct, has_selection=selected_appointment is not None)

with list_pane:
    if not page_appointments:
        st.info("No appointments match the current filters." if url_search else "No appointments found.")
    else:
        clicked_row = render_selectable_table(
            prepare_appointments_table(page_appointments),
            key=f"appointments_table_p{pagination['page']}_{url_search}",
            selected_position=find_record_position(page_appointments, selected_appointment)
        )
        if clicked_row is not None:
            _select_appointment(page_appointments[clicked_row], pagination["page"], url_search)
            st.rerun()
    requested_page = render_pagination_controls(pagination, key_prefix="appointments_pager")
    if requested_page is not None:
        sync_query_params(build_list_query_params(requested_page, url_search, url_employee))
        st.rerun()

if detail_pane is not None and selected_appointment is not None:
    with detail_pane:
        render_appointment_detail(selected_appointment, pagination["page"], url_search)
