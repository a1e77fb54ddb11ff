# ohms/pages/5_emergency_responses.py
# Emergency Responses: server-paginated incident log with create/edit/delete dialogs.
# After every mutation the list is re-fetched with a fresh `_t` cache buster.

import streamlit as st
import logging
import time as time_module
from typing import Any, Dict, List, Optional, Tuple

from config import app_config
from utils.api_client import OHMSApiError, get_api_client
from utils.core_data_processing import (
    build_employee_options,
    display_value,
    find_record_by_id,
    find_record_position,
    format_display_date,
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
    plot_donut_chart_web,
    render_detail_field,
    render_pagination_controls,
    render_panel_width_slider,
    render_search_bar,
    render_selectable_table,
    render_split_panes,
    render_status_badge,
    render_web_kpi_card,
)
from pages.emergency_components.emergency_records import (
    EMERGENCY_CLINICAL_FIELDS,
    EMERGENCY_REFERENCE_FIELDS,
    build_emergency_payload,
    emergency_employee_label,
    prepare_emergency_form_defaults,
    prepare_emergency_table,
    summarize_emergency_types,
    validate_emergency_form,
)

st.set_page_config(
    page_title=f"Emergency Responses - {app_config.APP_NAME}",
    layout="wide",
    initial_sidebar_state="expanded"
)

logger = logging.getLogger(__name__)
load_web_css()

PAGE_KEY = "emergency_responses"
ROUTE_PATH = "/emergency-responses"
FLASH_STATE_KEY = "emergency_flash_message"
CACHE_BUSTER_STATE_KEY = "emergency_cache_buster"

EMERGENCY_TYPE_COLORS = {
    "Medical": app_config.COLOR_RISK_HIGH,
    "Injury": app_config.COLOR_WARNING_ORANGE,
    "Accident": app_config.COLOR_RISK_MODERATE,
    "Other": app_config.COLOR_RISK_NEUTRAL,
}


# --- Data Loading ---
@st.cache_resource
def get_cached_api_client():
    return get_api_client()

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LISTS, show_spinner="Loading emergency responses...")
def load_emergency_page(page: int, search: str, cache_buster: int) -> Tuple[List[Dict[str, Any]], Dict[str, Any], Optional[str]]:
    try:
        result = get_cached_api_client().fetch_emergency_responses(
            page=page, limit=app_config.DEFAULT_PAGE_SIZE, search=search, cache_buster=cache_buster
        )
        return result["records"], result["pagination"], None
    except OHMSApiError as e_load:
        logger.error(f"(Emergency) Failed to load emergency responses page {page}: {e_load}")
        return [], {}, str(e_load)

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LOOKUPS, show_spinner=False)
def load_employee_options() -> Dict[str, str]:
    try:
        return build_employee_options(get_cached_api_client().fetch_employees())
    except OHMSApiError as e_emp:
        logger.warning(f"(Emergency) Employee lookup unavailable: {e_emp}")
        return {}


def _after_mutation(flash_message: str, clear_selection: bool = False):
    st.session_state[CACHE_BUSTER_STATE_KEY] = int(time_module.time() * 1000)
    if clear_selection:
        set_route_state(ROUTE_PATH, "selectedEmergencyId", None)
    st.session_state[FLASH_STATE_KEY] = flash_message
    st.rerun()


# --- Form & Dialogs ---
def _render_emergency_form(form_key: str, defaults: Dict[str, Any]) -> Tuple[bool, Dict[str, Any]]:
    employee_options = load_employee_options()
    employee_ids = list(employee_options.keys())
    current_employee = defaults.get("employee_id")
    if current_employee and current_employee not in employee_options:
        employee_ids.insert(0, current_employee)
    type_options = list(app_config.EMERGENCY_TYPES)
    current_type = defaults.get("emergency_type")
    if current_type and current_type not in type_options:
        type_options.append(current_type)

    form_values: Dict[str, Any] = {}
    with st.form(form_key):
        id_cols = st.columns(2)
        form_values["employee_id"] = id_cols[0].selectbox(
            "Employee *", options=employee_ids,
            index=employee_ids.index(current_employee) if current_employee in employee_ids else None,
            format_func=lambda emp_id: employee_options.get(emp_id, emp_id), placeholder="Select an employee"
        )
        form_values["emergency_type"] = id_cols[1].selectbox(
            "Emergency Type *", options=type_options,
            index=type_options.index(current_type) if current_type in type_options else None,
            placeholder="Select emergency type"
        )
        when_cols = st.columns(3)
        form_values["injury_date"] = when_cols[0].date_input("Injury Date", value=parse_input_date(defaults.get("injury_date")))
        form_values["injury_time"] = when_cols[1].time_input("Injury Time", value=parse_input_time(defaults.get("injury_time")))
        form_values["arrival_time"] = when_cols[2].time_input("Arrival Time", value=parse_input_time(defaults.get("arrival_time")))
        form_values["place"] = st.text_input("Place", value=defaults.get("place") or "")
        for field, label in EMERGENCY_CLINICAL_FIELDS:
            form_values[field] = st.text_area(label, value=defaults.get(field) or "", height=80)
        ref_cols = st.columns(2)
        for idx, (field, label) in enumerate(EMERGENCY_REFERENCE_FIELDS):
            form_values[field] = ref_cols[idx % 2].text_input(label, value=defaults.get(field) or "")
        submitted = st.form_submit_button("Save", type="primary")
    return submitted, form_values


def _show_form_errors(form_errors: Dict[str, str]):
    for message in form_errors.values():
        st.error(message)


@st.dialog("New Emergency Response", width="large")
def create_emergency_dialog():
    submitted, form_values = _render_emergency_form("create_emergency_form", prepare_emergency_form_defaults(None))
    if not submitted:
        return
    form_errors = validate_emergency_form(form_values)
    if form_errors:
        _show_form_errors(form_errors)
        return
    try:
        get_cached_api_client().create_emergency_response(build_emergency_payload(form_values))
    except OHMSApiError as e_create:
        st.error(f"Failed to create emergency response: {e_create}")
        return
    logger.info(f"(Emergency) Created emergency response for employee {form_values.get('employee_id')}")
    _after_mutation("Emergency response created successfully!")


@st.dialog("Edit Emergency Response", width="large")
def edit_emergency_dialog(record: Dict[str, Any]):
    submitted, form_values = _render_emergency_form("edit_emergency_form", prepare_emergency_form_defaults(record))
    if not submitted:
        return
    form_errors = validate_emergency_form(form_values)
    if form_errors:
        _show_form_errors(form_errors)
        return
    try:
        get_cached_api_client().update_emergency_response(record["id"], build_emergency_payload(form_values))
    except OHMSApiError as e_update:
        st.error(f"Failed to update emergency response: {e_update}")
        return
    logger.info(f"(Emergency) Updated emergency response {record['id']}")
    _after_mutation("Emergency response updated successfully!")


@st.dialog("Delete Emergency Response")
def confirm_delete_emergency_dialog(record: Dict[str, Any]):
    st.warning(
        f"Delete the **{record.get('emergency_type') or 'Unknown'}** response for "
        f"**{emergency_employee_label(record)}** on {format_display_date(record.get('injury_date'))}? This cannot be undone."
    )
    confirm_cols = st.columns(2)
    if confirm_cols[0].button("Delete", type="primary", use_container_width=True, key="emergency_delete_confirm"):
        try:
            get_cached_api_client().delete_emergency_response(record["id"])
        except OHMSApiError as e_delete:
            st.error(f"Failed to delete emergency response: {e_delete}")
            return
        logger.info(f"(Emergency) Deleted emergency response {record['id']}")
        selected_id = get_route_state(ROUTE_PATH, "selectedEmergencyId")
        _after_mutation("Emergency response deleted.", clear_selection=str(selected_id) == str(record["id"]))
    if confirm_cols[1].button("Cancel", use_container_width=True, key="emergency_delete_cancel"):
        st.rerun()


# --- Detail Panel ---
def render_emergency_detail(record: Dict[str, Any]):
    header_cols = st.columns([3, 1, 1, 1])
    with header_cols[0]:
        st.subheader(emergency_employee_label(record))
        st.caption(f"{record.get('employee_work_email') or ''}  ·  Employee ID: {record.get('employee_id') or 'N/A'}")
    if header_cols[1].button("Edit", key="emergency_edit_btn", use_container_width=True):
        edit_emergency_dialog(record)
    if header_cols[2].button("Delete", key="emergency_delete_btn", use_container_width=True):
        confirm_delete_emergency_dialog(record)
    if header_cols[3].button("✕ Close", key="emergency_close_btn", use_container_width=True):
        set_route_state(ROUTE_PATH, "selectedEmergencyId", None)
        st.rerun()

    incident_tab, medical_tab = st.tabs(["Incident & Response", "Medical Information"])
    with incident_tab:
        with st.container(border=True):
            st.markdown("**Incident Details**")
            render_status_badge(record.get("emergency_type") or "Unknown", app_config.EMERGENCY_TYPE_BADGES, caption="Emergency Type")
            render_detail_field("Injury Date", format_display_date(record.get("injury_date")))
            render_detail_field("Injury Time", format_display_time(record.get("injury_time")))
            render_detail_field("Arrival Time", format_display_time(record.get("arrival_time")))
            render_detail_field("Place", record.get("place"))
            render_detail_field("Injury", record.get("injury"))
        with st.container(border=True):
            st.markdown("**Response & Treatment**")
            st.markdown(f"*Intervention:* {display_value(record.get('intervention'))}")
            st.markdown(f"*Outcome:* {display_value(record.get('outcome'))}")
            render_detail_field("Manager", record.get("manager"))
    with medical_tab:
        with st.container(border=True):
            st.markdown("**Medical Information**")
            for field, label in (("main_complaint", "Main Complaint"), ("diagnosis", "Diagnosis"),
                                 ("findings", "Findings"), ("patient_history", "Patient History")):
                st.markdown(f"*{label}:* {display_value(record.get(field))}")
        with st.container(border=True):
            st.markdown("**Additional Information**")
            st.markdown(f"*Treatment Plan:* {display_value(record.get('plan'))}")
            render_detail_field("Reference", record.get("reference"))
            render_detail_field("Report ID", record.get("report_id"))
            render_detail_field("Created", format_display_date(record.get("date_created")))


# --- Page Title & Filters ---
st.title("🚑 Emergency Responses")
st.markdown("**Workplace incidents, injuries and emergency treatment records**")

flash_message = st.session_state.pop(FLASH_STATE_KEY, None)
if flash_message:
    st.toast(flash_message, icon="✅")

url_page = read_int_query_param(st.query_params, "page", 1)
url_search = read_str_query_param(st.query_params, "search")

st.sidebar.header("Emergency Responses")
left_width_pct = render_panel_width_slider(PAGE_KEY, ROUTE_PATH)
if st.sidebar.button("➕ New Response", type="primary", use_container_width=True):
    create_emergency_dialog()

new_search_term = render_search_bar(PAGE_KEY, initial_value=url_search,
                                    placeholder="Search by ID, employee, type, complaint, diagnosis...")
if new_search_term is not None and new_search_term != url_search:
    sync_query_params(build_list_query_params(1, new_search_term))
    st.rerun()

cache_buster = st.session_state.get(CACHE_BUSTER_STATE_KEY, 0)
emergency_records, pagination, load_error = load_emergency_page(url_page, url_search, cache_buster)
if load_error:
    st.error(f"Could not load emergency responses: {load_error}")
    if st.button("Retry", key="emergency_retry"):
        st.session_state[CACHE_BUSTER_STATE_KEY] = int(time_module.time() * 1000)
        st.rerun()
    st.stop()

# --- Summary ---
type_counts_df = summarize_emergency_types(emergency_records)
summary_cols = st.columns([1, 1, 2])
with summary_cols[0]:
    render_web_kpi_card("Total Responses", str(pagination.get("total", len(emergency_records))), icon="🚑", status_level="info")
with summary_cols[1]:
    medical_count = int(type_counts_df.loc[type_counts_df["emergency_type"] == "Medical", "count"].sum()) if not type_counts_df.empty else 0
    render_web_kpi_card("Medical (this page)", str(medical_count), icon="🩺",
                        status_level="high" if medical_count else "good", help_text="Medical emergencies among the loaded rows")
with summary_cols[2]:
    st.plotly_chart(
        plot_donut_chart_web(type_counts_df, "emergency_type", "count", "Types on this page",
                             color_map=EMERGENCY_TYPE_COLORS, chart_height=220),
        use_container_width=True
    )

selected_id = get_route_state(ROUTE_PATH, "selectedEmergencyId")
selected_response = find_record_by_id(emergency_records, selected_id)
if selected_id and selected_response is None:
    set_route_state(ROUTE_PATH, "selectedEmergencyId", None)

list_pane, detail_pane = render_split_panes(left_width_pct, has_selection=selected_response is not None)

with list_pane:
    if not emergency_records:
        st.info("No emergency responses found.")
    else:
        clicked_row = render_selectable_table(
            prepare_emergency_table(emergency_records),
            key=f"emergency_table_p{pagination.get('page', url_page)}_{url_search}_{cache_buster}",
            selected_position=find_record_position(emergency_records, selected_response)
        )
        if clicked_row is not None:
            set_route_state(ROUTE_PATH, "selectedEmergencyId", emergency_records[clicked_row].get("id"))
            st.rerun()
    requested_page = render_pagination_controls(pagination, key_prefix="emergency_pager")
    if requested_page is not None:
        sync_query_params(build_list_query_params(requested_page, url_search))
        st.rerun()

if detail_pane is not None and selected_response is not None:
    with detail_pane:
        render_emergency_detail(selected_response)
