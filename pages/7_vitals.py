# ohms/pages/7_vitals.py
# Vitals console: server-paginated vital sign records with search, an optional
# ?employee= filter, and create/edit/delete through dialogs.
# The selected record and the split-pane width are route state, so a reload
# restores the same view.

import streamlit as st
import logging
from typing import Any, Dict, List, Optional, Tuple

from config import app_config
from utils.api_client import OHMSApiError, get_api_client
from utils.core_data_processing import (
    build_employee_options,
    employee_full_name,
    find_record_by_id,
    find_record_position,
    format_display_datetime,
    is_blank,
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
    render_status_badge,
    render_web_kpi_card,
)
from pages.vitals_components.vital_records import (
    VITAL_NOTE_FIELDS,
    VITAL_NUMERIC_FIELDS,
    VITAL_STATUS_LABELS,
    VITAL_STATUS_OPTIONS,
    VITAL_TEXT_FIELDS,
    build_vital_payload,
    format_blood_pressure,
    plan_employee_filter_action,
    prepare_vital_form_defaults,
    prepare_vitals_table,
    summarize_vitals_page,
    vital_value,
)

st.set_page_config(
    page_title=f"Vitals - {app_config.APP_NAME}",
    layout="wide",
    initial_sidebar_state="expanded"
)

logger = logging.getLogger(__name__)
load_web_css()

PAGE_KEY = "vitals"
ROUTE_PATH = "/vitals"
FLASH_STATE_KEY = "vitals_flash_message"
AUTO_SELECT_STATE_KEY = "vitals_auto_select_done_for"
AUTO_CREATE_STATE_KEY = "vitals_auto_create_done_for"


# --- Data Loading ---
@st.cache_resource
def get_cached_api_client():
    return get_api_client()

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LISTS, show_spinner="Loading vital records...")
def load_vitals_page(page: int, search: str, employee_id: str) -> Tuple[List[Dict[str, Any]], Dict[str, Any], Optional[str]]:
    try:
        result = get_cached_api_client().fetch_vitals(page=page, limit=app_config.DEFAULT_PAGE_SIZE,
                                                      search=search, employee_id=employee_id or None)
        return result["records"], result["pagination"], None
    except OHMSApiError as e_load:
        logger.error(f"(Vitals) Failed to load vitals page {page}: {e_load}")
        return [], {}, str(e_load)

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LOOKUPS, show_spinner=False)
def load_employee_options() -> Dict[str, str]:
    try:
        return build_employee_options(get_cached_api_client().fetch_employees())
    except OHMSApiError as e_emp:
        logger.warning(f"(Vitals) Employee lookup unavailable: {e_emp}")
        return {}


def _as_float(value: Any) -> Optional[float]:
    if is_blank(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _after_mutation(flash_message: str, selected_id: Optional[str] = None, clear_selection: bool = False):
    load_vitals_page.clear()
    if clear_selection:
        set_route_state(ROUTE_PATH, "selectedVitalId", None)
    elif selected_id:
        set_route_state(ROUTE_PATH, "selectedVitalId", selected_id)
    st.session_state[FLASH_STATE_KEY] = flash_message
    st.rerun()


# --- Form & Dialogs ---
def _render_vital_form_fields(defaults: Dict[str, Any], allow_employee_change: bool) -> Dict[str, Any]:
    form_values: Dict[str, Any] = {}
    employee_options = load_employee_options()
    if allow_employee_change:
        employee_ids = list(employee_options.keys())
        preset_employee = defaults.get("employee_id")
        if preset_employee and preset_employee not in employee_options: # Keep a URL-supplied id selectable
            employee_ids.insert(0, preset_employee)
        form_values["employee_id"] = st.selectbox(
            "Employee *", options=employee_ids,
            index=employee_ids.index(preset_employee) if preset_employee in employee_ids else None,
            format_func=lambda emp_id: employee_options.get(emp_id, emp_id),
            placeholder="Select an employee"
        )

    st.markdown("**Measurements**")
    measurement_cols = st.columns(2)
    for idx, (field, label, units) in enumerate(VITAL_NUMERIC_FIELDS):
        field_label = f"{label} ({units})" if units else label
        form_values[field] = measurement_cols[idx % 2].number_input(
            field_label, value=_as_float(defaults.get(field)), min_value=0.0, step=0.1, format="%.2f", key=f"vital_form_{field}"
        )

    st.markdown("**Status**")
    status_cols = st.columns(2)
    for idx, (field, options) in enumerate(VITAL_STATUS_OPTIONS.items()):
        current_value = defaults.get(field)
        field_options = list(options)
        if current_value and current_value not in field_options:
            field_options.append(current_value)
        form_values[field] = status_cols[idx % 2].selectbox(
            VITAL_STATUS_LABELS[field], options=field_options,
            index=field_options.index(current_value) if current_value in field_options else None,
            placeholder="Not set", key=f"vital_form_{field}"
        )
    for field, label in VITAL_TEXT_FIELDS:
        form_values[field] = st.text_input(label, value=defaults.get(field) or "", key=f"vital_form_{field}")
    for field, label in VITAL_NOTE_FIELDS:
        form_values[field] = st.text_area(label, value=defaults.get(field) or "", key=f"vital_form_{field}")
    return form_values


@st.dialog("Add Vital Record", width="large")
def create_vital_dialog(preset_employee_id: Optional[str]):
    with st.form("create_vital_form"):
        form_values = _render_vital_form_fields(prepare_vital_form_defaults(None, preset_employee_id), allow_employee_change=True)
        submitted = st.form_submit_button("Create Record", type="primary")
    if not submitted:
        return
    if not form_values.get("employee_id"):
        st.error("Employee is required")
        return
    try:
        created = get_cached_api_client().create_vital(build_vital_payload(form_values))
    except OHMSApiError as e_create:
        st.error(f"Failed to create vital record: {e_create}")
        return
    logger.info(f"(Vitals) Created vital record for employee {form_values.get('employee_id')}")
    _after_mutation("Vital record created successfully!", selected_id=created.get("id") if isinstance(created, dict) else None)


@st.dialog("Edit Vital Record", width="large")
def edit_vital_dialog(record: Dict[str, Any]):
    with st.form("edit_vital_form"):
        form_values = _render_vital_form_fields(prepare_vital_form_defaults(record), allow_employee_change=False)
        submitted = st.form_submit_button("Save Changes", type="primary")
    if not submitted:
        return
    try:
        get_cached_api_client().update_vital(record["id"], build_vital_payload(form_values))
    except OHMSApiError as e_update:
        st.error(f"Failed to update vital record: {e_update}")
        return
    logger.info(f"(Vitals) Updated vital record {record['id']}")
    _after_mutation("Vital record updated successfully!", selected_id=record["id"])


@st.dialog("Delete Vital Record")
def confirm_delete_vital_dialog(record: Dict[str, Any]):
    st.warning(f"Are you sure you want to delete this vital record for **{employee_full_name(record, default='this employee')}**? This cannot be undone.")
    confirm_cols = st.columns(2)
    if confirm_cols[0].button("Delete", type="primary", use_container_width=True, key="vital_delete_confirm"):
        try:
            get_cached_api_client().delete_vital(record["id"])
        except OHMSApiError as e_delete:
            st.error(f"Failed to delete vital record: {e_delete}")
            return
        logger.info(f"(Vitals) Deleted vital record {record['id']}")
        _after_mutation("Vital record deleted.", clear_selection=True)
    if confirm_cols[1].button("Cancel", use_container_width=True, key="vital_delete_cancel"):
        st.rerun()


# --- Detail Panel ---
def render_vital_detail(record: Dict[str, Any], url_page: int, url_search: str, url_employee: str):
    header_cols = st.columns([3, 1, 1, 1])
    with header_cols[0]:
        st.subheader(employee_full_name(record, default="Vital Record"))
        st.caption(f"Employee #{record.get('employee_number') or 'N/A'}  ·  {record.get('employee_email') or ''}")
    if header_cols[1].button("Edit", key="vital_edit_btn", use_container_width=True):
        edit_vital_dialog(record)
    if header_cols[2].button("Delete", key="vital_delete_btn", use_container_width=True):
        confirm_delete_vital_dialog(record)
    if header_cols[3].button("✕ Close", key="vital_close_btn", use_container_width=True):
        set_route_state(ROUTE_PATH, "selectedVitalId", None)
        st.rerun()

    with st.container(border=True):
        st.markdown("**Body Composition**")
        render_detail_field("Weight", vital_value(record, "weight_kg"), "kg")
        render_detail_field("Height", vital_value(record, "height_cm"), "cm")
        render_detail_field("BMI", record.get("bmi"))
        render_status_badge(vital_value(record, "bmi_status"), app_config.BMI_STATUS_BADGES, caption="BMI Status")
        render_detail_field("Waist", vital_value(record, "waist"), "cm")
        render_detail_field("Waist-to-Height Ratio", record.get("whtr"))
        render_detail_field("WHtR Status", record.get("whtr_status"))
        render_detail_field("Chest (Inspiration)", record.get("chest_measurement_inspiration"), "cm")
        render_detail_field("Chest (Expiration)", record.get("chest_measurement_expiration"), "cm")

    with st.container(border=True):
        st.markdown("**Cardiovascular**")
        blood_pressure_text = format_blood_pressure(record)
        render_detail_field("Blood Pressure", blood_pressure_text, "mmHg" if blood_pressure_text != "N/A" else "")
        render_status_badge(vital_value(record, "blood_pressure_status"), app_config.BP_STATUS_BADGES, caption="BP Status")
        render_detail_field("Systolic Warning", record.get("systolic_warning"))
        render_detail_field("Diastolic Warning", record.get("diastolic_warning"))
        render_detail_field("Pulse Rate", record.get("pulse_rate"), "bpm")
        render_detail_field("Pulse Rhythm", vital_value(record, "pulse_rythm"))
        render_detail_field("Pulse Status", record.get("pulse_status"))

    with st.container(border=True):
        st.markdown("**Metabolic**")
        render_detail_field("Glucose Level", record.get("glucose_level"))
        render_detail_field("Glucose Status", record.get("glucose_status"))

    with st.container(border=True):
        st.markdown("**Notes**")
        st.markdown(f"*Clinical notes:* {record.get('notes_text') or '_None recorded._'}")
        st.markdown(f"*Additional notes:* {record.get('additional_notes') or '_None recorded._'}")

    with st.container(border=True):
        st.markdown("**Record Information**")
        render_detail_field("Created", format_display_datetime(record.get("date_created")))
        render_detail_field("Created By", record.get("created_by_name"))
        render_detail_field("Last Updated", format_display_datetime(record.get("date_updated")))
        render_detail_field("Updated By", record.get("updated_by_name"))
        render_detail_field("Report ID", record.get("report_id"))


# --- Page Title & Filters ---
st.title("❤️ Vitals")
st.markdown("**Employee vital signs and clinical measurements**")

flash_message = st.session_state.pop(FLASH_STATE_KEY, None)
if flash_message:
    st.toast(flash_message, icon="✅")

url_page = read_int_query_param(st.query_params, "page", 1)
url_search = read_str_query_param(st.query_params, "search")
url_employee = read_str_query_param(st.query_params, "employee")

st.sidebar.header("Vitals")
left_width_pct = render_panel_width_slider(PAGE_KEY, ROUTE_PATH)
if st.sidebar.button("➕ Add Vital", type="primary", use_container_width=True):
    create_vital_dialog(url_employee or None)
if url_employee and st.sidebar.button("Clear employee filter", use_container_width=True):
    sync_query_params(build_list_query_params(1, url_search, None))
    st.rerun()

new_search_term = render_search_bar(PAGE_KEY, initial_value=url_search, placeholder="Search by employee name or number...")
if new_search_term is not None and new_search_term != url_search:
    sync_query_params(build_list_query_params(1, new_search_term, url_employee))
    st.rerun()
if url_employee:
    st.info(f"Showing vitals for employee `{url_employee}` only. Search is ignored while this filter is active.")

vital_records, pagination, load_error = load_vitals_page(url_page, url_search, url_employee)
if load_error:
    st.error(f"Could not load vital records: {load_error}")
    if st.button("Retry", key="vitals_retry"):
        load_vitals_page.clear()
        st.rerun()
    st.stop()

# --- Summary Cards ---
vitals_summary = summarize_vitals_page(vital_records, pagination.get("total", len(vital_records)))
summary_cols = st.columns(4)
with summary_cols[0]:
    render_web_kpi_card("Total Records", str(vitals_summary["total_records"]), icon="❤️", status_level="info", help_text="Vital records in system")
with summary_cols[1]:
    render_web_kpi_card("Unique Employees", str(vitals_summary["unique_employees"]), icon="👥", help_text="Employees with vitals on this page")
with summary_cols[2]:
    render_web_kpi_card("High BP Cases", str(vitals_summary["high_bp_cases"]), icon="🩺",
                        status_level="high" if vitals_summary["high_bp_cases"] else "good", help_text="Requiring attention")
with summary_cols[3]:
    render_web_kpi_card("Obesity Cases", str(vitals_summary["obesity_cases"]), icon="⚖️",
                        status_level="moderate" if vitals_summary["obesity_cases"] else "good", help_text="BMI above 30")

# --- Selection: employee filter, then persisted id ---
if not url_employee:
    st.session_state.pop(AUTO_SELECT_STATE_KEY, None)
    st.session_state.pop(AUTO_CREATE_STATE_KEY, None)
filter_action, filter_record = plan_employee_filter_action(vital_records, url_employee)
selected_id = get_route_state(ROUTE_PATH, "selectedVitalId")
if filter_action == "select" and st.session_state.get(AUTO_SELECT_STATE_KEY) != url_employee:
    # Once per filter value.
    st.session_state[AUTO_SELECT_STATE_KEY] = url_employee
    if find_record_by_id(vital_records, selected_id) is None:
        selected_id = filter_record.get("id")
        set_route_state(ROUTE_PATH, "selectedVitalId", selected_id)
        logger.info(f"(Vitals) Auto-selected vital {selected_id} for employee {url_employee}")
elif filter_action == "create" and st.session_state.get(AUTO_CREATE_STATE_KEY) != url_employee:
    st.session_state[AUTO_CREATE_STATE_KEY] = url_employee
    logger.info(f"(Vitals) No vitals for employee {url_employee}; opening create dialog.")
    create_vital_dialog(url_employee)

selected_vital = find_record_by_id(vital_records, selected_id)
if selected_id and selected_vital is None:
    # Selection lives on another page (or was deleted): fetch it directly.
    try:
        selected_vital = get_cached_api_client().get_vital(selected_id)
    except OHMSApiError as e_restore:
        logger.warning(f"(Vitals) Could not restore selected vital {selected_id}: {e_restore}")
        set_route_state(ROUTE_PATH, "selectedVitalId", None)
        selected_vital = None

list_pane, detail_pane = render_split_panes(left_width_pct, has_selection=selected_vital is not None)

with list_pane:
    if not vital_records:
        st.info("No vital records found.")
    else:
        clicked_row = render_selectable_table(
            prepare_vitals_table(vital_records),
            key=f"vitals_table_p{pagination.get('page', url_page)}_{url_search}_{url_employee}",
            selected_position=find_record_position(vital_records, selected_vital)
        )
        if clicked_row is not None:
            set_route_state(ROUTE_PATH, "selectedVitalId", vital_records[clicked_row].get("id"))
            st.rerun()
    requested_page = render_pagination_controls(pagination, key_prefix="vitals_pager")
    if requested_page is not None:
        sync_query_params(build_list_query_params(requested_page, url_search, url_employee))
        st.rerun()

if detail_pane is not None and selected_vital is not None:
    with detail_pane:
        render_vital_detail(selected_vital, url_page, url_search, url_employee)
