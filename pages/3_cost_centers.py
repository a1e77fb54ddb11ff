# ohms/pages/3_cost_centers.py
# Cost Centers: departmental billing units per organisation.
# URL state: ?page=&search=&organization=

import streamlit as st
import logging
from typing import Any, Dict, List, Optional, Tuple

from config import app_config
from utils.api_client import OHMSApiError, get_api_client
from utils.core_data_processing import display_value, find_record_by_id, find_record_position, format_display_datetime
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
from pages.directory_components.cost_centers import (
    COST_CENTER_TEXT_FIELDS,
    build_cost_center_payload,
    build_organization_options,
    describe_delete_refusal,
    prepare_cost_center_form_defaults,
    prepare_cost_centers_table,
    validate_cost_center_form,
)

st.set_page_config(
    page_title=f"Cost Centers - {app_config.APP_NAME}",
    layout="wide",
    initial_sidebar_state="expanded"
)

logger = logging.getLogger(__name__)
load_web_css()

PAGE_KEY = "cost_centers"
ROUTE_PATH = "/cost-centers"
FLASH_STATE_KEY = "cost_centers_flash_message"


# --- Data Loading ---
@st.cache_resource
def get_cached_api_client():
    return get_api_client()

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LISTS, show_spinner="Loading cost centers...")
def load_cost_centers_page(page: int, search: str, organization_id: str) -> Tuple[List[Dict[str, Any]], Dict[str, Any], Optional[str]]:
    try:
        result = get_cached_api_client().fetch_cost_centers(page=page, limit=app_config.DEFAULT_PAGE_SIZE,
                                                            search=search, organization_id=organization_id or None)
        return result["records"], result["pagination"], None
    except OHMSApiError as e_load:
        logger.error(f"(CostCenters) Failed to load page {page}: {e_load}")
        return [], {}, str(e_load)

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LOOKUPS, show_spinner=False)
def load_organization_options() -> Dict[str, str]:
    try:
        return build_organization_options(get_cached_api_client().fetch_organizations())
    except OHMSApiError as e_org:
        logger.warning(f"(CostCenters) Organisation lookup unavailable: {e_org}")
        return {}


def _after_mutation(flash_message: str, selected_id: Optional[str] = None, clear_selection: bool = False):
    load_cost_centers_page.clear()
    if clear_selection:
        set_route_state(ROUTE_PATH, "selectedCostCenterId", None)
    elif selected_id:
        set_route_state(ROUTE_PATH, "selectedCostCenterId", selected_id)
    st.session_state[FLASH_STATE_KEY] = flash_message
    st.rerun()


# --- Form & Dialogs ---
def _render_cost_center_form(form_key: str, defaults: Dict[str, Any]) -> Tuple[bool, Dict[str, Any]]:
    organization_options = load_organization_options()
    organization_ids = list(organization_options.keys())
    current_org = defaults.get("organisation_id")
    if current_org and current_org not in organization_options:
        organization_ids.insert(0, current_org)

    form_values: Dict[str, Any] = {}
    with st.form(form_key):
        form_values["organisation_id"] = st.selectbox(
            "Organisation", options=organization_ids,
            index=organization_ids.index(current_org) if current_org in organization_ids else None,
            format_func=lambda org_id: organization_options.get(org_id, org_id), placeholder="Select an organisation"
        )
        field_cols = st.columns(2)
        for idx, (field, label) in enumerate(COST_CENTER_TEXT_FIELDS):
            form_values[field] = field_cols[idx % 2].text_input(label, value=defaults.get(field) or "")
        form_values["manager_responsible"] = st.checkbox("Manager is responsible for the account",
                                                         value=bool(defaults.get("manager_responsible")))
        form_values["notes_text"] = st.text_area("Notes", value=defaults.get("notes_text") or "")
        submitted = st.form_submit_button("Save", type="primary")
    return submitted, form_values


def _submit_cost_center(form_values: Dict[str, Any], record_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    form_errors = validate_cost_center_form(form_values)
    if form_errors:
        for message in form_errors.values():
            st.error(message)
        return None
    api_client = get_cached_api_client()
    payload = build_cost_center_payload(form_values)
    try:
        if record_id:
            return api_client.update_cost_center(record_id, payload)
        return api_client.create_cost_center(payload)
    except OHMSApiError as e_save:
        st.error(f"Failed to save cost center: {e_save}")
        return None


@st.dialog("New Cost Center", width="large")
def create_cost_center_dialog(organization_id: Optional[str]):
    submitted, form_values = _render_cost_center_form("create_cost_center_form",
                                                      prepare_cost_center_form_defaults(None, organization_id))
    if submitted:
        created = _submit_cost_center(form_values)
        if created is not None:
            logger.info(f"(CostCenters) Created cost center '{form_values.get('department')}'")
            _after_mutation("Cost center created successfully!", selected_id=created.get("id") if isinstance(created, dict) else None)


@st.dialog("Edit Cost Center", width="large")
def edit_cost_center_dialog(record: Dict[str, Any]):
    submitted, form_values = _render_cost_center_form("edit_cost_center_form", prepare_cost_center_form_defaults(record))
    if submitted and _submit_cost_center(form_values, record["id"]) is not None:
        logger.info(f"(CostCenters) Updated cost center {record['id']}")
        _after_mutation("Cost center updated successfully!", selected_id=record["id"])


@st.dialog("Delete Cost Center")
def confirm_delete_cost_center_dialog(record: Dict[str, Any]):
    st.warning(f"Delete cost center **{record.get('department') or record.get('cost_center') or record['id']}**? This cannot be undone.")
    confirm_cols = st.columns(2)
    if confirm_cols[0].button("Delete", type="primary", use_container_width=True, key="cost_center_delete_confirm"):
        try:
            get_cached_api_client().delete_cost_center(record["id"])
        except OHMSApiError as e_delete:
            if e_delete.status_code == 400:
                st.error(describe_delete_refusal(e_delete.details, e_delete.message))
            else:
                st.error(f"Failed to delete cost center: {e_delete}")
            return
        logger.info(f"(CostCenters) Deleted cost center {record['id']}")
        _after_mutation("Cost center deleted.", clear_selection=True)
    if confirm_cols[1].button("Cancel", use_container_width=True, key="cost_center_delete_cancel"):
        st.rerun()


# --- Detail Panel ---
def render_cost_center_detail(record: Dict[str, Any]):
    header_cols = st.columns([3, 1, 1, 1])
    with header_cols[0]:
        st.subheader(record.get("department") or "Cost Center")
        st.caption(f"{record.get('cost_center') or 'No code'}  ·  {record.get('organisation_name') or 'No organisation'}")
    if header_cols[1].button("Edit", key="cost_center_edit_btn", use_container_width=True):
        edit_cost_center_dialog(record)
    if header_cols[2].button("Delete", key="cost_center_delete_btn", use_container_width=True):
        confirm_delete_cost_center_dialog(record)
    if header_cols[3].button("✕ Close", key="cost_center_close_btn", use_container_width=True):
        set_route_state(ROUTE_PATH, "selectedCostCenterId", None)
        st.rerun()

    count_cols = st.columns(2)
    with count_cols[0]:
        render_web_kpi_card("Employees", str(int(record.get("employee_count") or 0)), icon="👥", status_level="info")
    with count_cols[1]:
        render_web_kpi_card("Medical Reports", str(int(record.get("medical_report_count") or 0)), icon="📋", status_level="info")

    with st.container(border=True):
        st.markdown("**Cost Center**")
        render_detail_field("Department", record.get("department"))
        render_detail_field("Cost Center Code", record.get("cost_center"))
        render_detail_field("Workplace Address", record.get("workplace_address"))
    with st.container(border=True):
        st.markdown("**Manager**")
        render_detail_field("Name", record.get("manager_name"))
        render_detail_field("Email", record.get("manager_email"))
        render_detail_field("Contact Number", record.get("manager_contact_number"))
        render_detail_field("Responsible for Account", "Yes" if record.get("manager_responsible") else "No")
    with st.container(border=True):
        st.markdown("**Account Responsible**")
        render_detail_field("Name", record.get("person_responsible_for_account"))
        render_detail_field("Email", record.get("person_responsible_for_account_email"))
    with st.container(border=True):
        st.markdown("**Notes**")
        st.markdown(display_value(record.get("notes_text")))
    with st.expander("Record Information"):
        render_detail_field("Created", format_display_datetime(record.get("date_created")))
        render_detail_field("Created By", record.get("created_by_name"))
        render_detail_field("Last Updated", format_display_datetime(record.get("date_updated")))
        render_detail_field("Updated By", record.get("updated_by_name"))


# --- Page Title & Filters ---
st.title("🏢 Cost Centers")
st.markdown("**Manage departmental cost centers**")

flash_message = st.session_state.pop(FLASH_STATE_KEY, None)
if flash_message:
    st.toast(flash_message, icon="✅")

url_page = read_int_query_param(st.query_params, "page", 1)
url_search = read_str_query_param(st.query_params, "search")
url_organization = read_str_query_param(st.query_params, "organization")

st.sidebar.header("Cost Centers")
left_width_pct = render_panel_width_slider(PAGE_KEY, ROUTE_PATH)
organization_options = load_organization_options()
if organization_options:
    org_filter_ids = [""] + list(organization_options.keys())
    chosen_org = st.sidebar.selectbox(
        "Organisation", options=org_filter_ids,
        index=org_filter_ids.index(url_organization) if url_organization in org_filter_ids else 0,
        format_func=lambda org_id: organization_options.get(org_id, "All organisations"),
        key="cost_centers_org_filter"
    )
    if chosen_org != url_organization:
        sync_query_params(build_list_query_params(1, url_search, extra={"organization": chosen_org}))
        st.rerun()
if st.sidebar.button("➕ New Cost Center", type="primary", use_container_width=True):
    create_cost_center_dialog(url_organization or None)

new_search_term = render_search_bar(PAGE_KEY, initial_value=url_search,
                                    placeholder="Search by department, cost center or manager...")
if new_search_term is not None and new_search_term != url_search:
    sync_query_params(build_list_query_params(1, new_search_term, extra={"organization": url_organization}))
    st.rerun()

cost_center_records, pagination, load_error = load_cost_centers_page(url_page, url_search, url_organization)
if load_error:
    st.error(f"Could not load cost centers: {load_error}")
    if st.button("Retry", key="cost_centers_retry"):
        load_cost_centers_page.clear()
        st.rerun()
    st.stop()

selected_id = get_route_state(ROUTE_PATH, "selectedCostCenterId")
selected_cost_center = find_record_by_id(cost_center_records, selected_id)

list_pane, detail_pane = render_split_panes(left_width_pct, has_selection=selected_cost_center is not None)

with list_pane:
    render_web_kpi_card("Cost Centers", str(pagination.get("total", len(cost_center_records))), icon="🏢", status_level="info")
    if not cost_center_records:
        st.info("No cost centers found.")
    else:
        clicked_row = render_selectable_table(
            prepare_cost_centers_table(cost_center_records),
            key=f"cost_centers_table_p{pagination.get('page', url_page)}_{url_search}_{url_organization}",
            selected_position=find_record_position(cost_center_records, selected_cost_center)
        )
        if clicked_row is not None:
            set_route_state(ROUTE_PATH, "selectedCostCenterId", cost_center_records[clicked_row].get("id"))
            st.rerun()
    requested_page = render_pagination_controls(pagination, key_prefix="cost_centers_pager")
    if requested_page is not None:
        sync_query_params(build_list_query_params(requested_page, url_search, extra={"organization": url_organization}))
        st.rerun()

if detail_pane is not None and selected_cost_center is not None:
    with detail_pane:
        render_cost_center_detail(selected_cost_center)
