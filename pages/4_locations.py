# ohms/pages/4_locations.py
# Locations: named places within a site, each optionally linked to a manager.
# URL state: ?page=&search=&site=

import streamlit as st
import logging
from typing import Any, Dict, List, Optional, Tuple

from config import app_config
from utils.api_client import OHMSApiError, get_api_client
from utils.core_data_processing import find_record_by_id, find_record_position, format_display_datetime
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
)
from pages.directory_components.locations import (
    build_location_payload,
    build_lookup_options,
    prepare_location_form_defaults,
    prepare_locations_table,
    validate_location_form,
)

st.set_page_config(
    page_title=f"Locations - {app_config.APP_NAME}",
    layout="wide",
    initial_sidebar_state="expanded"
)

logger = logging.getLogger(__name__)
load_web_css()

PAGE_KEY = "locations"
ROUTE_PATH = "/locations"
FLASH_STATE_KEY = "locations_flash_message"


# --- Data Loading ---
@st.cache_resource
def get_cached_api_client():
    return get_api_client()

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LISTS, show_spinner="Loading locations...")
def load_locations_page(page: int, search: str, site_id: str) -> Tuple[List[Dict[str, Any]], Dict[str, Any], Optional[str]]:
    try:
        result = get_cached_api_client().fetch_locations(page=page, limit=app_config.DEFAULT_PAGE_SIZE,
                                                         search=search, site_id=site_id or None)
        return result["records"], result["pagination"], None
    except OHMSApiError as e_load:
        logger.error(f"(Locations) Failed to load page {page}: {e_load}")
        return [], {}, str(e_load)

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LOOKUPS, show_spinner=False)
def load_site_and_manager_options() -> Tuple[Dict[str, str], Dict[str, str]]:
    api_client = get_cached_api_client()
    try:
        site_options = build_lookup_options(api_client.fetch_sites(), "name")
    except OHMSApiError as e_sites:
        logger.warning(f"(Locations) Site lookup unavailable: {e_sites}")
        site_options = {}
    try:
        manager_options = build_lookup_options(api_client.fetch_managers(), "manager_name")
    except OHMSApiError as e_mgr:
        logger.warning(f"(Locations) Manager lookup unavailable: {e_mgr}")
        manager_options = {}
    return site_options, manager_options


def _after_mutation(flash_message: str, selected_id: Optional[str] = None, clear_selection: bool = False):
    load_locations_page.clear()
    if clear_selection:
        set_route_state(ROUTE_PATH, "selectedLocationId", None)
    elif selected_id:
        set_route_state(ROUTE_PATH, "selectedLocationId", selected_id)
    st.session_state[FLASH_STATE_KEY] = flash_message
    st.rerun()


def _lookup_selectbox(label: str, options: Dict[str, str], current_value: Optional[str], placeholder: str) -> Optional[str]:
    option_ids = list(options.keys())
    if current_value and current_value not in options:
        option_ids.insert(0, current_value)
    return st.selectbox(label, options=option_ids,
                        index=option_ids.index(current_value) if current_value in option_ids else None,
                        format_func=lambda opt_id: options.get(opt_id, opt_id), placeholder=placeholder)


# --- Form & Dialogs ---
def _render_location_form(form_key: str, defaults: Dict[str, Any]) -> Tuple[bool, Dict[str, Any]]:
    site_options, manager_options = load_site_and_manager_options()
    form_values: Dict[str, Any] = {}
    with st.form(form_key):
        form_values["name"] = st.text_input("Location Name *", value=defaults.get("name") or "")
        form_values["address"] = st.text_area("Address", value=defaults.get("address") or "", height=80)
        lookup_cols = st.columns(2)
        with lookup_cols[0]:
            form_values["site_id"] = _lookup_selectbox("Site", site_options, defaults.get("site_id"), "Select a site")
        with lookup_cols[1]:
            form_values["manager"] = _lookup_selectbox("Manager", manager_options, defaults.get("manager"), "Select a manager")
        submitted = st.form_submit_button("Save", type="primary")
    return submitted, form_values


def _submit_location(form_values: Dict[str, Any], record_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    form_errors = validate_location_form(form_values)
    if form_errors:
        for message in form_errors.values():
            st.error(message)
        return None
    payload = build_location_payload(form_values)
    try:
        if record_id:
            return get_cached_api_client().update_location(record_id, payload)
        return get_cached_api_client().create_location(payload)
    except OHMSApiError as e_save:
        st.error(f"Failed to save location: {e_save}")
        return None


@st.dialog("New Location")
def create_location_dialog(site_id: Optional[str]):
    submitted, form_values = _render_location_form("create_location_form", prepare_location_form_defaults(None, site_id))
    if submitted:
        created = _submit_location(form_values)
        if created is not None:
            logger.info(f"(Locations) Created location '{form_values.get('name')}'")
            _after_mutation("Location created successfully!", selected_id=created.get("id") if isinstance(created, dict) else None)


@st.dialog("Edit Location")
def edit_location_dialog(record: Dict[str, Any]):
    submitted, form_values = _render_location_form("edit_location_form", prepare_location_form_defaults(record))
    if submitted and _submit_location(form_values, record["id"]) is not None:
        logger.info(f"(Locations) Updated location {record['id']}")
        _after_mutation("Location updated successfully!", selected_id=record["id"])


@st.dialog("Delete Location")
def confirm_delete_location_dialog(record: Dict[str, Any]):
    st.warning(f"Delete location **{record.get('name') or record['id']}**? This cannot be undone.")
    confirm_cols = st.columns(2)
    if confirm_cols[0].button("Delete", type="primary", use_container_width=True, key="location_delete_confirm"):
        try:
            get_cached_api_client().delete_location(record["id"])
        except OHMSApiError as e_delete:
            st.error(f"Failed to delete location: {e_delete}")
            return
        logger.info(f"(Locations) Deleted location {record['id']}")
        _after_mutation("Location deleted.", clear_selection=True)
    if confirm_cols[1].button("Cancel", use_container_width=True, key="location_delete_cancel"):
        st.rerun()


def render_location_detail(record: Dict[str, Any]):
    header_cols = st.columns([3, 1, 1, 1])
    with header_cols[0]:
        st.subheader(record.get("name") or "Location")
        st.caption(record.get("site_name") or "No site")
    if header_cols[1].button("Edit", key="location_edit_btn", use_container_width=True):
        edit_location_dialog(record)
    if header_cols[2].button("Delete", key="location_delete_btn", use_container_width=True):
        confirm_delete_location_dialog(record)
    if header_cols[3].button("✕ Close", key="location_close_btn", use_container_width=True):
        set_route_state(ROUTE_PATH, "selectedLocationId", None)
        st.rerun()
    with st.container(border=True):
        render_detail_field("Address", record.get("address"))
        render_detail_field("Site", record.get("site_name"))
        render_detail_field("Manager", record.get("manager_name"))
        render_detail_field("Employees", record.get("employee_count"))
    with st.expander("Record Information"):
        render_detail_field("Created", format_display_datetime(record.get("date_created")))
        render_detail_field("Created By", record.get("created_by_name"))
        render_detail_field("Last Updated", format_display_datetime(record.get("date_updated")))
        render_detail_field("Updated By", record.get("updated_by_name"))


# --- Page Title & Filters ---
st.title("📍 Locations")
st.markdown("**Sites, addresses and responsible managers**")

flash_message = st.session_state.pop(FLASH_STATE_KEY, None)
if flash_message:
    st.toast(flash_message, icon="✅")

url_page = read_int_query_param(st.query_params, "page", 1)
url_search = read_str_query_param(st.query_params, "search")
url_site = read_str_query_param(st.query_params, "site")

st.sidebar.header("Locations")
left_width_pct = render_panel_width_slider(PAGE_KEY, ROUTE_PATH)
site_options, _ = load_site_and_manager_options()
if site_options:
    site_filter_ids = [""] + list(site_options.keys())
    chosen_site = st.sidebar.selectbox(
        "Site", options=site_filter_ids,
        index=site_filter_ids.index(url_site) if url_site in site_filter_ids else 0,
        format_func=lambda site_id: site_options.get(site_id, "All sites"), key="locations_site_filter"
    )
    if chosen_site != url_site:
        sync_query_params(build_list_query_params(1, url_search, extra={"site": chosen_site}))
        st.rerun()
if st.sidebar.button("➕ New Location", type="primary", use_container_width=True):
    create_location_dialog(url_site or None)

new_search_term = render_search_bar(PAGE_KEY, initial_value=url_search, placeholder="Search by name or address...")
if new_search_term is not None and new_search_term != url_search:
    sync_query_params(build_list_query_params(1, new_search_term, extra={"site": url_site}))
    st.rerun()

location_records, pagination, load_error = load_locations_page(url_page, url_search, url_site)
if load_error:
    st.error(f"Could not load locations: {load_error}")
    if st.button("Retry", key="locations_retry"):
        load_locations_page.clear()
        st.rerun()
    st.stop()

selected_id = get_route_state(ROUTE_PATH, "selectedLocationId")
selected_location = find_record_by_id(location_records, selected_id)

list_pane, detail_pane = render_split_panes(left_width_pct, has_selection=selected_location is not None)

with list_pane:
    if not location_records:
        st.info("No locations found.")
    else:
        clicked_row = render_selectable_table(
            prepare_locations_table(location_records),
            key=f"locations_table_p{pagination.get('page', url_page)}_{url_search}_{url_site}",
            selected_position=find_record_position(location_records, selected_location)
        )
        if clicked_row is not None:
            set_route_state(ROUTE_PATH, "selectedLocationId", location_records[clicked_row].get("id"))
            st.rerun()
    requested_page = render_pagination_controls(pagination, key_prefix="locations_pager")
    if requested_page is not None:
        sync_query_params(build_list_query_params(requested_page, url_search, extra={"site": url_site}))
        st.rerun()

if detail_pane is not None and selected_location is not None:
    with detail_pane:
        render_location_detail(selected_location)
