# ohms/pages/2_compliance.py
# POPIA consent tracking: who has consented to what, for which purpose, and until when.
# URL state: ?page=&search=&status=&consent_type=

import streamlit as st
import logging
from typing import Any, Dict, Optional, Tuple

from config import app_config
from utils.api_client import OHMSApiError, get_api_client
from utils.core_data_processing import build_employee_options, find_record_by_id, find_record_position, format_display_date
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
from pages.compliance_components.consent_tracking import (
    build_consent_request_payload,
    compute_consent_stats,
    consent_type_label,
    consent_types_reference_table,
    link_status_label,
    prepare_consents_table,
    validate_consent_request,
)

st.set_page_config(
    page_title=f"Compliance - {app_config.APP_NAME}",
    layout="wide",
    initial_sidebar_state="expanded"
)

logger = logging.getLogger(__name__)
load_web_css()

PAGE_KEY = "compliance"
ROUTE_PATH = "/compliance"
FLASH_STATE_KEY = "compliance_flash_message"


# --- Data Loading ---
@st.cache_resource
def get_cached_api_client():
    return get_api_client()

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LISTS, show_spinner="Loading consent records...")
def load_consent_page(page: int, search: str, status: str, consent_type: str) -> Tuple[Dict[str, Any], Optional[str]]:
    try:
        return get_cached_api_client().fetch_consent_records(
            page=page, limit=app_config.DEFAULT_PAGE_SIZE, search=search,
            status=status or None, consent_type=consent_type or None
        ), None
    except OHMSApiError as e_load:
        logger.error(f"(Compliance) Failed to load consent records: {e_load}")
        return {"records": [], "pagination": {}, "stats": {}}, str(e_load)

@st.cache_data(ttl=app_config.CACHE_TTL_SECONDS_LOOKUPS, show_spinner=False)
def load_employee_options() -> Dict[str, str]:
    try:
        return build_employee_options(get_cached_api_client().fetch_employees())
    except OHMSApiError as e_emp:
        logger.warning(f"(Compliance) Employee lookup unavailable: {e_emp}")
        return {}


@st.dialog("Request Consent")
def request_consent_dialog():
    employee_options = load_employee_options()
    consent_type_ids = list(app_config.CONSENT_TYPES.keys())
    with st.form("request_consent_form"):
        form_values = {
            "employee_id": st.selectbox("Employee *", options=list(employee_options.keys()), index=None,
                                        format_func=lambda emp_id: employee_options.get(emp_id, emp_id),
                                        placeholder="Select an employee"),
            "consent_type": st.selectbox("Consent Type *", options=consent_type_ids, index=None,
                                         format_func=consent_type_label, placeholder="Select consent type"),
            "legal_basis": st.selectbox("Legal Basis", options=app_config.CONSENT_LEGAL_BASES,
                                        format_func=lambda basis: basis.title()),
            "purpose": st.text_area("Purpose *", placeholder="Why is this health information needed?"),
        }
        submitted = st.form_submit_button("Send Request", type="primary")
    if not submitted:
        return
    form_errors = validate_consent_request(form_values)
    if form_errors:
        for message in form_errors.values():
            st.error(message)
        return
    try:
        get_cached_api_client().request_consent(build_consent_request_payload(form_values))
    except OHMSApiError as e_request:
        st.error(f"Failed to request consent: {e_request}")
        return
    logger.info(f"(Compliance) Consent '{form_values['consent_type']}' requested for employee {form_values['employee_id']}")
    load_consent_page.clear()
    st.session_state[FLASH_STATE_KEY] = "Consent request sent."
    st.rerun()


def render_consent_detail(record: Dict[str, Any]):
    header_cols = st.columns([4, 1])
    with header_cols[0]:
        st.subheader(record.get("employee_name") or "Unknown Employee")
        st.caption(f"{record.get('employee_email') or ''}  ·  {record.get('department') or 'No department'}")
    if header_cols[1].button("✕ Close", key="consent_close_btn", use_container_width=True):
        set_route_state(ROUTE_PATH, "selectedConsentId", None)
        st.rerun()

    with st.container(border=True):
        st.markdown("**Consent**")
        render_status_badge(str(record.get("status") or "").title(), app_config.CONSENT_STATUS_BADGES, caption="Status")
        render_detail_field("Consent Type", consent_type_label(record.get("consent_type")))
        render_detail_field("Legal Basis", str(record.get("legal_basis") or "").title() or None)
        st.markdown(f"*Purpose:* {record.get('purpose') or 'N/A'}")
        render_detail_field("Purpose Achieved", "Yes" if record.get("purpose_achieved") else "No")
    with st.container(border=True):
        st.markdown("**Dates**")
        render_detail_field("Consent Date", format_display_date(record.get("consent_date")))
        render_detail_field("Expiry Date", format_display_date(record.get("expiry_date")))
        render_detail_field("Withdrawal Date", format_display_date(record.get("withdrawal_date")))
    with st.container(border=True):
        st.markdown("**Consent Link**")
        render_detail_field("Link Status", link_status_label(record))
        render_detail_field("Sent", format_display_date(record.get("link_sent_date")))
        render_detail_field("Link Expires", format_display_date(record.get("link_expires")))


# --- Page Title & Filters ---
st.title("🛡️ Compliance")
st.markdown("**POPIA consent tracking for employee health information**")

flash_message = st.session_state.pop(FLASH_STATE_KEY, None)
if flash_message:
    st.toast(flash_message, icon="✅")

url_page = read_int_query_param(st.query_params, "page", 1)
url_search = read_str_query_param(st.query_params, "search")
url_status = read_str_query_param(st.query_params, "status")
url_consent_type = read_str_query_param(st.query_params, "consent_type")

st.sidebar.header("Compliance")
left_width_pct = render_panel_width_slider(PAGE_KEY, ROUTE_PATH)
status_filter_options = [""] + app_config.CONSENT_STATUSES
chosen_status = st.sidebar.selectbox(
    "Status", options=status_filter_options,
    index=status_filter_options.index(url_status) if url_status in status_filter_options else 0,
    format_func=lambda status: status.title() if status else "All statuses", key="compliance_status_filter"
)
type_filter_options = [""] + list(app_config.CONSENT_TYPES.keys())
chosen_type = st.sidebar.selectbox(
    "Consent Type", options=type_filter_options,
    index=type_filter_options.index(url_consent_type) if url_consent_type in type_filter_options else 0,
    format_func=lambda type_id: consent_type_label(type_id) if type_id else "All types", key="compliance_type_filter"
)
if chosen_status != url_status or chosen_type != url_consent_type:
    sync_query_params(build_list_query_params(1, url_search, extra={"status": chosen_status, "consent_type": chosen_type}))
    st.rerun()
if st.sidebar.button("📨 Request Consent", type="primary", use_container_width=True):
    request_consent_dialog()

filter_extra = {"status": url_status, "consent_type": url_consent_type}
new_search_term = render_search_bar(PAGE_KEY, initial_value=url_search,
                                    placeholder="Search by name, email, department or purpose...")
if new_search_term is not None and new_search_term != url_search:
    sync_query_params(build_list_query_params(1, new_search_term, extra=filter_extra))
    st.rerun()

consent_result, load_error = load_consent_page(url_page, url_search, url_status, url_consent_type)
if load_error:
    st.error(f"Could not load consent records: {load_error}")
    if st.button("Retry", key="consents_retry"):
        load_consent_page.clear()
        st.rerun()
    st.stop()
consent_records = consent_result["records"]
pagination = consent_result["pagination"]

# --- I. Summary Cards ---
consent_stats = compute_consent_stats(consent_records, consent_result.get("stats"))
kpi_cols = st.columns(4)
with kpi_cols[0]:
    render_web_kpi_card("Total", str(consent_stats["total"]), icon="📄", status_level="info")
with kpi_cols[1]:
    render_web_kpi_card("Active", str(consent_stats["active"]), icon="✅", status_level="good")
with kpi_cols[2]:
    render_web_kpi_card("Pending", str(consent_stats["pending"]), icon="⏳",
                        status_level="moderate" if consent_stats["pending"] else "neutral")
with kpi_cols[3]:
    render_web_kpi_card("Compliance Rate", f"{float(consent_stats['compliance_rate']):.1f}", units="%", icon="📊",
                        status_level="good" if float(consent_stats["compliance_rate"]) >= 80 else "moderate")
kpi_cols_2 = st.columns(3)
with kpi_cols_2[0]:
    render_web_kpi_card("Expired", str(consent_stats["expired"]), icon="⌛",
                        status_level="warning" if consent_stats["expired"] else "neutral")
with kpi_cols_2[1]:
    render_web_kpi_card("Revoked", str(consent_stats["revoked"]), icon="🚫",
                        status_level="high" if consent_stats["revoked"] else "neutral")
with kpi_cols_2[2]:
    render_web_kpi_card("Expiring Soon", str(consent_stats["expiring_soon"]), icon="⚠️",
                        status_level="warning" if consent_stats["expiring_soon"] else "neutral",
                        help_text=f"Active consents expiring within {app_config.CONSENT_EXPIRING_SOON_DAYS} days")

records_tab, types_tab = st.tabs(["Consent Records", "Consent Types"])

# --- II. Records ---
with records_tab:
    selected_id = get_route_state(ROUTE_PATH, "selectedConsentId")
    selected_consent = find_record_by_id(consent_records, selected_id)
    list_pane, detail_pane = render_split_panes(left_width_pct, has_selection=selected_consent is not None)
    with list_pane:
        if not consent_records:
            st.info("No consent records found.")
        else:
            clicked_row = render_selectable_table(
                prepare_consents_table(consent_records),
                key=f"consents_table_p{pagination.get('page', url_page)}_{url_search}_{url_status}_{url_consent_type}",
                selected_position=find_record_position(consent_records, selected_consent)
            )
            if clicked_row is not None:
                set_route_state(ROUTE_PATH, "selectedConsentId", consent_records[clicked_row].get("id"))
                st.rerun()
        requested_page = render_pagination_controls(pagination, key_prefix="consents_pager")
        if requested_page is not None:
            sync_query_params(build_list_query_params(requested_page, url_search, extra=filter_extra))
            st.rerun()
    if detail_pane is not None and selected_consent is not None:
        with detail_pane:
            render_consent_detail(selected_consent)

# --- III. Reference ---
with types_tab:
    st.markdown("Consent types and how long each consent typically remains valid.")
    st.dataframe(consent_types_reference_table(), hide_index=True, use_container_width=True)
