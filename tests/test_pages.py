# ohms/tests/test_pages.py
# Page-level tests: each page script runs under streamlit's AppTest with the
# OHMSApiClient resource calls patched, so selection, retry and delete flows
# are checked end to end without a backend.

import os
import pytest
from unittest.mock import MagicMock, patch

import streamlit as st
from streamlit.testing.v1 import AppTest

from config import app_config
from utils.api_client import OHMSApiClient, OHMSApiError
from utils.core_data_processing import build_pagination_info
from utils.route_state import route_state_key

PAGES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "pages")


def _page_app(script_name):
    return AppTest.from_file(os.path.join(PAGES_DIR, script_name), default_timeout=30)

def _list_result(records, **extra):
    result = {"records": records, "pagination": build_pagination_info(1, app_config.DEFAULT_PAGE_SIZE, len(records))}
    result.update(extra)
    return result

def _row_clicks(*rows):
    """side_effect for render_selectable_table: reports each row once, then no clicks."""
    pending_rows = list(rows)
    return lambda *args, **kwargs: pending_rows.pop(0) if pending_rows else None

def _button_keys(at):
    return [button.key for button in at.button]

def _error_texts(at):
    return [error.value for error in at.error]


@pytest.fixture(autouse=True)
def fresh_streamlit_caches():
    st.cache_data.clear()
    st.cache_resource.clear()
    yield
    st.cache_data.clear()
    st.cache_resource.clear()


@pytest.fixture
def inline_dialogs():
    """Dialog bodies render in place so their buttons can be clicked in the same run as the opener."""
    with patch("streamlit.dialog", lambda *args, **kwargs: (lambda dialog_func: dialog_func)):
        yield


# --- Vitals ---
VITAL_SELECTION_KEY = route_state_key("/vitals", "selectedVitalId")

def test_vitals_employee_filter_selects_first_record_and_close_sticks(sample_vitals):
    employee_vitals = [sample_vitals[0], sample_vitals[2]]
    with patch.object(OHMSApiClient, "fetch_vitals", return_value=_list_result(employee_vitals)) as mock_fetch, \
         patch.object(OHMSApiClient, "fetch_employees", return_value=[]):
        at = _page_app("7_vitals.py")
        at.query_params["employee"] = "EMP001"
        at.run()
        assert not at.exception
        assert at.session_state[VITAL_SELECTION_KEY] == "VIT001"
        assert mock_fetch.call_args.kwargs["employee_id"] == "EMP001"

        at.button(key="vital_close_btn").click().run()
        assert VITAL_SELECTION_KEY not in at.session_state
        assert "vital_close_btn" not in _button_keys(at)

        at.run() # A plain rerun keeps the detail pane closed
        assert VITAL_SELECTION_KEY not in at.session_state

def test_vitals_employee_without_records_opens_create_form_once(inline_dialogs):
    with patch.object(OHMSApiClient, "fetch_vitals", return_value=_list_result([])), \
         patch.object(OHMSApiClient, "fetch_employees",
                      return_value=[{"id": "EMP404", "name": "New", "surname": "Hire"}]):
        at = _page_app("7_vitals.py")
        at.query_params["employee"] = "EMP404"
        at.run()
        assert not at.exception
        assert at.session_state["vitals_auto_create_done_for"] == "EMP404"
        assert "Create Record" in [button.label for button in at.button]

        at.run()
        assert "Create Record" not in [button.label for button in at.button]

def test_vitals_selection_off_page_is_fetched_by_id(sample_vitals):
    off_page_vital = dict(sample_vitals[0], id="VIT777", employee_name="Naledi", employee_surname="Zulu")
    with patch.object(OHMSApiClient, "fetch_vitals", return_value=_list_result(sample_vitals)), \
         patch.object(OHMSApiClient, "get_vital", return_value=off_page_vital) as mock_get:
        at = _page_app("7_vitals.py")
        at.session_state[VITAL_SELECTION_KEY] = "VIT777"
        at.run()
        assert not at.exception
        mock_get.assert_called_with("VIT777")
        assert at.session_state[VITAL_SELECTION_KEY] == "VIT777"
        assert "Naledi Zulu" in [subheader.value for subheader in at.subheader]

def test_vitals_selection_cleared_when_fetch_by_id_fails(sample_vitals):
    with patch.object(OHMSApiClient, "fetch_vitals", return_value=_list_result(sample_vitals)), \
         patch.object(OHMSApiClient, "get_vital", side_effect=OHMSApiError("Vital record not found", 404)):
        at = _page_app("7_vitals.py")
        at.session_state[VITAL_SELECTION_KEY] = "VIT404"
        at.run()
        assert not at.exception
        assert VITAL_SELECTION_KEY not in at.session_state
        assert "vital_close_btn" not in _button_keys(at)

def test_vitals_row_click_opens_detail(sample_vitals):
    with patch.object(OHMSApiClient, "fetch_vitals", return_value=_list_result(sample_vitals)), \
         patch("utils.ui_visualization_helpers.render_selectable_table", side_effect=_row_clicks(1)):
        at = _page_app("7_vitals.py")
        at.run()
        assert not at.exception
        assert at.session_state[VITAL_SELECTION_KEY] == "VIT002"


# --- Compliance ---

def test_compliance_load_error_offers_retry(sample_consents):
    fetch_calls = []

    def flaky_fetch(*args, **kwargs):
        fetch_calls.append(kwargs)
        if len(fetch_calls) == 1:
            raise OHMSApiError("backend down", 503)
        return _list_result(sample_consents, stats={})

    with patch.object(OHMSApiClient, "fetch_consent_records", side_effect=flaky_fetch):
        at = _page_app("2_compliance.py")
        at.run()
        assert not at.exception
        assert _error_texts(at) == ["Could not load consent records: backend down (HTTP 503)"]
        assert "consents_retry" in _button_keys(at)
        assert len(at.tabs) == 0 # Nothing renders below the error

        at.button(key="consents_retry").click().run()
        assert not at.exception
        assert _error_texts(at) == []
        assert len(fetch_calls) == 2
        assert "consents_retry" not in _button_keys(at)


# --- Emergency Responses ---
EMERGENCY_SELECTION_KEY = route_state_key("/emergency-responses", "selectedEmergencyId")

def test_emergency_delete_clears_selection(sample_emergency_responses, inline_dialogs):
    with patch.object(OHMSApiClient, "fetch_emergency_responses", return_value=_list_result(sample_emergency_responses)), \
         patch.object(OHMSApiClient, "delete_emergency_response", return_value={}) as mock_delete:
        at = _page_app("5_emergency_responses.py")
        at.session_state[EMERGENCY_SELECTION_KEY] = "ER001"
        at.run()
        at.button(key="emergency_delete_btn").click().run()
        assert "emergency_delete_confirm" in _button_keys(at)

        at.button(key="emergency_delete_btn").click()
        at.button(key="emergency_delete_confirm").click()
        at.run()
        assert not at.exception
        mock_delete.assert_called_once_with("ER001")
        assert EMERGENCY_SELECTION_KEY not in at.session_state

def test_emergency_selection_missing_from_list_is_dropped(sample_emergency_responses):
    with patch.object(OHMSApiClient, "fetch_emergency_responses", return_value=_list_result(sample_emergency_responses)):
        at = _page_app("5_emergency_responses.py")
        at.session_state[EMERGENCY_SELECTION_KEY] = "ER999"
        at.run()
        assert not at.exception
        assert EMERGENCY_SELECTION_KEY not in at.session_state

def test_emergency_load_error_retry_refetches(sample_emergency_responses):
    fetch_mock = MagicMock(side_effect=[OHMSApiError("timeout"), _list_result(sample_emergency_responses)])
    with patch.object(OHMSApiClient, "fetch_emergency_responses", fetch_mock):
        at = _page_app("5_emergency_responses.py")
        at.run()
        assert _error_texts(at) == ["Could not load emergency responses: timeout"]
        at.button(key="emergency_retry").click().run()
        assert not at.exception
        assert _error_texts(at) == []
        assert fetch_mock.call_count == 2


# --- My Dashboard ---
STAFF_SELECTION_KEY = route_state_key("/my-dashboard", "selectedStaffId")
REPORT_SELECTION_KEY = route_state_key("/my-dashboard", "selectedReportId")

@pytest.fixture
def patched_dashboard_client(sample_staff_users, sample_dashboard_payload):
    with patch.object(OHMSApiClient, "fetch_staff_users", return_value=sample_staff_users), \
         patch.object(OHMSApiClient, "fetch_staff_dashboard", return_value=sample_dashboard_payload) as mock_dashboard, \
         patch.object(OHMSApiClient, "get_employee", return_value={"id": "EMP002", "name": "Johan", "surname": "van Wyk"}), \
         patch.object(OHMSApiClient, "fetch_report_form_data", return_value={"section": "A"}), \
         patch.object(OHMSApiClient, "delete_report", return_value={}) as mock_delete:
        yield {"dashboard": mock_dashboard, "delete_report": mock_delete}

def test_my_dashboard_staff_type_switch_resets_selections(patched_dashboard_client):
    at = _page_app("6_my_dashboard.py")
    at.run()
    assert not at.exception
    assert at.session_state[STAFF_SELECTION_KEY] == "U1"

    at.session_state[REPORT_SELECTION_KEY] = "R2"
    at.run()
    assert "report_delete_btn" in _button_keys(at)

    at.radio(key="my_dashboard_staff_type_radio").set_value("Nurse").run()
    assert not at.exception
    assert at.session_state[STAFF_SELECTION_KEY] == "U2"
    assert REPORT_SELECTION_KEY not in at.session_state
    assert patched_dashboard_client["dashboard"].call_args.args == ("U2", "Nurse")

def test_my_dashboard_delete_report_clears_selection(patched_dashboard_client, inline_dialogs):
    at = _page_app("6_my_dashboard.py")
    at.run()
    at.session_state[REPORT_SELECTION_KEY] = "R2"
    at.run()
    at.button(key="report_delete_btn").click().run()

    at.button(key="report_delete_btn").click()
    at.button(key="report_delete_confirm").click()
    at.run()
    assert not at.exception
    patched_dashboard_client["delete_report"].assert_called_once_with("R2")
    assert REPORT_SELECTION_KEY not in at.session_state
    assert "report_delete_btn" not in _button_keys(at)


# --- Appointments ---
APPOINTMENT_SELECTION_KEY = route_state_key("/appointments", "selectedAppointmentId")

@pytest.mark.parametrize("search, expected_id", [
    ("fasting", "APT008"),   # First match inside the searched list
    ("Mokoena", "APT003"),   # Search hides the employee: fall back to the full list
    ("", "APT003"),
])
def test_appointments_employee_param_auto_selects(sample_appointments, search, expected_id):
    with patch.object(OHMSApiClient, "fetch_all_appointments", return_value=sample_appointments):
        at = _page_app("1_appointments.py")
        at.query_params["employee"] = "EMP003"
        if search:
            at.query_params["search"] = search
        at.run()
        assert not at.exception
        assert at.session_state[APPOINTMENT_SELECTION_KEY] == expected_id

def test_appointments_row_click_mirrors_employee_into_url(sample_appointments):
    with patch.object(OHMSApiClient, "fetch_all_appointments", return_value=sample_appointments), \
         patch("utils.ui_visualization_helpers.render_selectable_table", side_effect=_row_clicks(1)):
        at = _page_app("1_appointments.py")
        at.run()
        assert not at.exception
        assert at.session_state[APPOINTMENT_SELECTION_KEY] == "APT002"
        assert at.query_params.get("employee") == "EMP002"


# --- Cost Centers ---
COST_CENTER_SELECTION_KEY = route_state_key("/cost-centers", "selectedCostCenterId")

def test_cost_center_delete_refusal_reports_linked_employees(inline_dialogs):
    cost_center = {"id": "CC1", "department": "Finance", "cost_center": "FIN-01", "employee_count": 3}
    refusal = OHMSApiError("Cannot delete cost center with linked records", 400, details={"employees": 3})
    with patch.object(OHMSApiClient, "fetch_cost_centers", return_value=_list_result([cost_center])), \
         patch.object(OHMSApiClient, "fetch_organizations", return_value=[]), \
         patch.object(OHMSApiClient, "delete_cost_center", side_effect=refusal) as mock_delete:
        at = _page_app("3_cost_centers.py")
        at.session_state[COST_CENTER_SELECTION_KEY] = "CC1"
        at.run()
        at.button(key="cost_center_delete_btn").click().run()

        at.button(key="cost_center_delete_btn").click()
        at.button(key="cost_center_delete_confirm").click()
        at.run()
        assert not at.exception
        mock_delete.assert_called_once_with("CC1")
        assert "Cannot delete this cost center: 3 employees are still assigned to it." in _error_texts(at)
        assert at.session_state[COST_CENTER_SELECTION_KEY] == "CC1"
