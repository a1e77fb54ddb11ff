# ohms/tests/test_api_client.py
# Pytest tests for utils.api_client against a mocked requests.Session.

import pytest
import requests

from utils.api_client import OHMSApiClient, OHMSApiError, _drop_empty_params, _unwrap


@pytest.fixture
def api_client(mock_session):
    return OHMSApiClient(base_url="http://ohms.test/", timeout=5, session=mock_session, acting_user_id="user-42")


def _last_call(mock_session):
    args, kwargs = mock_session.request.call_args
    return args[0], args[1], kwargs


# --- Helpers ---

def test_drop_empty_params():
    assert _drop_empty_params({"page": 1, "search": "", "site": None, "q": "  ", "zero": 0}) == {"page": 1, "zero": 0}
    assert _drop_empty_params(None) == {}

def test_unwrap_nested_and_bare_payloads():
    assert _unwrap({"vital": {"id": "V1"}}, "vital") == {"id": "V1"}
    assert _unwrap({"id": "V1"}, "vital") == {"id": "V1"}
    assert _unwrap([], "vital") == []


# --- Transport ---

def test_request_builds_url_timeout_and_drops_empty_params(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, {"vitals": [], "pagination": {}})
    api_client.fetch_vitals(page=2, search="")
    method, url, kwargs = _last_call(mock_session)
    assert method == "GET"
    assert url == "http://ohms.test/api/vitals"
    assert kwargs["timeout"] == 5
    assert kwargs["params"] == {"page": 2, "limit": 50}

def test_error_body_becomes_ohms_api_error(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(
        400, {"error": "Cannot delete cost center with existing employees", "details": {"employees": 3}}
    )
    with pytest.raises(OHMSApiError) as exc_info:
        api_client.delete_cost_center("CC1")
    assert exc_info.value.status_code == 400
    assert exc_info.value.details == {"employees": 3}
    assert "HTTP 400" in str(exc_info.value)

def test_error_without_json_body_uses_status_message(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(502, json_body=None, content=b"<html>Bad gateway</html>")
    with pytest.raises(OHMSApiError, match="Request failed with status 502"):
        api_client.get_json("/api/anything")

def test_transport_failure_becomes_ohms_api_error(api_client, mock_session):
    mock_session.request.side_effect = requests.ConnectionError("connection refused")
    with pytest.raises(OHMSApiError, match="Could not reach the OHMS API"):
        api_client.fetch_organizations()

def test_invalid_json_raises(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, json_body=None, content=b"not json")
    with pytest.raises(OHMSApiError, match="Invalid JSON"):
        api_client.get_json("/api/vitals")

def test_empty_success_body_returns_empty_dict(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(204, json_body=None, content=b"")
    assert api_client.delete_vital("V1") == {}


# --- Collections & pagination ---

def test_list_collection_fills_missing_pagination_fields(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, {
        "locations": [{"id": "L1"}, {"id": "L2"}],
        "pagination": {"page": 1, "limit": 2, "total": 5},
    })
    result = api_client.fetch_locations(page=1, limit=2, search="depot", site_id="S1")
    assert [r["id"] for r in result["records"]] == ["L1", "L2"]
    assert result["pagination"]["totalPages"] == 3
    assert result["pagination"]["hasNextPage"] is True
    assert result["pagination"]["hasPreviousPage"] is False
    _, _, kwargs = _last_call(mock_session)
    assert kwargs["params"] == {"page": 1, "limit": 2, "search": "depot", "site": "S1"}

def test_list_collection_accepts_bare_array(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, [{"id": "S1", "name": "HQ"}])
    assert api_client.fetch_sites() == [{"id": "S1", "name": "HQ"}]

def test_fetch_all_appointments_uses_fetch_all_limit(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, {"appointments": [{"id": "A1"}]})
    assert api_client.fetch_all_appointments() == [{"id": "A1"}]
    _, _, kwargs = _last_call(mock_session)
    assert kwargs["params"]["limit"] == 10000

def test_vitals_employee_filter_replaces_search(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, {"vitals": []})
    api_client.fetch_vitals(page=1, search="thandi", employee_id="EMP001")
    _, _, kwargs = _last_call(mock_session)
    assert kwargs["params"] == {"page": 1, "limit": 50, "employee": "EMP001"}


# --- Mutations ---

def test_create_vital_records_acting_user(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(201, {"vital": {"id": "V9"}})
    created = api_client.create_vital({"employee_id": "EMP001", "weight_kg": 70.0})
    method, url, kwargs = _last_call(mock_session)
    assert (method, url) == ("POST", "http://ohms.test/api/vitals")
    assert kwargs["json"]["user_created"] == "user-42"
    assert created == {"id": "V9"}

def test_update_emergency_response_puts_to_collection_with_id(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, {"id": "ER1"})
    api_client.update_emergency_response("ER1", {"emergency_type": "Injury"})
    method, url, kwargs = _last_call(mock_session)
    assert (method, url) == ("PUT", "http://ohms.test/api/emergency-responses")
    assert kwargs["json"]["id"] == "ER1"
    assert kwargs["json"]["user_updated"] == "user-42"

def test_delete_emergency_response_uses_id_query_param(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, {"success": True})
    api_client.delete_emergency_response("ER7")
    method, url, kwargs = _last_call(mock_session)
    assert (method, url) == ("DELETE", "http://ohms.test/api/emergency-responses")
    assert kwargs["params"] == {"id": "ER7"}

def test_update_appointment_sends_full_record(api_client, mock_session, response_factory):
    record = {"id": "APT1", "type": "Executive Medical", "notes": "updated"}
    mock_session.request.return_value = response_factory(200, {"appointment": record})
    assert api_client.update_appointment(record) == record
    method, url, kwargs = _last_call(mock_session)
    assert (method, url) == ("PUT", "http://ohms.test/api/appointments")
    assert kwargs["json"] == record


# --- Staff dashboard & reports ---

@pytest.mark.parametrize("staff_type, expected_param", [("Doctor", "doctorId"), ("Nurse", "nurseId")])
def test_fetch_staff_dashboard_param_by_type(api_client, mock_session, response_factory, staff_type, expected_param):
    mock_session.request.return_value = response_factory(200, {"stats": {}})
    api_client.fetch_staff_dashboard("U1", staff_type)
    _, url, kwargs = _last_call(mock_session)
    assert url == "http://ohms.test/api/dashboard/my-dashboard"
    assert kwargs["params"] == {expected_param: "U1"}

def test_fetch_staff_dashboard_rejects_unknown_type(api_client):
    with pytest.raises(ValueError):
        api_client.fetch_staff_dashboard("U1", "Administrator")

def test_download_report_pdf_returns_raw_bytes(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, json_body=None, content=b"%PDF-1.7 ...")
    assert api_client.download_report_pdf("R1") == b"%PDF-1.7 ..."
    _, url, _ = _last_call(mock_session)
    assert url == "http://ohms.test/api/reports/pdf/R1"


# --- Consents ---

def test_fetch_consent_records_surfaces_stats(api_client, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, {
        "consents": [{"id": "C1"}],
        "pagination": {"page": 1, "limit": 50, "total": 1, "totalPages": 1},
        "stats": {"consents_active": 1},
    })
    result = api_client.fetch_consent_records(status="active")
    assert result["records"] == [{"id": "C1"}]
    assert result["stats"] == {"consents_active": 1}
    _, url, kwargs = _last_call(mock_session)
    assert url == "http://ohms.test/api/compliance/consents"
    assert kwargs["params"] == {"page": 1, "limit": 50, "status": "active"}
