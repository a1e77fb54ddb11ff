# ohms/utils/api_client.py
# REST client for the Health With Heart OHMS backend.
# Every dashboard page reads and writes its records exclusively through this module:
#   1. A thin `requests.Session` wrapper (OHMSApiClient) that applies the base URL, timeout,
#      drops empty query parameters and turns backend `{"error": ...}` bodies into OHMSApiError.
#   2. Resource helpers mirroring the backend routes (/api/appointments, /api/vitals, ...).
# No Streamlit imports here; caching of results is done by the calling pages.

import logging
from typing import Any, Dict, List, Optional

import requests

from config import app_config
from utils.core_data_processing import normalize_pagination

logger = logging.getLogger(__name__)


class OHMSApiError(Exception):
    """Raised for transport failures, non-2xx responses and undecodable bodies."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


def _drop_empty_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Removes query parameters whose value is None or an empty string."""
    if not params:
        return {}
    return {k: v for k, v in params.items() if v is not None and str(v).strip() != ""}


def _extract_error_payload(response: requests.Response):
    """Pulls (message, details) out of a failed response, tolerating non-JSON bodies."""
    fallback_msg = f"Request failed with status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return fallback_msg, None
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or fallback_msg), body.get("details")
    return fallback_msg, None


def _unwrap(payload: Any, key: str) -> Any:
    """Backend responses sometimes wrap the record (e.g. {"vital": {...}}); return the inner object."""
    if isinstance(payload, dict) and isinstance(payload.get(key), dict):
        return payload[key]
    return payload


class OHMSApiClient:
    """
    Session-backed client for the OHMS REST API.

    Args:
        base_url: Backend root; defaults to app_config.API_BASE_URL.
        timeout: Seconds per request; defaults to app_config.API_REQUEST_TIMEOUT_SECONDS.
        session: Optional pre-built requests.Session (tests inject a mock here).
        acting_user_id: Sent as user_created / user_updated on mutations that record it.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None, acting_user_id: Optional[str] = None):
        self.base_url = (base_url or app_config.API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else app_config.API_REQUEST_TIMEOUT_SECONDS
        self.session = session if session is not None else requests.Session()
        self.acting_user_id = acting_user_id or app_config.API_ACTING_USER_ID
        self.session.headers.update({"Accept": "application/json"})

    # --- I. Transport ---

    def _build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                 json_body: Optional[Dict[str, Any]] = None, raw: bool = False) -> Any:
        url = self._build_url(path)
        clean_params = _drop_empty_params(params)
        logger.debug(f"API {method} {url} params={clean_params}")
        try:
            response = self.session.request(
                method, url,
                params=clean_params or None,
                json=json_body,
                timeout=self.timeout,
            )
        except requests.RequestException as e_req:
            logger.error(f"API {method} {path} could not be completed: {e_req}", exc_info=True)
            raise OHMSApiError(f"Could not reach the OHMS API ({method} {path}): {e_req}") from e_req

        if not response.ok:
            message, details = _extract_error_payload(response)
            logger.error(f"API {method} {path} returned {response.status_code}: {message}")
            raise OHMSApiError(message, status_code=response.status_code, details=details)

        if raw:
            return response.content
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e_json:
            logger.error(f"API {method} {path} returned a non-JSON body: {e_json}")
            raise OHMSApiError(f"Invalid JSON received from {path}", status_code=response.status_code) from e_json

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("GET", path, params=params)

    def post_json(self, path: str, body: Dict[str, Any]) -> Any:
        return self._request("POST", path, json_body=body)

    def put_json(self, path: str, body: Dict[str, Any]) -> Any:
        return self._request("PUT", path, json_body=body)

    def delete(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("DELETE", path, params=params)

    def get_bytes(self, path: str) -> bytes:
        return self._request("GET", path, raw=True)

    def list_collection(self, path: str, collection_key: str, page: int = 1,
                        limit: int = app_config.DEFAULT_PAGE_SIZE, search: str = "",
                        filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GETs a paginated collection and normalises it to {"records": [...], "pagination": {...}}.
        When the backend omits the pagination block, one is derived from the returned rows.
        """
        params: Dict[str, Any] = {"page": page, "limit": limit, "search": search.strip() if search else ""}
        if filters:
            params.update(filters)
        payload = self.get_json(path, params=params)

        records: List[Dict[str, Any]] = []
        pagination: Dict[str, Any] = {}
        if isinstance(payload, dict):
            records = payload.get(collection_key) or []
            pagination = payload.get("pagination") or {}
        elif isinstance(payload, list): # Some lookups return a bare array
            records = payload
        pagination = normalize_pagination(pagination, page, limit, len(records))
        logger.info(f"Fetched {len(records)} '{collection_key}' records (page {pagination.get('page', page)}).")
        return {"records": records, "pagination": pagination}

    # --- II. Appointments ---

    def fetch_all_appointments(self) -> List[Dict[str, Any]]:
        """Whole appointment list in one request; search and paging happen client-side."""
        result = self.list_collection(
            app_config.API_ENDPOINTS["appointments"], "appointments",
            page=1, limit=app_config.API_FETCH_ALL_LIMIT,
        )
        return result["records"]

    def create_appointment(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return _unwrap(self.post_json(app_config.API_ENDPOINTS["appointments"], data), "appointment")

    def update_appointment(self, record: Dict[str, Any]) -> Dict[str, Any]:
        # The collection route takes the full record, id included.
        return _unwrap(self.put_json(app_config.API_ENDPOINTS["appointments"], record), "appointment")

    # --- III. Vitals & Employees ---

    def fetch_vitals(self, page: int = 1, limit: int = app_config.DEFAULT_PAGE_SIZE,
                     search: str = "", employee_id: Optional[str] = None) -> Dict[str, Any]:
        # Employee filter wins over free-text search.
        if employee_id:
            return self.list_collection(app_config.API_ENDPOINTS["vitals"], "vitals",
                                        page=page, limit=limit, filters={"employee": employee_id})
        return self.list_collection(app_config.API_ENDPOINTS["vitals"], "vitals",
                                    page=page, limit=limit, search=search)

    def get_vital(self, vital_id: str) -> Dict[str, Any]:
        return _unwrap(self.get_json(f"{app_config.API_ENDPOINTS['vitals']}/{vital_id}"), "vital")

    def create_vital(self, data: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(data, user_created=self.acting_user_id)
        return _unwrap(self.post_json(app_config.API_ENDPOINTS["vitals"], body), "vital")

    def update_vital(self, vital_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(data, user_updated=self.acting_user_id)
        return _unwrap(self.put_json(f"{app_config.API_ENDPOINTS['vitals']}/{vital_id}", body), "vital")

    def delete_vital(self, vital_id: str) -> Any:
        return self.delete(f"{app_config.API_ENDPOINTS['vitals']}/{vital_id}")

    def fetch_employees(self, limit: int = app_config.EMPLOYEE_LOOKUP_LIMIT) -> List[Dict[str, Any]]:
        return self.list_collection(app_config.API_ENDPOINTS["employees"], "employees", page=1, limit=limit)["records"]

    def get_employee(self, employee_id: str) -> Dict[str, Any]:
        return _unwrap(self.get_json(f"{app_config.API_ENDPOINTS['employees']}/{employee_id}"), "employee")

    # --- IV. Cost Centers & Organisations ---

    def fetch_cost_centers(self, page: int = 1, limit: int = app_config.DEFAULT_PAGE_SIZE,
                           search: str = "", organization_id: Optional[str] = None) -> Dict[str, Any]:
        return self.list_collection(app_config.API_ENDPOINTS["cost_centers"], "costCenters",
                                    page=page, limit=limit, search=search,
                                    filters={"organization": organization_id})

    def create_cost_center(self, data: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(data, user_created=self.acting_user_id)
        return _unwrap(self.post_json(app_config.API_ENDPOINTS["cost_centers"], body), "costCenter")

    def update_cost_center(self, cost_center_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(data, user_updated=self.acting_user_id)
        return _unwrap(self.put_json(f"{app_config.API_ENDPOINTS['cost_centers']}/{cost_center_id}", body), "costCenter")

    def delete_cost_center(self, cost_center_id: str) -> Any:
        return self.delete(f"{app_config.API_ENDPOINTS['cost_centers']}/{cost_center_id}")

    def fetch_organizations(self) -> List[Dict[str, Any]]:
        return self.list_collection(app_config.API_ENDPOINTS["organizations"], "organizations",
                                    page=1, limit=app_config.LOOKUP_LIST_LIMIT)["records"]

    # --- V. Locations, Sites & Managers ---

    def fetch_locations(self, page: int = 1, limit: int = app_config.DEFAULT_PAGE_SIZE,
                        search: str = "", site_id: Optional[str] = None) -> Dict[str, Any]:
        return self.list_collection(app_config.API_ENDPOINTS["locations"], "locations",
                                    page=page, limit=limit, search=search, filters={"site": site_id})

    def create_location(self, data: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(data, user_created=self.acting_user_id)
        return _unwrap(self.post_json(app_config.API_ENDPOINTS["locations"], body), "location")

    def update_location(self, location_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(data, user_updated=self.acting_user_id)
        return _unwrap(self.put_json(f"{app_config.API_ENDPOINTS['locations']}/{location_id}", body), "location")

    def delete_location(self, location_id: str) -> Any:
        return self.delete(f"{app_config.API_ENDPOINTS['locations']}/{location_id}")

    def fetch_sites(self) -> List[Dict[str, Any]]:
        return self.list_collection(app_config.API_ENDPOINTS["sites"], "sites",
                                    page=1, limit=app_config.LOOKUP_LIST_LIMIT)["records"]

    def fetch_managers(self) -> List[Dict[str, Any]]:
        return self.list_collection(app_config.API_ENDPOINTS["managers"], "managers",
                                    page=1, limit=app_config.LOOKUP_LIST_LIMIT)["records"]

    # --- VI. Emergency Responses ---

    def fetch_emergency_responses(self, page: int = 1, limit: int = app_config.DEFAULT_PAGE_SIZE,
                                  search: str = "", cache_buster: Optional[int] = None) -> Dict[str, Any]:
        # `_t` defeats intermediary caches after a mutation.
        return self.list_collection(app_config.API_ENDPOINTS["emergency_responses"], "emergencyResponses",
                                    page=page, limit=limit, search=search, filters={"_t": cache_buster})

    def create_emergency_response(self, data: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(data, user_created=self.acting_user_id)
        return _unwrap(self.post_json(app_config.API_ENDPOINTS["emergency_responses"], body), "emergencyResponse")

    def update_emergency_response(self, response_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(data, id=response_id, user_updated=self.acting_user_id)
        return _unwrap(self.put_json(app_config.API_ENDPOINTS["emergency_responses"], body), "emergencyResponse")

    def delete_emergency_response(self, response_id: str) -> Any:
        return self.delete(app_config.API_ENDPOINTS["emergency_responses"], params={"id": response_id})

    # --- VII. Staff Dashboard & Reports ---

    def fetch_staff_users(self) -> List[Dict[str, Any]]:
        return self.list_collection(app_config.API_ENDPOINTS["users"], "users",
                                    page=1, limit=app_config.API_FETCH_ALL_LIMIT)["records"]

    def fetch_staff_dashboard(self, staff_id: str, staff_type: str) -> Dict[str, Any]:
        """Per-doctor or per-nurse dashboard payload (stats, charts, report lists)."""
        if staff_type == "Doctor":
            params = {"doctorId": staff_id}
        elif staff_type == "Nurse":
            params = {"nurseId": staff_id}
        else:
            raise ValueError(f"Unsupported staff type '{staff_type}'. Expected one of {app_config.STAFF_TYPES}.")
        payload = self.get_json(app_config.API_ENDPOINTS["my_dashboard"], params=params)
        return payload if isinstance(payload, dict) else {}

    def fetch_report_form_data(self, report_id: str) -> Dict[str, Any]:
        return self.get_json(f"{app_config.API_ENDPOINTS['report_form_data']}/{report_id}")

    def delete_report(self, report_id: str) -> Any:
        return self.delete(f"{app_config.API_ENDPOINTS['reports']}/{report_id}")

    def download_report_pdf(self, report_id: str) -> bytes:
        return self.get_bytes(f"{app_config.API_ENDPOINTS['report_pdf']}/{report_id}")

    # --- VIII. POPIA Consent Records ---

    def fetch_consent_records(self, page: int = 1, limit: int = app_config.DEFAULT_PAGE_SIZE,
                              search: str = "", status: Optional[str] = None,
                              consent_type: Optional[str] = None) -> Dict[str, Any]:
        """Like list_collection, but also surfaces the optional server-side `stats` block."""
        params = {"page": page, "limit": limit, "search": search, "status": status, "consent_type": consent_type}
        payload = self.get_json(app_config.API_ENDPOINTS["consents"], params=params)
        if not isinstance(payload, dict):
            payload = {}
        records = payload.get("consents") or []
        pagination = normalize_pagination(payload.get("pagination"), page, limit, len(records))
        return {"records": records, "pagination": pagination, "stats": payload.get("stats") or {}}

    def request_consent(self, data: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(data, user_created=self.acting_user_id)
        return _unwrap(self.post_json(app_config.API_ENDPOINTS["consents"], body), "consent")


def get_api_client() -> OHMSApiClient:
    """Builds a client from app_config. Pages wrap this in st.cache_resource."""
    logger.info(f"Initialising OHMS API client for {app_config.API_BASE_URL}")
    return OHMSApiClient()
