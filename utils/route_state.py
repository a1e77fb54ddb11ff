# ohms/utils/route_state.py
# URL and per-route UI state for the OHMS pages.
#   - Query parameters (page / search / employee / site / organization) are the shareable state:
#     reloading or sending the URL reproduces the same filtered list.
#   - Route state (selected record id, split-pane width) lives in the session, keyed by
#     "routeState:{path[?query]}:{key}" so two pages never share a selection.

import logging
from typing import Any, Dict, Mapping, MutableMapping, Optional
from urllib.parse import urlencode

import streamlit as st

from config import app_config

logger = logging.getLogger(__name__)

ROUTE_STATE_PREFIX = "routeState"
SCOPE_PATH = "path"
SCOPE_PATH_QUERY = "path+query"


# --- I. Query Parameters ---
def build_list_query_params(page: int = 1, search: Optional[str] = None,
                            employee_id: Optional[str] = None,
                            extra: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
    """
    Query params for a list page. `page` is omitted on page 1 and empty values are dropped,
    so the default view has a clean URL.
    """
    params: Dict[str, str] = {}
    if page and int(page) > 1:
        params["page"] = str(int(page))
    if search and search.strip():
        params["search"] = search.strip()
    if employee_id:
        params["employee"] = str(employee_id)
    for key, value in (extra or {}).items():
        if value is not None and str(value).strip():
            params[key] = str(value)
    return params

def read_int_query_param(params: Mapping[str, Any], name: str, default: int = 1, minimum: int = 1) -> int:
    raw_value = params.get(name)
    if isinstance(raw_value, list): # Older Streamlit query param API returns lists
        raw_value = raw_value[0] if raw_value else None
    try:
        parsed_value = int(str(raw_value))
    except (TypeError, ValueError):
        return default
    return max(parsed_value, minimum)

def read_str_query_param(params: Mapping[str, Any], name: str, default: str = "") -> str:
    raw_value = params.get(name)
    if isinstance(raw_value, list):
        raw_value = raw_value[0] if raw_value else None
    return str(raw_value).strip() if raw_value is not None else default

def sync_query_params(params: Dict[str, str]) -> None:
    """Replaces the browser URL's query string with `params` (no-op when unchanged)."""
    current_params = {k: st.query_params[k] for k in st.query_params.keys()}
    if current_params == params:
        return
    st.query_params.from_dict(params)
    logger.debug(f"Query params synced: {params}")


# --- II. Route-Scoped Session State ---
def route_state_key(path: str, key: str, scope: str = SCOPE_PATH,
                    query_params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Session key for a piece of route state.
    scope="path" shares the value across query strings of the same page;
    scope="path+query" keeps a separate value per distinct query string.
    """
    if scope not in (SCOPE_PATH, SCOPE_PATH_QUERY):
        raise ValueError(f"Unknown route state scope '{scope}'.")
    route_id = path
    if scope == SCOPE_PATH_QUERY and query_params:
        route_id = f"{path}?{urlencode(sorted((k, str(v)) for k, v in query_params.items()))}"
    return f"{ROUTE_STATE_PREFIX}:{route_id}:{key}"

def get_route_state(path: str, key: str, default: Any = None, scope: str = SCOPE_PATH,
                    query_params: Optional[Mapping[str, Any]] = None,
                    store: Optional[MutableMapping[str, Any]] = None) -> Any:
    state_store = store if store is not None else st.session_state
    return state_store.get(route_state_key(path, key, scope, query_params), default)

def set_route_state(path: str, key: str, value: Any, scope: str = SCOPE_PATH,
                    query_params: Optional[Mapping[str, Any]] = None,
                    store: Optional[MutableMapping[str, Any]] = None) -> None:
    state_store = store if store is not None else st.session_state
    full_key = route_state_key(path, key, scope, query_params)
    if value is None:
        if full_key in state_store:
            del state_store[full_key]
        return
    state_store[full_key] = value


# --- III. Split-Pane Width ---
def clamp_panel_width(value: Any, lower: int = app_config.SPLIT_PANE_MIN_PCT,
                      upper: int = app_config.SPLIT_PANE_MAX_PCT) -> int:
    """Left pane width as an integer percentage within [lower, upper]."""
    try:
        numeric_value = float(value)
    except (TypeError, ValueError):
        return app_config.SPLIT_PANE_DEFAULT_PCT
    if numeric_value != numeric_value: # NaN
        return app_config.SPLIT_PANE_DEFAULT_PCT
    return int(round(min(max(numeric_value, lower), upper)))

def default_panel_width(page_key: str) -> int:
    return app_config.SPLIT_PANE_DEFAULTS_BY_PAGE.get(page_key, app_config.SPLIT_PANE_DEFAULT_PCT)
