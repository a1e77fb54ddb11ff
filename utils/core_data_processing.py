# ohms/utils/core_data_processing.py
# Record handling utilities shared by every OHMS dashboard page.
# The backend returns JSON rows (lists of dicts); this module turns them into
# display-ready structures:
#   1. Client-side search and pagination (used where a page fetches the whole list).
#   2. Record lookup and section-scoped merges for inline edits.
#   3. Display formatting (dates, times, names) and legacy field fallbacks.
#   4. Conversion to pandas DataFrames for tables and charts.

import pandas as pd
import numpy as np
import logging
import math
from datetime import date, datetime, time
# Assuming app_config is in the PYTHONPATH or project root.
from config import app_config
from typing import List, Dict, Any, Optional, Tuple, Iterable

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

# --- I. Core Helper Functions ---
def _clean_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """Standardizes column names: lower case, replaces spaces/hyphens with underscores."""
    if not isinstance(df, pd.DataFrame):
        logger.error(f"_clean_column_names expects a pandas DataFrame, got {type(df)}.")
        return df if df is not None else pd.DataFrame()
    df.columns = df.columns.astype(str).str.lower().str.replace(' ', '_').str.replace('-', '_')
    return df

def _convert_to_numeric(series: pd.Series, default_value: Any = np.nan) -> pd.Series:
    """Safely converts a pandas Series to numeric, coercing errors to default_value."""
    if not isinstance(series, pd.Series):
        logger.debug(f"_convert_to_numeric given non-Series type: {type(series)}. Attempting conversion to Series.")
        try:
            series = pd.Series(series)
        except Exception as e_series:
            logger.error(f"Could not convert input of type {type(series)} to Series in _convert_to_numeric: {e_series}")
            length = len(series) if hasattr(series, '__len__') else 1
            return pd.Series([default_value] * length, dtype=float)
    return pd.to_numeric(series, errors='coerce').fillna(default_value)

def is_blank(value: Any) -> bool:
    """True for None, NaN/NaT and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError): # Lists/dicts are never blank scalars
        return False


# --- II. Pagination & Client-Side Filtering ---
def build_pagination_info(page: int, limit: int, total: int) -> Dict[str, Any]:
    """
    Pagination block in the same shape the backend returns:
    {page, limit, total, totalPages, hasNextPage, hasPreviousPage}.
    """
    safe_limit = max(int(limit), 1)
    safe_total = max(int(total), 0)
    total_pages = math.ceil(safe_total / safe_limit)
    return {
        "page": page,
        "limit": safe_limit,
        "total": safe_total,
        "totalPages": total_pages,
        "hasNextPage": page < total_pages,
        "hasPreviousPage": page > 1,
    }

def normalize_pagination(raw_pagination: Optional[Dict[str, Any]], page: int, limit: int,
                         fallback_total: int) -> Dict[str, Any]:
    """
    Fills in whatever the backend left out of its pagination block. Some routes only
    send {page, limit, total, totalPages}; others send nothing at all.
    """
    raw = raw_pagination if isinstance(raw_pagination, dict) else {}
    try:
        total = int(raw.get("total", fallback_total) or 0)
        current_page = int(raw.get("page", page) or page)
        page_limit = int(raw.get("limit", limit) or limit)
    except (TypeError, ValueError):
        logger.warning(f"Malformed pagination block from API: {raw}. Deriving from request.")
        total, current_page, page_limit = fallback_total, page, limit
    return build_pagination_info(current_page, page_limit, total)

def filter_records_by_search(
    records: List[Dict[str, Any]],
    search_term: Optional[str],
    search_fields: Iterable[str],
    full_name_fields: Optional[Tuple[str, str]] = None
) -> List[Dict[str, Any]]:
    """
    Case-insensitive substring match over `search_fields`, plus the "name surname"
    composite built from `full_name_fields`. An empty term returns the input as-is.
    """
    if not search_term or not search_term.strip():
        return records
    needle = search_term.strip().lower()
    fields_list = list(search_fields)

    matched_records = []
    for record in records:
        haystack = [str(record.get(field) or "") for field in fields_list]
        if full_name_fields:
            first_name = record.get(full_name_fields[0]) or ""
            last_name = record.get(full_name_fields[1]) or ""
            haystack.append(f"{first_name} {last_name}")
        if any(needle in value.lower() for value in haystack):
            matched_records.append(record)
    logger.debug(f"Search '{needle}' matched {len(matched_records)} of {len(records)} records.")
    return matched_records

def paginate_records(records: List[Dict[str, Any]], page: int, limit: int) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """Slices one page out of an in-memory list. Pages below 1 are treated as page 1."""
    current_page = max(int(page or 1), 1)
    start_idx = (current_page - 1) * limit
    page_slice = records[start_idx:start_idx + limit]
    return page_slice, build_pagination_info(current_page, limit, len(records))


# --- III. Record Lookup & Section Merges ---
def find_record_by_id(records: List[Dict[str, Any]], record_id: Any) -> Optional[Dict[str, Any]]:
    if record_id is None:
        return None
    return next((r for r in records if str(r.get("id")) == str(record_id)), None)

def find_record_position(records: List[Dict[str, Any]], record: Optional[Dict[str, Any]]) -> Optional[int]:
    """Row index of `record` (matched by id) in `records`, or None when it is not on this page."""
    if not record:
        return None
    return next((idx for idx, r in enumerate(records) if str(r.get("id")) == str(record.get("id"))), None)

def find_first_record_for_employee(records: List[Dict[str, Any]], employee_id: Any) -> Optional[Dict[str, Any]]:
    """First record in list order belonging to `employee_id`."""
    if not employee_id:
        return None
    return next((r for r in records if str(r.get("employee_id")) == str(employee_id)), None)

def merge_section_update(
    record: Dict[str, Any],
    form_data: Dict[str, Any],
    section: str,
    section_fields: Dict[str, List[str]]
) -> Dict[str, Any]:
    """
    Returns a copy of `record` where only the fields belonging to `section`
    are overwritten from `form_data`. Other sections stay exactly as loaded, so a
    full-record PUT never clobbers fields the user did not touch.
    """
    if section not in section_fields:
        raise ValueError(f"Unknown edit section '{section}'. Expected one of {sorted(section_fields)}.")
    merged_record = dict(record)
    for field in section_fields[section]:
        if field in form_data:
            merged_record[field] = form_data[field]
    return merged_record


# --- IV. Display Formatting ---
def _parse_datetime(value: Any) -> Optional[pd.Timestamp]:
    if is_blank(value):
        return None
    parsed = pd.to_datetime(value, errors='coerce')
    if pd.isna(parsed):
        return None
    return parsed

def format_display_date(value: Any, fmt: str = "%d %b %Y") -> str:
    parsed = _parse_datetime(value)
    return parsed.strftime(fmt) if parsed is not None else NOT_AVAILABLE

def format_display_time(value: Any) -> str:
    """Accepts "HH:MM[:SS]" strings or full datetimes; returns "HH:MM"."""
    if is_blank(value):
        return NOT_AVAILABLE
    if isinstance(value, str) and len(value.strip()) <= 8 and ":" in value:
        parts = value.strip().split(":")
        if len(parts) >= 2 and parts[0].isdigit() and parts[1].isdigit():
            return f"{int(parts[0]):02d}:{int(parts[1]):02d}"
    parsed = _parse_datetime(value)
    return parsed.strftime("%H:%M") if parsed is not None else NOT_AVAILABLE

def format_display_datetime(value: Any) -> str:
    parsed = _parse_datetime(value)
    return parsed.strftime("%d %b %Y %H:%M") if parsed is not None else NOT_AVAILABLE

def format_date_for_input(value: Any) -> str:
    """YYYY-MM-DD for date inputs; empty string when missing or unparseable."""
    parsed = _parse_datetime(value)
    return parsed.strftime("%Y-%m-%d") if parsed is not None else ""

def parse_input_date(value: Any) -> Optional[date]:
    """Inverse of format_date_for_input, for seeding st.date_input."""
    parsed = _parse_datetime(value)
    return parsed.date() if parsed is not None else None

def parse_input_time(value: Any) -> Optional[time]:
    """"HH:MM[:SS]" or datetime -> datetime.time for st.time_input; None when missing."""
    if is_blank(value):
        return None
    if isinstance(value, time):
        return value
    if isinstance(value, str) and ":" in value and len(value.strip()) <= 8:
        parts = value.strip().split(":")
        try:
            return time(int(parts[0]), int(parts[1]))
        except (ValueError, IndexError):
            return None
    parsed = _parse_datetime(value)
    return parsed.time().replace(second=0, microsecond=0) if parsed is not None else None

def display_value(value: Any, units: str = "") -> str:
    if is_blank(value):
        return NOT_AVAILABLE
    return f"{value} {units}".strip() if units else str(value)

def employee_full_name(
    record: Optional[Dict[str, Any]],
    name_key: str = "employee_name",
    surname_key: str = "employee_surname",
    default: str = "Unknown Employee"
) -> str:
    """"Name Surname" when both parts are present, otherwise `default`."""
    if not record:
        return default
    first_name = record.get(name_key)
    last_name = record.get(surname_key)
    if is_blank(first_name) or is_blank(last_name):
        return default
    return f"{str(first_name).strip()} {str(last_name).strip()}"

def build_employee_options(employees: List[Dict[str, Any]]) -> Dict[str, str]:
    """{employee_id: "Name Surname (employee_number)"} for select boxes, sorted by label."""
    employee_options = {}
    for employee in employees or []:
        employee_id = employee.get("id")
        if is_blank(employee_id):
            continue
        label = employee_full_name(employee, name_key="name", surname_key="surname", default=str(employee_id))
        if not is_blank(employee.get("employee_number")):
            label = f"{label} ({employee['employee_number']})"
        employee_options[str(employee_id)] = label
    return dict(sorted(employee_options.items(), key=lambda item: item[1].lower()))

def resolve_field_with_fallback(record: Dict[str, Any], field: str,
                                fallbacks: Optional[Dict[str, str]] = None) -> Any:
    """
    Value of `field`, or of its legacy alias when the primary column is empty.
    Vitals rows from older imports use e.g. `weight` instead of `weight_kg`.
    """
    fallback_map = fallbacks if fallbacks is not None else app_config.VITAL_FIELD_FALLBACKS
    primary_value = record.get(field)
    if not is_blank(primary_value):
        return primary_value
    legacy_field = fallback_map.get(field)
    return record.get(legacy_field) if legacy_field else None


# --- V. DataFrame Conversion ---
def records_to_dataframe(
    records: List[Dict[str, Any]],
    columns: Optional[List[str]] = None,
    date_cols: Optional[List[str]] = None,
    numeric_cols: Optional[List[str]] = None,
    source_context: str = "Records"
) -> pd.DataFrame:
    """
    Builds a DataFrame from API rows. Missing `columns` are added as NaN so downstream
    table code can rely on them; dates are coerced to datetime and numbers to float.
    """
    if not records:
        logger.info(f"({source_context}) No records supplied; returning empty DataFrame.")
        return pd.DataFrame(columns=columns or [])
    try:
        df = _clean_column_names(pd.DataFrame.from_records(records))
    except Exception as e_df:
        logger.error(f"({source_context}) Could not build DataFrame from records: {e_df}", exc_info=True)
        return pd.DataFrame(columns=columns or [])

    if columns:
        for col in columns:
            if col not in df.columns:
                df[col] = np.nan
    for col in date_cols or []:
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], errors='coerce')
    for col in numeric_cols or []:
        if col in df.columns:
            df[col] = _convert_to_numeric(df[col])
    return df

def today_local() -> date:
    return datetime.now().date()
