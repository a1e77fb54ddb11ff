# ohms/pages/compliance_components/consent_tracking.py
# Prepares POPIA consent records for display.
# The backend owns each consent's lifecycle (pending -> active -> expired/revoked). The
# figures computed here are display tallies used when the API does not return a `stats` block.

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd

from config import app_config
from utils.core_data_processing import format_display_date, is_blank, today_local

logger = logging.getLogger(__name__)

CONSENT_TABLE_COLUMNS = ["Employee", "Department", "Consent Type", "Status", "Consent Date", "Expires"]

# API stats keys -> display keys
_SERVER_STATS_KEYS = {
    "total_employees": "total",
    "consents_active": "active",
    "consents_pending": "pending",
    "consents_expired": "expired",
    "consents_revoked": "revoked",
    "compliance_rate": "compliance_rate",
    "expiring_soon": "expiring_soon",
}


def consent_type_label(consent_type: Optional[str]) -> str:
    if is_blank(consent_type):
        return "N/A"
    type_info = app_config.CONSENT_TYPES.get(str(consent_type))
    return type_info["name"] if type_info else str(consent_type).replace("_", " ").title()


def prepare_consents_table(page_records: List[Dict[str, Any]]) -> pd.DataFrame:
    table_rows = []
    for record in page_records:
        table_rows.append({
            "Employee": record.get("employee_name") or "Unknown Employee",
            "Department": record.get("department") or "N/A",
            "Consent Type": consent_type_label(record.get("consent_type")),
            "Status": str(record.get("status") or "unknown").title(),
            "Consent Date": format_display_date(record.get("consent_date")),
            "Expires": format_display_date(record.get("expiry_date")),
        })
    return pd.DataFrame(table_rows, columns=CONSENT_TABLE_COLUMNS)


def is_expiring_soon(record: Dict[str, Any], reference_date: date,
                     window_days: int = app_config.CONSENT_EXPIRING_SOON_DAYS) -> bool:
    """Active consent whose expiry_date falls within the next `window_days` days (inclusive)."""
    if str(record.get("status") or "").lower() != "active":
        return False
    expiry_ts = pd.to_datetime(record.get("expiry_date"), errors="coerce")
    if pd.isna(expiry_ts):
        return False
    expiry_date = expiry_ts.date()
    return reference_date <= expiry_date <= reference_date + timedelta(days=window_days)


def compute_consent_stats(records: List[Dict[str, Any]], server_stats: Optional[Dict[str, Any]] = None,
                          reference_date: Optional[date] = None) -> Dict[str, Any]:
    """
    Summary figures for the KPI strip.

    Server stats are used as-is when supplied. Otherwise counts are tallied from
    `records`: compliance rate = active / total * 100 (0 for an empty list).
    """
    if server_stats:
        display_stats = {display_key: server_stats.get(api_key, 0) for api_key, display_key in _SERVER_STATS_KEYS.items()}
        display_stats["compliance_rate"] = float(display_stats.get("compliance_rate") or 0)
        return display_stats

    check_date = reference_date or today_local()
    status_counts = pd.Series([str(r.get("status") or "").lower() for r in records], dtype="object").value_counts()
    total_records = len(records)
    active_count = int(status_counts.get("active", 0))
    tallied_stats = {
        "total": total_records,
        "active": active_count,
        "pending": int(status_counts.get("pending", 0)),
        "expired": int(status_counts.get("expired", 0)),
        "revoked": int(status_counts.get("revoked", 0)),
        "compliance_rate": round(active_count / total_records * 100, 1) if total_records else 0.0,
        "expiring_soon": sum(1 for r in records if is_expiring_soon(r, check_date)),
    }
    logger.debug(f"Consent stats tallied locally from {total_records} records.")
    return tallied_stats


def link_status_label(record: Dict[str, Any]) -> str:
    if is_blank(record.get("link_sent_date")):
        return "Not sent"
    if record.get("link_opened"):
        return "Opened"
    return "Sent, not opened"


def consent_types_reference_table() -> pd.DataFrame:
    reference_rows = [{
        "Consent Type": type_info["name"],
        "Description": type_info["description"],
        "Duration Type": type_info["duration_type"].replace("_", " ").title(),
        "Typical Duration": type_info["typical_duration"],
    } for type_info in app_config.CONSENT_TYPES.values()]
    return pd.DataFrame(reference_rows)


def validate_consent_request(form_values: Dict[str, Any]) -> Dict[str, str]:
    errors = {}
    if is_blank(form_values.get("employee_id")):
        errors["employee_id"] = "Employee is required"
    if form_values.get("consent_type") not in app_config.CONSENT_TYPES:
        errors["consent_type"] = "Select a consent type"
    if is_blank(form_values.get("purpose")):
        errors["purpose"] = "Purpose is required"
    return errors


def build_consent_request_payload(form_values: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "employee_id": form_values.get("employee_id"),
        "consent_type": form_values.get("consent_type"),
        "purpose": str(form_values.get("purpose") or "").strip(),
        "legal_basis": form_values.get("legal_basis") or "consent",
    }
