# ohms/pages/directory_components/cost_centers.py
# Cost center rows, form handling and delete-refusal messages.

import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from utils.core_data_processing import display_value, is_blank

logger = logging.getLogger(__name__)

COST_CENTER_TABLE_COLUMNS = ["Department", "Cost Center", "Organisation", "Manager", "Employees"]

COST_CENTER_TEXT_FIELDS: List[Tuple[str, str]] = [
    ("department", "Department *"),
    ("cost_center", "Cost Center Code"),
    ("workplace_address", "Workplace Address"),
    ("manager_name", "Manager Name"),
    ("manager_email", "Manager Email"),
    ("manager_contact_number", "Manager Contact Number"),
    ("person_responsible_for_account", "Person Responsible for Account"),
    ("person_responsible_for_account_email", "Account Responsible Email"),
]
COST_CENTER_FORM_FIELDS = (
    ["organisation_id"]
    + [f for f, _ in COST_CENTER_TEXT_FIELDS]
    + ["manager_responsible", "notes_text"]
)


def prepare_cost_centers_table(page_records: List[Dict[str, Any]]) -> pd.DataFrame:
    table_rows = []
    for record in page_records:
        table_rows.append({
            "Department": display_value(record.get("department")),
            "Cost Center": display_value(record.get("cost_center")),
            "Organisation": display_value(record.get("organisation_name")),
            "Manager": display_value(record.get("manager_name")),
            "Employees": int(record.get("employee_count") or 0),
        })
    return pd.DataFrame(table_rows, columns=COST_CENTER_TABLE_COLUMNS)


def build_organization_options(organizations: List[Dict[str, Any]]) -> Dict[str, str]:
    organization_options = {}
    for organization in organizations or []:
        if is_blank(organization.get("id")):
            continue
        organization_options[str(organization["id"])] = organization.get("name") or str(organization["id"])
    return dict(sorted(organization_options.items(), key=lambda item: item[1].lower()))


def prepare_cost_center_form_defaults(record: Optional[Dict[str, Any]], organization_id: Optional[str] = None) -> Dict[str, Any]:
    source_record = record or {}
    form_defaults = {field: source_record.get(field) for field in COST_CENTER_FORM_FIELDS}
    if not form_defaults.get("organisation_id"):
        form_defaults["organisation_id"] = organization_id
    form_defaults["manager_responsible"] = bool(source_record.get("manager_responsible"))
    return form_defaults


def validate_cost_center_form(form_values: Dict[str, Any]) -> Dict[str, str]:
    errors = {}
    if is_blank(form_values.get("department")):
        errors["department"] = "Department is required"
    for email_field in ("manager_email", "person_responsible_for_account_email"):
        email_value = str(form_values.get(email_field) or "").strip()
        if email_value and "@" not in email_value:
            errors[email_field] = "Enter a valid email address"
    return errors


def build_cost_center_payload(form_values: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for field in COST_CENTER_FORM_FIELDS:
        if field not in form_values:
            continue
        value = form_values[field]
        if field == "manager_responsible":
            payload[field] = bool(value)
        elif isinstance(value, str):
            payload[field] = value.strip() or None
        else:
            payload[field] = value
    return payload


def describe_delete_refusal(error_details: Any, fallback_message: str) -> str:
    """
    Message for a refused delete. The backend answers 400 with
    details={"employees": n} while employees are still linked to the cost center.
    """
    if isinstance(error_details, dict) and error_details.get("employees") is not None:
        try:
            employee_count = int(error_details["employees"])
        except (TypeError, ValueError):
            return fallback_message
        noun = "employee is" if employee_count == 1 else "employees are"
        return f"Cannot delete this cost center: {employee_count} {noun} still assigned to it."
    return fallback_message
