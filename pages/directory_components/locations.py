# ohms/pages/directory_components/locations.py
# Location rows and the site/manager lookups used by the create and edit forms.

from typing import Any, Dict, List, Optional

import pandas as pd

from utils.core_data_processing import display_value, is_blank

LOCATION_TABLE_COLUMNS = ["Name", "Address", "Site", "Manager"]
LOCATION_FORM_FIELDS = ["site_id", "name", "address", "manager"]


def prepare_locations_table(page_records: List[Dict[str, Any]]) -> pd.DataFrame:
    table_rows = [{
        "Name": display_value(record.get("name")),
        "Address": display_value(record.get("address")),
        "Site": display_value(record.get("site_name")),
        "Manager": display_value(record.get("manager_name")),
    } for record in page_records]
    return pd.DataFrame(table_rows, columns=LOCATION_TABLE_COLUMNS)


def build_lookup_options(rows: List[Dict[str, Any]], label_field: str) -> Dict[str, str]:
    """{id: label} for a lookup list (sites use `name`, managers use `manager_name`)."""
    lookup_options = {}
    for row in rows or []:
        if is_blank(row.get("id")):
            continue
        lookup_options[str(row["id"])] = str(row.get(label_field) or row["id"])
    return dict(sorted(lookup_options.items(), key=lambda item: item[1].lower()))


def prepare_location_form_defaults(record: Optional[Dict[str, Any]], site_id: Optional[str] = None) -> Dict[str, Any]:
    source_record = record or {}
    form_defaults = {field: source_record.get(field) for field in LOCATION_FORM_FIELDS}
    if not form_defaults.get("site_id"):
        form_defaults["site_id"] = site_id
    return form_defaults


def validate_location_form(form_values: Dict[str, Any]) -> Dict[str, str]:
    errors = {}
    if is_blank(form_values.get("name")):
        errors["name"] = "Location name is required"
    return errors


def build_location_payload(form_values: Dict[str, Any]) -> Dict[str, Any]:
    payload = {}
    for field in LOCATION_FORM_FIELDS:
        if field in form_values:
            value = form_values[field]
            payload[field] = (value.strip() or None) if isinstance(value, str) else value
    return payload
