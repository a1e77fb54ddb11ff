# ohms/tests/test_directory_components.py
# Pytest tests for the Cost Centers and Locations page helpers.

import pytest

from pages.directory_components.cost_centers import (
    build_cost_center_payload,
    build_organization_options,
    describe_delete_refusal,
    prepare_cost_center_form_defaults,
    prepare_cost_centers_table,
    validate_cost_center_form,
)
from pages.directory_components.locations import (
    build_location_payload,
    build_lookup_options,
    prepare_location_form_defaults,
    prepare_locations_table,
    validate_location_form,
)


# --- Cost Centers ---

def test_prepare_cost_centers_table():
    table_df = prepare_cost_centers_table([
        {"department": "Finance", "cost_center": "FIN-01", "organisation_name": "Acme", "manager_name": None, "employee_count": "4"},
        {"department": "Stores"},
    ])
    assert table_df.iloc[0].to_dict() == {
        "Department": "Finance", "Cost Center": "FIN-01", "Organisation": "Acme", "Manager": "N/A", "Employees": 4,
    }
    assert table_df.iloc[1]["Employees"] == 0

def test_build_organization_options():
    options = build_organization_options([{"id": 2, "name": "Zeta Mining"}, {"id": 1, "name": "Acme"}, {"id": None}])
    assert list(options.items()) == [("1", "Acme"), ("2", "Zeta Mining")]

def test_prepare_cost_center_form_defaults_uses_filter_organisation():
    defaults = prepare_cost_center_form_defaults(None, organization_id="ORG1")
    assert defaults["organisation_id"] == "ORG1"
    assert defaults["manager_responsible"] is False
    existing = prepare_cost_center_form_defaults({"organisation_id": "ORG2", "manager_responsible": 1}, organization_id="ORG1")
    assert existing["organisation_id"] == "ORG2"
    assert existing["manager_responsible"] is True

def test_validate_cost_center_form():
    assert validate_cost_center_form({"department": "Finance", "manager_email": "boss@acme.co.za"}) == {}
    errors = validate_cost_center_form({"department": "", "person_responsible_for_account_email": "nobody"})
    assert set(errors) == {"department", "person_responsible_for_account_email"}

def test_build_cost_center_payload():
    payload = build_cost_center_payload({"department": " Finance ", "cost_center": "", "manager_responsible": 0, "extra": "x"})
    assert payload == {"department": "Finance", "cost_center": None, "manager_responsible": False}

@pytest.mark.parametrize("details, expected", [
    ({"employees": 3}, "Cannot delete this cost center: 3 employees are still assigned to it."),
    ({"employees": "1"}, "Cannot delete this cost center: 1 employee is still assigned to it."),
    ({"employees": "many"}, "fallback"),
    (None, "fallback"),
])
def test_describe_delete_refusal(details, expected):
    assert describe_delete_refusal(details, "fallback") == expected


# --- Locations ---

def test_prepare_locations_table():
    table_df = prepare_locations_table([{"name": "Depot", "address": "1 Main Rd", "site_name": "HQ", "manager_name": "T. Mokoena"}])
    assert table_df.iloc[0].to_dict() == {"Name": "Depot", "Address": "1 Main Rd", "Site": "HQ", "Manager": "T. Mokoena"}
    assert list(prepare_locations_table([]).columns) == ["Name", "Address", "Site", "Manager"]

def test_build_lookup_options_label_fallback():
    options = build_lookup_options([{"id": "M2", "manager_name": "Zola"}, {"id": "M1"}], "manager_name")
    assert options == {"M1": "M1", "M2": "Zola"}

def test_location_form_round():
    defaults = prepare_location_form_defaults(None, site_id="S1")
    assert defaults == {"site_id": "S1", "name": None, "address": None, "manager": None}
    assert validate_location_form({"name": "  "}) == {"name": "Location name is required"}
    assert build_location_payload({"name": " Depot ", "address": "", "site_id": "S1"}) == {"site_id": "S1", "name": "Depot", "address": None}
