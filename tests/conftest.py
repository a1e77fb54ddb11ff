# ohms/tests/conftest.py
# Shared fixtures: API-shaped sample rows for each OHMS resource and a mocked requests session.

import pytest
from unittest.mock import MagicMock


# --- Fixture for Sample Appointments ---
@pytest.fixture
def sample_appointments():
    """35 appointments across 5 employees; every 4th one already has a report."""
    employees = [
        ("EMP001", "Thandi", "Mokoena", "thandi.mokoena@acme.co.za"),
        ("EMP002", "Johan", "van Wyk", "johan.vanwyk@acme.co.za"),
        ("EMP003", "Ayesha", "Patel", "ayesha.patel@acme.co.za"),
        ("EMP004", "Sipho", "Dlamini", "sipho.dlamini@acme.co.za"),
        ("EMP005", "Maria", "Fernandes", "maria.fernandes@acme.co.za"),
    ]
    appointments = []
    for idx in range(35):
        emp_id, name, surname, email = employees[idx % len(employees)]
        appointments.append({
            "id": f"APT{idx + 1:03d}",
            "employee_id": emp_id,
            "employee_name": name,
            "employee_surname": surname,
            "employee_email": email,
            "type": "Executive Medical" if idx % 3 else "Pre-Employment",
            "start_date": f"2024-03-{(idx % 28) + 1:02d}",
            "end_date": f"2024-03-{(idx % 28) + 1:02d}",
            "start_time": "09:00:00",
            "end_time": "10:30:00",
            "notes": "Fasting required" if idx == 7 else None,
            "report_id": f"REP{idx:03d}" if idx % 4 == 0 else None,
            "calander_id": None,
            "calander_link": None,
        })
    return appointments


# --- Fixture for Sample Vitals ---
@pytest.fixture
def sample_vitals():
    return [
        {
            "id": "VIT001", "employee_id": "EMP001", "employee_name": "Thandi", "employee_surname": "Mokoena",
            "employee_number": "A100", "date_created": "2024-04-02T08:15:00Z",
            "weight_kg": 72.5, "height_cm": 168, "bmi": 25.7, "bmi_status": "Overweight",
            "systolic_bp": 142, "diastolic_bp": 91, "blood_pressure_status": "High", "pulse_rate": 78,
        },
        {
            # Legacy column names from an older import
            "id": "VIT002", "employee_id": "EMP002", "employee_name": "Johan", "employee_surname": "van Wyk",
            "employee_number": "A101", "date_created": "2024-04-03T09:00:00Z",
            "weight": "101", "height": "180", "bmi": 31.2, "bmi_category": "Class I Obesity",
            "bp_systolic": 128, "bp_diastolic": 84, "bp_category": "Normal", "pulse_rate": None,
        },
        {
            "id": "VIT003", "employee_id": "EMP001", "employee_name": "Thandi", "employee_surname": "Mokoena",
            "employee_number": "A100", "date_created": "2024-01-10T08:00:00Z",
            "weight_kg": None, "height_cm": None, "bmi": None, "bmi_status": None,
            "systolic_bp": None, "diastolic_bp": None, "blood_pressure_status": None, "pulse_rate": 66,
        },
    ]


# --- Fixture for Sample Emergency Responses ---
@pytest.fixture
def sample_emergency_responses():
    return [
        {
            "id": "ER001", "employee_id": "EMP003", "employee_name": "Ayesha", "employee_surname": "Patel",
            "employee_work_email": "ayesha.patel@acme.co.za", "emergency_type": "Injury",
            "injury_date": "2024-05-14T00:00:00.000Z", "injury_time": "10:45", "arrival_time": "11:05",
            "place": "Warehouse B", "main_complaint": "Laceration to left hand", "diagnosis": "Superficial wound",
            "outcome": "Returned to work",
        },
        {
            "id": "ER002", "employee_id": "EMP004", "employee_name": "Sipho", "employee_surname": None,
            "emergency_type": "Medical", "injury_date": "not-a-date", "place": None,
            "main_complaint": "Chest pain", "diagnosis": None,
        },
        {
            "id": "ER003", "employee_id": "EMP005", "employee_name": "Maria", "employee_surname": "Fernandes",
            "emergency_type": "Medical", "injury_date": "2024-06-01", "place": "Office 3",
        },
    ]


# --- Fixture for Sample Consent Records ---
@pytest.fixture
def sample_consents():
    return [
        {"id": "C1", "employee_name": "Thandi Mokoena", "department": "Finance", "consent_type": "periodic_screening",
         "status": "active", "consent_date": "2024-01-01", "expiry_date": "2024-06-20", "link_sent_date": "2023-12-20",
         "link_opened": True},
        {"id": "C2", "employee_name": "Johan van Wyk", "department": "Operations", "consent_type": "pre_employment",
         "status": "active", "consent_date": "2024-02-01", "expiry_date": "2025-02-01", "link_sent_date": None},
        {"id": "C3", "employee_name": "Ayesha Patel", "department": "Operations", "consent_type": "return_to_work",
         "status": "pending", "consent_date": None, "expiry_date": None, "link_sent_date": "2024-06-01",
         "link_opened": False},
        {"id": "C4", "employee_name": "Sipho Dlamini", "department": "Logistics", "consent_type": "custom_study",
         "status": "revoked", "consent_date": "2023-03-01", "expiry_date": "2024-06-05"},
    ]


# --- Fixture for Sample Staff Dashboard Payload ---
@pytest.fixture
def sample_staff_users():
    return [
        {"id": "U1", "name": "Lerato", "surname": "Khumalo", "email": "lerato@hwh.co.za", "type": "Doctor"},
        {"id": "U2", "name": "Pieter", "surname": "Botha", "email": "pieter@hwh.co.za", "type": "Nurse"},
        {"id": "U3", "name": "Naledi", "surname": "Zulu", "email": "naledi@hwh.co.za", "type": "Doctor"},
        {"id": "U4", "name": "Admin", "surname": "User", "email": "admin@hwh.co.za", "type": "Administrator"},
    ]


@pytest.fixture
def sample_dashboard_payload():
    return {
        "doctor": {"id": "U1", "name": "Lerato", "surname": "Khumalo", "email": "lerato@hwh.co.za", "type": "Doctor"},
        "stats": {"totalReports": 12, "totalEmployees": 9, "signedReports": 10, "pendingReports": 2, "signoffRate": 83.3},
        "team": [{"id": "U2", "name": "Pieter", "surname": "Botha", "email": "pieter@hwh.co.za"}],
        "sites": [{"site_name": "Johannesburg HQ", "employee_count": 6}, {"site_name": "Durban Port", "employee_count": 3}],
        "reportsOverTime": [{"month": "2024-03-01", "report_count": 5}, {"month": "2024-01-01", "report_count": 4},
                            {"month": "bad-month", "report_count": 1}],
        "repeatEmployees": [{"employee_id": "EMP001", "report_count": 2}],
        "topWorkplaces": [{"workplace": "Finance", "employee_count": 4}],
        "recentReports": [],
        "allReports": [
            {"id": "a1b2c3d4-0000-1111-2222-333344445555", "employee_id": "EMP001", "employee_name": "Thandi",
             "employee_surname": "Mokoena", "doctor_name": "Lerato", "doctor_surname": "Khumalo",
             "doctor_signoff": "Yes", "date_created": "2024-03-04T10:00:00Z", "workplace_name": "Finance",
             "employee_work_email": "thandi.mokoena@acme.co.za"},
            {"id": "R2", "employee_id": "EMP002", "employee_name": "Johan", "employee_surname": None,
             "doctor_name": None, "doctor_surname": None, "doctor_signoff": None, "date_created": "2024-03-05",
             "workplace": "WP-9"},
        ],
    }


# --- Mocked HTTP session ---
def make_response(status_code=200, json_body=None, content=None):
    """MagicMock shaped like requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if content is None:
        content = b"" if json_body is None else b"{}"
    response.content = content
    if json_body is None:
        response.json.side_effect = ValueError("No JSON body")
    else:
        response.json.return_value = json_body
    return response


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.headers = {}
    session.request.return_value = make_response(200, {})
    return session


@pytest.fixture
def response_factory():
    return make_response
