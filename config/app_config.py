# ohms/config/app_config.py
# Central configuration for the "Health With Heart" Occupational Health Management dashboard.
# Values that differ between deployments (API location, timeouts, log level) can be
# overridden through environment variables; everything else is a plain module constant.

import os
import pandas as pd # Used for the footer year

# --- I. Core System & Directory Configuration ---
# BASE_DIR calculation assumes this config file's location relative to project root.
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# ASSETS_DIR: Logos and the web stylesheet.
ASSETS_DIR = os.path.join(BASE_DIR, "assets")

# APP_BRANDING
APP_NAME = "Health With Heart OHMS"
APP_VERSION = "1.0.0"
APP_LOGO_SMALL = os.path.join(ASSETS_DIR, "hwh_logo_small.png")
APP_LOGO_LARGE = os.path.join(ASSETS_DIR, "hwh_logo_large.png")
STYLE_CSS_PATH_WEB = os.path.join(ASSETS_DIR, "style_web.css")

# ORGANIZATIONAL & SUPPORT
ORGANIZATION_NAME = "Health With Heart"
APP_FOOTER_TEXT = f"© {pd.Timestamp('now').year} {ORGANIZATION_NAME}. Occupational Health Management System."
SUPPORT_CONTACT_INFO = os.getenv("OHMS_SUPPORT_CONTACT", "support@healthwithheart.co.za")

# --- II. Backend REST API ---
# API_BASE_URL: Root of the backend serving the /api/... routes (no trailing slash).
API_BASE_URL = os.getenv("OHMS_API_BASE_URL", "http://localhost:3000").rstrip("/")
API_REQUEST_TIMEOUT_SECONDS = float(os.getenv("OHMS_API_TIMEOUT", "15"))
# Identifier sent as user_created / user_updated on mutations (auth is handled upstream).
API_ACTING_USER_ID = os.getenv("OHMS_USER_ID", "system")

API_ENDPOINTS = {
    "appointments": "/api/appointments",
    "vitals": "/api/vitals",
    "employees": "/api/employees",
    "cost_centers": "/api/cost-centers",
    "organizations": "/api/organizations",
    "locations": "/api/locations",
    "sites": "/api/sites",
    "managers": "/api/managers",
    "emergency_responses": "/api/emergency-responses",
    "users": "/api/users",
    "my_dashboard": "/api/dashboard/my-dashboard",
    "report_form_data": "/api/reports/form-data",
    "reports": "/api/reports",
    "report_pdf": "/api/reports/pdf",
    "consents": "/api/compliance/consents",
}

# --- III. Listing, Pagination & Caching ---
API_FETCH_ALL_LIMIT = 10000            # "Fetch everything" for client-side filtered lists
APPOINTMENTS_PAGE_SIZE = 29            # Appointments paginate client-side
DEFAULT_PAGE_SIZE = 50                 # Server-side pages for every other collection
EMPLOYEE_LOOKUP_LIMIT = 1000           # Employee picker in create/edit forms
LOOKUP_LIST_LIMIT = 1000               # Sites, managers, organisations

# CACHE_TTL_SECONDS_LISTS: Short TTL; mutations clear the cache explicitly.
CACHE_TTL_SECONDS_LISTS = int(os.getenv("OHMS_CACHE_TTL", "60"))
CACHE_TTL_SECONDS_LOOKUPS = 300
SUCCESS_MESSAGE_SECONDS = 3

# Default type for newly created appointments.
APPOINTMENT_DEFAULT_TYPE = "Executive Medical"

# --- IV. Split-Pane Layout (list | detail) ---
SPLIT_PANE_MIN_PCT = 20
SPLIT_PANE_MAX_PCT = 80
SPLIT_PANE_DEFAULT_PCT = 50
SPLIT_PANE_DEFAULTS_BY_PAGE = {
    "appointments": 40,
    "vitals": 50,
    "my_dashboard": 60,
    "cost_centers": 50,
    "locations": 50,
    "emergency_responses": 50,
    "compliance": 50,
}

# --- V. Domain Reference Data ---
# A. Emergency responses
EMERGENCY_TYPES = ["Medical", "Injury", "Accident", "Other"]

# B. Staff dashboard
STAFF_TYPES = ["Doctor", "Nurse"]
REPORT_SIGNED_MARKER = "Yes"           # doctor_signoff value that allows PDF download
REPORT_PDF_FILENAME_TEMPLATE = "Executive_Medical_Report_{report_id}.pdf"

# C. POPIA consent tracking (display only; lifecycle decisions live in the backend)
CONSENT_STATUSES = ["pending", "active", "expired", "revoked"]
CONSENT_LEGAL_BASES = ["consent", "statutory", "mixed"]
CONSENT_EXPIRING_SOON_DAYS = 30
CONSENT_TYPES = {
    "pre_employment": {
        "name": "Pre-Employment Medical Assessment",
        "description": "Medical fitness evaluation for employment",
        "duration_type": "purpose_based",
        "typical_duration": "Until hiring decision",
    },
    "periodic_screening": {
        "name": "Periodic Health Screening",
        "description": "Regular health monitoring and assessment",
        "duration_type": "time_based",
        "typical_duration": "12 months",
    },
    "incident_investigation": {
        "name": "Incident Investigation",
        "description": "Medical data for workplace incident investigation",
        "duration_type": "purpose_based",
        "typical_duration": "Until investigation complete",
    },
    "return_to_work": {
        "name": "Return-to-Work Assessment",
        "description": "Medical clearance for return to work",
        "duration_type": "purpose_based",
        "typical_duration": "Until clearance decision",
    },
    "occupational_surveillance": {
        "name": "Occupational Health Surveillance",
        "description": "Ongoing health monitoring for occupational risks",
        "duration_type": "time_based",
        "typical_duration": "24 months",
    },
    "emergency_medical": {
        "name": "Emergency Medical Response",
        "description": "Emergency contact and medical information",
        "duration_type": "employment_based",
        "typical_duration": "During employment",
    },
}

# D. Vitals: legacy column names still returned by older rows.
VITAL_FIELD_FALLBACKS = {
    "weight_kg": "weight",
    "height_cm": "height",
    "systolic_bp": "bp_systolic",
    "diastolic_bp": "bp_diastolic",
    "waist": "waist_circumference",
    "pulse_rythm": "pulse_rhythm",
    "bmi_status": "bmi_category",
    "blood_pressure_status": "bp_category",
}

# --- VI. Web Dashboard Presentation ---
WEB_PLOT_DEFAULT_HEIGHT = 400
WEB_PLOT_COMPACT_HEIGHT = 320

# LOGGING
LOG_LEVEL = os.getenv("OHMS_LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(module)s.%(funcName)s:%(lineno)d] - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# COLORS
COLOR_RISK_HIGH = "#D32F2F"      # Red
COLOR_RISK_MODERATE = "#FBC02D"  # Yellow/Amber
COLOR_RISK_LOW = "#388E3C"       # Green
COLOR_RISK_NEUTRAL = "#757575"   # Grey
COLOR_INFO = "#1E88E5"           # Blue
COLOR_WARNING_ORANGE = "#F57C00" # Orange
COLOR_ACTION_PRIMARY = "#1976D2"
COLOR_ACTION_SECONDARY = "#546E7A"

# Badge colour maps: keys are lower-cased server values, values are CSS badge classes.
BMI_STATUS_BADGES = {
    "underweight": "badge-blue",
    "normal": "badge-green",
    "overweight": "badge-yellow",
    "class i obesity": "badge-red",
    "class ii obesity": "badge-red",
    "class iii obesity": "badge-red",
}
BP_STATUS_BADGES = {
    "normal": "badge-green",
    "high": "badge-red",
}
EMERGENCY_TYPE_BADGES = {
    "medical": "badge-red",
    "injury": "badge-orange",
    "accident": "badge-yellow",
}
CONSENT_STATUS_BADGES = {
    "active": "badge-green",
    "pending": "badge-yellow",
    "expired": "badge-orange",
    "revoked": "badge-red",
}
REPORT_SIGNOFF_BADGES = {
    "signed": "badge-green",
    "pending": "badge-yellow",
}
BADGE_DEFAULT_CLASS = "badge-grey"

# --- End of Configuration ---
