# ohms/app_home.py
# Landing page for the "Health With Heart OHMS" occupational health dashboard.
# Run with:  streamlit run app_home.py

import streamlit as st
import os
from config import app_config
from utils.ui_visualization_helpers import load_web_css
import logging

# --- Page Configuration ---
st.set_page_config(
    page_title=f"{app_config.APP_NAME} - Home",
    page_icon=app_config.APP_LOGO_SMALL if os.path.exists(app_config.APP_LOGO_SMALL) else "❤️",
    layout="wide",
    initial_sidebar_state="expanded",
    menu_items={
        'Get Help': f"mailto:{app_config.SUPPORT_CONTACT_INFO}?subject=Help Request - {app_config.APP_NAME}",
        'Report a bug': f"mailto:{app_config.SUPPORT_CONTACT_INFO}?subject=Bug Report - {app_config.APP_NAME} v{app_config.APP_VERSION}",
        'About': f"""
        ### {app_config.APP_NAME}
        **Version:** {app_config.APP_VERSION}
        Occupational health management for employers: appointments, vitals, emergency
        responses, consent tracking and medical report sign-off.
        {app_config.APP_FOOTER_TEXT}
        """
    }
)

# --- Logging Setup ---
# Configured once here; page modules only call logging.getLogger(__name__).
logging.basicConfig(
    level=getattr(logging, app_config.LOG_LEVEL.upper(), logging.INFO),
    format=app_config.LOG_FORMAT,
    datefmt=app_config.LOG_DATE_FORMAT,
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

load_web_css(app_config.STYLE_CSS_PATH_WEB)


# --- App Header ---
header_cols_home = st.columns([0.15, 0.85])
with header_cols_home[0]:
    main_page_logo_to_use = app_config.APP_LOGO_LARGE if os.path.exists(app_config.APP_LOGO_LARGE) else app_config.APP_LOGO_SMALL
    if os.path.exists(main_page_logo_to_use):
        st.image(main_page_logo_to_use, width=100)
    else:
        st.markdown("## ❤️")

with header_cols_home[1]:
    st.title(app_config.APP_NAME)
    st.caption(f"Version {app_config.APP_VERSION}  |  Occupational Health Management System")
st.markdown("---")

st.markdown(f"""
    #### Welcome to {app_config.APP_NAME}

    Every screen lists records from the OHMS backend, lets you search and page through them,
    and opens the selected record in a detail pane beside the list. Records are created,
    edited and deleted through dialogs. The list URL (page, search, filters) can be
    bookmarked or shared.

    👈 **Use the sidebar, or the shortcuts below, to open a screen.**
""")


# --- Screen Shortcuts ---
st.subheader("Screens")

HOME_SCREENS = [
    ("📅 **Appointments**", "pages/1_appointments.py", "nav_appointments_home",
     "All scheduled medicals in one searchable list. Edit employee, appointment, report, calendar "
     "and notes sections independently; open an employee's appointments straight from a link."),
    ("🛡️ **Compliance**", "pages/2_compliance.py", "nav_compliance_home",
     "POPIA consent records with status and consent-type filters, compliance KPIs, consent "
     "requests and a reference of consent types."),
    ("🏢 **Cost Centers**", "pages/3_cost_centers.py", "nav_cost_centers_home",
     "Departmental cost centers per organisation, with manager and account-holder details."),
    ("📍 **Locations**", "pages/4_locations.py", "nav_locations_home",
     "Locations within each site and the manager responsible for them."),
    ("🚑 **Emergency Responses**", "pages/5_emergency_responses.py", "nav_emergency_home",
     "Incident log: injuries, medical emergencies and accidents with treatment and outcome."),
    ("📋 **My Dashboard**", "pages/6_my_dashboard.py", "nav_my_dashboard_home",
     "Per-doctor or per-nurse workload: report totals, sign-off rate, trends, and the report "
     "list with PDF download for signed reports."),
    ("❤️ **Vitals**", "pages/7_vitals.py", "nav_vitals_home",
     "Weight, BMI, blood pressure, pulse and glucose records per employee."),
]

for screen_title, screen_page, nav_key, screen_description in HOME_SCREENS:
    with st.expander(screen_title, expanded=False):
        st.markdown(screen_description)
        if st.button(f"Open {screen_title.strip('*').split(' ', 1)[-1].strip('*')}", key=nav_key, type="primary"):
            st.switch_page(screen_page)


# --- Sidebar Content ---
st.sidebar.header(app_config.APP_NAME)
if os.path.exists(app_config.APP_LOGO_SMALL):
    st.sidebar.image(app_config.APP_LOGO_SMALL, width=180)
st.sidebar.caption(f"Version {app_config.APP_VERSION}")
st.sidebar.markdown("---")
st.sidebar.markdown("**Backend API**")
st.sidebar.code(app_config.API_BASE_URL, language=None)
st.sidebar.markdown("---")
st.sidebar.markdown(f"**Support & Info:**<br/>{app_config.ORGANIZATION_NAME}<br/>"
                    f"Contact: [{app_config.SUPPORT_CONTACT_INFO}](mailto:{app_config.SUPPORT_CONTACT_INFO})", unsafe_allow_html=True)
st.sidebar.markdown("---")
st.sidebar.caption(app_config.APP_FOOTER_TEXT)


logger.info(f"Application home page ({app_config.APP_NAME}) loaded; API base URL {app_config.API_BASE_URL}")
