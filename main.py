"""
This is the main entry point for the ILD Log Streamlit application.

This script handles the following key responsibilities:
- Sets the overall page configuration for the Streamlit app.
- Initializes the `PatientStore`, which owns the encrypted patient records.
- Keeps the signed-in role in the session state.
- Routes the user to the login page or to the clinician/patient dashboard.
"""
# main.py

import logging

import streamlit as st

import gui
from ildlog.session import AppState
from ildlog.store import PatientStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(
    page_title="AIIMS-ILD",
    layout="wide"
)


@st.cache_resource
def get_patient_store():
    """
    Initializes and returns the shared PatientStore instance.

    This function is decorated with `@st.cache_resource` so that the store is
    created once and shared across reruns and sessions.

    Returns:
        PatientStore: The application's patient store.
    """
    return PatientStore()


store = get_patient_store()

if 'app_state' not in st.session_state:
    st.session_state.app_state = AppState()
if 'page' not in st.session_state:
    st.session_state.page = None

if st.session_state.app_state.role:
    gui.show_main_app(store)
else:
    gui.show_login_page(store)
