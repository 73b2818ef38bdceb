"""
Runtime settings for the ILD Log application.

Every value can be overridden through an environment variable so that the
same code runs in the clinic, on a laptop, and inside the test suite.
"""
# ildlog/config.py

import os

# Persistence
DATA_FILE = os.environ.get("ILDLOG_DATA_FILE", "records.json")
KEY_FILE = os.environ.get("ILDLOG_KEY_FILE", "secret.key")
STORAGE_KEY = "aiims_ild_patients"

# Clinician gate (a single shared clinic account)
CLINICIAN_USERNAME = os.environ.get("ILDLOG_CLINICIAN_USERNAME", "doctor")
CLINICIAN_PASSWORD = os.environ.get("ILDLOG_CLINICIAN_PASSWORD", "aiims123")

# Business rules
MAX_LOGS_PER_DAY = 2

# Air quality lookup
AQI_URL = os.environ.get("ILDLOG_AQI_URL", "https://air-quality-api.open-meteo.com/v1/air-quality")
AQI_TIMEOUT_SECONDS = float(os.environ.get("ILDLOG_AQI_TIMEOUT", "10"))
# AIIMS, New Delhi
DEFAULT_LATITUDE = float(os.environ.get("ILDLOG_DEFAULT_LATITUDE", "28.5672"))
DEFAULT_LONGITUDE = float(os.environ.get("ILDLOG_DEFAULT_LONGITUDE", "77.2100"))
