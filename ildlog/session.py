"""
Session state and the login gate.

The clinic shares a single clinician account configured in `config`; patients sign
in with the mobile number their clinician registered. `AppState` is owned by the
presentation layer and passed to the store so that a patient's cached record is
refreshed whenever the store changes it.
"""
# ildlog/session.py

import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from ildlog import config
from ildlog.models import Patient

logger = logging.getLogger(__name__)

CLINICIAN = 'clinician'
PATIENT = 'patient'


@dataclass
class AppState:
    """The signed-in role and, for patients, their cached record."""
    role: Optional[str] = None
    patient: Optional[Patient] = None

    @property
    def patient_id(self) -> Optional[str]:
        return self.patient.id if self.patient else None


def login_clinician(state: AppState, username: str, password: str) -> bool:
    """Checks the clinician credentials and signs the clinician in."""
    valid_user = hmac.compare_digest(username or "", config.CLINICIAN_USERNAME)
    valid_password = hmac.compare_digest(password or "", config.CLINICIAN_PASSWORD)
    if valid_user and valid_password:
        state.role = CLINICIAN
        state.patient = None
        return True
    logger.info("Rejected clinician login for %r", username)
    return False


def login_patient(state: AppState, store, mobile: str) -> bool:
    """Signs a patient in by mobile number if they are registered."""
    patient = store.find_by_id((mobile or "").strip())
    if patient is None:
        return False
    state.role = PATIENT
    state.patient = patient
    return True


def logout(state: AppState):
    """Clears the session."""
    state.role = None
    state.patient = None
