"""
This module provides the patient record store for the ILD Log application.

It defines the `PatientStore` class, which is responsible for:
- Loading and saving the whole patient collection to an encrypted JSON file.
- Registering, updating, listing and deleting patients.
- Accepting daily log submissions (at most two per day) and the single permitted
  edit of each log.
- Managing a patient's PFT history and medication list.
- Keeping the active session's cached patient in step with the store.

Operations that fail validation return a status string and leave the data untouched.
"""
# ildlog/store.py

import copy
import dataclasses
import json
import logging
from datetime import date
from typing import List, Optional

from cryptography.fernet import InvalidToken

from ildlog import config
from ildlog.constants import SEX_OPTIONS
from ildlog.encryption import get_encryptor
from ildlog.models import HealthLog, LogDraft, Medication, Patient, PFTEntry, is_valid_mobile
from ildlog.scoring import build_health_log, missing_kbild_questions

logger = logging.getLogger(__name__)


def serialize_patients(patients: List[Patient]) -> str:
    """Serialises the collection as one JSON array under the storage key."""
    return json.dumps({config.STORAGE_KEY: [p.to_dict() for p in patients]}, indent=4, ensure_ascii=False)


def deserialize_patients(text: str) -> List[Patient]:
    """Rebuilds the collection from `serialize_patients` output.

    Malformed patient records, and records repeating an id already read, are
    skipped with a warning.

    Raises:
        json.JSONDecodeError: If the text is not JSON.
    """
    data = json.loads(text)
    records = data.get(config.STORAGE_KEY, []) if isinstance(data, dict) else []
    patients = []
    seen = set()
    for record in records:
        try:
            patient = Patient.from_dict(record)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Skipping malformed patient record: %s", e)
            continue
        if patient.id in seen:
            logger.warning("Skipping duplicate patient record %s", patient.id)
            continue
        seen.add(patient.id)
        patients.append(patient)
    return patients


def validate_patient(patient: Patient) -> Optional[str]:
    """Checks a patient before it is written.

    Returns:
        str or None: 'invalid_mobile', 'missing_fields', or None if valid.
    """
    if not is_valid_mobile(patient.id):
        return 'invalid_mobile'
    if not (patient.name or "").strip() or patient.age is None or patient.age <= 0:
        return 'missing_fields'
    if patient.sex not in SEX_OPTIONS or patient.diagnosis is None:
        return 'missing_fields'
    return None


class PatientStore:
    """Owns the patient collection and persists it on every change."""

    def __init__(self, data_file: Optional[str] = None, encryptor=None):
        """Initializes the store and loads the saved collection.

        Args:
            data_file (str, optional): Path of the encrypted data file.
            encryptor (optional): An object with Fernet's `encrypt`/`decrypt`.
        """
        self.data_file = data_file or config.DATA_FILE
        self._encryptor = encryptor or get_encryptor()
        self._patients = self._load_data()

    def _load_data(self) -> List[Patient]:
        """Loads and decrypts the collection.

        Returns:
            list: The saved patients, or an empty list if the file is missing or unreadable.
        """
        try:
            with open(self.data_file, 'r') as f:
                encrypted_data = f.read()
            if not encrypted_data:
                return []
            decrypted_data = self._encryptor.decrypt(encrypted_data.encode()).decode("utf-8")
            return deserialize_patients(decrypted_data)
        except (FileNotFoundError, InvalidToken, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Could not load data file (%s). Starting with an empty collection.", e)
            return []

    def _save_data(self):
        """Encrypts and writes the whole collection."""
        encrypted_data = self._encryptor.encrypt(serialize_patients(self._patients).encode("utf-8"))
        with open(self.data_file, 'w') as f:
            f.write(encrypted_data.decode())

    def _index_of(self, patient_id: str) -> Optional[int]:
        for index, patient in enumerate(self._patients):
            if patient.id == patient_id:
                return index
        return None

    def _commit(self, patient: Patient, state=None):
        """Saves the collection and refreshes a session bound to `patient`."""
        self._save_data()
        if state is not None and state.patient is not None and state.patient.id == patient.id:
            state.patient = copy.deepcopy(patient)

    @staticmethod
    def _normalized(patient: Patient) -> Patient:
        stored = copy.deepcopy(patient)
        if "Others" not in stored.co_morbidities:
            stored.other_co_morbidity = None
        return stored

    # Patients

    def add_patient(self, patient: Patient):
        """Registers a new patient.

        Args:
            patient (Patient): The patient to add.

        Returns:
            bool or str: True on success, or 'invalid_mobile', 'missing_fields'
                         or 'duplicate_id'.
        """
        problem = validate_patient(patient)
        if problem:
            return problem
        if self._index_of(patient.id) is not None:
            return 'duplicate_id'
        self._patients.append(self._normalized(patient))
        self._save_data()
        logger.info("Registered patient %s", patient.id)
        return True

    def update_patient(self, patient: Patient, state=None):
        """Replaces the stored patient with the same id.

        Args:
            patient (Patient): The updated patient.
            state (AppState, optional): The active session, refreshed if it shows this patient.

        Returns:
            bool or str: True on success, False if the id is unknown, or a
                         validation status string.
        """
        index = self._index_of(patient.id)
        if index is None:
            return False
        problem = validate_patient(patient)
        if problem:
            return problem
        self._patients[index] = self._normalized(patient)
        self._commit(self._patients[index], state)
        return True

    def delete_patient(self, patient_id: str, state=None) -> bool:
        """Deletes a patient together with their logs, PFTs and medications.

        Returns:
            bool: True if a patient was removed.
        """
        index = self._index_of(patient_id)
        if index is None:
            return False
        del self._patients[index]
        self._save_data()
        if state is not None and state.patient is not None and state.patient.id == patient_id:
            state.patient = None
            state.role = None
        logger.info("Deleted patient %s", patient_id)
        return True

    def find_by_id(self, patient_id: str) -> Optional[Patient]:
        """Returns a copy of the patient, or None if the id is unknown."""
        index = self._index_of(patient_id)
        if index is None:
            return None
        return copy.deepcopy(self._patients[index])

    def list_patients(self, search_term: str = "", category: Optional[str] = None) -> List[Patient]:
        """Lists patients, newest registration first.

        Args:
            search_term (str): Matches a part of the name (any case) or of the mobile number.
            category (str, optional): Restricts to one diagnosis category.

        Returns:
            list: Copies of the matching patients.
        """
        term = (search_term or "").strip().lower()

        def matches(patient):
            if category and patient.diagnosis.category != category:
                return False
            return not term or term in patient.name.lower() or term in patient.id

        found = [copy.deepcopy(p) for p in self._patients if matches(p)]
        return sorted(found, key=lambda p: p.registration_date, reverse=True)

    # Daily logs

    def logs_on_date(self, patient_id: str, day: date) -> List[HealthLog]:
        """Returns the patient's logs for a day, newest first."""
        index = self._index_of(patient_id)
        if index is None:
            return []
        logs = [log for log in self._patients[index].logs if log.date == day]
        return copy.deepcopy(sorted(logs, key=lambda log: log.timestamp, reverse=True))

    def previous_log(self, patient_id: str, day: date) -> Optional[HealthLog]:
        """Returns the latest log for `day`, or failing that the latest earlier log."""
        same_day = self.logs_on_date(patient_id, day)
        if same_day:
            return same_day[0]
        index = self._index_of(patient_id)
        if index is None:
            return None
        earlier = [log for log in self._patients[index].logs if log.date < day]
        if not earlier:
            return None
        return copy.deepcopy(max(earlier, key=lambda log: log.timestamp))

    def submit_log(self, patient_id: str, draft: LogDraft, state=None):
        """Scores and stores a new daily log.

        Args:
            patient_id (str): The patient submitting the log.
            draft (LogDraft): The patient's inputs.
            state (AppState, optional): The active session, refreshed on success.

        Returns:
            HealthLog or str: The stored log, or 'patient_not_found', 'incomplete_kbild',
                              'daily_limit_reached' or 'invalid_log'.
        """
        index = self._index_of(patient_id)
        if index is None:
            return 'patient_not_found'
        if missing_kbild_questions(draft.kbild_responses):
            return 'incomplete_kbild'
        patient = self._patients[index]
        if sum(1 for log in patient.logs if log.date == draft.date) >= config.MAX_LOGS_PER_DAY:
            return 'daily_limit_reached'
        try:
            log = build_health_log(draft)
        except ValueError as e:
            logger.warning("Rejected log for %s: %s", patient_id, e)
            return 'invalid_log'
        patient.logs.insert(0, log)
        self._commit(patient, state)
        logger.info("Stored log %s for %s with alerts %s", log.log_id, patient_id, log.alerts)
        return copy.deepcopy(log)

    def edit_log(self, patient_id: str, log_id: str, draft: LogDraft, state=None):
        """Applies the single permitted edit to a log.

        The edited inputs are scored again; the log keeps its id, date and timestamp.

        Returns:
            HealthLog or str: The updated log, or 'patient_not_found', 'log_not_found',
                              'already_edited', 'incomplete_kbild' or 'invalid_log'.
        """
        index = self._index_of(patient_id)
        if index is None:
            return 'patient_not_found'
        patient = self._patients[index]
        position = next((i for i, log in enumerate(patient.logs) if log.log_id == log_id), None)
        if position is None:
            return 'log_not_found'
        existing = patient.logs[position]
        if existing.is_edited:
            return 'already_edited'
        if missing_kbild_questions(draft.kbild_responses):
            return 'incomplete_kbild'
        try:
            edited = build_health_log(dataclasses.replace(draft, date=existing.date),
                                      log_id=existing.log_id, timestamp=existing.timestamp)
        except ValueError as e:
            logger.warning("Rejected edit of log %s: %s", log_id, e)
            return 'invalid_log'
        edited.is_edited = True
        patient.logs[position] = edited
        self._commit(patient, state)
        return copy.deepcopy(edited)

    # PFT history and medications

    def add_pft_entry(self, patient_id: str, entry: PFTEntry, state=None) -> bool:
        index = self._index_of(patient_id)
        if index is None:
            return False
        patient = self._patients[index]
        patient.pft_history.append(copy.deepcopy(entry))
        self._commit(patient, state)
        return True

    def delete_pft_entry(self, patient_id: str, pft_id: str, state=None) -> bool:
        index = self._index_of(patient_id)
        if index is None:
            return False
        patient = self._patients[index]
        remaining = [p for p in patient.pft_history if p.pft_id != pft_id]
        if len(remaining) == len(patient.pft_history):
            return False
        patient.pft_history = remaining
        self._commit(patient, state)
        return True

    def add_medication(self, patient_id: str, medication: Medication, state=None) -> bool:
        index = self._index_of(patient_id)
        if index is None:
            return False
        patient = self._patients[index]
        patient.medications.append(copy.deepcopy(medication))
        self._commit(patient, state)
        return True

    def update_medication(self, patient_id: str, position: int, medication: Medication, state=None) -> bool:
        """Replaces the medication at `position`, e.g. to set its end date."""
        index = self._index_of(patient_id)
        if index is None:
            return False
        patient = self._patients[index]
        if not 0 <= position < len(patient.medications):
            return False
        patient.medications[position] = copy.deepcopy(medication)
        self._commit(patient, state)
        return True

    def remove_medication(self, patient_id: str, position: int, state=None) -> bool:
        index = self._index_of(patient_id)
        if index is None:
            return False
        patient = self._patients[index]
        if not 0 <= position < len(patient.medications):
            return False
        del patient.medications[position]
        self._commit(patient, state)
        return True
