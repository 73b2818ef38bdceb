"""
Pytest configuration file for the ILD Log test suite.

This file defines shared fixtures and helpers used across the test modules:
- An isolated `PatientStore` backed by a temporary data file and a throwaway
  Fernet key, so tests never touch production records.
- Builders for sample patients and complete daily log drafts.
"""
from datetime import date

import pytest
from cryptography.fernet import Fernet

from ildlog.constants import KBILD_QUESTION_IDS
from ildlog.models import Diagnosis, LogDraft, Medication, Patient, VasScores
from ildlog.store import PatientStore


def make_patient(patient_id="9876543210", name="Ravi Kumar", **overrides):
    """
    Helper function to create a valid `Patient` for testing purposes.

    Args:
        patient_id (str, optional): The 10-digit mobile number.
        name (str, optional): The patient's name.
        **overrides: Any other `Patient` field.

    Returns:
        Patient: A patient with an idiopathic pulmonary fibrosis diagnosis unless overridden.
    """
    fields = dict(
        id=patient_id,
        name=name,
        age=62,
        sex="Male",
        occupation="Farmer",
        diagnosis=Diagnosis("ILD", "Idiopathic pulmonary fibrosis"),
        registration_date=date(2024, 5, 1),
    )
    fields.update(overrides)
    return Patient(**fields)


def kbild_answers(value=3, **overrides):
    """Returns a complete set of KBILD responses, all `value` unless overridden by `q<id>`."""
    responses = {qid: value for qid in KBILD_QUESTION_IDS}
    for key, answer in overrides.items():
        responses[int(key.lstrip("q"))] = answer
    return responses


def make_draft(day=date(2024, 5, 2), spo2_rest=96, spo2_exertion=94, **overrides):
    """Builds a complete `LogDraft` with no alerts unless overridden."""
    fields = dict(
        date=day,
        spo2_rest=spo2_rest,
        spo2_exertion=spo2_exertion,
        mmrc_grade="1",
        time="09:30 AM",
        vas=VasScores(),
        kbild_responses=kbild_answers(),
    )
    fields.update(overrides)
    return LogDraft(**fields)


def make_medication(name="Nintedanib", start=date(2024, 5, 1), end=None, **overrides):
    fields = dict(name=name, dose="150 mg", frequency="BD", start_date=start, end_date=end)
    fields.update(overrides)
    return Medication(**fields)


@pytest.fixture
def encryptor():
    """Provides a Fernet instance with a throwaway key."""
    return Fernet(Fernet.generate_key())


@pytest.fixture
def data_file(tmp_path):
    return str(tmp_path / "records.json")


@pytest.fixture
def store(data_file, encryptor):
    """Provides an empty `PatientStore` writing to a temporary file."""
    return PatientStore(data_file=data_file, encryptor=encryptor)


@pytest.fixture
def patient_store(store):
    """
    Provides a store that is pre-populated with one registered patient.

    Yields:
        tuple: The `PatientStore` instance and the registered patient's id.
    """
    patient = make_patient()
    assert store.add_patient(patient) is True
    return store, patient.id
