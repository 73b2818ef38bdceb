"""
Integration tests for the ILD Log application.

These tests verify the `PatientStore` together with the scoring, persistence and
session modules: registration rules, log submission limits, the single edit, the
clinician's PFT and medication changes, and reloading the encrypted data file.
"""
import json
from datetime import date

from conftest import kbild_answers, make_draft, make_medication, make_patient
from ildlog import config, scoring
from ildlog.models import PFTEntry, SarcoidosisDiagnosis, VasScores
from ildlog.session import AppState, login_patient
from ildlog.store import PatientStore, deserialize_patients, serialize_patients


def test_add_patient_validation(store):
    """
    Tests that invalid or duplicate patients are refused and nothing is stored.
    """
    assert store.add_patient(make_patient("12345")) == 'invalid_mobile'
    assert store.add_patient(make_patient(name="  ")) == 'missing_fields'
    assert store.add_patient(make_patient(age=0)) == 'missing_fields'
    assert store.list_patients() == []

    assert store.add_patient(make_patient()) is True
    assert store.add_patient(make_patient(name="Someone Else")) == 'duplicate_id'
    assert [p.name for p in store.list_patients()] == ["Ravi Kumar"]


def test_other_co_morbidity_only_kept_with_others(store):
    store.add_patient(make_patient(co_morbidities=["GERD"], other_co_morbidity="Gout"))
    assert store.find_by_id("9876543210").other_co_morbidity is None

    patient = store.find_by_id("9876543210")
    patient.co_morbidities = ["GERD", "Others"]
    patient.other_co_morbidity = "Gout"
    assert store.update_patient(patient) is True
    assert store.find_by_id("9876543210").other_co_morbidity == "Gout"


def test_find_by_id_returns_copies(patient_store):
    store, patient_id = patient_store
    patient = store.find_by_id(patient_id)
    patient.name = "Changed"
    assert store.find_by_id(patient_id).name == "Ravi Kumar"


def test_list_patients_search_and_filter(store):
    store.add_patient(make_patient("1111111111", "Asha Devi", registration_date=date(2024, 1, 5)))
    store.add_patient(make_patient("2222222222", "Mohan Lal", registration_date=date(2024, 3, 5),
                                   diagnosis=SarcoidosisDiagnosis("Stage 1")))
    store.add_patient(make_patient("3333333333", "Asha Rani", registration_date=date(2024, 2, 5)))

    assert [p.id for p in store.list_patients()] == ["2222222222", "3333333333", "1111111111"]
    assert [p.name for p in store.list_patients("asha")] == ["Asha Rani", "Asha Devi"]
    assert [p.name for p in store.list_patients("2222")] == ["Mohan Lal"]
    assert store.list_patients(category="OAD") == []
    assert len(store.list_patients(category="ILD")) == 3


def test_submit_log_scores_and_limits_per_day(patient_store):
    """
    Tests that logs are scored on submission and that a third log on the same date is refused.
    """
    store, patient_id = patient_store
    day = date(2024, 5, 2)
    first = store.submit_log(patient_id, make_draft(day, 96, 85))
    assert first.alerts == ["SpO2 drop > 5%"]
    assert first.kbild_score == 45

    second = store.submit_log(patient_id, make_draft(day))
    assert second.alerts == []
    assert store.submit_log(patient_id, make_draft(day)) == 'daily_limit_reached'
    assert store.submit_log(patient_id, make_draft(date(2024, 5, 3))).date == date(2024, 5, 3)

    stored = store.find_by_id(patient_id)
    assert len(stored.logs) == 3
    assert stored.logs[0].date == date(2024, 5, 3)
    assert len(store.logs_on_date(patient_id, day)) == config.MAX_LOGS_PER_DAY


def test_submit_log_refuses_incomplete_kbild(patient_store):
    store, patient_id = patient_store
    responses = kbild_answers()
    del responses[7]
    assert store.submit_log(patient_id, make_draft(kbild_responses=responses)) == 'incomplete_kbild'
    assert store.submit_log(patient_id, make_draft(mmrc_grade="9")) == 'invalid_log'
    assert store.submit_log("0000000000", make_draft()) == 'patient_not_found'
    assert store.find_by_id(patient_id).logs == []


def test_edit_log_allowed_once(patient_store):
    """
    Tests that a log can be edited once, is scored again, and keeps its date and timestamp.
    """
    store, patient_id = patient_store
    original = store.submit_log(patient_id, make_draft(date(2024, 5, 2)))

    edited = store.edit_log(patient_id, original.log_id,
                            make_draft(date(2024, 6, 1), 97, 88, kbild_responses=kbild_answers(5)))
    assert edited.is_edited is True
    assert edited.log_id == original.log_id
    assert edited.date == date(2024, 5, 2)
    assert edited.timestamp == original.timestamp
    assert edited.kbild_score == 75
    assert edited.alerts == ["SpO2 drop > 5%"]

    assert store.edit_log(patient_id, original.log_id, make_draft()) == 'already_edited'
    assert store.edit_log(patient_id, "missing", make_draft()) == 'log_not_found'
    assert store.find_by_id(patient_id).logs[0].kbild_score == 75


def test_previous_log(patient_store):
    store, patient_id = patient_store
    assert store.previous_log(patient_id, date(2024, 5, 2)) is None
    store.submit_log(patient_id, make_draft(date(2024, 5, 1), spo2_rest=97))
    assert store.previous_log(patient_id, date(2024, 5, 2)).spo2_rest == 97
    store.submit_log(patient_id, make_draft(date(2024, 5, 2), spo2_rest=93))
    assert store.previous_log(patient_id, date(2024, 5, 2)).spo2_rest == 93


def test_session_patient_refreshed_on_change(patient_store):
    store, patient_id = patient_store
    state = AppState()
    assert login_patient(state, store, patient_id)
    store.submit_log(patient_id, make_draft(), state)
    assert len(state.patient.logs) == 1

    store.add_medication(patient_id, make_medication(), state)
    assert [m.name for m in state.patient.medications] == ["Nintedanib"]


def test_delete_patient_frees_id_and_clears_session(patient_store):
    store, patient_id = patient_store
    state = AppState()
    login_patient(state, store, patient_id)
    assert store.delete_patient(patient_id, state) is True
    assert store.find_by_id(patient_id) is None
    assert state.role is None and state.patient is None
    assert store.delete_patient(patient_id) is False
    assert store.add_patient(make_patient()) is True


def test_update_unknown_patient(store):
    assert store.update_patient(make_patient()) is False


def test_pft_and_medication_helpers(patient_store):
    store, patient_id = patient_store
    entry = PFTEntry(date(2024, 5, 3), 80, 60, 55, 40, 300, 86, 94)
    assert store.add_pft_entry(patient_id, entry) is True
    assert store.delete_pft_entry(patient_id, "unknown") is False
    assert store.delete_pft_entry(patient_id, entry.pft_id) is True
    assert store.find_by_id(patient_id).pft_history == []

    store.add_medication(patient_id, make_medication())
    medication = store.find_by_id(patient_id).medications[0]
    medication.end_date = date(2024, 6, 1)
    assert store.update_medication(patient_id, 0, medication) is True
    assert store.find_by_id(patient_id).medications[0].end_date == date(2024, 6, 1)
    assert store.update_medication(patient_id, 5, medication) is False
    assert store.remove_medication(patient_id, 0) is True
    assert store.find_by_id(patient_id).medications == []


def test_data_persists_across_store_instances(data_file, encryptor):
    """
    Verifies that a new store reading the same encrypted file sees every change.
    """
    first = PatientStore(data_file=data_file, encryptor=encryptor)
    first.add_patient(make_patient(medications=[make_medication()]))
    first.submit_log("9876543210", make_draft(date(2024, 5, 2), 96, 85, taken_medications=["Nintedanib"]))
    first.add_pft_entry("9876543210", PFTEntry(date(2024, 5, 3), 80, 60, 55, 40, 300, 86, 94))

    with open(data_file) as f:
        assert "Ravi Kumar" not in f.read()

    second = PatientStore(data_file=data_file, encryptor=encryptor)
    assert second.list_patients() == first.list_patients()
    assert second.find_by_id("9876543210").logs[0].alerts == ["SpO2 drop > 5%"]


def test_unreadable_data_file_starts_empty(data_file, encryptor):
    with open(data_file, "w") as f:
        f.write("not a fernet token")
    assert PatientStore(data_file=data_file, encryptor=encryptor).list_patients() == []

    with open(data_file, "w") as f:
        f.write(encryptor.encrypt(b"{broken json").decode())
    assert PatientStore(data_file=data_file, encryptor=encryptor).list_patients() == []


def test_deserialize_skips_malformed_and_duplicate_records():
    good = make_patient()
    text = serialize_patients([good])
    payload = text.replace('"aiims_ild_patients": [', '"aiims_ild_patients": [{"name": "no id"}, ', 1)
    patients = deserialize_patients(payload)
    assert patients == [good]

    duplicated = serialize_patients([good, make_patient(name="Copy")])
    assert [p.name for p in deserialize_patients(duplicated)] == ["Ravi Kumar"]


def test_stored_log_is_isolated_from_draft(patient_store):
    """
    Tests that changing a draft after submission or edit leaves the stored log untouched.
    """
    store, patient_id = patient_store
    draft = make_draft(date(2024, 5, 2), vas=VasScores())
    log = store.submit_log(patient_id, draft)
    draft.vas.fever = 9
    draft.side_effects.append("Fever (बुखार)")
    stored = store.find_by_id(patient_id).logs[0]
    assert stored.vas.fever == 0
    assert stored.side_effects == []
    assert stored.alerts == []

    edit = make_draft(date(2024, 5, 2), vas=VasScores(cough=2))
    store.edit_log(patient_id, log.log_id, edit)
    edit.vas.cough = 8
    assert store.find_by_id(patient_id).logs[0].vas.cough == 2


def test_deserialize_skips_patient_with_undated_log():
    patient = make_patient(logs=[scoring.build_health_log(make_draft())])
    record = patient.to_dict()
    record["logs"][0]["date"] = ""
    payload = json.dumps({config.STORAGE_KEY: [record, make_patient("1234567890", "Meena Gupta").to_dict()]})
    assert [p.name for p in deserialize_patients(payload)] == ["Meena Gupta"]
