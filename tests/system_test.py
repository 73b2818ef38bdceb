"""
System-level tests for the ILD Log application.

These tests walk through complete clinic workflows, from registering a patient to
exporting the collected data, and check the state of the system at each step.
"""
import csv
import io
from datetime import date

from conftest import kbild_answers, make_draft, make_medication, make_patient
from ildlog import export
from ildlog.models import Diagnosis, PFTEntry, VasScores
from ildlog.session import AppState, login_patient
from ildlog.store import PatientStore


def test_end_to_end_log_submission(store):
    """
    Registers a patient, submits a log with an oxygen drop, and checks the stored result.
    """
    assert store.add_patient(make_patient("9999999999", "Test Patient")) is True
    state = AppState()
    assert login_patient(state, store, "9999999999")

    responses = kbild_answers(3, q1=2, q2=2, q3=2, q4=2, q5=2)
    assert sum(responses.values()) == 40
    log = store.submit_log("9999999999", make_draft(date(2024, 5, 2), 96, 85, kbild_responses=responses,
                                                    vas=VasScores(fever=0), side_effects=[]), state)
    assert log.alerts == ["SpO2 drop > 5%"]
    assert log.kbild_score == 40
    assert state.patient.logs[0].log_id == log.log_id


def test_clinic_workflow_to_export(data_file, encryptor):
    """
    Tests a month of activity for two patients and the resulting CSV exports.

    Covers registration, medications, logs with alerts, a log edit, PFT entry,
    a restart of the store, and both export layouts with a category filter.
    """
    store = PatientStore(data_file=data_file, encryptor=encryptor)
    store.add_patient(make_patient("9876543210", 'Ravi "RK" Kumar', medications=[make_medication()]))
    store.add_patient(make_patient("9123456780", "Sita Sharma", registration_date=date(2024, 5, 10),
                                   diagnosis=Diagnosis("OAD", "COPD")))

    morning = store.submit_log("9876543210", make_draft(date(2024, 5, 6), 96, 94, taken_medications=["Nintedanib"]))
    store.submit_log("9876543210", make_draft(date(2024, 5, 6), 95, 88, side_effects=["Fever (बुखार)"]))
    store.submit_log("9876543210", make_draft(date(2024, 5, 14), 94, 92, mmrc_grade="2"))
    store.edit_log("9876543210", morning.log_id, make_draft(date(2024, 5, 6), 96, 93, taken_medications=["Nintedanib"]))
    store.add_pft_entry("9876543210", PFTEntry(date(2024, 5, 20), 81, 62, 57, 41, 310, 87, 95))
    store.submit_log("9123456780", make_draft(date(2024, 5, 12), 97, 96))

    restarted = PatientStore(data_file=data_file, encryptor=encryptor)
    patients = restarted.list_patients()
    assert [p.id for p in patients] == ["9123456780", "9876543210"]

    detailed = list(csv.DictReader(io.StringIO(export.detailed_csv(patients, category="ILD"))))
    assert [row["Row Type"] for row in detailed] == ["Patient", "PFT", "Daily Log", "Daily Log"]
    assert detailed[0]["Patient Name"] == 'Ravi "RK" Kumar'
    assert detailed[0]["Medication History & Adherence"].endswith("[Taken: 1 days]")
    worst_of_may_6 = detailed[2]
    assert worst_of_may_6["Log Date"] == "06-05-2024"
    assert worst_of_may_6["Alerts"] == "SpO2 drop > 5%; Fever detected"
    assert worst_of_may_6["Meds Taken (Daily Log)"] == "Nintedanib(N)"
    assert detailed[3]["mMRC Grade"] == "2"

    summary = list(csv.DictReader(io.StringIO(export.summary_csv(patients, "monthly"))))
    assert [row["Mobile ID"] for row in summary] == ["9123456780", "9876543210"]
    ravi = summary[1]
    assert ravi["Period"] == "May 2024"
    assert ravi["Logs"] == "3"
    assert ravi["Total Alerts"] == "2"
    assert ravi["Max mMRC"] == "2"
    assert ravi["Min SpO2 Exertion"] == "88"
    assert ravi["PFTs"] == "1"
    assert ravi["Min 6MWD (m)"] == "310"

    weekly = list(csv.DictReader(io.StringIO(export.summary_csv(patients, "weekly", category="ILD"))))
    assert [row["Period"] for row in weekly] == ["06/05/2024 - 12/05/2024", "13/05/2024 - 19/05/2024",
                                                 "20/05/2024 - 26/05/2024"]


def test_edit_does_not_reopen_daily_limit(patient_store):
    store, patient_id = patient_store
    day = date(2024, 5, 2)
    first = store.submit_log(patient_id, make_draft(day))
    store.submit_log(patient_id, make_draft(day))
    store.edit_log(patient_id, first.log_id, make_draft(date(2024, 5, 3)))
    assert store.submit_log(patient_id, make_draft(day)) == 'daily_limit_reached'
    assert len(store.logs_on_date(patient_id, date(2024, 5, 3))) == 0
