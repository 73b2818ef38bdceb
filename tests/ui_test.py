"""
UI tests for the ILD Log application using Streamlit's AppTest framework.

These tests simulate user interactions with the frontend to verify that the
GUI behaves as expected: logging in, navigating the clinician dashboard,
registering a patient and submitting a daily log.
"""
from datetime import date, time

from streamlit.testing.v1 import AppTest

from conftest import make_draft, make_patient
from ildlog import config
from ildlog.constants import KBILD_OPTIONS, KBILD_QUESTIONS
from ildlog.session import CLINICIAN, PATIENT, AppState


def _render_login(store):
    import gui as gui_module

    gui_module.show_login_page(store)


def _render_app(store):
    import gui as gui_module

    gui_module.show_main_app(store)


def test_ui_clinician_login(monkeypatch, store):
    """
    Tests that wrong credentials show an error and correct ones sign the clinician in.
    """
    monkeypatch.setattr(config, "CLINICIAN_USERNAME", "doctor")
    monkeypatch.setattr(config, "CLINICIAN_PASSWORD", "aiims123")
    app = AppTest.from_function(_render_login, args=(store,), default_timeout=15)
    app.run()

    app.text_input[0].input("doctor")
    app.text_input[1].input("wrong")
    buttons = {btn.label: btn for btn in app.button}
    buttons["Enter Dashboard"].click().run()
    assert any("Invalid Doctor Credentials" in err.value for err in app.error)

    app.text_input[1].input("aiims123")
    buttons = {btn.label: btn for btn in app.button}
    buttons["Enter Dashboard"].click().run()
    assert app.session_state["app_state"].role == CLINICIAN


def test_ui_patient_login_unknown_mobile(store):
    app = AppTest.from_function(_render_login, args=(store,), default_timeout=15)
    app.run()

    app.text_input[2].input("0000000000")
    buttons = {btn.label: btn for btn in app.button}
    buttons["Access My Records"].click().run()
    assert any("Mobile Number not found" in err.value for err in app.error)
    assert app.session_state["app_state"].role is None


def test_ui_patient_login(patient_store):
    store, patient_id = patient_store
    app = AppTest.from_function(_render_login, args=(store,), default_timeout=15)
    app.run()

    app.text_input[2].input(patient_id)
    buttons = {btn.label: btn for btn in app.button}
    buttons["Access My Records"].click().run()
    assert app.session_state["app_state"].role == PATIENT
    assert app.session_state["app_state"].patient_id == patient_id


def test_ui_clinician_dashboard_alert_banner(patient_store):
    """
    Tests that the clinician menu renders and flags patients with alerts today.
    """
    store, patient_id = patient_store
    store.submit_log(patient_id, make_draft(date.today(), 96, 85))

    app = AppTest.from_function(_render_app, args=(store,), default_timeout=15)
    app.session_state["app_state"] = AppState(role=CLINICIAN)
    app.run()

    assert any("Clinician Dashboard" in md.value for md in app.markdown)
    assert any("Ravi Kumar" in warn.value for warn in app.warning)


def test_ui_patient_list_filters(patient_store):
    store, _ = patient_store
    store.add_patient(make_patient("1234567890", "Meena Gupta"))

    app = AppTest.from_function(_render_app, args=(store,), default_timeout=15)
    app.session_state["app_state"] = AppState(role=CLINICIAN)
    app.session_state["page"] = "clinician_patients"
    app.run()
    assert len(app.expander) == 2

    app.text_input[0].input("meena").run()
    assert len(app.expander) == 1
    assert "Meena Gupta" in app.expander[0].label


def test_ui_register_patient_validation(store):
    """
    Tests that registering with an invalid mobile number shows an error and stores nothing.
    """
    app = AppTest.from_function(_render_app, args=(store,), default_timeout=15)
    app.session_state["app_state"] = AppState(role=CLINICIAN)
    app.session_state["page"] = "clinician_register"
    app.run()

    app.text_input[0].input("12345")
    app.text_input[1].input("New Patient")
    app.number_input[0].set_value(50)
    buttons = {btn.label: btn for btn in app.button}
    buttons["Register Patient"].click().run()

    assert any("exactly 10 digits" in err.value for err in app.error)
    assert store.list_patients() == []


def test_ui_patient_submits_daily_log(patient_store):
    """
    Tests a full daily log submission from the patient dashboard.

    Every KBILD question is answered with its first option (score 1), and the
    exertion SpO2 is set low enough to raise an alert.
    """
    store, patient_id = patient_store
    app = AppTest.from_function(_render_app, args=(store,), default_timeout=15)
    app.session_state["app_state"] = AppState(role=PATIENT, patient=store.find_by_id(patient_id))
    app.session_state["page"] = "patient_entry"
    app.run()
    assert not app.exception

    app.number_input(key="daily_log_form_spo2_rest").set_value(96)
    app.number_input(key="daily_log_form_spo2_exertion").set_value(85)
    for qid, _, option_type in KBILD_QUESTIONS:
        app.radio(key=f"daily_log_form_kbild_{qid}").set_value(KBILD_OPTIONS[option_type][0])
    buttons = {btn.label: btn for btn in app.button}
    buttons["Save Entry"].click().run()

    logs = store.logs_on_date(patient_id, date.today())
    assert len(logs) == 1
    assert logs[0].kbild_score == 15
    assert logs[0].alerts == ["SpO2 drop > 5%"]
    assert any("saved successfully" in msg.value for msg in app.success)


def test_ui_edit_form_keeps_recorded_time(patient_store):
    """
    Tests that the history edit form is prefilled with the log's recorded time of day.
    """
    store, patient_id = patient_store
    log = store.submit_log(patient_id, make_draft(date(2024, 5, 2), time="07:45 AM"))

    app = AppTest.from_function(_render_app, args=(store,), default_timeout=15)
    app.session_state["app_state"] = AppState(role=PATIENT, patient=store.find_by_id(patient_id))
    app.session_state["page"] = "patient_history"
    app.session_state["editing_log_id"] = log.log_id
    app.run()

    assert not app.exception
    assert app.time_input(key=f"edit_log_{log.log_id}_time").value == time(7, 45)
