"""
This module defines the graphical user interface (GUI) for the ILD Log application using Streamlit.

It includes functions for rendering the login page, the clinician dashboard (patient
registry, patient detail with trends, medications and PFT history, data export) and
the patient dashboard (daily log entry and history).

The main entry point for the UI is `show_main_app`, which routes the user to the
appropriate view based on the signed-in role.
"""
# gui.py

import datetime

import pandas as pd
import streamlit as st

from ildlog import config
from ildlog.adherence import active_medications_on_date, count_days_taken
from ildlog.aggregation import period_label, summarize_periods, trend_series, worst_logs_by_period
from ildlog.air_quality import aqi_category, fetch_aqi
from ildlog.constants import (
    CO_MORBIDITIES,
    CTD_ILD,
    CTD_TYPES,
    DIAGNOSIS_CATEGORIES,
    DOSED_FREQUENCIES,
    FREQUENCIES,
    KBILD_OPTIONS,
    KBILD_QUESTIONS,
    MAX_DOSE_NUMBER,
    MEDICATIONS,
    MMRC_GRADES,
    PERIODS,
    SARCOIDOSIS,
    SARCOIDOSIS_STAGES,
    SEX_OPTIONS,
    SIDE_EFFECTS,
    SUBTYPES_BY_CATEGORY,
    VAS_SYMPTOMS,
)
from ildlog.export import detailed_csv, export_filename, summary_csv
from ildlog.models import (
    LogDraft,
    Medication,
    Patient,
    PFTEntry,
    VasScores,
    format_display_date,
    format_time_12h,
    make_diagnosis,
)
from ildlog.session import CLINICIAN, PATIENT, AppState, login_clinician, login_patient, logout

PATIENT_STATUS_MESSAGES = {
    'invalid_mobile': "The mobile number must be exactly 10 digits.",
    'missing_fields': "Name, age and sex are required.",
    'duplicate_id': "A patient with this mobile number is already registered.",
}

LOG_STATUS_MESSAGES = {
    'patient_not_found': "Your record could not be found. Please contact your doctor.",
    'incomplete_kbild': "Please answer all KBILD questions.",
    'daily_limit_reached': f"You have already submitted {config.MAX_LOGS_PER_DAY} entries for this date.",
    'invalid_log': "Some of the values entered are not valid.",
    'log_not_found': "This entry no longer exists.",
    'already_edited': "This entry has already been edited once and cannot be changed again.",
}


def _state():
    """Returns the session's `AppState`, creating it on first use."""
    if 'app_state' not in st.session_state:
        st.session_state.app_state = AppState()
    return st.session_state.app_state


def _format_timestamp(timestamp_ms):
    """Converts an epoch-millisecond timestamp into a human-readable local time.

    Args:
        timestamp_ms (int): Milliseconds since the epoch.

    Returns:
        str: A formatted string (e.g., "Jan 01, 2024 • 14:30"), or "Unknown time".
    """
    if not timestamp_ms:
        return "Unknown time"
    try:
        moment = datetime.datetime.fromtimestamp(timestamp_ms / 1000, tz=datetime.timezone.utc)
    except (OverflowError, OSError, ValueError):
        return "Unknown time"
    return moment.astimezone().strftime("%b %d, %Y • %H:%M")


def _show_back_button(target=None):
    """Renders a button to navigate back to the main menu (or another page)."""
    if st.button("← Back"):
        st.session_state.page = target
        st.rerun()


def _show_main_menu(options, title, subtitle, banner_message=None):
    """Renders the main menu for a given role.

    Args:
        options (list): Tuples of label, page key and description.
        title (str): The menu title.
        subtitle (str): A caption under the title.
        banner_message (str, optional): A warning shown above the menu.
    """
    if banner_message:
        st.warning(banner_message)
    st.markdown(f"## {title}")
    st.caption(subtitle)
    st.divider()
    for idx, (label, value, description) in enumerate(options):
        if st.button(label, key=f"menu_btn_{idx}"):
            st.session_state.page = value
            st.rerun()
        st.caption(description)
        st.divider()
    if st.button("Log Out", key="logout_btn"):
        logout(_state())
        st.session_state.page = None
        st.rerun()


# Login

def show_login_page(store):
    """Displays the clinician and patient login forms.

    Args:
        store: The `PatientStore` instance.
    """
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h1 style='text-align: center;'>AIIMS-ILD</h1>", unsafe_allow_html=True)
        st.markdown("<p style='text-align: center;'>Patient Monitoring System</p>", unsafe_allow_html=True)

        with st.form("clinician_login_form"):
            st.subheader("Doctor Login")
            username = st.text_input("Username")
            password = st.text_input("Password", type="password")
            if st.form_submit_button("Enter Dashboard"):
                if login_clinician(_state(), username, password):
                    st.session_state.page = None
                    st.rerun()
                else:
                    st.error("Invalid Doctor Credentials")

        with st.form("patient_login_form"):
            st.subheader("Patient Login")
            mobile = st.text_input("10-digit Mobile Number")
            if st.form_submit_button("Access My Records"):
                if login_patient(_state(), store, mobile):
                    st.session_state.page = None
                    st.rerun()
                else:
                    st.error("Mobile Number not found. Please contact your doctor.")


# Main Application UI

def show_main_app(store):
    """
    The main application router that displays the correct UI for the signed-in role.

    Args:
        store: The `PatientStore` instance.
    """
    state = _state()
    if 'page' not in st.session_state:
        st.session_state.page = None

    if state.role == PATIENT and state.patient is not None:
        # The clinician may have changed the record since login.
        state.patient = store.find_by_id(state.patient_id)

    if state.role == CLINICIAN:
        _route_clinician(store)
    elif state.role == PATIENT and state.patient is not None:
        _route_patient(store)
    else:
        logout(state)
        show_login_page(store)


def _route_clinician(store):
    menu_items = [
        ("Patients", "clinician_patients", "Search the registry and open a patient's record."),
        ("Register Patient", "clinician_register", "Add a new patient with diagnosis and co-morbidities."),
        ("Export Data", "clinician_export", "Download detailed or period summary CSV files."),
    ]
    page = st.session_state.page
    if page is None:
        patients = store.list_patients()
        today = datetime.date.today()
        alerted = [p.name for p in patients if any(log.alerts for log in p.logs if log.date == today)]
        banner = f"🚨 {len(alerted)} patient(s) with alerts today: {', '.join(alerted)}" if alerted else None
        _show_main_menu(menu_items, "Clinician Dashboard", f"{len(patients)} registered patients", banner)
        return

    if page == "clinician_patients":
        _show_back_button()
        _render_patient_list_page(store)
    elif page == "clinician_register":
        _show_back_button()
        _render_patient_form(store)
    elif page == "clinician_patient_detail":
        _show_back_button("clinician_patients")
        _render_patient_detail_page(store)
    elif page == "clinician_edit_patient":
        _show_back_button("clinician_patient_detail")
        patient = store.find_by_id(st.session_state.get('selected_patient_id'))
        if patient is None:
            st.warning("This patient no longer exists.")
        else:
            _render_patient_form(store, existing=patient)
    elif page == "clinician_export":
        _show_back_button()
        _render_export_page(store)
    else:
        st.session_state.page = None
        st.rerun()


def _route_patient(store):
    patient = _state().patient
    menu_items = [
        ("Daily Entry", "patient_entry", "Record today's oxygen levels, symptoms and KBILD answers."),
        ("History", "patient_history", "See your previous entries and correct one if needed."),
    ]
    page = st.session_state.page
    if page is None:
        _show_main_menu(menu_items, f"Welcome, {patient.name}", f"Mobile: {patient.id}")
        return

    if page == "patient_entry":
        _show_back_button()
        _render_daily_entry_page(store)
    elif page == "patient_history":
        _show_back_button()
        _render_history_page(store)
    else:
        st.session_state.page = None
        st.rerun()


# Clinician pages

def _render_patient_list_page(store):
    """Renders the searchable patient registry."""
    st.markdown("<h2 style='text-align: center;'>Patient Registry</h2>", unsafe_allow_html=True)
    col1, col2 = st.columns([2, 1])
    with col1:
        search_term = st.text_input("Search by name or mobile number")
    with col2:
        category = st.selectbox("Category", ["All", *DIAGNOSIS_CATEGORIES])
    patients = store.list_patients(search_term, None if category == "All" else category)
    if not patients:
        st.info("No patients found.")
        return

    for patient in patients:
        latest = patient.logs[0] if patient.logs else None
        alert_icon = " 🚨" if latest and latest.alerts else ""
        with st.expander(f"{patient.name} · {patient.id} · {patient.diagnosis.subtype}{alert_icon}"):
            st.caption(f"Registered {format_display_date(patient.registration_date)} · {len(patient.logs)} logs")
            if st.button("Open Record", key=f"open_{patient.id}"):
                st.session_state.selected_patient_id = patient.id
                st.session_state.page = "clinician_patient_detail"
                st.rerun()


def _render_patient_form(store, existing=None):
    """Renders the registration form, or the edit form for an existing patient.

    Args:
        store: The `PatientStore` instance.
        existing (Patient, optional): The patient being edited.
    """
    editing = existing is not None
    title = "Edit Patient" if editing else "Register New Patient"
    st.markdown(f"<h2 style='text-align: center;'>{title}</h2>", unsafe_allow_html=True)
    key = f"edit_{existing.id}" if editing else "register"

    # Diagnosis widgets sit outside the form so the dependent fields update immediately.
    categories = list(DIAGNOSIS_CATEGORIES)
    category = st.selectbox(
        "Diagnosis Category", categories, format_func=DIAGNOSIS_CATEGORIES.get,
        index=categories.index(existing.diagnosis.category) if editing else 0, key=f"{key}_category",
    )
    subtypes = SUBTYPES_BY_CATEGORY[category]
    current_subtype = existing.diagnosis.subtype if editing else None
    subtype = st.selectbox(
        "Diagnosis", subtypes,
        index=subtypes.index(current_subtype) if current_subtype in subtypes else 0, key=f"{key}_subtype",
    )
    ctd_type = stage = None
    if subtype == CTD_ILD:
        current = existing.diagnosis.ctd_type if editing else None
        ctd_type = st.selectbox("CTD Type", CTD_TYPES,
                                index=CTD_TYPES.index(current) if current in CTD_TYPES else 0, key=f"{key}_ctd")
    elif subtype == SARCOIDOSIS:
        current = existing.diagnosis.sarcoidosis_stage if editing else None
        stage = st.selectbox("Sarcoidosis Stage", SARCOIDOSIS_STAGES,
                             index=SARCOIDOSIS_STAGES.index(current) if current in SARCOIDOSIS_STAGES else 0,
                             key=f"{key}_stage")
    co_morbidities = st.multiselect("Co-morbidities", CO_MORBIDITIES,
                                    default=[c for c in existing.co_morbidities if c in CO_MORBIDITIES] if editing else [],
                                    key=f"{key}_comorb")
    other_co_morbidity = None
    if "Others" in co_morbidities:
        other_co_morbidity = st.text_input("Other co-morbidity",
                                           value=(existing.other_co_morbidity or "") if editing else "",
                                           key=f"{key}_other")

    with st.form(f"{key}_form"):
        mobile = st.text_input("Mobile Number (Patient ID)", value=existing.id if editing else "",
                               disabled=editing, max_chars=10)
        name = st.text_input("Full Name", value=existing.name if editing else "")
        age = st.number_input("Age", min_value=0, max_value=120, value=existing.age if editing else 0, step=1)
        sex = st.selectbox("Sex", SEX_OPTIONS, index=SEX_OPTIONS.index(existing.sex) if editing else 0)
        occupation = st.text_input("Occupation", value=existing.occupation if editing else "")
        fibrotic = st.radio("Fibrotic ILD", ["No", "Yes"],
                            index=1 if editing and existing.fibrotic_ild == "Yes" else 0, horizontal=True)
        registration_date = st.date_input(
            "Registration Date", value=existing.registration_date if editing else datetime.date.today()
        )
        submitted = st.form_submit_button("Save Changes" if editing else "Register Patient")

    if not submitted:
        return
    try:
        diagnosis = make_diagnosis(category, subtype, ctd_type=ctd_type, sarcoidosis_stage=stage)
    except ValueError as e:
        st.error(str(e))
        return

    patient = Patient(
        id=existing.id if editing else mobile.strip(),
        name=name.strip(),
        age=int(age),
        sex=sex,
        occupation=occupation.strip(),
        diagnosis=diagnosis,
        registration_date=registration_date,
        fibrotic_ild=fibrotic,
        co_morbidities=co_morbidities,
        other_co_morbidity=(other_co_morbidity or "").strip() or None,
        medications=existing.medications if editing else [],
        logs=existing.logs if editing else [],
        pft_history=existing.pft_history if editing else [],
    )
    result = store.update_patient(patient, _state()) if editing else store.add_patient(patient)
    if result is True:
        st.session_state.selected_patient_id = patient.id
        st.session_state.page = "clinician_patient_detail"
        st.rerun()
    elif result is False:
        st.error("This patient no longer exists.")
    else:
        st.error(PATIENT_STATUS_MESSAGES.get(result, "Could not save the patient."))


def _display_patient_profile(patient):
    """Shows a patient's profile fields."""
    st.markdown(f"### {patient.name}")
    col1, col2, col3 = st.columns(3)
    col1.markdown(f"**Mobile:** {patient.id}")
    col1.markdown(f"**Age/Sex:** {patient.age} / {patient.sex}")
    col2.markdown(f"**Diagnosis:** {patient.diagnosis.subtype} ({patient.diagnosis.category})")
    if patient.diagnosis.ctd_type:
        col2.markdown(f"**CTD Type:** {patient.diagnosis.ctd_type}")
    if patient.diagnosis.sarcoidosis_stage:
        col2.markdown(f"**Stage:** {patient.diagnosis.sarcoidosis_stage}")
    col3.markdown(f"**Fibrotic ILD:** {patient.fibrotic_ild}")
    col3.markdown(f"**Registered:** {format_display_date(patient.registration_date)}")
    st.markdown(f"**Occupation:** {patient.occupation or 'N/A'}")
    st.markdown(f"**Co-morbidities:** {patient.co_morbidities_display() or 'None'}")


def _render_patient_detail_page(store):
    """Renders a patient's record: profile, trends, logs, medications and PFTs."""
    patient = store.find_by_id(st.session_state.get('selected_patient_id'))
    if patient is None:
        st.warning("This patient no longer exists.")
        return

    _display_patient_profile(patient)
    if st.button("Edit Profile", key="edit_profile_btn"):
        st.session_state.page = "clinician_edit_patient"
        st.rerun()

    trends_tab, logs_tab, meds_tab, pft_tab, danger_tab = st.tabs(
        ["Trends", "Logs", "Medications", "PFT History", "Delete"]
    )
    with trends_tab:
        series = trend_series(patient)
        if series:
            chart_df = pd.DataFrame(series).set_index("date")
            st.line_chart(chart_df[["SpO2 Rest", "SpO2 Exertion"]])
            st.line_chart(chart_df[["KBILD"]])
        else:
            st.info("No logs submitted yet.")
    with logs_tab:
        _render_log_review(patient)
    with meds_tab:
        _render_medications(store, patient)
    with pft_tab:
        _render_pft_history(store, patient)
    with danger_tab:
        confirm = st.checkbox(f"I want to permanently delete {patient.name} and all their records")
        if st.button("Delete Patient", disabled=not confirm, key="delete_patient_btn"):
            store.delete_patient(patient.id, _state())
            st.session_state.selected_patient_id = None
            st.session_state.page = "clinician_patients"
            st.rerun()


def _render_log_review(patient):
    """Shows the worst log per period and the period summaries."""
    if not patient.logs:
        st.info("No logs submitted yet.")
        return
    period = st.radio("Group by", PERIODS, horizontal=True, format_func=str.title, key="review_period")
    worst = worst_logs_by_period(patient.logs, period)
    st.markdown("**Worst entry per period**")
    st.dataframe(pd.DataFrame([
        {
            "Period": period_label(start, period),
            "Date": format_display_date(log.date),
            "Time": log.time,
            "Alerts": ", ".join(log.alerts),
            "SpO2 Rest": log.spo2_rest,
            "SpO2 Exertion": log.spo2_exertion,
            "mMRC": log.mmrc_grade,
            "KBILD": log.kbild_score,
            "AQI": log.aqi,
        }
        for start, log in reversed(list(worst.items()))
    ]), hide_index=True)

    st.markdown("**Period summary**")
    st.dataframe(pd.DataFrame([
        {
            "Period": s.label,
            "Logs": s.log_count,
            "Alerts": s.alert_count,
            "Min KBILD": s.min_kbild,
            "Max mMRC": s.max_mmrc,
            "Min SpO2 Rest": s.min_spo2_rest,
            "Min SpO2 Exertion": s.min_spo2_exertion,
        }
        for s in reversed(summarize_periods(patient, period))
    ]), hide_index=True)


def _render_medications(store, patient):
    """Lists the prescriptions and renders the add-medication controls."""
    if not patient.medications:
        st.info("No medications prescribed.")
    for position, medication in enumerate(patient.medications):
        end = format_display_date(medication.end_date) if medication.end_date else "present"
        cols = st.columns([4, 1, 1])
        cols[0].markdown(
            f"**{medication.name}** {medication.dose}, {medication.frequency} · "
            f"{format_display_date(medication.start_date)} to {end} · "
            f"taken on {count_days_taken(patient, medication.name)} days"
        )
        if medication.end_date is None and cols[1].button("Stop Today", key=f"stop_med_{position}"):
            medication.end_date = max(datetime.date.today(), medication.start_date)
            store.update_medication(patient.id, position, medication, _state())
            st.rerun()
        if cols[2].button("Remove", key=f"remove_med_{position}"):
            store.remove_medication(patient.id, position, _state())
            st.rerun()

    st.divider()
    st.markdown("**Add Medication**")
    choice = st.selectbox("Medication", MEDICATIONS, key="med_choice")
    name = st.text_input("Medication name", key="med_other_name") if choice == "Other" else choice
    dose = st.text_input("Dose", key="med_dose")
    frequency = st.selectbox("Frequency", FREQUENCIES, key="med_frequency")
    start_date = st.date_input("Start Date", value=datetime.date.today(), key="med_start")
    end_date = None
    if st.checkbox("Has an end date", key="med_has_end"):
        end_date = st.date_input("End Date", value=start_date, min_value=start_date, key="med_end")
    dose_number = dosage_date = None
    if frequency in DOSED_FREQUENCIES:
        dose_number = st.number_input("Dose Number", min_value=1, max_value=MAX_DOSE_NUMBER, value=1, key="med_dose_no")
        dosage_date = st.date_input("Dosage Date", value=start_date, key="med_dosage_date")
    if st.button("Add Medication", key="add_med_btn"):
        if not name or not dose:
            st.error("Medication name and dose are required.")
            return
        try:
            medication = Medication(name=name.strip(), dose=dose.strip(), frequency=frequency,
                                    start_date=start_date, end_date=end_date,
                                    dose_number=int(dose_number) if dose_number else None,
                                    dosage_date=dosage_date)
        except ValueError as e:
            st.error(str(e))
            return
        store.add_medication(patient.id, medication, _state())
        st.rerun()


def _render_pft_history(store, patient):
    """Lists PFT results and renders the form to add one."""
    entries = sorted(patient.pft_history, key=lambda p: p.date, reverse=True)
    if not entries:
        st.info("No PFT results recorded.")
    for entry in entries:
        cols = st.columns([5, 1])
        cols[0].markdown(
            f"**{format_display_date(entry.date)}** · FEV1/FVC {entry.fev1_fvc} · FEV1 {entry.fev1}% · "
            f"FVC {entry.fvc}% · DLCO {entry.dlco}% · 6MWD {entry.six_mwd} m · "
            f"SpO2 {entry.min_spo2}-{entry.max_spo2}%"
        )
        if cols[1].button("Delete", key=f"delete_pft_{entry.pft_id}"):
            store.delete_pft_entry(patient.id, entry.pft_id, _state())
            st.rerun()

    with st.form("add_pft_form", clear_on_submit=True):
        st.markdown("**Add PFT Result**")
        test_date = st.date_input("Test Date", value=datetime.date.today())
        col1, col2 = st.columns(2)
        fev1_fvc = col1.number_input("FEV1/FVC Ratio", min_value=0.0, max_value=200.0, value=0.0)
        fev1 = col1.number_input("FEV1 (% Predicted)", min_value=0.0, max_value=200.0, value=0.0)
        fev1_liters = col1.number_input("FEV1 (Liters)", min_value=0.0, max_value=10.0, value=None)
        fvc = col2.number_input("FVC (% Predicted)", min_value=0.0, max_value=200.0, value=0.0)
        fvc_liters = col2.number_input("FVC (Liters)", min_value=0.0, max_value=10.0, value=None)
        dlco = col2.number_input("DLCO (% Predicted)", min_value=0.0, max_value=200.0, value=0.0)
        six_mwd = st.number_input("6MWD (meters)", min_value=0.0, max_value=2000.0, value=0.0)
        col3, col4 = st.columns(2)
        min_spo2 = col3.number_input("Min SpO2 during 6MWT", min_value=0.0, max_value=100.0, value=0.0)
        max_spo2 = col4.number_input("Max SpO2 during 6MWT", min_value=0.0, max_value=100.0, value=0.0)
        if st.form_submit_button("Save PFT"):
            entry = PFTEntry(date=test_date, fev1_fvc=fev1_fvc, fev1=fev1, fvc=fvc, dlco=dlco,
                             six_mwd=six_mwd, min_spo2=min_spo2, max_spo2=max_spo2,
                             fev1_liters=fev1_liters, fvc_liters=fvc_liters)
            store.add_pft_entry(patient.id, entry, _state())
            st.rerun()


def _render_export_page(store):
    """Renders the CSV export options and download button."""
    st.markdown("<h2 style='text-align: center;'>Export Data</h2>", unsafe_allow_html=True)
    category = st.selectbox("Diagnosis Category", ["All", *DIAGNOSIS_CATEGORIES], key="export_category")
    mode = st.radio("Export", ["Detailed", *[f"{p.title()} summary" for p in PERIODS]], key="export_mode")
    category = None if category == "All" else category
    patients = store.list_patients(category=category)
    if mode == "Detailed":
        data = detailed_csv(patients)
        file_mode = "detailed"
    else:
        period = mode.split()[0].lower()
        data = summary_csv(patients, period)
        file_mode = f"{period}_summary"
    st.caption(f"{len(patients)} patients selected.")
    st.download_button(
        "Download CSV", data.encode("utf-8"),
        file_name=export_filename(file_mode, category), mime="text/csv",
    )


# Patient pages

def _render_aqi_controls():
    """Lets the patient fetch the current AQI; the value is kept until the entry is saved."""
    with st.expander("Air Quality"):
        col1, col2 = st.columns(2)
        latitude = col1.number_input("Latitude", value=config.DEFAULT_LATITUDE, format="%.4f", key="aqi_lat")
        longitude = col2.number_input("Longitude", value=config.DEFAULT_LONGITUDE, format="%.4f", key="aqi_lon")
        if st.button("Fetch AQI", key="fetch_aqi_btn"):
            with st.spinner("Fetching air quality..."):
                st.session_state.current_aqi = fetch_aqi(latitude, longitude)
                st.session_state.aqi_checked = True
    aqi = st.session_state.get('current_aqi')
    if aqi is not None:
        st.info(f"AQI: {aqi} ({aqi_category(aqi)})")
    elif st.session_state.get('aqi_checked'):
        st.warning("Air quality is unavailable right now. You can still save your entry.")
    return aqi


def _default_log_time(log=None):
    """Returns the stored time of `log` for the time picker, or the current minute."""
    if log is not None and log.time:
        try:
            return datetime.datetime.strptime(log.time, "%I:%M %p").time()
        except ValueError:
            pass
    return datetime.datetime.now().time().replace(second=0, microsecond=0)


def _render_log_form(form_key, patient, day, defaults=None, previous=None):
    """Renders the daily log form.

    Args:
        form_key (str): A unique key for the form.
        patient (Patient): The patient filling the form.
        day (datetime.date): The date of the entry.
        defaults (HealthLog, optional): Values to prefill when editing.
        previous (HealthLog, optional): The previous entry, shown as a hint.

    Returns:
        LogDraft or None: The submitted inputs, or None if the form was not submitted.
    """
    active = [m.name for m in active_medications_on_date(patient, day)]
    with st.form(form_key):
        st.markdown("#### Vitals")
        col1, col2 = st.columns(2)
        spo2_rest = col1.number_input("SpO2 at Rest (%)", min_value=50, max_value=100,
                                      value=defaults.spo2_rest if defaults else 95, key=f"{form_key}_spo2_rest")
        spo2_exertion = col2.number_input("SpO2 on Exertion (%)", min_value=50, max_value=100,
                                          value=defaults.spo2_exertion if defaults else 95,
                                          key=f"{form_key}_spo2_exertion")
        log_time = st.time_input("Time", value=_default_log_time(defaults), key=f"{form_key}_time")

        st.markdown("#### Breathlessness (mMRC)")
        grade_values = [value for value, _ in MMRC_GRADES]
        mmrc = st.radio("mMRC Grade", grade_values, format_func=dict(MMRC_GRADES).get,
                        index=grade_values.index(defaults.mmrc_grade) if defaults else 0)

        st.markdown("#### Medications")
        if active:
            taken = st.multiselect("Medications taken today", active,
                                   default=[m for m in (defaults.taken_medications if defaults else []) if m in active])
        else:
            st.caption("No active medications for this date.")
            taken = []

        st.markdown("#### Symptoms (0-10)")
        vas_values = {}
        for key, hindi in VAS_SYMPTOMS.items():
            label = f"{key.replace('_', ' ').title()} ({hindi})"
            vas_values[key] = st.slider(label, 0, 10, getattr(defaults.vas, key) if defaults else 0,
                                        key=f"{form_key}_vas_{key}")
            if previous is not None:
                st.caption(f"Previous: {getattr(previous.vas, key)}")
        side_effects = st.multiselect("Side effects", SIDE_EFFECTS,
                                      default=defaults.side_effects if defaults else [])

        st.markdown("#### KBILD Questionnaire")
        responses = {}
        for qid, text, option_type in KBILD_QUESTIONS:
            labels = KBILD_OPTIONS[option_type]
            current = defaults.kbild_responses.get(qid) if defaults else None
            choice = st.radio(f"{qid}. {text}", labels, index=current - 1 if current else None,
                              key=f"{form_key}_kbild_{qid}")
            if choice is not None:
                responses[qid] = labels.index(choice) + 1
        st.caption(f"Answered {len(responses)} of {len(KBILD_QUESTIONS)}")
        submitted = st.form_submit_button("Save Entry")

    if not submitted:
        return None
    return LogDraft(
        date=day,
        time=format_time_12h(log_time),
        spo2_rest=int(spo2_rest),
        spo2_exertion=int(spo2_exertion),
        mmrc_grade=mmrc,
        vas=VasScores(**vas_values),
        kbild_responses=responses,
        taken_medications=taken,
        side_effects=side_effects,
        aqi=defaults.aqi if defaults else st.session_state.get('current_aqi'),
    )


def _render_daily_entry_page(store):
    """Renders the patient's daily entry page."""
    state = _state()
    patient = state.patient
    st.markdown("<h2 style='text-align: center;'>Daily Log</h2>", unsafe_allow_html=True)

    if st.session_state.get('entry_saved_alerts') is not None:
        alerts = st.session_state.pop('entry_saved_alerts')
        st.success("Your entry has been saved successfully.")
        for alert in alerts:
            st.error(f"⚠️ {alert}. Please contact your doctor if this persists.")

    day = st.date_input("Entry Date", value=datetime.date.today(), max_value=datetime.date.today())
    todays_logs = store.logs_on_date(patient.id, day)
    st.caption(f"{len(todays_logs)} of {config.MAX_LOGS_PER_DAY} entries submitted for {format_display_date(day)}")

    if todays_logs and not st.session_state.get('adding_second_entry'):
        latest = todays_logs[0]
        st.markdown(f"**Latest entry at {latest.time or _format_timestamp(latest.timestamp)}**")
        col1, col2, col3 = st.columns(3)
        col1.metric("SpO2 Rest", f"{latest.spo2_rest}%")
        col2.metric("SpO2 Exertion", f"{latest.spo2_exertion}%")
        col3.metric("KBILD Total Score", latest.kbild_score)
        for alert in latest.alerts:
            st.error(f"⚠️ {alert}")
        if len(todays_logs) < config.MAX_LOGS_PER_DAY:
            if st.button("Add Second Entry", key="second_entry_btn"):
                st.session_state.adding_second_entry = True
                st.rerun()
        return

    if day == datetime.date.today():
        _render_aqi_controls()
    draft = _render_log_form("daily_log_form", patient, day, previous=store.previous_log(patient.id, day))
    if draft is None:
        return
    result = store.submit_log(patient.id, draft, state)
    if isinstance(result, str):
        st.error(LOG_STATUS_MESSAGES.get(result, "Could not save the entry."))
        return
    st.session_state.adding_second_entry = False
    st.session_state.current_aqi = None
    st.session_state.aqi_checked = False
    st.session_state.entry_saved_alerts = result.alerts
    st.rerun()


def _render_history_page(store):
    """Renders the patient's log history with the one-time edit option."""
    state = _state()
    patient = state.patient
    st.markdown("<h2 style='text-align: center;'>My History</h2>", unsafe_allow_html=True)
    if not patient.logs:
        st.info("No history found.")
        return

    for log in patient.logs:
        alert_icon = " 🚨" if log.alerts else ""
        edited = " (edited)" if log.is_edited else ""
        with st.expander(f"{format_display_date(log.date)} {log.time}{alert_icon}{edited}"):
            col1, col2, col3, col4 = st.columns(4)
            col1.metric("SpO2 Rest", f"{log.spo2_rest}%")
            col2.metric("SpO2 Exertion", f"{log.spo2_exertion}%")
            col3.metric("mMRC", log.mmrc_grade)
            col4.metric("KBILD", log.kbild_score)
            if log.aqi is not None:
                st.caption(f"AQI {log.aqi} ({aqi_category(log.aqi)})")
            for alert in log.alerts:
                st.error(alert)
            if log.side_effects:
                st.write("**Side effects:** " + ", ".join(log.side_effects))

            if st.session_state.get('editing_log_id') == log.log_id:
                draft = _render_log_form(f"edit_log_{log.log_id}", patient, log.date, defaults=log)
                if draft is not None:
                    result = store.edit_log(patient.id, log.log_id, draft, state)
                    if isinstance(result, str):
                        st.error(LOG_STATUS_MESSAGES.get(result, "Could not update the entry."))
                    else:
                        st.session_state.editing_log_id = None
                        st.rerun()
            elif log.is_edited:
                st.caption("This entry has already been edited.")
            elif st.button("Edit Entry (once only)", key=f"edit_{log.log_id}"):
                st.session_state.editing_log_id = log.log_id
                st.rerun()
