"""
CSV export of the clinic's data.

Two layouts are produced:
- detailed: for each patient a `Patient` row, then one row per PFT result, then the
  worst log of each day. Every row shares one fixed column set; the columns that
  belong to another row kind are left empty.
- summary: one row per patient and period with the worst-case metrics from
  `aggregation.summarize_periods`.

Every field is quoted and embedded quotes are doubled.
"""
# ildlog/export.py

import csv
from datetime import date
from typing import Iterable, List, Optional

import pandas as pd

from ildlog.adherence import daily_adherence, medication_history
from ildlog.aggregation import summarize_periods, worst_logs_by_period
from ildlog.constants import KBILD_QUESTION_IDS, VAS_SYMPTOMS
from ildlog.models import Patient

PATIENT_COLUMNS = [
    "Patient Name", "Age", "Sex", "Occupation", "Registration Date",
    "Diagnosis Category", "Diagnosis", "CTD Type", "Sarcoidosis Stage", "Fibrotic ILD",
    "Co-morbidities", "Medication History & Adherence",
]
PFT_COLUMNS = [
    "PFT Date", "FEV1/FVC (%)", "FEV1 (%)", "FEV1 (L)", "FVC (%)", "FVC (L)",
    "DLCO (%)", "6MWD (m)", "6MWT Min SpO2", "6MWT Max SpO2",
]
KBILD_COLUMNS = [f"KBILD Q{qid}" for qid in KBILD_QUESTION_IDS]
VAS_COLUMNS = [f"VAS {key.replace('_', ' ').title()}" for key in VAS_SYMPTOMS]
LOG_COLUMNS = [
    "Log Date", "Log Time", "Alerts", "AQI", "SpO2 Rest", "SpO2 Exertion", "mMRC Grade",
    "KBILD Total Score", *KBILD_COLUMNS, *VAS_COLUMNS,
    "Side Effects", "Meds Taken (Daily Log)", "Edited",
]
DETAILED_COLUMNS = ["Row Type", "Mobile ID", *PATIENT_COLUMNS, *PFT_COLUMNS, *LOG_COLUMNS]

SUMMARY_COLUMNS = [
    "Mobile ID", "Patient Name", "Diagnosis Category", "Diagnosis",
    "Period", "Period Start", "Period End",
    "Logs", "Total Alerts", "Min KBILD", "Max mMRC", "Min SpO2 Rest", "Min SpO2 Exertion",
    "PFTs", "Min FEV1/FVC (%)", "Min FEV1 (%)", "Min FEV1 (L)", "Min FVC (%)", "Min FVC (L)",
    "Min DLCO (%)", "Min 6MWD (m)", "Min 6MWT SpO2", "Max 6MWT SpO2",
]


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, date):
        return value.strftime("%d-%m-%Y")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _row(columns: List[str], **values) -> dict:
    row = dict.fromkeys(columns, "")
    for key, value in values.items():
        row[key] = _cell(value)
    return row


def _select(patients: Iterable[Patient], category: Optional[str]) -> List[Patient]:
    chosen = [p for p in patients if not category or p.diagnosis.category == category]
    return sorted(chosen, key=lambda p: p.registration_date, reverse=True)


def _patient_row(patient: Patient) -> dict:
    values = {
        "Row Type": "Patient",
        "Mobile ID": patient.id,
        "Patient Name": patient.name,
        "Age": patient.age,
        "Sex": patient.sex,
        "Occupation": patient.occupation,
        "Registration Date": patient.registration_date,
        "Diagnosis Category": patient.diagnosis.category,
        "Diagnosis": patient.diagnosis.subtype,
        "CTD Type": patient.diagnosis.ctd_type,
        "Sarcoidosis Stage": patient.diagnosis.sarcoidosis_stage,
        "Fibrotic ILD": patient.fibrotic_ild,
        "Co-morbidities": patient.co_morbidities_display(),
        "Medication History & Adherence": medication_history(patient),
    }
    return _row(DETAILED_COLUMNS, **values)


def _pft_row(patient: Patient, entry) -> dict:
    values = {
        "Row Type": "PFT",
        "Mobile ID": patient.id,
        "PFT Date": entry.date,
        "FEV1/FVC (%)": entry.fev1_fvc,
        "FEV1 (%)": entry.fev1,
        "FEV1 (L)": entry.fev1_liters,
        "FVC (%)": entry.fvc,
        "FVC (L)": entry.fvc_liters,
        "DLCO (%)": entry.dlco,
        "6MWD (m)": entry.six_mwd,
        "6MWT Min SpO2": entry.min_spo2,
        "6MWT Max SpO2": entry.max_spo2,
    }
    return _row(DETAILED_COLUMNS, **values)


def _log_row(patient: Patient, log) -> dict:
    values = {
        "Row Type": "Daily Log",
        "Mobile ID": patient.id,
        "Log Date": log.date,
        "Log Time": log.time,
        "Alerts": "; ".join(log.alerts),
        "AQI": log.aqi,
        "SpO2 Rest": log.spo2_rest,
        "SpO2 Exertion": log.spo2_exertion,
        "mMRC Grade": log.mmrc_grade,
        "KBILD Total Score": log.kbild_score,
        "Side Effects": "; ".join(log.side_effects),
        "Meds Taken (Daily Log)": daily_adherence(patient, log),
        "Edited": log.is_edited,
    }
    for qid, column in zip(KBILD_QUESTION_IDS, KBILD_COLUMNS):
        values[column] = log.kbild_responses.get(qid)
    for key, column in zip(VAS_SYMPTOMS, VAS_COLUMNS):
        values[column] = getattr(log.vas, key)
    return _row(DETAILED_COLUMNS, **values)


def detailed_rows(patients: Iterable[Patient], category: Optional[str] = None) -> List[dict]:
    """Builds the detailed export rows.

    Args:
        patients: The patients to export.
        category (str, optional): Only export patients in this diagnosis category.

    Returns:
        list: Row dictionaries keyed by `DETAILED_COLUMNS`. Patients are ordered by
              registration date, newest first; PFT and log rows by date, oldest first.
    """
    rows = []
    for patient in _select(patients, category):
        rows.append(_patient_row(patient))
        for entry in sorted(patient.pft_history, key=lambda p: p.date):
            rows.append(_pft_row(patient, entry))
        for log in worst_logs_by_period(patient.logs, "daily").values():
            rows.append(_log_row(patient, log))
    return rows


def summary_rows(patients: Iterable[Patient], period: str = "monthly",
                 category: Optional[str] = None) -> List[dict]:
    """Builds one summary row per patient and period.

    Patients without any logs or PFT results produce no rows.
    """
    rows = []
    for patient in _select(patients, category):
        for summary in summarize_periods(patient, period):
            rows.append(_row(
                SUMMARY_COLUMNS,
                **{
                    "Mobile ID": patient.id,
                    "Patient Name": patient.name,
                    "Diagnosis Category": patient.diagnosis.category,
                    "Diagnosis": patient.diagnosis.subtype,
                    "Period": summary.label,
                    "Period Start": summary.start,
                    "Period End": summary.end,
                    "Logs": summary.log_count,
                    "Total Alerts": summary.alert_count,
                    "Min KBILD": summary.min_kbild,
                    "Max mMRC": summary.max_mmrc,
                    "Min SpO2 Rest": summary.min_spo2_rest,
                    "Min SpO2 Exertion": summary.min_spo2_exertion,
                    "PFTs": summary.pft_count,
                    "Min FEV1/FVC (%)": summary.min_fev1_fvc,
                    "Min FEV1 (%)": summary.min_fev1,
                    "Min FEV1 (L)": summary.min_fev1_liters,
                    "Min FVC (%)": summary.min_fvc,
                    "Min FVC (L)": summary.min_fvc_liters,
                    "Min DLCO (%)": summary.min_dlco,
                    "Min 6MWD (m)": summary.min_six_mwd,
                    "Min 6MWT SpO2": summary.min_walk_spo2,
                    "Max 6MWT SpO2": summary.max_walk_spo2,
                },
            ))
    return rows


def to_csv(rows: List[dict], columns: List[str]) -> str:
    """Renders rows as CSV text with every field quoted."""
    df = pd.DataFrame(rows, columns=columns, dtype=str)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def detailed_csv(patients: Iterable[Patient], category: Optional[str] = None) -> str:
    return to_csv(detailed_rows(patients, category), DETAILED_COLUMNS)


def summary_csv(patients: Iterable[Patient], period: str = "monthly", category: Optional[str] = None) -> str:
    return to_csv(summary_rows(patients, period, category), SUMMARY_COLUMNS)


def export_filename(mode: str, category: Optional[str] = None, today: Optional[date] = None) -> str:
    """Builds the download name, e.g. 'aiims_ild_weekly_summary_ILD_2024-05-01.csv'."""
    parts = ["aiims_ild", mode.replace(" ", "_")]
    if category:
        parts.append(category.replace(" ", "_"))
    parts.append((today or date.today()).isoformat())
    return "_".join(parts) + ".csv"
