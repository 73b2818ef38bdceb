"""
Medication adherence accounting.

Cross-references the medications a clinician prescribed against the medications a
patient ticked as taken in each daily log. The results are informational and feed
the export; no alert is raised on adherence.
"""
# ildlog/adherence.py

from datetime import date
from typing import Dict, List

from ildlog.models import HealthLog, Medication, Patient, format_display_date


def count_days_taken(patient: Patient, medication_name: str) -> int:
    """Counts the logs in which the patient marked a medication as taken."""
    return sum(1 for log in patient.logs if medication_name in log.taken_medications)


def active_medications_on_date(patient: Patient, day: date) -> List[Medication]:
    """Returns the medications whose prescription covers `day`."""
    return [m for m in patient.medications if m.is_active_on(day)]


def describe_medication(medication: Medication, days_taken: int) -> str:
    end = format_display_date(medication.end_date) if medication.end_date else "present"
    text = (f"{medication.name} ({medication.dose}, {medication.frequency}) "
            f"from {format_display_date(medication.start_date)} to {end}")
    if medication.dose_number is not None:
        text += f", dose {medication.dose_number}"
        if medication.dosage_date:
            text += f" on {format_display_date(medication.dosage_date)}"
    return f"{text} - [Taken: {days_taken} days]"


def adherence_summary(patient: Patient) -> Dict[str, str]:
    """Describes each prescribed medication with its days-taken count.

    A medication prescribed more than once appears under one key with its
    prescriptions joined by " | ".

    Returns:
        dict: Medication name to description, in prescription order.
    """
    summary: Dict[str, str] = {}
    for medication in patient.medications:
        text = describe_medication(medication, count_days_taken(patient, medication.name))
        if medication.name in summary:
            summary[medication.name] += " | " + text
        else:
            summary[medication.name] = text
    return summary


def medication_history(patient: Patient) -> str:
    """The full adherence summary as one export cell."""
    return " | ".join(adherence_summary(patient).values())


def daily_adherence(patient: Patient, log: HealthLog) -> str:
    """Marks each medication active on the log's date as taken (Y) or not (N)."""
    return "; ".join(
        f"{m.name}({'Y' if m.name in log.taken_medications else 'N'})"
        for m in active_medications_on_date(patient, log.date)
    )
