"""
This module defines the data models for the ILD Log application.

These classes describe the patients managed by the `PatientStore` and everything a
patient owns: the prescribed medications, the daily health logs submitted by the
patient, and the pulmonary function tests entered by the clinician. Each model can
be converted to and from the plain dictionaries that are written to the encrypted
data file.
"""
# ildlog/models.py

import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Union

from ildlog.constants import (
    CTD_ILD,
    CTD_TYPES,
    DOSED_FREQUENCIES,
    MAX_DOSE_NUMBER,
    SARCOIDOSIS,
    SARCOIDOSIS_STAGES,
    SUBTYPES_BY_CATEGORY,
    VAS_MAX,
    VAS_MIN,
    VAS_SYMPTOMS,
)

MOBILE_PATTERN = re.compile(r"^\d{10}$")


def is_valid_mobile(value) -> bool:
    """Checks that a patient id is a 10-digit mobile number."""
    return bool(value) and bool(MOBILE_PATTERN.match(str(value)))


def parse_date(value) -> Optional[date]:
    """Parses a stored date.

    Accepts ISO dates (``YYYY-MM-DD``) as well as the ``DD/MM/YYYY`` and
    ``DD-MM-YYYY`` display formats found in older records.

    Args:
        value: A string, a `date`, or None.

    Returns:
        The parsed date, or None if the value is empty.

    Raises:
        ValueError: If the value is not a recognisable date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {value!r}")


def format_display_date(day: Optional[date]) -> str:
    """Formats a date as DD/MM/YYYY, the way clinicians read it."""
    return day.strftime("%d/%m/%Y") if day else ""


def format_time_12h(value) -> str:
    """Formats a `datetime.time` (or "HH:MM" string) as "HH:MM AM/PM"."""
    if not value:
        return ""
    if isinstance(value, str):
        value = datetime.strptime(value, "%H:%M").time()
    return value.strftime("%I:%M %p")


def _optional(data: dict, key, convert):
    value = data.get(key)
    if value is None or value == "":
        return None
    return convert(value)


def _required_date(data: dict, key) -> date:
    value = parse_date(data[key])
    if value is None:
        raise ValueError(f"Missing {key}")
    return value


# Diagnosis variants

@dataclass(frozen=True)
class Diagnosis:
    """A diagnosis subtype within one of the primary categories.

    CTD-ILD and Sarcoidosis carry extra detail and must use `CtdIldDiagnosis`
    and `SarcoidosisDiagnosis` respectively.

    Attributes:
        category (str): 'ILD', 'OAD' or 'Bronchiectasis'.
        subtype (str): A subtype listed for the category.
    """
    category: str
    subtype: str

    def __post_init__(self):
        subtypes = SUBTYPES_BY_CATEGORY.get(self.category)
        if subtypes is None:
            raise ValueError(f"Unknown diagnosis category: {self.category}")
        if self.subtype not in subtypes:
            raise ValueError(f"'{self.subtype}' is not a {self.category} subtype")
        if self.subtype in (CTD_ILD, SARCOIDOSIS):
            raise ValueError(f"{self.subtype} needs its own diagnosis detail")

    @property
    def ctd_type(self) -> Optional[str]:
        return None

    @property
    def sarcoidosis_stage(self) -> Optional[str]:
        return None

    def to_dict(self) -> dict:
        return {"diagnosis_category": self.category, "diagnosis": self.subtype}


@dataclass(frozen=True)
class CtdIldDiagnosis:
    """Connective tissue disease associated ILD, with the CTD subtype."""
    ctd_type: str

    category = "ILD"
    subtype = CTD_ILD

    def __post_init__(self):
        if self.ctd_type not in CTD_TYPES:
            raise ValueError(f"Unknown CTD type: {self.ctd_type}")

    @property
    def sarcoidosis_stage(self) -> Optional[str]:
        return None

    def to_dict(self) -> dict:
        return {"diagnosis_category": self.category, "diagnosis": self.subtype, "ctd_type": self.ctd_type}


@dataclass(frozen=True)
class SarcoidosisDiagnosis:
    """Sarcoidosis, with its radiological stage."""
    stage: str

    category = "ILD"
    subtype = SARCOIDOSIS

    def __post_init__(self):
        if self.stage not in SARCOIDOSIS_STAGES:
            raise ValueError(f"Unknown sarcoidosis stage: {self.stage}")

    @property
    def ctd_type(self) -> Optional[str]:
        return None

    @property
    def sarcoidosis_stage(self) -> str:
        return self.stage

    def to_dict(self) -> dict:
        return {"diagnosis_category": self.category, "diagnosis": self.subtype, "sarcoidosis_stage": self.stage}


DiagnosisVariant = Union[Diagnosis, CtdIldDiagnosis, SarcoidosisDiagnosis]


def make_diagnosis(category: str, subtype: str, ctd_type: Optional[str] = None,
                   sarcoidosis_stage: Optional[str] = None) -> DiagnosisVariant:
    """Builds the diagnosis variant matching a subtype.

    Args:
        category (str): The primary diagnosis category.
        subtype (str): The diagnosis subtype.
        ctd_type (str, optional): Required for CTD-ILD, rejected otherwise.
        sarcoidosis_stage (str, optional): Required for Sarcoidosis, rejected otherwise.

    Returns:
        DiagnosisVariant: The matching diagnosis object.

    Raises:
        ValueError: If the combination of fields is not valid.
    """
    if subtype == CTD_ILD:
        if category != CtdIldDiagnosis.category:
            raise ValueError("CTD-ILD is an ILD subtype")
        if sarcoidosis_stage:
            raise ValueError("A sarcoidosis stage only applies to Sarcoidosis")
        if not ctd_type:
            raise ValueError("CTD-ILD requires a CTD type")
        return CtdIldDiagnosis(ctd_type)
    if subtype == SARCOIDOSIS:
        if category != SarcoidosisDiagnosis.category:
            raise ValueError("Sarcoidosis is an ILD subtype")
        if ctd_type:
            raise ValueError("A CTD type only applies to CTD-ILD")
        if not sarcoidosis_stage:
            raise ValueError("Sarcoidosis requires a stage")
        return SarcoidosisDiagnosis(sarcoidosis_stage)
    if ctd_type or sarcoidosis_stage:
        raise ValueError(f"'{subtype}' does not take a CTD type or sarcoidosis stage")
    return Diagnosis(category, subtype)


def diagnosis_from_dict(data: dict) -> DiagnosisVariant:
    return make_diagnosis(
        data.get("diagnosis_category", "ILD"),
        data.get("diagnosis", ""),
        ctd_type=data.get("ctd_type"),
        sarcoidosis_stage=data.get("sarcoidosis_stage"),
    )


@dataclass
class Medication:
    """A prescribed medication.

    Attributes:
        name (str): The drug name.
        dose (str): The dose as written by the clinician (e.g. '10 mg').
        frequency (str): A frequency code from `FREQUENCIES`.
        start_date (date): First day of the prescription.
        end_date (date, optional): Last day of the prescription; None while active.
        dose_number (int, optional): Dose number for induction/maintenance schedules.
        dosage_date (date, optional): Date of that dose.
    """
    name: str
    dose: str
    frequency: str
    start_date: date
    end_date: Optional[date] = None
    dose_number: Optional[int] = None
    dosage_date: Optional[date] = None

    def __post_init__(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValueError(f"{self.name}: end date is before start date")
        if self.dose_number is not None or self.dosage_date is not None:
            if self.frequency not in DOSED_FREQUENCIES:
                raise ValueError(f"{self.name}: dose number only applies to induction/maintenance doses")
            if self.dose_number is not None and not 1 <= self.dose_number <= MAX_DOSE_NUMBER:
                raise ValueError(f"{self.name}: dose number must be between 1 and {MAX_DOSE_NUMBER}")

    def is_active_on(self, day: date) -> bool:
        """Returns True if the prescription covers the given day."""
        return self.start_date <= day and (self.end_date is None or day <= self.end_date)

    def to_dict(self) -> dict:
        data = {
            "name": self.name,
            "dose": self.dose,
            "frequency": self.frequency,
            "start_date": self.start_date.isoformat(),
        }
        if self.end_date is not None:
            data["end_date"] = self.end_date.isoformat()
        if self.dose_number is not None:
            data["dose_number"] = self.dose_number
        if self.dosage_date is not None:
            data["dosage_date"] = self.dosage_date.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Medication":
        return cls(
            name=data["name"],
            dose=data.get("dose", ""),
            frequency=data.get("frequency", ""),
            start_date=parse_date(data.get("start_date")) or date.today(),
            end_date=_optional(data, "end_date", parse_date),
            dose_number=_optional(data, "dose_number", int),
            dosage_date=_optional(data, "dosage_date", parse_date),
        )


@dataclass
class VasScores:
    """Visual analog scale scores (0-10) for the tracked symptoms."""
    cough: int = 0
    expectoration: int = 0
    breathlessness: int = 0
    chest_pain: int = 0
    hemoptysis: int = 0
    fever: int = 0
    ctd_symptoms: int = 0

    def __post_init__(self):
        for key in VAS_SYMPTOMS:
            value = getattr(self, key)
            if not VAS_MIN <= value <= VAS_MAX:
                raise ValueError(f"VAS {key} must be between {VAS_MIN} and {VAS_MAX}")

    def to_dict(self) -> dict:
        return {key: getattr(self, key) for key in VAS_SYMPTOMS}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "VasScores":
        data = data or {}
        return cls(**{key: int(data.get(key, 0)) for key in VAS_SYMPTOMS})


@dataclass
class HealthLog:
    """A single self-reported log submitted by a patient.

    `kbild_score` and `alerts` are computed when the log is submitted and
    stored with it; they are not recomputed when the log is read back.

    Attributes:
        log_id (str): A unique identifier for the log.
        date (date): The calendar day the log is for.
        time (str): Time of day as entered ("HH:MM AM").
        timestamp (int): Creation time in epoch milliseconds.
        spo2_rest (int): SpO2 at rest.
        spo2_exertion (int): SpO2 after exertion.
        mmrc_grade (str): mMRC dyspnoea grade, "0" to "4".
        vas (VasScores): Symptom severity scores.
        kbild_score (int): KBILD total.
        kbild_responses (dict): Question id (1-15) to response (1-7).
        alerts (list): Alert messages raised for this log.
        taken_medications (list): Names of medications taken that day.
        side_effects (list): Side effects reported that day.
        aqi (int, optional): Ambient air quality index, if it could be fetched.
        is_edited (bool): True once the single permitted edit has been used.
    """
    log_id: str
    date: date
    time: str
    timestamp: int
    spo2_rest: int
    spo2_exertion: int
    mmrc_grade: str
    vas: VasScores
    kbild_score: int
    kbild_responses: Dict[int, int]
    alerts: List[str] = field(default_factory=list)
    taken_medications: List[str] = field(default_factory=list)
    side_effects: List[str] = field(default_factory=list)
    aqi: Optional[int] = None
    is_edited: bool = False

    def to_dict(self) -> dict:
        data = {
            "log_id": self.log_id,
            "date": self.date.isoformat(),
            "time": self.time,
            "timestamp": self.timestamp,
            "spo2_rest": self.spo2_rest,
            "spo2_exertion": self.spo2_exertion,
            "mmrc_grade": self.mmrc_grade,
            "vas": self.vas.to_dict(),
            "kbild_score": self.kbild_score,
            # JSON object keys are strings.
            "kbild_responses": {str(k): v for k, v in self.kbild_responses.items()},
            "alerts": list(self.alerts),
            "taken_medications": list(self.taken_medications),
            "side_effects": list(self.side_effects),
            "is_edited": self.is_edited,
        }
        if self.aqi is not None:
            data["aqi"] = self.aqi
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "HealthLog":
        return cls(
            log_id=data.get("log_id") or str(uuid.uuid4()),
            date=_required_date(data, "date"),
            time=data.get("time", ""),
            timestamp=int(data.get("timestamp", 0)),
            spo2_rest=int(data.get("spo2_rest", 0)),
            spo2_exertion=int(data.get("spo2_exertion", 0)),
            mmrc_grade=str(data.get("mmrc_grade", "0")),
            vas=VasScores.from_dict(data.get("vas")),
            kbild_score=int(data.get("kbild_score", 0)),
            kbild_responses={int(k): int(v) for k, v in (data.get("kbild_responses") or {}).items()},
            alerts=list(data.get("alerts") or []),
            taken_medications=list(data.get("taken_medications") or []),
            side_effects=list(data.get("side_effects") or []),
            aqi=_optional(data, "aqi", int),
            is_edited=bool(data.get("is_edited", False)),
        )


@dataclass
class PFTEntry:
    """A pulmonary function test result.

    Attributes:
        pft_id (str): A unique identifier for the entry.
        date (date): The test date.
        fev1_fvc (float): FEV1/FVC ratio.
        fev1 (float): FEV1, % predicted.
        fvc (float): FVC, % predicted.
        dlco (float): DLCO, % predicted.
        six_mwd (float): Six-minute walk distance in metres.
        min_spo2 (float): Lowest SpO2 during the walk test.
        max_spo2 (float): Highest SpO2 during the walk test.
        fev1_liters (float, optional): FEV1 in litres.
        fvc_liters (float, optional): FVC in litres.
    """
    date: date
    fev1_fvc: float
    fev1: float
    fvc: float
    dlco: float
    six_mwd: float
    min_spo2: float
    max_spo2: float
    fev1_liters: Optional[float] = None
    fvc_liters: Optional[float] = None
    pft_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        data = {
            "pft_id": self.pft_id,
            "date": self.date.isoformat(),
            "fev1_fvc": self.fev1_fvc,
            "fev1": self.fev1,
            "fvc": self.fvc,
            "dlco": self.dlco,
            "six_mwd": self.six_mwd,
            "min_spo2": self.min_spo2,
            "max_spo2": self.max_spo2,
        }
        if self.fev1_liters is not None:
            data["fev1_liters"] = self.fev1_liters
        if self.fvc_liters is not None:
            data["fvc_liters"] = self.fvc_liters
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PFTEntry":
        return cls(
            pft_id=data.get("pft_id") or str(uuid.uuid4()),
            date=_required_date(data, "date"),
            fev1_fvc=data.get("fev1_fvc", 0),
            fev1=data.get("fev1", 0),
            fvc=data.get("fvc", 0),
            dlco=data.get("dlco", 0),
            six_mwd=data.get("six_mwd", 0),
            min_spo2=data.get("min_spo2", 0),
            max_spo2=data.get("max_spo2", 0),
            fev1_liters=data.get("fev1_liters"),
            fvc_liters=data.get("fvc_liters"),
        )


@dataclass
class Patient:
    """A registered patient and everything recorded for them.

    Attributes:
        id (str): The patient's 10-digit mobile number; also the login id.
        name (str): Full name.
        age (int): Age in years.
        sex (str): 'Male', 'Female' or 'Other'.
        occupation (str): Occupation, relevant for occupational ILD.
        diagnosis (DiagnosisVariant): The primary diagnosis.
        registration_date (date): The day the clinician registered the patient.
        fibrotic_ild (str): 'Yes' or 'No'.
        co_morbidities (list): Selected co-morbidities.
        other_co_morbidity (str, optional): Free text for the 'Others' co-morbidity.
        medications (list): Prescribed `Medication` entries.
        logs (list): `HealthLog` entries, newest first.
        pft_history (list): `PFTEntry` results.
    """
    id: str
    name: str
    age: int
    sex: str
    occupation: str
    diagnosis: DiagnosisVariant
    registration_date: date = field(default_factory=date.today)
    fibrotic_ild: str = "No"
    co_morbidities: List[str] = field(default_factory=list)
    other_co_morbidity: Optional[str] = None
    medications: List[Medication] = field(default_factory=list)
    logs: List[HealthLog] = field(default_factory=list)
    pft_history: List[PFTEntry] = field(default_factory=list)

    def co_morbidities_display(self) -> str:
        """Joins co-morbidities, expanding 'Others' with its free text."""
        items = []
        for item in self.co_morbidities:
            if item == "Others" and self.other_co_morbidity:
                items.append(f"Others: {self.other_co_morbidity}")
            else:
                items.append(item)
        return "; ".join(items)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "sex": self.sex,
            "occupation": self.occupation,
            **self.diagnosis.to_dict(),
            "fibrotic_ild": self.fibrotic_ild,
            "co_morbidities": list(self.co_morbidities),
            "registration_date": self.registration_date.isoformat(),
            "medications": [m.to_dict() for m in self.medications],
            "logs": [log.to_dict() for log in self.logs],
            "pft_history": [p.to_dict() for p in self.pft_history],
        }
        if self.other_co_morbidity is not None:
            data["other_co_morbidity"] = self.other_co_morbidity
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Patient":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            age=int(data.get("age") or 0),
            sex=data.get("sex", "Other"),
            occupation=data.get("occupation", ""),
            diagnosis=diagnosis_from_dict(data),
            registration_date=parse_date(data.get("registration_date")) or date.today(),
            fibrotic_ild=data.get("fibrotic_ild") or "No",
            co_morbidities=list(data.get("co_morbidities") or []),
            other_co_morbidity=data.get("other_co_morbidity"),
            medications=[Medication.from_dict(m) for m in data.get("medications") or []],
            logs=[HealthLog.from_dict(log) for log in data.get("logs") or []],
            pft_history=[PFTEntry.from_dict(p) for p in data.get("pft_history") or []],
        )


@dataclass
class LogDraft:
    """The raw inputs of a log submission, before scoring."""
    date: date
    spo2_rest: int
    spo2_exertion: int
    mmrc_grade: str = "0"
    time: str = ""
    vas: VasScores = field(default_factory=VasScores)
    kbild_responses: Dict[int, int] = field(default_factory=dict)
    taken_medications: List[str] = field(default_factory=list)
    side_effects: List[str] = field(default_factory=list)
    aqi: Optional[int] = None


def new_log_id() -> str:
    return str(uuid.uuid4())


def now_millis() -> int:
    return int(time.time() * 1000)
