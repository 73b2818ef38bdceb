"""
Longitudinal aggregation of patient logs and PFT results.

Logs are grouped by calendar day, Monday-to-Sunday week, or calendar month. Each
group is reduced either to its single worst log (for the detailed export and the
clinician's history view) or to the per-metric extremes of a `PeriodSummary`
(for the period export).
"""
# ildlog/aggregation.py

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from ildlog.constants import PERIODS
from ildlog.models import HealthLog, Patient, format_display_date


def _check_period(period: str):
    if period not in PERIODS:
        raise ValueError(f"Unknown period '{period}', expected one of {PERIODS}")


def period_start(day: date, period: str) -> date:
    """Returns the first day of the period containing `day`.

    Weeks start on Monday, so a Sunday belongs to the week that began six days earlier.
    """
    _check_period(period)
    if period == "daily":
        return day
    if period == "weekly":
        return day - timedelta(days=day.weekday())
    return day.replace(day=1)


def period_bounds(day: date, period: str) -> Tuple[date, date]:
    """Returns the first and last day of the period containing `day`."""
    start = period_start(day, period)
    if period == "daily":
        return start, start
    if period == "weekly":
        return start, start + timedelta(days=6)
    next_month = (start.replace(day=28) + timedelta(days=4)).replace(day=1)
    return start, next_month - timedelta(days=1)


def period_label(start: date, period: str) -> str:
    """Renders a period for display and export."""
    _check_period(period)
    if period == "daily":
        return format_display_date(start)
    if period == "weekly":
        _, end = period_bounds(start, period)
        return f"{format_display_date(start)} - {format_display_date(end)}"
    return start.strftime("%b %Y")


def severity_key(log: HealthLog) -> Tuple[bool, int, int, int]:
    """Ranks a log for worst-log selection; a larger key is a worse log.

    The order is: any alert, then lower SpO2 on exertion, then higher mMRC grade,
    then higher KBILD total.
    """
    return (bool(log.alerts), -log.spo2_exertion, int(log.mmrc_grade), log.kbild_score)


def is_worse(candidate: HealthLog, current: HealthLog) -> bool:
    """Returns True only if `candidate` strictly outranks `current`."""
    return severity_key(candidate) > severity_key(current)


def worst_log(logs: Iterable[HealthLog]) -> Optional[HealthLog]:
    """Returns the worst log, keeping the first one seen on a tie."""
    worst = None
    for log in logs:
        if worst is None or is_worse(log, worst):
            worst = log
    return worst


def group_logs(logs: Iterable[HealthLog], period: str = "daily") -> Dict[date, List[HealthLog]]:
    """Groups logs by period start, preserving input order within each group."""
    groups: Dict[date, List[HealthLog]] = {}
    for log in logs:
        groups.setdefault(period_start(log.date, period), []).append(log)
    return dict(sorted(groups.items()))


def worst_logs_by_period(logs: Iterable[HealthLog], period: str = "daily") -> Dict[date, HealthLog]:
    """Selects the worst log of each period.

    Args:
        logs: The logs to reduce, in stored order.
        period: 'daily', 'weekly' or 'monthly'.

    Returns:
        dict: Period start date to worst log, in ascending date order.
    """
    return {start: worst_log(group) for start, group in group_logs(logs, period).items()}


@dataclass
class PeriodSummary:
    """Worst-case metrics for one patient over one period.

    Every metric is None when nothing in the period contributed to it.
    """
    period: str
    start: date
    end: date
    log_count: int = 0
    alert_count: int = 0
    min_kbild: Optional[int] = None
    max_mmrc: Optional[int] = None
    min_spo2_rest: Optional[int] = None
    min_spo2_exertion: Optional[int] = None
    pft_count: int = 0
    min_fev1_fvc: Optional[float] = None
    min_fev1: Optional[float] = None
    min_fev1_liters: Optional[float] = None
    min_fvc: Optional[float] = None
    min_fvc_liters: Optional[float] = None
    min_dlco: Optional[float] = None
    min_six_mwd: Optional[float] = None
    min_walk_spo2: Optional[float] = None
    max_walk_spo2: Optional[float] = None

    @property
    def label(self) -> str:
        return period_label(self.start, self.period)


def _min(values):
    values = [v for v in values if v is not None]
    return min(values) if values else None


def _max(values):
    values = [v for v in values if v is not None]
    return max(values) if values else None


def summarize_periods(patient: Patient, period: str = "monthly") -> List[PeriodSummary]:
    """Summarises a patient's logs and PFT results per period.

    Args:
        patient: The patient to summarise.
        period: 'daily', 'weekly' or 'monthly'.

    Returns:
        list: One `PeriodSummary` per period that has at least one log or PFT
              entry, in ascending order. Empty for a patient with no data.
    """
    _check_period(period)
    logs_by_period = group_logs(patient.logs, period)
    pfts_by_period = {}
    for entry in patient.pft_history:
        pfts_by_period.setdefault(period_start(entry.date, period), []).append(entry)

    summaries = []
    for start in sorted(set(logs_by_period) | set(pfts_by_period)):
        logs = logs_by_period.get(start, [])
        pfts = pfts_by_period.get(start, [])
        _, end = period_bounds(start, period)
        summaries.append(PeriodSummary(
            period=period,
            start=start,
            end=end,
            log_count=len(logs),
            alert_count=sum(len(log.alerts) for log in logs),
            min_kbild=_min(log.kbild_score for log in logs),
            max_mmrc=_max(int(log.mmrc_grade) for log in logs),
            min_spo2_rest=_min(log.spo2_rest for log in logs),
            min_spo2_exertion=_min(log.spo2_exertion for log in logs),
            pft_count=len(pfts),
            min_fev1_fvc=_min(p.fev1_fvc for p in pfts),
            min_fev1=_min(p.fev1 for p in pfts),
            min_fev1_liters=_min(p.fev1_liters for p in pfts),
            min_fvc=_min(p.fvc for p in pfts),
            min_fvc_liters=_min(p.fvc_liters for p in pfts),
            min_dlco=_min(p.dlco for p in pfts),
            min_six_mwd=_min(p.six_mwd for p in pfts),
            min_walk_spo2=_min(p.min_spo2 for p in pfts),
            max_walk_spo2=_max(p.max_spo2 for p in pfts),
        ))
    return summaries


def trend_series(patient: Patient) -> List[dict]:
    """Chronological daily-worst SpO2 and KBILD values for charting."""
    return [
        {
            "date": day,
            "SpO2 Rest": log.spo2_rest,
            "SpO2 Exertion": log.spo2_exertion,
            "KBILD": log.kbild_score,
        }
        for day, log in worst_logs_by_period(patient.logs, "daily").items()
    ]
