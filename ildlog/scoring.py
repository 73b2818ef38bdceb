"""
Clinical scoring for daily health logs.

Provides the KBILD total score, the alert rules applied to each submission, and
`build_health_log`, which turns a patient's raw inputs into a frozen `HealthLog`.
"""
# ildlog/scoring.py

import dataclasses
from typing import Iterable, List, Mapping, Optional

from ildlog.constants import (
    ALERT_FEVER,
    ALERT_SPO2_DROP,
    FEVER_KEYWORD,
    FEVER_KEYWORD_HI,
    KBILD_MAX_RESPONSE,
    KBILD_MIN_RESPONSE,
    KBILD_QUESTION_IDS,
    MMRC_VALUES,
    SPO2_DROP_THRESHOLD,
)
from ildlog.models import HealthLog, LogDraft, new_log_id, now_millis


def missing_kbild_questions(responses: Mapping[int, int]) -> List[int]:
    """Returns the ids of KBILD questions without a response."""
    return [qid for qid in KBILD_QUESTION_IDS if responses.get(qid) is None]


def compute_kbild_score(responses: Mapping[int, int]) -> int:
    """Computes the KBILD total score.

    Args:
        responses: Question id (1-15) to response (1-7).

    Returns:
        int: The sum of all 15 responses, between 15 and 105.

    Raises:
        ValueError: If a question is unanswered or a response is out of range.
    """
    missing = missing_kbild_questions(responses)
    if missing:
        raise ValueError(f"KBILD questions not answered: {missing}")
    total = 0
    for qid in KBILD_QUESTION_IDS:
        value = int(responses[qid])
        if not KBILD_MIN_RESPONSE <= value <= KBILD_MAX_RESPONSE:
            raise ValueError(f"KBILD question {qid} response {value} is out of range")
        total += value
    return total


def _mentions_fever(side_effect: str) -> bool:
    return FEVER_KEYWORD in side_effect.lower() or FEVER_KEYWORD_HI in side_effect


def derive_alerts(spo2_rest: int, spo2_exertion: int, vas_fever: int = 0,
                  side_effects: Iterable[str] = ()) -> List[str]:
    """Derives the alerts for a single log.

    Each rule is checked on its own, so a log may carry several alerts.

    Args:
        spo2_rest: SpO2 at rest.
        spo2_exertion: SpO2 after exertion.
        vas_fever: The fever VAS score.
        side_effects: Side effects reported with the log.

    Returns:
        list: Alert messages, in rule order.
    """
    alerts = []
    if spo2_rest - spo2_exertion > SPO2_DROP_THRESHOLD:
        alerts.append(ALERT_SPO2_DROP)
    if vas_fever > 0 or any(_mentions_fever(effect) for effect in side_effects):
        alerts.append(ALERT_FEVER)
    return alerts


def build_health_log(draft: LogDraft, log_id: Optional[str] = None,
                     timestamp: Optional[int] = None) -> HealthLog:
    """Scores a draft and returns the log to store.

    Raises:
        ValueError: If the KBILD responses are incomplete or the mMRC grade is unknown.
    """
    if str(draft.mmrc_grade) not in MMRC_VALUES:
        raise ValueError(f"Unknown mMRC grade: {draft.mmrc_grade}")
    score = compute_kbild_score(draft.kbild_responses)
    alerts = derive_alerts(draft.spo2_rest, draft.spo2_exertion, draft.vas.fever, draft.side_effects)
    return HealthLog(
        log_id=log_id or new_log_id(),
        date=draft.date,
        time=draft.time,
        timestamp=timestamp if timestamp is not None else now_millis(),
        spo2_rest=int(draft.spo2_rest),
        spo2_exertion=int(draft.spo2_exertion),
        mmrc_grade=str(draft.mmrc_grade),
        vas=dataclasses.replace(draft.vas),
        kbild_score=score,
        kbild_responses={int(k): int(v) for k, v in draft.kbild_responses.items()},
        alerts=alerts,
        taken_medications=list(draft.taken_medications),
        side_effects=list(draft.side_effects),
        aqi=draft.aqi,
    )
