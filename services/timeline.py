"""Visa application timeline arithmetic.

All offsets are calendar days; no weekend or holiday skipping.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional


DEFAULT_PROCESSING_TIME = 15
SAFETY_BUFFER_DAYS = 7
PREPARATION_DAYS = 14


@dataclass(frozen=True)
class VisaTimeline:
    latest_submission_date: date
    recommended_submission_date: date
    expected_decision_date: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "latest_submission_date": self.latest_submission_date.isoformat(),
            "recommended_submission_date": self.recommended_submission_date.isoformat(),
            "expected_decision_date": self.expected_decision_date.isoformat()
            if self.expected_decision_date
            else None,
        }


def calculate_visa_timeline(
    processing_time_max: Optional[int],
    entry_date: date,
    submission_date: Optional[date] = None,
) -> VisaTimeline:
    """Derive submission deadlines and the expected decision date.

    A missing or zero processing maximum falls back to
    ``DEFAULT_PROCESSING_TIME``.
    """

    max_days = processing_time_max or DEFAULT_PROCESSING_TIME

    latest = entry_date - timedelta(days=max_days + SAFETY_BUFFER_DAYS)
    recommended = latest - timedelta(days=PREPARATION_DAYS)

    expected_decision = None
    if submission_date is not None:
        expected_decision = submission_date + timedelta(days=max_days)

    return VisaTimeline(
        latest_submission_date=latest,
        recommended_submission_date=recommended,
        expected_decision_date=expected_decision,
    )
