"""Destination feasibility classification and trip aggregation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from fractions import Fraction
from typing import Iterable, Optional

from flask import current_app

from models import db
from models.trip import FEASIBLE, IMPOSSIBLE, RISKY, DestinationVerdict, Trip, TripDestination
from models.visa_application import APPROVED, REJECTED, VisaApplication

from .timeline import SAFETY_BUFFER_DAYS


# Real-world processing overrun applied to the nominal maximum.
PROCESSING_OVERRUN_FACTOR = Fraction(7, 5)


@dataclass(frozen=True)
class FeasibilityVerdict:
    status: str
    reason: str

    def to_dict(self) -> dict:
        return {"status": self.status, "reason": self.reason}


@dataclass(frozen=True)
class TripFeasibility:
    status: str
    issues: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"status": self.status, "issues": list(self.issues)}


def as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_until(target, today: Optional[date] = None) -> int:
    """Calendar days from ``today`` until ``target``."""

    return (as_date(target) - (today or date.today())).days


def required_lead_days(processing_time_max: int) -> int:
    """Days needed ahead of entry: padded processing time plus safety buffer."""

    return math.ceil(processing_time_max * PROCESSING_OVERRUN_FACTOR) + SAFETY_BUFFER_DAYS


def check_destination_feasibility(
    entry_date,
    processing_time_max: Optional[int] = None,
    visa_required: bool = True,
    today: Optional[date] = None,
) -> FeasibilityVerdict:
    """Classify whether visa processing fits before ``entry_date``."""

    if not visa_required:
        return FeasibilityVerdict(FEASIBLE, "No visa required")
    if not processing_time_max:
        return FeasibilityVerdict(FEASIBLE, "No visa processing time required")

    days_available = days_until(entry_date, today)
    required_days = required_lead_days(processing_time_max)

    if days_available < processing_time_max:
        status = IMPOSSIBLE
    elif days_available < required_days:
        status = RISKY
    else:
        return FeasibilityVerdict(FEASIBLE, "Sufficient time for visa processing")

    return FeasibilityVerdict(
        status,
        f"Only {days_available} days available. Estimated {required_days} days needed.",
    )


def aggregate_trip_feasibility(verdicts: Iterable[DestinationVerdict]) -> TripFeasibility:
    """Fold destination verdicts into a trip verdict.

    The first IMPOSSIBLE destination decides the trip on its own; otherwise
    every RISKY destination contributes an issue. Destinations that need no
    visa are ignored.
    """

    issues: list[dict] = []
    for verdict in verdicts:
        if not verdict.visa_required:
            continue
        issue = {"destination": verdict.destination, "message": verdict.reason}
        if verdict.status == IMPOSSIBLE:
            return TripFeasibility(IMPOSSIBLE, [issue])
        if verdict.status == RISKY:
            issues.append(issue)

    if issues:
        return TripFeasibility(RISKY, issues)
    return TripFeasibility(FEASIBLE, [])


def linked_application(destination: TripDestination) -> Optional[VisaApplication]:
    """Return the trip owner's application for ``destination``, if one exists."""

    if destination.id is None:
        return None
    query = VisaApplication.query.filter_by(trip_destination_id=destination.id)
    if destination.trip is not None:
        query = query.filter_by(user_id=destination.trip.user_id)
    return query.first()


def evaluate_destination(
    destination: TripDestination, today: Optional[date] = None
) -> FeasibilityVerdict:
    """Project a destination verdict from its dates and its application's state.

    A decided application settles the verdict; otherwise the processing time
    is weighed against the days left before entry.
    """

    application = linked_application(destination)
    if application is not None:
        if application.status == APPROVED:
            return FeasibilityVerdict(FEASIBLE, "Visa approved")
        if application.status == REJECTED:
            return FeasibilityVerdict(IMPOSSIBLE, "Visa application rejected")

    return check_destination_feasibility(
        destination.entry_date,
        destination.processing_time_max,
        bool(destination.visa_required),
        today,
    )


def recalculate_trip_feasibility(trip: Trip, today: Optional[date] = None) -> TripFeasibility:
    """Re-project every destination verdict and persist the trip verdict."""

    for destination in trip.destinations:
        verdict = evaluate_destination(destination, today)
        destination.feasibility_status = verdict.status
        destination.feasibility_reason = verdict.reason

    result = aggregate_trip_feasibility(destination.verdict() for destination in trip.destinations)
    trip.feasibility_status = result.status
    trip.feasibility_issues = list(result.issues)
    db.session.commit()

    current_app.logger.info(
        "Trip %s feasibility recalculated: %s (%d issues)",
        trip.id,
        result.status,
        len(result.issues),
    )
    return result
