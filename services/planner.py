"""Feasibility analysis for a multi-country trip that is not persisted yet."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional, Sequence

from werkzeug.exceptions import BadRequest

from models.trip import FEASIBLE, IMPOSSIBLE, RISKY
from utils.errors import UnknownReference

from .feasibility import check_destination_feasibility, days_until, required_lead_days
from .rules_engine import (
    DEFAULT_PURPOSE,
    ERROR,
    WARNING,
    TravelDates,
    UserContext,
    VisaRulesEngine,
    requires_visa_processing,
)


DEFAULT_PLANNER_PROCESSING_DAYS = 10
DEFAULT_VALIDITY_MARGIN_DAYS = 180
VALIDITY_MARGIN_OVERRIDES = {"ZA": 30}
ERROR_PENALTY = 30

FEASIBILITY_MESSAGES = {
    FEASIBLE: "Your trip is feasible with proper planning.",
    RISKY: "Your trip has potential issues that need attention.",
    IMPOSSIBLE: "Your trip as planned is not feasible.",
}


@dataclass(frozen=True)
class PlannedDestination:
    country_code: str
    arrival_date: date
    departure_date: Optional[date] = None


@dataclass
class DestinationAnalysis:
    order: int
    country_code: str
    arrival_date: date
    departure_date: Optional[date] = None
    country_name: Optional[str] = None
    visa_type: Optional[str] = None
    visa_type_friendly: Optional[str] = None
    processing_time_min: Optional[int] = None
    processing_time_max: Optional[int] = None
    warnings: list = field(default_factory=list)
    feasibility: Optional[dict] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def label(self) -> str:
        return self.country_name or self.country_code

    @property
    def requires_passport_submission(self) -> bool:
        return self.visa_type == "EMBASSY_VISA"

    @property
    def needs_visa(self) -> bool:
        return self.success and requires_visa_processing(self.visa_type)

    @property
    def planning_processing_days(self) -> int:
        return self.processing_time_max or DEFAULT_PLANNER_PROCESSING_DAYS

    def to_dict(self) -> dict:
        data = {
            "order": self.order,
            "country_code": self.country_code,
            "arrival_date": self.arrival_date.isoformat(),
            "departure_date": self.departure_date.isoformat() if self.departure_date else None,
            "success": self.success,
        }
        if not self.success:
            data["error"] = self.error
            return data
        data.update(
            {
                "country_name": self.country_name,
                "visa_type": self.visa_type,
                "visa_type_friendly": self.visa_type_friendly,
                "processing_time": {
                    "min": self.processing_time_min,
                    "max": self.processing_time_max,
                },
                "requires_passport_submission": self.requires_passport_submission,
                "warnings": [warning.to_dict() for warning in self.warnings],
                "feasibility": self.feasibility,
            }
        )
        return data


def analyze_multi_country_feasibility(
    engine: VisaRulesEngine,
    passport_code: str,
    destinations: Sequence[PlannedDestination],
    purpose: str = DEFAULT_PURPOSE,
    user_context: Optional[UserContext] = None,
    today: Optional[date] = None,
) -> dict:
    """Evaluate every leg of a planned trip and score the plan as a whole."""

    if not destinations:
        raise BadRequest("At least one destination is required.")

    today = today or date.today()
    user_context = user_context or UserContext()
    passport = engine.require_country(passport_code, "passport country")

    analysis = [
        _analyze_destination(
            engine, passport.iso_code, index, destination, purpose, user_context, today
        )
        for index, destination in enumerate(destinations, start=1)
    ]

    unresolved = detect_unresolved_destinations(analysis)
    timeline_conflicts = detect_timeline_conflicts(analysis, today)
    passport_conflicts = detect_passport_submission_conflicts(analysis)
    validity_issues = check_passport_validity(analysis, user_context.passport_expiry_date)

    status, score = score_feasibility(
        unresolved + timeline_conflicts + passport_conflicts + validity_issues
    )
    recommendations = generate_recommendations(status, timeline_conflicts, passport_conflicts)

    return {
        "feasibility_status": status,
        "feasibility_score": score,
        "feasibility_message": FEASIBILITY_MESSAGES[status],
        "destinations": [item.to_dict() for item in analysis],
        "issues": [
            *({"type": "UNKNOWN_DESTINATION", **issue} for issue in unresolved),
            *({"type": "TIMELINE_CONFLICT", **conflict} for conflict in timeline_conflicts),
            *({"type": "PASSPORT_CONFLICT", **conflict} for conflict in passport_conflicts),
            *({"type": "PASSPORT_VALIDITY", **issue} for issue in validity_issues),
        ],
        "recommendations": recommendations,
        "optimal_application_order": calculate_optimal_application_order(analysis),
        "summary": {
            "total_destinations": len(destinations),
            "visa_free_destinations": sum(
                1 for item in analysis if item.success and item.visa_type == "VISA_FREE"
            ),
            "visas_required": sum(
                1 for item in analysis if item.success and item.visa_type != "VISA_FREE"
            ),
            "issue_count": len(unresolved)
            + len(timeline_conflicts)
            + len(passport_conflicts)
            + len(validity_issues),
        },
    }


def _analyze_destination(
    engine: VisaRulesEngine,
    passport_code: str,
    order: int,
    destination: PlannedDestination,
    purpose: str,
    user_context: UserContext,
    today: date,
) -> DestinationAnalysis:
    item = DestinationAnalysis(
        order=order,
        country_code=destination.country_code.upper(),
        arrival_date=destination.arrival_date,
        departure_date=destination.departure_date,
    )
    try:
        engine.require_country(destination.country_code, "destination country")
    except UnknownReference as error:
        item.error = error.description
        return item

    result = engine.determine(
        passport_code,
        destination.country_code,
        purpose,
        TravelDates(destination.arrival_date, destination.departure_date),
        user_context,
        today=today,
    )

    item.country_name = result.destination.get("name")
    item.visa_type = result.visa_type
    item.visa_type_friendly = result.visa_type_friendly
    item.processing_time_min = result.processing_time_min
    item.processing_time_max = result.processing_time_max
    item.warnings = result.warnings
    item.feasibility = check_destination_feasibility(
        destination.arrival_date, result.processing_time_max, result.visa_required, today
    ).to_dict()
    return item


def detect_unresolved_destinations(analysis: Sequence[DestinationAnalysis]) -> list[dict]:
    """Each destination that could not be resolved counts as an error."""

    return [
        {
            "severity": ERROR,
            "destination": item.country_code,
            "message": item.error,
            "suggested_resolution": "Check the destination country code.",
        }
        for item in analysis
        if not item.success
    ]


def detect_timeline_conflicts(analysis: Sequence[DestinationAnalysis], today: date) -> list[dict]:
    """Flag visa destinations whose arrival leaves too little processing time."""

    conflicts = []
    for item in sorted((a for a in analysis if a.needs_visa), key=lambda a: a.arrival_date):
        processing_days = item.planning_processing_days
        days_needed = required_lead_days(processing_days)
        days_available = days_until(item.arrival_date, today)
        if days_available < days_needed:
            conflicts.append(
                {
                    "severity": ERROR if days_available < processing_days else WARNING,
                    "destination": item.country_code,
                    "conflict_type": "INSUFFICIENT_TIME",
                    "message": (
                        f"Only {days_available} days until {item.label}. "
                        f"Need {days_needed} days."
                    ),
                    "suggested_resolution": "Apply immediately or reschedule.",
                }
            )
    return conflicts


def detect_passport_submission_conflicts(analysis: Sequence[DestinationAnalysis]) -> list[dict]:
    """Warn when more than one embassy visa needs the single physical passport."""

    embassy = [item for item in analysis if item.success and item.requires_passport_submission]
    if len(embassy) < 2:
        return []
    return [
        {
            "severity": WARNING,
            "destinations": [item.country_code for item in embassy],
            "conflict_type": "PASSPORT_SUBMISSION_OVERLAP",
            "message": (
                f"{len(embassy)} destinations require passport submission. Apply sequentially."
            ),
            "suggested_resolution": "Apply for visas one at a time.",
        }
    ]


def check_passport_validity(
    analysis: Sequence[DestinationAnalysis], passport_expiry: Optional[date]
) -> list[dict]:
    if passport_expiry is None:
        return []

    issues = []
    for item in analysis:
        if not item.success:
            continue
        margin = VALIDITY_MARGIN_OVERRIDES.get(item.country_code, DEFAULT_VALIDITY_MARGIN_DAYS)
        leaving = item.departure_date or item.arrival_date
        if passport_expiry < leaving + timedelta(days=margin):
            issues.append(
                {
                    "severity": ERROR,
                    "destination": item.country_code,
                    "message": f"Passport must be valid for {margin} days after {item.label}.",
                    "suggested_resolution": "Renew passport before applying.",
                }
            )
    return issues


def score_feasibility(issues: Sequence[dict]) -> tuple[str, int]:
    """Return (status, score); each ERROR costs ``ERROR_PENALTY`` points."""

    error_count = sum(1 for issue in issues if issue["severity"] == ERROR)
    score = max(0, 100 - ERROR_PENALTY * error_count)
    if score >= 80:
        return FEASIBLE, score
    if score >= 50:
        return RISKY, score
    return IMPOSSIBLE, score


def generate_recommendations(
    status: str, timeline_conflicts: Sequence[dict], passport_conflicts: Sequence[dict]
) -> list[dict]:
    recommendations = []
    if timeline_conflicts:
        recommendations.append(
            {
                "type": "APPLY_IMMEDIATELY",
                "priority": 1,
                "title": "Start Applications Now",
                "description": "Some destinations have tight timelines.",
            }
        )
    if passport_conflicts:
        recommendations.append(
            {
                "type": "APPLICATION_SEQUENCE",
                "priority": 2,
                "title": "Apply Sequentially",
                "description": "Multiple embassy visas require passport - apply one at a time.",
            }
        )
    if status == IMPOSSIBLE:
        recommendations.append(
            {
                "type": "RESCHEDULE",
                "priority": 1,
                "title": "Consider Rescheduling",
                "description": "Some destinations cannot be reached in time.",
            }
        )
    return sorted(recommendations, key=lambda item: item["priority"])


def calculate_optimal_application_order(analysis: Sequence[DestinationAnalysis]) -> list[dict]:
    """Embassy visas first, then the longest processing times."""

    ordered = sorted(
        (item for item in analysis if item.needs_visa),
        key=lambda item: (not item.requires_passport_submission, -item.planning_processing_days),
    )
    return [
        {
            "order": position,
            "country_code": item.country_code,
            "country_name": item.country_name,
            "visa_type": item.visa_type,
            "processing_days": item.processing_time_max,
        }
        for position, item in enumerate(ordered, start=1)
    ]
