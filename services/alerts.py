"""Daily sweep over open applications for deadline and timeline-risk alerts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from flask import current_app

from models.trip import IMPOSSIBLE, RISKY
from models.visa_application import OPEN_STATUSES, VisaApplication

from .feasibility import check_destination_feasibility, days_until
from .notifications import NotificationDispatcher, alert_key


TIMELINE_ALERTS = {IMPOSSIBLE: "VISA_HIGH_RISK", RISKY: "VISA_TIMELINE_TIGHT"}


@dataclass
class SweepReport:
    checked: int = 0
    sent: list[str] = field(default_factory=list)
    skipped: int = 0

    def to_dict(self) -> dict:
        return {"checked": self.checked, "sent": list(self.sent), "skipped": self.skipped}


def classify_timeline_alert(application: VisaApplication, today: date) -> Optional[str]:
    """Pick at most one timeline alert type for an open application."""

    destination = application.trip_destination
    processing_time_max = None
    if application.visa_requirement is not None:
        processing_time_max = application.visa_requirement.processing_time_max
    elif destination is not None:
        processing_time_max = destination.processing_time_max

    if destination is not None:
        verdict = check_destination_feasibility(
            destination.entry_date, processing_time_max, True, today
        )
        if verdict.status in TIMELINE_ALERTS:
            return TIMELINE_ALERTS[verdict.status]

    recommended = application.recommended_submission_date
    if recommended is not None and today >= recommended:
        return "VISA_APPLY_NOW"
    return None


def deadline_approaching(application: VisaApplication, today: date, window_days: int) -> bool:
    remaining = days_until(application.latest_submission_date, today)
    return 0 <= remaining <= window_days


def process_visa_timeline_alerts(
    dispatcher: NotificationDispatcher,
    today: Optional[date] = None,
    deadline_days: Optional[int] = None,
) -> SweepReport:
    """Send today's alerts; a second run on the same day sends nothing new."""

    today = today or date.today()
    if deadline_days is None:
        deadline_days = current_app.config.get("DEADLINE_ALERT_DAYS", 7)

    applications = (
        VisaApplication.query.filter(
            VisaApplication.status.in_(OPEN_STATUSES),
            VisaApplication.latest_submission_date.isnot(None),
            VisaApplication.is_archived.is_(False),
        )
        .order_by(VisaApplication.id)
        .all()
    )

    report = SweepReport()
    for application in applications:
        report.checked += 1
        alert_types = []
        timeline_alert = classify_timeline_alert(application, today)
        if timeline_alert:
            alert_types.append(timeline_alert)
        if deadline_approaching(application, today, deadline_days):
            alert_types.append("DEADLINE_APPROACHING")

        for alert_type in alert_types:
            key = alert_key(application.id, alert_type, today)
            if dispatcher.send(application, alert_type, idempotency_key=key) is None:
                report.skipped += 1
            else:
                report.sent.append(key)

    current_app.logger.info(
        "Visa alert sweep for %s: %d applications checked, %d sent, %d already sent",
        today.isoformat(),
        report.checked,
        len(report.sent),
        report.skipped,
    )
    return report
