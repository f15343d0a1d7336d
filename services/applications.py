"""Visa application lifecycle: start, status transitions, documents, progress.

Legal transitions are strictly forward::

    NOT_STARTED -> DOCUMENTS_IN_PROGRESS -> APPOINTMENT_BOOKED -> SUBMITTED
        -> UNDER_REVIEW -> APPROVED | REJECTED

Every successful transition appends a history entry, fires a STATUS_UPDATE
notification and recalculates the linked trip's feasibility.
"""

from __future__ import annotations

from datetime import date
from types import MappingProxyType
from typing import Mapping, Optional

from flask import current_app

from models import db
from models.trip import TripDestination
from models.user import User
from models.visa_application import (
    APPOINTMENT_BOOKED,
    APPROVED,
    CANCELLED,
    DOCUMENTS_IN_PROGRESS,
    NOT_STARTED,
    OPEN_STATUSES,
    REJECTED,
    SUBMITTED,
    UNDER_REVIEW,
    VisaApplication,
    VisaApplicationDocument,
)
from models.visa_requirement import DOCUMENT_TYPES, VisaRequiredDocument, VisaRequirement
from storage.abstract_storage import ReferenceStore
from utils.errors import EntityNotFound, InvalidState, UnknownReference

from .feasibility import recalculate_trip_feasibility
from .notifications import DatabaseNotificationDispatcher, NotificationDispatcher
from .timeline import calculate_visa_timeline


STATUS_FLOW = MappingProxyType(
    {
        NOT_STARTED: (DOCUMENTS_IN_PROGRESS,),
        DOCUMENTS_IN_PROGRESS: (APPOINTMENT_BOOKED,),
        APPOINTMENT_BOOKED: (SUBMITTED,),
        SUBMITTED: (UNDER_REVIEW,),
        UNDER_REVIEW: (APPROVED, REJECTED),
    }
)

STATUS_PROGRESS = MappingProxyType(
    {
        NOT_STARTED: 0,
        DOCUMENTS_IN_PROGRESS: 20,
        APPOINTMENT_BOOKED: 40,
        SUBMITTED: 60,
        UNDER_REVIEW: 80,
        APPROVED: 100,
        REJECTED: 100,
        CANCELLED: 0,
    }
)
DOCUMENT_PROGRESS_CAP = 20

CHANNEL_BY_VISA_TYPE = {
    "E_VISA": "EVISA_PORTAL",
    "ETA": "ETA_PORTAL",
    "TRAVEL_AUTH": "ETA_PORTAL",
    "EMBASSY_VISA": "EMBASSY",
    "TRANSIT_VISA": "EMBASSY",
}

UPDATABLE_FIELDS = ("appointment_date", "submission_date", "decision_date", "reference_number")


def get_application_for_user(application_id: int, user: User) -> VisaApplication:
    application = VisaApplication.query.filter_by(id=application_id, user_id=user.id).first()
    if application is None:
        raise EntityNotFound("Visa application", application_id)
    return application


def resolve_rule_for_destination(
    store: ReferenceStore, user: User, destination: TripDestination
) -> Optional[VisaRequirement]:
    """Return the active rule that governs a trip destination, if one exists."""

    passport = store.get_country(user.passport_country_code) if user.passport_country_code else None
    rule = None
    if passport is not None:
        rule = store.find_active_rule(passport, destination.country, destination.travel_purpose)
    if rule is None:
        rule = store.find_destination_default_rule(destination.country, destination.travel_purpose)
    return rule


def _mandatory_document_types(visa_requirement_id: Optional[int]) -> list[str]:
    if visa_requirement_id is None:
        return []
    documents = (
        VisaRequiredDocument.query.filter_by(
            visa_requirement_id=visa_requirement_id, mandatory=True
        )
        .order_by(VisaRequiredDocument.display_order.asc())
        .all()
    )
    return [document.document_type for document in documents]


def start_visa_application(
    store: ReferenceStore,
    user: User,
    destination: TripDestination,
    application_channel: Optional[str] = None,
    today: Optional[date] = None,
) -> tuple[VisaApplication, bool]:
    """Open an application for a destination.

    Returns ``(application, created)``; a second start for the same
    destination returns the existing record with ``created=False``.
    """

    if destination.trip is None or destination.trip.user_id != user.id:
        raise EntityNotFound("Trip destination", destination.id)
    if not destination.visa_required:
        raise InvalidState("Visa not required for this destination.")

    existing = VisaApplication.query.filter_by(
        user_id=user.id, trip_destination_id=destination.id
    ).first()
    if existing is not None:
        return existing, False

    rule = resolve_rule_for_destination(store, user, destination)
    processing_time_max = rule.processing_time_max if rule else destination.processing_time_max
    timeline = calculate_visa_timeline(processing_time_max, destination.entry_date)
    mandatory = _mandatory_document_types(rule.id if rule else None)

    application = VisaApplication(
        user_id=user.id,
        trip_id=destination.trip_id,
        trip_destination=destination,
        visa_requirement=rule,
        destination_iso_code=destination.country_code,
        application_channel=application_channel
        or CHANNEL_BY_VISA_TYPE.get(destination.visa_type, "EVISA_PORTAL"),
        application_date=today or date.today(),
        latest_submission_date=timeline.latest_submission_date,
        recommended_submission_date=timeline.recommended_submission_date,
        checklist_total=len(mandatory),
        checklist_completed=0,
    )
    application.record_status(NOT_STARTED, changed_by="USER", notes="Application started")
    db.session.add(application)
    db.session.commit()

    current_app.logger.info(
        "Started visa application %s for destination %s (rule %s)",
        application.id,
        destination.id,
        rule.id if rule else None,
    )

    recalculate_trip_feasibility(destination.trip, today=today)
    return application, True


def _processing_time_max(application: VisaApplication) -> Optional[int]:
    if application.visa_requirement is not None:
        return application.visa_requirement.processing_time_max
    if application.trip_destination is not None:
        return application.trip_destination.processing_time_max
    return None


def update_application_status(
    application: VisaApplication,
    new_status: str,
    updates: Optional[Mapping] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    changed_by: str = "USER",
    today: Optional[date] = None,
) -> VisaApplication:
    """Move an application one legal step forward.

    ``updates`` may carry ``appointment_date``, ``submission_date``,
    ``decision_date``, ``reference_number`` and ``notes``. Dates must already
    be ``datetime.date`` values.
    """

    updates = dict(updates or {})
    dispatcher = dispatcher or DatabaseNotificationDispatcher()
    today = today or date.today()
    current = application.status

    if new_status not in STATUS_FLOW.get(current, ()):
        raise InvalidState(
            f"Invalid status transition: {current} -> {new_status}",
            current=current,
            requested=new_status,
        )

    if new_status == APPOINTMENT_BOOKED and not updates.get("appointment_date"):
        raise InvalidState(
            f"appointment_date is required to move from {current} to {new_status}",
            current=current,
            requested=new_status,
        )

    if new_status == SUBMITTED:
        submission_date = updates.get("submission_date")
        if not submission_date:
            raise InvalidState(
                f"submission_date is required to move from {current} to {new_status}",
                current=current,
                requested=new_status,
            )
        entry_date = application.trip_destination.entry_date
        application.expected_decision_date = calculate_visa_timeline(
            _processing_time_max(application), entry_date, submission_date
        ).expected_decision_date

    decision_due_today = (
        new_status == UNDER_REVIEW and application.expected_decision_date == today
    )

    for name in UPDATABLE_FIELDS:
        if updates.get(name):
            setattr(application, name, updates[name])

    application.record_status(new_status, changed_by=changed_by, notes=updates.get("notes"))
    db.session.commit()

    current_app.logger.info(
        "Visa application %s moved %s -> %s", application.id, current, new_status
    )

    if decision_due_today:
        dispatcher.send(application, "DECISION_EXPECTED")
    dispatcher.send(application, "STATUS_UPDATE")

    if application.trip is not None:
        recalculate_trip_feasibility(application.trip, today=today)
    return application


def check_document_completeness(application: VisaApplication) -> dict:
    """Compare uploaded documents against the rule's mandatory checklist."""

    mandatory = _mandatory_document_types(application.visa_requirement_id)
    uploaded = application.documents.filter_by(uploaded=True).all()
    uploaded_types = {document.document_type for document in uploaded}
    missing = [document_type for document_type in mandatory if document_type not in uploaded_types]

    return {
        "is_complete": not missing,
        "total_mandatory": len(mandatory),
        "uploaded_count": len(uploaded),
        "missing_mandatory": missing,
    }


def record_document_upload(
    application: VisaApplication,
    document_type: str,
    file_url: Optional[str] = None,
) -> tuple[VisaApplicationDocument, dict]:
    """Mark a document as present and auto-advance once the checklist is complete."""

    document_type = (document_type or "").upper()
    if document_type not in DOCUMENT_TYPES:
        raise UnknownReference("document type", document_type)

    document = application.documents.filter_by(document_type=document_type).first()
    if document is None:
        document = VisaApplicationDocument(application=application, document_type=document_type)
        db.session.add(document)
    document.uploaded = True
    if file_url:
        document.file_url = file_url
    db.session.flush()

    completeness = check_document_completeness(application)
    application.checklist_completed = (
        completeness["total_mandatory"] - len(completeness["missing_mandatory"])
    )
    if completeness["is_complete"] and application.status == NOT_STARTED:
        application.record_status(
            DOCUMENTS_IN_PROGRESS,
            changed_by="SYSTEM",
            notes="All mandatory documents uploaded",
        )
        current_app.logger.info(
            "Visa application %s advanced to %s after document upload",
            application.id,
            DOCUMENTS_IN_PROGRESS,
        )
    db.session.commit()
    return document, completeness


def calculate_progress(status: str, completeness: Mapping) -> int:
    progress = STATUS_PROGRESS.get(status, 0)
    if status in OPEN_STATUSES:
        total = completeness.get("total_mandatory") or 0
        ratio = 0
        if total > 0:
            ratio = round(completeness.get("uploaded_count", 0) / total * DOCUMENT_PROGRESS_CAP)
        progress = max(progress, min(ratio, DOCUMENT_PROGRESS_CAP))
    return progress


def get_tracking_details(application: VisaApplication) -> dict:
    completeness = check_document_completeness(application)
    return {
        "application": application.to_dict(),
        "completeness": completeness,
        "progress_percentage": calculate_progress(application.status, completeness),
        "current_step": application.status,
        "updated_at": application.updated_at.isoformat() if application.updated_at else None,
    }
