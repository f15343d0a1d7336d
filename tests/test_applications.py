"""Tests for the visa application lifecycle."""

from __future__ import annotations

from datetime import timedelta

import pytest

from models import db
from models.notification import Notification
from models.visa_application import VisaApplication
from services.applications import (
    calculate_progress,
    check_document_completeness,
    get_tracking_details,
    record_document_upload,
    start_visa_application,
    update_application_status,
)
from services.notifications import DatabaseNotificationDispatcher
from services.trips import add_destination_to_trip, create_trip
from utils.errors import InvalidState, UnknownReference

from conftest import TODAY


def _days(count):
    return TODAY + timedelta(days=count)


@pytest.fixture()
def us_destination(engine, traveler):
    trip = create_trip(traveler, "New York", _days(60), _days(70))
    return add_destination_to_trip(engine, trip, "US", _days(60), _days(70), "TOURISM", today=TODAY)


@pytest.fixture()
def application(engine, traveler, us_destination):
    application, created = start_visa_application(
        engine.store, traveler, us_destination, today=TODAY
    )
    assert created is True
    return application


@pytest.fixture()
def dispatcher():
    return DatabaseNotificationDispatcher()


def _advance(application, dispatcher, *steps):
    for status, updates in steps:
        update_application_status(application, status, updates, dispatcher, today=TODAY)


def test_start_application_stores_timeline(application, reference_data, us_destination):
    assert application.status == "NOT_STARTED"
    assert application.visa_requirement_id == reference_data.rules.ng_us.id
    assert application.destination_iso_code == "US"
    assert application.application_channel == "EMBASSY"
    assert application.latest_submission_date == _days(43)
    assert application.recommended_submission_date == _days(29)
    assert application.checklist_total == 3
    assert [entry.status for entry in application.history] == ["NOT_STARTED"]


def test_duplicate_start_returns_existing(engine, traveler, us_destination, application):
    again, created = start_visa_application(engine.store, traveler, us_destination, today=TODAY)

    assert created is False
    assert again.id == application.id
    assert VisaApplication.query.count() == 1


def test_start_rejects_visa_free_destination(engine, traveler):
    trip = create_trip(traveler, "Accra", _days(10), _days(15))
    destination = add_destination_to_trip(
        engine, trip, "GH", _days(10), _days(15), "TOURISM", today=TODAY
    )

    with pytest.raises(InvalidState):
        start_visa_application(engine.store, traveler, destination, today=TODAY)


def test_full_legal_chain(application, dispatcher):
    _advance(
        application,
        dispatcher,
        ("DOCUMENTS_IN_PROGRESS", {}),
        ("APPOINTMENT_BOOKED", {"appointment_date": _days(5)}),
        ("SUBMITTED", {"submission_date": _days(6)}),
    )
    assert application.expected_decision_date == _days(16)

    update_application_status(application, "UNDER_REVIEW", {}, dispatcher, today=_days(16))
    update_application_status(
        application, "APPROVED", {"decision_date": _days(17)}, dispatcher, today=_days(17)
    )

    assert application.status == "APPROVED"
    assert application.appointment_date == _days(5)
    assert application.decision_date == _days(17)
    assert [entry.status for entry in application.history] == [
        "NOT_STARTED",
        "DOCUMENTS_IN_PROGRESS",
        "APPOINTMENT_BOOKED",
        "SUBMITTED",
        "UNDER_REVIEW",
        "APPROVED",
    ]

    types = [notification.type for notification in Notification.query.order_by(Notification.id)]
    assert types.count("STATUS_UPDATE") == 5
    assert types.count("DECISION_EXPECTED") == 1
    assert types.index("DECISION_EXPECTED") < len(types) - 1


def test_submitted_requires_submission_date(application, dispatcher):
    _advance(
        application,
        dispatcher,
        ("DOCUMENTS_IN_PROGRESS", {}),
        ("APPOINTMENT_BOOKED", {"appointment_date": _days(5)}),
    )

    with pytest.raises(InvalidState):
        update_application_status(application, "SUBMITTED", {}, dispatcher, today=TODAY)

    assert application.status == "APPOINTMENT_BOOKED"
    assert len(application.history) == 3


def test_appointment_requires_appointment_date(application, dispatcher):
    _advance(application, dispatcher, ("DOCUMENTS_IN_PROGRESS", {}))

    with pytest.raises(InvalidState):
        update_application_status(application, "APPOINTMENT_BOOKED", {}, dispatcher, today=TODAY)


def test_skipping_states_is_rejected(application, dispatcher):
    with pytest.raises(InvalidState) as excinfo:
        update_application_status(application, "UNDER_REVIEW", {}, dispatcher, today=TODAY)

    error = excinfo.value
    assert error.current == "NOT_STARTED"
    assert error.requested == "UNDER_REVIEW"
    assert "NOT_STARTED" in error.description
    assert "UNDER_REVIEW" in error.description
    assert application.status == "NOT_STARTED"
    assert Notification.query.count() == 0


def test_terminal_state_has_no_transitions(application, dispatcher):
    with pytest.raises(InvalidState):
        update_application_status(application, "CANCELLED", {}, dispatcher, today=TODAY)


def test_document_uploads_auto_advance(application):
    record_document_upload(application, "passport")
    _, completeness = record_document_upload(application, "PHOTO", file_url="https://files/photo.jpg")

    assert completeness["is_complete"] is False
    assert completeness["missing_mandatory"] == ["BANK_STATEMENT"]
    assert application.status == "NOT_STARTED"

    _, completeness = record_document_upload(application, "BANK_STATEMENT")

    assert completeness == {
        "is_complete": True,
        "total_mandatory": 3,
        "uploaded_count": 3,
        "missing_mandatory": [],
    }
    assert application.status == "DOCUMENTS_IN_PROGRESS"
    assert application.checklist_completed == 3
    assert application.history[-1].changed_by == "SYSTEM"


def test_reuploading_a_document_updates_it(application):
    record_document_upload(application, "PASSPORT", file_url="https://files/v1.pdf")
    document, completeness = record_document_upload(
        application, "PASSPORT", file_url="https://files/v2.pdf"
    )

    assert document.file_url == "https://files/v2.pdf"
    assert completeness["uploaded_count"] == 1


def test_unknown_document_type(application):
    with pytest.raises(UnknownReference):
        record_document_upload(application, "SELFIE")


@pytest.mark.parametrize(
    ("status", "uploaded", "total", "expected"),
    [
        ("NOT_STARTED", 0, 4, 0),
        ("NOT_STARTED", 2, 4, 10),
        ("DOCUMENTS_IN_PROGRESS", 1, 4, 20),
        ("DOCUMENTS_IN_PROGRESS", 0, 0, 20),
        ("APPOINTMENT_BOOKED", 4, 4, 40),
        ("SUBMITTED", 0, 4, 60),
        ("UNDER_REVIEW", 0, 4, 80),
        ("APPROVED", 0, 4, 100),
        ("REJECTED", 0, 4, 100),
        ("CANCELLED", 4, 4, 0),
    ],
)
def test_calculate_progress(status, uploaded, total, expected):
    completeness = {"total_mandatory": total, "uploaded_count": uploaded}
    assert calculate_progress(status, completeness) == expected


def test_tracking_details(application):
    record_document_upload(application, "PASSPORT")

    details = get_tracking_details(application)

    assert details["current_step"] == "NOT_STARTED"
    assert details["completeness"] == check_document_completeness(application)
    assert details["progress_percentage"] == 7
    assert details["application"]["id"] == application.id


def _walk_to_review(application, dispatcher, today):
    for status, updates in (
        ("DOCUMENTS_IN_PROGRESS", {}),
        ("APPOINTMENT_BOOKED", {"appointment_date": today}),
        ("SUBMITTED", {"submission_date": today}),
        ("UNDER_REVIEW", {}),
    ):
        update_application_status(application, status, updates, dispatcher, today=today)


def test_status_change_persists_trip_feasibility(application, dispatcher, us_destination):
    trip = us_destination.trip
    assert trip.feasibility_status == "FEASIBLE"

    # 15 days before entry: enough for the 10-day maximum, short of the 21-day lead.
    update_application_status(
        application, "DOCUMENTS_IN_PROGRESS", {}, dispatcher, today=_days(45)
    )
    db.session.expire_all()

    assert trip.feasibility_status == "RISKY"
    assert trip.feasibility_issues == [
        {"destination": "US", "message": "Only 15 days available. Estimated 21 days needed."}
    ]
    assert us_destination.feasibility_status == "RISKY"


def test_approved_application_makes_destination_feasible(
    application, dispatcher, us_destination
):
    _walk_to_review(application, dispatcher, _days(52))
    assert us_destination.trip.feasibility_status == "IMPOSSIBLE"

    update_application_status(
        application, "APPROVED", {"decision_date": _days(55)}, dispatcher, today=_days(55)
    )
    db.session.expire_all()

    trip = us_destination.trip
    assert trip.feasibility_status == "FEASIBLE"
    assert trip.feasibility_issues == []
    assert us_destination.feasibility_reason == "Visa approved"


def test_rejected_application_makes_trip_impossible(application, dispatcher, us_destination):
    _walk_to_review(application, dispatcher, TODAY)

    update_application_status(
        application, "REJECTED", {"decision_date": _days(2)}, dispatcher, today=_days(2)
    )
    db.session.expire_all()

    trip = us_destination.trip
    assert trip.feasibility_status == "IMPOSSIBLE"
    assert trip.feasibility_issues == [
        {"destination": "US", "message": "Visa application rejected"}
    ]
