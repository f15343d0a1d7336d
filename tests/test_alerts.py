"""Tests for notifications and the daily visa alert sweep."""

from __future__ import annotations

from datetime import timedelta

import pytest

from models.notification import Notification
from services.alerts import process_visa_timeline_alerts
from services.applications import start_visa_application, update_application_status
from services.notifications import DatabaseNotificationDispatcher, alert_key, render
from services.trips import add_destination_to_trip, create_trip

from conftest import TODAY


def _days(count):
    return TODAY + timedelta(days=count)


@pytest.fixture()
def dispatcher():
    return DatabaseNotificationDispatcher()


@pytest.fixture()
def application(engine, traveler):
    """An open application: entry in 60 days, latest submission in 43, recommended in 29."""

    trip = create_trip(traveler, "New York", _days(60), _days(70))
    destination = add_destination_to_trip(
        engine, trip, "US", _days(60), _days(70), "TOURISM", today=TODAY
    )
    application, _ = start_visa_application(engine.store, traveler, destination, today=TODAY)
    return application


def _sent_types(report):
    return [key.split(":")[1] for key in report.sent]


def test_render_status_update_includes_status(application):
    title, message = render("STATUS_UPDATE", application)

    assert title == "Status Updated"
    assert message == "Your application status is now NOT_STARTED"


def test_render_rejects_unknown_type(application):
    with pytest.raises(ValueError):
        render("BIRTHDAY", application)


def test_alert_key_format(application):
    assert alert_key(application.id, "VISA_APPLY_NOW", _days(3)) == (
        f"{application.id}:VISA_APPLY_NOW:2026-03-04"
    )


def test_nothing_to_send_early(application, dispatcher):
    report = process_visa_timeline_alerts(dispatcher, today=TODAY, deadline_days=7)

    assert report.checked == 1
    assert report.sent == []


def test_apply_now_after_recommended_date(application, dispatcher):
    report = process_visa_timeline_alerts(dispatcher, today=_days(30), deadline_days=7)

    assert _sent_types(report) == ["VISA_APPLY_NOW"]
    notification = Notification.query.one()
    assert notification.user_id == application.user_id
    assert notification.application_id == application.id
    assert notification.title == "Visa Application Reminder"


def test_sweep_is_idempotent_per_day(application, dispatcher):
    first = process_visa_timeline_alerts(dispatcher, today=_days(38), deadline_days=7)
    second = process_visa_timeline_alerts(dispatcher, today=_days(38), deadline_days=7)

    assert _sent_types(first) == ["VISA_APPLY_NOW", "DEADLINE_APPROACHING"]
    assert second.sent == []
    assert second.skipped == 2
    assert Notification.query.count() == 2

    next_day = process_visa_timeline_alerts(dispatcher, today=_days(39), deadline_days=7)
    assert len(next_day.sent) == 2


@pytest.mark.parametrize(
    ("offset", "expected"),
    [(45, "VISA_TIMELINE_TIGHT"), (55, "VISA_HIGH_RISK")],
)
def test_timeline_risk_alerts(application, dispatcher, offset, expected):
    report = process_visa_timeline_alerts(dispatcher, today=_days(offset), deadline_days=7)

    assert _sent_types(report) == [expected]


def test_deadline_window_comes_from_config(app, application, dispatcher):
    app.config["DEADLINE_ALERT_DAYS"] = 14

    report = process_visa_timeline_alerts(dispatcher, today=_days(30))

    assert _sent_types(report) == ["VISA_APPLY_NOW", "DEADLINE_APPROACHING"]


def test_sweep_skips_applications_past_open_states(application, dispatcher):
    update_application_status(application, "DOCUMENTS_IN_PROGRESS", {}, dispatcher, today=TODAY)
    update_application_status(
        application,
        "APPOINTMENT_BOOKED",
        {"appointment_date": _days(10)},
        dispatcher,
        today=TODAY,
    )
    before = Notification.query.count()

    report = process_visa_timeline_alerts(dispatcher, today=_days(55), deadline_days=7)

    assert report.checked == 0
    assert Notification.query.count() == before
