"""Tests for destination feasibility and trip aggregation."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from models.trip import FEASIBLE, IMPOSSIBLE, RISKY, DestinationVerdict
from services.feasibility import (
    aggregate_trip_feasibility,
    check_destination_feasibility,
    recalculate_trip_feasibility,
    required_lead_days,
)
from services.trips import add_destination_to_trip, create_trip

from conftest import TODAY


def test_required_lead_days_uses_exact_buffer():
    assert required_lead_days(10) == 21
    assert required_lead_days(3) == 12
    assert required_lead_days(15) == 28


@pytest.mark.parametrize(
    ("days_ahead", "status"),
    [(5, IMPOSSIBLE), (10, RISKY), (20, RISKY), (21, FEASIBLE), (30, FEASIBLE)],
)
def test_destination_feasibility_thresholds(days_ahead, status):
    verdict = check_destination_feasibility(TODAY + timedelta(days=days_ahead), 10, True, TODAY)

    assert verdict.status == status


def test_destination_feasibility_reason_text():
    verdict = check_destination_feasibility(TODAY + timedelta(days=20), 10, True, TODAY)

    assert verdict.reason == "Only 20 days available. Estimated 21 days needed."


def test_visa_free_destination_is_always_feasible():
    verdict = check_destination_feasibility(TODAY + timedelta(days=1), 10, False, TODAY)

    assert verdict.status == FEASIBLE
    assert verdict.reason == "No visa required"


def test_missing_processing_time_is_feasible():
    verdict = check_destination_feasibility(TODAY + timedelta(days=1), None, True, TODAY)

    assert verdict.status == FEASIBLE


def test_one_impossible_destination_decides_the_trip():
    result = aggregate_trip_feasibility(
        [
            DestinationVerdict("US", True, RISKY, "tight"),
            DestinationVerdict("ZA", True, IMPOSSIBLE, "too late"),
            DestinationVerdict("GB", True, FEASIBLE, "fine"),
        ]
    )

    assert result.status == IMPOSSIBLE
    assert result.issues == [{"destination": "ZA", "message": "too late"}]


def test_risky_destinations_accumulate_issues():
    result = aggregate_trip_feasibility(
        [
            DestinationVerdict("US", True, RISKY, "tight"),
            DestinationVerdict("TH", False, RISKY, "ignored"),
            DestinationVerdict("GB", True, RISKY, "also tight"),
        ]
    )

    assert result.status == RISKY
    assert [issue["destination"] for issue in result.issues] == ["US", "GB"]


def test_all_feasible_trip_has_no_issues():
    result = aggregate_trip_feasibility(
        [
            DestinationVerdict("US", True, FEASIBLE),
            DestinationVerdict("TH", False, FEASIBLE),
        ]
    )

    assert result.status == FEASIBLE
    assert result.issues == []


def test_recalculation_is_idempotent(engine, traveler):
    trip = create_trip(traveler, "Spring", TODAY + timedelta(days=5), TODAY + timedelta(days=40))
    add_destination_to_trip(
        engine, trip, "US", TODAY + timedelta(days=20), TODAY + timedelta(days=25), "TOURISM", today=TODAY
    )
    add_destination_to_trip(
        engine, trip, "TH", TODAY + timedelta(days=30), TODAY + timedelta(days=35), "TOURISM", today=TODAY
    )

    first = recalculate_trip_feasibility(trip, today=TODAY)
    second = recalculate_trip_feasibility(trip, today=TODAY)

    assert first == second
    assert first.status == RISKY
    assert trip.feasibility_status == RISKY
    assert trip.feasibility_issues == [
        {"destination": "US", "message": "Only 20 days available. Estimated 21 days needed."}
    ]


def test_recalculation_follows_the_calendar(engine, traveler):
    trip = create_trip(traveler, "Later", TODAY + timedelta(days=60), TODAY + timedelta(days=70))
    add_destination_to_trip(
        engine, trip, "US", date(2026, 5, 1), date(2026, 5, 5), "TOURISM", today=TODAY
    )
    assert trip.feasibility_status == FEASIBLE

    result = recalculate_trip_feasibility(trip, today=date(2026, 4, 25))

    assert result.status == IMPOSSIBLE
    assert trip.destinations[0].feasibility_status == IMPOSSIBLE
