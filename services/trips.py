"""Trip and destination management."""

from __future__ import annotations

from datetime import date
from typing import Optional

from models import db
from models.trip import Trip, TripDestination
from models.user import User
from utils.errors import EntityNotFound, InvalidState

from .feasibility import check_destination_feasibility, recalculate_trip_feasibility
from .rules_engine import TravelDates, UserContext, VisaRulesEngine


def create_trip(
    user: User,
    title: str,
    start_date: date,
    end_date: date,
    description: Optional[str] = None,
) -> Trip:
    if end_date < start_date:
        raise InvalidState("Trip end date must not be before its start date.")

    trip = Trip(
        user_id=user.id,
        title=title,
        description=description,
        start_date=start_date,
        end_date=end_date,
    )
    db.session.add(trip)
    db.session.commit()
    return trip


def get_trip_for_user(trip_id: int, user: User) -> Trip:
    trip = Trip.query.filter_by(id=trip_id, user_id=user.id).first()
    if trip is None:
        raise EntityNotFound("Trip", trip_id)
    return trip


def add_destination_to_trip(
    engine: VisaRulesEngine,
    trip: Trip,
    country_code: str,
    entry_date: date,
    exit_date: date,
    travel_purpose: str,
    today: Optional[date] = None,
) -> TripDestination:
    """Resolve the visa for a new leg, cache its verdict, and recalculate the trip."""

    if exit_date < entry_date:
        raise InvalidState("Exit date must not be before entry date.")

    user = trip.user
    if user is None:
        raise EntityNotFound("User", trip.user_id)
    if not user.passport_country_code:
        raise InvalidState("A passport country is required before adding destinations.")

    country = engine.require_country(country_code, "destination country")
    determination = engine.determine(
        user.passport_country_code,
        country.iso_code,
        travel_purpose,
        TravelDates(arrival_date=entry_date, departure_date=exit_date),
        UserContext.from_user(user),
        today=today,
    )
    visa_required = determination.visa_required
    verdict = check_destination_feasibility(
        entry_date, determination.processing_time_max, visa_required, today
    )

    destination = TripDestination(
        country=country,
        entry_date=entry_date,
        exit_date=exit_date,
        travel_purpose=determination.purpose,
        visa_required=visa_required,
        visa_type=determination.visa_type,
        processing_time_min=determination.processing_time_min,
        processing_time_max=determination.processing_time_max,
        feasibility_status=verdict.status,
        feasibility_reason=verdict.reason,
    )
    trip.destinations.append(destination)
    db.session.flush()

    recalculate_trip_feasibility(trip, today=today)
    return destination
