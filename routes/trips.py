"""Trips blueprint: trip CRUD, destinations and feasibility recalculation."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from services.feasibility import recalculate_trip_feasibility
from services.trips import add_destination_to_trip, create_trip, get_trip_for_user
from utils.auth import require_current_user
from utils.request_validation import parse_date, parse_json_request

trips_bp = Blueprint("trips", __name__)


@trips_bp.route("", methods=["POST"])
@jwt_required()
def create():
    user = require_current_user()
    data = parse_json_request(request, required_keys=["title", "start_date", "end_date"])

    trip = create_trip(
        user,
        title=str(data["title"]).strip(),
        start_date=parse_date(data["start_date"], "start_date"),
        end_date=parse_date(data["end_date"], "end_date"),
        description=data.get("description"),
    )
    return jsonify(trip.to_dict(include_destinations=True)), 201


@trips_bp.route("/<int:trip_id>", methods=["GET"])
@jwt_required()
def get_trip(trip_id: int):
    user = require_current_user()
    trip = get_trip_for_user(trip_id, user)
    return jsonify(trip.to_dict(include_destinations=True))


@trips_bp.route("/<int:trip_id>/destinations", methods=["POST"])
@jwt_required()
def add_destination(trip_id: int):
    """Add a destination; its visa verdict and the trip verdict are recomputed."""

    user = require_current_user()
    trip = get_trip_for_user(trip_id, user)
    data = parse_json_request(
        request, required_keys=["country_code", "entry_date", "exit_date"]
    )

    destination = add_destination_to_trip(
        current_app.extensions["visa_engine"],
        trip,
        data["country_code"],
        parse_date(data["entry_date"], "entry_date"),
        parse_date(data["exit_date"], "exit_date"),
        data.get("travel_purpose")
        or current_app.config.get("DEFAULT_TRAVEL_PURPOSE", "TOURISM"),
    )
    return jsonify({"destination": destination.to_dict(), "trip": trip.to_dict()}), 201


@trips_bp.route("/<int:trip_id>/destinations", methods=["GET"])
@jwt_required()
def list_destinations(trip_id: int):
    user = require_current_user()
    trip = get_trip_for_user(trip_id, user)
    return jsonify([destination.to_dict() for destination in trip.destinations])


@trips_bp.route("/<int:trip_id>/recalculate", methods=["POST"])
@jwt_required()
def recalculate(trip_id: int):
    user = require_current_user()
    trip = get_trip_for_user(trip_id, user)
    result = recalculate_trip_feasibility(trip)
    return jsonify({"trip_id": trip.id, "feasibility": result.to_dict()})
