"""Applications blueprint: start, status transitions, tracking and documents."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import BadRequest

from models import db
from models.trip import Trip, TripDestination
from models.visa_application import VisaApplication
from services.applications import (
    get_application_for_user,
    get_tracking_details,
    record_document_upload,
    start_visa_application,
    update_application_status,
)
from utils.auth import require_current_user
from utils.errors import EntityNotFound
from utils.request_validation import parse_date, parse_json_request

applications_bp = Blueprint("applications", __name__)

DATE_FIELDS = ("appointment_date", "submission_date", "decision_date")


def _get_destination_or_404(destination_id, user) -> TripDestination:
    destination = (
        TripDestination.query.join(Trip)
        .filter(TripDestination.id == destination_id, Trip.user_id == user.id)
        .first()
    )
    if destination is None:
        raise EntityNotFound("Trip destination", destination_id)
    return destination


@applications_bp.route("", methods=["GET"])
@jwt_required()
def list_applications():
    user = require_current_user()
    applications = (
        VisaApplication.query.filter_by(user_id=user.id)
        .order_by(VisaApplication.created_at.desc())
        .all()
    )
    return jsonify([application.to_dict() for application in applications])


@applications_bp.route("", methods=["POST"])
@jwt_required()
def start_application():
    """Start an application for a trip destination that needs a visa."""

    user = require_current_user()
    data = parse_json_request(request, required_keys=["trip_destination_id"])
    destination = _get_destination_or_404(data["trip_destination_id"], user)

    store = current_app.extensions["visa_engine"].store
    application, created = start_visa_application(
        store, user, destination, application_channel=data.get("application_channel")
    )
    return jsonify(application.to_dict()), 201 if created else 200


@applications_bp.route("/<int:application_id>/status", methods=["PATCH"])
@jwt_required()
def update_status(application_id: int):
    user = require_current_user()
    application = get_application_for_user(application_id, user)
    data = parse_json_request(request, required_keys=["status"])

    status = data["status"]
    if not isinstance(status, str):
        raise BadRequest("status must be a string.")

    updates = {
        name: parse_date(data.get(name), name, required=False) for name in DATE_FIELDS
    }
    updates["reference_number"] = data.get("reference_number")
    updates["notes"] = data.get("notes")

    application = update_application_status(
        application,
        status.strip().upper(),
        updates,
        dispatcher=current_app.extensions["notification_dispatcher"],
    )
    return jsonify(application.to_dict())


@applications_bp.route("/<int:application_id>/tracking", methods=["GET"])
@jwt_required()
def tracking(application_id: int):
    user = require_current_user()
    application = get_application_for_user(application_id, user)
    return jsonify(get_tracking_details(application))


@applications_bp.route("/<int:application_id>/documents", methods=["POST"])
@jwt_required()
def upload_document(application_id: int):
    """Record that a document of the given type is now on file."""

    user = require_current_user()
    application = get_application_for_user(application_id, user)
    data = parse_json_request(request, required_keys=["document_type"])

    document, completeness = record_document_upload(
        application, data["document_type"], file_url=data.get("file_url")
    )
    db.session.refresh(application)
    return (
        jsonify(
            {
                "document": document.to_dict(),
                "completeness": completeness,
                "status": application.status,
            }
        ),
        201,
    )
