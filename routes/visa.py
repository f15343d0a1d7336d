"""Visa blueprint: requirement checks, rule details and multi-country plans."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import BadRequest

from services.planner import PlannedDestination, analyze_multi_country_feasibility
from services.rules_engine import TravelDates, UserContext, VisaRulesEngine
from utils.auth import require_current_user
from utils.request_validation import parse_date, parse_json_request

visa_bp = Blueprint("visa", __name__)


def _engine() -> VisaRulesEngine:
    return current_app.extensions["visa_engine"]


def _purpose(data: dict) -> str:
    return data.get("travel_purpose") or current_app.config.get("DEFAULT_TRAVEL_PURPOSE", "TOURISM")


def _passport_code(data: dict, user) -> str:
    code = data.get("passport_country") or user.passport_country_code
    if not code:
        raise BadRequest("passport_country is required when the profile has none.")
    return code


def _user_context(data: dict, user) -> UserContext:
    context = UserContext.from_user(user)
    held = data.get("valid_visa_from")
    if held is None:
        return context
    if not isinstance(held, list):
        raise BadRequest("valid_visa_from must be a list of country codes.")
    return UserContext(
        passport_expiry_date=context.passport_expiry_date,
        valid_visa_from=tuple(str(code).strip().upper() for code in held if code),
        visa_expiry_dates=context.visa_expiry_dates,
    )


@visa_bp.route("/check", methods=["POST"])
@jwt_required()
def check_visa():
    """Resolve the visa requirement for one destination."""

    user = require_current_user()
    data = parse_json_request(request, required_keys=["destination_country"])

    travel_dates = TravelDates(
        arrival_date=parse_date(data.get("arrival_date"), "arrival_date", required=False),
        departure_date=parse_date(data.get("departure_date"), "departure_date", required=False),
    )
    result = _engine().determine(
        _passport_code(data, user),
        data["destination_country"],
        _purpose(data),
        travel_dates,
        _user_context(data, user),
    )
    return jsonify(result.to_dict())


@visa_bp.route("/rules/<int:rule_id>", methods=["GET"])
@jwt_required()
def rule_details(rule_id: int):
    """Return a rule with its document checklist and application steps."""

    require_current_user()
    return jsonify(_engine().visa_details(rule_id))


@visa_bp.route("/destinations/<string:country_code>/rules", methods=["GET"])
@jwt_required()
def destination_rules(country_code: str):
    require_current_user()
    engine = _engine()
    destination = engine.require_country(country_code, "destination country")
    include_inactive = request.args.get("include_inactive", "").lower() in {"1", "true", "yes"}
    rules = engine.store.find_rules_for_destination(destination, active_only=not include_inactive)
    return jsonify({"destination": destination.summary(), "rules": [rule.to_dict() for rule in rules]})


@visa_bp.route("/multi-country", methods=["POST"])
@jwt_required()
def multi_country():
    """Analyze a multi-country plan before it is saved as a trip."""

    user = require_current_user()
    data = parse_json_request(request, required_keys=["destinations"])

    raw_destinations = data["destinations"]
    if not isinstance(raw_destinations, list):
        raise BadRequest("destinations must be a list.")

    destinations = []
    for index, item in enumerate(raw_destinations, start=1):
        if not isinstance(item, dict) or not item.get("country_code"):
            raise BadRequest(f"Destination {index} requires a country_code.")
        destinations.append(
            PlannedDestination(
                country_code=item["country_code"],
                arrival_date=parse_date(item.get("arrival_date"), f"destinations[{index}].arrival_date"),
                departure_date=parse_date(
                    item.get("departure_date"),
                    f"destinations[{index}].departure_date",
                    required=False,
                ),
            )
        )

    analysis = analyze_multi_country_feasibility(
        _engine(),
        _passport_code(data, user),
        destinations,
        _purpose(data),
        _user_context(data, user),
    )
    return jsonify(analysis)
