"""Countries blueprint: the reference list used by trip and visa forms."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from models.country import Country
from utils.auth import require_current_user

countries_bp = Blueprint("countries", __name__)


@countries_bp.route("", methods=["GET"])
@jwt_required()
def list_countries():
    """Return every active country ordered by name."""

    require_current_user()
    countries = Country.query.filter(Country.is_active.is_(True)).order_by(Country.name.asc()).all()
    return jsonify([country.to_dict() for country in countries])
