"""Helpers for resolving the authenticated traveler inside a request."""

from __future__ import annotations

from flask_jwt_extended import get_jwt_identity
from werkzeug.exceptions import NotFound

from models import db
from models.user import User


def get_current_user() -> User | None:
    try:
        identity = get_jwt_identity()
    except RuntimeError:
        return None
    if identity is None:
        return None
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


def require_current_user() -> User:
    """Return the traveler behind the request's JWT or raise 404."""

    user = get_current_user()
    if user is None:
        raise NotFound("User not found.")
    return user
