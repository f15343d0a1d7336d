"""Notifications blueprint: the traveler's inbox."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from services.notifications import list_notifications, mark_notification_read
from utils.auth import require_current_user

notifications_bp = Blueprint("notifications", __name__)


@notifications_bp.route("", methods=["GET"])
@jwt_required()
def inbox():
    user = require_current_user()
    unread_only = request.args.get("unread", "").lower() in {"1", "true", "yes"}
    notifications = list_notifications(user, unread_only=unread_only)
    return jsonify([notification.to_dict() for notification in notifications])


@notifications_bp.route("/<int:notification_id>/read", methods=["PATCH"])
@jwt_required()
def mark_read(notification_id: int):
    user = require_current_user()
    notification = mark_notification_read(notification_id, user)
    return jsonify(notification.to_dict())
