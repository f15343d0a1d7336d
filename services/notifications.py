"""User-facing notifications about visa applications.

The engine only decides when a notification fires and of which type;
``NotificationDispatcher`` implementations own persistence and delivery.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from flask import current_app

from models import db
from models.notification import NOTIFICATION_TYPES, Notification
from models.visa_application import VisaApplication
from utils.errors import EntityNotFound


MESSAGES = {
    "DEADLINE_APPROACHING": (
        "Upcoming Deadline",
        "Your visa submission deadline is approaching.",
    ),
    "DECISION_EXPECTED": ("Decision Expected", "Your visa decision is expected today."),
    "STATUS_UPDATE": ("Status Updated", "Your application status is now {status}"),
    "VISA_APPLY_NOW": (
        "Visa Application Reminder",
        "You should start your visa application now.",
    ),
    "VISA_TIMELINE_TIGHT": (
        "Visa Timeline Tight",
        "Your visa timeline is tight. Delays may affect your trip.",
    ),
    "VISA_HIGH_RISK": (
        "High Risk Visa Timeline",
        "High risk: Your visa may not be ready before travel.",
    ),
}


def alert_key(application_id: int, notification_type: str, day: date) -> str:
    """Identify one alert type for one application on one day."""

    return f"{application_id}:{notification_type}:{day.isoformat()}"


def render(notification_type: str, application: VisaApplication) -> tuple[str, str]:
    if notification_type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unsupported notification type: {notification_type}")
    title, template = MESSAGES[notification_type]
    return title, template.format(status=application.status)


class NotificationDispatcher(ABC):
    """Fire-and-forget notification sink."""

    @abstractmethod
    def send(
        self,
        application: VisaApplication,
        notification_type: str,
        idempotency_key: Optional[str] = None,
    ) -> Optional[Notification]:
        """Send a notification; return ``None`` when the key was already used."""


class DatabaseNotificationDispatcher(NotificationDispatcher):
    """Persist notifications as rows for the user's inbox."""

    def send(self, application, notification_type, idempotency_key=None):
        if idempotency_key and Notification.query.filter_by(
            idempotency_key=idempotency_key
        ).first():
            current_app.logger.debug("Skipping duplicate notification %s", idempotency_key)
            return None

        title, message = render(notification_type, application)
        notification = Notification(
            user_id=application.user_id,
            type=notification_type,
            title=title,
            message=message,
            application_id=application.id,
            idempotency_key=idempotency_key,
        )
        db.session.add(notification)
        db.session.commit()

        current_app.logger.info(
            "Sent %s notification to user %s for application %s",
            notification_type,
            application.user_id,
            application.id,
        )
        return notification


def list_notifications(user, unread_only: bool = False) -> list[Notification]:
    """Return the user's inbox, newest first."""

    query = Notification.query.filter_by(user_id=user.id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def mark_notification_read(notification_id: int, user) -> Notification:
    notification = Notification.query.filter_by(id=notification_id, user_id=user.id).first()
    if notification is None:
        raise EntityNotFound("Notification", notification_id)
    if not notification.is_read:
        notification.is_read = True
        db.session.commit()
    return notification
