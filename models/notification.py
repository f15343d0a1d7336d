"""Notification model definition."""

from datetime import datetime

from . import db


NOTIFICATION_TYPES = (
    "DEADLINE_APPROACHING",
    "DECISION_EXPECTED",
    "STATUS_UPDATE",
    "VISA_APPLY_NOW",
    "VISA_TIMELINE_TIGHT",
    "VISA_HIGH_RISK",
)


class Notification(db.Model):
    """A user-facing message queued for delivery."""

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    type = db.Column(
        db.Enum(*NOTIFICATION_TYPES, name="notification_type_enum"), nullable=False
    )
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    application_id = db.Column(
        db.Integer, db.ForeignKey("visa_applications.id"), nullable=True, index=True
    )
    # (application id, alert type, day) for sweep alerts.
    idempotency_key = db.Column(db.String(128), unique=True, nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship("User", backref=db.backref("notifications", lazy="dynamic"))

    def to_dict(self) -> dict:
        """Serialize the notification into a dictionary."""

        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "application_id": self.application_id,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
