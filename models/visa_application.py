"""Visa application, status history, and uploaded document models."""

from datetime import datetime

from . import db
from .visa_requirement import DOCUMENT_TYPES


NOT_STARTED = "NOT_STARTED"
DOCUMENTS_IN_PROGRESS = "DOCUMENTS_IN_PROGRESS"
APPOINTMENT_BOOKED = "APPOINTMENT_BOOKED"
SUBMITTED = "SUBMITTED"
UNDER_REVIEW = "UNDER_REVIEW"
ADDITIONAL_DOCS_REQUESTED = "ADDITIONAL_DOCS_REQUESTED"
APPROVED = "APPROVED"
REJECTED = "REJECTED"
CANCELLED = "CANCELLED"
EXPIRED = "EXPIRED"

APPLICATION_STATUSES = (
    NOT_STARTED,
    DOCUMENTS_IN_PROGRESS,
    APPOINTMENT_BOOKED,
    SUBMITTED,
    UNDER_REVIEW,
    ADDITIONAL_DOCS_REQUESTED,
    APPROVED,
    REJECTED,
    CANCELLED,
    EXPIRED,
)
OPEN_STATUSES = (NOT_STARTED, DOCUMENTS_IN_PROGRESS)

APPLICATION_CHANNELS = (
    "EMBASSY",
    "VFS_GLOBAL",
    "TLS_CONTACT",
    "EVISA_PORTAL",
    "ETA_PORTAL",
    "MOBILE_APP",
    "VISA_ON_ARRIVAL",
    "AGENCY",
    "OTHER",
)


def _iso(value):
    return value.isoformat() if value else None


class VisaApplication(db.Model):
    """One traveler's pursuit of a visa for one trip destination."""

    __tablename__ = "visa_applications"
    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "trip_destination_id", name="uq_visa_applications_user_destination"
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    trip_id = db.Column(db.Integer, db.ForeignKey("trips.id"), nullable=True, index=True)
    trip_destination_id = db.Column(
        db.Integer, db.ForeignKey("trip_destinations.id"), nullable=False
    )
    visa_requirement_id = db.Column(
        db.Integer, db.ForeignKey("visa_requirements.id"), nullable=True
    )
    destination_iso_code = db.Column(db.String(2), nullable=True)
    application_channel = db.Column(
        db.Enum(*APPLICATION_CHANNELS, name="application_channel_enum"),
        nullable=False,
        default="EVISA_PORTAL",
    )
    reference_number = db.Column(db.String(64), nullable=True, index=True)

    status = db.Column(
        db.Enum(*APPLICATION_STATUSES, name="application_status_enum"),
        nullable=False,
        default=NOT_STARTED,
    )

    application_date = db.Column(db.Date, nullable=True)
    appointment_date = db.Column(db.Date, nullable=True)
    submission_date = db.Column(db.Date, nullable=True)
    decision_date = db.Column(db.Date, nullable=True)

    expected_decision_date = db.Column(db.Date, nullable=True)
    latest_submission_date = db.Column(db.Date, nullable=True)
    recommended_submission_date = db.Column(db.Date, nullable=True)

    checklist_total = db.Column(db.Integer, nullable=False, default=0)
    checklist_completed = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user = db.relationship("User", backref=db.backref("visa_applications", lazy="dynamic"))
    trip = db.relationship("Trip")
    trip_destination = db.relationship("TripDestination")
    visa_requirement = db.relationship("VisaRequirement")
    history = db.relationship(
        "ApplicationStatusChange",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="(ApplicationStatusChange.changed_at, ApplicationStatusChange.id)",
    )
    documents = db.relationship(
        "VisaApplicationDocument",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    def record_status(self, status: str, changed_by: str = "SYSTEM", notes: str | None = None):
        """Set the status and append the matching history entry."""

        previous = self.status
        self.status = status
        entry = ApplicationStatusChange(
            from_status=previous,
            status=status,
            changed_by=changed_by,
            notes=notes,
        )
        self.history.append(entry)
        return entry

    @property
    def checklist_percentage(self) -> int:
        if not self.checklist_total:
            return 0
        return round(self.checklist_completed / self.checklist_total * 100)

    def to_dict(self) -> dict:
        """Serialize the application into a dictionary."""

        return {
            "id": self.id,
            "user_id": self.user_id,
            "trip_id": self.trip_id,
            "trip_destination_id": self.trip_destination_id,
            "visa_requirement_id": self.visa_requirement_id,
            "destination_iso_code": self.destination_iso_code,
            "application_channel": self.application_channel,
            "reference_number": self.reference_number,
            "status": self.status,
            "application_date": _iso(self.application_date),
            "appointment_date": _iso(self.appointment_date),
            "submission_date": _iso(self.submission_date),
            "decision_date": _iso(self.decision_date),
            "timeline": {
                "recommended_submission_date": _iso(self.recommended_submission_date),
                "latest_submission_date": _iso(self.latest_submission_date),
                "expected_decision_date": _iso(self.expected_decision_date),
            },
            "checklist": {
                "total_required": self.checklist_total,
                "completed": self.checklist_completed,
                "percentage": self.checklist_percentage,
            },
            "status_history": [entry.to_dict() for entry in self.history],
            "created_at": _iso(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<VisaApplication id={self.id} status={self.status}>"


class ApplicationStatusChange(db.Model):
    """A single entry in an application's status history."""

    __tablename__ = "application_status_changes"

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(
        db.Integer, db.ForeignKey("visa_applications.id"), nullable=False, index=True
    )
    from_status = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(32), nullable=False)
    changed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    changed_by = db.Column(db.String(64), nullable=False, default="SYSTEM")
    notes = db.Column(db.Text, nullable=True)

    application = db.relationship("VisaApplication", back_populates="history")

    def to_dict(self) -> dict:
        return {
            "from_status": self.from_status,
            "status": self.status,
            "changed_at": _iso(self.changed_at),
            "changed_by": self.changed_by,
            "notes": self.notes,
        }


class VisaApplicationDocument(db.Model):
    """Presence record for a document attached to an application."""

    __tablename__ = "visa_application_documents"
    __table_args__ = (
        db.UniqueConstraint(
            "visa_application_id", "document_type", name="uq_application_documents_type"
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    visa_application_id = db.Column(
        db.Integer, db.ForeignKey("visa_applications.id"), nullable=False, index=True
    )
    document_type = db.Column(
        db.Enum(*DOCUMENT_TYPES, name="document_type_enum"), nullable=False
    )
    uploaded = db.Column(db.Boolean, nullable=False, default=False)
    file_url = db.Column(db.String(512), nullable=True)
    verified = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    application = db.relationship("VisaApplication", back_populates="documents")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "application_id": self.visa_application_id,
            "document_type": self.document_type,
            "uploaded": self.uploaded,
            "file_url": self.file_url,
            "verified": self.verified,
        }
