"""Trip and trip destination models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from . import db
from .visa_requirement import TRAVEL_PURPOSES


FEASIBLE = "FEASIBLE"
RISKY = "RISKY"
IMPOSSIBLE = "IMPOSSIBLE"
FEASIBILITY_STATUSES = (FEASIBLE, RISKY, IMPOSSIBLE)

TRIP_STATUSES = ("PLANNING", "IN_PROGRESS", "COMPLETED", "CANCELLED")


@dataclass(frozen=True)
class DestinationVerdict:
    """A fully resolved destination as seen by trip aggregation."""

    destination: str
    visa_required: bool
    status: str
    reason: Optional[str] = None


class Trip(db.Model):
    """A user's trip; owns its destinations and caches the aggregate verdict."""

    __tablename__ = "trips"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    status = db.Column(
        db.Enum(*TRIP_STATUSES, name="trip_status_enum"),
        nullable=False,
        default="PLANNING",
    )
    feasibility_status = db.Column(
        db.Enum(*FEASIBILITY_STATUSES, name="feasibility_status_enum"),
        nullable=False,
        default=FEASIBLE,
    )
    feasibility_issues = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user = db.relationship("User", backref=db.backref("trips", lazy="dynamic"))
    destinations = db.relationship(
        "TripDestination",
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by="(TripDestination.entry_date, TripDestination.id)",
    )

    def to_dict(self, include_destinations: bool = False) -> dict:
        """Serialize the trip into a dictionary."""

        data = {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "status": self.status,
            "feasibility": {
                "status": self.feasibility_status,
                "issues": list(self.feasibility_issues or []),
            },
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_destinations:
            data["destinations"] = [destination.to_dict() for destination in self.destinations]
        return data

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Trip id={self.id} feasibility={self.feasibility_status}>"


class TripDestination(db.Model):
    """One leg of a trip, with a cached per-destination feasibility verdict."""

    __tablename__ = "trip_destinations"

    id = db.Column(db.Integer, primary_key=True)
    trip_id = db.Column(db.Integer, db.ForeignKey("trips.id"), nullable=False, index=True)
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=False)
    entry_date = db.Column(db.Date, nullable=False)
    exit_date = db.Column(db.Date, nullable=False)
    travel_purpose = db.Column(
        db.Enum(*TRAVEL_PURPOSES, name="travel_purpose_enum"), nullable=False
    )
    visa_required = db.Column(db.Boolean, nullable=False, default=False)
    visa_type = db.Column(db.String(32), nullable=True)
    processing_time_min = db.Column(db.Integer, nullable=True)
    processing_time_max = db.Column(db.Integer, nullable=True)
    feasibility_status = db.Column(
        db.Enum(*FEASIBILITY_STATUSES, name="feasibility_status_enum"),
        nullable=False,
        default=FEASIBLE,
    )
    feasibility_reason = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    trip = db.relationship("Trip", back_populates="destinations")
    country = db.relationship("Country")

    @property
    def country_code(self) -> Optional[str]:
        return self.country.iso_code if self.country else None

    def verdict(self) -> DestinationVerdict:
        return DestinationVerdict(
            destination=self.country_code or str(self.country_id),
            visa_required=bool(self.visa_required),
            status=self.feasibility_status or FEASIBLE,
            reason=self.feasibility_reason,
        )

    def to_dict(self) -> dict:
        """Serialize the destination into a dictionary."""

        return {
            "id": self.id,
            "trip_id": self.trip_id,
            "country": self.country.summary() if self.country else None,
            "entry_date": self.entry_date.isoformat() if self.entry_date else None,
            "exit_date": self.exit_date.isoformat() if self.exit_date else None,
            "travel_purpose": self.travel_purpose,
            "visa_required": self.visa_required,
            "visa_type": self.visa_type,
            "processing_time": {
                "min": self.processing_time_min,
                "max": self.processing_time_max,
            },
            "feasibility": {
                "status": self.feasibility_status,
                "reason": self.feasibility_reason,
            },
            "notes": self.notes,
        }
