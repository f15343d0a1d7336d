"""Visa rule and required-document models."""

from datetime import date, datetime
from decimal import Decimal

from . import db
from .rule_documents import (
    AdditionalFee,
    EligibilityConditions,
    PreArrivalRequirement,
    YellowFeverConditions,
)


VISA_TYPES = (
    "VISA_FREE",
    "E_VISA",
    "VISA_ON_ARRIVAL",
    "EMBASSY_VISA",
    "TRANSIT_VISA",
    "ETA",
    "TRAVEL_AUTH",
)
TRAVEL_PURPOSES = ("TOURISM", "BUSINESS", "TRANSIT", "STUDY", "WORK", "DIPLOMATIC", "MEDICAL")
APPLICATION_METHODS = (
    "ONLINE",
    "EMBASSY",
    "VFS_GLOBAL",
    "TLS_CONTACT",
    "ON_ARRIVAL",
    "MOBILE_APP",
    "NONE",
)
YELLOW_FEVER_MODES = ("ALWAYS", "CONDITIONAL", "NOT_REQUIRED")
DOCUMENT_TYPES = (
    "PASSPORT",
    "PHOTO",
    "FLIGHT_RESERVATION",
    "HOTEL_BOOKING",
    "BANK_STATEMENT",
    "INVITATION_LETTER",
    "TRAVEL_INSURANCE",
    "EMPLOYMENT_LETTER",
    "STUDENT_LETTER",
    "YELLOW_FEVER_CERTIFICATE",
    "OTHER",
)

# Visa types that need no processing before departure.
NO_PROCESSING_VISA_TYPES = ("VISA_FREE", "VISA_ON_ARRIVAL")


class VisaRequirement(db.Model):
    """A versioned visa rule for (passport country, destination, purpose).

    A rule with no passport country is the destination-wide default for the
    purpose. Rules are deactivated, never deleted; at most one rule per key is
    active at a time.
    """

    __tablename__ = "visa_requirements"
    __table_args__ = (
        db.Index(
            "uq_visa_requirements_active_key",
            "passport_country_id",
            "destination_country_id",
            "travel_purpose",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
        # NULL passport ids never collide in the index above.
        db.Index(
            "uq_visa_requirements_active_default",
            "destination_country_id",
            "travel_purpose",
            unique=True,
            sqlite_where=db.text("passport_country_id IS NULL AND is_active = 1"),
            postgresql_where=db.text("passport_country_id IS NULL AND is_active"),
        ),
        db.Index("ix_visa_requirements_destination_active", "destination_country_id", "is_active"),
    )

    id = db.Column(db.Integer, primary_key=True)
    passport_country_id = db.Column(
        db.Integer, db.ForeignKey("countries.id"), nullable=True
    )
    destination_country_id = db.Column(
        db.Integer, db.ForeignKey("countries.id"), nullable=False
    )
    travel_purpose = db.Column(
        db.Enum(*TRAVEL_PURPOSES, name="travel_purpose_enum"), nullable=False
    )
    visa_type = db.Column(db.Enum(*VISA_TYPES, name="visa_type_enum"), nullable=False)
    application_method = db.Column(
        db.Enum(*APPLICATION_METHODS, name="application_method_enum"),
        nullable=False,
        default="EMBASSY",
    )

    visa_free_days = db.Column(db.Integer, nullable=True)
    allowed_stay_days = db.Column(db.Integer, nullable=True)
    validity_period_days = db.Column(db.Integer, nullable=True)

    # Business days
    processing_time_min = db.Column(db.Integer, nullable=False, default=1)
    processing_time_max = db.Column(db.Integer, nullable=False, default=7)

    visa_cost = db.Column(db.Numeric(10, 2), nullable=True)
    currency = db.Column(db.String(8), nullable=False, default="USD")
    additional_fees = db.Column(db.JSON, nullable=False, default=list)

    passport_validity_days = db.Column(db.Integer, nullable=False, default=180)
    blank_pages_required = db.Column(db.Integer, nullable=False, default=2)

    eligibility_conditions = db.Column(db.JSON, nullable=False, default=dict)
    pre_arrival_requirements = db.Column(db.JSON, nullable=False, default=list)
    yellow_fever_required = db.Column(
        db.Enum(*YELLOW_FEVER_MODES, name="yellow_fever_mode_enum"),
        nullable=False,
        default="NOT_REQUIRED",
    )
    yellow_fever_conditions = db.Column(db.JSON, nullable=False, default=dict)

    application_url = db.Column(db.String(512), nullable=True)
    official_guidelines_url = db.Column(db.String(512), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    restrictions = db.Column(db.JSON, nullable=False, default=list)

    version = db.Column(db.Integer, nullable=False, default=1)
    effective_date = db.Column(db.Date, nullable=False, default=date.today)
    deprecated_date = db.Column(db.Date, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    last_verified_date = db.Column(db.Date, nullable=True)
    last_verified_source = db.Column(db.String(255), nullable=True)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    passport_country = db.relationship("Country", foreign_keys=[passport_country_id])
    destination_country = db.relationship("Country", foreign_keys=[destination_country_id])
    required_documents = db.relationship(
        "VisaRequiredDocument",
        back_populates="visa_requirement",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    @property
    def is_default_rule(self) -> bool:
        return self.passport_country_id is None

    @property
    def eligibility(self) -> EligibilityConditions:
        return EligibilityConditions.from_dict(self.eligibility_conditions)

    @property
    def pre_arrival(self) -> list[PreArrivalRequirement]:
        return [PreArrivalRequirement.from_dict(item) for item in self.pre_arrival_requirements or []]

    @property
    def yellow_fever(self) -> YellowFeverConditions:
        return YellowFeverConditions.from_dict(self.yellow_fever_conditions)

    @property
    def fees(self) -> list[AdditionalFee]:
        return [AdditionalFee.from_dict(item) for item in self.additional_fees or []]

    @property
    def cost(self) -> float | None:
        if isinstance(self.visa_cost, Decimal):
            return float(self.visa_cost)
        return self.visa_cost

    @classmethod
    def key_query(cls, passport_country_id, destination_country_id, travel_purpose):
        """Return a query for every version of the rule with the given key."""

        query = cls.query.filter(
            cls.destination_country_id == destination_country_id,
            cls.travel_purpose == travel_purpose,
        )
        if passport_country_id is None:
            return query.filter(cls.passport_country_id.is_(None))
        return query.filter(cls.passport_country_id == passport_country_id)

    @classmethod
    def publish(cls, rule: "VisaRequirement", effective: date | None = None) -> "VisaRequirement":
        """Activate ``rule`` as the new version of its key.

        The currently active version, if any, is deactivated and stamped with
        a deprecation date. The caller commits the session.
        """

        effective = effective or date.today()
        if rule.passport_country is not None:
            rule.passport_country_id = rule.passport_country.id
        if rule.destination_country is not None:
            rule.destination_country_id = rule.destination_country.id

        with db.session.no_autoflush:
            current = (
                cls.key_query(
                    rule.passport_country_id, rule.destination_country_id, rule.travel_purpose
                )
                .filter(cls.is_active.is_(True))
                .first()
            )

        rule.version = 1
        if current is not None and current is not rule:
            current.deactivate(effective)
            rule.version = (current.version or 1) + 1
            db.session.flush()

        rule.is_active = True
        rule.effective_date = effective
        db.session.add(rule)
        db.session.flush()
        return rule

    def deactivate(self, when: date | None = None) -> None:
        """Soft-delete this rule version."""

        self.is_active = False
        self.deprecated_date = when or date.today()

    def to_dict(self) -> dict:
        """Serialize the raw rule into a dictionary."""

        return {
            "id": self.id,
            "passport_country": self.passport_country.iso_code if self.passport_country else None,
            "destination_country": self.destination_country.iso_code
            if self.destination_country
            else None,
            "travel_purpose": self.travel_purpose,
            "visa_type": self.visa_type,
            "application_method": self.application_method,
            "processing_time_min": self.processing_time_min,
            "processing_time_max": self.processing_time_max,
            "visa_cost": self.cost,
            "currency": self.currency,
            "version": self.version,
            "is_active": self.is_active,
            "effective_date": self.effective_date.isoformat() if self.effective_date else None,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return (
            f"<VisaRequirement id={self.id} visa_type={self.visa_type} "
            f"version={self.version} active={self.is_active}>"
        )


class VisaRequiredDocument(db.Model):
    """A document that an application under a given rule must provide."""

    __tablename__ = "visa_required_documents"

    id = db.Column(db.Integer, primary_key=True)
    visa_requirement_id = db.Column(
        db.Integer,
        db.ForeignKey("visa_requirements.id"),
        nullable=False,
        index=True,
    )
    document_type = db.Column(
        db.Enum(*DOCUMENT_TYPES, name="document_type_enum"), nullable=False
    )
    name = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    mandatory = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    visa_requirement = db.relationship("VisaRequirement", back_populates="required_documents")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.document_type,
            "name": self.name or self.document_type.replace("_", " ").title(),
            "description": self.description,
            "mandatory": self.mandatory,
        }
