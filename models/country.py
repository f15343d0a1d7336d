"""Country reference data model."""

from datetime import datetime

from . import db


REGIONAL_BLOCS = ("ECOWAS", "EAC", "GCC", "AU", "EU", "SCHENGEN", "SADC", "COMESA")
CONTINENTS = (
    "AFRICA",
    "ASIA",
    "EUROPE",
    "NORTH_AMERICA",
    "SOUTH_AMERICA",
    "OCEANIA",
    "ANTARCTICA",
)


class Country(db.Model):
    """Immutable reference data for a passport-issuing or destination country."""

    __tablename__ = "countries"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    iso_code = db.Column(db.String(2), unique=True, nullable=False, index=True)
    iso_code3 = db.Column(db.String(3), nullable=True)
    continent = db.Column(db.Enum(*CONTINENTS, name="continent_enum"), nullable=True)
    regional_blocs = db.Column(db.JSON, nullable=False, default=list)
    default_passport_validity_days = db.Column(db.Integer, nullable=False, default=180)
    has_evisa_system = db.Column(db.Boolean, nullable=False, default=False)
    has_eta_system = db.Column(db.Boolean, nullable=False, default=False)
    has_voa = db.Column(db.Boolean, nullable=False, default=False)
    yellow_fever_endemic = db.Column(db.Boolean, nullable=False, default=False)
    immigration_portal_url = db.Column(db.String(512), nullable=True)
    evisa_portal_url = db.Column(db.String(512), nullable=True)
    currency = db.Column(db.String(8), nullable=False, default="USD")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def is_in_bloc(self, bloc: str) -> bool:
        """Return True if the country belongs to the given regional bloc."""

        return bloc in (self.regional_blocs or [])

    def summary(self) -> dict:
        return {"name": self.name, "iso_code": self.iso_code}

    def to_dict(self) -> dict:
        """Serialize the country into a dictionary."""

        return {
            "id": self.id,
            "name": self.name,
            "iso_code": self.iso_code,
            "iso_code3": self.iso_code3,
            "continent": self.continent,
            "regional_blocs": list(self.regional_blocs or []),
            "default_passport_validity_days": self.default_passport_validity_days,
            "has_evisa_system": self.has_evisa_system,
            "has_eta_system": self.has_eta_system,
            "has_voa": self.has_voa,
            "yellow_fever_endemic": self.yellow_fever_endemic,
            "currency": self.currency,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Country {self.iso_code}>"
