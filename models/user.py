"""User profile model definition."""

from datetime import date, datetime
from typing import Optional

from . import db


class User(db.Model):
    """An authenticated traveler and the passport facts the engine needs."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    passport_country_code = db.Column(db.String(2), nullable=True)
    passport_expiry_date = db.Column(db.Date, nullable=True)
    # ISO codes of countries where the user holds a valid visa or residence permit.
    valid_visa_countries = db.Column(db.JSON, nullable=False, default=list)
    # Optional expiry per held visa, keyed by ISO code (ISO date strings).
    valid_visa_expiry_dates = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def held_visa_countries(self) -> list[str]:
        """Return the normalized ISO codes of held visas/residence permits."""

        return [code.strip().upper() for code in self.valid_visa_countries or [] if code]

    def held_visa_expiry(self, country_code: str) -> Optional[date]:
        """Return the expiry date recorded for a held visa, if any."""

        raw = (self.valid_visa_expiry_dates or {}).get(country_code.upper())
        if not raw:
            return None
        return date.fromisoformat(raw)

    def has_complete_passport_profile(self) -> bool:
        """Return True when both passport country and expiry are known."""

        return bool(self.passport_country_code) and self.passport_expiry_date is not None

    def to_dict(self) -> dict:
        """Serialize the profile into a dictionary."""

        return {
            "id": self.id,
            "email": self.email,
            "passport_country_code": self.passport_country_code,
            "passport_expiry_date": self.passport_expiry_date.isoformat()
            if self.passport_expiry_date
            else None,
            "valid_visa_countries": self.held_visa_countries(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
