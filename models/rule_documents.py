"""Typed views over the JSON sub-documents stored on visa rules."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Optional


PRE_ARRIVAL_TYPES = (
    "E_TICKET",
    "TDAC",
    "ETA",
    "TRAVEL_AUTH",
    "HEALTH_DECLARATION",
    "DIGITAL_LANDING_CARD",
)
DEFAULT_ADVANCE_HOURS = 72


def _codes(values) -> tuple[str, ...]:
    return tuple(str(value).strip().upper() for value in values or () if value)


@dataclass(frozen=True)
class ConditionalAccess:
    """Access granted on proof of a valid visa from one of several third countries."""

    requires_valid_visa_from: tuple[str, ...] = ()
    valid_visa_types: tuple[str, ...] = ()
    min_visa_validity_days: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "ConditionalAccess":
        data = data or {}
        return cls(
            requires_valid_visa_from=_codes(data.get("requires_valid_visa_from")),
            valid_visa_types=tuple(data.get("valid_visa_types") or ()),
            min_visa_validity_days=data.get("min_visa_validity_days"),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.requires_valid_visa_from)


@dataclass(frozen=True)
class EligibilityConditions:
    exempt_blocs: tuple[str, ...] = ()
    conditional_access: ConditionalAccess = field(default_factory=ConditionalAccess)
    excluded_countries: tuple[str, ...] = ()
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "EligibilityConditions":
        data = data or {}
        return cls(
            exempt_blocs=_codes(data.get("exempt_blocs")),
            conditional_access=ConditionalAccess.from_dict(data.get("conditional_access")),
            excluded_countries=_codes(data.get("excluded_countries")),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class PreArrivalRequirement:
    """A digital form or authorization that must be completed before travel."""

    type: str
    name: str
    portal_url: Optional[str] = None
    advance_hours: int = DEFAULT_ADVANCE_HOURS
    mandatory: bool = True
    cost: Optional[float] = None
    currency: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "PreArrivalRequirement":
        return cls(
            type=data["type"],
            name=data.get("name") or data["type"],
            portal_url=data.get("portal_url"),
            advance_hours=data.get("advance_hours") or DEFAULT_ADVANCE_HOURS,
            mandatory=data.get("mandatory", True),
            cost=data.get("cost"),
            currency=data.get("currency"),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class YellowFeverConditions:
    if_from_endemic_country: bool = False
    if_transiting_endemic: bool = False
    exempt_under_age_months: Optional[int] = None
    exempt_over_age_years: Optional[int] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "YellowFeverConditions":
        data = data or {}
        return cls(
            if_from_endemic_country=bool(data.get("if_from_endemic_country", False)),
            if_transiting_endemic=bool(data.get("if_transiting_endemic", False)),
            exempt_under_age_months=data.get("exempt_under_age_months"),
            exempt_over_age_years=data.get("exempt_over_age_years"),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AdditionalFee:
    name: str
    amount: float
    currency: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AdditionalFee":
        return cls(name=data["name"], amount=data["amount"], currency=data.get("currency"))

    def to_dict(self) -> dict:
        return asdict(self)
