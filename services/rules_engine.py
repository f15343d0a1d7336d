"""Visa requirement resolution.

Resolution order for (passport, destination, purpose), first match wins:

1. regional-bloc exemption from the injected ``RuleTables``;
2. the active rule for the exact key, else the destination-wide default
   rule, else a conservative EMBASSY_VISA assumption flagged
   ``requires_confirmation``;
3. conditional access, which upgrades the resolved rule to visa on arrival
   when the traveler holds a qualifying third-country visa;
4. advisory warnings (passport validity, yellow fever, pre-arrival forms,
   processing lead time) attached to the result.

"No rule found" is never an error. Only unknown country codes or purposes
raise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from types import MappingProxyType
from typing import Mapping, Optional

from flask import current_app

from models.country import Country
from models.rule_documents import (
    AdditionalFee,
    ConditionalAccess,
    PreArrivalRequirement,
    YellowFeverConditions,
)
from models.visa_requirement import NO_PROCESSING_VISA_TYPES, TRAVEL_PURPOSES, VisaRequirement
from storage.abstract_storage import ReferenceStore
from utils.errors import EntityNotFound, UnknownReference

from .rule_tables import DEFAULT_RULE_TABLES, BlocExemption, RuleTables


DEFAULT_PURPOSE = "TOURISM"
DEFAULT_PASSPORT_VALIDITY_DAYS = 180
DEFAULT_BLANK_PAGES = 2
PROCESSING_BUFFER_DAYS = 7
NO_RULE_REASON = "No specific visa rule found. Embassy visa likely required."

ERROR = "ERROR"
WARNING = "WARNING"

VISA_TYPE_NAMES = MappingProxyType(
    {
        "VISA_FREE": "Visa Not Required",
        "E_VISA": "Electronic Visa (eVisa)",
        "VISA_ON_ARRIVAL": "Visa on Arrival",
        "EMBASSY_VISA": "Embassy/Consulate Visa",
        "TRANSIT_VISA": "Transit Visa",
        "ETA": "Electronic Travel Authorization",
        "TRAVEL_AUTH": "Travel Authorization",
    }
)
PRE_ARRIVAL_ACTION_VISA_TYPES = frozenset({"E_VISA", "EMBASSY_VISA", "TRANSIT_VISA"})


def requires_pre_arrival_action(visa_type: str) -> bool:
    """Return True if the visa type must be obtained before departure."""

    return visa_type in PRE_ARRIVAL_ACTION_VISA_TYPES


def visa_type_friendly_name(visa_type: str) -> str:
    return VISA_TYPE_NAMES.get(visa_type, visa_type)


def requires_visa_processing(visa_type: Optional[str]) -> bool:
    """Return True if the visa type needs processing before entry."""

    return bool(visa_type) and visa_type not in NO_PROCESSING_VISA_TYPES


@dataclass(frozen=True)
class TravelDates:
    arrival_date: Optional[date] = None
    departure_date: Optional[date] = None

    @property
    def trip_end(self) -> Optional[date]:
        return self.departure_date or self.arrival_date


@dataclass(frozen=True)
class UserContext:
    """Facts about the traveler that refine resolution and warnings."""

    passport_expiry_date: Optional[date] = None
    valid_visa_from: tuple[str, ...] = ()
    visa_expiry_dates: Mapping[str, date] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_user(cls, user) -> "UserContext":
        if user is None:
            return cls()
        held = tuple(user.held_visa_countries())
        expiries = {code: user.held_visa_expiry(code) for code in held}
        return cls(
            passport_expiry_date=user.passport_expiry_date,
            valid_visa_from=held,
            visa_expiry_dates=MappingProxyType(
                {code: expiry for code, expiry in expiries.items() if expiry}
            ),
        )


@dataclass(frozen=True)
class RuleWarning:
    type: str
    severity: str
    message: str
    action: Optional[str] = None
    form_type: Optional[str] = None
    due_by: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "action": self.action,
        }
        if self.form_type:
            data["form_type"] = self.form_type
        if self.due_by:
            data["due_by"] = self.due_by.isoformat()
        return data


@dataclass
class VisaDetermination:
    """Normalized outcome of a visa requirement lookup."""

    visa_type: str
    passport: dict
    destination: dict
    purpose: str
    allowed_stay_days: Optional[int] = None
    processing_time_min: Optional[int] = None
    processing_time_max: Optional[int] = None
    visa_cost: Optional[float] = None
    currency: str = "USD"
    additional_fees: list[AdditionalFee] = field(default_factory=list)
    passport_validity_days: int = DEFAULT_PASSPORT_VALIDITY_DAYS
    blank_pages_required: int = DEFAULT_BLANK_PAGES
    application_method: Optional[str] = None
    application_url: Optional[str] = None
    pre_arrival_requirements: list[PreArrivalRequirement] = field(default_factory=list)
    yellow_fever_required: str = "NOT_REQUIRED"
    yellow_fever_conditions: Optional[YellowFeverConditions] = None
    exemption_type: Optional[str] = None
    exemption_reason: Optional[str] = None
    conditional_access_granted: bool = False
    conditional_reason: Optional[str] = None
    warnings: list[RuleWarning] = field(default_factory=list)
    restrictions: list[str] = field(default_factory=list)
    notes: Optional[str] = None
    rule_id: Optional[int] = None
    last_updated: Optional[datetime] = None
    last_verified_date: Optional[date] = None
    last_verified_source: Optional[str] = None
    requires_confirmation: bool = False
    is_default_rule: bool = False

    @property
    def visa_type_friendly(self) -> str:
        return visa_type_friendly_name(self.visa_type)

    @property
    def visa_required(self) -> bool:
        return requires_visa_processing(self.visa_type)

    @property
    def requires_pre_arrival_action(self) -> bool:
        return requires_pre_arrival_action(self.visa_type)

    def has_errors(self) -> bool:
        return any(warning.severity == ERROR for warning in self.warnings)

    def to_dict(self) -> dict:
        return {
            "visa_type": self.visa_type,
            "visa_type_friendly": self.visa_type_friendly,
            "visa_required": self.visa_required,
            "requires_pre_arrival_action": self.requires_pre_arrival_action,
            "destination": self.destination,
            "passport": self.passport,
            "purpose": self.purpose,
            "allowed_stay_days": self.allowed_stay_days,
            "processing_time": {
                "min": self.processing_time_min,
                "max": self.processing_time_max,
                "unit": "business days",
            },
            "fees": {
                "visa_cost": self.visa_cost,
                "currency": self.currency,
                "additional_fees": [fee.to_dict() for fee in self.additional_fees],
            },
            "passport_validity_days": self.passport_validity_days,
            "blank_pages_required": self.blank_pages_required,
            "application_method": self.application_method,
            "application_url": self.application_url,
            "pre_arrival_requirements": [
                requirement.to_dict() for requirement in self.pre_arrival_requirements
            ],
            "yellow_fever_required": self.yellow_fever_required,
            "yellow_fever_conditions": self.yellow_fever_conditions.to_dict()
            if self.yellow_fever_conditions
            else None,
            "exemption_type": self.exemption_type,
            "exemption_reason": self.exemption_reason,
            "conditional_access_granted": self.conditional_access_granted,
            "conditional_reason": self.conditional_reason,
            "warnings": [warning.to_dict() for warning in self.warnings],
            "restrictions": list(self.restrictions),
            "notes": self.notes,
            "rule_id": self.rule_id,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "last_verified_date": self.last_verified_date.isoformat()
            if self.last_verified_date
            else None,
            "last_verified_source": self.last_verified_source,
            "requires_confirmation": self.requires_confirmation,
            "is_default_rule": self.is_default_rule,
        }


def match_conditional_access(
    conditions: ConditionalAccess,
    context: UserContext,
    arrival_date: Optional[date] = None,
) -> Optional[str]:
    """Return the first qualifying held-visa country, or None.

    When the rule states a minimum remaining validity and both the arrival
    date and the held visa's expiry are known, the visa must still be valid
    that many days after arrival.
    """

    held = set(context.valid_visa_from)
    for country in conditions.requires_valid_visa_from:
        if country not in held:
            continue
        expiry = context.visa_expiry_dates.get(country)
        if conditions.min_visa_validity_days and arrival_date and expiry:
            if (expiry - arrival_date).days < conditions.min_visa_validity_days:
                continue
        return country
    return None


def merge_pre_arrival_requirements(
    rule_requirements: list[PreArrivalRequirement],
    known: Optional[PreArrivalRequirement],
) -> list[PreArrivalRequirement]:
    """Append the destination's known requirement unless its type is present."""

    merged = list(rule_requirements)
    if known is not None and all(item.type != known.type for item in merged):
        merged.append(known)
    return merged


class VisaRulesEngine:
    """Resolve the visa regime for a traveler against injected rule data."""

    def __init__(self, store: ReferenceStore, tables: RuleTables = DEFAULT_RULE_TABLES):
        self.store = store
        self.tables = tables

    def require_country(self, code: str, kind: str = "country") -> Country:
        country = self.store.get_country(code)
        if country is None:
            raise UnknownReference(kind, code)
        return country

    def determine(
        self,
        passport_code: str,
        destination_code: str,
        purpose: str = DEFAULT_PURPOSE,
        travel_dates: Optional[TravelDates] = None,
        user_context: Optional[UserContext] = None,
        today: Optional[date] = None,
    ) -> VisaDetermination:
        """Determine the visa requirement for one destination."""

        purpose = (purpose or DEFAULT_PURPOSE).upper()
        if purpose not in TRAVEL_PURPOSES:
            raise UnknownReference("travel purpose", purpose)
        travel_dates = travel_dates or TravelDates()
        user_context = user_context or UserContext()
        today = today or date.today()

        passport = self.require_country(passport_code, "passport country")
        destination = self.require_country(destination_code, "destination country")

        exemption = self.tables.match_exemption(
            passport.iso_code, passport.regional_blocs, destination.iso_code
        )
        if exemption is not None:
            return self._exempt(exemption, passport, destination, purpose)

        rule = self.store.find_active_rule(passport, destination, purpose)
        if rule is None:
            rule = self.store.find_destination_default_rule(destination, purpose)
        if rule is None:
            current_app.logger.info(
                "No visa rule for %s -> %s (%s); assuming embassy visa",
                passport.iso_code,
                destination.iso_code,
                purpose,
            )
            return VisaDetermination(
                visa_type="EMBASSY_VISA",
                passport=passport.summary(),
                destination=destination.summary(),
                purpose=purpose,
                exemption_reason=NO_RULE_REASON,
                requires_confirmation=True,
            )

        bloc = self._rule_exempt_bloc(rule, passport)
        if bloc is not None:
            result = self.from_rule(rule, passport, destination, purpose)
            result.visa_type = "VISA_FREE"
            result.application_method = "NONE"
            result.allowed_stay_days = rule.visa_free_days or rule.allowed_stay_days or 90
            result.exemption_type = bloc
            result.exemption_reason = f"{bloc} member nationals are exempt under this rule"
            return result

        result = self.from_rule(rule, passport, destination, purpose)

        conditions = rule.eligibility.conditional_access
        if conditions.is_configured:
            country = match_conditional_access(
                conditions, user_context, travel_dates.arrival_date
            )
            if country is not None:
                result.visa_type = "VISA_ON_ARRIVAL"
                result.application_method = "ON_ARRIVAL"
                result.conditional_access_granted = True
                result.conditional_reason = (
                    f"Eligible for visa on arrival with valid {country} visa/residence permit"
                )

        result.warnings = self.generate_warnings(
            result, rule, passport, travel_dates, user_context, today
        )
        return result

    def from_rule(
        self,
        rule: VisaRequirement,
        passport: Optional[Country],
        destination: Country,
        purpose: str,
    ) -> VisaDetermination:
        known = self.tables.known_pre_arrival.get(destination.iso_code)
        return VisaDetermination(
            visa_type=rule.visa_type,
            passport=passport.summary() if passport else {"name": None, "iso_code": None},
            destination=destination.summary(),
            purpose=purpose,
            allowed_stay_days=rule.allowed_stay_days or rule.visa_free_days,
            processing_time_min=rule.processing_time_min,
            processing_time_max=rule.processing_time_max,
            visa_cost=rule.cost,
            currency=rule.currency or "USD",
            additional_fees=rule.fees,
            passport_validity_days=rule.passport_validity_days or DEFAULT_PASSPORT_VALIDITY_DAYS,
            blank_pages_required=rule.blank_pages_required or DEFAULT_BLANK_PAGES,
            application_method=rule.application_method,
            application_url=rule.application_url,
            pre_arrival_requirements=merge_pre_arrival_requirements(rule.pre_arrival, known),
            yellow_fever_required=rule.yellow_fever_required or "NOT_REQUIRED",
            yellow_fever_conditions=rule.yellow_fever,
            restrictions=list(rule.restrictions or []),
            notes=rule.notes,
            rule_id=rule.id,
            last_updated=rule.updated_at,
            last_verified_date=rule.last_verified_date,
            last_verified_source=rule.last_verified_source,
            is_default_rule=rule.is_default_rule,
        )

    def generate_warnings(
        self,
        result: VisaDetermination,
        rule: VisaRequirement,
        passport: Country,
        travel_dates: TravelDates,
        user_context: UserContext,
        today: date,
    ) -> list[RuleWarning]:
        """Build the rejection-prevention warnings for a resolved rule."""

        warnings: list[RuleWarning] = []
        arrival = travel_dates.arrival_date

        expiry = user_context.passport_expiry_date
        if expiry and arrival:
            required_days = result.passport_validity_days
            days_after_trip = (expiry - travel_dates.trip_end).days
            if days_after_trip < required_days:
                warnings.append(
                    RuleWarning(
                        type="PASSPORT_VALIDITY",
                        severity=ERROR,
                        message=(
                            f"Passport must be valid for at least {required_days} days beyond "
                            f"trip end date. Your passport expires {days_after_trip} days "
                            "after your trip."
                        ),
                        action="Renew passport before applying for visa",
                    )
                )

        yellow_fever = result.yellow_fever_required
        if yellow_fever == "ALWAYS":
            warnings.append(
                RuleWarning(
                    type="YELLOW_FEVER",
                    severity=ERROR,
                    message="Yellow fever vaccination certificate is mandatory for entry",
                    action="Get vaccinated at least 10 days before travel",
                )
            )
        elif yellow_fever == "CONDITIONAL" and passport.yellow_fever_endemic:
            warnings.append(
                RuleWarning(
                    type="YELLOW_FEVER",
                    severity=ERROR,
                    message="Yellow fever certificate required when traveling from endemic countries",
                    action="Get vaccinated at least 10 days before travel",
                )
            )

        for requirement in result.pre_arrival_requirements:
            if not requirement.mandatory:
                continue
            due_by = None
            if arrival:
                due_by = datetime.combine(arrival, time.min) - timedelta(
                    hours=requirement.advance_hours
                )
            warnings.append(
                RuleWarning(
                    type="PRE_ARRIVAL_FORM",
                    severity=WARNING,
                    message=(
                        f"{requirement.name} must be completed "
                        f"{requirement.advance_hours} hours before arrival"
                    ),
                    action=f"Complete at: {requirement.portal_url}"
                    if requirement.portal_url
                    else None,
                    form_type=requirement.type,
                    due_by=due_by,
                )
            )

        if arrival and rule.processing_time_max and result.visa_required:
            days_until_trip = (arrival - today).days
            required_days = rule.processing_time_max + PROCESSING_BUFFER_DAYS
            if days_until_trip < required_days:
                minimum = rule.processing_time_min or rule.processing_time_max
                warnings.append(
                    RuleWarning(
                        type="PROCESSING_TIME",
                        severity=ERROR if days_until_trip < minimum else WARNING,
                        message=(
                            f"Only {days_until_trip} days until travel. Processing takes "
                            f"{rule.processing_time_min}-{rule.processing_time_max} business days."
                        ),
                        action="Apply immediately or consider rescheduling travel",
                    )
                )

        return warnings

    def visa_details(self, rule_id: int) -> dict:
        """Return a formatted rule with its document checklist and steps."""

        rule = self.store.get_rule(rule_id)
        if rule is None:
            raise EntityNotFound("Visa rule", rule_id)

        result = self.from_rule(
            rule, rule.passport_country, rule.destination_country, rule.travel_purpose
        )
        details = result.to_dict()
        details["document_checklist"] = [
            document.to_dict() for document in self.store.required_documents(rule)
        ]
        details["application_steps"] = build_application_steps(result)
        details["official_guidelines_url"] = rule.official_guidelines_url
        details["version"] = rule.version
        details["is_active"] = rule.is_active
        return details

    @staticmethod
    def _exempt(
        exemption: BlocExemption, passport: Country, destination: Country, purpose: str
    ) -> VisaDetermination:
        return VisaDetermination(
            visa_type="VISA_FREE",
            passport=passport.summary(),
            destination=destination.summary(),
            purpose=purpose,
            allowed_stay_days=exemption.stay_days,
            application_method="NONE",
            exemption_type=exemption.bloc,
            exemption_reason=exemption.reason,
        )

    @staticmethod
    def _rule_exempt_bloc(rule: VisaRequirement, passport: Country) -> Optional[str]:
        eligibility = rule.eligibility
        if passport.iso_code in eligibility.excluded_countries:
            return None
        for bloc in eligibility.exempt_blocs:
            if passport.is_in_bloc(bloc):
                return bloc
        return None


def build_application_steps(result: VisaDetermination) -> list[dict]:
    """Generate a step-by-step guide for the resolved visa type."""

    processing = f"Processing takes {result.processing_time_min}-{result.processing_time_max} business days"
    steps: list[dict] = []

    if result.visa_type == "VISA_FREE":
        steps.append(
            {
                "title": "No Visa Application Needed",
                "description": "You can travel without a visa. Just ensure your passport is valid.",
            }
        )
    elif result.visa_type in ("E_VISA", "ETA"):
        steps.extend(
            [
                {
                    "title": "Gather Documents",
                    "description": "Prepare passport scan, photo, and supporting documents",
                },
                {
                    "title": "Apply Online",
                    "description": f"Visit {result.application_url} to submit your application",
                },
                {
                    "title": "Pay Fee",
                    "description": f"Pay the visa fee of {result.visa_cost} {result.currency}",
                },
                {"title": "Wait for Approval", "description": processing},
                {"title": "Download & Print", "description": "Print your approved visa for travel"},
            ]
        )
    elif result.visa_type == "EMBASSY_VISA":
        steps.extend(
            [
                {
                    "title": "Gather Documents",
                    "description": "Prepare all required documents as per checklist",
                },
                {
                    "title": "Book Appointment",
                    "description": "Schedule an appointment at the embassy or visa center",
                },
                {
                    "title": "Submit Application",
                    "description": "Attend appointment and submit documents",
                },
                {
                    "title": "Biometrics",
                    "description": "Provide fingerprints and photo if required",
                },
                {"title": "Wait for Decision", "description": processing},
                {"title": "Collect Passport", "description": "Pick up your passport with the visa"},
            ]
        )

    if result.pre_arrival_requirements:
        steps.append(
            {
                "title": "Complete Pre-Arrival Forms",
                "description": "Submit required digital forms before travel",
                "forms": [requirement.name for requirement in result.pre_arrival_requirements],
            }
        )

    for number, step in enumerate(steps, start=1):
        step["step"] = number
    return steps
