"""SQLAlchemy-backed reference-data store."""

from __future__ import annotations

from typing import Optional

from models import db
from models.country import Country
from models.visa_requirement import VisaRequiredDocument, VisaRequirement

from .abstract_storage import ReferenceStore


class SQLReferenceStore(ReferenceStore):
    """Serve countries and visa rules from the application database."""

    def get_country(self, iso_code: str) -> Optional[Country]:
        """Return the active country for an ISO alpha-2 (or alpha-3) code."""

        code = (iso_code or "").strip().upper()
        if not code:
            return None
        column = Country.iso_code3 if len(code) == 3 else Country.iso_code
        return Country.query.filter(column == code, Country.is_active.is_(True)).first()

    def find_active_rule(
        self, passport: Country, destination: Country, purpose: str
    ) -> Optional[VisaRequirement]:
        return (
            VisaRequirement.key_query(passport.id, destination.id, purpose)
            .filter(VisaRequirement.is_active.is_(True))
            .first()
        )

    def find_destination_default_rule(
        self, destination: Country, purpose: str
    ) -> Optional[VisaRequirement]:
        return (
            VisaRequirement.key_query(None, destination.id, purpose)
            .filter(VisaRequirement.is_active.is_(True))
            .first()
        )

    def find_rules_for_destination(
        self, destination: Country, active_only: bool = True
    ) -> list[VisaRequirement]:
        query = VisaRequirement.query.filter(
            VisaRequirement.destination_country_id == destination.id
        )
        if active_only:
            query = query.filter(VisaRequirement.is_active.is_(True))
        return query.order_by(VisaRequirement.travel_purpose, VisaRequirement.version.desc()).all()

    def get_rule(self, rule_id: int) -> Optional[VisaRequirement]:
        return db.session.get(VisaRequirement, rule_id)

    def required_documents(self, rule: VisaRequirement) -> list[VisaRequiredDocument]:
        return (
            VisaRequiredDocument.query.filter_by(visa_requirement_id=rule.id)
            .order_by(
                VisaRequiredDocument.mandatory.desc(),
                VisaRequiredDocument.display_order.asc(),
            )
            .all()
        )
