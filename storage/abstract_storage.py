"""Reference-data store contract consumed by the visa rules engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from models.country import Country
from models.visa_requirement import VisaRequiredDocument, VisaRequirement


class ReferenceStore(ABC):
    """Read-only access to countries and visa rules by exact-match keys."""

    @abstractmethod
    def get_country(self, iso_code: str) -> Optional[Country]:
        """Return the country with the given ISO alpha-2 code, if any."""

    @abstractmethod
    def find_active_rule(
        self, passport: Country, destination: Country, purpose: str
    ) -> Optional[VisaRequirement]:
        """Return the single active rule for (passport, destination, purpose)."""

    @abstractmethod
    def find_destination_default_rule(
        self, destination: Country, purpose: str
    ) -> Optional[VisaRequirement]:
        """Return the active destination-wide default rule for a purpose."""

    @abstractmethod
    def find_rules_for_destination(
        self, destination: Country, active_only: bool = True
    ) -> list[VisaRequirement]:
        """Return every rule (optionally only active ones) for a destination."""

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[VisaRequirement]:
        """Return a rule by identifier regardless of its active flag."""

    @abstractmethod
    def required_documents(self, rule: VisaRequirement) -> list[VisaRequiredDocument]:
        """Return the document checklist for a rule, mandatory entries first."""
