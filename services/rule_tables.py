"""Built-in rule tables used by the visa rules engine.

The tables are immutable and handed to ``VisaRulesEngine`` at construction,
so tests and deployments can substitute their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from models.rule_documents import PreArrivalRequirement


@dataclass(frozen=True)
class BlocExemption:
    """Visa-free entry to some destinations for members of a regional bloc."""

    destinations: frozenset[str]
    bloc: str
    reason: str
    stay_days: int = 90
    excluded_passports: frozenset[str] = frozenset()

    def applies(self, passport_code: str, passport_blocs, destination_code: str) -> bool:
        return (
            destination_code in self.destinations
            and self.bloc in (passport_blocs or ())
            and passport_code not in self.excluded_passports
        )


@dataclass(frozen=True)
class RuleTables:
    bloc_exemptions: tuple[BlocExemption, ...] = ()
    known_pre_arrival: Mapping[str, PreArrivalRequirement] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def match_exemption(
        self, passport_code: str, passport_blocs, destination_code: str
    ) -> Optional[BlocExemption]:
        """Return the first exemption that applies, in table order."""

        for exemption in self.bloc_exemptions:
            if exemption.applies(passport_code, passport_blocs, destination_code):
                return exemption
        return None


BLOC_EXEMPTIONS = (
    BlocExemption(
        destinations=frozenset({"GH", "NG"}),
        bloc="ECOWAS",
        reason="ECOWAS member nationals enjoy visa-free travel within the community",
    ),
    BlocExemption(
        destinations=frozenset({"KE", "UG", "TZ", "RW"}),
        bloc="EAC",
        reason="East African Community member nationals enjoy visa-free travel",
    ),
    BlocExemption(
        destinations=frozenset({"RW"}),
        bloc="AU",
        reason="Rwanda grants visa-free entry to all African Union member nationals",
        stay_days=30,
    ),
    BlocExemption(
        destinations=frozenset({"AE"}),
        bloc="GCC",
        reason="GCC nationals can enter UAE with national ID only",
    ),
    BlocExemption(
        destinations=frozenset({"KE"}),
        bloc="AU",
        reason="Kenya grants visa-free entry to most African nationals",
        excluded_passports=frozenset({"LY", "SO"}),
    ),
)

KNOWN_PRE_ARRIVAL_REQUIREMENTS = MappingProxyType(
    {
        "TH": PreArrivalRequirement(
            type="TDAC",
            name="Thailand Digital Arrival Card",
            advance_hours=72,
            portal_url="https://tdac.immigration.go.th",
        ),
        "DO": PreArrivalRequirement(
            type="E_TICKET",
            name="Dominican Republic e-Ticket",
            advance_hours=72,
            portal_url="https://eticket.migracion.gob.do",
        ),
        "KE": PreArrivalRequirement(
            type="ETA",
            name="Kenya Electronic Travel Authorization",
            advance_hours=72,
            portal_url="https://www.etakenya.go.ke",
        ),
        "SC": PreArrivalRequirement(
            type="TRAVEL_AUTH",
            name="Seychelles Travel Authorization",
            advance_hours=72,
            portal_url="https://seychelles.govtas.com",
        ),
        "NG": PreArrivalRequirement(
            type="DIGITAL_LANDING_CARD",
            name="Nigeria Digital Landing Card",
            advance_hours=24,
            portal_url="https://immigration.gov.ng",
        ),
    }
)

DEFAULT_RULE_TABLES = RuleTables(
    bloc_exemptions=BLOC_EXEMPTIONS,
    known_pre_arrival=KNOWN_PRE_ARRIVAL_REQUIREMENTS,
)
