"""Tournament eligibility rule engine.

Each tournament type maps to one immutable rule set. The current rule sets
differ only in data (quota and eligible countries), so validation is a single
data-driven routine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Mapping, Optional, Sequence, Union

from figsync import derive
from figsync.errors import (
    CountryNotEligible,
    EmptyGroup,
    InvalidGroupSize,
    QuotaExceeded,
    UnknownTournamentType,
    ValidationError,
)
from figsync.models import AthleteRecord, RegistrationRequest, ValidationOutcome

logger = logging.getLogger(__name__)


class TournamentType(str, Enum):
    """Tournament formats with their own registration rules."""

    CAMPEONATO_PANAMERICANO = "CAMPEONATO_PANAMERICANO"
    COPA_PANAMERICANA = "COPA_PANAMERICANA"


PAN_AMERICAN_COUNTRIES: frozenset[str] = frozenset({
    "ARG", "BOL", "BRA", "CAN", "CHI", "COL", "CRC", "CUB", "DOM", "ECU",
    "ESA", "GUA", "HAI", "HON", "JAM", "MEX", "NCA", "PAN", "PAR", "PER",
    "PUR", "TTO", "URU", "USA", "VEN",
})

GUEST_COUNTRIES: frozenset[str] = frozenset({
    "ESP", "POR", "ITA", "FRA", "GER", "GBR", "JPN", "KOR", "CHN", "AUS",
})


@dataclass(frozen=True)
class TournamentRuleSet:
    """Registration rules for one tournament type."""

    tournament_type: TournamentType
    display_name: str
    max_per_country_per_category: int
    eligible_countries: frozenset[str]
    min_group_size: int = 1
    rules: tuple[str, ...] = field(default_factory=tuple)


DEFAULT_RULE_SETS: Mapping[TournamentType, TournamentRuleSet] = {
    TournamentType.CAMPEONATO_PANAMERICANO: TournamentRuleSet(
        tournament_type=TournamentType.CAMPEONATO_PANAMERICANO,
        display_name="Campeonato Panamericano",
        max_per_country_per_category=4,
        eligible_countries=PAN_AMERICAN_COUNTRIES,
        rules=(
            "Maximum 4 choreographies per country per category per choreography type",
            "Pan-American federations only",
            "At least one gymnast per choreography",
        ),
    ),
    TournamentType.COPA_PANAMERICANA: TournamentRuleSet(
        tournament_type=TournamentType.COPA_PANAMERICANA,
        display_name="Copa Panamericana",
        max_per_country_per_category=4,
        eligible_countries=PAN_AMERICAN_COUNTRIES | GUEST_COUNTRIES,
        rules=(
            "Maximum 4 choreographies per country per category per choreography type",
            "Pan-American federations plus guest federations",
            "At least one gymnast per choreography",
        ),
    ),
}


class RuleEngine:
    """Looks up rule sets by tournament type and validates registrations."""

    def __init__(
        self,
        rule_sets: Mapping[TournamentType, TournamentRuleSet] = DEFAULT_RULE_SETS,
    ) -> None:
        self._rule_sets = dict(rule_sets)

    def rule_set_for(
        self, tournament_type: Union[TournamentType, str]
    ) -> TournamentRuleSet:
        """Return the rule set for ``tournament_type``.

        Raises:
            UnknownTournamentType: If no rule set is registered.
        """
        try:
            key = TournamentType(tournament_type)
        except ValueError:
            key = None
        rule_set = self._rule_sets.get(key) if key is not None else None
        if rule_set is None:
            raise UnknownTournamentType(
                f"No business rules found for tournament type: {tournament_type}"
            )
        return rule_set

    def supported_tournament_types(self) -> list[TournamentType]:
        return list(self._rule_sets)

    def all_rule_sets(self) -> list[TournamentRuleSet]:
        return list(self._rule_sets.values())

    def validate(
        self,
        tournament_type: Union[TournamentType, str],
        request: RegistrationRequest,
        existing_count: int,
    ) -> ValidationOutcome:
        """Validate a proposed registration before it is persisted.

        Checks run in order: quota, country, group size. The first failure
        is raised.

        Args:
            tournament_type: Type of the target tournament.
            request: The proposed registration.
            existing_count: Registrations already stored for the same
                country, category, type and tournament.

        Raises:
            QuotaExceeded, CountryNotEligible, EmptyGroup: On rule violations.
            UnknownTournamentType: If the tournament type has no rule set.
        """
        rule_set = self.rule_set_for(tournament_type)
        country = request.country.strip().upper()
        category = request.category.value
        choreography_type = request.choreography_type.value
        max_allowed = rule_set.max_per_country_per_category

        failures: list[ValidationError] = []

        if existing_count >= max_allowed:
            failures.append(QuotaExceeded(
                f"{rule_set.display_name} allows maximum {max_allowed} "
                f"choreographies per country per category per choreography type. "
                f"{country} already has {existing_count} in {category} {choreography_type}."
            ))

        if country not in rule_set.eligible_countries:
            failures.append(CountryNotEligible(
                f"Country {country} is not eligible for {rule_set.display_name}. "
                f"Eligible countries: {', '.join(sorted(rule_set.eligible_countries))}"
            ))

        if len(request.member_ids) < rule_set.min_group_size:
            failures.append(EmptyGroup(
                f"At least {rule_set.min_group_size} gymnast(s) required for "
                f"{rule_set.display_name} ({country} {category} {choreography_type})"
            ))

        if failures:
            logger.info(
                "Registration rejected for %s %s %s: %s",
                country,
                category,
                choreography_type,
                failures[0].message,
            )
            raise failures[0]

        return ValidationOutcome(
            tournament_type=rule_set.tournament_type.value,
            max_per_country_per_category=max_allowed,
            existing_count=existing_count,
            remaining=max_allowed - existing_count - 1,
        )


def build_registration_request(
    country: str,
    members: Sequence[AthleteRecord],
    tournament_id: Optional[str] = None,
    today: Optional[date] = None,
) -> RegistrationRequest:
    """Derive type, category and name for a choreography from its members.

    Members are used in selection order for the name. The category is the
    oldest member's.

    Raises:
        InvalidGroupSize: If the member count maps to no choreography type,
            or a member has no birth date.
    """
    choreography_type = derive.type_from_group(
        len(members), [m.gender for m in members]
    )
    births = [m.date_of_birth for m in members]
    if any(b is None for b in births):
        raise InvalidGroupSize(
            "Every gymnast needs a date of birth to derive the category"
        )
    return RegistrationRequest(
        country=country.strip().upper(),
        category=derive.category_for_group(births, today),
        choreography_type=choreography_type,
        member_ids=[m.id for m in members],
        tournament_id=tournament_id,
        name=derive.choreography_name(m.last_name for m in members),
    )
