"""
Demographic taxonomy for trial scorecards.

Four orthogonal enums describe every graded entry:
  - ``DemographicCategory`` — which demographic axis (sex, age, race, ethnicity).
  - ``Grade``               — letter grade, ``A`` best, ``F`` worst.
  - ``DiseaseIncidence``    — disease incidence in a group relative to the population.
  - ``Priority``            — urgency of a recommendation.

This module has NO imports from any other ``diversity_scorecard`` package.
"""

from enum import StrEnum


class DemographicCategory(StrEnum):
    """Demographic axis a trial population is graded on."""

    SEX = "sex"
    AGE = "age"
    RACE = "race"
    ETHNICITY = "ethnicity"


CATEGORY_ORDER: tuple[DemographicCategory, ...] = (
    DemographicCategory.SEX,
    DemographicCategory.AGE,
    DemographicCategory.RACE,
    DemographicCategory.ETHNICITY,
)

CATEGORY_LABELS: dict[DemographicCategory, str] = {
    DemographicCategory.SEX:       "Sex/Gender",
    DemographicCategory.AGE:       "Age",
    DemographicCategory.RACE:      "Race",
    DemographicCategory.ETHNICITY: "Ethnicity",
}


class Grade(StrEnum):
    """Letter grade.  Alphabetical order is best-to-worst."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


GRADE_DESCRIPTIONS: dict[Grade, str] = {
    Grade.A: "excellent",
    Grade.B: "good",
    Grade.C: "moderate",
    Grade.D: "poor",
    Grade.F: "insufficient",
}


class DiseaseIncidence(StrEnum):
    """Disease incidence in a demographic group relative to the population."""

    INCREASED = "Increased"
    SIMILAR = "Similar"
    DECREASED = "Decreased"


class Priority(StrEnum):
    """Recommendation urgency."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
