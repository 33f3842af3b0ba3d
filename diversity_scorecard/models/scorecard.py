"""
Scorecard input and output models.

``ScorecardInput`` is what the form layer submits: a drug name, the total
number of participants, and per-category demographic percentages.

``ScorecardResult`` is the graded output produced once per grading request
by ``ScorecardAssembler``.  It carries per-item and per-category scores,
the aggregate embedding used for similarity search, recommendations, and
the ids of similar prior scorecards.

All models are frozen — a graded scorecard is never mutated after creation.
Field names are snake_case; the camelCase names used by the submission form
payloads (``expectedPercentage``, ``overallGrade``, ...) are accepted as
aliases and emitted with ``model_dump(by_alias=True)``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from diversity_scorecard.taxonomy.demographics import (
    CATEGORY_ORDER,
    DemographicCategory,
    DiseaseIncidence,
    Grade,
    Priority,
)

Vector = list[float]

_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class DemographicInput(BaseModel):
    """One demographic group as submitted by the caller.

    Attributes:
        code: Benchmark code, e.g. ``"female"`` or ``"45-64"``.
        name: Display name, e.g. ``"Female"``.
        percentage: Share of trial participants in this group, in [0, 100].
        expected_percentage: Caller-supplied expectation; replaced by the
            benchmark value when scored.
        number_treated: Number of participants treated in this group.
        disease_incidence: Disease incidence relative to the population.
    """

    model_config = _MODEL_CONFIG

    code: str
    name: str
    percentage: float
    expected_percentage: Optional[float] = None
    number_treated: int = 0
    disease_incidence: DiseaseIncidence = DiseaseIncidence.SIMILAR

    @field_validator("percentage")
    @classmethod
    def validate_percentage(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"percentage must be in [0, 100], got {v}.")
        return v

    @field_validator("number_treated")
    @classmethod
    def validate_number_treated(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"number_treated must be non-negative, got {v}.")
        return v


class DemographicResult(DemographicInput):
    """A scored demographic group."""

    expected_percentage: float
    score: float
    grade: Grade
    embedding: Vector = Field(default_factory=list)

    @field_validator("score")
    @classmethod
    def validate_score(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"score must be in [0, 1], got {v}.")
        return v


class DemographicData(BaseModel):
    """All scored groups of one category plus the category aggregate."""

    model_config = _MODEL_CONFIG

    data: list[DemographicResult] = Field(default_factory=list)
    grade: Grade
    score: float


class Demographics(BaseModel):
    """Submitted demographic groups for all four categories."""

    model_config = _MODEL_CONFIG

    sex: list[DemographicInput] = Field(default_factory=list)
    age: list[DemographicInput] = Field(default_factory=list)
    race: list[DemographicInput] = Field(default_factory=list)
    ethnicity: list[DemographicInput] = Field(default_factory=list)

    def for_category(self, category: DemographicCategory | str) -> list[DemographicInput]:
        return getattr(self, DemographicCategory(category).value)


class DemographicResults(BaseModel):
    """Scored demographic data for all four categories."""

    model_config = _MODEL_CONFIG

    sex: DemographicData
    age: DemographicData
    race: DemographicData
    ethnicity: DemographicData

    def for_category(self, category: DemographicCategory | str) -> DemographicData:
        return getattr(self, DemographicCategory(category).value)

    def by_category(self) -> list[tuple[DemographicCategory, DemographicData]]:
        """Return ``(category, data)`` pairs in canonical category order."""
        return [(c, self.for_category(c)) for c in CATEGORY_ORDER]


class ScorecardInput(BaseModel):
    """A grading request.

    Attributes:
        drug: Drug (or trial) name.
        total_participants: Total enrolled participants; used for report
            statistics only.
        demographics: Submitted groups per category.
    """

    model_config = _MODEL_CONFIG

    drug: str
    total_participants: int = 0
    demographics: Demographics

    @field_validator("drug")
    @classmethod
    def validate_drug_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("drug must not be empty.")
        return v.strip()

    @field_validator("total_participants")
    @classmethod
    def validate_total_participants(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"total_participants must be non-negative, got {v}.")
        return v


class Recommendation(BaseModel):
    """An advisory recommendation for one demographic category."""

    model_config = _MODEL_CONFIG

    category: DemographicCategory
    message: str
    priority: Priority
    action_items: list[str] = Field(default_factory=list)


class ScorecardResult(BaseModel):
    """A complete graded scorecard.

    Attributes:
        id: UUID4 string assigned by the assembler.
        drug: Drug name from the input.
        demographics: Scored data per category.
        overall_grade: Grade of ``overall_score``.
        overall_score: Equal-weight mean of the four category scores.
        embedding: Aggregate unit vector used for similarity search.
        recommendations: Advisory output, stored verbatim.
        similar_scorecards: Ids of similar prior scorecards, best first.
    """

    model_config = _MODEL_CONFIG

    id: str
    drug: str
    demographics: DemographicResults
    overall_grade: Grade
    overall_score: float
    embedding: Vector = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    similar_scorecards: list[str] = Field(default_factory=list)
