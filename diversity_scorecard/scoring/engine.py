"""
Scoring engine: converts demographic percentages into scores and grades.

Per-item score (step function of the absolute percentage-point gap)
-------------------------------------------------------------------
    diff = |percentage - expected_percentage|

    diff <=  5  -> 1.0
    diff <= 10  -> 0.8
    diff <= 15  -> 0.6
    diff <= 20  -> 0.4
    diff <= 25  -> 0.2
    otherwise   -> 0.0

Grade thresholds (applied to item, category, and overall scores)
----------------------------------------------------------------
    score >= 0.9 -> A
    score >= 0.8 -> B
    score >= 0.7 -> C
    score >= 0.6 -> D
    otherwise    -> F

Aggregation
-----------
Category score is the arithmetic mean of its item scores (an empty category
scores 0.0 / F).  The overall score is the mean of the four category scores,
each weighted equally regardless of how many groups it contains.

All functions are pure: no I/O, no mutation of inputs.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from diversity_scorecard.models.scorecard import (
    DemographicData,
    DemographicInput,
    DemographicResult,
    DemographicResults,
    Demographics,
)
from diversity_scorecard.scoring.benchmarks import BenchmarkTable
from diversity_scorecard.taxonomy.demographics import (
    CATEGORY_ORDER,
    DemographicCategory,
    Grade,
)

# (max difference in percentage points, score), checked in order
_DIFFERENCE_STEPS: tuple[tuple[float, float], ...] = (
    (5.0,  1.0),
    (10.0, 0.8),
    (15.0, 0.6),
    (20.0, 0.4),
    (25.0, 0.2),
)

# (min score, grade), checked in order
_GRADE_THRESHOLDS: tuple[tuple[float, Grade], ...] = (
    (0.9, Grade.A),
    (0.8, Grade.B),
    (0.7, Grade.C),
    (0.6, Grade.D),
)


def difference_score(actual: float, expected: float) -> float:
    """Score the gap between trial and population percentage (0.0–1.0)."""
    difference = abs(actual - expected)
    for max_diff, score in _DIFFERENCE_STEPS:
        if difference <= max_diff:
            return score
    return 0.0


def grade_for_score(score: float) -> Grade:
    """Map a score in [0, 1] to a letter grade."""
    for min_score, grade in _GRADE_THRESHOLDS:
        if score >= min_score:
            return grade
    return Grade.F


def score_item(
    item: DemographicInput,
    category: DemographicCategory | str,
    benchmarks: BenchmarkTable,
) -> DemographicResult:
    """Score a single demographic group against its benchmark.

    Raises:
        UnknownBenchmarkCodeError: If the benchmark table has no entry for
            ``(category, item.code)`` and is in strict mode.
    """
    expected = benchmarks.lookup(str(category), item.code)
    score = difference_score(item.percentage, expected)
    return DemographicResult(
        code=item.code,
        name=item.name,
        percentage=item.percentage,
        expected_percentage=expected,
        number_treated=item.number_treated,
        disease_incidence=item.disease_incidence,
        score=score,
        grade=grade_for_score(score),
    )


def score_category(
    inputs: Sequence[DemographicInput],
    category: DemographicCategory | str,
    benchmarks: BenchmarkTable,
) -> DemographicData:
    """Score every group in one category and aggregate.

    Args:
        inputs:     Submitted groups for this category.
        category:   Category the groups belong to.
        benchmarks: Population benchmark lookup.

    Returns:
        ``DemographicData`` with per-item results, mean score, and grade.
        An empty ``inputs`` list yields score 0.0 and grade F.

    Raises:
        UnknownBenchmarkCodeError: Propagated from ``score_item``.
    """
    category = DemographicCategory(category)
    results = [score_item(item, category, benchmarks) for item in inputs]
    if not results:
        return DemographicData(data=[], grade=Grade.F, score=0.0)
    score = sum(r.score for r in results) / len(results)
    return DemographicData(data=results, grade=grade_for_score(score), score=score)


def score_demographics(
    demographics: Demographics,
    benchmarks: BenchmarkTable,
) -> DemographicResults:
    """Score all four categories of a submission."""
    scored = {
        category.value: score_category(demographics.for_category(category), category, benchmarks)
        for category in CATEGORY_ORDER
    }
    return DemographicResults(**scored)


def overall_score(categories: DemographicResults | Mapping[str, DemographicData]) -> tuple[float, Grade]:
    """Return ``(score, grade)`` for the equal-weight mean of the four categories."""
    if isinstance(categories, DemographicResults):
        scores = [data.score for _, data in categories.by_category()]
    else:
        scores = [categories[c.value].score for c in CATEGORY_ORDER]
    score = sum(scores) / len(scores)
    return score, grade_for_score(score)
