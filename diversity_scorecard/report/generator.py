"""
Markdown report generation for graded scorecards.

``build_report_context()`` flattens a ``ScorecardResult`` into the plain
dict/list structure the template engine walks; ``generate_report()`` renders
it with the bundled template; ``write_report()`` persists the markdown.

Context layout (all keys snake_case)
-------------------------------------
    drug_name, scorecard_id, generated_at (ISO string)
    overall_grade, overall_score, overall_description, weakest_category
    categories          list, canonical order, one dict per category:
                        key, label, grade, score, group_count, items,
                        largest_group, has_margin, margin_of_error
    demographics        same dicts keyed by category value
    statistics          total_participants, confidence_level
    disease_incidence   rows for groups whose incidence is not "Similar"
    recommendations     {"high": [...], "medium": [...], "low": [...]}
    action_items        flattened action items, priority order
    has_recommendations bool
    similar_scorecards  list of ids
    references          list of strings

Margin of error
---------------
95% normal approximation on the largest group's share of participants:

    moe = 1.96 * sqrt(p * (1 - p) / n) * 100     (percentage points)

Undefined (``has_margin = False``) when ``n <= 0`` or the category is empty.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from diversity_scorecard.models.scorecard import (
    DemographicData,
    DemographicResult,
    Recommendation,
    ScorecardResult,
)
from diversity_scorecard.report.template_engine import render
from diversity_scorecard.report.templates import REFERENCES, SCORECARD_REPORT_TEMPLATE
from diversity_scorecard.taxonomy.demographics import (
    CATEGORY_LABELS,
    GRADE_DESCRIPTIONS,
    DemographicCategory,
    DiseaseIncidence,
    Priority,
)
from diversity_scorecard.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

Z_95 = 1.96

# Items within this many points of their benchmark count as proportional.
_PROPORTIONAL_BAND = 5.0


def margin_of_error(share_pct: float, sample_size: int) -> Optional[float]:
    """95% margin of error in percentage points, or ``None`` if undefined."""
    if sample_size <= 0:
        return None
    p = min(max(share_pct / 100.0, 0.0), 1.0)
    return Z_95 * math.sqrt(p * (1.0 - p) / sample_size) * 100.0


def _representation(item: DemographicResult) -> str:
    difference = item.percentage - item.expected_percentage
    if difference > _PROPORTIONAL_BAND:
        return "Over-represented"
    if difference < -_PROPORTIONAL_BAND:
        return "Under-represented"
    return "Proportional"


def _incidence_assessment(incidence: DiseaseIncidence, representation: str) -> str:
    if incidence == DiseaseIncidence.INCREASED:
        if representation == "Under-represented":
            return "Under-enrolled relative to elevated disease burden"
        return "Enrollment reflects elevated disease burden"
    if representation == "Over-represented":
        return "Over-enrolled relative to lower disease burden"
    return "Enrollment consistent with lower disease burden"


def _item_row(item: DemographicResult) -> dict[str, Any]:
    return {
        "code": item.code,
        "name": item.name,
        "percentage": item.percentage,
        "expected_percentage": item.expected_percentage,
        "difference": item.percentage - item.expected_percentage,
        "score": item.score,
        "grade": item.grade.value,
        "number_treated": item.number_treated,
        "disease_incidence": item.disease_incidence.value,
    }


def _category_context(
    category: DemographicCategory,
    data: DemographicData,
    total_participants: int,
) -> dict[str, Any]:
    largest = max(data.data, key=lambda item: item.percentage, default=None)
    moe = margin_of_error(largest.percentage, total_participants) if largest else None
    return {
        "key": category.value,
        "label": CATEGORY_LABELS[category],
        "grade": data.grade.value,
        "score": data.score,
        "group_count": len(data.data),
        "items": [_item_row(item) for item in data.data],
        "largest_group": largest.name if largest else "-",
        "has_margin": moe is not None,
        "margin_of_error": moe,
    }


def _recommendation_row(rec: Recommendation) -> dict[str, Any]:
    return {
        "category": CATEGORY_LABELS[rec.category],
        "message": rec.message,
        "priority": rec.priority.value,
        "action_items": list(rec.action_items),
    }


def build_report_context(
    result: ScorecardResult,
    generated_at: Optional[datetime] = None,
    total_participants: int = 0,
) -> dict[str, Any]:
    """Map a graded scorecard to the report template context.

    Args:
        result:             Graded scorecard.
        generated_at:       Report timestamp.  Defaults to ``utcnow()``.
        total_participants: Enrolled participants, used for margin of error.

    Returns:
        Plain dict ready for ``render()``.
    """
    generated_at = generated_at or utcnow()

    categories = [
        _category_context(category, data, total_participants)
        for category, data in result.demographics.by_category()
    ]
    # min() keeps the first of equal scores, i.e. canonical order.
    weakest = min(categories, key=lambda c: c["score"])

    incidence_rows: list[dict[str, str]] = []
    for category, data in result.demographics.by_category():
        for item in data.data:
            if item.disease_incidence == DiseaseIncidence.SIMILAR:
                continue
            representation = _representation(item)
            incidence_rows.append({
                "demographic": f"{item.name} ({CATEGORY_LABELS[category]})",
                "level": item.disease_incidence.value,
                "representation": representation,
                "assessment": _incidence_assessment(item.disease_incidence, representation),
            })

    grouped: dict[str, list[dict[str, Any]]] = {p.value: [] for p in Priority}
    for rec in result.recommendations:
        grouped[rec.priority.value].append(_recommendation_row(rec))
    action_items = [
        action
        for priority in Priority
        for rec in grouped[priority.value]
        for action in rec["action_items"]
    ]

    return {
        "drug_name": result.drug,
        "scorecard_id": result.id,
        "generated_at": generated_at.isoformat(),
        "overall_grade": result.overall_grade.value,
        "overall_score": result.overall_score,
        "overall_description": GRADE_DESCRIPTIONS[result.overall_grade],
        "weakest_category": weakest["label"].lower(),
        "categories": categories,
        "demographics": {c["key"]: c for c in categories},
        "statistics": {
            "total_participants": total_participants,
            "confidence_level": 95,
        },
        "disease_incidence": incidence_rows,
        "recommendations": grouped,
        "action_items": action_items,
        "has_recommendations": bool(result.recommendations),
        "similar_scorecards": list(result.similar_scorecards),
        "references": list(REFERENCES),
    }


def generate_report(
    result: ScorecardResult,
    generated_at: Optional[datetime] = None,
    total_participants: int = 0,
    template: str = SCORECARD_REPORT_TEMPLATE,
) -> str:
    """Render the markdown report for ``result``."""
    context = build_report_context(result, generated_at, total_participants)
    markdown = render(template, context)
    logger.debug("Rendered report for scorecard %s (%d chars)", result.id, len(markdown))
    return markdown


def write_report(markdown: str, output_dir: Path, scorecard_id: str) -> Path:
    """Write ``markdown`` to ``<output_dir>/scorecard_<id>.md``.

    Returns:
        Path of the written file.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"scorecard_{scorecard_id}.md"
    path.write_text(markdown, encoding="utf-8")
    logger.info("Report written to %s", path)
    return path
