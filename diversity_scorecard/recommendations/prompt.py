"""
Advisory prompt construction and response parsing.

The prompt lists each category's grade and every group's trial percentage
against its benchmark, then asks for recommendations in this block format
(blocks separated by a blank line)::

    Category: race
    Message: Black participants are under-represented ...
    Priority: high
    Action Items:
    - Partner with community health centers ...
    - Translate consent materials ...

``parse_recommendations()`` accepts that format leniently: markdown bold
markers are stripped, key order inside a block does not matter, and blocks
with an unknown category or priority are skipped.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from pydantic import ValidationError

from diversity_scorecard.models.scorecard import DemographicResults, Recommendation
from diversity_scorecard.vectors.similarity import SimilarRecord

logger = logging.getLogger(__name__)

_BLOCK_SPLIT = re.compile(r"\n\s*\n")
_KEY_LINE = re.compile(r"^(category|message|priority|action items)\s*:\s*(.*)$", re.IGNORECASE)


def build_prompt(
    demographics: DemographicResults,
    similar: Sequence[SimilarRecord] = (),
    drug: Optional[str] = None,
) -> str:
    """Build the advisory prompt for one scored submission."""
    lines: list[str] = [
        "Given the following clinical trial diversity scorecard, provide specific "
        "recommendations for improving diversity and inclusion. Focus on actionable "
        "steps based on the grades and demographic data.",
        "",
        "Scorecard Summary:",
    ]
    if drug:
        lines.append(f"Drug: {drug}")
    lines.append("")
    lines.append("Demographics:")
    for category, data in demographics.by_category():
        lines.append(f"- {category.value.title()} (Grade: {data.grade})")
        for item in data.data:
            lines.append(
                f"  * {item.name}: {item.percentage:g}% (Expected: {item.expected_percentage:g}%)"
            )
        lines.append("")

    if similar:
        lines.append("Similar prior trials (cosine similarity):")
        for hit in similar:
            label = hit.record.get("drug") or hit.id
            grade = hit.record.get("overall_grade")
            suffix = f", overall grade {grade}" if grade else ""
            lines.append(f"- {label}: {hit.similarity:.2f}{suffix}")
        lines.append("")

    lines.extend([
        "For each demographic category (sex, age, race, ethnicity) that needs "
        "improvement, provide specific recommendations with:",
        "1. The category being addressed",
        "2. A clear message explaining the issue and solution",
        "3. Priority level (high/medium/low)",
        "4. 2-3 specific action items",
        "",
        "Format each recommendation as:",
        "Category: [category]",
        "Message: [recommendation text]",
        "Priority: [priority level]",
        "Action Items:",
        "- [action item 1]",
        "- [action item 2]",
        "- [action item 3 (optional)]",
    ])
    return "\n".join(lines)


def parse_recommendations(text: str) -> list[Recommendation]:
    """Parse ``Category:/Message:/Priority:/Action Items:`` blocks.

    Returns:
        One ``Recommendation`` per well-formed block, in text order.
    """
    recommendations: list[Recommendation] = []
    for block in _BLOCK_SPLIT.split(text.replace("\r\n", "\n")):
        fields: dict[str, str] = {}
        action_items: list[str] = []
        in_actions = False

        for raw_line in block.split("\n"):
            line = raw_line.replace("**", "").strip()
            if not line:
                continue
            match = _KEY_LINE.match(line)
            if match:
                key = match.group(1).lower()
                in_actions = key == "action items"
                if not in_actions:
                    fields[key] = match.group(2).strip()
                continue
            if in_actions and line[0] in "-*•":
                item = line[1:].strip()
                if item:
                    action_items.append(item)

        if "category" not in fields:
            continue
        try:
            recommendations.append(
                Recommendation(
                    category=fields["category"].strip().lower(),
                    message=fields.get("message", ""),
                    priority=fields.get("priority", "").strip().lower(),
                    action_items=action_items,
                )
            )
        except ValidationError as exc:
            logger.debug("Skipping malformed recommendation block: %s", exc.errors()[0]["msg"])

    return recommendations
