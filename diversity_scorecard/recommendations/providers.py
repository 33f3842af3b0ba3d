"""
Recommender implementations.

Protocol::

    generate(demographics, similar, drug=None) -> list[Recommendation]

Implementations
---------------
NullRecommender:
    Always returns ``[]``.

RuleBasedRecommender:
    Offline rules, one recommendation per category graded B or worse.

        Grade F or D -> priority "high"
        Grade C      -> priority "medium"
        Grade B      -> priority "low"
        Grade A      -> no recommendation

    Action items name the groups furthest from their benchmark (largest
    absolute percentage-point gap first, at most three), plus a pointer to
    similar prior trials when any were found.

LLMRecommender:
    Sends ``build_prompt()`` to an OpenAI / Azure OpenAI compatible
    ``/chat/completions`` endpoint and parses the reply with
    ``parse_recommendations()``.  Every failure raises
    ``RecommenderUnavailableError``.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

import httpx

from diversity_scorecard.config import RecommenderConfig
from diversity_scorecard.errors import RecommenderUnavailableError
from diversity_scorecard.models.scorecard import (
    DemographicData,
    DemographicResults,
    Recommendation,
)
from diversity_scorecard.recommendations.prompt import build_prompt, parse_recommendations
from diversity_scorecard.taxonomy.demographics import (
    CATEGORY_LABELS,
    GRADE_DESCRIPTIONS,
    DemographicCategory,
    Grade,
    Priority,
)
from diversity_scorecard.vectors.similarity import SimilarRecord

logger = logging.getLogger(__name__)

_GRADE_PRIORITY: dict[Grade, Priority] = {
    Grade.F: Priority.HIGH,
    Grade.D: Priority.HIGH,
    Grade.C: Priority.MEDIUM,
    Grade.B: Priority.LOW,
}

_MAX_ACTION_GROUPS = 3


class Recommender(Protocol):
    def generate(
        self,
        demographics: DemographicResults,
        similar: Sequence[SimilarRecord],
        drug: Optional[str] = None,
    ) -> list[Recommendation]:
        ...


class NullRecommender:
    """Recommender that never recommends anything."""

    def generate(
        self,
        demographics: DemographicResults,
        similar: Sequence[SimilarRecord],
        drug: Optional[str] = None,
    ) -> list[Recommendation]:
        return []


class RuleBasedRecommender:
    """Deterministic recommendations derived from grades and benchmark gaps."""

    def generate(
        self,
        demographics: DemographicResults,
        similar: Sequence[SimilarRecord],
        drug: Optional[str] = None,
    ) -> list[Recommendation]:
        recommendations: list[Recommendation] = []
        for category, data in demographics.by_category():
            priority = _GRADE_PRIORITY.get(data.grade)
            if priority is None:
                continue
            recommendations.append(
                Recommendation(
                    category=category,
                    message=_build_message(category, data),
                    priority=priority,
                    action_items=_build_action_items(category, data, similar),
                )
            )

        # high before medium before low; category order within a priority
        rank = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}
        return sorted(recommendations, key=lambda r: rank[r.priority])


def _build_message(category: DemographicCategory, data: DemographicData) -> str:
    label = CATEGORY_LABELS[category]
    if not data.data:
        return f"No {label.lower()} breakdown was reported for this trial."
    return (
        f"{label} representation is {GRADE_DESCRIPTIONS[data.grade]} "
        f"(grade {data.grade}, score {data.score:.2f}) relative to population benchmarks."
    )


def _build_action_items(
    category: DemographicCategory,
    data: DemographicData,
    similar: Sequence[SimilarRecord],
) -> list[str]:
    label = CATEGORY_LABELS[category].lower()
    if not data.data:
        return [f"Collect and report the {label} breakdown of enrolled participants"]

    items: list[str] = []
    gaps = sorted(
        (r for r in data.data if r.score < 1.0),
        key=lambda r: abs(r.percentage - r.expected_percentage),
        reverse=True,
    )
    for r in gaps[:_MAX_ACTION_GROUPS]:
        if r.percentage < r.expected_percentage:
            items.append(
                f"Increase enrollment of {r.name} participants "
                f"({r.percentage:.1f}% enrolled vs {r.expected_percentage:.1f}% expected)"
            )
        else:
            items.append(
                f"Rebalance recruitment away from over-represented {r.name} participants "
                f"({r.percentage:.1f}% enrolled vs {r.expected_percentage:.1f}% expected)"
            )

    if similar:
        items.append(
            f"Review the recruitment strategies of {len(similar)} similar prior trial(s)"
        )
    return items


class LLMRecommender:
    """Chat-completion backed recommender.

    Args:
        base_url:    Endpoint prefix (``.../v1`` or an Azure deployment URL).
        deployment:  Model / deployment name sent in the payload.
        api_key:     Bearer token / Azure ``api-key``.
        api_version: Azure ``api-version``; empty for OpenAI.
        timeout_s:   Request timeout in seconds.
        client:      Optional pre-built ``httpx.Client``.
    """

    def __init__(
        self,
        base_url: str,
        deployment: str,
        api_key: Optional[str] = None,
        api_version: str = "",
        timeout_s: float = 60.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required for the llm recommender.")
        self.base_url = base_url.rstrip("/")
        self.deployment = deployment
        self.api_key = api_key
        self.api_version = api_version
        self._client = client or httpx.Client(timeout=timeout_s)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            if self.api_version:
                headers["api-key"] = self.api_key
            else:
                headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def generate(
        self,
        demographics: DemographicResults,
        similar: Sequence[SimilarRecord],
        drug: Optional[str] = None,
    ) -> list[Recommendation]:
        """Request and parse recommendations.

        Raises:
            RecommenderUnavailableError: On transport errors, non-2xx
                responses, or a reply without message content.
        """
        prompt = build_prompt(demographics, similar, drug=drug)
        params = {"api-version": self.api_version} if self.api_version else None
        try:
            resp = self._client.post(
                f"{self.base_url}/chat/completions",
                params=params,
                headers=self._headers(),
                json={
                    "model": self.deployment,
                    "messages": [{"role": "user", "content": prompt}],
                },
            )
            resp.raise_for_status()
            content = resp.json()["choices"][0]["message"]["content"]
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            raise RecommenderUnavailableError(f"Recommendation request failed: {exc!r}") from exc

        if not isinstance(content, str):
            raise RecommenderUnavailableError("Recommendation reply has no text content.")

        recommendations = parse_recommendations(content)
        logger.info("LLM returned %d recommendation(s)", len(recommendations))
        return recommendations

    def close(self) -> None:
        self._client.close()


def build_recommender(config: RecommenderConfig) -> Recommender:
    """Construct the recommender selected by ``config.provider``."""
    if config.provider == "llm":
        return LLMRecommender(
            base_url=config.base_url,
            deployment=config.deployment,
            api_key=config.api_key,
            api_version=config.api_version,
            timeout_s=config.timeout_s,
        )
    if config.provider == "rules":
        return RuleBasedRecommender()
    return NullRecommender()
