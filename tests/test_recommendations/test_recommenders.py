"""
Tests for diversity_scorecard/recommendations/.

What we test
------------
RuleBasedRecommender:
  - No recommendations when every category is graded A.
  - One recommendation per category graded B or worse, F/D -> high.
  - Action items name the furthest-from-benchmark groups first.
  - Empty categories ask for the breakdown to be collected.
  - Similar trials add a review action item.
build_prompt / parse_recommendations:
  - Prompt lists grades, percentages, and similar trials.
  - Parser handles bold markers, bullet styles, and skips malformed blocks.
LLMRecommender:
  - Posts the prompt and parses the reply (MockTransport).
  - Transport and payload failures raise RecommenderUnavailableError.
"""

from __future__ import annotations

import json

import httpx
import pytest

from diversity_scorecard.config import RecommenderConfig
from diversity_scorecard.errors import RecommenderUnavailableError
from diversity_scorecard.models.scorecard import Demographics
from diversity_scorecard.recommendations.prompt import build_prompt, parse_recommendations
from diversity_scorecard.recommendations.providers import (
    LLMRecommender,
    NullRecommender,
    RuleBasedRecommender,
    build_recommender,
)
from diversity_scorecard.scoring.engine import score_demographics
from diversity_scorecard.taxonomy.demographics import DemographicCategory, Priority
from diversity_scorecard.vectors.similarity import SimilarRecord


@pytest.fixture
def skewed_scored(skewed_demographics, benchmarks):
    return score_demographics(skewed_demographics, benchmarks)


@pytest.fixture
def balanced_scored(balanced_demographics, benchmarks):
    return score_demographics(balanced_demographics, benchmarks)


SIMILAR = [
    SimilarRecord(record={"id": "prior-1", "drug": "Oldumab", "overall_grade": "B"}, similarity=0.91),
]


# ── RuleBasedRecommender ──────────────────────────────────────────────────────

class TestRuleBasedRecommender:
    def test_all_a_gives_nothing(self, balanced_scored):
        assert RuleBasedRecommender().generate(balanced_scored, []) == []

    def test_failing_categories_are_high_priority(self, skewed_scored):
        recs = RuleBasedRecommender().generate(skewed_scored, [])
        assert [r.category for r in recs] == [DemographicCategory.RACE, DemographicCategory.ETHNICITY]
        assert all(r.priority == Priority.HIGH for r in recs)

    def test_action_items_largest_gap_first(self, skewed_scored):
        race = RuleBasedRecommender().generate(skewed_scored, [])[0]
        assert race.action_items[0].startswith("Rebalance recruitment away from over-represented White")
        assert race.action_items[1].startswith("Increase enrollment of Black or African American")
        assert "2.0% enrolled vs 13.6% expected" in race.action_items[1]
        # Asian is within 5 points and needs no action.
        assert not any("Asian" in item for item in race.action_items)

    def test_similar_trials_add_review_item(self, skewed_scored):
        recs = RuleBasedRecommender().generate(skewed_scored, SIMILAR)
        assert recs[0].action_items[-1] == "Review the recruitment strategies of 1 similar prior trial(s)"

    def test_empty_category(self, benchmarks, balanced_demographics):
        demographics = balanced_demographics.model_copy(update={"age": []})
        scored = score_demographics(demographics, benchmarks)
        recs = RuleBasedRecommender().generate(scored, [])
        assert len(recs) == 1
        assert recs[0].category == DemographicCategory.AGE
        assert recs[0].priority == Priority.HIGH
        assert "No age breakdown" in recs[0].message
        assert recs[0].action_items == ["Collect and report the age breakdown of enrolled participants"]

    def test_priority_by_grade(self, benchmarks):
        # sex: one group at 1.0, one at 0.6 -> mean 0.8 -> B -> low
        # age: one group at 0.4 -> F -> high
        demographics = Demographics.model_validate({
            "sex": [
                {"code": "male", "name": "Male", "percentage": 50.0},
                {"code": "female", "name": "Female", "percentage": 64.0},
            ],
            "age": [{"code": "65+", "name": "65+", "percentage": 2.0}],
            "race": [{"code": "white", "name": "White", "percentage": 60.0}],
            "ethnicity": [{"code": "hispanic", "name": "Hispanic", "percentage": 19.0}],
        })
        recs = RuleBasedRecommender().generate(score_demographics(demographics, benchmarks), [])
        assert [(r.category, r.priority) for r in recs] == [
            (DemographicCategory.AGE, Priority.HIGH),
            (DemographicCategory.SEX, Priority.LOW),
        ]


class TestNullRecommender:
    def test_always_empty(self, skewed_scored):
        assert NullRecommender().generate(skewed_scored, SIMILAR) == []


# ── Prompt ────────────────────────────────────────────────────────────────────

class TestBuildPrompt:
    def test_lists_grades_and_groups(self, skewed_scored):
        prompt = build_prompt(skewed_scored, drug="Skewomab")
        assert "Drug: Skewomab" in prompt
        assert "- Race (Grade: F)" in prompt
        assert "  * White: 90% (Expected: 59.3%)" in prompt
        assert "Action Items:" in prompt

    def test_includes_similar_trials(self, skewed_scored):
        prompt = build_prompt(skewed_scored, SIMILAR)
        assert "Similar prior trials" in prompt
        assert "- Oldumab: 0.91, overall grade B" in prompt

    def test_omits_similar_section_when_none(self, skewed_scored):
        assert "Similar prior trials" not in build_prompt(skewed_scored)


class TestParseRecommendations:
    def test_parses_blocks(self):
        text = (
            "**Category:** race\n"
            "**Message:** Black participants are under-represented.\n"
            "**Priority:** High\n"
            "**Action Items:**\n"
            "- Partner with community clinics\n"
            "* Translate consent forms\n"
            "\n"
            "Category: Ethnicity\n"
            "Priority: medium\n"
            "Message: Expand Spanish-language outreach.\n"
            "Action Items:\n"
            "• Hire bilingual coordinators\n"
        )
        recs = parse_recommendations(text)
        assert len(recs) == 2
        assert recs[0].category == DemographicCategory.RACE
        assert recs[0].priority == Priority.HIGH
        assert recs[0].action_items == ["Partner with community clinics", "Translate consent forms"]
        assert recs[1].category == DemographicCategory.ETHNICITY
        assert recs[1].message == "Expand Spanish-language outreach."
        assert recs[1].action_items == ["Hire bilingual coordinators"]

    def test_skips_malformed_blocks(self):
        text = (
            "Here are my recommendations.\n"
            "\n"
            "Category: religion\nMessage: x\nPriority: high\n"
            "\n"
            "Category: age\nMessage: Recruit older adults.\nPriority: urgent\n"
            "\n"
            "Category: sex\nMessage: Recruit more women.\nPriority: low\n"
        )
        recs = parse_recommendations(text)
        assert [(r.category, r.priority) for r in recs] == [(DemographicCategory.SEX, Priority.LOW)]
        assert recs[0].action_items == []

    def test_empty_text(self):
        assert parse_recommendations("") == []


# ── LLMRecommender ────────────────────────────────────────────────────────────

REPLY = "Category: race\nMessage: Improve outreach.\nPriority: high\nAction Items:\n- Do a thing\n"


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestLLMRecommender:
    def test_generate(self, skewed_scored):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"choices": [{"message": {"role": "assistant", "content": REPLY}}]}
            )

        recommender = LLMRecommender(
            "https://llm.example.test/v1", "chat-mini", api_key="k", client=_client(handler)
        )
        recs = recommender.generate(skewed_scored, SIMILAR, drug="Skewomab")

        assert seen["url"] == "https://llm.example.test/v1/chat/completions"
        assert seen["body"]["model"] == "chat-mini"
        assert "Drug: Skewomab" in seen["body"]["messages"][0]["content"]
        assert len(recs) == 1
        assert recs[0].action_items == ["Do a thing"]

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, text="boom"),
            httpx.Response(200, json={"choices": []}),
            httpx.Response(200, json={"choices": [{"message": {"content": None}}]}),
            httpx.Response(200, text="not json"),
        ],
    )
    def test_failures_raise_unavailable(self, skewed_scored, response):
        recommender = LLMRecommender(
            "https://llm.example.test/v1", "chat-mini", client=_client(lambda r: response)
        )
        with pytest.raises(RecommenderUnavailableError):
            recommender.generate(skewed_scored, [])


class TestBuildRecommender:
    @pytest.mark.parametrize(
        "provider, cls",
        [("none", NullRecommender), ("rules", RuleBasedRecommender)],
    )
    def test_offline_providers(self, provider, cls):
        assert isinstance(build_recommender(RecommenderConfig(provider=provider)), cls)

    def test_llm(self):
        recommender = build_recommender(
            RecommenderConfig(provider="llm", base_url="https://llm.example.test/v1")
        )
        assert isinstance(recommender, LLMRecommender)
        recommender.close()
