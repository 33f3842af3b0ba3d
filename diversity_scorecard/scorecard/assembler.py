"""
Scorecard assembly: scoring + embeddings + similarity + recommendations.

Sequence for one grading request
--------------------------------
1. Score all four categories against the benchmark table.
   Any failure here (e.g. ``UnknownBenchmarkCodeError``) aborts assembly.
2. Embed every scored group (``"<category>: <name> (<code>)"``) and the drug
   name, then combine them into one unit-length scorecard embedding.
   Groups whose embedding fails keep an empty vector; if nothing could be
   embedded the scorecard gets a seeded random unit vector.
3. Query the similarity index with the scorecard embedding.
4. Ask the recommender for advice, passing the scored demographics and the
   similarity hits.
5. Return a frozen ``ScorecardResult`` with a fresh UUID4 id.

Failures in steps 2–4 are logged at WARNING and degrade to empty results;
they never fail the grading request.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

import numpy as np

from diversity_scorecard.config import AppConfig
from diversity_scorecard.embeddings.providers import EmbeddingProvider
from diversity_scorecard.errors import EmbeddingUnavailableError
from diversity_scorecard.models.scorecard import (
    DemographicData,
    DemographicResults,
    Recommendation,
    ScorecardInput,
    ScorecardResult,
)
from diversity_scorecard.recommendations.providers import Recommender
from diversity_scorecard.scoring.benchmarks import BenchmarkTable
from diversity_scorecard.scoring.engine import overall_score, score_demographics
from diversity_scorecard.taxonomy.demographics import DemographicCategory
from diversity_scorecard.vectors.similarity import SimilarityIndex, SimilarRecord
from diversity_scorecard.vectors.vector_math import combine_embeddings

logger = logging.getLogger(__name__)


def item_embedding_text(category: DemographicCategory | str, name: str, code: str) -> str:
    """Text embedded for one demographic group."""
    return f"{category}: {name} ({code})"


class ScorecardAssembler:
    """Builds a ``ScorecardResult`` from a ``ScorecardInput``.

    Args:
        benchmarks:  Population benchmark lookup used for scoring.
        dimensions:  Embedding length for this deployment.
        seed:        Seed for the fallback random-vector generator.
        collection:  Similarity collection holding prior scorecards.
        limit:       Maximum number of similar scorecards to keep.
        threshold:   Minimum cosine similarity for a similar scorecard.
    """

    def __init__(
        self,
        benchmarks: Optional[BenchmarkTable] = None,
        dimensions: int = 384,
        seed: int = 42,
        collection: str = "scorecards",
        limit: int = 5,
        threshold: float = 0.7,
    ) -> None:
        self.benchmarks = benchmarks or BenchmarkTable()
        self.dimensions = dimensions
        self.collection = collection
        self.limit = limit
        self.threshold = threshold
        self._rng = np.random.default_rng(seed)

    @classmethod
    def from_config(cls, config: AppConfig) -> "ScorecardAssembler":
        return cls(
            benchmarks=BenchmarkTable.from_config(
                strict=config.scoring.strict_benchmarks,
                fallback_defaults=config.scoring.fallback_defaults,
            ),
            dimensions=config.embeddings.dimensions,
            seed=config.embeddings.seed,
            collection=config.similarity.collection,
            limit=config.similarity.limit,
            threshold=config.similarity.threshold,
        )

    def assemble(
        self,
        scorecard_input: ScorecardInput,
        embedding_provider: EmbeddingProvider,
        similarity_index: SimilarityIndex,
        recommender: Recommender,
    ) -> ScorecardResult:
        """Grade one submission.

        Raises:
            UnknownBenchmarkCodeError: If a submitted code has no benchmark
                (strict mode).  No partial result is produced.
            DimensionMismatchError: If the embedding provider returns vectors
                of a length other than ``dimensions``.
        """
        scored = score_demographics(scorecard_input.demographics, self.benchmarks)
        score, grade = overall_score(scored)
        logger.info(
            "Scored '%s': overall %.3f (%s)", scorecard_input.drug, score, grade
        )

        demographics, item_vectors = self._embed_items(scored, embedding_provider)
        drug_vector = self._embed_text(embedding_provider, f"drug: {scorecard_input.drug}")
        embedding = combine_embeddings(
            [drug_vector, *item_vectors], self.dimensions, self._rng
        )

        similar = self._find_similar(similarity_index, embedding)
        recommendations = self._recommend(
            recommender, demographics, similar, scorecard_input.drug
        )

        result = ScorecardResult(
            id=str(uuid4()),
            drug=scorecard_input.drug,
            demographics=demographics,
            overall_grade=grade,
            overall_score=score,
            embedding=embedding,
            recommendations=recommendations,
            similar_scorecards=[hit.id for hit in similar],
        )
        logger.info(
            "Assembled scorecard %s | similar=%d | recommendations=%d",
            result.id, len(result.similar_scorecards), len(result.recommendations),
        )
        return result

    # ── Steps ────────────────────────────────────────────────────────────────

    def _embed_text(self, provider: EmbeddingProvider, text: str) -> Optional[list[float]]:
        try:
            return provider.embed(text)
        except EmbeddingUnavailableError as exc:
            logger.warning("Embedding unavailable for %r: %s", text, exc)
            return None

    def _embed_items(
        self,
        scored: DemographicResults,
        provider: EmbeddingProvider,
    ) -> tuple[DemographicResults, list[Optional[list[float]]]]:
        """Attach a per-group embedding to every scored item."""
        vectors: list[Optional[list[float]]] = []
        categories: dict[str, DemographicData] = {}
        for category, data in scored.by_category():
            items = []
            for item in data.data:
                vector = self._embed_text(
                    provider, item_embedding_text(category, item.name, item.code)
                )
                vectors.append(vector)
                items.append(item.model_copy(update={"embedding": vector or []}))
            categories[category.value] = data.model_copy(update={"data": items})
        return DemographicResults(**categories), vectors

    def _find_similar(
        self,
        index: SimilarityIndex,
        embedding: list[float],
    ) -> list[SimilarRecord]:
        try:
            return index.find_similar(
                self.collection, embedding, limit=self.limit, threshold=self.threshold
            )
        except Exception as exc:
            logger.warning(
                "Similarity search failed; continuing without similar scorecards: %s", exc
            )
            return []

    def _recommend(
        self,
        recommender: Recommender,
        demographics: DemographicResults,
        similar: list[SimilarRecord],
        drug: str,
    ) -> list[Recommendation]:
        try:
            return list(recommender.generate(demographics, similar, drug=drug))
        except Exception as exc:
            logger.warning(
                "Recommendation generation failed; continuing without recommendations: %s",
                exc,
            )
            return []
