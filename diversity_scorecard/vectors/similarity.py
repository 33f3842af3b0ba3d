"""
Similarity search over stored embeddings.

``SimilarityIndex.find_similar()`` ranks candidate records of a collection
by cosine similarity to a query vector.

Contract
--------
- Candidates come from the injected ``VectorStore``; records without an
  embedding, or whose embedding is the zero vector, are skipped.
- A candidate whose embedding length differs from the query raises
  ``DimensionMismatchError``; every vector of a collection shares one size.
- Records with ``similarity < threshold`` are dropped.
- Results are sorted by similarity, descending.  Ties keep candidate order.
- At most ``limit`` results are returned.
- The store is never written to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol, Sequence

from diversity_scorecard.errors import UndefinedSimilarityError
from diversity_scorecard.vectors.vector_math import cosine_similarity, magnitude

logger = logging.getLogger(__name__)


class VectorStore(Protocol):
    """Read-only source of candidate records for similarity search."""

    def candidates(self, collection_id: str) -> Iterable[Mapping[str, Any]]:
        """Yield records of ``collection_id``; each has ``id`` and ``embedding``."""
        ...


@dataclass(frozen=True)
class SimilarRecord:
    """One ranked hit.

    Attributes:
        record:     The candidate record as returned by the store.
        similarity: Cosine similarity to the query vector.
    """

    record:     Mapping[str, Any]
    similarity: float

    @property
    def id(self) -> str:
        return str(self.record.get("id", ""))


class SimilarityIndex:
    """Cosine-similarity ranking over a ``VectorStore``.

    Args:
        store: Candidate source.
    """

    def __init__(self, store: VectorStore) -> None:
        self.store = store

    def find_similar(
        self,
        collection_id: str,
        query_vector: Sequence[float],
        limit: int = 5,
        threshold: float = 0.7,
        exclude_ids: Iterable[str] = (),
    ) -> list[SimilarRecord]:
        """Return up to ``limit`` records with similarity >= ``threshold``, best first.

        Args:
            collection_id: Collection to search.
            query_vector:  Query embedding.
            limit:         Maximum number of results.
            threshold:     Minimum cosine similarity to keep a record.
            exclude_ids:   Record ids to skip (e.g. the query's own record).

        Returns:
            Ranked ``SimilarRecord`` list; empty when nothing qualifies.

        Raises:
            UndefinedSimilarityError: If ``query_vector`` is the zero vector.
            DimensionMismatchError: If a candidate embedding differs in length
                from ``query_vector``.
        """
        if magnitude(query_vector) == 0.0:
            raise UndefinedSimilarityError("Query vector has zero magnitude.")
        if limit <= 0:
            return []

        excluded = set(exclude_ids)
        hits: list[SimilarRecord] = []
        skipped = 0

        for record in self.store.candidates(collection_id):
            embedding = record.get("embedding")
            if embedding is None or len(embedding) == 0 or str(record.get("id")) in excluded:
                continue
            try:
                similarity = cosine_similarity(query_vector, embedding)
            except UndefinedSimilarityError:
                skipped += 1
                continue
            if similarity >= threshold:
                hits.append(SimilarRecord(record=record, similarity=similarity))

        # sorted() is stable: equal similarities keep candidate order
        ranked = sorted(hits, key=lambda h: h.similarity, reverse=True)[:limit]
        logger.debug(
            "find_similar(%s): %d hits >= %.2f, %d returned, %d skipped",
            collection_id, len(hits), threshold, len(ranked), skipped,
        )
        return ranked

