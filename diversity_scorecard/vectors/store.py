"""
In-memory ``VectorStore``: collections of plain record dicts.

Used by tests and by callers that hold candidate scorecards in memory.
The SQLite-backed store is ``ScorecardRepository`` in
``diversity_scorecard.db.repositories.scorecard_repo``.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterator, Mapping, Optional, Sequence


class InMemoryVectorStore:
    """Dict-backed ``VectorStore``.

    Records keep insertion order; upserting an existing id replaces the
    record in place.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)

    def upsert(
        self,
        collection_id: str,
        record_id: str,
        embedding: Optional[Sequence[float]],
        **fields: Any,
    ) -> None:
        self._collections[collection_id][record_id] = {
            **fields,
            "id": record_id,
            "embedding": list(embedding) if embedding is not None else None,
        }

    def get(self, collection_id: str, record_id: str) -> Optional[Mapping[str, Any]]:
        return self._collections.get(collection_id, {}).get(record_id)

    def candidates(self, collection_id: str) -> Iterator[Mapping[str, Any]]:
        """Yield records of ``collection_id`` that carry an embedding."""
        for record in list(self._collections.get(collection_id, {}).values()):
            if record.get("embedding"):
                yield record

    def __len__(self) -> int:
        return sum(len(c) for c in self._collections.values())
