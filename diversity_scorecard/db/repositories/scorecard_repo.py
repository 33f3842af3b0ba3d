"""
Repository for graded scorecards.

``ScorecardRepository`` doubles as the SQLite-backed ``VectorStore``:
``candidates()`` yields the stored scorecard embeddings of a collection so
prior scorecards can be found by ``SimilarityIndex``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Iterator, Optional

from diversity_scorecard.db.repositories.base import BaseRepository
from diversity_scorecard.models.scorecard import ScorecardResult

logger = logging.getLogger(__name__)

_SELECT_COLUMNS = """
    id, drug, demographics, overall_grade, overall_score,
    embedding, recommendations, similar_scorecards
"""


class ScorecardRepository(BaseRepository):
    """Read/write access to the ``scorecards`` table."""

    def insert(
        self,
        result: ScorecardResult,
        markdown_report: Optional[str] = None,
        collection: str = "scorecards",
        total_participants: int = 0,
    ) -> None:
        """Persist a graded scorecard.

        Args:
            result:             The graded scorecard.
            markdown_report:    Rendered report, stored verbatim.
            collection:         Similarity collection the scorecard joins.
            total_participants: Enrolled participants, kept for re-rendering.

        Raises:
            sqlite3.IntegrityError: If a scorecard with ``result.id`` exists.
        """
        self.execute(
            """
            INSERT INTO scorecards (
                id, collection, drug, total_participants, demographics,
                overall_grade, overall_score, embedding, recommendations,
                similar_scorecards, markdown_report
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                result.id,
                collection,
                result.drug,
                total_participants,
                result.demographics.model_dump_json(),
                result.overall_grade.value,
                result.overall_score,
                json.dumps(result.embedding),
                json.dumps([r.model_dump(mode="json") for r in result.recommendations]),
                json.dumps(result.similar_scorecards),
                markdown_report,
            ),
        )
        logger.info("Stored scorecard %s (%s, grade %s)", result.id, result.drug, result.overall_grade)

    def get(self, scorecard_id: str) -> Optional[ScorecardResult]:
        """Return the scorecard with ``scorecard_id``, or ``None``."""
        row = self.fetchone(
            f"SELECT {_SELECT_COLUMNS} FROM scorecards WHERE id = ?;",
            (scorecard_id,),
        )
        return _row_to_result(row) if row else None

    def get_report(self, scorecard_id: str) -> Optional[str]:
        """Return the stored markdown report, or ``None`` if absent."""
        row = self.fetchone(
            "SELECT markdown_report FROM scorecards WHERE id = ?;",
            (scorecard_id,),
        )
        return row["markdown_report"] if row else None

    def get_total_participants(self, scorecard_id: str) -> int:
        row = self.fetchone(
            "SELECT total_participants FROM scorecards WHERE id = ?;",
            (scorecard_id,),
        )
        return int(row["total_participants"]) if row else 0

    def list_recent(self, limit: int = 20) -> list[ScorecardResult]:
        """Return up to ``limit`` scorecards, newest first."""
        rows = self.fetchall(
            f"""
            SELECT {_SELECT_COLUMNS} FROM scorecards
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?;
            """,
            (limit,),
        )
        return [_row_to_result(r) for r in rows]

    def candidates(self, collection_id: str) -> Iterator[dict[str, Any]]:
        """Yield ``{id, drug, overall_grade, overall_score, embedding}`` records.

        Rows with an empty embedding are skipped.  Rows are yielded in
        insertion order.
        """
        rows = self.fetchall(
            """
            SELECT id, drug, overall_grade, overall_score, embedding
            FROM scorecards
            WHERE collection = ?
            ORDER BY rowid;
            """,
            (collection_id,),
        )
        for row in rows:
            embedding = json.loads(row["embedding"])
            if not embedding:
                continue
            yield {
                "id": row["id"],
                "drug": row["drug"],
                "overall_grade": row["overall_grade"],
                "overall_score": row["overall_score"],
                "embedding": embedding,
            }

    def count(self) -> int:
        row = self.fetchone("SELECT COUNT(*) AS n FROM scorecards;")
        return int(row["n"]) if row else 0


def _row_to_result(row: sqlite3.Row) -> ScorecardResult:
    return ScorecardResult.model_validate({
        "id": row["id"],
        "drug": row["drug"],
        "demographics": json.loads(row["demographics"]),
        "overall_grade": row["overall_grade"],
        "overall_score": row["overall_score"],
        "embedding": json.loads(row["embedding"]),
        "recommendations": json.loads(row["recommendations"]),
        "similar_scorecards": json.loads(row["similar_scorecards"]),
    })
