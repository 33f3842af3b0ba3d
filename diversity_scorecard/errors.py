"""
Exception taxonomy for the scorecard core.

Fatal (abort the grading request):
  - ``DimensionMismatchError``    — two vectors of different length were combined.
  - ``UndefinedSimilarityError``  — cosine similarity / normalization of a zero vector.
  - ``UnknownBenchmarkCodeError`` — no population benchmark for a (category, code).

Non-fatal (caught by ``ScorecardAssembler`` and degraded to empty results):
  - ``EmbeddingUnavailableError``
  - ``RecommenderUnavailableError``

Template rendering never raises; missing paths render as empty strings.
"""

from __future__ import annotations


class ScorecardError(Exception):
    """Base class for all scorecard core errors."""


class DimensionMismatchError(ScorecardError, ValueError):
    """Raised when two vectors of different length are compared or combined.

    Attributes:
        left:  Length of the first vector.
        right: Length of the second vector.
    """

    def __init__(self, left: int, right: int) -> None:
        self.left  = left
        self.right = right
        super().__init__(f"Vector dimension mismatch: {left} != {right}.")


class UndefinedSimilarityError(ScorecardError, ValueError):
    """Raised when a zero-magnitude vector makes similarity/normalization undefined."""


class UnknownBenchmarkCodeError(ScorecardError, LookupError):
    """Raised when no population benchmark exists for ``(category, code)``.

    Attributes:
        category: Demographic category (``"sex"``, ``"age"``, ...).
        code:     Demographic code that was looked up.
    """

    def __init__(self, category: str, code: str) -> None:
        self.category = category
        self.code     = code
        super().__init__(f"No benchmark found for {category}/{code}.")


class EmbeddingUnavailableError(ScorecardError, RuntimeError):
    """Raised by an embedding provider that cannot produce a vector."""


class RecommenderUnavailableError(ScorecardError, RuntimeError):
    """Raised by a recommender that cannot produce recommendations."""
