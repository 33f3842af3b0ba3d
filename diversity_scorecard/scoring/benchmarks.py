"""
Population benchmarks: expected share of each demographic group.

Figures are 2020 U.S. Census approximations, loaded at import time and
read-only thereafter.

Lookup modes
------------
strict (default):
    ``lookup()`` raises ``UnknownBenchmarkCodeError`` for any
    ``(category, code)`` pair without an entry.

fallback:
    Built with ``fallback_defaults``, ``lookup()`` returns the category's
    default for unknown codes instead.  Enabled by
    ``[scoring] strict_benchmarks = false``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from diversity_scorecard.errors import UnknownBenchmarkCodeError
from diversity_scorecard.taxonomy.demographics import CATEGORY_ORDER

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BenchmarkEntry:
    """Expected population percentage for one demographic group."""

    category:            str
    code:                str
    expected_percentage: float


POPULATION_BENCHMARKS: tuple[BenchmarkEntry, ...] = (
    BenchmarkEntry("sex",       "male",         49.2),
    BenchmarkEntry("sex",       "female",       50.8),
    BenchmarkEntry("age",       "18-24",        12.2),
    BenchmarkEntry("age",       "25-34",        17.8),
    BenchmarkEntry("age",       "35-44",        16.4),
    BenchmarkEntry("age",       "45-64",        33.2),
    BenchmarkEntry("age",       "65+",          20.4),
    BenchmarkEntry("race",      "white",        59.3),
    BenchmarkEntry("race",      "black",        13.6),
    BenchmarkEntry("race",      "asian",         6.1),
    BenchmarkEntry("race",      "native",        1.3),
    BenchmarkEntry("race",      "pacific",       0.3),
    BenchmarkEntry("race",      "biracial",      2.9),
    BenchmarkEntry("race",      "other",        16.5),
    BenchmarkEntry("ethnicity", "hispanic",     18.9),
    BenchmarkEntry("ethnicity", "non-hispanic", 81.1),
)


class BenchmarkTable:
    """Read-only ``(category, code) -> expected percentage`` lookup.

    Args:
        entries: Benchmark rows.  Defaults to ``POPULATION_BENCHMARKS``.
        fallback_defaults: Optional per-category default percentages.  When
            given, unknown codes resolve to their category default instead of
            raising.
    """

    def __init__(
        self,
        entries: tuple[BenchmarkEntry, ...] = POPULATION_BENCHMARKS,
        fallback_defaults: Optional[Mapping[str, float]] = None,
    ) -> None:
        self._entries = entries
        self._lookup: dict[tuple[str, str], float] = {
            (e.category, e.code): e.expected_percentage for e in entries
        }
        self._fallback = dict(fallback_defaults) if fallback_defaults is not None else None

    @classmethod
    def from_config(cls, strict: bool, fallback_defaults: Mapping[str, float]) -> "BenchmarkTable":
        """Build the default table in strict or fallback mode."""
        return cls(fallback_defaults=None if strict else fallback_defaults)

    @property
    def strict(self) -> bool:
        return self._fallback is None

    def lookup(self, category: str, code: str) -> float:
        """Return the expected population percentage for ``(category, code)``.

        Raises:
            UnknownBenchmarkCodeError: If no entry exists and the table is strict
                (or the category has no fallback default).
        """
        key = (str(category), code)
        if key in self._lookup:
            return self._lookup[key]

        if self._fallback is not None and key[0] in self._fallback:
            default = self._fallback[key[0]]
            logger.warning(
                "No benchmark for %s/%s; using category default %.2f%%",
                key[0], code, default,
            )
            return default

        raise UnknownBenchmarkCodeError(key[0], code)

    def entries(self, category: Optional[str] = None) -> list[BenchmarkEntry]:
        """Return benchmark rows in canonical category order, optionally filtered."""
        order = {c.value: i for i, c in enumerate(CATEGORY_ORDER)}
        rows = [e for e in self._entries if category is None or e.category == category]
        return sorted(rows, key=lambda e: order.get(e.category, len(order)))

    def codes(self, category: str) -> list[str]:
        return [e.code for e in self.entries(category)]
