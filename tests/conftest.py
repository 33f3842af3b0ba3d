"""
Shared pytest fixtures for the diversity scorecard test suite.

Provides:
  - ``in_memory_db``: a fresh in-memory SQLite connection with the schema
    applied.  Created anew for each test that requests it.
  - Sample submissions and scored results used across test modules.
  - Small-dimension embedding / similarity collaborators.
"""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from diversity_scorecard.db.schema import apply_schema
from diversity_scorecard.embeddings.providers import HashedEmbeddingProvider
from diversity_scorecard.models.scorecard import (
    DemographicInput,
    Demographics,
    ScorecardInput,
)
from diversity_scorecard.recommendations.providers import RuleBasedRecommender
from diversity_scorecard.scorecard.assembler import ScorecardAssembler
from diversity_scorecard.scoring.benchmarks import BenchmarkTable
from diversity_scorecard.taxonomy.demographics import DiseaseIncidence
from diversity_scorecard.vectors.similarity import SimilarityIndex
from diversity_scorecard.vectors.store import InMemoryVectorStore

DIMS = 16


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the schema applied."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    apply_schema(conn)
    yield conn
    conn.close()


# ── Sample submissions ────────────────────────────────────────────────────────

def make_item(code: str, name: str, percentage: float, **kwargs) -> DemographicInput:
    return DemographicInput(code=code, name=name, percentage=percentage, **kwargs)


@pytest.fixture
def balanced_demographics() -> Demographics:
    """Every group within 5 points of its benchmark — grades A across the board."""
    return Demographics(
        sex=[make_item("male", "Male", 49.0), make_item("female", "Female", 51.0)],
        age=[
            make_item("18-24", "18-24", 12.0),
            make_item("25-34", "25-34", 18.0),
            make_item("35-44", "35-44", 16.0),
            make_item("45-64", "45-64", 33.0),
            make_item("65+", "65+", 21.0),
        ],
        race=[
            make_item("white", "White", 60.0),
            make_item("black", "Black or African American", 14.0),
            make_item("asian", "Asian", 6.0),
            make_item("other", "Other", 20.0),
        ],
        ethnicity=[
            make_item("hispanic", "Hispanic or Latino", 19.0),
            make_item("non-hispanic", "Not Hispanic or Latino", 81.0),
        ],
    )


@pytest.fixture
def skewed_demographics() -> Demographics:
    """Race and ethnicity far from benchmark; sex and age fine."""
    return Demographics(
        sex=[make_item("male", "Male", 52.0), make_item("female", "Female", 48.0)],
        age=[
            make_item("18-24", "18-24", 10.0),
            make_item("45-64", "45-64", 35.0),
        ],
        race=[
            make_item("white", "White", 90.0),
            make_item(
                "black", "Black or African American", 2.0,
                disease_incidence=DiseaseIncidence.INCREASED,
            ),
            make_item("asian", "Asian", 8.0),
        ],
        ethnicity=[
            make_item("hispanic", "Hispanic or Latino", 3.0),
            make_item("non-hispanic", "Not Hispanic or Latino", 97.0),
        ],
    )


@pytest.fixture
def balanced_input(balanced_demographics: Demographics) -> ScorecardInput:
    return ScorecardInput(drug="Examplimab", total_participants=400, demographics=balanced_demographics)


@pytest.fixture
def skewed_input(skewed_demographics: Demographics) -> ScorecardInput:
    return ScorecardInput(drug="Skewomab", total_participants=250, demographics=skewed_demographics)


# ── Collaborators ─────────────────────────────────────────────────────────────

@pytest.fixture
def benchmarks() -> BenchmarkTable:
    return BenchmarkTable()


@pytest.fixture
def embedding_provider() -> HashedEmbeddingProvider:
    return HashedEmbeddingProvider(dimensions=DIMS, seed=1)


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def similarity_index(vector_store: InMemoryVectorStore) -> SimilarityIndex:
    return SimilarityIndex(vector_store)


@pytest.fixture
def assembler() -> ScorecardAssembler:
    return ScorecardAssembler(dimensions=DIMS, seed=7)


@pytest.fixture
def skewed_result(skewed_input, assembler, embedding_provider, similarity_index):
    """A fully assembled scorecard with rule-based recommendations."""
    return assembler.assemble(
        skewed_input, embedding_provider, similarity_index, RuleBasedRecommender()
    )
