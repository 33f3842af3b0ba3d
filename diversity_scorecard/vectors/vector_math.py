"""
Fixed-length vector arithmetic on plain ``list[float]`` vectors.

Inputs may be any float sequence (lists, tuples, numpy arrays); outputs are
plain lists so they serialize straight into pydantic models and JSON.

Every binary operation requires equal lengths and raises
``DimensionMismatchError`` otherwise.  Cosine similarity and normalization
of a zero vector raise ``UndefinedSimilarityError`` instead of returning NaN.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

import numpy as np

from diversity_scorecard.errors import DimensionMismatchError, UndefinedSimilarityError


def _as_array(v: Sequence[float]) -> np.ndarray:
    return np.asarray(v, dtype=np.float64)


def _check_dims(a: np.ndarray, b: np.ndarray) -> None:
    if a.shape != b.shape:
        raise DimensionMismatchError(a.shape[0], b.shape[0])


def dot(a: Sequence[float], b: Sequence[float]) -> float:
    x, y = _as_array(a), _as_array(b)
    _check_dims(x, y)
    return float(np.dot(x, y))


def magnitude(v: Sequence[float]) -> float:
    """L2 norm."""
    return float(np.linalg.norm(_as_array(v)))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between ``a`` and ``b``, in [-1, 1].

    Raises:
        DimensionMismatchError: If the vectors differ in length.
        UndefinedSimilarityError: If either vector has zero magnitude.
    """
    x, y = _as_array(a), _as_array(b)
    _check_dims(x, y)
    mag_x = np.linalg.norm(x)
    mag_y = np.linalg.norm(y)
    if mag_x == 0.0 or mag_y == 0.0:
        raise UndefinedSimilarityError("Cosine similarity is undefined for a zero vector.")
    similarity = float(np.dot(x, y) / (mag_x * mag_y))
    # Float error can push |cos| a hair past 1.
    return max(-1.0, min(1.0, similarity))


def normalize(v: Sequence[float]) -> list[float]:
    """Scale ``v`` to unit length.

    Raises:
        UndefinedSimilarityError: If ``v`` is the zero vector.
    """
    x = _as_array(v)
    mag = np.linalg.norm(x)
    if mag == 0.0:
        raise UndefinedSimilarityError("Cannot normalize a zero vector.")
    return (x / mag).tolist()


def add(a: Sequence[float], b: Sequence[float]) -> list[float]:
    x, y = _as_array(a), _as_array(b)
    _check_dims(x, y)
    return (x + y).tolist()


def subtract(a: Sequence[float], b: Sequence[float]) -> list[float]:
    """Return ``a - b``."""
    x, y = _as_array(a), _as_array(b)
    _check_dims(x, y)
    return (x - y).tolist()


def l2_distance(a: Sequence[float], b: Sequence[float]) -> float:
    x, y = _as_array(a), _as_array(b)
    _check_dims(x, y)
    return float(np.linalg.norm(x - y))


def zero_vector(dimensions: int) -> list[float]:
    return [0.0] * dimensions


def random_unit_vector(dimensions: int, rng: np.random.Generator) -> list[float]:
    """Draw a unit vector with components uniform in [-1, 1] before scaling.

    The generator is explicit so callers control reproducibility.
    """
    while True:
        x = rng.uniform(-1.0, 1.0, size=dimensions)
        mag = np.linalg.norm(x)
        if mag > 0.0:
            return (x / mag).tolist()


def combine_embeddings(
    vectors: Iterable[Optional[Sequence[float]]],
    dimensions: int,
    rng: np.random.Generator,
) -> list[float]:
    """Average the non-null vectors and normalize the mean.

    Falls back to ``random_unit_vector(dimensions, rng)`` when no vectors
    are available or they cancel out to zero.

    Raises:
        DimensionMismatchError: If any vector's length differs from ``dimensions``.
    """
    valid = [_as_array(v) for v in vectors if v is not None and len(v) > 0]
    if not valid:
        return random_unit_vector(dimensions, rng)

    for x in valid:
        if x.shape[0] != dimensions:
            raise DimensionMismatchError(dimensions, x.shape[0])

    mean = np.mean(np.stack(valid), axis=0)
    if np.linalg.norm(mean) == 0.0:
        return random_unit_vector(dimensions, rng)
    return normalize(mean)
