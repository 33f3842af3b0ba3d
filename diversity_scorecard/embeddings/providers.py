"""
Embedding provider implementations and factory.

Every provider exposes ``embed(text) -> list[float]`` and a ``dimensions``
attribute.  Failures surface as ``EmbeddingUnavailableError`` so the
assembler can degrade instead of aborting the grading request.

HTTP provider request shape (OpenAI / Azure OpenAI compatible)::

    POST {base_url}/embeddings[?api-version=...]
    {"model": "<model>", "input": "<text>"}
    -> {"data": [{"embedding": [0.01, ...]}]}

Azure deployments are selected by setting ``api_version``; the key is then
sent as an ``api-key`` header instead of a bearer token.
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Optional, Protocol

import httpx
import numpy as np

from diversity_scorecard.config import EmbeddingConfig
from diversity_scorecard.errors import EmbeddingUnavailableError
from diversity_scorecard.vectors.vector_math import random_unit_vector

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """``text -> fixed-length vector``."""

    dimensions: int

    def embed(self, text: str) -> list[float]:
        ...


def _normalize_text(text: str) -> str:
    return re.sub(r"\s+", " ", text.strip()).lower()


class HashedEmbeddingProvider:
    """Deterministic pseudo-embeddings keyed on the text's MD5 digest.

    The same text always maps to the same unit vector for a given
    ``seed``; different texts map to (nearly) orthogonal vectors.

    Args:
        dimensions: Vector length.
        seed:       Mixed into every digest so deployments can re-key.
    """

    def __init__(self, dimensions: int = 384, seed: int = 0) -> None:
        self.dimensions = dimensions
        self.seed = seed

    def embed(self, text: str) -> list[float]:
        digest = hashlib.md5(f"{self.seed}:{_normalize_text(text)}".encode("utf-8")).digest()
        rng = np.random.default_rng(int.from_bytes(digest, "big"))
        return random_unit_vector(self.dimensions, rng)


class HttpEmbeddingProvider:
    """Remote embeddings from an OpenAI-compatible endpoint.

    Args:
        base_url:    Endpoint prefix, e.g. ``https://api.openai.com/v1`` or
                     ``https://<res>.openai.azure.com/openai/deployments/<dep>``.
        model:       Model (or deployment) name sent in the payload.
        dimensions:  Expected vector length; other lengths are rejected.
        api_key:     Bearer token / Azure ``api-key``.
        api_version: Azure ``api-version`` query parameter; empty for OpenAI.
        timeout_s:   Request timeout in seconds.
        client:      Optional pre-built ``httpx.Client`` (tests inject a
                     ``MockTransport`` here).
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        dimensions: int = 384,
        api_key: Optional[str] = None,
        api_version: str = "",
        timeout_s: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required for the http embedding provider.")
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.dimensions = dimensions
        self.api_key = api_key
        self.api_version = api_version
        self.timeout_s = timeout_s
        self._client = client or httpx.Client(timeout=timeout_s)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            if self.api_version:
                headers["api-key"] = self.api_key
            else:
                headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def embed(self, text: str) -> list[float]:
        """Fetch the embedding for ``text``.

        Raises:
            EmbeddingUnavailableError: On transport errors, non-2xx responses,
                malformed payloads, or a vector of the wrong length.
        """
        params = {"api-version": self.api_version} if self.api_version else None
        try:
            resp = self._client.post(
                f"{self.base_url}/embeddings",
                params=params,
                headers=self._headers(),
                json={"model": self.model, "input": text},
            )
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise EmbeddingUnavailableError(f"Embedding request failed: {exc}") from exc

        try:
            vector = [float(v) for v in payload["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise EmbeddingUnavailableError(
                f"Malformed embedding response: {exc!r}"
            ) from exc

        if len(vector) != self.dimensions:
            raise EmbeddingUnavailableError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions}."
            )
        return vector

    def close(self) -> None:
        self._client.close()


def build_embedding_provider(config: EmbeddingConfig) -> EmbeddingProvider:
    """Construct the provider selected by ``config.provider``."""
    if config.provider == "http":
        logger.info("Using HTTP embedding provider at %s", config.base_url)
        return HttpEmbeddingProvider(
            base_url=config.base_url,
            model=config.model,
            dimensions=config.dimensions,
            api_key=config.api_key,
            api_version=config.api_version,
            timeout_s=config.timeout_s,
        )
    return HashedEmbeddingProvider(dimensions=config.dimensions, seed=config.seed)
