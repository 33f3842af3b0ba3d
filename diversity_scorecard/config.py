"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``DIVERSITY_SCORECARD_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The assembler, CLI commands, and collaborator factories receive an
``AppConfig`` instance — never raw dicts or scattered env var lookups.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/scorecards.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class ScoringConfig(BaseModel):
    """Benchmark lookup behaviour.

    ``strict_benchmarks = true`` (default) makes an unknown demographic code
    abort grading.  With ``false``, the per-category ``fallback_defaults``
    are used instead, so custom group codes still grade.
    """

    model_config = ConfigDict(frozen=True)

    strict_benchmarks: bool = True
    fallback_defaults: dict[str, float] = {
        "sex": 50.0,
        "age": 33.33,
        "race": 16.67,
        "ethnicity": 50.0,
    }


class EmbeddingConfig(BaseModel):
    """Embedding provider settings."""

    model_config = ConfigDict(frozen=True)

    provider: Literal["hashed", "http"] = "hashed"
    dimensions: int = 384
    seed: int = 42
    base_url: str = ""
    model: str = "text-embedding-3-small"
    api_key: Optional[str] = None
    api_version: str = ""
    timeout_s: float = 30.0

    @field_validator("dimensions")
    @classmethod
    def validate_dimensions(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"dimensions must be positive, got {v}.")
        return v


class SimilarityConfig(BaseModel):
    """Similar-scorecard search parameters."""

    model_config = ConfigDict(frozen=True)

    collection: str = "scorecards"
    limit: int = 5
    threshold: float = 0.7

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"limit must be non-negative, got {v}.")
        return v

    @field_validator("threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not -1.0 <= v <= 1.0:
            raise ValueError(f"threshold must be in [-1.0, 1.0], got {v}.")
        return v


class RecommenderConfig(BaseModel):
    """Recommendation generator settings."""

    model_config = ConfigDict(frozen=True)

    provider: Literal["none", "rules", "llm"] = "rules"
    base_url: str = ""
    deployment: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    api_version: str = ""
    timeout_s: float = 60.0


class ReportConfig(BaseModel):
    """Markdown report output settings."""

    model_config = ConfigDict(frozen=True)

    output_dir: str = "data/reports"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/scorecard.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    scoring: ScoringConfig = ScoringConfig()
    embeddings: EmbeddingConfig = EmbeddingConfig()
    similarity: SimilarityConfig = SimilarityConfig()
    recommender: RecommenderConfig = RecommenderConfig()
    report: ReportConfig = ReportConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    # Also merge local.toml if present (gitignored local overrides)
    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply DIVERSITY_SCORECARD_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply DIVERSITY_SCORECARD_* env vars to the raw config dict.

    Supported overrides:
      DIVERSITY_SCORECARD_DB_PATH              → raw["database"]["db_path"]
      DIVERSITY_SCORECARD_LOG_LEVEL            → raw["logging"]["level"]
      DIVERSITY_SCORECARD_DEBUG                → raw["debug"]
      DIVERSITY_SCORECARD_EMBEDDING_API_KEY    → raw["embeddings"]["api_key"]
      DIVERSITY_SCORECARD_RECOMMENDER_API_KEY  → raw["recommender"]["api_key"]
    """
    if db_path := os.environ.get("DIVERSITY_SCORECARD_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("DIVERSITY_SCORECARD_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("DIVERSITY_SCORECARD_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    if embedding_key := os.environ.get("DIVERSITY_SCORECARD_EMBEDDING_API_KEY"):
        raw.setdefault("embeddings", {})["api_key"] = embedding_key

    if recommender_key := os.environ.get("DIVERSITY_SCORECARD_RECOMMENDER_API_KEY"):
        raw.setdefault("recommender", {})["api_key"] = recommender_key

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        scoring=ScoringConfig(**raw.get("scoring", {})),
        embeddings=EmbeddingConfig(**raw.get("embeddings", {})),
        similarity=SimilarityConfig(**raw.get("similarity", {})),
        recommender=RecommenderConfig(**raw.get("recommender", {})),
        report=ReportConfig(**raw.get("report", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", False),
    )
