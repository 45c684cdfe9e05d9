"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``INTERVIEW_RECS_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The CLI and ``build_service_context()`` receive an ``AppConfig`` instance —
never raw dicts or individual env var lookups scattered through the codebase.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/interview_recs.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class CacheConfig(BaseModel):
    """Key-value cache backend and TTLs.

    Profile and recommendation-list entries live under separate key
    namespaces and expire independently.
    """

    model_config = ConfigDict(frozen=True)

    backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    namespace: str = "interview_recs:"
    profile_ttl_seconds: int = 1800
    recommendations_ttl_seconds: int = 3600

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        valid = {"memory", "redis"}
        if v.lower() not in valid:
            raise ValueError(f"Cache backend must be one of {sorted(valid)}, got '{v}'.")
        return v.lower()

    @field_validator("profile_ttl_seconds", "recommendations_ttl_seconds")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Cache TTLs must be positive, got {v}.")
        return v


class RankingConfig(BaseModel):
    """Recommendation pipeline parameters.

    ``view_window`` / ``like_window`` bound the interaction history a profile
    is built from; ``tag_history_window`` bounds the viewed items whose tags
    feed tag similarity; ``scoring_concurrency`` bounds the worker pool that
    scores candidates.
    """

    model_config = ConfigDict(frozen=True)

    default_limit: int = 10
    max_limit: int = 100
    candidate_cap: int = 1000
    view_window: int = 100
    like_window: int = 50
    tag_history_window: int = 20
    scoring_concurrency: int = 32
    algorithm_version: str = "1.0"

    @field_validator(
        "default_limit",
        "max_limit",
        "candidate_cap",
        "view_window",
        "like_window",
        "tag_history_window",
        "scoring_concurrency",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Ranking window/limit values must be positive, got {v}.")
        return v

    @model_validator(mode="after")
    def validate_limits(self) -> "RankingConfig":
        if self.default_limit > self.max_limit:
            raise ValueError(
                f"default_limit ({self.default_limit}) must be <= max_limit ({self.max_limit})."
            )
        return self


class AffinityModelConfig(BaseModel):
    """Pre-trained collaborative affinity model settings."""

    model_config = ConfigDict(frozen=True)

    artifact_path: Optional[str] = None
    neutral_score: float = 0.5

    @field_validator("neutral_score")
    @classmethod
    def validate_neutral(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"neutral_score must be in [0.0, 1.0], got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/recommender.log"
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

    It is constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    cache: CacheConfig = CacheConfig()
    ranking: RankingConfig = RankingConfig()
    affinity_model: AffinityModelConfig = AffinityModelConfig()
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
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply INTERVIEW_RECS_* environment variable overrides
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
    """Apply INTERVIEW_RECS_* env vars to the raw config dict.

    Supported overrides:
      INTERVIEW_RECS_DB_PATH        → raw["database"]["db_path"]
      INTERVIEW_RECS_CACHE_BACKEND  → raw["cache"]["backend"]
      INTERVIEW_RECS_REDIS_URL      → raw["cache"]["redis_url"]
      INTERVIEW_RECS_MODEL_PATH     → raw["affinity_model"]["artifact_path"]
      INTERVIEW_RECS_LOG_LEVEL      → raw["logging"]["level"]
      INTERVIEW_RECS_DEBUG          → raw["debug"]
    """
    if db_path := os.environ.get("INTERVIEW_RECS_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if backend := os.environ.get("INTERVIEW_RECS_CACHE_BACKEND"):
        raw.setdefault("cache", {})["backend"] = backend

    if redis_url := os.environ.get("INTERVIEW_RECS_REDIS_URL"):
        raw.setdefault("cache", {})["redis_url"] = redis_url

    if model_path := os.environ.get("INTERVIEW_RECS_MODEL_PATH"):
        raw.setdefault("affinity_model", {})["artifact_path"] = model_path

    if log_level := os.environ.get("INTERVIEW_RECS_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("INTERVIEW_RECS_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        cache=CacheConfig(**raw.get("cache", {})),
        ranking=RankingConfig(**raw.get("ranking", {})),
        affinity_model=AffinityModelConfig(**raw.get("affinity_model", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
