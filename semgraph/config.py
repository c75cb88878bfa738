"""
Centralized configuration for semgraph.

All configuration values should be imported from this module.
Supports environment variable overrides for containerization.
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _find_project_root() -> Path:
    """Find project root by looking for pyproject.toml or .git."""
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return current.parent


def _env_int(name: str, fallback: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return fallback
    try:
        return int(raw)
    except ValueError:
        return fallback


def _env_float(name: str, fallback: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return fallback
    try:
        return float(raw)
    except ValueError:
        return fallback


def _env_bool(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


def clamp01(value: float) -> float:
    """Clamp a temperature-like value into [0, 1]."""
    if value < 0:
        return 0.0
    if value > 1:
        return 1.0
    return value


@dataclass
class Config:
    """semgraph configuration."""

    # ==========================================================================
    # Paths
    # ==========================================================================
    PROJECT_ROOT: Path = field(default_factory=_find_project_root)

    # ==========================================================================
    # Text / Embedding Collaborator
    # ==========================================================================
    @property
    def SG_PROVIDER(self) -> str:
        return os.environ.get("SG_PROVIDER", "gemini").strip().lower()

    @property
    def GEMINI_API_KEY(self) -> Optional[str]:
        return os.environ.get("GEMINI_API_KEY")

    @property
    def GEMINI_MODEL(self) -> str:
        return os.environ.get("SG_GEMINI_MODEL", "gemini-2.5-flash")

    @property
    def GEMINI_EMBEDDING_MODEL(self) -> str:
        return os.environ.get("SG_GEMINI_EMBEDDING_MODEL", "gemini-embedding-001")

    @property
    def OPENAI_API_KEY(self) -> Optional[str]:
        return os.environ.get("OPENAI_API_KEY")

    @property
    def OPENAI_MODEL(self) -> str:
        return os.environ.get("SG_OPENAI_MODEL") or os.environ.get("OPENAI_MODEL") or "gpt-4o-mini"

    @property
    def OPENAI_EMBEDDING_MODEL(self) -> str:
        return os.environ.get("SG_OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")

    # ==========================================================================
    # Chunking
    # ==========================================================================
    @property
    def CHUNK_TARGET_TOKENS(self) -> int:
        return _env_int("SG_CHUNK_TARGET_TOKENS", 1000)

    @property
    def CHUNK_OVERLAP_TOKENS(self) -> int:
        return _env_int("SG_CHUNK_OVERLAP_TOKENS", 150)

    @property
    def BLOCK_OVERHEAD_TOKENS(self) -> int:
        return _env_int("SG_BLOCK_OVERHEAD_TOKENS", 8)

    # ==========================================================================
    # Extraction
    # ==========================================================================
    @property
    def CHUNK_GRAPH_TEMPERATURE(self) -> float:
        return clamp01(_env_float("SG_CHUNK_GRAPH_TEMPERATURE", 0.05))

    @property
    def CANONICALIZE_TEMPERATURE(self) -> float:
        return clamp01(_env_float("SG_CANONICALIZE_TEMPERATURE", 0.05))

    @property
    def SG_DEBUG(self) -> bool:
        return _env_bool("SG_DEBUG")

    @property
    def ACTOR_ID(self) -> str:
        return os.environ.get("SG_ACTOR_ID", "sg-bootstrap")

    # ==========================================================================
    # Storage
    # ==========================================================================
    @property
    def STORAGE(self) -> str:
        return os.environ.get("SG_STORAGE", "memory").strip().lower()

    @property
    def EMBEDDING_FETCH_BATCH(self) -> int:
        return _env_int("SG_EMBEDDING_FETCH_BATCH", 200)

    @property
    def POSTGRES_DSN(self) -> str:
        return os.environ.get(
            "POSTGRES_DSN",
            "dbname=semgraph user=semgraph host=/var/run/postgresql"
        )

    @property
    def PG_POOL_MIN(self) -> int:
        return _env_int("PG_POOL_MIN", 1)

    @property
    def PG_POOL_MAX(self) -> int:
        return _env_int("PG_POOL_MAX", 10)

    @property
    def LOG_LEVEL(self) -> str:
        return os.environ.get("LOG_LEVEL", "INFO")

    # ==========================================================================
    # Validation
    # ==========================================================================
    def validate(self) -> list[str]:
        """Return list of configuration errors."""
        errors = []

        if self.SG_PROVIDER not in ("gemini", "openai"):
            errors.append(f"Unknown SG_PROVIDER: {self.SG_PROVIDER}")
        elif self.SG_PROVIDER == "gemini" and not self.GEMINI_API_KEY:
            errors.append("GEMINI_API_KEY not set")
        elif self.SG_PROVIDER == "openai" and not self.OPENAI_API_KEY:
            errors.append("OPENAI_API_KEY not set")

        if self.CHUNK_TARGET_TOKENS <= 0:
            errors.append(f"SG_CHUNK_TARGET_TOKENS must be positive: {self.CHUNK_TARGET_TOKENS}")
        if self.CHUNK_OVERLAP_TOKENS < 0:
            errors.append(f"SG_CHUNK_OVERLAP_TOKENS must not be negative: {self.CHUNK_OVERLAP_TOKENS}")

        if self.STORAGE not in ("memory", "postgres"):
            errors.append(f"Unknown SG_STORAGE: {self.STORAGE}")

        return errors

    def __repr__(self) -> str:
        return (
            f"Config(\n"
            f"  PROJECT_ROOT={self.PROJECT_ROOT}\n"
            f"  SG_PROVIDER={self.SG_PROVIDER}\n"
            f"  STORAGE={self.STORAGE}\n"
            f"  POSTGRES_DSN={self.POSTGRES_DSN[:30]}...\n"
            f"  CHUNK_TARGET_TOKENS={self.CHUNK_TARGET_TOKENS}\n"
            f"  CHUNK_OVERLAP_TOKENS={self.CHUNK_OVERLAP_TOKENS}\n"
            f")"
        )


# Global config instance
config = Config()
