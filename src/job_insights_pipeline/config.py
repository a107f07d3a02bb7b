"""
Pipeline Configuration

Loads runtime settings from environment variables. Components never read the
environment themselves; they receive plain values from PipelineSettings.

Environment Variables:
    OPENAI_API_KEY: API key for embeddings and generation
    EMBEDDING_MODEL: Embedding model (default: text-embedding-3-small)
    EMBEDDING_DIM: Embedding dimensions (default: 1536)
    EMBEDDING_BATCH_SIZE: Texts per embedding call (default: 100)
    MAX_EMBEDDING_CHARS: Head-truncation limit per text (default: 8000)
    GENERATION_MODEL: Chat model for reports (default: gpt-4o-mini)
    DATABASE_URL: PostgreSQL connection string
    USE_POSTGRES: Use PgVectorStore instead of the in-memory store
    USE_MOCK_EMBEDDINGS: Use deterministic mock embeddings
    COLLECTION_NAME: Vector collection name (default: jobs_listings_v1)
    DISTANCE_METRIC: cosine | l2 | ip (default: cosine)
    MAX_CONTEXT_CHARS: LLM context budget in characters (default: 800000)
    INTER_BATCH_DELAY_S: Pause between indexing batches (default: 0)
    HEAL_MISSING_VECTORS: Write re-embedded vectors back (default: false)
    SIMILAR_RESULTS_LIMIT: "Find similar" result count (default: 5)
    FILTER_RESULTS_LIMIT: Semantic filter result count (default: 50)
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


@dataclass
class PipelineSettings:
    """All tunables for the retrieval and report pipeline."""

    openai_api_key: str | None = None
    embedding_model: str = "text-embedding-3-small"
    embedding_dim: int = 1536
    embedding_batch_size: int = 100
    max_embedding_chars: int = 8000
    generation_model: str = "gpt-4o-mini"
    database_url: str = "postgresql://localhost/job_insights"
    use_postgres: bool = False
    use_mock_embeddings: bool = False
    collection_name: str = "jobs_listings_v1"
    distance_metric: str = "cosine"
    max_context_chars: int = 800_000
    inter_batch_delay_s: float = 0.0
    heal_missing_vectors: bool = False
    similar_results_limit: int = 5
    filter_results_limit: int = 50

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        """Load settings from environment variables."""
        return cls(
            openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
            embedding_model=os.environ.get("EMBEDDING_MODEL", "text-embedding-3-small"),
            embedding_dim=int(os.environ.get("EMBEDDING_DIM", "1536")),
            embedding_batch_size=int(os.environ.get("EMBEDDING_BATCH_SIZE", "100")),
            max_embedding_chars=int(os.environ.get("MAX_EMBEDDING_CHARS", "8000")),
            generation_model=os.environ.get("GENERATION_MODEL", "gpt-4o-mini"),
            database_url=os.environ.get("DATABASE_URL", "postgresql://localhost/job_insights"),
            use_postgres=_env_bool("USE_POSTGRES"),
            use_mock_embeddings=_env_bool("USE_MOCK_EMBEDDINGS"),
            collection_name=os.environ.get("COLLECTION_NAME", "jobs_listings_v1"),
            distance_metric=os.environ.get("DISTANCE_METRIC", "cosine").lower(),
            max_context_chars=int(os.environ.get("MAX_CONTEXT_CHARS", "800000")),
            inter_batch_delay_s=float(os.environ.get("INTER_BATCH_DELAY_S", "0")),
            heal_missing_vectors=_env_bool("HEAL_MISSING_VECTORS"),
            similar_results_limit=int(os.environ.get("SIMILAR_RESULTS_LIMIT", "5")),
            filter_results_limit=int(os.environ.get("FILTER_RESULTS_LIMIT", "50")),
        )


# Global settings singleton
_settings: PipelineSettings | None = None


def get_settings() -> PipelineSettings:
    """Get the global settings (lazy-loaded from env)."""
    global _settings
    if _settings is None:
        _settings = PipelineSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
