"""
Core protocols defining contracts for the pipeline.

Every infrastructure component implements one of these protocols, so the
indexer, retriever and analysis pipeline receive their collaborators by
injection and tests can swap in in-memory doubles.

PATTERN:
- Protocol defines the contract
- Production implementation (OpenAIEmbeddings, PgVectorStore, OpenAIGenerator)
- Test double (MockEmbeddings, InMemoryVectorStore, MockGenerator)
- Factory function for instantiation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence, runtime_checkable

import numpy as np


# ---------------------------------------------------------------------------
# EMBEDDING OUTCOMES
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Embedded:
    """Successful embedding for one input text."""
    vector: np.ndarray


@dataclass(frozen=True)
class EmbeddingFailed:
    """Embedding for one input text could not be produced."""
    reason: str


EmbeddingOutcome = Embedded | EmbeddingFailed


def is_embedded(outcome: EmbeddingOutcome) -> bool:
    return isinstance(outcome, Embedded)


# ---------------------------------------------------------------------------
# EMBEDDING PROVIDER PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Contract for embedding generation.

    Implementations:
    - OpenAIEmbeddings (production)
    - MockEmbeddings (testing)
    """

    async def embed(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        ...

    async def embed_batch(
        self,
        texts: Sequence[str],
        batch_size: int | None = None,
    ) -> list[EmbeddingOutcome]:
        """Generate one outcome per input text, in input order."""
        ...


# ---------------------------------------------------------------------------
# VECTOR STORE PROTOCOL
# ---------------------------------------------------------------------------


@dataclass
class Candidate:
    """A document returned by a similarity query."""
    id: str
    metadata: dict[str, Any] = field(default_factory=dict)
    document: str | None = None
    rank: int = 0
    distance: float | None = None

    @property
    def title(self) -> str | None:
        return self.metadata.get("title")

    @property
    def organization(self) -> str | None:
        return self.metadata.get("organization")

    @property
    def location(self) -> str | None:
        return self.metadata.get("location")

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "metadata": self.metadata,
            "document": self.document,
            "rank": self.rank,
            "distance": self.distance,
        }


@dataclass
class GetResult:
    """
    Records fetched by id.

    All lists are aligned with `ids`, which only holds ids that exist.
    Fields that were not requested stay None.
    """
    ids: list[str] = field(default_factory=list)
    embeddings: list[np.ndarray | None] | None = None
    documents: list[str | None] | None = None
    metadatas: list[dict[str, Any] | None] | None = None

    def first_embedding(self) -> np.ndarray | None:
        if not self.embeddings:
            return None
        return self.embeddings[0]

    def first_document(self) -> str | None:
        if not self.documents:
            return None
        return self.documents[0]

    def first_metadata(self) -> dict[str, Any] | None:
        if not self.metadatas:
            return None
        return self.metadatas[0]


@runtime_checkable
class VectorStore(Protocol):
    """
    Contract for a persistent vector collection.

    Implementations:
    - PgVectorStore (production with PostgreSQL + pgvector)
    - InMemoryVectorStore (testing/development)
    """

    async def connect(self) -> Any:
        """Establish (or return the cached) connection."""
        ...

    async def close(self) -> None:
        """Close the connection."""
        ...

    async def get_collection(
        self,
        name: str | None = None,
        distance: str | None = None,
    ) -> str:
        """Get or create the named collection."""
        ...

    async def upsert(
        self,
        ids: Sequence[str],
        vectors: Sequence[np.ndarray | None],
        metadatas: Sequence[dict[str, Any]],
        documents: Sequence[str],
    ) -> None:
        """Insert or overwrite records by id."""
        ...

    async def get_by_id(
        self,
        ids: Sequence[str],
        include: Sequence[str] = ("embeddings", "documents", "metadatas"),
    ) -> GetResult:
        """Fetch stored records by id."""
        ...

    async def query(
        self,
        vector: np.ndarray,
        k: int,
        include: Sequence[str] = ("metadatas", "documents"),
    ) -> list[Candidate]:
        """Return up to k nearest neighbours, most similar first."""
        ...


# ---------------------------------------------------------------------------
# TEXT GENERATOR PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class TextGenerator(Protocol):
    """
    Contract for a generative text provider.

    Implementations:
    - OpenAIGenerator (production)
    - MockGenerator (testing)
    """

    async def generate(self, prompt: str) -> str:
        """Return the raw text answer for a prompt."""
        ...


# ---------------------------------------------------------------------------
# INDEXING RESULT
# ---------------------------------------------------------------------------


@dataclass
class IndexResult:
    """Totals from one DocumentIndexer.index() call."""
    upserted_count: int = 0
    skipped_count: int = 0
    failed_batches: list[int] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return self.skipped_count == 0 and not self.failed_batches
