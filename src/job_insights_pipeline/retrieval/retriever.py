"""
Retriever - Single Responsibility: turn a query into a candidate set.

Two entry points:
- query_by_text: embed a free-text query and run a similarity search
- query_by_source_id: "more like this" for a stored listing, excluding it

The retriever does not own the store or the embedding provider; both are
injected so it can run against the in-memory doubles in tests.
"""

from __future__ import annotations

import logging

import numpy as np

from job_insights_pipeline.core import (
    Candidate,
    EmbeddingProvider,
    NotFoundError,
    VectorStore,
)
from job_insights_pipeline.observability import get_tracer
from job_insights_pipeline.observability.attributes import (
    RETRIEVAL_CANDIDATE_COUNT,
    RETRIEVAL_FALLBACK_USED,
    RETRIEVAL_SOURCE_ID,
    STORE_QUERY_K,
)

logger = logging.getLogger(__name__)


def _check_k(k: int) -> None:
    if k <= 0:
        raise ValueError(f"k must be positive, got {k}")


class Retriever:
    """
    Similarity retrieval over an injected vector store.

    Args:
        embeddings: Provider used to embed queries (and to re-embed stored
            documents whose vector is missing)
        store: Vector store holding the indexed listings
        heal_missing_vectors: When True, a vector regenerated during the
            fallback path is written back to the store
    """

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        store: VectorStore,
        heal_missing_vectors: bool = False,
    ):
        self.embeddings = embeddings
        self.store = store
        self.heal_missing_vectors = heal_missing_vectors

    async def query_by_text(self, text: str, k: int) -> list[Candidate]:
        """Top-k candidates for a free-text query. Embedding errors propagate."""
        _check_k(k)

        with get_tracer().start_span(
            "retrieval.query_by_text", attributes={STORE_QUERY_K: k}
        ) as span:
            vector = await self.embeddings.embed(text)
            candidates = await self.store.query(vector, k)
            candidates = [c for c in candidates if c.id]
            span.set_attribute(RETRIEVAL_CANDIDATE_COUNT, len(candidates))

        logger.debug("Text query returned %d candidates", len(candidates))
        return candidates

    async def query_by_source_id(
        self,
        source_id: str,
        k: int,
        exclude_self: bool = True,
    ) -> list[Candidate]:
        """
        Listings most similar to a stored one.

        Uses the stored vector when there is one. Otherwise the stored
        document text is re-embedded; NotFoundError if there is none.
        """
        _check_k(k)

        attributes = {RETRIEVAL_SOURCE_ID: source_id, STORE_QUERY_K: k}
        with get_tracer().start_span("retrieval.query_by_source_id", attributes=attributes) as span:
            stored = await self.store.get_by_id([source_id], include=("embeddings",))
            vector = stored.first_embedding()

            fallback = vector is None
            span.set_attribute(RETRIEVAL_FALLBACK_USED, fallback)
            if fallback:
                vector = await self._reembed(source_id)

            limit = k + 1 if exclude_self else k
            candidates = await self.store.query(vector, limit)

            if exclude_self:
                candidates = [c for c in candidates if c.id != source_id]
            candidates = [c for c in candidates if c.id][:k]
            span.set_attribute(RETRIEVAL_CANDIDATE_COUNT, len(candidates))

        return candidates

    async def _reembed(self, source_id: str) -> np.ndarray:
        """Regenerate the vector for a record stored without one."""
        logger.info("No stored vector for %s, re-embedding document text", source_id)

        stored = await self.store.get_by_id([source_id], include=("documents", "metadatas"))
        text = stored.first_document()
        if not text or not text.strip():
            raise NotFoundError(f"No stored document for {source_id}")

        vector = await self.embeddings.embed(text)

        if self.heal_missing_vectors:
            await self.store.upsert(
                [source_id],
                [vector],
                [stored.first_metadata() or {}],
                [text],
            )
            logger.info("Wrote regenerated vector back for %s", source_id)

        return vector
