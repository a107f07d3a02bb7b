"""
Document indexer - embeds scraped listings and upserts them into the store.

Batches run sequentially: one embedding call then one upsert per batch.
That bounds load on the provider and the database and keeps failure
attribution per batch. Per-document and per-batch problems become skip
counts; only systemic store failures (unreachable database, unusable
collection) propagate.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Sequence

from job_insights_pipeline.core import (
    CollectionError,
    EmbeddingProvider,
    Embedded,
    IndexResult,
    StoreConnectionError,
    VectorStore,
    VectorStoreError,
)
from job_insights_pipeline.embeddings import partition
from job_insights_pipeline.observability import get_tracer
from job_insights_pipeline.observability.attributes import index_result_attributes
from job_insights_pipeline.retrieval.document import DEFAULT_FAILURE_SENTINELS, Document

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


class DocumentIndexer:
    """
    Index Documents into a vector store.

    Args:
        embeddings: Provider used for the batch embedding calls
        store: Target vector store (already configured with its collection)
        batch_size: Default documents per batch
        failure_sentinels: Body substrings marking a failed scrape
        inter_batch_delay_s: Pause between batches, for provider rate limits
    """

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        store: VectorStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        failure_sentinels: Iterable[str] = DEFAULT_FAILURE_SENTINELS,
        inter_batch_delay_s: float = 0.0,
    ):
        self.embeddings = embeddings
        self.store = store
        self.batch_size = batch_size
        self.failure_sentinels = tuple(failure_sentinels)
        self.inter_batch_delay_s = inter_batch_delay_s

    def _eligible(self, documents: Sequence[Document]) -> tuple[list[Document], int]:
        """Drop ineligible documents and earlier duplicates of an id."""
        latest: dict[str, Document] = {}
        skipped = 0
        for doc in documents:
            if not doc.is_eligible(self.failure_sentinels):
                logger.debug("Skipping ineligible document %r", doc.id)
                skipped += 1
                continue
            if doc.id in latest:
                # last occurrence wins; its slot moves to the end
                skipped += 1
                del latest[doc.id]
            latest[doc.id] = doc
        return list(latest.values()), skipped

    async def index(
        self,
        documents: Sequence[Document],
        embedding_batch_size: int | None = None,
    ) -> IndexResult:
        """
        Embed and upsert documents batch by batch.

        Returns:
            IndexResult with upserted/skipped totals and the indexes of
            batches whose upsert failed.

        Raises:
            ValueError: embedding_batch_size <= 0
            StoreConnectionError, CollectionError: the store is unusable
        """
        size = self.batch_size if embedding_batch_size is None else embedding_batch_size
        if size <= 0:
            raise ValueError(f"batch size must be positive, got {size}")

        result = IndexResult()
        eligible, result.skipped_count = self._eligible(documents)

        with get_tracer().start_span("indexer.index") as span:
            if eligible:
                await self.store.get_collection()

            batches = partition(eligible, size)
            for batch_index, batch in enumerate(batches):
                if batch_index > 0 and self.inter_batch_delay_s > 0:
                    await asyncio.sleep(self.inter_batch_delay_s)
                await self._index_batch(batch_index, batch, len(batches), result)

            for key, value in index_result_attributes(
                document_count=len(documents),
                upserted=result.upserted_count,
                skipped=result.skipped_count,
                failed_batches=len(result.failed_batches),
            ).items():
                span.set_attribute(key, value)

        logger.info(
            "Indexed %d documents: %d upserted, %d skipped, %d failed batches",
            len(documents),
            result.upserted_count,
            result.skipped_count,
            len(result.failed_batches),
        )
        return result

    async def _index_batch(
        self,
        batch_index: int,
        batch: Sequence[Document],
        batch_count: int,
        result: IndexResult,
    ) -> None:
        outcomes = await self.embeddings.embed_batch(
            [doc.body for doc in batch], batch_size=len(batch)
        )

        missing = len(batch) - len(outcomes)
        if missing > 0:
            logger.warning(
                "Batch %d/%d: provider returned %d outcomes for %d documents; skipping the rest",
                batch_index + 1,
                batch_count,
                len(outcomes),
                len(batch),
            )
            result.skipped_count += missing

        ids, vectors, metadatas, bodies = [], [], [], []
        for doc, outcome in zip(batch, outcomes):
            if not isinstance(outcome, Embedded):
                result.skipped_count += 1
                continue
            ids.append(doc.id)
            vectors.append(outcome.vector)
            metadatas.append(doc.to_metadata())
            bodies.append(doc.body)

        if not ids:
            logger.warning("Batch %d/%d: no embeddings, nothing to upsert", batch_index + 1, batch_count)
            return

        try:
            await self.store.upsert(ids, vectors, metadatas, bodies)
        except (StoreConnectionError, CollectionError):
            raise
        except VectorStoreError as e:
            logger.error("Batch %d/%d upsert failed: %s", batch_index + 1, batch_count, e)
            result.skipped_count += len(ids)
            result.failed_batches.append(batch_index)
            return

        result.upserted_count += len(ids)
        logger.debug("Batch %d/%d: upserted %d records", batch_index + 1, batch_count, len(ids))
