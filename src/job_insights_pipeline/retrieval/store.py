"""
Vector store implementations following the gold standard pattern.

Pattern: Protocol -> Production impl -> Test double -> Factory

This module contains:
1. VectorStoreConfig - Configuration dataclass
2. PgVectorStore - PostgreSQL with pgvector (production)
3. InMemoryVectorStore - In-memory store (testing/development)
4. get_vector_store() - Factory function

A store is constructed once at process start and injected into the indexer
and retriever. It caches its connection and collection handle for the
process lifetime; a failed initialization clears the cache so the next call
starts over instead of reusing a broken handle.

Only a lost connection (InterfaceError, or a connection psycopg reports as
closed or broken) surfaces as StoreConnectionError and drops the handle.
Timeouts and other statement failures leave the connection in place and
surface as VectorStoreError, so callers can skip the batch and carry on.

Concurrent upserts of the same id race at the storage layer and the last
write wins. Re-indexing a listing is idempotent by overwrite.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

import numpy as np
import psycopg
from pgvector.psycopg import register_vector_async
from psycopg import sql
from psycopg.types.json import Jsonb

from job_insights_pipeline.core import (
    Candidate,
    CollectionError,
    GetResult,
    StoreConnectionError,
    VectorStoreError,
)
from job_insights_pipeline.observability import get_tracer
from job_insights_pipeline.observability.attributes import (
    DB_SYSTEM,
    STORE_COLLECTION,
    STORE_QUERY_K,
    STORE_RESULT_COUNT,
)

if TYPE_CHECKING:
    from job_insights_pipeline.config import PipelineSettings

logger = logging.getLogger(__name__)

# metric -> (distance operator, HNSW operator class)
DISTANCE_OPERATORS: dict[str, tuple[str, str]] = {
    "cosine": ("<=>", "vector_cosine_ops"),
    "l2": ("<->", "vector_l2_ops"),
    "ip": ("<#>", "vector_ip_ops"),
}

GET_FIELDS = ("embeddings", "documents", "metadatas")
QUERY_FIELDS = ("metadatas", "documents")


def _index_metric(indexdef: str) -> str | None:
    """Metric whose operator class appears in a pg_indexes definition."""
    for metric, (_, opclass) in DISTANCE_OPERATORS.items():
        if opclass in indexdef:
            return metric
    return None


def _check_aligned(
    ids: Sequence[str],
    vectors: Sequence[Any],
    metadatas: Sequence[Any],
    documents: Sequence[Any],
) -> None:
    lengths = {len(ids), len(vectors), len(metadatas), len(documents)}
    if len(lengths) != 1:
        raise ValueError(
            "upsert arrays must be the same length: "
            f"ids={len(ids)} vectors={len(vectors)} "
            f"metadatas={len(metadatas)} documents={len(documents)}"
        )


# ---------------------------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------------------------


@dataclass
class VectorStoreConfig:
    """Configuration for the vector store."""

    connection_string: str = "postgresql://localhost/job_insights"
    collection_name: str = "jobs_listings_v1"
    distance_metric: str = "cosine"
    embedding_dim: int = 1536
    use_postgres: bool = False

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "VectorStoreConfig":
        return cls(
            connection_string=settings.database_url,
            collection_name=settings.collection_name,
            distance_metric=settings.distance_metric,
            embedding_dim=settings.embedding_dim,
            use_postgres=settings.use_postgres,
        )


# ---------------------------------------------------------------------------
# PGVECTOR STORE (Production)
# ---------------------------------------------------------------------------


class PgVectorStore:
    """
    PostgreSQL vector store using pgvector.

    One table per collection:
        id TEXT PRIMARY KEY, embedding vector(dim) NULL,
        metadata JSONB, document TEXT
    with an HNSW index whose operator class fixes the distance metric.
    """

    def __init__(self, config: VectorStoreConfig):
        self.config = config
        self._conn: psycopg.AsyncConnection | None = None
        self._collections: dict[str, str] = {}  # name -> metric
        self._active: str | None = None

    @staticmethod
    async def _close_quietly(conn: psycopg.AsyncConnection) -> None:
        if conn.closed:
            return
        try:
            await conn.close()
        except psycopg.Error as e:
            logger.debug("Ignoring error while closing connection: %s", e)

    async def _invalidate_connection(self) -> None:
        """Drop the cached handles and close the old connection."""
        conn, self._conn = self._conn, None
        self._collections.clear()
        self._active = None
        if conn is not None:
            await self._close_quietly(conn)

    @staticmethod
    def _connection_lost(conn: psycopg.AsyncConnection, error: psycopg.Error) -> bool:
        """True when the error left the connection unusable.

        Statement timeouts, lock timeouts and cancellations are
        OperationalErrors too, but the connection survives them.
        """
        return isinstance(error, psycopg.InterfaceError) or conn.closed or conn.broken

    async def _raise_for(
        self,
        conn: psycopg.AsyncConnection,
        error: psycopg.Error,
        action: str,
    ) -> None:
        if self._connection_lost(conn, error):
            await self._invalidate_connection()
            raise StoreConnectionError(
                f"Vector database unreachable during {action}: {error}"
            ) from error
        raise VectorStoreError(f"{action.capitalize()} failed: {error}") from error

    async def connect(self) -> psycopg.AsyncConnection:
        """Establish (or reuse) the database connection."""
        if self._conn is not None and not self._conn.closed:
            return self._conn

        if self._conn is not None:
            await self._invalidate_connection()
        logger.info("Connecting to pgvector store")
        try:
            conn = await psycopg.AsyncConnection.connect(
                self.config.connection_string, autocommit=True
            )
        except psycopg.Error as e:
            raise StoreConnectionError(f"Failed to connect to vector database: {e}") from e

        try:
            await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
            await register_vector_async(conn)
        except psycopg.Error as e:
            await self._close_quietly(conn)
            raise StoreConnectionError(f"Failed to prepare vector database: {e}") from e

        self._conn = conn
        return conn

    async def close(self) -> None:
        """Close database connection."""
        await self._invalidate_connection()

    async def get_collection(
        self,
        name: str | None = None,
        distance: str | None = None,
    ) -> str:
        """Get or create the collection table and its HNSW index."""
        name = name or self.config.collection_name
        metric = (distance or self.config.distance_metric).lower()

        existing = self._collections.get(name)
        if existing is not None:
            if existing != metric:
                raise CollectionError(
                    f"Collection {name} was created with metric {existing}, not {metric}"
                )
            self._active = name
            return name

        if metric not in DISTANCE_OPERATORS:
            raise CollectionError(f"Unsupported distance metric: {metric}")

        conn = await self.connect()
        _, opclass = DISTANCE_OPERATORS[metric]
        try:
            await conn.execute(
                sql.SQL(
                    "CREATE TABLE IF NOT EXISTS {table} ("
                    " id TEXT PRIMARY KEY,"
                    " embedding vector({dim}),"
                    " metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,"
                    " document TEXT)"
                ).format(
                    table=sql.Identifier(name),
                    dim=sql.Literal(self.config.embedding_dim),
                )
            )
            await conn.execute(
                sql.SQL(
                    "CREATE INDEX IF NOT EXISTS {index} ON {table} "
                    "USING hnsw (embedding {opclass})"
                ).format(
                    index=sql.Identifier(f"{name}_embedding_idx"),
                    table=sql.Identifier(name),
                    opclass=sql.SQL(opclass),
                )
            )
            cursor = await conn.execute(
                "SELECT indexdef FROM pg_indexes "
                "WHERE schemaname = current_schema() AND tablename = %s AND indexname = %s",
                (name, f"{name}_embedding_idx"),
            )
            row = await cursor.fetchone()
        except psycopg.Error as e:
            if self._connection_lost(conn, e):
                await self._invalidate_connection()
            else:
                self._collections.pop(name, None)
                self._active = None
            raise CollectionError(f"Failed to access vector database collection: {e}") from e

        # an index left by an earlier run pins the metric the table was built for
        stored = _index_metric(row[0]) if row else None
        if stored is not None and stored != metric:
            raise CollectionError(
                f"Collection {name} was created with metric {stored}, not {metric}"
            )

        logger.info("Accessed collection %s (metric=%s)", name, metric)
        self._collections[name] = metric
        self._active = name
        return name

    async def _collection(self) -> str:
        if self._active is not None:
            return self._active
        return await self.get_collection()

    async def upsert(
        self,
        ids: Sequence[str],
        vectors: Sequence[np.ndarray | None],
        metadatas: Sequence[dict[str, Any]],
        documents: Sequence[str],
    ) -> None:
        """Insert or overwrite records in one transaction."""
        _check_aligned(ids, vectors, metadatas, documents)
        if not ids:
            return

        collection = await self._collection()
        conn = await self.connect()
        statement = sql.SQL(
            "INSERT INTO {table} (id, embedding, metadata, document) "
            "VALUES (%s, %s, %s, %s) "
            "ON CONFLICT (id) DO UPDATE SET "
            "embedding = EXCLUDED.embedding, "
            "metadata = EXCLUDED.metadata, "
            "document = EXCLUDED.document"
        ).format(table=sql.Identifier(collection))
        rows = [
            (record_id, vector, Jsonb(metadata or {}), document)
            for record_id, vector, metadata, document in zip(ids, vectors, metadatas, documents)
        ]

        try:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await cur.executemany(statement, rows)
        except psycopg.Error as e:
            await self._raise_for(conn, e, f"upsert of {len(rows)} records")

    async def get_by_id(
        self,
        ids: Sequence[str],
        include: Sequence[str] = GET_FIELDS,
    ) -> GetResult:
        """Fetch stored records by id, in the order requested."""
        result = GetResult(
            embeddings=[] if "embeddings" in include else None,
            documents=[] if "documents" in include else None,
            metadatas=[] if "metadatas" in include else None,
        )
        if not ids:
            return result

        collection = await self._collection()
        conn = await self.connect()
        try:
            cursor = await conn.execute(
                sql.SQL(
                    "SELECT id, embedding, document, metadata FROM {table} WHERE id = ANY(%s)"
                ).format(table=sql.Identifier(collection)),
                (list(ids),),
            )
            rows = await cursor.fetchall()
        except psycopg.Error as e:
            await self._raise_for(conn, e, "get by id")

        by_id = {row[0]: row for row in rows}
        for record_id in ids:
            row = by_id.get(record_id)
            if row is None:
                continue
            result.ids.append(record_id)
            if result.embeddings is not None:
                result.embeddings.append(row[1])
            if result.documents is not None:
                result.documents.append(row[2])
            if result.metadatas is not None:
                result.metadatas.append(row[3] or {})
        return result

    async def query(
        self,
        vector: np.ndarray,
        k: int,
        include: Sequence[str] = QUERY_FIELDS,
    ) -> list[Candidate]:
        """Nearest neighbours by the collection's metric."""
        if k <= 0:
            return []

        collection = await self._collection()
        operator, _ = DISTANCE_OPERATORS[self._collections[collection]]
        conn = await self.connect()

        attributes = {DB_SYSTEM: "postgresql", STORE_COLLECTION: collection, STORE_QUERY_K: k}
        with get_tracer().start_span("vector_store.query", attributes=attributes) as span:
            try:
                cursor = await conn.execute(
                    sql.SQL(
                        "SELECT id, metadata, document, embedding {op} %s AS distance "
                        "FROM {table} WHERE embedding IS NOT NULL "
                        "ORDER BY distance LIMIT %s"
                    ).format(op=sql.SQL(operator), table=sql.Identifier(collection)),
                    (np.asarray(vector, dtype=np.float32), k),
                )
                rows = await cursor.fetchall()
            except psycopg.Error as e:
                await self._raise_for(conn, e, "similarity query")
            span.set_attribute(STORE_RESULT_COUNT, len(rows))

        return [
            Candidate(
                id=row[0],
                metadata=(row[1] or {}) if "metadatas" in include else {},
                document=row[2] if "documents" in include else None,
                rank=rank,
                distance=float(row[3]),
            )
            for rank, row in enumerate(rows)
        ]

    async def count(self) -> int:
        """Number of records in the active collection."""
        collection = await self._collection()
        conn = await self.connect()
        try:
            cursor = await conn.execute(
                sql.SQL("SELECT count(*) FROM {table}").format(table=sql.Identifier(collection))
            )
            row = await cursor.fetchone()
        except psycopg.Error as e:
            await self._raise_for(conn, e, "count")
        return int(row[0]) if row else 0


# ---------------------------------------------------------------------------
# IN-MEMORY STORE (Testing/Development)
# ---------------------------------------------------------------------------


@dataclass
class _Record:
    vector: np.ndarray | None
    metadata: dict[str, Any]
    document: str | None


class InMemoryVectorStore:
    """
    In-memory vector store for development/testing.

    Implements the same interface as PgVectorStore but doesn't require Postgres.
    """

    def __init__(self, config: VectorStoreConfig | None = None):
        self.config = config or VectorStoreConfig()
        self._collections: dict[str, dict[str, _Record]] = {}
        self._metrics: dict[str, str] = {}
        self._active: str | None = None
        self._connected = False

    async def connect(self) -> "InMemoryVectorStore":
        """No connection needed; marks the store as open."""
        self._connected = True
        return self

    async def close(self) -> None:
        self._connected = False
        self._active = None

    async def get_collection(
        self,
        name: str | None = None,
        distance: str | None = None,
    ) -> str:
        name = name or self.config.collection_name
        metric = (distance or self.config.distance_metric).lower()
        if metric not in DISTANCE_OPERATORS:
            raise CollectionError(f"Unsupported distance metric: {metric}")

        existing = self._metrics.get(name)
        if existing is not None and existing != metric:
            raise CollectionError(
                f"Collection {name} was created with metric {existing}, not {metric}"
            )

        await self.connect()
        self._collections.setdefault(name, {})
        self._metrics[name] = metric
        self._active = name
        return name

    async def _records(self) -> dict[str, _Record]:
        if self._active is None:
            await self.get_collection()
        return self._collections[self._active]

    async def upsert(
        self,
        ids: Sequence[str],
        vectors: Sequence[np.ndarray | None],
        metadatas: Sequence[dict[str, Any]],
        documents: Sequence[str],
    ) -> None:
        _check_aligned(ids, vectors, metadatas, documents)
        records = await self._records()
        staged = {
            record_id: _Record(
                vector=None if vector is None else np.asarray(vector, dtype=np.float32),
                metadata=dict(metadata or {}),
                document=document,
            )
            for record_id, vector, metadata, document in zip(ids, vectors, metadatas, documents)
        }
        records.update(staged)

    async def get_by_id(
        self,
        ids: Sequence[str],
        include: Sequence[str] = GET_FIELDS,
    ) -> GetResult:
        records = await self._records()
        result = GetResult(
            embeddings=[] if "embeddings" in include else None,
            documents=[] if "documents" in include else None,
            metadatas=[] if "metadatas" in include else None,
        )
        for record_id in ids:
            record = records.get(record_id)
            if record is None:
                continue
            result.ids.append(record_id)
            if result.embeddings is not None:
                result.embeddings.append(record.vector)
            if result.documents is not None:
                result.documents.append(record.document)
            if result.metadatas is not None:
                result.metadatas.append(dict(record.metadata))
        return result

    def _distance(self, metric: str, a: np.ndarray, b: np.ndarray) -> float:
        if metric == "l2":
            return float(np.linalg.norm(a - b))
        if metric == "ip":
            return float(-np.dot(a, b))
        denom = np.linalg.norm(a) * np.linalg.norm(b)
        if denom == 0:
            return 1.0
        return float(1.0 - np.dot(a, b) / denom)

    async def query(
        self,
        vector: np.ndarray,
        k: int,
        include: Sequence[str] = QUERY_FIELDS,
    ) -> list[Candidate]:
        if k <= 0:
            return []
        records = await self._records()
        metric = self._metrics[self._active]
        query_vector = np.asarray(vector, dtype=np.float32)

        attributes = {DB_SYSTEM: "memory", STORE_COLLECTION: self._active, STORE_QUERY_K: k}
        with get_tracer().start_span("vector_store.query", attributes=attributes) as span:
            scored = [
                (record_id, record, self._distance(metric, query_vector, record.vector))
                for record_id, record in records.items()
                if record.vector is not None
            ]
            # sort is stable, so ties keep insertion order
            scored.sort(key=lambda item: item[2])
            span.set_attribute(STORE_RESULT_COUNT, min(k, len(scored)))

        return [
            Candidate(
                id=record_id,
                metadata=dict(record.metadata) if "metadatas" in include else {},
                document=record.document if "documents" in include else None,
                rank=rank,
                distance=distance,
            )
            for rank, (record_id, record, distance) in enumerate(scored[:k])
        ]

    async def count(self) -> int:
        return len(await self._records())


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_vector_store(
    config: VectorStoreConfig | None = None,
    use_postgres: bool | None = None,
) -> PgVectorStore | InMemoryVectorStore:
    """
    Factory function to get the appropriate vector store.

    Args:
        config: Store configuration (uses defaults if not provided)
        use_postgres: Overrides config.use_postgres when given

    Returns:
        VectorStore implementation
    """
    config = config or VectorStoreConfig()
    if use_postgres is None:
        use_postgres = config.use_postgres

    if use_postgres:
        return PgVectorStore(config)
    return InMemoryVectorStore(config)
