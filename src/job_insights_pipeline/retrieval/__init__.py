"""
Retrieval module - vector similarity search over scraped listings.

This module provides:
- Document: The job listing model
- VectorStoreConfig: Configuration for stores
- PgVectorStore: PostgreSQL production store
- InMemoryVectorStore: Testing/development store
- get_vector_store(): Factory function
- Retriever: text and "more like this" queries

ARCHITECTURE:
-------------
1. Protocol defines the contract (in core.protocols)
2. Multiple implementations (PgVectorStore, InMemoryVectorStore)
3. Factory function for instantiation
4. The Retriever receives its store and embedding provider by injection
"""

# Document model
from job_insights_pipeline.retrieval.document import (
    DEFAULT_FAILURE_SENTINELS,
    Document,
)

# Store implementations and factory
from job_insights_pipeline.retrieval.store import (
    VectorStoreConfig,
    PgVectorStore,
    InMemoryVectorStore,
    get_vector_store,
)

# Query side
from job_insights_pipeline.retrieval.retriever import Retriever

__all__ = [
    # Document
    "Document",
    "DEFAULT_FAILURE_SENTINELS",
    # Config
    "VectorStoreConfig",
    # Implementations
    "PgVectorStore",
    "InMemoryVectorStore",
    # Factory
    "get_vector_store",
    # Retriever
    "Retriever",
]
