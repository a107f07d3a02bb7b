"""
Core module - shared protocols, types and errors.

USAGE:
------
from job_insights_pipeline.core import VectorStore, EmbeddingProvider

class MyVectorStore:
    '''Implements VectorStore protocol.'''
    ...
"""

from job_insights_pipeline.core.errors import (
    PipelineError,
    EmptyInputError,
    ProviderError,
    VectorStoreError,
    StoreConnectionError,
    CollectionError,
    NotFoundError,
)
from job_insights_pipeline.core.protocols import (
    # Protocols
    EmbeddingProvider,
    VectorStore,
    TextGenerator,
    # Data classes
    Embedded,
    EmbeddingFailed,
    EmbeddingOutcome,
    Candidate,
    GetResult,
    IndexResult,
    is_embedded,
)

__all__ = [
    # Errors
    "PipelineError",
    "EmptyInputError",
    "ProviderError",
    "VectorStoreError",
    "StoreConnectionError",
    "CollectionError",
    "NotFoundError",
    # Protocols
    "EmbeddingProvider",
    "VectorStore",
    "TextGenerator",
    # Data classes
    "Embedded",
    "EmbeddingFailed",
    "EmbeddingOutcome",
    "Candidate",
    "GetResult",
    "IndexResult",
    "is_embedded",
]
