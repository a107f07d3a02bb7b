"""
Embeddings module - text embedding generation.

1. Protocol (EmbeddingProvider, in core) defines the interface
2. Production implementation (OpenAIEmbeddings)
3. Test double (MockEmbeddings) for fast testing
4. Factory function (get_embedding_provider)
"""

from job_insights_pipeline.core import EmbeddingProvider
from job_insights_pipeline.embeddings.openai_embeddings import (
    OpenAIEmbeddings,
    MockEmbeddings,
    get_embedding_provider,
    partition,
)

__all__ = [
    "EmbeddingProvider",
    "OpenAIEmbeddings",
    "MockEmbeddings",
    "get_embedding_provider",
    "partition",
]
