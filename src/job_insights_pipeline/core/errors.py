"""
Error taxonomy for the pipeline.

Transport and systemic failures are raised. Per-item and per-batch problems
(a bad document, one failed embedding chunk, a missing report section) are
reported as data instead - skip counts, EmbeddingFailed outcomes, sentinel
strings - so callers can still render partial results.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error raised by this package."""


class EmptyInputError(PipelineError, ValueError):
    """Caller supplied empty or whitespace-only text for embedding."""


class ProviderError(PipelineError):
    """An embedding or generation provider failed or returned junk."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        self.message = message
        prefix = f"Provider error ({status_code})" if status_code else "Provider error"
        super().__init__(f"{prefix}: {message}")


class VectorStoreError(PipelineError):
    """A vector store operation failed."""


class StoreConnectionError(VectorStoreError, ConnectionError):
    """The vector store backing service is unreachable."""


class CollectionError(VectorStoreError):
    """The collection could not be created or opened."""


class NotFoundError(PipelineError, LookupError):
    """No vector and no document exist for a source id."""
