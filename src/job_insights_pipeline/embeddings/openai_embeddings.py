"""
Embeddings Module - Single Responsibility: Generate text embeddings.

It has ONE job: convert text to vector embeddings. No database logic, no
document handling.

Batching contract (shared by every provider here):
- Inputs are split into chunks of at most `batch_size`, one provider call
  per chunk, chunks sent sequentially.
- A chunk whose call fails yields EmbeddingFailed for each of its inputs;
  the other chunks are unaffected.
- Output has exactly one outcome per input, in input order.
"""

from __future__ import annotations

import hashlib
import logging
import os
from typing import Any, Sequence, TypeVar

import numpy as np
import openai
from openai import AsyncOpenAI

from job_insights_pipeline.core import (
    Embedded,
    EmbeddingFailed,
    EmbeddingOutcome,
    EmbeddingProvider,
    EmptyInputError,
    ProviderError,
)
from job_insights_pipeline.observability import get_tracer
from job_insights_pipeline.observability.attributes import (
    EMBED_BATCH_FAILED,
    EMBED_BATCH_INDEX,
    EMBED_BATCH_SIZE,
    GEN_AI_OPERATION_NAME,
    GEN_AI_REQUEST_MODEL,
    GEN_AI_SYSTEM,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_BATCH_SIZE = 100

# ~4 chars/token keeps 8000 chars well under the 8191 token model limit
DEFAULT_MAX_INPUT_CHARS = 8000


def partition(items: Sequence[T], size: int) -> list[Sequence[T]]:
    """Split items into consecutive chunks of at most `size`."""
    if size <= 0:
        raise ValueError(f"batch size must be positive, got {size}")
    return [items[start:start + size] for start in range(0, len(items), size)]


def _truncate(text: str, max_chars: int) -> str:
    """Head-only truncation to fit the model context window."""
    if len(text) <= max_chars:
        return text
    logger.debug("Truncated text for embedding: %d -> %d chars", len(text), max_chars)
    return text[:max_chars]


def _to_vector(values: Any) -> np.ndarray | None:
    """Validate a raw embedding payload; None if it is not a numeric vector."""
    if not isinstance(values, (list, tuple)) or not values:
        return None
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        return None
    return np.asarray(values, dtype=np.float32)


class OpenAIEmbeddings:
    """
    OpenAI-based embedding provider.

    Uses text-embedding-3-small by default (1536 dimensions). The client is
    built without automatic retries; a failed chunk is reported, not retried.
    """

    def __init__(
        self,
        model: str = DEFAULT_EMBEDDING_MODEL,
        api_key: str | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
        client: AsyncOpenAI | None = None,
        max_retries: int = 0,
    ):
        self.model = model
        self.batch_size = batch_size
        self.max_input_chars = max_input_chars
        self._client = client or AsyncOpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY"),
            max_retries=max_retries,
        )

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions for the model."""
        model_dims = {
            "text-embedding-3-small": 1536,
            "text-embedding-3-large": 3072,
            "text-embedding-ada-002": 1536,
        }
        return model_dims.get(self.model, 1536)

    async def _call(self, texts: list[str]) -> dict[int, np.ndarray]:
        """
        One provider call. Returns input position -> vector for every
        position the response covers with a well-formed vector.
        """
        try:
            response = await self._client.embeddings.create(input=texts, model=self.model)
        except openai.APIStatusError as e:
            raise ProviderError(e.message, status_code=e.status_code) from e
        except openai.OpenAIError as e:
            raise ProviderError(str(e)) from e

        data = getattr(response, "data", None)
        if not isinstance(data, list):
            raise ProviderError("malformed embedding payload: missing data list")

        vectors: dict[int, np.ndarray] = {}
        for position, item in enumerate(data):
            index = getattr(item, "index", None)
            if not isinstance(index, int) or isinstance(index, bool):
                index = position
            if not 0 <= index < len(texts):
                continue
            vector = _to_vector(getattr(item, "embedding", None))
            if vector is not None and index not in vectors:
                vectors[index] = vector
        return vectors

    async def embed(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        if not text or not text.strip():
            raise EmptyInputError("cannot embed empty text")

        vectors = await self._call([_truncate(text, self.max_input_chars)])
        if 0 not in vectors:
            raise ProviderError("malformed embedding payload: no numeric vector")
        return vectors[0]

    async def embed_batch(
        self,
        texts: Sequence[str],
        batch_size: int | None = None,
    ) -> list[EmbeddingOutcome]:
        """Generate one outcome per text, isolating failures per chunk."""
        size = self.batch_size if batch_size is None else batch_size
        chunks = partition(list(texts), size)
        tracer = get_tracer()
        outcomes: list[EmbeddingOutcome] = []

        for batch_index, chunk in enumerate(chunks):
            attributes = {
                GEN_AI_SYSTEM: "openai",
                GEN_AI_OPERATION_NAME: "embeddings",
                GEN_AI_REQUEST_MODEL: self.model,
                EMBED_BATCH_INDEX: batch_index,
                EMBED_BATCH_SIZE: len(chunk),
            }
            with tracer.start_span("embeddings.batch", attributes=attributes) as span:
                try:
                    vectors = await self._call(
                        [_truncate(text, self.max_input_chars) for text in chunk]
                    )
                except ProviderError as e:
                    logger.warning(
                        "Embedding batch %d/%d failed (%d texts): %s",
                        batch_index + 1, len(chunks), len(chunk), e,
                    )
                    span.set_attribute(EMBED_BATCH_FAILED, True)
                    outcomes.extend(EmbeddingFailed(str(e)) for _ in chunk)
                    continue

                missing = 0
                for position in range(len(chunk)):
                    vector = vectors.get(position)
                    if vector is None:
                        missing += 1
                        outcomes.append(EmbeddingFailed("missing from provider response"))
                    else:
                        outcomes.append(Embedded(vector))
                if missing:
                    logger.warning(
                        "Embedding batch %d/%d: %d of %d vectors missing or malformed",
                        batch_index + 1, len(chunks), missing, len(chunk),
                    )
                span.set_attribute(EMBED_BATCH_FAILED, False)

        logger.debug("Embedded %d texts in %d batches", len(outcomes), len(chunks))
        return outcomes


class MockEmbeddings:
    """
    Mock embedding provider for testing without API calls.

    Generates deterministic pseudo-embeddings seeded from text hashes.
    Any chunk containing a text in `failing_texts` fails as a whole, the way
    a rejected provider call would. Every chunk sent is recorded in `calls`.
    """

    def __init__(
        self,
        dimensions: int = 1536,
        batch_size: int = DEFAULT_BATCH_SIZE,
        failing_texts: set[str] | None = None,
    ):
        self._dimensions = dimensions
        self.batch_size = batch_size
        self.failing_texts = failing_texts or set()
        self.calls: list[list[str]] = []

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _vector(self, text: str) -> np.ndarray:
        seed = int.from_bytes(hashlib.sha256(text.encode()).digest()[:8], "big")
        rng = np.random.default_rng(seed)
        return rng.standard_normal(self._dimensions).astype(np.float32)

    async def embed(self, text: str) -> np.ndarray:
        """Generate deterministic pseudo-embedding from text hash."""
        if not text or not text.strip():
            raise EmptyInputError("cannot embed empty text")
        self.calls.append([text])
        if text in self.failing_texts:
            raise ProviderError("mock provider rejected input", status_code=500)
        return self._vector(text)

    async def embed_batch(
        self,
        texts: Sequence[str],
        batch_size: int | None = None,
    ) -> list[EmbeddingOutcome]:
        """Generate embeddings chunk by chunk."""
        size = self.batch_size if batch_size is None else batch_size
        outcomes: list[EmbeddingOutcome] = []
        for chunk in partition(list(texts), size):
            self.calls.append(list(chunk))
            if any(text in self.failing_texts for text in chunk):
                outcomes.extend(EmbeddingFailed("mock provider rejected batch") for _ in chunk)
                continue
            outcomes.extend(Embedded(self._vector(text)) for text in chunk)
        return outcomes


def get_embedding_provider(
    use_mock: bool = False,
    model: str = DEFAULT_EMBEDDING_MODEL,
    api_key: str | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
    dimensions: int = 1536,
) -> EmbeddingProvider:
    """
    Factory function to get the appropriate embedding provider.

    Args:
        use_mock: If True, return MockEmbeddings (for testing)
    """
    if use_mock:
        return MockEmbeddings(dimensions=dimensions, batch_size=batch_size)
    return OpenAIEmbeddings(
        model=model,
        api_key=api_key,
        batch_size=batch_size,
        max_input_chars=max_input_chars,
    )
