"""
Unit Tests for Embedding Providers

Tests the batching contract shared by OpenAIEmbeddings and MockEmbeddings:
chunking, positional correspondence, and per-chunk failure isolation.

Uses a mocked AsyncOpenAI client - no network calls.
"""

import math
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import numpy as np
import openai
import pytest

from job_insights_pipeline.core import (
    Embedded,
    EmbeddingFailed,
    EmptyInputError,
    ProviderError,
    is_embedded,
)
from job_insights_pipeline.embeddings import (
    MockEmbeddings,
    OpenAIEmbeddings,
    get_embedding_provider,
    partition,
)


# ---------------------------------------------------------------------------
# HELPERS
# ---------------------------------------------------------------------------


def _response(vectors, indexes=None):
    """Build an embeddings.create response object."""
    indexes = indexes if indexes is not None else range(len(vectors))
    return SimpleNamespace(
        data=[SimpleNamespace(index=i, embedding=v) for i, v in zip(indexes, vectors)]
    )


def _echo_response(**kwargs):
    """Response with one vector per input: [position, len(text)]."""
    texts = kwargs["input"]
    return _response([[float(i), float(len(t))] for i, t in enumerate(texts)])


def _status_error(status: int, message: str = "rate limited") -> openai.APIStatusError:
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    return openai.APIStatusError(
        message, response=httpx.Response(status, request=request), body=None
    )


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.embeddings.create = AsyncMock(side_effect=_echo_response)
    return client


@pytest.fixture
def provider(mock_client):
    return OpenAIEmbeddings(client=mock_client, batch_size=2, max_input_chars=50)


# ---------------------------------------------------------------------------
# PARTITION
# ---------------------------------------------------------------------------


class TestPartition:
    """Test chunking helper."""

    @pytest.mark.parametrize("n,size", [(0, 3), (1, 1), (5, 2), (6, 3), (7, 10)])
    def test_chunk_count_is_ceiling(self, n, size):
        """Should produce ceil(n/size) chunks preserving order."""
        items = list(range(n))
        chunks = partition(items, size)

        assert len(chunks) == math.ceil(n / size)
        assert [x for chunk in chunks for x in chunk] == items
        assert all(len(chunk) <= size for chunk in chunks)

    def test_non_positive_size_raises(self):
        """Should reject zero or negative sizes."""
        with pytest.raises(ValueError):
            partition([1, 2], 0)
        with pytest.raises(ValueError):
            partition([1, 2], -1)


# ---------------------------------------------------------------------------
# OPENAI EMBEDDINGS - SINGLE
# ---------------------------------------------------------------------------


class TestOpenAIEmbed:
    """Test single-text embedding."""

    async def test_returns_float32_vector(self, provider, mock_client):
        """Should return the vector from the response."""
        vector = await provider.embed("python developer")

        assert vector.dtype == np.float32
        assert vector.tolist() == [0.0, 16.0]
        mock_client.embeddings.create.assert_awaited_once()

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_empty_text_rejected_without_call(self, provider, mock_client, text):
        """Should raise EmptyInputError before any network call."""
        with pytest.raises(EmptyInputError):
            await provider.embed(text)

        mock_client.embeddings.create.assert_not_called()

    async def test_status_error_preserved(self, provider, mock_client):
        """Should map provider HTTP errors to ProviderError with status."""
        mock_client.embeddings.create.side_effect = _status_error(429, "slow down")

        with pytest.raises(ProviderError) as exc_info:
            await provider.embed("text")

        assert exc_info.value.status_code == 429
        assert "slow down" in str(exc_info.value)

    async def test_connection_error_mapped(self, provider, mock_client):
        """Should map transport errors to ProviderError."""
        request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
        mock_client.embeddings.create.side_effect = openai.APIConnectionError(request=request)

        with pytest.raises(ProviderError):
            await provider.embed("text")

    @pytest.mark.parametrize(
        "payload",
        [
            SimpleNamespace(data=None),
            SimpleNamespace(data=[]),
            _response([None]),
            _response([["a", "b"]]),
            _response([[]]),
        ],
    )
    async def test_malformed_payload_raises(self, provider, mock_client, payload):
        """Should raise ProviderError when no numeric vector comes back."""
        mock_client.embeddings.create.side_effect = None
        mock_client.embeddings.create.return_value = payload

        with pytest.raises(ProviderError):
            await provider.embed("text")

    async def test_long_text_truncated(self, provider, mock_client):
        """Should send at most max_input_chars characters."""
        await provider.embed("x" * 500)

        sent = mock_client.embeddings.create.call_args.kwargs["input"]
        assert sent == ["x" * 50]


# ---------------------------------------------------------------------------
# OPENAI EMBEDDINGS - BATCH
# ---------------------------------------------------------------------------


class TestOpenAIEmbedBatch:
    """Test batched embedding."""

    async def test_one_call_per_chunk(self, provider, mock_client):
        """Should issue ceil(n/b) calls and return n outcomes in order."""
        texts = ["a", "bb", "ccc", "dddd", "eeeee"]

        outcomes = await provider.embed_batch(texts)

        assert mock_client.embeddings.create.await_count == 3
        assert len(outcomes) == 5
        assert all(is_embedded(o) for o in outcomes)
        # second component is len(text), so order is checkable
        assert [o.vector[1] for o in outcomes] == [1, 2, 3, 4, 5]

    async def test_batch_size_override(self, provider, mock_client):
        """Should honor an explicit batch_size."""
        await provider.embed_batch(["a", "b", "c", "d"], batch_size=4)

        assert mock_client.embeddings.create.await_count == 1

    async def test_invalid_batch_size(self, provider):
        """Should raise ValueError for batch_size <= 0."""
        with pytest.raises(ValueError):
            await provider.embed_batch(["a"], batch_size=0)

    async def test_empty_input_no_calls(self, provider, mock_client):
        """Should return [] without calling the provider."""
        assert await provider.embed_batch([]) == []
        mock_client.embeddings.create.assert_not_called()

    async def test_failed_chunk_isolated(self, provider, mock_client):
        """Only the failing chunk's outcomes should be EmbeddingFailed."""
        mock_client.embeddings.create.side_effect = [
            _response([[1.0], [2.0]]),
            _status_error(500, "boom"),
            _response([[5.0]]),
        ]

        outcomes = await provider.embed_batch(["a", "b", "c", "d", "e"])

        assert [type(o) for o in outcomes] == [
            Embedded, Embedded, EmbeddingFailed, EmbeddingFailed, Embedded,
        ]
        assert outcomes[0].vector.tolist() == [1.0]
        assert outcomes[4].vector.tolist() == [5.0]
        assert "boom" in outcomes[2].reason

    async def test_short_response_fills_failures(self, provider, mock_client):
        """Positions missing from a response should become EmbeddingFailed."""
        mock_client.embeddings.create.side_effect = None
        mock_client.embeddings.create.return_value = _response([[1.0]])

        outcomes = await provider.embed_batch(["a", "b"])

        assert is_embedded(outcomes[0])
        assert isinstance(outcomes[1], EmbeddingFailed)

    async def test_response_matched_by_index(self, provider, mock_client):
        """Out-of-order response items should map back by index."""
        mock_client.embeddings.create.side_effect = None
        mock_client.embeddings.create.return_value = _response(
            [[2.0], [1.0]], indexes=[1, 0]
        )

        outcomes = await provider.embed_batch(["a", "b"])

        assert outcomes[0].vector.tolist() == [1.0]
        assert outcomes[1].vector.tolist() == [2.0]

    async def test_unmatched_index_ignored(self, provider, mock_client):
        """Items with an out-of-range index should not shift other outcomes."""
        mock_client.embeddings.create.side_effect = None
        mock_client.embeddings.create.return_value = _response(
            [[1.0], [9.0]], indexes=[0, 7]
        )

        outcomes = await provider.embed_batch(["a", "b"])

        assert outcomes[0].vector.tolist() == [1.0]
        assert isinstance(outcomes[1], EmbeddingFailed)

    async def test_batch_never_raises_on_provider_error(self, provider, mock_client):
        """A provider outage should degrade to failures, not raise."""
        mock_client.embeddings.create.side_effect = _status_error(503)

        outcomes = await provider.embed_batch(["a", "b", "c"])

        assert len(outcomes) == 3
        assert not any(is_embedded(o) for o in outcomes)


# ---------------------------------------------------------------------------
# MOCK EMBEDDINGS
# ---------------------------------------------------------------------------


class TestMockEmbeddings:
    """Test the deterministic test double."""

    async def test_deterministic(self):
        """Same text should give the same vector."""
        embeddings = MockEmbeddings(dimensions=8)

        v1 = await embeddings.embed("hello")
        v2 = await embeddings.embed("hello")
        v3 = await embeddings.embed("world")

        assert np.array_equal(v1, v2)
        assert not np.array_equal(v1, v3)
        assert v1.shape == (8,)
        assert np.all(np.isfinite(v1))

    async def test_batch_matches_single(self):
        """Batch outcomes should equal single embeddings, in order."""
        embeddings = MockEmbeddings(dimensions=4, batch_size=2)
        texts = ["a", "b", "c"]

        outcomes = await embeddings.embed_batch(texts)

        for text, outcome in zip(texts, outcomes):
            assert np.array_equal(outcome.vector, await embeddings.embed(text))

    async def test_records_calls(self):
        """Should record one entry per chunk."""
        embeddings = MockEmbeddings(dimensions=4, batch_size=2)

        await embeddings.embed_batch(["a", "b", "c", "d", "e"])

        assert embeddings.calls == [["a", "b"], ["c", "d"], ["e"]]

    async def test_failing_text_fails_its_chunk(self):
        """A failing text should fail its whole chunk only."""
        embeddings = MockEmbeddings(dimensions=4, batch_size=2, failing_texts={"c"})

        outcomes = await embeddings.embed_batch(["a", "b", "c", "d", "e"])

        assert [is_embedded(o) for o in outcomes] == [True, True, False, False, True]

    async def test_empty_and_failing_single(self):
        """embed() should raise on empty or failing input."""
        embeddings = MockEmbeddings(dimensions=4, failing_texts={"bad"})

        with pytest.raises(EmptyInputError):
            await embeddings.embed(" ")
        with pytest.raises(ProviderError):
            await embeddings.embed("bad")


class TestFactory:
    """Test get_embedding_provider."""

    def test_mock(self):
        provider = get_embedding_provider(use_mock=True, dimensions=16, batch_size=7)

        assert isinstance(provider, MockEmbeddings)
        assert provider.dimensions == 16
        assert provider.batch_size == 7

    def test_openai(self):
        provider = get_embedding_provider(use_mock=False, api_key="sk-test", batch_size=10)

        assert isinstance(provider, OpenAIEmbeddings)
        assert provider.batch_size == 10
        assert provider.dimensions == 1536
