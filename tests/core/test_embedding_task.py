"""Tests for EmbeddingTask batching, caching and provider failures."""

import time
from unittest.mock import MagicMock

import pytest
from langchain_core.embeddings import Embeddings

from handbook_retrieval.core.document_processing.tasks import EmbeddingCache, EmbeddingTask
from handbook_retrieval.core.exceptions import EmbeddingProviderError


class CountingEmbeddings(Embeddings):
    """Embeds text as [len(text), 1.0] and records every provider call."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [[float(len(text)), 1.0] for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return [float(len(text)), 1.0]


class SlowEmbeddings(CountingEmbeddings):
    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        time.sleep(0.5)
        return super().embed_documents(texts)


# ============================================================================
# Cache Tests
# ============================================================================


class TestEmbeddingCache:
    """Test the bounded LRU cache."""

    def test_get_miss_and_hit(self) -> None:
        """Should count misses and hits."""
        cache = EmbeddingCache(max_entries=2)

        assert cache.get("a") is None
        cache.put("a", [1.0])

        assert cache.get("a") == [1.0]
        assert cache.info() == {"size": 1, "max_size": 2, "hits": 1, "misses": 1}

    def test_evicts_least_recently_used(self) -> None:
        """Should evict the entry that was used longest ago."""
        cache = EmbeddingCache(max_entries=2)
        cache.put("a", [1.0])
        cache.put("b", [2.0])
        cache.get("a")
        cache.put("c", [3.0])

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert len(cache) == 2

    def test_zero_capacity_disables_caching(self) -> None:
        """Should store nothing when capacity is zero."""
        cache = EmbeddingCache(max_entries=0)
        cache.put("a", [1.0])

        assert len(cache) == 0

    def test_clear_resets_counters(self) -> None:
        """Should drop entries and counters."""
        cache = EmbeddingCache()
        cache.put("a", [1.0])
        cache.get("a")
        cache.clear()

        assert cache.info()["size"] == 0
        assert cache.hits == 0
        assert cache.misses == 0


# ============================================================================
# EmbeddingTask Tests
# ============================================================================


class TestEmbeddingTaskInit:
    """Test EmbeddingTask construction."""

    def test_requires_provider(self) -> None:
        """Should raise ValueError without a provider."""
        with pytest.raises(ValueError):
            EmbeddingTask(None)

    def test_requires_positive_batch_size(self) -> None:
        """Should raise ValueError for batch size below one."""
        with pytest.raises(ValueError):
            EmbeddingTask(CountingEmbeddings(), max_batch_size=0)


class TestEmbeddingTaskEmbed:
    """Test EmbeddingTask.embed and embed_query."""

    @pytest.mark.asyncio
    async def test_empty_input_returns_empty(self) -> None:
        """Should return [] without calling the provider."""
        provider = CountingEmbeddings()
        task = EmbeddingTask(provider)

        assert await task.embed([]) == []
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_one_vector_per_text_in_order(self) -> None:
        """Should align vectors with input texts."""
        task = EmbeddingTask(CountingEmbeddings())

        vectors = await task.embed(["a", "bbb", "cc"])

        assert vectors == [[1.0, 1.0], [3.0, 1.0], [2.0, 1.0]]

    @pytest.mark.asyncio
    async def test_batches_respect_max_batch_size(self) -> None:
        """Should split provider requests at max_batch_size."""
        provider = CountingEmbeddings()
        task = EmbeddingTask(provider, max_batch_size=2)
        texts = [f"text-{i}" for i in range(5)]

        vectors = await task.embed(texts)

        assert [len(call) for call in provider.calls] == [2, 2, 1]
        assert len(vectors) == 5

    @pytest.mark.asyncio
    async def test_cached_texts_skip_provider(self) -> None:
        """Should serve repeated texts from the cache."""
        provider = CountingEmbeddings()
        task = EmbeddingTask(provider)

        first = await task.embed(["alpha", "beta"])
        second = await task.embed(["beta", "gamma", "alpha"])

        assert provider.calls == [["alpha", "beta"], ["gamma"]]
        assert second == [first[1], [5.0, 1.0], first[0]]
        assert task.cache_info()["hits"] == 2

    @pytest.mark.asyncio
    async def test_duplicate_texts_sent_once(self) -> None:
        """Should send each distinct uncached text to the provider once."""
        provider = CountingEmbeddings()
        task = EmbeddingTask(provider)

        vectors = await task.embed(["same", "same", "other"])

        assert provider.calls == [["same", "other"]]
        assert vectors[0] == vectors[1]

    @pytest.mark.asyncio
    async def test_embed_query_returns_single_vector(self) -> None:
        """Should embed a query as a one-element batch."""
        provider = CountingEmbeddings()
        task = EmbeddingTask(provider)

        vector = await task.embed_query("budget")

        assert vector == [6.0, 1.0]
        assert provider.calls == [["budget"]]

    @pytest.mark.asyncio
    async def test_provider_failure_raises_and_caches_nothing(self) -> None:
        """Should raise EmbeddingProviderError and leave the cache empty."""
        provider = MagicMock(spec=Embeddings)
        provider.embed_documents.side_effect = [
            [[1.0, 0.0], [0.0, 1.0]],
            RuntimeError("quota exceeded"),
        ]
        task = EmbeddingTask(provider, max_batch_size=2)

        with pytest.raises(EmbeddingProviderError) as exc_info:
            await task.embed(["a", "b", "c"], document_id="doc1")

        assert "quota exceeded" in str(exc_info.value)
        assert exc_info.value.details["document_id"] == "doc1"
        assert len(task.cache) == 0

    @pytest.mark.asyncio
    async def test_mismatched_vector_count_raises(self) -> None:
        """Should reject a provider response with the wrong number of vectors."""
        provider = MagicMock(spec=Embeddings)
        provider.embed_documents.return_value = [[1.0, 0.0]]
        task = EmbeddingTask(provider)

        with pytest.raises(EmbeddingProviderError):
            await task.embed(["a", "b"])

    @pytest.mark.asyncio
    async def test_timeout_raises_provider_error(self) -> None:
        """Should convert a provider timeout into EmbeddingProviderError."""
        task = EmbeddingTask(SlowEmbeddings(), request_timeout_seconds=0.05)

        with pytest.raises(EmbeddingProviderError) as exc_info:
            await task.embed(["slow"])

        assert "timed out" in exc_info.value.provider_message
