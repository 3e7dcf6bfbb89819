"""
Embedding generation task with batching and a bounded LRU cache.

Turns texts into dense vectors through any LangChain Embeddings provider.
Requests are split into provider-sized batches and results are reassembled
in input order. Identical texts are served from an in-process LRU cache.

Dependencies: langchain_core, asyncio
System role: Second stage of ingestion and first stage of search
"""

import asyncio
import logging
from collections import OrderedDict

from langchain_core.embeddings import Embeddings

from handbook_retrieval.core.exceptions import EmbeddingProviderError

logger = logging.getLogger(__name__)


class EmbeddingCache:
    """Least-recently-used text -> vector cache with a fixed capacity."""

    def __init__(self, max_entries: int = 10_000) -> None:
        self._max_entries = max_entries
        self._entries: OrderedDict[str, list[float]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, text: str) -> bool:
        return text in self._entries

    def get(self, text: str) -> list[float] | None:
        vector = self._entries.get(text)
        if vector is None:
            self.misses += 1
            return None
        self._entries.move_to_end(text)
        self.hits += 1
        return vector

    def put(self, text: str, vector: list[float]) -> None:
        if self._max_entries <= 0:
            return
        self._entries[text] = vector
        self._entries.move_to_end(text)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def info(self) -> dict[str, int]:
        return {
            "size": len(self._entries),
            "max_size": self._max_entries,
            "hits": self.hits,
            "misses": self.misses,
        }


class EmbeddingTask:
    """Generate embeddings for chunks and queries."""

    def __init__(
        self,
        embeddings: Embeddings,
        max_batch_size: int = 100,
        max_cache_entries: int = 10_000,
        request_timeout_seconds: float | None = 30.0,
    ) -> None:
        """
        Initialize embedding task.

        Args:
            embeddings: LangChain embeddings provider
            max_batch_size: Maximum texts per provider request
            max_cache_entries: LRU cache capacity (0 disables caching)
            request_timeout_seconds: Per-batch timeout, None to disable

        Raises:
            ValueError: When embeddings is None or max_batch_size < 1
        """
        if embeddings is None:
            raise ValueError("embeddings provider is required")
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")

        self._embeddings = embeddings
        self._max_batch_size = max_batch_size
        self._timeout = request_timeout_seconds
        self._cache = EmbeddingCache(max_cache_entries)

    @property
    def cache(self) -> EmbeddingCache:
        return self._cache

    def cache_info(self) -> dict[str, int]:
        return self._cache.info()

    async def embed(self, texts: list[str], document_id: str | None = None) -> list[list[float]]:
        """
        Embed texts, one vector per input, preserving order.

        Cached texts are not sent to the provider. The call is all-or-nothing:
        on any provider failure nothing is cached and no vectors are returned.

        Args:
            texts: Texts to embed
            document_id: Owning document, attached to errors for context

        Returns:
            list[list[float]]: Vectors aligned with ``texts``

        Raises:
            EmbeddingProviderError: When the provider fails, times out or
                returns a mismatched number of vectors
        """
        if not texts:
            return []

        cached = [self._cache.get(text) for text in texts]
        # dict.fromkeys keeps first-seen order while dropping duplicates
        pending = list(dict.fromkeys(t for t, v in zip(texts, cached) if v is None))

        fresh: dict[str, list[float]] = {}
        if pending:
            vectors = await self._embed_uncached(pending, document_id)
            fresh = dict(zip(pending, vectors))
            for text, vector in fresh.items():
                self._cache.put(text, vector)

        logger.debug(
            f"{__name__}:embed - Embedded {len(texts)} texts",
            extra={"cache_hits": len(texts) - len(pending), "provider_texts": len(pending)},
        )
        return [vector if vector is not None else fresh[text] for text, vector in zip(texts, cached)]

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query text as a one-element batch."""
        vectors = await self.embed([text])
        return vectors[0]

    async def _embed_uncached(self, texts: list[str], document_id: str | None) -> list[list[float]]:
        results: list[list[float]] = []
        for start in range(0, len(texts), self._max_batch_size):
            batch = texts[start:start + self._max_batch_size]
            results.extend(await self._embed_batch(batch, document_id))
        return results

    async def _embed_batch(self, batch: list[str], document_id: str | None) -> list[list[float]]:
        try:
            vectors = await asyncio.wait_for(
                asyncio.to_thread(self._embeddings.embed_documents, batch),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                f"{__name__}:_embed_batch - Provider timed out after {self._timeout}s",
                extra={"batch_size": len(batch), "document_id": document_id},
            )
            raise EmbeddingProviderError(
                f"request timed out after {self._timeout}s",
                document_id=document_id,
                details={"batch_size": len(batch)},
            ) from e
        except Exception as e:
            logger.error(
                f"{__name__}:_embed_batch - {type(e).__name__}: {e}",
                extra={"batch_size": len(batch), "document_id": document_id},
            )
            raise EmbeddingProviderError(
                str(e),
                document_id=document_id,
                details={"batch_size": len(batch), "error_type": type(e).__name__},
            ) from e

        if len(vectors) != len(batch):
            raise EmbeddingProviderError(
                f"provider returned {len(vectors)} vectors for {len(batch)} texts",
                document_id=document_id,
            )
        return [[float(x) for x in vector] for vector in vectors]
