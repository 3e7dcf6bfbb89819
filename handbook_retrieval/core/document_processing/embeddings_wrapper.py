"""
Gemini embedding provider pinned to one vector dimension.

Every chunk in a collection must share one dimensionality, and Gemini only
honours ``output_dimensionality`` per call, so the configured dimension is
passed on each embed call. Chunks and queries use the same task type so a
cached vector serves both.

Dependencies: langchain_google_genai
System role: Default embedding provider for the Embedder
"""

import logging
from typing import List

from langchain_google_genai import GoogleGenerativeAIEmbeddings

from handbook_retrieval.configs.embedding import EmbeddingSettings

logger = logging.getLogger(__name__)

TASK_TYPE = "SEMANTIC_SIMILARITY"


class FixedDimensionEmbeddings(GoogleGenerativeAIEmbeddings):
    """Gemini embeddings that always request the configured dimension."""

    _output_dimensionality: int = 1536

    def __init__(self, model: str, output_dimensionality: int, **kwargs) -> None:
        super().__init__(model=model, **kwargs)
        self._output_dimensionality = output_dimensionality
        logger.info(
            f"{__name__}:__init__ - Gemini embeddings {model} "
            f"pinned to {output_dimensionality} dimensions"
        )

    def embed_documents(
        self,
        texts: List[str],
        *,
        batch_size: int = 100,
        task_type: str | None = TASK_TYPE,
        titles: List[str] | None = None,
        output_dimensionality: int | None = None,
    ) -> List[List[float]]:
        return super().embed_documents(
            texts,
            batch_size=batch_size,
            task_type=task_type,
            titles=titles,
            output_dimensionality=output_dimensionality or self._output_dimensionality,
        )

    def embed_query(
        self,
        text: str,
        task_type: str | None = TASK_TYPE,
        title: str | None = None,
        output_dimensionality: int | None = None,
    ) -> List[float]:
        return super().embed_query(
            text,
            task_type=task_type,
            title=title,
            output_dimensionality=output_dimensionality or self._output_dimensionality,
        )


def build_default_embeddings(settings: EmbeddingSettings) -> FixedDimensionEmbeddings:
    """Create the Gemini provider from settings; GOOGLE_API_KEY comes from the environment."""
    return FixedDimensionEmbeddings(
        model=settings.model,
        output_dimensionality=settings.dimension,
    )
