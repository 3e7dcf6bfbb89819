"""
Seed the shared collection with the PM handbook.

Usage:
    python -m handbook_retrieval.scripts.initialize_handbook
    python -m handbook_retrieval.scripts.initialize_handbook path/to/handbook.txt

Reads the handbook, ingests it with the upload chunk window, verifies the
collection and runs a sample search.

Dependencies: handbook_retrieval.application, handbook_retrieval.configs
System role: Operational bootstrap for a fresh deployment
"""

import asyncio
import sys
import time
from pathlib import Path

from handbook_retrieval.application.services import RetrievalService
from handbook_retrieval.configs import Settings, get_settings
from handbook_retrieval.core.exceptions import HandbookRetrievalException
from handbook_retrieval.observability import configure_logging, get_logger

logger = get_logger(__name__)

SAMPLE_QUERY = "budget approval"


async def initialize_handbook(
    handbook_path: Path,
    settings: Settings | None = None,
    service: RetrievalService | None = None,
) -> dict:
    """
    Ingest the handbook and verify it is searchable.

    Args:
        handbook_path: Plain-text handbook file
        settings: Settings (defaults to get_settings())
        service: Optional pre-built RetrievalService

    Returns:
        dict: Summary with chunk counts, stored vectors and sample hits

    Raises:
        FileNotFoundError: If the handbook file does not exist
    """
    settings = settings or get_settings()
    service = service or RetrievalService(settings=settings)

    if not handbook_path.exists():
        raise FileNotFoundError(f"Handbook not found: {handbook_path}")

    start_time = time.perf_counter()
    await service.initialize()

    content = await asyncio.to_thread(handbook_path.read_text, encoding="utf-8")
    logger.info(f"{__name__}:initialize_handbook - Loaded {len(content)} chars from {handbook_path}")

    result = await service.ingest(
        content,
        settings.handbook.document_id,
        options=service.upload_options(),
        original_name=settings.handbook.original_name,
    )
    logger.info(
        f"{__name__}:initialize_handbook - Ingested {result.total_chunks} chunks, "
        f"{result.total_embeddings} embeddings ({result.processing_time_ms:.0f}ms)"
    )

    stats = await service.get_stats()
    hits = await service.search(SAMPLE_QUERY, top_k=3)
    logger.info(
        f"{__name__}:initialize_handbook - Collection {stats.collection}: "
        f"{stats.total_documents} vectors, {stats.dimensions}D; "
        f"sample search returned {len(hits)} results"
    )

    return {
        "collection": stats.collection,
        "chunks": result.total_chunks,
        "embeddings": result.total_embeddings,
        "stored_vectors": stats.total_documents,
        "sample_hits": len(hits),
        "elapsed_seconds": round(time.perf_counter() - start_time, 2),
    }


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    configure_logging(settings.effective_log_level)

    handbook_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(settings.handbook.path)

    try:
        summary = asyncio.run(initialize_handbook(handbook_path, settings))
    except (FileNotFoundError, HandbookRetrievalException) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    for key, value in summary.items():
        print(f"{key}: {value}")
    sys.exit(0)


if __name__ == "__main__":
    main()
