"""
Answer formatting for handbook search results.

Turns ranked passages into the cited text block handed back to the agent
tool layer, or into guidance when nothing relevant was found.

Dependencies: pydantic
System role: Presentation of search results for agent tools
"""

from pydantic import BaseModel, Field

from handbook_retrieval.core.document_processing.models import SearchResult

NO_RESULTS_GUIDANCE = (
    "No relevant information found in the PM Handbook for your query. "
    "Try rephrasing your question or asking about budget approval, "
    "resource allocation, or project kick-off requirements."
)


class AnswerSource(BaseModel):
    text: str
    score: float = Field(description="Similarity rounded to two decimals")
    chunk_index: int


class HandbookAnswer(BaseModel):
    answer: str
    sources: list[AnswerSource] = Field(default_factory=list)
    total_results: int = 0


def format_handbook_answer(results: list[SearchResult], max_sources: int = 5) -> HandbookAnswer:
    """
    Build a cited answer from ranked search results.

    Each passage is labelled with its rank and relevance percentage. When
    results is empty the answer is guidance text, not an error.

    Args:
        results: Ranked search results
        max_sources: Maximum passages included in the answer

    Returns:
        HandbookAnswer: Answer text plus per-source scores
    """
    if not results:
        return HandbookAnswer(answer=NO_RESULTS_GUIDANCE)

    top = results[:max_sources]
    sources = [
        AnswerSource(
            text=result.text,
            score=round(result.score, 2),
            chunk_index=int(result.metadata.get("chunkIndex", idx)),
        )
        for idx, result in enumerate(top)
    ]

    passages = "\n\n---\n\n".join(
        f"[Source {idx + 1}, Relevance: {round(result.score * 100)}%]:\n{result.text}"
        for idx, result in enumerate(top)
    )
    plural = "s" if len(results) > 1 else ""
    header = f"Based on {len(results)} relevant passage{plural} from the PM Handbook:\n\n"

    return HandbookAnswer(answer=header + passages, sources=sources, total_results=len(results))
