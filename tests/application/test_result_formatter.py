"""Tests for handbook answer formatting."""

from handbook_retrieval.application.services.result_formatter import (
    NO_RESULTS_GUIDANCE,
    format_handbook_answer,
)
from handbook_retrieval.core.document_processing.models import SearchResult


def _result(index: int, score: float, text: str) -> SearchResult:
    return SearchResult(id=f"doc-chunk-{index}", text=text, score=score, metadata={"chunkIndex": index})


class TestFormatHandbookAnswer:
    """Test format_handbook_answer."""

    def test_empty_results_give_guidance(self) -> None:
        """Should return guidance text instead of an error."""
        answer = format_handbook_answer([])

        assert answer.answer == NO_RESULTS_GUIDANCE
        assert answer.sources == []
        assert answer.total_results == 0

    def test_single_result(self) -> None:
        """Should cite one passage with its relevance percentage."""
        answer = format_handbook_answer([_result(3, 0.8765, "Finance signs off above $5,000.")])

        assert answer.answer == (
            "Based on 1 relevant passage from the PM Handbook:\n\n"
            "[Source 1, Relevance: 88%]:\nFinance signs off above $5,000."
        )
        assert answer.sources[0].score == 0.88
        assert answer.sources[0].chunk_index == 3

    def test_multiple_results_are_separated(self) -> None:
        """Should number passages and separate them with rules."""
        answer = format_handbook_answer([_result(0, 0.9, "First."), _result(4, 0.61, "Second.")])

        assert answer.answer.startswith("Based on 2 relevant passages from the PM Handbook:")
        assert "[Source 1, Relevance: 90%]:\nFirst.\n\n---\n\n[Source 2, Relevance: 61%]:\nSecond." in answer.answer
        assert answer.total_results == 2

    def test_max_sources_limits_passages(self) -> None:
        """Should cite at most max_sources passages but report the full count."""
        results = [_result(i, 0.9 - i * 0.1, f"Passage {i}.") for i in range(4)]

        answer = format_handbook_answer(results, max_sources=2)

        assert len(answer.sources) == 2
        assert "Passage 2." not in answer.answer
        assert answer.total_results == 4

    def test_chunk_index_falls_back_to_rank(self) -> None:
        """Should use the result position when chunkIndex is missing."""
        result = SearchResult(id="x", text="No index.", score=0.7, metadata={})

        answer = format_handbook_answer([result])

        assert answer.sources[0].chunk_index == 0
