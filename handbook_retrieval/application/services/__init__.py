"""
Application services.

Exports: RetrievalService, format_handbook_answer, HandbookAnswer
"""

from handbook_retrieval.application.services.result_formatter import (
    HandbookAnswer,
    format_handbook_answer,
)
from handbook_retrieval.application.services.retrieval_service import RetrievalService

__all__ = ["RetrievalService", "format_handbook_answer", "HandbookAnswer"]
