"""
Text chunking task using RecursiveCharacterTextSplitter.

Splits document text into bounded, overlapping chunks, preferring paragraph,
line and sentence boundaries before falling back to words and characters.

Dependencies: langchain_text_splitters
System role: First stage of document ingestion
"""

import logging

from langchain_text_splitters import RecursiveCharacterTextSplitter

from handbook_retrieval.core.document_processing.models import ChunkOptions, TextChunk
from handbook_retrieval.core.exceptions import InvalidChunkConfigError, ValidationError

logger = logging.getLogger(__name__)

SEPARATORS = ["\n\n", "\n", ". ", "? ", "! ", " ", ""]


def validate_chunk_options(options: ChunkOptions) -> None:
    """
    Reject unusable chunking windows before any I/O happens.

    Raises:
        InvalidChunkConfigError: If max_size <= 0, overlap < 0 or overlap >= max_size
    """
    if options.max_size <= 0:
        raise InvalidChunkConfigError(options.max_size, options.overlap, "max_size must be positive")
    if options.overlap < 0:
        raise InvalidChunkConfigError(options.max_size, options.overlap, "overlap must not be negative")
    if options.overlap >= options.max_size:
        raise InvalidChunkConfigError(
            options.max_size,
            options.overlap,
            "overlap must be smaller than max_size",
        )


class ChunkingTask:
    """Split text into chunks using RecursiveCharacterTextSplitter."""

    def __init__(self, default_options: ChunkOptions | None = None) -> None:
        """
        Initialize chunking task.

        Args:
            default_options: Window used when chunk() is called without options

        Raises:
            InvalidChunkConfigError: If the default window is invalid
        """
        self._default_options = default_options or ChunkOptions()
        validate_chunk_options(self._default_options)

    @property
    def default_options(self) -> ChunkOptions:
        return self._default_options

    def _build_splitter(self, options: ChunkOptions) -> RecursiveCharacterTextSplitter:
        return RecursiveCharacterTextSplitter(
            chunk_size=options.max_size,
            chunk_overlap=options.overlap,
            separators=SEPARATORS,
            keep_separator="end",
            add_start_index=True,
            strip_whitespace=True,
            length_function=len,
        )

    def chunk(self, text: str, options: ChunkOptions | None = None) -> list[TextChunk]:
        """
        Split text into ordered, overlapping chunks.

        Args:
            text: Full document text
            options: Chunk window (defaults to the task's default window)

        Returns:
            list[TextChunk]: Chunks with local_index 0..n-1 in document order

        Raises:
            InvalidChunkConfigError: When the window is invalid
            ValidationError: When text is empty
        """
        options = options or self._default_options
        validate_chunk_options(options)

        if not text or not text.strip():
            raise ValidationError("Cannot chunk empty text", field="text")

        if len(text) <= options.max_size:
            stripped = text.strip()
            return [TextChunk(text=stripped, local_index=0, start_index=text.find(stripped))]

        documents = self._build_splitter(options).create_documents([text])
        chunks = [
            TextChunk(
                text=doc.page_content,
                local_index=i,
                start_index=doc.metadata.get("start_index", 0),
            )
            for i, doc in enumerate(documents)
        ]

        logger.debug(
            f"{__name__}:chunk - Split {len(text)} chars into {len(chunks)} chunks",
            extra={"max_size": options.max_size, "overlap": options.overlap},
        )
        return chunks
