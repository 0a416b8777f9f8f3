"""Document chunking: paragraph-aware chunks with overlap, or fixed-width slices.

Every chunk is an exact slice of the source text (``text[start:end]``), so
offsets can be handed straight to a viewer for highlighting. Chunking is
deterministic: the same input always yields the same boundaries.
"""
import re
from typing import Iterator, List, Optional, Tuple

from citeqa.config import ChunkMode
from citeqa.models.document import Chunk
from citeqa.utils.logger import logger
from citeqa.utils.text_cleaner import strip_span

DEFAULT_CHUNK_SIZE = 800
DEFAULT_CHUNK_OVERLAP = 150
DEFAULT_FIXED_CHUNK_SIZE = 1000

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def paragraph_spans(text: str) -> Iterator[Tuple[int, int]]:
    """Yield (start, end) offsets of the blank-line separated paragraphs of text."""
    position = 0
    for match in PARAGRAPH_BREAK.finditer(text):
        span = strip_span(text, position, match.start())
        if span:
            yield span
        position = match.end()

    span = strip_span(text, position, len(text))
    if span:
        yield span


def _make_chunk(
    text: str, start: int, end: int, index: int, document_id: str, filename: str, chunk_type: str
) -> Chunk:
    return Chunk(
        text=text[start:end],
        start=start,
        end=end,
        chunk_index=index,
        document_id=document_id,
        metadata={"filename": filename, "type": chunk_type},
    )


def iter_smart_chunks(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
    document_id: str = "",
    filename: str = "",
) -> Iterator[Chunk]:
    """
    Greedily group paragraphs into chunks of roughly chunk_size characters.

    When the next paragraph would push the buffer past chunk_size, the buffer
    is closed and the next one starts with the last ``overlap`` characters of
    the closed chunk. A single paragraph longer than chunk_size is kept whole.
    The first chunk starts at offset 0 and the last one ends at len(text), so
    the chunks cover the whole text.

    Args:
        text: Document text
        chunk_size: Target chunk size in characters
        overlap: Characters carried over from the previous chunk
        document_id: Owning document id, copied onto each chunk
        filename: Source filename, stored in chunk metadata

    Yields:
        Chunk objects in document order
    """
    buffer_start: Optional[int] = None
    buffer_end = 0
    index = 0

    for para_start, para_end in paragraph_spans(text):
        if buffer_start is None:
            buffer_start = para_start
            buffer_end = para_end
            continue

        if para_end - buffer_start > chunk_size:
            chunk_start = 0 if index == 0 else buffer_start
            yield _make_chunk(
                text, chunk_start, buffer_end, index, document_id, filename, "paragraph_group"
            )
            index += 1
            buffer_start = max(chunk_start, buffer_end - overlap)

        buffer_end = para_end

    if buffer_start is not None:
        chunk_start = 0 if index == 0 else buffer_start
        yield _make_chunk(
            text, chunk_start, len(text), index, document_id, filename, "paragraph_group"
        )


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
    document_id: str = "",
    filename: str = "",
) -> List[Chunk]:
    """Paragraph-aware chunking with overlap. See iter_smart_chunks."""
    return list(iter_smart_chunks(text, chunk_size, overlap, document_id, filename))


def chunk_fixed(
    text: str,
    chunk_size: int = DEFAULT_FIXED_CHUNK_SIZE,
    document_id: str = "",
    filename: str = "",
) -> List[Chunk]:
    """
    Split text into consecutive fixed-width slices with no overlap.

    Args:
        text: Text to chunk
        chunk_size: Slice width in characters

    Returns:
        List of Chunk objects
    """
    if not text:
        return []

    return [
        _make_chunk(
            text,
            start,
            min(start + chunk_size, len(text)),
            index,
            document_id,
            filename,
            "fixed_window",
        )
        for index, start in enumerate(range(0, len(text), chunk_size))
    ]


class Chunker:
    """Chunks document text in the configured mode."""

    def __init__(
        self,
        mode: ChunkMode = ChunkMode.SMART,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        fixed_chunk_size: int = DEFAULT_FIXED_CHUNK_SIZE,
    ):
        """
        Initialize chunker.

        Args:
            mode: ChunkMode.SMART (paragraphs + overlap) or ChunkMode.FIXED (plain slices)
            chunk_size: Target size for smart chunks (in characters)
            chunk_overlap: Overlap between smart chunks (in characters)
            fixed_chunk_size: Slice width for fixed chunks (in characters)
        """
        if chunk_size <= 0 or fixed_chunk_size <= 0:
            raise ValueError("Chunk sizes must be positive")
        if chunk_overlap < 0:
            raise ValueError("Chunk overlap cannot be negative")

        self.mode = ChunkMode(mode)
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.fixed_chunk_size = fixed_chunk_size

    def chunk(self, text: str, document_id: str = "", filename: str = "") -> List[Chunk]:
        """
        Chunk text in the configured mode.

        Args:
            text: Document text
            document_id: Owning document id
            filename: Source filename

        Returns:
            Ordered list of Chunk objects (empty for empty text)
        """
        if self.mode is ChunkMode.FIXED:
            chunks = chunk_fixed(text, self.fixed_chunk_size, document_id, filename)
        else:
            chunks = chunk_text(text, self.chunk_size, self.chunk_overlap, document_id, filename)

        logger.info(
            f"Created {len(chunks)} {self.mode.value} chunks",
            extra={"document_id": document_id, "chunk_count": len(chunks)},
        )
        return chunks
