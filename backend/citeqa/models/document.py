"""Document data models."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from citeqa.services.similarity_index import SimilarityIndex


@dataclass(frozen=True)
class Chunk:
    """Represents a text chunk with its offsets in the source text."""

    text: str
    start: int
    end: int
    chunk_index: int
    document_id: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Document:
    """Represents an ingested document together with its similarity index."""

    document_id: str
    filename: str
    text: str
    chunks: Tuple[Chunk, ...]
    page_count: int
    word_count: int
    uploaded_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    file_path: Optional[str] = field(default=None, compare=False, repr=False)
    index: Optional["SimilarityIndex"] = field(default=None, compare=False, repr=False)

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    def summary(self) -> Dict[str, Any]:
        """Plain-data view of the document without its text or vectors."""
        return {
            "document_id": self.document_id,
            "filename": self.filename,
            "uploaded_at": self.uploaded_at,
            "metadata": {
                "page_count": self.page_count,
                "word_count": self.word_count,
                "chunk_count": self.total_chunks,
                "indexed": self.index is not None,
                "embedder": self.index.embedder if self.index is not None else None,
                "has_file": self.file_path is not None,
            },
        }


@dataclass(frozen=True)
class RetrievedChunk:
    """A chunk ranked for a question, by vector similarity or keyword count."""

    chunk: Chunk
    similarity: float
    method: str = "vector"


@dataclass
class Citation:
    """An excerpt resolved to a location in the document text."""

    text: str
    start: int
    end: int
    score: float
    similarity: float
    page: int = 1
    match_type: str = "exact"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "score": self.score,
            "similarity": self.similarity,
            "page": self.page,
            "match_type": self.match_type,
        }


def citations_to_dicts(citations: List[Citation]) -> List[Dict[str, Any]]:
    return [citation.to_dict() for citation in citations]
