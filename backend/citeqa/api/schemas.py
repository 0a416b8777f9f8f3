"""Pydantic schemas for API requests and responses."""
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class UploadResponse(BaseModel):
    """Response schema for document upload."""

    document_id: str = Field(..., description="Unique identifier for the uploaded document")
    filename: str = Field(..., description="Original filename")
    total_chunks: int = Field(..., description="Number of text chunks created")
    total_pages: int = Field(..., description="Number of pages in the document")
    word_count: int = Field(..., description="Number of words in the extracted text")
    message: str = Field(default="Document uploaded and processed successfully")


class AskRequest(BaseModel):
    """Request schema for asking questions."""

    document_id: str = Field(..., min_length=1, description="Document to ask about")
    question: str = Field(..., min_length=1, description="User's question")

    @field_validator("question")
    @classmethod
    def clean_question(cls, v: str) -> str:
        """Remove control characters (keeping newline, tab and carriage return) and strip."""
        cleaned = re.sub(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]", "", v).strip()
        if not cleaned:
            raise ValueError("Question cannot be empty after cleaning")
        return cleaned


class CitationSchema(BaseModel):
    """A cited excerpt located in the document text."""

    text: str
    start: int = Field(..., ge=0, description="Start offset in the document text")
    end: int = Field(..., ge=0, description="End offset (exclusive)")
    score: float = Field(..., ge=0.0, le=1.0)
    similarity: float = Field(..., ge=0.0, le=1.0)
    page: int = Field(..., ge=1, description="Estimated page number")
    match_type: str = Field(..., description="exact, fuzzy, keyword or retrieval")


class AskResponse(BaseModel):
    """Response schema for question answering."""

    answer: str = Field(..., description="Answer text (markdown)")
    citations: List[CitationSchema] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DocumentMetadata(BaseModel):
    page_count: int
    word_count: int
    chunk_count: int
    indexed: bool
    embedder: Optional[str] = None
    has_file: bool = False


class DocumentSummary(BaseModel):
    """Stored document without its text."""

    document_id: str
    filename: str
    uploaded_at: str
    metadata: DocumentMetadata


class DocumentListResponse(BaseModel):
    documents: List[DocumentSummary]
    total: int


class DeleteResponse(BaseModel):
    document_id: str
    deleted: bool = True
    message: Optional[str] = None
