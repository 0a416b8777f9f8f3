"""Custom exception classes for document Q&A."""


class DocumentQAError(Exception):
    """Base exception for document Q&A errors."""
    pass


class ValidationError(DocumentQAError):
    """Raised when an uploaded document fails validation."""
    pass


class FileTypeNotSupportedError(ValidationError):
    """Raised when an unsupported file type is encountered."""
    pass


class FileSizeExceededError(ValidationError):
    """Raised when file size exceeds the maximum allowed."""
    pass


class DocumentNotFoundError(DocumentQAError):
    """Raised when a document id is not in the document store."""
    pass


class ExtractionError(DocumentQAError):
    """Raised when text extraction from a document fails."""
    pass


class EmbeddingError(DocumentQAError):
    """Raised when the embedding model fails or returns malformed output."""
    pass


class GenerationError(DocumentQAError):
    """Raised when the generation model call fails."""
    pass
