"""Document store abstraction and its in-memory implementation."""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from citeqa.models.document import Document
from citeqa.utils.logger import logger


class DocumentStore(ABC):
    """Holds ingested documents, each with its finished similarity index."""

    @abstractmethod
    def get(self, document_id: str) -> Optional[Document]:
        """Return the document, or None if it is not stored."""

    @abstractmethod
    def put(self, document: Document) -> None:
        """Store a document, replacing any document with the same id."""

    @abstractmethod
    def delete(self, document_id: str) -> bool:
        """Remove a document. Returns False if it was not stored."""

    @abstractmethod
    def list(self) -> List[Document]:
        """All stored documents in insertion order."""


class InMemoryDocumentStore(DocumentStore):
    """Process-lifetime document store."""

    def __init__(self):
        self._documents: Dict[str, Document] = {}

    def get(self, document_id: str) -> Optional[Document]:
        return self._documents.get(document_id)

    def put(self, document: Document) -> None:
        self._documents[document.document_id] = document
        logger.info(
            f"Stored document {document.filename}",
            extra={"document_id": document.document_id, "chunk_count": document.total_chunks},
        )

    def delete(self, document_id: str) -> bool:
        removed = self._documents.pop(document_id, None) is not None
        if removed:
            logger.info("Deleted document", extra={"document_id": document_id})
        return removed

    def list(self) -> List[Document]:
        return list(self._documents.values())

    def __len__(self) -> int:
        return len(self._documents)
