"""Document ingestion: chunk, embed, index and store."""
import dataclasses
import os
import time
import uuid
from typing import Optional

from citeqa.config import RetrievalStrategy
from citeqa.exceptions import DocumentNotFoundError
from citeqa.models.document import Document
from citeqa.services.chunker import Chunker
from citeqa.services.document_store import DocumentStore
from citeqa.services.embedding_service import EmbeddingService
from citeqa.services.similarity_index import SimilarityIndex
from citeqa.utils.logger import logger


class DocumentService:
    """Turns extracted text into a stored, searchable Document."""

    def __init__(
        self,
        store: DocumentStore,
        chunker: Chunker,
        embedding_service: EmbeddingService,
        strategy: RetrievalStrategy = RetrievalStrategy.HYBRID,
    ):
        """
        Initialize document service.

        Args:
            store: Where finished documents are kept
            chunker: Chunker in the configured mode
            embedding_service: Embedder for chunk vectors
            strategy: Retrieval strategy; keyword-only documents are not embedded
        """
        self.store = store
        self.chunker = chunker
        self.embedding_service = embedding_service
        self.strategy = RetrievalStrategy(strategy)

    async def _build_index(self, document_id: str, chunks) -> Optional[SimilarityIndex]:
        if not self.strategy.uses_vectors or not chunks:
            return None

        vectors, embedder = await self.embedding_service.embed_batch([chunk.text for chunk in chunks])
        return SimilarityIndex(chunks, vectors, embedder=embedder)

    async def ingest(
        self,
        text: str,
        page_count: int = 1,
        filename: str = "",
        file_path: Optional[str] = None,
    ) -> Document:
        """
        Ingest a document.

        The document is stored only after its index is complete, so searches
        never see a partially built index.

        Args:
            text: Extracted document text
            page_count: Number of pages in the source
            filename: Original filename
            file_path: Where the uploaded file is kept, if anywhere

        Returns:
            The stored Document
        """
        start_time = time.time()
        document_id = str(uuid.uuid4())

        chunks = self.chunker.chunk(text, document_id=document_id, filename=filename)
        index = await self._build_index(document_id, chunks)

        document = Document(
            document_id=document_id,
            filename=filename,
            text=text,
            chunks=tuple(chunks),
            page_count=max(1, page_count or 1),
            word_count=len(text.split()),
            file_path=file_path,
            index=index,
        )
        self.store.put(document)

        logger.info(
            f"Ingested {filename or 'document'}: {len(chunks)} chunks, "
            f"{'indexed' if index is not None else 'not indexed'}",
            extra={
                "document_id": document_id,
                "chunk_count": len(chunks),
                "strategy": self.strategy.value,
                "response_time_ms": (time.time() - start_time) * 1000,
            },
        )
        return document

    def get(self, document_id: str) -> Document:
        """
        Look up a stored document.

        Raises:
            DocumentNotFoundError: If no document has this id
        """
        document = self.store.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document not found: {document_id}")
        return document

    async def rebuild(self, document_id: str) -> Optional[Document]:
        """
        Re-chunk and re-index a stored document with the current chunker.

        The index is rebuilt wholesale and the stored document is swapped in
        one step.

        Args:
            document_id: Document to rebuild

        Returns:
            The rebuilt Document, or None if it is not stored
        """
        document = self.store.get(document_id)
        if document is None:
            return None

        chunks = self.chunker.chunk(document.text, document_id=document_id, filename=document.filename)
        index = await self._build_index(document_id, chunks)
        rebuilt = dataclasses.replace(document, chunks=tuple(chunks), index=index)
        self.store.put(rebuilt)

        logger.info(
            f"Rebuilt {document.filename or 'document'}: {len(chunks)} chunks",
            extra={"document_id": document_id, "chunk_count": len(chunks)},
        )
        return rebuilt

    def delete(self, document_id: str) -> bool:
        """Remove a document and its uploaded file."""
        document = self.store.get(document_id)
        deleted = self.store.delete(document_id)
        if deleted and document is not None and document.file_path:
            try:
                os.unlink(document.file_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(
                    f"Could not remove uploaded file: {e}",
                    extra={"document_id": document_id},
                )
        return deleted
