"""Upload service: validate, keep, extract and ingest an uploaded PDF."""
import asyncio
import os
import time
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Dict

from citeqa.services.document_service import DocumentService
from citeqa.services.extractor import extract_pdf_text
from citeqa.utils.logger import logger
from citeqa.validators import validate_file_size, validate_file_type


class UploadService:
    """Service for handling document uploads."""

    def __init__(self, document_service: DocumentService, upload_dir: str = "./uploads", max_file_size_mb: float = 10):
        """
        Initialize upload service.

        Args:
            document_service: Ingestion pipeline for extracted text
            upload_dir: Directory where uploaded files are kept
            max_file_size_mb: Largest accepted upload
        """
        self.document_service = document_service
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.max_file_size_mb = max_file_size_mb

    def _save_file(self, file_content: bytes, filename: str) -> str:
        file_extension = Path(filename).suffix or ".pdf"
        with NamedTemporaryFile(delete=False, suffix=file_extension, dir=self.upload_dir) as saved_file:
            saved_file.write(file_content)
            return saved_file.name

    async def upload(self, file_content: bytes, filename: str) -> Dict[str, Any]:
        """
        Validate, extract and ingest an uploaded PDF.

        Args:
            file_content: Raw file content
            filename: Original filename

        Returns:
            Dict with document_id, filename, total_chunks, total_pages,
            word_count and message

        Raises:
            FileTypeNotSupportedError: If the upload is not a PDF
            FileSizeExceededError: If the upload is too large
        """
        start_time = time.time()
        validate_file_type(filename, file_content)
        validate_file_size(len(file_content), self.max_file_size_mb)

        file_path = self._save_file(file_content, filename)
        try:
            extracted = await asyncio.to_thread(extract_pdf_text, file_path)
            document = await self.document_service.ingest(
                extracted.text,
                page_count=extracted.page_count,
                filename=filename,
                file_path=file_path,
            )
        except Exception:
            if os.path.exists(file_path):
                os.unlink(file_path)
            raise

        logger.info(
            f"Document uploaded successfully: {filename}",
            extra={
                "document_id": document.document_id,
                "chunk_count": document.total_chunks,
                "response_time_ms": (time.time() - start_time) * 1000,
            },
        )
        return {
            "document_id": document.document_id,
            "filename": filename,
            "total_chunks": document.total_chunks,
            "total_pages": document.page_count,
            "word_count": document.word_count,
            "message": "Document uploaded and processed successfully",
        }
