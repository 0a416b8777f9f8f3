"""Pytest configuration and fixtures."""
import shutil
import tempfile
from unittest.mock import AsyncMock, Mock

import pytest

from citeqa.config import RetrievalStrategy
from citeqa.services.chunker import Chunker
from citeqa.services.document_service import DocumentService
from citeqa.services.document_store import InMemoryDocumentStore
from citeqa.services.embedding_service import EmbeddingService
from citeqa.services.llm_service import LLMService


SAMPLE_TEXT = (
    "1. Introduction\n"
    "This handbook describes store operations and the duties of staff members.\n\n"
    "2. Refund Policy\n"
    "Customers may request a refund for damaged goods within 30 days of purchase under this policy.\n\n"
    "3. Shipping\n"
    "Orders ship from the central warehouse every weekday and arrive within five business days."
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def sample_text():
    return SAMPLE_TEXT


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def hash_embedding_service():
    """Embedding service that never loads a model."""
    return EmbeddingService(use_model=False)


@pytest.fixture
def small_chunker():
    """Chunker small enough to put each sample section in its own chunk."""
    return Chunker(chunk_size=60, chunk_overlap=0)


@pytest.fixture
def document_service(store, small_chunker, hash_embedding_service):
    return DocumentService(
        store=store,
        chunker=small_chunker,
        embedding_service=hash_embedding_service,
        strategy=RetrievalStrategy.HYBRID,
    )


@pytest.fixture
def mock_llm_service():
    """Mock LLM service that quotes the refund policy verbatim."""
    service = Mock(spec=LLMService)
    service.generate = AsyncMock(
        return_value=(
            "Damaged goods can be refunded within **30 days**.\n\n"
            "---\n"
            "CITATIONS:\n"
            "[CITE]request a refund for damaged goods within 30 days[/CITE]\n"
        )
    )
    service.close = AsyncMock()
    return service


@pytest.fixture
def sample_pdf_content():
    """Bytes with a PDF header but no readable pages."""
    return b"%PDF-1.4\n1 0 obj\n<<\n/Type /Catalog\n>>\nendobj\nxref\n0 1\ntrailer\n<<\n/Root 1 0 R\n>>\n%%EOF"
