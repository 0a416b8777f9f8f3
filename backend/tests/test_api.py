"""Tests for API endpoints."""
import os

import pytest
from fastapi.testclient import TestClient

from citeqa.main import app
from citeqa.services.extractor import EXTRACTION_PLACEHOLDER


@pytest.fixture
def client(temp_dir, monkeypatch):
    """Test client with hash embeddings, no generation model and no tracing."""
    monkeypatch.delenv("LLM_API_KEY", raising=False)
    monkeypatch.setenv("USE_EMBEDDING_MODEL", "false")
    monkeypatch.setenv("TRACING_ENABLED", "false")
    monkeypatch.setenv("UPLOAD_DIR", temp_dir)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def uploaded_document(client, sample_pdf_content):
    files = {"file": ("scan.pdf", sample_pdf_content, "application/pdf")}
    response = client.post("/api/upload", files=files)
    assert response.status_code == 200
    return response.json()


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["generation"] is False


class TestMetricsEndpoint:
    """Tests for metrics endpoint."""

    def test_metrics_endpoint(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "citeqa_questions_answered_total" in response.text


class TestUploadEndpoint:
    """Tests for upload endpoint."""

    def test_upload_invalid_file_type(self, client):
        files = {"file": ("test.txt", b"test content", "text/plain")}
        response = client.post("/api/upload", files=files)
        assert response.status_code == 400

    def test_upload_pdf_extension_without_pdf_header(self, client):
        files = {"file": ("fake.pdf", b"not really a pdf", "application/pdf")}
        response = client.post("/api/upload", files=files)
        assert response.status_code == 400

    def test_unreadable_pdf_is_stored_with_placeholder(self, uploaded_document):
        assert uploaded_document["filename"] == "scan.pdf"
        assert uploaded_document["total_pages"] == 1
        assert uploaded_document["total_chunks"] == 1
        assert uploaded_document["word_count"] == len(EXTRACTION_PLACEHOLDER.split())


class TestDocumentsEndpoint:
    """Tests for document listing and deletion."""

    def test_list_and_get(self, client, uploaded_document):
        document_id = uploaded_document["document_id"]

        listing = client.get("/api/documents").json()
        assert listing["total"] == 1
        assert listing["documents"][0]["document_id"] == document_id

        response = client.get(f"/api/documents/{document_id}")
        assert response.status_code == 200
        assert response.json()["metadata"]["indexed"] is True

    def test_missing_document(self, client):
        assert client.get("/api/documents/missing").status_code == 404
        assert client.delete("/api/documents/missing").status_code == 404
        assert client.post("/api/documents/missing/rebuild").status_code == 404

    def test_delete(self, client, uploaded_document):
        document_id = uploaded_document["document_id"]
        assert client.delete(f"/api/documents/{document_id}").status_code == 200
        assert client.get(f"/api/documents/{document_id}").status_code == 404

    def test_get_pdf(self, client, uploaded_document, sample_pdf_content):
        document_id = uploaded_document["document_id"]
        assert client.get(f"/api/documents/{document_id}").json()["metadata"]["has_file"] is True

        response = client.get(f"/api/documents/{document_id}/pdf")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "scan.pdf" in response.headers["content-disposition"]
        assert response.content == sample_pdf_content

    def test_get_pdf_missing(self, client, uploaded_document, temp_dir):
        assert client.get("/api/documents/missing/pdf").status_code == 404

        for name in os.listdir(temp_dir):
            os.unlink(os.path.join(temp_dir, name))
        response = client.get(f"/api/documents/{uploaded_document['document_id']}/pdf")
        assert response.status_code == 404

    def test_delete_removes_pdf(self, client, uploaded_document, temp_dir):
        document_id = uploaded_document["document_id"]
        assert len(os.listdir(temp_dir)) == 1

        assert client.delete(f"/api/documents/{document_id}").status_code == 200
        assert os.listdir(temp_dir) == []
        assert client.get(f"/api/documents/{document_id}/pdf").status_code == 404

    def test_rejected_upload_leaves_no_file(self, client, temp_dir):
        files = {"file": ("fake.pdf", b"not really a pdf", "application/pdf")}
        assert client.post("/api/upload", files=files).status_code == 400
        assert os.listdir(temp_dir) == []

    def test_rebuild(self, client, uploaded_document):
        document_id = uploaded_document["document_id"]
        response = client.post(f"/api/documents/{document_id}/rebuild")
        assert response.status_code == 200
        assert response.json()["metadata"]["chunk_count"] == 1


class TestAskEndpoint:
    """Tests for ask endpoint."""

    def test_ask_missing_document(self, client):
        response = client.post("/api/ask", json={"document_id": "missing", "question": "Anything?"})
        assert response.status_code == 404

    def test_ask_empty_question(self, client):
        response = client.post("/api/ask", json={"document_id": "missing", "question": "  \x01 "})
        assert response.status_code == 422

    def test_ask_without_generation_model(self, client, uploaded_document):
        response = client.post(
            "/api/ask",
            json={
                "document_id": uploaded_document["document_id"],
                "question": "Will text search and features be limited?",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["metadata"]["generation"] == "unavailable"
        assert data["citations"]
        assert data["citations"][0]["match_type"] == "retrieval"
        assert data["citations"][0]["page"] == 1
