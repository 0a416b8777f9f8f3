"""Document listing, lookup, download and deletion endpoints."""
import os

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from citeqa.api.schemas import DeleteResponse, DocumentListResponse, DocumentSummary
from citeqa.exceptions import DocumentNotFoundError
from citeqa.services.document_service import DocumentService

router = APIRouter()


def get_document_service() -> DocumentService:
    """Get document service from main app."""
    from citeqa.main import document_service
    if document_service is None:
        raise HTTPException(status_code=503, detail="Document service not initialized")
    return document_service


@router.get("/documents", response_model=DocumentListResponse)
async def list_documents(document_service: DocumentService = Depends(get_document_service)):
    documents = document_service.store.list()
    return DocumentListResponse(
        documents=[DocumentSummary(**document.summary()) for document in documents],
        total=len(documents),
    )


@router.get("/documents/{document_id}", response_model=DocumentSummary)
async def get_document(document_id: str, document_service: DocumentService = Depends(get_document_service)):
    try:
        document = document_service.get(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return DocumentSummary(**document.summary())


@router.get("/documents/{document_id}/pdf")
async def get_document_pdf(document_id: str, document_service: DocumentService = Depends(get_document_service)):
    """Serve the uploaded PDF of a stored document."""
    try:
        document = document_service.get(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not document.file_path or not os.path.exists(document.file_path):
        raise HTTPException(status_code=404, detail=f"PDF file not found for document: {document_id}")

    return FileResponse(
        document.file_path,
        media_type="application/pdf",
        filename=document.filename or f"{document_id}.pdf",
        content_disposition_type="inline",
    )


@router.delete("/documents/{document_id}", response_model=DeleteResponse)
async def delete_document(document_id: str, document_service: DocumentService = Depends(get_document_service)):
    if not document_service.delete(document_id):
        raise HTTPException(status_code=404, detail=f"Document not found: {document_id}")
    return DeleteResponse(document_id=document_id, message="Document deleted")


@router.post("/documents/{document_id}/rebuild", response_model=DocumentSummary)
async def rebuild_document(document_id: str, document_service: DocumentService = Depends(get_document_service)):
    """Re-chunk and re-index a stored document with the current settings."""
    document = await document_service.rebuild(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document not found: {document_id}")
    return DocumentSummary(**document.summary())
