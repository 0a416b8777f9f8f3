"""Upload endpoint for document processing."""
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from citeqa.api.schemas import UploadResponse
from citeqa.exceptions import ValidationError
from citeqa.services.upload_service import UploadService
from citeqa.utils.logger import logger

router = APIRouter()


def get_upload_service() -> UploadService:
    """Get upload service from main app."""
    from citeqa.main import upload_service
    if upload_service is None:
        raise HTTPException(status_code=503, detail="Upload service not initialized")
    return upload_service


@router.post("/upload", response_model=UploadResponse)
async def upload_document(
    file: Annotated[UploadFile, File(...)],
    upload_service: UploadService = Depends(get_upload_service),
):
    """
    Upload a PDF, extract its text, and index it for questions.

    Args:
        file: PDF file to upload
        upload_service: Upload service instance

    Returns:
        UploadResponse with document ID and statistics
    """
    try:
        file_content = await file.read()
        result = await upload_service.upload(file_content, file.filename or "")
        return UploadResponse(**result)

    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error uploading document: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to process document: {str(e)}")
