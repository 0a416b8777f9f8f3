"""Ask endpoint for question answering."""
from fastapi import APIRouter, Depends, HTTPException

from citeqa.api.schemas import AskRequest, AskResponse
from citeqa.services.retrieval_service import RetrievalService
from citeqa.utils.logger import logger

router = APIRouter()


def get_retrieval_service() -> RetrievalService:
    """Get retrieval service from main app."""
    from citeqa.main import retrieval_service
    if retrieval_service is None:
        raise HTTPException(status_code=503, detail="Retrieval service not initialized")
    return retrieval_service


@router.post("/ask", response_model=AskResponse)
async def ask_question(
    request: AskRequest,
    retrieval_service: RetrievalService = Depends(get_retrieval_service),
):
    """
    Answer a question about one uploaded document.

    Args:
        request: AskRequest with document_id and question
        retrieval_service: Retrieval service instance

    Returns:
        AskResponse with answer, citations and metadata
    """
    try:
        result = await retrieval_service.answer_question(request.document_id, request.question)
    except Exception as e:
        logger.error(f"Unexpected error answering question: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to generate answer")

    if not result["metadata"].get("document_found", True):
        raise HTTPException(status_code=404, detail=f"Document not found: {request.document_id}")

    return AskResponse(**result)
