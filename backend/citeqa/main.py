"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from citeqa.api.routes import ask, documents, metrics, upload
from citeqa.config import Settings
from citeqa.services.chunker import Chunker
from citeqa.services.citation_reconciler import ReconcileParams
from citeqa.services.document_service import DocumentService
from citeqa.services.document_store import InMemoryDocumentStore
from citeqa.services.embedding_service import EmbeddingService
from citeqa.services.llm_service import LLMService
from citeqa.services.retrieval_service import RetrievalService
from citeqa.services.upload_service import UploadService
from citeqa.utils.logger import logger
from citeqa.utils.tracer import initialize_tracing, shutdown_tracing

# Global services (initialized in lifespan)
settings: Optional[Settings] = None
document_service: Optional[DocumentService] = None
retrieval_service: Optional[RetrievalService] = None
upload_service: Optional[UploadService] = None
llm_service: Optional[LLMService] = None
tracer_provider = None


def build_llm_service(app_settings: Settings) -> Optional[LLMService]:
    """Create the generation client, or None when no API key is configured."""
    try:
        return LLMService(
            api_key=app_settings.llm_api_key or None,
            api_url=app_settings.llm_api_url,
            model=app_settings.llm_model,
            timeout_seconds=app_settings.llm_timeout_seconds,
            max_tokens=app_settings.llm_max_tokens,
        )
    except ValueError as e:
        logger.warning(f"Generation disabled: {str(e)}. Answers will be built from retrieved sections.")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global settings, document_service, retrieval_service, upload_service, llm_service, tracer_provider

    logger.info("Starting citeqa")
    settings = Settings()

    tracer_provider = initialize_tracing(
        service_name="citeqa",
        service_version="1.0.0",
        otlp_endpoint=settings.otlp_endpoint or None,
        tracing_enabled=settings.tracing_enabled,
    )

    store = InMemoryDocumentStore()
    chunker = Chunker(
        mode=settings.chunk_mode,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        fixed_chunk_size=settings.fixed_chunk_size,
    )
    embedding_service = EmbeddingService(
        model_name=settings.embedding_model,
        timeout_seconds=settings.embedding_timeout_seconds,
        use_model=settings.use_embedding_model,
    )
    llm_service = build_llm_service(settings)

    document_service = DocumentService(
        store=store,
        chunker=chunker,
        embedding_service=embedding_service,
        strategy=settings.retrieval_strategy,
    )
    retrieval_service = RetrievalService(
        store=store,
        embedding_service=embedding_service,
        llm_service=llm_service,
        strategy=settings.retrieval_strategy,
        top_k=settings.top_k,
        min_similarity=settings.min_similarity,
        keyword_top_k=settings.keyword_top_k,
        keyword_fallback_top_k=settings.keyword_fallback_top_k,
        reconcile_params=ReconcileParams(
            fuzzy_step=settings.fuzzy_step, fuzzy_threshold=settings.fuzzy_threshold
        ),
        max_citations=settings.max_citations,
    )
    upload_service = UploadService(
        document_service=document_service,
        upload_dir=settings.upload_dir,
        max_file_size_mb=settings.max_file_size_mb,
    )

    logger.info(
        f"All services initialized (strategy={settings.retrieval_strategy.value}, "
        f"chunk_mode={settings.chunk_mode.value}, generation={'on' if llm_service else 'off'})"
    )

    yield

    logger.info("Shutting down citeqa")
    if llm_service:
        await llm_service.close()
    if tracer_provider:
        shutdown_tracing(tracer_provider)


app = FastAPI(
    title="citeqa",
    description="Document question answering with verifiable citations",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return a readable message for request bodies with control characters."""
    errors = exc.errors()
    for error in errors:
        if error.get("type") == "json_invalid" and "Invalid control character" in str(
            error.get("ctx", {}).get("error", "")
        ):
            return JSONResponse(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                content={
                    "detail": "Invalid JSON: Control characters detected in request body.",
                    "error": "json_parse_error",
                },
            )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(errors)},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "citeqa",
        "documents": len(document_service.store.list()) if document_service else 0,
        "generation": llm_service is not None,
    }


@app.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(upload.router, prefix="/api", tags=["upload"])
app.include_router(ask.router, prefix="/api", tags=["ask"])
app.include_router(documents.router, prefix="/api", tags=["documents"])
app.include_router(metrics.router, prefix="/api", tags=["metrics"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host if settings else "0.0.0.0", port=settings.api_port if settings else 8000)
