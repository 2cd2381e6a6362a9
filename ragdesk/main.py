"""
RagDesk - FastAPI Application Entry Point

Document-backed question answering models over HTTP.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, File, Form, Request, Security, UploadFile, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from ragdesk import __version__
from ragdesk.api.auth import api_key_scheme
from ragdesk.api.schemas import (
    DeleteResponse,
    ErrorResponse,
    IngestResponse,
    ModelListResponse,
    QueryRequest,
    QueryResponse,
    RelayRequest,
)
from ragdesk.errors import (
    InvalidInputError,
    NoMatchError,
    RagDeskError,
    ServiceUnavailableError,
)
from ragdesk.llm.completion_client import DEFAULT_LLM_MODEL
from ragdesk.observability.metrics import get_metrics_text, record_ingestion, record_query

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_PDF_CONTENT_TYPES = {"application/pdf", "application/octet-stream", "application/x-pdf"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    logger.info("Starting RagDesk API v%s", __version__)

    # Model registry (database)
    from ragdesk.db.database import close_db, create_db_engine, get_async_session_maker, init_db
    from ragdesk.db.registry import ModelRegistry

    engine = create_db_engine()
    app.state.db_engine = engine
    try:
        await init_db(engine)
        app.state.registry = ModelRegistry(get_async_session_maker(engine))
        logger.info("Model registry initialized")
    except Exception as e:
        logger.warning("Database initialization failed: %s", e)
        app.state.registry = None

    # Vector index and embeddings share one Pinecone client
    try:
        from pinecone import Pinecone

        from ragdesk.rag.embedding import EmbeddingClient
        from ragdesk.rag.vector_index import VectorIndex

        pinecone_client = Pinecone(api_key=os.environ.get("PINECONE_API_KEY"))
        app.state.vector_index = VectorIndex(client=pinecone_client)
        app.state.embedding_client = EmbeddingClient(client=pinecone_client)
        logger.info("Pinecone clients initialized")
    except Exception as e:
        logger.warning("Pinecone client initialization failed: %s", e)
        app.state.vector_index = None
        app.state.embedding_client = None

    from ragdesk.api.relay import EndpointRelay
    from ragdesk.llm.completion_client import CompletionClient
    from ragdesk.rag.extractor import TextExtractor

    app.state.completion_client = CompletionClient()
    app.state.extractor = TextExtractor()
    app.state.relay = EndpointRelay()
    logger.info(
        "Completion backends available: %s",
        ", ".join(sorted(app.state.completion_client.backends)),
    )

    yield

    logger.info("Shutting down RagDesk API")
    await close_db(engine)


# Create FastAPI application
app = FastAPI(
    title="RagDesk",
    description="Document-backed question answering models",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip()
        for o in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
        if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _service(name: str):
    """Fetch a service from app.state or fail with 503."""
    service = getattr(app.state, name, None)
    if service is None:
        raise ServiceUnavailableError(
            f"{name.replace('_', ' ').capitalize()} not available", {"service": name}
        )
    return service


def _errors(*codes: int) -> dict[int | str, dict[str, Any]]:
    """OpenAPI `responses` entries for the structured error body."""
    return {code: {"model": ErrorResponse} for code in codes}


# ============================================
# Health Check Endpoints
# ============================================


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "service": "ragdesk-api",
    }


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, Any]:
    """Readiness check with dependency status."""

    def _state(name: str) -> str:
        return "ok" if getattr(app.state, name, None) is not None else "unavailable"

    checks = {
        "database": _state("registry"),
        "vector_index": _state("vector_index"),
        "embedding": _state("embedding_client"),
        "completion": _state("completion_client"),
    }
    return {
        "ready": all(v == "ok" for v in checks.values()),
        "checks": checks,
    }


# ============================================
# API v1 Routes
# ============================================


@app.get(
    "/api/v1/models",
    tags=["Models"],
    response_model=ModelListResponse,
    responses=_errors(503),
)
async def list_models_endpoint() -> dict[str, Any]:
    """List registered models with their API keys and LLM backends."""
    registry = _service("registry")
    models = await registry.list()
    return {"models": [m.to_public_dict() for m in models]}


@app.post(
    "/api/v1/models",
    tags=["Models"],
    response_model=IngestResponse,
    responses=_errors(400, 409, 422, 500, 502, 503, 504),
)
async def create_model_endpoint(
    model_name: str = Form("", alias="modelName"),
    llm_model: str = Form(DEFAULT_LLM_MODEL, alias="llmModel"),
    ingestion_type: str = Form("pdf", alias="ingestionType"),
    url: str | None = Form(None),
    file: UploadFile | None = File(None),
) -> dict[str, Any]:
    """Ingest a PDF upload or a web page and register a new model.

    The returned API key is shown only once.
    """
    from ragdesk.pipelines.ingestion import IngestionPipeline, IngestionRequest

    file_bytes = None
    filename = None
    if file is not None:
        if file.content_type and file.content_type not in _PDF_CONTENT_TYPES:
            raise InvalidInputError(
                "Only PDF files are currently supported",
                {"field": "file", "content_type": file.content_type},
            )
        file_bytes = await file.read()
        filename = file.filename

    pipeline = IngestionPipeline(
        registry=_service("registry"),
        extractor=_service("extractor"),
        embedding_client=_service("embedding_client"),
        vector_index=_service("vector_index"),
        completion_client=_service("completion_client"),
    )
    try:
        result = await pipeline.run(
            IngestionRequest(
                model_name=model_name,
                ingestion_type=ingestion_type,
                llm_model=llm_model,
                file_bytes=file_bytes,
                filename=filename,
                url=url,
            )
        )
    except RagDeskError:
        record_ingestion(success=False)
        raise
    record_ingestion(success=True)

    return {
        "message": "Model created successfully",
        "modelName": result.model_name,
        "apiKey": result.api_key,
        "isTextTruncated": result.is_text_truncated,
    }


@app.post(
    "/api/v1/models/{model_name}/query",
    tags=["Query"],
    response_model=QueryResponse,
    responses=_errors(400, 401, 404, 502, 503, 504),
)
async def query_model_endpoint(
    model_name: str,
    body: QueryRequest,
    api_key: str | None = Security(api_key_scheme),
) -> dict[str, Any]:
    """Answer a question from the model's indexed document.

    Requires the model's API key in the ``x-api-key`` header.
    """
    from ragdesk.pipelines.query import QueryPipeline

    pipeline = QueryPipeline(
        registry=_service("registry"),
        embedding_client=_service("embedding_client"),
        vector_index=_service("vector_index"),
        completion_client=_service("completion_client"),
    )
    start_time = time.time()
    try:
        result = await pipeline.run(model_name, body.message, api_key)
    except RagDeskError as e:
        record_query(
            latency_ms=(time.time() - start_time) * 1000,
            success=False,
            no_match=isinstance(e, NoMatchError),
        )
        raise

    record_query(latency_ms=result.processing_time_ms, success=True)
    return {"answer": result.answer, "sourceDocuments": result.source_documents}


@app.delete(
    "/api/v1/models/{model_name}",
    tags=["Models"],
    response_model=DeleteResponse,
    responses=_errors(404, 500, 502, 503, 504),
)
async def delete_model_endpoint(model_name: str) -> dict[str, Any]:
    """Delete a model's vector index and registry record."""
    from ragdesk.pipelines.deletion import DeletionPipeline

    pipeline = DeletionPipeline(
        registry=_service("registry"), vector_index=_service("vector_index")
    )
    result = await pipeline.run(model_name)
    return {
        "message": f'Model "{result.model_name}" deleted successfully',
        "indexDeleted": result.index_deleted,
    }


@app.post("/api/v1/relay", tags=["Query"], responses=_errors(400, 502, 503, 504))
async def relay_endpoint(body: RelayRequest) -> Any:
    """Forward a test message to an externally deployed query endpoint."""
    relay = _service("relay")
    return await relay.forward(body.url, body.api_key, body.message)


# ============================================
# Metrics Endpoint
# ============================================


@app.get("/metrics", tags=["Monitoring"])
async def metrics_endpoint():
    """Prometheus metrics endpoint."""
    return PlainTextResponse(content=get_metrics_text(), media_type="text/plain")


# ============================================
# Exception Handlers
# ============================================


@app.exception_handler(RagDeskError)
async def ragdesk_exception_handler(request: Request, exc: RagDeskError):
    """Map domain errors to structured `{error, details}` responses."""
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.error_kind, request.url.path, exc.message)
    else:
        logger.info("%s on %s: %s", exc.error_kind, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed or missing request bodies as invalid input."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    error = InvalidInputError(
        first.get("msg", "Invalid request"),
        {"field": field or "body", "errors": jsonable_encoder(errors)},
    )
    logger.info("invalid_input on %s: %s", request.url.path, error.message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "details": {
                "message": str(exc) if app.debug else "An unexpected error occurred"
            },
        },
    )


# ============================================
# Main Entry Point
# ============================================


def main():
    """Run the application using uvicorn."""
    import uvicorn

    uvicorn.run(
        "ragdesk.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
