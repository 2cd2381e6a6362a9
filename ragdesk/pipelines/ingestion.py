"""
Ingestion Pipeline for RagDesk

Materializes a queryable model from one source document:

    validating -> index_ensuring -> extracting -> embedding ->
    upserting -> registering -> done

Any failure moves the run to ``failed`` and re-raises the originating error
with the failing state recorded in its details. Nothing is retried or rolled
back: a failure after index_ensuring can leave an orphaned index for
scripts/reconcile_indexes.py to clean up.
"""

import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from ragdesk.api.auth import generate_api_key
from ragdesk.db.registry import derive_index_name
from ragdesk.errors import (
    DuplicateNameError,
    IndexMismatchError,
    IngestionError,
    InvalidInputError,
    RagDeskError,
)
from ragdesk.rag.chunker import DocumentChunk, prepare_chunk
from ragdesk.rag.embedding import EMBEDDING_DIMENSION, PASSAGE_INPUT
from ragdesk.rag.extractor import ExtractedText, validate_url
from ragdesk.rag.vector_index import DEFAULT_METRIC

logger = logging.getLogger(__name__)


class IngestionState(str, enum.Enum):
    VALIDATING = "validating"
    INDEX_ENSURING = "index_ensuring"
    EXTRACTING = "extracting"
    EMBEDDING = "embedding"
    UPSERTING = "upserting"
    REGISTERING = "registering"
    DONE = "done"
    FAILED = "failed"


INGESTION_TYPES = ("pdf", "url")


@dataclass
class IngestionRequest:
    """Everything the ingestion endpoint receives."""

    model_name: str
    ingestion_type: str
    llm_model: str
    file_bytes: bytes | None = None
    filename: str | None = None
    url: str | None = None


@dataclass
class IngestionResult:
    """Outcome of a successful ingestion. ``api_key`` is shown only here."""

    model_name: str
    api_key: str
    index_name: str
    source: str
    is_text_truncated: bool
    processing_time_ms: float
    steps: list[dict[str, Any]] = field(default_factory=list)


class IngestionPipeline:
    """Extract, embed and index one document, then register the model."""

    def __init__(
        self,
        registry,
        extractor,
        embedding_client,
        vector_index,
        completion_client=None,
        dimension: int = EMBEDDING_DIMENSION,
    ):
        self.registry = registry
        self.extractor = extractor
        self.embedding_client = embedding_client
        self.vector_index = vector_index
        self.completion_client = completion_client  # only used to validate tags
        self.dimension = dimension

    async def run(self, request: IngestionRequest) -> IngestionResult:
        """Execute the full ingestion state machine."""
        start_time = time.time()
        steps: list[dict[str, Any]] = []
        state = IngestionState.VALIDATING
        step_start = time.time()

        def advance(next_state: IngestionState, detail: str) -> None:
            nonlocal state, step_start
            steps.append(
                {
                    "name": state.value,
                    "duration_ms": round((time.time() - step_start) * 1000, 1),
                    "detail": detail,
                }
            )
            state = next_state
            step_start = time.time()

        try:
            # --- Validating ---
            model_name = self._validate(request)
            index_name = derive_index_name(model_name)
            await self._check_not_registered(model_name, index_name)
            advance(IngestionState.INDEX_ENSURING, f"Validated {request.ingestion_type} request")

            # --- Index ensuring ---
            created = await self.vector_index.ensure(
                index_name, self.dimension, DEFAULT_METRIC
            )
            advance(
                IngestionState.EXTRACTING,
                f"{'Created' if created else 'Reused'} index {index_name}",
            )

            # --- Extracting ---
            extracted = await self._extract(request)
            chunk = prepare_chunk(extracted.text, extracted.source)
            advance(
                IngestionState.EMBEDDING,
                f"Extracted {len(extracted.text)} characters from {extracted.source}",
            )

            # --- Embedding ---
            vectors = await self.embedding_client.embed(
                [chunk.page_content], input_type=PASSAGE_INPUT
            )
            advance(IngestionState.UPSERTING, f"Embedded chunk ({len(vectors[0])} dims)")

            # --- Upserting ---
            await self._upsert(index_name, chunk, vectors[0])
            advance(IngestionState.REGISTERING, f"Upserted 1 record into {index_name}")

            # --- Registering ---
            api_key = generate_api_key()
            try:
                await self.registry.create(
                    model_name, index_name, api_key, request.llm_model
                )
            except DuplicateNameError:
                logger.warning(
                    "Registration of %s lost a race; index %s may be orphaned",
                    model_name,
                    index_name,
                )
                raise
            advance(IngestionState.DONE, f"Registered model {model_name}")

        except RagDeskError as e:
            e.details.setdefault("state", state.value)
            logger.warning("Ingestion failed in state %s: %s", state.value, e)
            if state in (
                IngestionState.EXTRACTING,
                IngestionState.EMBEDDING,
                IngestionState.UPSERTING,
                IngestionState.REGISTERING,
            ):
                logger.warning(
                    "Index %s left in place after failed ingestion", index_name
                )
            state = IngestionState.FAILED
            raise

        elapsed = (time.time() - start_time) * 1000
        logger.info("Ingested model %s in %.1fms", model_name, elapsed)
        return IngestionResult(
            model_name=model_name,
            api_key=api_key,
            index_name=index_name,
            source=extracted.source,
            is_text_truncated=chunk.is_text_truncated,
            processing_time_ms=round(elapsed, 1),
            steps=steps,
        )

    def _validate(self, request: IngestionRequest) -> str:
        """Check request fields; returns the trimmed model name."""
        model_name = (request.model_name or "").strip()
        if not model_name:
            raise InvalidInputError("Model name is required", {"field": "modelName"})

        if request.ingestion_type not in INGESTION_TYPES:
            raise InvalidInputError(
                "Ingestion type must be 'pdf' or 'url'",
                {"field": "ingestionType", "value": request.ingestion_type},
            )

        has_file = bool(request.file_bytes)
        has_url = bool(request.url and request.url.strip())
        if request.ingestion_type == "pdf":
            if not has_file:
                raise InvalidInputError("A PDF file is required", {"field": "file"})
            if has_url:
                raise InvalidInputError(
                    "Provide a file or a URL, not both", {"field": "url"}
                )
        else:
            if not has_url:
                raise InvalidInputError("URL is required", {"field": "url"})
            if has_file:
                raise InvalidInputError(
                    "Provide a file or a URL, not both", {"field": "file"}
                )
            validate_url(request.url)

        if not request.llm_model:
            raise InvalidInputError("LLM model is required", {"field": "llmModel"})
        if self.completion_client is not None:
            self.completion_client.backend_for(request.llm_model)

        return model_name

    async def _check_not_registered(self, model_name: str, index_name: str) -> None:
        # Fail before touching the index so an existing model's vectors stay intact
        if await self.registry.get_by_name(model_name) is not None:
            raise DuplicateNameError(
                f"Model '{model_name}' already exists", {"model_name": model_name}
            )
        if await self.registry.get_by_index_name(index_name) is not None:
            raise DuplicateNameError(
                f"Another model already uses index '{index_name}'",
                {"model_name": model_name, "index_name": index_name},
            )

    async def _extract(self, request: IngestionRequest) -> ExtractedText:
        if request.ingestion_type == "pdf":
            # pdf parsing is CPU-bound; run it off the event loop
            return await asyncio.to_thread(
                self.extractor.extract_pdf, request.file_bytes, request.filename
            )
        return await self.extractor.extract_url(request.url.strip())

    async def _upsert(
        self, index_name: str, chunk: DocumentChunk, vector: list[float]
    ) -> None:
        if len(vector) != self.dimension:
            raise IngestionError(
                "Embedding dimension does not match index",
                {
                    "index_name": index_name,
                    "vector_dimension": len(vector),
                    "index_dimension": self.dimension,
                },
            )
        try:
            await self.vector_index.upsert(index_name, [chunk.to_vector_record(vector)])
        except IndexMismatchError as e:
            raise IngestionError(
                "Embedding dimension does not match index", dict(e.details)
            ) from e
