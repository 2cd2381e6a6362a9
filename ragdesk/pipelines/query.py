"""
Query Pipeline for RagDesk

Answers a question against one registered model:
authenticate -> embed -> vector search -> context assembly -> completion.

Zero retrieval matches always fail with NoMatchError before any completion
call is made.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any

from ragdesk.errors import InvalidInputError, MissingCredentialError, NoMatchError
from ragdesk.llm.prompt_templates import SYSTEM_PROMPT, build_context
from ragdesk.rag.embedding import QUERY_INPUT

logger = logging.getLogger(__name__)

MIN_TOP_K = 3
MAX_TOP_K = 5
DEFAULT_TOP_K = int(os.environ.get("QUERY_TOP_K", "5"))


@dataclass
class QueryResult:
    """Generated answer plus the chunks it was grounded on."""

    answer: str
    source_documents: list[dict[str, Any]]
    model_name: str
    processing_time_ms: float
    steps: list[dict[str, Any]] = field(default_factory=list)


class QueryPipeline:
    """Retrieve-then-generate pipeline for a single model."""

    def __init__(
        self,
        registry,
        embedding_client,
        vector_index,
        completion_client,
        top_k: int = DEFAULT_TOP_K,
    ):
        self.registry = registry
        self.embedding_client = embedding_client
        self.vector_index = vector_index
        self.completion_client = completion_client
        self.top_k = min(max(top_k, MIN_TOP_K), MAX_TOP_K)

    async def run(
        self, model_name: str, message: str | None, api_key: str | None
    ) -> QueryResult:
        """Execute the query pipeline.

        Raises:
            InvalidInputError: Empty message.
            MissingCredentialError: No API key supplied.
            AuthError: Unknown model or wrong key.
            NoMatchError: The model's index returned nothing.
            EmbeddingError, CompletionError, VectorIndexError,
            ServiceTimeoutError: Propagated from the external services.
        """
        start_time = time.time()
        steps: list[dict[str, Any]] = []

        # --- Input validation ---
        question = (message or "").strip()
        if not question:
            raise InvalidInputError("Message is required", {"field": "message"})
        if not api_key:
            raise MissingCredentialError(
                "API key is required", {"header": "x-api-key"}
            )

        # --- Authentication ---
        step_start = time.time()
        model = await self.registry.authenticate(model_name, api_key)
        steps.append(
            {
                "name": "authenticate",
                "duration_ms": round((time.time() - step_start) * 1000, 1),
                "detail": f"Authenticated model {model.name}",
            }
        )

        # --- Embedding generation ---
        step_start = time.time()
        embeddings = await self.embedding_client.embed([question], input_type=QUERY_INPUT)
        steps.append(
            {
                "name": "embed",
                "duration_ms": round((time.time() - step_start) * 1000, 1),
                "detail": "Generated query embedding",
            }
        )

        # --- Retrieval ---
        step_start = time.time()
        matches = await self.vector_index.search(
            model.index_name, embeddings[0], top_k=self.top_k, include_metadata=True
        )
        steps.append(
            {
                "name": "retrieve",
                "duration_ms": round((time.time() - step_start) * 1000, 1),
                "detail": f"Retrieved {len(matches)} chunks (top_k={self.top_k})",
            }
        )
        if not matches:
            logger.info("No matches in %s for model %s", model.index_name, model.name)
            raise NoMatchError(
                "No relevant content found for this model",
                {"model_name": model.name},
            )

        source_documents = [
            {"pageContent": m.metadata.get("text", ""), "metadata": m.metadata}
            for m in matches
        ]

        # --- LLM synthesis ---
        step_start = time.time()
        context = build_context([doc["pageContent"] for doc in source_documents])
        answer = await self.completion_client.complete(
            SYSTEM_PROMPT, context, question, model.llm_model
        )
        steps.append(
            {
                "name": "synthesize",
                "duration_ms": round((time.time() - step_start) * 1000, 1),
                "detail": f"Generated answer with {model.llm_model}",
            }
        )

        elapsed = (time.time() - start_time) * 1000
        logger.info(
            "Answered query for %s in %.1fms (%d sources)",
            model.name,
            elapsed,
            len(source_documents),
        )
        return QueryResult(
            answer=answer,
            source_documents=source_documents,
            model_name=model.name,
            processing_time_ms=round(elapsed, 1),
            steps=steps,
        )
