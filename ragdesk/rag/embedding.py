"""
RagDesk Embedding Client

Embeds texts with Pinecone's hosted inference models through the SDK and
validates the response shape before any vector reaches the index.
"""

import asyncio
import logging
import os
from typing import Any

from pinecone import Pinecone
from pinecone.exceptions import PineconeException

from ragdesk.errors import EmbeddingError, ServiceTimeoutError
from ragdesk.rag.vector_index import field_of

logger = logging.getLogger(__name__)

# Model configuration
DEFAULT_EMBEDDING_MODEL = os.environ.get("EMBEDDING_MODEL", "multilingual-e5-large")
EMBEDDING_DIMENSION = int(os.environ.get("EMBEDDING_DIMENSION", "1024"))
DEFAULT_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30"))

# e5 models distinguish stored passages from search queries
PASSAGE_INPUT = "passage"
QUERY_INPUT = "query"


class EmbeddingClient:
    """Turns texts into fixed-length dense vectors via a remote provider."""

    def __init__(
        self,
        client: Pinecone | None = None,
        api_key: str | None = None,
        model: str = DEFAULT_EMBEDDING_MODEL,
        dimension: int = EMBEDDING_DIMENSION,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._pc = client or Pinecone(
            api_key=api_key or os.environ.get("PINECONE_API_KEY")
        )
        self.model = model
        self.dimension = dimension
        self.timeout = timeout

    async def embed(
        self, texts: list[str], input_type: str = PASSAGE_INPUT
    ) -> list[list[float]]:
        """Embed *texts*, returning one vector per input in input order.

        Args:
            texts: Texts to embed.
            input_type: ``passage`` for documents, ``query`` for questions.

        Raises:
            EmbeddingError: On a provider error or a malformed payload.
            ServiceTimeoutError: If the provider does not answer in time.
        """
        if not texts:
            return []

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    self._pc.inference.embed,
                    model=self.model,
                    inputs=list(texts),
                    parameters={"input_type": input_type, "truncate": "END"},
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise ServiceTimeoutError(
                "Embedding request timed out", {"model": self.model}
            ) from e
        except PineconeException as e:
            logger.warning("Embedding provider returned an error: %s", e)
            raise EmbeddingError(
                "Embedding provider returned an error",
                status=getattr(e, "status", None),
                body=getattr(e, "body", None) or str(e),
            ) from e

        vectors = parse_embeddings(response, expected=len(texts))
        logger.debug("Embedded %d texts with %s", len(vectors), self.model)
        return vectors


def parse_embeddings(payload: Any, expected: int) -> list[list[float]]:
    """Extract vectors from an embed response, validating its shape.

    Accepts the SDK's ``EmbeddingsList`` or the equivalent plain dict.

    Raises:
        EmbeddingError: Carrying the raw payload if anything is missing.
    """
    body = _as_body(payload)
    data = field_of(payload, "data") if payload is not None else None
    if (
        data is None
        or isinstance(data, (str, bytes, dict))
        or not hasattr(data, "__iter__")
    ):
        raise EmbeddingError("Embedding response has no data array", body=body)
    data = list(data)
    if not data:
        raise EmbeddingError("Embedding response has no data array", body=body)
    if len(data) != expected:
        raise EmbeddingError(
            f"Expected {expected} embeddings, got {len(data)}", body=body
        )

    vectors: list[list[float]] = []
    for item in data:
        values = field_of(item, "values") if not isinstance(item, str) else None
        if (
            not isinstance(values, (list, tuple))
            or not values
            or not all(
                isinstance(v, (int, float)) and not isinstance(v, bool)
                for v in values
            )
        ):
            raise EmbeddingError("Invalid embedding format", body=body)
        vectors.append([float(v) for v in values])
    return vectors


def _as_body(payload: Any) -> Any:
    """JSON-safe copy of a response for error details."""
    if payload is None or isinstance(payload, (dict, list, str, int, float)):
        return payload
    to_dict = getattr(payload, "to_dict", None)
    return to_dict() if callable(to_dict) else repr(payload)
