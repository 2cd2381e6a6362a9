"""
RagDesk Vector Index

Namespace-per-model wrapper around the Pinecone SDK: idempotent index
creation, dimension-checked upserts and top-k similarity search.

The SDK is synchronous, so every call runs in a worker thread to keep the
event loop free.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any

from pinecone import Pinecone, ServerlessSpec
from pinecone.exceptions import NotFoundException, PineconeException

from ragdesk.errors import IndexMismatchError, ServiceTimeoutError, VectorIndexError

logger = logging.getLogger(__name__)

DEFAULT_CLOUD = os.environ.get("PINECONE_CLOUD", "aws")
DEFAULT_REGION = os.environ.get("PINECONE_REGION", "us-east-1")
DEFAULT_METRIC = "cosine"
DEFAULT_NAMESPACE = ""
DEFAULT_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30"))

# Seconds the SDK polls for an index to become ready (or gone)
INDEX_READY_TIMEOUT = int(os.environ.get("PINECONE_INDEX_READY_SECONDS", "120"))


@dataclass
class SearchMatch:
    """A single similarity search hit."""

    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


def field_of(obj: Any, name: str, default: Any = None) -> Any:
    """Read *name* from an SDK model object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


class VectorIndex:
    """Async facade over a Pinecone project."""

    def __init__(
        self,
        client: Pinecone | None = None,
        api_key: str | None = None,
        cloud: str = DEFAULT_CLOUD,
        region: str = DEFAULT_REGION,
        namespace: str = DEFAULT_NAMESPACE,
        timeout: float = DEFAULT_TIMEOUT,
        ready_timeout: int = INDEX_READY_TIMEOUT,
    ) -> None:
        self._pc = client or Pinecone(
            api_key=api_key or os.environ.get("PINECONE_API_KEY")
        )
        self.cloud = cloud
        self.region = region
        self.namespace = namespace
        self.timeout = timeout
        self.ready_timeout = ready_timeout
        self._dimensions: dict[str, int] = {}

    async def _run(
        self, operation: str, fn, *args, deadline: float | None = None, **kwargs
    ):
        """Run a blocking SDK call in a worker thread under a deadline."""
        deadline = self.timeout if deadline is None else deadline
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, **kwargs), timeout=deadline
            )
        except (asyncio.TimeoutError, TimeoutError) as e:
            logger.warning("Vector index %s timed out after %.1fs", operation, deadline)
            raise ServiceTimeoutError(
                f"Vector index {operation} timed out",
                {"operation": operation, "timeout_seconds": deadline},
            ) from e
        except PineconeException as e:
            logger.warning("Vector index %s failed: %s", operation, e)
            raise VectorIndexError(
                f"Vector index {operation} failed",
                details={"operation": operation, "reason": str(e)},
            ) from e

    async def list_indexes(self) -> list[str]:
        """Return the names of all indexes in the project."""
        listing = await self._run("list_indexes", self._pc.list_indexes)
        return list(listing.names())

    async def ensure(
        self, index_name: str, dimension: int, metric: str = DEFAULT_METRIC
    ) -> bool:
        """Create *index_name* if it does not exist yet.

        Returns:
            True if the index was created, False if it already existed.

        Raises:
            IndexMismatchError: If an existing index has another dimension.
        """
        if index_name in await self.list_indexes():
            existing = await self.dimension(index_name)
            if existing != dimension:
                raise IndexMismatchError(
                    "Existing index dimension does not match embeddings",
                    {
                        "index_name": index_name,
                        "index_dimension": existing,
                        "expected_dimension": dimension,
                    },
                )
            logger.info("Index %s already exists", index_name)
            return False

        await self._run(
            "create_index",
            self._pc.create_index,
            name=index_name,
            dimension=dimension,
            metric=metric,
            spec=ServerlessSpec(cloud=self.cloud, region=self.region),
            timeout=self.ready_timeout,
            deadline=self.ready_timeout + self.timeout,
        )
        self._dimensions[index_name] = dimension
        logger.info(
            "Created index %s (dimension=%d, metric=%s)", index_name, dimension, metric
        )
        return True

    async def dimension(self, index_name: str) -> int:
        """Configured vector dimension of *index_name* (cached)."""
        if index_name not in self._dimensions:
            description = await self._run(
                "describe_index", self._pc.describe_index, index_name
            )
            self._dimensions[index_name] = int(field_of(description, "dimension"))
        return self._dimensions[index_name]

    async def upsert(self, index_name: str, records: list[dict[str, Any]]) -> None:
        """Write ``{id, values, metadata}`` records to *index_name*.

        Raises:
            IndexMismatchError: If any vector length differs from the index
                dimension. Nothing is written in that case.
        """
        expected = await self.dimension(index_name)
        for record in records:
            actual = len(record["values"])
            if actual != expected:
                raise IndexMismatchError(
                    "Vector dimension does not match index",
                    {
                        "index_name": index_name,
                        "record_id": record.get("id"),
                        "vector_dimension": actual,
                        "index_dimension": expected,
                    },
                )

        index = await self._run("connect", self._pc.Index, index_name)
        await self._run("upsert", index.upsert, vectors=records, namespace=self.namespace)
        logger.info("Upserted %d records into %s", len(records), index_name)

    async def search(
        self,
        index_name: str,
        vector: list[float],
        top_k: int,
        include_metadata: bool = True,
    ) -> list[SearchMatch]:
        """Return up to *top_k* matches ordered by descending similarity."""
        index = await self._run("connect", self._pc.Index, index_name)
        response = await self._run(
            "query",
            index.query,
            vector=vector,
            top_k=top_k,
            include_metadata=include_metadata,
            namespace=self.namespace,
        )
        matches = [
            SearchMatch(
                id=str(field_of(m, "id")),
                score=float(field_of(m, "score", 0.0)),
                metadata=dict(field_of(m, "metadata") or {}),
            )
            for m in (field_of(response, "matches") or [])
        ]
        matches.sort(key=lambda m: (-m.score, m.id))
        return matches[:top_k]

    async def delete(self, index_name: str) -> bool:
        """Delete *index_name*; returns False if it was already gone."""

        def _delete() -> bool:
            try:
                self._pc.delete_index(index_name, timeout=self.ready_timeout)
            except NotFoundException:
                return False
            return True

        try:
            deleted = await self._run(
                "delete_index", _delete, deadline=self.ready_timeout + self.timeout
            )
        finally:
            self._dimensions.pop(index_name, None)
        if deleted:
            logger.info("Deleted index %s", index_name)
        else:
            logger.warning("Index %s not found during deletion", index_name)
        return deleted
