"""
RagDesk Chunk Preparation Module

Caps extracted text to fit the vector index metadata payload and wraps it
as a single document chunk.

Known limitation: every document becomes exactly one chunk. Text past the
character budget is dropped (flagged with isTextTruncated), so retrieval
quality degrades for long documents. The budget counts characters, not
bytes, so a full-length chunk of multi-byte text can exceed the index
metadata limit.
"""

import os
import time
from typing import Any

from pydantic import BaseModel, Field

# Vector index metadata payloads are limited to ~40KB. 15,000 characters
# fits for mostly-ASCII text; 15,000 three-byte characters (CJK) is ~45KB
# and will be rejected by the index, part of the single-chunk limitation.
MAX_CHUNK_CHARS = int(os.environ.get("MAX_CHUNK_CHARS", "15000"))


# ============================================
# Data Models
# ============================================


class DocumentChunk(BaseModel):
    """A capped document text ready for embedding.

    Attributes:
        page_content: Normalized text, at most MAX_CHUNK_CHARS long.
        metadata: ``source``, ``text`` (same capped text) and
            ``isTextTruncated``.
    """

    page_content: str = Field(..., description="Capped chunk text")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def source(self) -> str | None:
        return self.metadata.get("source")

    @property
    def is_text_truncated(self) -> bool:
        return bool(self.metadata.get("isTextTruncated", False))

    def record_id(self) -> str:
        """Stable vector id: the source tag, or a generated one."""
        return self.source or f"doc-{int(time.time() * 1000)}"

    def to_vector_record(self, vector: list[float]) -> dict[str, Any]:
        """Build the upsert payload for this chunk."""
        return {
            "id": self.record_id(),
            "values": vector,
            "metadata": dict(self.metadata),
        }


# ============================================
# Chunk Preparation
# ============================================


def prepare_chunk(
    text: str,
    source: str | None,
    max_chars: int = MAX_CHUNK_CHARS,
) -> DocumentChunk:
    """Turn a whole normalized document into one capped chunk.

    Args:
        text: Normalized document text.
        source: Provenance tag (file name or URL).
        max_chars: Character budget for the chunk.

    Returns:
        DocumentChunk whose metadata duplicates the capped text.
    """
    capped = text[:max_chars]
    metadata: dict[str, Any] = {
        "text": capped,
        "isTextTruncated": len(capped) < len(text),
    }
    if source:
        metadata["source"] = source
    return DocumentChunk(page_content=capped, metadata=metadata)
