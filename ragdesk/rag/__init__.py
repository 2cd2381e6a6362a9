"""
RagDesk RAG Module

Document ingestion building blocks: text extraction from PDFs and web
pages, single-chunk preparation, remote embeddings and the vector index.
"""

from ragdesk.rag.chunker import MAX_CHUNK_CHARS, DocumentChunk, prepare_chunk
from ragdesk.rag.embedding import (
    EMBEDDING_DIMENSION,
    PASSAGE_INPUT,
    QUERY_INPUT,
    EmbeddingClient,
)
from ragdesk.rag.extractor import ExtractedText, TextExtractor, normalize_text
from ragdesk.rag.vector_index import SearchMatch, VectorIndex

__all__ = [
    # Extractor
    "TextExtractor",
    "ExtractedText",
    "normalize_text",
    # Chunker
    "DocumentChunk",
    "MAX_CHUNK_CHARS",
    "prepare_chunk",
    # Embedding
    "EmbeddingClient",
    "EMBEDDING_DIMENSION",
    "PASSAGE_INPUT",
    "QUERY_INPUT",
    # Vector index
    "VectorIndex",
    "SearchMatch",
]
