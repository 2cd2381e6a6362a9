"""
Tests for RagDesk chunk preparation.
"""

import pytest

from ragdesk.rag.chunker import MAX_CHUNK_CHARS, DocumentChunk, prepare_chunk


class TestPrepareChunk:
    @pytest.mark.unit
    def test_short_text_is_kept_whole(self):
        chunk = prepare_chunk("The capital of France is Paris.", "facts.pdf")

        assert chunk.page_content == "The capital of France is Paris."
        assert chunk.metadata["text"] == chunk.page_content
        assert chunk.metadata["source"] == "facts.pdf"
        assert chunk.is_text_truncated is False

    @pytest.mark.unit
    def test_long_text_is_capped_and_flagged(self):
        text = "a" * (MAX_CHUNK_CHARS + 5000)

        chunk = prepare_chunk(text, "big.pdf")

        assert len(chunk.page_content) == MAX_CHUNK_CHARS
        assert chunk.page_content == text[:MAX_CHUNK_CHARS]
        assert chunk.metadata["isTextTruncated"] is True

    @pytest.mark.unit
    def test_budget_counts_characters_not_bytes(self):
        text = "東" * (MAX_CHUNK_CHARS + 10)

        chunk = prepare_chunk(text, "cjk.pdf")

        assert len(chunk.page_content) == MAX_CHUNK_CHARS
        # three bytes per character, so a full chunk overshoots the ~40KB metadata limit
        assert len(chunk.page_content.encode("utf-8")) == 3 * MAX_CHUNK_CHARS
        assert chunk.is_text_truncated is True

    @pytest.mark.unit
    def test_text_exactly_at_budget_is_not_truncated(self):
        chunk = prepare_chunk("b" * 100, "exact.pdf", max_chars=100)
        assert chunk.is_text_truncated is False

    @pytest.mark.unit
    def test_missing_source_is_omitted(self):
        chunk = prepare_chunk("text", None)
        assert "source" not in chunk.metadata
        assert chunk.source is None


class TestDocumentChunk:
    @pytest.mark.unit
    def test_vector_record_uses_source_as_id(self):
        chunk = prepare_chunk("text", "https://example.com/page")

        record = chunk.to_vector_record([0.1, 0.2])

        assert record["id"] == "https://example.com/page"
        assert record["values"] == [0.1, 0.2]
        assert record["metadata"]["text"] == "text"

    @pytest.mark.unit
    def test_vector_record_generates_id_without_source(self):
        chunk = DocumentChunk(page_content="text", metadata={"text": "text"})
        assert chunk.to_vector_record([1.0])["id"].startswith("doc-")

    @pytest.mark.unit
    def test_record_metadata_is_a_copy(self):
        chunk = prepare_chunk("text", "a.pdf")
        record = chunk.to_vector_record([1.0])
        record["metadata"]["text"] = "changed"
        assert chunk.metadata["text"] == "text"
