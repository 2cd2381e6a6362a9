"""
Tests for RagDesk text extraction.

Tests for:
- normalize_text: character filtering and whitespace collapsing
- TextExtractor.extract_pdf: pdfplumber parsing, fallbacks and failures
- TextExtractor.extract_url: fetch, content-type checks and HTML cleanup
"""

import httpx
import pytest

from ragdesk.errors import (
    ExtractionError,
    FetchError,
    InvalidInputError,
    ServiceTimeoutError,
    UnsupportedContentError,
)
from ragdesk.rag.extractor import TextExtractor, html_to_text, normalize_text, validate_url

# ============================================
# Normalization Tests
# ============================================


class TestNormalizeText:
    @pytest.mark.unit
    def test_removes_disallowed_characters(self):
        assert normalize_text("Hello @world #2024!") == "Hello world 2024!"

    @pytest.mark.unit
    def test_keeps_allowed_punctuation(self):
        assert normalize_text("Yes, no. Maybe? Well-known!") == "Yes, no. Maybe? Well-known!"

    @pytest.mark.unit
    def test_collapses_whitespace_runs(self):
        assert normalize_text("  a \n\n b\t\tc  ") == "a b c"

    @pytest.mark.unit
    def test_no_double_spaces_after_symbol_removal(self):
        assert normalize_text("price : 10 $ total") == "price 10 total"

    @pytest.mark.unit
    def test_keeps_unicode_letters(self):
        assert normalize_text("Café über naïve") == "Café über naïve"

    @pytest.mark.unit
    def test_is_idempotent(self):
        once = normalize_text("A  (messy)  <text>, with * symbols!")
        assert normalize_text(once) == once

    @pytest.mark.unit
    def test_empty_input(self):
        assert normalize_text("   ") == ""


# ============================================
# PDF Extraction Tests
# ============================================


class TestExtractPdf:
    @pytest.mark.unit
    def test_extracts_single_page_text(self, sample_pdf):
        result = TextExtractor().extract_pdf(sample_pdf, "facts.pdf")

        assert result.text == "The capital of France is Paris."
        assert result.source == "facts.pdf"

    @pytest.mark.unit
    def test_pages_are_joined_in_order(self, pdf_factory):
        pdf = pdf_factory("First page text.", "Second page text.")

        result = TextExtractor().extract_pdf(pdf, "two.pdf")

        assert result.text == "First page text. Second page text."

    @pytest.mark.unit
    def test_generated_source_when_filename_missing(self, sample_pdf):
        result = TextExtractor().extract_pdf(sample_pdf)
        assert result.source.startswith("upload-")

    @pytest.mark.unit
    def test_percent_encoded_sequences_are_decoded(self, pdf_factory):
        pdf = pdf_factory("Hello%20World")

        result = TextExtractor().extract_pdf(pdf, "enc.pdf")

        assert result.text == "Hello World"

    @pytest.mark.unit
    def test_rejects_non_pdf_bytes(self):
        with pytest.raises(ExtractionError):
            TextExtractor().extract_pdf(b"just some text", "notes.txt")

    @pytest.mark.unit
    def test_rejects_empty_bytes(self):
        with pytest.raises(ExtractionError):
            TextExtractor().extract_pdf(b"", "empty.pdf")

    @pytest.mark.unit
    def test_blank_pdf_has_no_text(self, pdf_factory):
        with pytest.raises(ExtractionError) as exc_info:
            TextExtractor().extract_pdf(pdf_factory(""), "blank.pdf")
        assert "no extractable text" in exc_info.value.message

    @pytest.mark.unit
    def test_corrupt_pdf_raises_extraction_error(self):
        with pytest.raises(ExtractionError):
            TextExtractor().extract_pdf(b"%PDF-1.4\nthis is not really a pdf", "bad.pdf")

    @pytest.mark.unit
    def test_falls_back_to_pypdf2(self, mocker, sample_pdf):
        extractor = TextExtractor()
        mocker.patch.object(
            extractor, "_extract_with_pdfplumber", side_effect=RuntimeError("boom")
        )
        fallback = mocker.patch.object(
            extractor, "_extract_with_pypdf2", return_value=["Fallback text."]
        )

        result = extractor.extract_pdf(sample_pdf, "facts.pdf")

        fallback.assert_called_once()
        assert result.text == "Fallback text."


# ============================================
# URL Extraction Tests
# ============================================


class TestValidateUrl:
    @pytest.mark.unit
    @pytest.mark.parametrize("url", ["", "   ", "ftp://example.com", "example.com", "http://"])
    def test_rejects_invalid(self, url):
        with pytest.raises(InvalidInputError):
            validate_url(url)

    @pytest.mark.unit
    def test_accepts_https(self):
        validate_url("https://example.com/page")


class TestHtmlToText:
    @pytest.mark.unit
    def test_strips_boilerplate_elements(self, sample_html):
        text = html_to_text(sample_html)

        assert "The Eiffel Tower is in Paris." in text
        assert "Site Header" not in text
        assert "Home" not in text
        assert "tracking" not in text
        assert "Copyright" not in text
        assert "color" not in text


class TestExtractUrl:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_extracts_html_body(self, mock_httpx, sample_html):
        mock_client = mock_httpx(
            method="get",
            text=sample_html,
            headers={"content-type": "text/html; charset=utf-8"},
        )

        result = await TextExtractor().extract_url("https://example.com/paris")

        assert result.source == "https://example.com/paris"
        assert result.text == "Paris The Eiffel Tower is in Paris."
        mock_client.get.assert_awaited_once_with("https://example.com/paris")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sends_user_agent_and_follows_redirects(self, mock_httpx, sample_html):
        mock_httpx(method="get", text=sample_html, headers={"content-type": "text/html"})

        await TextExtractor(user_agent="RagDeskBot/1.0").extract_url("https://example.com")

        kwargs = httpx.AsyncClient.call_args.kwargs
        assert kwargs["headers"]["User-Agent"] == "RagDeskBot/1.0"
        assert kwargs["follow_redirects"] is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_html_content_type(self, mock_httpx):
        mock_httpx(method="get", text="%PDF-1.4", headers={"content-type": "application/pdf"})

        with pytest.raises(UnsupportedContentError):
            await TextExtractor().extract_url("https://example.com/file.pdf")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_http_error_carries_status_and_body(self, mock_httpx):
        mock_httpx(method="get", status_code=404, text="Not Found")

        with pytest.raises(FetchError) as exc_info:
            await TextExtractor().extract_url("https://example.com/missing")

        assert exc_info.value.status == 404
        assert exc_info.value.body == "Not Found"
        assert exc_info.value.status_code == 502
        assert exc_info.value.retryable is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_network_error(self, mock_httpx):
        mock_httpx(method="get", side_effect=httpx.ConnectError("refused"))

        with pytest.raises(FetchError):
            await TextExtractor().extract_url("https://example.com")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout(self, mock_httpx):
        mock_httpx(method="get", side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(ServiceTimeoutError):
            await TextExtractor().extract_url("https://example.com")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_page_without_visible_text(self, mock_httpx):
        mock_httpx(
            method="get",
            text="<html><body><script>x()</script></body></html>",
            headers={"content-type": "text/html"},
        )

        with pytest.raises(ExtractionError):
            await TextExtractor().extract_url("https://example.com")
