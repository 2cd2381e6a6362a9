"""
RagDesk Text Extractor Module

Turns a raw source (PDF bytes or a web page URL) into one normalized
plain-text document plus a provenance tag.
Uses pdfplumber as the primary PDF parser with PyPDF2 as fallback.
"""

import io
import logging
import os
import re
import time
from dataclasses import dataclass
from urllib.parse import unquote, urlparse

import httpx
import pdfplumber
from bs4 import BeautifulSoup
from PyPDF2 import PdfReader

from ragdesk.errors import (
    ExtractionError,
    FetchError,
    InvalidInputError,
    ServiceTimeoutError,
    UnsupportedContentError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30"))
DEFAULT_USER_AGENT = os.environ.get(
    "FETCH_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36",
)

# Characters kept after normalization: word chars, whitespace and . , ! ? -
_DISALLOWED_CHARS = re.compile(r"[^\w\s.,!?-]")
_WHITESPACE_RUN = re.compile(r"\s+")

_HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
_NON_CONTENT_TAGS = ["script", "style", "nav", "footer", "header", "noscript", "template"]
_ALLOWED_SCHEMES = {"http", "https"}

# Upstream bodies are echoed back in errors; keep them short
_MAX_ERROR_BODY_CHARS = 2000


# ============================================
# Data Models
# ============================================


@dataclass
class ExtractedText:
    """Normalized document text and where it came from."""

    text: str
    source: str


# ============================================
# Normalization
# ============================================


def normalize_text(text: str) -> str:
    """Strip disallowed characters, collapse whitespace runs, and trim.

    Character stripping runs before the collapse so removed symbols never
    leave double spaces behind.
    """
    text = _DISALLOWED_CHARS.sub("", text)
    text = _WHITESPACE_RUN.sub(" ", text)
    return text.strip()


# ============================================
# Text Extractor
# ============================================


class TextExtractor:
    """Extracts normalized text from PDF uploads and web pages."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent

    # --- PDF path ---

    def extract_pdf(self, pdf_bytes: bytes, filename: str | None = None) -> ExtractedText:
        """Parse PDF bytes into normalized text.

        Args:
            pdf_bytes: Raw PDF file content.
            filename: Original file name, used as provenance tag.

        Returns:
            ExtractedText with the normalized text and source tag.

        Raises:
            ExtractionError: If the bytes are not a well-formed PDF or hold
                no extractable text.
        """
        if not pdf_bytes:
            raise ExtractionError("Empty PDF data provided")
        if not pdf_bytes.lstrip().startswith(b"%PDF"):
            raise ExtractionError(
                "File is not a PDF document", {"filename": filename}
            )

        pages = self._read_pages(pdf_bytes, filename)
        raw = "\n".join(pages)
        text = normalize_text(unquote(raw))
        if not text:
            raise ExtractionError(
                "PDF contains no extractable text", {"filename": filename}
            )

        source = filename or f"upload-{int(time.time() * 1000)}"
        logger.info("Extracted %d characters from PDF %s", len(text), source)
        return ExtractedText(text=text, source=source)

    def _read_pages(self, pdf_bytes: bytes, filename: str | None) -> list[str]:
        """Return page texts in document order, trying pdfplumber then PyPDF2."""
        try:
            return self._extract_with_pdfplumber(pdf_bytes)
        except Exception as e:
            logger.warning("pdfplumber failed on %s, trying PyPDF2: %s", filename, e)

        try:
            return self._extract_with_pypdf2(pdf_bytes)
        except Exception as e:
            raise ExtractionError(
                "Failed to parse PDF", {"filename": filename, "reason": str(e)}
            ) from e

    def _extract_with_pdfplumber(self, pdf_bytes: bytes) -> list[str]:
        pages = []
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            for page in pdf.pages:
                words = page.extract_words() or []
                pages.append(" ".join(w["text"] for w in words))
        return pages

    def _extract_with_pypdf2(self, pdf_bytes: bytes) -> list[str]:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        return [page.extract_text() or "" for page in reader.pages]

    # --- URL path ---

    async def extract_url(self, url: str) -> ExtractedText:
        """Fetch a web page and extract its visible body text.

        Args:
            url: Absolute http(s) URL.

        Returns:
            ExtractedText whose source tag is the URL itself.

        Raises:
            InvalidInputError: If the URL is malformed.
            FetchError: On network failure or a non-2xx response.
            ServiceTimeoutError: If the fetch exceeds the timeout.
            UnsupportedContentError: If the response is not HTML.
            ExtractionError: If the page body has no visible text.
        """
        validate_url(url)

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            raise ServiceTimeoutError(
                "Timed out fetching URL", {"url": url}
            ) from e
        except httpx.RequestError as e:
            raise FetchError(
                "Failed to fetch URL", details={"url": url, "reason": str(e)}
            ) from e

        if not response.is_success:
            raise FetchError(
                "URL returned an error status",
                status=response.status_code,
                body=response.text[:_MAX_ERROR_BODY_CHARS],
                details={"url": url},
            )

        content_type = response.headers.get("content-type", "")
        media_type = content_type.split(";")[0].strip().lower()
        if media_type not in _HTML_CONTENT_TYPES:
            raise UnsupportedContentError(
                "URL did not return an HTML page",
                {"url": url, "content_type": content_type},
            )

        text = html_to_text(response.text)
        if not text:
            raise ExtractionError("Page contains no visible text", {"url": url})

        logger.info("Extracted %d characters from %s", len(text), url)
        return ExtractedText(text=text, source=url)


def validate_url(url: str | None) -> None:
    """Raise InvalidInputError unless *url* is an absolute http(s) URL."""
    if not url or not url.strip():
        raise InvalidInputError("URL is required", {"field": "url"})
    parsed = urlparse(url.strip())
    if parsed.scheme not in _ALLOWED_SCHEMES or not parsed.netloc:
        raise InvalidInputError(
            "URL must be an absolute http(s) URL", {"field": "url", "url": url}
        )


def html_to_text(html: str) -> str:
    """Remove boilerplate elements and return normalized body text."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(_NON_CONTENT_TAGS):
        tag.decompose()
    root = soup.body or soup
    return normalize_text(root.get_text(separator=" "))
