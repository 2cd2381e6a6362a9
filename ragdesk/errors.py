"""
RagDesk Error Taxonomy

Every component-level failure is raised as a RagDeskError subclass carrying
an HTTP-equivalent status category and structured details, so the API layer
can surface it to the caller unchanged.
"""

from typing import Any


class RagDeskError(Exception):
    """Base class for all RagDesk failures."""

    status_code: int = 500
    error_kind: str = "internal_error"
    retryable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        """Structured `{error, details}` body for API responses."""
        return {
            "error": self.error_kind,
            "details": {"message": self.message, **self.details},
        }


# ============================================
# Caller Errors (4xx)
# ============================================


class InvalidInputError(RagDeskError):
    """Missing or malformed request fields."""

    status_code = 400
    error_kind = "invalid_input"


class AuthError(RagDeskError):
    """Unknown model or wrong API key."""

    status_code = 401
    error_kind = "unauthorized"


class MissingCredentialError(AuthError):
    """No API key supplied at all."""

    error_kind = "missing_credential"


class NotFoundError(RagDeskError):
    """Registry record does not exist."""

    status_code = 404
    error_kind = "not_found"


class NoMatchError(RagDeskError):
    """Vector search returned no results for a query."""

    status_code = 404
    error_kind = "no_match"


class DuplicateNameError(RagDeskError):
    """A model with the same name (or backing index) is already registered."""

    status_code = 409
    error_kind = "duplicate_name"


class ExtractionError(RagDeskError):
    """Source bytes could not be turned into text."""

    status_code = 422
    error_kind = "extraction_failed"


class UnsupportedContentError(RagDeskError):
    """Fetched resource is not HTML."""

    status_code = 422
    error_kind = "unsupported_content"


# ============================================
# Upstream and Availability Errors (5xx)
# ============================================


class UpstreamError(RagDeskError):
    """An external service failed or answered with an unexpected shape."""

    status_code = 502
    error_kind = "upstream_error"
    retryable = True

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        merged = dict(details or {})
        if status is not None:
            merged["status"] = status
        if body is not None:
            merged["body"] = body
        super().__init__(message, merged)
        self.status = status
        self.body = body


class FetchError(UpstreamError):
    """URL fetch failed at the network level or returned non-2xx."""

    error_kind = "fetch_failed"
    retryable = False


class EmbeddingError(UpstreamError):
    """Embedding provider failed or returned a malformed payload."""

    error_kind = "embedding_failed"


class CompletionError(UpstreamError):
    """Completion provider failed or returned a malformed payload."""

    error_kind = "completion_failed"


class VectorIndexError(UpstreamError):
    """Vector index service call failed."""

    error_kind = "vector_index_failed"


class ServiceTimeoutError(RagDeskError):
    """An outbound call exceeded its timeout."""

    status_code = 504
    error_kind = "timeout"
    retryable = True


class ServiceUnavailableError(RagDeskError):
    """A backing service failed to initialize at startup."""

    status_code = 503
    error_kind = "service_unavailable"
    retryable = True


# ============================================
# Internal Consistency Errors (500, fatal)
# ============================================


class IndexMismatchError(RagDeskError):
    """Vector dimensionality disagrees with the index schema."""

    error_kind = "index_mismatch"


class IngestionError(RagDeskError):
    """Ingestion could not write a consistent index entry."""

    error_kind = "ingestion_failed"


class PartialDeletionError(RagDeskError):
    """Index was deleted but the registry record could not be removed."""

    error_kind = "partial_deletion"
