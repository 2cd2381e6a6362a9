"""
Authentication for RagDesk

Per-model shared-secret API keys:
- Generated once at model creation (32 random bytes, hex encoded)
- Supplied by callers in the ``x-api-key`` header
- Compared in constant time
"""

import hmac
import secrets

from fastapi.security import APIKeyHeader

API_KEY_HEADER = "x-api-key"
API_KEY_BYTES = 32

api_key_scheme = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def generate_api_key() -> str:
    """Create a fresh high-entropy API key (64 hex characters)."""
    return secrets.token_hex(API_KEY_BYTES)


def keys_match(expected: str, supplied: str | None) -> bool:
    """Constant-time comparison; empty or missing keys never match."""
    if not expected or not supplied:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))
