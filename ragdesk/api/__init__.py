"""
RagDesk API Module

Request/response schemas, API key authentication and the endpoint relay.
"""

from ragdesk.api.auth import API_KEY_HEADER, generate_api_key, keys_match

__all__ = [
    "API_KEY_HEADER",
    "generate_api_key",
    "keys_match",
]
