"""
Endpoint Relay for RagDesk

Forwards a test message to an externally deployed query endpoint with a
bearer API key and returns its JSON reply, so an operator can exercise a
deployment from the same service.
"""

import logging
import os
from typing import Any

import httpx

from ragdesk.errors import FetchError, InvalidInputError, ServiceTimeoutError
from ragdesk.rag.extractor import validate_url

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30"))


class EndpointRelay:
    """POSTs ``{"message": ...}`` to a remote endpoint."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    async def forward(
        self, url: str | None, api_key: str | None, message: str | None
    ) -> Any:
        """Relay *message* and return the decoded JSON response.

        Raises:
            InvalidInputError: Missing url, key or message.
            FetchError: Upstream failure, carrying its status and body.
            ServiceTimeoutError: Upstream did not answer in time.
        """
        if not url:
            raise InvalidInputError("URL is required", {"field": "url"})
        if not api_key:
            raise InvalidInputError("API key is required", {"field": "apiKey"})
        if not message:
            raise InvalidInputError("Message is required", {"field": "message"})
        validate_url(url)

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout)
            ) as client:
                response = await client.post(
                    url,
                    json={"message": message},
                    headers={"Authorization": f"Bearer {api_key}"},
                )
        except httpx.TimeoutException as e:
            raise ServiceTimeoutError("Relay request timed out", {"url": url}) from e
        except httpx.RequestError as e:
            raise FetchError(
                "Failed to reach endpoint", details={"url": url, "reason": str(e)}
            ) from e

        if not response.is_success:
            logger.info("Relay target %s returned HTTP %d", url, response.status_code)
            raise FetchError(
                "External API error",
                status=response.status_code,
                body=response.text,
                details={"url": url},
            )

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(
                "External API returned non-JSON body",
                status=response.status_code,
                body=response.text,
                details={"url": url},
            ) from e
