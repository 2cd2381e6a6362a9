"""
Completion Client for RagDesk

Async HTTP clients for the answer-generation backends:
- ChatCompletionBackend: OpenAI-compatible /chat/completions
- TextCompletionBackend: plain /completions (e.g. SambaNova)
- AnthropicMessagesBackend: Anthropic /v1/messages

A model's ``llm_model`` tag selects the backend through a dispatch table.
"""

import logging
import os
from typing import Any

import httpx

from ragdesk.errors import CompletionError, InvalidInputError, ServiceTimeoutError
from ragdesk.llm.prompt_templates import build_completion_prompt, build_user_message

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30"))

# LLM generation parameters
DEFAULT_TEMPERATURE = float(os.environ.get("LLM_TEMPERATURE", "0.0"))
DEFAULT_MAX_TOKENS = int(os.environ.get("LLM_MAX_TOKENS", "256"))

SAMBANOVA_BASE_URL = os.environ.get("SAMBANOVA_BASE_URL", "https://api.sambanova.ai/v1")
SAMBANOVA_MODEL = os.environ.get("SAMBANOVA_MODEL", "Meta-Llama-3.1-8B-Instruct")
ANTHROPIC_BASE_URL = os.environ.get("ANTHROPIC_BASE_URL", "https://api.anthropic.com")
ANTHROPIC_MODEL = os.environ.get("ANTHROPIC_MODEL", "claude-3-5-haiku-latest")
ANTHROPIC_VERSION = "2023-06-01"

# Default tag when a caller does not pick one
DEFAULT_LLM_MODEL = "llama-3.1"


class CompletionBackend:
    """One provider endpoint plus its request/response shape."""

    name = "base"
    path = ""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    def build_payload(self, system_prompt: str, context: str, question: str) -> dict:
        raise NotImplementedError

    def parse_answer(self, data: Any) -> str | None:
        raise NotImplementedError

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def complete(self, system_prompt: str, context: str, question: str) -> str:
        """Generate an answer for *question* grounded on *context*.

        Raises:
            CompletionError: On a non-2xx response or unexpected shape.
            ServiceTimeoutError: If the provider does not answer in time.
        """
        payload = self.build_payload(system_prompt, context, question)
        url = f"{self.base_url}{self.path}"

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout)
            ) as client:
                response = await client.post(url, json=payload, headers=self.headers())
        except httpx.TimeoutException as e:
            raise ServiceTimeoutError(
                "Completion request timed out",
                {"backend": self.name, "model": self.model},
            ) from e
        except httpx.RequestError as e:
            raise CompletionError(
                "Completion provider unreachable",
                details={"backend": self.name, "reason": str(e)},
            ) from e

        if not response.is_success:
            logger.warning(
                "%s backend returned HTTP %d", self.name, response.status_code
            )
            raise CompletionError(
                "Completion provider returned an error",
                status=response.status_code,
                body=response.text,
                details={"backend": self.name},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise CompletionError(
                "Completion provider returned non-JSON body",
                status=response.status_code,
                body=response.text,
                details={"backend": self.name},
            ) from e

        answer = self.parse_answer(data)
        if not isinstance(answer, str):
            logger.error("Invalid response structure from %s backend", self.name)
            raise CompletionError(
                "Invalid response from completion provider",
                status=response.status_code,
                body=data,
                details={"backend": self.name},
            )
        return answer.strip()


def _first_choice(data: Any) -> dict | None:
    choices = data.get("choices") if isinstance(data, dict) else None
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return None


class ChatCompletionBackend(CompletionBackend):
    """Instruction-tuned chat endpoint (OpenAI-compatible schema)."""

    name = "chat"
    path = "/chat/completions"

    def build_payload(self, system_prompt: str, context: str, question: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": build_user_message(context, question)},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def parse_answer(self, data: Any) -> str | None:
        choice = _first_choice(data)
        message = choice.get("message") if choice else None
        return message.get("content") if isinstance(message, dict) else None


class TextCompletionBackend(CompletionBackend):
    """Plain prompt-in, text-out completion endpoint."""

    name = "completion"
    path = "/completions"

    def build_payload(self, system_prompt: str, context: str, question: str) -> dict:
        return {
            "model": self.model,
            "prompt": build_completion_prompt(system_prompt, context, question),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def parse_answer(self, data: Any) -> str | None:
        choice = _first_choice(data)
        return choice.get("text") if choice else None


class AnthropicMessagesBackend(CompletionBackend):
    """Anthropic Messages API."""

    name = "anthropic"
    path = "/v1/messages"

    def headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key, "anthropic-version": ANTHROPIC_VERSION}

    def build_payload(self, system_prompt: str, context: str, question: str) -> dict:
        return {
            "model": self.model,
            "system": system_prompt,
            "messages": [
                {"role": "user", "content": build_user_message(context, question)}
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def parse_answer(self, data: Any) -> str | None:
        blocks = data.get("content") if isinstance(data, dict) else None
        if not isinstance(blocks, list):
            return None
        for block in blocks:
            if isinstance(block, dict) and block.get("type") == "text":
                return block.get("text")
        return None


def default_backends() -> dict[str, CompletionBackend]:
    """Tag → backend table built from environment configuration."""
    sambanova_key = os.environ.get("SAMBANOVA_API_KEY", "")
    return {
        "llama-3.1": TextCompletionBackend(
            SAMBANOVA_BASE_URL, sambanova_key, SAMBANOVA_MODEL
        ),
        "llama-3.1-chat": ChatCompletionBackend(
            SAMBANOVA_BASE_URL, sambanova_key, SAMBANOVA_MODEL
        ),
        "claude": AnthropicMessagesBackend(
            ANTHROPIC_BASE_URL,
            os.environ.get("ANTHROPIC_API_KEY", ""),
            ANTHROPIC_MODEL,
        ),
    }


class CompletionClient:
    """Dispatches completion requests to the backend named by a model tag."""

    def __init__(self, backends: dict[str, CompletionBackend] | None = None) -> None:
        self.backends = backends if backends is not None else default_backends()

    def backend_for(self, llm_model: str) -> CompletionBackend:
        """Resolve a tag to its backend.

        Raises:
            InvalidInputError: If the tag is unknown.
        """
        try:
            return self.backends[llm_model]
        except KeyError:
            raise InvalidInputError(
                f"Unknown LLM model '{llm_model}'",
                {"field": "llmModel", "supported": sorted(self.backends)},
            ) from None

    async def complete(
        self, system_prompt: str, context: str, question: str, llm_model: str
    ) -> str:
        backend = self.backend_for(llm_model)
        logger.info("Generating answer with %s backend (%s)", backend.name, backend.model)
        return await backend.complete(system_prompt, context, question)
