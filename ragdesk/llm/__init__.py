"""
RagDesk LLM Module

Answer generation components:
- CompletionClient: dispatches to a backend by model tag
- Backends: chat completions, plain completions, Anthropic messages
- Prompt templates: grounded-answer prompt and context budget
"""

from ragdesk.llm.completion_client import (
    DEFAULT_LLM_MODEL,
    AnthropicMessagesBackend,
    ChatCompletionBackend,
    CompletionBackend,
    CompletionClient,
    TextCompletionBackend,
)
from ragdesk.llm.prompt_templates import SYSTEM_PROMPT, build_context

__all__ = [
    "CompletionClient",
    "CompletionBackend",
    "ChatCompletionBackend",
    "TextCompletionBackend",
    "AnthropicMessagesBackend",
    "DEFAULT_LLM_MODEL",
    "SYSTEM_PROMPT",
    "build_context",
]
