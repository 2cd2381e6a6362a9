"""
Prompt Templates for RagDesk

Assembles the grounded-answer prompt: a fixed system instruction, the
retrieved chunk texts in similarity order under a character budget, and
the caller's question.
"""

import os
import re

SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer the user's question using ONLY the "
    "provided context. If the answer is not in the context, say that it is "
    "not found in the provided context. Be concise and professional."
)

CONTEXT_SEPARATOR = "\n\n---\n\n"

DEFAULT_MAX_CONTEXT_CHARS = int(os.environ.get("LLM_MAX_CONTEXT_CHARS", "24000"))

# Below this many remaining characters a partial chunk is not worth adding
_MIN_PARTIAL_CHARS = 200


def truncate_at_sentence(text: str, max_chars: int) -> str:
    """Truncate text at a sentence boundary, falling back to hard cut.

    Finds the last sentence-ending punctuation (. ? !) followed by a space
    before the limit, but only if it's past the halfway point.
    """
    if len(text) <= max_chars:
        return text
    half = max_chars // 2
    search_region = text[half:max_chars]
    match = None
    for m in re.finditer(r"[.!?](?:\s|$)", search_region):
        match = m
    if match:
        cut = half + match.end()
        return text[:cut].rstrip()
    return text[:max_chars]


def build_context(
    texts: list[str], max_chars: int = DEFAULT_MAX_CONTEXT_CHARS
) -> str:
    """Join retrieved chunk texts under a total character budget.

    Texts keep their order (descending similarity). The first text that
    does not fit is cut at a sentence boundary; later ones are dropped.
    """
    sections: list[str] = []
    used = 0
    for text in texts:
        text = text.strip()
        if not text:
            continue
        separator = len(CONTEXT_SEPARATOR) if sections else 0
        remaining = max_chars - used - separator
        if len(text) <= remaining:
            sections.append(text)
            used += separator + len(text)
            continue
        if remaining >= _MIN_PARTIAL_CHARS or not sections:
            sections.append(truncate_at_sentence(text, max(remaining, 0)))
        break
    return CONTEXT_SEPARATOR.join(s for s in sections if s)


def build_user_message(context: str, question: str) -> str:
    """User turn for chat-style backends."""
    return f"Context:\n{context}\n\nQuestion: {question}"


def build_completion_prompt(system_prompt: str, context: str, question: str) -> str:
    """Single prompt string for plain-completion backends."""
    return (
        f"{system_prompt}\n\n"
        f"Context:\n{context}\n\n"
        f"Question: {question}\n\n"
        "Answer:"
    )
