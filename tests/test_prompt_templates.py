"""
Tests for RagDesk prompt assembly.
"""

import pytest

from ragdesk.llm.prompt_templates import (
    CONTEXT_SEPARATOR,
    SYSTEM_PROMPT,
    build_completion_prompt,
    build_context,
    build_user_message,
    truncate_at_sentence,
)


class TestTruncateAtSentence:
    @pytest.mark.unit
    def test_short_text_unchanged(self):
        assert truncate_at_sentence("Short text.", 100) == "Short text."

    @pytest.mark.unit
    def test_cuts_at_sentence_boundary(self):
        text = "First sentence here. Second sentence here. Third one is long."
        assert truncate_at_sentence(text, 50) == "First sentence here. Second sentence here."

    @pytest.mark.unit
    def test_hard_cut_without_boundary(self):
        assert truncate_at_sentence("a" * 100, 30) == "a" * 30


class TestBuildContext:
    @pytest.mark.unit
    def test_keeps_order(self):
        context = build_context(["best match", "second match"])
        assert context == f"best match{CONTEXT_SEPARATOR}second match"

    @pytest.mark.unit
    def test_skips_blank_texts(self):
        assert build_context(["", "  ", "real"]) == "real"

    @pytest.mark.unit
    def test_respects_budget(self):
        texts = ["x" * 500, "y" * 500, "z" * 500]

        context = build_context(texts, max_chars=800)

        assert len(context) <= 800
        assert context.startswith("x" * 500)
        assert "z" not in context

    @pytest.mark.unit
    def test_oversized_first_text_is_truncated(self):
        context = build_context(["w" * 1000], max_chars=300)
        assert context == "w" * 300

    @pytest.mark.unit
    def test_small_remainder_is_dropped(self):
        context = build_context(["x" * 700, "y" * 500], max_chars=800)
        assert context == "x" * 700


class TestPrompts:
    @pytest.mark.unit
    def test_system_prompt_restricts_to_context(self):
        assert "ONLY" in SYSTEM_PROMPT
        assert "context" in SYSTEM_PROMPT

    @pytest.mark.unit
    def test_user_message_contains_context_and_question(self):
        message = build_user_message("Paris is the capital.", "What is the capital?")
        assert "Paris is the capital." in message
        assert message.endswith("Question: What is the capital?")

    @pytest.mark.unit
    def test_completion_prompt_ends_with_answer_cue(self):
        prompt = build_completion_prompt(SYSTEM_PROMPT, "ctx", "q?")
        assert prompt.startswith(SYSTEM_PROMPT)
        assert prompt.endswith("Answer:")
