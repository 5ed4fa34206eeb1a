"""Tests for prompt assembly."""

from __future__ import annotations

from marginalia.llm.prompt import (
    build_explain_question,
    build_messages,
    excerpt,
    history_through,
)
from marginalia.models import Message, Role


def _conversation() -> list[Message]:
    return [
        Message(id=1, role=Role.USER, content="Describe the fox"),
        Message(id=2, role=Role.ASSISTANT, content="The quick brown fox"),
        Message(id=3, role=Role.ERROR, content="Rate limited"),
        Message(id=4, role=Role.USER, content="And the dog?"),
        Message(id=5, role=Role.ASSISTANT, content=""),
    ]


class TestBuildMessages:
    """History is converted to API message dicts."""

    def test_roles_and_content(self) -> None:
        """User and assistant turns map to API roles; errors and blanks drop."""
        assert build_messages(_conversation()) == [
            {"role": "user", "content": "Describe the fox"},
            {"role": "assistant", "content": "The quick brown fox"},
            {"role": "user", "content": "And the dog?"},
        ]

    def test_empty_history(self) -> None:
        """No messages gives an empty list."""
        assert build_messages([]) == []


class TestExplainHelpers:
    """Explanation questions, context and titles."""

    def test_history_through(self) -> None:
        """Context ends at the highlighted message."""
        assert [m.id for m in history_through(_conversation(), 2)] == [1, 2]

    def test_default_question(self) -> None:
        """The default template quotes the selected text."""
        assert build_explain_question("quick") == (
            'Please explain the part "quick" in a little more detail.'
        )

    def test_custom_template(self) -> None:
        """Templates substitute {text}."""
        assert build_explain_question("fox", "Define {text}.") == "Define fox."

    def test_excerpt(self) -> None:
        """Long text is cut to the limit plus an ellipsis."""
        assert excerpt("short") == "short"
        assert excerpt("x" * 20) == "x" * 20
        assert excerpt("x" * 21) == "x" * 20 + "..."
        assert excerpt("abcdef", limit=3) == "abc..."
