"""Prompt assembly for chat turns and supplementary explanations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal, TypedDict

from marginalia.models import Role

if TYPE_CHECKING:
    from collections.abc import Sequence

    from anthropic.types import MessageParam

    from marginalia.models import Message


DEFAULT_EXPLAIN_PROMPT = 'Please explain the part "{text}" in a little more detail.'


class MessageDict(TypedDict):
    """Message format compatible with Claude API."""

    role: Literal["user", "assistant"]
    content: str


def build_messages(messages: Sequence[Message]) -> list[MessageParam]:
    """Build the messages array from conversation history.

    Error messages are UI-only and never sent back to the model.

    Args:
        messages: Conversation history in order.

    Returns:
        List of message dicts with 'role' and 'content' keys.
    """
    result: list[MessageDict] = []

    for message in messages:
        if message.role is Role.ERROR or not message.content:
            continue
        role: Literal["user", "assistant"] = (
            "user" if message.role is Role.USER else "assistant"
        )
        result.append({"role": role, "content": message.content})

    # Cast to MessageParam for type compatibility with Anthropic SDK
    return result  # type: ignore[return-value]


def history_through(messages: Sequence[Message], message_id: int) -> list[Message]:
    """Return the conversation up to and including *message_id*.

    Explanations are asked in the context the highlighted message was written
    in; later turns are left out.
    """
    return [m for m in messages if m.id <= message_id]


def build_explain_question(text: str, template: str = DEFAULT_EXPLAIN_PROMPT) -> str:
    """Build the follow-up question asking for more detail on *text*."""
    return template.format(text=text)


def excerpt(text: str, limit: int = 20) -> str:
    """Shorten *text* to *limit* characters for drawer titles."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text
