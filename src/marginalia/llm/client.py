"""Chat transport: streaming completions into a ``StreamingBuffer``."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Protocol

import anthropic

from marginalia.llm.prompt import build_messages
from marginalia.models import Usage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from marginalia.models import Message, StreamingBuffer

logger = logging.getLogger(__name__)


class ChatTransport(Protocol):
    """Protocol for completion transports.

    Implementations append chunks to *buffer* as they arrive and return the
    final token usage once the stream completes.
    """

    async def stream(
        self,
        messages: Sequence[Message],
        buffer: StreamingBuffer,
        *,
        system: str | None = None,
    ) -> Usage:
        """Stream a reply to *messages* into *buffer*.

        Args:
            messages: Conversation so far, oldest first.
            buffer: Receives the reply as append-only chunks.
            system: Optional system prompt.

        Returns:
            Token usage for the completed reply.
        """
        ...


class ClaudeTransport:
    """Streams replies from the Claude API.

    Uses the async Anthropic client for non-blocking API calls.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 4096,
    ) -> None:
        """Initialize the Claude transport.

        Args:
            api_key: Anthropic API key. If not provided, reads from ANTHROPIC_API_KEY.
            model: Model identifier to use.
            max_tokens: Completion token limit per reply.

        Raises:
            ValueError: If no API key is available.
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError("API key required. Set ANTHROPIC_API_KEY or pass api_key.")

        self.model = model
        self.max_tokens = max_tokens
        self._client = anthropic.AsyncAnthropic(api_key=self.api_key)

    async def stream(
        self,
        messages: Sequence[Message],
        buffer: StreamingBuffer,
        *,
        system: str | None = None,
    ) -> Usage:
        """Stream a reply into *buffer* and return its usage.

        Text already appended stays in *buffer* if the stream fails part way;
        the error is logged and re-raised.
        """
        api_params: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": build_messages(messages),
        }
        if system:
            api_params["system"] = system

        buffer.model = self.model
        try:
            async with self._client.messages.stream(**api_params) as stream:
                async for text in stream.text_stream:
                    buffer.append(text)
                final = await stream.get_final_message()
        except Exception:
            logger.error(
                "Stream error after %d chars", len(buffer), exc_info=True
            )
            raise

        return Usage(
            prompt_tokens=final.usage.input_tokens,
            completion_tokens=final.usage.output_tokens,
        )
