"""
LLM Model Configuration
=======================

Shared configuration, error type and client interface for the model
providers.

Messages use the OpenAI chat format throughout; a user turn's content is
either a string or a list of ``text``/``image_url`` parts. Providers with a
different wire format convert at their own boundary.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

# OpenAI-style chat message
ChatMessage = dict[str, Any]


@dataclass
class LLMConfig:
    """
    Configuration for a chat model client.

    Attributes:
        model: Model identifier.
        api_key: API key for authentication.
        base_url: Endpoint root for OpenAI-compatible providers.
        max_tokens: Maximum tokens in the reply.
        temperature: Sampling temperature (0.0-2.0).
        top_p: Nucleus sampling parameter.
        frequency_penalty: Penalty for repeated tokens.
        connect_timeout: Seconds to wait for the connection; reads never time out.
    """

    model: str
    api_key: str = ""
    base_url: str = ""
    max_tokens: int = 3000
    temperature: float = 0.0
    top_p: float = 0.85
    frequency_penalty: float = 0.2
    connect_timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.model:
            raise ValueError("model is required")
        if self.temperature < 0 or self.temperature > 2:
            raise ValueError("Temperature must be between 0 and 2")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")
        if self.top_p < 0 or self.top_p > 1:
            raise ValueError("top_p must be between 0 and 1")


class LLMError(Exception):
    """Exception raised for LLM-related errors (network, API status, cancellation)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChatModel(ABC):
    """
    Streaming chat model.

    Concatenating every fragment yielded by ``stream_chat`` gives the full
    reply.
    """

    model: str = ""

    @abstractmethod
    def stream_chat(
        self,
        messages: list[ChatMessage],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        """
        Stream a reply to ``messages``.

        Args:
            messages: Conversation in OpenAI chat format.
            cancel_event: Stops the stream with LLMError when set.

        Yields:
            Raw text fragments.

        Raises:
            LLMError: On network or API failure, or cancellation.
        """

    async def close(self) -> None:
        """Release network resources."""


def check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
    """Raise LLMError if the request was cancelled."""
    if cancel_event is not None and cancel_event.is_set():
        raise LLMError("请求已取消")
