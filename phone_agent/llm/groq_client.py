"""
Groq LLM Client
================

Streaming chat client for Groq-hosted vision models.

Uses the official ``groq`` Python SDK, which follows the OpenAI-compatible
chat completions format, so messages (including ``image_url`` data URIs)
are passed through unchanged.

Usage:
    from phone_agent.llm.groq_client import GroqChatClient
    from phone_agent.llm.models import LLMConfig

    client = GroqChatClient(LLMConfig(
        api_key="gsk_...",
        model="meta-llama/llama-4-scout-17b-16e-instruct",
    ))
    async for fragment in client.stream_chat(messages):
        ...
"""

import asyncio
from typing import AsyncIterator, Optional

from groq import APIError as GroqAPIError
from groq import AsyncGroq

from phone_agent.llm.models import ChatMessage, ChatModel, LLMConfig, LLMError, check_cancelled
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

# Default Groq vision model
DEFAULT_GROQ_MODEL = "meta-llama/llama-4-scout-17b-16e-instruct"


class GroqChatClient(ChatModel):
    """
    Async Groq client with streaming support.

    SDK retries are disabled: transport errors surface to the caller.
    """

    def __init__(self, config: LLMConfig, client: Optional[AsyncGroq] = None) -> None:
        """
        Initialize the Groq client.

        Args:
            config: LLM configuration with API credentials.
            client: Optional pre-built SDK client.
        """
        if not config.api_key and client is None:
            raise ValueError("Groq API key is required")
        self.config = config
        self.model = config.model or DEFAULT_GROQ_MODEL
        self._client = client or AsyncGroq(api_key=config.api_key, max_retries=0)

        logger.info("Groq client initialized", model=self.model)

    async def stream_chat(
        self,
        messages: list[ChatMessage],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        """
        Stream a chat completion from Groq.

        Args:
            messages: Conversation in OpenAI chat format.
            cancel_event: Stops the stream when set.

        Yields:
            Content fragments.

        Raises:
            LLMError: On API failure or cancellation.
        """
        check_cancelled(cancel_event)
        try:
            stream = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                top_p=self.config.top_p,
                frequency_penalty=self.config.frequency_penalty,
                stream=True,
            )
            async for chunk in stream:
                check_cancelled(cancel_event)
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content

        except GroqAPIError as e:
            status = getattr(e, "status_code", None)
            logger.error("Groq API error during streaming", error=str(e), status=status)
            raise LLMError(f"API 错误: {status or e}", status_code=status) from e

    async def close(self) -> None:
        await self._client.close()
