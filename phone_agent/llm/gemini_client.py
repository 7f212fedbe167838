"""
Gemini LLM Client
=================

Streaming chat client for Google Gemini.

Uses the official google-genai SDK for Python. OpenAI-format messages are
converted at this boundary:

- ``system`` turns become the system instruction
- ``assistant`` turns become ``model`` contents
- ``image_url`` data URIs become inline image parts

Usage:
    from phone_agent.llm.gemini_client import GeminiChatClient
    from phone_agent.llm.models import LLMConfig

    client = GeminiChatClient(LLMConfig(api_key="AIza...", model="gemini-2.5-flash"))
    async for fragment in client.stream_chat(messages):
        ...
"""

import asyncio
import base64
import re
from typing import Any, AsyncIterator, Optional

from google import genai
from google.genai import types
from google.genai.errors import APIError

from phone_agent.llm.models import ChatMessage, ChatModel, LLMConfig, LLMError, check_cancelled
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)


def _to_parts(content: Any) -> list[types.Part]:
    """Convert OpenAI message content into Gemini parts."""
    if isinstance(content, str):
        return [types.Part.from_text(text=content)]

    parts: list[types.Part] = []
    for item in content or []:
        if item.get("type") == "text":
            parts.append(types.Part.from_text(text=item.get("text", "")))
        elif item.get("type") == "image_url":
            url = (item.get("image_url") or {}).get("url", "")
            match = _DATA_URI_RE.match(url)
            if not match:
                logger.warning("Skipping non data-URI image", url=url[:50])
                continue
            parts.append(
                types.Part.from_bytes(
                    data=base64.b64decode(match.group("data")),
                    mime_type=match.group("mime"),
                )
            )
    return parts


def to_gemini_contents(
    messages: list[ChatMessage],
) -> tuple[Optional[str], list[types.Content]]:
    """
    Split OpenAI messages into ``(system_instruction, contents)``.
    """
    system_texts: list[str] = []
    contents: list[types.Content] = []

    for message in messages:
        role = message.get("role")
        content = message.get("content")
        if role == "system":
            system_texts.append(content if isinstance(content, str) else str(content))
            continue
        contents.append(
            types.Content(
                role="model" if role == "assistant" else "user",
                parts=_to_parts(content),
            )
        )

    return ("\n\n".join(system_texts) or None), contents


class GeminiChatClient(ChatModel):
    """
    Async Gemini client with streaming support.
    """

    def __init__(self, config: LLMConfig, client: Optional[genai.Client] = None) -> None:
        """
        Initialize the Gemini client.

        Args:
            config: LLM configuration with API credentials.
            client: Optional pre-built SDK client.
        """
        if not config.api_key and client is None:
            raise ValueError("Google AI API key is required")
        self.config = config
        self.model = config.model
        self._client = client or genai.Client(api_key=config.api_key)

        logger.info("Gemini client initialized", model=self.model)

    async def stream_chat(
        self,
        messages: list[ChatMessage],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        """
        Stream a reply from Gemini.

        Args:
            messages: Conversation in OpenAI chat format.
            cancel_event: Stops the stream when set.

        Yields:
            Content fragments.

        Raises:
            LLMError: On API failure or cancellation.
        """
        check_cancelled(cancel_event)
        system_instruction, contents = to_gemini_contents(messages)
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            max_output_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            top_p=self.config.top_p,
        )

        try:
            stream = await self._client.aio.models.generate_content_stream(
                model=self.model,
                contents=contents,
                config=config,
            )
            async for chunk in stream:
                check_cancelled(cancel_event)
                if chunk.text:
                    yield chunk.text

        except APIError as e:
            logger.error("Gemini API error during streaming", error=str(e), code=e.code)
            raise LLMError(f"API 错误: {e.code}", status_code=e.code) from e
