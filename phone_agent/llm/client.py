"""
OpenAI-Compatible LLM Client
============================

Streaming client for ``{base_url}/chat/completions`` endpoints (AutoGLM on
open.bigmodel.cn, or any OpenAI-compatible server).

The reply arrives as server-sent events; each ``data:`` line carries a JSON
chunk whose ``choices[0].delta.content`` is the next text fragment, and
``data: [DONE]`` ends the stream.

Usage:
    from phone_agent.llm.client import OpenAICompatClient
    from phone_agent.llm.models import LLMConfig

    client = OpenAICompatClient(LLMConfig(model="autoglm-phone", api_key="...",
                                          base_url="https://open.bigmodel.cn/api/paas/v4"))
    async for fragment in client.stream_chat(messages):
        print(fragment, end="")
"""

import asyncio
import json
from typing import AsyncIterator, Optional

import httpx

from phone_agent.llm.models import ChatMessage, ChatModel, LLMConfig, LLMError, check_cancelled
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

SSE_PREFIX = "data: "
SSE_DONE = "[DONE]"


def parse_sse_line(line: str) -> Optional[str]:
    """
    Extract the content fragment from one SSE line.

    Returns None for non-data lines, the ``[DONE]`` sentinel, malformed
    JSON and chunks without content.
    """
    if not line.startswith(SSE_PREFIX):
        return None
    data = line[len(SSE_PREFIX):].strip()
    if not data or data == SSE_DONE:
        return None

    try:
        chunk = json.loads(data)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed SSE chunk", data=data[:100])
        return None

    choices = chunk.get("choices") or []
    if not choices:
        return None
    return (choices[0].get("delta") or {}).get("content") or None


class OpenAICompatClient(ChatModel):
    """
    Async streaming client over httpx.

    The read timeout is disabled; a stalled upstream blocks until the
    caller cancels.
    """

    def __init__(
        self,
        config: LLMConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: LLM configuration; ``base_url`` is required.
            http_client: Optional pre-built httpx client (tests inject a mock transport).
        """
        if not config.base_url:
            raise ValueError("base_url is required for OpenAI-compatible providers")
        self.config = config
        self.model = config.model
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=config.connect_timeout),
        )

        logger.info("OpenAI-compatible client initialized", model=config.model, base_url=config.base_url)

    @property
    def endpoint(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/chat/completions"

    def _build_payload(self, messages: list[ChatMessage]) -> dict:
        return {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
            "frequency_penalty": self.config.frequency_penalty,
            "stream": True,
        }

    async def stream_chat(
        self,
        messages: list[ChatMessage],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        """
        Stream a chat completion.

        Args:
            messages: Conversation in OpenAI chat format.
            cancel_event: Stops the stream when set.

        Yields:
            Content fragments.

        Raises:
            LLMError: On non-200 status, transport failure or cancellation.
        """
        check_cancelled(cancel_event)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

        try:
            async with self._client.stream(
                "POST",
                self.endpoint,
                headers=headers,
                json=self._build_payload(messages),
            ) as response:
                if response.status_code != 200:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.error(
                        "Chat completion request failed",
                        status=response.status_code,
                        body=body[:200],
                    )
                    raise LLMError(f"API 错误: {response.status_code}", status_code=response.status_code)

                async for line in response.aiter_lines():
                    check_cancelled(cancel_event)
                    if line.startswith(SSE_PREFIX) and line[len(SSE_PREFIX):].strip() == SSE_DONE:
                        return
                    fragment = parse_sse_line(line)
                    if fragment:
                        yield fragment

        except httpx.HTTPError as e:
            logger.error("Chat completion transport error", error=str(e))
            raise LLMError(f"网络错误: {e}") from e

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
