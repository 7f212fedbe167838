"""
LLM Integration Module
======================

Streaming chat clients and response parsing for the phone agent.

This package contains:
    - models: Client configuration, LLMError and the ChatModel interface
    - client: OpenAI-compatible SSE client (AutoGLM by default)
    - groq_client: Groq client
    - gemini_client: Google Gemini client
    - response_parser: Parse ``do(...)``/``finish(...)`` invocations
    - stream_parser: Split a streamed reply into thinking and action

Supports three providers, selected by ``LLM_PROVIDER``:
    - ``openai``: any OpenAI-compatible endpoint (default: AutoGLM)
    - ``groq``: Groq via the groq SDK
    - ``gemini``: Google Gemini via the google-genai SDK
"""

from typing import TYPE_CHECKING, Optional

from phone_agent.llm.client import OpenAICompatClient
from phone_agent.llm.models import ChatModel, LLMConfig, LLMError
from phone_agent.llm.response_parser import (
    ACTION_MARKERS,
    ParsedResponse,
    ParseError,
    ParseResult,
    parse_action,
    parse_response,
)
from phone_agent.llm.stream_parser import StreamDone, ThinkingDelta, interpret_stream

if TYPE_CHECKING:
    from phone_agent.config import LLMSettings


def create_llm_client(settings: "LLMSettings", model: Optional[str] = None) -> ChatModel:
    """
    Build the chat client for the configured provider.

    Args:
        settings: LLM settings.
        model: Optional model override.

    Returns:
        A ChatModel implementation.

    Raises:
        ValueError: If the provider is unknown or misconfigured.
    """
    config = LLMConfig(
        model=model or settings.get_active_model(),
        api_key=settings.get_active_api_key(),
        base_url=settings.autoglm_base_url,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
        top_p=settings.llm_top_p,
        frequency_penalty=settings.llm_frequency_penalty,
    )

    if settings.llm_provider == "openai":
        return OpenAICompatClient(config)
    if settings.llm_provider == "groq":
        from phone_agent.llm.groq_client import GroqChatClient

        return GroqChatClient(config)
    if settings.llm_provider == "gemini":
        from phone_agent.llm.gemini_client import GeminiChatClient

        return GeminiChatClient(config)

    raise ValueError(f"Unknown LLM provider: {settings.llm_provider}")


__all__ = [
    "ACTION_MARKERS",
    "ChatModel",
    "LLMConfig",
    "LLMError",
    "OpenAICompatClient",
    "ParseError",
    "ParseResult",
    "ParsedResponse",
    "StreamDone",
    "ThinkingDelta",
    "create_llm_client",
    "interpret_stream",
    "parse_action",
    "parse_response",
]
