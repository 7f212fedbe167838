"""
Tests for Model Clients
=======================

Tests for:
- SSE line parsing
- OpenAICompatClient streaming over a mock httpx transport
- Status, transport and cancellation errors
- Groq and Gemini adapters (SDK clients mocked)
- Provider selection in create_llm_client
"""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from groq import APIError as GroqAPIError

from phone_agent.config import LLMSettings
from phone_agent.llm import create_llm_client
from phone_agent.llm.client import OpenAICompatClient, parse_sse_line
from phone_agent.llm.gemini_client import GeminiChatClient, to_gemini_contents
from phone_agent.llm.groq_client import GroqChatClient
from phone_agent.llm.models import LLMConfig, LLMError
from tests.conftest import TINY_PNG_B64

BASE_URL = "http://llm.test/v1"


def _sse_body(*fragments: str, trailing: str = "") -> str:
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": fragment}}]}, ensure_ascii=False)
        for fragment in fragments
    ]
    lines.append("data: [DONE]")
    return "\n\n".join(lines) + "\n\n" + trailing


def _config(**overrides) -> LLMConfig:
    values = {"model": "autoglm-phone", "api_key": "test-key", "base_url": BASE_URL}
    values.update(overrides)
    return LLMConfig(**values)


def _client(handler) -> tuple[OpenAICompatClient, httpx.AsyncClient]:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenAICompatClient(_config(), http_client=http_client), http_client


async def _drain(stream) -> list[str]:
    return [fragment async for fragment in stream]


async def _aiter(items):
    for item in items:
        yield item


MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]


class TestParseSSELine:
    """Tests for SSE line parsing."""

    def test_content_chunk(self):
        line = 'data: {"choices": [{"delta": {"content": "你好"}}]}'

        assert parse_sse_line(line) == "你好"

    @pytest.mark.parametrize(
        "line",
        [
            "",
            ": keep-alive",
            "data: [DONE]",
            "data: {not json",
            'data: {"choices": []}',
            'data: {"choices": [{"delta": {"role": "assistant"}}]}',
        ],
    )
    def test_lines_without_content(self, line):
        assert parse_sse_line(line) is None


class TestLLMConfig:
    """Tests for client configuration validation."""

    def test_defaults(self):
        config = LLMConfig(model="m")

        assert config.max_tokens == 3000
        assert config.temperature == 0.0
        assert config.top_p == 0.85
        assert config.frequency_penalty == 0.2

    @pytest.mark.parametrize(
        "overrides",
        [{"model": ""}, {"temperature": 3.0}, {"max_tokens": 0}, {"top_p": 1.5}],
    )
    def test_invalid(self, overrides):
        with pytest.raises(ValueError):
            _config(**overrides)


class TestOpenAICompatClient:
    """Tests for the OpenAI-compatible streaming client."""

    @pytest.mark.asyncio
    async def test_streams_fragments(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text=_sse_body("你好", "，世界"))

        client, _ = _client(handler)
        fragments = await _drain(client.stream_chat(MESSAGES))

        assert fragments == ["你好", "，世界"]
        request = requests[0]
        assert str(request.url) == f"{BASE_URL}/chat/completions"
        assert request.headers["Authorization"] == "Bearer test-key"
        payload = json.loads(request.content)
        assert payload["model"] == "autoglm-phone"
        assert payload["messages"] == MESSAGES
        assert payload["stream"] is True
        assert payload["max_tokens"] == 3000
        assert payload["top_p"] == 0.85
        assert payload["frequency_penalty"] == 0.2

    @pytest.mark.asyncio
    async def test_stops_at_done(self):
        trailing = 'data: {"choices": [{"delta": {"content": "late"}}]}\n\n'

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text=_sse_body("a", trailing=trailing))

        client, _ = _client(handler)

        assert await _drain(client.stream_chat(MESSAGES)) == ["a"]

    @pytest.mark.asyncio
    async def test_non_200_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream exploded")

        client, _ = _client(handler)

        with pytest.raises(LLMError) as exc_info:
            await _drain(client.stream_chat(MESSAGES))

        assert str(exc_info.value) == "API 错误: 500"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = _client(handler)

        with pytest.raises(LLMError, match="^网络错误"):
            await _drain(client.stream_chat(MESSAGES))

    @pytest.mark.asyncio
    async def test_cancelled_before_request(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text=_sse_body("a"))

        client, _ = _client(handler)
        event = asyncio.Event()
        event.set()

        with pytest.raises(LLMError, match="请求已取消"):
            await _drain(client.stream_chat(MESSAGES, event))
        assert requests == []

    def test_base_url_required(self):
        with pytest.raises(ValueError):
            OpenAICompatClient(LLMConfig(model="m"))

    def test_endpoint_strips_trailing_slash(self):
        client = OpenAICompatClient(_config(base_url=BASE_URL + "/"), http_client=MagicMock())

        assert client.endpoint == f"{BASE_URL}/chat/completions"

    @pytest.mark.asyncio
    async def test_close_keeps_injected_client(self):
        client, http_client = _client(lambda request: httpx.Response(200))

        await client.close()

        assert http_client.is_closed is False
        await http_client.aclose()


class TestGroqChatClient:
    """Tests for the Groq adapter."""

    @staticmethod
    def _chunk(content):
        return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])

    @pytest.mark.asyncio
    async def test_streams_content(self):
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(
            return_value=_aiter([self._chunk("打开"), self._chunk(None), self._chunk("微信")])
        )
        client = GroqChatClient(_config(model="llama"), client=sdk)

        assert await _drain(client.stream_chat(MESSAGES)) == ["打开", "微信"]
        kwargs = sdk.chat.completions.create.await_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["model"] == "llama"
        assert kwargs["messages"] == MESSAGES

    @pytest.mark.asyncio
    async def test_api_error(self):
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(
            side_effect=GroqAPIError(
                "rate limited",
                request=httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions"),
                body=None,
            )
        )
        client = GroqChatClient(_config(), client=sdk)

        with pytest.raises(LLMError, match="^API 错误"):
            await _drain(client.stream_chat(MESSAGES))

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            GroqChatClient(_config(api_key=""))


class TestGeminiChatClient:
    """Tests for the Gemini adapter."""

    def test_message_conversion(self):
        messages = [
            {"role": "system", "content": "sys"},
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{TINY_PNG_B64}"}},
                    {"type": "text", "text": "task"},
                ],
            },
            {"role": "assistant", "content": "reply"},
        ]

        system, contents = to_gemini_contents(messages)

        assert system == "sys"
        assert [c.role for c in contents] == ["user", "model"]
        image, text = contents[0].parts
        assert image.inline_data.mime_type == "image/png"
        assert text.text == "task"
        assert contents[1].parts[0].text == "reply"

    @pytest.mark.asyncio
    async def test_streams_text(self):
        sdk = MagicMock()
        sdk.aio.models.generate_content_stream = AsyncMock(
            return_value=_aiter([SimpleNamespace(text="打开"), SimpleNamespace(text=None), SimpleNamespace(text="微信")])
        )
        client = GeminiChatClient(_config(model="gemini-2.5-flash"), client=sdk)

        assert await _drain(client.stream_chat(MESSAGES)) == ["打开", "微信"]
        kwargs = sdk.aio.models.generate_content_stream.await_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["config"].system_instruction == "sys"


class TestCreateLLMClient:
    """Tests for provider selection."""

    def test_openai(self):
        settings = LLMSettings(llm_provider="openai", autoglm_base_url=BASE_URL, autoglm_api_key="k")
        client = create_llm_client(settings)

        assert isinstance(client, OpenAICompatClient)
        assert client.model == "autoglm-phone"
        assert client.endpoint == f"{BASE_URL}/chat/completions"

    def test_model_override(self):
        settings = LLMSettings(llm_provider="openai", autoglm_base_url=BASE_URL, autoglm_api_key="k")

        assert create_llm_client(settings, model="other").model == "other"

    def test_groq(self):
        settings = LLMSettings(llm_provider="groq", groq_api_key="gsk_test")

        assert isinstance(create_llm_client(settings), GroqChatClient)

    def test_gemini(self):
        settings = LLMSettings(llm_provider="gemini", gemini_api_key="test")

        assert isinstance(create_llm_client(settings), GeminiChatClient)
