"""
Shared Test Fixtures
====================

Pytest fixtures used across all test modules.
Provides correctly-typed mocks matching the actual codebase APIs.
"""

import os

# Set env vars BEFORE any phone_agent.* imports so settings load predictably
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("AUTOGLM_BASE_URL", "http://llm.test/v1")
os.environ.setdefault("AUTOGLM_API_KEY", "test-api-key-for-testing")
os.environ.setdefault("GROQ_API_KEY", "gsk_test-groq-key-for-testing")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key-for-testing")
os.environ.setdefault("DEBUG", "true")

import asyncio
import copy
from typing import AsyncIterator, Optional, Sequence, Union
from unittest.mock import AsyncMock, MagicMock

import pytest

from phone_agent.device.base import DeviceCapability, DeviceInfo, Screenshot
from phone_agent.llm.models import ChatMessage, ChatModel, check_cancelled

# A 1x1 black PNG
TINY_PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8/5+hHgAHggJ/PchI7wAAAABJRU5ErkJggg=="
)

SCREEN_WIDTH = 1080
SCREEN_HEIGHT = 1920


def chunk(text: str, size: int = 5) -> list[str]:
    """Split text into fixed-size fragments, like a token stream."""
    return [text[i:i + size] for i in range(0, len(text), size)]


Reply = Union[str, Sequence[str], Exception]


class FakeChatModel(ChatModel):
    """
    Scripted streaming model.

    Each call to ``stream_chat`` consumes the next reply: a string (streamed
    in small fragments), an explicit fragment list, or an exception to raise.
    """

    def __init__(self, replies: Sequence[Reply], model: str = "fake-model") -> None:
        self.replies = list(replies)
        self.model = model
        self.calls: list[list[ChatMessage]] = []
        self.cancel_events: list[Optional[asyncio.Event]] = []
        self.closed = False

    async def stream_chat(
        self,
        messages: list[ChatMessage],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        self.calls.append(copy.deepcopy(messages))
        self.cancel_events.append(cancel_event)
        if not self.replies:
            raise AssertionError("FakeChatModel ran out of replies")

        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply

        fragments = chunk(reply) if isinstance(reply, str) else list(reply)
        for fragment in fragments:
            check_cancelled(cancel_event)
            yield fragment

    async def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Device mock
# ---------------------------------------------------------------------------

@pytest.fixture
def screenshot() -> Screenshot:
    return Screenshot(base64=TINY_PNG_B64, width=SCREEN_WIDTH, height=SCREEN_HEIGHT)


@pytest.fixture
def mock_device(screenshot) -> MagicMock:
    """Create a mock DeviceCapability with every primitive mocked."""
    device = MagicMock(spec=DeviceCapability)

    device.list_devices = AsyncMock(
        return_value=[
            DeviceInfo(
                device_id="emulator-5554",
                status="device",
                model="sdk_gphone64",
                brand="google",
                android_version="14",
            )
        ]
    )

    # Observation
    device.screenshot = AsyncMock(return_value=screenshot)
    device.current_app = AsyncMock(return_value="微信")

    # Primitives; all succeed by default
    device.tap = AsyncMock(return_value=True)
    device.swipe = AsyncMock(return_value=True)
    device.long_press = AsyncMock(return_value=True)
    device.double_tap = AsyncMock(return_value=True)
    device.back = AsyncMock(return_value=True)
    device.home = AsyncMock(return_value=True)
    device.recent = AsyncMock(return_value=True)
    device.type_text = AsyncMock(return_value=True)
    device.clear_text = AsyncMock(return_value=True)
    device.launch_app = AsyncMock(return_value=True)
    device.key_event = AsyncMock(return_value=True)

    return device


@pytest.fixture
def fake_llm_factory():
    """Build a FakeChatModel from scripted replies."""

    def _make(*replies: Reply) -> FakeChatModel:
        return FakeChatModel(list(replies))

    return _make
