"""
API Dependencies
================

FastAPI dependencies resolving the collaborators stored on ``app.state``
by ``create_app``: settings, device and session manager.
"""

from typing import Callable

from fastapi import Request

from phone_agent.config import Settings
from phone_agent.device.base import DeviceCapability
from phone_agent.llm.models import ChatModel
from phone_agent.session import SessionManager

LLMFactory = Callable[[], ChatModel]


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_device(request: Request) -> DeviceCapability:
    return request.app.state.device


def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions
