"""
WebSocket Handler
=================

WebSocket endpoint for running tasks with live progress.

Client -> Server:
    {"type": "start_task", "data": {"task": "打开微信"}}
    {"type": "cancel_task"}
    {"type": "ping"}

Server -> Client:
    task events ({"type": "started" | "screenshot" | "thinking" | "action"
    | "step" | "completed" | "cancelled" | "failed", "data": {...}}),
    {"type": "pong"} and {"type": "error", "data": {"message": ...}}.

Only one task runs at a time; it drives the device of the current session
and its result is appended to the session history.
"""

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from fastapi import WebSocket, WebSocketDisconnect

from phone_agent.agent.events import TaskCompleted, TaskFailed
from phone_agent.agent.step_engine import AgentConfig, PhoneAgent
from phone_agent.agent.task_loop import TaskRunner
from phone_agent.api.deps import LLMFactory
from phone_agent.config import Settings
from phone_agent.device.base import DeviceCapability
from phone_agent.llm.models import ChatModel
from phone_agent.session import Session, SessionManager
from phone_agent.utils.logger import LogContext, get_logger

logger = get_logger(__name__)


class MessageType(str, Enum):
    """WebSocket message types."""

    # Client -> Server
    START_TASK = "start_task"
    CANCEL_TASK = "cancel_task"
    PING = "ping"

    # Server -> Client
    PONG = "pong"
    ERROR = "error"


@dataclass
class WSMessage:
    """WebSocket message structure."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.data}

    @classmethod
    def from_json(cls, text: str) -> "WSMessage":
        """
        Parse from JSON string.

        Raises:
            ValueError: If the text is not a JSON object.
        """
        parsed = json.loads(text)
        if not isinstance(parsed, dict):
            raise ValueError("Message must be a JSON object")
        return cls(type=str(parsed.get("type", "")), data=parsed.get("data") or {})


class WebSocketManager:
    """
    Runs tasks for WebSocket clients.

    Handles:
    - Message routing
    - The background task and its cancellation
    - Session history updates
    """

    def __init__(
        self,
        settings: Settings,
        device: DeviceCapability,
        sessions: SessionManager,
        llm_factory: LLMFactory,
    ) -> None:
        self.settings = settings
        self.device = device
        self.sessions = sessions
        self.llm_factory = llm_factory
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def send(self, websocket: WebSocket, payload: dict[str, Any]) -> bool:
        try:
            await websocket.send_json(payload)
            return True
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.warning("Failed to send message", error=str(e))
            return False

    async def send_error(self, websocket: WebSocket, message: str) -> None:
        await self.send(websocket, WSMessage(MessageType.ERROR.value, {"message": message}).to_dict())

    async def handle_message(self, websocket: WebSocket, raw_message: str) -> None:
        """
        Handle an incoming WebSocket message.

        Args:
            websocket: Client connection.
            raw_message: Raw message text.
        """
        try:
            message = WSMessage.from_json(raw_message)
        except ValueError:
            await self.send_error(websocket, "Invalid JSON")
            return

        if message.type == MessageType.PING.value:
            await self.send(websocket, WSMessage(MessageType.PONG.value).to_dict())
        elif message.type == MessageType.START_TASK.value:
            await self.start_task(websocket, str(message.data.get("task", "")).strip())
        elif message.type == MessageType.CANCEL_TASK.value:
            self.sessions.cancel_task()
        else:
            logger.warning("Unknown message type", type=message.type)
            await self.send_error(websocket, f"Unknown message type: {message.type}")

    async def start_task(self, websocket: WebSocket, task: str) -> None:
        """Start a task in the background for the current session."""
        if not task:
            await self.send_error(websocket, "任务不能为空")
            return

        session = self.sessions.get()
        if session is None:
            await self.send_error(websocket, "请先创建会话")
            return

        if self.is_running:
            await self.send_error(websocket, "已有任务正在执行")
            return

        try:
            llm = self.llm_factory()
        except ValueError as e:
            logger.error("Model client unavailable", error=str(e))
            await self.send_error(websocket, f"模型配置错误: {e}")
            return

        self.sessions.append_user(task)
        agent = PhoneAgent(
            device=self.device,
            llm=llm,
            config=AgentConfig(
                max_parse_retries=self.settings.agent.max_parse_retries,
                action_delay=self.settings.agent.action_delay,
            ),
            device_id=session.device_id,
            # Everything but the task just added
            history=self.sessions.history()[:-1],
            cancel_event=session.cancel_event,
        )
        runner = TaskRunner(
            agent,
            max_steps=self.settings.agent.autoglm_max_steps,
            cancel_event=session.cancel_event,
        )
        self._task = asyncio.create_task(self._run_task(websocket, session, runner, llm, task))

    async def _run_task(
        self,
        websocket: WebSocket,
        session: Session,
        runner: TaskRunner,
        llm: ChatModel,
        task: str,
    ) -> None:
        """Stream task events to the client and record the outcome."""
        with LogContext(session_id=session.id):
            try:
                async for event in runner.run_task(task):
                    if isinstance(event, TaskCompleted):
                        self._append_result(session, event.result)
                    elif isinstance(event, TaskFailed):
                        self._append_result(session, f"执行出错: {event.error}")
                    await self.send(websocket, event.to_dict())
            except asyncio.CancelledError:
                logger.info("Task aborted")
                raise
            finally:
                await llm.close()

    def _append_result(self, session: Session, content: str) -> None:
        # The session may have been replaced while the task ran
        if self.sessions.get() is session:
            self.sessions.append_assistant(content)

    async def shutdown(self) -> None:
        """Abort the running task, if any."""
        if self.is_running:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None


async def websocket_endpoint(websocket: WebSocket, manager: WebSocketManager) -> None:
    """
    WebSocket endpoint handler.

    Args:
        websocket: The WebSocket connection.
        manager: Task manager of the application.
    """
    await websocket.accept()
    logger.info("WebSocket connected")

    try:
        while True:
            message = await websocket.receive_text()
            await manager.handle_message(websocket, message)
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected")
        await manager.shutdown()
