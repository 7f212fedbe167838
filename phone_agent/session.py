"""
Session Management
==================

The single active chat session of the web API.

A session binds one device to a text-only message history so that
follow-up tasks see what came before. Screenshots are never stored.
Creating a session closes the previous one; cancelling a task sets the
session's cancel event and installs a fresh one for the next task.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional

from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SessionMessage:
    role: Literal["user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class Session:
    """
    An active session.

    Attributes:
        id: Short random identifier.
        device_id: Serial of the bound device.
        messages: Text-only history.
        cancel_event: Signal for the running task; replaced after each cancel.
        created_at: Creation time.
    """

    id: str
    device_id: str
    messages: list[SessionMessage] = field(default_factory=list)
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "messages": [m.to_dict() for m in self.messages],
            "created_at": self.created_at.isoformat(),
        }


class SessionManager:
    """
    Holds at most one session.
    """

    def __init__(self) -> None:
        self._current: Optional[Session] = None

    def create(self, device_id: str) -> Session:
        """
        Create a session, closing any existing one.

        Args:
            device_id: Device serial to bind.

        Returns:
            The new session.
        """
        self.close()
        session = Session(id=uuid.uuid4().hex[:8], device_id=device_id)
        self._current = session
        logger.info("Session created", session_id=session.id, device_id=device_id)
        return session

    def close(self) -> None:
        """Cancel any running task and drop the session."""
        if self._current is not None:
            self._current.cancel_event.set()
            logger.info("Session closed", session_id=self._current.id)
            self._current = None

    def get(self) -> Optional[Session]:
        return self._current

    def append_user(self, content: str) -> None:
        if self._current is not None:
            self._current.messages.append(SessionMessage("user", content))

    def append_assistant(self, content: str) -> None:
        if self._current is not None:
            self._current.messages.append(SessionMessage("assistant", content))

    def history(self) -> list[dict[str, str]]:
        """Copy of the message history in chat format."""
        if self._current is None:
            return []
        return [m.to_dict() for m in self._current.messages]

    def cancel_task(self) -> bool:
        """
        Signal the running task to stop.

        Returns:
            True if there was a session to cancel.
        """
        if self._current is None:
            return False
        self._current.cancel_event.set()
        self._current.cancel_event = asyncio.Event()
        logger.info("Task cancel requested", session_id=self._current.id)
        return True
