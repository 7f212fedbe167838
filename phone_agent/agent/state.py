"""
Task State
==========

Status, step history and timing of a single task run, owned by the
``TaskRunner`` and reset at the start of every task.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class StepRecord:
    """
    What one step saw, decided and achieved.

    Attributes:
        index: 0-based step number within the task.
        thinking: Reasoning text the model produced.
        action: Action as ``{"action": tag, ...params}``; None when the model gave none.
        screenshot: Base64 screenshot the step acted on.
        success: Whether the action (or the model call) went through.
        finished: Whether this step ended the task.
        message: Result, confirmation or error text.
        timestamp: When the record was made.
    """

    index: int
    thinking: str
    action: Optional[dict[str, Any]]
    screenshot: str
    success: bool
    finished: bool
    message: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        data = {
            name: getattr(self, name)
            for name in ("index", "thinking", "action", "screenshot", "success", "finished", "message")
        }
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class AgentState:
    """
    Lifecycle of the current task.

    ``result`` holds the final answer for completed tasks and the error
    text for failed ones.
    """

    task: str = ""
    status: TaskStatus = TaskStatus.PENDING
    history: list[StepRecord] = field(default_factory=list)
    result: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def start_task(self, task: str) -> None:
        self.task = task
        self.status = TaskStatus.RUNNING
        self.history = []
        self.result = None
        self.started_at = datetime.now()
        self.completed_at = None

    def record_step(self, record: StepRecord) -> StepRecord:
        self.history.append(record)
        return record

    def _end(self, status: TaskStatus, result: Optional[str]) -> None:
        self.status = status
        if result is not None:
            self.result = result
        self.completed_at = datetime.now()

    def complete(self, result: str) -> None:
        self._end(TaskStatus.COMPLETED, result)

    def fail(self, error: str) -> None:
        self._end(TaskStatus.FAILED, error)

    def cancel(self) -> None:
        self._end(TaskStatus.CANCELLED, None)

    @property
    def current_step(self) -> int:
        """Number of steps recorded so far."""
        return len(self.history)

    @property
    def duration_seconds(self) -> float:
        """Elapsed time of the task; still counting while it runs."""
        if self.started_at is None:
            return 0.0
        return ((self.completed_at or datetime.now()) - self.started_at).total_seconds()
