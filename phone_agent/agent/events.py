"""
Agent Events
============

Events streamed while the agent works.

Step events come out of ``PhoneAgent.step()``; task events come out of
``TaskRunner.run_task()`` and are what the CLI and the WebSocket show.
Every task event serializes to ``{"type": ..., "data": {...}}``.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Union

from phone_agent.agent.actions.base import ActionModel
from phone_agent.agent.state import StepRecord
from phone_agent.device.base import Screenshot


def action_to_dict(action: Optional[ActionModel]) -> Optional[dict[str, Any]]:
    """Serialize an action as ``{"action": tag, **params}``."""
    if action is None:
        return None
    return action.model_dump(mode="json", exclude_none=True)


@dataclass(frozen=True)
class StepResult:
    """
    Outcome of one step.

    Attributes:
        success: Whether the step did what the model asked.
        finished: Whether the task should stop.
        thinking: Model's reasoning.
        action: Parsed action, if any.
        message: Result or error text.
    """

    success: bool
    finished: bool
    thinking: str = ""
    action: Optional[ActionModel] = None
    message: Optional[str] = None


# Step events


@dataclass(frozen=True)
class ScreenshotTaken:
    screenshot: Screenshot


@dataclass(frozen=True)
class ThinkingUpdate:
    thinking: str


@dataclass(frozen=True)
class ActionChosen:
    action: ActionModel


@dataclass(frozen=True)
class StepFinished:
    result: StepResult


StepEvent = Union[ScreenshotTaken, ThinkingUpdate, ActionChosen, StepFinished]


# Task events


class TaskEventBase:
    type: ClassVar[str] = ""

    def payload(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.payload()}


@dataclass(frozen=True)
class TaskStarted(TaskEventBase):
    type: ClassVar[str] = "started"
    task: str = ""

    def payload(self) -> dict[str, Any]:
        return {"task": self.task}


@dataclass(frozen=True)
class TaskScreenshot(TaskEventBase):
    type: ClassVar[str] = "screenshot"
    step_index: int
    screenshot: str

    def payload(self) -> dict[str, Any]:
        return {"step_index": self.step_index, "screenshot": self.screenshot}


@dataclass(frozen=True)
class TaskThinking(TaskEventBase):
    type: ClassVar[str] = "thinking"
    step_index: int
    thinking: str
    screenshot: str

    def payload(self) -> dict[str, Any]:
        return {
            "step_index": self.step_index,
            "thinking": self.thinking,
            "screenshot": self.screenshot,
        }


@dataclass(frozen=True)
class TaskAction(TaskEventBase):
    type: ClassVar[str] = "action"
    step_index: int
    action: ActionModel
    screenshot: str

    def payload(self) -> dict[str, Any]:
        return {
            "step_index": self.step_index,
            "action": action_to_dict(self.action),
            "screenshot": self.screenshot,
        }


@dataclass(frozen=True)
class TaskStep(TaskEventBase):
    type: ClassVar[str] = "step"
    step: StepRecord

    def payload(self) -> dict[str, Any]:
        return {"step": self.step.to_dict()}


@dataclass(frozen=True)
class TaskCompleted(TaskEventBase):
    type: ClassVar[str] = "completed"
    result: str

    def payload(self) -> dict[str, Any]:
        return {"result": self.result}


@dataclass(frozen=True)
class TaskCancelled(TaskEventBase):
    type: ClassVar[str] = "cancelled"


@dataclass(frozen=True)
class TaskFailed(TaskEventBase):
    type: ClassVar[str] = "failed"
    error: str

    def payload(self) -> dict[str, Any]:
        return {"error": self.error}


TaskEvent = Union[
    TaskStarted,
    TaskScreenshot,
    TaskThinking,
    TaskAction,
    TaskStep,
    TaskCompleted,
    TaskCancelled,
    TaskFailed,
]
