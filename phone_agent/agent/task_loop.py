"""
Task Loop
=========

Runs steps until the task finishes, the step budget runs out or the task
is cancelled, translating step events into task events for the CLI and
the WebSocket.

Cancellation is cooperative: the event is checked before each step, so an
in-flight step completes (or its model request aborts) and no further
step starts.

Usage:
    runner = TaskRunner(agent, max_steps=100)
    async for event in runner.run_task("打开微信"):
        print(event.to_dict())
"""

import asyncio
from contextlib import aclosing
from typing import AsyncIterator, Optional

from phone_agent.agent.events import (
    ActionChosen,
    ScreenshotTaken,
    StepFinished,
    StepResult,
    TaskAction,
    TaskCancelled,
    TaskCompleted,
    TaskEvent,
    TaskFailed,
    TaskScreenshot,
    TaskStarted,
    TaskStep,
    TaskThinking,
    ThinkingUpdate,
    action_to_dict,
)
from phone_agent.agent.state import AgentState, StepRecord
from phone_agent.agent.step_engine import PhoneAgent
from phone_agent.utils.logger import LogContext, get_logger

logger = get_logger(__name__)

DEFAULT_RESULT = "完成"
CANCELLED_RESULT = "任务已取消"


class TaskFailedError(Exception):
    """Raised by ``TaskRunner.run`` when the task fails."""


class TaskRunner:
    """
    Drives a PhoneAgent through a whole task.

    Attributes:
        agent: The step engine.
        max_steps: Step budget per task.
        cancel_event: Cancellation signal shared with the agent.
        state: State of the current or last task.
    """

    def __init__(
        self,
        agent: PhoneAgent,
        max_steps: int = 100,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be positive")
        self.agent = agent
        self.max_steps = max_steps
        self.cancel_event = cancel_event or agent.cancel_event or asyncio.Event()
        # The model request watches the same signal
        self.agent.cancel_event = self.cancel_event
        self.state = AgentState()

    def cancel(self) -> None:
        self.cancel_event.set()

    async def run_task(self, task: str) -> AsyncIterator[TaskEvent]:
        """
        Run a task, streaming progress.

        Args:
            task: Natural-language task.

        Yields:
            started, then per step screenshot/thinking/action/step events,
            then exactly one of completed, cancelled or failed.
        """
        self.agent.reset()
        self.state.start_task(task)

        with LogContext(task=task[:50]):
            logger.info("Task started", max_steps=self.max_steps)
            yield TaskStarted(task)

            step_index = 0
            result: Optional[StepResult] = None
            last_thinking = ""

            try:
                while True:
                    if self.cancel_event.is_set():
                        logger.info("Task cancelled", steps=step_index)
                        self.state.cancel()
                        yield TaskCancelled()
                        return

                    result = None
                    screenshot = ""
                    current_thinking = ""

                    async for event in self.agent.step(task if step_index == 0 else None):
                        if isinstance(event, ScreenshotTaken):
                            screenshot = event.screenshot.base64
                            yield TaskScreenshot(step_index, screenshot)
                        elif isinstance(event, ThinkingUpdate):
                            current_thinking = event.thinking
                            yield TaskThinking(step_index, event.thinking, screenshot)
                        elif isinstance(event, ActionChosen):
                            yield TaskAction(step_index, event.action, screenshot)
                        elif isinstance(event, StepFinished):
                            result = event.result
                            last_thinking = result.thinking or current_thinking

                    if result is None:
                        self.state.fail("步骤未返回结果")
                        yield TaskFailed("步骤未返回结果")
                        return

                    record = self.state.record_step(
                        StepRecord(
                            index=step_index,
                            thinking=result.thinking,
                            action=action_to_dict(result.action),
                            screenshot=screenshot,
                            success=result.success,
                            finished=result.finished,
                            message=result.message,
                        )
                    )
                    step_index += 1
                    yield TaskStep(record)

                    if result.finished:
                        # A request aborted by cancellation reports as cancelled
                        if not result.success and self.cancel_event.is_set():
                            continue
                        break
                    if step_index >= self.max_steps:
                        logger.warning("Step budget exhausted", max_steps=self.max_steps)
                        break

            except Exception as e:
                logger.exception("Task failed", error=str(e))
                self.state.fail(str(e))
                yield TaskFailed(str(e))
                return

            final = (result.message if result else None) or last_thinking or DEFAULT_RESULT
            logger.info("Task completed", steps=step_index, duration=self.state.duration_seconds)
            self.state.complete(final)
            yield TaskCompleted(final)

    async def run(self, task: str) -> str:
        """
        Run a task to completion.

        Returns:
            Final result text, or ``任务已取消`` when cancelled.

        Raises:
            TaskFailedError: If the task failed.
        """
        final = DEFAULT_RESULT
        async with aclosing(self.run_task(task)) as events:
            async for event in events:
                if isinstance(event, TaskCompleted):
                    final = event.result
                elif isinstance(event, TaskFailed):
                    raise TaskFailedError(event.error)
                elif isinstance(event, TaskCancelled):
                    return CANCELLED_RESULT
        return final
