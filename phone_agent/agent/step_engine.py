"""
Agent Step Engine
=================

One step of the phone agent:

1. Observe: capture a screenshot and the foreground app
2. Think: stream the model's reply, surfacing thinking as it arrives
3. Parse: extract the action; on a format error, tell the model and ask again
4. Act: dispatch the action and report the step result

Phases: IDLE -> AWAITING_MODEL -> PARSING -> (PARSE_RETRY -> AWAITING_MODEL)
| DISPATCHING -> DONE. Parse retries happen inside the step and do not count
as new steps.

Usage:
    from phone_agent.agent.step_engine import PhoneAgent

    agent = PhoneAgent(device=device, llm=llm)
    async for event in agent.step("打开微信"):
        ...
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Optional, Sequence

from phone_agent.agent.actions.base import ActionContext, ConfirmCallback, Finish
from phone_agent.agent.actions.handler import ActionHandler
from phone_agent.agent.actions.registry import ActionRegistry, default_registry
from phone_agent.agent.conversation import Conversation
from phone_agent.agent.events import (
    ActionChosen,
    ScreenshotTaken,
    StepEvent,
    StepFinished,
    StepResult,
    ThinkingUpdate,
)
from phone_agent.agent.prompts import (
    UNKNOWN_APP,
    build_format_error_prompt,
    build_screen_info,
    build_system_prompt,
    build_task_text,
)
from phone_agent.device.base import DeviceCapability, Screenshot
from phone_agent.device.screenshot import blank_screenshot
from phone_agent.llm.models import ChatModel
from phone_agent.llm.response_parser import ParsedResponse, parse_response
from phone_agent.llm.stream_parser import StreamDone, ThinkingDelta, interpret_stream
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)


class StepPhase(str, Enum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    PARSING = "parsing"
    PARSE_RETRY = "parse_retry"
    DISPATCHING = "dispatching"
    DONE = "done"


@dataclass
class AgentConfig:
    """
    Configuration for the step engine.

    Attributes:
        max_parse_retries: Corrective model rounds allowed per step.
        action_delay: Seconds to let the UI settle after an action.
    """

    max_parse_retries: int = 3
    action_delay: float = 1.0


class PhoneAgent:
    """
    Screenshot -> model -> action engine for one device.

    Owns its conversation; steps must run one at a time.
    """

    def __init__(
        self,
        device: DeviceCapability,
        llm: ChatModel,
        registry: Optional[ActionRegistry] = None,
        config: Optional[AgentConfig] = None,
        device_id: Optional[str] = None,
        history: Optional[Sequence[dict[str, str]]] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_confirm: Optional[ConfirmCallback] = None,
    ) -> None:
        """
        Initialize the agent.

        Args:
            device: Device capability to observe and act on.
            llm: Streaming chat model.
            registry: Action registry, defaults to the built-in catalogue.
            config: Engine configuration.
            device_id: Target device serial.
            history: Earlier text-only ``{"role", "content"}`` turns to seed.
            cancel_event: Passed to the model so a request can be abandoned.
            on_confirm: Confirmation callback for sensitive taps.
        """
        self.device = device
        self.llm = llm
        self.registry = registry if registry is not None else default_registry()
        self.config = config if config is not None else AgentConfig()
        self.device_id = device_id
        self.history = [dict(m) for m in history or []]
        self.cancel_event = cancel_event
        self.on_confirm = on_confirm

        self.handler = ActionHandler(self.registry)
        self.conversation = Conversation()
        self.phase = StepPhase.IDLE
        self.current_task = ""
        self.step_count = 0
        self.last_screenshot: Optional[Screenshot] = None
        self._in_step = False

    def reset(self) -> None:
        """Clear the conversation, current task and counters."""
        self.conversation.reset()
        self.current_task = ""
        self.step_count = 0
        self.last_screenshot = None
        self.phase = StepPhase.IDLE

    async def _capture(self) -> tuple[Screenshot, str]:
        try:
            screenshot = await self.device.screenshot(self.device_id)
        except Exception as e:
            logger.warning("Screenshot failed, using fallback", error=str(e))
            screenshot = blank_screenshot()

        try:
            current_app = await self.device.current_app(self.device_id) or UNKNOWN_APP
        except Exception as e:
            logger.warning("Current app lookup failed", error=str(e))
            current_app = UNKNOWN_APP

        return screenshot, current_app

    def _seed(self) -> None:
        self.conversation.add_system(build_system_prompt(self.registry))
        for message in self.history:
            if message.get("role") == "assistant":
                self.conversation.add_assistant(message.get("content", ""))
            elif message.get("role") == "user":
                self.conversation.add_user(message.get("content", ""))

    async def step(self, task: Optional[str] = None) -> AsyncIterator[StepEvent]:
        """
        Run one step.

        Args:
            task: Task text; required on the first step of a task.

        Yields:
            ScreenshotTaken, ThinkingUpdate*, ActionChosen?, then StepFinished.

        Raises:
            ValueError: If no task was ever set.
            RuntimeError: If another step is in flight.
        """
        if task:
            self.current_task = task
        if not self.current_task:
            raise ValueError("需要设置 task")
        if self._in_step:
            raise RuntimeError("A step is already running")

        self._in_step = True
        try:
            async for event in self._run_step():
                yield event
        finally:
            self._in_step = False

    async def _run_step(self) -> AsyncIterator[StepEvent]:
        self.step_count += 1
        screenshot, current_app = await self._capture()
        self.last_screenshot = screenshot
        yield ScreenshotTaken(screenshot)

        if self.conversation.is_empty:
            self._seed()
            text = build_task_text(self.current_task, current_app)
        else:
            text = build_screen_info(current_app)
        self.conversation.add_user(text, screenshot.base64)

        logger.info("Step started", step=self.step_count, app=current_app)

        retries = 0
        while True:
            self.phase = StepPhase.AWAITING_MODEL
            raw = ""
            streamed = ""
            try:
                stream = self.llm.stream_chat(self.conversation.to_messages(), self.cancel_event)
                async for event in interpret_stream(stream):
                    if isinstance(event, ThinkingDelta):
                        streamed = event.thinking
                        yield ThinkingUpdate(event.thinking)
                    elif isinstance(event, StreamDone):
                        raw = event.content
            except Exception as e:
                logger.error("Model request failed", step=self.step_count, error=str(e))
                self.phase = StepPhase.DONE
                yield StepFinished(
                    StepResult(success=False, finished=True, thinking=streamed, message=f"模型错误: {e}")
                )
                return

            self.phase = StepPhase.PARSING
            parsed: ParsedResponse = parse_response(raw)
            if parsed.thinking and parsed.thinking != streamed:
                yield ThinkingUpdate(parsed.thinking)

            self.conversation.add_assistant(raw)

            if parsed.error is None:
                break

            if retries >= self.config.max_parse_retries:
                logger.error("Parse retries exhausted", step=self.step_count, error=str(parsed.error))
                self.phase = StepPhase.DONE
                yield StepFinished(
                    StepResult(
                        success=False,
                        finished=True,
                        thinking=parsed.thinking,
                        message=f"Action 格式错误次数过多: {parsed.error}",
                    )
                )
                return

            retries += 1
            self.phase = StepPhase.PARSE_RETRY
            logger.warning("Action format error, asking model to correct", attempt=retries, error=str(parsed.error))
            self.conversation.add_user(build_format_error_prompt(parsed.error))

        thinking = parsed.thinking
        action = parsed.action
        if action is None:
            self.phase = StepPhase.DONE
            yield StepFinished(StepResult(success=True, finished=True, thinking=thinking, message=thinking))
            return

        yield ActionChosen(action)
        self.conversation.strip_latest_image()

        self.phase = StepPhase.DISPATCHING
        ctx = ActionContext(
            device=self.device,
            screen_width=screenshot.width,
            screen_height=screenshot.height,
            device_id=self.device_id,
            action_delay=self.config.action_delay,
            on_confirm=self.on_confirm,
        )
        result = await self.handler.execute(action, ctx)

        is_finish = isinstance(action, Finish)
        self.phase = StepPhase.DONE
        yield StepFinished(
            StepResult(
                success=result.success,
                finished=is_finish or result.finished,
                thinking=thinking,
                action=action,
                message=result.message or (action.message if is_finish else None),
            )
        )

    async def run_step(self, task: Optional[str] = None) -> StepResult:
        """Run one step and return only its result."""
        result: Optional[StepResult] = None
        async for event in self.step(task):
            if isinstance(event, StepFinished):
                result = event.result
        if result is None:
            raise RuntimeError("Step produced no result")
        return result
