"""
Action Types
============

Building blocks shared by every device action:

- ``ActionModel``: base of the frozen pydantic models that make up the
  ``ParsedAction`` tagged union (one model per action tag).
- ``ActionContext``: per-step execution context handed to handlers.
- ``ActionResult``: what a handler reports back.
- ``ActionDefinition``: a registry entry (tag, prompt text, schema, handler).
- ``to_absolute``: maps the model's 0-999 grid onto device pixels.
"""

import asyncio
from dataclasses import dataclass
from math import floor
from typing import Annotated, Any, Awaitable, Callable, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from phone_agent.device.base import DeviceCapability

# The model addresses the screen on a virtual 0-999 grid, origin top-left
GRID_SIZE = 1000

Coordinate = Annotated[int, Field(ge=0, le=GRID_SIZE - 1)]
Point = tuple[Coordinate, Coordinate]


def to_absolute(rel: Sequence[float], width: int, height: int) -> tuple[int, int]:
    """
    Convert grid coordinates to device pixels.

    ``floor(rel / 1000 * dimension)`` on each axis, truncating, never rounding.

    Args:
        rel: ``[x, y]`` on the 0-999 grid.
        width: Screen width in pixels.
        height: Screen height in pixels.

    Returns:
        ``(x, y)`` in pixels.
    """
    return floor(rel[0] / GRID_SIZE * width), floor(rel[1] / GRID_SIZE * height)


class ActionModel(BaseModel):
    """Base class for parsed actions. Immutable; equality is structural."""

    model_config = ConfigDict(frozen=True)

    action: str

    def params(self) -> dict[str, Any]:
        """Parameters without the tag, for logs and events."""
        return self.model_dump(mode="json", exclude={"action"}, exclude_none=True)


class Finish(ActionModel):
    """Terminal pseudo-action; not a registry entry."""

    action: Literal["finish"] = "finish"
    message: str


@dataclass(frozen=True)
class ActionResult:
    """
    Result of executing an action.

    Attributes:
        success: Whether the action did what was asked.
        finished: Whether the task should stop after this action.
        message: Optional text for the user or the next prompt.
    """

    success: bool
    finished: bool = False
    message: Optional[str] = None


# Asked before a sensitive tap goes through; returns True to proceed
ConfirmCallback = Callable[[str], Awaitable[bool]]


@dataclass
class ActionContext:
    """
    Everything a handler needs for one step.

    Attributes:
        device: Device capability to act on.
        screen_width: Width of the latest screenshot in pixels.
        screen_height: Height of the latest screenshot in pixels.
        device_id: Target device serial, if not the default one.
        action_delay: Seconds to let the UI settle after an action.
        on_confirm: Optional confirmation callback for sensitive actions.
    """

    device: DeviceCapability
    screen_width: int
    screen_height: int
    device_id: Optional[str] = None
    action_delay: float = 1.0
    on_confirm: Optional[ConfirmCallback] = None

    def to_absolute(self, point: Sequence[float]) -> tuple[int, int]:
        return to_absolute(point, self.screen_width, self.screen_height)

    async def settle(self, factor: float = 1.0) -> None:
        """Wait ``factor * action_delay`` seconds."""
        if self.action_delay > 0:
            await asyncio.sleep(self.action_delay * factor)


ActionHandlerFn = Callable[[Any, ActionContext], Awaitable[ActionResult]]


@dataclass(frozen=True)
class ActionDefinition:
    """
    A registered device action.

    Attributes:
        name: Unique name; equals the ``action`` tag for primary entries.
        description: Prompt text explaining the action to the model.
        usage: Usage template shown to the model.
        params_model: Pydantic model validating the action's parameters.
        handler: Coroutine executing the validated action.
        variant_of: Base action name when this entry is a prompt-only variant.
    """

    name: str
    description: str
    usage: str
    params_model: type[ActionModel]
    handler: ActionHandlerFn
    variant_of: Optional[str] = None


def first_validation_error(exc: ValidationError, tag: Optional[str] = None) -> tuple[str, str]:
    """
    Reduce a pydantic error to ``(field_path, message)``.

    Discriminated unions prefix the location with the tag; that prefix is
    dropped so paths read ``element.0`` rather than ``Tap.element.0``.
    """
    error = exc.errors()[0]
    loc = list(error.get("loc", ()))
    if tag is not None and loc and loc[0] == tag:
        loc = loc[1:]
    return ".".join(str(part) for part in loc), error.get("msg", str(exc))
