"""
Special Actions
===============

Actions that do not touch the device: handing control to the user
(Take_over, Interact) and bookkeeping (Note, Call_API).
"""

from typing import Literal, Optional

from phone_agent.agent.actions.base import (
    ActionContext,
    ActionDefinition,
    ActionModel,
    ActionResult,
)
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)


class TakeOver(ActionModel):
    action: Literal["Take_over"] = "Take_over"
    message: str = "需要用户手动操作"


class Note(ActionModel):
    action: Literal["Note"] = "Note"
    message: Optional[str] = None
    content: Optional[str] = None


class CallApi(ActionModel):
    action: Literal["Call_API"] = "Call_API"
    instruction: str


class Interact(ActionModel):
    action: Literal["Interact"] = "Interact"


async def handle_take_over(action: TakeOver, ctx: ActionContext) -> ActionResult:
    """Stop the task so the user can act (login, captcha, verification)."""
    logger.info("Take over requested", message=action.message)
    return ActionResult(success=True, finished=True, message=action.message)


async def handle_note(action: Note, ctx: ActionContext) -> ActionResult:
    logger.info("Note recorded", content=action.content, message=action.message)
    return ActionResult(success=True)


async def handle_call_api(action: CallApi, ctx: ActionContext) -> ActionResult:
    logger.info("Call API", instruction=action.instruction)
    return ActionResult(success=True)


async def handle_interact(action: Interact, ctx: ActionContext) -> ActionResult:
    return ActionResult(success=True, message="需要用户选择")


TAKE_OVER = ActionDefinition(
    name="Take_over",
    description="Take_over是接管操作，表示在登录和验证阶段需要用户协助。",
    usage='do(action="Take_over", message="xxx")',
    params_model=TakeOver,
    handler=handle_take_over,
)

NOTE = ActionDefinition(
    name="Note",
    description="记录当前页面内容以便后续总结。",
    usage='do(action="Note", message="True")',
    params_model=Note,
    handler=handle_note,
)

CALL_API = ActionDefinition(
    name="Call_API",
    description="总结或评论当前页面或已记录的内容。",
    usage='do(action="Call_API", instruction="xxx")',
    params_model=CallApi,
    handler=handle_call_api,
)

INTERACT = ActionDefinition(
    name="Interact",
    description="Interact是当有多个满足条件的选项时而触发的交互操作，询问用户如何选择。",
    usage='do(action="Interact")',
    params_model=Interact,
    handler=handle_interact,
)
