"""
Launch Action
=============

Open an app by display name (``微信``) or package id (``com.tencent.mm``).
Name resolution lives with the device (``phone_agent.device.apps``); the
device reports False when nothing matches.
"""

from typing import Literal

from pydantic import Field

from phone_agent.agent.actions.base import (
    ActionContext,
    ActionDefinition,
    ActionModel,
    ActionResult,
)
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)


class Launch(ActionModel):
    action: Literal["Launch"] = "Launch"
    app: str = Field(min_length=1)


async def handle_launch(action: Launch, ctx: ActionContext) -> ActionResult:
    """
    Launch the requested app.

    Args:
        action: Validated Launch action.
        ctx: Step context.

    Returns:
        ActionResult; failure when the app is unknown or fails to start.
    """
    if not await ctx.device.launch_app(action.app, ctx.device_id):
        logger.warning("App not found", app=action.app)
        return ActionResult(success=False, message=f"应用不存在: {action.app}")

    # Cold starts take longer than in-app transitions
    await ctx.settle(2)
    return ActionResult(success=True)


LAUNCH = ActionDefinition(
    name="Launch",
    description="Launch是启动目标app的操作，这比通过主屏幕导航更快。此操作完成后，您将自动收到结果状态的截图。",
    usage='do(action="Launch", app="xxx")',
    params_model=Launch,
    handler=handle_launch,
)
