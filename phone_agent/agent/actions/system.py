"""
System Actions
==============

Navigation keys (Back, Home) and Wait.
"""

import asyncio
import re
from typing import Literal, Union

from pydantic import StrictFloat, StrictInt, StrictStr

from phone_agent.agent.actions.base import (
    ActionContext,
    ActionDefinition,
    ActionModel,
    ActionResult,
)

DEFAULT_WAIT_SECONDS = 1.0


class Back(ActionModel):
    action: Literal["Back"] = "Back"


class Home(ActionModel):
    action: Literal["Home"] = "Home"


class Wait(ActionModel):
    action: Literal["Wait"] = "Wait"
    # Booleans are not durations
    duration: Union[StrictStr, StrictInt, StrictFloat] = "1 seconds"


def parse_duration(duration: Union[str, float, None]) -> float:
    """
    Extract seconds from a duration such as ``"3 seconds"`` or ``2.5``.

    Everything but digits and dots is dropped; anything unparseable or zero
    falls back to one second.
    """
    digits = re.sub(r"[^\d.]", "", str(duration if duration is not None else ""))
    try:
        seconds = float(digits)
    except ValueError:
        return DEFAULT_WAIT_SECONDS
    return seconds or DEFAULT_WAIT_SECONDS


async def handle_back(action: Back, ctx: ActionContext) -> ActionResult:
    if not await ctx.device.back(ctx.device_id):
        return ActionResult(success=False, message="返回失败")
    await ctx.settle()
    return ActionResult(success=True)


async def handle_home(action: Home, ctx: ActionContext) -> ActionResult:
    if not await ctx.device.home(ctx.device_id):
        return ActionResult(success=False, message="回到桌面失败")
    await ctx.settle()
    return ActionResult(success=True)


async def handle_wait(action: Wait, ctx: ActionContext) -> ActionResult:
    await asyncio.sleep(parse_duration(action.duration))
    return ActionResult(success=True)


BACK = ActionDefinition(
    name="Back",
    description=(
        "导航返回到上一个屏幕或关闭当前对话框。相当于按下 Android 的返回按钮。"
        "使用此操作可以从更深的屏幕返回、关闭弹出窗口或退出当前上下文。此操作完成后，您将自动收到结果状态的截图。"
    ),
    usage='do(action="Back")',
    params_model=Back,
    handler=handle_back,
)

HOME = ActionDefinition(
    name="Home",
    description=(
        "Home是回到系统桌面的操作，相当于按下 Android 主屏幕按钮。使用此操作可退出当前应用并返回启动器，"
        "或从已知状态启动新任务。此操作完成后，您将自动收到结果状态的截图。"
    ),
    usage='do(action="Home")',
    params_model=Home,
    handler=handle_home,
)

WAIT = ActionDefinition(
    name="Wait",
    description="等待页面加载，x为需要等待多少秒。",
    usage='do(action="Wait", duration="x seconds")',
    params_model=Wait,
    handler=handle_wait,
)
