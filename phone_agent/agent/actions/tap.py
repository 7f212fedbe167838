"""
Tap Actions
===========

Tap, Double Tap and Long Press, plus the sensitive tap variant.

A tap that carries a ``message`` is sensitive (payment, privacy, deleting
data). Without a confirmation callback the task stops and the message is
surfaced so a human can take over; with one, the tap goes through only if
the callback approves.
"""

from typing import Literal, Optional

from phone_agent.agent.actions.base import (
    ActionContext,
    ActionDefinition,
    ActionModel,
    ActionResult,
    Point,
)
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

LONG_PRESS_MS = 2000


class Tap(ActionModel):
    action: Literal["Tap"] = "Tap"
    element: Point
    message: Optional[str] = None


class DoubleTap(ActionModel):
    action: Literal["Double Tap"] = "Double Tap"
    element: Point


class LongPress(ActionModel):
    action: Literal["Long Press"] = "Long Press"
    element: Point


async def handle_tap(action: Tap, ctx: ActionContext) -> ActionResult:
    """
    Tap at the given grid point.

    Args:
        action: Validated Tap action.
        ctx: Step context.

    Returns:
        ActionResult; finished when a sensitive tap needs a human.
    """
    if action.message:
        if ctx.on_confirm is None:
            logger.warning("Sensitive action requires confirmation", message=action.message)
            return ActionResult(
                success=True,
                finished=True,
                message=f"敏感操作需要人工确认: {action.message}",
            )
        if not await ctx.on_confirm(action.message):
            logger.info("Sensitive action declined", message=action.message)
            return ActionResult(success=False, finished=True, message="用户取消敏感操作")

    x, y = ctx.to_absolute(action.element)
    if not await ctx.device.tap(x, y, ctx.device_id):
        return ActionResult(success=False, message=f"点击失败: ({x}, {y})")

    await ctx.settle()
    return ActionResult(success=True)


async def handle_double_tap(action: DoubleTap, ctx: ActionContext) -> ActionResult:
    x, y = ctx.to_absolute(action.element)
    if not await ctx.device.double_tap(x, y, ctx.device_id):
        return ActionResult(success=False, message=f"双击失败: ({x}, {y})")

    await ctx.settle()
    return ActionResult(success=True)


async def handle_long_press(action: LongPress, ctx: ActionContext) -> ActionResult:
    x, y = ctx.to_absolute(action.element)
    if not await ctx.device.long_press(x, y, LONG_PRESS_MS, ctx.device_id):
        return ActionResult(success=False, message=f"长按失败: ({x}, {y})")

    await ctx.settle()
    return ActionResult(success=True)


TAP = ActionDefinition(
    name="Tap",
    description=(
        "Tap是点击操作，点击屏幕上的特定点。可用此操作点击按钮、选择项目、从主屏幕打开应用程序，"
        "或与任何可点击的用户界面元素进行交互。坐标系统从左上角 (0,0) 开始到右下角（999,999)结束。"
        "此操作完成后，您将自动收到结果状态的截图。"
    ),
    usage='do(action="Tap", element=[x,y])',
    params_model=Tap,
    handler=handle_tap,
)

TAP_SENSITIVE = ActionDefinition(
    name="Tap（敏感）",
    description="基本功能同Tap，点击涉及财产、支付、隐私等敏感按钮时触发。",
    usage='do(action="Tap", element=[x,y], message="重要操作")',
    params_model=Tap,
    handler=handle_tap,
    variant_of="Tap",
)

DOUBLE_TAP = ActionDefinition(
    name="Double Tap",
    description=(
        "Double Tap在屏幕上的特定点快速连续点按两次。使用此操作可以激活双击交互，如缩放、选择文本或打开项目。"
        "坐标系统从左上角 (0,0) 开始到右下角（999,999)结束。此操作完成后，您将自动收到结果状态的截图。"
    ),
    usage='do(action="Double Tap", element=[x,y])',
    params_model=DoubleTap,
    handler=handle_double_tap,
)

LONG_PRESS = ActionDefinition(
    name="Long Press",
    description=(
        "Long Press是长按操作，在屏幕上的特定点长按指定时间。可用于触发上下文菜单、选择文本或激活长按交互。"
        "坐标系统从左上角 (0,0) 开始到右下角（999,999)结束。此操作完成后，您将自动收到结果状态的屏幕截图。"
    ),
    usage='do(action="Long Press", element=[x,y])',
    params_model=LongPress,
    handler=handle_long_press,
)
