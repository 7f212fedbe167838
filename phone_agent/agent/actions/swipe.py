"""
Swipe Action
============

Drag from one grid point to another: scrolling, paging, pulling down the
notification shade.
"""

from typing import Literal

from phone_agent.agent.actions.base import (
    ActionContext,
    ActionDefinition,
    ActionModel,
    ActionResult,
    Point,
)

SWIPE_DURATION_MS = 300


class Swipe(ActionModel):
    action: Literal["Swipe"] = "Swipe"
    start: Point
    end: Point


async def handle_swipe(action: Swipe, ctx: ActionContext) -> ActionResult:
    """
    Swipe between two grid points.

    Args:
        action: Validated Swipe action.
        ctx: Step context.

    Returns:
        ActionResult indicating success/failure.
    """
    start_x, start_y = ctx.to_absolute(action.start)
    end_x, end_y = ctx.to_absolute(action.end)

    ok = await ctx.device.swipe(
        start_x, start_y, end_x, end_y, SWIPE_DURATION_MS, ctx.device_id
    )
    if not ok:
        return ActionResult(
            success=False,
            message=f"滑动失败: ({start_x}, {start_y}) -> ({end_x}, {end_y})",
        )

    await ctx.settle()
    return ActionResult(success=True)


SWIPE = ActionDefinition(
    name="Swipe",
    description=(
        "Swipe是滑动操作，通过从起始坐标拖动到结束坐标来执行滑动手势。可用于滚动内容、在屏幕之间导航、"
        "下拉通知栏以及项目栏或进行基于手势的导航。坐标系统从左上角 (0,0) 开始到右下角（999,999)结束。"
        "滑动持续时间会自动调整以实现自然的移动。此操作完成后，您将自动收到结果状态的截图。"
    ),
    usage='do(action="Swipe", start=[x1,y1], end=[x2,y2])',
    params_model=Swipe,
    handler=handle_swipe,
)
