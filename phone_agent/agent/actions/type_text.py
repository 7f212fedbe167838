"""
Type Actions
============

Text entry into the focused field. ``Type_Name`` is the same operation,
kept as its own tag because the model is trained to emit it for names.
Existing text is cleared first.
"""

from typing import Literal

from phone_agent.agent.actions.base import (
    ActionContext,
    ActionDefinition,
    ActionModel,
    ActionResult,
)


class TypeText(ActionModel):
    action: Literal["Type"] = "Type"
    text: str


class TypeName(ActionModel):
    action: Literal["Type_Name"] = "Type_Name"
    text: str


async def handle_type(action: TypeText | TypeName, ctx: ActionContext) -> ActionResult:
    """
    Clear the focused field and type the action's text.

    Args:
        action: Validated Type or Type_Name action.
        ctx: Step context.

    Returns:
        ActionResult indicating success/failure.
    """
    if not await ctx.device.clear_text(ctx.device_id):
        return ActionResult(success=False, message="清除文本失败")
    await ctx.settle(0.5)

    if not await ctx.device.type_text(action.text, ctx.device_id):
        return ActionResult(success=False, message="输入文本失败")

    await ctx.settle()
    return ActionResult(success=True)


TYPE = ActionDefinition(
    name="Type",
    description=(
        "Type是输入操作，在当前聚焦的输入框中输入文本。使用此操作前，请确保输入框已被聚焦（先点击它）。"
        "输入的文本将像使用键盘输入一样输入。重要提示：手机可能正在使用 ADB 键盘，该键盘不会像普通键盘那样占用屏幕空间。"
        "要确认键盘已激活，请查看屏幕底部是否显示 'ADB Keyboard {ON}' 类似的文本，或者检查输入框是否处于激活/高亮状态。"
        "不要仅仅依赖视觉上的键盘显示。自动清除文本：当你使用输入操作时，输入框中现有的任何文本"
        "（包括占位符文本和实际输入）都会在输入新文本前自动清除。你无需在输入前手动清除文本——直接使用输入操作输入所需文本即可。"
        "操作完成后，你将自动收到结果状态的截图。"
    ),
    usage='do(action="Type", text="xxx")',
    params_model=TypeText,
    handler=handle_type,
)

TYPE_NAME = ActionDefinition(
    name="Type_Name",
    description="Type_Name是输入人名的操作，基本功能同Type。",
    usage='do(action="Type_Name", text="xxx")',
    params_model=TypeName,
    handler=handle_type,
)
