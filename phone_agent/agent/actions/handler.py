"""
Action Handler
==============

Central dispatcher for executing parsed actions on the device.

``finish`` short-circuits; every other action is routed to its registry
entry. Nothing raised by a handler escapes: failures come back as an
``ActionResult`` so the task loop can carry on.

Usage:
    from phone_agent.agent.actions import ActionHandler

    handler = ActionHandler(registry)
    result = await handler.execute(action, ctx)
"""

from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError

from phone_agent.agent.actions.base import (
    ActionContext,
    ActionModel,
    ActionResult,
    Finish,
    first_validation_error,
)
from phone_agent.agent.actions.registry import ActionRegistry, default_registry
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)


class ActionHandler:
    """
    Routes actions to their registered handlers.
    """

    def __init__(self, registry: Optional[ActionRegistry] = None) -> None:
        """
        Initialize action handler.

        Args:
            registry: Action registry, defaults to the built-in catalogue.
        """
        self.registry = registry if registry is not None else default_registry()

    async def execute(
        self,
        action: Union[ActionModel, Mapping[str, Any]],
        ctx: ActionContext,
    ) -> ActionResult:
        """
        Execute an action on the device.

        Args:
            action: Parsed action, or a raw ``{"action": ..., ...}`` mapping.
            ctx: Step context.

        Returns:
            ActionResult with status and details.
        """
        if isinstance(action, Finish):
            return ActionResult(success=True, finished=True, message=action.message)

        if isinstance(action, BaseModel):
            name = action.action
        else:
            name = str(action.get("action", ""))
            if name == "finish":
                return ActionResult(success=True, finished=True, message=action.get("message"))

        definition = self.registry.lookup(name)
        if definition is None:
            logger.warning("Unknown action", action=name)
            return ActionResult(success=False, message=f"未知操作: {name}")

        if not isinstance(action, definition.params_model):
            try:
                payload = action.model_dump() if isinstance(action, BaseModel) else dict(action)
                action = definition.params_model.model_validate(payload)
            except ValidationError as e:
                path, msg = first_validation_error(e)
                logger.warning("Invalid action parameters", action=name, field=path, error=msg)
                return ActionResult(success=False, message=f"参数错误: {path}: {msg}")

        logger.info("Executing action", action=name, params=action.params())

        try:
            result = await definition.handler(action, ctx)
        except Exception as e:
            logger.error("Action handler failed", action=name, error=str(e))
            return ActionResult(success=False, message=f"执行失败: {e}")

        logger.info(
            "Action executed",
            action=name,
            success=result.success,
            finished=result.finished,
        )
        return result
