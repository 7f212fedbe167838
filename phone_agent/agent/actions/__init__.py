"""
Agent Actions Module
====================

Device actions the agent can take.

This package contains:
    - base: Action models, context, result and definition types
    - registry: The action catalogue and the ``ParsedAction`` union
    - handler: Action dispatcher/executor
    - tap, swipe, type_text, launch_app, system, special: Action families
"""

from phone_agent.agent.actions.base import (
    GRID_SIZE,
    ActionContext,
    ActionDefinition,
    ActionModel,
    ActionResult,
    ConfirmCallback,
    Finish,
    to_absolute,
)
from phone_agent.agent.actions.handler import ActionHandler
from phone_agent.agent.actions.registry import (
    ACTION_TAGS,
    ActionRegistry,
    ParsedAction,
    build_default_registry,
    default_registry,
)

__all__ = [
    "ACTION_TAGS",
    "GRID_SIZE",
    "ActionContext",
    "ActionDefinition",
    "ActionHandler",
    "ActionModel",
    "ActionRegistry",
    "ActionResult",
    "ConfirmCallback",
    "Finish",
    "ParsedAction",
    "build_default_registry",
    "default_registry",
    "to_absolute",
]
