"""
Action Registry
===============

The fixed catalogue of device actions.

Each entry pairs an action tag with its prompt text, its pydantic
parameter model and its handler. The registry is built once at import
time and only read afterwards: the parser validates against
``ParsedAction``, the dispatcher looks handlers up by tag and the prompt
builder renders ``catalogue_prompt()``.

Usage:
    from phone_agent.agent.actions.registry import default_registry

    registry = default_registry()
    definition = registry.lookup("Tap")
"""

from functools import lru_cache
from typing import Annotated, Iterator, Optional, Union, get_args

from pydantic import Field, TypeAdapter

from phone_agent.agent.actions.base import ActionDefinition, Finish
from phone_agent.agent.actions.launch_app import LAUNCH, Launch
from phone_agent.agent.actions.special import (
    CALL_API,
    INTERACT,
    NOTE,
    TAKE_OVER,
    CallApi,
    Interact,
    Note,
    TakeOver,
)
from phone_agent.agent.actions.swipe import SWIPE, Swipe
from phone_agent.agent.actions.system import BACK, HOME, WAIT, Back, Home, Wait
from phone_agent.agent.actions.tap import (
    DOUBLE_TAP,
    LONG_PRESS,
    TAP,
    TAP_SENSITIVE,
    DoubleTap,
    LongPress,
    Tap,
)
from phone_agent.agent.actions.type_text import TYPE, TYPE_NAME, TypeName, TypeText

FINISH_USAGE = 'finish(message="xxx")'
FINISH_DESCRIPTION = "finish是结束任务的操作，表示准确完整完成任务，message是终止信息。"

ParsedAction = Annotated[
    Union[
        Launch,
        Tap,
        TypeText,
        TypeName,
        Interact,
        Swipe,
        LongPress,
        DoubleTap,
        Back,
        Home,
        Wait,
        TakeOver,
        Note,
        CallApi,
        Finish,
    ],
    Field(discriminator="action"),
]

PARSED_ACTION_ADAPTER: TypeAdapter = TypeAdapter(ParsedAction)

# Every tag the union accepts, ``finish`` included
ACTION_TAGS: frozenset[str] = frozenset(
    get_args(model.model_fields["action"].annotation)[0]
    for model in get_args(get_args(ParsedAction)[0])
)

# Prompt order matters: the model was trained on this catalogue layout
DEFAULT_DEFINITIONS: tuple[ActionDefinition, ...] = (
    LAUNCH,
    TAP,
    TAP_SENSITIVE,
    TYPE,
    TYPE_NAME,
    INTERACT,
    SWIPE,
    LONG_PRESS,
    DOUBLE_TAP,
    BACK,
    HOME,
    WAIT,
    TAKE_OVER,
    NOTE,
    CALL_API,
)


class ActionRegistry:
    """
    Registry of action definitions keyed by tag.

    Variants (``variant_of`` set) contribute prompt text only; lookups
    always resolve to the primary definition.
    """

    def __init__(self) -> None:
        self._definitions: list[ActionDefinition] = []
        self._primary: dict[str, ActionDefinition] = {}

    def register(self, definition: ActionDefinition) -> None:
        """
        Add a definition.

        Args:
            definition: Definition to add.

        Raises:
            ValueError: On a duplicate primary name, or a variant whose base
                is not registered yet.
        """
        if definition.variant_of is not None:
            if definition.variant_of not in self._primary:
                raise ValueError(
                    f"Variant {definition.name!r} refers to unknown action {definition.variant_of!r}"
                )
            if any(d.name == definition.name for d in self._definitions):
                raise ValueError(f"Action {definition.name!r} is already registered")
        else:
            if definition.name in self._primary:
                raise ValueError(f"Action {definition.name!r} is already registered")
            self._primary[definition.name] = definition

        self._definitions.append(definition)

    def lookup(self, name: str) -> Optional[ActionDefinition]:
        """Primary definition for an action tag, or None."""
        return self._primary.get(name)

    def describe_all(self) -> list[tuple[str, str]]:
        """
        ``(usage, description)`` pairs in registration order.

        Definitions whose usage template was already emitted are skipped.
        ``finish`` is not a registry entry and always comes last.
        """
        seen: set[str] = set()
        entries: list[tuple[str, str]] = []
        for definition in self._definitions:
            if definition.usage in seen:
                continue
            seen.add(definition.usage)
            entries.append((definition.usage, definition.description))

        entries.append((FINISH_USAGE, FINISH_DESCRIPTION))
        return entries

    def catalogue_prompt(self) -> str:
        """Render ``describe_all()`` as the action list of the system prompt."""
        lines = []
        for usage, description in self.describe_all():
            lines.append(f"- {usage}")
            lines.append(f"    {description}")
        return "\n".join(lines)

    @property
    def names(self) -> list[str]:
        return list(self._primary)

    def __contains__(self, name: object) -> bool:
        return name in self._primary

    def __iter__(self) -> Iterator[ActionDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)


def build_default_registry() -> ActionRegistry:
    """
    Build the registry of the fixed action catalogue.

    Raises:
        RuntimeError: If a tag of ``ParsedAction`` has no handler.
    """
    registry = ActionRegistry()
    for definition in DEFAULT_DEFINITIONS:
        registry.register(definition)

    missing = ACTION_TAGS - {"finish"} - set(registry.names)
    if missing:
        raise RuntimeError(f"Actions without handler: {sorted(missing)}")

    return registry


@lru_cache
def default_registry() -> ActionRegistry:
    """Shared default registry (read-only after construction)."""
    return build_default_registry()
