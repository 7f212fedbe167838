"""
Agent Module
============

Core agent implementation for Android automation.

This package contains:
    - step_engine: One screenshot -> model -> action step (PhoneAgent)
    - task_loop: Multi-step task runner (TaskRunner)
    - conversation: Role-tagged turns sent to the model
    - events: Step and task events
    - state: Task state and step records
    - prompts: System prompt and turn builders
    - actions/: Action catalogue, parameter models and handlers

``step_engine`` and ``task_loop`` depend on ``phone_agent.llm``, which in
turn depends on ``actions``; import them from their modules.
"""

from phone_agent.agent.conversation import Conversation, Turn
from phone_agent.agent.events import StepResult
from phone_agent.agent.prompts import build_system_prompt
from phone_agent.agent.state import AgentState, StepRecord, TaskStatus

__all__ = [
    "AgentState",
    "Conversation",
    "StepRecord",
    "StepResult",
    "TaskStatus",
    "Turn",
    "build_system_prompt",
]
