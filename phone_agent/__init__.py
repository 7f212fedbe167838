"""
Phone Agent
===========

Vision-language agent that operates Android phones.

Each step captures a screenshot, asks a vision model what to do next,
parses the model's ``do(...)``/``finish(...)`` reply into a typed action
and executes it over ADB.

Modules:
    - agent: step engine, task loop, conversation and action registry
    - llm: model clients, streaming interpreter and action parser
    - device: device capability and the ADB implementation
    - api: FastAPI routes and the task WebSocket
    - utils: logging
"""

__version__ = "1.0.0"
__author__ = "Phone Agent Team"
