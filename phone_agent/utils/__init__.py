"""
Utilities Package
=================

Logging helpers shared by every module.
"""

from phone_agent.utils.logger import LogContext, get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
    "LogContext",
]
