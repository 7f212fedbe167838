"""
API Routes Package
==================

REST API route definitions.
"""

from phone_agent.api.routes.devices import router as devices_router
from phone_agent.api.routes.health import router as health_router
from phone_agent.api.routes.sessions import router as sessions_router
from phone_agent.api.routes.tasks import router as tasks_router

__all__ = [
    "devices_router",
    "health_router",
    "sessions_router",
    "tasks_router",
]
