"""
API Module
==========

FastAPI routes and WebSocket handlers for the Phone Agent.

This package contains:
    - routes/: REST API endpoints
    - websocket: WebSocket handler for running tasks
    - deps: dependencies reading collaborators from ``app.state``
"""

from phone_agent.api.routes import devices_router, health_router, sessions_router, tasks_router
from phone_agent.api.websocket import WebSocketManager, websocket_endpoint

__all__ = [
    "devices_router",
    "health_router",
    "sessions_router",
    "tasks_router",
    "WebSocketManager",
    "websocket_endpoint",
]
