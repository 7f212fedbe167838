"""
Task Routes
===========

Task control over HTTP. Tasks themselves are started and streamed over the
WebSocket (``/ws``); cancelling is also available here so a client can stop
a task without an open socket.
"""

from fastapi import APIRouter, Depends

from phone_agent.api.deps import get_app_settings, get_sessions
from phone_agent.config import Settings
from phone_agent.session import SessionManager

router = APIRouter(tags=["Task"])


@router.post("/task/cancel", summary="Cancel the running task")
async def cancel_task(
    sessions: SessionManager = Depends(get_sessions),
) -> dict[str, bool]:
    """
    Signal the current session's task to stop before its next step.

    Always succeeds; without a session there is nothing to cancel.
    """
    sessions.cancel_task()
    return {"success": True}


@router.get("/config", summary="Client-facing configuration")
async def get_config(
    settings: Settings = Depends(get_app_settings),
) -> dict[str, str]:
    return {"model": settings.llm.get_active_model() or "unknown"}
