"""
Session Routes
==============

Endpoints for the single active session.

A session binds the web client to one device and keeps the text history
of tasks and results.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from phone_agent.api.deps import get_device, get_sessions
from phone_agent.device.base import DeviceCapability
from phone_agent.session import SessionManager
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/session", tags=["Session"])


class CreateSessionRequest(BaseModel):
    """Request to create a session."""

    device_id: str = Field(..., min_length=1, description="ADB serial of the device to drive")


class MessageResponse(BaseModel):
    role: str
    content: str


class SessionResponse(BaseModel):
    """Response containing session information."""

    id: str
    device_id: str
    messages: list[MessageResponse]
    created_at: str


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a session (closes the current one)",
)
async def create_session(
    request: CreateSessionRequest,
    sessions: SessionManager = Depends(get_sessions),
) -> dict[str, Any]:
    session = sessions.create(request.device_id)
    return session.to_dict()


@router.get(
    "",
    response_model=Optional[SessionResponse],
    summary="Get the current session",
)
async def get_session(
    sessions: SessionManager = Depends(get_sessions),
    device: DeviceCapability = Depends(get_device),
) -> Optional[dict[str, Any]]:
    """
    Current session, or null.

    A session whose device is no longer connected is closed.
    """
    session = sessions.get()
    if session is None:
        return None

    devices = await device.list_devices()
    if not any(d.device_id == session.device_id for d in devices):
        logger.info("Session device disconnected", session_id=session.id, device_id=session.device_id)
        sessions.close()
        return None

    return session.to_dict()


@router.delete(
    "",
    summary="Close the current session",
)
async def close_session(
    sessions: SessionManager = Depends(get_sessions),
) -> dict[str, bool]:
    sessions.close()
    return {"success": True}
