"""
Device Routes
=============

Direct device control for the web client: listing devices with a preview,
home and recent-apps keys, screenshots, and raw taps and swipes in device
pixels.
"""

import asyncio
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from phone_agent.api.deps import get_device
from phone_agent.device.base import DeviceCapability, DeviceInfo
from phone_agent.device.screenshot import resize_for_preview
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/devices", tags=["Devices"])


class DeviceRequest(BaseModel):
    device_id: Optional[str] = Field(default=None, description="Target device (default device if omitted)")


class TapRequest(DeviceRequest):
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)


class SwipeRequest(DeviceRequest):
    x1: int = Field(..., ge=0)
    y1: int = Field(..., ge=0)
    x2: int = Field(..., ge=0)
    y2: int = Field(..., ge=0)
    duration: int = Field(default=300, ge=1, le=10000, description="Swipe duration in ms")


def _ensure(ok: bool, action: str) -> dict[str, bool]:
    if not ok:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Device {action} failed",
        )
    return {"success": True}


@router.get("", summary="List connected devices with a screenshot preview")
async def list_devices(
    device: DeviceCapability = Depends(get_device),
) -> list[dict[str, Any]]:
    devices = await device.list_devices()

    async def with_preview(info: DeviceInfo) -> dict[str, Any]:
        entry: dict[str, Any] = info.to_dict()
        entry["screenshot"] = None
        if info.status == "device":
            shot = await device.screenshot(info.device_id)
            if not shot.is_fallback:
                entry["screenshot"] = resize_for_preview(shot.base64)
        return entry

    return list(await asyncio.gather(*(with_preview(d) for d in devices)))


@router.post("/home", summary="Press the home key")
async def press_home(
    request: DeviceRequest,
    device: DeviceCapability = Depends(get_device),
) -> dict[str, bool]:
    return _ensure(await device.home(request.device_id), "home")


@router.post("/recent", summary="Open recent apps")
async def press_recent(
    request: DeviceRequest,
    device: DeviceCapability = Depends(get_device),
) -> dict[str, bool]:
    return _ensure(await device.recent(request.device_id), "recent")


@router.get("/screenshot", summary="Capture a screenshot")
async def screenshot(
    device_id: Optional[str] = Query(default=None),
    device: DeviceCapability = Depends(get_device),
) -> dict[str, Any]:
    shot = await device.screenshot(device_id)
    return {
        "screenshot": shot.base64,
        "width": shot.width,
        "height": shot.height,
        "is_fallback": shot.is_fallback,
    }


@router.post("/tap", summary="Tap at pixel coordinates")
async def tap(
    request: TapRequest,
    device: DeviceCapability = Depends(get_device),
) -> dict[str, bool]:
    return _ensure(await device.tap(request.x, request.y, request.device_id), "tap")


@router.post("/swipe", summary="Swipe between pixel coordinates")
async def swipe(
    request: SwipeRequest,
    device: DeviceCapability = Depends(get_device),
) -> dict[str, bool]:
    ok = await device.swipe(
        request.x1,
        request.y1,
        request.x2,
        request.y2,
        request.duration,
        request.device_id,
    )
    return _ensure(ok, "swipe")
