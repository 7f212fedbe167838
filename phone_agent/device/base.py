"""
Device Capability Abstraction
=============================

Abstract base class defining what the agent needs from an Android device:
screenshots, the foreground app and a small set of input primitives.

Every method takes an optional ``device_id`` so one capability object can
serve several attached devices. Input primitives report success as a bool;
``screenshot`` never raises and falls back to a blank image instead.

Usage:
    from phone_agent.device import ADBDevice

    device = ADBDevice()
    shot = await device.screenshot()
    await device.tap(540, 1200)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class DeviceInfo:
    """
    Information about an attached device.

    Attributes:
        device_id: ADB serial of the device.
        status: ADB connection state (device, offline, unauthorized).
        model: Device model reported by ``adb devices -l``.
        brand: ``ro.product.brand``.
        market_name: ``ro.product.marketname``.
        android_version: ``ro.build.version.release``.
    """

    device_id: str
    status: str = "device"
    model: str = ""
    brand: str = ""
    market_name: str = ""
    android_version: str = ""

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for serialization."""
        return {
            "device_id": self.device_id,
            "status": self.status,
            "model": self.model,
            "brand": self.brand,
            "market_name": self.market_name,
            "android_version": self.android_version,
        }


@dataclass(frozen=True)
class Screenshot:
    """
    A captured screen.

    Attributes:
        base64: Base64-encoded PNG.
        width: Width in pixels.
        height: Height in pixels.
        is_fallback: True when capture failed and a blank image was substituted.
    """

    base64: str
    width: int
    height: int
    is_fallback: bool = False


class DeviceCapability(ABC):
    """
    Interface for device control used by action handlers and the step engine.
    """

    @abstractmethod
    async def list_devices(self) -> list[DeviceInfo]:
        """List attached devices."""

    @abstractmethod
    async def screenshot(self, device_id: Optional[str] = None) -> Screenshot:
        """
        Capture the current screen.

        Must never raise: on failure a deterministic blank image is returned.
        """

    @abstractmethod
    async def current_app(self, device_id: Optional[str] = None) -> str:
        """Return a human-readable name of the foreground app."""

    @abstractmethod
    async def tap(self, x: int, y: int, device_id: Optional[str] = None) -> bool:
        """Tap at pixel coordinates."""

    @abstractmethod
    async def swipe(
        self,
        start_x: int,
        start_y: int,
        end_x: int,
        end_y: int,
        duration_ms: int = 300,
        device_id: Optional[str] = None,
    ) -> bool:
        """Swipe between two pixel coordinates."""

    @abstractmethod
    async def long_press(
        self,
        x: int,
        y: int,
        duration_ms: int = 2000,
        device_id: Optional[str] = None,
    ) -> bool:
        """Press and hold at pixel coordinates."""

    @abstractmethod
    async def double_tap(self, x: int, y: int, device_id: Optional[str] = None) -> bool:
        """Tap twice in quick succession."""

    @abstractmethod
    async def back(self, device_id: Optional[str] = None) -> bool:
        """Press the back key."""

    @abstractmethod
    async def home(self, device_id: Optional[str] = None) -> bool:
        """Press the home key."""

    @abstractmethod
    async def recent(self, device_id: Optional[str] = None) -> bool:
        """Open the recent apps switcher."""

    @abstractmethod
    async def type_text(self, text: str, device_id: Optional[str] = None) -> bool:
        """Type text into the focused input field."""

    @abstractmethod
    async def clear_text(self, device_id: Optional[str] = None) -> bool:
        """Clear the focused input field."""

    @abstractmethod
    async def launch_app(self, app_name: str, device_id: Optional[str] = None) -> bool:
        """
        Launch an app by display name or package id.

        Returns:
            False when the app is unknown.
        """

    @abstractmethod
    async def key_event(self, key_code: str, device_id: Optional[str] = None) -> bool:
        """Send a raw key event (e.g. ``KEYCODE_ENTER`` or ``66``)."""
