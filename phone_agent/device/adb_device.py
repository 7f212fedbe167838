"""
ADB Device Client
=================

Device capability implemented over the ``adb`` command line tool.

ADB (Android Debug Bridge) ships with the Android SDK platform-tools and
gives us everything the agent needs:
- Screenshot capture (``exec-out screencap -p``)
- Foreground window lookup (``dumpsys window``)
- Touch, swipe and key input (``input ...``)
- Unicode text entry through the ADB Keyboard IME (``ADB_INPUT_B64`` broadcast)
- App launching (``monkey -p <package>``)

Prerequisites:
    1. Android SDK platform-tools installed (adb in PATH or ANDROID_HOME set)
    2. A device or emulator attached (``adb devices``)
    3. ADB Keyboard installed and enabled for non-ASCII text input

Usage:
    from phone_agent.device import ADBDevice

    device = ADBDevice()
    shot = await device.screenshot()
    await device.tap(540, 1200)
"""

import asyncio
import base64
import os
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from phone_agent.device.apps import SYSTEM_APP_NAME, app_name_for_window, resolve_package_name
from phone_agent.device.base import DeviceCapability, DeviceInfo, Screenshot
from phone_agent.device.screenshot import blank_screenshot, get_image_dimensions
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

# Android key codes used by the primitives below
KEYCODE_HOME = "3"
KEYCODE_BACK = "4"
KEYCODE_CLEAR = "28"
KEYCODE_DEL = "67"
KEYCODE_APP_SWITCH = "187"

# Screenshots smaller than this are treated as corrupt
_MIN_SCREENSHOT_BYTES = 1000


class ADBDevice(DeviceCapability):
    """
    Android device control via ADB.

    Works with emulators and with physical devices over USB or TCP/IP.
    Commands run through ``subprocess`` in a worker thread so the event
    loop is never blocked.
    """

    def __init__(
        self,
        device_id: Optional[str] = None,
        adb_path: Optional[str] = None,
        command_timeout: float = 30.0,
    ) -> None:
        """
        Initialize ADB device client.

        Args:
            device_id: Default device serial used when a call passes none.
                       If None, adb picks the only attached device.
            adb_path: Optional path to adb executable.
                      If None, searches PATH and ANDROID_HOME.
            command_timeout: Timeout for a single adb command in seconds.
        """
        self.default_device_id = device_id or None
        self.adb_path = adb_path or self._find_adb()
        self.command_timeout = command_timeout

        if not self.adb_path:
            logger.warning(
                "ADB not found. Please install Android SDK platform-tools "
                "and ensure 'adb' is in PATH or set ANDROID_HOME."
            )

    def _find_adb(self) -> Optional[str]:
        """Find ADB executable in system."""
        adb_in_path = shutil.which("adb")
        if adb_in_path:
            return adb_in_path

        android_home = os.environ.get("ANDROID_HOME") or os.environ.get("ANDROID_SDK_ROOT")
        if android_home:
            for candidate in (
                Path(android_home) / "platform-tools" / "adb",
                Path(android_home) / "platform-tools" / "adb.exe",
            ):
                if candidate.exists():
                    return str(candidate)

        for path in (
            Path.home() / "Android" / "Sdk" / "platform-tools" / "adb",
            Path("/usr/local/android-sdk/platform-tools/adb"),
            Path("/opt/android-sdk/platform-tools/adb"),
        ):
            if path.exists():
                return str(path)

        return None

    def _build_command(self, args: tuple[str, ...], device_id: Optional[str]) -> list[str]:
        if not self.adb_path:
            raise RuntimeError("ADB not found. Please install Android SDK platform-tools.")

        cmd = [self.adb_path]
        serial = device_id or self.default_device_id
        if serial:
            cmd.extend(["-s", serial])
        cmd.extend(args)
        return cmd

    async def _run_adb(
        self,
        *args: str,
        device_id: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        """
        Run an ADB command asynchronously.

        Args:
            *args: ADB command arguments.
            device_id: Target device serial.

        Returns:
            CompletedProcess with text output.

        Raises:
            RuntimeError: If ADB is not available or the command times out.
        """
        cmd = self._build_command(args, device_id)
        logger.debug("Running ADB command", cmd=" ".join(cmd))

        try:
            return await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                timeout=self.command_timeout,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except subprocess.TimeoutExpired as e:
            raise RuntimeError(f"ADB command timed out after {self.command_timeout}s") from e

    async def _run_adb_bytes(self, *args: str, device_id: Optional[str] = None) -> bytes:
        """Run ADB command and return raw stdout bytes (for screenshots)."""
        cmd = self._build_command(args, device_id)

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                timeout=self.command_timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise RuntimeError("ADB command timed out") from e

        if result.returncode != 0:
            raise RuntimeError(result.stderr.decode("utf-8", errors="replace").strip())
        return result.stdout

    async def _shell(self, *args: str, device_id: Optional[str] = None, action: str = "shell") -> bool:
        """Run ``adb shell ...`` and report whether it succeeded."""
        try:
            result = await self._run_adb("shell", *args, device_id=device_id)
        except Exception as e:
            logger.error("ADB command failed", action=action, error=str(e))
            return False

        if result.returncode != 0:
            logger.warning("ADB command returned an error", action=action, stderr=result.stderr.strip())
            return False
        return True

    async def list_devices(self) -> list[DeviceInfo]:
        """
        List attached devices with basic properties.

        Returns:
            One DeviceInfo per line of ``adb devices -l``.

        Raises:
            RuntimeError: If adb itself cannot be run.
        """
        result = await self._run_adb("devices", "-l")
        if result.returncode != 0:
            raise RuntimeError(f"Failed to list devices: {result.stderr.strip()}")

        devices: list[DeviceInfo] = []
        for line in result.stdout.strip().splitlines()[1:]:
            parts = line.split()
            if len(parts) < 2:
                continue

            info = DeviceInfo(device_id=parts[0], status=parts[1])
            for part in parts[2:]:
                if part.startswith("model:"):
                    info.model = part.split(":", 1)[1]

            if info.status == "device":
                props = await self._run_adb(
                    "shell",
                    "getprop ro.product.brand && getprop ro.product.marketname"
                    " && getprop ro.build.version.release",
                    device_id=info.device_id,
                )
                lines = props.stdout.strip().splitlines() if props.returncode == 0 else []
                lines += [""] * (3 - len(lines))
                info.brand, info.market_name, info.android_version = (s.strip() for s in lines[:3])

            devices.append(info)

        return devices

    async def screenshot(self, device_id: Optional[str] = None) -> Screenshot:
        """
        Capture the current screen as a PNG.

        Falls back to a black 1080x2400 image when capture fails, so the
        caller always has something to send to the vision model.
        """
        try:
            image_bytes = await self._run_adb_bytes("exec-out", "screencap", "-p", device_id=device_id)
            if len(image_bytes) < _MIN_SCREENSHOT_BYTES:
                raise RuntimeError("Screenshot appears empty or corrupted")

            width, height = get_image_dimensions(image_bytes)
            logger.debug("Screenshot captured", size_kb=round(len(image_bytes) / 1024, 1))
            return Screenshot(
                base64=base64.b64encode(image_bytes).decode("utf-8"),
                width=width,
                height=height,
            )
        except Exception as e:
            logger.warning("Screenshot failed, using blank fallback", error=str(e))
            return blank_screenshot()

    async def current_app(self, device_id: Optional[str] = None) -> str:
        """
        Get the display name of the foreground app.

        Returns:
            A name from ``APP_PACKAGES`` or ``System``.
        """
        try:
            result = await self._run_adb("shell", "dumpsys", "window", device_id=device_id)
        except Exception as e:
            logger.error("Failed to get current app", error=str(e))
            return SYSTEM_APP_NAME

        focus_lines = [
            line for line in result.stdout.splitlines()
            if "mCurrentFocus" in line or "mFocusedApp" in line
        ]
        return app_name_for_window("\n".join(focus_lines))

    async def tap(self, x: int, y: int, device_id: Optional[str] = None) -> bool:
        ok = await self._shell("input", "tap", str(x), str(y), device_id=device_id, action="tap")
        logger.debug("Tap performed", x=x, y=y, success=ok)
        return ok

    async def swipe(
        self,
        start_x: int,
        start_y: int,
        end_x: int,
        end_y: int,
        duration_ms: int = 300,
        device_id: Optional[str] = None,
    ) -> bool:
        ok = await self._shell(
            "input", "swipe",
            str(start_x), str(start_y), str(end_x), str(end_y), str(duration_ms),
            device_id=device_id,
            action="swipe",
        )
        logger.debug("Swipe performed", start=(start_x, start_y), end=(end_x, end_y), success=ok)
        return ok

    async def long_press(
        self,
        x: int,
        y: int,
        duration_ms: int = 2000,
        device_id: Optional[str] = None,
    ) -> bool:
        # A swipe that does not move is a long press
        return await self._shell(
            "input", "swipe", str(x), str(y), str(x), str(y), str(duration_ms),
            device_id=device_id,
            action="long_press",
        )

    async def double_tap(self, x: int, y: int, device_id: Optional[str] = None) -> bool:
        if not await self.tap(x, y, device_id):
            return False
        await asyncio.sleep(0.1)
        return await self.tap(x, y, device_id)

    async def back(self, device_id: Optional[str] = None) -> bool:
        return await self.key_event(KEYCODE_BACK, device_id)

    async def home(self, device_id: Optional[str] = None) -> bool:
        return await self.key_event(KEYCODE_HOME, device_id)

    async def recent(self, device_id: Optional[str] = None) -> bool:
        return await self.key_event(KEYCODE_APP_SWITCH, device_id)

    async def key_event(self, key_code: str, device_id: Optional[str] = None) -> bool:
        return await self._shell("input", "keyevent", key_code, device_id=device_id, action="key_event")

    async def type_text(self, text: str, device_id: Optional[str] = None) -> bool:
        """
        Type text through the ADB Keyboard IME.

        ``input text`` cannot carry non-ASCII characters, so the text is
        base64-encoded and broadcast to the IME instead.
        """
        encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
        ok = await self._shell(
            "am", "broadcast", "-a", "ADB_INPUT_B64", "--es", "msg", encoded,
            device_id=device_id,
            action="type_text",
        )
        logger.debug("Text typed", length=len(text), success=ok)
        return ok

    async def clear_text(self, device_id: Optional[str] = None) -> bool:
        if not await self.key_event(KEYCODE_CLEAR, device_id):
            return False
        # Select all, then delete
        await self._shell(
            "input", "keyevent", "KEYCODE_CTRL_LEFT", "KEYCODE_A",
            device_id=device_id,
            action="select_all",
        )
        return await self.key_event(KEYCODE_DEL, device_id)

    async def launch_app(self, app_name: str, device_id: Optional[str] = None) -> bool:
        """
        Launch an app by display name or package id.

        Returns:
            False when the name does not resolve to a package or adb fails.
        """
        package = resolve_package_name(app_name)
        if not package:
            return False

        ok = await self._shell(
            "monkey", "-p", package, "-c", "android.intent.category.LAUNCHER", "1",
            device_id=device_id,
            action="launch_app",
        )
        logger.info("App launched", app_name=app_name, package=package, success=ok)
        return ok
