"""
Tests for the ADB Device
========================

Tests for:
- ADB command construction for each primitive (adb itself mocked)
- Device listing and foreground app detection
- Screenshot capture and the blank fallback
- App name to package resolution
"""

import base64
import io
import subprocess
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from phone_agent.device.adb_device import ADBDevice
from phone_agent.device.apps import resolve_package_name
from phone_agent.device.screenshot import blank_screenshot, resize_for_preview


def _completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def device() -> ADBDevice:
    adb = ADBDevice(adb_path="/usr/bin/adb")
    adb._run_adb = AsyncMock(return_value=_completed())
    return adb


class TestCommands:
    """Tests for the shell commands issued by primitives."""

    def test_build_command_uses_default_serial(self):
        adb = ADBDevice(device_id="emulator-5554", adb_path="adb")

        assert adb._build_command(("devices",), None) == ["adb", "-s", "emulator-5554", "devices"]
        assert adb._build_command(("devices",), "R58M") == ["adb", "-s", "R58M", "devices"]

    def test_build_command_without_adb(self):
        adb = ADBDevice(adb_path="adb")
        adb.adb_path = None

        with pytest.raises(RuntimeError):
            adb._build_command(("devices",), None)

    @pytest.mark.asyncio
    async def test_tap(self, device):
        assert await device.tap(10, 20) is True

        device._run_adb.assert_awaited_once_with("shell", "input", "tap", "10", "20", device_id=None)

    @pytest.mark.asyncio
    async def test_tap_failure_status(self, device):
        device._run_adb.return_value = _completed(returncode=1, stderr="error: device offline")

        assert await device.tap(10, 20) is False

    @pytest.mark.asyncio
    async def test_tap_exception(self, device):
        device._run_adb.side_effect = RuntimeError("ADB command timed out")

        assert await device.tap(10, 20) is False

    @pytest.mark.asyncio
    async def test_swipe(self, device):
        assert await device.swipe(1, 2, 3, 4, 300, "emulator-5554") is True

        device._run_adb.assert_awaited_once_with(
            "shell", "input", "swipe", "1", "2", "3", "4", "300", device_id="emulator-5554"
        )

    @pytest.mark.asyncio
    async def test_long_press_is_stationary_swipe(self, device):
        await device.long_press(5, 6)

        device._run_adb.assert_awaited_once_with(
            "shell", "input", "swipe", "5", "6", "5", "6", "2000", device_id=None
        )

    @pytest.mark.asyncio
    async def test_system_keys(self, device):
        await device.back()
        await device.home()
        await device.recent()

        codes = [call.args[3] for call in device._run_adb.await_args_list]
        assert codes == ["4", "3", "187"]

    @pytest.mark.asyncio
    async def test_type_text_uses_base64_broadcast(self, device):
        await device.type_text("你好")

        encoded = base64.b64encode("你好".encode("utf-8")).decode("ascii")
        device._run_adb.assert_awaited_once_with(
            "shell", "am", "broadcast", "-a", "ADB_INPUT_B64", "--es", "msg", encoded, device_id=None
        )

    @pytest.mark.asyncio
    async def test_launch_known_app(self, device):
        assert await device.launch_app("微信") is True

        args = device._run_adb.await_args.args
        assert args[:4] == ("shell", "monkey", "-p", "com.tencent.mm")

    @pytest.mark.asyncio
    async def test_launch_unknown_app(self, device):
        assert await device.launch_app("不存在的应用") is False

        device._run_adb.assert_not_awaited()


class TestObservation:
    """Tests for device listing, foreground app and screenshots."""

    @pytest.mark.asyncio
    async def test_list_devices(self, device):
        device._run_adb.side_effect = [
            _completed(
                "List of devices attached\n"
                "emulator-5554          device product:sdk_gphone64 model:sdk_gphone64 device:emu64\n"
                "R58M123               unauthorized usb:1-1\n\n"
            ),
            _completed("google\nPixel 8\n14\n"),
        ]

        devices = await device.list_devices()

        assert [d.device_id for d in devices] == ["emulator-5554", "R58M123"]
        first, second = devices
        assert first.status == "device"
        assert first.model == "sdk_gphone64"
        assert (first.brand, first.market_name, first.android_version) == ("google", "Pixel 8", "14")
        assert second.status == "unauthorized"
        assert second.brand == ""

    @pytest.mark.asyncio
    async def test_list_devices_failure(self, device):
        device._run_adb.return_value = _completed(returncode=1, stderr="daemon not running")

        with pytest.raises(RuntimeError):
            await device.list_devices()

    @pytest.mark.asyncio
    async def test_current_app(self, device):
        device._run_adb.return_value = _completed(
            "  mCurrentFocus=Window{1a2b u0 com.tencent.mm/com.tencent.mm.ui.LauncherUI}\n"
        )

        assert await device.current_app() == "微信"

    @pytest.mark.asyncio
    async def test_current_app_unknown(self, device):
        device._run_adb.return_value = _completed("  mCurrentFocus=Window{1a2b u0 com.example/.Main}\n")

        assert await device.current_app() == "System"

    @pytest.mark.asyncio
    async def test_screenshot(self, device):
        output = io.BytesIO()
        Image.effect_noise((200, 400), 100).save(output, format="PNG")
        device._run_adb_bytes = AsyncMock(return_value=output.getvalue())

        shot = await device.screenshot()

        assert (shot.width, shot.height) == (200, 400)
        assert shot.is_fallback is False
        assert base64.b64decode(shot.base64) == output.getvalue()

    @pytest.mark.asyncio
    async def test_screenshot_falls_back(self, device):
        device._run_adb_bytes = AsyncMock(side_effect=RuntimeError("device offline"))

        shot = await device.screenshot()

        assert shot.is_fallback is True
        assert (shot.width, shot.height) == (1080, 2400)


class TestHelpers:
    """Tests for app resolution and screenshot helpers."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("微信", "com.tencent.mm"),
            ("chrome", "com.android.chrome"),
            ("com.example.app", "com.example.app"),
            ("不存在的应用", None),
            ("  ", None),
        ],
    )
    def test_resolve_package_name(self, name, expected):
        assert resolve_package_name(name) == expected

    def test_blank_screenshot(self):
        shot = blank_screenshot(100, 200)
        image = Image.open(io.BytesIO(base64.b64decode(shot.base64)))

        assert image.size == (100, 200)
        assert shot.is_fallback is True

    def test_resize_for_preview(self):
        large = blank_screenshot(1080, 2400)
        small = blank_screenshot(100, 200)

        preview = Image.open(io.BytesIO(base64.b64decode(resize_for_preview(large.base64))))

        assert preview.width <= 540 and preview.height <= 1200
        assert resize_for_preview(small.base64) == small.base64
