"""
Device Package
==============

The device capability the agent drives, and its ADB implementation.
"""

from phone_agent.device.adb_device import ADBDevice
from phone_agent.device.apps import APP_PACKAGES, resolve_package_name
from phone_agent.device.base import DeviceCapability, DeviceInfo, Screenshot
from phone_agent.device.screenshot import blank_screenshot

__all__ = [
    "ADBDevice",
    "APP_PACKAGES",
    "DeviceCapability",
    "DeviceInfo",
    "Screenshot",
    "blank_screenshot",
    "resolve_package_name",
]
