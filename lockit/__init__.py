"""
LockIt - lock and wake the desktop from the proximity of a Bluetooth LE beacon.

The ProximityMonitor turns the RSSI samples of one selected device into
lock/wake decisions. The desktop bindings (bleak scanner, GNOME D-Bus
actions, GLib main loop) live in their own modules so the core can be
embedded and tested without them.
"""

from .config import CONFIG, ConfigStore, ProximityConfig
from .models import DeviceSample, LockMode, MonitorState, ScanReason
from .monitor import ProximityMonitor

__version__ = "0.1.0"

__all__ = [
    "CONFIG",
    "ConfigStore",
    "DeviceSample",
    "LockMode",
    "MonitorState",
    "ProximityConfig",
    "ProximityMonitor",
    "ScanReason",
]
