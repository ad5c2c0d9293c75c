from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class LockMode(Enum):
    LOCK_SCREEN = "lock_screen"
    SCREEN_SAVER = "screen_saver"


class ScanReason(Enum):
    """Named justification for keeping the physical scan running."""
    APP_LAUNCH = "app_launch"
    LIST_POPULATION = "list_population"
    SELECTED_DEVICE_MONITORING = "selected_device_monitoring"


class MonitorState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    SCANNING = "scanning"
    IDLE = "idle"
    PAUSED = "paused"


@dataclass(frozen=True)
class DeviceSample:
    """One advertisement seen for a device.

    The timestamp does not take part in equality so that two device lists
    only differ when a device, its name or its RSSI changed.
    """
    identifier: str
    display_name: Optional[str]
    signal_level: int
    last_seen_at: float = field(compare=False)

    @property
    def sort_key(self):
        return self.display_name or ""

    def seen_at(self, timestamp):
        return DeviceSample(self.identifier, self.display_name, self.signal_level, timestamp)


class HysteresisPhase(Enum):
    IDLE = "idle"
    WEAK_PENDING = "weak_pending"
    NORMAL = "normal"


@dataclass
class HysteresisState:
    """Lock/wake bookkeeping for the selected device."""
    selected_identifier: Optional[str] = None
    phase: HysteresisPhase = HysteresisPhase.IDLE
    weak_timer_armed: bool = False
    was_locked_by_app: bool = False
    # A wake was already attempted for the current strong-signal crossing.
    wake_latched: bool = False
    # The weak timer already locked; no new one until the signal recovers.
    weak_lock_fired: bool = False
