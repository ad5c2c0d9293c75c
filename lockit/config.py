import json
import logging
import os
from dataclasses import dataclass

from .models import LockMode

logger = logging.getLogger(__name__)

# --- Configuration - Edit these values for your setup ---
CONFIG = {
    # Identifier (MAC address on BlueZ) of the device that drives lock/wake.
    # Find it using: bluetoothctl scan on
    'selected_device': None,

    # --- IMPORTANT: Adjust these based on your environment ---
    # A stronger signal has a higher RSSI (e.g., -40 is stronger than -70)
    'weak_signal_threshold': -75,       # Lock timer starts if RSSI is weaker (lower) than this
    'screen_on_signal_threshold': -70,  # Wake screen if RSSI is stronger (higher) than this, 0 disables
    'weak_signal_timeout': 10.0,        # Seconds of weak signal before locking
    'disconnect_timeout': 5.0,          # Seconds after the device vanished before locking, 0 disables

    'lock_mode': 'lock_screen',         # 'lock_screen' or 'screen_saver'
    'wake_on_auto_lock_only': False,    # Only wake the screen if we locked it
    'pause_media_on_lock': False,       # Pause MPRIS media players when locking

    'adapter': 'hci0',
    'settings_file': os.path.expanduser('~/.config/lockit/settings.json'),
    'log_dir': os.path.expanduser('~/.local/state/lockit'),
    'debug_mode': True,                 # Set to False to reduce logging
}
# --- End Configuration ---


@dataclass(frozen=True)
class ProximityConfig:
    """Read-only view of the settings used for one evaluation."""
    weak_threshold: int = -75
    screen_on_threshold: int = -70
    weak_timeout: float = 10.0
    disconnect_timeout: float = 5.0
    lock_mode: LockMode = LockMode.LOCK_SCREEN
    wake_on_auto_lock_only: bool = False
    pause_media_on_lock: bool = False

    @property
    def wake_enabled(self):
        return self.screen_on_threshold != 0


class ConfigStore:
    """Settings dict overlaid by an optional JSON settings file.

    Only ``selected_device`` is ever changed at runtime. Saving writes back
    what the file held plus that key; everything else is read through
    ``snapshot()``.
    """

    def __init__(self, values=None, path=None):
        self.values = dict(CONFIG)
        if values:
            self.values.update(values)
        self.path = path
        self._stored = {}
        if path:
            self.load()

    def load(self):
        if not self.path or not os.path.exists(self.path):
            return
        try:
            with open(self.path) as f:
                stored = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read settings file {self.path}: {e}")
            return
        for key, value in stored.items():
            if key not in CONFIG:
                logger.warning(f"Ignoring unknown setting '{key}' in {self.path}")
                continue
            self.values[key] = value
            self._stored[key] = value
        logger.debug(f"Loaded settings from {self.path}")

    def save(self):
        if not self.path:
            return
        try:
            os.makedirs(os.path.dirname(self.path) or '.', exist_ok=True)
            with open(self.path, 'w') as f:
                json.dump(self._stored, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to write settings file {self.path}: {e}")

    def __getitem__(self, key):
        return self.values[key]

    @property
    def selected_device(self):
        return self.values.get('selected_device') or None

    def set_selected_device(self, identifier):
        self.values['selected_device'] = identifier
        self._stored['selected_device'] = identifier
        self.save()

    def snapshot(self):
        v = self.values
        return ProximityConfig(
            weak_threshold=int(v['weak_signal_threshold']),
            screen_on_threshold=int(v['screen_on_signal_threshold']),
            weak_timeout=float(v['weak_signal_timeout']),
            disconnect_timeout=float(v['disconnect_timeout']),
            lock_mode=LockMode(v['lock_mode']),
            wake_on_auto_lock_only=bool(v['wake_on_auto_lock_only']),
            pause_media_on_lock=bool(v['pause_media_on_lock']),
        )

    def validate_configuration(self):
        v = self.values
        try:
            weak = int(v['weak_signal_threshold'])
            screen_on = int(v['screen_on_signal_threshold'])
            timeouts = float(v['weak_signal_timeout']), float(v['disconnect_timeout'])
        except (TypeError, ValueError) as e:
            logger.error(f"Configuration error: {e}")
            return False
        if screen_on != 0 and screen_on <= weak:
            logger.error(
                f"Configuration error: screen on threshold ({screen_on} dBm) must be 0 "
                f"or stronger than the weak signal threshold ({weak} dBm)."
            )
            return False
        if any(t < 0 for t in timeouts):
            logger.error("Configuration error: timeouts must not be negative.")
            return False
        if v['lock_mode'] not in {m.value for m in LockMode}:
            logger.error(f"Configuration error: unknown lock mode '{v['lock_mode']}'.")
            return False
        return True
