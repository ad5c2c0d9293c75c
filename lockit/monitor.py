"""
Proximity monitor: the single entry point for scan events and timer ticks.

The scan source may call the ``post_*`` methods from any thread. Events are
queued and processed on the scheduler's owner context, which is also where
every timer fires, so registry, session and hysteresis state are only ever
touched from one place.
"""

import logging
import queue
import time

from .config import ProximityConfig
from .hysteresis import HysteresisEngine
from .models import DeviceSample, HysteresisState, MonitorState, ScanReason
from .registry import DEVICE_STALE_TIMEOUT, DeviceRegistry
from .session import ScanSession
from .trigger import LockWakeTrigger

logger = logging.getLogger(__name__)

_SAMPLE = 'sample'
_POWER = 'power'
_DISCONNECT = 'disconnect'


class ProximityMonitor:

    def __init__(self, scan_source, actions, scheduler, config_store=None,
                 clock=time.monotonic, on_devices_changed=None, stale_after=DEVICE_STALE_TIMEOUT):
        self.scheduler = scheduler
        self.clock = clock
        self.config_store = None
        self._state = MonitorState.UNINITIALIZED
        self._events = queue.SimpleQueue()
        self._selected_signal_level = None

        self.hysteresis_state = HysteresisState()
        self.registry = DeviceRegistry(stale_after, on_devices_changed)
        self.session = ScanSession(scan_source, scheduler, self._on_flush_timer, self._on_sweep_timer)
        self.trigger = LockWakeTrigger(actions, scheduler, self.get_config, self.hysteresis_state, self._is_paused)
        self.hysteresis = HysteresisEngine(
            self.trigger, scheduler, self.get_config, self.hysteresis_state, self._is_paused
        )
        if config_store is not None:
            self.attach(config_store)

    # --- Lifecycle ---

    def attach(self, config_store):
        try:
            config_store.snapshot()
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid configuration: {e}") from e
        self.config_store = config_store
        if self._state is MonitorState.UNINITIALIZED:
            self._set_state(MonitorState.READY)
        selected = config_store.selected_device
        if selected:
            logger.info(f"Restored selected device: {selected}")
            self.hysteresis.select(selected)
            self.add_reason(ScanReason.SELECTED_DEVICE_MONITORING)

    def get_config(self):
        if self.config_store is None:
            return ProximityConfig()
        return self.config_store.snapshot()

    def add_reason(self, reason):
        self._require_config()
        added = self.session.add_reason(reason)
        self._refresh_state()
        return added

    def remove_reason(self, reason):
        removed = self.session.remove_reason(reason)
        self._refresh_state()
        return removed

    def pause(self):
        if self.is_paused:
            return
        self.session.pause()
        self.hysteresis.disarm()
        self._refresh_state()

    def resume(self):
        if not self.is_paused:
            return
        # Devices seen before the pause get a full stale window again.
        self.registry.rebase(self.clock())
        self.session.resume()
        self._refresh_state()

    def toggle_pause(self):
        if self.is_paused:
            self.resume()
        else:
            self.pause()

    def shutdown(self):
        logger.info("Shutting down proximity monitor...")
        self.session.pause()
        self.hysteresis.disarm()

    # --- Device selection and manual actions ---

    def select_device(self, identifier):
        identifier = identifier or None
        if identifier == self.selected_identifier:
            return
        logger.info(f"Selected device: {identifier or 'none'}")
        self.hysteresis.select(identifier)
        self.trigger.cancel_disconnect_lock()
        self._selected_signal_level = None
        if self.config_store is not None:
            self.config_store.set_selected_device(identifier)
        if identifier:
            self.add_reason(ScanReason.SELECTED_DEVICE_MONITORING)
        else:
            self.remove_reason(ScanReason.SELECTED_DEVICE_MONITORING)

    def lock_now(self):
        if self.is_paused:
            return
        self.trigger.trigger_lock("manual")

    # --- Events from the scan source (any thread) ---

    def post_sample(self, identifier, display_name, signal_level, timestamp=None):
        if timestamp is None:
            timestamp = self.clock()
        self._post(_SAMPLE, DeviceSample(identifier, display_name, int(signal_level), timestamp))

    def post_power_state(self, is_ready):
        self._post(_POWER, bool(is_ready))

    def post_disconnect(self, identifier):
        self._post(_DISCONNECT, identifier)

    def _post(self, kind, payload):
        self._events.put((kind, payload))
        self.scheduler.call_soon(self.drain_events)

    def drain_events(self):
        while True:
            try:
                kind, payload = self._events.get_nowait()
            except queue.Empty:
                return
            if kind == _SAMPLE:
                self._handle_sample(payload)
            elif kind == _POWER:
                self.session.set_powered(payload)
                self._refresh_state()
            elif kind == _DISCONNECT:
                self._handle_disconnect(payload)

    def _handle_sample(self, sample):
        if self.is_paused or self._state is MonitorState.UNINITIALIZED:
            return
        if sample.identifier == self.selected_identifier:
            # Evaluated right away, never delayed by registry batching.
            self._selected_signal_level = sample.signal_level
            self.hysteresis.evaluate(sample)
            self.trigger.cancel_disconnect_lock()
        self.registry.record_sample(sample)

    def _handle_disconnect(self, identifier):
        if self.is_paused:
            return
        if identifier != self.selected_identifier:
            self.registry.remove(identifier)
            return
        logger.info(f"Selected device explicitly disconnected: {identifier}")
        self.hysteresis.disarm()
        device = self.registry.get(identifier)
        name = device.display_name if device and device.display_name else identifier
        self.trigger.on_device_disappeared(name, reason="explicit disconnect")

    # --- Timer callbacks ---

    def _on_flush_timer(self):
        if self.is_paused:
            return
        self.registry.flush()

    def _on_sweep_timer(self):
        if self.is_paused:
            return
        self.registry.sweep_stale(self.clock(), self.selected_identifier, self._on_selected_stale)

    def _on_selected_stale(self, device):
        self.trigger.on_device_disappeared(device.display_name or device.identifier)

    # --- State ---

    def _is_paused(self):
        return self.session.is_paused

    def _require_config(self):
        if self._state is MonitorState.UNINITIALIZED:
            raise RuntimeError("ProximityMonitor has no configuration attached")

    def _refresh_state(self):
        if self._state is MonitorState.UNINITIALIZED:
            return
        if self.session.is_paused:
            new_state = MonitorState.PAUSED
        elif self.session.is_scanning:
            new_state = MonitorState.SCANNING
        elif self._state in (MonitorState.SCANNING, MonitorState.IDLE):
            new_state = MonitorState.IDLE
        else:
            new_state = MonitorState.READY
        self._set_state(new_state)

    def _set_state(self, new_state):
        if new_state is not self._state:
            logger.debug(f"Monitor state: {self._state.value} -> {new_state.value}")
            self._state = new_state

    @property
    def state(self):
        return self._state

    @property
    def is_paused(self):
        return self.session.is_paused

    @property
    def is_scanning(self):
        return self.session.is_scanning

    @property
    def devices(self):
        return self.registry.devices

    @property
    def selected_identifier(self):
        return self.hysteresis_state.selected_identifier

    @property
    def selected_signal_level(self):
        return self._selected_signal_level
