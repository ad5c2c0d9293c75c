"""Pytest configuration and fixtures."""

import itertools
from unittest.mock import MagicMock

import pytest

from lockit.config import ConfigStore
from lockit.models import LockMode
from lockit.monitor import ProximityMonitor
from lockit.scheduler import Scheduler

from .const import PHONE


class ManualScheduler(Scheduler):
    """Scheduler driven by a fake clock; nothing runs until the test says so."""

    def __init__(self):
        super().__init__()
        self.now = 0.0
        self._handles = []
        self._soon = []
        self._seq = itertools.count()

    def clock(self):
        return self.now

    def _start(self, delay, fn, repeat):
        handle = {
            'due': self.now + delay,
            'interval': delay if repeat else None,
            'fn': fn,
            'cancelled': False,
            'seq': next(self._seq),
        }
        self._handles.append(handle)
        return handle

    def _stop(self, handle):
        handle['cancelled'] = True

    def call_soon(self, fn):
        self._soon.append(fn)

    def run_pending(self):
        while self._soon:
            self._soon.pop(0)()

    def handle(self, name):
        return self._timers[name][1]

    def advance(self, seconds):
        end = self.now + seconds
        while True:
            self.run_pending()
            due = [h for h in self._handles if not h['cancelled'] and h['due'] <= end]
            if not due:
                break
            h = min(due, key=lambda h: (h['due'], h['seq']))
            self.now = h['due']
            if h['interval'] is None:
                h['cancelled'] = True
            else:
                h['due'] += h['interval']
            h['fn']()
        self.now = end
        self._handles = [h for h in self._handles if not h['cancelled']]


class FakeScanSource:

    def __init__(self):
        self.start_count = 0
        self.stop_count = 0
        self.active = False

    def start_scanning(self):
        self.start_count += 1
        self.active = True

    def stop_scanning(self):
        self.stop_count += 1
        self.active = False


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def scan_source():
    return FakeScanSource()


@pytest.fixture
def actions():
    """Desktop actions; the screen reports locked unless a test says otherwise."""
    mock = MagicMock()
    mock.is_screen_locked.return_value = True
    return mock


@pytest.fixture
def config_store():
    return ConfigStore({
        'selected_device': PHONE,
        'weak_signal_threshold': -75,
        'screen_on_signal_threshold': -70,
        'weak_signal_timeout': 10.0,
        'disconnect_timeout': 5.0,
        'lock_mode': LockMode.LOCK_SCREEN.value,
        'wake_on_auto_lock_only': False,
        'pause_media_on_lock': False,
    })


@pytest.fixture
def published():
    return []


@pytest.fixture
def monitor(scan_source, actions, scheduler, config_store, published):
    """A monitor with the phone selected and the adapter powered on."""
    monitor = ProximityMonitor(
        scan_source, actions, scheduler,
        config_store=config_store,
        clock=scheduler.clock,
        on_devices_changed=published.append,
    )
    monitor.post_power_state(True)
    scheduler.run_pending()
    return monitor


@pytest.fixture
def send(monitor, scheduler):
    """Deliver one advertisement and process it on the owner context."""
    def _send(identifier, rssi, name=None):
        monitor.post_sample(identifier, name, rssi)
        scheduler.run_pending()
    return _send
