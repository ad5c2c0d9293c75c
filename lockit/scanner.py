"""
Scan source for Linux/BlueZ.

BleakScanSource runs bleak on its own asyncio loop in a daemon thread and
only ever hands samples to the monitor through ``post_sample``.
BlueZWatcher listens on the system bus for adapter power changes and
explicit device disconnects.
"""

import asyncio
import logging
import threading

import dbus
from bleak import BleakScanner
from bleak.exc import BleakError

logger = logging.getLogger(__name__)

BLUEZ_BUS_NAME = 'org.bluez'
ADAPTER_INTERFACE = 'org.bluez.Adapter1'
DEVICE_INTERFACE = 'org.bluez.Device1'
PROPERTIES_INTERFACE = 'org.freedesktop.DBus.Properties'


def address_from_path(path):
    """'/org/bluez/hci0/dev_AA_BB_CC_DD_EE_FF' -> 'AA:BB:CC:DD:EE:FF'"""
    leaf = str(path).rsplit('/', 1)[-1]
    if not leaf.startswith('dev_'):
        return None
    return leaf[4:].replace('_', ':').upper()


class BleakScanSource:

    def __init__(self, monitor=None, adapter='hci0'):
        self.monitor = monitor
        self.adapter = adapter
        self._loop = None
        self._thread = None
        self._scanner = None

    def bind(self, monitor):
        self.monitor = monitor

    def _ensure_loop(self):
        if self._loop is None:
            self._loop = asyncio.new_event_loop()
            self._thread = threading.Thread(target=self._loop.run_forever, name='lockit-bleak', daemon=True)
            self._thread.start()

    def start_scanning(self):
        self._ensure_loop()
        asyncio.run_coroutine_threadsafe(self._start(), self._loop)

    def stop_scanning(self):
        if self._loop is not None:
            asyncio.run_coroutine_threadsafe(self._stop(), self._loop)

    async def _start(self):
        if self._scanner is not None:
            return
        scanner = BleakScanner(
            detection_callback=self._detection_callback,
            adapter=self.adapter,
            # Report every advertisement, not only the first one per device.
            bluez={'filters': {'DuplicateData': True}},
        )
        try:
            await scanner.start()
        except (BleakError, OSError) as e:
            logger.error(f"Failed to start BLE scan on {self.adapter}: {e}")
            self.monitor.post_power_state(False)
            return
        self._scanner = scanner
        logger.debug(f"Started BLE scan on {self.adapter} with duplicates allowed.")

    async def _stop(self):
        scanner, self._scanner = self._scanner, None
        if scanner is None:
            return
        try:
            await scanner.stop()
        except (BleakError, OSError) as e:
            logger.error(f"Failed to stop BLE scan: {e}")

    def _detection_callback(self, device, advertisement_data):
        self.monitor.post_sample(
            device.address.upper(),
            advertisement_data.local_name or device.name,
            advertisement_data.rssi,
        )

    def close(self):
        if self._loop is None:
            return
        asyncio.run_coroutine_threadsafe(self._stop(), self._loop).result(timeout=5)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5)
        self._loop = None


class BlueZWatcher:

    def __init__(self, monitor, adapter='hci0', system_bus=None):
        self.monitor = monitor
        self.adapter_path = f'/org/bluez/{adapter}'
        self.bus = system_bus if system_bus is not None else dbus.SystemBus()

    def start(self):
        try:
            adapter = self.bus.get_object(BLUEZ_BUS_NAME, self.adapter_path)
            powered = adapter.Get(ADAPTER_INTERFACE, 'Powered', dbus_interface=PROPERTIES_INTERFACE)
        except dbus.exceptions.DBusException as e:
            logger.error(f"Bluetooth adapter {self.adapter_path} unavailable: {e}")
            powered = False
        self.monitor.post_power_state(bool(powered))
        self.bus.add_signal_receiver(
            self._on_properties_changed,
            signal_name='PropertiesChanged',
            dbus_interface=PROPERTIES_INTERFACE,
            bus_name=BLUEZ_BUS_NAME,
            path_keyword='path',
        )

    def _on_properties_changed(self, interface, changed, invalidated, path=None):
        if interface == ADAPTER_INTERFACE and path == self.adapter_path and 'Powered' in changed:
            self.monitor.post_power_state(bool(changed['Powered']))
        elif interface == DEVICE_INTERFACE and 'Connected' in changed and not changed['Connected']:
            address = address_from_path(path)
            if address:
                logger.debug(f"Peripheral explicitly disconnected: {address}")
                self.monitor.post_disconnect(address)
