"""Tests for the bleak scan source and the BlueZ watcher."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

dbus = pytest.importorskip("dbus")
pytest.importorskip("bleak")

from lockit.scanner import (  # noqa: E402
    ADAPTER_INTERFACE,
    DEVICE_INTERFACE,
    BleakScanSource,
    BlueZWatcher,
    address_from_path,
)


@pytest.fixture
def sink():
    return MagicMock()


class TestAddressFromPath:

    def test_device_path(self):
        assert address_from_path('/org/bluez/hci0/dev_aa_BB_cc_DD_ee_FF') == 'AA:BB:CC:DD:EE:FF'

    def test_adapter_path(self):
        assert address_from_path('/org/bluez/hci0') is None


class TestBleakScanSource:

    def test_detection_forwards_sample(self, sink):
        source = BleakScanSource(sink)
        device = SimpleNamespace(address='aa:bb:cc:dd:ee:ff', name='Phone (cached)')
        advertisement = SimpleNamespace(local_name='Phone', rssi=-67)

        source._detection_callback(device, advertisement)

        sink.post_sample.assert_called_once_with('AA:BB:CC:DD:EE:FF', 'Phone', -67)

    def test_detection_falls_back_to_device_name(self, sink):
        source = BleakScanSource(sink)
        device = SimpleNamespace(address='AA:BB:CC:DD:EE:FF', name=None)

        source._detection_callback(device, SimpleNamespace(local_name=None, rssi=-90))

        sink.post_sample.assert_called_once_with('AA:BB:CC:DD:EE:FF', None, -90)

    def test_stop_before_start_is_noop(self, sink):
        BleakScanSource(sink).stop_scanning()


class TestBlueZWatcher:

    @pytest.fixture
    def bus(self):
        return MagicMock()

    def test_reports_initial_power_state(self, sink, bus):
        bus.get_object.return_value.Get.return_value = dbus.Boolean(True)

        BlueZWatcher(sink, system_bus=bus).start()

        sink.post_power_state.assert_called_once_with(True)
        bus.add_signal_receiver.assert_called_once()

    def test_missing_adapter_reports_not_ready(self, sink, bus):
        bus.get_object.side_effect = dbus.exceptions.DBusException("no adapter")

        BlueZWatcher(sink, system_bus=bus).start()

        sink.post_power_state.assert_called_once_with(False)

    def test_power_change(self, sink, bus):
        watcher = BlueZWatcher(sink, adapter='hci1', system_bus=bus)

        watcher._on_properties_changed(ADAPTER_INTERFACE, {'Powered': False}, [], path='/org/bluez/hci1')
        watcher._on_properties_changed(ADAPTER_INTERFACE, {'Powered': True}, [], path='/org/bluez/hci0')

        sink.post_power_state.assert_called_once_with(False)

    def test_device_disconnect(self, sink, bus):
        watcher = BlueZWatcher(sink, system_bus=bus)
        path = '/org/bluez/hci0/dev_AA_BB_CC_DD_EE_FF'

        watcher._on_properties_changed(DEVICE_INTERFACE, {'Connected': True}, [], path=path)
        watcher._on_properties_changed(DEVICE_INTERFACE, {'RSSI': -60}, [], path=path)
        watcher._on_properties_changed(DEVICE_INTERFACE, {'Connected': False}, [], path=path)

        sink.post_disconnect.assert_called_once_with('AA:BB:CC:DD:EE:FF')
