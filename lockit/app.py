"""
LockIt - Screen Lock/Wake via Bluetooth Proximity

Key Features:
- Monitor one Bluetooth LE device's proximity using RSSI
- Lock the screen (or start the screensaver) when the signal stays weak
  or the device disappears, wake it when the device comes back close
- Optionally pause media players on lock
- SIGUSR1 toggles pause/resume

Dependencies:
- bleak
- python3-dbus
- python3-gi
- bluez
"""

import logging
import os
import signal
import sys
from logging.handlers import TimedRotatingFileHandler

import dbus
from dbus.mainloop.glib import DBusGMainLoop
from gi.repository import GLib

from .actions import DBusScreenActions
from .config import CONFIG, ConfigStore
from .glib_loop import GLibScheduler
from .models import ScanReason
from .monitor import ProximityMonitor
from .scanner import BleakScanSource, BlueZWatcher

logger = logging.getLogger('lockit')


def setup_logging(config):
    level = logging.DEBUG if config['debug_mode'] else logging.INFO

    # Create logs directory if it doesn't exist
    log_dir = config['log_dir']
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)
    log_file_path = os.path.join(log_dir, 'proximity.log')

    logger.setLevel(level)
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    # Console handler
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    # File handler with 7-day rotation
    file_handler = TimedRotatingFileHandler(
        log_file_path, when='midnight', interval=1, backupCount=7
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


class LockItApp:

    def __init__(self, config):
        self.config = config
        self.loop = GLib.MainLoop()
        self.scheduler = GLibScheduler()
        self.scan_source = BleakScanSource(adapter=config['adapter'])
        self.monitor = ProximityMonitor(
            self.scan_source,
            DBusScreenActions(dbus.SessionBus()),
            self.scheduler,
            config_store=config,
            on_devices_changed=self.log_devices,
        )
        self.scan_source.bind(self.monitor)
        self.watcher = BlueZWatcher(self.monitor, adapter=config['adapter'])

        signal.signal(signal.SIGINT, self.signal_handler)
        signal.signal(signal.SIGTERM, self.signal_handler)
        signal.signal(signal.SIGUSR1, self.signal_handler)

    def log_devices(self, devices):
        for device in devices:
            logger.debug(f"  Device in list: {device.display_name or 'Unknown'} "
                         f"({device.identifier}) RSSI: {device.signal_level} dBm")

    def signal_handler(self, signum, frame):
        if signum == signal.SIGUSR1:
            self.scheduler.call_soon(self.monitor.toggle_pause)
            return
        logger.info(f"Received signal {signum}, shutting down...")
        self.scheduler.call_soon(self.loop.quit)

    def run(self):
        cfg = self.monitor.get_config()
        logger.info("Starting Bluetooth proximity monitoring...")
        logger.info(f"Monitoring device: {self.monitor.selected_identifier}")
        logger.info(f"Lock if RSSI < {cfg.weak_threshold} dBm for {cfg.weak_timeout}s | "
                    f"Wake if RSSI > {cfg.screen_on_threshold} dBm")

        self.monitor.add_reason(ScanReason.APP_LAUNCH)
        self.watcher.start()
        try:
            self.loop.run()
        finally:
            self.monitor.shutdown()
            self.scan_source.close()


def main():
    print("\n" + "="*50)
    print("      LockIt - Bluetooth Proximity Lock")
    print("="*50 + "\n")

    config = ConfigStore(path=CONFIG['settings_file'])
    setup_logging(config)
    if not config.validate_configuration():
        return 1
    if not config.selected_device:
        logger.error("Configuration error: no device selected. Set 'selected_device' "
                     f"in {config.path}")
        return 1

    try:
        DBusGMainLoop(set_as_default=True)
        app = LockItApp(config)
        logger.info("D-Bus session initialized successfully")
    except dbus.exceptions.DBusException as e:
        logger.error(f"Failed to initialize D-Bus: {e}")
        return 1

    app.run()
    return 0

