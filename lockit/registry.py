import logging

logger = logging.getLogger(__name__)

DEVICE_STALE_TIMEOUT = 5.0  # Seconds without an advertisement before a device is dropped
FLUSH_INTERVAL = 1.0
SWEEP_INTERVAL = 5.0


class DeviceRegistry:
    """
    Known devices and their latest sample.

    Discovery writes into ``buffered`` only. ``flush()`` merges the buffer
    into ``authoritative`` and tells the listener about the sorted device
    list when it actually changed. ``sweep_stale()`` drops devices that
    stopped advertising, except the selected one.
    """

    def __init__(self, stale_after=DEVICE_STALE_TIMEOUT, on_devices_changed=None):
        self.stale_after = stale_after
        self.on_devices_changed = on_devices_changed
        self.buffered = {}
        self.authoritative = {}
        self._published = []

    @property
    def devices(self):
        return list(self._published)

    def get(self, identifier):
        return self.authoritative.get(identifier) or self.buffered.get(identifier)

    def record_sample(self, sample):
        self.buffered[sample.identifier] = sample

    def flush(self, force=False):
        if not self.buffered and not force:
            return False
        self.authoritative.update(self.buffered)
        self.buffered.clear()

        updated = sorted(self.authoritative.values(), key=lambda d: d.sort_key)
        if updated == self._published:
            return False
        self._published = updated
        logger.debug(f"Device list updated: {len(updated)} device(s)")
        if self.on_devices_changed:
            self.on_devices_changed(list(updated))
        return True

    def sweep_stale(self, now, selected_identifier=None, on_selected_stale=None):
        removed = False
        for identifier, device in list(self.authoritative.items()):
            if now - device.last_seen_at <= self.stale_after:
                continue
            if identifier == selected_identifier:
                # Kept so that a reappearing device can cancel the pending lock.
                if on_selected_stale:
                    on_selected_stale(device)
                continue
            del self.authoritative[identifier]
            removed = True
            logger.debug(f"Removed stale device: {device.display_name or identifier}")
        if removed:
            self.flush(force=True)
        return removed

    def remove(self, identifier):
        self.buffered.pop(identifier, None)
        if self.authoritative.pop(identifier, None) is None:
            return False
        self.flush(force=True)
        return True

    def rebase(self, now):
        """Treat every known device as seen at ``now``."""
        self.buffered = {k: d.seen_at(now) for k, d in self.buffered.items()}
        self.authoritative = {k: d.seen_at(now) for k, d in self.authoritative.items()}
