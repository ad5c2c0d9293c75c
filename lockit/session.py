import logging

from .registry import FLUSH_INTERVAL, SWEEP_INTERVAL
from .scheduler import FLUSH, SWEEP

logger = logging.getLogger(__name__)


class ScanSession:
    """
    Reference counts scan reasons and owns the physical scan.

    The scan runs iff the adapter is powered, the session is not paused and
    at least one reason is active. Pausing keeps the reasons so that
    ``resume()`` restarts exactly what was running before.
    """

    def __init__(self, scan_source, scheduler, on_flush, on_sweep,
                 flush_interval=FLUSH_INTERVAL, sweep_interval=SWEEP_INTERVAL):
        self.scan_source = scan_source
        self.scheduler = scheduler
        self.on_flush = on_flush
        self.on_sweep = on_sweep
        self.flush_interval = flush_interval
        self.sweep_interval = sweep_interval
        self.active_reasons = set()
        self.is_powered = False
        self.is_paused = False
        self.is_scanning = False

    @property
    def should_scan(self):
        return self.is_powered and not self.is_paused and bool(self.active_reasons)

    def add_reason(self, reason):
        if reason in self.active_reasons:
            return False
        self.active_reasons.add(reason)
        logger.debug(f"Scan reason added: {reason.value} (active: {len(self.active_reasons)})")
        if not self.is_powered:
            logger.info(f"Bluetooth not ready, scan for '{reason.value}' deferred until power on")
        self._update()
        return True

    def remove_reason(self, reason):
        if reason not in self.active_reasons:
            return False
        self.active_reasons.discard(reason)
        logger.debug(f"Scan reason removed: {reason.value} (active: {len(self.active_reasons)})")
        self._update()
        return True

    def set_powered(self, is_ready):
        if is_ready == self.is_powered:
            return
        self.is_powered = is_ready
        logger.info(f"Bluetooth adapter {'powered on' if is_ready else 'not available'}")
        self._update()

    def pause(self):
        self.is_paused = True
        if self.is_scanning:
            self._stop_scan()
        cancelled = self.scheduler.cancel_all()
        logger.info(f"Scanning paused, cancelled timers: {sorted(cancelled)}")

    def resume(self):
        if not self.is_paused:
            return
        self.is_paused = False
        logger.info("Scanning resumed")
        self._update()

    def _update(self):
        if self.should_scan and not self.is_scanning:
            self._start_scan()
        elif not self.should_scan and self.is_scanning:
            self._stop_scan()
            # Nothing buffered before the stop may be lost.
            self.on_flush()

    def _start_scan(self):
        try:
            self.scan_source.start_scanning()
        except Exception as e:
            logger.error(f"Failed to start scanning: {e}")
            self.is_powered = False
            return
        self.is_scanning = True
        self.scheduler.call_every(FLUSH, self.flush_interval, self.on_flush)
        self.scheduler.call_every(SWEEP, self.sweep_interval, self.on_sweep)
        logger.info(f"Started scanning for: {sorted(r.value for r in self.active_reasons)}")

    def _stop_scan(self):
        self.is_scanning = False
        self.scheduler.cancel(FLUSH)
        self.scheduler.cancel(SWEEP)
        try:
            self.scan_source.stop_scanning()
        except Exception as e:
            logger.error(f"Failed to stop scanning: {e}")
        logger.info("Stopped scanning")
