"""
Named, cancellable timers on the monitor's owner context.

Every timer the monitor uses is registered under one of the names below so
that pausing can cancel all of them with a single ``cancel_all()``.
Subclasses only provide the primitives that talk to a concrete event loop.
"""

import logging

logger = logging.getLogger(__name__)

FLUSH = 'flush'
SWEEP = 'sweep'
WEAK_DEBOUNCE = 'weak_debounce'
DISCONNECT_DEBOUNCE = 'disconnect_debounce'


class Scheduler:

    def __init__(self):
        self._timers = {}

    # --- Primitives for subclasses ---

    def _start(self, delay, fn, repeat):
        """Schedule ``fn`` after ``delay`` seconds and return a handle."""
        raise NotImplementedError

    def _stop(self, handle):
        raise NotImplementedError

    def call_soon(self, fn):
        """Run ``fn`` on the owner context. Safe to call from any thread."""
        raise NotImplementedError

    # --- Named timers ---

    def call_later(self, name, delay, callback):
        """Arm a one-shot timer, replacing any timer with the same name."""
        self._arm(name, delay, callback, repeat=False)

    def call_every(self, name, interval, callback):
        self._arm(name, interval, callback, repeat=True)

    def _arm(self, name, delay, callback, repeat):
        self.cancel(name)
        token = object()

        def fire():
            entry = self._timers.get(name)
            if entry is None or entry[0] is not token:
                # Cancelled or replaced while already queued.
                return
            if not repeat:
                del self._timers[name]
            callback()

        self._timers[name] = (token, self._start(delay, fire, repeat))
        logger.debug(f"Timer '{name}' armed ({delay}s{', repeating' if repeat else ''})")

    def is_pending(self, name):
        return name in self._timers

    def cancel(self, name):
        entry = self._timers.pop(name, None)
        if entry is None:
            return False
        self._stop(entry[1])
        logger.debug(f"Timer '{name}' cancelled")
        return True

    def cancel_all(self):
        names = list(self._timers)
        for name in names:
            self.cancel(name)
        return names

    @property
    def pending(self):
        return set(self._timers)
