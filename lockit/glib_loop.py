from gi.repository import GLib

from .scheduler import Scheduler


class GLibScheduler(Scheduler):
    """Scheduler backed by the default GLib main context.

    The GLib main loop is the single owner context of the monitor: timers
    fire on it and ``call_soon`` hands work over to it from other threads.
    """

    def _start(self, delay, fn, repeat):
        def tick():
            fn()
            return repeat

        return GLib.timeout_add(int(delay * 1000), tick)

    def _stop(self, handle):
        GLib.source_remove(handle)

    def call_soon(self, fn):
        def idle():
            fn()
            return False

        GLib.idle_add(idle)
