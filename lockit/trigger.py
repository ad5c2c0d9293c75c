import logging

from .scheduler import DISCONNECT_DEBOUNCE

logger = logging.getLogger(__name__)


class LockWakeTrigger:
    """
    Calls the desktop lock/wake actions and remembers that we locked.

    Actions are fire-and-forget: a failure is logged and the lock still
    counts as attempted, since nothing reports back whether it worked.
    """

    def __init__(self, actions, scheduler, get_config, state, is_paused):
        self.actions = actions
        self.scheduler = scheduler
        self.get_config = get_config
        self.state = state
        self.is_paused = is_paused
        self.absence_locked = False

    def trigger_lock(self, reason="manual"):
        cfg = self.get_config()
        logger.info(f"LOCK SCREEN ACTION TRIGGERED ({reason}), mode: {cfg.lock_mode.value}")
        self.state.was_locked_by_app = True
        self.state.wake_latched = False
        self._attempt("lock screen", self.actions.lock, cfg.lock_mode)
        if cfg.pause_media_on_lock:
            self._attempt("pause media", self.actions.pause_media)

    def wake(self):
        logger.info("Waking screen.")
        self._attempt("wake screen", self.actions.wake)
        self.state.was_locked_by_app = False

    def is_screen_locked(self):
        try:
            return bool(self.actions.is_screen_locked())
        except Exception as e:
            logger.debug(f"Failed to check screen lock status: {e}")
            return False  # Assume not locked if status check fails

    def on_device_disappeared(self, name, reason="device disappeared (timeout)"):
        self.state.wake_latched = False
        cfg = self.get_config()
        # One lock per absence: re-armed only after the device was seen again.
        if cfg.disconnect_timeout <= 0 or self.disconnect_lock_pending or self.absence_locked:
            return
        self.scheduler.call_later(DISCONNECT_DEBOUNCE, cfg.disconnect_timeout, self._on_disconnect_timeout)
        logger.info(f"Lock screen timer started for [{name}] ({cfg.disconnect_timeout}s). Reason: {reason}.")

    @property
    def disconnect_lock_pending(self):
        return self.scheduler.is_pending(DISCONNECT_DEBOUNCE)

    def cancel_disconnect_lock(self):
        self.absence_locked = False
        if self.scheduler.cancel(DISCONNECT_DEBOUNCE):
            logger.info("Selected device came back into range. Lock screen timer cancelled.")

    def _on_disconnect_timeout(self):
        if self.is_paused():
            return
        self.absence_locked = True
        self.trigger_lock("device disappeared")

    def _attempt(self, what, action, *args):
        try:
            action(*args)
        except Exception as e:
            logger.error(f"Failed to {what}: {e}")
