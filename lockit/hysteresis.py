import logging

from .models import HysteresisPhase
from .scheduler import WEAK_DEBOUNCE

logger = logging.getLogger(__name__)


class HysteresisEngine:
    """
    Turns RSSI samples of the selected device into lock/wake triggers.

    Below the weak threshold a debounce timer is armed which locks when it
    expires. Above the screen-on threshold the timer is dropped and a locked
    screen is woken. Anything in between only drops the timer. A screen-on
    threshold of 0 switches waking off entirely. Comparisons are strict, so
    a sample equal to a threshold falls in the middle band.

    One weak episode locks once: after the timer fired, further weak samples
    are ignored until the signal recovers or the selection changes.
    """

    def __init__(self, trigger, scheduler, get_config, state, is_paused, strict=__debug__):
        self.trigger = trigger
        self.scheduler = scheduler
        self.get_config = get_config
        self.state = state
        self.is_paused = is_paused
        # Raise on timer/state mismatch instead of repairing it.
        self.strict = strict

    def select(self, identifier):
        self.disarm()
        self.state.selected_identifier = identifier
        self.state.was_locked_by_app = False
        self.state.wake_latched = False

    def evaluate(self, sample, cfg=None):
        state = self.state
        if self.is_paused() or state.selected_identifier is None:
            return
        if sample.identifier != state.selected_identifier:
            return
        if cfg is None:
            cfg = self.get_config()

        level = sample.signal_level
        logger.debug(f"Handling RSSI change: {level} dBm")
        if level < cfg.weak_threshold:
            state.wake_latched = False
            self._arm_weak(cfg)
        elif cfg.wake_enabled and level > cfg.screen_on_threshold:
            self.disarm(HysteresisPhase.NORMAL)
            self._wake_if_locked(cfg)
        else:
            state.wake_latched = False
            self.disarm(HysteresisPhase.NORMAL)

    def disarm(self, phase=HysteresisPhase.IDLE):
        if self.scheduler.cancel(WEAK_DEBOUNCE):
            logger.info("Signal recovered, weak signal timer cancelled.")
        self.state.weak_timer_armed = False
        self.state.weak_lock_fired = False
        self.state.phase = phase

    def _arm_weak(self, cfg):
        state = self.state
        if state.weak_lock_fired:
            return
        pending = self.scheduler.is_pending(WEAK_DEBOUNCE)
        if state.weak_timer_armed and pending:
            return
        if state.weak_timer_armed != pending:
            if self.strict:
                raise AssertionError("weak signal timer out of sync with its state")
            logger.error("Weak signal timer out of sync with its state, re-arming.")
            self.scheduler.cancel(WEAK_DEBOUNCE)

        self.scheduler.call_later(WEAK_DEBOUNCE, cfg.weak_timeout, self._on_weak_timeout)
        state.weak_timer_armed = True
        state.phase = HysteresisPhase.WEAK_PENDING
        logger.info(f"Weak signal, lock timer started ({cfg.weak_timeout}s)")

    def _on_weak_timeout(self):
        if self.is_paused():
            return
        self.state.weak_timer_armed = False
        self.state.phase = HysteresisPhase.IDLE
        self.state.weak_lock_fired = True
        self.trigger.trigger_lock("weak signal")

    def _wake_if_locked(self, cfg):
        state = self.state
        if state.wake_latched:
            return
        if not self.trigger.is_screen_locked():
            logger.debug("Screen is already unlocked, not turning on.")
            return
        if cfg.wake_on_auto_lock_only and not state.was_locked_by_app:
            logger.info("Screen not woken because wake_on_auto_lock_only is enabled "
                        "and the screen was not locked by us.")
            return
        state.wake_latched = True
        self.trigger.wake()
