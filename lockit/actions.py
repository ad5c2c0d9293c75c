"""
Desktop actions over the D-Bus session bus.

GNOME ScreenSaver does lock, screensaver and wake; MPRIS players are paused
on lock when configured. Calls are made asynchronously so that nothing
blocks the main loop; failures arrive in the error handler and are logged.
"""

import logging

import dbus

from .models import LockMode

logger = logging.getLogger(__name__)

SCREENSAVER_BUS_NAME = 'org.gnome.ScreenSaver'
SCREENSAVER_PATH = '/org/gnome/ScreenSaver'
SCREENSAVER_INTERFACE = 'org.gnome.ScreenSaver'

MPRIS_PREFIX = 'org.mpris.MediaPlayer2.'
MPRIS_PATH = '/org/mpris/MediaPlayer2'
MPRIS_PLAYER_INTERFACE = 'org.mpris.MediaPlayer2.Player'


class DBusScreenActions:

    def __init__(self, session_bus=None):
        self.session_bus = session_bus if session_bus is not None else dbus.SessionBus()

    def _screensaver(self):
        return self.session_bus.get_object(SCREENSAVER_BUS_NAME, SCREENSAVER_PATH)

    def _call_async(self, what, method, *args, **kwargs):
        method(
            *args,
            reply_handler=lambda *reply: logger.info(f"{what} succeeded."),
            error_handler=lambda e: logger.error(f"Failed to {what.lower()}: {e}"),
            **kwargs
        )

    def lock(self, mode):
        screensaver = self._screensaver()
        if mode is LockMode.SCREEN_SAVER:
            self._call_async("Start screensaver", screensaver.SetActive, True,
                             dbus_interface=SCREENSAVER_INTERFACE)
        else:
            self._call_async("Lock screen", screensaver.Lock, dbus_interface=SCREENSAVER_INTERFACE)

    def wake(self):
        # Dismisses the screensaver overlay, the password prompt stays.
        self._call_async("Wake screen", self._screensaver().SetActive, False,
                         dbus_interface=SCREENSAVER_INTERFACE)

    def is_screen_locked(self):
        try:
            return bool(self._screensaver().GetActive(dbus_interface=SCREENSAVER_INTERFACE))
        except dbus.exceptions.DBusException as e:
            logger.debug(f"Failed to check screen lock status: {e}")
            return False

    def pause_media(self):
        names = [str(n) for n in self.session_bus.list_names() if str(n).startswith(MPRIS_PREFIX)]
        for name in names:
            player = self.session_bus.get_object(name, MPRIS_PATH)
            self._call_async(f"Pause {name[len(MPRIS_PREFIX):]}", player.Pause,
                             dbus_interface=MPRIS_PLAYER_INTERFACE)
        if not names:
            logger.debug("No MPRIS media players to pause.")
