"""
udi-http-co2-pg3x NodeServer/Plugin for EISY/Polisy

(C) 2025

http_base PullTimer

Periodically pulls a value through a getter and pushes it through a setter.
The timer is restarted whenever the owner fetches on its own, so a manual
read pushes the next scheduled pull back by a full interval.
"""

# std libraries
from threading import Timer, Lock

# external libraries
from udi_interface import LOGGER

# personal libraries
pass


class PullTimer:
    """Single-shot timer that re-arms itself after every pull.

    Args:
        interval: Pull interval in milliseconds.
        getter: Callable returning the current value, raising on failure.
        setter: Callable receiving each successfully pulled value.
    """

    def __init__(self, interval, getter, setter):
        self.interval = int(interval)
        if self.interval <= 0:
            raise ValueError(f"pull interval must be positive, got {interval}")
        self.getter = getter
        self.setter = setter
        self._timer = None
        self._lock = Lock()
        self._running = False


    def start(self):
        """Arms the timer if it is not already armed."""
        with self._lock:
            self._running = True
            if self._timer is None:
                self._arm()


    def stop(self):
        """Cancels the pending pull."""
        with self._lock:
            self._running = False
            self._cancel()


    def reset_timer(self):
        """Restarts the countdown from a full interval."""
        with self._lock:
            if not self._running:
                return
            self._cancel()
            self._arm()


    def _arm(self):
        self._timer = Timer(self.interval / 1000, self._handle_timer)
        self._timer.daemon = True
        self._timer.start()


    def _cancel(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


    def _handle_timer(self):
        with self._lock:
            self._timer = None
        try:
            value = self.getter()
        except Exception as ex:
            LOGGER.error(f"PullTimer: error while pulling value: {ex}")
        else:
            try:
                self.setter(value)
            except Exception as ex:
                LOGGER.error(f"PullTimer: error while pushing value {value}: {ex}", exc_info=True)
        # getter may already have re-armed us through reset_timer()
        with self._lock:
            if self._running and self._timer is None:
                self._arm()
