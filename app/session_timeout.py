# app/session_timeout.py

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SESSION_TIMEOUT_SECONDS = 30 * 60
WARNING_BEFORE_TIMEOUT_SECONDS = 5 * 60


class InactivityTimer:
    """Signs a session out after a period without activity.

    Call ``restart()`` on every activity event. The warning fires
    ``warning_before`` seconds ahead of expiry.
    """

    def __init__(
        self,
        on_expire: Callable[[], None],
        on_warning: Optional[Callable[[], None]] = None,
        timeout: float = SESSION_TIMEOUT_SECONDS,
        warning_before: float = WARNING_BEFORE_TIMEOUT_SECONDS,
        timer_factory=threading.Timer,
    ):
        if warning_before >= timeout:
            raise ValueError("warning_before must be shorter than timeout")
        self.on_expire = on_expire
        self.on_warning = on_warning
        self.timeout = timeout
        self.warning_before = warning_before
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._expire_timer = None
        self._warning_timer = None

    @property
    def active(self) -> bool:
        return self._expire_timer is not None

    def restart(self) -> None:
        with self._lock:
            self._cancel_timers()
            self._warning_timer = self._timer_factory(
                self.timeout - self.warning_before, self._warn
            )
            self._expire_timer = self._timer_factory(self.timeout, self._expire)
            self._warning_timer.daemon = True
            self._expire_timer.daemon = True
            self._warning_timer.start()
            self._expire_timer.start()

    def cancel(self) -> None:
        with self._lock:
            self._cancel_timers()

    def _cancel_timers(self) -> None:
        for timer in (self._warning_timer, self._expire_timer):
            if timer is not None:
                timer.cancel()
        self._warning_timer = None
        self._expire_timer = None

    def _warn(self) -> None:
        logger.info("Session will expire in %d seconds due to inactivity", self.warning_before)
        if self.on_warning is not None:
            self.on_warning()

    def _expire(self) -> None:
        logger.info("Session expired due to inactivity")
        with self._lock:
            self._warning_timer = None
            self._expire_timer = None
        self.on_expire()
