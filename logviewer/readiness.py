"""
Readiness state read by the /ready probe.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class ReadinessState:
    """
    Whether this instance should receive traffic.

    Starts not ready. The server marks it ready once the listener is bound;
    the shutdown controller calls begin_shutdown(), after which it stays
    not ready for the rest of the process lifetime.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._ready = False
        self._shutting_down = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    def set_ready(self, ready: bool) -> None:
        with self._lock:
            if ready and self._shutting_down:
                logger.warning('Ignoring ready signal: shutdown already in progress')
                return
            self._ready = bool(ready)

    def begin_shutdown(self) -> None:
        with self._lock:
            self._shutting_down = True
            self._ready = False
