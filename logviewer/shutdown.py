"""
Graceful shutdown controller.

Any termination signal or unhandled fault moves the controller from RUNNING
to SHUTTING_DOWN: readiness drops, the listener is asked to drain and close,
and a forced-exit timer is armed. Whichever finishes first decides the exit
status (0 for a clean close, 1 for the timeout).
"""

import logging
import os
import sys
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from logviewer.readiness import ReadinessState

logger = logging.getLogger(__name__)


class ShutdownState(str, Enum):
    RUNNING = 'running'
    SHUTTING_DOWN = 'shutting_down'
    TERMINATED = 'terminated'


@dataclass
class ShutdownRequest:
    """The trigger that started shutdown and when the forced exit fires"""
    cause: str
    deadline: float


def start_daemon_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    """Start a timer thread that never keeps the interpreter alive"""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


def exit_process(code: int) -> None:
    """
    Terminate the process with the given status.

    The main thread raises SystemExit so the CLI unwinds normally; any other
    thread (the forced-exit timer) has to take the whole process down at once.
    """
    if threading.current_thread() is threading.main_thread():
        sys.exit(code)
    logging.shutdown()
    os._exit(code)


class ShutdownController:
    """State machine for RUNNING -> SHUTTING_DOWN -> TERMINATED"""

    def __init__(
        self,
        readiness: ReadinessState,
        timeout: float = 5.0,
        exit_func: Callable[[int], None] = exit_process,
        timer_factory=start_daemon_timer,
        clock: Callable[[], float] = time.monotonic
    ):
        self.readiness = readiness
        self.timeout = timeout
        self._exit_func = exit_func
        self._timer_factory = timer_factory
        self._clock = clock
        self._lock = threading.RLock()
        self._state = ShutdownState.RUNNING
        self._listener = None
        self._timer = None
        self.request: Optional[ShutdownRequest] = None
        self.exit_code: Optional[int] = None

    @property
    def state(self) -> ShutdownState:
        return self._state

    def attach_listener(self, listener) -> None:
        """Register the bound listener; it must provide close(on_closed)"""
        with self._lock:
            self._listener = listener

    def request_shutdown(self, cause: str) -> bool:
        """
        Begin shutdown because of ``cause`` (a signal name or fault label).

        Returns:
            True if this call started shutdown, False if one was already
            under way and the trigger was ignored
        """
        with self._lock:
            if self._state is not ShutdownState.RUNNING:
                logger.warning(
                    f'Received {cause} while {self._state.value}; ignoring',
                    extra={'context': {'cause': cause}}
                )
                return False

            self._state = ShutdownState.SHUTTING_DOWN
            self.readiness.begin_shutdown()
            self.request = ShutdownRequest(cause=cause, deadline=self._clock() + self.timeout)
            logger.info(
                f'Received {cause}. Shutting down gracefully...',
                extra={'context': {'cause': cause, 'timeout_s': self.timeout}}
            )

            listener = self._listener
            if listener is None:
                # Nothing was ever bound, so there is nothing to drain
                self._terminate(0)
                return True

            self._timer = self._timer_factory(self.timeout, self._force_exit)

        listener.close(self._on_closed)
        return True

    def _on_closed(self) -> None:
        logger.info('Server closed.')
        self._terminate(0)

    def _force_exit(self) -> None:
        with self._lock:
            if self._state is ShutdownState.TERMINATED:
                return
            logger.error('Forcing shutdown after timeout')
        self._terminate(1)

    def _terminate(self, code: int) -> None:
        with self._lock:
            if self._state is ShutdownState.TERMINATED:
                return
            self._state = ShutdownState.TERMINATED
            self.exit_code = code
            timer, self._timer = self._timer, None
        if timer is not None and code == 0:
            timer.cancel()
        self._exit_func(code)
