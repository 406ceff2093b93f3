"""
Cooperative cancellation.

Long-running loops check the token between iterations; sleeps go through
the token so a stop request wakes them up early.
"""

import signal
import threading
from typing import Iterable


class OperationCancelled(Exception):
    """Raised when a blocking wait is abandoned because a stop was requested."""


class CancellationToken:
    """Thread-safe stop flag shared by the pipeline, search and workers."""

    def __init__(self):
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def sleep(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`, returning early on cancellation.

        Returns:
            True if the full duration elapsed, False if cancelled
        """
        if seconds <= 0:
            return not self.cancelled
        return not self._event.wait(seconds)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelled("Stop requested")


def install_signal_handlers(
    token: CancellationToken,
    signals: Iterable[int] = (signal.SIGINT, signal.SIGTERM),
) -> None:
    """
    Make termination signals set the token instead of killing the process.

    Must be called from the main thread.
    """
    def _handler(signum, frame):
        if not token.cancelled:
            print(f"\n[WARN] Received signal {signum}. Finishing in-flight work...")
        token.cancel()

    for sig in signals:
        signal.signal(sig, _handler)
