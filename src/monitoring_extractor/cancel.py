"""Cancellation signal shared by the blocking stages of a run."""

from __future__ import annotations

import signal
import threading

from monitoring_extractor.errors import ExtractionCancelled


class CancelToken:
    """A one-shot flag that blocking loops sleep on and check between ticks."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self, namespace: str | None = None, workload: str | None = None) -> None:
        if self._event.is_set():
            raise ExtractionCancelled(
                f"extraction cancelled ({self.reason})",
                namespace=namespace,
                workload=workload,
            )


def install_signal_handlers(token: CancelToken) -> None:
    """Route the first SIGINT or SIGTERM into ``token``; a second one gets the default behaviour."""

    def _handler(signum: int, _frame) -> None:
        signal.signal(signal.SIGINT, signal.default_int_handler)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)
        token.cancel(signal.Signals(signum).name)

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
