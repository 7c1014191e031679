"""Item-boundary stop requests from operators and process signals."""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from ..utils.logging import setup_logger

logger = setup_logger(__name__)


class StopController:
    """
    Records a request to stop the run.

    The orchestrator checks ``stop_requested`` between items; an item that is
    already in flight always finishes and is checkpointed first.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def request_stop(self, reason: str = "stop requested") -> None:
        if not self._event.is_set():
            self.reason = reason
            logger.info("Stop requested (%s); finishing the current item", reason)
        self._event.set()

    @property
    def stop_requested(self) -> bool:
        return self._event.is_set()


@contextmanager
def install_signal_handlers(
    controller: StopController,
    signals: list[signal.Signals] | None = None,
) -> Iterator[None]:
    """
    Route SIGINT/SIGTERM to ``controller`` for the duration of the block.

    A second signal restores the previous handler behaviour, so pressing
    Ctrl+C twice still interrupts immediately. Previous handlers are restored
    on exit.
    """
    if threading.current_thread() is not threading.main_thread():
        logger.info("Skipping signal handler installation outside main thread")
        yield
        return

    if signals is None:
        signals = [signal.SIGTERM, signal.SIGINT]

    previous: dict[signal.Signals, Any] = {}

    def signal_handler(signum: int, frame: Any) -> None:
        sig_name = signal.Signals(signum).name
        if controller.stop_requested:
            logger.warning("Received %s again, interrupting immediately", sig_name)
            raise KeyboardInterrupt
        controller.request_stop(f"received {sig_name}")

    for sig in signals:
        previous[sig] = signal.getsignal(sig)
        signal.signal(sig, signal_handler)
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
