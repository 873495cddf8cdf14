"""
Shutdown Coordinator - turns SIGINT/SIGTERM into a single shutdown event.

The supervisor never looks at signals directly. It waits on this
coordinator, alongside its read pump, and stops reconnecting once a
shutdown has been requested.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
import time
from enum import Enum
from typing import Iterable, Optional

from .logging_utils import LoggerLike, ensure_structured_logger

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownState(Enum):
    RUNNING = "running"
    REQUESTED = "requested"


class ShutdownCoordinator:
    """
    Holds the process-wide shutdown request.

    The request fires at most once. Later requests are logged and ignored,
    so the first source (a signal name, "keyboard interrupt", ...) is the
    one reported.
    """

    def __init__(self, logger: LoggerLike = None):
        self.logger = ensure_structured_logger(logger, fallback_name="ShutdownCoordinator")
        self._state = ShutdownState.RUNNING
        self._event = asyncio.Event()
        self._source: Optional[str] = None
        self._requested_at: Optional[float] = None
        self._installed: list[tuple[asyncio.AbstractEventLoop, int]] = []

    @property
    def state(self) -> ShutdownState:
        return self._state

    @property
    def is_shutdown_requested(self) -> bool:
        return self._state is ShutdownState.REQUESTED

    @property
    def source(self) -> Optional[str]:
        return self._source

    @property
    def seconds_since_request(self) -> Optional[float]:
        if self._requested_at is None:
            return None
        return time.monotonic() - self._requested_at

    def request_shutdown(self, source: str = "unknown") -> bool:
        """Fire the shutdown event. Returns False if it had already fired."""
        if self._state is not ShutdownState.RUNNING:
            self.logger.debug("Shutdown already requested by %s, ignoring %s", self._source, source)
            return False

        self._state = ShutdownState.REQUESTED
        self._source = source
        self._requested_at = time.monotonic()
        self._event.set()
        self.logger.info("Received %s, shutting down...", source)
        return True

    async def wait(self) -> None:
        """Block until shutdown has been requested."""
        await self._event.wait()

    def install_signal_handlers(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        signals: Iterable[int] = SHUTDOWN_SIGNALS,
    ) -> None:
        """Route ``signals`` on ``loop`` to :meth:`request_shutdown`."""
        loop = loop or asyncio.get_running_loop()
        for sig in signals:
            name = signal.Signals(sig).name
            try:
                loop.add_signal_handler(sig, self.request_shutdown, name)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler
                self.logger.debug("Signal handlers unsupported for %s on this platform", name)
                continue
            self._installed.append((loop, sig))

    def remove_signal_handlers(self) -> None:
        for loop, sig in self._installed:
            with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
                loop.remove_signal_handler(sig)
        self._installed.clear()


__all__ = ["SHUTDOWN_SIGNALS", "ShutdownCoordinator", "ShutdownState"]
