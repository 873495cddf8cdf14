"""
Connection Supervisor - the reconnect loop around Link, ReadPump and ingress.

State machine::

    IDLE -> CONNECTING -> RUNNING -> DRAINING -> IDLE (reconnect)
                |                        \\
                +--(shutdown)--> TERMINATED <+

Each pass through the loop is one connection cycle: build a fresh Link,
connect it, start the read pump and the ingress server against it, wait
for the first of {shutdown requested, read pump finished}, then drain in
a fixed order: stop the listener, close the Link, join the pump.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from ..asyncio_utils import cancel_and_wait, create_logged_task
from ..exceptions import ConnectFailed, ListenFailed
from ..logging_utils import LoggerLike, ensure_structured_logger
from ..shutdown_coordinator import ShutdownCoordinator
from .link import Link
from .observers import LoggingObserver, MessageObserver
from .read_pump import ReadPump
from .retry_policy import RetryPolicy, SleepFunc

if TYPE_CHECKING:
    from ..api.server import IngressServer

LinkFactory = Callable[[str], Link]
ServerFactory = Callable[[Link], "IngressServer"]

CLOSE_REASON = "bridge shutting down"


class SupervisorState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


class ConnectionSupervisor:
    """
    Owns the single live Link and decides when it is created and destroyed.

    Connect failures are always transient: they are logged, followed by
    one retry delay, and retried forever. Only a shutdown request ends
    :meth:`run`.

    ``link_factory``, ``server_factory`` and ``sleep`` exist so tests can
    drive the loop without sockets or real delays.
    """

    def __init__(
        self,
        target_url: str,
        shutdown: ShutdownCoordinator,
        *,
        host: str = "0.0.0.0",
        port: int = 9999,
        max_body: Optional[int] = None,
        retry: Optional[RetryPolicy] = None,
        observer: Optional[MessageObserver] = None,
        link_factory: Optional[LinkFactory] = None,
        server_factory: Optional[ServerFactory] = None,
        sleep: SleepFunc = asyncio.sleep,
        logger: LoggerLike = None,
    ):
        self.target_url = target_url
        self.shutdown = shutdown
        self.host = host
        self.port = port
        self.max_body = max_body
        self.retry = retry or RetryPolicy()
        self.logger = ensure_structured_logger(logger, fallback_name="ConnectionSupervisor")
        self.observer = observer or LoggingObserver()
        self._link_factory = link_factory or self._default_link_factory
        self._server_factory = server_factory or self._default_server_factory
        self._sleep = sleep

        self._state = SupervisorState.IDLE
        self.cycle = 0
        self.link: Optional[Link] = None
        self.ingress: Optional["IngressServer"] = None
        self.pump: Optional[ReadPump] = None

    @property
    def state(self) -> SupervisorState:
        return self._state

    def _set_state(self, new_state: SupervisorState) -> None:
        if new_state is not self._state:
            self.logger.debug("State %s -> %s", self._state.value, new_state.value)
            self._state = new_state

    def _default_link_factory(self, target_url: str) -> Link:
        return Link(target_url, logger=self.logger.getChild("Link"))

    def _default_server_factory(self, link: Link) -> "IngressServer":
        from ..api.server import IngressServer

        return IngressServer(
            link,
            self.observer,
            self.host,
            self.port,
            max_body=self.max_body,
            logger=self.logger.getChild("Ingress"),
        )

    async def run(self) -> None:
        """Connect, serve, drain and reconnect until shutdown is requested."""
        self.logger.info("Bridging http://%s:%d -> %s", self.host, self.port, self.target_url)
        try:
            while not self.shutdown.is_shutdown_requested:
                link = await self._connect()
                if link is None:
                    continue
                if self.shutdown.is_shutdown_requested:
                    # Shutdown arrived while connecting; do not open ingress.
                    await link.close(CLOSE_REASON)
                    break
                await self._run_cycle(link)
                if not self.shutdown.is_shutdown_requested:
                    self._set_state(SupervisorState.IDLE)
        finally:
            self._set_state(SupervisorState.TERMINATED)
            self.logger.info("Supervisor stopped after %d connection attempt(s)", self.cycle)

    async def _connect(self) -> Optional[Link]:
        self._set_state(SupervisorState.CONNECTING)
        self.cycle += 1
        link = self._link_factory(self.target_url)
        self.logger.debug("Connection attempt %d to %s", self.cycle, self.target_url)
        try:
            await link.connect(self.retry.connect_timeout)
        except ConnectFailed as exc:
            self.logger.error("Websocket not connected: %s", exc)
            if self.shutdown.is_shutdown_requested:
                return None
            await self.retry.pause(self._sleep)
            return None
        return link

    async def _run_cycle(self, link: Link) -> None:
        self._set_state(SupervisorState.RUNNING)
        self.link = link
        self.pump = ReadPump(
            link,
            self.observer,
            retry=self.retry,
            sleep=self._sleep,
            logger=self.logger.getChild("ReadPump"),
        )
        self.ingress = self._server_factory(link)
        pump_task = self.pump.start()
        shutdown_task: Optional[asyncio.Task] = None
        try:
            try:
                await self.ingress.start()
            except ListenFailed as exc:
                self.logger.error("Server listen failed: %s", exc)

            shutdown_task = create_logged_task(
                self.shutdown.wait(), logger=self.logger, context="shutdown-wait"
            )
            await asyncio.wait({pump_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
            if pump_task.done() and not self.shutdown.is_shutdown_requested:
                pump = self.pump
                self.logger.info(
                    "Read pump finished after %d message(s)%s; reconnecting",
                    pump.received,
                    f" ({pump.error})" if pump.error else "",
                )
        finally:
            self._set_state(SupervisorState.DRAINING)
            await cancel_and_wait(shutdown_task)
            await self._drain(link, pump_task)

    async def _drain(self, link: Link, pump_task: asyncio.Task) -> None:
        try:
            if self.ingress is not None:
                await self.ingress.stop()
        finally:
            try:
                await link.close(CLOSE_REASON)
            finally:
                await cancel_and_wait(pump_task)
                self.ingress = None
                self.link = None
                self.pump = None


__all__ = ["ConnectionSupervisor", "SupervisorState"]
