"""
Ingress Server - aiohttp listener that feeds request bodies into the Link.

A new server is built for every connection cycle and bound to that
cycle's Link; ``stop`` releases the listening socket before the
supervisor moves on.
"""

from __future__ import annotations

from typing import Optional

from aiohttp import web

from ..config import DEFAULT_MAX_BODY
from ..connection.link import Link
from ..connection.observers import MessageObserver
from ..exceptions import ListenFailed
from ..logging_utils import LoggerLike, ensure_structured_logger
from .middleware import error_handling_middleware, request_logging_middleware
from .routes import LINK_KEY, LOGGER_KEY, OBSERVER_KEY, setup_ingress_routes


class IngressServer:
    """HTTP listener with exactly one route, ``POST /``."""

    def __init__(
        self,
        link: Link,
        observer: MessageObserver,
        host: str = "0.0.0.0",
        port: int = 9999,
        *,
        max_body: Optional[int] = None,
        logger: LoggerLike = None,
    ):
        """
        Args:
            link: The cycle's Link; every request body is sent through it
            observer: Told about each forwarded body and whether it was delivered
            host: Interface to bind
            port: Port to bind (0 picks a free one)
            max_body: Largest request body read, in bytes; defaults to 4 MiB
            logger: Optional logger; defaults to the ``IngressServer`` component logger
        """
        self.link = link
        self.observer = observer
        self.host = host
        self.port = port
        self.max_body = max_body or DEFAULT_MAX_BODY
        self.logger = ensure_structured_logger(logger, fallback_name="IngressServer")

        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._running = False

    def _create_app(self) -> web.Application:
        app = web.Application(
            middlewares=[request_logging_middleware, error_handling_middleware],
            client_max_size=self.max_body,
        )
        app[LINK_KEY] = self.link
        app[OBSERVER_KEY] = self.observer
        app[LOGGER_KEY] = self.logger
        setup_ingress_routes(app)
        return app

    async def start(self) -> None:
        """Bind and start serving; raises ListenFailed if the bind fails."""
        if self._running:
            self.logger.warning("Ingress server already running")
            return

        runner = web.AppRunner(self._create_app(), handle_signals=False, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except OSError as exc:
            await runner.cleanup()
            raise ListenFailed(self.address, exc.strerror or str(exc)) from exc

        self._runner = runner
        self._site = site
        self._running = True
        self.logger.info("Ingress server listening on http://%s", self.bound_address)

    async def stop(self) -> None:
        """Stop accepting, finish in-flight requests, and unbind. Idempotent."""
        if not self._running:
            return
        self._running = False

        runner, self._runner = self._runner, None
        self._site = None
        if runner is not None:
            await runner.cleanup()
        self.logger.info("Ingress server stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def bound_port(self) -> Optional[int]:
        """Actual port once started (differs from ``port`` when that is 0)."""
        if self._runner is None:
            return None
        for address in self._runner.addresses:
            if isinstance(address, tuple) and len(address) >= 2:
                return address[1]
        return None

    @property
    def bound_address(self) -> str:
        port = self.bound_port
        return f"{self.host}:{port if port is not None else self.port}"


__all__ = ["IngressServer"]
