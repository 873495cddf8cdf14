"""
Message observers - sinks for traffic crossing the bridge.

The read pump reports every inbound text frame and the ingress handler
reports every forwarded body. Observers only look; a failing observer is
logged and never interrupts the connection.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from rich.console import Console
from rich.text import Text

from .link import Message
from ..logging_utils import LoggerLike, ensure_structured_logger


class MessageObserver:
    """Base observer; both hooks default to no-ops."""

    def on_inbound(self, message: Message) -> None:
        pass

    def on_outbound(self, message: Message, delivered: bool) -> None:
        pass


class LoggingObserver(MessageObserver):
    """Writes message bodies to the log.

    Inbound bodies go out at ``inbound_level``; the console echo already
    shows them, so the command line bridge lowers this to DEBUG when echo is on.
    """

    def __init__(self, logger: LoggerLike = None, inbound_level: int = logging.INFO) -> None:
        self.logger = ensure_structured_logger(logger, fallback_name="Messages")
        self.inbound_level = inbound_level

    def on_inbound(self, message: Message) -> None:
        self.logger.log(self.inbound_level, "<- %s", message.as_text())

    def on_outbound(self, message: Message, delivered: bool) -> None:
        if delivered:
            self.logger.debug("-> %s", message.as_text())
        else:
            self.logger.warning("-> (not delivered) %s", message.as_text())


class ConsoleEchoObserver(MessageObserver):
    """Echoes bodies to the terminal: green when sent, cyan when received."""

    OUTBOUND_STYLE = "green"
    INBOUND_STYLE = "cyan"

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)

    def on_inbound(self, message: Message) -> None:
        self.console.print(Text(message.as_text(), style=self.INBOUND_STYLE))

    def on_outbound(self, message: Message, delivered: bool) -> None:
        self.console.print(Text(message.as_text(), style=self.OUTBOUND_STYLE))


class CompositeObserver(MessageObserver):
    """Fans each event out to several observers, isolating their failures."""

    def __init__(self, observers: Iterable[MessageObserver], logger: LoggerLike = None) -> None:
        self.observers = list(observers)
        self.logger = ensure_structured_logger(logger, fallback_name="Observers")

    def on_inbound(self, message: Message) -> None:
        for observer in self.observers:
            try:
                observer.on_inbound(message)
            except Exception:
                self.logger.exception("Observer %s failed on inbound message", type(observer).__name__)

    def on_outbound(self, message: Message, delivered: bool) -> None:
        for observer in self.observers:
            try:
                observer.on_outbound(message, delivered)
            except Exception:
                self.logger.exception("Observer %s failed on outbound message", type(observer).__name__)


def build_observer(echo: bool, logger: LoggerLike = None) -> MessageObserver:
    """The observer chain used by the command line bridge."""
    inbound_level = logging.DEBUG if echo else logging.INFO
    observers: list[MessageObserver] = [LoggingObserver(logger, inbound_level=inbound_level)]
    if echo:
        observers.append(ConsoleEchoObserver())
    return CompositeObserver(observers, logger=logger)


__all__ = [
    "CompositeObserver",
    "ConsoleEchoObserver",
    "LoggingObserver",
    "MessageObserver",
    "build_observer",
]
