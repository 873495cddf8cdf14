"""
Link - the single outbound WebSocket connection.

One Link wraps one connection attempt and, on success, one live socket.
The supervisor owns it: it calls ``connect`` once, hands the Link to the
read pump (reader) and the ingress handler (writer), and calls ``close``
when the cycle ends. A closed Link is never reconnected; the next cycle
builds a new one.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import aiohttp
from aiohttp import WSCloseCode, WSMsgType

from ..exceptions import ConnectFailed, SendFailed
from ..logging_utils import LoggerLike, ensure_structured_logger


class LinkState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"


class MessageType(Enum):
    TEXT = "text"
    BINARY = "binary"


@dataclass(frozen=True)
class Message:
    """A frame's type and raw payload. Delivery is at-most-once."""

    type: MessageType
    data: bytes

    @classmethod
    def text(cls, data) -> "Message":
        if isinstance(data, str):
            data = data.encode("utf-8")
        return cls(MessageType.TEXT, bytes(data))

    @classmethod
    def binary(cls, data: bytes) -> "Message":
        return cls(MessageType.BINARY, bytes(data))

    @property
    def is_text(self) -> bool:
        return self.type is MessageType.TEXT

    def as_text(self) -> str:
        """Decode as UTF-8. Invalid bytes become U+FFFD, so non-UTF-8 bodies are not sent verbatim."""
        return self.data.decode("utf-8", errors="replace")


class ReceiveOutcome(Enum):
    MESSAGE = "message"
    NORMAL_CLOSURE = "normal_closure"
    ABNORMAL_CLOSURE = "abnormal_closure"


@dataclass(frozen=True)
class ReceiveResult:
    """What one ``Link.receive`` call produced."""

    outcome: ReceiveOutcome
    message: Optional[Message] = None
    close_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_message(self) -> bool:
        return self.outcome is ReceiveOutcome.MESSAGE

    @property
    def is_normal_closure(self) -> bool:
        return self.outcome is ReceiveOutcome.NORMAL_CLOSURE

    @classmethod
    def closed(cls, close_code: Optional[int], error: Optional[str] = None) -> "ReceiveResult":
        if close_code == WSCloseCode.OK and error is None:
            return cls(ReceiveOutcome.NORMAL_CLOSURE, close_code=close_code)
        return cls(
            ReceiveOutcome.ABNORMAL_CLOSURE,
            close_code=close_code,
            error=error or "connection closed without a normal status",
        )


_CLOSED_TYPES = (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED)
_SEND_ERRORS = (ConnectionError, aiohttp.ClientError, RuntimeError)


class Link:
    """Owns one outbound WebSocket connection.

    ``send`` may be called from many ingress handlers at once; writes are
    serialized by an internal lock so frames reach the transport in call
    order. ``receive`` is used by a single reader and does not take the
    lock.
    """

    def __init__(
        self,
        target_url: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        logger: LoggerLike = None,
    ) -> None:
        self.target_url = target_url
        self.logger = ensure_structured_logger(logger, fallback_name="Link")
        self._session = session
        self._owns_session = session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._state = LinkState.DISCONNECTED
        self._write_lock = asyncio.Lock()
        self._used = False

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is LinkState.CONNECTED and self._ws is not None and not self._ws.closed

    @property
    def close_code(self) -> Optional[int]:
        return self._ws.close_code if self._ws is not None else None

    async def connect(self, timeout: float) -> None:
        """Open the connection within ``timeout`` seconds or raise ConnectFailed."""
        if self._used:
            raise ConnectFailed(self.target_url, "link already used; create a new one")
        self._used = True
        self._state = LinkState.CONNECTING

        if self._session is None:
            self._session = aiohttp.ClientSession()

        try:
            self._ws = await asyncio.wait_for(
                self._session.ws_connect(self.target_url),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            await self._release_session()
            self._state = LinkState.DISCONNECTED
            raise ConnectFailed(self.target_url, f"timed out after {timeout:g}s") from exc
        except (aiohttp.ClientError, OSError, ValueError) as exc:
            await self._release_session()
            self._state = LinkState.DISCONNECTED
            raise ConnectFailed(self.target_url, str(exc) or type(exc).__name__) from exc

        self._state = LinkState.CONNECTED
        self.logger.info("Websocket connected to %s", self.target_url)

    async def send(self, message: Message) -> None:
        """Write ``message``; raises SendFailed on any transport problem."""
        async with self._write_lock:
            if not self.is_connected:
                raise SendFailed(f"link is {self._state.value}")
            try:
                if message.is_text:
                    await self._ws.send_str(message.as_text())
                else:
                    await self._ws.send_bytes(message.data)
            except _SEND_ERRORS as exc:
                raise SendFailed(str(exc) or type(exc).__name__) from exc

    async def receive(self) -> ReceiveResult:
        """Wait for the next data frame, a close, or an error."""
        ws = self._ws
        if ws is None:
            return ReceiveResult.closed(None, error="link was never connected")

        while True:
            try:
                frame = await ws.receive()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # aiohttp surfaces several transport errors here
                return ReceiveResult.closed(ws.close_code, error=str(exc) or type(exc).__name__)

            if frame.type is WSMsgType.TEXT:
                return ReceiveResult(ReceiveOutcome.MESSAGE, message=Message.text(frame.data))
            if frame.type is WSMsgType.BINARY:
                return ReceiveResult(ReceiveOutcome.MESSAGE, message=Message.binary(frame.data))
            if frame.type is WSMsgType.ERROR:
                error = ws.exception() or frame.data
                return ReceiveResult.closed(ws.close_code, error=str(error) or "websocket error")
            if frame.type in _CLOSED_TYPES:
                if frame.type is WSMsgType.CLOSE:
                    code = frame.data
                elif self._state is LinkState.CLOSING:
                    # our own close() woke this reader before the handshake finished
                    code = WSCloseCode.OK
                else:
                    code = ws.close_code
                return ReceiveResult.closed(code)
            # PING/PONG are answered by aiohttp itself.

    async def close(self, reason: str = "") -> None:
        """Close with a normal status. Idempotent."""
        if self._state in (LinkState.CLOSING, LinkState.DISCONNECTED):
            return
        self._state = LinkState.CLOSING
        ws = self._ws
        try:
            if ws is not None and not ws.closed:
                await ws.close(code=WSCloseCode.OK, message=reason.encode("utf-8"))
        except (ConnectionError, aiohttp.ClientError, asyncio.TimeoutError) as exc:
            self.logger.debug("Error while closing websocket: %s", exc)
        finally:
            await self._release_session()
            self._state = LinkState.DISCONNECTED
        self.logger.debug("Websocket to %s closed", self.target_url)

    async def _release_session(self) -> None:
        if self._owns_session and self._session is not None:
            session, self._session = self._session, None
            await session.close()


__all__ = [
    "Link",
    "LinkState",
    "Message",
    "MessageType",
    "ReceiveOutcome",
    "ReceiveResult",
]
