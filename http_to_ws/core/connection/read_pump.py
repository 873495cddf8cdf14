"""
Read Pump - drains inbound frames from the Link for one connection cycle.

The pump runs as its own task. It ends when the Link reports a closure;
its ending is what tells the supervisor that the cycle is over.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from ..asyncio_utils import create_logged_task
from ..exceptions import ReceiveFailed
from ..logging_utils import LoggerLike, ensure_structured_logger
from .observers import MessageObserver
from .link import Link, ReceiveResult
from .retry_policy import DEFAULT_RETRY_POLICY, RetryPolicy, SleepFunc


class ReadPump:
    """Loops on ``Link.receive`` and hands text frames to an observer.

    Termination rules:
    - normal closure: return immediately;
    - abnormal closure or receive error: log, wait one retry delay, return.
    """

    def __init__(
        self,
        link: Link,
        observer: MessageObserver,
        *,
        retry: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: SleepFunc = asyncio.sleep,
        logger: LoggerLike = None,
    ) -> None:
        self.link = link
        self.observer = observer
        self.retry = retry
        self._sleep = sleep
        self.logger = ensure_structured_logger(logger, fallback_name="ReadPump")
        self.received = 0
        self.result: Optional[ReceiveResult] = None
        self.error: Optional[ReceiveFailed] = None

    def start(self) -> "asyncio.Task[ReceiveResult]":
        return create_logged_task(self.run(), logger=self.logger, context="read-pump")

    async def run(self) -> ReceiveResult:
        while True:
            result = await self.link.receive()
            if result.is_message:
                self._dispatch(result)
                continue

            self.result = result
            if result.is_normal_closure:
                self.logger.info("Websocket closed normally (code=%s)", result.close_code)
                return result

            self.error = ReceiveFailed(result.error or "abnormal closure", result.close_code)
            self.logger.error("Websocket disconnected: %s", self.error)
            await self.retry.pause(self._sleep)
            return result

    def _dispatch(self, result: ReceiveResult) -> None:
        message = result.message
        self.received += 1
        if not message.is_text:
            self.logger.debug("Dropping binary frame (%d bytes)", len(message.data))
            return
        try:
            self.observer.on_inbound(message)
        except Exception:
            self.logger.exception("Inbound observer failed")


__all__ = ["ReadPump"]
