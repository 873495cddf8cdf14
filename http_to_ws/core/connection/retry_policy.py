"""
Retry Policy - fixed timing for the reconnect loop.

The bridge retries forever with a constant pause: no backoff growth,
no jitter, no attempt cap. Only a shutdown request ends the loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

DEFAULT_CONNECT_TIMEOUT = 60.0
DEFAULT_RETRY_DELAY = 5.0

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Connect timeout and inter-attempt delay, both in seconds."""

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    delay: float = DEFAULT_RETRY_DELAY

    def __post_init__(self) -> None:
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if self.delay < 0:
            raise ValueError("delay must not be negative")

    async def pause(self, sleep: SleepFunc = asyncio.sleep) -> None:
        """Wait out one inter-attempt delay."""
        await sleep(self.delay)


DEFAULT_RETRY_POLICY = RetryPolicy()
