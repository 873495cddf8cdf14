"""Failure types raised inside a connection cycle."""

from __future__ import annotations

from typing import Optional


class BridgeError(Exception):
    """Base class for bridge failures. None of these are fatal to the process."""


class ConnectFailed(BridgeError):
    """The outbound connection could not be established in time."""

    def __init__(self, target_url: str, reason: str) -> None:
        super().__init__(f"could not connect to {target_url}: {reason}")
        self.target_url = target_url
        self.reason = reason


class SendFailed(BridgeError):
    """A message could not be written to the link."""


class ReceiveFailed(BridgeError):
    """Reading from the link failed or the peer closed abnormally."""

    def __init__(self, reason: str, close_code: Optional[int] = None) -> None:
        super().__init__(reason if close_code is None else f"{reason} (code={close_code})")
        self.reason = reason
        self.close_code = close_code


class ListenFailed(BridgeError):
    """The ingress listener could not bind its address."""

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"cannot listen on {address}: {reason}")
        self.address = address
        self.reason = reason


__all__ = ["BridgeError", "ConnectFailed", "ListenFailed", "ReceiveFailed", "SendFailed"]
