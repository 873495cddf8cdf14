"""
Outbound connection management.

- Link: the single WebSocket connection, with serialized writes
- ReadPump: task draining inbound frames to an observer
- RetryPolicy: fixed connect timeout and retry delay
- ConnectionSupervisor: the connect / run / drain / reconnect loop
"""

from .link import Link, LinkState, Message, MessageType, ReceiveOutcome, ReceiveResult
from .retry_policy import DEFAULT_RETRY_POLICY, RetryPolicy
from .observers import (
    CompositeObserver,
    ConsoleEchoObserver,
    LoggingObserver,
    MessageObserver,
    build_observer,
)
from .read_pump import ReadPump
from .supervisor import ConnectionSupervisor, SupervisorState

__all__ = [
    # Link
    'Link',
    'LinkState',
    'Message',
    'MessageType',
    'ReceiveOutcome',
    'ReceiveResult',
    # Retry
    'DEFAULT_RETRY_POLICY',
    'RetryPolicy',
    # Observers
    'CompositeObserver',
    'ConsoleEchoObserver',
    'LoggingObserver',
    'MessageObserver',
    'build_observer',
    # Pump and supervisor
    'ReadPump',
    'ConnectionSupervisor',
    'SupervisorState',
]
