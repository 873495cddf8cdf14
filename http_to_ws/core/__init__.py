from .config import BridgeConfig
from .exceptions import BridgeError, ConnectFailed, ListenFailed, ReceiveFailed, SendFailed
from .shutdown_coordinator import ShutdownCoordinator, ShutdownState

__all__ = [
    'BridgeConfig',
    'BridgeError',
    'ConnectFailed',
    'ListenFailed',
    'ReceiveFailed',
    'SendFailed',
    'ShutdownCoordinator',
    'ShutdownState',
]
