from .websocket_mocks import (
    FakeIngressServer,
    FakeSession,
    FakeWebSocket,
    Frame,
    RecordingObserver,
    RecordingSleep,
    ScriptedLink,
)

__all__ = [
    "FakeIngressServer",
    "FakeSession",
    "FakeWebSocket",
    "Frame",
    "RecordingObserver",
    "RecordingSleep",
    "ScriptedLink",
]
