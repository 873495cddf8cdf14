"""Unit test fixtures: fake transports and recording collaborators.

Everything here runs without sockets. The Link is exercised over
FakeSession/FakeWebSocket; the supervisor over ScriptedLink and
FakeIngressServer.
"""

from __future__ import annotations

import pytest

from http_to_ws.core.connection.retry_policy import RetryPolicy
from tests.infrastructure.mocks import (
    FakeSession,
    FakeWebSocket,
    RecordingObserver,
    RecordingSleep,
)

TARGET_URL = "ws://example.test/socket"


@pytest.fixture
def target_url() -> str:
    return TARGET_URL


@pytest.fixture
def fake_ws() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def fake_session(fake_ws: FakeWebSocket) -> FakeSession:
    return FakeSession(fake_ws)


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def retry_policy() -> RetryPolicy:
    return RetryPolicy(connect_timeout=60.0, delay=5.0)
