"""End-to-end: real ingress listener, real Link, and a local WebSocket peer."""

import asyncio
import contextlib

import aiohttp
import pytest
from aiohttp import WSMsgType, web

from http_to_ws.core.connection.retry_policy import RetryPolicy
from http_to_ws.core.connection.supervisor import ConnectionSupervisor, SupervisorState
from http_to_ws.core.shutdown_coordinator import ShutdownCoordinator
from tests.infrastructure.helpers import unused_tcp_port, wait_for_condition
from tests.infrastructure.mocks import RecordingObserver

pytestmark = pytest.mark.integration


class PeerServer:
    """WebSocket endpoint recording every text frame it receives."""

    def __init__(self):
        self.received = []
        self.sockets = []
        self.close_codes = []

    async def handler(self, request):
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.sockets.append(ws)
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                self.received.append(msg.data)
        self.close_codes.append(ws.close_code)
        return ws


@contextlib.asynccontextmanager
async def running_peer(port):
    peer = PeerServer()
    app = web.Application()
    app.router.add_get("/socket", peer.handler)
    runner = web.AppRunner(app)
    await runner.setup()
    await web.TCPSite(runner, "127.0.0.1", port).start()
    try:
        yield peer
    finally:
        await runner.cleanup()


@contextlib.asynccontextmanager
async def running_bridge(peer_port, observer):
    shutdown = ShutdownCoordinator()
    supervisor = ConnectionSupervisor(
        f"ws://127.0.0.1:{peer_port}/socket",
        shutdown,
        host="127.0.0.1",
        port=unused_tcp_port(),
        retry=RetryPolicy(connect_timeout=2.0, delay=0.05),
        observer=observer,
    )
    task = asyncio.ensure_future(supervisor.run())
    try:
        yield supervisor
    finally:
        shutdown.request_shutdown("test")
        await asyncio.wait_for(task, timeout=5.0)


def ingress_ready(supervisor, cycle=1):
    return lambda: (
        supervisor.cycle >= cycle
        and supervisor.ingress is not None
        and supervisor.ingress.is_running
    )


async def post(port, body):
    async with aiohttp.ClientSession() as session:
        async with session.post(f"http://127.0.0.1:{port}/", data=body) as response:
            return response.status


@pytest.mark.asyncio
async def test_post_body_reaches_peer_exactly_once():
    observer = RecordingObserver()
    peer_port = unused_tcp_port()

    async with running_peer(peer_port) as peer:
        async with running_bridge(peer_port, observer) as supervisor:
            await wait_for_condition(ingress_ready(supervisor))

            assert await post(supervisor.port, "hello") == 200
            await wait_for_condition(lambda: peer.received == ["hello"])
            await asyncio.sleep(0.05)

        assert peer.received == ["hello"]
        assert supervisor.state is SupervisorState.TERMINATED
        await wait_for_condition(lambda: peer.close_codes == [aiohttp.WSCloseCode.OK])

    assert [(message.as_text(), delivered) for message, delivered in observer.outbound] == [("hello", True)]


@pytest.mark.asyncio
async def test_peer_messages_reach_observer():
    observer = RecordingObserver()
    peer_port = unused_tcp_port()

    async with running_peer(peer_port) as peer:
        async with running_bridge(peer_port, observer) as supervisor:
            await wait_for_condition(ingress_ready(supervisor))
            await wait_for_condition(lambda: len(peer.sockets) == 1)

            await peer.sockets[0].send_str("from peer")
            await wait_for_condition(lambda: len(observer.inbound) == 1)

    assert observer.inbound[0].as_text() == "from peer"


@pytest.mark.asyncio
async def test_bridge_reconnects_after_peer_closes():
    observer = RecordingObserver()
    peer_port = unused_tcp_port()

    async with running_peer(peer_port) as peer:
        async with running_bridge(peer_port, observer) as supervisor:
            await wait_for_condition(ingress_ready(supervisor))
            await wait_for_condition(lambda: len(peer.sockets) == 1)

            await peer.sockets[0].close()
            await wait_for_condition(ingress_ready(supervisor, cycle=2), timeout=5.0)

            assert await post(supervisor.port, "after reconnect") == 200
            await wait_for_condition(lambda: peer.received == ["after reconnect"])

        assert len(peer.sockets) == 2


@pytest.mark.asyncio
async def test_unreachable_peer_keeps_retrying_without_listener():
    observer = RecordingObserver()

    async with running_bridge(unused_tcp_port(), observer) as supervisor:
        await wait_for_condition(lambda: supervisor.cycle >= 3)

        assert supervisor.ingress is None
        with pytest.raises(aiohttp.ClientConnectionError):
            await post(supervisor.port, "nobody listening")

    assert supervisor.state is SupervisorState.TERMINATED
