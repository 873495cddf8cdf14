"""Tests for the HTTP ingress: the POST / route and the listener lifecycle."""

import aiohttp
import pytest
from aiohttp.test_utils import TestClient, TestServer

from http_to_ws.core.api.server import IngressServer
from http_to_ws.core.config import DEFAULT_MAX_BODY
from http_to_ws.core.connection.link import Link, Message
from http_to_ws.core.exceptions import ListenFailed
from tests.infrastructure.mocks import FakeSession, FakeWebSocket, RecordingObserver


async def connected_link(target_url, ws):
    link = Link(target_url, session=FakeSession(ws))
    await link.connect(timeout=1.0)
    return link


class TestForwardRoute:

    @pytest.mark.asyncio
    async def test_post_body_is_sent_as_text_frame(self, target_url, fake_ws, observer):
        server = IngressServer(await connected_link(target_url, fake_ws), observer)

        async with TestClient(TestServer(server._create_app())) as client:
            response = await client.post("/", data=b"hello")
            assert response.status == 200
            assert await response.text() == ""

        assert fake_ws.sent == ["hello"]
        assert observer.outbound == [(Message.text("hello"), True)]

    @pytest.mark.asyncio
    async def test_requests_are_forwarded_in_order(self, target_url, fake_ws, observer):
        server = IngressServer(await connected_link(target_url, fake_ws), observer)

        async with TestClient(TestServer(server._create_app())) as client:
            for body in ("one", "two", "three"):
                response = await client.post("/", data=body)
                assert response.status == 200

        assert fake_ws.sent == ["one", "two", "three"]

    @pytest.mark.asyncio
    async def test_empty_body_is_forwarded(self, target_url, fake_ws, observer):
        server = IngressServer(await connected_link(target_url, fake_ws), observer)

        async with TestClient(TestServer(server._create_app())) as client:
            response = await client.post("/")

        assert response.status == 200
        assert fake_ws.sent == [""]

    @pytest.mark.asyncio
    async def test_body_over_one_mebibyte_is_forwarded_whole(self, target_url, fake_ws, observer):
        server = IngressServer(await connected_link(target_url, fake_ws), observer)
        body = b"x" * (2 * 1024 * 1024)

        async with TestClient(TestServer(server._create_app())) as client:
            response = await client.post("/", data=body)

        assert server.max_body == DEFAULT_MAX_BODY
        assert response.status == 200
        assert fake_ws.sent == [body.decode()]

    @pytest.mark.asyncio
    async def test_body_over_limit_is_dropped_but_answered_200(self, target_url, fake_ws, observer):
        server = IngressServer(await connected_link(target_url, fake_ws), observer, max_body=1024)

        async with TestClient(TestServer(server._create_app())) as client:
            response = await client.post("/", data=b"y" * 4096)

        assert response.status == 200
        assert fake_ws.sent == []
        assert observer.outbound == [(Message.text(b""), False)]

    @pytest.mark.asyncio
    async def test_write_failure_still_answers_200(self, target_url, observer):
        link = Link(target_url, session=FakeSession())
        server = IngressServer(link, observer)

        async with TestClient(TestServer(server._create_app())) as client:
            response = await client.post("/", data="lost")

        assert response.status == 200
        assert observer.outbound == [(Message.text("lost"), False)]

    @pytest.mark.asyncio
    async def test_observer_failure_still_answers_200(self, target_url, fake_ws):
        class Broken(RecordingObserver):
            def on_outbound(self, message, delivered):
                raise RuntimeError("console gone")

        server = IngressServer(await connected_link(target_url, fake_ws), Broken())

        async with TestClient(TestServer(server._create_app())) as client:
            response = await client.post("/", data="still sent")

        assert response.status == 200
        assert fake_ws.sent == ["still sent"]

    @pytest.mark.asyncio
    async def test_other_methods_are_rejected(self, target_url, fake_ws, observer):
        server = IngressServer(await connected_link(target_url, fake_ws), observer)

        async with TestClient(TestServer(server._create_app())) as client:
            response = await client.get("/")
            payload = await response.json()

        assert response.status == 405
        assert payload["status"] == 405
        assert fake_ws.sent == []

    @pytest.mark.asyncio
    async def test_unknown_path_is_not_found(self, target_url, fake_ws, observer):
        server = IngressServer(await connected_link(target_url, fake_ws), observer)

        async with TestClient(TestServer(server._create_app())) as client:
            response = await client.post("/elsewhere", data="x")
            payload = await response.json()

        assert response.status == 404
        assert payload["error"]["code"] == "NOT_FOUND"
        assert fake_ws.sent == []


class TestIngressLifecycle:

    @pytest.mark.asyncio
    async def test_start_serves_and_stop_unbinds(self, target_url, fake_ws, observer):
        server = IngressServer(await connected_link(target_url, fake_ws), observer, "127.0.0.1", 0)

        await server.start()
        try:
            assert server.is_running
            port = server.bound_port
            assert port

            async with aiohttp.ClientSession() as session:
                async with session.post(f"http://127.0.0.1:{port}/", data="live") as response:
                    assert response.status == 200
        finally:
            await server.stop()

        assert not server.is_running
        assert server.bound_port is None
        assert fake_ws.sent == ["live"]

        async with aiohttp.ClientSession() as session:
            with pytest.raises(aiohttp.ClientConnectionError):
                await session.post(f"http://127.0.0.1:{port}/", data="after stop")

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, target_url, observer):
        server = IngressServer(Link(target_url, session=FakeSession()), observer, "127.0.0.1", 0)

        await server.stop()
        await server.start()
        await server.stop()
        await server.stop()

        assert not server.is_running

    @pytest.mark.asyncio
    async def test_port_in_use_raises_listen_failed(self, target_url, observer):
        link = Link(target_url, session=FakeSession())
        first = IngressServer(link, observer, "127.0.0.1", 0)
        await first.start()
        try:
            second = IngressServer(link, observer, "127.0.0.1", first.bound_port)
            with pytest.raises(ListenFailed) as excinfo:
                await second.start()

            assert not second.is_running
            assert str(first.bound_port) in excinfo.value.address
        finally:
            await first.stop()
