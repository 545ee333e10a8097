"""WebSocket session manager: connect, dispatch, correlation, size guard, reconnect."""

import asyncio
import json
from urllib.parse import parse_qs, urlsplit

import pytest

from conftest import FakeConnector, wait_for
from data_agent.errors import ConnectionError, RequestTimeoutError
from data_agent.models.envelope import Endpoint, Envelope, Role
from data_agent.transport.websocket import WebSocketManager


def make_manager(connector, **kwargs) -> WebSocketManager:
    kwargs.setdefault("reconnect_interval", 0.0)
    return WebSocketManager(
        url="ws://host:8080/ws",
        user_id="user123",
        project_id="proj-1",
        connector=connector,
        **kwargs,
    )


def reply_frame(request_id: str, payload=None) -> str:
    return json.dumps({"id": request_id, "type": "component_list_res", "from": {"type": "runtime"}, "payload": payload})


class TestConnect:
    def test_requires_url(self):
        with pytest.raises(ConnectionError):
            WebSocketManager(url="", user_id="u")

    def test_session_query_params(self):
        manager = make_manager(FakeConnector())
        query = parse_qs(urlsplit(manager.build_url()).query)
        assert query == {"userId": ["user123"], "projectId": ["proj-1"], "type": ["data-agent"]}

    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self, connector):
        manager = make_manager(connector)
        await manager.connect()
        assert manager.connected
        await manager.disconnect()
        assert not manager.connected
        assert connector.last.closed
        await manager.disconnect()  # idempotent

    @pytest.mark.asyncio
    async def test_connect_failure_raises(self):
        manager = make_manager(FakeConnector(fail=True))
        with pytest.raises(ConnectionError):
            await manager.connect()


class TestDispatch:
    @pytest.mark.asyncio
    async def test_frames_reach_handlers(self, connector):
        manager = make_manager(connector)
        received = []
        manager.add_envelope_handler(received.append)
        await manager.connect()

        connector.last.feed({"id": "1", "type": "data_req", "payload": {"query": "SELECT 1"}})
        await wait_for(lambda: received)
        assert received[0].type == "data_req"
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_malformed_frame_does_not_kill_session(self, connector):
        manager = make_manager(connector)
        received = []
        manager.add_envelope_handler(received.append)
        await manager.connect()

        connector.last.feed("{{{ not json")
        connector.last.feed({"id": "2", "type": "data_req"})
        await wait_for(lambda: received)
        assert [e.id for e in received] == ["2"]
        assert manager.connected
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_handler_removal(self, connector):
        manager = make_manager(connector)
        received = []
        remove = manager.add_envelope_handler(received.append)
        remove()
        manager.handle_frame(json.dumps({"id": "1", "type": "data_req"}))
        assert received == []


class TestCorrelation:
    @pytest.mark.asyncio
    async def test_reply_resolves_only_matching_entry(self, connector):
        manager = make_manager(connector)
        dispatched = []
        manager.add_envelope_handler(dispatched.append)

        first = manager.expect_reply("req-1", timeout=1)
        second = manager.expect_reply("req-2", timeout=1)
        manager.handle_frame(reply_frame("req-1", [1, 2]))

        reply = await first
        assert reply.payload == [1, 2]
        assert not second.done()
        assert manager.pending_count == 1
        assert dispatched == []

    @pytest.mark.asyncio
    async def test_timeout_rejects_and_drops_late_reply(self, connector):
        manager = make_manager(connector)
        dispatched = []
        manager.add_envelope_handler(dispatched.append)

        future = manager.expect_reply("req-3", timeout=0.01)
        with pytest.raises(RequestTimeoutError):
            await future
        assert manager.pending_count == 0

        manager.handle_frame(reply_frame("req-3"))
        assert dispatched == []

    @pytest.mark.asyncio
    async def test_send_and_wait(self, connector):
        manager = make_manager(connector)
        await manager.connect()
        request = Envelope(id="list-1", type="component_list_req", from_=Endpoint(type=Role.DATA_AGENT), payload={})

        task = asyncio.create_task(manager.send_and_wait(request, timeout=1))
        await wait_for(lambda: connector.last.sent)
        assert json.loads(connector.last.sent[0])["type"] == "component_list_req"

        connector.last.feed(reply_frame("list-1", [{"id": "a"}]))
        reply = await task
        assert reply.payload == [{"id": "a"}]
        assert manager.pending_count == 0
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_close_rejects_pending(self, connector):
        manager = make_manager(connector, max_reconnect_attempts=0)
        await manager.connect()
        future = manager.expect_reply("req-4", timeout=5)

        connector.last.drop()
        with pytest.raises(ConnectionError):
            await future
        assert manager.pending_count == 0


class TestSizeGuard:
    def _envelope(self) -> Envelope:
        return Envelope(id="big-1", type="data_res", to=Endpoint(type=Role.RUNTIME, id="r"), payload=[{"v": "x" * 200}])

    @pytest.mark.asyncio
    async def test_frame_at_ceiling_is_sent_as_is(self, connector):
        envelope = self._envelope()
        size = len(envelope.dumps().encode("utf-8"))
        manager = make_manager(connector, max_message_size=size)
        await manager.connect()

        assert await manager.send(envelope)
        assert connector.last.sent == [envelope.dumps()]
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_frame_over_ceiling_is_replaced(self, connector):
        envelope = self._envelope()
        size = len(envelope.dumps().encode("utf-8"))
        manager = make_manager(connector, max_message_size=size - 1)
        await manager.connect()

        assert await manager.send(envelope)
        sent = connector.last.sent_json()[0]
        assert sent["id"] == "big-1"
        assert sent["type"] == "data_res"
        assert sent["to"] == {"type": "runtime", "id": "r"}
        assert "size" in sent["payload"]["error"]
        assert sent["payload"]["size"] == size
        assert sent["payload"]["maxSize"] == size - 1
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_send_without_connection(self, connector):
        manager = make_manager(connector)
        assert await manager.send(self._envelope()) is False


class TestReconnect:
    @pytest.mark.asyncio
    async def test_stops_after_max_attempts(self, connector):
        gave_up = []
        manager = make_manager(connector, max_reconnect_attempts=3, on_give_up=lambda: gave_up.append(True))
        await manager.connect()

        connector.fail = True
        connector.last.drop()
        await wait_for(lambda: manager.gave_up)

        assert manager.reconnect_attempts == 3
        assert len(connector.urls) == 1 + 3
        assert gave_up == [True]

        await asyncio.sleep(0.05)
        assert len(connector.urls) == 4

    @pytest.mark.asyncio
    async def test_successful_reconnect_resets_counter(self, connector):
        manager = make_manager(connector)
        await manager.connect()

        connector.last.drop()
        await wait_for(lambda: len(connector.connections) == 2 and manager.connected)
        assert manager.reconnect_attempts == 0
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_disables_reconnect(self, connector):
        manager = make_manager(connector)
        await manager.connect()
        await manager.disconnect()

        await asyncio.sleep(0.05)
        assert len(connector.urls) == 1
        assert not manager.connected
