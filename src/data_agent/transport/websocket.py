"""
WebSocket session manager — owns the duplex channel to the orchestration host.

Connection: {WEBSOCKET_URL}?userId=..&projectId=..&type=data-agent
Unexpected closes are retried every ``reconnect_interval`` seconds up to
``max_reconnect_attempts`` times; ``disconnect()`` stops retrying for good.
Replies to locally initiated requests are matched by envelope id and never
reach the envelope handlers.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import websockets
from websockets.exceptions import ConnectionClosed

from data_agent.errors import ConnectionError, RequestTimeoutError
from data_agent.models.envelope import Envelope
from data_agent.safety import MAX_MESSAGE_SIZE, validate_message_size
from data_agent.transport.envelope import build_oversize_envelope, encode_envelope, parse_envelope

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Any]]
EnvelopeHandler = Callable[[Envelope], None]

# Ids of timed-out requests whose late replies must be dropped
EXPIRED_ID_MEMORY = 1024


async def _websocket_connector(url: str) -> Any:
    return await websockets.connect(
        url,
        ping_interval=20,
        ping_timeout=30,
        open_timeout=10,
        max_size=None,
    )


@dataclass
class _PendingRequest:
    future: "asyncio.Future[Envelope]"
    timer: asyncio.TimerHandle


class WebSocketManager:
    def __init__(
        self,
        url: str,
        user_id: str,
        project_id: Optional[str] = None,
        agent_type: str = "data-agent",
        reconnect_interval: float = 5.0,
        max_reconnect_attempts: int = 10,
        request_timeout: float = 30.0,
        max_message_size: int = MAX_MESSAGE_SIZE,
        connector: Optional[Connector] = None,
        on_give_up: Optional[Callable[[], None]] = None,
    ):
        if not url:
            raise ConnectionError("WEBSOCKET_URL is not configured")
        self._url = url
        self._user_id = user_id
        self._project_id = project_id
        self._agent_type = agent_type
        self._reconnect_interval = reconnect_interval
        self._max_reconnect_attempts = max_reconnect_attempts
        self._request_timeout = request_timeout
        self._max_message_size = max_message_size
        self._connector = connector or _websocket_connector
        self.on_give_up = on_give_up

        self._ws: Optional[Any] = None
        self._reader: Optional["asyncio.Task[None]"] = None
        self._reconnect_timer: Optional[asyncio.TimerHandle] = None
        self._background: set["asyncio.Task[Any]"] = set()
        self._should_reconnect = True
        self._reconnect_attempts = 0
        self._pending: dict[str, _PendingRequest] = {}
        self._expired: "OrderedDict[str, None]" = OrderedDict()
        self._handlers: list[EnvelopeHandler] = []
        self.gave_up = False

    @property
    def connected(self) -> bool:
        return self._ws is not None

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def build_url(self) -> str:
        """Endpoint URL with the session-identifying query parameters."""
        parts = urlsplit(self._url)
        query = dict(parse_qsl(parts.query))
        query["userId"] = self._user_id
        if self._project_id:
            query["projectId"] = self._project_id
        query["type"] = self._agent_type
        return urlunsplit(parts._replace(query=urlencode(query)))

    def add_envelope_handler(self, handler: EnvelopeHandler) -> Callable[[], None]:
        """Add a handler for dispatched envelopes. Returns a cleanup function."""
        self._handlers.append(handler)

        def remove() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass
        return remove

    async def connect(self) -> None:
        """Open the channel. Raises ConnectionError if it cannot be opened."""
        if self._ws is not None:
            return

        url = self.build_url()
        logger.info(f"Connecting to WebSocket server: {self._url}")
        try:
            ws = await self._connector(url)
        except Exception as e:
            raise ConnectionError(f"WebSocket connection failed: {e}") from e

        self._ws = ws
        self._reconnect_attempts = 0
        self.gave_up = False
        self._reader = asyncio.create_task(self._read_loop(ws))
        logger.info("WebSocket connected")

    async def disconnect(self) -> None:
        """Close the channel and disable reconnection. Safe to call twice."""
        self._should_reconnect = False
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

        ws, self._ws = self._ws, None
        self._reject_pending(ConnectionError("WebSocket disconnected"))
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.warning(f"Error while closing WebSocket: {e}")

        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            await asyncio.gather(reader, return_exceptions=True)
        for task in list(self._background):
            task.cancel()

    async def send(self, envelope: Envelope) -> bool:
        """Send one envelope through the size guard. Returns False if not sent."""
        ws = self._ws
        if ws is None:
            logger.error(f"WebSocket is not connected, dropping {envelope.type} ({envelope.id})")
            return False

        frame = encode_envelope(envelope)
        check = validate_message_size(frame, self._max_message_size)
        if not check["is_valid"]:
            logger.warning(
                f"{envelope.type} ({envelope.id}) is {check['size']} bytes, "
                f"over the {check['max_size']} byte limit; sending size error instead"
            )
            frame = encode_envelope(build_oversize_envelope(envelope, check["size"], check["max_size"]))

        try:
            await ws.send(frame)
            return True
        except Exception as e:
            logger.error(f"Send failed for {envelope.type} ({envelope.id}): {e}")
            return False

    def expect_reply(self, request_id: str, timeout: Optional[float] = None) -> "asyncio.Future[Envelope]":
        """Register a pending request; the future resolves with the reply envelope."""
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[Envelope]" = loop.create_future()
        wait = self._request_timeout if timeout is None else timeout
        timer = loop.call_later(wait, self._expire, request_id, wait)
        self._pending[request_id] = _PendingRequest(future, timer)
        return future

    async def send_and_wait(self, envelope: Envelope, timeout: Optional[float] = None) -> Envelope:
        """Send a locally initiated request and wait for the reply with the same id."""
        if self._ws is None:
            raise ConnectionError("WebSocket is not connected")
        future = self.expect_reply(envelope.id, timeout)
        try:
            if not await self.send(envelope):
                raise ConnectionError(f"Failed to send {envelope.type} ({envelope.id})")
            return await future
        finally:
            pending = self._pending.pop(envelope.id, None)
            if pending is not None:
                pending.timer.cancel()

    def handle_frame(self, raw: Union[str, bytes]) -> None:
        """Decode one inbound frame and route it: pending reply or dispatch."""
        envelope = parse_envelope(raw)
        if envelope is None:
            return

        pending = self._pending.pop(envelope.id, None)
        if pending is not None:
            pending.timer.cancel()
            if not pending.future.done():
                pending.future.set_result(envelope)
            logger.debug(f"Resolved pending request {envelope.id}")
            return

        if envelope.id in self._expired:
            logger.warning(f"Dropping late reply for timed-out request {envelope.id}")
            return

        for handler in list(self._handlers):
            try:
                handler(envelope)
            except Exception as e:
                logger.error(f"Envelope handler failed for {envelope.type} ({envelope.id}): {e}")

    async def _read_loop(self, ws: Any) -> None:
        try:
            async for raw in ws:
                self.handle_frame(raw)
        except ConnectionClosed as e:
            logger.info(f"WebSocket closed: {e}")
        except Exception as e:
            logger.error(f"WebSocket receive failed: {e}")
        finally:
            self._on_close(ws)

    def _on_close(self, ws: Any) -> None:
        if ws is not self._ws:
            return  # closed locally or already replaced
        self._ws = None
        logger.info("WebSocket connection lost")
        self._reject_pending(ConnectionError("WebSocket disconnected"))
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if not self._should_reconnect:
            logger.info("Reconnection disabled, not attempting to reconnect")
            return

        if self._reconnect_attempts >= self._max_reconnect_attempts:
            logger.error(f"Max reconnect attempts ({self._max_reconnect_attempts}) reached. Giving up.")
            self.gave_up = True
            if self.on_give_up is not None:
                self.on_give_up()
            return

        self._reconnect_attempts += 1
        logger.info(f"Reconnecting... (Attempt {self._reconnect_attempts}/{self._max_reconnect_attempts})")
        loop = asyncio.get_running_loop()
        self._reconnect_timer = loop.call_later(self._reconnect_interval, self._start_reconnect)

    def _start_reconnect(self) -> None:
        self._reconnect_timer = None
        task = asyncio.get_running_loop().create_task(self._reconnect())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _reconnect(self) -> None:
        if not self._should_reconnect:
            return
        try:
            await self.connect()
        except ConnectionError as e:
            logger.error(f"Reconnection failed: {e}")
            self._schedule_reconnect()

    def _expire(self, request_id: str, timeout: float) -> None:
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return
        self._expired[request_id] = None
        while len(self._expired) > EXPIRED_ID_MEMORY:
            self._expired.popitem(last=False)
        if not pending.future.done():
            pending.future.set_exception(
                RequestTimeoutError(f"WebSocket timeout after {timeout}s", request_id=request_id)
            )

    def _reject_pending(self, error: Exception) -> None:
        for pending in self._pending.values():
            pending.timer.cancel()
            if not pending.future.done():
                pending.future.set_exception(error)
        self._pending.clear()
