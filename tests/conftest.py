"""Shared fakes: scripted completion backend, deterministic embedder, fake WebSocket."""

import asyncio
import hashlib
import json
import math
import re
from typing import Any, Optional, Union

import pytest

from data_agent.errors import CapabilityError


class ScriptedCompletion:
    """Answers complete() calls from a queue; exceptions in the queue are raised."""

    def __init__(self, *responses: Union[dict, Exception]):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def complete(self, system_prompt, user_prompt, *, model=None, temperature=0.2, max_tokens=1000):
        self.calls.append({"system": system_prompt, "user": user_prompt, "model": model})
        if not self.responses:
            raise CapabilityError("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeEmbedder:
    """Hashed bag-of-words vectors: texts sharing words end up close."""

    def __init__(self, dimension: int = 64):
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self._dimension
            vector[bucket] += 1.0
        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]

    async def embed(self, text: str) -> list[float]:
        return self._vector(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(t) for t in texts]


_CLOSE = object()


class FakeConnection:
    """Stands in for a websockets client connection."""

    def __init__(self):
        self.sent: list[str] = []
        self.closed = False
        self.fail_sends = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send(self, frame: str) -> None:
        if self.fail_sends:
            raise OSError("broken pipe")
        self.sent.append(frame)

    def feed(self, data: Union[str, dict]) -> None:
        self._incoming.put_nowait(data if isinstance(data, str) else json.dumps(data))

    def drop(self) -> None:
        """Simulate the server going away."""
        self._incoming.put_nowait(_CLOSE)

    async def close(self) -> None:
        self.closed = True
        self._incoming.put_nowait(_CLOSE)

    def sent_json(self) -> list[dict]:
        return [json.loads(frame) for frame in self.sent]

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        item = await self._incoming.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        return item


class FakeConnector:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.urls: list[str] = []
        self.connections: list[FakeConnection] = []

    async def __call__(self, url: str) -> FakeConnection:
        self.urls.append(url)
        if self.fail:
            raise OSError("connection refused")
        connection = FakeConnection()
        self.connections.append(connection)
        return connection

    @property
    def last(self) -> Optional[FakeConnection]:
        return self.connections[-1] if self.connections else None


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it holds or ``timeout`` passes."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def catalog_items():
    return [
        {
            "id": "orders-table",
            "name": "Orders Table",
            "type": "tabular",
            "description": "List of all orders with status and carrier",
            "category": "orders",
            "keywords": ["orders", "shipments"],
            "props": {"query": "SELECT * FROM supply_chain_data", "title": "Orders", "config": {"pageSize": 20}},
        },
        {
            "id": "revenue-kpi",
            "name": "Revenue KPI",
            "type": "single-metric",
            "description": "Total revenue generated",
            "category": "finance",
            "keywords": ["revenue", "sales"],
            "props": {
                "query": "SELECT SUM(revenue_generated) AS total FROM supply_chain_data",
                "title": "Revenue",
                "config": {"formatter": "currency"},
            },
        },
        {
            "id": "edit-order-form",
            "name": "Update Order Form",
            "type": "form",
            "description": "Edit an existing order",
            "keywords": [],
            "props": {"config": {"fields": ["sku", "order_quantities"]}},
        },
    ]
