"""
Query executors — run raw SQL text against the row store or the warehouse.

Both are SQLAlchemy engines; the warehouse dialect comes from its URL.
Statements run in a worker thread so the session loop is never blocked.
"""

import asyncio
import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional, Protocol

from pydantic import BaseModel, Field
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class QueryResult(BaseModel):
    success: bool
    data: Optional[Any] = None
    errors: list[str] = Field(default_factory=list)


class QueryExecutor(Protocol):
    async def execute(self, text: str) -> QueryResult:
        ...


def _json_safe(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return value


class SqlAlchemyExecutor:
    def __init__(self, url: str = "", engine: Optional[Engine] = None, name: str = "database"):
        if engine is None and not url:
            raise ValueError(f"No connection URL configured for {name}")
        self._engine = engine or create_engine(url, pool_pre_ping=True)
        self._name = name

    def _run(self, text: str) -> Any:
        with self._engine.connect() as conn:
            result = conn.exec_driver_sql(text)
            if result.returns_rows:
                return [{k: _json_safe(v) for k, v in row._mapping.items()} for row in result]
            conn.commit()
            return {"rowcount": result.rowcount}

    async def execute(self, text: str) -> QueryResult:
        if not text or not text.strip():
            return QueryResult(success=False, errors=["SQL query cannot be empty"])
        try:
            data = await asyncio.to_thread(self._run, text)
        except Exception as e:
            logger.error(f"Query on {self._name} failed: {e}")
            return QueryResult(success=False, errors=[str(e)])
        return QueryResult(success=True, data=data)

    def dispose(self) -> None:
        self._engine.dispose()
