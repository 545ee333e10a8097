"""SQLAlchemy query executor against a SQLite file."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, text

from data_agent.executors import SqlAlchemyExecutor, _json_safe


@pytest.fixture
def executor(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'rows.db'}", connect_args={"check_same_thread": False})
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE orders (id INTEGER PRIMARY KEY, sku TEXT, price REAL)"))
        conn.execute(text("INSERT INTO orders (sku, price) VALUES ('SKU1', 9.5), ('SKU2', 12.0)"))
    executor = SqlAlchemyExecutor(engine=engine)
    yield executor
    executor.dispose()


class TestSqlAlchemyExecutor:
    @pytest.mark.asyncio
    async def test_select_returns_rows(self, executor):
        result = await executor.execute("SELECT sku, price FROM orders ORDER BY id")
        assert result.success
        assert result.data == [{"sku": "SKU1", "price": 9.5}, {"sku": "SKU2", "price": 12.0}]

    @pytest.mark.asyncio
    async def test_write_reports_rowcount(self, executor):
        result = await executor.execute("UPDATE orders SET price = 1 WHERE sku = 'SKU1'")
        assert result.success
        assert result.data == {"rowcount": 1}
        check = await executor.execute("SELECT price FROM orders WHERE sku = 'SKU1'")
        assert check.data == [{"price": 1.0}]

    @pytest.mark.asyncio
    async def test_empty_query(self, executor):
        result = await executor.execute("  ")
        assert not result.success
        assert result.errors == ["SQL query cannot be empty"]

    @pytest.mark.asyncio
    async def test_database_error(self, executor):
        result = await executor.execute("SELECT * FROM missing_table")
        assert not result.success
        assert "missing_table" in result.errors[0]

    def test_requires_url_or_engine(self):
        with pytest.raises(ValueError):
            SqlAlchemyExecutor()

    def test_json_safe_values(self):
        assert _json_safe(Decimal("1.5")) == 1.5
        assert _json_safe(date(2024, 1, 2)) == "2024-01-02"
        assert _json_safe(b"\x01\x02") == "0102"
