"""Schema descriptor loading and rendering."""

import json

from data_agent.schema import BUNDLED_SCHEMA, DataSourceSchema, load_schema, render_concise, render_documentation


class TestBundledSchema:
    def test_loads(self):
        schema = load_schema()
        assert schema.schema_ == "PUBLIC"
        assert schema.tables[0].name == "supply_chain_data"
        assert BUNDLED_SCHEMA.exists()

    def test_documentation_markers(self):
        doc = render_documentation(load_schema())
        assert "TABLE: ANALYTICS.PUBLIC.supply_chain_data" in doc
        assert "sku: VARCHAR(50) (PRIMARY KEY) NOT NULL" in doc
        assert "Sample values: [haircare, skincare, cosmetics]" in doc
        assert "Range: 1.7 to 99.17" in doc
        assert "TABLE RELATIONSHIPS:" in doc

    def test_concise(self):
        text = render_concise(load_schema())
        assert "supply_chain_data: sku:VARCHAR(50)(PK)" in text


class TestCustomSchema:
    def test_foreign_keys_and_relationships(self, tmp_path):
        path = tmp_path / "schema.json"
        path.write_text(json.dumps({
            "database": "shop",
            "schema": "public",
            "tables": [
                {"name": "customers", "columns": [{"name": "id", "type": "INT", "nullable": False, "isPrimaryKey": True}]},
                {
                    "name": "orders",
                    "rowCount": 12000,
                    "columns": [{
                        "name": "customer_id",
                        "type": "INT",
                        "isForeignKey": True,
                        "references": {"table": "customers", "column": "id"},
                        "statistics": {"distinct": 1500},
                    }],
                },
            ],
            "relationships": [
                {"from": "orders", "to": "customers", "type": "many-to-one", "keys": ["orders.customer_id", "customers.id"]},
            ],
        }))

        schema = load_schema(path)
        assert isinstance(schema, DataSourceSchema)
        doc = render_documentation(schema)
        assert "customer_id: INT (FK -> customers.id)" in doc
        assert "Row Count: ~12,000" in doc
        assert "Distinct values: 1,500" in doc
        assert "orders -> customers (many-to-one): orders.customer_id = customers.id" in doc
        assert "orders: customer_id:INT(FK)" in render_concise(schema)
