"""Artifact models and catalog snapshots."""

import pydantic
import pytest

from data_agent.catalog import Catalog
from data_agent.models.artifact import (
    Artifact,
    ComparisonConfig,
    GenericConfig,
    TableConfig,
    coerce_visualization_type,
)
from data_agent.resolver.generate import build_artifact


class TestArtifact:
    def test_config_kind_derived_from_type(self):
        artifact = Artifact.model_validate({
            "id": "a", "type": "categorical-comparison",
            "props": {"config": {"xKey": "product_type", "yKey": "sales", "stacked": True}},
        })
        assert isinstance(artifact.props.config, ComparisonConfig)
        assert artifact.props.config.xKey == "product_type"
        assert artifact.to_wire()["props"]["config"]["stacked"] is True

    def test_config_values_are_free_form(self):
        artifact = Artifact.model_validate({
            "id": "k", "type": "single-metric",
            "props": {"config": {"formatter": {"style": "currency"}, "icon": ["dollar", 16]}},
        })
        assert artifact.props.config.formatter == {"style": "currency"}
        assert artifact.to_wire()["props"]["config"]["icon"] == ["dollar", 16]

    def test_generated_artifact_keeps_structured_config(self):
        artifact = build_artifact(
            "tabular",
            {"query": "SELECT id FROM orders", "config": {"columns": {"id": "ID"}, "pageSize": "25"}},
            stamp=1,
        )
        assert artifact.props.config.columns == {"id": "ID"}
        assert artifact.props.query == "SELECT id FROM orders LIMIT 50"

    def test_wire_form_has_no_kind(self):
        container = Artifact.model_validate({
            "id": "c", "type": "container",
            "props": {"config": {"components": [
                {"id": "t", "type": "tabular", "props": {"config": {"pageSize": 10}}},
            ]}},
        })
        wire = container.to_wire()
        assert "kind" not in wire["props"]["config"]
        assert wire["props"]["config"]["components"][0]["props"]["config"] == {"pageSize": 10}
        assert container.props.config.kind == "container"
        assert Artifact.model_validate(wire).props.config.components[0].props.config.kind == "tabular"

    def test_unknown_type_is_generic(self):
        artifact = Artifact.model_validate({"id": "f", "type": "form", "keywords": None})
        assert isinstance(artifact.props.config, GenericConfig)
        assert artifact.keywords == []

    def test_container_rejects_nested_container(self):
        inner = {"id": "c1", "type": "container", "props": {"config": {"components": []}}}
        with pytest.raises(pydantic.ValidationError):
            Artifact.model_validate({"id": "c0", "type": "container", "props": {"config": {"components": [inner]}}})

    def test_bounded_queries_reach_children(self):
        container = Artifact.model_validate({
            "id": "c", "type": "container",
            "props": {"config": {"components": [
                {"id": "t", "type": "tabular", "props": {"query": "SELECT * FROM t"}},
                {"id": "m", "type": "single-metric", "props": {"query": "SELECT COUNT(*) FROM t LIMIT 1"}},
            ]}},
        })
        bounded = container.with_bounded_queries(10)
        children = bounded.props.config.components
        assert children[0].props.query == "SELECT * FROM t LIMIT 10"
        assert children[1].props.query == "SELECT COUNT(*) FROM t LIMIT 1"
        assert isinstance(children[0].props.config, TableConfig)
        # original untouched
        assert container.props.config.components[0].props.query == "SELECT * FROM t"

    @pytest.mark.parametrize("value, expected", [
        ("tabular", "tabular"),
        ("KPI", "single-metric"),
        ("line_chart", "time-series"),
        ("Bar Chart", "categorical-comparison"),
        ("container", None),
        ("sparkline", None),
        (None, None),
    ])
    def test_coerce_visualization_type(self, value, expected):
        assert coerce_visualization_type(value) == expected


class TestCatalog:
    def test_replace_never_merges(self, catalog_items):
        catalog = Catalog()
        first = catalog.replace(catalog_items)
        second = catalog.replace(catalog_items[:1])

        assert (first.version, len(first)) == (1, 3)
        assert (second.version, len(second)) == (2, 1)
        assert catalog.current is second
        assert first.find("revenue-kpi") is not None
        assert second.find("revenue-kpi") is None

    def test_invalid_entries_skipped(self):
        snapshot = Catalog().replace([{"id": "ok", "type": "tabular"}, {"name": "no id"}])
        assert [a.id for a in snapshot] == ["ok"]

    def test_entries_with_structured_config_are_kept(self):
        snapshot = Catalog().replace([
            {"id": "kpi", "type": "single-metric", "props": {"config": {"formatter": {"style": "currency"}}}},
            {"id": "tbl", "type": "tabular", "props": {"config": {"columns": {"id": "ID"}}}},
        ])
        assert [a.id for a in snapshot] == ["kpi", "tbl"]
