"""Candidate store against qdrant-client's in-memory mode."""

import pytest
from qdrant_client import AsyncQdrantClient

from conftest import FakeEmbedder
from data_agent.errors import CapabilityError
from data_agent.models.artifact import Artifact
from data_agent.store import CandidateStore, artifact_document, point_id

COLLECTION = "proj_components"


def make_store() -> CandidateStore:
    return CandidateStore(AsyncQdrantClient(":memory:"), FakeEmbedder(dimension=256))


@pytest.fixture
def artifacts(catalog_items):
    return [Artifact.model_validate(item) for item in catalog_items]


class TestDocuments:
    def test_document_has_intent_keywords(self, artifacts):
        table, _, form = artifacts
        assert artifact_document(table).startswith("Orders Table: List of all orders")
        assert "browse" in artifact_document(table)
        assert "Tags: orders, shipments" in artifact_document(table)
        assert "modify" in artifact_document(form)

    def test_point_ids_are_stable_uuids(self):
        assert point_id("orders-table") == point_id("orders-table")
        assert point_id("orders-table") != point_id("revenue-kpi")


class TestCandidateStore:
    @pytest.mark.asyncio
    async def test_upsert_query_delete(self, artifacts):
        store = make_store()
        assert not await store.exists(COLLECTION)
        assert await store.count(COLLECTION) == 0

        assert await store.upsert(COLLECTION, artifacts) == 3
        assert await store.exists(COLLECTION)
        assert await store.count(COLLECTION) == 3

        hits = await store.query(COLLECTION, "total revenue sales", k=2)
        assert len(hits) == 2
        assert hits[0].id == "revenue-kpi"
        assert hits[0].props.config.kind == "single-metric"

        await store.delete(COLLECTION)
        assert not await store.exists(COLLECTION)
        await store.close()

    @pytest.mark.asyncio
    async def test_upsert_is_by_id(self, artifacts):
        store = make_store()
        await store.upsert(COLLECTION, artifacts)
        await store.upsert(COLLECTION, artifacts[:1])
        assert await store.count(COLLECTION) == 3
        await store.close()

    @pytest.mark.asyncio
    async def test_sync_reuses_unless_forced(self, artifacts):
        store = make_store()
        await store.sync(COLLECTION, artifacts)
        await store.sync(COLLECTION, artifacts[:1])
        assert await store.count(COLLECTION) == 3

        await store.sync(COLLECTION, artifacts[:1], force_recreate=True)
        assert await store.count(COLLECTION) == 1
        await store.close()

    @pytest.mark.asyncio
    async def test_query_missing_collection_raises(self):
        store = make_store()
        with pytest.raises(CapabilityError):
            await store.query("nope", "anything")
        await store.close()

    @pytest.mark.asyncio
    async def test_empty_upsert(self):
        store = make_store()
        assert await store.upsert(COLLECTION, []) == 0
        assert not await store.exists(COLLECTION)
        await store.close()
