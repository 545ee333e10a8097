"""
Candidate store — named collections of artifacts in a Qdrant vector index.

Artifacts are embedded from their name, description and intent keywords and
stored whole in the point payload, so a query hands back complete artifacts.
"""

import logging
import uuid
from typing import Sequence

from qdrant_client import AsyncQdrantClient, models

from data_agent.errors import CapabilityError
from data_agent.llm.embedding import EmbeddingCapability
from data_agent.models.artifact import Artifact

logger = logging.getLogger(__name__)

# Intent vocabulary appended to documents so "show me" / "add a" style
# prompts land near the right kind of artifact.
TABLE_KEYWORDS = "view, display, show, get, fetch, retrieve, see, browse, list, table, grid, records, rows, data, information, dataset, collection"
EDIT_FORM_KEYWORDS = "update, edit, modify, change, revise, alter, correct"
CREATE_FORM_KEYWORDS = "create, add, insert, new, submit, input, fill, enter"
DASHBOARD_KEYWORDS = "analytics, metrics, overview, summary, insights, statistics, monitoring, kpi, performance"
CHART_KEYWORDS = "visualize, plot, chart, graph, analyze, trends, visual"
PAGE_KEYWORDS = "details, view, information, profile, page"


def _intent_keywords(artifact: Artifact) -> str:
    kind = artifact.type
    name = artifact.name.lower()
    if kind in ("data-table", "table", "tabular"):
        return TABLE_KEYWORDS
    if kind == "form" and ("update" in name or "edit" in name):
        return EDIT_FORM_KEYWORDS
    if kind == "form":
        return CREATE_FORM_KEYWORDS
    if kind in ("dashboard", "container"):
        return DASHBOARD_KEYWORDS
    if kind in ("chart", "graph", "time-series", "categorical-comparison", "proportion", "single-metric"):
        return CHART_KEYWORDS
    if kind == "page":
        return PAGE_KEYWORDS
    return ""


def artifact_document(artifact: Artifact) -> str:
    """Text that gets embedded for an artifact."""
    text = f"{artifact.name}: {artifact.description or ''}"
    keywords = _intent_keywords(artifact)
    if keywords:
        text += f" Keywords: {keywords}"
    if artifact.keywords:
        text += f" Tags: {', '.join(artifact.keywords)}"
    return text


def point_id(artifact_id: str) -> str:
    """Qdrant point ids must be UUIDs; derive a stable one from the artifact id."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"artifact:{artifact_id}"))


class CandidateStore:
    def __init__(self, client: AsyncQdrantClient, embedder: EmbeddingCapability):
        self._client = client
        self._embedder = embedder

    async def exists(self, name: str) -> bool:
        try:
            return await self._client.collection_exists(collection_name=name)
        except Exception as e:
            logger.error(f"Error checking if collection {name} exists: {e}")
            return False

    async def count(self, name: str) -> int:
        try:
            result = await self._client.count(collection_name=name, exact=True)
            return result.count
        except Exception as e:
            logger.error(f"Error counting collection {name}: {e}")
            return 0

    async def upsert(self, name: str, artifacts: Sequence[Artifact]) -> int:
        """Embed and upsert artifacts by id, creating the collection if needed."""
        if not artifacts:
            return 0

        documents = [artifact_document(a) for a in artifacts]
        try:
            logger.info(f"Generating embeddings for {len(artifacts)} artifacts...")
            vectors = await self._embedder.embed_batch(documents)
            if not await self._client.collection_exists(collection_name=name):
                await self._client.create_collection(
                    collection_name=name,
                    vectors_config=models.VectorParams(size=len(vectors[0]), distance=models.Distance.COSINE),
                )
            points = [
                models.PointStruct(
                    id=point_id(artifact.id),
                    vector=vector,
                    payload={
                        "artifact_id": artifact.id,
                        "name": artifact.name,
                        "type": artifact.type,
                        "document": document,
                        "artifact": artifact.to_wire(),
                    },
                )
                for artifact, document, vector in zip(artifacts, documents, vectors)
            ]
            await self._client.upsert(collection_name=name, points=points)
        except Exception as e:
            raise CapabilityError(f"Failed to upsert into collection {name}: {e}") from e

        logger.info(f"Upserted {len(points)} artifacts into collection {name}")
        return len(points)

    async def query(self, name: str, text: str, k: int = 5) -> list[Artifact]:
        """Top-k nearest artifacts to ``text``, most similar first."""
        try:
            vector = await self._embedder.embed(text)
            response = await self._client.query_points(
                collection_name=name,
                query=vector,
                limit=k,
                with_payload=True,
            )
        except Exception as e:
            raise CapabilityError(f"Failed to query collection {name}: {e}") from e

        artifacts: list[Artifact] = []
        for point in response.points:
            raw = (point.payload or {}).get("artifact")
            try:
                artifacts.append(Artifact.model_validate(raw))
            except Exception as e:
                logger.warning(f"Skipping unparsable stored artifact {point.id}: {e}")
        logger.info(f"Found {len(artifacts)} candidate artifacts in {name}")
        return artifacts

    async def delete(self, name: str) -> None:
        try:
            await self._client.delete_collection(collection_name=name)
        except Exception as e:
            raise CapabilityError(f"Failed to delete collection {name}: {e}") from e
        logger.info(f"Deleted collection: {name}")

    async def sync(self, name: str, artifacts: Sequence[Artifact], force_recreate: bool = False) -> int:
        """Bring a collection in line with a catalog.

        An existing collection is reused (upsert by id) unless
        ``force_recreate`` is set, in which case it is dropped first.
        """
        if await self.exists(name):
            if force_recreate:
                await self.delete(name)
            else:
                logger.info(f"Reusing collection {name} ({await self.count(name)} points)")
        return await self.upsert(name, artifacts)

    async def close(self) -> None:
        await self._client.close()
