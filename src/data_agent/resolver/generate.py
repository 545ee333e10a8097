"""
Steps 4 and 5 — synthesize artifacts when nothing in the catalog fits.

Generated artifacts get ids of the form ``dynamic_<type>_<millis>`` and the
category ``dynamic``; every query is row-limited before it is embedded.
"""

import logging
import time
from typing import Any, Optional, Sequence

from data_agent.llm.completion import CompletionCapability
from data_agent.models.artifact import Artifact, VisualizationType, coerce_visualization_type
from data_agent.resolver import prompts
from data_agent.resolver.models import GenerationResult
from data_agent.safety import DEFAULT_ROW_LIMIT, ensure_query_limit

logger = logging.getLogger(__name__)

DYNAMIC_CATEGORY = "dynamic"
DEFAULT_LAYOUT = "grid"


def _stamp() -> int:
    return int(time.time() * 1000)


def build_artifact(
    visualization: str,
    fields: dict[str, Any],
    stamp: int,
    row_limit: int = DEFAULT_ROW_LIMIT,
    position: Optional[int] = None,
) -> Artifact:
    """Artifact from one generated props set, with its query row-limited."""
    query = fields.get("query")
    if query:
        query = ensure_query_limit(query, row_limit)
    config = dict(fields.get("config") or {})
    config["kind"] = visualization
    suffix = f"_{position}" if position is not None else ""
    return Artifact.model_validate({
        "id": f"dynamic_{visualization}_{stamp}{suffix}",
        "name": f"dynamic-{visualization}",
        "type": visualization,
        "description": fields.get("description"),
        "category": DYNAMIC_CATEGORY,
        "keywords": [],
        "props": {
            "query": query,
            "title": fields.get("title"),
            "description": fields.get("description"),
            "config": config,
        },
    })


class ArtifactGenerator:
    def __init__(
        self,
        completion: CompletionCapability,
        schema_doc: str,
        row_limit: int = DEFAULT_ROW_LIMIT,
        model: Optional[str] = None,
    ):
        self._completion = completion
        self._schema_doc = schema_doc
        self._row_limit = row_limit
        self._model = model

    async def generate_one(self, prompt: str, visualization: Optional[str] = None) -> GenerationResult:
        """One artifact, optionally constrained to ``visualization``."""
        try:
            raw = await self._completion.complete(
                prompts.generation_system(self._schema_doc, visualization, self._row_limit),
                prompts.generation_user(prompt),
                model=self._model,
                temperature=0.2,
                max_tokens=2000,
            )
        except Exception as e:
            logger.error(f"Error generating artifact: {e}")
            return GenerationResult(reasoning="Error occurred while generating artifact")

        reasoning = raw.get("reasoning") or "Generated artifact for analytical question"
        if not raw.get("canGenerate"):
            return GenerationResult(reasoning=raw.get("reasoning") or "Unable to generate an artifact for this question")

        chosen = visualization or coerce_visualization_type(raw.get("visualizationType") or raw.get("componentType"))
        if chosen is None:
            logger.warning(f"Generated artifact has unsupported type {raw.get('visualizationType')!r}")
            return GenerationResult(reasoning="Generated visualization type is not supported")
        if not raw.get("query"):
            return GenerationResult(reasoning="Generated artifact has no query")

        try:
            artifact = build_artifact(chosen, raw, _stamp(), self._row_limit)
        except Exception as e:
            logger.error(f"Generated props are invalid: {e}")
            return GenerationResult(reasoning="Generated props are invalid")

        logger.info(f"Generated {artifact.type} artifact {artifact.id}")
        return GenerationResult(artifact=artifact, reasoning=reasoning)

    async def generate_many(self, prompt: str, visualizations: Sequence[str]) -> GenerationResult:
        """One artifact per requested type, wrapped in a container."""
        try:
            raw = await self._completion.complete(
                prompts.multi_generation_system(self._schema_doc, visualizations, self._row_limit),
                prompts.generation_user(prompt),
                model=self._model,
                temperature=0.2,
                max_tokens=4000,
            )
        except Exception as e:
            logger.error(f"Error generating artifacts: {e}")
            return GenerationResult(reasoning="Error occurred while generating artifacts")

        if not raw.get("canGenerate", True):
            return GenerationResult(reasoning=raw.get("reasoning") or "Unable to generate artifacts for this question")

        field_sets = raw.get("components")
        if not isinstance(field_sets, list):
            return GenerationResult(reasoning="Generated response has no components")

        stamp = _stamp()
        children: list[Artifact] = []
        for position, (visualization, fields) in enumerate(zip(visualizations, field_sets)):
            if not isinstance(fields, dict) or not fields.get("query"):
                logger.warning(f"Skipping generated {visualization} without a query")
                continue
            try:
                children.append(build_artifact(visualization, fields, stamp, self._row_limit, position))
            except Exception as e:
                logger.warning(f"Skipping invalid generated {visualization}: {e}")

        if not children:
            return GenerationResult(reasoning="No usable artifacts were generated")

        container = Artifact.model_validate({
            "id": f"dynamic_{VisualizationType.CONTAINER.value}_{stamp}",
            "name": f"dynamic-{VisualizationType.CONTAINER.value}",
            "type": VisualizationType.CONTAINER.value,
            "description": raw.get("description"),
            "category": DYNAMIC_CATEGORY,
            "keywords": [],
            "props": {
                "title": raw.get("title"),
                "description": raw.get("description"),
                "config": {
                    "kind": VisualizationType.CONTAINER.value,
                    "components": children,
                    "layout": DEFAULT_LAYOUT,
                },
            },
        })
        logger.info(f"Generated container {container.id} with {len(children)} artifacts")
        return GenerationResult(
            artifact=container,
            reasoning=raw.get("reasoning") or f"Generated {len(children)} visualizations",
        )
