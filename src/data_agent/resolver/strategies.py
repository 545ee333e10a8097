"""
Step 3 — match a prompt against known artifacts.

Each strategy answers ``resolve(prompt, context)`` with either a
``ResolutionResult`` or ``NO_MATCH``; the resolver walks them in order and
stops at the first match.
"""

import logging
from typing import Any, Optional, Protocol, Sequence, Union

from data_agent.llm.completion import CompletionCapability
from data_agent.models.artifact import Artifact
from data_agent.resolver import prompts
from data_agent.resolver.models import (
    NO_MATCH,
    NoMatch,
    ResolutionContext,
    ResolutionMethod,
    ResolutionResult,
)
from data_agent.resolver.validate import PropsValidator
from data_agent.store import CandidateStore

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 30
MAX_ALTERNATIVES = 2

StrategyOutcome = Union[ResolutionResult, NoMatch]


class ResolutionStrategy(Protocol):
    name: str

    async def resolve(self, prompt: str, context: ResolutionContext) -> StrategyOutcome: ...


async def matched(
    prompt: str,
    artifact: Artifact,
    validator: Optional[PropsValidator],
    method: str,
    reasoning: str,
    **extra: Any,
) -> ResolutionResult:
    """Result for a matched artifact, with its props adapted to ``prompt``."""
    if validator is None or not artifact.props.query:
        return ResolutionResult(artifact=artifact, reasoning=reasoning, method=method, **extra)

    validation = await validator.validate(prompt, artifact)
    updated = artifact.model_copy(update={"props": validation.props})
    return ResolutionResult(
        artifact=updated,
        reasoning=reasoning,
        method=method,
        query_modified=validation.props.query != artifact.props.query,
        query_reasoning=validation.reasoning,
        props_modified=validation.modified,
        props_modifications=validation.modifications,
        **extra,
    )


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class CompletionRankingStrategy:
    """Ask the completion capability to rank the whole in-memory catalog."""

    name = ResolutionMethod.COMPLETION_RANKING

    def __init__(
        self,
        completion: CompletionCapability,
        validator: Optional[PropsValidator] = None,
        model: Optional[str] = None,
    ):
        self._completion = completion
        self._validator = validator
        self._model = model

    def _pick(self, raw: dict[str, Any], artifacts: Sequence[Artifact]) -> Optional[Artifact]:
        component_id = raw.get("componentId")
        if component_id:
            for artifact in artifacts:
                if artifact.id == component_id:
                    return artifact
        index = _as_int(raw.get("componentIndex"), -1)
        if 1 <= index <= len(artifacts):
            return artifacts[index - 1]
        return None

    async def resolve(self, prompt: str, context: ResolutionContext) -> StrategyOutcome:
        artifacts = context.catalog.artifacts
        if not artifacts:
            logger.info("Catalog is empty, nothing to rank")
            return NO_MATCH

        try:
            raw = await self._completion.complete(
                prompts.ranking_system(artifacts),
                prompts.ranking_user(prompt),
                model=self._model,
                temperature=0.2,
                max_tokens=1000,
            )
        except Exception as e:
            logger.error(f"Error ranking catalog: {e}")
            return NO_MATCH

        confidence = _as_int(raw.get("confidence"))
        artifact = self._pick(raw, artifacts)
        if artifact is None or confidence < MIN_CONFIDENCE:
            logger.info(f"No catalog match (confidence={confidence})")
            return NO_MATCH

        alternatives = raw.get("alternativeMatches")
        if not isinstance(alternatives, list):
            alternatives = []
        alternatives = [a for a in alternatives if isinstance(a, dict)][:MAX_ALTERNATIVES]

        logger.info(f"Matched {artifact.name} with confidence {confidence}")
        return await matched(
            prompt,
            artifact,
            self._validator,
            self.name,
            raw.get("reasoning") or "Matched by ranking",
            confidence=confidence,
            alternatives=alternatives,
        )


class VectorRerankStrategy:
    """Retrieve the nearest artifacts from the candidate store and re-rank them."""

    name = ResolutionMethod.VECTOR_RERANK

    def __init__(
        self,
        store: CandidateStore,
        completion: CompletionCapability,
        validator: Optional[PropsValidator] = None,
        top_k: int = 5,
        model: Optional[str] = None,
    ):
        self._store = store
        self._completion = completion
        self._validator = validator
        self._top_k = top_k
        self._model = model

    async def _rerank(self, prompt: str, candidates: list[Artifact]) -> tuple[Artifact, str]:
        try:
            raw = await self._completion.complete(
                prompts.rerank_system(prompt, candidates),
                prompts.RERANK_USER,
                model=self._model,
                temperature=0.1,
                max_tokens=500,
            )
        except Exception as e:
            logger.warning(f"Re-rank failed, using top vector hit: {e}")
            return candidates[0], "Selected by vector similarity"

        index = _as_int(raw.get("componentIndex"), -1)
        if not 1 <= index <= len(candidates):
            logger.warning(f"Re-rank returned invalid index {raw.get('componentIndex')!r}, using top vector hit")
            return candidates[0], "Selected by vector similarity"
        return candidates[index - 1], raw.get("reasoning") or "Selected by re-ranking"

    async def resolve(self, prompt: str, context: ResolutionContext) -> StrategyOutcome:
        if not context.collection:
            return NO_MATCH

        try:
            if not await self._store.exists(context.collection):
                logger.info(f"Collection {context.collection} does not exist")
                return NO_MATCH
            candidates = await self._store.query(context.collection, prompt, self._top_k)
        except Exception as e:
            logger.warning(f"Vector retrieval failed, falling back: {e}")
            return NO_MATCH

        if not candidates:
            return NO_MATCH

        # Prefer the catalog's copy; the index may lag behind an update.
        candidates = [context.catalog.find(c.id) or c for c in candidates]
        artifact, reasoning = await self._rerank(prompt, candidates)
        logger.info(f"Selected {artifact.name} from {len(candidates)} candidates")
        return await matched(prompt, artifact, self._validator, self.name, reasoning)
