"""
Intent resolver — turns a prompt into an artifact.

Classify, route by question type, then synthesize or match. The catalog
snapshot passed to ``resolve`` is the one every step sees.
"""

import dataclasses
import logging
from typing import Optional

from data_agent.catalog import CatalogSnapshot
from data_agent.errors import ValidationError
from data_agent.llm.completion import CompletionCapability
from data_agent.resolver.classify import IntentClassifier
from data_agent.resolver.generate import ArtifactGenerator
from data_agent.resolver.models import (
    ClassificationResult,
    NoMatch,
    QuestionType,
    ResolutionContext,
    ResolutionMethod,
    ResolutionResult,
)
from data_agent.resolver.strategies import (
    CompletionRankingStrategy,
    ResolutionStrategy,
    VectorRerankStrategy,
)
from data_agent.resolver.validate import PropsValidator
from data_agent.safety import DEFAULT_ROW_LIMIT
from data_agent.store import CandidateStore

logger = logging.getLogger(__name__)


class IntentResolver:
    def __init__(
        self,
        completion: CompletionCapability,
        schema_doc: str,
        *,
        store: Optional[CandidateStore] = None,
        matching_method: str = "vector",
        collection: str = "",
        top_k: int = 5,
        row_limit: int = DEFAULT_ROW_LIMIT,
        model: Optional[str] = None,
        rerank_model: Optional[str] = None,
    ):
        self.collection = collection
        self.row_limit = row_limit
        self.classifier = IntentClassifier(completion, schema_doc, model)
        self.generator = ArtifactGenerator(completion, schema_doc, row_limit, model)
        self.validator = PropsValidator(completion, schema_doc, row_limit, model)

        self.strategies: list[ResolutionStrategy] = []
        if matching_method == "vector" and store is not None:
            self.strategies.append(
                VectorRerankStrategy(store, completion, self.validator, top_k, rerank_model or model)
            )
        self.strategies.append(CompletionRankingStrategy(completion, self.validator, model))

    async def resolve(self, prompt: str, catalog: CatalogSnapshot) -> ResolutionResult:
        """Resolve ``prompt`` against ``catalog``.

        Raises ValidationError for an empty prompt; every other failure is
        folded into a no-match result.
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt cannot be empty")

        context = ResolutionContext(catalog=catalog, collection=self.collection)
        try:
            classification = await self.classifier.classify(prompt)
            result = await self._route(prompt, classification, context)
        except Exception as e:
            logger.exception(f"Error resolving prompt: {e}")
            return ResolutionResult(reasoning="Error occurred while resolving prompt")

        result.classification = classification
        return self._finalize(result)

    async def _route(
        self, prompt: str, classification: ClassificationResult, context: ResolutionContext
    ) -> ResolutionResult:
        question_type = classification.question_type
        if question_type is QuestionType.GENERAL:
            return ResolutionResult(
                reasoning=classification.reasoning or "General question, no component needed",
                method=ResolutionMethod.CLASSIFIED_GENERAL,
            )
        if question_type is QuestionType.DATA_MODIFICATION:
            return await self.match(prompt, dataclasses.replace(context, allow_synthesis=False))
        return await self._synthesize(prompt, classification, context)

    async def _synthesize(
        self, prompt: str, classification: ClassificationResult, context: ResolutionContext
    ) -> ResolutionResult:
        visualizations = classification.visualizations
        if len(visualizations) >= 2 or (classification.needs_multiple and visualizations):
            generated = await self.generator.generate_many(prompt, visualizations)
            method = ResolutionMethod.GENERATED_MULTI
        else:
            constraint = visualizations[0] if visualizations else None
            generated = await self.generator.generate_one(prompt, constraint)
            method = ResolutionMethod.GENERATED

        if generated.artifact is not None:
            return ResolutionResult(artifact=generated.artifact, reasoning=generated.reasoning, method=method)

        logger.info("Synthesis produced nothing, trying the catalog")
        result = await self.match(prompt, dataclasses.replace(context, allow_synthesis=False))
        if result.artifact is None:
            result.reasoning = generated.reasoning or result.reasoning
        return result

    async def match(self, prompt: str, context: ResolutionContext) -> ResolutionResult:
        """Run the matching strategies in order; synthesize if none match and allowed."""
        for strategy in self.strategies:
            outcome = await strategy.resolve(prompt, context)
            if not isinstance(outcome, NoMatch):
                return outcome
            logger.debug(f"Strategy {strategy.name} found no match")

        if context.allow_synthesis:
            generated = await self.generator.generate_one(prompt)
            if generated.artifact is not None:
                return ResolutionResult(
                    artifact=generated.artifact,
                    reasoning=generated.reasoning,
                    method=ResolutionMethod.GENERATED,
                )

        return ResolutionResult(reasoning="No matching component found", method=ResolutionMethod.NO_MATCH)

    def _finalize(self, result: ResolutionResult) -> ResolutionResult:
        if result.artifact is not None:
            result.artifact = result.artifact.with_bounded_queries(self.row_limit)
        return result
