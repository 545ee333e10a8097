"""Step 1 — classify the intent of a prompt."""

import logging
from typing import Optional

from data_agent.llm.completion import CompletionCapability
from data_agent.resolver import prompts
from data_agent.resolver.models import ClassificationResult

logger = logging.getLogger(__name__)


class IntentClassifier:
    def __init__(self, completion: CompletionCapability, schema_doc: str, model: Optional[str] = None):
        self._completion = completion
        self._schema_doc = schema_doc
        self._model = model

    async def classify(self, prompt: str) -> ClassificationResult:
        """Classify ``prompt``; any failure yields analytical with no types."""
        try:
            raw = await self._completion.complete(
                prompts.classification_system(self._schema_doc),
                prompts.classification_user(prompt),
                model=self._model,
                temperature=0.1,
                max_tokens=500,
            )
            result = ClassificationResult.model_validate(raw)
        except Exception as e:
            logger.warning(f"Classification failed, treating prompt as analytical: {e}")
            return ClassificationResult()

        logger.info(
            f"Classified as {result.question_type.value} "
            f"(visualizations={result.visualizations}, multiple={result.needs_multiple})"
        )
        return result
