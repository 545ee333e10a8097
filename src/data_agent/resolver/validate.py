"""Step 6 — adapt a matched artifact's props to the current prompt."""

import logging
from typing import Optional

from data_agent.llm.completion import CompletionCapability
from data_agent.models.artifact import Artifact, ArtifactProps
from data_agent.resolver import prompts
from data_agent.resolver.models import PropsValidation
from data_agent.safety import DEFAULT_ROW_LIMIT, ensure_query_limit

logger = logging.getLogger(__name__)


class PropsValidator:
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

    async def validate(self, prompt: str, artifact: Artifact) -> PropsValidation:
        """Replacement props for ``artifact``; the originals if anything fails."""
        original = artifact.props
        current = original.model_dump(mode="json", exclude_none=True)
        try:
            raw = await self._completion.complete(
                prompts.props_validation_system(artifact, self._schema_doc, self._row_limit),
                prompts.props_validation_user(prompt, current, artifact.type),
                model=self._model,
                temperature=0.2,
                max_tokens=2500,
            )
            returned = raw.get("props")
            if not isinstance(returned, dict):
                returned = current
            config = returned.get("config")
            if config is None:
                returned = {**returned, "config": current.get("config", {})}
            elif isinstance(config, dict) and "kind" not in config:
                returned = {**returned, "config": {**config, "kind": original.config.kind}}
            props = ArtifactProps.model_validate(returned)
        except Exception as e:
            logger.error(f"Error validating props for {artifact.id}: {e}")
            return PropsValidation(
                props=original,
                modified=False,
                reasoning="Error occurred during validation, using original props",
            )

        if props.query:
            props.query = ensure_query_limit(props.query, self._row_limit)

        modifications = raw.get("modifications")
        return PropsValidation(
            props=props,
            modified=bool(raw.get("isModified")),
            reasoning=raw.get("reasoning") or "No modifications needed",
            modifications=[str(m) for m in modifications] if isinstance(modifications, list) else [],
        )
