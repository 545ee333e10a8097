"""
Resolution pipeline data: classification, per-strategy outcomes, final result.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from data_agent.catalog import CatalogSnapshot
from data_agent.models.artifact import Artifact, ArtifactProps, coerce_visualization_type


class QuestionType(str, Enum):
    ANALYTICAL = "analytical"
    DATA_MODIFICATION = "data_modification"
    GENERAL = "general"


class ResolutionMethod:
    VECTOR_RERANK = "vector-rerank"
    COMPLETION_RANKING = "completion-ranking"
    GENERATED = "generated"
    GENERATED_MULTI = "generated-multi"
    CLASSIFIED_GENERAL = "classified-general"
    NO_MATCH = "no-match"


class ClassificationResult(BaseModel):
    question_type: QuestionType = Field(default=QuestionType.ANALYTICAL, alias="questionType")
    visualizations: list[str] = Field(default_factory=list)
    needs_multiple: bool = Field(default=False, alias="needsMultiple")
    reasoning: Optional[str] = None

    model_config = {"populate_by_name": True}

    @field_validator("visualizations", mode="before")
    @classmethod
    def _known_types(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        tags = [coerce_visualization_type(v) for v in value]
        return [t for t in tags if t]

    def model_post_init(self, __context: Any) -> None:
        if self.question_type is not QuestionType.ANALYTICAL:
            self.visualizations = []
            self.needs_multiple = False


class ResolutionResult(BaseModel):
    artifact: Optional[Artifact] = None
    reasoning: str = ""
    method: str = ResolutionMethod.NO_MATCH
    confidence: Optional[int] = None
    alternatives: list[dict[str, Any]] = Field(default_factory=list)
    query_modified: bool = False
    query_reasoning: Optional[str] = None
    props_modified: bool = False
    props_modifications: list[str] = Field(default_factory=list)
    classification: Optional[ClassificationResult] = None

    def to_payload(self) -> dict[str, Any]:
        """Wire payload of a ``user_prompt_res`` envelope."""
        return {
            "component": self.artifact.to_wire() if self.artifact else None,
            "reasoning": self.reasoning,
            "method": self.method,
            "confidence": self.confidence,
            "queryModified": self.query_modified,
            "queryReasoning": self.query_reasoning,
            "propsModified": self.props_modified,
            "propsModifications": self.props_modifications,
        }


class PropsValidation(BaseModel):
    props: ArtifactProps
    modified: bool = False
    reasoning: str = ""
    modifications: list[str] = Field(default_factory=list)


class GenerationResult(BaseModel):
    artifact: Optional[Artifact] = None
    reasoning: str = ""


class NoMatch:
    """Strategy outcome meaning "try the next strategy"."""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_MATCH"


NO_MATCH = NoMatch()


@dataclass(frozen=True)
class ResolutionContext:
    catalog: CatalogSnapshot
    collection: str = ""
    allow_synthesis: bool = True
