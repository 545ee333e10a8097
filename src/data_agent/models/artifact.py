"""
Artifact models — matchable/generatable units of visualization.

``props.config`` is a tagged union keyed by ``kind``; catalog entries that
arrive without a kind get one derived from the artifact's ``type``. Config
values stay free-form per type. ``kind`` is local only and never goes out on
the wire.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from data_agent.safety import DEFAULT_ROW_LIMIT, ensure_query_limit


class VisualizationType(str, Enum):
    SINGLE_METRIC = "single-metric"
    TIME_SERIES = "time-series"
    CATEGORICAL_COMPARISON = "categorical-comparison"
    PROPORTION = "proportion"
    TABULAR = "tabular"
    CONTAINER = "container"


VISUALIZATION_TYPES = [v.value for v in VisualizationType if v is not VisualizationType.CONTAINER]


class _Config(BaseModel):
    model_config = {"extra": "allow"}


class MetricConfig(_Config):
    kind: Literal["single-metric"] = "single-metric"
    formatter: Optional[Any] = None
    gradient: Optional[Any] = None
    icon: Optional[Any] = None


class _AxisConfig(_Config):
    xKey: Optional[Any] = None
    yKey: Optional[Any] = None
    colors: Optional[Any] = None
    height: Optional[Any] = None


class SeriesConfig(_AxisConfig):
    kind: Literal["time-series"] = "time-series"


class ComparisonConfig(_AxisConfig):
    kind: Literal["categorical-comparison"] = "categorical-comparison"


class ProportionConfig(_Config):
    kind: Literal["proportion"] = "proportion"
    nameKey: Optional[Any] = None
    valueKey: Optional[Any] = None
    colors: Optional[Any] = None
    height: Optional[Any] = None


class TableConfig(_Config):
    kind: Literal["tabular"] = "tabular"
    columns: Optional[Any] = None
    pageSize: Optional[Any] = None


class ContainerConfig(_Config):
    kind: Literal["container"] = "container"
    components: list[Artifact] = Field(default_factory=list)
    layout: Any = "grid"

    @field_validator("components")
    @classmethod
    def _one_level_deep(cls, components: list[Artifact]) -> list[Artifact]:
        for child in components:
            if child.type == VisualizationType.CONTAINER.value:
                raise ValueError(f"container child {child.id!r} cannot itself be a container")
        return components


class GenericConfig(_Config):
    """Config of catalog types outside the visualization vocabulary (forms, pages...)."""
    kind: Literal["generic"] = "generic"


ArtifactConfig = Annotated[
    Union[MetricConfig, SeriesConfig, ComparisonConfig, ProportionConfig, TableConfig, ContainerConfig, GenericConfig],
    Field(discriminator="kind"),
]


def config_kind(artifact_type: Optional[str]) -> str:
    values = {v.value for v in VisualizationType}
    return artifact_type if artifact_type in values else "generic"


class ArtifactProps(BaseModel):
    query: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    config: ArtifactConfig = Field(default_factory=GenericConfig)

    model_config = {"extra": "allow"}


class Artifact(BaseModel):
    id: str
    name: str = ""
    type: str
    description: Optional[str] = None
    category: Optional[str] = None
    keywords: list[str] = Field(default_factory=list)
    props: ArtifactProps = Field(default_factory=ArtifactProps)

    model_config = {"extra": "allow"}

    @model_validator(mode="before")
    @classmethod
    def _tag_config(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        props = data.get("props")
        if props is None:
            props = {}
        if not isinstance(props, dict):
            return data
        config = props.get("config") or {}
        if isinstance(config, dict) and "kind" not in config:
            config = {**config, "kind": config_kind(data.get("type"))}
        return {**data, "props": {**props, "config": config}}

    @field_validator("keywords", mode="before")
    @classmethod
    def _keywords(cls, value: Any) -> Any:
        return value or []

    @property
    def is_container(self) -> bool:
        return isinstance(self.props.config, ContainerConfig)

    def with_bounded_queries(self, limit: int = DEFAULT_ROW_LIMIT) -> Artifact:
        """Copy whose read queries (own and children's) carry a row limit."""
        bounded = self.model_copy(deep=True)
        if bounded.props.query:
            bounded.props.query = ensure_query_limit(bounded.props.query, limit)
        if isinstance(bounded.props.config, ContainerConfig):
            bounded.props.config.components = [
                child.with_bounded_queries(limit) for child in bounded.props.config.components
            ]
        return bounded

    def to_wire(self) -> dict[str, Any]:
        return _untag(self.model_dump(mode="json", exclude_none=True))


def _untag(data: dict[str, Any]) -> dict[str, Any]:
    config = data.get("props", {}).get("config")
    if isinstance(config, dict) and config.pop("kind", None) == VisualizationType.CONTAINER.value:
        for child in config.get("components") or []:
            if isinstance(child, dict):
                _untag(child)
    return data


ContainerConfig.model_rebuild()
ArtifactProps.model_rebuild()
Artifact.model_rebuild()


# Names completion backends tend to answer with instead of the vocabulary tags
_VISUALIZATION_ALIASES = {
    "kpicard": VisualizationType.SINGLE_METRIC,
    "kpi": VisualizationType.SINGLE_METRIC,
    "metric": VisualizationType.SINGLE_METRIC,
    "linechart": VisualizationType.TIME_SERIES,
    "areachart": VisualizationType.TIME_SERIES,
    "barchart": VisualizationType.CATEGORICAL_COMPARISON,
    "piechart": VisualizationType.PROPORTION,
    "donutchart": VisualizationType.PROPORTION,
    "datatable": VisualizationType.TABULAR,
    "table": VisualizationType.TABULAR,
}


def coerce_visualization_type(value: Any) -> Optional[str]:
    """Map a returned type name onto the vocabulary (containers excluded)."""
    if not isinstance(value, str):
        return None
    tag = value.strip().lower()
    if tag in VISUALIZATION_TYPES:
        return tag
    alias = _VISUALIZATION_ALIASES.get(tag.replace("-", "").replace("_", "").replace(" ", ""))
    return alias.value if alias else None
