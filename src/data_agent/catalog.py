"""
In-memory artifact catalog.

Each update swaps in a new immutable snapshot. A resolution reads
``Catalog.current`` once and keeps that reference, so a concurrent update
never changes the list a running resolution is looking at.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from data_agent.models.artifact import Artifact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSnapshot:
    version: int = 0
    artifacts: tuple[Artifact, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.artifacts)

    def __iter__(self):
        return iter(self.artifacts)

    def find(self, artifact_id: str) -> Optional[Artifact]:
        for artifact in self.artifacts:
            if artifact.id == artifact_id:
                return artifact
        return None


class Catalog:
    def __init__(self) -> None:
        self._current = CatalogSnapshot()

    @property
    def current(self) -> CatalogSnapshot:
        return self._current

    def replace(self, items: Iterable[Union[Artifact, dict[str, Any]]]) -> CatalogSnapshot:
        """Replace (never merge) the catalog. Invalid entries are skipped."""
        artifacts: list[Artifact] = []
        for item in items:
            if isinstance(item, Artifact):
                artifacts.append(item)
                continue
            try:
                artifacts.append(Artifact.model_validate(item))
            except Exception as e:
                logger.warning(f"Skipping invalid catalog entry: {e}")
        self._current = CatalogSnapshot(version=self._current.version + 1, artifacts=tuple(artifacts))
        logger.info(f"Catalog v{self._current.version}: {len(artifacts)} artifacts")
        return self._current
