from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import pydantic

from flowgraph.domain.graph import Graph

logger = logging.getLogger(__name__)


class WorkflowStore:
    """JSON-file copy of the last graph that loaded or saved successfully."""

    def __init__(self, storage_file: Path) -> None:
        self.storage_file = storage_file
        self.storage_file.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> Optional[Graph]:
        if not self.storage_file.exists():
            return None
        try:
            with self.storage_file.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
            return Graph.model_validate(raw)
        except (json.JSONDecodeError, pydantic.ValidationError) as exc:
            logger.warning(f"Ignoring unreadable workflow cache {self.storage_file}: {exc}")
            return None

    def save(self, graph: Graph) -> None:
        tmp_file = self.storage_file.with_suffix(".tmp")
        with tmp_file.open("w", encoding="utf-8") as handle:
            json.dump(graph.model_dump(mode="json", by_alias=True), handle, indent=2)
        tmp_file.replace(self.storage_file)

    def clear(self) -> None:
        if self.storage_file.exists():
            self.storage_file.unlink()
