# src/storage/reader.py — v1
"""Read run outputs for inspection.

Helpers used by the list/inspect commands to find the latest run and
load step artifacts back into typed models.
"""

from __future__ import annotations

from pydantic import ValidationError

from iacdiagram.core.models import DiagramFile, InfraGraph, LayoutGraph
from iacdiagram.storage import layout
from iacdiagram.storage.base_output_writer import StorageError
from iacdiagram.storage.models import Run
from iacdiagram.storage.run_manager import RunStore

_GRAPH_ARTIFACTS = {
    "parse": layout.PARSED_ARTIFACT,
    "enhance": layout.ENHANCED_ARTIFACT,
}


async def find_latest_run(store: RunStore, project: str) -> Run | None:
    """Return the most recent run for a project, if any."""
    runs = await store.list_runs(project)
    return runs[0] if runs else None


async def load_graph(
    store: RunStore, project: str, run_id: str, step: str = "parse"
) -> InfraGraph | None:
    """Load the graph written by `parse` or `enhance`."""
    name = _GRAPH_ARTIFACTS.get(step)
    if name is None:
        raise ValueError(f"Step '{step}' does not produce a graph")
    raw = await store.read_artifact(project, run_id, name)
    if raw is None:
        return None
    return _validate(InfraGraph, raw, name)


async def load_layout(store: RunStore, project: str, run_id: str) -> LayoutGraph | None:
    raw = await store.read_artifact(project, run_id, layout.LAYOUT_ARTIFACT)
    if raw is None:
        return None
    return _validate(LayoutGraph, raw, layout.LAYOUT_ARTIFACT)


async def load_diagram(store: RunStore, project: str, run_id: str) -> DiagramFile | None:
    raw = await store.read_artifact(project, run_id, layout.DIAGRAM_ARTIFACT)
    if raw is None:
        return None
    return _validate(DiagramFile, raw, layout.DIAGRAM_ARTIFACT)


def _validate(model, raw: bytes, name: str):
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise StorageError(f"Artifact {name} is not readable: {exc}") from exc
