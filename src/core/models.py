# src/core/models.py — v1
"""Shared domain models: infrastructure graph, layout graph, diagram, project entry.

The orchestration core only inspects counts and ids on these models;
their richer fields are consumed by the parser, enhancer, layout engine
and diagram generator.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ServiceType = Literal[
    "container", "database", "cache", "queue", "storage", "proxy", "ui"
]
DependencyType = Literal[
    "depends_on", "network", "volume", "link", "subchart", "inferred"
]
SourceFormat = Literal["docker-compose", "helm"]
ServiceCategory = Literal[
    "data-layer", "application-layer", "infrastructure", "monitoring", "security"
]


# === Project registry ===


class SourceFileDescriptor(BaseModel):
    """One file a project declares in projects.json."""

    path: str
    format: str = "unknown"


class ProjectEntry(BaseModel):
    """Project registry entry. Read-only input to the orchestrator."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    repo: str = ""
    files: list[SourceFileDescriptor] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.id


# === Infrastructure graph ===


class PortMapping(BaseModel):
    internal: int
    external: int | None = None


class SourceInfo(BaseModel):
    file: str
    format: SourceFormat


class ServiceNode(BaseModel):
    """A deployable service discovered in IaC files."""

    id: str
    name: str
    type: ServiceType = "container"
    source: SourceInfo
    image: str | None = None
    ports: list[PortMapping] = Field(default_factory=list)
    replicas: int | None = None
    environment_keys: list[str] = Field(default_factory=list)

    # Filled in by LLM enhancement
    category: ServiceCategory | None = None
    description: str | None = None
    group: str | None = None


class DependencyEdge(BaseModel):
    """Directed dependency: `from_` needs `to`."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    type: DependencyType = "depends_on"


class GraphMetadata(BaseModel):
    project: str
    parsed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source_files: list[str] = Field(default_factory=list)
    parser_version: str = "0.1.0"


class InfraGraph(BaseModel):
    """Parsed (optionally enhanced) infrastructure graph."""

    nodes: list[ServiceNode] = Field(default_factory=list)
    edges: list[DependencyEdge] = Field(default_factory=list)
    metadata: GraphMetadata

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def get_node(self, node_id: str) -> ServiceNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


# === Layout graph ===


class LayoutNode(BaseModel):
    id: str
    x: float
    y: float
    width: float
    height: float
    layer: int = 0


class LayoutEdge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    points: list[tuple[float, float]] = Field(default_factory=list)


class LayoutGraph(BaseModel):
    """Positioned nodes and routed edges produced by the layout step."""

    nodes: list[LayoutNode] = Field(default_factory=list)
    edges: list[LayoutEdge] = Field(default_factory=list)
    width: float = 0.0
    height: float = 0.0
    layers: int = 0

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


# === Diagram ===


class DiagramFile(BaseModel):
    """Excalidraw document produced by the generate step."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["excalidraw"] = "excalidraw"
    version: int = 2
    source: str = "iacdiagram"
    elements: list[dict[str, Any]] = Field(default_factory=list)
    app_state: dict[str, Any] = Field(
        default_factory=lambda: {"viewBackgroundColor": "#ffffff", "gridSize": None},
        alias="appState",
    )
    files: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
