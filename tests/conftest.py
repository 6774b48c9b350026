# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a filesystem-backed RunStore under tmp_path, a small sample
graph, and stub collaborators. No network access: the enhancer stub
never calls an LLM.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from iacdiagram.config.settings import ConfigurationError
from iacdiagram.core.models import (
    DependencyEdge,
    DiagramFile,
    GraphMetadata,
    InfraGraph,
    LayoutEdge,
    LayoutGraph,
    LayoutNode,
    ProjectEntry,
    ServiceNode,
    SourceInfo,
)
from iacdiagram.diagram.base_generator import BaseDiagramGenerator
from iacdiagram.layout.base_layout_engine import BaseLayoutEngine
from iacdiagram.llm.enhancer import BaseEnhancer
from iacdiagram.parsers.base_parser import BaseParser
from iacdiagram.pipeline.collaborators import Collaborators
from iacdiagram.storage.run_manager import RunStore


COMPOSE_YAML = """\
services:
  web:
    image: nginx:1.25
    ports:
      - "8080:80"
    depends_on:
      - api
  api:
    image: example/api:latest
    environment:
      DATABASE_URL: postgres://db/app
      REDIS_URL: redis://cache
    depends_on:
      db:
        condition: service_healthy
      cache:
        condition: service_started
  db:
    image: postgres:16
  cache:
    image: redis:7
"""

CHART_YAML = """\
apiVersion: v2
name: shop
version: 0.1.0
dependencies:
  - name: postgresql
    version: 12.x
    repository: https://charts.bitnami.com/bitnami
    condition: postgresql.enabled
  - name: redis
    version: 17.x
    repository: https://charts.bitnami.com/bitnami
"""

VALUES_YAML = """\
frontend:
  image:
    repository: shop/frontend
    tag: "1.0"
  service:
    port: 80
backend:
  image:
    repository: shop/backend
    tag: "1.0"
  replicaCount: 2
postgresql:
  enabled: true
"""


# === FIXTURES: Sample data ===


def make_graph(project: str = "demo") -> InfraGraph:
    source = SourceInfo(file="docker-compose.yml", format="docker-compose")
    return InfraGraph(
        nodes=[
            ServiceNode(id="web", name="web", type="proxy", source=source, image="nginx"),
            ServiceNode(id="db", name="db", type="database", source=source, image="postgres"),
        ],
        edges=[DependencyEdge(from_="web", to="db")],
        metadata=GraphMetadata(project=project, source_files=["docker-compose.yml"]),
    )


@pytest.fixture
def sample_graph() -> InfraGraph:
    return make_graph()


@pytest.fixture
def project() -> ProjectEntry:
    return ProjectEntry(id="demo", name="Demo")


@pytest.fixture
def store(tmp_path: Path) -> RunStore:
    return RunStore(tmp_path / "data")


# === FIXTURES: Stub collaborators ===


class StubParser(BaseParser):
    """Returns a fixed graph, or raises `error` when set."""

    def __init__(self, graph: InfraGraph | None = None) -> None:
        self.graph = graph or make_graph()
        self.error: Exception | None = None
        self.calls: list[tuple[str, str | None]] = []

    async def parse(self, project, values_file=None):
        self.calls.append((project.id, values_file))
        if self.error is not None:
            raise self.error
        return self.graph.model_copy(
            update={"metadata": self.graph.metadata.model_copy(update={"project": project.id})}
        )


class StubEnhancer(BaseEnhancer):
    """Tags every node with a group; requires a credential like the real one."""

    def __init__(self) -> None:
        self.error: Exception | None = None
        self.calls: list[tuple[str, str, str | None, str]] = []

    async def enhance(self, project, run_id, graph, credential, model):
        self.calls.append((project, run_id, credential, model))
        if not credential:
            raise ConfigurationError("No API key configured")
        if self.error is not None:
            raise self.error
        nodes = [
            n.model_copy(update={"group": "Core", "category": "application-layer"})
            for n in graph.nodes
        ]
        return graph.model_copy(update={"nodes": nodes})


class StubLayoutEngine(BaseLayoutEngine):
    def __init__(self) -> None:
        self.error: Exception | None = None
        self.seen_graphs: list[InfraGraph] = []

    async def layout(self, project, run_id, graph):
        self.seen_graphs.append(graph)
        if self.error is not None:
            raise self.error
        nodes = [
            LayoutNode(id=n.id, x=i * 200.0, y=0.0, width=180.0, height=80.0)
            for i, n in enumerate(graph.nodes)
        ]
        edges = [LayoutEdge(from_=e.from_, to=e.to, points=[(0.0, 0.0), (1.0, 1.0)])
                 for e in graph.edges]
        return LayoutGraph(nodes=nodes, edges=edges, width=400.0, height=80.0, layers=1)


class StubGenerator(BaseDiagramGenerator):
    def __init__(self) -> None:
        self.error: Exception | None = None

    async def generate(self, project, run_id, graph, layout):
        if self.error is not None:
            raise self.error
        return DiagramFile(elements=[{"id": n.id, "type": "rectangle"} for n in layout.nodes])


@pytest.fixture
def stub_collaborators() -> Collaborators:
    return Collaborators(
        parser=StubParser(),
        enhancer=StubEnhancer(),
        layout_engine=StubLayoutEngine(),
        generator=StubGenerator(),
    )


@pytest.fixture
def compose_yaml() -> str:
    return COMPOSE_YAML


@pytest.fixture
def chart_files() -> dict[str, str]:
    return {"Chart.yaml": CHART_YAML, "values.yaml": VALUES_YAML}


@pytest.fixture
def stub_enhancer() -> StubEnhancer:
    return StubEnhancer()
