# src/parsers/utils.py — v1
"""Shared parser helpers: YAML loading, service-type inference, graph building."""

from __future__ import annotations

import logging
from typing import Any

import yaml

from iacdiagram.core.models import (
    DependencyEdge,
    DependencyType,
    GraphMetadata,
    InfraGraph,
    PortMapping,
    ServiceNode,
    ServiceType,
    SourceInfo,
)
from iacdiagram.pipeline.steps.base import StepError

logger = logging.getLogger(__name__)

PARSER_VERSION = "0.1.0"

_TYPE_HINTS: list[tuple[ServiceType, tuple[str, ...]]] = [
    ("database", ("postgres", "mysql", "mariadb", "mongo", "clickhouse", "cassandra", "cockroach")),
    ("cache", ("redis", "memcached", "valkey", "dragonfly")),
    ("queue", ("kafka", "rabbitmq", "nats", "zookeeper", "pulsar", "activemq")),
    ("storage", ("minio", "seaweedfs", "ceph", "s3")),
    ("proxy", ("nginx", "traefik", "haproxy", "envoy", "caddy")),
    ("ui", ("frontend", "web", "ui", "dashboard", "grafana")),
]


class ParseError(StepError):
    """Raised when a source file cannot be parsed."""


def load_yaml(content: str, filename: str) -> Any:
    """Parse YAML, reporting syntax errors as ParseError."""
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid YAML syntax in {filename}: {exc}") from exc


def infer_service_type(service_name: str, image: str | None = None) -> ServiceType:
    """Guess a service type from its image (or name)."""
    haystack = (image or service_name).lower()
    for service_type, needles in _TYPE_HINTS:
        if any(n in haystack for n in needles):
            return service_type
    return "container"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge `override` into a copy of `base`; nested mappings merge recursively."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_path(values: dict[str, Any], path: str) -> Any:
    """Dotted-path lookup into nested mappings."""
    current: Any = values
    for part in filter(None, path.split(".")):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return None


class GraphBuilder:
    """Accumulates nodes and edges, dropping duplicates and dangling edges."""

    def __init__(self, project: str) -> None:
        self._project = project
        self._nodes: dict[str, ServiceNode] = {}
        self._edges: list[DependencyEdge] = []
        self._edge_keys: set[tuple[str, str, str]] = set()
        self._source_files: list[str] = []

    def add_source_file(self, path: str) -> None:
        if path not in self._source_files:
            self._source_files.append(path)

    def add_node(
        self,
        node_id: str,
        name: str,
        service_type: ServiceType,
        source: SourceInfo,
        image: str | None = None,
        ports: list[PortMapping] | None = None,
        replicas: int | None = None,
        environment_keys: list[str] | None = None,
    ) -> None:
        if node_id in self._nodes:
            logger.debug("Duplicate node '%s' ignored", node_id)
            return
        self._nodes[node_id] = ServiceNode(
            id=node_id,
            name=name,
            type=service_type,
            source=source,
            image=image,
            ports=ports or [],
            replicas=replicas,
            environment_keys=environment_keys or [],
        )

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def add_edge(self, source: str, target: str, edge_type: DependencyType) -> None:
        key = (source, target, edge_type)
        if key in self._edge_keys or source == target:
            return
        self._edge_keys.add(key)
        self._edges.append(DependencyEdge(from_=source, to=target, type=edge_type))

    def build(self) -> InfraGraph:
        edges = [e for e in self._edges if e.from_ in self._nodes and e.to in self._nodes]
        dropped = len(self._edges) - len(edges)
        if dropped:
            logger.warning("Dropped %d edges referencing unknown services", dropped)
        return InfraGraph(
            nodes=list(self._nodes.values()),
            edges=edges,
            metadata=GraphMetadata(
                project=self._project,
                source_files=list(self._source_files),
                parser_version=PARSER_VERSION,
            ),
        )
