# src/parsers/docker_compose.py — v1
"""docker-compose parser: services, images, ports, dependencies."""

from __future__ import annotations

import logging
from typing import Any

from iacdiagram.core.models import InfraGraph, PortMapping, SourceInfo
from iacdiagram.parsers.utils import GraphBuilder, ParseError, infer_service_type, load_yaml

logger = logging.getLogger(__name__)


def parse_docker_compose(content: str, filename: str, project: str) -> InfraGraph:
    """Parse one compose file into an InfraGraph.

    Raises:
        ParseError: On invalid YAML or a file without a `services` mapping.
    """
    data = load_yaml(content, filename)
    if not isinstance(data, dict):
        raise ParseError(f"{filename} is not a docker-compose mapping")
    services = data.get("services")
    if not isinstance(services, dict):
        raise ParseError(f"No services defined in {filename}")

    builder = GraphBuilder(project)
    builder.add_source_file(filename)
    source = SourceInfo(file=filename, format="docker-compose")

    for name, definition in services.items():
        definition = definition if isinstance(definition, dict) else {}
        image = definition.get("image") if isinstance(definition.get("image"), str) else None
        replicas = _replicas(definition)
        builder.add_node(
            str(name),
            str(name),
            infer_service_type(str(name), image),
            source,
            image=image,
            ports=_ports(definition.get("ports")),
            replicas=replicas,
            environment_keys=_environment_keys(definition.get("environment")),
        )

    for name, definition in services.items():
        if not isinstance(definition, dict):
            continue
        for dep in _depends_on(definition.get("depends_on")):
            builder.add_edge(str(name), dep, "depends_on")
        for link in definition.get("links") or []:
            # "service:alias" form
            builder.add_edge(str(name), str(link).split(":", 1)[0], "link")

    graph = builder.build()
    logger.info(
        "Parsed %s: %d services, %d dependencies",
        filename, len(graph.nodes), len(graph.edges),
    )
    return graph


def _depends_on(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    if isinstance(value, dict):
        return [str(k) for k in value]
    return []


def _ports(value: Any) -> list[PortMapping]:
    ports: list[PortMapping] = []
    for entry in value or []:
        if isinstance(entry, dict):
            target = entry.get("target")
            if isinstance(target, int):
                published = entry.get("published")
                ports.append(
                    PortMapping(
                        internal=target,
                        external=int(published) if str(published).isdigit() else None,
                    )
                )
            continue
        mapping = _parse_port_string(str(entry))
        if mapping is not None:
            ports.append(mapping)
    return ports


def _parse_port_string(entry: str) -> PortMapping | None:
    """Parse "8080:80", "127.0.0.1:8080:80/tcp" or "80"."""
    port_part = entry.split("/", 1)[0]
    parts = port_part.split(":")
    internal = parts[-1]
    external = parts[-2] if len(parts) >= 2 else None
    if not internal.isdigit():
        return None
    return PortMapping(
        internal=int(internal),
        external=int(external) if external and external.isdigit() else None,
    )


def _environment_keys(value: Any) -> list[str]:
    if isinstance(value, dict):
        return [str(k) for k in value]
    if isinstance(value, list):
        return [str(v).split("=", 1)[0] for v in value]
    return []


def _replicas(definition: dict[str, Any]) -> int | None:
    deploy = definition.get("deploy")
    if isinstance(deploy, dict) and isinstance(deploy.get("replicas"), int):
        return deploy["replicas"]
    return None
