# src/parsers/helm.py — v1
"""Helm chart parser.

Reads Chart.yaml and the merged values (values.yaml, then an optional
override file). Components are top-level values sections that declare an
image; enabled chart dependencies become subchart nodes. Dependencies are
enabled by `condition`, then `tags`, then `<name>.enabled`, defaulting to on.
"""

from __future__ import annotations

import logging
from typing import Any

from iacdiagram.core.models import InfraGraph, PortMapping, SourceInfo
from iacdiagram.parsers.utils import (
    GraphBuilder,
    ParseError,
    as_bool,
    deep_merge,
    get_path,
    infer_service_type,
    load_yaml,
)

logger = logging.getLogger(__name__)


def parse_helm_chart(
    chart_file: str,
    chart_content: str,
    values_files: list[tuple[str, str]],
    project: str,
) -> InfraGraph:
    """Parse a chart into an InfraGraph.

    Args:
        chart_file: Relative path of Chart.yaml (recorded as source).
        chart_content: Chart.yaml text.
        values_files: (path, text) pairs, merged in order; later files win.
        project: Project identifier.
    """
    chart = load_yaml(chart_content, chart_file)
    if not isinstance(chart, dict) or not chart.get("name"):
        raise ParseError(f"{chart_file} does not declare a chart name")

    values: dict[str, Any] = {}
    builder = GraphBuilder(project)
    builder.add_source_file(chart_file)
    for path, text in values_files:
        loaded = load_yaml(text, path) or {}
        if not isinstance(loaded, dict):
            raise ParseError(f"{path} must contain a mapping")
        values = deep_merge(values, loaded)
        builder.add_source_file(path)

    chart_name = str(chart["name"])
    source = SourceInfo(file=chart_file, format="helm")
    dependencies = [d for d in chart.get("dependencies") or [] if isinstance(d, dict)]
    dependency_names = {str(d.get("name")) for d in dependencies}

    components = _detect_components(values, dependency_names)
    if components:
        for name, section in components:
            image = _image(section)
            builder.add_node(
                name,
                name,
                infer_service_type(name, image),
                source,
                image=image,
                ports=_ports(section),
                replicas=section.get("replicaCount") if isinstance(section.get("replicaCount"), int) else None,
            )
        roots = [name for name, _ in components]
    else:
        image = _image(values)
        builder.add_node(
            chart_name,
            chart_name,
            infer_service_type(chart_name, image),
            source,
            image=image,
            ports=_ports(values),
            replicas=values.get("replicaCount") if isinstance(values.get("replicaCount"), int) else None,
        )
        roots = [chart_name]

    for dep in dependencies:
        dep_name = str(dep.get("name"))
        if not _dependency_enabled(dep, values):
            logger.debug("Helm dependency '%s' disabled by values", dep_name)
            continue
        builder.add_node(dep_name, dep_name, infer_service_type(dep_name), source)
        for root in roots:
            builder.add_edge(root, dep_name, "subchart")

    graph = builder.build()
    logger.info(
        "Parsed chart %s: %d services, %d dependencies",
        chart_name, len(graph.nodes), len(graph.edges),
    )
    return graph


def _dependency_enabled(dep: dict[str, Any], values: dict[str, Any]) -> bool:
    condition = dep.get("condition")
    if isinstance(condition, str) and condition.strip():
        results = [
            as_bool(get_path(values, p.strip())) for p in condition.split(",") if p.strip()
        ]
        resolved = [r for r in results if r is not None]
        if resolved:
            return any(resolved)

    tags = dep.get("tags")
    if isinstance(tags, list) and tags:
        resolved = [as_bool(get_path(values, f"tags.{t}")) for t in tags]
        resolved = [r for r in resolved if r is not None]
        if False in resolved:
            return False
        if True in resolved:
            return True

    explicit = as_bool(get_path(values, f"{dep.get('name')}.enabled"))
    return True if explicit is None else explicit


def _detect_components(
    values: dict[str, Any], dependency_names: set[str]
) -> list[tuple[str, dict[str, Any]]]:
    components: list[tuple[str, dict[str, Any]]] = []
    for key, section in values.items():
        if key in dependency_names or not isinstance(section, dict):
            continue
        if "image" not in section:
            continue
        if as_bool(section.get("enabled")) is False:
            continue
        components.append((str(key), section))
    return components


def _image(section: dict[str, Any]) -> str | None:
    image = section.get("image")
    if isinstance(image, str):
        return image
    if isinstance(image, dict):
        repository = image.get("repository")
        if not isinstance(repository, str):
            return None
        registry = image.get("registry")
        tag = image.get("tag")
        ref = f"{registry}/{repository}" if isinstance(registry, str) and registry else repository
        return f"{ref}:{tag}" if tag not in (None, "") else ref
    return None


def _ports(section: dict[str, Any]) -> list[PortMapping]:
    service = section.get("service")
    if not isinstance(service, dict):
        return []
    port = service.get("port")
    if isinstance(port, int):
        target = service.get("targetPort")
        return [PortMapping(internal=target if isinstance(target, int) else port, external=port)]
    return []
