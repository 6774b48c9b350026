# src/parsers/source_parser.py — v1
"""Default parser: pick the project's primary IaC source and parse it.

Selection order:
  1. Files declared in the project registry entry (their `format` wins).
  2. A docker-compose file (`*docker-compose*`, `compose.yml|yaml`).
  3. The Helm chart anchored at the shallowest Chart.yaml.
  4. Any other YAML file, read as docker-compose.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from iacdiagram.core.models import InfraGraph, ProjectEntry
from iacdiagram.parsers.base_parser import BaseParser
from iacdiagram.parsers.docker_compose import parse_docker_compose
from iacdiagram.parsers.helm import parse_helm_chart
from iacdiagram.parsers.utils import ParseError
from iacdiagram.pipeline.variants import find_chart_anchor
from iacdiagram.storage.run_manager import RunStore

logger = logging.getLogger(__name__)

COMPOSE_NAMES = ("compose.yml", "compose.yaml")


@dataclass
class SourceSelection:
    """Which files the parser will read and how."""

    format: str  # "docker-compose" | "helm"
    primary: str
    values_files: list[str] = field(default_factory=list)


def is_compose_file(path: str) -> bool:
    name = PurePosixPath(path).name.lower()
    return "docker-compose" in name or name in COMPOSE_NAMES


def _is_yaml(path: str) -> bool:
    return path.lower().endswith((".yml", ".yaml"))


def _by_depth(paths: list[str]) -> list[str]:
    return sorted(paths, key=lambda p: (len(PurePosixPath(p).parts), p))


def select_sources(
    files: list[str], project: ProjectEntry, values_file: str | None = None
) -> SourceSelection:
    """Choose the source files to parse for `project`.

    Raises:
        ParseError: If nothing parseable is present.
    """
    if not files:
        raise ParseError(f"No source files found for project: {project.id}")

    if values_file is not None and values_file not in files:
        raise ParseError(f"Values file not found in project sources: {values_file}")

    declared = _declared_files(files, project)
    compose_candidates = [f for f, fmt in declared if fmt == "docker-compose"]
    helm_declared = [f for f, fmt in declared if fmt == "helm"]

    if not declared:
        compose_candidates = [f for f in files if is_compose_file(f)]

    if values_file is None and compose_candidates:
        return SourceSelection(format="docker-compose", primary=_by_depth(compose_candidates)[0])

    anchor = find_chart_anchor(helm_declared or files)
    if anchor is not None:
        chart = next(
            f for f in _by_depth(files)
            if PurePosixPath(f).name.lower() == "chart.yaml"
            and _parent(f) == anchor
        )
        defaults = [f for f in files if _parent(f) == anchor and PurePosixPath(f).name.lower() in ("values.yaml", "values.yml")]
        values = sorted(defaults)
        if values_file is not None:
            values.append(values_file)
        return SourceSelection(format="helm", primary=chart, values_files=values)

    if values_file is not None:
        raise ParseError(f"Values file {values_file} given but no Helm chart found")

    yaml_files = [f for f in files if _is_yaml(f)]
    if not yaml_files:
        raise ParseError(f"No docker-compose or Helm chart files found for project: {project.id}")
    return SourceSelection(format="docker-compose", primary=_by_depth(yaml_files)[0])


def _parent(path: str) -> str:
    parent = PurePosixPath(path).parent.as_posix()
    return "" if parent == "." else parent


def _declared_files(files: list[str], project: ProjectEntry) -> list[tuple[str, str]]:
    """Match registry descriptors against stored files (by path, then basename)."""
    matched: list[tuple[str, str]] = []
    for descriptor in project.files:
        basename = PurePosixPath(descriptor.path).name
        for f in files:
            if f == descriptor.path or PurePosixPath(f).name == basename:
                fmt = descriptor.format
                if fmt not in ("docker-compose", "helm"):
                    fmt = "docker-compose" if is_compose_file(f) else "helm"
                matched.append((f, fmt))
                break
    return matched


class SourceParser(BaseParser):
    """Parse a project's stored sources through a RunStore."""

    def __init__(self, store: RunStore) -> None:
        self._store = store

    async def parse(
        self, project: ProjectEntry, values_file: str | None = None
    ) -> InfraGraph:
        files = await self._store.list_source_files(project.id)
        selection = select_sources(files, project, values_file)
        logger.info(
            "Parsing %s source %s%s",
            selection.format,
            selection.primary,
            f" with values {selection.values_files}" if selection.values_files else "",
        )

        if selection.format == "docker-compose":
            content = await self._store.read_source_file(project.id, selection.primary)
            return parse_docker_compose(content, selection.primary, project.id)

        chart_content = await self._store.read_source_file(project.id, selection.primary)
        values = [
            (path, await self._store.read_source_file(project.id, path))
            for path in selection.values_files
        ]
        return parse_helm_chart(selection.primary, chart_content, values, project.id)
