# src/parsers/base_parser.py — v1
"""Abstract parser interface: project source files -> InfraGraph."""

from __future__ import annotations

from abc import ABC, abstractmethod

from iacdiagram.core.models import InfraGraph, ProjectEntry


class BaseParser(ABC):
    """Turns a project's fetched IaC files into an infrastructure graph."""

    @abstractmethod
    async def parse(
        self, project: ProjectEntry, values_file: str | None = None
    ) -> InfraGraph:
        """Parse the project's sources.

        Args:
            project: Registry entry of the project.
            values_file: Helm values override file (relative source path) to
                merge over the chart defaults, if any.
        """
