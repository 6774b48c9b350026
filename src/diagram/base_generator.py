# src/diagram/base_generator.py — v1
"""Abstract diagram generator interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from iacdiagram.core.models import DiagramFile, InfraGraph, LayoutGraph


class BaseDiagramGenerator(ABC):
    """Turns a graph plus its layout into diagram elements."""

    @abstractmethod
    async def generate(
        self, project: str, run_id: str, graph: InfraGraph, layout: LayoutGraph
    ) -> DiagramFile:
        """Build the diagram document."""
