# src/layout/base_layout_engine.py — v1
"""Abstract layout engine interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from iacdiagram.core.models import InfraGraph, LayoutGraph


class BaseLayoutEngine(ABC):
    """Positions graph nodes and routes edges."""

    @abstractmethod
    async def layout(self, project: str, run_id: str, graph: InfraGraph) -> LayoutGraph:
        """Compute a layout for `graph`."""
