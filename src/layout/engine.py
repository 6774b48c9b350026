# src/layout/engine.py — v1
"""Layered (Sugiyama-style) layout on networkx.

Dependents sit above their dependencies: an edge A -> B (A depends on B)
places B one layer below A. Cycles are collapsed with a condensation so
every strongly connected component shares a layer. Within a layer nodes
are ordered by group then id, and each layer is centered horizontally.
"""

from __future__ import annotations

import logging

import networkx as nx

from iacdiagram.core.models import InfraGraph, LayoutEdge, LayoutGraph, LayoutNode
from iacdiagram.layout.base_layout_engine import BaseLayoutEngine

logger = logging.getLogger(__name__)

NODE_WIDTH = 180.0
NODE_HEIGHT = 80.0
H_GAP = 60.0
V_GAP = 100.0
MARGIN = 40.0


def to_networkx(graph: InfraGraph) -> nx.DiGraph:
    g = nx.DiGraph()
    for node in graph.nodes:
        g.add_node(node.id, group=node.group or "", type=node.type)
    for edge in graph.edges:
        g.add_edge(edge.from_, edge.to, type=edge.type)
    return g


def assign_layers(g: nx.DiGraph) -> dict[str, int]:
    """Map node id -> layer index (0 = top)."""
    if g.number_of_nodes() == 0:
        return {}
    condensed = nx.condensation(g)
    layers: dict[str, int] = {}
    for index, generation in enumerate(nx.topological_generations(condensed)):
        for component in generation:
            for node_id in condensed.nodes[component]["members"]:
                layers[node_id] = index
    return layers


class LayeredLayoutEngine(BaseLayoutEngine):
    """Deterministic top-down layered layout."""

    def __init__(
        self,
        node_width: float = NODE_WIDTH,
        node_height: float = NODE_HEIGHT,
        h_gap: float = H_GAP,
        v_gap: float = V_GAP,
    ) -> None:
        self.node_width = node_width
        self.node_height = node_height
        self.h_gap = h_gap
        self.v_gap = v_gap

    async def layout(self, project: str, run_id: str, graph: InfraGraph) -> LayoutGraph:
        g = to_networkx(graph)
        layers = assign_layers(g)

        rows: dict[int, list[str]] = {}
        for node_id, layer in layers.items():
            rows.setdefault(layer, []).append(node_id)
        for row in rows.values():
            row.sort(key=lambda n: (g.nodes[n]["group"], n))

        widest = max((len(r) for r in rows.values()), default=0)
        content_width = widest * self.node_width + max(widest - 1, 0) * self.h_gap

        positioned: dict[str, LayoutNode] = {}
        for layer in sorted(rows):
            row = rows[layer]
            row_width = len(row) * self.node_width + (len(row) - 1) * self.h_gap
            x = MARGIN + (content_width - row_width) / 2
            y = MARGIN + layer * (self.node_height + self.v_gap)
            for node_id in row:
                positioned[node_id] = LayoutNode(
                    id=node_id, x=x, y=y,
                    width=self.node_width, height=self.node_height, layer=layer,
                )
                x += self.node_width + self.h_gap

        edges = [
            LayoutEdge(from_=e.from_, to=e.to, points=self._route(positioned[e.from_], positioned[e.to]))
            for e in graph.edges
            if e.from_ in positioned and e.to in positioned
        ]

        n_layers = len(rows)
        height = (
            2 * MARGIN + n_layers * self.node_height + max(n_layers - 1, 0) * self.v_gap
            if n_layers else 0.0
        )
        result = LayoutGraph(
            nodes=[positioned[n.id] for n in graph.nodes if n.id in positioned],
            edges=edges,
            width=content_width + 2 * MARGIN if widest else 0.0,
            height=height,
            layers=n_layers,
        )
        logger.info(
            "Laid out %d nodes in %d layers (%.0fx%.0f)",
            len(result.nodes), result.layers, result.width, result.height,
        )
        return result

    @staticmethod
    def _route(src: LayoutNode, dst: LayoutNode) -> list[tuple[float, float]]:
        """Straight connector between facing sides of two boxes."""
        if src.layer < dst.layer:
            return [(src.x + src.width / 2, src.y + src.height), (dst.x + dst.width / 2, dst.y)]
        if src.layer > dst.layer:
            return [(src.x + src.width / 2, src.y), (dst.x + dst.width / 2, dst.y + dst.height)]
        if src.x <= dst.x:
            return [(src.x + src.width, src.y + src.height / 2), (dst.x, dst.y + dst.height / 2)]
        return [(src.x, src.y + src.height / 2), (dst.x + dst.width, dst.y + dst.height / 2)]
