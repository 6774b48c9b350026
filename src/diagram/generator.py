# src/diagram/generator.py — v1
"""Excalidraw generator.

Each service becomes a shape (ellipse for databases and caches, diamond
for queues, rectangle otherwise) with a bound text label; each dependency
becomes an arrow bound to both shapes. Element ids and seeds derive from
the run id and element key, so regenerating a run yields the same ids.
"""

from __future__ import annotations

import logging
import time
import zlib
from typing import Any

from iacdiagram.core.models import DiagramFile, InfraGraph, LayoutGraph, ServiceNode
from iacdiagram.diagram.base_generator import BaseDiagramGenerator

logger = logging.getLogger(__name__)

SERVICE_COLORS: dict[str, tuple[str, str]] = {
    # type: (stroke, background)
    "database": ("#1971c2", "#a5d8ff"),
    "cache": ("#e03131", "#ffc9c9"),
    "queue": ("#f08c00", "#ffec99"),
    "storage": ("#2f9e44", "#b2f2bb"),
    "proxy": ("#7950f2", "#d0bfff"),
    "ui": ("#0c8599", "#99e9f2"),
    "container": ("#495057", "#dee2e6"),
}
SERVICE_SHAPES = {"database": "ellipse", "cache": "ellipse", "queue": "diamond"}
ARROW_COLOR = "#868e96"
FONT_SIZE = 16
LINE_HEIGHT = 1.25


def _seed(*parts: str) -> int:
    return zlib.crc32("/".join(parts).encode("utf-8")) & 0x7FFFFFFF


def _element_id(run_id: str, kind: str, key: str) -> str:
    return f"{kind}-{_seed(run_id, kind, key):08x}"


class ExcalidrawGenerator(BaseDiagramGenerator):
    """Render positioned graphs as Excalidraw documents."""

    def __init__(self, font_family: int = 1) -> None:
        self.font_family = font_family

    async def generate(
        self, project: str, run_id: str, graph: InfraGraph, layout: LayoutGraph
    ) -> DiagramFile:
        updated = int(time.time() * 1000)
        positions = {n.id: n for n in layout.nodes}
        shape_ids: dict[str, str] = {}
        elements: list[dict[str, Any]] = []

        for node in graph.nodes:
            pos = positions.get(node.id)
            if pos is None:
                logger.warning("Service '%s' has no layout position; skipped", node.id)
                continue
            shape_id = _element_id(run_id, "node", node.id)
            text_id = _element_id(run_id, "label", node.id)
            shape_ids[node.id] = shape_id
            shape = self._shape(run_id, shape_id, text_id, node, pos.x, pos.y, pos.width, pos.height, updated)
            elements.append(shape)
            elements.append(self._label(run_id, text_id, shape_id, self._label_text(node), pos.x, pos.y, pos.width, pos.height, updated))

        for edge in layout.edges:
            start, end = shape_ids.get(edge.from_), shape_ids.get(edge.to)
            if start is None or end is None or len(edge.points) < 2:
                continue
            arrow_id = _element_id(run_id, "edge", f"{edge.from_}->{edge.to}")
            elements.append(self._arrow(run_id, arrow_id, start, end, edge.points, updated))
            for element in elements:
                if element["id"] in (start, end):
                    element["boundElements"].append({"id": arrow_id, "type": "arrow"})

        diagram = DiagramFile(elements=elements)
        logger.info(
            "Generated diagram for %s/%s: %d elements", project, run_id, len(elements)
        )
        return diagram

    @staticmethod
    def _label_text(node: ServiceNode) -> str:
        lines = [node.name]
        if node.image:
            lines.append(node.image)
        return "\n".join(lines)

    @staticmethod
    def _base(run_id: str, element_id: str, kind: str, updated: int) -> dict[str, Any]:
        return {
            "id": element_id,
            "type": kind,
            "angle": 0,
            "fillStyle": "solid",
            "strokeWidth": 2,
            "strokeStyle": "solid",
            "roughness": 1,
            "opacity": 100,
            "groupIds": [],
            "frameId": None,
            "seed": _seed(run_id, element_id),
            "version": 1,
            "versionNonce": _seed(run_id, element_id, "nonce"),
            "isDeleted": False,
            "boundElements": [],
            "updated": updated,
            "link": None,
            "locked": False,
        }

    def _shape(
        self, run_id: str, shape_id: str, text_id: str, node: ServiceNode,
        x: float, y: float, width: float, height: float, updated: int,
    ) -> dict[str, Any]:
        stroke, background = SERVICE_COLORS.get(node.type, SERVICE_COLORS["container"])
        kind = SERVICE_SHAPES.get(node.type, "rectangle")
        element = self._base(run_id, shape_id, kind, updated)
        element.update({
            "x": x, "y": y, "width": width, "height": height,
            "strokeColor": stroke,
            "backgroundColor": background,
            "roundness": {"type": 3} if kind == "rectangle" else None,
            "customData": {
                "serviceId": node.id,
                "serviceType": node.type,
                "category": node.category,
                "group": node.group,
                "description": node.description,
            },
        })
        element["boundElements"].append({"id": text_id, "type": "text"})
        return element

    def _label(
        self, run_id: str, text_id: str, container_id: str, text: str,
        x: float, y: float, width: float, height: float, updated: int,
    ) -> dict[str, Any]:
        lines = text.split("\n")
        text_height = FONT_SIZE * LINE_HEIGHT * len(lines)
        text_width = min(max(len(line) for line in lines) * FONT_SIZE * 0.6, width - 20)
        element = self._base(run_id, text_id, "text", updated)
        element.update({
            "x": x + (width - text_width) / 2,
            "y": y + (height - text_height) / 2,
            "width": text_width,
            "height": text_height,
            "strokeColor": "#1e1e1e",
            "backgroundColor": "transparent",
            "strokeWidth": 1,
            "roundness": None,
            "boundElements": None,
            "text": text,
            "originalText": text,
            "fontSize": FONT_SIZE,
            "fontFamily": self.font_family,
            "textAlign": "center",
            "verticalAlign": "middle",
            "containerId": container_id,
            "lineHeight": LINE_HEIGHT,
        })
        return element

    def _arrow(
        self, run_id: str, arrow_id: str, start_id: str, end_id: str,
        points: list[tuple[float, float]], updated: int,
    ) -> dict[str, Any]:
        origin_x, origin_y = points[0]
        relative = [[px - origin_x, py - origin_y] for px, py in points]
        xs = [p[0] for p in relative]
        ys = [p[1] for p in relative]
        element = self._base(run_id, arrow_id, "arrow", updated)
        element.update({
            "x": origin_x,
            "y": origin_y,
            "width": max(xs) - min(xs),
            "height": max(ys) - min(ys),
            "strokeColor": ARROW_COLOR,
            "backgroundColor": "transparent",
            "roughness": 0,
            "roundness": None,
            "boundElements": None,
            "points": relative,
            "startBinding": {"elementId": start_id, "focus": 0, "gap": 4},
            "endBinding": {"elementId": end_id, "focus": 0, "gap": 4},
            "startArrowhead": None,
            "endArrowhead": "arrow",
        })
        return element
