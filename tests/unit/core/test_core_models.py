# tests/unit/core/test_core_models.py — v1
"""Tests for core/models.py — graph, layout and diagram serialization."""

from __future__ import annotations

import json

from iacdiagram.core.models import DependencyEdge, DiagramFile, InfraGraph, LayoutEdge, ProjectEntry


class TestInfraGraph:
    def test_edge_serializes_from_alias(self, sample_graph):
        data = json.loads(sample_graph.to_json())
        assert data["edges"][0]["from"] == "web"
        assert "from_" not in data["edges"][0]

    def test_parse_from_alias(self, sample_graph):
        restored = InfraGraph.model_validate_json(sample_graph.to_json())
        assert restored.edges[0].from_ == "web"
        assert restored.get_node("db").type == "database"
        assert restored.get_node("missing") is None

    def test_edge_accepts_field_name(self):
        assert DependencyEdge(from_="a", to="b").from_ == "a"
        assert DependencyEdge.model_validate({"from": "a", "to": "b"}).type == "depends_on"


class TestLayoutAndDiagram:
    def test_layout_edge_points(self):
        edge = LayoutEdge.model_validate({"from": "a", "to": "b", "points": [[0, 0], [1, 2]]})
        assert edge.points == [(0.0, 0.0), (1.0, 2.0)]

    def test_diagram_document_shape(self):
        data = json.loads(DiagramFile(elements=[{"id": "x"}]).to_json())
        assert data["type"] == "excalidraw"
        assert data["version"] == 2
        assert data["appState"]["viewBackgroundColor"] == "#ffffff"
        assert len(data["elements"]) == 1


class TestProjectEntry:
    def test_display_name(self):
        assert ProjectEntry(id="x").display_name == "x"
        assert ProjectEntry(id="x", name="X").display_name == "X"
