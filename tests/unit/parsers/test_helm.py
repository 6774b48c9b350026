# tests/unit/parsers/test_helm.py — v1
"""Tests for parsers/helm.py — components, dependencies, values overrides."""

from __future__ import annotations

import pytest

from iacdiagram.parsers.helm import parse_helm_chart
from iacdiagram.parsers.utils import ParseError


def _parse(chart_files, *overrides):
    values = [("values.yaml", chart_files["values.yaml"]), *overrides]
    return parse_helm_chart("Chart.yaml", chart_files["Chart.yaml"], values, "shop")


class TestParseHelmChart:
    def test_components_and_subcharts(self, chart_files):
        graph = _parse(chart_files)
        assert graph.node_ids() == {"frontend", "backend", "postgresql", "redis"}
        assert graph.get_node("frontend").image == "shop/frontend:1.0"
        assert graph.get_node("backend").replicas == 2
        assert graph.get_node("postgresql").type == "database"
        subchart_edges = {(e.from_, e.to) for e in graph.edges if e.type == "subchart"}
        assert ("backend", "redis") in subchart_edges

    def test_override_disables_dependency(self, chart_files):
        graph = _parse(chart_files, ("values-prod.yaml", "postgresql:\n  enabled: false\n"))
        assert "postgresql" not in graph.node_ids()
        assert graph.metadata.source_files == ["Chart.yaml", "values.yaml", "values-prod.yaml"]

    def test_override_merges_deeply(self, chart_files):
        graph = _parse(chart_files, ("values-staging.yaml", "frontend:\n  image:\n    tag: '2.0'\n"))
        assert graph.get_node("frontend").image == "shop/frontend:2.0"

    def test_chart_without_components(self):
        graph = parse_helm_chart(
            "Chart.yaml", "name: nginx\n",
            [("values.yaml", "image:\n  repository: nginx\n  tag: '1.25'\nservice:\n  port: 80\n")],
            "web",
        )
        node = graph.get_node("nginx")
        assert node.type == "proxy"
        assert node.ports[0].internal == 80

    def test_tags_disable_dependency(self):
        chart = "name: app\ndependencies:\n  - name: kafka\n    tags: [messaging]\n"
        graph = parse_helm_chart("Chart.yaml", chart, [("values.yaml", "tags:\n  messaging: false\n")], "app")
        assert graph.node_ids() == {"app"}

    def test_chart_requires_name(self):
        with pytest.raises(ParseError):
            parse_helm_chart("Chart.yaml", "version: 1\n", [], "x")
