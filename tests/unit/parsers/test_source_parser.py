# tests/unit/parsers/test_source_parser.py — v1
"""Tests for parsers/source_parser.py — source selection and dispatch."""

from __future__ import annotations

import pytest

from iacdiagram.core.models import ProjectEntry, SourceFileDescriptor
from iacdiagram.parsers.source_parser import SourceParser, select_sources
from iacdiagram.parsers.utils import ParseError

DEMO = ProjectEntry(id="demo")


class TestSelectSources:
    def test_no_files(self):
        with pytest.raises(ParseError, match="No source files found for project: demo"):
            select_sources([], DEMO)

    def test_compose_preferred_and_shallowest(self):
        files = ["Chart.yaml", "deploy/docker-compose.yml", "docker-compose.yaml", "values.yaml"]
        selection = select_sources(files, DEMO)
        assert (selection.format, selection.primary) == ("docker-compose", "docker-compose.yaml")

    def test_helm_chart_with_override(self):
        files = ["chart/Chart.yaml", "chart/values.yaml", "chart/values-prod.yaml"]
        selection = select_sources(files, DEMO, "chart/values-prod.yaml")
        assert selection.format == "helm"
        assert selection.primary == "chart/Chart.yaml"
        assert selection.values_files == ["chart/values.yaml", "chart/values-prod.yaml"]

    def test_values_override_must_exist(self):
        with pytest.raises(ParseError, match="not found"):
            select_sources(["Chart.yaml"], DEMO, "values-x.yaml")

    def test_fallback_any_yaml(self):
        selection = select_sources(["stack.yml", "notes.json"], DEMO)
        assert selection.primary == "stack.yml"

    def test_declared_files_win(self):
        project = ProjectEntry(
            id="demo", files=[SourceFileDescriptor(path="infra/stack.yml", format="docker-compose")]
        )
        selection = select_sources(["docker-compose.yml", "stack.yml"], project)
        assert selection.primary == "stack.yml"


class TestSourceParser:
    @pytest.mark.asyncio
    async def test_parses_stored_compose(self, store, compose_yaml):
        await store.write_source_file("demo", "docker-compose.yml", compose_yaml)
        graph = await SourceParser(store).parse(DEMO)
        assert len(graph.nodes) == 4
        assert graph.metadata.project == "demo"

    @pytest.mark.asyncio
    async def test_parses_stored_chart_with_values(self, store, chart_files):
        for name, text in chart_files.items():
            await store.write_source_file("shop", name, text)
        await store.write_source_file("shop", "values-prod.yaml", "postgresql:\n  enabled: false\n")
        graph = await SourceParser(store).parse(ProjectEntry(id="shop"), "values-prod.yaml")
        assert "postgresql" not in graph.node_ids()
