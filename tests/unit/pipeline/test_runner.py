# tests/unit/pipeline/test_runner.py — v1
"""Tests for pipeline/runner.py — plan execution, fail-fast, manifest writes."""

from __future__ import annotations

import pytest

from iacdiagram.pipeline.dag_builder import ExecutionPlan
from iacdiagram.pipeline.runner import StepExecutor
from iacdiagram.pipeline.state import RunRequest
from iacdiagram.storage.models import Run


async def _running(store, project) -> Run:
    run = Run(id=await store.allocate_run(project.id), project=project.id)
    run.start()
    return run


class TestStepExecutor:
    @pytest.mark.asyncio
    async def test_runs_chain_in_order(self, store, project, stub_collaborators):
        executor = StepExecutor(store, stub_collaborators)
        run = await _running(store, project)
        result = await executor.execute_up_to(run, "generate", RunRequest(project=project))

        assert result.step == "generate"
        assert result.status == "completed"
        assert [s.step for s in run.steps] == ["parse", "layout", "generate"]
        # layout consumed parse's graph directly
        assert stub_collaborators.layout_engine.seen_graphs[0].nodes[0].group is None

    @pytest.mark.asyncio
    async def test_enhanced_graph_reaches_layout(self, store, project, stub_collaborators):
        executor = StepExecutor(store, stub_collaborators)
        run = await _running(store, project)
        request = RunRequest(project=project, enhance=True, credential="sk-test")
        await executor.execute_up_to(run, "layout", request)

        assert [s.step for s in run.steps] == ["parse", "enhance", "layout"]
        assert stub_collaborators.layout_engine.seen_graphs[0].nodes[0].group == "Core"

    @pytest.mark.asyncio
    async def test_fail_fast(self, store, project, stub_collaborators):
        stub_collaborators.layout_engine.error = RuntimeError("no room")
        executor = StepExecutor(store, stub_collaborators)
        run = await _running(store, project)
        result = await executor.execute_up_to(run, "generate", RunRequest(project=project))

        assert result.step == "layout"
        assert result.status == "failed"
        assert [s.step for s in run.steps] == ["parse", "layout"]

    @pytest.mark.asyncio
    async def test_manifest_written_after_each_step(self, store, project, stub_collaborators):
        executor = StepExecutor(store, stub_collaborators)
        run = await _running(store, project)
        await executor.execute_up_to(run, "parse", RunRequest(project=project))

        persisted = await store.read_manifest(project.id, run.id)
        assert persisted is not None
        assert [s.status for s in persisted.steps] == ["completed"]

    @pytest.mark.asyncio
    async def test_empty_plan_rejected(self, store, project, stub_collaborators):
        executor = StepExecutor(store, stub_collaborators)
        run = await _running(store, project)
        with pytest.raises(ValueError, match="empty"):
            await executor.execute_plan(run, ExecutionPlan(), RunRequest(project=project))
