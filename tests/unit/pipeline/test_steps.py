# tests/unit/pipeline/test_steps.py — v1
"""Tests for pipeline/steps — the step failure boundary and artifact hand-off."""

from __future__ import annotations

import pytest

from iacdiagram.core.models import InfraGraph
from iacdiagram.pipeline.orchestrator import PipelineOrchestrator
from iacdiagram.pipeline.state import PipelineOptions, RunRequest
from iacdiagram.pipeline.steps.base import (
    DependencyError,
    StepContext,
    StepDescriptor,
    execute_step,
)
from iacdiagram.pipeline.steps.layout import run_layout
from iacdiagram.pipeline.steps.parse import run_parse
from iacdiagram.storage.base_output_writer import StorageError
from iacdiagram.storage.layout import LAYOUT_ARTIFACT, PARSED_ARTIFACT
from iacdiagram.storage.models import Run


async def _context(store, project, collaborators, upstream=None) -> StepContext:
    run_id = await store.allocate_run(project.id)
    run = Run(id=run_id, project=project.id)
    run.start()
    return StepContext(
        store=store,
        run=run,
        request=RunRequest(project=project),
        collaborators=collaborators,
        upstream=upstream or {},
    )


class TestExecuteStep:
    @pytest.mark.asyncio
    async def test_success_records_output(self, store, project, stub_collaborators):
        ctx = await _context(store, project, stub_collaborators)
        result = await execute_step(StepDescriptor("parse", None, run_parse), ctx)

        assert result.status == "completed"
        assert result.output_file == PARSED_ARTIFACT
        assert result.duration is not None and result.duration >= 0
        assert ctx.outputs == {"parse": PARSED_ARTIFACT}
        assert ctx.run.source_files == ["docker-compose.yml"]
        raw = await store.read_artifact(project.id, ctx.run.id, PARSED_ARTIFACT)
        assert InfraGraph.model_validate_json(raw).metadata.project == "demo"

    @pytest.mark.asyncio
    async def test_exception_becomes_failed_result(self, store, project, stub_collaborators):
        stub_collaborators.parser.error = RuntimeError("boom")
        ctx = await _context(store, project, stub_collaborators)
        result = await execute_step(StepDescriptor("parse", None, run_parse), ctx)

        assert result.status == "failed"
        assert result.error == "boom"
        assert result.output_file is None
        assert "parse" not in ctx.outputs
        assert ctx.run.steps == [result]

    @pytest.mark.asyncio
    async def test_empty_message_uses_type_name(self, store, project, stub_collaborators):
        stub_collaborators.parser.error = KeyError()
        ctx = await _context(store, project, stub_collaborators)
        result = await execute_step(StepDescriptor("parse", None, run_parse), ctx)
        assert result.error == "KeyError"


class TestDependencies:
    @pytest.mark.asyncio
    async def test_missing_upstream_output(self, store, project, stub_collaborators):
        ctx = await _context(store, project, stub_collaborators, {"layout": "parse"})
        with pytest.raises(DependencyError, match="Required output of step 'parse'"):
            await run_layout(ctx)
        assert stub_collaborators.layout_engine.seen_graphs == []

    @pytest.mark.asyncio
    async def test_no_upstream_step(self, store, project, stub_collaborators):
        ctx = await _context(store, project, stub_collaborators)
        with pytest.raises(DependencyError, match="no upstream"):
            ctx.upstream_of("layout")

    @pytest.mark.asyncio
    async def test_deleted_artifact(self, store, project, stub_collaborators):
        ctx = await _context(store, project, stub_collaborators, {"layout": "parse"})
        ctx.outputs["parse"] = "gone.json"
        with pytest.raises(DependencyError, match="missing"):
            await ctx.load_output("parse", InfraGraph)

    @pytest.mark.asyncio
    async def test_dependency_failure_is_recorded(self, store, project, stub_collaborators):
        ctx = await _context(store, project, stub_collaborators, {"layout": "parse"})
        result = await execute_step(StepDescriptor("layout", "parse", run_layout), ctx)
        assert result.status == "failed"
        assert "parse" in result.error


class TestArtifactPersistence:
    @pytest.mark.asyncio
    async def test_unwritable_artifact_fails_step_and_run(
        self, store, project, stub_collaborators, monkeypatch
    ):
        original = store.write_artifact

        async def write_artifact(project_id, run_id, name, payload):
            if name == LAYOUT_ARTIFACT:
                raise StorageError("No space left on device")
            await original(project_id, run_id, name, payload)

        monkeypatch.setattr(store, "write_artifact", write_artifact)
        orchestrator = PipelineOrchestrator(store, stub_collaborators)
        run = await orchestrator.execute_run(
            orchestrator.build_request(project, PipelineOptions())
        )

        assert run.status == "failed"
        assert [(s.step, s.status) for s in run.steps] == [
            ("parse", "completed"), ("layout", "failed"),
        ]
        assert run.get_step("layout").error == "No space left on device"
        assert run.get_step("layout").output_file is None
        assert run.get_step("generate") is None
        persisted = await store.read_manifest(project.id, run.id)
        assert persisted.status == "failed"
        assert persisted.get_step("generate") is None
