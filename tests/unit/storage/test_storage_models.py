# tests/unit/storage/test_storage_models.py — v1
"""Tests for storage/models.py — Run and StepResult state machines."""

from __future__ import annotations

import pytest

from iacdiagram.storage.models import (
    STEP_ORDER,
    InvalidTransitionError,
    Run,
    RunOptions,
    StepResult,
)


class TestStepResult:
    def test_complete_transition(self):
        result = StepResult(step="parse")
        result.start()
        result.complete("01-parsed.json", 12)
        assert result.status == "completed"
        assert result.output_file == "01-parsed.json"
        assert result.duration == 12
        assert result.started_at is not None
        assert result.completed_at is not None

    def test_fail_transition(self):
        result = StepResult(step="layout")
        result.start()
        result.fail("boom", 3)
        assert result.status == "failed"
        assert result.error == "boom"
        assert result.output_file is None

    def test_cannot_complete_without_start(self):
        with pytest.raises(InvalidTransitionError):
            StepResult(step="parse").complete("x", 1)

    def test_cannot_finish_twice(self):
        result = StepResult(step="parse")
        result.start()
        result.complete("x", 1)
        with pytest.raises(InvalidTransitionError):
            result.fail("late", 1)

    def test_cannot_restart(self):
        result = StepResult(step="parse")
        result.start()
        with pytest.raises(InvalidTransitionError):
            result.start()

    def test_invalidate_completed(self):
        result = StepResult(step="parse")
        result.start()
        result.complete("01-parsed.json", 1)
        result.invalidate("Could not persist run manifest: disk full")
        assert result.status == "failed"
        assert result.output_file is None
        assert result.error.endswith("disk full")

    def test_invalidate_requires_completed(self):
        result = StepResult(step="parse")
        result.start()
        with pytest.raises(InvalidTransitionError):
            result.invalidate("nope")


class TestRun:
    def _running(self) -> Run:
        run = Run(id="r1", project="demo")
        run.start()
        return run

    def test_defaults(self):
        run = Run(id="r1", project="demo")
        assert run.status == "pending"
        assert run.steps == []
        assert run.options == RunOptions()

    def test_start_only_from_pending(self):
        run = self._running()
        with pytest.raises(InvalidTransitionError):
            run.start()

    def test_new_step_requires_running(self):
        with pytest.raises(InvalidTransitionError):
            Run(id="r1", project="demo").new_step("parse")

    def test_step_never_reentered(self):
        run = self._running()
        run.new_step("parse")
        with pytest.raises(InvalidTransitionError):
            run.new_step("parse")

    def test_finish_completed_when_all_steps_completed(self):
        run = self._running()
        for name in ("parse", "layout"):
            step = run.new_step(name)
            step.start()
            step.complete(f"{name}.json", 1)
        run.finish()
        assert run.status == "completed"
        assert run.completed_at is not None

    def test_finish_failed_when_any_step_failed(self):
        run = self._running()
        step = run.new_step("parse")
        step.start()
        step.fail("invalid syntax", 1)
        run.finish()
        assert run.status == "failed"
        assert run.failed_step is step

    def test_finish_without_steps_is_failed(self):
        run = self._running()
        run.finish()
        assert run.status == "failed"

    def test_invalidate_last_step_fails_completed_run(self):
        run = self._running()
        for name in ("parse", "layout"):
            step = run.new_step(name)
            step.start()
            step.complete(f"{name}.json", 1)
        run.finish()
        run.invalidate_last_step("Could not persist run manifest: disk full")
        assert run.status == "failed"
        assert run.failed_step is run.get_step("layout")
        assert run.get_step("parse").status == "completed"
        assert run.completed_at is not None

    def test_invalidate_last_step_keeps_existing_failure(self):
        run = self._running()
        step = run.new_step("parse")
        step.start()
        step.fail("invalid syntax", 1)
        run.finish()
        run.invalidate_last_step("Could not persist run manifest: disk full")
        assert run.status == "failed"
        assert step.error == "invalid syntax"

    def test_invalidate_last_step_requires_terminal_run(self):
        with pytest.raises(InvalidTransitionError):
            self._running().invalidate_last_step("nope")

    def test_manifest_roundtrip_keeps_order(self):
        run = self._running()
        for name in STEP_ORDER:
            step = run.new_step(name)
            step.start()
            step.complete(f"{name}.out", 1)
        run.finish()
        restored = Run.model_validate_json(run.model_dump_json())
        assert [s.step for s in restored.steps] == list(STEP_ORDER)
        assert restored.get_step("layout").output_file == "layout.out"
