# src/storage/models.py — v1
"""Run manifest models: Run, StepResult, SkippedStep.

A Run is written to meta.json in its run directory. Step results are kept
in execution order; each transitions pending -> running -> completed|failed
exactly once.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

StepName = Literal["parse", "enhance", "layout", "generate"]
StepStatus = Literal["pending", "running", "completed", "failed"]
RunStatus = Literal["pending", "running", "completed", "failed"]

STEP_ORDER: tuple[StepName, ...] = ("parse", "enhance", "layout", "generate")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InvalidTransitionError(Exception):
    """Raised when a status transition would violate the run state machine."""


class StepResult(BaseModel):
    """Record of one step's execution within a Run."""

    step: StepName
    status: StepStatus = "pending"
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration: int | None = None  # ms
    output_file: str | None = None
    error: str | None = None

    def start(self) -> None:
        if self.status != "pending":
            raise InvalidTransitionError(
                f"Step '{self.step}' cannot start from status '{self.status}'"
            )
        self.status = "running"
        self.started_at = _now()

    def complete(self, output_file: str, duration_ms: int) -> None:
        self._finish("completed", duration_ms)
        self.output_file = output_file

    def fail(self, error: str, duration_ms: int) -> None:
        self._finish("failed", duration_ms)
        self.error = error

    def invalidate(self, error: str) -> None:
        """Fail a completed step whose outcome could not be persisted."""
        if self.status != "completed":
            raise InvalidTransitionError(
                f"Step '{self.step}' cannot be invalidated from status '{self.status}'"
            )
        self.status = "failed"
        self.error = error
        self.output_file = None

    def _finish(self, status: StepStatus, duration_ms: int) -> None:
        if self.status != "running":
            raise InvalidTransitionError(
                f"Step '{self.step}' cannot finish from status '{self.status}'"
            )
        self.status = status
        self.completed_at = _now()
        self.duration = max(0, duration_ms)


class SkippedStep(BaseModel):
    """An optional step that was deliberately not executed."""

    step: StepName
    reason: str


class VariantRef(BaseModel):
    """The override file a variant run was bound to."""

    id: str
    values_file: str


class RunOptions(BaseModel):
    """Snapshot of the effective options a run executed with."""

    target_step: StepName | None = None
    enhance: bool = False
    llm_model: str | None = None
    values_file: str | None = None


class Run(BaseModel):
    """One attempt to execute the pipeline for a project."""

    id: str
    project: str
    status: RunStatus = "pending"
    started_at: datetime = Field(default_factory=_now)
    completed_at: datetime | None = None
    steps: list[StepResult] = Field(default_factory=list)
    skipped_steps: list[SkippedStep] = Field(default_factory=list)
    source_files: list[str] = Field(default_factory=list)
    variant: VariantRef | None = None
    options: RunOptions = Field(default_factory=RunOptions)

    def start(self) -> None:
        if self.status != "pending":
            raise InvalidTransitionError(
                f"Run '{self.id}' cannot start from status '{self.status}'"
            )
        self.status = "running"

    def new_step(self, step: StepName) -> StepResult:
        """Append a pending StepResult. A step is never re-entered in a run."""
        if self.status != "running":
            raise InvalidTransitionError(
                f"Run '{self.id}' is not running (status '{self.status}')"
            )
        if any(s.step == step for s in self.steps):
            raise InvalidTransitionError(
                f"Step '{step}' was already executed in run '{self.id}'"
            )
        result = StepResult(step=step)
        self.steps.append(result)
        return result

    def finish(self) -> None:
        """Derive the terminal status from the recorded step results."""
        if self.status in ("completed", "failed"):
            raise InvalidTransitionError(f"Run '{self.id}' is already {self.status}")
        if self.steps and all(s.status == "completed" for s in self.steps):
            self.status = "completed"
        else:
            self.status = "failed"
        self.completed_at = _now()

    def invalidate_last_step(self, error: str) -> None:
        """Fail the most recent step after the terminal manifest could not be persisted."""
        if not self.is_terminal or not self.steps:
            raise InvalidTransitionError(
                f"Run '{self.id}' has no finished step to invalidate (status '{self.status}')"
            )
        last = self.steps[-1]
        if last.status == "completed":
            last.invalidate(error)
        self.status = "failed"

    def get_step(self, step: str) -> StepResult | None:
        for result in self.steps:
            if result.step == step:
                return result
        return None

    @property
    def failed_step(self) -> StepResult | None:
        for result in self.steps:
            if result.status == "failed":
                return result
        return None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")
