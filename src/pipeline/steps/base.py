# src/pipeline/steps/base.py — v1
"""Step contract: descriptors, per-run context, and the failure boundary.

Every step consumes the artifact(s) of earlier steps plus the run request
and produces one artifact. Whatever a step raises is converted into a
failed StepResult by `execute_step`; the executor and orchestrator only
ever see StepResults.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from iacdiagram.logging.context import set_step_context
from iacdiagram.storage.models import Run, StepName, StepResult

if TYPE_CHECKING:
    from iacdiagram.pipeline.collaborators import Collaborators
    from iacdiagram.pipeline.state import RunRequest
    from iacdiagram.storage.run_manager import RunStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class StepError(Exception):
    """Raised when a step's own logic fails (parse, enhance, layout, generate)."""


class DependencyError(StepError):
    """Raised when a required upstream artifact is absent when a step starts."""


@dataclass
class StepContext:
    """Everything a step may touch while executing within one run.

    `upstream` maps each planned step to the step whose artifact it consumes
    (after optional steps have been resolved away). `outputs` maps each
    completed step to the artifact it wrote.
    """

    store: RunStore
    run: Run
    request: RunRequest
    collaborators: Collaborators
    upstream: dict[str, str | None] = field(default_factory=dict)
    outputs: dict[str, str] = field(default_factory=dict)

    @property
    def project_id(self) -> str:
        return self.run.project

    def upstream_of(self, step: str) -> str:
        dep = self.upstream.get(step)
        if dep is None:
            raise DependencyError(f"Step '{step}' has no upstream step in this run")
        return dep

    async def load_output(self, step: str, model: type[ModelT]) -> ModelT:
        """Load the artifact `step` produced in this run as `model`.

        Raises:
            DependencyError: If the step did not complete or its artifact is gone.
        """
        name = self.outputs.get(step)
        if name is None:
            raise DependencyError(
                f"Required output of step '{step}' is not available in run {self.run.id}"
            )
        raw = await self.store.read_artifact(self.project_id, self.run.id, name)
        if raw is None:
            raise DependencyError(f"Artifact '{name}' is missing from run {self.run.id}")
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            raise DependencyError(f"Artifact '{name}' is unreadable: {exc}") from exc

    async def save_output(self, name: str, payload: str | bytes) -> str:
        await self.store.write_artifact(self.project_id, self.run.id, name, payload)
        return name


StepFn = Callable[[StepContext], Awaitable[str]]


@dataclass(frozen=True)
class StepDescriptor:
    """A pipeline step: its name, the step it depends on, and its body.

    `run` returns the name of the artifact it wrote.
    """

    name: StepName
    depends_on: StepName | None
    run: StepFn
    optional: bool = False
    description: str = ""


async def execute_step(descriptor: StepDescriptor, ctx: StepContext) -> StepResult:
    """Run one step inside the failure boundary and record its result.

    The StepResult is appended to the run before the body starts and moves
    pending -> running -> completed|failed exactly once.
    """
    result = ctx.run.new_step(descriptor.name)
    set_step_context(descriptor.name)
    result.start()
    logger.info("Step '%s' started", descriptor.name)
    start_ns = time.monotonic_ns()
    try:
        output_file = await descriptor.run(ctx)
    except Exception as exc:
        duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000
        message = str(exc) or type(exc).__name__
        result.fail(message, duration_ms)
        logger.error(
            "Step '%s' failed after %dms (%s): %s",
            descriptor.name, duration_ms, type(exc).__name__, message,
            extra={"duration_ms": duration_ms},
        )
        logger.debug("Step '%s' traceback", descriptor.name, exc_info=True)
    else:
        duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000
        result.complete(output_file, duration_ms)
        ctx.outputs[descriptor.name] = output_file
        logger.info(
            "Step '%s' completed in %dms -> %s", descriptor.name, duration_ms, output_file,
            extra={"duration_ms": duration_ms},
        )
    finally:
        set_step_context(None)
    return result
