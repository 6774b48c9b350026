# src/pipeline/runner.py — v1
"""Step executor — walk an execution plan for one run.

Steps run strictly in plan order. The first failed StepResult halts the
chain (fail-fast); nothing downstream of it executes. The run manifest
is persisted after every step so that `inspect` sees progress while a
long step (enhancement) is still in flight.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from iacdiagram.pipeline.dag_builder import ExecutionPlan, build_plan
from iacdiagram.pipeline.registry import StepRegistry
from iacdiagram.pipeline.steps.base import StepContext, execute_step
from iacdiagram.storage.base_output_writer import StorageError
from iacdiagram.storage.models import Run, StepResult

if TYPE_CHECKING:
    from iacdiagram.pipeline.collaborators import Collaborators
    from iacdiagram.pipeline.state import RunRequest
    from iacdiagram.storage.run_manager import RunStore

logger = logging.getLogger(__name__)


class StepExecutor:
    """Execute the dependency chain of a target step within one run.

    Args:
        store: Run storage (artifacts and manifests).
        collaborators: Parser, enhancer, layout engine, generator.
        registry: Step descriptors; the default chain when omitted.
    """

    def __init__(
        self,
        store: RunStore,
        collaborators: Collaborators,
        registry: StepRegistry | None = None,
    ) -> None:
        self._store = store
        self._collaborators = collaborators
        self._registry = registry or StepRegistry.default()

    @property
    def registry(self) -> StepRegistry:
        return self._registry

    def plan_for(self, target: str, request: RunRequest) -> ExecutionPlan:
        enabled = {"enhance"} if request.enhance else set()
        return build_plan(self._registry, target, enabled)

    async def execute_up_to(self, run: Run, target: str, request: RunRequest) -> StepResult:
        """Run every step up to and including `target`.

        Returns:
            The target's StepResult, or the failed step's result when the
            chain halted early.
        """
        return await self.execute_plan(run, self.plan_for(target, request), request)

    async def execute_plan(self, run: Run, plan: ExecutionPlan, request: RunRequest) -> StepResult:
        """Execute `plan` against a running `run`.

        A manifest that cannot be persisted after a step fails that step,
        which halts the chain like any other step failure.
        """
        if not plan.steps:
            raise ValueError("Execution plan is empty")

        ctx = StepContext(
            store=self._store,
            run=run,
            request=request,
            collaborators=self._collaborators,
            upstream=dict(plan.upstream),
        )
        logger.info("Executing %s", " -> ".join(plan.flat_order))

        result: StepResult | None = None
        for descriptor in plan.steps:
            result = await execute_step(descriptor, ctx)
            try:
                await self._store.write_manifest(run.project, run.id, run)
            except StorageError as exc:
                logger.error("Could not persist manifest after '%s': %s", descriptor.name, exc)
                if result.status == "completed":
                    result.invalidate(f"Could not persist run manifest: {exc}")
                    ctx.outputs.pop(descriptor.name, None)
            if result.status == "failed":
                remaining = plan.flat_order[plan.flat_order.index(descriptor.name) + 1:]
                if remaining:
                    logger.warning("Halting run after '%s' failure; not executed: %s",
                                   descriptor.name, remaining)
                break
        assert result is not None
        return result
