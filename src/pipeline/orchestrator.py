# src/pipeline/orchestrator.py — v1
"""Pipeline orchestrator — one run per request, fanned out per variant.

`execute_run` drives a single Run through pending -> running ->
completed|failed and always returns it; step failures never escape as
exceptions. `run` discovers Helm values variants and calls `execute_run`
once per variant (or once, when there are none). Fan-out is best-effort:
every variant is attempted and the aggregate fails if any run failed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

from iacdiagram.config.settings import EnhanceMode
from iacdiagram.core.models import ProjectEntry
from iacdiagram.logging.context import clear_context, set_run_context
from iacdiagram.pipeline.collaborators import Collaborators
from iacdiagram.pipeline.registry import StepRegistry
from iacdiagram.pipeline.runner import StepExecutor
from iacdiagram.pipeline.state import PipelineOptions, RunRequest
from iacdiagram.pipeline.variants import Variant, discover_variants
from iacdiagram.storage.base_output_writer import StorageError
from iacdiagram.storage.models import Run, SkippedStep, StepName, VariantRef
from iacdiagram.storage.run_manager import RunStore

logger = logging.getLogger(__name__)


@dataclass
class VariantOutcome:
    """Result of one run attempt within an orchestrator invocation."""

    variant: Variant | None
    run: Run | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.run is not None and self.run.status == "completed"

    @property
    def label(self) -> str:
        return self.variant.run_id if self.variant else (self.run.id if self.run else "run")


@dataclass
class OrchestrationResult:
    project: str
    outcomes: list[VariantOutcome] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return bool(self.outcomes) and all(o.success for o in self.outcomes)

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    @property
    def runs(self) -> list[Run]:
        return [o.run for o in self.outcomes if o.run is not None]


def resolve_enhancement(
    mode: EnhanceMode, credential: str | None, target: StepName | None
) -> tuple[bool, str | None]:
    """Decide whether `enhance` runs. Returns (enabled, skip_reason).

    Targeting `enhance` directly always attempts it; without a credential
    the step then fails with a configuration error.
    """
    if target == "enhance":
        return True, None
    if mode == "never":
        return False, "enhancement disabled"
    if mode == "always":
        return True, None
    if credential:
        return True, None
    return False, "no API key configured"


class PipelineOrchestrator:
    """Top-level orchestrator for IaC-to-diagram runs.

    Args:
        store: Run storage.
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
        self._executor = StepExecutor(store, collaborators, registry)

    @property
    def store(self) -> RunStore:
        return self._store

    def build_request(
        self,
        project: ProjectEntry,
        options: PipelineOptions,
        variant: Variant | None = None,
    ) -> RunRequest:
        enhance, reason = resolve_enhancement(
            options.enhance_mode, options.credential, options.target_step
        )
        return RunRequest(
            project=project,
            target_step=options.target_step,
            enhance=enhance,
            enhance_skip_reason=reason,
            credential=options.credential,
            llm_model=options.llm_model,
            values_file=variant.values_file if variant else options.values_file,
            run_id=variant.run_id if variant else None,
            variant=variant,
        )

    async def execute_run(self, request: RunRequest) -> Run:
        """Allocate and execute one run; always returns the final Run.

        Raises:
            ConfigurationError: Unknown target step or unsafe ids.
            StorageError: If the run directory or its pending manifest
                cannot be written.
        """
        plan = self._executor.plan_for(request.effective_target, request)
        project_id = request.project.id
        run_id = await self._store.allocate_run(project_id, request.run_id)

        run = Run(
            id=run_id,
            project=project_id,
            options=request.snapshot(),
            variant=(
                VariantRef(id=request.variant.run_id, values_file=request.variant.values_file)
                if request.variant else None
            ),
        )
        for name in plan.bypassed:
            run.skipped_steps.append(
                SkippedStep(step=name, reason=request.enhance_skip_reason or "disabled")
            )

        set_run_context(project_id, run_id, request.variant.run_id if request.variant else None)
        try:
            for skipped in run.skipped_steps:
                logger.info("Skipping '%s': %s", skipped.step, skipped.reason)
            # a pending manifest that cannot be written means the run never started
            await self._store.write_manifest(project_id, run_id, run)
            run.start()
            await self._executor.execute_plan(run, plan, request)
            run.finish()
            try:
                await self._store.write_manifest(project_id, run_id, run)
            except StorageError as exc:
                logger.error("Run %s/%s failed to persist: %s", project_id, run_id, exc)
                run.invalidate_last_step(f"Could not persist run manifest: {exc}")
                try:
                    await self._store.write_manifest(project_id, run_id, run)
                except StorageError as final_exc:
                    logger.error("Final manifest write failed: %s", final_exc)
        finally:
            if run.status == "completed":
                logger.info("Run %s completed (%d steps)", run_id, len(run.steps))
            elif run.status == "failed":
                failed = run.failed_step
                logger.error(
                    "Run %s failed%s", run_id,
                    f" at '{failed.step}': {failed.error}" if failed else "",
                )
            clear_context()
        return run

    async def run(self, project: ProjectEntry, options: PipelineOptions) -> OrchestrationResult:
        """Execute the pipeline for `project`, once per discovered variant."""
        start = time.monotonic()
        variants: list[Variant] = []
        if options.values_file is None:
            variants = discover_variants(await self._store.list_source_files(project.id))

        result = OrchestrationResult(project=project.id)
        if not variants:
            result.outcomes.append(await self._attempt(project, options, None))
        elif options.max_parallel_variants <= 1:
            for variant in variants:
                result.outcomes.append(await self._attempt(project, options, variant))
        else:
            semaphore = asyncio.Semaphore(options.max_parallel_variants)

            async def bounded(variant: Variant) -> VariantOutcome:
                async with semaphore:
                    return await self._attempt(project, options, variant)

            # gather preserves input order, so reporting stays deterministic
            result.outcomes.extend(await asyncio.gather(*(bounded(v) for v in variants)))

        result.duration_ms = int((time.monotonic() - start) * 1000)
        failed = [o.label for o in result.outcomes if not o.success]
        if len(result.outcomes) > 1:
            logger.info(
                "%d/%d variant runs succeeded%s",
                len(result.outcomes) - len(failed), len(result.outcomes),
                f"; failed: {failed}" if failed else "",
            )
        return result

    async def _attempt(
        self, project: ProjectEntry, options: PipelineOptions, variant: Variant | None
    ) -> VariantOutcome:
        """Run one variant; errors are recorded so siblings still execute."""
        try:
            run = await self.execute_run(self.build_request(project, options, variant))
        except Exception as exc:
            label = variant.run_id if variant else project.id
            logger.error("Run for %s could not start: %s", label, exc)
            return VariantOutcome(variant=variant, error=str(exc) or type(exc).__name__)
        return VariantOutcome(variant=variant, run=run)
