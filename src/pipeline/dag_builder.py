# src/pipeline/dag_builder.py — v1
"""Execution plan builder — resolve the chain of steps up to a target.

Walks `depends_on` links back from the target. A disabled optional step
is bypassed: its dependents consume its own upstream instead, so with
enhancement off `layout` reads `parse`'s output. The requested target is
always planned, even when it is an optional step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from iacdiagram.config.settings import ConfigurationError
from iacdiagram.pipeline.registry import StepRegistry
from iacdiagram.pipeline.steps.base import StepDescriptor

logger = logging.getLogger(__name__)


class DAGError(Exception):
    """Raised when plan construction fails (cycle, missing dependency)."""


@dataclass
class ExecutionPlan:
    """Ordered steps plus, per step, the step whose artifact it consumes."""

    steps: list[StepDescriptor] = field(default_factory=list)
    upstream: dict[str, str | None] = field(default_factory=dict)
    bypassed: list[str] = field(default_factory=list)

    @property
    def flat_order(self) -> list[str]:
        return [s.name for s in self.steps]

    @property
    def target(self) -> str | None:
        return self.steps[-1].name if self.steps else None


def build_plan(
    registry: StepRegistry,
    target: str,
    enabled_optional: set[str] | frozenset[str] = frozenset(),
) -> ExecutionPlan:
    """Build the plan that executes `target` and everything it needs.

    Raises:
        ConfigurationError: If `target` is not a registered step.
        DAGError: If a dependency is unregistered or the chain loops.
    """
    descriptor = registry.get(target)
    if descriptor is None:
        raise ConfigurationError(
            f"Unknown step '{target}'. Available: {', '.join(registry.step_names)}"
        )

    chain: list[StepDescriptor] = []
    bypassed: list[str] = []
    seen: set[str] = set()
    current: StepDescriptor | None = descriptor
    while current is not None:
        if current.name in seen:
            raise DAGError(f"Cycle detected at step '{current.name}'")
        seen.add(current.name)
        is_target = current.name == target
        if current.optional and not is_target and current.name not in enabled_optional:
            bypassed.append(current.name)
        else:
            chain.append(current)
        if current.depends_on is None:
            current = None
        else:
            dep = registry.get(current.depends_on)
            if dep is None:
                raise DAGError(
                    f"Step '{current.name}' depends on '{current.depends_on}' which is not registered"
                )
            current = dep

    chain.reverse()
    upstream: dict[str, str | None] = {}
    previous: str | None = None
    for step in chain:
        upstream[step.name] = previous
        previous = step.name

    plan = ExecutionPlan(steps=chain, upstream=upstream, bypassed=list(reversed(bypassed)))
    logger.debug("Plan for '%s': %s (bypassed %s)", target, plan.flat_order, plan.bypassed)
    return plan
