# src/pipeline/registry.py — v1
"""Step registry — the ordered list of step descriptors.

The default chain is parse -> enhance? -> layout -> generate. Custom
registries (tests, embedders) can register their own descriptors; the
executor only ever walks `depends_on` links.
"""

from __future__ import annotations

import logging

from iacdiagram.pipeline.steps.base import StepDescriptor
from iacdiagram.pipeline.steps.enhance import run_enhance
from iacdiagram.pipeline.steps.generate import run_generate
from iacdiagram.pipeline.steps.layout import run_layout
from iacdiagram.pipeline.steps.parse import run_parse

logger = logging.getLogger(__name__)


class StepRegistryError(Exception):
    """Raised when a descriptor cannot be registered."""


DEFAULT_STEPS: tuple[StepDescriptor, ...] = (
    StepDescriptor("parse", None, run_parse, description="Parse IaC sources into a graph"),
    StepDescriptor(
        "enhance", "parse", run_enhance, optional=True,
        description="Annotate services with category, description and group",
    ),
    StepDescriptor("layout", "enhance", run_layout, description="Position nodes and route edges"),
    StepDescriptor("generate", "layout", run_generate, description="Render the Excalidraw diagram"),
)


class StepRegistry:
    """Registry of pipeline steps, in declaration order."""

    def __init__(self, descriptors: tuple[StepDescriptor, ...] | list[StepDescriptor] = ()) -> None:
        self._steps: dict[str, StepDescriptor] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    @classmethod
    def default(cls) -> StepRegistry:
        return cls(DEFAULT_STEPS)

    def register(self, descriptor: StepDescriptor) -> None:
        if descriptor.name in self._steps:
            raise StepRegistryError(f"Step '{descriptor.name}' is already registered")
        self._steps[descriptor.name] = descriptor
        logger.debug("Registered step: %s (depends on %s)", descriptor.name, descriptor.depends_on)

    def get(self, name: str) -> StepDescriptor | None:
        return self._steps.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._steps

    @property
    def step_names(self) -> list[str]:
        return list(self._steps)

    @property
    def optional_steps(self) -> list[str]:
        return [d.name for d in self._steps.values() if d.optional]
