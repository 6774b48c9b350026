# src/pipeline/steps/layout.py — v1
"""layout: position the (enhanced or parsed) graph."""

from __future__ import annotations

from iacdiagram.core.models import InfraGraph
from iacdiagram.pipeline.steps.base import StepContext
from iacdiagram.storage.layout import LAYOUT_ARTIFACT


async def run_layout(ctx: StepContext) -> str:
    graph = await ctx.load_output(ctx.upstream_of("layout"), InfraGraph)
    layout = await ctx.collaborators.layout_engine.layout(ctx.project_id, ctx.run.id, graph)
    return await ctx.save_output(LAYOUT_ARTIFACT, layout.to_json())
