# src/pipeline/steps/generate.py — v1
"""generate: render the positioned graph as an Excalidraw document.

Needs both the layout and the graph the layout was computed from.
"""

from __future__ import annotations

from iacdiagram.core.models import InfraGraph, LayoutGraph
from iacdiagram.pipeline.steps.base import StepContext
from iacdiagram.storage.layout import DIAGRAM_ARTIFACT


async def run_generate(ctx: StepContext) -> str:
    layout_step = ctx.upstream_of("generate")
    layout = await ctx.load_output(layout_step, LayoutGraph)
    graph = await ctx.load_output(ctx.upstream_of(layout_step), InfraGraph)
    diagram = await ctx.collaborators.generator.generate(
        ctx.project_id, ctx.run.id, graph, layout
    )
    return await ctx.save_output(DIAGRAM_ARTIFACT, diagram.to_json())
