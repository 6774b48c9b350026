# src/pipeline/steps/enhance.py — v1
"""enhance: annotate the parsed graph through the LLM enhancer."""

from __future__ import annotations

from iacdiagram.core.models import InfraGraph
from iacdiagram.pipeline.steps.base import StepContext
from iacdiagram.storage.layout import ENHANCED_ARTIFACT


async def run_enhance(ctx: StepContext) -> str:
    graph = await ctx.load_output(ctx.upstream_of("enhance"), InfraGraph)
    enhanced = await ctx.collaborators.enhancer.enhance(
        ctx.project_id,
        ctx.run.id,
        graph,
        ctx.request.credential,
        ctx.request.llm_model,
    )
    return await ctx.save_output(ENHANCED_ARTIFACT, enhanced.to_json())
