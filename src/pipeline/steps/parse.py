# src/pipeline/steps/parse.py — v1
"""parse: read the project's IaC sources into an InfraGraph."""

from __future__ import annotations

import logging

from iacdiagram.pipeline.steps.base import StepContext
from iacdiagram.storage.layout import PARSED_ARTIFACT

logger = logging.getLogger(__name__)


async def run_parse(ctx: StepContext) -> str:
    graph = await ctx.collaborators.parser.parse(
        ctx.request.project, values_file=ctx.request.values_file
    )
    ctx.run.source_files = list(graph.metadata.source_files)
    logger.info("Parsed %d services, %d dependencies", len(graph.nodes), len(graph.edges))
    return await ctx.save_output(PARSED_ARTIFACT, graph.to_json())
