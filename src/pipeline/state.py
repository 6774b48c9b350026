# src/pipeline/state.py — v1
"""Per-run request and per-invocation options.

`PipelineOptions` is what a caller asks for (target step, enhancement
mode, credential, override file). The orchestrator resolves it into one
`RunRequest` per run, with enhancement already decided and, for variant
fan-out, the pinned run id and override file bound in.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from iacdiagram.config.settings import EnhanceMode
from iacdiagram.core.models import ProjectEntry
from iacdiagram.pipeline.variants import Variant
from iacdiagram.storage.models import RunOptions, StepName

DEFAULT_LLM_MODEL = "claude-sonnet-4-20250514"


class PipelineOptions(BaseModel):
    """Caller-facing options for one orchestrator invocation."""

    target_step: StepName | None = None
    enhance_mode: EnhanceMode = "auto"
    credential: str | None = Field(default=None, repr=False)
    llm_model: str = DEFAULT_LLM_MODEL
    values_file: str | None = None
    max_parallel_variants: int = Field(default=1, ge=1)


class RunRequest(BaseModel):
    """Fully resolved configuration of a single run."""

    project: ProjectEntry
    target_step: StepName | None = None
    enhance: bool = False
    enhance_skip_reason: str | None = None
    credential: str | None = Field(default=None, repr=False, exclude=True)
    llm_model: str = DEFAULT_LLM_MODEL
    values_file: str | None = None
    run_id: str | None = None
    variant: Variant | None = None

    @property
    def effective_target(self) -> StepName:
        return self.target_step or "generate"

    def snapshot(self) -> RunOptions:
        """Options recorded in the run manifest (never the credential)."""
        return RunOptions(
            target_step=self.target_step,
            enhance=self.enhance,
            llm_model=self.llm_model if self.enhance else None,
            values_file=self.values_file,
        )
