# src/llm/enhancer.py — v1
"""LLM enhancer: annotate parsed services with category, description, group."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

from iacdiagram.config.settings import ConfigurationError
from iacdiagram.core.models import InfraGraph
from iacdiagram.llm.base_client import BaseLLMClient
from iacdiagram.llm.client_factory import create_llm_client
from iacdiagram.llm.models import Message
from iacdiagram.llm.prompts import (
    SYSTEM_PROMPT,
    ResponseParseError,
    apply_enhancements,
    build_enhance_prompt,
    parse_enhancement,
)
from iacdiagram.llm.retry import with_retry
from iacdiagram.pipeline.steps.base import StepError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str], BaseLLMClient]


class BaseEnhancer(ABC):
    """Enhancer contract used by the enhance step."""

    @abstractmethod
    async def enhance(
        self,
        project: str,
        run_id: str,
        graph: InfraGraph,
        credential: str | None,
        model: str,
    ) -> InfraGraph:
        """Return an enhanced copy of `graph`."""


class LLMEnhancer(BaseEnhancer):
    """Enhancer backed by a chat-completion LLM."""

    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ) -> None:
        self._client_factory = client_factory or create_llm_client
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def enhance(
        self,
        project: str,
        run_id: str,
        graph: InfraGraph,
        credential: str | None,
        model: str,
    ) -> InfraGraph:
        if not credential:
            raise ConfigurationError(
                "No API key configured. Run `iacdiagram config set-key` or set ANTHROPIC_API_KEY."
            )
        if not graph.nodes:
            logger.info("Graph for %s has no services; nothing to enhance", project)
            return graph

        client = self._client_factory(model, credential)
        prompt = build_enhance_prompt(graph)
        response = await with_retry(
            client.complete,
            messages=[Message(role="user", content=prompt)],
            system=SYSTEM_PROMPT,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            operation=f"enhance {project}/{run_id}",
        )

        try:
            enhancement = parse_enhancement(response.content)
        except ResponseParseError as exc:
            raise StepError(f"LLM returned no usable enhancement: {exc}") from exc

        enhanced = apply_enhancements(graph, enhancement)
        annotated = sum(1 for n in enhanced.nodes if n.category or n.group)
        logger.info(
            "Enhanced %d/%d services with %s (%d tokens in, %d out)",
            annotated, len(enhanced.nodes), response.model,
            response.input_tokens, response.output_tokens,
        )
        return enhanced
