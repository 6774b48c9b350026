# src/pipeline/collaborators.py — v1
"""Bundle of the external collaborators each step delegates to."""

from __future__ import annotations

from dataclasses import dataclass

from iacdiagram.config.settings import Settings
from iacdiagram.diagram.base_generator import BaseDiagramGenerator
from iacdiagram.layout.base_layout_engine import BaseLayoutEngine
from iacdiagram.llm.enhancer import BaseEnhancer
from iacdiagram.parsers.base_parser import BaseParser
from iacdiagram.storage.run_manager import RunStore


@dataclass
class Collaborators:
    parser: BaseParser
    enhancer: BaseEnhancer
    layout_engine: BaseLayoutEngine
    generator: BaseDiagramGenerator


def create_collaborators(store: RunStore, settings: Settings) -> Collaborators:
    """Default wiring: source parser, LLM enhancer, layered layout, Excalidraw."""
    from iacdiagram.diagram.generator import ExcalidrawGenerator
    from iacdiagram.layout.engine import LayeredLayoutEngine
    from iacdiagram.llm.enhancer import LLMEnhancer
    from iacdiagram.parsers.source_parser import SourceParser

    return Collaborators(
        parser=SourceParser(store),
        enhancer=LLMEnhancer(
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        ),
        layout_engine=LayeredLayoutEngine(),
        generator=ExcalidrawGenerator(),
    )
