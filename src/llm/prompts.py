# src/llm/prompts.py — v1
"""Enhancement prompt, response models and graph merge.

The prompt template lives in templates/enhance.txt; `{services}` and
`{dependencies}` are filled from the parsed graph.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from iacdiagram.core.models import InfraGraph, ServiceCategory, ServiceNode

logger = logging.getLogger(__name__)

_PROMPT_PATH = Path(__file__).parent / "templates" / "enhance.txt"
_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_MAX_ENV_KEYS = 10

SYSTEM_PROMPT = "You are an infrastructure architecture expert. Respond only with valid JSON."


class ServiceEnhancement(BaseModel):
    id: str
    category: ServiceCategory | None = None
    description: str | None = None
    group: str | None = None


class GroupDescription(BaseModel):
    name: str
    description: str = ""


class EnhancementResponse(BaseModel):
    """What the model is asked to return."""

    services: list[ServiceEnhancement] = Field(default_factory=list)
    groups: list[GroupDescription] = Field(default_factory=list)


class ResponseParseError(ValueError):
    """The LLM reply held no usable enhancement JSON."""


def _format_service(node: ServiceNode) -> str:
    lines = [f"### {node.name} (id: {node.id})"]
    if node.image:
        lines.append(f"- Image: {node.image}")
    lines.append(f"- Type: {node.type}")
    if node.ports:
        ports = ", ".join(
            f"{p.external if p.external is not None else '?'}:{p.internal}" for p in node.ports
        )
        lines.append(f"- Ports: {ports}")
    if node.environment_keys:
        keys = ", ".join(node.environment_keys[:_MAX_ENV_KEYS])
        more = "..." if len(node.environment_keys) > _MAX_ENV_KEYS else ""
        lines.append(f"- Environment: {keys}{more}")
    return "\n".join(lines)


def build_enhance_prompt(graph: InfraGraph) -> str:
    """Render the enhancement prompt for `graph`."""
    services = "\n\n".join(_format_service(n) for n in graph.nodes)
    dependencies = "\n".join(f"- {e.from_} -> {e.to} ({e.type})" for e in graph.edges)
    template = _PROMPT_PATH.read_text(encoding="utf-8")
    return template.format(
        services=services,
        dependencies=dependencies or "No explicit dependencies defined",
    )


def _balanced_object(text: str) -> str | None:
    """Return the first balanced {...} span, honouring JSON strings."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def extract_json(content: str) -> Any:
    """Parse JSON out of an LLM reply, tolerating code fences and chatter.

    Raises:
        ResponseParseError: If no JSON object can be recovered.
    """
    match = _FENCE_RE.search(content)
    candidate = (match.group(1) if match else content).strip()
    if not candidate:
        raise ResponseParseError("Empty response from LLM")
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass
    span = _balanced_object(content)
    if span is not None:
        try:
            return json.loads(span)
        except json.JSONDecodeError as exc:
            raise ResponseParseError(f"Failed to parse JSON from LLM response: {exc}") from exc
    raise ResponseParseError(f"Failed to parse JSON from LLM response: {content[:200]}")


def parse_enhancement(content: str) -> EnhancementResponse:
    data = extract_json(content)
    try:
        return EnhancementResponse.model_validate(data)
    except ValidationError as exc:
        raise ResponseParseError(f"Unexpected enhancement structure: {exc}") from exc


def apply_enhancements(graph: InfraGraph, response: EnhancementResponse) -> InfraGraph:
    """Return a copy of `graph` with category/description/group filled in.

    Entries for unknown service ids are ignored; nodes without an entry
    are left unchanged.
    """
    by_id = {s.id: s for s in response.services}
    unknown = set(by_id) - set(graph.node_ids())
    if unknown:
        logger.warning("Ignoring enhancements for unknown services: %s", sorted(unknown))

    nodes = []
    for node in graph.nodes:
        enhancement = by_id.get(node.id)
        if enhancement is None:
            nodes.append(node)
            continue
        nodes.append(node.model_copy(update={
            "category": enhancement.category,
            "description": enhancement.description,
            "group": enhancement.group,
        }))
    return graph.model_copy(update={"nodes": nodes})
