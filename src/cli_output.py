# src/cli_output.py — v1
"""Console formatting for run, step and graph summaries."""

from __future__ import annotations

from collections import Counter

from iacdiagram.core.models import InfraGraph
from iacdiagram.storage.models import Run, StepResult

GREEN = "\x1b[32m"
RED = "\x1b[31m"
YELLOW = "\x1b[33m"
GREY = "\x1b[90m"
RESET = "\x1b[0m"

_STATUS_COLORS = {"completed": GREEN, "failed": RED, "running": YELLOW}


def _color(text: str, color: str, enabled: bool) -> str:
    return f"{color}{text}{RESET}" if enabled else text


def format_duration(ms: int | None) -> str:
    """127 -> "127ms", 1500 -> "1.5s", 90000 -> "1.5m"."""
    if ms is None:
        return ""
    if ms < 1000:
        return f"{ms}ms"
    if ms < 60_000:
        return f"{ms / 1000:.1f}s"
    return f"{ms / 60_000:.1f}m"


def format_status(status: str, color: bool = True) -> str:
    return _color(status, _STATUS_COLORS.get(status, YELLOW), color)


def format_step_result(step: StepResult, color: bool = True) -> str:
    if step.status == "completed":
        icon = _color("✓", GREEN, color)
    elif step.status == "failed":
        icon = _color("✗", RED, color)
    elif step.status == "running":
        icon = _color("⋯", YELLOW, color)
    else:
        icon = "○"
    duration = f" ({format_duration(step.duration)})" if step.duration is not None else ""
    output = f" -> {step.output_file}" if step.output_file else ""
    line = f"  {icon} {step.step}{duration}{output}"
    if step.error:
        line += f"\n    Error: {step.error}"
    return line


def format_run_summary(run: Run, color: bool = True) -> str:
    lines = [
        f"Run: {run.id}",
        f"Project: {run.project}",
    ]
    if run.variant is not None:
        lines.append(f"Variant: {run.variant.id} ({run.variant.values_file})")
    lines.append(f"Status: {format_status(run.status, color)}")
    lines.append(f"Started: {run.started_at.isoformat()}")
    if run.completed_at is not None:
        lines.append(f"Completed: {run.completed_at.isoformat()}")
    lines.append("")
    lines.append("Steps:")
    lines.extend(format_step_result(s, color) for s in run.steps)
    for skipped in run.skipped_steps:
        lines.append(f"  {_color('-', GREY, color)} {skipped.step} (skipped: {skipped.reason})")
    return "\n".join(lines)


def format_graph_summary(graph: InfraGraph) -> str:
    lines = [f"Nodes: {len(graph.nodes)}", f"Edges: {len(graph.edges)}", "", "Node types:"]
    for node_type, count in Counter(n.type for n in graph.nodes).items():
        lines.append(f"  {node_type}: {count}")
    lines.append("")
    lines.append("Services:")
    outgoing = Counter(e.from_ for e in graph.edges)
    for node in graph.nodes:
        deps = outgoing.get(node.id, 0)
        suffix = f" ({deps} dependencies)" if deps else ""
        group = f" {{{node.group}}}" if node.group else ""
        lines.append(f"  - {node.name} [{node.type}]{group}{suffix}")
    return "\n".join(lines)
