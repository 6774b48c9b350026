# src/pipeline/variants.py — v1
"""Variant discovery: one run per Helm values override file.

When a project's source tree contains a Helm chart with several
`values-<suffix>.yaml` files beside it, a single invocation fans out into
one independent run per override file.

Algorithm:
  1. Anchor on the shallowest directory containing `Chart.yaml`
     (case-insensitive, any depth). No chart means no variants.
  2. Collect `values-<suffix>.yaml|yml` files (case-insensitive) directly
     in the anchor directory.
  3. Derive the run id from `<suffix>`: strip whitespace, replace every
     character outside [A-Za-z0-9._-] with '-'. Suffixes that are empty
     or reduce to "." or ".." are dropped with a warning.
  4. Sort by run id (ties by file path). Duplicate ids are kept.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import PurePosixPath

logger = logging.getLogger(__name__)

CHART_MARKER = "chart.yaml"

_VALUES_FILE_RE = re.compile(r"^values-(?P<suffix>.*)\.ya?ml$", re.IGNORECASE | re.DOTALL)
_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(frozen=True)
class Variant:
    """An independent run request bound to one override file."""

    run_id: str
    values_file: str  # relative to the project source directory
    anchor_dir: str  # "" for the source root


def normalize_variant_id(suffix: str) -> str | None:
    """Derive a filesystem-safe run id from a values-file suffix.

    >>> normalize_variant_id("My Env!")
    'My-Env-'
    """
    trimmed = suffix.strip()
    if not trimmed:
        return None
    run_id = _UNSAFE_CHARS_RE.sub("-", trimmed)
    if run_id in (".", ".."):
        return None
    return run_id


def _depth(path: PurePosixPath) -> int:
    return len(path.parts)


def find_chart_anchor(files: Iterable[str]) -> str | None:
    """Return the shallowest directory holding a Chart.yaml, or None.

    Among equally shallow charts the lexicographically smallest path wins.
    """
    charts = [
        PurePosixPath(f) for f in files if PurePosixPath(f).name.lower() == CHART_MARKER
    ]
    if not charts:
        return None
    shallowest = min(charts, key=lambda p: (_depth(p), p.as_posix()))
    parent = shallowest.parent.as_posix()
    return "" if parent == "." else parent


def discover_variants(files: Iterable[str]) -> list[Variant]:
    """Inspect a source file listing and return the ordered variant list."""
    file_list = list(files)
    anchor = find_chart_anchor(file_list)
    if anchor is None:
        return []

    variants: list[Variant] = []
    for f in file_list:
        path = PurePosixPath(f)
        parent = path.parent.as_posix()
        if ("" if parent == "." else parent) != anchor:
            continue
        match = _VALUES_FILE_RE.match(path.name)
        if not match:
            continue
        run_id = normalize_variant_id(match.group("suffix"))
        if run_id is None:
            logger.warning("Ignoring values file without a usable variant id: %s", f)
            continue
        variants.append(Variant(run_id=run_id, values_file=path.as_posix(), anchor_dir=anchor))

    variants.sort(key=lambda v: (v.run_id, v.values_file))

    seen: set[str] = set()
    for v in variants:
        if v.run_id in seen:
            logger.warning(
                "Variant id '%s' is shared by several values files; each runs independently",
                v.run_id,
            )
        seen.add(v.run_id)

    if variants:
        logger.info(
            "Discovered %d variants in '%s': %s",
            len(variants), anchor or ".", [v.run_id for v in variants],
        )
    return variants
