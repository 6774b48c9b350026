# src/storage/layout.py — v1
"""On-disk layout of project data.

    {data_dir}/{project}/source/...            fetched IaC files
    {data_dir}/{project}/runs/{run_id}/         one directory per run
        meta.json                               run manifest
        01-parsed.json                          parse artifact
        02-enhanced.json                        enhance artifact
        03-layout.json                          layout artifact
        04-diagram.excalidraw                   generate artifact
"""

from __future__ import annotations

import re
from pathlib import Path

SOURCE_DIR = "source"
RUNS_DIR = "runs"
MANIFEST_FILE = "meta.json"

PARSED_ARTIFACT = "01-parsed.json"
ENHANCED_ARTIFACT = "02-enhanced.json"
LAYOUT_ARTIFACT = "03-layout.json"
DIAGRAM_ARTIFACT = "04-diagram.excalidraw"

SOURCE_EXTENSIONS = (".yml", ".yaml", ".json")

_SAFE_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def is_safe_name(name: str) -> bool:
    """True if `name` can be used as a single path component."""
    return bool(_SAFE_NAME_RE.match(name)) and name not in (".", "..")


def project_root(data_dir: Path, project: str) -> Path:
    return data_dir / project


def source_dir(data_dir: Path, project: str) -> Path:
    return project_root(data_dir, project) / SOURCE_DIR


def runs_dir(data_dir: Path, project: str) -> Path:
    return project_root(data_dir, project) / RUNS_DIR


def run_dir(data_dir: Path, project: str, run_id: str) -> Path:
    return runs_dir(data_dir, project) / run_id


def manifest_path(run_path: Path) -> Path:
    return run_path / MANIFEST_FILE


def artifact_path(run_path: Path, name: str) -> Path:
    return run_path / name
