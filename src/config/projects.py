# src/config/projects.py — v1
"""Project registry: projects.json with {"projects": [{id, name, repo, files}]}."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from iacdiagram.config.settings import ConfigurationError
from iacdiagram.core.models import ProjectEntry

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Raised when a project is not found in the registry."""


class ProjectRegistry(BaseModel):
    projects: list[ProjectEntry] = Field(default_factory=list)

    def get(self, project_id: str) -> ProjectEntry | None:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None

    def get_or_raise(self, project_id: str) -> ProjectEntry:
        project = self.get(project_id)
        if project is None:
            raise RegistryError(f"Project '{project_id}' not found in registry")
        return project

    @property
    def project_ids(self) -> list[str]:
        return sorted(p.id for p in self.projects)


def load_registry(path: Path) -> ProjectRegistry:
    """Load the registry file. A missing file is an empty registry."""
    if not path.exists():
        logger.debug("No project registry at %s", path)
        return ProjectRegistry()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ProjectRegistry.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise ConfigurationError(f"Invalid project registry {path}: {exc}") from exc


def resolve_project(registry: ProjectRegistry, project_id: str) -> ProjectEntry:
    """Return the registered entry, or a bare entry for unregistered projects.

    Projects with fetched source data but no registry entry can still run.
    """
    project = registry.get(project_id)
    if project is not None:
        return project
    return ProjectEntry(id=project_id, name=project_id)
