# src/storage/run_manager.py — v1
"""Run identity and storage: allocate run ids, persist artifacts and manifests.

All reads and writes go through a BaseOutputWriter rooted at the data
directory. Absence of an artifact or manifest is reported as None; I/O
failures surface as StorageError.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from iacdiagram.config.settings import ConfigurationError
from iacdiagram.storage import layout
from iacdiagram.storage.base_output_writer import BaseOutputWriter, StorageError
from iacdiagram.storage.local_writer import LocalWriter
from iacdiagram.storage.models import Run

logger = logging.getLogger(__name__)

MAX_ALLOCATION_ATTEMPTS = 100


def generate_run_id(timestamp: datetime | None = None) -> str:
    """Generate a run_id: yyyymmdd-hhmmss-ffffff-{uuid4_short}.

    Microsecond resolution plus random hex keeps two ids allocated within the
    same millisecond distinct; the timestamp prefix keeps ids sortable.
    """
    ts = timestamp or datetime.now(timezone.utc)
    short_uuid = uuid.uuid4().hex[:6]
    return f"{ts.strftime('%Y%m%d-%H%M%S')}-{ts.microsecond:06d}-{short_uuid}"


class RunStore:
    """Per-project run directories, artifacts and manifests.

    Args:
        data_dir: Root directory holding one sub-directory per project.
        writer: Storage backend. Defaults to a LocalWriter.
    """

    def __init__(self, data_dir: Path, writer: BaseOutputWriter | None = None) -> None:
        self._data_dir = Path(data_dir)
        self._writer = writer or LocalWriter()
        # (project, run_id) pairs handed out by this process
        self._allocated: set[tuple[str, str]] = set()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def run_path(self, project: str, run_id: str) -> Path:
        return layout.run_dir(self._data_dir, project, run_id)

    def source_path(self, project: str) -> Path:
        return layout.source_dir(self._data_dir, project)

    @staticmethod
    def require_safe(kind: str, name: str) -> None:
        """Raise ConfigurationError unless `name` is a single path component."""
        if not layout.is_safe_name(name):
            raise ConfigurationError(f"{kind} id is not filesystem-safe: {name!r}")

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    async def allocate_run(self, project: str, requested_id: str | None = None) -> str:
        """Allocate a fresh run id and create its directory.

        Args:
            project: Project identifier.
            requested_id: Caller-pinned id (variant fan-out). Used as-is when
                free; otherwise suffixed with -2, -3, ... until unused.

        Returns:
            The allocated run id.

        Raises:
            ConfigurationError: If the requested id is not filesystem-safe.
            StorageError: If the run directory cannot be created.
        """
        self.require_safe("Project", project)
        if requested_id is not None:
            self.require_safe("Run", requested_id)

        for attempt in range(MAX_ALLOCATION_ATTEMPTS):
            if requested_id is None:
                candidate = generate_run_id()
            elif attempt == 0:
                candidate = requested_id
            else:
                candidate = f"{requested_id}-{attempt + 1}"

            if (project, candidate) in self._allocated:
                continue
            # Reserve before the first await so concurrent allocations skip it
            self._allocated.add((project, candidate))
            if await self._writer.exists(str(self.run_path(project, candidate))):
                continue

            await self._writer.ensure_dir(str(self.run_path(project, candidate)))
            if requested_id is not None and candidate != requested_id:
                logger.warning(
                    "Run id '%s' already in use for %s, allocated '%s'",
                    requested_id, project, candidate,
                )
            logger.debug("Allocated run %s/%s", project, candidate)
            return candidate

        raise StorageError(
            f"Could not allocate a unique run id for {project} "
            f"after {MAX_ALLOCATION_ATTEMPTS} attempts"
        )

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    async def write_artifact(
        self, project: str, run_id: str, name: str, payload: bytes | str
    ) -> None:
        if not layout.is_safe_name(name):
            raise StorageError(f"Artifact name is not filesystem-safe: {name!r}")
        path = layout.artifact_path(self.run_path(project, run_id), name)
        await self._writer.write(str(path), payload)
        logger.debug("Wrote artifact %s", path)

    async def read_artifact(self, project: str, run_id: str, name: str) -> bytes | None:
        path = layout.artifact_path(self.run_path(project, run_id), name)
        try:
            return await self._writer.read(str(path))
        except FileNotFoundError:
            return None

    # ------------------------------------------------------------------
    # Manifests
    # ------------------------------------------------------------------

    async def write_manifest(self, project: str, run_id: str, run: Run) -> None:
        path = layout.manifest_path(self.run_path(project, run_id))
        await self._writer.write(str(path), run.model_dump_json(indent=2))

    async def read_manifest(self, project: str, run_id: str) -> Run | None:
        """Load a run manifest; None when the run has none.

        Raises:
            ConfigurationError: If either id is not filesystem-safe.
            StorageError: If the manifest is unreadable or corrupt.
        """
        self.require_safe("Project", project)
        self.require_safe("Run", run_id)
        path = layout.manifest_path(self.run_path(project, run_id))
        try:
            raw = await self._writer.read(str(path))
        except FileNotFoundError:
            return None
        try:
            return Run.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise StorageError(f"Corrupt run manifest {path}: {exc}") from exc

    async def list_runs(self, project: str) -> list[Run]:
        """Return all readable runs, most recent first.

        Ordered by started_at descending, ties broken by id descending.
        Directories without a manifest are ignored; a corrupt manifest is
        logged and skipped so one bad run does not hide the others.
        """
        self.require_safe("Project", project)
        runs: list[Run] = []
        for run_id in await self._writer.list_dir(
            str(layout.runs_dir(self._data_dir, project))
        ):
            if not layout.is_safe_name(run_id):
                logger.warning("Skipping run directory with unsafe name: %s/%s", project, run_id)
                continue
            try:
                run = await self.read_manifest(project, run_id)
            except StorageError as exc:
                logger.warning("Skipping run %s/%s: %s", project, run_id, exc)
                continue
            if run is not None:
                runs.append(run)
        runs.sort(key=lambda r: (r.started_at, r.id), reverse=True)
        return runs

    # ------------------------------------------------------------------
    # Source files
    # ------------------------------------------------------------------

    async def list_source_files(self, project: str) -> list[str]:
        """Relative POSIX paths of the project's fetched IaC files."""
        files = await self._writer.list_files(str(self.source_path(project)))
        return [f for f in files if f.lower().endswith(layout.SOURCE_EXTENSIONS)]

    async def read_source_file(self, project: str, relative_path: str) -> str:
        path = self.source_path(project) / relative_path
        try:
            return (await self._writer.read(str(path))).decode("utf-8")
        except FileNotFoundError as exc:
            raise StorageError(f"Source file not found: {relative_path}") from exc
        except UnicodeDecodeError as exc:
            raise StorageError(f"Source file is not UTF-8: {relative_path}") from exc

    async def write_source_file(self, project: str, relative_path: str, content: str) -> None:
        path = self.source_path(project) / relative_path
        await self._writer.write(str(path), content)

    async def list_projects(self) -> list[str]:
        """Project directories present under the data directory."""
        projects: list[str] = []
        for entry in await self._writer.list_dir(str(self._data_dir)):
            if not layout.is_safe_name(entry):
                continue
            if await self._writer.exists(
                str(layout.source_dir(self._data_dir, entry))
            ) or await self._writer.exists(str(layout.runs_dir(self._data_dir, entry))):
                projects.append(entry)
        return projects
