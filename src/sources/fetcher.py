# src/sources/fetcher.py — v1
"""Fetch IaC files into a project's source directory.

Two sources are supported:
  - a GitHub repository, read file by file from raw.githubusercontent.com
    trying the HEAD, main and master refs in turn;
  - a local Helm chart directory (Chart.yaml plus values*.yaml).
"""

from __future__ import annotations

import asyncio
import logging
import re
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from iacdiagram.core.models import ProjectEntry, SourceFileDescriptor
from iacdiagram.storage.run_manager import RunStore

logger = logging.getLogger(__name__)

RAW_BASE_URL = "https://raw.githubusercontent.com"
BRANCH_FALLBACKS = ("HEAD", "main", "master")
DEFAULT_COMPOSE_FILE = "docker-compose.yml"
_GITHUB_RE = re.compile(r"github\.com[/:](?P<owner>[^/]+)/(?P<repo>[^/#?]+?)(?:\.git)?/?$")
_FETCH_TIMEOUT_S = 30


class FetchError(Exception):
    """Raised when a source cannot be fetched."""


@dataclass
class FetchReport:
    saved: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return bool(self.saved) and not self.failed


def raw_urls(repo: str, path: str) -> list[str]:
    """Candidate raw-content URLs for `path` in a GitHub repository URL.

    Raises:
        FetchError: If `repo` is not a GitHub repository URL.
    """
    match = _GITHUB_RE.search(repo.strip())
    if not match:
        raise FetchError(f"Invalid GitHub repo URL: {repo}")
    owner, name = match.group("owner"), match.group("repo")
    clean = path.lstrip("/")
    return [f"{RAW_BASE_URL}/{owner}/{name}/{ref}/{clean}" for ref in BRANCH_FALLBACKS]


def _http_get(url: str) -> str:
    req = urllib.request.Request(url, headers={"User-Agent": "iacdiagram"})
    with urllib.request.urlopen(req, timeout=_FETCH_TIMEOUT_S) as resp:
        return resp.read().decode("utf-8")


def files_to_fetch(project: ProjectEntry, file: str | None = None) -> list[SourceFileDescriptor]:
    if file:
        fmt = "docker-compose" if "compose" in PurePosixPath(file).name.lower() else "unknown"
        return [SourceFileDescriptor(path=file, format=fmt)]
    if project.files:
        return list(project.files)
    return [SourceFileDescriptor(path=DEFAULT_COMPOSE_FILE, format="docker-compose")]


class SourceFetcher:
    """Copy remote or local IaC files into a RunStore's source directory."""

    def __init__(self, store: RunStore, http_get=None) -> None:
        self._store = store
        self._http_get = http_get or _http_get

    async def fetch_file(self, repo: str, path: str) -> str:
        last_error: Exception | None = None
        for url in raw_urls(repo, path):
            try:
                return await asyncio.to_thread(self._http_get, url)
            except (urllib.error.URLError, OSError, UnicodeDecodeError) as exc:
                logger.debug("GET %s failed: %s", url, exc)
                last_error = exc
        raise FetchError(f"Failed to fetch {path} from {repo}: {last_error}")

    async def fetch_github(
        self, project: ProjectEntry, repo: str | None = None, file: str | None = None
    ) -> FetchReport:
        """Fetch the project's declared files (or `file`) from GitHub.

        Each file is stored under its basename. Failures are recorded per
        file; the remaining files are still fetched.
        """
        repo_url = repo or project.repo
        if not repo_url:
            raise FetchError(
                f"Project '{project.id}' has no repository; pass --repo"
            )
        report = FetchReport()
        for descriptor in files_to_fetch(project, file):
            name = PurePosixPath(descriptor.path).name
            try:
                content = await self.fetch_file(repo_url, descriptor.path)
            except FetchError as exc:
                logger.error("%s", exc)
                report.failed[descriptor.path] = str(exc)
                continue
            await self._store.write_source_file(project.id, name, content)
            logger.info("Saved %s", name)
            report.saved.append(name)
        return report

    async def fetch_helm_path(self, project: ProjectEntry, chart_path: Path) -> FetchReport:
        """Copy Chart.yaml and every values*.yaml from a local chart directory.

        Raises:
            FetchError: If Chart.yaml or values.yaml is missing.
        """
        chart_dir = chart_path.expanduser()
        chart_file = next(
            (p for p in sorted(chart_dir.glob("*")) if p.name.lower() == "chart.yaml"), None
        )
        if chart_file is None:
            raise FetchError(f"Chart.yaml not found in {chart_dir}")
        values = sorted(
            p for p in chart_dir.glob("values*.y*ml") if p.suffix.lower() in (".yaml", ".yml")
        )
        if not any(p.stem.lower() == "values" for p in values):
            raise FetchError(f"values.yaml not found in {chart_dir}")

        report = FetchReport()
        for source in [chart_file, *values]:
            content = await asyncio.to_thread(source.read_text, encoding="utf-8")
            await self._store.write_source_file(project.id, source.name, content)
            logger.info("Saved %s", source.name)
            report.saved.append(source.name)
        return report
