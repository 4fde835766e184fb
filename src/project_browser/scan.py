"""Scan configured roots into the catalog.

For each root: walk, detect project directories, measure them and upsert
the results. Once a directory is detected as a project its subtree is
claimed, so vendored or nested sub-projects are not registered on their own.
Claims are scoped to a single root.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .analyzers import LineCounter, LocBreakdown, NullLineCounter
from .config import AppConfig, ConfigStore
from .db import Catalog
from .detect import ProjectType, detect_project_type, is_git_repo
from .ignore import default_sources, walk
from .metrics import ProjectMetrics, apply_git_recency, compute_metrics
from .vcs import GitInfo, NullVcsReader, VcsReader

logger = logging.getLogger(__name__)


@dataclass
class ScanOptions:
    dry_run: bool = False


@dataclass
class DetectedProject:
    """Everything gathered for one project before it is written."""

    name: str
    path: Path
    project_type: ProjectType
    is_git_repo: bool
    metrics: ProjectMetrics
    git_info: GitInfo
    loc: LocBreakdown | None


class Scanner:
    """Runs the walk/detect/measure/upsert pipeline over the configured roots."""

    def __init__(
        self,
        catalog: Catalog | None,
        config: AppConfig,
        line_counter: LineCounter | None = None,
        vcs_reader: VcsReader | None = None,
        ignore_files: list[Path] | None = None,
    ):
        self.catalog = catalog
        self.config = config
        self.line_counter = line_counter or NullLineCounter()
        self.vcs_reader = vcs_reader or NullVcsReader()
        self.ignore_files = ConfigStore.ignore_files() if ignore_files is None else ignore_files

    def scan(self, options: ScanOptions | None = None) -> int:
        """Scan every root and return the number of projects detected."""
        options = options or ScanOptions()
        if not options.dry_run and self.catalog is None:
            raise ValueError("A catalog is required unless dry_run is set")

        found = 0
        for root in self.config.roots:
            root = Path(os.path.abspath(Path(root).expanduser()))
            if not root.is_dir():
                logger.warning("Root %s does not exist; skipping", root)
                continue
            found += self.scan_root(root, options)
        return found

    def scan_root(self, root: Path, options: ScanOptions) -> int:
        claimed: list[Path] = []
        global_ignores = set(self.config.global_ignores)
        count = 0

        def is_claimed(path: Path) -> bool:
            return any(path.is_relative_to(c) for c in claimed)

        # Global names prune descent; the name check below also covers the root
        sources = default_sources(root, self.ignore_files, global_ignores)
        for entry in walk(root, sources, prune=is_claimed):
            if not entry.is_dir:
                continue
            path = entry.path
            if is_claimed(path):
                continue
            if path.name in global_ignores:
                continue

            project = self.inspect(path)
            if project is None:
                continue

            claimed.append(path)
            count += 1
            if options.dry_run:
                self._log_dry_run(project)
            else:
                self._store(project)

        logger.info("Scanned %s: %d project(s)", root, count)
        return count

    def inspect(self, path: Path) -> DetectedProject | None:
        """Detect and measure one directory. None when it is not a project."""
        try:
            project_type = detect_project_type(path)
        except OSError as e:
            logger.warning("Detection failed for %s: %s", path, e)
            return None
        if project_type is None:
            return None

        try:
            metrics = compute_metrics(path, self.config, self.ignore_files)
        except OSError as e:
            logger.warning("Metrics failed for %s: %s", path, e)
            metrics = ProjectMetrics()

        git_info = self.vcs_reader.read(path)
        metrics.last_edited_at = apply_git_recency(metrics.last_edited_at, git_info)

        try:
            loc = self.line_counter.count(path)
        except OSError as e:
            logger.warning("Line count failed for %s: %s", path, e)
            loc = None

        return DetectedProject(
            name=path.name,
            path=path,
            project_type=project_type,
            is_git_repo=is_git_repo(path),
            metrics=metrics,
            git_info=git_info,
            loc=loc,
        )

    def _store(self, project: DetectedProject) -> None:
        m = project.metrics
        project_id = self.catalog.upsert_project(
            project.name, str(project.path), project.project_type.value, project.is_git_repo
        )
        self.catalog.upsert_metrics(
            project_id,
            m.size_bytes,
            m.files_count,
            m.last_edited_at,
            project.loc.total if project.loc is not None else None,
        )
        if not project.git_info.is_empty():
            g = project.git_info
            self.catalog.upsert_git_info(project_id, g.last_commit_at, g.branch, g.remote_url)
        # A missing breakdown clears the stored one
        self.catalog.replace_loc_breakdown(project_id, project.loc.languages if project.loc is not None else [])
        logger.debug("Stored %s (%s) as id %d", project.path, project.project_type.value, project_id)

    def _log_dry_run(self, project: DetectedProject) -> None:
        m = project.metrics
        logger.info(
            "found project %s",
            project.path,
            extra={
                "project_name": project.name,
                "project_path": str(project.path),
                "project_type": project.project_type.value,
                "git": project.is_git_repo,
                "size": m.size_bytes,
                "files": m.files_count,
                "last_edited": m.last_edited_at,
            },
        )


def scan_roots(
    catalog: Catalog | None,
    config: AppConfig,
    options: ScanOptions | None = None,
    line_counter: LineCounter | None = None,
    vcs_reader: VcsReader | None = None,
    ignore_files: list[Path] | None = None,
) -> int:
    scanner = Scanner(catalog, config, line_counter, vcs_reader, ignore_files)
    return scanner.scan(options)
