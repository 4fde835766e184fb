"""Size, file count and recency for a detected project."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .config import AppConfig, SizeMode
from .ignore import default_sources, walk
from .vcs import GitInfo

logger = logging.getLogger(__name__)


@dataclass
class ProjectMetrics:
    size_bytes: int | None = None
    files_count: int | None = None
    last_edited_at: int | None = None


def compute_metrics(
    project_dir: str | Path,
    config: AppConfig,
    ignore_files: Iterable[Path] = (),
) -> ProjectMetrics:
    """Walk a project and total up its files.

    Uses the scan's ignore layering with the global ignore names pruned.
    size_bytes is only reported when the size policy asks for it. A file
    whose metadata cannot be read is still counted but adds no size or
    mtime. Symlinks are neither followed nor counted.
    """
    project_dir = Path(project_dir)
    sources = default_sources(project_dir, ignore_files, config.global_ignores)

    total_size = 0
    files_count = 0
    latest_mtime = 0

    for entry in walk(project_dir, sources):
        if entry.is_dir or entry.path.is_symlink():
            continue
        files_count += 1
        try:
            st = entry.path.stat()
        except OSError as e:
            logger.debug("Cannot stat %s: %s", entry.path, e)
            continue
        total_size += st.st_size
        latest_mtime = max(latest_mtime, int(st.st_mtime))

    return ProjectMetrics(
        size_bytes=total_size if config.size_mode is SizeMode.EXACT_CACHED else None,
        files_count=files_count,
        last_edited_at=latest_mtime if latest_mtime > 0 else None,
    )


def apply_git_recency(last_edited_at: int | None, git_info: GitInfo | None) -> int | None:
    """Prefer the last commit time when it is newer than the file mtimes."""
    if git_info is None or git_info.last_commit_at is None:
        return last_edited_at
    if last_edited_at is None or git_info.last_commit_at > last_edited_at:
        return git_info.last_commit_at
    return last_edited_at
