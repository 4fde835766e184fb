"""Command surface shared by the CLI and any other front end.

Each call opens the catalog, does its work and closes it again.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable

from .analyzers import ExtensionLineCounter, LineCounter, NullLineCounter
from .config import AppConfig, ConfigStore
from .db import Catalog, ProjectRecord, SortKey
from .scan import ScanOptions, Scanner
from .vcs import GitReader, NullVcsReader, VcsReader

DEFAULT_LIST_LIMIT = 100
DEFAULT_PAGE_SIZE = 500


@dataclass
class ProjectsPage:
    items: list[ProjectRecord] = field(default_factory=list)
    page: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    total_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [r.to_dict() for r in self.items],
            "page": self.page,
            "page_size": self.page_size,
            "total_count": self.total_count,
        }


def _open(catalog_path: str | Path | None) -> Catalog:
    if catalog_path is None:
        return Catalog.open_default()
    return Catalog.open(catalog_path)


def build_collaborators(
    config: AppConfig,
    ignore_files: list[Path],
    with_loc: bool = False,
    with_git: bool = False,
) -> tuple[LineCounter, VcsReader]:
    """Pick the optional line counter and VCS reader for a scan."""
    line_counter: LineCounter = (
        ExtensionLineCounter(config.global_ignores, ignore_files) if with_loc else NullLineCounter()
    )
    vcs_reader: VcsReader = GitReader(fallback=config.git.use_cli_fallback) if with_git else NullVcsReader()
    return line_counter, vcs_reader


def scan(
    roots: Iterable[str | Path] | None = None,
    dry_run: bool = False,
    *,
    config: AppConfig | None = None,
    catalog_path: str | Path | None = None,
    with_loc: bool = False,
    with_git: bool = False,
) -> int:
    """Scan roots (or the configured ones) and return the project count."""
    config = config or ConfigStore.load()
    if roots:
        config = replace(config, roots=[Path(r).expanduser() for r in roots])

    ignore_files = ConfigStore.ignore_files()
    line_counter, vcs_reader = build_collaborators(config, ignore_files, with_loc, with_git)

    options = ScanOptions(dry_run=dry_run)
    if dry_run:
        return Scanner(None, config, line_counter, vcs_reader, ignore_files).scan(options)

    with _open(catalog_path) as catalog:
        return Scanner(catalog, config, line_counter, vcs_reader, ignore_files).scan(options)


def list_projects(
    sort: str | SortKey = SortKey.RECENT,
    limit: int = DEFAULT_LIST_LIMIT,
    *,
    catalog_path: str | Path | None = None,
) -> list[ProjectRecord]:
    with _open(catalog_path) as catalog:
        return catalog.list_projects(SortKey.parse(sort), limit)


def query_projects(
    search: str | None = None,
    sort: str | SortKey = SortKey.RECENT,
    ascending: bool = False,
    page: int = 0,
    page_size: int = DEFAULT_PAGE_SIZE,
    *,
    catalog_path: str | Path | None = None,
) -> ProjectsPage:
    """One page of search results plus the total number of matches."""
    sort_key = SortKey.parse(sort)
    with _open(catalog_path) as catalog:
        total = catalog.count_projects(search)
        items = catalog.query_projects(search, sort_key, ascending, page, page_size)
    return ProjectsPage(items=items, page=page, page_size=page_size, total_count=total)
