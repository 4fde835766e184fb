"""project-browser - index local code projects into a searchable catalog.

Usage:
    project-browser scan [--root PATH]... [--dry-run]
    project-browser list --sort size --limit 20
    project-browser query node --sort name --asc
"""

from __future__ import annotations

import json
import os
import time
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .api import DEFAULT_LIST_LIMIT, DEFAULT_PAGE_SIZE, list_projects, query_projects, scan as run_scan
from .config import ConfigError, ConfigStore
from .db import Catalog, CatalogError, ProjectRecord, SortKey
from .logging_setup import setup_logging

console = Console()

SORT_CHOICES = click.Choice([k.value for k in SortKey], case_sensitive=False)


def _human_size(num: int | None) -> str:
    if num is None:
        return "-"
    size = float(num)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def _relative_age(timestamp: int | None, now: float | None = None) -> str:
    if not timestamp:
        return "-"
    days = int(((now or time.time()) - timestamp) // 86400)
    if days <= 0:
        return "today"
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days}d ago"
    if days < 30:
        return f"{days // 7}w ago"
    if days < 365:
        return f"{days // 30}mo ago"
    return f"{days // 365}y ago"


def _catalog_path(db: str | None) -> Path | None:
    return Path(db).expanduser() if db else None


def _print_records(records: list[ProjectRecord], title: str, show_loc: bool = False) -> None:
    table = Table(title=title, border_style="dim")
    table.add_column("Name", style="bold", overflow="fold")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Edited", justify="right")
    if show_loc:
        table.add_column("LOC", justify="right")
    table.add_column("Path", style="dim", overflow="fold")

    for r in records:
        row = [
            r.name,
            r.project_type or "-",
            _human_size(r.size_bytes),
            f"{r.files_count:,}" if r.files_count is not None else "-",
            _relative_age(r.last_edited_at),
        ]
        if show_loc:
            row.append(f"{r.loc:,}" if r.loc is not None else "-")
        row.append(r.path)
        table.add_row(*row)

    console.print(table)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", count=True, help="More logging (-v info, -vv debug)")
def cli(verbose: int):
    """Project Browser - find and catalog the code projects on this machine.

    Walks configured roots, detects projects by their ecosystem markers and
    keeps size, file count and recency in a local SQLite catalog.
    """
    setup_logging(verbose)


@cli.command()
@click.option("--print", "print_config", is_flag=True, help="Print the effective config as JSON")
@click.option("--db-path", is_flag=True, help="Print the default catalog path")
@click.option("--init", "init_config", is_flag=True, help="Write the default config file if missing")
def config(print_config: bool, db_path: bool, init_config: bool):
    """Show or initialise configuration."""
    try:
        if init_config:
            path = ConfigStore.config_path()
            if path.exists():
                console.print(f"[yellow]Config already exists:[/] {path}")
            else:
                path = ConfigStore.save(ConfigStore.load())
                console.print(f"[green]Wrote default config to[/] {path}")
        if print_config:
            click.echo(json.dumps(ConfigStore.load().to_dict(), indent=2))
        elif db_path:
            click.echo(str(ConfigStore.catalog_path()))
        elif not init_config:
            console.print("Use --print, --db-path or --init")
    except ConfigError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.option("--root", "roots", multiple=True, help="Root to scan (repeatable, defaults to config roots)")
@click.option("--dry-run", is_flag=True, help="Detect and log projects without writing to the catalog")
@click.option("--db", default=None, help="Override catalog path")
@click.option("--loc", "with_loc", is_flag=True, help="Count lines of code per language")
@click.option("--git", "with_git", is_flag=True, help="Read git branch, remote and last commit")
def scan(roots: tuple[str, ...], dry_run: bool, db: str | None, with_loc: bool, with_git: bool):
    """Scan roots and populate the catalog.

    Examples:

        project-browser scan

        project-browser scan --root ~/src --root ~/work --git --loc

        project-browser -v scan --dry-run
    """
    started = time.monotonic()
    try:
        with console.status("Scanning...", spinner="dots"):
            count = run_scan(
                roots or None,
                dry_run=dry_run,
                catalog_path=_catalog_path(db),
                with_loc=with_loc,
                with_git=with_git,
            )
    except (ConfigError, CatalogError) as e:
        raise click.ClickException(str(e))

    elapsed = time.monotonic() - started
    suffix = " (dry run, catalog unchanged)" if dry_run else ""
    console.print(f"[green]Scanned {count} project(s)[/] in {elapsed:.1f}s{suffix}")


@cli.command(name="list")
@click.option("--sort", type=SORT_CHOICES, default=SortKey.RECENT.value, show_default=True, help="Sort key")
@click.option("--limit", type=click.IntRange(min=0), default=DEFAULT_LIST_LIMIT, show_default=True, help="Max rows")
@click.option("--json", "as_json", is_flag=True, help="Output JSON instead of a table")
@click.option("--db", default=None, help="Override catalog path")
@click.option("--show-loc", is_flag=True, help="Show the LOC column")
def list_cmd(sort: str, limit: int, as_json: bool, db: str | None, show_loc: bool):
    """List projects from the catalog."""
    try:
        records = list_projects(sort, limit, catalog_path=_catalog_path(db))
    except (ConfigError, CatalogError) as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return
    if not records:
        console.print("[yellow]No projects in the catalog. Run: project-browser scan[/]")
        return
    _print_records(records, f"Projects by {sort}", show_loc=show_loc)


@cli.command()
@click.argument("search", required=False)
@click.option("--sort", type=SORT_CHOICES, default=SortKey.RECENT.value, show_default=True, help="Sort key")
@click.option("--asc/--desc", "ascending", default=False, help="Sort direction (default descending)")
@click.option("--page", type=click.IntRange(min=0), default=0, show_default=True)
@click.option("--page-size", type=click.IntRange(min=1), default=DEFAULT_PAGE_SIZE, show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Output JSON instead of a table")
@click.option("--db", default=None, help="Override catalog path")
def query(search: str | None, sort: str, ascending: bool, page: int, page_size: int, as_json: bool, db: str | None):
    """Search projects by name or path, one page at a time."""
    try:
        result = query_projects(search, sort, ascending, page, page_size, catalog_path=_catalog_path(db))
    except (ConfigError, CatalogError) as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    first = page * page_size + 1 if result.items else 0
    last = page * page_size + len(result.items)
    _print_records(result.items, f"{first}-{last} of {result.total_count}")


@cli.command()
@click.argument("path", type=click.Path(file_okay=False))
@click.option("--db", default=None, help="Override catalog path")
def show(path: str, db: str | None):
    """Show one project with its git info and language breakdown."""
    project_path = os.path.abspath(Path(path).expanduser())
    try:
        catalog_path = _catalog_path(db)
        catalog = Catalog.open(catalog_path) if catalog_path else Catalog.open_default()
        with catalog:
            record = catalog.get_project(project_path)
            if record is None:
                raise click.ClickException(f"Not in catalog: {project_path}")
            git = catalog.get_git_info(record.id)
            languages = catalog.get_loc_breakdown(record.id)
    except (ConfigError, CatalogError) as e:
        raise click.ClickException(str(e))

    table = Table(show_header=False, border_style="dim")
    table.add_column("Key", style="bold")
    table.add_column("Value", overflow="fold")
    table.add_row("Path", record.path)
    table.add_row("Type", record.project_type or "-")
    table.add_row("Git repo", "yes" if record.is_git_repo else "no")
    table.add_row("Size", _human_size(record.size_bytes))
    table.add_row("Files", f"{record.files_count:,}" if record.files_count is not None else "-")
    table.add_row("Last edited", _relative_age(record.last_edited_at))
    if record.loc is not None:
        table.add_row("Lines of code", f"{record.loc:,}")
    if git is not None:
        table.add_row("Branch", git.branch or "-")
        table.add_row("Remote", git.remote_url or "-")
        table.add_row("Last commit", _relative_age(git.last_commit_at))
    console.print(Panel.fit(table, title=f"[bold cyan]{record.name}[/]", border_style="cyan"))

    if languages:
        langs = Table(title="Languages", border_style="dim")
        langs.add_column("Language", style="bold")
        langs.add_column("Code", justify="right")
        for lang, code in languages:
            langs.add_row(lang, f"{code:,}")
        console.print(langs)


@cli.command()
def version():
    """Show version information."""
    console.print(f"project-browser v{__version__}")
    console.print(f"Config: {ConfigStore.config_path()}")
    console.print(f"Catalog: {ConfigStore.catalog_path()}")


if __name__ == "__main__":
    cli()
