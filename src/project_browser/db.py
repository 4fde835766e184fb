"""SQLite catalog of discovered projects.

One row per project path in ``projects`` with 1:1 ``metrics`` and
``git_info`` rows and a per-language ``loc_lang`` breakdown. Writes commit
as they go; there is no transaction spanning a whole scan.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from .config import ConfigStore
from .vcs import GitInfo

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS projects (
  id INTEGER PRIMARY KEY,
  name TEXT NOT NULL,
  path TEXT NOT NULL UNIQUE,
  type TEXT,
  is_git_repo INTEGER NOT NULL DEFAULT 0,
  created_at INTEGER NOT NULL DEFAULT (CAST(strftime('%s','now') AS INTEGER)),
  updated_at INTEGER NOT NULL DEFAULT (CAST(strftime('%s','now') AS INTEGER))
);

CREATE TABLE IF NOT EXISTS metrics (
  project_id INTEGER PRIMARY KEY,
  size_bytes INTEGER,
  files_count INTEGER,
  last_edited_at INTEGER,
  FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS git_info (
  project_id INTEGER PRIMARY KEY,
  last_commit_at INTEGER,
  branch TEXT,
  remote_url TEXT,
  FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS loc_lang (
  project_id INTEGER NOT NULL,
  language TEXT NOT NULL,
  code INTEGER,
  PRIMARY KEY(project_id, language),
  FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
);
"""

# Created after ensure_column so indexed columns exist on old catalogs
INDEXES = """
CREATE INDEX IF NOT EXISTS idx_projects_path ON projects(path);
CREATE INDEX IF NOT EXISTS idx_projects_type ON projects(type);
CREATE INDEX IF NOT EXISTS idx_metrics_size ON metrics(size_bytes);
CREATE INDEX IF NOT EXISTS idx_metrics_last_edit ON metrics(last_edited_at);
CREATE INDEX IF NOT EXISTS idx_metrics_loc ON metrics(loc);
CREATE INDEX IF NOT EXISTS idx_git_last_commit ON git_info(last_commit_at);
"""

SELECT_RECORDS = """
SELECT p.id, p.name, p.path, p.type, p.is_git_repo,
       m.size_bytes, m.files_count, m.last_edited_at, m.loc
FROM projects p
LEFT JOIN metrics m ON m.project_id = p.id
"""

SEARCH_CLAUSE = " WHERE p.name LIKE ? ESCAPE '\\' OR p.path LIKE ? ESCAPE '\\'"


class CatalogError(Exception):
    """The catalog could not be opened or written."""


class SortKey(str, Enum):
    RECENT = "recent"
    SIZE = "size"
    NAME = "name"
    TYPE = "type"
    LOC = "loc"

    @classmethod
    def parse(cls, value: str | SortKey | None) -> SortKey:
        """Lenient lookup; unknown or empty values mean RECENT."""
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.RECENT

    @property
    def default_ascending(self) -> bool:
        return self in (SortKey.NAME, SortKey.TYPE)


# Nullable metric column per sort key
_METRIC_COLUMNS = {
    SortKey.RECENT: "m.last_edited_at",
    SortKey.SIZE: "m.size_bytes",
    SortKey.LOC: "m.loc",
}


def order_by(sort: SortKey, ascending: bool) -> str:
    """ORDER BY body. Metric nulls sort last in both directions; ties by id."""
    direction = "ASC" if ascending else "DESC"
    if sort in _METRIC_COLUMNS:
        col = _METRIC_COLUMNS[sort]
        return f"CASE WHEN {col} IS NULL THEN 1 ELSE 0 END, {col} {direction}, p.id ASC"
    if sort is SortKey.NAME:
        return f"p.name {direction}, p.id ASC"
    return f"p.type {direction}, p.name {direction}, p.id ASC"


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _normalize_search(search: str | None) -> str | None:
    if search is None or not search.strip():
        return None
    return search


@dataclass
class ProjectRecord:
    id: int
    name: str
    path: str
    project_type: str | None
    is_git_repo: bool
    size_bytes: int | None = None
    files_count: int | None = None
    last_edited_at: int | None = None
    loc: int | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> ProjectRecord:
        return cls(
            id=row["id"],
            name=row["name"],
            path=row["path"],
            project_type=row["type"],
            is_git_repo=bool(row["is_git_repo"]),
            size_bytes=row["size_bytes"],
            files_count=row["files_count"],
            last_edited_at=row["last_edited_at"],
            loc=row["loc"],
        )

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["type"] = d.pop("project_type")
        return d


class Catalog:
    """Handle on one catalog file. Use as a context manager to close it."""

    def __init__(self, conn: sqlite3.Connection, path: Path):
        self.conn = conn
        self.path = path

    @classmethod
    def open(cls, path: str | Path) -> Catalog:
        path = Path(path).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(path))
        except (OSError, sqlite3.Error) as e:
            raise CatalogError(f"Cannot open catalog at {path}: {e}") from e

        conn.row_factory = sqlite3.Row
        catalog = cls(conn, path)
        try:
            catalog.migrate()
        except sqlite3.Error as e:
            conn.close()
            raise CatalogError(f"Cannot open catalog at {path}: {e}") from e
        return catalog

    @classmethod
    def open_default(cls) -> Catalog:
        return cls.open(ConfigStore.catalog_path())

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> Catalog:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def migrate(self) -> None:
        """Create or upgrade the schema. Safe to run on every open."""
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self.conn.executescript(SCHEMA)
        self.ensure_column("metrics", "loc", "INTEGER")
        self.conn.executescript(INDEXES)
        self.conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        self.conn.commit()

    def ensure_column(self, table: str, column: str, col_type: str) -> None:
        existing = {row["name"] for row in self.conn.execute(f"PRAGMA table_info({table})")}
        if column not in existing:
            logger.info("Adding column %s.%s", table, column)
            self.conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {col_type}")

    def _write(self, sql: str, params: tuple) -> sqlite3.Cursor:
        try:
            cur = self.conn.execute(sql, params)
            self.conn.commit()
            return cur
        except sqlite3.Error as e:
            self.conn.rollback()
            raise CatalogError(f"Catalog write failed: {e}") from e

    # --- writes ---

    def upsert_project(self, name: str, path: str, project_type: str | None, is_git_repo: bool) -> int:
        """Insert or refresh the row for path and return its id."""
        self._write(
            """
            INSERT INTO projects (name, path, type, is_git_repo, updated_at)
            VALUES (?, ?, ?, ?, CAST(strftime('%s','now') AS INTEGER))
            ON CONFLICT(path) DO UPDATE SET
              name=excluded.name,
              type=excluded.type,
              is_git_repo=excluded.is_git_repo,
              updated_at=excluded.updated_at
            """,
            (name, path, project_type, int(is_git_repo)),
        )
        row = self.conn.execute("SELECT id FROM projects WHERE path = ?", (path,)).fetchone()
        return row["id"]

    def upsert_metrics(
        self,
        project_id: int,
        size_bytes: int | None,
        files_count: int | None,
        last_edited_at: int | None,
        loc: int | None,
    ) -> None:
        """Replace the metrics row. None overwrites whatever was stored."""
        self._write(
            """
            INSERT INTO metrics (project_id, size_bytes, files_count, last_edited_at, loc)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(project_id) DO UPDATE SET
              size_bytes=excluded.size_bytes,
              files_count=excluded.files_count,
              last_edited_at=excluded.last_edited_at,
              loc=excluded.loc
            """,
            (project_id, size_bytes, files_count, last_edited_at, loc),
        )

    def upsert_git_info(
        self,
        project_id: int,
        last_commit_at: int | None,
        branch: str | None,
        remote_url: str | None,
    ) -> None:
        self._write(
            """
            INSERT INTO git_info (project_id, last_commit_at, branch, remote_url)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(project_id) DO UPDATE SET
              last_commit_at=excluded.last_commit_at,
              branch=excluded.branch,
              remote_url=excluded.remote_url
            """,
            (project_id, last_commit_at, branch, remote_url),
        )

    def replace_loc_breakdown(self, project_id: int, lang_code_pairs: Iterable[tuple[str, int]]) -> None:
        """Swap the whole language breakdown for a project."""
        rows = [(project_id, lang, code) for lang, code in lang_code_pairs]
        try:
            with self.conn:
                self.conn.execute("DELETE FROM loc_lang WHERE project_id = ?", (project_id,))
                self.conn.executemany(
                    "INSERT INTO loc_lang (project_id, language, code) VALUES (?, ?, ?)", rows
                )
        except sqlite3.Error as e:
            raise CatalogError(f"Catalog write failed: {e}") from e

    # --- reads ---

    def list_projects(self, sort: SortKey, limit: int) -> list[ProjectRecord]:
        """Top ``limit`` projects in the sort key's natural direction."""
        sort = SortKey.parse(sort)
        sql = f"{SELECT_RECORDS} ORDER BY {order_by(sort, sort.default_ascending)} LIMIT ?"
        rows = self.conn.execute(sql, (limit,)).fetchall()
        return [ProjectRecord.from_row(r) for r in rows]

    def count_projects(self, search: str | None = None) -> int:
        search = _normalize_search(search)
        if search is None:
            row = self.conn.execute("SELECT COUNT(*) AS n FROM projects p").fetchone()
        else:
            pattern = _like_pattern(search)
            row = self.conn.execute(
                "SELECT COUNT(*) AS n FROM projects p" + SEARCH_CLAUSE, (pattern, pattern)
            ).fetchone()
        return row["n"]

    def query_projects(
        self,
        search: str | None,
        sort: SortKey,
        ascending: bool,
        page: int,
        page_size: int,
    ) -> list[ProjectRecord]:
        """One page of projects matching search (name or path substring)."""
        sort = SortKey.parse(sort)
        search = _normalize_search(search)
        params: list[Any] = []
        sql = SELECT_RECORDS
        if search is not None:
            pattern = _like_pattern(search)
            sql += SEARCH_CLAUSE
            params.extend([pattern, pattern])
        sql += f" ORDER BY {order_by(sort, ascending)} LIMIT ? OFFSET ?"
        params.extend([page_size, page * page_size])
        rows = self.conn.execute(sql, params).fetchall()
        return [ProjectRecord.from_row(r) for r in rows]

    def get_project(self, path: str) -> ProjectRecord | None:
        row = self.conn.execute(SELECT_RECORDS + " WHERE p.path = ?", (path,)).fetchone()
        return ProjectRecord.from_row(row) if row else None

    def get_git_info(self, project_id: int) -> GitInfo | None:
        row = self.conn.execute(
            "SELECT last_commit_at, branch, remote_url FROM git_info WHERE project_id = ?",
            (project_id,),
        ).fetchone()
        if row is None:
            return None
        return GitInfo(last_commit_at=row["last_commit_at"], branch=row["branch"], remote_url=row["remote_url"])

    def get_loc_breakdown(self, project_id: int) -> list[tuple[str, int]]:
        rows = self.conn.execute(
            "SELECT language, code FROM loc_lang WHERE project_id = ? ORDER BY code DESC, language ASC",
            (project_id,),
        ).fetchall()
        return [(r["language"], r["code"]) for r in rows]
