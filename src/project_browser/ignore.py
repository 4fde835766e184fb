"""Ignore-aware directory walking.

Ignore rules come from several independent sources (hidden names,
per-directory .gitignore/.ignore files, supplementary ignore files and a
plain list of directory names). A path is skipped when any source matches,
and ignored directories are pruned rather than filtered after the fact.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

import pathspec

logger = logging.getLogger(__name__)

# Ignore files honoured inside every walked directory
DIR_IGNORE_FILES = (".gitignore", ".ignore")


@dataclass(frozen=True)
class WalkEntry:
    path: Path
    is_dir: bool


def _read_patterns(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as e:
        logger.warning("Cannot read ignore file %s: %s", path, e)
        return []


def _as_match_path(rel: Path, is_dir: bool) -> str:
    posix = rel.as_posix()
    return posix + "/" if is_dir else posix


class IgnoreSource:
    """One layer of ignore rules.

    ``enter`` is called for each directory before its children are matched,
    so sources that depend on files inside the tree can load them lazily.
    """

    def enter(self, directory: Path) -> None:
        pass

    def matches(self, path: Path, is_dir: bool) -> bool:
        raise NotImplementedError


class HiddenRule(IgnoreSource):
    """Dot-prefixed names."""

    def matches(self, path: Path, is_dir: bool) -> bool:
        return path.name.startswith(".")


class GlobalNameRule(IgnoreSource):
    """Directories whose base name is in a fixed list, wherever they appear."""

    def __init__(self, names: Iterable[str]):
        self.names = frozenset(names)

    def matches(self, path: Path, is_dir: bool) -> bool:
        return is_dir and path.name in self.names


class GitignoreRule(IgnoreSource):
    """.gitignore and .ignore files found along the walk.

    Each file applies to the subtree of the directory that holds it, with
    patterns matched relative to that directory.
    """

    def __init__(self, root: Path, filenames: Iterable[str] = DIR_IGNORE_FILES):
        self.root = root
        self.filenames = tuple(filenames)
        self._specs: dict[Path, pathspec.PathSpec] = {}
        self._seen: set[Path] = set()

    def enter(self, directory: Path) -> None:
        if directory in self._seen:
            return
        self._seen.add(directory)
        patterns: list[str] = []
        for name in self.filenames:
            candidate = directory / name
            if candidate.is_file():
                patterns.extend(_read_patterns(candidate))
        if patterns:
            self._specs[directory] = pathspec.PathSpec.from_lines("gitwildmatch", patterns)

    def matches(self, path: Path, is_dir: bool) -> bool:
        if not self._specs:
            return False
        for parent in path.parents:
            spec = self._specs.get(parent)
            if spec is not None and spec.match_file(_as_match_path(path.relative_to(parent), is_dir)):
                return True
            if parent == self.root:
                break
        return False


class IgnoreFileRule(IgnoreSource):
    """Patterns from standalone ignore files, matched relative to the walk root.

    Files that do not exist are skipped.
    """

    def __init__(self, root: Path, files: Iterable[Path]):
        self.root = root
        patterns: list[str] = []
        for f in files:
            if f.is_file():
                patterns.extend(_read_patterns(f))
        self.spec = pathspec.PathSpec.from_lines("gitwildmatch", patterns) if patterns else None

    def matches(self, path: Path, is_dir: bool) -> bool:
        if self.spec is None:
            return False
        try:
            rel = path.relative_to(self.root)
        except ValueError:
            return False
        return self.spec.match_file(_as_match_path(rel, is_dir))


def default_sources(
    root: Path,
    ignore_files: Iterable[Path] = (),
    global_ignores: Iterable[str] = (),
) -> list[IgnoreSource]:
    """Standard layering: hidden, VCS ignore files, extra files, global names."""
    sources: list[IgnoreSource] = [HiddenRule(), GitignoreRule(root)]
    ignore_files = list(ignore_files)
    if ignore_files:
        sources.append(IgnoreFileRule(root, ignore_files))
    global_ignores = list(global_ignores)
    if global_ignores:
        sources.append(GlobalNameRule(global_ignores))
    return sources


def walk(
    root: str | Path,
    sources: list[IgnoreSource] | None = None,
    prune: Callable[[Path], bool] | None = None,
) -> Iterator[WalkEntry]:
    """Yield every non-ignored file and directory under root, root first.

    A directory is yielded before anything inside it. ``prune`` is consulted
    after the consumer has seen a directory entry; returning True stops the
    walk from descending into it. Symlinked directories are not followed.
    Unreadable directories are logged and skipped.
    """
    root = Path(root)
    if sources is None:
        sources = default_sources(root)

    def on_error(err: OSError) -> None:
        logger.warning("Skipping unreadable entry %s: %s", err.filename, err.strerror or err)

    def ignored(path: Path, is_dir: bool) -> bool:
        return any(source.matches(path, is_dir) for source in sources)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        current = Path(dirpath)
        for source in sources:
            source.enter(current)

        yield WalkEntry(current, True)

        for fname in filenames:
            fpath = current / fname
            if not ignored(fpath, False):
                yield WalkEntry(fpath, False)

        if prune is not None and prune(current):
            dirnames[:] = []
            continue
        dirnames[:] = [d for d in dirnames if not ignored(current / d, True)]
