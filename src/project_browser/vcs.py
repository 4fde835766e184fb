"""Git metadata for a project directory.

GitReader resolves the nearest enclosing repository (which need not be
rooted at the project directory) through the git executable. Every field
is read independently and comes back as None when its query fails.
"""

from __future__ import annotations

import configparser
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 10  # seconds per git invocation


@dataclass
class GitInfo:
    last_commit_at: int | None = None
    branch: str | None = None
    remote_url: str | None = None

    def is_empty(self) -> bool:
        return self.last_commit_at is None and self.branch is None and self.remote_url is None


class VcsReader(Protocol):
    def read(self, directory: Path) -> GitInfo:
        ...


class NullVcsReader:
    """VCS enrichment disabled."""

    def read(self, directory: Path) -> GitInfo:
        return GitInfo()


class GitUnavailable(Exception):
    """The git executable could not be run."""


def _run_git(args: list[str], cwd: Path) -> str | None:
    """Run git and return stripped stdout, or None on a non-zero exit."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd, capture_output=True, text=True, timeout=GIT_TIMEOUT,
        )
    except FileNotFoundError as e:
        raise GitUnavailable(str(e)) from e
    except subprocess.TimeoutExpired:
        logger.debug("git %s timed out in %s", " ".join(args), cwd)
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def find_git_dir(directory: Path) -> Path | None:
    """Locate the .git directory for directory or its nearest ancestor."""
    for candidate in (directory, *directory.parents):
        dot_git = candidate / ".git"
        if dot_git.is_dir():
            return dot_git
        if dot_git.is_file():
            # Worktree / submodule: "gitdir: <path>"
            try:
                content = dot_git.read_text(encoding="utf-8").strip()
            except OSError:
                return None
            if content.startswith("gitdir:"):
                target = Path(content[len("gitdir:"):].strip())
                return target if target.is_absolute() else (candidate / target).resolve()
            return None
    return None


def read_git_metadata_files(directory: Path) -> GitInfo:
    """Branch and origin URL straight from .git/HEAD and .git/config."""
    info = GitInfo()
    git_dir = find_git_dir(directory)
    if git_dir is None:
        return info

    try:
        head = (git_dir / "HEAD").read_text(encoding="utf-8").strip()
        if head.startswith("ref: refs/heads/"):
            info.branch = head[len("ref: refs/heads/"):]
        elif head:
            info.branch = "HEAD"
    except OSError:
        pass

    # Worktrees keep config in the common dir
    config_path = git_dir / "config"
    commondir = git_dir / "commondir"
    if not config_path.is_file() and commondir.is_file():
        try:
            config_path = (git_dir / commondir.read_text(encoding="utf-8").strip()) / "config"
        except OSError:
            pass

    parser = configparser.ConfigParser(strict=False, interpolation=None)
    try:
        parser.read(config_path, encoding="utf-8")
        info.remote_url = parser.get('remote "origin"', "url", fallback=None)
    except configparser.Error as e:
        logger.debug("Cannot parse %s: %s", config_path, e)
    return info


class GitReader:
    """Reads git metadata with the git CLI.

    With ``fallback`` enabled and no usable git executable, branch and
    remote are read from the repository's metadata files instead (no commit
    time in that mode).
    """

    def __init__(self, fallback: bool = False):
        self.fallback = fallback

    def read(self, directory: Path) -> GitInfo:
        directory = Path(directory)
        try:
            return self._read_cli(directory)
        except GitUnavailable as e:
            if self.fallback:
                logger.debug("git unavailable (%s); reading metadata files", e)
                return read_git_metadata_files(directory)
            logger.debug("git unavailable: %s", e)
            return GitInfo()

    def _read_cli(self, directory: Path) -> GitInfo:
        info = GitInfo()
        if _run_git(["rev-parse", "--show-toplevel"], directory) is None:
            return info

        last_commit = _run_git(["log", "-1", "--format=%ct"], directory)
        if last_commit is not None:
            try:
                info.last_commit_at = int(last_commit)
            except ValueError:
                pass

        info.branch = _run_git(["rev-parse", "--abbrev-ref", "HEAD"], directory)
        info.remote_url = _run_git(["remote", "get-url", "origin"], directory)
        return info
