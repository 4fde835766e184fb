"""Project root detection from ecosystem marker files.

RULES is evaluated top to bottom and the first satisfied rule wins. A
directory can carry markers for several ecosystems, so the order of RULES
is part of the public behaviour and must not be reshuffled.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ProjectType(str, Enum):
    RUST = "rust"
    NODE = "node"
    PYTHON = "python"
    GO = "go"
    JAVA = "java"
    DOTNET = ".net"
    TERRAFORM = "terraform"
    ANSIBLE = "ansible"
    OTHER = "other"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NestedMarker:
    """A named subdirectory holding at least one file with a given extension."""

    directory: str
    extensions: tuple[str, ...]


@dataclass(frozen=True)
class MarkerRule:
    project_type: ProjectType
    files: tuple[str, ...] = ()
    extensions: tuple[str, ...] = ()
    nested: NestedMarker | None = None


RULES: tuple[MarkerRule, ...] = (
    MarkerRule(ProjectType.RUST, files=("Cargo.toml",)),
    MarkerRule(ProjectType.NODE, files=("package.json",)),
    MarkerRule(ProjectType.PYTHON, files=("pyproject.toml", "requirements.txt")),
    MarkerRule(ProjectType.GO, files=("go.mod",)),
    MarkerRule(ProjectType.JAVA, files=("pom.xml", "build.gradle", "gradlew")),
    MarkerRule(ProjectType.DOTNET, files=("global.json",), extensions=(".csproj",)),
    MarkerRule(ProjectType.TERRAFORM, extensions=(".tf",)),
    MarkerRule(ProjectType.ANSIBLE, nested=NestedMarker("ansible", (".yml", ".yaml"))),
)


def _has_file_with_extension(directory: Path, extensions: tuple[str, ...]) -> bool:
    try:
        with os.scandir(directory) as it:
            for entry in it:
                if entry.name.lower().endswith(extensions) and entry.is_file():
                    return True
    except OSError:
        return False
    return False


def _rule_matches(directory: Path, rule: MarkerRule) -> bool:
    if any((directory / name).exists() for name in rule.files):
        return True
    if rule.extensions and _has_file_with_extension(directory, rule.extensions):
        return True
    if rule.nested is not None:
        nested_dir = directory / rule.nested.directory
        if nested_dir.is_dir() and _has_file_with_extension(nested_dir, rule.nested.extensions):
            return True
    return False


def detect_project_type(directory: str | Path) -> ProjectType | None:
    """Classify a directory by the first matching rule in RULES, or None."""
    directory = Path(directory)
    for rule in RULES:
        if _rule_matches(directory, rule):
            return rule.project_type
    return None


def is_git_repo(directory: str | Path) -> bool:
    return (Path(directory) / ".git").is_dir()
