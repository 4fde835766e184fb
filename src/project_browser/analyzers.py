"""Lines-of-code counting.

Optional enrichment for the scan. NullLineCounter leaves every loc field
empty; ExtensionLineCounter gives a per-language breakdown from file
extensions, counting lines that are neither blank nor whole-line comments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Protocol

from .ignore import default_sources, walk

logger = logging.getLogger(__name__)

# Files larger than this are almost always generated or data
MAX_FILE_BYTES = 2 * 1024 * 1024


@dataclass
class LocBreakdown:
    total: int = 0
    languages: list[tuple[str, int]] = field(default_factory=list)


class LineCounter(Protocol):
    def count(self, directory: Path) -> LocBreakdown | None:
        ...


class NullLineCounter:
    """Line counting disabled."""

    def count(self, directory: Path) -> LocBreakdown | None:
        return None


# Extension -> (language, line comment prefixes)
EXT_LANG: dict[str, tuple[str, tuple[str, ...]]] = {
    ".py": ("Python", ("#",)), ".pyi": ("Python", ("#",)),
    ".js": ("JavaScript", ("//",)), ".mjs": ("JavaScript", ("//",)),
    ".cjs": ("JavaScript", ("//",)), ".jsx": ("JSX", ("//",)),
    ".ts": ("TypeScript", ("//",)), ".mts": ("TypeScript", ("//",)),
    ".tsx": ("TSX", ("//",)),
    ".rs": ("Rust", ("//",)),
    ".go": ("Go", ("//",)),
    ".java": ("Java", ("//",)),
    ".kt": ("Kotlin", ("//",)), ".kts": ("Kotlin", ("//",)),
    ".scala": ("Scala", ("//",)),
    ".rb": ("Ruby", ("#",)),
    ".php": ("PHP", ("//", "#")),
    ".swift": ("Swift", ("//",)),
    ".c": ("C", ("//",)), ".h": ("C Header", ("//",)),
    ".cpp": ("C++", ("//",)), ".cc": ("C++", ("//",)),
    ".cxx": ("C++", ("//",)), ".hpp": ("C++ Header", ("//",)),
    ".cs": ("C#", ("//",)),
    ".fs": ("F#", ("//",)),
    ".ex": ("Elixir", ("#",)), ".exs": ("Elixir", ("#",)),
    ".erl": ("Erlang", ("%",)),
    ".hs": ("Haskell", ("--",)),
    ".lua": ("Lua", ("--",)),
    ".r": ("R", ("#",)),
    ".dart": ("Dart", ("//",)),
    ".vue": ("Vue", ("//",)),
    ".svelte": ("Svelte", ("//",)),
    ".sql": ("SQL", ("--",)),
    ".sh": ("Shell", ("#",)), ".bash": ("Shell", ("#",)), ".zsh": ("Shell", ("#",)),
    ".tf": ("HCL", ("#", "//")),
    ".yaml": ("YAML", ("#",)), ".yml": ("YAML", ("#",)),
    ".toml": ("TOML", ("#",)),
    ".json": ("JSON", ()),
    ".md": ("Markdown", ()),
    ".html": ("HTML", ()), ".htm": ("HTML", ()),
    ".css": ("CSS", ()), ".scss": ("Sass", ("//",)), ".less": ("LESS", ("//",)),
    ".zig": ("Zig", ("//",)),
    ".nim": ("Nim", ("#",)),
    ".ml": ("OCaml", ()), ".mli": ("OCaml", ()),
}


def count_code_lines(text: str, comment_prefixes: tuple[str, ...]) -> int:
    count = 0
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if comment_prefixes and stripped.startswith(comment_prefixes):
            continue
        count += 1
    return count


class ExtensionLineCounter:
    """Counts code lines per language, honouring the same ignore rules as the scan."""

    def __init__(self, global_ignores: Iterable[str] = (), ignore_files: Iterable[Path] = ()):
        self.global_ignores = list(global_ignores)
        self.ignore_files = list(ignore_files)

    def count(self, directory: Path) -> LocBreakdown | None:
        directory = Path(directory)
        per_lang: dict[str, int] = {}
        sources = default_sources(directory, self.ignore_files, self.global_ignores)

        for entry in walk(directory, sources):
            if entry.is_dir:
                continue
            lang = EXT_LANG.get(entry.path.suffix.lower())
            if lang is None:
                continue
            name, prefixes = lang
            try:
                if entry.path.stat().st_size > MAX_FILE_BYTES:
                    continue
                text = entry.path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("Skipping %s for line count: %s", entry.path, e)
                continue
            per_lang[name] = per_lang.get(name, 0) + count_code_lines(text, prefixes)

        languages = sorted(per_lang.items(), key=lambda x: (-x[1], x[0]))
        return LocBreakdown(total=sum(per_lang.values()), languages=languages)
