"""Application configuration - roots, ignore names, size policy.

Loaded once per invocation from a JSON file in the per-user config
directory. A missing file means built-in defaults; a broken one is fatal.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import click

APP_NAME = "project-browser"
CONFIG_FILE = "config.json"
APP_IGNORE_FILE = "ignore"
CATALOG_FILE = "projects.sqlite"

CONFIG_DIR_ENV = "PROJECT_BROWSER_CONFIG_DIR"
DATA_DIR_ENV = "PROJECT_BROWSER_DATA_DIR"

DEFAULT_ROOT = "~/Code"
DEFAULT_GLOBAL_IGNORES = [
    ".git", "node_modules", "target", "build", "dist",
    ".venv", "Pods", "DerivedData", ".cache",
]
DEFAULT_CONCURRENCY = 8


class ConfigError(Exception):
    """Configuration could not be loaded or resolved."""


class SizeMode(str, Enum):
    """Whether the metrics walk reports total byte size."""

    EXACT_CACHED = "exact_cached"
    NONE = "none"


@dataclass
class GitConfig:
    use_cli_fallback: bool = False


@dataclass
class AppConfig:
    """Effective configuration for a scan."""

    roots: list[Path] = field(default_factory=lambda: [Path(DEFAULT_ROOT).expanduser()])
    global_ignores: list[str] = field(default_factory=lambda: list(DEFAULT_GLOBAL_IGNORES))
    size_mode: SizeMode = SizeMode.EXACT_CACHED
    concurrency: int = DEFAULT_CONCURRENCY
    git: GitConfig = field(default_factory=GitConfig)

    def to_dict(self) -> dict[str, Any]:
        return {
            "roots": [str(r) for r in self.roots],
            "global_ignores": list(self.global_ignores),
            "size_mode": self.size_mode.value,
            "concurrency": self.concurrency,
            "git": {"use_cli_fallback": self.git.use_cli_fallback},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        """Build a config from parsed JSON. Missing keys keep their defaults."""
        if not isinstance(data, dict):
            raise ConfigError("Config must be a JSON object")

        cfg = cls()
        try:
            if "roots" in data:
                cfg.roots = [Path(r).expanduser() for r in _str_list(data["roots"], "roots")]
            if "global_ignores" in data:
                cfg.global_ignores = _str_list(data["global_ignores"], "global_ignores")
            if "size_mode" in data:
                cfg.size_mode = SizeMode(data["size_mode"])
            if "concurrency" in data:
                concurrency = data["concurrency"]
                if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
                    raise ConfigError(f"concurrency must be a positive integer, got {concurrency!r}")
                cfg.concurrency = concurrency
            if "git" in data:
                git = data["git"]
                if not isinstance(git, dict):
                    raise ConfigError("git must be a JSON object")
                cfg.git = GitConfig(use_cli_fallback=bool(git.get("use_cli_fallback", False)))
        except ValueError as e:
            # Unknown SizeMode value
            raise ConfigError(f"Invalid config value: {e}") from e
        return cfg


def _str_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings")
    return value


class ConfigStore:
    """Locates and reads the per-user config and data directories."""

    @staticmethod
    def config_dir() -> Path:
        override = os.environ.get(CONFIG_DIR_ENV)
        if override:
            return Path(override).expanduser()
        return Path(click.get_app_dir(APP_NAME))

    @staticmethod
    def data_dir() -> Path:
        override = os.environ.get(DATA_DIR_ENV)
        if override:
            return Path(override).expanduser()
        return Path(click.get_app_dir(APP_NAME)) / "data"

    @classmethod
    def config_path(cls) -> Path:
        return cls.config_dir() / CONFIG_FILE

    @classmethod
    def catalog_path(cls) -> Path:
        return cls.data_dir() / CATALOG_FILE

    @classmethod
    def app_ignore_path(cls) -> Path:
        """Primary app-level ignore file, next to config.json."""
        return cls.config_dir() / APP_IGNORE_FILE

    @staticmethod
    def legacy_ignore_path() -> Path:
        return Path.home() / ".config" / APP_NAME / APP_IGNORE_FILE

    @classmethod
    def ignore_files(cls) -> list[Path]:
        """Supplementary ignore files that exist on disk, app-level first."""
        return [p for p in (cls.app_ignore_path(), cls.legacy_ignore_path()) if p.is_file()]

    @classmethod
    def load(cls) -> AppConfig:
        path = cls.config_path()
        if not path.exists():
            return AppConfig()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Cannot parse {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e
        return AppConfig.from_dict(data)

    @classmethod
    def save(cls, cfg: AppConfig) -> Path:
        path = cls.config_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(cfg.to_dict(), indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot write {path}: {e}") from e
        return path
