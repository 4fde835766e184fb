"""Tests for configuration loading."""

import json
from pathlib import Path

import pytest

from project_browser.config import (
    DEFAULT_GLOBAL_IGNORES,
    AppConfig,
    ConfigError,
    ConfigStore,
    SizeMode,
)


class TestAppConfig:
    def test_defaults(self, isolated_dirs):
        cfg = AppConfig()
        assert cfg.roots == [isolated_dirs / "Code"]
        assert cfg.global_ignores == DEFAULT_GLOBAL_IGNORES
        assert cfg.size_mode is SizeMode.EXACT_CACHED
        assert cfg.concurrency == 8
        assert cfg.git.use_cli_fallback is False

    def test_from_dict_partial(self):
        cfg = AppConfig.from_dict({"roots": ["/src"], "size_mode": "none"})
        assert cfg.roots == [Path("/src")]
        assert cfg.size_mode is SizeMode.NONE
        assert cfg.global_ignores == DEFAULT_GLOBAL_IGNORES

    def test_tilde_expanded(self, isolated_dirs):
        cfg = AppConfig.from_dict({"roots": ["~/work"]})
        assert cfg.roots == [isolated_dirs / "work"]

    def test_git_section(self):
        assert AppConfig.from_dict({"git": {"use_cli_fallback": True}}).git.use_cli_fallback

    @pytest.mark.parametrize(
        "data",
        [
            {"size_mode": "approximate"},
            {"roots": "/not/a/list"},
            {"global_ignores": [1, 2]},
            {"concurrency": 0},
            {"concurrency": "eight"},
            {"git": True},
            ["not", "an", "object"],
        ],
    )
    def test_invalid_values(self, data):
        with pytest.raises(ConfigError):
            AppConfig.from_dict(data)

    def test_to_dict(self):
        d = AppConfig(roots=[Path("/a")], size_mode=SizeMode.NONE).to_dict()
        assert d["roots"] == ["/a"]
        assert d["size_mode"] == "none"
        assert d["git"] == {"use_cli_fallback": False}


class TestConfigStore:
    def test_missing_file_gives_defaults(self):
        assert not ConfigStore.config_path().exists()
        assert ConfigStore.load() == AppConfig()

    def test_load_file(self):
        path = ConfigStore.config_path()
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"roots": ["/x", "/y"], "concurrency": 2}))
        cfg = ConfigStore.load()
        assert cfg.roots == [Path("/x"), Path("/y")]
        assert cfg.concurrency == 2

    def test_unparseable_file(self):
        path = ConfigStore.config_path()
        path.parent.mkdir(parents=True)
        path.write_text("{roots: nope")
        with pytest.raises(ConfigError, match="Cannot parse"):
            ConfigStore.load()

    def test_save_then_load(self):
        cfg = AppConfig(roots=[Path("/proj")], global_ignores=["vendor"])
        ConfigStore.save(cfg)
        assert ConfigStore.load() == cfg

    def test_paths_follow_env(self, isolated_dirs):
        assert ConfigStore.config_path() == isolated_dirs / "config" / "config.json"
        assert ConfigStore.catalog_path() == isolated_dirs / "data" / "projects.sqlite"
        assert ConfigStore.app_ignore_path() == isolated_dirs / "config" / "ignore"
        assert ConfigStore.legacy_ignore_path() == isolated_dirs / ".config" / "project-browser" / "ignore"

    def test_default_dirs_without_env(self, monkeypatch):
        monkeypatch.delenv("PROJECT_BROWSER_CONFIG_DIR")
        monkeypatch.delenv("PROJECT_BROWSER_DATA_DIR")
        assert ConfigStore.config_path().name == "config.json"
        assert ConfigStore.catalog_path().parent.name == "data"

    def test_ignore_files_only_existing(self):
        assert ConfigStore.ignore_files() == []
        legacy = ConfigStore.legacy_ignore_path()
        legacy.parent.mkdir(parents=True)
        legacy.write_text("tmp/\n")
        assert ConfigStore.ignore_files() == [legacy]
        app = ConfigStore.app_ignore_path()
        app.parent.mkdir(parents=True)
        app.write_text("scratch/\n")
        assert ConfigStore.ignore_files() == [app, legacy]
