"""Shared fixtures: isolated config/data dirs and project tree builders."""

import pytest

from project_browser.db import Catalog


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path_factory, monkeypatch):
    """Keep every test away from the real user config, data and ignore files."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("PROJECT_BROWSER_CONFIG_DIR", str(home / "config"))
    monkeypatch.setenv("PROJECT_BROWSER_DATA_DIR", str(home / "data"))
    monkeypatch.delenv("PROJECT_BROWSER_LOG", raising=False)
    return home


@pytest.fixture
def catalog(tmp_path):
    with Catalog.open(tmp_path / "catalog.sqlite") as cat:
        yield cat


@pytest.fixture
def code_root(tmp_path):
    """A root holding a node project, a rust project and a plain directory."""
    root = tmp_path / "code"

    node = root / "my-node"
    node.mkdir(parents=True)
    (node / "package.json").write_text('{"name": "my-node"}')
    (node / "index.js").write_text("console.log('hi');\n")

    rust = root / "work" / "rusty"
    (rust / "src").mkdir(parents=True)
    (rust / "Cargo.toml").write_text('[package]\nname = "rusty"\n')
    (rust / "src" / "main.rs").write_text("fn main() {}\n")

    notes = root / "notes"
    notes.mkdir()
    (notes / "todo.txt").write_text("nothing here\n")

    return root
