"""Tests for project type detection."""

import pytest

from project_browser.detect import RULES, ProjectType, detect_project_type, is_git_repo


class TestDetectProjectType:
    """Single-marker detection."""

    @pytest.mark.parametrize(
        "marker,expected",
        [
            ("Cargo.toml", ProjectType.RUST),
            ("package.json", ProjectType.NODE),
            ("pyproject.toml", ProjectType.PYTHON),
            ("requirements.txt", ProjectType.PYTHON),
            ("go.mod", ProjectType.GO),
            ("pom.xml", ProjectType.JAVA),
            ("gradlew", ProjectType.JAVA),
            ("global.json", ProjectType.DOTNET),
            ("App.csproj", ProjectType.DOTNET),
            ("main.tf", ProjectType.TERRAFORM),
        ],
    )
    def test_marker(self, tmp_path, marker, expected):
        (tmp_path / marker).write_text("x")
        assert detect_project_type(tmp_path) is expected

    def test_terraform_project(self, tmp_path):
        proj = tmp_path / "terraform-project"
        proj.mkdir()
        (proj / "main.tf").write_text('resource "aws_instance" "example" {}')
        assert detect_project_type(proj) is ProjectType.TERRAFORM

    def test_ansible_nested_marker(self, tmp_path):
        proj = tmp_path / "ansible-project"
        (proj / "ansible").mkdir(parents=True)
        (proj / "ansible" / "playbook.yml").write_text("- hosts: all\n  tasks:\n    - debug: msg=hello\n")
        assert detect_project_type(proj) is ProjectType.ANSIBLE

    @pytest.mark.parametrize(
        "marker",
        ["setup.py", "Pipfile", "build.gradle.kts", "App.sln", "ansible.cfg", "playbook.yml", "playbook.yaml"],
    )
    def test_lookalike_markers_ignored(self, tmp_path, marker):
        (tmp_path / marker).write_text("x")
        assert detect_project_type(tmp_path) is None

    def test_top_level_playbook_needs_nested_dir(self, tmp_path):
        (tmp_path / "site.yml").write_text("- hosts: all\n")
        assert detect_project_type(tmp_path) is None

    def test_nested_dir_without_yaml_is_not_ansible(self, tmp_path):
        (tmp_path / "ansible").mkdir()
        (tmp_path / "ansible" / "notes.txt").write_text("x")
        assert detect_project_type(tmp_path) is None

    def test_no_markers(self, tmp_path):
        (tmp_path / "README.md").write_text("# hi")
        assert detect_project_type(tmp_path) is None

    def test_marker_in_subdirectory_does_not_count(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "Cargo.toml").write_text("x")
        assert detect_project_type(tmp_path) is None

    def test_missing_directory(self, tmp_path):
        assert detect_project_type(tmp_path / "nope") is None


class TestDetectionPrecedence:
    """First matching rule wins."""

    def test_rust_beats_node(self, tmp_path):
        (tmp_path / "package.json").write_text("{}")
        (tmp_path / "Cargo.toml").write_text("")
        for _ in range(3):
            assert detect_project_type(tmp_path) is ProjectType.RUST

    def test_python_beats_terraform(self, tmp_path):
        (tmp_path / "main.tf").write_text("")
        (tmp_path / "requirements.txt").write_text("")
        assert detect_project_type(tmp_path) is ProjectType.PYTHON

    def test_terraform_beats_nested_ansible(self, tmp_path):
        (tmp_path / "ansible").mkdir()
        (tmp_path / "ansible" / "site.yaml").write_text("")
        (tmp_path / "infra.tf").write_text("")
        assert detect_project_type(tmp_path) is ProjectType.TERRAFORM

    def test_rule_order(self):
        assert [r.project_type for r in RULES] == [
            ProjectType.RUST,
            ProjectType.NODE,
            ProjectType.PYTHON,
            ProjectType.GO,
            ProjectType.JAVA,
            ProjectType.DOTNET,
            ProjectType.TERRAFORM,
            ProjectType.ANSIBLE,
        ]


class TestProjectType:
    def test_display_values(self):
        assert ProjectType.NODE.value == "node"
        assert ProjectType.DOTNET.value == ".net"
        assert str(ProjectType.TERRAFORM) == "terraform"


class TestIsGitRepo:
    def test_git_dir(self, tmp_path):
        (tmp_path / ".git").mkdir()
        assert is_git_repo(tmp_path)

    def test_git_file_is_not_a_repo(self, tmp_path):
        (tmp_path / ".git").write_text("gitdir: /elsewhere\n")
        assert not is_git_repo(tmp_path)

    def test_not_a_repo(self, tmp_path):
        assert not is_git_repo(tmp_path)
