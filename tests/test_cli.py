"""
Tests for modhatch.cli
======================

Tests use Typer's CliRunner. Every run is offline or stays away from the
network; the autouse ``user_config_dir`` fixture isolates the user config.

Test Organization
-----------------
- TestVersionCommand: --version flag
- TestInitCommand: init with --yes
- TestAddCommand: add
- TestStatusAndVersions: status and versions
- TestConfigCommands: config set / get / list / path
- TestHelpOutput: help text
"""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from modhatch import __version__
from modhatch.cli import app
from modhatch.models import Language, ModuleKind
from modhatch.state import load_state


def flat(output: str) -> str:
    """Undo Rich's line wrapping of long messages."""
    return " ".join(output.split())


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def created(runner: CliRunner, project_dir: Path) -> Path:
    """A neoforge-only Java project created through the CLI."""
    result = runner.invoke(
        app,
        ["init", str(project_dir), "--mod-id", "testmod", "--loader", "neoforge", "--no-ci", "--offline", "--yes"],
    )
    assert result.exit_code == 0, result.output
    return project_dir


# =============================================================================
# Version Command Tests
# =============================================================================


class TestVersionCommand:
    """Tests for the --version flag."""

    def test_version_flag(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_version_short_flag(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


# =============================================================================
# init
# =============================================================================


class TestInitCommand:
    """Tests for the init command."""

    def test_defaults(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(
            app, ["init", str(project_dir), "--mod-id", "testmod", "--offline", "--yes"]
        )

        assert result.exit_code == 0, result.output
        assert "Project created successfully" in result.stdout
        record = load_state(project_dir)
        assert record.project.package == "com.example.testmod"
        assert record.project.mod_name == "Testmod"
        assert record.enabled_modules == frozenset(ModuleKind)
        assert record.features.ci
        assert (project_dir / "run" / "options.txt").is_file()

    def test_all_options(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(
            app,
            [
                "init", str(project_dir),
                "--mod-id", "my_mod",
                "--name", "My Mod",
                "--package", "io.github.me.mymod",
                "--author", "Me",
                "--language", "kotlin",
                "--loader", "fabric",
                "--no-ci",
                "--minecraft-version", "1.21.1",
                "--offline",
                "--yes",
            ],
        )

        assert result.exit_code == 0, result.output
        record = load_state(project_dir)
        assert record.project.language is Language.KOTLIN
        assert record.enabled_modules == frozenset({ModuleKind.COMMON, ModuleKind.FABRIC})
        assert record.versions.minecraft == "1.21.1"
        assert (project_dir / "common/src/main/kotlin/io/github/me/mymod/MyModMod.kt").is_file()
        assert not (project_dir / ".github").exists()

    def test_comma_separated_loaders(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["init", str(project_dir), "--mod-id", "testmod", "--loader", "neoforge,fabric", "--offline", "-y"],
        )
        assert result.exit_code == 0, result.output
        assert load_state(project_dir).modules.fabric

    def test_user_defaults(self, runner: CliRunner, project_dir: Path) -> None:
        runner.invoke(app, ["config", "set", "author", "Config Author"])
        runner.invoke(app, ["config", "set", "language", "kotlin"])

        result = runner.invoke(app, ["init", str(project_dir), "--mod-id", "testmod", "--offline", "-y"])

        assert result.exit_code == 0, result.output
        record = load_state(project_dir)
        assert record.project.author == "Config Author"
        assert record.project.language is Language.KOTLIN

    def test_invalid_mod_id_writes_nothing(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(app, ["init", str(project_dir), "--mod-id", "Bad-Id", "--offline", "-y"])

        assert result.exit_code == 1
        assert "Invalid mod ID" in result.stdout
        assert not project_dir.exists()

    def test_invalid_package(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(
            app, ["init", str(project_dir), "--mod-id", "testmod", "--package", "com..x", "-y"]
        )
        assert result.exit_code == 1
        assert not project_dir.exists()

    def test_unquotable_name_writes_nothing(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["init", str(project_dir), "--mod-id", "testmod", "--name", 'The "Best" Mod', "--offline", "-y"],
        )

        assert result.exit_code == 1
        assert "Invalid display name" in flat(result.stdout)
        assert not project_dir.exists()

    def test_invalid_loader(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(
            app, ["init", str(project_dir), "--mod-id", "testmod", "--loader", "forge", "-y"]
        )
        assert result.exit_code == 1
        assert "Invalid loader" in result.stdout

    def test_yes_requires_mod_id(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(app, ["init", str(project_dir), "--yes"])
        assert result.exit_code == 1
        assert "--mod-id is required" in result.stdout

    def test_existing_project(self, runner: CliRunner, created: Path) -> None:
        result = runner.invoke(app, ["init", str(created), "--mod-id", "testmod", "--offline", "-y"])
        assert result.exit_code == 1
        assert "modhatch add" in flat(result.stdout)


# =============================================================================
# add
# =============================================================================


class TestAddCommand:
    """Tests for the add command."""

    def test_add_loader(self, runner: CliRunner, created: Path) -> None:
        result = runner.invoke(app, ["add", "fabric", "ci", "--path", str(created)])

        assert result.exit_code == 0, result.output
        assert "Added fabric, ci" in result.stdout
        record = load_state(created)
        assert record.modules.fabric
        assert record.features.ci

    def test_already_enabled(self, runner: CliRunner, created: Path) -> None:
        result = runner.invoke(app, ["add", "neoforge", "--path", str(created)])
        assert result.exit_code == 0, result.output
        assert "Nothing to do" in result.stdout

    def test_unknown_feature(self, runner: CliRunner, created: Path) -> None:
        result = runner.invoke(app, ["add", "forge", "--path", str(created)])
        assert result.exit_code == 1
        assert "Unknown feature: forge" in result.stdout

    def test_not_a_project(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(app, ["add", "ci", "--path", str(tmp_path)])
        assert result.exit_code == 1
        assert "modhatch init" in flat(result.stdout)

    def test_kotlin(self, runner: CliRunner, created: Path) -> None:
        result = runner.invoke(app, ["add", "kotlin", "--path", str(created)])
        assert result.exit_code == 0, result.output
        assert load_state(created).project.language is Language.KOTLIN

    def test_existing_file_needs_force(self, runner: CliRunner, created: Path) -> None:
        workflow = created / ".github" / "workflows" / "build.yml"
        workflow.parent.mkdir(parents=True)
        workflow.write_text("name: mine\n", encoding="utf-8")

        result = runner.invoke(app, ["add", "ci", "--path", str(created)])
        assert result.exit_code == 1
        assert workflow.read_text(encoding="utf-8") == "name: mine\n"

        result = runner.invoke(app, ["add", "ci", "--force", "--path", str(created)])
        assert result.exit_code == 0, result.output
        assert "testmod-jars" in workflow.read_text(encoding="utf-8")


# =============================================================================
# status / versions
# =============================================================================


class TestStatusAndVersions:
    """Tests for the status and versions commands."""

    def test_status(self, runner: CliRunner, created: Path) -> None:
        result = runner.invoke(app, ["status", "--path", str(created)])
        assert result.exit_code == 0, result.output
        assert "com.example.testmod" in result.stdout
        assert "common, neoforge" in result.stdout
        assert "1.21.4" in result.stdout

    def test_status_without_project(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(app, ["status", "--path", str(tmp_path)])
        assert result.exit_code == 1

    def test_versions_offline(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(app, ["versions", "--offline", "--path", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "1.21.4" in result.stdout
        assert "default" in result.stdout

    def test_versions_uses_recorded_versions(self, runner: CliRunner, tmp_path: Path) -> None:
        project = tmp_path / "pinned"
        runner.invoke(
            app,
            ["init", str(project), "--mod-id", "pinned", "--minecraft-version", "1.21.1", "--offline", "-y"],
        )
        result = runner.invoke(app, ["versions", "--offline", "--path", str(project)])
        assert "1.21.1" in result.stdout
        assert "prior" in result.stdout


# =============================================================================
# config
# =============================================================================


class TestConfigCommands:
    """Tests for the config sub-commands."""

    def test_set_and_get(self, runner: CliRunner, user_config_dir: Path) -> None:
        result = runner.invoke(app, ["config", "set", "autoJump", "yes"])
        assert result.exit_code == 0, result.output
        assert (user_config_dir / "config.toml").is_file()

        result = runner.invoke(app, ["config", "get", "auto_jump"])
        assert result.stdout.strip() == "true"

    def test_get_unset(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["config", "get", "author"])
        assert result.exit_code == 0
        assert "(not set)" in result.stdout

    def test_set_invalid(self, runner: CliRunner, user_config_dir: Path) -> None:
        result = runner.invoke(app, ["config", "set", "fullscreen", "maybe"])
        assert result.exit_code == 1
        assert "Invalid boolean" in result.stdout
        assert not (user_config_dir / "config.toml").exists()

    def test_set_unquotable_author(self, runner: CliRunner, user_config_dir: Path) -> None:
        result = runner.invoke(app, ["config", "set", "author", 'Tom "TJ" Jones'])
        assert result.exit_code == 1
        assert "Invalid author" in flat(result.stdout)
        assert not (user_config_dir / "config.toml").exists()

    def test_unknown_key(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["config", "get", "fov"])
        assert result.exit_code == 1
        assert "Unknown config key" in result.stdout

    def test_list(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["config", "list"])
        assert result.exit_code == 0
        assert "pauseOnLostFocus" in result.stdout

    def test_path(self, runner: CliRunner, user_config_dir: Path) -> None:
        result = runner.invoke(app, ["config", "path"])
        assert result.exit_code == 0
        assert "config.toml" in result.stdout


# =============================================================================
# Help Output Tests
# =============================================================================


class TestHelpOutput:
    """Tests for help text."""

    def test_main_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "init" in result.stdout
        assert "add" in result.stdout

    def test_no_args_shows_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, [])
        assert "Usage" in result.stdout
