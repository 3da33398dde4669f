"""
Tests for CLI commands.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from provisioner.adapters.mock import MockRunner
from provisioner.adapters.packages import homebrew
from provisioner.core.use_cases import provision
from provisioner.main import cli


@pytest.fixture
def machine(monkeypatch) -> MockRunner:
    """Route every CLI run through a mock runner on an Intel Mac with Homebrew."""
    mock = MockRunner()
    mock.set_available("brew")
    real_build = provision.build_registry

    def build_registry(settings, runner=None, machine=None, only=None):
        return real_build(settings, runner=mock, machine="x86_64", only=only)

    monkeypatch.setattr(provision, "build_registry", build_registry)
    monkeypatch.setenv("SHELL", "/bin/zsh")
    return mock


@pytest.fixture
def config(home: Path, rc_file: Path) -> Path:
    path = home / "provisioner.yml"
    path.write_text(f"shell_rc: {rc_file}\nandroid_sdk: {home / 'sdk'}\n")
    return path


class TestCLI:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Workstation Provisioner" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestPlan:
    def test_plan(self, config: Path, machine: MockRunner):
        result = CliRunner().invoke(cli, ["--config", str(config), "plan"])
        assert result.exit_code == 0
        assert "homebrew" in result.output
        assert "[critical]" in result.output
        assert machine.call_count == 0

    def test_plan_json_only(self, config: Path, machine: MockRunner):
        result = CliRunner().invoke(cli, ["--config", str(config), "plan", "--only", "ruby", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [s["id"] for s in data["steps"]] == ["homebrew", "asdf", "ruby-plugin", "ruby"]
        assert data["steps"][0]["critical"] is True

    def test_plan_profile(self, config: Path, machine: MockRunner):
        result = CliRunner().invoke(cli, ["--config", str(config), "plan", "--profile", "basic", "--json"])
        ids = [s["id"] for s in json.loads(result.output)["steps"]]
        assert "slack" in ids
        assert "flutter" not in ids

    def test_plan_unknown_step(self, config: Path, machine: MockRunner):
        result = CliRunner().invoke(cli, ["--config", str(config), "plan", "--only", "cobol"])
        assert result.exit_code == 2
        assert "cobol" in result.output

    def test_unknown_profile_is_usage_error(self, config: Path):
        result = CliRunner().invoke(cli, ["--config", str(config), "plan", "--profile", "gamedev"])
        assert result.exit_code == 2


class TestRun:
    def test_dry_run(self, config: Path, rc_file: Path, machine: MockRunner):
        before = rc_file.read_bytes()
        result = CliRunner().invoke(cli, ["--config", str(config), "run", "--dry-run"])
        assert result.exit_code == 0
        assert "would apply" in result.output
        assert "Result:" in result.output
        assert rc_file.read_bytes() == before

    def test_run_applies_block(self, config: Path, rc_file: Path, machine: MockRunner):
        result = CliRunner().invoke(cli, ["--config", str(config), "run", "--only", "asdf-init"])
        assert result.exit_code == 0
        assert "# asdf version manager" in rc_file.read_text()
        assert "language-runtime" in result.output

        again = CliRunner().invoke(cli, ["--config", str(config), "run", "--only", "asdf-init", "--json"])
        data = json.loads(again.output)
        outcome = next(o for o in data["report"]["outcomes"] if o["step_id"] == "asdf-init")
        assert outcome["status"] == "skipped"
        assert outcome["reason"] == "satisfied"

    def test_conflict_is_reported(self, config: Path, rc_file: Path, machine: MockRunner):
        with rc_file.open("a") as f:
            f.write("\n# asdf version manager\n. /somewhere/else/asdf.sh\n")
        result = CliRunner().invoke(cli, ["--config", str(config), "run", "--only", "asdf-init"])
        assert result.exit_code == 0
        assert "--replace-conflicts" in result.output
        assert "/somewhere/else" in rc_file.read_text()

    def test_replace_conflicts_flag(self, config: Path, rc_file: Path, machine: MockRunner):
        with rc_file.open("a") as f:
            f.write("\n# asdf version manager\n. /somewhere/else/asdf.sh\n")
        result = CliRunner().invoke(
            cli, ["--config", str(config), "run", "--only", "asdf-init", "--replace-conflicts"]
        )
        assert result.exit_code == 0
        assert "/somewhere/else" not in rc_file.read_text()

    def test_critical_failure_exits_nonzero(self, config: Path, monkeypatch, tmp_path: Path):
        bare = MockRunner()
        real_build = provision.build_registry
        monkeypatch.setattr(
            provision,
            "build_registry",
            lambda settings, runner=None, machine=None, only=None: real_build(
                settings, runner=bare, machine="x86_64", only=only
            ),
        )
        monkeypatch.setattr(homebrew, "default_brew_path", lambda m=None: str(tmp_path / "none"))
        bare.set_failure(
            f'/bin/bash -c "$(curl -fsSL {homebrew.INSTALL_SCRIPT_URL})"', stderr="no network"
        )
        result = CliRunner().invoke(cli, ["--config", str(config), "run"])
        assert result.exit_code == 1
        assert "Halted" in result.output
        assert "no network" in result.output

    def test_missing_config(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "nope.yml"), "run"])
        assert result.exit_code == 2
        assert "not found" in result.output

    def test_invalid_config_json(self, tmp_path: Path):
        path = tmp_path / "provisioner.yml"
        path.write_text("profiles: [gamedev]\n")
        result = CliRunner().invoke(cli, ["--config", str(path), "run", "--json"])
        assert result.exit_code == 2
        assert "error" in json.loads(result.output)


class TestStatus:
    def test_status(self, config: Path, rc_file: Path, machine: MockRunner):
        before = rc_file.read_bytes()
        result = CliRunner().invoke(cli, ["--config", str(config), "status", "--only", "android-sdk"])
        assert result.exit_code == 0
        assert "would be applied" in result.output
        assert rc_file.read_bytes() == before

    def test_status_json(self, config: Path, machine: MockRunner):
        result = CliRunner().invoke(cli, ["--config", str(config), "status", "--only", "zsh", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["report"]["dry_run"] is True


class TestConfigCheck:
    def test_valid(self, config: Path, machine: MockRunner):
        result = CliRunner().invoke(cli, ["--config", str(config), "config", "check"])
        assert result.exit_code == 0
        assert "valid" in result.output

    def test_valid_json(self, config: Path, machine: MockRunner):
        result = CliRunner().invoke(cli, ["--config", str(config), "config", "check", "--json"])
        data = json.loads(result.output)
        assert data["valid"] is True
        assert data["steps"] > 0

    def test_invalid(self, tmp_path: Path):
        path = tmp_path / "provisioner.yml"
        path.write_text("command_timeout: -5\n")
        result = CliRunner().invoke(cli, ["--config", str(path), "config", "check"])
        assert result.exit_code == 2
        assert "Configuration error" in result.output
