"""
Tests for probes — read-only state checks.
"""

from pathlib import Path

import pytest

from provisioner.adapters.mock import MockRunner
from provisioner.adapters.packages.asdf import Asdf
from provisioner.adapters.packages.homebrew import Homebrew
from provisioner.core.errors import ProbeError
from provisioner.core.models.config_block import ConfigBlock
from provisioner.core.models.step import SatisfactionState
from provisioner.core.services import probes
from provisioner.core.services.config_blocks import ensure_block

SATISFIED = SatisfactionState.SATISFIED
MISSING = SatisfactionState.MISSING
STALE = SatisfactionState.STALE


class TestInstalled:
    @pytest.mark.parametrize(
        "present,updatable,expected",
        [
            (False, False, MISSING),
            (False, True, MISSING),
            (True, False, SATISFIED),
            (True, True, STALE),
        ],
    )
    def test_mapping(self, present, updatable, expected):
        assert probes.installed(present, updatable) is expected


class TestFilesystemProbes:
    def test_directory_exists(self, tmp_path: Path):
        assert probes.directory_exists(tmp_path)() is SATISFIED
        assert probes.directory_exists(tmp_path / "nope")() is MISSING

    def test_directory_exists_updatable(self, tmp_path: Path):
        assert probes.directory_exists(tmp_path, updatable=True)() is STALE

    def test_file_has_line(self, rc_file: Path):
        assert probes.file_has_line(rc_file, 'ZSH_THEME="robbyrussell"')() is SATISFIED
        assert probes.file_has_line(rc_file, 'ZSH_THEME="agnoster"')() is MISSING

    def test_unreadable_file_raises_probe_error(self, tmp_path: Path):
        # A directory where a file is expected cannot be read.
        target = tmp_path / "rc"
        target.mkdir()
        with pytest.raises(ProbeError):
            probes.file_has_line(target, "x")()

    def test_block_in_sync(self, rc_file: Path):
        block = ConfigBlock(marker="# X", content="export X=1", target_file=str(rc_file))
        probe = probes.block_in_sync(block)
        assert probe() is MISSING
        ensure_block(block)
        assert probe() is SATISFIED

    def test_block_diverged_is_stale(self, rc_file: Path):
        ensure_block(ConfigBlock(marker="# X", content="export X=1", target_file=str(rc_file)))
        block = ConfigBlock(marker="# X", content="export X=2", target_file=str(rc_file))
        assert probes.block_in_sync(block)() is STALE

    def test_probes_do_not_write(self, tmp_path: Path):
        rc = tmp_path / ".zshrc"
        block = ConfigBlock(marker="# X", content="export X=1", target_file=str(rc))
        probes.block_in_sync(block)()
        probes.file_has_line(rc, "x")()
        assert not rc.exists()


class TestCommandProbes:
    def test_command_available(self, runner: MockRunner):
        probe = probes.command_available(runner, "zsh")
        assert probe() is MISSING
        runner.set_available("zsh")
        assert probe() is SATISFIED

    def test_command_succeeds(self, runner: MockRunner):
        runner.set_failure(["xcode-select", "-p"])
        assert probes.command_succeeds(runner, ["xcode-select", "-p"])() is MISSING
        runner.set_response(["xcode-select", "-p"], stdout="/Library/Developer/CommandLineTools\n")
        assert probes.command_succeeds(runner, ["xcode-select", "-p"])() is SATISFIED

    def test_command_succeeds_expect_output(self, runner: MockRunner):
        runner.set_response(["xcode-select", "-p"], stdout="/Library/Developer/CommandLineTools\n")
        probe = probes.command_succeeds(
            runner, ["xcode-select", "-p"], expect_output="/Applications/Xcode.app"
        )
        assert probe() is MISSING

    def test_login_shell_from_directory_service(self, runner: MockRunner, monkeypatch):
        monkeypatch.setenv("USER", "dev")
        monkeypatch.setenv("LOGNAME", "dev")
        monkeypatch.setenv("SHELL", "/bin/bash")
        runner.set_response(
            ["dscl", ".", "-read", "/Users/dev", "UserShell"], stdout="UserShell: /bin/zsh\n"
        )
        assert probes.login_shell_is(runner, "zsh")() is SATISFIED

    def test_login_shell_falls_back_to_env(self, runner: MockRunner, monkeypatch):
        monkeypatch.setenv("USER", "dev")
        monkeypatch.setenv("LOGNAME", "dev")
        runner.set_failure(["dscl", ".", "-read", "/Users/dev", "UserShell"])
        monkeypatch.setenv("SHELL", "/bin/zsh")
        assert probes.login_shell_is(runner, "zsh")() is SATISFIED
        monkeypatch.setenv("SHELL", "/usr/local/bin/bash")
        assert probes.login_shell_is(runner, "zsh")() is MISSING


class TestPackageProbes:
    def test_package_installed(self, runner: MockRunner):
        runner.set_available("brew")
        brew = Homebrew(runner, machine="x86_64")
        runner.set_response(
            ["/usr/local/bin/brew", "list", "--versions", "--cask", "slack"], stdout="slack 4.36.140\n"
        )
        assert probes.package_installed(brew, "slack", cask=True)() is SATISFIED
        assert probes.package_installed(brew, "slack", cask=True, updatable=True)() is STALE

    def test_package_missing(self, runner: MockRunner):
        runner.set_available("brew")
        brew = Homebrew(runner, machine="x86_64")
        runner.set_failure(["/usr/local/bin/brew", "list", "--versions", "zsh"], stderr="")
        assert probes.package_installed(brew, "zsh")() is MISSING

    def test_plugin_registered(self, runner: MockRunner):
        asdf = Asdf(runner)
        runner.set_response(["asdf", "plugin", "list"], stdout="nodejs\nruby\n")
        assert probes.plugin_registered(asdf, "ruby")() is SATISFIED
        assert probes.plugin_registered(asdf, "java")() is MISSING

    def test_runtime_selected_pinned(self, runner: MockRunner):
        asdf = Asdf(runner)
        runner.set_response(["asdf", "current", "java"], stdout="java openjdk-18 /home/u/.tool-versions\n")
        assert probes.runtime_selected(asdf, "java", "openjdk-18")() is SATISFIED
        assert probes.runtime_selected(asdf, "java", "openjdk-21")() is MISSING

    def test_runtime_selected_latest(self, runner: MockRunner):
        asdf = Asdf(runner)
        runner.set_response(["asdf", "latest", "ruby"], stdout="3.3.0\n")
        runner.set_response(["asdf", "current", "ruby"], stdout="ruby 3.2.2 /home/u/.tool-versions\n")
        assert probes.runtime_selected(asdf, "ruby", "latest")() is MISSING
        runner.set_response(["asdf", "current", "ruby"], stdout="ruby 3.3.0 /home/u/.tool-versions\n")
        assert probes.runtime_selected(asdf, "ruby", "latest")() is SATISFIED

    def test_runtime_selected_unresolvable_latest(self, runner: MockRunner):
        asdf = Asdf(runner)
        runner.set_failure(["asdf", "latest", "ruby"])
        assert probes.runtime_selected(asdf, "ruby", "latest")() is MISSING
