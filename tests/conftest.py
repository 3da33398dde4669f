"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from provisioner.adapters.mock import MockRunner
from provisioner.core.models.settings import Settings
from provisioner.core.models.step import SatisfactionState, Step


@pytest.fixture
def home(tmp_path: Path, monkeypatch) -> Path:
    """Isolated $HOME so nothing touches the real startup files."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.delenv("ZSH_CUSTOM", raising=False)
    return home_dir


@pytest.fixture
def rc_file(home: Path) -> Path:
    """A default oh-my-zsh style ~/.zshrc."""
    rc = home / ".zshrc"
    rc.write_text('export ZSH="$HOME/.oh-my-zsh"\nZSH_THEME="robbyrussell"\n', encoding="utf-8")
    return rc


@pytest.fixture
def runner() -> MockRunner:
    return MockRunner()


@pytest.fixture
def settings(rc_file: Path) -> Settings:
    return Settings(shell_rc=str(rc_file), android_sdk=str(rc_file.parent / "Android" / "sdk"))


class Spy:
    """Callable that counts invocations and can be told to fail."""

    def __init__(self, error: Exception | None = None):
        self.calls = 0
        self.error = error

    def __call__(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


def make_step(
    step_id: str,
    state: SatisfactionState = SatisfactionState.MISSING,
    apply=None,
    **kwargs,
) -> Step:
    """Step with a fixed probe result and a spy apply."""
    return Step(
        id=step_id,
        description=kwargs.pop("description", step_id),
        probe=lambda: state,
        apply=apply if apply is not None else Spy(),
        **kwargs,
    )
