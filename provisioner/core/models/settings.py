"""
Settings model — operator configuration for a provisioning run.

Loaded from provisioner.yml by the config loader. Every field has a
default; without a settings file, both profiles are provisioned into
~/.zshrc.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

PROFILES = ("basic", "app-dev")


class RuntimeSpec(BaseModel):
    """One asdf-managed runtime: plugin name, version, plugin source."""

    name: str
    version: str = "latest"
    source_url: str | None = None


class Settings(BaseModel):
    """Validated provisioner.yml contents."""

    shell_rc: str = "~/.zshrc"
    profiles: list[str] = Field(default_factory=lambda: list(PROFILES))

    # Behaviour
    update_existing: bool = False      # installed units probe as stale
    replace_conflicts: bool = False    # operator confirmation to overwrite blocks
    command_timeout: int | None = None
    stream_output: bool = True

    # Selection
    skip: list[str] = Field(default_factory=list)
    critical: list[str] = Field(default_factory=list)

    # Runtime versions, e.g. {"java": "openjdk-21"}
    runtimes: dict[str, str] = Field(default_factory=dict)

    android_sdk: str = "~/Library/Android/sdk"

    @field_validator("profiles")
    @classmethod
    def _known_profiles(cls, value: list[str]) -> list[str]:
        unknown = [p for p in value if p not in PROFILES]
        if unknown:
            raise ValueError(
                f"Unknown profile(s): {', '.join(unknown)}. Valid: {', '.join(PROFILES)}"
            )
        return value

    @field_validator("command_timeout")
    @classmethod
    def _positive_timeout(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError("command_timeout must be positive")
        return value

    @property
    def rc_path(self) -> Path:
        return Path(self.shell_rc).expanduser()

    @property
    def android_sdk_path(self) -> Path:
        return Path(self.android_sdk).expanduser()

    def runtime_version(self, name: str, default: str = "latest") -> str:
        return self.runtimes.get(name, default)
