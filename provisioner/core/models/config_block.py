"""
ConfigBlock model — a uniquely-marked fragment of a shell startup file.

A block is a marker comment line followed by one or more content
lines. The body of a block ends at the first blank line, so content
itself may not contain blank lines.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator


class ConfigBlock(BaseModel):
    """A named fragment maintained idempotently inside a text file."""

    model_config = ConfigDict(frozen=True)

    marker: str          # e.g. "# Android SDK"
    content: str
    target_file: str     # "~" is expanded on use

    @field_validator("marker")
    @classmethod
    def _check_marker(cls, value: str) -> str:
        if "\n" in value:
            raise ValueError("marker must be a single line")
        if not value.startswith("#"):
            raise ValueError("marker must be a shell comment starting with '#'")
        return value

    @field_validator("content")
    @classmethod
    def _check_content(cls, value: str) -> str:
        value = value.strip("\n")
        if not value.strip():
            raise ValueError("content must not be empty")
        if any(not line.strip() for line in value.split("\n")):
            raise ValueError("content must not contain blank lines")
        return value

    @property
    def path(self) -> Path:
        return Path(self.target_file).expanduser()

    @property
    def lines(self) -> list[str]:
        return self.content.split("\n")
