"""
Error taxonomy for the provisioning engine.

Only registry and configuration errors are meant to escape to the
caller. Everything raised while probing or applying a single step is
captured by the executor into that step's outcome.
"""

from __future__ import annotations


class ProvisionerError(Exception):
    """Base class for all provisioner errors."""


class ProbeError(ProvisionerError):
    """The environment could not be inspected (e.g. permission denied).

    "Not installed" is never a ProbeError; it is a normal ``missing`` state.
    """


class ApplyFailure(ProvisionerError):
    """An external action reported failure."""

    def __init__(
        self,
        message: str,
        command: str = "",
        return_code: int | None = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = command
        self.return_code = return_code
        self.stderr = stderr

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr:
            return f"{base}\n{self.stderr}"
        return base


class InvalidRegistry(ProvisionerError):
    """Declared steps violate id uniqueness, references, or acyclicity."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid registry")


class ConfigConflict(ProvisionerError):
    """A config block exists with content different from the desired one."""

    def __init__(self, marker: str, target_file: str):
        super().__init__(
            f"Block '{marker}' in {target_file} differs from the desired content "
            "(re-run with --replace-conflicts to overwrite it)"
        )
        self.marker = marker
        self.target_file = target_file


class ConfigError(ProvisionerError):
    """Raised when the settings file is invalid or missing."""
