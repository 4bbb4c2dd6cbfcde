"""
Error taxonomy — every fatal outcome of a deployment run.

All errors derive from ``DeployError`` and carry the name of the step
that failed plus any captured command output, so the CLI can print a
final "which step failed and why" line without re-running anything.

    ValidationError          bad or missing input, raised before any side effect
    UnsupportedEnvironment   host cannot be identified or is not supported
    ExternalCommandFailure   a package/service/database command exited non-zero
    VerificationFailure      post-upgrade version check did not match
    IOFailure                file copy/write failed (backup, reconciliation)
    OperatorAbort            the operator declined or gave no credential
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zbxdeploy.adapters.base import CommandResult


class DeployError(Exception):
    """Base class for all deployment failures."""

    def __init__(self, message: str, *, step: str = "", output: str = ""):
        super().__init__(message)
        self.message = message
        self.step = step
        self.output = output

    def __str__(self) -> str:
        return self.message


class ValidationError(DeployError):
    """Invalid command-line input or request."""


class UnsupportedEnvironment(DeployError):
    """The host environment cannot be handled."""


class UnsupportedOS(UnsupportedEnvironment):
    """OS identity facts are missing or unreadable."""


class UnsupportedDistro(UnsupportedEnvironment):
    """The distribution has no repository or package mapping."""


class ExternalCommandFailure(DeployError):
    """An external command returned a non-zero exit status."""

    def __init__(self, message: str, *, step: str = "", result: CommandResult | None = None):
        super().__init__(message, step=step, output=result.output if result else "")
        self.result = result


class VerificationFailure(DeployError):
    """The installed product does not match what was requested."""

    def __init__(self, expected: str, found: str | None, *, step: str = "Version Verification"):
        super().__init__(
            f"Upgrade verification failed. Expected version {expected}, "
            f"found {found or 'nothing'}.",
            step=step,
        )
        self.expected = expected
        self.found = found


class IOFailure(DeployError):
    """A filesystem operation failed."""


class BackupError(IOFailure):
    """A backup set could not be completed."""


class OperatorAbort(DeployError):
    """The operator declined to continue."""
