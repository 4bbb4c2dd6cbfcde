"""
Command runner contract — the only way the deployer touches the host.

The lifecycle controller never calls ``subprocess`` itself. It hands an
argv list to a ``CommandRunner`` and gets back a ``CommandResult``
carrying the exit status and captured output. Runners NEVER raise for
process failures; a command that cannot even be launched comes back as
a failed result.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

# Exit statuses used for failures that never produced a real exit code
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class CommandResult(BaseModel):
    """Outcome of one external command."""

    argv: list[str]
    returncode: int = 0
    output: str = ""                 # stdout + stderr, interleaved
    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def failed(self) -> bool:
        return self.returncode != 0

    @property
    def command_line(self) -> str:
        return " ".join(self.argv)


class CommandRunner(ABC):
    """Abstract runner for external programs.

    Subclasses:
        SubprocessRunner: real execution (``adapters.shell.command``)
        MockRunner: scripted responses for tests (``adapters.mock``)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Runner identifier."""

    @abstractmethod
    def run(
        self,
        argv: list[str],
        *,
        input_text: str | None = None,
        env: dict[str, str] | None = None,
        stdout_path: Path | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        """Run ``argv`` to completion.

        Args:
            argv: Program and arguments. No shell is involved.
            input_text: Text fed to the program's stdin.
            env: Extra environment variables layered on the current env.
            stdout_path: Stream stdout into this file instead of capturing
                it (database dumps). stderr is still captured.
            timeout: Seconds before the command is killed.

        MUST never raise for command failures.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
