"""
Mock runner — scripted test double for the command runner.

Succeeds for everything by default. Responses are matched on an argv
prefix, so ``set_failure(["apt", "install"])`` fails every
``apt install ...`` call while leaving ``apt update`` alone.
"""

from __future__ import annotations

from pathlib import Path

from zbxdeploy.adapters.base import CommandResult, CommandRunner


class MockRunner(CommandRunner):
    """Record every call and replay canned results.

    When several prefixes match, the longest one wins.
    """

    def __init__(self, default_output: str = ""):
        self._default_output = default_output
        self._responses: dict[tuple[str, ...], tuple[int, str]] = {}
        self._call_log: list[list[str]] = []
        self._inputs: list[str | None] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_log(self) -> list[list[str]]:
        """Every argv this runner was asked to execute, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def inputs(self) -> list[str | None]:
        """stdin text passed with each call."""
        return self._inputs

    def set_output(self, prefix: list[str], output: str, returncode: int = 0) -> None:
        """Return ``output`` for commands starting with ``prefix``."""
        self._responses[tuple(prefix)] = (returncode, output)

    def set_failure(self, prefix: list[str], output: str = "Mock failure", returncode: int = 1) -> None:
        """Fail commands starting with ``prefix``."""
        self._responses[tuple(prefix)] = (returncode, output)

    def ran(self, prefix: list[str]) -> bool:
        """Whether any recorded call starts with ``prefix``."""
        return any(self._matches(tuple(prefix), argv) for argv in self._call_log)

    def calls_matching(self, prefix: list[str]) -> list[list[str]]:
        return [argv for argv in self._call_log if self._matches(tuple(prefix), argv)]

    def run(
        self,
        argv: list[str],
        *,
        input_text: str | None = None,
        env: dict[str, str] | None = None,
        stdout_path: Path | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        self._call_log.append(list(argv))
        self._inputs.append(input_text)

        returncode, output = 0, self._default_output
        best = -1
        for prefix, response in self._responses.items():
            if self._matches(prefix, argv) and len(prefix) > best:
                best = len(prefix)
                returncode, output = response

        if stdout_path is not None and returncode == 0:
            Path(stdout_path).write_text(output, encoding="utf-8")
            output = ""

        return CommandResult(argv=list(argv), returncode=returncode, output=output)

    def reset(self) -> None:
        """Clear call log and canned responses."""
        self._call_log.clear()
        self._inputs.clear()
        self._responses.clear()

    @staticmethod
    def _matches(prefix: tuple[str, ...], argv: list[str]) -> bool:
        return tuple(argv[: len(prefix)]) == prefix
