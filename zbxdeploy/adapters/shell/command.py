"""
Subprocess runner — the single place ``subprocess.run`` is called.

Output is captured with stderr folded into stdout so the log shows what
an operator would have seen on a terminal.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from pathlib import Path

from zbxdeploy.adapters.base import (
    EXIT_NOT_FOUND,
    EXIT_TIMEOUT,
    CommandResult,
    CommandRunner,
)

logger = logging.getLogger(__name__)

# Keep at most this much output per command in memory
_MAX_OUTPUT_CHARS = 20_000


class SubprocessRunner(CommandRunner):
    """Execute commands on the local host.

    Args:
        default_timeout: Seconds allowed per command when the caller
            gives none.
    """

    def __init__(self, default_timeout: int = 1800):
        self._default_timeout = default_timeout

    @property
    def name(self) -> str:
        return "subprocess"

    def run(
        self,
        argv: list[str],
        *,
        input_text: str | None = None,
        env: dict[str, str] | None = None,
        stdout_path: Path | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        timeout = timeout or self._default_timeout
        full_env = os.environ.copy()
        if env:
            full_env.update(env)

        start = time.monotonic()
        try:
            if stdout_path is not None:
                with open(stdout_path, "w", encoding="utf-8") as out:
                    proc = subprocess.run(
                        argv,
                        stdout=out,
                        stderr=subprocess.PIPE,
                        input=input_text,
                        text=True,
                        errors="replace",
                        env=full_env,
                        timeout=timeout,
                    )
                output = proc.stderr or ""
            else:
                proc = subprocess.run(
                    argv,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    input=input_text,
                    text=True,
                    errors="replace",
                    env=full_env,
                    timeout=timeout,
                )
                output = proc.stdout or ""
            returncode = proc.returncode

        except FileNotFoundError:
            returncode = EXIT_NOT_FOUND
            output = f"Command not found: {argv[0]}"
        except subprocess.TimeoutExpired:
            returncode = EXIT_TIMEOUT
            output = f"Command timed out after {timeout}s"
        except Exception as e:
            returncode = EXIT_NOT_FOUND
            output = f"Command execution error: {e}"

        elapsed_ms = int((time.monotonic() - start) * 1000)
        return CommandResult(
            argv=list(argv),
            returncode=returncode,
            output=output[-_MAX_OUTPUT_CHARS:],
            duration_ms=elapsed_ms,
        )
