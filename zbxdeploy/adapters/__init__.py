"""Adapters — the boundary to external programs and the operator.

Public re-exports for convenient access.
"""

from zbxdeploy.adapters.base import CommandResult, CommandRunner
from zbxdeploy.adapters.mock import MockRunner
from zbxdeploy.adapters.prompt import ClickPrompter, Prompter, ScriptedPrompter
from zbxdeploy.adapters.shell.command import SubprocessRunner

__all__ = [
    "ClickPrompter",
    "CommandResult",
    "CommandRunner",
    "MockRunner",
    "Prompter",
    "ScriptedPrompter",
    "SubprocessRunner",
]
