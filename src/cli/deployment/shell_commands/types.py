"""Data types for shell command execution.

This module contains the request and result types shared by the command
runner and the specialized command modules.
"""

from __future__ import annotations

import shlex
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

REDACTED = "***"


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0


@dataclass(frozen=True)
class RunArgs:
    """A single command invocation.

    Attributes:
        cmd: Executable and arguments
        stdin: Text written to the process's standard input
        env: Extra environment variables layered over the current process env
        cwd: Working directory (runner default when None)
        secrets: Values that must never appear in logs or error messages
    """

    cmd: Sequence[str]
    stdin: str | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    cwd: Path | None = None
    secrets: Sequence[str] = ()

    @property
    def command(self) -> str:
        """Shell-quoted command line with secrets redacted."""
        line = shlex.join(self.cmd)
        for secret in self.secrets:
            if secret:
                line = line.replace(secret, REDACTED)
        return line
