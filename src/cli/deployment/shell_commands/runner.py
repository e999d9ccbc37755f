"""Command runner for executing shell commands.

This module provides the base command execution abstraction used by all
specialized command modules. Pipelines depend on the CommandRunner
interface only; SubprocessRunner is the production implementation.
"""

from __future__ import annotations

import asyncio
import os
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger

from ..cancellation import CancellationToken
from ..errors import CancellationError, CommandExecutionError
from .types import CommandResult, RunArgs


class CommandRunner(ABC):
    """Executes external commands and returns structured results.

    Implementations must not raise on a non-zero exit code; callers decide
    what a failure means (see ``run_checked``).
    """

    @abstractmethod
    async def run(
        self, args: RunArgs, token: CancellationToken | None = None
    ) -> CommandResult:
        """Execute a command.

        Args:
            args: Command invocation
            token: Cancellation token; when it fires the command is aborted

        Returns:
            CommandResult with success status, output, and return code

        Raises:
            CancellationError: If the token fires before the command finishes
        """
        ...

    async def run_checked(
        self,
        args: RunArgs,
        token: CancellationToken | None = None,
        *,
        message: str | None = None,
    ) -> CommandResult:
        """Execute a command, raising on non-zero exit.

        Raises:
            CommandExecutionError: If the command exits with non-zero code
        """
        result = await self.run(args, token)
        if not result.success:
            raise CommandExecutionError(
                message or f"command failed: {args.command}",
                command=args.command,
                result=result,
            )
        return result


class SubprocessRunner(CommandRunner):
    """Runs commands as child processes of the current interpreter."""

    def __init__(self, project_root: Path | None = None) -> None:
        """Initialize the runner.

        Args:
            project_root: Default working directory for commands
        """
        self.project_root = project_root

    async def run(
        self, args: RunArgs, token: CancellationToken | None = None
    ) -> CommandResult:
        if token:
            token.raise_if_cancelled()

        env = None
        if args.env:
            env = {**os.environ, **args.env}

        logger.debug(f"Running: {args.command}")
        try:
            process = await asyncio.create_subprocess_exec(
                *args.cmd,
                cwd=args.cwd or self.project_root,
                env=env,
                stdin=asyncio.subprocess.PIPE
                if args.stdin is not None
                else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            return CommandResult(
                success=False,
                stderr=f"executable not found: {args.cmd[0]}",
                returncode=127,
            )

        stdin = args.stdin.encode() if args.stdin is not None else None
        try:
            if token:
                stdout, stderr = await token.guard(process.communicate(stdin))
            else:
                stdout, stderr = await process.communicate(stdin)
        except (CancellationError, asyncio.CancelledError):
            if process.returncode is None:
                process.kill()
                await process.wait()
            logger.debug(f"Aborted: {args.command}")
            raise

        returncode = process.returncode or 0
        logger.debug(f"Exit {returncode}: {args.command}")
        return CommandResult(
            success=returncode == 0,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            returncode=returncode,
        )
