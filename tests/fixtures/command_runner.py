"""Record-and-replay command runner for pipeline tests."""

from __future__ import annotations

from collections.abc import Callable

from src.cli.deployment.cancellation import CancellationToken
from src.cli.deployment.shell_commands.runner import CommandRunner
from src.cli.deployment.shell_commands.types import CommandResult, RunArgs

Responder = CommandResult | Callable[[RunArgs], CommandResult]


class MockCommandRunner(CommandRunner):
    """CommandRunner that records every invocation and replays canned results.

    Rules match on a command prefix; the most recently added matching rule
    wins. Unmatched commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: list[RunArgs] = []
        self._rules: list[tuple[tuple[str, ...], Responder]] = []

    def when(self, *prefix: str, result: Responder) -> MockCommandRunner:
        self._rules.append((prefix, result))
        return self

    def fail(self, *prefix: str, stderr: str = "", returncode: int = 1) -> MockCommandRunner:
        return self.when(
            *prefix,
            result=CommandResult(success=False, stderr=stderr, returncode=returncode),
        )

    async def run(
        self, args: RunArgs, token: CancellationToken | None = None
    ) -> CommandResult:
        if token:
            token.raise_if_cancelled()
        self.calls.append(args)
        for prefix, responder in reversed(self._rules):
            if tuple(args.cmd[: len(prefix)]) == prefix:
                return responder(args) if callable(responder) else responder
        return CommandResult(success=True)

    def called(self, *prefix: str) -> list[RunArgs]:
        """Recorded invocations starting with ``prefix``."""
        return [c for c in self.calls if tuple(c.cmd[: len(prefix)]) == prefix]

    @property
    def command_lines(self) -> list[str]:
        return [c.command for c in self.calls]
