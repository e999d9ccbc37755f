"""Shell command abstractions for AKS deployment operations.

This package provides a small, well-documented interface for the external
tools used during deployment, organized into one module per tool:

- docker: registry login, image tag and push
- kubectl: kubeconfig, namespace, secret, apply, rollout and queries
- runner: the CommandRunner interface and its subprocess implementation

Design Principles:
- Pipelines depend on the CommandRunner interface, never on subprocess
- Every call accepts a cancellation token
- Failures raise CommandExecutionError carrying the (redacted) command

Usage:
    from src.cli.deployment.shell_commands import ShellCommands

    commands = ShellCommands.create(project_root=Path("."))
    await commands.docker.push_image("myacr.azurecr.io/api:v1")
"""

from __future__ import annotations

from pathlib import Path

from .docker import DockerCommands
from .kubectl import KubectlCommands
from .runner import CommandRunner, SubprocessRunner
from .types import CommandResult, RunArgs


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        runner: The underlying command runner
        docker: Docker-related commands
        kubectl: Kubernetes kubectl commands
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize the shell commands executor.

        Args:
            runner: Command runner shared by all command modules
        """
        self.runner = runner
        self.docker = DockerCommands(runner)
        self.kubectl = KubectlCommands(runner)

    @classmethod
    def create(cls, project_root: Path | None = None) -> ShellCommands:
        """Build commands backed by real subprocesses."""
        return cls(SubprocessRunner(project_root))


__all__ = [
    "ShellCommands",
    "CommandResult",
    "RunArgs",
    "CommandRunner",
    "SubprocessRunner",
    "DockerCommands",
    "KubectlCommands",
]
