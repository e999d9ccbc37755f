"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click
import typer

from src.cli.deployment.shell_commands import ShellCommands
from src.cli.shared.console import CLIConsole, console
from src.infra.project import PROJECT_FILE_NAME, ProjectConfig
from src.utils.paths import get_project_root


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    project_root: Path
    commands: ShellCommands

    @property
    def project_file(self) -> Path:
        return self.project_root / PROJECT_FILE_NAME

    def load_project(self) -> ProjectConfig:
        return ProjectConfig.load(self.project_file)


def build_cli_context(cwd: Path | None = None) -> CLIContext:
    """Build a fresh CLIContext."""
    project_root = get_project_root(cwd)

    return CLIContext(
        console=console,
        project_root=project_root,
        commands=ShellCommands.create(project_root),
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()
