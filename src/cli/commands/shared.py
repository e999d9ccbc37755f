"""Shared utilities for CLI commands.

This module provides the project and environment lookups used by every
command module, plus the console and error handling re-exported from
``src.cli.shared.console``.
"""

from src.cli.context import CLIContext
from src.cli.shared.console import console, with_error_handling
from src.infra.environment import Environment, default_environment_name
from src.infra.project import ProjectConfigError

__all__ = ["console", "with_error_handling", "load_environment"]


def load_environment(ctx: CLIContext, env_name: str | None) -> Environment:
    """Load the named environment, or the project's default one.

    Raises:
        ProjectConfigError: If no name is given and no default is configured
    """
    name = env_name or default_environment_name(ctx.project_root)
    if not name:
        raise ProjectConfigError(
            "no environment selected, pass --environment or set AZURE_ENV_NAME"
        )
    return Environment.load(ctx.project_root, name)
