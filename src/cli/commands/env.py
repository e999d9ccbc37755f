"""Environment inspection commands."""

from pathlib import Path
from typing import Annotated

import typer

from src.cli.context import build_cli_context, get_cli_context

from .shared import console, load_environment, with_error_handling

env_app = typer.Typer(
    name="env",
    help="Inspect deployment environments.",
    no_args_is_help=True,
)


@env_app.command("get-values")
@with_error_handling
def get_values(
    typer_ctx: typer.Context,
    environment: Annotated[
        str | None,
        typer.Option("--environment", "-e", help="Environment name"),
    ] = None,
    cwd: Annotated[
        Path | None,
        typer.Option("--cwd", help="Directory inside the project"),
    ] = None,
) -> None:
    """Print the values of an environment in dotenv format.

    Examples:
        aks-forge env get-values
        aks-forge env get-values -e staging
    """
    ctx = build_cli_context(cwd) if cwd else get_cli_context(typer_ctx)
    env = load_environment(ctx, environment)
    for key, value in sorted(env.values.items()):
        console.print(f'{key}="{value}"')
