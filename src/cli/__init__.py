"""Main CLI application module.

This module provides the main entry point for the aks-forge CLI.

Commands:
- deploy: Publish a service image and deploy it to AKS
- env: Inspect deployment environments
"""

import sys
from typing import Annotated

import typer
from loguru import logger

from .commands import deploy, env_app

# Create the main CLI application
app = typer.Typer(
    help="🚀 aks-forge - Deploy services to Azure Kubernetes Service",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command()(deploy)
app.add_typer(env_app, name="env")


@app.callback()
def _configure(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug logs")
    ] = False,
) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
