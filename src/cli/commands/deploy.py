"""AKS deployment command.

Publishes a locally built service image and deploys it to the AKS cluster
configured in the selected environment.
"""

import asyncio
from pathlib import Path
from typing import Annotated

import httpx
import typer
from rich.table import Table

from src.cli.context import CLIContext, build_cli_context, get_cli_context
from src.cli.deployment import (
    AksDeployer,
    CancellationToken,
    DeploymentResult,
    ProgressReporter,
    consume_progress,
)
from src.cli.deployment.aks_deployer import missing_tools, target_resource_from_environment
from src.cli.deployment.azure import (
    ArmClient,
    ContainerRegistryService,
    ManagedClustersService,
    default_credential,
)
from src.infra.environment import TENANT_ID_KEY, Environment, service_image_key
from src.infra.project import AKS_HOST, ServiceConfig

from .shared import console, load_environment, with_error_handling

# Seconds allowed per control-plane request
HTTP_TIMEOUT = 60.0


async def _run_deployment(
    ctx: CLIContext,
    service: ServiceConfig,
    environment: Environment,
    image: str | None,
) -> DeploymentResult:
    """Run the deployer with a live progress display."""
    scope = target_resource_from_environment(environment)
    credential = default_credential(ctx.commands.runner, environment.get(TENANT_ID_KEY))
    reporter = ProgressReporter()
    token = CancellationToken()

    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http:
        arm = ArmClient(http, credential)
        deployer = AksDeployer(
            service,
            environment,
            scope,
            clusters=ManagedClustersService(arm),
            registries=ContainerRegistryService(arm),
            commands=ctx.commands,
        )

        with ctx.console.status(f"Deploying {service.name}...") as status:

            def show(message: str) -> None:
                status.update(f"[cyan]{message}...[/cyan]")
                ctx.console.print(f"  [dim]•[/dim] {message}")

            consumer = asyncio.create_task(consume_progress(reporter, show))
            try:
                return await deployer.deploy(image, reporter, token)
            except asyncio.CancelledError:
                token.cancel("interrupted by user")
                raise
            finally:
                reporter.close()
                await consumer


def _print_result(
    service: ServiceConfig, environment: Environment, result: DeploymentResult
) -> None:
    table = Table(title=f"Service: {service.name}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Image", environment.get(service_image_key(service.name)) or "")
    if result.details is not None:
        table.add_row("Deployment", result.details.metadata.name)
    table.add_row("Namespace", service.namespace)
    for endpoint in result.endpoints:
        table.add_row("Endpoint", endpoint)
    console.print(table)
    if not result.endpoints:
        console.warn(
            f"No endpoints discovered for '{service.k8s_service_name}' or "
            f"'{service.ingress_name}' in namespace '{service.namespace}'"
        )


@with_error_handling
def deploy(
    typer_ctx: typer.Context,
    service: Annotated[str, typer.Argument(help="Service name from azure.yaml")],
    environment: Annotated[
        str | None,
        typer.Option("--environment", "-e", help="Environment name"),
    ] = None,
    image: Annotated[
        str | None,
        typer.Option(
            "--image",
            "-i",
            help="Local image to publish (default: <project>-<service>:latest)",
        ),
    ] = None,
    cwd: Annotated[
        Path | None,
        typer.Option("--cwd", help="Directory inside the project"),
    ] = None,
) -> None:
    """Deploy a service to Azure Kubernetes Service.

    This command:
    - Retrieves the cluster's admin credentials
    - Logs in to the container registry and pushes the image
    - Applies the service's manifests with the pushed image
    - Waits for the rollout and prints the reachable endpoints

    Examples:
        aks-forge deploy api
        aks-forge deploy api -e staging --image my-api:dev
    """
    ctx = build_cli_context(cwd) if cwd else get_cli_context(typer_ctx)
    project = ctx.load_project()
    service_config = project.service(service)
    if service_config.host != AKS_HOST:
        console.handle_error(
            f"service '{service}' is hosted on '{service_config.host}', not '{AKS_HOST}'"
        )

    missing = missing_tools()
    if missing:
        console.handle_error(
            "required tools are not installed",
            details="Install and add to PATH: " + ", ".join(missing),
        )

    env = load_environment(ctx, environment)
    console.print_header(f"Deploying {service} to AKS ({env.name})")
    console.info(f"Project root: {ctx.project_root}")

    result = asyncio.run(_run_deployment(ctx, service_config, env, image))
    env.save()

    console.ok(f"Deployed {service}")
    _print_result(service_config, env, result)

