"""AKS deployment orchestrator.

Sequences the deployment stages through DeploymentStateMachine:

    1. Validate required environment values (no external calls yet)
    2. Resolve the cluster's admin kubeconfig
    3. Resolve the container registry and its credentials
    4. Log in, tag and push the service image
    5. Apply the manifests with the pushed image substituted
    6. Wait for the rollout
    7. Collect the service's endpoints

The first failure moves the machine to FAILED and is raised unchanged.
Nothing is rolled back.
"""

from __future__ import annotations

import asyncio
import dataclasses
import shutil
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from src.infra.environment import AKS_CLUSTER_KEY, RESOURCE_GROUP_KEY, SUBSCRIPTION_ID_KEY
from src.infra.project import TargetResource

from ..errors import DeploymentError, MissingConfigurationError
from .constants import AksConstants
from .credentials import CredentialResolver
from .image_publisher import ImagePublisher
from .manifest_applier import ManifestApplier, PullSecret
from .registry import RegistryClient
from .rollout import RolloutCollector
from .state import DeploymentStateMachine, DeployState

if TYPE_CHECKING:
    from src.infra.environment import Environment
    from src.infra.k8s.models import Deployment
    from src.infra.project import ServiceConfig

    from ..azure.container_registry import ContainerRegistryService
    from ..azure.managed_clusters import ManagedClustersService
    from ..cancellation import CancellationToken
    from ..progress import ProgressReporter
    from ..shell_commands import ShellCommands


@dataclass
class DeploymentResult:
    """Outcome of a successful deployment.

    ``DeploymentResult()`` is the zero value returned next to an error.
    """

    kind: str = ""
    details: Deployment | None = None
    endpoints: list[str] = field(default_factory=list)


def _require(environment: Environment, key: str, purpose: str) -> str:
    value = environment.get_non_empty(key)
    if not value:
        raise MissingConfigurationError(
            f"could not determine {purpose}, ensure '{key}' has been set in the environment",
            key=key,
        )
    return value


def cluster_name_from_environment(environment: Environment) -> str:
    """Read the AKS cluster name.

    Raises:
        MissingConfigurationError: If AZURE_AKS_CLUSTER_NAME is not set
    """
    return _require(environment, AKS_CLUSTER_KEY, "AKS cluster")


def target_resource_from_environment(environment: Environment) -> TargetResource:
    """Build the cluster scope from the environment.

    Raises:
        MissingConfigurationError: If the subscription, resource group or
            cluster name is not set
    """
    return TargetResource(
        subscription_id=_require(environment, SUBSCRIPTION_ID_KEY, "subscription"),
        resource_group=_require(environment, RESOURCE_GROUP_KEY, "resource group"),
        resource_name=cluster_name_from_environment(environment),
    )


def missing_tools(constants: AksConstants | None = None) -> list[str]:
    """External tools required by the pipeline that are not on PATH."""
    constants = constants or AksConstants()
    return [tool for tool in constants.REQUIRED_TOOLS if shutil.which(tool) is None]


class AksDeployer:
    """Deploys one service to an AKS cluster.

    Instances are cheap; create one per deployment. Two deployments sharing
    one Environment must not run concurrently.
    """

    def __init__(
        self,
        service: ServiceConfig,
        environment: Environment,
        scope: TargetResource,
        *,
        clusters: ManagedClustersService,
        registries: ContainerRegistryService,
        commands: ShellCommands,
        clock: Callable[[], float] = time.time,
        constants: AksConstants | None = None,
        poll_interval: float | None = None,
    ) -> None:
        """Initialize the deployer.

        Args:
            service: Service being deployed
            environment: Environment read for settings and updated with the image
            scope: Subscription and resource group of the cluster
            clusters: Managed cluster control-plane client
            registries: Container registry control-plane client
            commands: Shell command wrappers (docker, kubectl)
            clock: Time source for image tags
            constants: Deployment constants
            poll_interval: Seconds between polls while waiting for the deployment
        """
        self.service = service
        self.environment = environment
        self.scope = scope
        self.constants = constants or AksConstants()
        self.poll_interval = (
            self.constants.RESOURCE_POLL_INTERVAL if poll_interval is None else poll_interval
        )

        self.credentials = CredentialResolver(clusters, self.constants)
        self.registry = RegistryClient(registries)
        self.publisher = ImagePublisher(commands.docker, clock, self.constants)
        self.manifests = ManifestApplier(commands.kubectl, self.constants)
        self.machine = DeploymentStateMachine()

    async def deploy(
        self,
        local_image: str | None = None,
        progress: ProgressReporter | None = None,
        token: CancellationToken | None = None,
    ) -> DeploymentResult:
        """Run the full deployment.

        Args:
            local_image: Locally built image; defaults to ``{project}-{service}:latest``
            progress: Receives one message per stage; closed when the call ends
            token: Cancellation token threaded through every external call

        Returns:
            Fully populated DeploymentResult

        Raises:
            MissingConfigurationError: If the cluster name or registry endpoint is unset
            CredentialRetrievalError: If the cluster credentials cannot be retrieved
            RegistryError: If the registry or its credentials cannot be found
            CommandExecutionError: If docker or kubectl fails
            ManifestError: If the manifests are missing or malformed
            RolloutTimeoutError: If the rollout does not converge in time
            CancellationError: If the token is cancelled
        """

        def report(message: str) -> None:
            logger.debug(f"[{self.service.name}] {message}")
            if progress is not None:
                progress.report(message)

        self.machine = DeploymentStateMachine(lambda _, message: report(message))
        service = self.service

        try:
            if token is not None:
                token.raise_if_cancelled()

            cluster_name = cluster_name_from_environment(self.environment)
            endpoint = self.registry.resolve_endpoint(self.environment)
            scope = dataclasses.replace(self.scope, resource_name=cluster_name)

            report("Getting AKS credentials")
            kube_config = await self.credentials.resolve(scope, token)
            self.machine.advance(DeployState.CREDENTIALS_RESOLVED)

            report("Getting container registry credentials")
            registry_credentials = await self.registry.login_credentials(
                scope, endpoint, token
            )
            self.machine.advance(DeployState.REGISTRY_RESOLVED)

            image_ref = await self.publisher.publish(
                local_image or service.default_local_image,
                endpoint,
                registry_credentials,
                service_name=service.name,
                environment=self.environment,
                report=report,
                token=token,
            )
            self.machine.advance(DeployState.IMAGE_PUBLISHED)

            pull_secret = None
            if service.k8s.image_pull_secret:
                pull_secret = PullSecret(
                    name=f"{service.name}{self.constants.PULL_SECRET_SUFFIX}",
                    server=endpoint,
                    credentials=registry_credentials,
                )

            with tempfile.TemporaryDirectory(prefix=self.constants.TEMP_DIR_PREFIX) as tmp:
                kubectl = await self.manifests.apply(
                    service.manifests_dir,
                    kube_config,
                    kubeconfig_dir=Path(tmp),
                    namespace=service.namespace,
                    service_name=service.name,
                    image_ref=image_ref,
                    pull_secret=pull_secret,
                    report=report,
                    token=token,
                )
                self.machine.advance(DeployState.MANIFESTS_APPLIED)

                report("Waiting for deployment rollout")
                collector = RolloutCollector(kubectl, self.poll_interval)
                deployment_name = await collector.await_rollout(
                    service.namespace,
                    service.deployment_name,
                    service.k8s.rollout_timeout,
                    token,
                )
                self.machine.advance(DeployState.ROLLOUT_CONFIRMED)

                report("Collecting service endpoints")
                collected = await collector.collect_endpoints(
                    service.namespace,
                    deployment_name=deployment_name,
                    service_name=service.k8s_service_name,
                    ingress_name=service.ingress_name,
                    token=token,
                )
                self.machine.advance(DeployState.ENDPOINTS_COLLECTED)

            self.machine.advance(DeployState.DONE)
            return DeploymentResult(
                kind=self.constants.TARGET_KIND,
                details=collected.deployment,
                endpoints=collected.endpoints,
            )
        except (DeploymentError, asyncio.CancelledError) as e:
            self.machine.fail(e)
            raise
        finally:
            if progress is not None:
                progress.close()

    async def deploy_or_zero(
        self,
        local_image: str | None = None,
        progress: ProgressReporter | None = None,
        token: CancellationToken | None = None,
    ) -> tuple[DeploymentResult, DeploymentError | None]:
        """Like ``deploy`` but returns the zero-value result alongside the error."""
        try:
            return await self.deploy(local_image, progress, token), None
        except DeploymentError as e:
            return DeploymentResult(), e
