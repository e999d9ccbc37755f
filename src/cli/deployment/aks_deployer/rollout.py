"""Rollout confirmation and endpoint discovery."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from src.infra.k8s.models import (
    SERVICE_TYPE_LOAD_BALANCER,
    Deployment,
    Ingress,
    K8sResource,
    Service,
    ServicePort,
)

from ..errors import DeploymentError, RolloutTimeoutError
from .constants import AksConstants

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ..cancellation import CancellationToken
    from ..shell_commands.kubectl import KubectlCommands

HTTPS_PORT = 443


def _port_scheme(port: ServicePort) -> str:
    if port.port == HTTPS_PORT:
        return "https"
    if port.name.lower() == "https" or (port.app_protocol or "").lower() == "https":
        return "https"
    return "http"


def service_endpoints(services: Sequence[Service]) -> list[str]:
    """Build ``{scheme}://{address}:{port}`` URLs for each service.

    LoadBalancer services use their external addresses; every other type
    uses its cluster IPs.
    """
    endpoints: list[str] = []
    for service in services:
        if service.spec.type == SERVICE_TYPE_LOAD_BALANCER:
            addresses = [
                ingress.address
                for ingress in service.status.load_balancer.ingress
                if ingress.address
            ]
        else:
            addresses = service.spec.addresses

        for address in addresses:
            for port in service.spec.ports:
                endpoints.append(f"{_port_scheme(port)}://{address}:{port.port}")
    return endpoints


def ingress_endpoints(ingresses: Sequence[Ingress]) -> list[str]:
    """Build ``{scheme}://{host}{path}`` URLs for each ingress rule.

    Only ingresses with a resolved load-balancer address contribute. A rule
    with a host yields one URL per path; a rule without a host is reached
    through each load-balancer address.
    """
    endpoints: list[str] = []
    for ingress in ingresses:
        addresses = [
            entry.address for entry in ingress.status.load_balancer.ingress if entry.address
        ]
        if not addresses:
            continue

        for rule in ingress.spec.rules or []:
            paths = [p.path or "/" for p in rule.http.paths] if rule.http else []
            for host in [rule.host] if rule.host else addresses:
                scheme = "https" if ingress.spec.uses_tls(host) else "http"
                for path in paths or ["/"]:
                    endpoints.append(f"{scheme}://{host}{path}")

        if not ingress.spec.rules:
            for address in addresses:
                scheme = "https" if ingress.spec.uses_tls(address) else "http"
                endpoints.append(f"{scheme}://{address}/")
    return endpoints


def _match_resource(resources: Sequence[K8sResource], name: str) -> list[K8sResource]:
    """Resources named ``name``, else those whose name contains it."""
    wanted = name.lower()
    exact = [r for r in resources if r.metadata.name.lower() == wanted]
    if exact:
        return exact
    return [r for r in resources if wanted in r.metadata.name.lower()]


@dataclass
class CollectedEndpoints:
    endpoints: list[str]
    deployment: Deployment


class RolloutCollector:
    """Waits for a deployment rollout and discovers its endpoints."""

    def __init__(
        self,
        kubectl: KubectlCommands,
        poll_interval: float = AksConstants.RESOURCE_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.kubectl = kubectl
        self.poll_interval = poll_interval
        self.clock = clock

    async def _find_deployment(
        self,
        namespace: str,
        name: str,
        token: CancellationToken | None,
    ) -> Deployment | None:
        deployments = await self.kubectl.get_resources(
            "deployment", namespace, Deployment, token
        )
        matches = _match_resource(deployments.items, name)
        return matches[0] if matches else None  # type: ignore[return-value]

    async def await_rollout(
        self,
        namespace: str,
        deployment_name: str,
        timeout: float,
        token: CancellationToken | None = None,
    ) -> str:
        """Wait until the deployment exists and its rollout completes.

        The timeout covers both the wait for the deployment to appear and
        ``kubectl rollout status``.

        Args:
            namespace: Namespace of the deployment
            deployment_name: Configured deployment name (matched by substring)
            timeout: Overall deadline in seconds
            token: Cancellation token

        Returns:
            Name of the deployment that rolled out

        Raises:
            RolloutTimeoutError: If the deadline passes or the rollout fails
        """
        started = self.clock()
        try:
            async with asyncio.timeout(timeout):
                deployment = await self._find_deployment(namespace, deployment_name, token)
                while deployment is None:
                    logger.debug(
                        f"Deployment '{deployment_name}' not found in '{namespace}', "
                        f"retrying in {self.poll_interval}s"
                    )
                    await asyncio.sleep(self.poll_interval)
                    deployment = await self._find_deployment(
                        namespace, deployment_name, token
                    )

                name = deployment.metadata.name
                remaining = max(1, int(timeout - (self.clock() - started)))
                result = await self.kubectl.rollout_status(
                    name, namespace, timeout_seconds=remaining, token=token
                )
        except TimeoutError as e:
            raise RolloutTimeoutError(
                f"deployment '{deployment_name}' did not roll out within {timeout:g}s",
                details=f"namespace: {namespace}",
            ) from e

        if not result.success:
            raise RolloutTimeoutError(
                f"rollout of deployment '{name}' did not complete",
                details=(result.stderr or result.stdout).strip() or None,
            )
        logger.info(f"Deployment '{name}' rolled out in '{namespace}'")
        return name

    async def collect_endpoints(
        self,
        namespace: str,
        *,
        deployment_name: str,
        service_name: str,
        ingress_name: str,
        token: CancellationToken | None = None,
    ) -> CollectedEndpoints:
        """Query the namespace and build the service's endpoint URLs.

        Services are listed before ingresses, each in the order kubectl
        returns them. Duplicates are kept.

        Raises:
            DeploymentError: If the deployment is no longer present
        """
        deployments = await self.kubectl.get_resources(
            "deployment", namespace, Deployment, token
        )
        matches = _match_resource(deployments.items, deployment_name)
        if not matches:
            raise DeploymentError(
                f"deployment '{deployment_name}' not found in namespace '{namespace}'"
            )

        services = await self.kubectl.get_resources("svc", namespace, Service, token)
        ingresses = await self.kubectl.get_resources("ing", namespace, Ingress, token)

        endpoints = service_endpoints(
            _match_resource(services.items, service_name)  # type: ignore[arg-type]
        ) + ingress_endpoints(
            _match_resource(ingresses.items, ingress_name)  # type: ignore[arg-type]
        )
        for endpoint in endpoints:
            logger.debug(f"Endpoint: {endpoint}")
        return CollectedEndpoints(endpoints=endpoints, deployment=matches[0])  # type: ignore[arg-type]
