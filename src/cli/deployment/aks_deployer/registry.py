"""Container registry discovery for a deployment."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.infra.environment import CONTAINER_REGISTRY_ENDPOINT_KEY, Environment

from ..errors import MissingConfigurationError

if TYPE_CHECKING:
    from src.infra.project import TargetResource

    from ..azure.container_registry import ContainerRegistryService, RegistryCredentials
    from ..cancellation import CancellationToken


class RegistryClient:
    """Finds the deployment's container registry and its login credentials."""

    def __init__(self, registries: ContainerRegistryService) -> None:
        self.registries = registries

    @staticmethod
    def resolve_endpoint(environment: Environment) -> str:
        """Read the registry login server from the environment.

        Runs before any external call, so a missing value leaves no partial
        work behind.

        Raises:
            MissingConfigurationError: If the endpoint is not set
        """
        endpoint = environment.get_non_empty(CONTAINER_REGISTRY_ENDPOINT_KEY)
        if not endpoint:
            raise MissingConfigurationError(
                "could not determine container registry endpoint, ensure "
                f"'{CONTAINER_REGISTRY_ENDPOINT_KEY}' has been set in the environment",
                key=CONTAINER_REGISTRY_ENDPOINT_KEY,
            )
        return endpoint

    async def login_credentials(
        self,
        scope: TargetResource,
        endpoint: str,
        token: CancellationToken | None = None,
    ) -> RegistryCredentials:
        """Retrieve admin credentials for the registry serving ``endpoint``.

        Raises:
            RegistryError: If the registry is not found in the subscription or
                its credentials cannot be read
        """
        registry = await self.registries.find_registry(
            scope.subscription_id, endpoint, token
        )
        return await self.registries.get_admin_credentials(registry, token)
