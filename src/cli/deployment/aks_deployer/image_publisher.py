"""Container image publishing.

Logs in to the registry, tags the locally built image with a deployment
tag and pushes it. The pushed reference is recorded in the environment as
``SERVICE_<NAME>_IMAGE_NAME`` for the manifest stage and the caller.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from loguru import logger

from src.infra.environment import service_image_key

from .constants import AksConstants

if TYPE_CHECKING:
    from src.infra.environment import Environment

    from ..azure.container_registry import RegistryCredentials
    from ..cancellation import CancellationToken
    from ..shell_commands.docker import DockerCommands


class ImagePublisher:
    """Publishes a service image to a remote registry.

    Attributes:
        docker: Docker command wrapper
        clock: Source of the current time, used for the image tag
    """

    def __init__(
        self,
        docker: DockerCommands,
        clock: Callable[[], float] = time.time,
        constants: AksConstants | None = None,
    ) -> None:
        self.docker = docker
        self.clock = clock
        self.constants = constants or AksConstants()

    def remote_image_ref(self, endpoint: str, service_name: str) -> str:
        """Build ``{endpoint}/{service}:{tag}`` for the current time."""
        tag = f"{self.constants.IMAGE_TAG_PREFIX}-{int(self.clock())}"
        return f"{endpoint}/{service_name}:{tag}".lower()

    async def publish(
        self,
        local_image: str,
        endpoint: str,
        credentials: RegistryCredentials,
        *,
        service_name: str,
        environment: Environment,
        report: Callable[[str], None] | None = None,
        token: CancellationToken | None = None,
    ) -> str:
        """Log in, tag and push.

        No step is retried; the first failure is raised.

        Args:
            local_image: Locally built image (e.g., "todo-api:latest")
            endpoint: Registry login server
            credentials: Registry credentials
            service_name: Service the image belongs to
            environment: Environment receiving the image reference
            report: Progress callback
            token: Cancellation token

        Returns:
            The remote image reference

        Raises:
            CommandExecutionError: If any docker command fails
        """
        notify = report or (lambda _: None)

        notify("Logging in to container registry")
        await self.docker.login(
            endpoint, credentials.username, credentials.password, token
        )

        remote_image = self.remote_image_ref(endpoint, service_name)
        notify("Tagging container image")
        await self.docker.tag_image(local_image, remote_image, token)

        notify("Pushing container image")
        await self.docker.push_image(remote_image, token)

        environment.set(service_image_key(service_name), remote_image)
        logger.info(f"Pushed {remote_image}")
        return remote_image
