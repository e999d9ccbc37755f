"""Docker command abstractions.

This module provides the Docker operations needed to publish an image to a
remote registry: login, tag and push.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .types import CommandResult, RunArgs

if TYPE_CHECKING:
    from ..cancellation import CancellationToken
    from .runner import CommandRunner


class DockerCommands:
    """Docker-related shell commands.

    Every method raises CommandExecutionError when docker exits non-zero.
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Docker commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    async def login(
        self,
        registry: str,
        username: str,
        password: str,
        token: CancellationToken | None = None,
    ) -> CommandResult:
        """Log in to a container registry.

        The password is passed on standard input, never on the command line.

        Args:
            registry: Registry login server (e.g., "myacr.azurecr.io")
            username: Registry user
            password: Registry password
            token: Cancellation token
        """
        return await self._runner.run_checked(
            RunArgs(
                ["docker", "login", "--username", username, "--password-stdin", registry],
                stdin=password,
                secrets=(password,),
            ),
            token,
            message=f"failed logging in to container registry '{registry}'",
        )

    async def tag_image(
        self,
        source_tag: str,
        target_tag: str,
        token: CancellationToken | None = None,
    ) -> CommandResult:
        """Tag a Docker image with a new tag.

        Example:
            >>> await docker.tag_image("todo-api:latest", "myacr.azurecr.io/api:v1")
        """
        return await self._runner.run_checked(
            RunArgs(["docker", "tag", source_tag, target_tag]),
            token,
            message=f"failed tagging image '{source_tag}' as '{target_tag}'",
        )

    async def push_image(
        self, image_tag: str, token: CancellationToken | None = None
    ) -> CommandResult:
        """Push a Docker image to a remote registry.

        Args:
            image_tag: Full image tag including registry
                      (e.g., "myacr.azurecr.io/api:azd-deploy-1700000000")
        """
        return await self._runner.run_checked(
            RunArgs(["docker", "push", image_tag]),
            token,
            message=f"failed pushing image '{image_tag}'",
        )
