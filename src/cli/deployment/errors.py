"""Deployment error taxonomy.

Every failure surfaced by the AKS deployment pipeline is a DeploymentError.
The ``message`` names the missing piece of configuration or the failing
external call; ``details`` carries captured output or recovery hints and is
rendered separately by the CLI.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .shell_commands.types import CommandResult


class DeploymentError(Exception):
    """Raised when a deployment operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class MissingConfigurationError(DeploymentError):
    """A required environment value is absent."""

    def __init__(self, message: str, key: str, details: str | None = None):
        self.key = key
        super().__init__(message, details)


class CredentialRetrievalError(DeploymentError):
    """The control plane refused or failed to return cluster credentials."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: str | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class RegistryError(DeploymentError):
    """The container registry could not be found or its credentials read."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: str | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class CommandExecutionError(DeploymentError):
    """An external command exited with a non-zero status."""

    def __init__(self, message: str, command: str, result: CommandResult):
        self.command = command
        self.result = result
        output = "\n".join(
            part for part in (result.stderr.strip(), result.stdout.strip()) if part
        )
        details = f"$ {command}\nexit code: {result.returncode}"
        if output:
            details += f"\n{output}"
        super().__init__(message, details)


class ManifestError(DeploymentError):
    """Manifest directory missing/empty, invalid YAML, or no image placeholder."""


class RolloutTimeoutError(DeploymentError):
    """The deployment did not converge before the deadline."""


class CancellationError(DeploymentError):
    """The caller aborted the deployment."""

    def __init__(self, message: str = "deployment cancelled", details: str | None = None):
        super().__init__(message, details)
