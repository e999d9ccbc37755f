"""Deployment module for publishing services to Azure Kubernetes Service.

The package is organized into subpackages for modularity:
- shell_commands: Abstractions for docker and kubectl execution
- azure: Control-plane clients (managed clusters, container registries)
- aks_deployer: The deployment pipeline and its state machine

Shared building blocks live at the package root:
- errors: DeploymentError and its subclasses
- progress: Non-blocking progress reporting
- cancellation: Cooperative cancellation token
"""

from .aks_deployer import AksDeployer, DeploymentResult
from .cancellation import CancellationToken
from .errors import (
    CancellationError,
    CommandExecutionError,
    CredentialRetrievalError,
    DeploymentError,
    ManifestError,
    MissingConfigurationError,
    RegistryError,
    RolloutTimeoutError,
)
from .progress import ProgressReporter, consume_progress

__all__ = [
    "AksDeployer",
    "DeploymentResult",
    "CancellationToken",
    "ProgressReporter",
    "consume_progress",
    "DeploymentError",
    "MissingConfigurationError",
    "CredentialRetrievalError",
    "RegistryError",
    "CommandExecutionError",
    "ManifestError",
    "RolloutTimeoutError",
    "CancellationError",
]
