"""Azure control-plane clients used by the AKS deployer."""

from .auth import (
    AzureCliCredential,
    StaticTokenCredential,
    TokenCredential,
    default_credential,
)
from .container_registry import (
    ContainerRegistryService,
    Registry,
    RegistryCredentials,
)
from .http import ArmClient, HttpClient
from .managed_clusters import CredentialResult, CredentialResults, ManagedClustersService

__all__ = [
    "ArmClient",
    "HttpClient",
    "TokenCredential",
    "StaticTokenCredential",
    "AzureCliCredential",
    "default_credential",
    "ManagedClustersService",
    "CredentialResult",
    "CredentialResults",
    "ContainerRegistryService",
    "Registry",
    "RegistryCredentials",
]
