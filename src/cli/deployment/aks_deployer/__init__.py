"""AKS deployment pipeline.

Publishes a locally built service image to Azure Container Registry and
deploys it to an AKS cluster with kubectl.

Components:
- CredentialResolver: admin kubeconfig from the cluster control plane
- RegistryClient: registry endpoint and admin credentials
- ImagePublisher: docker login, tag and push
- ManifestApplier: namespace, pull secret and manifest apply
- RolloutCollector: rollout wait and endpoint discovery
- AksDeployer: sequences the stages through DeploymentStateMachine
"""

from .constants import AksConstants
from .credentials import CredentialResolver
from .deployer import (
    AksDeployer,
    DeploymentResult,
    cluster_name_from_environment,
    missing_tools,
    target_resource_from_environment,
)
from .image_publisher import ImagePublisher
from .manifest_applier import ManifestApplier, PullSecret, write_kubeconfig
from .registry import RegistryClient
from .rollout import RolloutCollector, ingress_endpoints, service_endpoints
from .state import DeploymentStateMachine, DeployState, IllegalTransitionError

__all__ = [
    "AksConstants",
    "AksDeployer",
    "DeploymentResult",
    "cluster_name_from_environment",
    "missing_tools",
    "target_resource_from_environment",
    "CredentialResolver",
    "RegistryClient",
    "ImagePublisher",
    "ManifestApplier",
    "PullSecret",
    "write_kubeconfig",
    "RolloutCollector",
    "service_endpoints",
    "ingress_endpoints",
    "DeploymentStateMachine",
    "DeployState",
    "IllegalTransitionError",
]
