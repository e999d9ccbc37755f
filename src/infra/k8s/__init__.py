"""Kubernetes data models.

Typed views over kubeconfig documents and the ``kubectl get -o json`` output
consumed by the deployment pipeline.

Example:
    from src.infra.k8s import Deployment, ResourceList

    deployments = ResourceList[Deployment].model_validate_json(stdout)
"""

from .models import (
    SERVICE_TYPE_CLUSTER_IP,
    SERVICE_TYPE_LOAD_BALANCER,
    Deployment,
    Ingress,
    K8sResource,
    KubeConfig,
    ResourceList,
    Service,
    ServicePort,
)

__all__ = [
    # Kubeconfig
    "KubeConfig",
    # Resources
    "K8sResource",
    "ResourceList",
    "Deployment",
    "Service",
    "ServicePort",
    "Ingress",
    # Constants
    "SERVICE_TYPE_CLUSTER_IP",
    "SERVICE_TYPE_LOAD_BALANCER",
]
