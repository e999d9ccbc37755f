"""Typed views over Kubernetes documents.

Two families of models live here:

- KubeConfig and friends: the cluster access document returned by the AKS
  control plane (kebab-case keys, e.g. ``current-context``).
- K8sResource and friends: read-only projections of ``kubectl get -o json``
  output (camelCase keys). Only the fields needed for readiness and endpoint
  discovery are modelled; everything else is ignored.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _to_kebab(name: str) -> str:
    return name.replace("_", "-")


# =============================================================================
# Kubeconfig
# =============================================================================


class _KubeConfigModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True, alias_generator=_to_kebab, extra="ignore"
    )


class KubeClusterData(_KubeConfigModel):
    server: str
    certificate_authority_data: str | None = None
    insecure_skip_tls_verify: bool | None = None


class KubeCluster(_KubeConfigModel):
    name: str
    cluster: KubeClusterData


class KubeUser(_KubeConfigModel):
    name: str
    # Credential material (token, client certs, exec plugin) is passed through
    user: dict[str, Any] = Field(default_factory=dict)


class KubeContextData(_KubeConfigModel):
    cluster: str
    user: str
    namespace: str | None = None


class KubeContext(_KubeConfigModel):
    name: str
    context: KubeContextData


class KubeConfig(_KubeConfigModel):
    """Cluster access document (``~/.kube/config`` format)."""

    api_version: str = Field(default="v1", alias="apiVersion")
    kind: str = "Config"
    current_context: str = ""
    preferences: dict[str, Any] = Field(default_factory=dict)
    clusters: list[KubeCluster] = Field(default_factory=list)
    users: list[KubeUser] = Field(default_factory=list)
    contexts: list[KubeContext] = Field(default_factory=list)

    @classmethod
    def from_yaml(cls, content: str | bytes) -> KubeConfig:
        data = yaml.safe_load(content) or {}
        return cls.model_validate(data)

    def to_yaml(self) -> str:
        return yaml.safe_dump(
            self.model_dump(by_alias=True, exclude_none=True), sort_keys=False
        )

    def get_context(self, name: str) -> KubeContext | None:
        for context in self.contexts:
            if context.name == name:
                return context
        return None

    def get_cluster(self, name: str) -> KubeCluster | None:
        for cluster in self.clusters:
            if cluster.name == name:
                return cluster
        return None


# =============================================================================
# Cluster resources
# =============================================================================


class _K8sModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True, alias_generator=to_camel, extra="ignore"
    )


class ResourceMetadata(_K8sModel):
    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class K8sResource(_K8sModel):
    api_version: str = ""
    kind: str = ""
    metadata: ResourceMetadata = Field(default_factory=ResourceMetadata)


ResourceT = TypeVar("ResourceT", bound=K8sResource)


class ResourceList(K8sResource, Generic[ResourceT]):
    """``kind: List`` wrapper returned by ``kubectl get ... -o json``."""

    items: list[ResourceT] = Field(default_factory=list)


class LoadBalancerIngress(_K8sModel):
    ip: str = ""
    hostname: str = ""

    @property
    def address(self) -> str:
        return self.ip or self.hostname


class LoadBalancerStatus(_K8sModel):
    ingress: list[LoadBalancerIngress] = Field(default_factory=list)


# Deployment -------------------------------------------------------------------


class DeploymentSpec(_K8sModel):
    replicas: int = 1


class DeploymentStatus(_K8sModel):
    replicas: int = 0
    ready_replicas: int = 0
    available_replicas: int = 0
    updated_replicas: int = 0


class Deployment(K8sResource):
    spec: DeploymentSpec = Field(default_factory=DeploymentSpec)
    status: DeploymentStatus = Field(default_factory=DeploymentStatus)

    @property
    def is_available(self) -> bool:
        return self.status.available_replicas >= self.spec.replicas


# Service ----------------------------------------------------------------------

SERVICE_TYPE_CLUSTER_IP = "ClusterIP"
SERVICE_TYPE_LOAD_BALANCER = "LoadBalancer"


class ServicePort(_K8sModel):
    name: str = ""
    port: int
    target_port: int | str | None = None
    protocol: str = "TCP"
    app_protocol: str | None = None


class ServiceSpec(_K8sModel):
    type: str = SERVICE_TYPE_CLUSTER_IP
    cluster_ip: str = Field(default="", alias="clusterIP")
    cluster_ips: list[str] = Field(default_factory=list, alias="clusterIPs")
    ports: list[ServicePort] = Field(default_factory=list)

    @property
    def addresses(self) -> list[str]:
        """Cluster IPs, falling back to the single ``clusterIP`` field."""
        if self.cluster_ips:
            return [ip for ip in self.cluster_ips if ip and ip != "None"]
        if self.cluster_ip and self.cluster_ip != "None":
            return [self.cluster_ip]
        return []


class ServiceStatus(_K8sModel):
    load_balancer: LoadBalancerStatus = Field(default_factory=LoadBalancerStatus)


class Service(K8sResource):
    spec: ServiceSpec = Field(default_factory=ServiceSpec)
    status: ServiceStatus = Field(default_factory=ServiceStatus)


# Ingress ----------------------------------------------------------------------


class IngressPath(_K8sModel):
    path: str = "/"
    path_type: str = "Prefix"


class IngressRuleHttp(_K8sModel):
    paths: list[IngressPath] = Field(default_factory=list)


class IngressRule(_K8sModel):
    host: str = ""
    http: IngressRuleHttp | None = None


class IngressTls(_K8sModel):
    hosts: list[str] = Field(default_factory=list)
    secret_name: str = ""


class IngressSpec(_K8sModel):
    ingress_class_name: str = ""
    tls: list[IngressTls] = Field(default_factory=list)
    rules: list[IngressRule] = Field(default_factory=list)

    def uses_tls(self, host: str) -> bool:
        """Whether traffic for ``host`` is served over TLS."""
        for entry in self.tls:
            if not entry.hosts or host in entry.hosts:
                return True
        return False


class IngressStatus(_K8sModel):
    load_balancer: LoadBalancerStatus = Field(default_factory=LoadBalancerStatus)


class Ingress(K8sResource):
    spec: IngressSpec = Field(default_factory=IngressSpec)
    status: IngressStatus = Field(default_factory=IngressStatus)
