"""Project and service configuration.

The project file (``azure.yaml``) declares the deployable services:

    name: todo-app
    services:
      api:
        project: ./src/api
        host: aks
        language: python
        k8s:
          deploymentPath: manifests
          namespace: todo

ServiceConfig and TargetResource are immutable for the duration of a
deployment; the orchestrator only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

PROJECT_FILE_NAME = "azure.yaml"
AKS_HOST = "aks"
AKS_RESOURCE_TYPE = "Microsoft.ContainerService/managedClusters"


class ProjectConfigError(ValueError):
    """Raised when the project file is missing or invalid."""


class K8sOptions(BaseModel):
    """Kubernetes-specific settings for a service."""

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, alias_generator=to_camel
    )

    deployment_path: str = Field(
        default="manifests",
        description="Manifest directory, relative to the service path",
    )
    namespace: str | None = Field(
        default=None, description="Target namespace (defaults to the project name)"
    )
    deployment_name: str | None = None
    service_name: str | None = None
    ingress_name: str | None = None
    image_pull_secret: bool = Field(
        default=True,
        description="Store registry credentials as a secret in the namespace",
    )
    rollout_timeout: int = Field(
        default=600, gt=0, description="Seconds to wait for the rollout"
    )


class ProjectRef(BaseModel):
    """Back-reference from a service to its owning project."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path


class ServiceConfig(BaseModel):
    """One deployable unit of a project."""

    model_config = ConfigDict(frozen=True)

    project: ProjectRef
    name: str
    relative_path: str
    host: str = AKS_HOST
    language: str = ""
    k8s: K8sOptions = Field(default_factory=K8sOptions)

    @property
    def path(self) -> Path:
        """Absolute-ish path to the service source directory."""
        return self.project.path / self.relative_path

    @property
    def manifests_dir(self) -> Path:
        return self.path / self.k8s.deployment_path

    @property
    def namespace(self) -> str:
        return self.k8s.namespace or self.project.name

    @property
    def deployment_name(self) -> str:
        return self.k8s.deployment_name or self.name

    @property
    def k8s_service_name(self) -> str:
        return self.k8s.service_name or self.name

    @property
    def ingress_name(self) -> str:
        return self.k8s.ingress_name or self.name

    @property
    def default_local_image(self) -> str:
        """Image name the package step produces for this service."""
        return f"{self.project.name}-{self.name}:latest".lower()


class _ServiceEntry(BaseModel):
    """Raw service entry as written in the project file."""

    project: str = "."
    host: str = AKS_HOST
    language: str = ""
    k8s: K8sOptions = Field(default_factory=K8sOptions)


class ProjectConfig(BaseModel):
    """Parsed project file."""

    name: str
    path: Path
    services: dict[str, _ServiceEntry] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> ProjectConfig:
        """Load and validate a project file.

        Args:
            path: Path to ``azure.yaml``

        Raises:
            ProjectConfigError: If the file is missing, is not YAML, or does
                not match the expected structure
        """
        if not path.exists():
            raise ProjectConfigError(f"project file not found: {path}")

        try:
            raw: Any = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ProjectConfigError(f"invalid YAML in {path}: {e}") from e

        if not isinstance(raw, dict):
            raise ProjectConfigError(f"{path} must contain a mapping")

        try:
            return cls.model_validate({**raw, "path": path.parent.resolve()})
        except ValidationError as e:
            raise ProjectConfigError(f"invalid project file {path}:\n{e}") from e

    def service(self, name: str) -> ServiceConfig:
        """Build the ServiceConfig for one declared service."""
        entry = self.services.get(name)
        if entry is None:
            known = ", ".join(sorted(self.services)) or "none"
            raise ProjectConfigError(
                f"service '{name}' is not declared in {PROJECT_FILE_NAME} "
                f"(declared: {known})"
            )
        return ServiceConfig(
            project=ProjectRef(name=self.name, path=self.path),
            name=name,
            relative_path=entry.project,
            host=entry.host,
            language=entry.language,
            k8s=entry.k8s,
        )


@dataclass(frozen=True)
class TargetResource:
    """Azure resource a service is deployed to."""

    subscription_id: str
    resource_group: str
    resource_name: str
    resource_type: str = AKS_RESOURCE_TYPE
