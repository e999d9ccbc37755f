"""Shared pytest fixtures for the deployment pipeline."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.cli.deployment.shell_commands import ShellCommands
from src.cli.deployment.shell_commands.types import CommandResult
from src.infra.environment import (
    AKS_CLUSTER_KEY,
    CONTAINER_REGISTRY_ENDPOINT_KEY,
    LOCATION_KEY,
    RESOURCE_GROUP_KEY,
    SUBSCRIPTION_ID_KEY,
    TENANT_ID_KEY,
    Environment,
)
from src.infra.project import ProjectConfig, ServiceConfig, TargetResource

from . import k8s
from .arm import (
    CLUSTER_NAME,
    REGISTRY_ENDPOINT,
    RESOURCE_GROUP,
    SUBSCRIPTION_ID,
    ArmRouter,
    default_router,
)
from .command_runner import MockCommandRunner

__all__ = [
    "MockCommandRunner",
    "ArmRouter",
    "mock_runner",
    "arm_router",
    "project_dir",
    "service_config",
    "environment",
    "scope",
    "shell_commands",
]

MANIFEST_DEPLOYMENT = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: todo-api
spec:
  replicas: 1
  selector:
    matchLabels:
      app: todo-api
  template:
    metadata:
      labels:
        app: todo-api
    spec:
      containers:
        - name: todo-api
          image: ${SERVICE_API_IMAGE_NAME}
          ports:
            - containerPort: 3100
"""

MANIFEST_SERVICE = """\
apiVersion: v1
kind: Service
metadata:
  name: todo-api
spec:
  type: ClusterIP
  ports:
    - port: 80
      targetPort: 3100
  selector:
    app: todo-api
"""

PROJECT_FILE = """\
name: todo
services:
  api:
    project: ./src/api
    host: aks
    language: python
    k8s:
      namespace: todo
      deploymentName: todo-api
      serviceName: todo-api
      ingressName: todo-api
      rolloutTimeout: 30
  web:
    project: ./src/web
    host: appservice
"""


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project with an ``api`` service and two manifests."""
    (tmp_path / "azure.yaml").write_text(PROJECT_FILE)
    manifests = tmp_path / "src" / "api" / "manifests"
    manifests.mkdir(parents=True)
    (manifests / "deployment.yaml").write_text(MANIFEST_DEPLOYMENT)
    (manifests / "service.yaml").write_text(MANIFEST_SERVICE)
    return tmp_path


@pytest.fixture
def service_config(project_dir: Path) -> ServiceConfig:
    return ProjectConfig.load(project_dir / "azure.yaml").service("api")


@pytest.fixture
def environment() -> Environment:
    return Environment.ephemeral(
        "dev",
        {
            SUBSCRIPTION_ID_KEY: SUBSCRIPTION_ID,
            TENANT_ID_KEY: "00000000-0000-0000-0000-0000000000aa",
            LOCATION_KEY: "eastus",
            RESOURCE_GROUP_KEY: RESOURCE_GROUP,
            AKS_CLUSTER_KEY: CLUSTER_NAME,
            CONTAINER_REGISTRY_ENDPOINT_KEY: REGISTRY_ENDPOINT,
        },
    )


@pytest.fixture
def scope() -> TargetResource:
    return TargetResource(
        subscription_id=SUBSCRIPTION_ID,
        resource_group=RESOURCE_GROUP,
        resource_name=CLUSTER_NAME,
    )


@pytest.fixture
def mock_runner() -> MockCommandRunner:
    """Runner answering the kubectl queries of a successful deployment."""
    runner = MockCommandRunner()
    runner.when(
        "kubectl",
        "get",
        "deployment",
        result=CommandResult(
            success=True, stdout=k8s.resource_list(k8s.deployment("todo-api"))
        ),
    )
    runner.when(
        "kubectl",
        "get",
        "svc",
        result=CommandResult(
            success=True, stdout=k8s.resource_list(k8s.service("todo-api"))
        ),
    )
    runner.when(
        "kubectl",
        "get",
        "ing",
        result=CommandResult(
            success=True,
            stdout=k8s.resource_list(
                k8s.ingress(
                    "todo-api",
                    rules=[k8s.http_rule(None, "/")],
                    lb_ips=["20.1.2.3"],
                )
            ),
        ),
    )
    runner.when(
        "kubectl",
        "create",
        "secret",
        result=CommandResult(success=True, stdout="apiVersion: v1\nkind: Secret\n"),
    )
    return runner


@pytest.fixture
def shell_commands(mock_runner: MockCommandRunner) -> ShellCommands:
    return ShellCommands(mock_runner)


@pytest.fixture
def arm_router() -> ArmRouter:
    return default_router()
