"""Unit tests for rollout confirmation and endpoint discovery."""

from __future__ import annotations

import pytest

from src.cli.deployment.aks_deployer import RolloutCollector, ingress_endpoints, service_endpoints
from src.cli.deployment.errors import DeploymentError, RolloutTimeoutError
from src.cli.deployment.shell_commands import KubectlCommands
from src.cli.deployment.shell_commands.types import CommandResult
from src.infra.k8s.models import Ingress, Service
from tests.fixtures import MockCommandRunner, k8s


def services(*items: dict) -> list[Service]:
    return [Service.model_validate(item) for item in items]


def ingresses(*items: dict) -> list[Ingress]:
    return [Ingress.model_validate(item) for item in items]


class TestServiceEndpoints:
    """Tests for Service endpoint URLs."""

    def test_cluster_ip_service(self) -> None:
        assert service_endpoints(services(k8s.service("api", cluster_ip="10.0.0.7"))) == [
            "http://10.0.0.7:80"
        ]

    def test_load_balancer_uses_external_addresses(self) -> None:
        svc = k8s.service(
            "api",
            service_type="LoadBalancer",
            lb_ips=["20.0.0.1", "20.0.0.2"],
            ports=[{"name": "http", "port": 80}, {"name": "https", "port": 8443}],
        )
        assert service_endpoints(services(svc)) == [
            "http://20.0.0.1:80",
            "https://20.0.0.1:8443",
            "http://20.0.0.2:80",
            "https://20.0.0.2:8443",
        ]

    def test_pending_load_balancer_has_no_endpoints(self) -> None:
        svc = k8s.service("api", service_type="LoadBalancer", lb_ips=[])
        assert service_endpoints(services(svc)) == []

    def test_port_443_and_app_protocol_are_https(self) -> None:
        svc = k8s.service(
            "api",
            ports=[{"port": 443}, {"name": "web", "port": 9000, "appProtocol": "https"}],
        )
        assert service_endpoints(services(svc)) == [
            "https://10.0.0.10:443",
            "https://10.0.0.10:9000",
        ]


class TestIngressEndpoints:
    """Tests for Ingress endpoint URLs."""

    def test_rule_host_and_paths(self) -> None:
        ing = k8s.ingress(
            "api",
            rules=[k8s.http_rule("todo.example.com", "/", "/api")],
            lb_ips=["20.1.2.3"],
        )
        assert ingress_endpoints(ingresses(ing)) == [
            "http://todo.example.com/",
            "http://todo.example.com/api",
        ]

    def test_hostless_rule_uses_address(self) -> None:
        ing = k8s.ingress("api", rules=[k8s.http_rule(None, "/")], lb_ips=["20.1.2.3"])
        assert ingress_endpoints(ingresses(ing)) == ["http://20.1.2.3/"]

    def test_tls_host_is_https(self) -> None:
        ing = k8s.ingress(
            "api",
            rules=[k8s.http_rule("secure.example.com"), k8s.http_rule("plain.example.com")],
            lb_ips=["20.1.2.3"],
            tls=[{"hosts": ["secure.example.com"], "secretName": "tls"}],
        )
        assert ingress_endpoints(ingresses(ing)) == [
            "https://secure.example.com/",
            "http://plain.example.com/",
        ]

    def test_rule_host_listed_once_across_addresses(self) -> None:
        """A host rule does not repeat per load-balancer address."""
        ing = k8s.ingress(
            "api",
            rules=[k8s.http_rule("app.example.com"), k8s.http_rule(None, "/health")],
            lb_ips=["1.1.1.1", "2.2.2.2"],
        )
        assert ingress_endpoints(ingresses(ing)) == [
            "http://app.example.com/",
            "http://1.1.1.1/health",
            "http://2.2.2.2/health",
        ]

    def test_unresolved_ingress_has_no_endpoints(self) -> None:
        ing = k8s.ingress("api", rules=[k8s.http_rule("todo.example.com")], lb_ips=[])
        assert ingress_endpoints(ingresses(ing)) == []

    def test_duplicates_are_kept(self) -> None:
        """Each matching rule contributes one entry."""
        ing = k8s.ingress(
            "api",
            rules=[k8s.http_rule(None, "/"), k8s.http_rule(None, "/")],
            lb_ips=["20.1.2.3"],
        )
        assert ingress_endpoints(ingresses(ing)) == ["http://20.1.2.3/", "http://20.1.2.3/"]


class TestRolloutCollector:
    """Tests for RolloutCollector."""

    @pytest.fixture
    def collector(self, mock_runner: MockCommandRunner) -> RolloutCollector:
        return RolloutCollector(KubectlCommands(mock_runner), poll_interval=0)

    @pytest.mark.asyncio
    async def test_waits_for_deployment_then_rollout(
        self, collector: RolloutCollector, mock_runner: MockCommandRunner
    ) -> None:
        """Polls until the deployment appears, then runs rollout status."""
        replies = iter(
            [
                k8s.resource_list(),
                k8s.resource_list(k8s.deployment("other")),
                k8s.resource_list(k8s.deployment("todo-api-v2")),
            ]
        )
        mock_runner.when(
            "kubectl",
            "get",
            "deployment",
            result=lambda _: CommandResult(success=True, stdout=next(replies)),
        )

        name = await collector.await_rollout("todo", "todo-api", timeout=30)

        assert name == "todo-api-v2"
        assert len(mock_runner.called("kubectl", "get", "deployment")) == 3
        rollout = mock_runner.called("kubectl", "rollout")[0]
        assert list(rollout.cmd[:4]) == ["kubectl", "rollout", "status", "deployment/todo-api-v2"]

    @pytest.mark.asyncio
    async def test_exact_name_preferred_over_substring(
        self, collector: RolloutCollector, mock_runner: MockCommandRunner
    ) -> None:
        mock_runner.when(
            "kubectl",
            "get",
            "deployment",
            result=CommandResult(
                success=True,
                stdout=k8s.resource_list(
                    k8s.deployment("todo-api-worker"), k8s.deployment("todo-api")
                ),
            ),
        )
        assert await collector.await_rollout("todo", "todo-api", timeout=30) == "todo-api"

    @pytest.mark.asyncio
    async def test_rollout_failure_is_timeout_error(
        self, collector: RolloutCollector, mock_runner: MockCommandRunner
    ) -> None:
        mock_runner.fail(
            "kubectl", "rollout", stderr='error: deployment "todo-api" exceeded its progress deadline'
        )
        with pytest.raises(RolloutTimeoutError) as excinfo:
            await collector.await_rollout("todo", "todo-api", timeout=30)
        assert "progress deadline" in (excinfo.value.details or "")

    @pytest.mark.asyncio
    async def test_deployment_never_appears(self, mock_runner: MockCommandRunner) -> None:
        """The deadline covers the wait for the deployment to appear."""
        mock_runner.when(
            "kubectl",
            "get",
            "deployment",
            result=CommandResult(success=True, stdout=k8s.resource_list()),
        )
        collector = RolloutCollector(KubectlCommands(mock_runner), poll_interval=0.01)

        with pytest.raises(RolloutTimeoutError, match="did not roll out within"):
            await collector.await_rollout("todo", "todo-api", timeout=0.1)
        assert mock_runner.called("kubectl", "rollout") == []

    @pytest.mark.asyncio
    async def test_collect_endpoints_services_before_ingresses(
        self, collector: RolloutCollector
    ) -> None:
        collected = await collector.collect_endpoints(
            "todo",
            deployment_name="todo-api",
            service_name="todo-api",
            ingress_name="todo-api",
        )

        assert collected.deployment.metadata.name == "todo-api"
        assert collected.endpoints == ["http://10.0.0.10:80", "http://20.1.2.3/"]

    @pytest.mark.asyncio
    async def test_collect_endpoints_filters_by_name(
        self, collector: RolloutCollector, mock_runner: MockCommandRunner
    ) -> None:
        mock_runner.when(
            "kubectl",
            "get",
            "svc",
            result=CommandResult(
                success=True,
                stdout=k8s.resource_list(
                    k8s.service("redis", cluster_ip="10.0.0.99"),
                    k8s.service("todo-api", cluster_ip="10.0.0.10"),
                ),
            ),
        )

        collected = await collector.collect_endpoints(
            "todo",
            deployment_name="todo-api",
            service_name="todo-api",
            ingress_name="nothing-matches",
        )

        assert collected.endpoints == ["http://10.0.0.10:80"]

    @pytest.mark.asyncio
    async def test_collect_endpoints_without_deployment(
        self, collector: RolloutCollector, mock_runner: MockCommandRunner
    ) -> None:
        mock_runner.when(
            "kubectl",
            "get",
            "deployment",
            result=CommandResult(success=True, stdout=k8s.resource_list()),
        )
        with pytest.raises(DeploymentError, match="not found"):
            await collector.collect_endpoints(
                "todo",
                deployment_name="todo-api",
                service_name="todo-api",
                ingress_name="todo-api",
            )
