"""Unit tests for the ARM clients over ``httpx.MockTransport``."""

from __future__ import annotations

import json

import httpx
import pytest

from src.cli.deployment.azure import (
    ArmClient,
    AzureCliCredential,
    ContainerRegistryService,
    ManagedClustersService,
    StaticTokenCredential,
    default_credential,
)
from src.cli.deployment.cancellation import CancellationToken
from src.cli.deployment.errors import (
    CancellationError,
    CredentialRetrievalError,
    DeploymentError,
    RegistryError,
)
from src.cli.deployment.shell_commands.types import CommandResult
from tests.fixtures import MockCommandRunner
from tests.fixtures.arm import (
    CLUSTER_NAME,
    CLUSTER_PATH,
    REGISTRY_ENDPOINT,
    REGISTRY_ID,
    RESOURCE_GROUP,
    SUBSCRIPTION_ID,
    ArmRouter,
    arm_error,
    credential_results,
    kubeconfig_yaml,
)


def arm_for(router: ArmRouter) -> ArmClient:
    return ArmClient(router.client(), StaticTokenCredential("arm-token"))


class TestArmClient:
    """Tests for request construction."""

    @pytest.mark.asyncio
    async def test_request_sets_auth_and_api_version(self) -> None:
        router = ArmRouter().add("GET", "/thing", body={"ok": True})

        response = await arm_for(router).request("GET", "/thing", api_version="2023-08-01")

        request = router.requests[0]
        assert response.status_code == 200
        assert request.headers["Authorization"] == "Bearer arm-token"
        assert request.url.host == "management.azure.com"
        assert request.url.params["api-version"] == "2023-08-01"

    @pytest.mark.asyncio
    async def test_base_url_override(self, monkeypatch) -> None:
        monkeypatch.setenv("AZURE_ARM_ENDPOINT", "https://management.usgovcloudapi.net/")
        router = ArmRouter().add("GET", "/thing", body={})

        await arm_for(router).request("GET", "/thing")

        assert router.requests[0].url.host == "management.usgovcloudapi.net"

    @pytest.mark.asyncio
    async def test_cancelled_while_acquiring_token(self) -> None:
        """A token cancelled during authentication sends nothing."""
        router = ArmRouter().add("GET", "/thing", body={})
        cancel = CancellationToken()

        class CancellingCredential:
            async def get_token(self, scope, token=None) -> str:
                cancel.cancel("stop")
                return "arm-token"

        arm = ArmClient(router.client(), CancellingCredential())

        with pytest.raises(CancellationError):
            await arm.request("GET", "/thing", token=cancel)
        assert router.requests == []


class TestManagedClustersService:
    """Tests for listClusterAdminCredential."""

    @pytest.mark.asyncio
    async def test_returns_kubeconfigs(self) -> None:
        router = ArmRouter().add(
            "POST",
            "/listClusterAdminCredential",
            body=credential_results(("clusterAdmin", kubeconfig_yaml())),
        )

        results = await ManagedClustersService(arm_for(router)).get_admin_credentials(
            SUBSCRIPTION_ID, RESOURCE_GROUP, CLUSTER_NAME
        )

        assert router.paths("POST") == [f"{CLUSTER_PATH}/listClusterAdminCredential"]
        assert results.kubeconfigs[0].name == "clusterAdmin"
        assert results.kubeconfigs[0].decode().decode() == kubeconfig_yaml()

    @pytest.mark.asyncio
    async def test_unauthorized_is_credential_error(self) -> None:
        router = ArmRouter().add(
            "POST",
            "/listClusterAdminCredential",
            status=401,
            body=arm_error("InvalidAuthenticationToken", "token expired"),
        )

        with pytest.raises(CredentialRetrievalError) as excinfo:
            await ManagedClustersService(arm_for(router)).get_admin_credentials(
                SUBSCRIPTION_ID, RESOURCE_GROUP, CLUSTER_NAME
            )

        assert "failed retrieving cluster admin credentials" in excinfo.value.message
        assert excinfo.value.status_code == 401
        assert excinfo.value.details == "InvalidAuthenticationToken: token expired"

    @pytest.mark.asyncio
    async def test_transport_error_is_credential_error(self) -> None:
        def explode(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        router = ArmRouter().add("POST", "/listClusterAdminCredential", handler=explode)

        with pytest.raises(CredentialRetrievalError, match="failed retrieving"):
            await ManagedClustersService(arm_for(router)).get_admin_credentials(
                SUBSCRIPTION_ID, RESOURCE_GROUP, CLUSTER_NAME
            )

    def test_invalid_base64_is_credential_error(self) -> None:
        from src.cli.deployment.azure import CredentialResult

        with pytest.raises(CredentialRetrievalError, match="not valid base64"):
            CredentialResult(name="clusterAdmin", value="%%%").decode()


class TestContainerRegistryService:
    """Tests for registry discovery and credentials."""

    @staticmethod
    def registry(name: str, login_server: str) -> dict:
        return {
            "id": f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{RESOURCE_GROUP}"
            f"/providers/Microsoft.ContainerRegistry/registries/{name}",
            "name": name,
            "properties": {"loginServer": login_server},
        }

    @pytest.mark.asyncio
    async def test_find_registry_follows_next_link(self) -> None:
        """Pages are followed until the matching login server is found."""

        def pages(request: httpx.Request) -> httpx.Response:
            if "skiptoken" in request.url.params:
                return httpx.Response(
                    200, json={"value": [self.registry("crtodo", "CRTODO.azurecr.io")]}
                )
            return httpx.Response(
                200,
                json={
                    "value": [self.registry("other", "other.azurecr.io")],
                    "nextLink": str(request.url.copy_add_param("skiptoken", "p2")),
                },
            )

        router = ArmRouter().add("GET", "/registries", handler=pages)

        registry = await ContainerRegistryService(arm_for(router)).find_registry(
            SUBSCRIPTION_ID, REGISTRY_ENDPOINT
        )

        assert registry.name == "crtodo"
        assert len(router.requests) == 2

    @pytest.mark.asyncio
    async def test_find_registry_not_found(self) -> None:
        router = ArmRouter().add(
            "GET", "/registries", body={"value": [self.registry("other", "other.azurecr.io")]}
        )

        with pytest.raises(RegistryError, match="not found") as excinfo:
            await ContainerRegistryService(arm_for(router)).find_registry(
                SUBSCRIPTION_ID, REGISTRY_ENDPOINT
            )
        assert "other.azurecr.io" in (excinfo.value.details or "")

    @pytest.mark.asyncio
    async def test_list_failure_carries_status(self) -> None:
        router = ArmRouter().add(
            "GET", "/registries", status=403, body=arm_error("AuthorizationFailed", "nope")
        )

        with pytest.raises(RegistryError) as excinfo:
            await ContainerRegistryService(arm_for(router)).list_registries(SUBSCRIPTION_ID)
        assert excinfo.value.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_credentials(self) -> None:
        router = (
            ArmRouter()
            .add("GET", "/registries", body={"value": [self.registry("crtodo", REGISTRY_ENDPOINT)]})
            .add(
                "POST",
                "/listCredentials",
                body={"username": "crtodo", "passwords": [{"name": "password", "value": "pw"}]},
            )
        )
        service = ContainerRegistryService(arm_for(router))

        registry = await service.find_registry(SUBSCRIPTION_ID, REGISTRY_ENDPOINT)
        credentials = await service.get_admin_credentials(registry)

        assert router.paths("POST") == [f"{REGISTRY_ID}/listCredentials"]
        assert (credentials.username, credentials.password) == ("crtodo", "pw")
        assert "'pw'" not in repr(credentials)

    @pytest.mark.asyncio
    async def test_admin_disabled_is_registry_error(self) -> None:
        router = (
            ArmRouter()
            .add("GET", "/registries", body={"value": [self.registry("crtodo", REGISTRY_ENDPOINT)]})
            .add("POST", "/listCredentials", body={"username": "crtodo", "passwords": []})
        )
        service = ContainerRegistryService(arm_for(router))
        registry = await service.find_registry(SUBSCRIPTION_ID, REGISTRY_ENDPOINT)

        with pytest.raises(RegistryError, match="no admin credentials"):
            await service.get_admin_credentials(registry)


class TestCredentials:
    """Tests for bearer token sources."""

    @pytest.mark.asyncio
    async def test_azure_cli_credential_caches_token(self) -> None:
        runner = MockCommandRunner().when(
            "az",
            result=CommandResult(
                success=True,
                stdout=json.dumps({"accessToken": "cli-token", "expires_on": 4102444800}),
            ),
        )
        credential = AzureCliCredential(runner, tenant_id="tenant-1")

        first = await credential.get_token("https://management.azure.com/.default")
        second = await credential.get_token("https://management.azure.com/.default")

        assert first == second == "cli-token"
        assert len(runner.calls) == 1
        assert runner.calls[0].cmd[-2:] == ["--tenant", "tenant-1"]
        assert "https://management.azure.com" in runner.calls[0].cmd

    @pytest.mark.asyncio
    async def test_azure_cli_failure(self) -> None:
        runner = MockCommandRunner().fail("az", stderr="Please run 'az login'")
        with pytest.raises(DeploymentError, match="access token"):
            await AzureCliCredential(runner).get_token("https://management.azure.com/.default")

    def test_default_credential_prefers_env_token(self, monkeypatch) -> None:
        monkeypatch.setenv("AZURE_ACCESS_TOKEN", "env-token")
        assert isinstance(default_credential(MockCommandRunner()), StaticTokenCredential)

        monkeypatch.delenv("AZURE_ACCESS_TOKEN")
        assert isinstance(default_credential(MockCommandRunner()), AzureCliCredential)
