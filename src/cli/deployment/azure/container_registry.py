"""Azure Container Registry control-plane operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import RegistryError
from .http import ArmClient, error_summary

if TYPE_CHECKING:
    from ..cancellation import CancellationToken

CONTAINER_REGISTRY_API_VERSION = "2023-07-01"


class _ArmModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True, alias_generator=to_camel, extra="ignore"
    )


class RegistryProperties(_ArmModel):
    login_server: str = ""
    admin_user_enabled: bool | None = None


class Registry(_ArmModel):
    id: str
    name: str = ""
    location: str = ""
    properties: RegistryProperties = Field(default_factory=RegistryProperties)


class RegistryListResult(_ArmModel):
    value: list[Registry] = Field(default_factory=list)
    next_link: str | None = None


class RegistryPassword(_ArmModel):
    name: str = ""
    value: str = ""


class RegistryListCredentialsResult(_ArmModel):
    username: str = ""
    passwords: list[RegistryPassword] = Field(default_factory=list)


@dataclass(frozen=True)
class RegistryCredentials:
    """Username/password pair for ``docker login``."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"RegistryCredentials(username={self.username!r}, password='***')"


class ContainerRegistryService:
    """Operations on ``Microsoft.ContainerRegistry/registries``."""

    def __init__(self, arm: ArmClient) -> None:
        self._arm = arm

    async def _call(
        self,
        method: str,
        path: str,
        what: str,
        token: CancellationToken | None,
    ) -> httpx.Response:
        try:
            response = await self._arm.request(
                method, path, api_version=CONTAINER_REGISTRY_API_VERSION, token=token
            )
        except httpx.HTTPError as e:
            raise RegistryError(f"failed {what}", details=str(e)) from e
        if not response.is_success:
            raise RegistryError(
                f"failed {what} (HTTP {response.status_code})",
                status_code=response.status_code,
                details=error_summary(response),
            )
        return response

    async def list_registries(
        self, subscription_id: str, token: CancellationToken | None = None
    ) -> list[Registry]:
        """List every registry in a subscription, following ``nextLink``."""
        registries: list[Registry] = []
        path: str | None = (
            f"/subscriptions/{subscription_id}"
            "/providers/Microsoft.ContainerRegistry/registries"
        )
        while path:
            response = await self._call("GET", path, "listing container registries", token)
            try:
                page = RegistryListResult.model_validate_json(response.content)
            except ValidationError as e:
                raise RegistryError(
                    "unexpected response listing container registries", details=str(e)
                ) from e
            registries.extend(page.value)
            path = page.next_link
        return registries

    async def find_registry(
        self,
        subscription_id: str,
        login_server: str,
        token: CancellationToken | None = None,
    ) -> Registry:
        """Find the registry whose login server matches ``login_server``.

        Raises:
            RegistryError: If no registry in the subscription matches
        """
        registries = await self.list_registries(subscription_id, token)
        for registry in registries:
            if registry.properties.login_server.lower() == login_server.lower():
                logger.debug(f"Matched registry {registry.id}")
                return registry
        raise RegistryError(
            f"container registry '{login_server}' not found in subscription "
            f"'{subscription_id}'",
            details=f"Found {len(registries)} registries: "
            + (", ".join(r.properties.login_server for r in registries) or "none"),
        )

    async def get_admin_credentials(
        self, registry: Registry, token: CancellationToken | None = None
    ) -> RegistryCredentials:
        """Call ``listCredentials`` on a registry.

        Raises:
            RegistryError: If the call fails or no password is returned
                (e.g., the admin user is disabled)
        """
        what = f"retrieving credentials for container registry '{registry.name}'"
        response = await self._call("POST", f"{registry.id}/listCredentials", what, token)
        try:
            result = RegistryListCredentialsResult.model_validate_json(response.content)
        except ValidationError as e:
            raise RegistryError(f"unexpected response {what}", details=str(e)) from e

        passwords = [p.value for p in result.passwords if p.value]
        if not result.username or not passwords:
            raise RegistryError(
                f"failed {what}: no admin credentials returned",
                details="Enable the admin user on the registry and try again.",
            )
        return RegistryCredentials(username=result.username, password=passwords[0])
