"""AKS managed cluster control-plane operations."""

from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..errors import CredentialRetrievalError
from .http import ArmClient, error_summary

if TYPE_CHECKING:
    from ..cancellation import CancellationToken

MANAGED_CLUSTERS_API_VERSION = "2023-08-01"

CREDENTIALS_ERROR = "failed retrieving cluster admin credentials"


class CredentialResult(BaseModel):
    """One named kubeconfig returned by the control plane."""

    name: str = ""
    value: str = Field(default="", description="Base64-encoded kubeconfig YAML")

    def decode(self) -> bytes:
        try:
            return base64.b64decode(self.value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CredentialRetrievalError(
                f"{CREDENTIALS_ERROR}: kubeconfig '{self.name}' is not valid base64"
            ) from e


class CredentialResults(BaseModel):
    kubeconfigs: list[CredentialResult] = Field(default_factory=list)


class ManagedClustersService:
    """Operations on ``Microsoft.ContainerService/managedClusters``."""

    def __init__(self, arm: ArmClient) -> None:
        self._arm = arm

    async def get_admin_credentials(
        self,
        subscription_id: str,
        resource_group: str,
        cluster_name: str,
        token: CancellationToken | None = None,
    ) -> CredentialResults:
        """Call ``listClusterAdminCredential`` for a cluster.

        Raises:
            CredentialRetrievalError: On transport failures, non-2xx responses
                (e.g., 401/403 for clusters with local accounts disabled) or
                unparsable bodies
        """
        path = (
            f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
            "/providers/Microsoft.ContainerService/managedClusters/"
            f"{cluster_name}/listClusterAdminCredential"
        )
        try:
            response = await self._arm.request(
                "POST", path, api_version=MANAGED_CLUSTERS_API_VERSION, token=token
            )
        except httpx.HTTPError as e:
            raise CredentialRetrievalError(
                f"{CREDENTIALS_ERROR} for cluster '{cluster_name}'", details=str(e)
            ) from e

        if not response.is_success:
            raise CredentialRetrievalError(
                f"{CREDENTIALS_ERROR} for cluster '{cluster_name}' "
                f"(HTTP {response.status_code})",
                status_code=response.status_code,
                details=error_summary(response),
            )

        try:
            return CredentialResults.model_validate_json(response.content)
        except ValidationError as e:
            raise CredentialRetrievalError(
                f"{CREDENTIALS_ERROR}: unexpected response body", details=str(e)
            ) from e
