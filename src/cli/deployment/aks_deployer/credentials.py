"""Cluster credential resolution.

Turns the control plane's ``listClusterAdminCredential`` response into a
KubeConfig the manifest pipeline can hand to kubectl.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import yaml
from loguru import logger
from pydantic import ValidationError

from src.infra.k8s.models import KubeConfig

from ..errors import CredentialRetrievalError
from .constants import AksConstants

if TYPE_CHECKING:
    from src.infra.project import TargetResource

    from ..azure.managed_clusters import CredentialResult, ManagedClustersService
    from ..cancellation import CancellationToken


class CredentialResolver:
    """Resolves the administrative kubeconfig of an AKS cluster."""

    def __init__(
        self,
        clusters: ManagedClustersService,
        constants: AksConstants | None = None,
    ) -> None:
        self.clusters = clusters
        self.constants = constants or AksConstants()

    async def resolve(
        self, scope: TargetResource, token: CancellationToken | None = None
    ) -> KubeConfig:
        """Fetch and decode the cluster's admin kubeconfig.

        Safe to retry; the call has no side effects.

        Args:
            scope: Cluster resource (subscription, resource group, cluster name)
            token: Cancellation token

        Raises:
            CredentialRetrievalError: If the call fails, returns no kubeconfig,
                or the kubeconfig is malformed
        """
        results = await self.clusters.get_admin_credentials(
            scope.subscription_id,
            scope.resource_group,
            scope.resource_name,
            token,
        )
        if not results.kubeconfigs:
            raise CredentialRetrievalError(
                f"cluster credentials is empty for cluster '{scope.resource_name}'"
            )

        entry = self._select(results.kubeconfigs)
        logger.debug(f"Using kubeconfig '{entry.name}' for {scope.resource_name}")

        try:
            kube_config = KubeConfig.from_yaml(entry.decode())
        except (yaml.YAMLError, ValidationError) as e:
            raise CredentialRetrievalError(
                f"failed decoding kubeconfig for cluster '{scope.resource_name}'",
                details=str(e),
            ) from e

        if kube_config.get_context(kube_config.current_context) is None:
            raise CredentialRetrievalError(
                f"kubeconfig for cluster '{scope.resource_name}' has no context "
                f"named '{kube_config.current_context}'",
                details="Available contexts: "
                + (", ".join(c.name for c in kube_config.contexts) or "none"),
            )
        return kube_config

    def _select(self, entries: list[CredentialResult]) -> CredentialResult:
        for entry in entries:
            if entry.name == self.constants.ADMIN_KUBECONFIG_NAME:
                return entry
        return entries[0]
