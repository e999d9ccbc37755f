"""AKS deployment constants.

This module centralizes the magic strings and tunables used throughout the
AKS deployment pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AksConstants:
    """Constants for AKS deployments.

    All attributes are class-level and immutable.
    """

    # Result kind reported for AKS deployments
    TARGET_KIND: str = "aks"

    # External tools the pipeline shells out to
    REQUIRED_TOOLS: tuple[str, ...] = ("docker", "kubectl")

    # Image tags look like "azd-deploy-1700000000"
    IMAGE_TAG_PREFIX: str = "azd-deploy"

    # Kubeconfig entry preferred among those returned by the control plane
    ADMIN_KUBECONFIG_NAME: str = "clusterAdmin"
    KUBECONFIG_FILE_NAME: str = "config"
    TEMP_DIR_PREFIX: str = "aks-forge-"

    # Registry credentials are stored in "<service>-registry"
    PULL_SECRET_SUFFIX: str = "-registry"

    # Manifest files picked up from the deployment directory
    MANIFEST_SUFFIXES: tuple[str, ...] = (".yaml", ".yml")

    # Seconds between polls while waiting for a deployment to appear
    RESOURCE_POLL_INTERVAL: float = 5.0
