"""Kubernetes manifest pipeline.

Prepares the cluster for a service (kubeconfig, context, namespace, image
pull secret), substitutes the published image reference into the
service's manifests and applies them in one ``kubectl apply -f -`` batch.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from loguru import logger

from src.infra.environment import service_image_key

from ..errors import ManifestError
from .constants import AksConstants

if TYPE_CHECKING:
    from src.infra.k8s.models import KubeConfig

    from ..azure.container_registry import RegistryCredentials
    from ..cancellation import CancellationToken
    from ..shell_commands.kubectl import KubectlCommands

DOCUMENT_SEPARATOR = "---\n"


def write_kubeconfig(
    kube_config: KubeConfig,
    directory: Path,
    file_name: str = AksConstants.KUBECONFIG_FILE_NAME,
) -> Path:
    """Materialize a kubeconfig readable only by the current user.

    Args:
        kube_config: Cluster access document
        directory: Existing directory owned by the deployment
        file_name: Name of the file to create

    Returns:
        Path to the written kubeconfig
    """
    path = directory / file_name
    path.write_text(kube_config.to_yaml())
    os.chmod(path, 0o600)
    logger.debug(f"Wrote kubeconfig to {path}")
    return path


def image_placeholder_pattern(service_name: str) -> re.Pattern[str]:
    """Match ``${SERVICE_<NAME>_IMAGE_NAME}`` and ``$SERVICE_<NAME>_IMAGE_NAME``."""
    key = re.escape(service_image_key(service_name))
    return re.compile(rf"\$\{{{key}\}}|\${key}(?![A-Za-z0-9_])")


@dataclass(frozen=True)
class PullSecret:
    """Image pull secret to create alongside the manifests."""

    name: str
    server: str
    credentials: RegistryCredentials

    def literals(self) -> dict[str, str]:
        return {
            "username": self.credentials.username,
            "password": self.credentials.password,
            "server": self.server,
        }


class ManifestApplier:
    """Applies a service's manifests to an AKS cluster.

    Attributes:
        kubectl: Kubectl command wrapper (unbound; the kubeconfig is set per apply)
    """

    def __init__(
        self,
        kubectl: KubectlCommands,
        constants: AksConstants | None = None,
    ) -> None:
        self.kubectl = kubectl
        self.constants = constants or AksConstants()

    # =========================================================================
    # Manifest Loading
    # =========================================================================

    def load_manifests(self, manifest_dir: Path) -> list[tuple[Path, str]]:
        """Read every manifest file of a directory, sorted by file name.

        Raises:
            ManifestError: If the directory is missing, holds no manifest
                documents, or a file is not valid UTF-8 YAML. Empty files are
                skipped.
        """
        if not manifest_dir.is_dir():
            raise ManifestError(
                f"manifest directory not found: {manifest_dir}",
                details="Create the directory or set 'k8s.deploymentPath' in azure.yaml",
            )

        files = sorted(
            path
            for path in manifest_dir.iterdir()
            if path.is_file() and path.suffix.lower() in self.constants.MANIFEST_SUFFIXES
        )
        if not files:
            raise ManifestError(f"no manifest files found in {manifest_dir}")

        manifests = []
        for path in files:
            try:
                content = path.read_text(encoding="utf-8")
                documents = [doc for doc in yaml.safe_load_all(content) if doc is not None]
            except UnicodeDecodeError as e:
                raise ManifestError(
                    f"manifest {path.name} is not valid UTF-8", details=str(e)
                ) from e
            except yaml.YAMLError as e:
                raise ManifestError(
                    f"invalid YAML in manifest {path.name}", details=str(e)
                ) from e
            if not documents:
                logger.debug(f"Skipping empty manifest {path.name}")
                continue
            manifests.append((path, content))

        if not manifests:
            raise ManifestError(f"no manifest documents found in {manifest_dir}")
        return manifests

    def render(
        self,
        manifests: list[tuple[Path, str]],
        service_name: str,
        image_ref: str,
    ) -> str:
        """Substitute the image reference and join the manifests.

        Only placeholder occurrences are replaced; all other text is kept
        byte for byte.

        Raises:
            ManifestError: If no manifest references the image placeholder
        """
        pattern = image_placeholder_pattern(service_name)
        rendered: list[str] = []
        replaced = 0
        for path, content in manifests:
            content, count = pattern.subn(lambda _: image_ref, content)
            if count:
                logger.debug(f"Substituted image in {path.name} ({count}x)")
            replaced += count
            rendered.append(content if content.endswith("\n") else content + "\n")

        if not replaced:
            raise ManifestError(
                "image placeholder not found in manifests",
                details=f"Reference the image as ${{{service_image_key(service_name)}}}",
            )
        return DOCUMENT_SEPARATOR.join(rendered)

    # =========================================================================
    # Apply
    # =========================================================================

    async def apply(
        self,
        manifest_dir: Path,
        kube_config: KubeConfig,
        *,
        kubeconfig_dir: Path,
        namespace: str,
        service_name: str,
        image_ref: str,
        pull_secret: PullSecret | None = None,
        report: Callable[[str], None] | None = None,
        token: CancellationToken | None = None,
    ) -> KubectlCommands:
        """Prepare the namespace and apply the rendered manifests.

        Manifests are loaded and rendered before touching the cluster, so a
        broken manifest set fails without side effects.

        Args:
            manifest_dir: Directory holding the service's manifests
            kube_config: Admin kubeconfig of the target cluster
            kubeconfig_dir: Transient directory receiving the kubeconfig
            namespace: Target namespace
            service_name: Service whose image placeholder is substituted
            image_ref: Published image reference
            pull_secret: Image pull secret to create, if any
            report: Progress callback
            token: Cancellation token

        Returns:
            Kubectl commands bound to the written kubeconfig

        Raises:
            ManifestError: If the manifests cannot be loaded or rendered
            CommandExecutionError: If a kubectl command fails
        """
        notify = report or (lambda _: None)
        content = self.render(self.load_manifests(manifest_dir), service_name, image_ref)

        kubectl = self.kubectl.with_kubeconfig(
            write_kubeconfig(kube_config, kubeconfig_dir, self.constants.KUBECONFIG_FILE_NAME)
        )
        await kubectl.config_view(token)
        await kubectl.use_context(kube_config.current_context, token)

        notify("Creating deployment namespace")
        if not await kubectl.create_namespace(namespace, token):
            logger.debug(f"Namespace '{namespace}' already exists")

        if pull_secret is not None:
            notify("Creating image pull secret")
            await kubectl.create_generic_secret(
                pull_secret.name, namespace, pull_secret.literals(), token
            )

        notify("Applying Kubernetes manifests")
        await kubectl.apply_pipe(content, namespace, token)
        return kubectl
