"""Kubectl command abstractions.

This module provides the kubectl operations used by the AKS deployment
pipeline. All commands run against an explicit kubeconfig file (exported as
``KUBECONFIG``) so the user's own ``~/.kube/config`` is never touched.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from src.infra.k8s.models import ResourceList, ResourceT

from ..errors import CommandExecutionError, DeploymentError
from .types import CommandResult, RunArgs

if TYPE_CHECKING:
    from ..cancellation import CancellationToken
    from .runner import CommandRunner

ALREADY_EXISTS = "already exists"


class KubectlCommands:
    """Kubectl-related shell commands.

    Provides operations for:
    - Kubeconfig inspection and context selection
    - Namespace and secret management (idempotent)
    - Applying manifests from standard input
    - Rollout status and typed resource queries
    """

    def __init__(self, runner: CommandRunner, kubeconfig: Path | None = None) -> None:
        """Initialize kubectl commands.

        Args:
            runner: Command runner for executing shell commands
            kubeconfig: Kubeconfig file passed to every invocation
        """
        self._runner = runner
        self.kubeconfig = kubeconfig

    def with_kubeconfig(self, kubeconfig: Path) -> KubectlCommands:
        """Return a copy bound to another kubeconfig file."""
        return KubectlCommands(self._runner, kubeconfig)

    def _args(
        self,
        *args: str,
        stdin: str | None = None,
        secrets: tuple[str, ...] = (),
    ) -> RunArgs:
        env = {"KUBECONFIG": str(self.kubeconfig)} if self.kubeconfig else {}
        return RunArgs(["kubectl", *args], stdin=stdin, env=env, secrets=secrets)

    # =========================================================================
    # Kubeconfig
    # =========================================================================

    async def config_view(self, token: CancellationToken | None = None) -> CommandResult:
        """Validate the kubeconfig by rendering it."""
        return await self._runner.run_checked(
            self._args("config", "view"),
            token,
            message="failed reading kubeconfig",
        )

    async def use_context(
        self, name: str, token: CancellationToken | None = None
    ) -> CommandResult:
        """Switch the active context of the kubeconfig."""
        return await self._runner.run_checked(
            self._args("config", "use-context", name),
            token,
            message=f"failed switching to kubectl context '{name}'",
        )

    # =========================================================================
    # Namespace & Secrets
    # =========================================================================

    async def create_namespace(
        self, namespace: str, token: CancellationToken | None = None
    ) -> bool:
        """Create a namespace if it does not exist.

        Returns:
            True if the namespace was created, False if it already existed
        """
        args = self._args("create", "namespace", namespace)
        result = await self._runner.run(args, token)
        if result.success:
            return True
        if ALREADY_EXISTS in result.stderr.lower():
            return False

        raise CommandExecutionError(
            f"failed creating namespace '{namespace}'",
            command=args.command,
            result=result,
        )

    async def create_generic_secret(
        self,
        name: str,
        namespace: str,
        literals: Mapping[str, str],
        token: CancellationToken | None = None,
    ) -> CommandResult:
        """Create or overwrite a generic secret from literal values.

        The secret is rendered client-side and applied, so an existing
        secret is updated instead of causing an error.
        """
        literal_args = [f"--from-literal={key}={value}" for key, value in literals.items()]
        secrets = tuple(literals.values())
        rendered = await self._runner.run_checked(
            self._args(
                "create",
                "secret",
                "generic",
                name,
                *literal_args,
                "-n",
                namespace,
                "--dry-run=client",
                "-o",
                "yaml",
                secrets=secrets,
            ),
            token,
            message=f"failed rendering secret '{name}'",
        )
        return await self.apply_pipe(
            rendered.stdout,
            namespace,
            token,
            message=f"failed applying secret '{name}' to namespace '{namespace}'",
        )

    # =========================================================================
    # Apply & Rollout
    # =========================================================================

    async def apply_pipe(
        self,
        content: str,
        namespace: str | None = None,
        token: CancellationToken | None = None,
        *,
        message: str = "failed applying kubernetes manifests",
    ) -> CommandResult:
        """Apply manifests streamed on standard input (``kubectl apply -f -``)."""
        args = ["apply", "-f", "-"]
        if namespace:
            args.extend(["-n", namespace])
        return await self._runner.run_checked(
            self._args(*args, stdin=content),
            token,
            message=message,
        )

    async def rollout_status(
        self,
        name: str,
        namespace: str,
        *,
        timeout_seconds: int,
        token: CancellationToken | None = None,
    ) -> CommandResult:
        """Wait for a deployment rollout to complete.

        Returns the raw result; callers map a failure to their own error.
        """
        return await self._runner.run(
            self._args(
                "rollout",
                "status",
                f"deployment/{name}",
                "-n",
                namespace,
                f"--timeout={timeout_seconds}s",
            ),
            token,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_resources(
        self,
        resource_type: str,
        namespace: str,
        model: type[ResourceT],
        token: CancellationToken | None = None,
    ) -> ResourceList[ResourceT]:
        """List resources of one type as a typed list.

        Args:
            resource_type: kubectl resource name (e.g., "deployment", "svc", "ing")
            namespace: Kubernetes namespace
            model: Model used to parse each item

        Raises:
            CommandExecutionError: If kubectl fails
            DeploymentError: If the output is not a resource list
        """
        result = await self._runner.run_checked(
            self._args("get", resource_type, "-n", namespace, "-o", "json"),
            token,
            message=f"failed listing {resource_type} in namespace '{namespace}'",
        )
        if not result.stdout.strip():
            return ResourceList[model]()  # type: ignore[valid-type]
        try:
            return ResourceList[model].model_validate_json(result.stdout)  # type: ignore[valid-type]
        except ValidationError as e:
            raise DeploymentError(
                f"unexpected output from 'kubectl get {resource_type}'",
                details=str(e),
            ) from e
