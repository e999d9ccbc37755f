"""Bearer token sources for Azure Resource Manager."""

from __future__ import annotations

import json
import os
import time
from typing import TYPE_CHECKING, Protocol

from ..errors import DeploymentError
from ..shell_commands.types import RunArgs

if TYPE_CHECKING:
    from ..cancellation import CancellationToken
    from ..shell_commands.runner import CommandRunner

ACCESS_TOKEN_ENV_VAR = "AZURE_ACCESS_TOKEN"

# Refresh tokens this many seconds before they expire
_EXPIRY_MARGIN = 300


class TokenCredential(Protocol):
    async def get_token(
        self, scope: str, token: CancellationToken | None = None
    ) -> str: ...


class StaticTokenCredential:
    """A pre-acquired bearer token (e.g., from $AZURE_ACCESS_TOKEN)."""

    def __init__(self, access_token: str) -> None:
        self._access_token = access_token

    async def get_token(
        self, scope: str, token: CancellationToken | None = None
    ) -> str:
        return self._access_token


class AzureCliCredential:
    """Acquires tokens with ``az account get-access-token``.

    Tokens are cached until shortly before they expire.
    """

    def __init__(self, runner: CommandRunner, tenant_id: str | None = None) -> None:
        self._runner = runner
        self._tenant_id = tenant_id
        self._cache: dict[str, tuple[str, float]] = {}

    async def get_token(
        self, scope: str, token: CancellationToken | None = None
    ) -> str:
        cached = self._cache.get(scope)
        if cached and cached[1] - _EXPIRY_MARGIN > time.time():
            return cached[0]

        resource = scope.removesuffix("/.default")
        cmd = [
            "az",
            "account",
            "get-access-token",
            "--resource",
            resource,
            "--output",
            "json",
        ]
        if self._tenant_id:
            cmd.extend(["--tenant", self._tenant_id])

        result = await self._runner.run(RunArgs(cmd), token)
        if not result.success:
            raise DeploymentError(
                "failed acquiring an Azure access token",
                details=(
                    f"{result.stderr.strip()}\n\n"
                    "Run 'az login' or set AZURE_ACCESS_TOKEN and try again."
                ),
            )

        try:
            payload = json.loads(result.stdout)
            access_token = payload["accessToken"]
        except (ValueError, KeyError) as e:
            raise DeploymentError(
                "unexpected output from 'az account get-access-token'",
                details=str(e),
            ) from e

        expires_on = float(payload.get("expires_on") or time.time() + 3600)
        self._cache[scope] = (access_token, expires_on)
        return access_token


def default_credential(
    runner: CommandRunner, tenant_id: str | None = None
) -> TokenCredential:
    """Use $AZURE_ACCESS_TOKEN when set, otherwise the Azure CLI."""
    access_token = os.environ.get(ACCESS_TOKEN_ENV_VAR)
    if access_token:
        return StaticTokenCredential(access_token)
    return AzureCliCredential(runner, tenant_id)
