"""Minimal HTTP plumbing for Azure Resource Manager calls.

The deployment pipeline only needs "send a request, get a response". That
capability is the HttpClient protocol; ``httpx.AsyncClient`` satisfies it
directly, and tests plug in an ``httpx.MockTransport``.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from loguru import logger

if TYPE_CHECKING:
    from ..cancellation import CancellationToken
    from .auth import TokenCredential

ARM_ENDPOINT = "https://management.azure.com"
ARM_SCOPE = "https://management.azure.com/.default"


class HttpClient(Protocol):
    """Anything that can send an ``httpx.Request``."""

    async def send(self, request: httpx.Request) -> httpx.Response: ...


def error_summary(response: httpx.Response) -> str:
    """Extract a human-readable message from an ARM error response."""
    try:
        body: Any = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        code = error.get("code", "")
        message = error.get("message", "")
        return f"{code}: {message}" if code else str(message)
    return response.text.strip() or response.reason_phrase


class ArmClient:
    """Authenticated requests against Azure Resource Manager."""

    def __init__(
        self,
        http: HttpClient,
        credential: TokenCredential,
        base_url: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            http: Transport used to send requests
            credential: Source of bearer tokens
            base_url: ARM endpoint (defaults to $AZURE_ARM_ENDPOINT or public cloud)
        """
        self._http = http
        self._credential = credential
        self.base_url = (
            base_url or os.environ.get("AZURE_ARM_ENDPOINT") or ARM_ENDPOINT
        ).rstrip("/")

    async def request(
        self,
        method: str,
        path: str,
        *,
        api_version: str | None = None,
        json: dict[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> httpx.Response:
        """Send a request to ARM.

        Args:
            method: HTTP method
            path: Resource path (e.g., /subscriptions/...) or an absolute
                  ``nextLink`` URL
            api_version: Value of the ``api-version`` query parameter
            json: Optional JSON body
            token: Cancellation token

        Returns:
            The raw response; status handling is left to the caller

        Raises:
            httpx.HTTPError: On transport failures
            CancellationError: If the token fires first
        """
        bearer = await self._credential.get_token(ARM_SCOPE, token)

        url = path if path.startswith("http") else f"{self.base_url}{path}"
        params = {"api-version": api_version} if api_version else None
        request = httpx.Request(
            method,
            url,
            params=params,
            json=json,
            headers={"Authorization": f"Bearer {bearer}", "Accept": "application/json"},
        )

        logger.debug(f"ARM {method} {request.url.path}")
        if token:
            response = await token.guard(self._http.send(request))
        else:
            response = await self._http.send(request)
        logger.debug(f"ARM {method} {request.url.path} -> {response.status_code}")
        return response
