"""Deployment state machine.

A deployment moves strictly forward through its stages; any stage may fail.
There are no backward transitions and no retries:

    INIT -> CREDENTIALS_RESOLVED -> REGISTRY_RESOLVED -> IMAGE_PUBLISHED
         -> MANIFESTS_APPLIED -> ROLLOUT_CONFIRMED -> ENDPOINTS_COLLECTED -> DONE

    (any non-terminal state) -> FAILED
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum


class DeployState(StrEnum):
    INIT = "init"
    CREDENTIALS_RESOLVED = "credentials_resolved"
    REGISTRY_RESOLVED = "registry_resolved"
    IMAGE_PUBLISHED = "image_published"
    MANIFESTS_APPLIED = "manifests_applied"
    ROLLOUT_CONFIRMED = "rollout_confirmed"
    ENDPOINTS_COLLECTED = "endpoints_collected"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DeployState.DONE, DeployState.FAILED)


_NEXT: dict[DeployState, DeployState] = {
    DeployState.INIT: DeployState.CREDENTIALS_RESOLVED,
    DeployState.CREDENTIALS_RESOLVED: DeployState.REGISTRY_RESOLVED,
    DeployState.REGISTRY_RESOLVED: DeployState.IMAGE_PUBLISHED,
    DeployState.IMAGE_PUBLISHED: DeployState.MANIFESTS_APPLIED,
    DeployState.MANIFESTS_APPLIED: DeployState.ROLLOUT_CONFIRMED,
    DeployState.ROLLOUT_CONFIRMED: DeployState.ENDPOINTS_COLLECTED,
    DeployState.ENDPOINTS_COLLECTED: DeployState.DONE,
}

TRANSITION_MESSAGES: dict[DeployState, str] = {
    DeployState.CREDENTIALS_RESOLVED: "Retrieved AKS cluster credentials",
    DeployState.REGISTRY_RESOLVED: "Retrieved container registry credentials",
    DeployState.IMAGE_PUBLISHED: "Pushed container image",
    DeployState.MANIFESTS_APPLIED: "Applied Kubernetes manifests",
    DeployState.ROLLOUT_CONFIRMED: "Deployment rollout complete",
    DeployState.ENDPOINTS_COLLECTED: "Collected service endpoints",
    DeployState.DONE: "Deployment complete",
    DeployState.FAILED: "Deployment failed",
}


class IllegalTransitionError(RuntimeError):
    """Raised on an attempt to move the state machine out of order."""


class DeploymentStateMachine:
    """Tracks the stage a deployment has reached."""

    def __init__(
        self, on_transition: Callable[[DeployState, str], None] | None = None
    ) -> None:
        """Initialize the machine in INIT.

        Args:
            on_transition: Called with the new state and its progress message
        """
        self._state = DeployState.INIT
        self._on_transition = on_transition
        self.history: list[DeployState] = [DeployState.INIT]
        self.error: BaseException | None = None

    @property
    def state(self) -> DeployState:
        return self._state

    def advance(self, target: DeployState) -> None:
        """Move to the next stage.

        Raises:
            IllegalTransitionError: If ``target`` is not the immediate successor
        """
        expected = _NEXT.get(self._state)
        if target is not expected:
            raise IllegalTransitionError(
                f"cannot move from {self._state} to {target}"
                + (f" (expected {expected})" if expected else "")
            )
        self._enter(target)

    def fail(self, error: BaseException) -> None:
        """Move to FAILED, recording the originating error."""
        if self._state.is_terminal:
            raise IllegalTransitionError(f"cannot fail from terminal state {self._state}")
        self.error = error
        self._enter(DeployState.FAILED)

    def _enter(self, state: DeployState) -> None:
        self._state = state
        self.history.append(state)
        if self._on_transition:
            self._on_transition(state, TRANSITION_MESSAGES[state])
