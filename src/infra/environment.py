"""Deployment environment values.

An environment is a flat key/value store of deployment-scoped settings
(subscription, resource group, cluster name, registry endpoint, ...). It is
persisted as a dotenv file under ``.azure/<name>/.env`` in the project root
and mutated in place while a deployment runs.

Note: an Environment instance is not thread-safe. Two deployments sharing
one instance must not run concurrently.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from pathlib import Path

from dotenv import dotenv_values, set_key
from loguru import logger

ENV_NAME_KEY = "AZURE_ENV_NAME"
SUBSCRIPTION_ID_KEY = "AZURE_SUBSCRIPTION_ID"
TENANT_ID_KEY = "AZURE_TENANT_ID"
LOCATION_KEY = "AZURE_LOCATION"
RESOURCE_GROUP_KEY = "AZURE_RESOURCE_GROUP"
AKS_CLUSTER_KEY = "AZURE_AKS_CLUSTER_NAME"
CONTAINER_REGISTRY_ENDPOINT_KEY = "AZURE_CONTAINER_REGISTRY_ENDPOINT"

ENVIRONMENTS_DIR = ".azure"
ENV_FILE_NAME = ".env"
CONFIG_FILE_NAME = "config.json"

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def default_environment_name(project_root: Path) -> str | None:
    """Name of the environment used when none is given.

    $AZURE_ENV_NAME wins over ``defaultEnvironment`` in ``.azure/config.json``.
    """
    if name := os.environ.get(ENV_NAME_KEY):
        return name

    config_path = project_root / ENVIRONMENTS_DIR / CONFIG_FILE_NAME
    if not config_path.exists():
        return None
    try:
        config = json.loads(config_path.read_text())
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring unreadable {config_path}: {e}")
        return None
    return config.get("defaultEnvironment") or None


def service_image_key(service_name: str) -> str:
    """Environment key holding the pushed image reference for a service.

    Example:
        >>> service_image_key("web-api")
        'SERVICE_WEB_API_IMAGE_NAME'
    """
    return f"SERVICE_{_NON_ALNUM.sub('_', service_name).upper()}_IMAGE_NAME"


class Environment:
    """Mutable key/value store for one deployment environment."""

    def __init__(
        self,
        name: str,
        values: Mapping[str, str] | None = None,
        path: Path | None = None,
    ) -> None:
        self.name = name
        self.values: dict[str, str] = dict(values or {})
        self.path = path

    @classmethod
    def ephemeral(cls, name: str, values: Mapping[str, str]) -> Environment:
        """Create an in-memory environment that is never written to disk."""
        return cls(name, values)

    @classmethod
    def load(cls, project_root: Path, name: str) -> Environment:
        """Load ``.azure/<name>/.env`` from the project root.

        A missing file yields an empty environment bound to that path, so a
        later ``save()`` creates it.
        """
        path = project_root / ENVIRONMENTS_DIR / name / ENV_FILE_NAME
        values: dict[str, str] = {}
        if path.exists():
            values = {k: v for k, v in dotenv_values(path).items() if v is not None}
            logger.debug(f"Loaded {len(values)} values from {path}")
        else:
            logger.debug(f"Environment file {path} not found, starting empty")
        values.setdefault(ENV_NAME_KEY, name)
        return cls(name, values, path)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.values.get(key, default)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def get_non_empty(self, key: str) -> str | None:
        """Return the value for ``key`` when it is present and non-empty."""
        return self.values.get(key) or None

    @property
    def subscription_id(self) -> str | None:
        return self.get_non_empty(SUBSCRIPTION_ID_KEY)

    @property
    def resource_group(self) -> str | None:
        return self.get_non_empty(RESOURCE_GROUP_KEY)

    def save(self) -> None:
        """Write all values back to the environment's dotenv file."""
        if self.path is None:
            logger.debug(f"Environment '{self.name}' is ephemeral, not saving")
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)
        for key, value in sorted(self.values.items()):
            set_key(self.path, key, value, quote_mode="always")
        logger.debug(f"Saved {len(self.values)} values to {self.path}")
