"""CLI command modules.

Commands:
- deploy: Publish and deploy a service to AKS
- env: Inspect deployment environments
"""

from .deploy import deploy
from .env import env_app

__all__ = ["deploy", "env_app"]
