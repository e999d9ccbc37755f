import os

# Keep tests independent of the developer's Azure login and environment
os.environ.pop("AZURE_ACCESS_TOKEN", None)
os.environ.pop("AZURE_ARM_ENDPOINT", None)
os.environ.pop("AZURE_ENV_NAME", None)

from tests.fixtures import *  # noqa: E402,F401,F403
