"""funcdeploy - Content-addressed deployer for serverless functions."""

__version__ = "0.1.0"

PROJECT_NAME = "mcp-scaleway-functions"
USER_AGENT = f"{PROJECT_NAME}/{__version__}"

from funcdeploy.core.config import Settings
from funcdeploy.core.models import Function, Namespace

__all__ = ["Settings", "Function", "Namespace", "PROJECT_NAME", "USER_AGENT", "__version__"]
