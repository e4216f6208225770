"""azure-devops-pr - Open pull requests in Azure DevOps repositories."""

from importlib.metadata import version

try:
    __version__ = version("azure-devops-pr")
except Exception:
    __version__ = "0.0.0-dev"
