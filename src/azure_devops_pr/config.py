"""Configuration loading and parsing for azure-devops-pr."""

from pathlib import Path
from typing import Any

import yaml

from azure_devops_pr.azure import (
    DEFAULT_API_VERSION,
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT,
    Addressing,
)

DEFAULT_CONFIG_FILENAME = "azure-devops-pr.yaml"


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


class PullRequestConfig:
    """Pull request configuration, optionally loaded from a YAML file."""

    def __init__(self, config_path: str | Path | None = None):
        """Load configuration from YAML file.

        Args:
            config_path: Path to configuration file (None = built-in defaults)

        Raises:
            ConfigError: If config file doesn't exist or is invalid
        """
        self.config_path = Path(config_path) if config_path is not None else None
        self._config: dict[str, Any] = {}

        if self.config_path is not None:
            if not self.config_path.exists():
                raise ConfigError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, "r") as f:
                try:
                    loaded = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ConfigError(f"Invalid YAML in {self.config_path}: {e}")

            if loaded is None:
                loaded = {}
            if not isinstance(loaded, dict):
                raise ConfigError("Configuration must be a mapping")
            self._config = loaded

        self._validate_config()

    def _validate_config(self) -> None:
        """Validate value types of the optional settings."""
        addressing = self._config.get("addressing", "id")
        if addressing not in ("id", "name"):
            raise ConfigError("'addressing' must be one of: id, name")

        timeout = self._config.get("timeout", DEFAULT_TIMEOUT)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ConfigError("'timeout' must be a number")
        if timeout <= 0:
            raise ConfigError("'timeout' must be greater than zero")

        for key in ("api-version", "base-url", "target-branch"):
            if key in self._config and not isinstance(self._config[key], str):
                raise ConfigError(f"'{key}' must be a string")

        azure = self._config.get("azure")
        if azure is not None and not isinstance(azure, dict):
            raise ConfigError("'azure' must be a dictionary")

    @property
    def data(self) -> dict[str, Any]:
        """Raw configuration mapping."""
        return self._config

    def get_addressing(self) -> Addressing:
        """Get how the repository is addressed when creating a PR.

        Returns:
            'id' (resolve repository ID first) or 'name'; 'id' by default
        """
        return self._config.get("addressing", "id")

    def get_api_version(self) -> str:
        """Get the Azure DevOps REST API version."""
        return self._config.get("api-version", DEFAULT_API_VERSION)

    def get_timeout(self) -> float:
        """Get the per-request timeout in seconds."""
        return self._config.get("timeout", DEFAULT_TIMEOUT)

    def get_base_url(self) -> str:
        """Get the Azure DevOps service URL, without trailing slash."""
        return self._config.get("base-url", DEFAULT_BASE_URL).rstrip("/")

    def get_target_branch(self) -> str:
        """Get the default target branch.

        Returns:
            Target branch name or 'main' as default
        """
        return self._config.get("target-branch", "main")


def load_config(config_path: str | Path | None = None) -> PullRequestConfig:
    """Load pull request configuration.

    Args:
        config_path: Path to configuration file, or None for defaults

    Returns:
        Loaded configuration object

    Raises:
        ConfigError: If config file is invalid or cannot be loaded
    """
    return PullRequestConfig(config_path)


def generate_config_template() -> str:
    """Generate a configuration file template with all parameters documented.

    Returns:
        YAML configuration template as a string with inline documentation
    """
    template = """# azure-devops-pr configuration
#
# Every setting is optional; the values below are the defaults.

# How the repository is addressed when the pull request is created
# Type: string, one of:
#   - id:   look up the repository ID by name first (one extra API call)
#   - name: address the repository by name
# Default: "id"
addressing: "id"

# Azure DevOps REST API version
# Type: string
# Default: "7.1"
api-version: "7.1"

# Timeout in seconds for each API request
# Type: number
# Default: 30
timeout: 30

# Azure DevOps service URL (change only for proxies or test servers)
# Type: string
# Default: "https://dev.azure.com"
base-url: "https://dev.azure.com"

# Branch the pull request merges into when --target is not given
# Type: string
# Default: "main"
target-branch: "main"

# Azure DevOps authentication
# Type: object with token field
# Default: none (uses AZURE_DEVOPS_TOKEN environment variable if not specified)
#
# To configure:
# 1. Create an Azure DevOps personal access token at:
#    https://dev.azure.com/{org}/_usersSettings/tokens
# 2. Required scopes:
#    - 'Code (Read & Write)'
# 3. Either set AZURE_DEVOPS_TOKEN environment variable (recommended) or uncomment below:
#
# azure:
#   token: "xxx"  # Azure DevOps personal access token
"""
    return template
