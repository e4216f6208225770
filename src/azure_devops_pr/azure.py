"""Azure DevOps API integration for pull request creation."""

import os
import threading
from dataclasses import dataclass, field
from typing import Any, Literal, NamedTuple
from urllib.parse import quote, unquote, urlsplit

import click
import requests

DEFAULT_BASE_URL = "https://dev.azure.com"
DEFAULT_API_VERSION = "7.1"
DEFAULT_TIMEOUT = 30

REF_PREFIX = "refs/heads/"

Addressing = Literal["id", "name"]


class AzureDevOpsError(Exception):
    """Raised when Azure DevOps API operations fail."""


class AzureRepoInfo(NamedTuple):
    """Organisation, project and repository parsed from a repository URL."""

    organization: str
    project: str
    repository: str


@dataclass
class RepoCredentials:
    """Credentials for a hosted repository.

    Azure DevOps ignores the username; the Personal Access Token goes in
    ``password``.
    """

    password: str = field(repr=False)
    username: str = ""


def get_azure_token(config: dict[str, Any]) -> str:
    """Get Azure DevOps token from environment or config.

    Args:
        config: Configuration dict

    Returns:
        Azure DevOps Personal Access Token

    Raises:
        AzureDevOpsError: If no token is found
    """
    # Environment variable takes precedence
    token = os.getenv("AZURE_DEVOPS_TOKEN")
    if token:
        return token

    azure_config = config.get("azure") or {}
    token = azure_config.get("token")
    if token:
        return token

    raise AzureDevOpsError(
        "Azure DevOps token not found. Set AZURE_DEVOPS_TOKEN environment variable or "
        "add 'azure.token' to config file. Create a Personal Access Token with "
        "'Code (Read & Write)' scope at https://dev.azure.com/{org}/_usersSettings/tokens"
    )


def parse_azure_devops_url(repo_url: str) -> AzureRepoInfo:
    """Extract organisation, project, and repo name from a repository URL.

    Supported formats:
    - https://dev.azure.com/org/project/_git/repo
    - https://user@dev.azure.com/org/project/_git/repo
    - https://org.visualstudio.com/project/_git/repo

    Percent-encoded segments (my%20repo) are decoded to the names the API uses.

    Args:
        repo_url: Repository URL, optionally ending in .git

    Returns:
        Parsed (organisation, project, repo_name)

    Raises:
        AzureDevOpsError: If the URL shape is unsupported or has too few segments
    """
    if "dev.azure.com" in repo_url:
        path = repo_url.split("dev.azure.com/", 1)[-1]
        url_parts = path.split("/")
        if len(url_parts) < 4:
            raise AzureDevOpsError(
                f"invalid Azure DevOps repository URL format: {repo_url}"
            )
        return AzureRepoInfo(
            unquote(url_parts[0]),
            unquote(url_parts[1]),
            unquote(url_parts[3].removesuffix(".git")),
        )

    if ".visualstudio.com" in repo_url:
        # ["https:", "", "org.visualstudio.com", "project", "_git", "repo"]
        url_parts = repo_url.split("/")
        if len(url_parts) < 6:
            raise AzureDevOpsError(
                f"invalid Azure DevOps repository URL format: {repo_url}"
            )
        return AzureRepoInfo(
            url_parts[2].split(".")[0],
            unquote(url_parts[3]),
            unquote(url_parts[5].removesuffix(".git")),
        )

    raise AzureDevOpsError(
        f"unsupported Azure DevOps repository URL format: {repo_url}"
    )


def ensure_ref_format(branch_name: str) -> str:
    """Qualify a branch name as refs/heads/<name>, which Azure DevOps requires."""
    if branch_name.startswith(REF_PREFIX):
        return branch_name
    return REF_PREFIX + branch_name


def _describe_request_error(
    prefix: str, e: requests.exceptions.RequestException
) -> str:
    """Build an error message, appending the service's message when present."""
    error_msg = f"{prefix}: {e}"
    if e.response is not None:
        try:
            error_data = e.response.json()
        except ValueError:
            return error_msg
        if isinstance(error_data, dict) and "message" in error_data:
            error_msg += f" - {error_data['message']}"
    return error_msg


def _api_url(base_url: str, organization: str, project: str, *path: str) -> str:
    """Build a Git REST API URL, quoting each name segment."""
    segments = [quote(organization, safe=""), quote(project, safe=""), "_apis/git"]
    segments.extend(quote(part, safe="") for part in path)
    return f"{base_url}/" + "/".join(segments)


def _json_object(response: requests.Response, what: str) -> dict[str, Any]:
    """Decode a response body that must be a JSON object."""
    data = response.json()
    if not isinstance(data, dict):
        raise AzureDevOpsError(
            f"{what}: expected a JSON object, got {type(data).__name__}"
        )
    return data


def _check_cancelled(cancel_event: threading.Event | None, step: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AzureDevOpsError(f"Cancelled before {step}")


def check_base_url(base_url: str) -> str:
    """Validate the service URL and return it without a trailing slash.

    Raises:
        AzureDevOpsError: If the URL is not an absolute http(s) URL
    """
    parts = urlsplit(base_url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise AzureDevOpsError(
            f"Error creating Azure DevOps client: invalid base URL '{base_url}'"
        )
    return base_url.rstrip("/")


def create_session(token: str, base_url: str = DEFAULT_BASE_URL) -> requests.Session:
    """Create an HTTP session authenticated with a Personal Access Token.

    Raises:
        AzureDevOpsError: If the base URL is invalid
    """
    check_base_url(base_url)

    session = requests.Session()
    session.auth = ("", token)  # Empty username, PAT as password
    session.headers.update(
        {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
    )
    return session


def get_repository_id(
    session: requests.Session,
    organization: str,
    project: str,
    repository: str,
    base_url: str = DEFAULT_BASE_URL,
    api_version: str = DEFAULT_API_VERSION,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Look up a repository's ID by name.

    Args:
        session: Authenticated session from create_session
        organization: Azure DevOps organisation
        project: Project name
        repository: Repository name (exact match)
        base_url: Azure DevOps service URL
        api_version: REST API version
        timeout: Connect and read timeout in seconds

    Returns:
        Repository ID

    Raises:
        AzureDevOpsError: If listing fails or no repository matches
    """
    url = _api_url(base_url, organization, project, "repositories")

    try:
        response = session.get(
            url, params={"api-version": api_version}, timeout=timeout
        )
        response.raise_for_status()
        data = _json_object(response, "Error listing repositories")
    except requests.exceptions.RequestException as e:
        raise AzureDevOpsError(
            _describe_request_error("Error listing repositories", e)
        ) from e

    for repo in data.get("value") or []:
        if isinstance(repo, dict) and repo.get("name") == repository:
            return repo["id"]

    raise AzureDevOpsError(
        f"Repository '{repository}' not found in project '{project}'"
    )


def build_pull_request_payload(
    title: str,
    description: str,
    source_ref: str,
    target_ref: str,
) -> dict[str, Any]:
    """Build the create-pull-request request body."""
    return {
        "title": title,
        "description": description,
        "sourceRefName": source_ref,
        "targetRefName": target_ref,
    }


def create_pull_request(
    session: requests.Session,
    organization: str,
    project: str,
    repository: str,
    payload: dict[str, Any],
    base_url: str = DEFAULT_BASE_URL,
    api_version: str = DEFAULT_API_VERSION,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """Submit a pull request.

    Args:
        session: Authenticated session from create_session
        organization: Azure DevOps organisation
        project: Project name
        repository: Repository ID or name
        payload: Request body from build_pull_request_payload
        base_url: Azure DevOps service URL
        api_version: REST API version
        timeout: Connect and read timeout in seconds

    Returns:
        PR data from Azure DevOps API

    Raises:
        AzureDevOpsError: If PR creation fails
    """
    url = _api_url(
        base_url, organization, project, "repositories", repository, "pullrequests"
    )

    try:
        response = session.post(
            url,
            params={"api-version": api_version},
            json=payload,
            timeout=timeout,
        )
        response.raise_for_status()
        return _json_object(response, "Error creating pull request")
    except requests.exceptions.RequestException as e:
        raise AzureDevOpsError(
            _describe_request_error("Error creating pull request", e)
        ) from e


def open_pr(
    repo_url: str,
    title: str,
    description: str,
    target_branch: str,
    source_branch: str,
    creds: RepoCredentials,
    addressing: Addressing = "id",
    api_version: str = DEFAULT_API_VERSION,
    timeout: float = DEFAULT_TIMEOUT,
    base_url: str = DEFAULT_BASE_URL,
    session: requests.Session | None = None,
    cancel_event: threading.Event | None = None,
    verbose: bool = False,
) -> str:
    """Open a pull request in Azure DevOps.

    Args:
        repo_url: Repository URL (dev.azure.com or visualstudio.com)
        title: PR title
        description: PR description
        target_branch: Branch to merge into, with or without refs/heads/
        source_branch: Branch to merge from, with or without refs/heads/
        creds: Credentials holding the PAT as password
        addressing: "id" to resolve the repository ID first, "name" to
            address the repository by name
        api_version: REST API version
        timeout: Connect and read timeout in seconds, applied to each
            request separately rather than to the whole call
        base_url: Azure DevOps service URL
        session: Optional caller-owned session, left open afterwards
        cancel_event: Optional event checked before client creation, the
            repository lookup and the PR creation; once set, no further
            request is sent. A request already in flight is bounded only
            by ``timeout``.
        verbose: If True, show detailed output

    Returns:
        URL of the created pull request

    Raises:
        AzureDevOpsError: If any step fails or the call is cancelled
    """
    if not creds.password:
        raise AzureDevOpsError(
            "Azure DevOps requires a Personal Access Token (PAT) as password"
        )

    organization, project, repository = parse_azure_devops_url(repo_url)
    if verbose:
        click.echo(
            f"Organisation: {organization}, project: {project}, repository: {repository}"
        )

    _check_cancelled(cancel_event, "creating the client")
    base_url = check_base_url(base_url)

    owns_session = session is None
    if session is None:
        session = create_session(creds.password, base_url)

    try:
        if addressing == "id":
            _check_cancelled(cancel_event, "listing repositories")
            repo_ref = get_repository_id(
                session,
                organization,
                project,
                repository,
                base_url=base_url,
                api_version=api_version,
                timeout=timeout,
            )
            if verbose:
                click.echo(f"Resolved repository '{repository}' to ID {repo_ref}")
        elif addressing == "name":
            repo_ref = repository
        else:
            raise AzureDevOpsError(
                f"Unknown repository addressing mode: {addressing}. Use 'id' or 'name'"
            )

        source_ref = ensure_ref_format(source_branch)
        target_ref = ensure_ref_format(target_branch)

        payload = build_pull_request_payload(
            title, description, source_ref, target_ref
        )
        if addressing == "name":
            payload["repository"] = {"name": repository, "project": {"name": project}}

        if verbose:
            click.echo(f"Creating pull request from {source_ref} to {target_ref}")

        _check_cancelled(cancel_event, "creating the pull request")
        pr = create_pull_request(
            session,
            organization,
            project,
            repo_ref,
            payload,
            base_url=base_url,
            api_version=api_version,
            timeout=timeout,
        )
    finally:
        if owns_session:
            session.close()

    pr_url = pr.get("url")
    if not pr_url:
        raise AzureDevOpsError(
            "Error creating pull request: response did not include a URL"
        )
    return pr_url
