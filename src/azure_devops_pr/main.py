"""CLI interface for azure-devops-pr."""

import sys

import click

from azure_devops_pr import __version__
from azure_devops_pr.azure import (
    AzureDevOpsError,
    RepoCredentials,
    ensure_ref_format,
    get_azure_token,
    open_pr,
    parse_azure_devops_url,
)
from azure_devops_pr.config import ConfigError, generate_config_template, load_config
from azure_devops_pr.shell_completion import (
    SHELLS,
    complete_config_path,
    generate_completion_script,
)


def add_help_option(f):
    """Custom decorator to add '-h' as an alias for '--help'."""
    f = click.help_option("--help", "-h")(f)
    return f


@click.group()
@add_help_option
@click.version_option(__version__, "--version", "-v")
def cli():
    """azure-devops-pr - Open pull requests in Azure DevOps repositories."""
    pass


@cli.command("open-pr")
@add_help_option
@click.argument("repo_url")
@click.option("--title", "-t", required=True, help="Pull request title")
@click.option(
    "--description",
    "-m",
    default="",
    help="Pull request description (default: empty)",
)
@click.option(
    "--source",
    "-s",
    required=True,
    help="Source branch to merge from (with or without refs/heads/)",
)
@click.option(
    "--target",
    default=None,
    help="Target branch to merge into (default: from config or main)",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    shell_complete=complete_config_path,
    help="Path to configuration file (default: built-in defaults)",
)
@click.option(
    "--addressing",
    "-a",
    type=click.Choice(["id", "name"], case_sensitive=False),
    default=None,
    help="Address the repository by resolved ID or by name (default: from config or id)",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Per-request timeout in seconds (default: from config or 30)",
)
@click.option(
    "--dry-run",
    "-d",
    is_flag=True,
    help="Show what would be done without calling Azure DevOps",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show detailed information about the pull request creation",
)
def open_pr_cmd(
    repo_url: str,
    title: str,
    description: str,
    source: str,
    target: str | None,
    config: str | None,
    addressing: str | None,
    timeout: float | None,
    dry_run: bool,
    verbose: bool,
):
    """Open a pull request in the Azure DevOps repository at REPO_URL.

    The Personal Access Token is read from the AZURE_DEVOPS_TOKEN environment
    variable, or from 'azure.token' in the configuration file.

    Usage:
        azure-devops-pr open-pr https://dev.azure.com/org/project/_git/repo \\
            --title "Sync" --source feature --target main
    """
    try:
        pr_config = load_config(config)

        target_branch = target or pr_config.get_target_branch()
        addressing_mode = (addressing or pr_config.get_addressing()).lower()
        request_timeout = timeout or pr_config.get_timeout()

        if dry_run:
            org, project, repo = parse_azure_devops_url(repo_url)
            click.echo(f"Organisation: {org}")
            click.echo(f"Project: {project}")
            click.echo(f"Repository: {repo}")
            click.echo(f"Addressing: {addressing_mode}")
            click.echo(
                f"Would create pull request '{title}' from "
                f"{ensure_ref_format(source)} to {ensure_ref_format(target_branch)}"
            )
            click.echo("\nDry run - no pull request created")
            return

        token = get_azure_token(pr_config.data)

        pr_url = open_pr(
            repo_url,
            title,
            description,
            target_branch,
            source,
            RepoCredentials(password=token),
            addressing=addressing_mode,  # type: ignore[arg-type]
            api_version=pr_config.get_api_version(),
            timeout=request_timeout,
            base_url=pr_config.get_base_url(),
            verbose=verbose,
        )

        if verbose:
            click.echo("Pull request created:")
        click.echo(pr_url)

    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    except AzureDevOpsError as e:
        click.echo(f"Azure DevOps error: {e}", err=True)
        sys.exit(1)


@cli.command()
@add_help_option
@click.argument("repo_url")
def parse_url(repo_url: str):
    """Show the organisation, project and repository parsed from REPO_URL."""
    try:
        org, project, repo = parse_azure_devops_url(repo_url)
    except AzureDevOpsError as e:
        click.echo(f"Azure DevOps error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Organisation: {org}")
    click.echo(f"Project: {project}")
    click.echo(f"Repository: {repo}")


@cli.command()
@add_help_option
def generate_config():
    """Generate a complete configuration file template.

    Usage:
        azure-devops-pr generate-config > azure-devops-pr.yaml
    """
    click.echo(generate_config_template())


@cli.command()
@add_help_option
@click.argument(
    "shell",
    type=click.Choice(list(SHELLS), case_sensitive=False),
)
def completion(shell: str):
    """Generate shell completion script.

    Usage:
        # Bash - save to file and source in ~/.bashrc
        azure-devops-pr completion bash > ~/.azure-devops-pr-completion.bash
        echo ". ~/.azure-devops-pr-completion.bash" >> ~/.bashrc
    """
    click.echo(generate_completion_script(cli, shell))


if __name__ == "__main__":
    cli()
