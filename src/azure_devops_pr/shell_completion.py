"""Shell completion for azure-devops-pr: scripts and config file suggestions."""

from pathlib import Path
from typing import Any

import click
from click.shell_completion import (
    BashComplete,
    CompletionItem,
    FishComplete,
    ZshComplete,
)

from azure_devops_pr.config import DEFAULT_CONFIG_FILENAME

SHELLS: dict[str, type[Any]] = {
    "bash": BashComplete,
    "zsh": ZshComplete,
    "fish": FishComplete,
}

CONFIG_SUFFIXES = (".yaml", ".yml")


def complete_config_path(
    ctx: click.Context, param: click.Parameter, incomplete: str
) -> list[CompletionItem]:
    """Suggest YAML config files and directories for --config.

    The default config file name sorts first; other files are offered only
    when they end in .yaml or .yml.
    """
    head = incomplete[: incomplete.rfind("/") + 1]
    prefix = incomplete[len(head) :]

    try:
        entries = sorted(Path(head or ".").iterdir())
    except OSError:
        return []

    files: list[CompletionItem] = []
    dirs: list[CompletionItem] = []
    for entry in entries:
        if not entry.name.startswith(prefix):
            continue
        if entry.name.startswith(".") and not prefix.startswith("."):
            continue
        if entry.is_dir():
            dirs.append(CompletionItem(head + entry.name + "/", type="dir"))
        elif entry.suffix in CONFIG_SUFFIXES:
            item = CompletionItem(head + entry.name, type="file")
            if entry.name == DEFAULT_CONFIG_FILENAME:
                files.insert(0, item)
            else:
                files.append(item)

    return files + dirs


def generate_completion_script(cli: click.Group, shell: str) -> str:
    """Generate shell completion script for the specified shell.

    Args:
        cli: Click CLI group to generate completions for
        shell: Shell type ('bash', 'zsh', or 'fish')

    Returns:
        Shell completion script as a string

    Raises:
        ValueError: If shell type is not supported
    """
    completion_class = SHELLS.get(shell.lower())
    if completion_class is None:
        raise ValueError(
            f"Unsupported shell: {shell}. Supported shells: {', '.join(SHELLS)}"
        )

    return completion_class(
        cli=cli,
        ctx_args={},
        prog_name="azure-devops-pr",
        complete_var="_AZURE_DEVOPS_PR_COMPLETE",
    ).source()
