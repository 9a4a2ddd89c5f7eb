"""
CLI for fsgate.

Starts the MCP server over stdio and offers a few commands for inspecting
what a given configuration exposes.
"""

import json
import logging
import sys
from typing import Any, Optional

import click
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from fsgate import __version__
from fsgate.filesystem.config import (
    FileSystemAccessConfig,
    PermissionTier,
    env_settings,
    read_config_file,
)
from fsgate.filesystem.exceptions import FileSystemError
from fsgate.filesystem.guard import PathGuard, ResolveMode
from fsgate.filesystem.registry import ToolRegistry
from fsgate.server import create_server

# Load environment variables
load_dotenv()

console = Console()
# stdout carries the MCP stream while serving
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Setup rich logging on stderr."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
    )
    # Reduce noise from the MCP runtime
    logging.getLogger("mcp").setLevel(logging.WARNING)


def _configured_tier(data: dict[str, Any]) -> PermissionTier:
    """Pop the tier (or the flags standing in for it) out of merged settings."""
    if "permission_tier" in data:
        data.pop("allow_write", None)
        data.pop("allow_destructive", None)
        return PermissionTier(data.pop("permission_tier"))
    return PermissionTier.from_flags(
        bool(data.pop("allow_write", False)),
        bool(data.pop("allow_destructive", False)),
    )


def build_config(
    roots: tuple[str, ...],
    allow_write: bool = False,
    allow_destructive: bool = False,
    max_read_size: Optional[int] = None,
    max_depth: Optional[int] = None,
    config_file: Optional[str] = None,
) -> FileSystemAccessConfig:
    """
    Merge environment, config file and command line into one configuration.

    Later sources win: environment < config file < command line. The
    permission flags only ever raise the tier.
    """
    data: dict[str, Any] = env_settings()
    if config_file:
        data.update(read_config_file(config_file))

    if roots:
        data["allowed_directories"] = list(roots)
    if max_read_size is not None:
        data["max_read_size_bytes"] = max_read_size
    if max_depth is not None:
        data["max_depth"] = max_depth

    configured = _configured_tier(data)
    requested = PermissionTier.from_flags(allow_write, allow_destructive)
    data["permission_tier"] = configured if configured.includes(requested) else requested

    if not data.get("allowed_directories"):
        raise click.UsageError("At least one allowed directory is required")

    return FileSystemAccessConfig.from_dict(data)


def config_options(func):
    """Options shared by every command that builds a configuration."""
    options = [
        click.option(
            "--allow-write",
            is_flag=True,
            help="Expose write_file, edit_file and create_directory",
        ),
        click.option(
            "--allow-destructive",
            is_flag=True,
            help="Also expose delete_file, delete_directory and move_file (implies --allow-write)",
        ),
        click.option(
            "--max-read-size",
            type=click.IntRange(min=0),
            default=None,
            help="Maximum size in bytes for a full file read (default: 10485760)",
        ),
        click.option(
            "--max-depth",
            type=click.IntRange(min=0),
            default=None,
            help="Maximum traversal depth for tree and search (default: 10)",
        ),
        click.option(
            "--config",
            "-c",
            "config_file",
            type=click.Path(exists=True, dir_okay=False),
            default=None,
            help="YAML or JSON config file",
        ),
        click.option(
            "--verbose",
            "-v",
            is_flag=True,
            help="Enable verbose logging",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_config(**kwargs) -> FileSystemAccessConfig:
    try:
        return build_config(**kwargs)
    except (ValidationError, ValueError) as e:
        err_console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def cli():
    """fsgate - sandboxed filesystem access for AI agents."""
    pass


@cli.command()
@click.argument("roots", nargs=-1, type=click.Path())
@config_options
def serve(
    roots: tuple[str, ...],
    allow_write: bool,
    allow_destructive: bool,
    max_read_size: Optional[int],
    max_depth: Optional[int],
    config_file: Optional[str],
    verbose: bool,
):
    """
    Run the MCP server over stdio.

    ROOTS are the directories the server may access. They can also come
    from --config or FSGATE_ALLOWED_DIRECTORIES.

    Examples:

        # Read-only access to one project
        fsgate serve ~/projects/demo

        # Allow edits, but no deletes or moves
        fsgate serve ~/projects/demo --allow-write

        # Everything, with a config file
        fsgate serve -c fsgate.yaml --allow-destructive
    """
    setup_logging(verbose)
    config = _load_config(
        roots=roots,
        allow_write=allow_write,
        allow_destructive=allow_destructive,
        max_read_size=max_read_size,
        max_depth=max_depth,
        config_file=config_file,
    )

    registry = ToolRegistry.from_config(config)
    directories = "\n".join(f"  [green]{d}[/green]" for d in config.allowed_directories)
    err_console.print(
        Panel(
            f"[bold cyan]fsgate MCP server[/bold cyan]\n\n"
            f"Allowed directories:\n{directories}\n"
            f"Tier: [yellow]{config.permission_tier.value}[/yellow]\n"
            f"Tools: [green]{len(registry)}[/green]\n"
            f"Max read size: [green]{config.max_read_size_bytes}[/green] bytes\n"
            f"Max depth: [green]{config.max_depth}[/green]",
            title="Starting",
        )
    )

    server = create_server(config)
    server.run(transport="stdio")


@cli.command()
@click.argument("roots", nargs=-1, type=click.Path())
@config_options
@click.option("--json", "as_json", is_flag=True, help="Print OpenAI-style schemas as JSON")
def tools(
    roots: tuple[str, ...],
    allow_write: bool,
    allow_destructive: bool,
    max_read_size: Optional[int],
    max_depth: Optional[int],
    config_file: Optional[str],
    verbose: bool,
    as_json: bool,
):
    """
    List the tools a configuration exposes.

    Examples:

        fsgate tools ~/projects/demo

        fsgate tools ~/projects/demo --allow-destructive --json
    """
    setup_logging(verbose)
    config = _load_config(
        roots=roots,
        allow_write=allow_write,
        allow_destructive=allow_destructive,
        max_read_size=max_read_size,
        max_depth=max_depth,
        config_file=config_file,
    )
    registry = ToolRegistry.from_config(config)

    if as_json:
        click.echo(json.dumps(registry.function_schemas(), indent=2))
        return

    table = Table(title=f"Tools ({config.permission_tier.value})")
    table.add_column("Name", style="green", no_wrap=True)
    table.add_column("Tier", no_wrap=True)
    table.add_column("Description")
    for op in registry:
        table.add_row(op.name, op.tier.value, op.description)
    console.print(table)


@cli.command()
@click.argument("target")
@click.argument("roots", nargs=-1, type=click.Path())
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ResolveMode]),
    default=ResolveMode.MUST_EXIST.value,
    help="Whether the target must already exist",
)
@config_options
def check(
    target: str,
    roots: tuple[str, ...],
    mode: str,
    allow_write: bool,
    allow_destructive: bool,
    max_read_size: Optional[int],
    max_depth: Optional[int],
    config_file: Optional[str],
    verbose: bool,
):
    """
    Check whether a path resolves inside the sandbox.

    Prints the canonical path on success and exits with status 1 if the
    path is rejected.

    Examples:

        fsgate check ~/projects/demo/../secret.txt ~/projects/demo

        fsgate check ~/projects/demo/new.txt ~/projects/demo --mode may_not_exist
    """
    setup_logging(verbose)
    config = _load_config(
        roots=roots,
        allow_write=allow_write,
        allow_destructive=allow_destructive,
        max_read_size=max_read_size,
        max_depth=max_depth,
        config_file=config_file,
    )
    guard = PathGuard(config)

    try:
        resolved = guard.resolve(target, ResolveMode(mode))
    except FileSystemError as e:
        console.print(
            f"[bold red]Rejected[/bold red] ({e.kind.value}): {escape(e.message)}",
            soft_wrap=True,
        )
        sys.exit(1)

    state = "exists" if resolved.exists else "does not exist yet"
    console.print(
        f"[bold green]Allowed:[/bold green] {escape(str(resolved.path))} ({state})",
        soft_wrap=True,
    )


def main():
    cli()


if __name__ == "__main__":
    main()
