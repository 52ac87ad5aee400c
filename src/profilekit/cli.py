"""ProfileKit command-line interface."""

from __future__ import annotations

import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .compiler import OutputStager, ProfileCompiler
from .config import load_base_config, parse_flag_assignment
from .exceptions import ProfileKitError
from .logging_setup import configure_logging
from .registry import ProfileRepository
from .resolver import resolve

app = typer.Typer(
    name="profilekit",
    help="ProfileKit: compile inheritable agent profiles into installable prompts",
    add_completion=False,
)
console = Console()

DEFAULT_BASE_DIR = Path.home() / "agent-os"


def _get_version_string() -> str:
    """Get version string from package metadata."""
    try:
        return get_version("profilekit")
    except PackageNotFoundError:
        return "unknown"


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"ProfileKit version {_get_version_string()}")
        raise typer.Exit


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """ProfileKit: compile inheritable agent profiles into installable prompts."""


def _load_repository(base_dir: Path) -> ProfileRepository:
    return ProfileRepository.from_directory(base_dir)


@app.command("compile")
def compile_command(
    profile: str | None = typer.Argument(
        None,
        help="Profile to compile (default: profile from config.yml)",
    ),
    base_dir: Path = typer.Option(
        DEFAULT_BASE_DIR,
        "--base-dir",
        "-b",
        help="Base installation containing profiles/ and config.yml",
    ),
    output: Path = typer.Option(
        Path.cwd(),
        "--output",
        "-o",
        help="Project directory that receives the agent-os tree",
    ),
    flag: list[str] = typer.Option(
        [],
        "--flag",
        "-f",
        help="Override a flag, e.g. --flag lazy_load_workflows=true",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        help="Expansion worker count (default: CPU count)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be written without writing",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output"),
) -> None:
    """Compile a profile and install the result into a project."""
    configure_logging(verbose)

    try:
        overrides = dict(parse_flag_assignment(item) for item in flag)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2) from e

    try:
        base_config = load_base_config(base_dir)
        profile_id = profile or base_config.profile
        config = base_config.to_compile_config(overrides)
        repository = _load_repository(base_dir)

        result = ProfileCompiler(repository, config, max_workers=workers).compile(profile_id)
        stager = OutputStager(output)

        if dry_run:
            console.print("[bold blue]Dry run - files that would be written:[/bold blue]")
            for path in stager.planned_paths(result):
                console.print(f"  • {path}")
        else:
            stager.commit(result)
    except ProfileKitError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except OSError as e:
        console.print(f"[red]Error:[/red] Failed to write output: {e}")
        raise typer.Exit(1) from e

    table = Table(title=f"Compiled profile: {result.profile_id}")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Inheritance", " → ".join(result.chain))
    table.add_row("Documents compiled", str(result.succeeded))
    table.add_row("Documents failed", str(result.failed))
    table.add_row("Files copied", str(len(result.copies)))
    console.print(table)

    if result.errors:
        console.print(f"\n[bold red]{result.failed} document(s) failed:[/bold red]")
        for error in result.errors:
            console.print(
                f"  [red]✗[/red] {error.document or error.path} "
                f"({type(error).__name__}) {escape(str(error))}",
                highlight=False,
            )
        raise typer.Exit(1)

    if not dry_run:
        console.print(f"[green]✓[/green] Installed {result.profile_id} into {output / 'agent-os'}")


@app.command()
def chain(
    profile: str = typer.Argument(..., help="Profile to resolve"),
    base_dir: Path = typer.Option(
        DEFAULT_BASE_DIR,
        "--base-dir",
        "-b",
        help="Base installation containing profiles/",
    ),
) -> None:
    """Show a profile's inheritance chain and effective exclusions."""
    try:
        resolved = resolve(profile, _load_repository(base_dir))
    except ProfileKitError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    table = Table(title=f"Inheritance chain: {resolved.leaf.id}")
    table.add_column("Profile", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Excluded by descendants", style="yellow")
    for item in resolved.profiles:
        table.add_row(
            item.id,
            str(len(item.files)),
            ", ".join(resolved.exclusions_for(item.id)) or "-",
        )
    console.print(table)


@app.command()
def profiles(
    base_dir: Path = typer.Option(
        DEFAULT_BASE_DIR,
        "--base-dir",
        "-b",
        help="Base installation containing profiles/",
    ),
) -> None:
    """List available profiles."""
    try:
        repository = _load_repository(base_dir)
    except ProfileKitError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    table = Table(title="Profiles")
    table.add_column("Profile", style="cyan")
    table.add_column("Inherits from", style="green")
    table.add_column("Files", justify="right")
    for profile_id in repository:
        item = repository[profile_id]
        table.add_row(item.id, item.inherits_from or "-", str(len(item.files)))
    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
