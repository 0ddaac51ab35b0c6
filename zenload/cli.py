"""
zenload CLI - inspect load references, aliases and the remote cache.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .aliases import AliasTable
from .cache import cache_dir
from .config import find_workspace_root
from .errors import ZenloadError
from .file_provider import DefaultFileProvider
from .load_spec import parse_load_spec
from .materialize import Materializer
from .resolvers import create_load_resolver
from .settings import get_settings

# Setup
app = typer.Typer(
    name="zenload",
    help="Resolve @github/@gitlab/@package load references",
    add_completion=False,
)
console = Console()


def configure_logging():
    """Configure logging based on settings."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.callback()
def main():
    """Resolve @github/@gitlab/@package load references."""
    configure_logging()


def _handle_command_error(e: Exception, command_type: str) -> None:
    """Print a resolution error and exit with code 1.

    Raises:
        typer.Exit: Always
    """
    console.print(f"[bold red]✗ {command_type.capitalize()} failed:[/bold red] {e}")
    raise typer.Exit(code=1)


def _workspace_for(start: Path) -> Path:
    fp = DefaultFileProvider()
    return find_workspace_root(fp, fp.canonicalize(start))


@app.command()
def parse(reference: str = typer.Argument(..., help="Reference string, e.g. @stdlib/units.zen")):
    """Show how a reference string is parsed."""
    spec = parse_load_spec(reference)
    if spec is None:
        console.print(f"[yellow]'{reference}' is not a remote or package reference[/yellow]")
        raise typer.Exit(code=1)

    table = Table(show_header=False, box=None)
    for key, value in spec.model_dump().items():
        table.add_row(f"[dim]{key}[/dim]", str(value) or "[dim](root)[/dim]")
    console.print(table)
    console.print(f"[dim]Canonical: {spec}[/dim]")


@app.command()
def resolve(
    reference: str = typer.Argument(..., help="Load path to resolve"),
    from_file: Path = typer.Option(
        None, "--from", help="File containing the load() (default: ./main.zen)"
    ),
    workspace: Path = typer.Option(
        None, "--workspace", help="Workspace root (default: located from --from)"
    ),
    offline: bool = typer.Option(False, "--offline", help="Do not fetch from the network"),
    vendor: bool = typer.Option(False, "--vendor", help="Prefer <workspace>/vendor"),
):
    """Resolve a load path to an absolute local path, fetching if needed."""
    fp = DefaultFileProvider()
    current_file = fp.canonicalize(from_file or Path.cwd() / "main.zen")
    workspace_root = workspace or _workspace_for(current_file)

    settings = get_settings()
    if offline:
        settings = settings.model_copy(update={"offline": True})

    try:
        resolver = create_load_resolver(
            workspace_root, settings=settings, file_provider=fp, use_vendor_dir=vendor
        )
        path = resolver.resolve_path(fp, reference, current_file)
    except (ZenloadError, OSError) as e:
        _handle_command_error(e, "resolve")
    console.print(str(path))


@app.command("cache-dir")
def cache_dir_command():
    """Print the remote cache root."""
    try:
        console.print(str(cache_dir()))
    except OSError as e:
        _handle_command_error(e, "cache-dir")


@app.command()
def aliases(
    workspace: Path = typer.Option(
        None, "--workspace", help="Workspace root (default: located from the current directory)"
    ),
):
    """List the package aliases in effect for a workspace."""
    workspace_root = workspace or _workspace_for(Path.cwd())
    table = AliasTable()
    try:
        entries = table.aliases_for(workspace_root)
    except ZenloadError as e:
        _handle_command_error(e, "aliases")

    out = Table(title=f"Aliases for {workspace_root}")
    out.add_column("Alias", style="cyan")
    out.add_column("Target")
    out.add_column("Defined in", style="dim")
    for name in sorted(entries):
        info = entries[name]
        out.add_row(name, info.target, str(info.source_path) if info.source_path else "built-in")
    console.print(out)


@app.command()
def fetch(
    reference: str = typer.Argument(..., help="Remote or alias reference to pre-fetch"),
    workspace: Path = typer.Option(None, "--workspace", help="Workspace root for alias lookup"),
):
    """Populate the cache for a reference without evaluating anything."""
    workspace_root = workspace or _workspace_for(Path.cwd())
    try:
        path = Materializer().materialize_load(reference, workspace_root)
    except (ZenloadError, OSError) as e:
        _handle_command_error(e, "fetch")
    console.print(f"[bold green]✓[/bold green] {path}")
