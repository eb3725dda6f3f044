"""Command-line interface for modpack-editor."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .api import RemoteError
from .config import EditorConfig
from .pack import Modpack, PackError
from .reconcile import InvalidPlacement, ReconciliationError
from .service import ModpackEditorService

console = Console()

EDIT_ERRORS = (PackError, InvalidPlacement, ReconciliationError, RemoteError)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
@click.option(
    "--cache-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="MODPACK_EDITOR_CACHE_FILE",
    help="Metadata cache snapshot (or set MODPACK_EDITOR_CACHE_FILE)",
)
@click.option("--no-cache", is_flag=True, help="Don't read or write the cache file")
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    envvar="MODPACK_EDITOR_WORKERS",
    help="Concurrent lookups per batch",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def main(
    ctx: click.Context,
    cache_file: Path | None,
    no_cache: bool,
    workers: int | None,
    verbose: bool,
) -> None:
    """Edit CurseForge modpacks and their server setup config."""
    _setup_logging(verbose)
    config = EditorConfig.from_env()
    if cache_file is not None:
        config.cache_file = cache_file
    if no_cache:
        config.persist_cache = False
    if workers is not None:
        config.max_workers = workers

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def _service(ctx: click.Context) -> ModpackEditorService:
    return ModpackEditorService(ctx.obj["config"])


def _load(service: ModpackEditorService, folder: Path) -> Modpack:
    console.print("[dim]Looking up mods...[/dim]")
    try:
        return service.load_pack(folder)
    except PackError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def _placement(on_client: bool, on_server: bool) -> str:
    if on_client and on_server:
        return "both"
    if on_client:
        return "client"
    if on_server:
        return "server"
    return "[red]none[/red]"


@main.command()
@click.option("--host", default="127.0.0.1", help="Address to listen on")
@click.option("--port", type=int, default=8080, help="Port (default 8080)")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the editor web API."""
    from .web import create_and_run

    service = _service(ctx)
    pack = service.open_last_pack()
    if pack is not None:
        console.print(f"[dim]Reopened {pack.folder}[/dim]")

    console.print("Welcome to modpack-editor!")
    console.print(f"Listening on http://{host}:{port}/ - press CTRL+C to exit.")
    create_and_run(service, host=host, port=port)


@main.command()
@click.argument("folder", type=click.Path(file_okay=False, path_type=Path))
@click.pass_context
def create(ctx: click.Context, folder: Path) -> None:
    """
    Create a new blank pack.

    FOLDER: Directory to create the pack in (must not exist)
    """
    service = _service(ctx)
    try:
        pack = service.create_pack(folder)
    except PackError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    console.print(f"[green]Created pack in {pack.folder}[/green]")


@main.command()
@click.argument("folder", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.pass_context
def mods(ctx: click.Context, folder: Path) -> None:
    """
    List the mods in a pack.

    FOLDER: Pack directory containing manifest.json
    """
    service = _service(ctx)
    pack = _load(service, folder)

    table = Table(title=pack.manifest.get("name") or str(pack.folder))
    table.add_column("Project", justify="right", style="dim")
    table.add_column("Name")
    table.add_column("File", justify="right")
    table.add_column("Side")
    table.add_column("Required by", style="dim")

    for project_id, mod in pack.mods.items():
        name = mod.name or f"[red]{mod.error_message or '?'}[/red]"
        dependants = ", ".join(
            str(d.addon_id) for d in mod.dependants if "required" in d.type.lower()
        )
        table.add_row(
            str(project_id),
            name,
            str(mod.file_id),
            _placement(mod.on_client, mod.on_server),
            dependants,
        )

    console.print(table)
    if pack.unresolved_slugs:
        console.print(
            f"[yellow]Unresolved additional files:[/yellow] {', '.join(pack.unresolved_slugs)}"
        )


@main.command()
@click.argument("folder", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("project_id", type=int)
@click.option("--client/--no-client", default=True, help="Install on the client")
@click.option("--server/--no-server", default=True, help="Install on the server")
@click.option("--file-id", type=int, help="File to use (required for new mods)")
@click.pass_context
def place(
    ctx: click.Context,
    folder: Path,
    project_id: int,
    client: bool,
    server: bool,
    file_id: int | None,
) -> None:
    """
    Add a mod, or change where it is installed.

    FOLDER: Pack directory
    PROJECT_ID: CurseForge project ID
    """
    service = _service(ctx)
    _load(service, folder)
    try:
        service.set_placement(project_id, client, server, file_id)
    except EDIT_ERRORS as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    console.print(
        f"[green]Project {project_id} is now on: {_placement(client, server)}[/green]"
    )


@main.command()
@click.argument("folder", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("project_id", type=int)
@click.pass_context
def remove(ctx: click.Context, folder: Path, project_id: int) -> None:
    """
    Remove a mod from the pack.

    FOLDER: Pack directory
    PROJECT_ID: CurseForge project ID
    """
    service = _service(ctx)
    _load(service, folder)
    try:
        service.remove_mod(project_id)
    except EDIT_ERRORS as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    console.print(f"[green]Removed project {project_id}[/green]")
