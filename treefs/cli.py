import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.traceback import install

from .config import get_config_path, load_config, update_config
from .decorators import handle_cli_errors
from .vfs import DiskHostAdapter, Session, codec

# Initialize Rich Traceback for better error messages
install(show_locals=True)

# Initialize Rich Console
console = Console()

# Configure logging to use Rich's RichHandler
logging.basicConfig(
    level=logging.INFO,  # Set to INFO by default, DEBUG if verbose
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

app = typer.Typer()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode"),
):
    """
    treefs - an in-memory folder tree with an interactive shell.

    Build, reorganise and snapshot a tree of folders, files and symlinks.
    """
    if verbose:
        logging.getLogger("treefs").setLevel(logging.DEBUG)
        console.print("[bold green]Verbose mode enabled.[/bold green]")


@app.command()
def about():
    """Display information about treefs."""
    console.print("[bold cyan]treefs - In-Memory Folder Tree[/bold cyan]")
    console.print("")
    console.print("A small virtual filesystem with:")
    console.print("  • Folders, files and symbolic links")
    console.print("  • Merge with skip / rename / overwrite conflict handling")
    console.print("  • Sorting by name or date")
    console.print("  • Plain or gzip-compressed snapshots")
    console.print("  • Optional mirroring onto a real directory")
    console.print("")
    console.print("[bold]Commands:[/bold]")
    console.print("  treefs shell [--snapshot FILE]   Interactive shell")
    console.print("  treefs show <snapshot>           Print a snapshot as a tree")
    console.print("  treefs stats <snapshot>          Count nodes in a snapshot")
    console.print("  treefs config                    View or edit configuration")


@app.command()
def shell(
    snapshot: Optional[Path] = typer.Option(None, "--snapshot", "-s", help="Snapshot to load at start"),
    mirror: Optional[Path] = typer.Option(None, "--mirror", "-m", help="Mirror folders and files under this directory"),
):
    """
    Launch the interactive shell.

    Commands:
        mkdir, touch, edit, rm, mov, rename, symlink  - Change the tree
        cd, cdup, pwd, ls, lsrecursive, cat           - Navigate and read
        merge, sortBy, count                          - Reorganise and count
        save, load, compress, decompress              - Snapshots
        help                                          - Show help

    Example:
        treefs shell --snapshot tree.json
    """
    from .repl import TreeShell

    config = load_config()

    host = None
    mirror_root = mirror
    if mirror_root is None and config.host.mirror_enabled and config.host.mirror_root:
        mirror_root = Path(config.host.mirror_root).expanduser()
    if mirror_root is not None:
        host = DiskHostAdapter(mirror_root)
        logger.info(f"Mirroring changes under {mirror_root}")

    session = Session(host=host, max_symlink_hops=config.resolver.max_symlink_hops)

    if snapshot is None and config.persistence.default_snapshot:
        default = Path(config.persistence.default_snapshot).expanduser()
        if default.exists():
            snapshot = default
    if snapshot is not None:
        result = session.load(snapshot)
        if not result.ok:
            console.print(f"[red]{result.error}:[/red] {result.message}")
            raise typer.Exit(code=1)
        console.print(f"[green]{result.message}[/green]")

    TreeShell(session=session, config=config).run()


@app.command()
@handle_cli_errors
def show(
    snapshot: Path = typer.Argument(..., help="Snapshot file (plain or .gz)"),
    path: str = typer.Option("/", "--path", "-p", help="Folder inside the snapshot to show"),
):
    """
    Print a snapshot as a tree.

    Example:
        treefs show tree.json --path /docs
    """
    from .repl.shell import render_tree

    session = Session(tree=codec.load(snapshot))
    result = session.tree_lines(path)
    if not result.ok:
        console.print(f"[red]{result.error}:[/red] {result.message}")
        raise typer.Exit(code=1)
    console.print(render_tree(path, result.value))


@app.command()
@handle_cli_errors
def stats(
    snapshot: Path = typer.Argument(..., help="Snapshot file (plain or .gz)"),
):
    """Show node counts for a snapshot."""
    session = Session(tree=codec.load(snapshot))
    counts = session.stats("/").value

    table = Table(title=f"Statistics: {snapshot}", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Folders", str(counts["folders"]))
    table.add_row("Files", str(counts["files"]))
    table.add_row("Symlinks", str(counts["symlinks"]))
    table.add_row("Content bytes", str(counts["bytes"]))
    console.print(table)


@app.command()
@handle_cli_errors
def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    # Shell settings
    set_history_file: Optional[str] = typer.Option(None, "--history-file", help="Set shell history file"),
    set_color: Optional[bool] = typer.Option(None, "--color/--no-color", help="Enable coloured shell output"),
    set_confirm: Optional[bool] = typer.Option(None, "--confirm-removals/--no-confirm-removals", help="Ask before rm"),
    # Host settings
    set_mirror_enabled: Optional[bool] = typer.Option(None, "--mirror/--no-mirror", help="Mirror changes onto disk"),
    set_mirror_root: Optional[str] = typer.Option(None, "--mirror-root", help="Set directory used for mirroring"),
    # Persistence settings
    set_snapshot: Optional[str] = typer.Option(None, "--default-snapshot", help="Snapshot loaded by 'treefs shell'"),
    set_compress: Optional[bool] = typer.Option(None, "--compress/--no-compress", help="Compress snapshots by default"),
    # Resolver settings
    set_max_hops: Optional[int] = typer.Option(None, "--max-symlink-hops", help="Longest symlink chain to follow"),
):
    """
    View or edit treefs configuration.

    Configuration is stored at ~/.config/treefs/config.json (or ~/.treefs/config.json).

    Examples:
        # Show current configuration
        treefs config --show

        # Mirror every change under ~/tree-mirror
        treefs config --mirror --mirror-root ~/tree-mirror

        # Load a snapshot whenever the shell starts
        treefs config --default-snapshot ~/tree.json.gz
    """
    if set_max_hops is not None and set_max_hops < 1:
        raise ValueError("--max-symlink-hops must be at least 1")

    has_settings = any([
        set_history_file, set_color is not None, set_confirm is not None,
        set_mirror_enabled is not None, set_mirror_root,
        set_snapshot, set_compress is not None, set_max_hops is not None,
    ])

    if show or not has_settings:
        config = load_config()
        config_path = get_config_path()

        console.print("\n[bold]treefs Configuration[/bold]")
        console.print(f"[dim]Location: {config_path}[/dim]\n")

        console.print("[bold cyan]Shell Settings:[/bold cyan]")
        console.print(f"  History File:     {config.shell.history_file or '[dim]not set[/dim]'}")
        console.print(f"  Color:            {config.shell.color}")
        console.print(f"  Confirm Removals: {config.shell.confirm_removals}")

        console.print("\n[bold cyan]Host Settings:[/bold cyan]")
        console.print(f"  Mirror Enabled:   {config.host.mirror_enabled}")
        console.print(f"  Mirror Root:      {config.host.mirror_root or '[dim]not set[/dim]'}")

        console.print("\n[bold cyan]Persistence Settings:[/bold cyan]")
        console.print(f"  Default Snapshot: {config.persistence.default_snapshot or '[dim]not set[/dim]'}")
        console.print(f"  Compress:         {config.persistence.compress}")

        console.print("\n[bold cyan]Resolver Settings:[/bold cyan]")
        console.print(f"  Max Symlink Hops: {config.resolver.max_symlink_hops}")
        return

    update_config(
        shell_history_file=set_history_file,
        shell_color=set_color,
        shell_confirm_removals=set_confirm,
        host_mirror_enabled=set_mirror_enabled,
        host_mirror_root=set_mirror_root,
        persistence_default_snapshot=set_snapshot,
        persistence_compress=set_compress,
        resolver_max_symlink_hops=set_max_hops,
    )
    console.print(f"[green]Configuration updated at {get_config_path()}[/green]")


if __name__ == "__main__":
    app()
