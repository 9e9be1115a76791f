"""Decorators for treefs commands."""

import functools
import logging
from typing import Any, Callable

import typer
from rich.console import Console
from rich.markup import escape

from treefs.vfs.errors import IOFailureError, VFSError

logger = logging.getLogger(__name__)
console = Console()


def handle_cli_errors(func: Callable) -> Callable:
    """
    Decorator to handle errors raised by CLI commands.

    Centralizes error reporting for:
    - IOFailureError: Snapshot missing, unreadable or corrupt
    - VFSError: Any other tree operation failure
    - FileNotFoundError / PermissionError: Host filesystem problems
    - ValueError: Invalid arguments
    - General exceptions: Unexpected errors
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except IOFailureError as e:
            console.print(f"[bold red]Error:[/bold red] Snapshot problem: {escape(str(e))}")
            raise typer.Exit(code=1)
        except VFSError as e:
            console.print(f"[bold red]{e.kind}:[/bold red] {escape(str(e))}")
            raise typer.Exit(code=1)
        except FileNotFoundError as e:
            console.print(f"[bold red]Error:[/bold red] File not found: {escape(str(e))}")
            raise typer.Exit(code=1)
        except PermissionError as e:
            console.print(f"[bold red]Error:[/bold red] Permission denied: {escape(str(e))}")
            console.print("[yellow]Tip: Check file permissions or choose another location[/yellow]")
            raise typer.Exit(code=1)
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] Invalid input: {escape(str(e))}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(code=130)
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            console.print(f"[bold red]Unexpected error:[/bold red] {escape(str(e))}")
            raise typer.Exit(code=1)

    return wrapper
