from rich.console import Console
from rich.markup import escape

# Diagnostics go to stderr; stdout is reserved for match and diff content.
console = Console(stderr=True)

_verbose = False


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose


def debug(message: str) -> None:
    if _verbose:
        console.print(f"[dim]{escape(message)}[/dim]")


def info(message: str) -> None:
    console.print(escape(message))


def success(message: str) -> None:
    console.print(f"[green]{escape(message)}[/green]")


def warning(message: str) -> None:
    console.print(f"[yellow]Warning: {escape(message)}[/yellow]")


def error(message: str) -> None:
    console.print(f"[bold red]Error: {escape(message)}[/bold red]")
