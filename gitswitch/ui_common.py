"""Common UI utilities shared across modules."""

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.theme import Theme

# Create a custom theme for consistent styling
theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "red",
        "success": "green",
        "title": "bold cyan",
        "highlight": "bold yellow",
        "path": "blue",
        "command": "green",
    }
)

console = Console(theme=theme, highlight=False)
err_console = Console(theme=theme, stderr=True, highlight=False)


def print_error(message: str, kind: str | None = None, details: str | None = None) -> None:
    """Print error message to stderr."""
    label = escape(f"Error [{kind}]:") if kind else "Error:"
    err_console.print(f"[error]{label}[/error] {escape(message)}")
    if details:
        err_console.print(f"[dim]{escape(details)}[/dim]")


def print_warning(message: str) -> None:
    """Print warning message."""
    err_console.print(f"[warning]Warning:[/warning] {escape(message)}")


def print_info(message: str) -> None:
    """Print info message."""
    console.print(f"[info]Info:[/info] {escape(message)}")


def print_success(message: str) -> None:
    """Print success message."""
    console.print(f"[success]Success:[/success] {escape(message)}")


def confirm_action(prompt: str, default: bool = True) -> bool:
    """Confirm an action with the user."""
    try:
        return Confirm.ask(prompt, default=default, console=console)
    except (KeyboardInterrupt, EOFError):
        from .exceptions import GitSwitchError
        raise GitSwitchError("Operation cancelled by user") from None
