"""UI module for git-switch."""

from rich import box
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .profile import Profile
from .switch import SwitchResult
from .ui_common import console


def print_profile_table(profiles: list[Profile], active: str | None = None) -> None:
    """Print saved profiles as a table, marking the active one."""
    table = Table(
        title="Git Profiles",
        box=box.ROUNDED,
        title_style="bold cyan",
        show_lines=False,
    )
    table.add_column("Active", justify="center", style="green")
    table.add_column("Name", style="bold")
    table.add_column("Git User")
    table.add_column("Email")
    table.add_column("Host Alias", style="cyan")
    table.add_column("SSH Key", style="blue", overflow="fold")

    for profile in profiles:
        table.add_row(
            "*" if profile.name == active else "",
            escape(profile.name),
            escape(profile.git_user_name),
            escape(profile.git_user_email),
            escape(profile.ssh_host_alias),
            escape(profile.ssh_key_path),
        )

    console.print(table)


def print_profile_details(profile: Profile, active: bool = False) -> None:
    """Print a single profile."""
    details = Table.grid(padding=(0, 2))
    details.add_column(style="dim")
    details.add_column()
    details.add_row("Git user", escape(profile.git_user_name))
    details.add_row("Email", escape(profile.git_user_email))
    details.add_row("SSH key", escape(profile.ssh_key_path))
    details.add_row("Host alias", f"{escape(profile.ssh_host_alias)} -> {escape(profile.ssh_hostname)}")
    if profile.signing_key:
        details.add_row("Signing key", escape(profile.signing_key))

    title = f"[bold cyan]{escape(profile.name)}[/bold cyan]"
    if active:
        title += " [green](active)[/green]"
    console.print(Panel(details, title=title, border_style="cyan", expand=False))


def print_public_key(profile: Profile, public_key: str) -> None:
    """Print a public key so the user can register it with their Git host."""
    console.print(
        Panel(
            escape(public_key),
            title=f"[bold]Public key for {escape(profile.name)}[/bold]",
            subtitle=f"Add it to your account on {escape(profile.ssh_hostname)}",
            border_style="green",
        )
    )
    console.print(
        f"[dim]Clone with:[/dim] [command]git clone git@{escape(profile.ssh_host_alias)}:OWNER/REPO.git[/command]"
    )


def print_switch_summary(result: SwitchResult) -> None:
    """Print what a switch changed."""
    profile = result.profile
    summary = Table.grid(padding=(0, 2))
    summary.add_column(style="dim")
    summary.add_column()
    if result.previous and result.previous != profile.name:
        summary.add_row("Previous", escape(result.previous))
    summary.add_row("Git scope", escape(str(result.scope)))
    summary.add_row("user.name", escape(profile.git_user_name))
    summary.add_row("user.email", escape(profile.git_user_email))
    summary.add_row("SSH host", f"{escape(profile.ssh_host_alias)} -> {escape(profile.ssh_key_path)}")
    console.print(summary)


def print_ssh_block(block: str) -> None:
    """Print the git-switch block of the SSH config."""
    console.print(Panel(escape(block.rstrip("\n")), title="[bold]SSH config[/bold]", border_style="blue", expand=False))
