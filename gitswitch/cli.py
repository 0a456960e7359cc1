"""Command-line interface."""

import logging
import sys
from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar, cast

import click

from .backup import backup_configs, list_backups, restore_backup
from .exceptions import DuplicateNameError, GitSwitchError, KeyNotFoundError, SSHError
from .git_config import GitConfigSynchronizer, GitScope
from .paths import get_log_file
from .profile import DEFAULT_SSH_HOSTNAME, GIT_SCOPES, Profile, ProfileStore
from .ssh import add_to_ssh_agent, default_key_path, delete_key_files, generate_ssh_key, read_public_key
from .ssh_config import SshConfigSynchronizer
from .switch import SwitchEngine
from .ui import (
    print_profile_details,
    print_profile_table,
    print_public_key,
    print_ssh_block,
    print_switch_summary,
)
from .ui_common import confirm_action, console, print_error, print_info, print_success, print_warning
from .version import __version__

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Log to a file in the config dir and to stderr.

    Handlers installed by a previous call are replaced, so repeated
    invocations in one process don't duplicate output.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_git_switch", False):
            root.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handlers: list[logging.Handler] = [stream_handler]

    log_file = get_log_file()
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)
    except OSError as e:
        print_warning(f"Cannot write log file {log_file}: {e}")

    for handler in handlers:
        handler._git_switch = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.debug("Debug mode enabled")


def handle_errors(f: F) -> F:
    """Decorator to report errors in CLI commands and exit non-zero."""
    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except GitSwitchError as e:
            logger.debug(f"{e.kind}: {e}", exc_info=True)
            print_error(str(e), kind=e.kind, details=e.details)
            sys.exit(1)
        except click.ClickException:
            raise
        except Exception as e:
            logger.error(f"Unexpected error: {e}", exc_info=True)
            print_error(f"Unexpected error: {e}")
            sys.exit(1)
    return cast(F, wrapper)


def get_store() -> ProfileStore:
    """Load the profile store from the configured location."""
    return ProfileStore()


def get_engine(store: ProfileStore) -> SwitchEngine:
    return SwitchEngine(store, SshConfigSynchronizer(), GitConfigSynchronizer())


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="git-switch")
def cli(debug: bool) -> None:
    """Manage and switch between multiple Git identities."""
    configure_logging(debug)


@cli.command()
@click.argument("name")
@click.option("--user-name", "-u", prompt="Git user name", help="Value for git user.name")
@click.option("--email", "-e", prompt="Git email", help="Value for git user.email")
@click.option("--ssh-key", help="Private key path (default: ~/.ssh/id_<type>_<name>)")
@click.option("--host-alias", help="SSH host alias (default: github-<name>)")
@click.option("--hostname", default=DEFAULT_SSH_HOSTNAME, show_default=True, help="Real host behind the alias")
@click.option("--signing-key", help="Value for git user.signingkey")
@click.option(
    "--generate-key/--no-generate-key",
    default=True,
    show_default=True,
    help="Generate the SSH key if it doesn't exist",
)
@click.option("--key-type", type=click.Choice(["ed25519", "rsa"]), default="ed25519", show_default=True)
@handle_errors
def add(
    name: str,
    user_name: str,
    email: str,
    ssh_key: str | None = None,
    host_alias: str | None = None,
    hostname: str = DEFAULT_SSH_HOSTNAME,
    signing_key: str | None = None,
    generate_key: bool = True,
    key_type: str = "ed25519",
) -> None:
    """Add a Git profile."""
    store = get_store()
    profile = Profile(
        name=name,
        ssh_key_path=ssh_key or default_key_path(name, key_type),  # type: ignore[arg-type]
        git_user_name=user_name,
        git_user_email=email,
        ssh_host_alias=host_alias or "",
        ssh_hostname=hostname,
        signing_key=signing_key or None,
    )
    profile.validate()
    if profile.name in store:
        # Checked before generating a key for a profile that can't be saved
        raise DuplicateNameError(f"Profile '{name}' already exists", profile_name=name)

    if not profile.key_path.exists():
        if generate_key:
            generate_ssh_key(profile.key_path, comment=email, key_type=key_type)  # type: ignore[arg-type]
            print_success(f"Generated {key_type} key {profile.key_path}")
        else:
            print_warning(f"SSH key {profile.key_path} doesn't exist yet; switching will fail until it does")

    store.add(profile)
    print_success(f"Profile '{name}' added")
    print_profile_details(profile)

    try:
        print_public_key(profile, read_public_key(profile.ssh_key_path))
    except KeyNotFoundError:
        logger.debug(f"No public key next to {profile.key_path}")


@cli.command()
@click.argument("name")
@click.option("--delete-key", is_flag=True, help="Also delete the SSH key files")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
@handle_errors
def remove(name: str, delete_key: bool = False, yes: bool = False) -> None:
    """Remove a Git profile."""
    store = get_store()
    profile = store.get(name)
    if not yes and not confirm_action(f"Remove profile '{name}'?", default=False):
        print_info("Operation cancelled")
        return

    was_active = store.active == name
    store.remove(name)
    print_success(f"Profile '{name}' removed")

    if was_active:
        if SshConfigSynchronizer().clear():
            print_info("Removed its host entry from the SSH config")
        print_info("No profile is active now")

    if delete_key:
        shared = [p.name for p in store.list() if p.key_path == profile.key_path]
        if shared:
            print_warning(f"SSH key is still used by: {', '.join(shared)}; keeping it")
        else:
            for path in delete_key_files(profile.ssh_key_path):
                print_success(f"Deleted {path}")


@cli.command()
@click.argument("name")
@click.option("--user-name", "-u", help="New git user.name")
@click.option("--email", "-e", help="New git user.email")
@click.option("--ssh-key", help="New private key path")
@click.option("--host-alias", help="New SSH host alias")
@click.option("--hostname", help="New real host behind the alias")
@click.option("--signing-key", help="New git user.signingkey")
@click.option("--no-signing-key", is_flag=True, help="Stop setting user.signingkey")
@handle_errors
def edit(
    name: str,
    user_name: str | None = None,
    email: str | None = None,
    ssh_key: str | None = None,
    host_alias: str | None = None,
    hostname: str | None = None,
    signing_key: str | None = None,
    no_signing_key: bool = False,
) -> None:
    """Change fields of a Git profile."""
    if signing_key and no_signing_key:
        raise click.UsageError("--signing-key and --no-signing-key can't be used together")

    changes = {
        key: value
        for key, value in {
            "git_user_name": user_name,
            "git_user_email": email,
            "ssh_key_path": ssh_key,
            "ssh_host_alias": host_alias,
            "ssh_hostname": hostname,
            "signing_key": signing_key,
        }.items()
        if value is not None
    }
    if no_signing_key:
        changes["signing_key"] = None
    if not changes:
        print_info("Nothing to change")
        return

    store = get_store()
    profile = store.update(name, **changes)
    print_success(f"Profile '{name}' updated")
    print_profile_details(profile, active=store.active == name)
    if store.active == name:
        print_info(f"Run git-switch switch {name} to apply the changes")


@cli.command(name="list")
@handle_errors
def list_profiles() -> None:
    """List saved Git profiles."""
    store = get_store()
    profiles = store.list()
    if not profiles:
        print_info("No saved profiles. Add one with: git-switch add NAME")
        return
    print_profile_table(profiles, active=store.active)


@cli.command()
@click.argument("name")
@click.option("--global", "scope_name", flag_value="global", help="Write identity to the global Git config")
@click.option("--local", "scope_name", flag_value="local", help="Write identity to a repository's Git config")
@click.option(
    "--repo",
    type=click.Path(path_type=Path, file_okay=False),
    help="Repository for --local (default: current directory)",
)
@click.option("--add-to-agent", is_flag=True, help="Also load the key into the running SSH agent")
@handle_errors
def switch(
    name: str,
    scope_name: str | None = None,
    repo: Path | None = None,
    add_to_agent: bool = False,
) -> None:
    """Switch to a Git profile (by name or Git user name)."""
    store = get_store()
    profile = store.resolve(name)
    if scope_name is None:
        scope_name = "local" if repo else store.settings.git_scope
    scope = GitScope.from_name(scope_name, repo)

    result = get_engine(store).switch_to(profile.name, scope)
    print_success(f"Switched to profile '{profile.name}'")
    print_switch_summary(result)

    if add_to_agent:
        try:
            add_to_ssh_agent(profile.ssh_key_path)
            print_success("Key added to SSH agent")
        except SSHError as e:
            print_warning(str(e))


cli.add_command(switch, name="use")


@cli.command()
@click.option("--details", is_flag=True, help="Show the full profile")
@click.option("--verify", is_flag=True, help="Check the Git config still matches the profile")
@handle_errors
def current(details: bool = False, verify: bool = False) -> None:
    """Show the active profile."""
    store = get_store()
    profile = store.active_profile()
    if profile is None:
        print_info("No active profile")
        return

    click.echo(profile.name)
    if details:
        print_profile_details(profile, active=True)
        block = SshConfigSynchronizer().current_block()
        if block is None:
            print_warning("The SSH config has no git-switch block")
        else:
            print_ssh_block(block)
    if verify:
        applied = store.active_scope
        scope = GitScope.from_applied(applied) if applied else GitScope.from_name(store.settings.git_scope)
        values = GitConfigSynchronizer().read(scope)
        expected = {"user.name": profile.git_user_name, "user.email": profile.git_user_email}
        drift = [key for key, value in expected.items() if values.get(key) != value]
        if drift:
            print_warning(f"{scope} Git config differs from '{profile.name}' for: {', '.join(drift)}")
            print_info(f"Run: git-switch switch {profile.name}")
        else:
            print_success(f"{scope} Git config matches '{profile.name}'")


@cli.command(name="show-key")
@click.argument("name")
@handle_errors
def show_key(name: str) -> None:
    """Print a profile's public SSH key."""
    profile = get_store().resolve(name)
    print_public_key(profile, read_public_key(profile.ssh_key_path))


@cli.command()
@click.argument("name")
@click.argument("repository")
@click.option("--owner", help="Account that owns the repository (default: the profile's Git user name)")
@click.option(
    "--repo-path",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=".",
    help="Local repository to update",
)
@handle_errors
def remote(name: str, repository: str, owner: str | None = None, repo_path: Path = Path(".")) -> None:
    """Point the origin remote at a profile's SSH host alias."""
    profile = get_store().resolve(name)
    url = GitConfigSynchronizer().update_remote(profile, repo_path, repository, owner=owner)
    print_success(f"origin now points to {url}")


@cli.command()
@click.argument("scope", required=False, type=click.Choice(GIT_SCOPES))
@handle_errors
def scope(scope: str | None = None) -> None:
    """Show or set the default Git config scope used by switch."""
    store = get_store()
    if scope is None:
        click.echo(store.settings.git_scope)
        return
    store.set_git_scope(scope)
    print_success(f"Default Git scope set to {scope}")


@cli.command()
@handle_errors
def backup() -> None:
    """Back up the SSH config and the global Git config."""
    path = backup_configs()
    print_success(f"Backup created: {path}")


@cli.command()
@click.argument("backup_path", required=False, type=click.Path(path_type=Path, file_okay=False, exists=True))
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
@handle_errors
def restore(backup_path: Path | None = None, yes: bool = False) -> None:
    """Restore a backup (default: the most recent one)."""
    if backup_path is None:
        backups = list_backups()
        if not backups:
            print_info("No backups found. Create one with: git-switch backup")
            return
        backup_path = backups[0]

    if not yes and not confirm_action(f"Restore configuration from {backup_path}?", default=False):
        print_info("Operation cancelled")
        return

    for destination in restore_backup(backup_path):
        print_success(f"Restored {destination}")
    console.print("[dim]The active profile may no longer match; run git-switch switch NAME[/dim]")
